"""Export utilities for imported leads, metric series and campaign totals."""
from __future__ import annotations

from dataclasses import asdict
from pathlib import Path
from typing import Iterable, List, Mapping, MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..metrics import CampaignTotals
from ..models import CampaignMetric, FollowUp, Lead

PathLike = Union[str, Path]

_MAX_FOLLOW_UPS = 4


def export_leads(
    leads: Sequence[Lead],
    path: PathLike,
    *,
    sheet_name: str = "Leads",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write leads to a CSV or Excel file."""

    output_path = Path(path)
    _write_dataframe(leads_to_dataframe(leads), output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def export_metrics(
    metrics: Sequence[CampaignMetric],
    path: PathLike,
    *,
    sheet_name: str = "Metrics",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write metric series in long format (one row per series and day)."""

    output_path = Path(path)
    _write_dataframe(metrics_to_dataframe(metrics), output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def export_totals(
    totals: Mapping[str, CampaignTotals],
    path: PathLike,
    *,
    sheet_name: str = "Totals",
    exporter_kwargs: Optional[MutableMapping[str, object]] = None,
) -> Path:
    """Write one row of dashboard totals per campaign."""

    output_path = Path(path)
    _write_dataframe(totals_to_dataframe(totals), output_path, sheet_name=sheet_name, exporter_kwargs=exporter_kwargs)
    return output_path


def leads_to_dataframe(leads: Iterable[Lead]) -> pd.DataFrame:
    """Flatten leads into a :class:`pandas.DataFrame`, one column per follow-up field."""

    return pd.DataFrame([_lead_to_row(lead) for lead in leads])


def metrics_to_dataframe(metrics: Iterable[CampaignMetric]) -> pd.DataFrame:
    """Convert metric series into rows of ``campaign, profile, event_type, date, count``.

    Series without daily data contribute a single row with an empty date
    carrying ``total_count``.
    """

    columns = ["campaign_name", "profile_name", "event_type", "date", "count"]
    records: List[MutableMapping[str, object]] = []
    for metric in metrics:
        base = {
            "campaign_name": metric.campaign_name,
            "profile_name": metric.profile_name,
            "event_type": metric.event_type,
        }
        if not metric.daily_data:
            records.append({**base, "date": "", "count": metric.total_count})
            continue
        for day, value in sorted(metric.daily_data.items()):
            records.append({**base, "date": day, "count": value})
    return pd.DataFrame(records, columns=columns)


def totals_to_dataframe(totals: Mapping[str, CampaignTotals]) -> pd.DataFrame:
    records = [{"campaign_name": campaign, **asdict(campaign_totals)} for campaign, campaign_totals in totals.items()]
    return pd.DataFrame(records)


def _lead_to_row(lead: Lead) -> MutableMapping[str, object]:
    row: MutableMapping[str, object] = {}
    for key, value in asdict(lead).items():
        if key == "follow_ups":
            continue
        row[key] = value.value if hasattr(value, "value") else value

    for number in range(1, _MAX_FOLLOW_UPS + 1):
        follow_up = lead.follow_up(number) or FollowUp(number=number)
        row[f"follow_up_{number}_date"] = follow_up.date
        row[f"follow_up_{number}_comments"] = follow_up.comments
    return row


def _write_dataframe(
    dataframe: pd.DataFrame,
    path: Path,
    *,
    sheet_name: str,
    exporter_kwargs: Optional[MutableMapping[str, object]],
) -> None:
    exporter_kwargs = dict(exporter_kwargs or {})
    suffix = path.suffix.lower()
    path.parent.mkdir(parents=True, exist_ok=True)

    if suffix in {".csv", ".tsv"}:
        if suffix == ".tsv":
            exporter_kwargs.setdefault("sep", "\t")
        dataframe.to_csv(path, index=False, **exporter_kwargs)
        return

    if suffix in {".xls", ".xlsx", ".xlsm", ".xlsb"}:
        engine = exporter_kwargs.pop("engine", None) or "openpyxl"
        dataframe.to_excel(path, index=False, sheet_name=sheet_name, engine=engine, **exporter_kwargs)
        return

    raise ValueError(f"Unsupported export file extension: {suffix}")


__all__ = [
    "export_leads",
    "export_metrics",
    "export_totals",
    "leads_to_dataframe",
    "metrics_to_dataframe",
    "totals_to_dataframe",
]
