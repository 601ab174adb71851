"""Parser for wide campaign exports with one row per event type."""
from __future__ import annotations

import logging
import re
from typing import Dict, List, Optional, Tuple

from ..config import ImportSettings
from ..errors import MissingRequiredColumnsError
from ..models import CampaignGroup, CampaignMetric, CampaignParseResult, DateRange, FileFormat, ParseReport
from .loaders import RawTable
from .values import clean_text, normalise_header, parse_int

LOGGER = logging.getLogger(__name__)

DATE_COLUMN = re.compile(r"^\d{4}-\d{2}-\d{2}$")

_REQUIRED = {
    "campaign_name": "Campaign Name",
    "event_type": "Event Type",
    "profile_name": "Profile Name",
    "total_count": "Total Count",
}


def parse_campaign_table(table: RawTable, settings: Optional[ImportSettings] = None) -> CampaignParseResult:
    """Group a campaign export by (profile, campaign) into metric series."""

    settings = settings or ImportSettings()
    columns = _resolve_columns(table)
    date_columns = [(index, header) for index, header in enumerate(table.headers) if DATE_COLUMN.match(header)]
    date_range = _header_date_range([header for _, header in date_columns])

    report = ParseReport(file_name=table.file_name, format=FileFormat.CAMPAIGN_INPUT)
    groups: Dict[Tuple[str, str], CampaignGroup] = {}

    for row_number, row in enumerate(table.rows, start=2):
        report.rows_read += 1
        campaign_name = clean_text(table.cell(row, columns["campaign_name"]))
        raw_event_type = clean_text(table.cell(row, columns["event_type"]))
        profile_name = clean_text(table.cell(row, columns["profile_name"]))

        if not campaign_name or not raw_event_type or not profile_name:
            LOGGER.debug("Row %s of %s is missing campaign, event type or profile", row_number, table.file_name)
            report.skip(f"row {row_number}: missing campaign, event type or profile")
            continue

        if settings.is_excluded_campaign(campaign_name):
            LOGGER.debug("Skipping excluded campaign %s", campaign_name)
            report.excluded_rows += 1
            continue

        daily_data: Dict[str, int] = {}
        for index, day in date_columns:
            value = parse_int(table.cell(row, index))
            if value is not None:
                daily_data[day] = value

        total_count = parse_int(table.cell(row, columns["total_count"]))
        if total_count is None:
            total_count = sum(daily_data.values())

        key = (profile_name, campaign_name)
        group = groups.get(key)
        if group is None:
            group = CampaignGroup(
                profile_name=profile_name,
                campaign_name=campaign_name,
                date_range=DateRange(date_range.start_date, date_range.end_date, date_range.active_days),
            )
            groups[key] = group

        event_type = settings.synonyms.canonicalize(raw_event_type)
        metric = group.metric(event_type)
        if metric is None:
            group.metrics.append(
                CampaignMetric(
                    campaign_name=campaign_name,
                    event_type=event_type,
                    profile_name=profile_name,
                    total_count=total_count,
                    daily_data=daily_data,
                )
            )
        else:
            # The same event type twice in a group (e.g. a PT and an EN label) is additive.
            metric.total_count += total_count
            for day, value in daily_data.items():
                metric.daily_data[day] = metric.daily_data.get(day, 0) + value

    result = CampaignParseResult(groups=list(groups.values()), report=report)
    LOGGER.info(
        "Parsed %s campaign/profile groups (%s metrics) from %s; skipped %s rows, excluded %s",
        len(result.groups),
        len(result.metrics),
        table.file_name,
        report.skipped_rows,
        report.excluded_rows,
    )
    return result


def _resolve_columns(table: RawTable) -> Dict[str, int]:
    positions: Dict[str, int] = {}
    lookup = {normalise_header(header): index for index, header in reversed(list(enumerate(table.headers)))}
    missing: List[str] = []
    for field, header in _REQUIRED.items():
        index = lookup.get(normalise_header(header))
        if index is None:
            missing.append(header)
        else:
            positions[field] = index
    if missing:
        raise MissingRequiredColumnsError(missing, file_name=table.file_name)
    return positions


def _header_date_range(days: List[str]) -> DateRange:
    # Counts the date columns present in the export, not the days with activity.
    if not days:
        return DateRange()
    ordered = sorted(set(days))
    return DateRange(start_date=ordered[0], end_date=ordered[-1], active_days=len(ordered))


__all__ = ["DATE_COLUMN", "parse_campaign_table"]
