import pandas as pd
import pytest

from campaign_importer.ingestion.exporters import (
    export_leads,
    export_metrics,
    export_totals,
    leads_to_dataframe,
    metrics_to_dataframe,
)
from campaign_importer.metrics import CampaignTotals
from campaign_importer.models import CampaignMetric, FollowUp, Lead, LeadStatus


def _build_sample_lead() -> Lead:
    return Lead(
        name="Ada Lovelace",
        campaign="C1",
        linkedin="https://linkedin.com/in/ada",
        company="Analytical Engines",
        status=LeadStatus.POSITIVE,
        positive_response_date="2025-01-05",
        follow_ups=[FollowUp(number=2, date="2025-01-07", comments="Ligou")],
        proposal_value=1500.0,
    )


def _build_sample_metrics():
    return [
        CampaignMetric("C1", "invites", "P1", total_count=3, daily_data={"2025-01-02": 1, "2025-01-01": 2}),
        CampaignMetric("C1", "visits", "P1", total_count=7),
    ]


def test_leads_to_dataframe_flattens_follow_ups():
    dataframe = leads_to_dataframe([_build_sample_lead()])

    required_columns = {
        "name",
        "campaign",
        "status",
        "positive_response_date",
        "follow_up_1_date",
        "follow_up_2_date",
        "follow_up_2_comments",
        "follow_up_4_comments",
        "proposal_value",
    }
    assert required_columns.issubset(dataframe.columns)
    assert "follow_ups" not in dataframe.columns
    row = dataframe.iloc[0]
    assert row["status"] == "positive"
    assert row["follow_up_2_comments"] == "Ligou"
    assert pd.isna(row["follow_up_1_date"])


def test_metrics_to_dataframe_uses_long_format():
    dataframe = metrics_to_dataframe(_build_sample_metrics())

    assert list(dataframe.columns) == ["campaign_name", "profile_name", "event_type", "date", "count"]
    assert dataframe["date"].tolist() == ["2025-01-01", "2025-01-02", ""]
    assert dataframe["count"].tolist() == [2, 1, 7]


def test_export_leads_metrics_and_totals_to_csv_and_excel(tmp_path):
    leads = [_build_sample_lead()]
    totals = {"C1": CampaignTotals(invites=3, connections=1, acceptance_rate=33.3)}

    export_leads(leads, tmp_path / "leads.csv")
    export_leads(leads, tmp_path / "out" / "leads.xlsx")
    export_metrics(_build_sample_metrics(), tmp_path / "metrics.tsv")
    export_totals(totals, tmp_path / "totals.csv")

    csv_frame = pd.read_csv(tmp_path / "leads.csv")
    excel_frame = pd.read_excel(tmp_path / "out" / "leads.xlsx")
    metrics_frame = pd.read_csv(tmp_path / "metrics.tsv", sep="\t")
    totals_frame = pd.read_csv(tmp_path / "totals.csv")

    assert csv_frame.loc[0, "name"] == "Ada Lovelace"
    assert excel_frame.loc[0, "company"] == "Analytical Engines"
    assert metrics_frame["count"].sum() == 10
    assert totals_frame.loc[0, "campaign_name"] == "C1"
    assert totals_frame.loc[0, "acceptance_rate"] == 33.3


def test_unknown_export_extension_is_rejected(tmp_path):
    with pytest.raises(ValueError):
        export_leads([_build_sample_lead()], tmp_path / "leads.json")
