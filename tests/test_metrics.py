from datetime import date

import pytest

from campaign_importer.metrics import (
    CONNECTIONS,
    DEFAULT_SYNONYMS,
    INVITES,
    DateFilter,
    EventTypeSynonyms,
    MetricsAggregator,
    acceptance_rate,
    calculate_lead_metrics,
    classify_lead_response,
    date_range_from_metrics,
    get_metric_total,
    lead_belongs_to_campaign,
)
from campaign_importer.models import CampaignGroup, CampaignMetric, DateRange, FollowUp, Lead, LeadStatus


def _metric(event_type, total_count=0, daily_data=None, campaign="C1"):
    return CampaignMetric(campaign, event_type, "P1", total_count=total_count, daily_data=dict(daily_data or {}))


@pytest.mark.parametrize(
    "label",
    ["Connection Requests Accepted", "conexões realizadas", "connections", "Unknown Label", "  Visitas  ", ""],
)
def test_canonicalize_is_idempotent(label):
    once = DEFAULT_SYNONYMS.canonicalize(label)

    assert DEFAULT_SYNONYMS.canonicalize(once) == once


def test_canonicalize_maps_locale_labels():
    assert DEFAULT_SYNONYMS.canonicalize("Conexões Realizadas") == CONNECTIONS
    assert DEFAULT_SYNONYMS.canonicalize("CONNECTIONS MADE") == CONNECTIONS
    assert DEFAULT_SYNONYMS.canonicalize(" Unknown ") == "Unknown"
    assert "Connections Made" in DEFAULT_SYNONYMS.labels_for(CONNECTIONS)


def test_synonym_table_is_extended_without_mutation():
    extended = DEFAULT_SYNONYMS.extended({INVITES: ["Solicitações Enviadas"]}, version="2025.2")

    assert extended.version == "2025.2"
    assert extended.canonicalize("Solicitações Enviadas") == INVITES
    assert DEFAULT_SYNONYMS.canonicalize("Solicitações Enviadas") == "Solicitações Enviadas"


def test_conflicting_labels_are_rejected():
    with pytest.raises(ValueError):
        EventTypeSynonyms({"a": ["Same"], "b": ["same"]})


def test_get_metric_total_prefers_daily_data():
    assert get_metric_total(_metric(INVITES, 99, {"2025-01-01": 4, "2025-01-02": 6})) == 10
    assert get_metric_total(_metric(INVITES, 7)) == 7
    assert get_metric_total(None) == 0


def test_get_metric_total_filters_inclusively_and_skips_bad_keys():
    metric = _metric(INVITES, 0, {"2025-01-01": 1, "2025-01-02": 2, "2025-01-03": 4, "garbage": 100})

    window = DateFilter(start=date(2025, 1, 2), end=date(2025, 1, 3))

    assert get_metric_total(metric, window) == 6
    assert get_metric_total(metric, DateFilter(start=date(2025, 1, 3))) == 4


def test_acceptance_rate():
    assert acceptance_rate(0, 5) == 0
    assert acceptance_rate(10, 3) == 30.0
    assert acceptance_rate(3, 2) == 66.7


def test_calculate_totals_sums_synonymous_series():
    series = [
        _metric("Connection Requests Sent", 0, {"2025-01-01": 6}),
        _metric("Convites Enviados", 4),
        _metric(CONNECTIONS, 0, {"2025-01-02": 3}),
        _metric("Messages Sent", 9),
        _metric("Profile Visits", 2),
        _metric("Curtidas", 1),
    ]

    totals = MetricsAggregator().calculate_totals(series)

    assert totals.invites == 10
    assert totals.connections == 3
    assert totals.acceptance_rate == 30.0
    assert totals.messages == 9
    # Connections are not counted as an activity of the sending profile.
    assert totals.total_activities == 10 + 9 + 2 + 1


def test_messages_prefer_follow_up_sum():
    series = [
        _metric("follow_ups_1", 0, {"2025-01-01": 2}),
        _metric("Follow-Ups 2", 1),
        _metric("Messages Sent", 50),
    ]

    totals = MetricsAggregator().calculate_totals(series)

    assert totals.messages == 3
    assert (totals.follow_ups_1, totals.follow_ups_2, totals.follow_ups_3) == (2, 1, 0)


def test_date_range_uses_days_with_activity():
    series = [
        _metric(INVITES, 0, {"2025-01-01": 0, "2025-01-02": 1}),
        _metric(CONNECTIONS, 0, {"2025-01-05": 2, "bad": 3}),
    ]

    assert date_range_from_metrics(series) == DateRange("2025-01-02", "2025-01-05", 2)


def test_summarise_group_keeps_export_date_range():
    group = CampaignGroup(
        profile_name="P1",
        campaign_name="C1",
        metrics=[_metric(INVITES, 0, {"2025-01-02": 1})],
        date_range=DateRange("2025-01-01", "2025-01-03", 3),
    )

    totals = MetricsAggregator().summarise_group(group)

    assert (totals.start_date, totals.end_date, totals.active_days) == ("2025-01-01", "2025-01-03", 3)


def test_lead_campaign_matching_ignores_export_suffixes():
    assert lead_belongs_to_campaign("Campanha Saúde all leads.csv", "campanha saúde")
    assert not lead_belongs_to_campaign("", "C1")


def test_lead_metrics_classify_pipeline_statuses():
    leads = [
        Lead(name="A", campaign="C1", status=LeadStatus.EM_NEGOCIACAO, meeting_date="2025-01-03", sale_value=10.0,
             sale_date="2025-01-09", connection_date="2025-01-01"),
        Lead(name="B", campaign="C1", status=LeadStatus.SEM_FIT, connection_date="2025-01-02"),
        Lead(name="C", campaign="C2", follow_ups=[FollowUp(1, comments="Tenho interesse")], connection_date="2025-02-01"),
        Lead(name="D", campaign="C2"),
    ]

    assert classify_lead_response(leads[2]) is LeadStatus.POSITIVE
    assert classify_lead_response(leads[3]) is LeadStatus.PENDING

    metrics = calculate_lead_metrics(leads)
    assert metrics.total == 4
    assert metrics.positive_responses == 2
    assert metrics.negative_responses == 1
    assert metrics.meetings == 1
    assert metrics.sales == 1
    assert metrics.sale_value == 10.0
    assert metrics.by_campaign == {"C1": 2, "C2": 2}

    january = calculate_lead_metrics(leads, DateFilter(date(2025, 1, 1), date(2025, 1, 31)))
    assert january.total == 2
