"""Event-type canonicalisation and campaign metric aggregation."""
from __future__ import annotations

import logging
import re
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Dict, FrozenSet, Iterable, Mapping, Optional, Sequence

from .ingestion.values import ResponseType, classify_response, is_iso_date
from .models import CampaignGroup, CampaignMetric, DateRange, Lead, LeadStatus

LOGGER = logging.getLogger(__name__)

# Canonical event types
INVITES = "invites"
CONNECTIONS = "connections"
MESSAGES = "messages"
VISITS = "visits"
LIKES = "likes"
COMMENTS = "comments"
FOLLOW_UPS_1 = "follow_ups_1"
FOLLOW_UPS_2 = "follow_ups_2"
FOLLOW_UPS_3 = "follow_ups_3"
POSITIVE_RESPONSES = "positive_responses"
NEGATIVE_RESPONSES = "negative_responses"
MEETINGS = "meetings"
PROPOSALS = "proposals"
SALES = "sales"

FOLLOW_UP_EVENT_TYPES = (FOLLOW_UPS_1, FOLLOW_UPS_2, FOLLOW_UPS_3)

DEFAULT_EVENT_TYPE_LABELS: Mapping[str, Sequence[str]] = {
    INVITES: ("Connection Requests Sent", "Convites Enviados"),
    CONNECTIONS: ("Connection Requests Accepted", "Conexões Realizadas", "Connections Made"),
    MESSAGES: ("Messages Sent", "Mensagens Enviadas"),
    VISITS: ("Profile Visits", "Visitas a Perfil", "Visitas"),
    LIKES: ("Post Likes", "Curtidas"),
    COMMENTS: ("Comments Done", "Comentários"),
    FOLLOW_UPS_1: ("Follow-Ups 1",),
    FOLLOW_UPS_2: ("Follow-Ups 2",),
    FOLLOW_UPS_3: ("Follow-Ups 3",),
    POSITIVE_RESPONSES: ("Positive Responses", "Respostas Positivas"),
    NEGATIVE_RESPONSES: ("Negative Responses", "Respostas Negativas"),
    MEETINGS: ("Meetings", "Reuniões", "Reuniões Marcadas"),
    PROPOSALS: ("Proposals", "Propostas"),
    SALES: ("Sales", "Vendas"),
}


class EventTypeSynonyms:
    """Versioned, immutable lookup from canonical event type to locale labels."""

    def __init__(self, table: Mapping[str, Iterable[str]], *, version: str = "1") -> None:
        frozen: Dict[str, FrozenSet[str]] = {}
        reverse: Dict[str, str] = {}
        for canonical, labels in table.items():
            frozen[canonical] = frozenset(label.strip() for label in labels)
            reverse[canonical.casefold()] = canonical
        for canonical, labels in frozen.items():
            for label in labels:
                key = label.casefold()
                owner = reverse.setdefault(key, canonical)
                if owner != canonical:
                    raise ValueError(f"Label '{label}' is mapped to both '{owner}' and '{canonical}'")
        self._table = MappingProxyType(frozen)
        self._reverse = MappingProxyType(reverse)
        self.version = version

    @property
    def canonical_names(self) -> FrozenSet[str]:
        return frozenset(self._table)

    def labels_for(self, canonical: str) -> FrozenSet[str]:
        return self._table.get(canonical, frozenset())

    def canonicalize(self, label: str) -> str:
        """Map a literal label to its canonical name; unknown labels pass through."""

        text = (label or "").strip()
        return self._reverse.get(text.casefold(), text)

    def matches(self, label: str, canonical: str) -> bool:
        return self.canonicalize(label) == canonical

    def extended(self, table: Mapping[str, Iterable[str]], *, version: Optional[str] = None) -> "EventTypeSynonyms":
        """Return a new table with extra labels (or new canonical names) added."""

        merged: Dict[str, set] = {name: set(labels) for name, labels in self._table.items()}
        for canonical, labels in table.items():
            merged.setdefault(canonical, set()).update(labels)
        return EventTypeSynonyms(merged, version=version or self.version)

    def __repr__(self) -> str:  # pragma: no cover - debugging helper
        return f"EventTypeSynonyms(version={self.version!r}, names={sorted(self._table)!r})"


DEFAULT_SYNONYMS = EventTypeSynonyms(DEFAULT_EVENT_TYPE_LABELS, version="2025.1")


@dataclass(frozen=True, slots=True)
class DateFilter:
    """Inclusive date window; an open ``end`` means "from ``start`` onwards"."""

    start: date
    end: Optional[date] = None

    def contains(self, day: date) -> bool:
        if day < self.start:
            return False
        return self.end is None or day <= self.end


def get_metric_total(metric: Optional[CampaignMetric], date_filter: Optional[DateFilter] = None) -> int:
    """Sum a metric's daily series, falling back to ``total_count`` when it has none."""

    if metric is None:
        return 0
    if not metric.daily_data:
        return metric.total_count or 0
    if date_filter is None:
        return sum(int(value or 0) for value in metric.daily_data.values())

    total = 0
    for key, value in metric.daily_data.items():
        if not is_iso_date(key):
            continue
        if date_filter.contains(date.fromisoformat(key)):
            total += int(value or 0)
    return total


def acceptance_rate(invites: float, connections: float, digits: int = 1) -> float:
    if not invites:
        return 0.0
    return round(connections / invites * 100, digits)


@dataclass(slots=True)
class CampaignTotals:
    invites: int = 0
    connections: int = 0
    messages: int = 0
    visits: int = 0
    likes: int = 0
    comments: int = 0
    follow_ups_1: int = 0
    follow_ups_2: int = 0
    follow_ups_3: int = 0
    positive_responses: int = 0
    meetings: int = 0
    proposals: int = 0
    sales: int = 0
    acceptance_rate: float = 0.0
    total_activities: int = 0
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    active_days: int = 0


class MetricsAggregator:
    """Computes dashboard totals over a list of metric series."""

    def __init__(self, synonyms: EventTypeSynonyms = DEFAULT_SYNONYMS) -> None:
        self.synonyms = synonyms

    def value_for(
        self,
        series: Iterable[CampaignMetric],
        canonical: str,
        date_filter: Optional[DateFilter] = None,
    ) -> int:
        """Sum every series whose label belongs to ``canonical``."""

        return sum(
            get_metric_total(metric, date_filter)
            for metric in series
            if self.synonyms.matches(metric.event_type, canonical)
        )

    def calculate_totals(
        self,
        series: Iterable[CampaignMetric],
        date_filter: Optional[DateFilter] = None,
    ) -> CampaignTotals:
        series = list(series)

        def value(canonical: str) -> int:
            return self.value_for(series, canonical, date_filter)

        invites = value(INVITES)
        connections = value(CONNECTIONS)
        follow_ups = [value(name) for name in FOLLOW_UP_EVENT_TYPES]
        # Messages are the follow-ups sent; the literal series is only a fallback.
        messages = sum(follow_ups) if sum(follow_ups) > 0 else value(MESSAGES)
        visits = value(VISITS)
        likes = value(LIKES)
        comments = value(COMMENTS)
        date_range = date_range_from_metrics(series)

        return CampaignTotals(
            invites=invites,
            connections=connections,
            messages=messages,
            visits=visits,
            likes=likes,
            comments=comments,
            follow_ups_1=follow_ups[0],
            follow_ups_2=follow_ups[1],
            follow_ups_3=follow_ups[2],
            positive_responses=value(POSITIVE_RESPONSES),
            meetings=value(MEETINGS),
            proposals=value(PROPOSALS),
            sales=value(SALES),
            acceptance_rate=acceptance_rate(invites, connections),
            # Connections are the counterpart's action, not the sending profile's.
            total_activities=invites + messages + visits + likes + comments,
            start_date=date_range.start_date,
            end_date=date_range.end_date,
            active_days=date_range.active_days,
        )

    def summarise_group(self, group: CampaignGroup) -> CampaignTotals:
        """Totals for one parsed campaign group, dated by its export columns."""

        totals = self.calculate_totals(group.metrics)
        totals.start_date = group.date_range.start_date
        totals.end_date = group.date_range.end_date
        totals.active_days = group.date_range.active_days
        return totals


def date_range_from_metrics(series: Iterable[CampaignMetric]) -> DateRange:
    """First/last date with non-zero activity across every series."""

    active = sorted(
        {
            key
            for metric in series
            for key, value in metric.daily_data.items()
            if is_iso_date(key) and (value or 0) > 0
        }
    )
    if not active:
        return DateRange()
    return DateRange(start_date=active[0], end_date=active[-1], active_days=len(active))


# --- Lead level metrics ---

_CAMPAIGN_SUFFIXES = (
    re.compile(r"\s+all\s*leads\.?csv$", re.IGNORECASE),
    re.compile(r"\s+all\s*leads$", re.IGNORECASE),
    re.compile(r"\.csv$", re.IGNORECASE),
)


def normalise_campaign_name(name: str) -> str:
    text = (name or "").lower()
    for pattern in _CAMPAIGN_SUFFIXES:
        text = pattern.sub("", text)
    return re.sub(r"\s+", " ", text).strip()


def lead_belongs_to_campaign(lead_campaign: str, campaign_name: str) -> bool:
    lead_key = normalise_campaign_name(lead_campaign)
    campaign_key = normalise_campaign_name(campaign_name)
    if not lead_key or not campaign_key:
        return False
    return lead_key == campaign_key or lead_key in campaign_key or campaign_key in lead_key


_POSITIVE_STATUSES = {
    LeadStatus.POSITIVE,
    LeadStatus.FOLLOW_UP,
    LeadStatus.RETOMAR_CONTATO,
    LeadStatus.EM_NEGOCIACAO,
}
_NEGATIVE_STATUSES = {LeadStatus.NEGATIVE, LeadStatus.SEM_INTERESSE, LeadStatus.SEM_FIT}


def classify_lead_response(lead: Lead) -> LeadStatus:
    """Reduce a lead to positive, negative or pending for reporting."""

    if lead.status in _POSITIVE_STATUSES:
        return LeadStatus.POSITIVE
    if lead.status in _NEGATIVE_STATUSES:
        return LeadStatus.NEGATIVE

    texts = [follow_up.comments for follow_up in lead.follow_ups]
    texts += [lead.comments, lead.status_details]
    for text in texts:
        response = classify_response(text)
        if response is ResponseType.POSITIVE:
            return LeadStatus.POSITIVE
        if response is ResponseType.NEGATIVE:
            return LeadStatus.NEGATIVE

    if lead.positive_response_date:
        return LeadStatus.POSITIVE
    if lead.negative_response_date:
        return LeadStatus.NEGATIVE
    return LeadStatus.PENDING


@dataclass(slots=True)
class LeadMetrics:
    total: int = 0
    positive_responses: int = 0
    negative_responses: int = 0
    meetings: int = 0
    proposals: int = 0
    sales: int = 0
    proposal_value: float = 0.0
    sale_value: float = 0.0
    by_campaign: Dict[str, int] = field(default_factory=dict)


def calculate_lead_metrics(leads: Iterable[Lead], date_filter: Optional[DateFilter] = None) -> LeadMetrics:
    """Funnel counts over leads, optionally restricted by connection/response date."""

    selected = [lead for lead in leads if date_filter is None or _lead_in_window(lead, date_filter)]
    positives = [lead for lead in selected if classify_lead_response(lead) is LeadStatus.POSITIVE]
    negatives = [lead for lead in selected if classify_lead_response(lead) is LeadStatus.NEGATIVE]

    by_campaign: Dict[str, int] = {}
    for lead in selected:
        by_campaign[lead.campaign] = by_campaign.get(lead.campaign, 0) + 1

    return LeadMetrics(
        total=len(selected),
        positive_responses=len(positives),
        negative_responses=len(negatives),
        meetings=sum(1 for lead in positives if lead.meeting_date),
        proposals=sum(1 for lead in positives if lead.proposal_date),
        sales=sum(1 for lead in positives if lead.sale_date),
        proposal_value=sum(lead.proposal_value or 0.0 for lead in positives),
        sale_value=sum(lead.sale_value or 0.0 for lead in positives),
        by_campaign=by_campaign,
    )


def _lead_in_window(lead: Lead, date_filter: DateFilter) -> bool:
    reference = lead.connection_date or lead.positive_response_date
    if not reference or not is_iso_date(reference):
        return False
    return date_filter.contains(date.fromisoformat(reference))


__all__ = [
    "CampaignTotals",
    "DEFAULT_SYNONYMS",
    "DateFilter",
    "EventTypeSynonyms",
    "LeadMetrics",
    "MetricsAggregator",
    "acceptance_rate",
    "calculate_lead_metrics",
    "classify_lead_response",
    "date_range_from_metrics",
    "get_metric_total",
    "lead_belongs_to_campaign",
    "normalise_campaign_name",
]
