"""Canonical data models produced by the import pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum, IntEnum
from typing import Dict, List, Optional


# --- Detection ---

class FileFormat(str, Enum):
    """Layouts the format detector can recognise."""

    CAMPAIGN_INPUT = "campaign-input"
    LEADS = "leads"
    HYBRID = "hybrid"
    UNRECOGNIZED = "unrecognized"


class Confidence(IntEnum):
    NONE = 0
    LOW = 1
    MEDIUM = 2
    HIGH = 3


@dataclass(frozen=True, slots=True)
class DetectionResult:
    type: FileFormat
    confidence: Confidence


# --- Campaign metrics ---

@dataclass(slots=True)
class CampaignMetric:
    """One event type's counts for a campaign and sending profile."""

    campaign_name: str
    event_type: str
    profile_name: str
    total_count: int = 0
    daily_data: Dict[str, int] = field(default_factory=dict)

    @property
    def total(self) -> int:
        """Return the daily sum, or ``total_count`` when there is no daily data."""

        if self.daily_data:
            return sum(self.daily_data.values())
        return self.total_count


@dataclass(slots=True)
class DateRange:
    start_date: Optional[str] = None
    end_date: Optional[str] = None
    active_days: int = 0


@dataclass(slots=True)
class CampaignGroup:
    """Metrics of a single (profile, campaign) pair from a campaign export."""

    profile_name: str
    campaign_name: str
    metrics: List[CampaignMetric] = field(default_factory=list)
    date_range: DateRange = field(default_factory=DateRange)

    def metric(self, event_type: str) -> Optional[CampaignMetric]:
        for metric in self.metrics:
            if metric.event_type == event_type:
                return metric
        return None


# --- Leads ---

class LeadStatus(str, Enum):
    PENDING = "pending"
    POSITIVE = "positive"
    NEGATIVE = "negative"
    FOLLOW_UP = "follow-up"
    RETOMAR_CONTATO = "retomar-contato"
    EM_NEGOCIACAO = "em-negociacao"
    SEM_INTERESSE = "sem-interesse"
    SEM_FIT = "sem-fit"


@dataclass(slots=True)
class FollowUp:
    number: int
    date: Optional[str] = None
    comments: Optional[str] = None

    def is_empty(self) -> bool:
        return not self.date and not self.comments


@dataclass(slots=True)
class Lead:
    """Normalised lead record handed to the storage boundary."""

    name: str
    campaign: str
    id: Optional[str] = None
    linkedin: Optional[str] = None
    company: Optional[str] = None
    position: Optional[str] = None
    status: LeadStatus = LeadStatus.PENDING
    source: Optional[str] = None

    connection_date: Optional[str] = None
    sequence_date: Optional[str] = None
    positive_response_date: Optional[str] = None
    negative_response_date: Optional[str] = None
    follow_ups: List[FollowUp] = field(default_factory=list)

    meeting_schedule_date: Optional[str] = None
    meeting_date: Optional[str] = None
    proposal_date: Optional[str] = None
    proposal_value: Optional[float] = None
    sale_date: Optional[str] = None
    sale_value: Optional[float] = None
    observations: Optional[str] = None

    # Positive sheet extras
    transfer_date: Optional[str] = None
    status_details: Optional[str] = None
    comments: Optional[str] = None
    profile: Optional[str] = None
    classification: Optional[str] = None
    attended_webinar: bool = False
    whatsapp: Optional[str] = None
    stand_day: Optional[str] = None
    pavilion: Optional[str] = None
    stand: Optional[str] = None

    # Negative sheet extras
    had_follow_up: bool = False
    follow_up_reason: Optional[str] = None

    # Hybrid export extras
    invite_sent: Optional[bool] = None
    invite_send_date: Optional[str] = None
    connection_accepted: Optional[bool] = None

    def follow_up(self, number: int) -> Optional[FollowUp]:
        for follow_up in self.follow_ups:
            if follow_up.number == number:
                return follow_up
        return None


# --- Parse results ---

@dataclass(slots=True)
class ParseReport:
    """Row-level diagnostics collected while parsing one file."""

    file_name: str
    format: FileFormat
    rows_read: int = 0
    skipped_rows: int = 0
    excluded_rows: int = 0
    warnings: List[str] = field(default_factory=list)

    def skip(self, reason: str) -> None:
        self.skipped_rows += 1
        self.warnings.append(reason)


@dataclass(slots=True)
class CampaignParseResult:
    groups: List[CampaignGroup]
    report: ParseReport

    @property
    def metrics(self) -> List[CampaignMetric]:
        return [metric for group in self.groups for metric in group.metrics]


@dataclass(slots=True)
class LeadsParseResult:
    leads: List[Lead]
    branch: LeadStatus
    report: ParseReport


@dataclass(slots=True)
class HybridSummary:
    total_leads: int = 0
    invites_sent: int = 0
    connections_accepted: int = 0
    follow_ups_1_sent: int = 0
    follow_ups_2_sent: int = 0
    follow_ups_3_sent: int = 0
    positive_responses: int = 0
    negative_responses: int = 0
    acceptance_rate: float = 0.0


@dataclass(slots=True)
class HybridParseResult:
    leads: List[Lead]
    metrics: List[CampaignMetric]
    summary: HybridSummary
    report: ParseReport


@dataclass(slots=True)
class ParsedFile:
    """Uniform view over whichever parser handled a file."""

    file_name: str
    detection: DetectionResult
    report: ParseReport
    leads: List[Lead] = field(default_factory=list)
    metrics: List[CampaignMetric] = field(default_factory=list)
    groups: List[CampaignGroup] = field(default_factory=list)
    summary: Optional[HybridSummary] = None
    fingerprint: Optional[str] = None

    @property
    def format(self) -> FileFormat:
        return self.detection.type


__all__ = [
    "CampaignGroup",
    "CampaignMetric",
    "CampaignParseResult",
    "Confidence",
    "DateRange",
    "DetectionResult",
    "FileFormat",
    "FollowUp",
    "HybridParseResult",
    "HybridSummary",
    "Lead",
    "LeadStatus",
    "LeadsParseResult",
    "ParseReport",
    "ParsedFile",
]
