"""Parser for combined per-lead exports with repeated follow-up column blocks.

Hybrid exports repeat the same header text for every follow-up block::

    Nome, LinkedIn, Invite, Data de envio, Aceito, Data de envio,
    FU1, Data de envio, Resposta, Data da resposta, FU2, Data de envio, ...

Columns therefore cannot be looked up by name. :func:`resolve_hybrid_columns`
walks the header row once, left to right, and assigns every column a
:class:`Role` from per-label occurrence counters:

* the 1st "Data de envio" is the invite date, the 2nd/3rd/4th belong to
  follow-ups 1/2/3;
* the Nth "Resposta" and the Nth "Data da resposta" belong to follow-up N.

The resulting ``{role: column index}`` table is then used for a single
decoding pass over the rows. Inserting or reordering a repeated column shifts
every later block, so the resolver rejects layouts whose counts cannot line
up instead of silently misreading them.
"""
from __future__ import annotations

import logging
import re
from collections import Counter, defaultdict
from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, List, NamedTuple, Optional, Sequence

from ..config import ImportSettings
from ..errors import MissingRequiredColumnsError, UnexpectedColumnLayoutError
from ..metrics import (
    CONNECTIONS,
    FOLLOW_UP_EVENT_TYPES,
    INVITES,
    MESSAGES,
    NEGATIVE_RESPONSES,
    POSITIVE_RESPONSES,
    acceptance_rate,
)
from ..models import (
    CampaignMetric,
    FileFormat,
    FollowUp,
    HybridParseResult,
    HybridSummary,
    Lead,
    LeadStatus,
    ParseReport,
)
from .loaders import RawTable
from .values import ResponseType, classify_response, clean_text, is_yes, normalise_header, parse_date

LOGGER = logging.getLogger(__name__)

MAX_FOLLOW_UPS = len(FOLLOW_UP_EVENT_TYPES)

_FOLLOW_UP_FLAG = re.compile(r"^(?:fu|follow_?up)_?(\d)$")
_INVITE_FLAGS = {"invite", "convite", "invite_sent", "convite_enviado"}
_ACCEPTED_FLAGS = {"aceito", "aceite", "accepted", "connection_accepted"}
_ACCEPTED_DATES = {"accepted_date", "accept_date", "date_accepted", "acceptance_date"}
_SEND_DATES = {"send_date", "sent_date", "date_sent"}
_RESPONSES = {"resposta", "response"}


class ColumnKind(Enum):
    NAME = "name"
    LINKEDIN = "linkedin"
    COMPANY = "company"
    POSITION = "position"
    SEND_FLAG = "send_flag"
    SEND_DATE = "send_date"
    ACCEPTED_FLAG = "accepted_flag"
    ACCEPTED_DATE = "accepted_date"
    RESPONSE = "response"
    RESPONSE_DATE = "response_date"


class Role(NamedTuple):
    """A column's meaning; ``block`` 0 is the invite, 1..3 the follow-ups."""

    kind: ColumnKind
    block: int = 0


_REPEATED_KINDS = (ColumnKind.SEND_DATE, ColumnKind.RESPONSE, ColumnKind.RESPONSE_DATE)


@dataclass(slots=True)
class HybridColumns:
    """Resolved ``{role: column index}`` table for one hybrid file."""

    indices: Dict[Role, int]
    follow_up_count: int
    occurrences: Dict[ColumnKind, int] = field(default_factory=dict)
    warnings: List[str] = field(default_factory=list)

    def index(self, kind: ColumnKind, block: int = 0) -> Optional[int]:
        return self.indices.get(Role(kind, block))

    def has(self, kind: ColumnKind, block: int = 0) -> bool:
        return Role(kind, block) in self.indices


def classify_header(header: str) -> Optional[Role]:
    """Return the role a header has on its own, before occurrence counting."""

    normalised = normalise_header(header)
    tokens = set(normalised.split("_"))

    if normalised in _ACCEPTED_DATES or ("data" in tokens and any(token.startswith("aceit") for token in tokens)):
        return Role(ColumnKind.ACCEPTED_DATE)
    if normalised in _SEND_DATES or {"data", "envio"} <= tokens:
        return Role(ColumnKind.SEND_DATE)
    if normalised == "response_date" or {"data", "resposta"} <= tokens:
        return Role(ColumnKind.RESPONSE_DATE)
    if normalised in _RESPONSES:
        return Role(ColumnKind.RESPONSE)
    if normalised in _INVITE_FLAGS:
        return Role(ColumnKind.SEND_FLAG, 0)
    match = _FOLLOW_UP_FLAG.match(normalised)
    if match:
        return Role(ColumnKind.SEND_FLAG, int(match.group(1)))
    if normalised in _ACCEPTED_FLAGS:
        return Role(ColumnKind.ACCEPTED_FLAG)
    if normalised in {"nome", "name"}:
        return Role(ColumnKind.NAME)
    if "linkedin" in normalised:
        return Role(ColumnKind.LINKEDIN)
    if normalised in {"empresa", "company"}:
        return Role(ColumnKind.COMPANY)
    if normalised in {"cargo", "position"}:
        return Role(ColumnKind.POSITION)
    return None


def resolve_hybrid_columns(
    headers: Sequence[str],
    *,
    follow_up_count: int = MAX_FOLLOW_UPS,
    file_name: Optional[str] = None,
) -> HybridColumns:
    """Assign every header a :class:`Role` by left-to-right occurrence order."""

    if not 1 <= follow_up_count <= MAX_FOLLOW_UPS:
        raise ValueError(f"follow_up_count must be between 1 and {MAX_FOLLOW_UPS}")

    counters: Counter = Counter()
    indices: Dict[Role, int] = {}

    for index, header in enumerate(headers):
        role = classify_header(header)
        if role is None:
            continue

        if role.kind is ColumnKind.SEND_DATE:
            # Occurrence 1 is the invite, occurrence N+1 is follow-up N.
            role = Role(role.kind, counters[role.kind])
            counters[role.kind] += 1
        elif role.kind in (ColumnKind.RESPONSE, ColumnKind.RESPONSE_DATE):
            counters[role.kind] += 1
            role = Role(role.kind, counters[role.kind])
        elif role.kind is ColumnKind.SEND_FLAG:
            if role.block > follow_up_count:
                raise UnexpectedColumnLayoutError(
                    f"Column '{header}' refers to follow-up {role.block}; at most {follow_up_count} are supported",
                    file_name=file_name,
                )
            if role in indices:
                raise UnexpectedColumnLayoutError(f"Send flag column '{header}' appears twice", file_name=file_name)
        elif role in indices:
            LOGGER.debug("Ignoring repeated column '%s' at position %s", header, index)
            continue

        indices[role] = index

    columns = HybridColumns(
        indices=indices,
        follow_up_count=follow_up_count,
        occurrences={kind: counters[kind] for kind in _REPEATED_KINDS},
    )
    _validate_layout(columns, file_name)
    return columns


def _validate_layout(columns: HybridColumns, file_name: Optional[str]) -> None:
    missing = [label for kind, label in ((ColumnKind.NAME, "Nome"), (ColumnKind.LINKEDIN, "LinkedIn")) if not columns.has(kind)]
    if missing:
        raise MissingRequiredColumnsError(missing, file_name=file_name)

    expected = columns.follow_up_count
    send_dates = columns.occurrences[ColumnKind.SEND_DATE]
    responses = columns.occurrences[ColumnKind.RESPONSE]
    response_dates = columns.occurrences[ColumnKind.RESPONSE_DATE]

    if send_dates > expected + 1:
        raise UnexpectedColumnLayoutError(
            f"Found {send_dates} 'Data de envio' columns; expected at most {expected + 1} (invite plus {expected} follow-ups)",
            file_name=file_name,
        )
    if responses > expected or response_dates > expected:
        raise UnexpectedColumnLayoutError(
            f"Found {responses} 'Resposta' and {response_dates} 'Data da resposta' columns; expected at most {expected}",
            file_name=file_name,
        )
    if responses and response_dates and responses != response_dates:
        raise UnexpectedColumnLayoutError(
            f"Found {responses} 'Resposta' columns but {response_dates} 'Data da resposta' columns; "
            "follow-up blocks cannot be aligned",
            file_name=file_name,
        )

    for block in range(1, expected + 1):
        if columns.has(ColumnKind.SEND_FLAG, block) and not columns.has(ColumnKind.SEND_DATE, block):
            message = f"FU{block} has a send flag but no matching 'Data de envio' column; its sends cannot be dated"
            LOGGER.warning("%s: %s", file_name or "<hybrid>", message)
            columns.warnings.append(message)


class _DailyCounter:
    def __init__(self) -> None:
        self._series: Dict[str, Counter] = defaultdict(Counter)

    def add(self, event_type: str, day: Optional[str]) -> None:
        if day:
            self._series[event_type][day] += 1

    def series(self, event_type: str) -> Dict[str, int]:
        return dict(sorted(self._series[event_type].items()))


def parse_hybrid_table(
    table: RawTable,
    settings: Optional[ImportSettings] = None,
    *,
    campaign_name: Optional[str] = None,
    profile_name: Optional[str] = None,
) -> HybridParseResult:
    """Decode a hybrid export into leads, eight daily series and a summary."""

    settings = settings or ImportSettings()
    campaign_name = campaign_name or settings.default_campaign_name
    profile_name = profile_name or settings.default_profile_name
    columns = resolve_hybrid_columns(
        table.headers,
        follow_up_count=settings.follow_up_count,
        file_name=table.file_name,
    )

    report = ParseReport(file_name=table.file_name, format=FileFormat.HYBRID)
    report.warnings.extend(columns.warnings)
    counter = _DailyCounter()
    summary = HybridSummary()
    leads: List[Lead] = []

    def cell(row: Sequence[str], kind: ColumnKind, block: int = 0) -> str:
        return table.cell(row, columns.index(kind, block))

    for row_number, row in enumerate(table.rows, start=2):
        report.rows_read += 1
        name = clean_text(cell(row, ColumnKind.NAME))
        if not name:
            LOGGER.debug("Row %s of %s has no name, skipping", row_number, table.file_name)
            report.skip(f"row {row_number}: missing name")
            continue

        invite_sent = is_yes(cell(row, ColumnKind.SEND_FLAG, 0))
        invite_date = parse_date(cell(row, ColumnKind.SEND_DATE, 0))
        accepted = is_yes(cell(row, ColumnKind.ACCEPTED_FLAG))
        accepted_date = parse_date(cell(row, ColumnKind.ACCEPTED_DATE))

        if invite_sent:
            summary.invites_sent += 1
            counter.add(INVITES, invite_date)
        if accepted:
            summary.connections_accepted += 1
            counter.add(CONNECTIONS, accepted_date)

        follow_ups: List[FollowUp] = []
        overall: Optional[ResponseType] = None
        overall_date: Optional[str] = None
        for block in range(1, columns.follow_up_count + 1):
            sent = is_yes(cell(row, ColumnKind.SEND_FLAG, block))
            send_date = parse_date(cell(row, ColumnKind.SEND_DATE, block)) if sent else None
            response_text = clean_text(cell(row, ColumnKind.RESPONSE, block))
            response = classify_response(response_text)

            if sent:
                counter.add(FOLLOW_UP_EVENT_TYPES[block - 1], send_date)
            # Later blocks override earlier ones.
            if response is not None:
                overall = response
                overall_date = parse_date(cell(row, ColumnKind.RESPONSE_DATE, block))

            follow_up = FollowUp(number=block, date=send_date, comments=response_text)
            if not follow_up.is_empty():
                follow_ups.append(follow_up)

        status = LeadStatus.PENDING
        if overall is ResponseType.POSITIVE:
            status = LeadStatus.POSITIVE
            summary.positive_responses += 1
            counter.add(POSITIVE_RESPONSES, overall_date)
        elif overall is ResponseType.NEGATIVE:
            status = LeadStatus.NEGATIVE
            summary.negative_responses += 1
            counter.add(NEGATIVE_RESPONSES, overall_date)

        leads.append(
            Lead(
                name=name,
                campaign=campaign_name,
                linkedin=clean_text(cell(row, ColumnKind.LINKEDIN)),
                company=clean_text(cell(row, ColumnKind.COMPANY)),
                position=clean_text(cell(row, ColumnKind.POSITION)),
                status=status,
                source=settings.lead_source,
                connection_date=accepted_date,
                positive_response_date=overall_date if status is LeadStatus.POSITIVE else None,
                negative_response_date=overall_date if status is LeadStatus.NEGATIVE else None,
                follow_ups=follow_ups,
                invite_sent=invite_sent,
                invite_send_date=invite_date,
                connection_accepted=accepted,
            )
        )

    follow_up_series = [counter.series(event_type) for event_type in FOLLOW_UP_EVENT_TYPES]
    messages: Dict[str, int] = {}
    for series in follow_up_series:
        for day, value in series.items():
            messages[day] = messages.get(day, 0) + value

    daily = {
        INVITES: counter.series(INVITES),
        CONNECTIONS: counter.series(CONNECTIONS),
        MESSAGES: dict(sorted(messages.items())),
        FOLLOW_UP_EVENT_TYPES[0]: follow_up_series[0],
        FOLLOW_UP_EVENT_TYPES[1]: follow_up_series[1],
        FOLLOW_UP_EVENT_TYPES[2]: follow_up_series[2],
        POSITIVE_RESPONSES: counter.series(POSITIVE_RESPONSES),
        NEGATIVE_RESPONSES: counter.series(NEGATIVE_RESPONSES),
    }
    metrics = [
        CampaignMetric(
            campaign_name=campaign_name,
            event_type=event_type,
            profile_name=profile_name,
            total_count=sum(series.values()),
            daily_data=series,
        )
        for event_type, series in daily.items()
    ]

    summary.total_leads = len(leads)
    summary.follow_ups_1_sent = sum(follow_up_series[0].values())
    summary.follow_ups_2_sent = sum(follow_up_series[1].values())
    summary.follow_ups_3_sent = sum(follow_up_series[2].values())
    summary.acceptance_rate = acceptance_rate(summary.invites_sent, summary.connections_accepted, digits=2)

    LOGGER.info(
        "Parsed %s hybrid leads from %s (%s invites, %s accepted, %.2f%% acceptance)",
        summary.total_leads,
        table.file_name,
        summary.invites_sent,
        summary.connections_accepted,
        summary.acceptance_rate,
    )
    return HybridParseResult(leads=leads, metrics=metrics, summary=summary, report=report)


__all__ = [
    "ColumnKind",
    "HybridColumns",
    "Role",
    "classify_header",
    "parse_hybrid_table",
    "resolve_hybrid_columns",
]
