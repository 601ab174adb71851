"""Parser for one-row-per-lead positive/negative response sheets."""
from __future__ import annotations

import logging
import re
from typing import Callable, Dict, List, Mapping, Optional, Sequence

from ..config import ImportSettings
from ..errors import MissingRequiredColumnsError
from ..models import FileFormat, FollowUp, Lead, LeadStatus, LeadsParseResult, ParseReport
from .loaders import RawTable
from .values import clean_text, normalise_header, parse_date, parse_number, strip_accents

LOGGER = logging.getLogger(__name__)

# Lead field -> accepted column labels, compared after normalise_header.
_COLUMN_SYNONYMS: Mapping[str, Sequence[str]] = {
    "name": ("Nome", "Name"),
    "first_name": ("First Name",),
    "last_name": ("Last Name",),
    "campaign": ("Campanha", "Campaign"),
    "linkedin": ("LinkedIn", "linkedin_url"),
    "position": ("Cargo", "Position"),
    "company": ("Empresa", "Company"),
    "connection_date": ("Connected At",),
    "messages": ("Messages",),
    "sequence_date": ("Sequence Generated At",),
    "positive_response_date": ("Data Resposta Positiva", "Positive Response Date"),
    "negative_response_date": ("Data Resposta Negativa", "Negative Response Date"),
    "transfer_date": ("Data Repasse", "Transfer Date"),
    "status_details": ("Status",),
    "comments": ("Comentários", "Comments"),
    "follow_up_1_date": ("Data FU 1", "Follow-Up 1 Date"),
    "follow_up_1_comments": ("Comentarios FU1", "Follow-Up 1 Comments"),
    "follow_up_2_date": ("Data FU 2", "Follow-Up 2 Date"),
    "follow_up_2_comments": ("Comentarios FU2", "Follow-Up 2 Comments"),
    "follow_up_3_date": ("Data FU 3", "Follow-Up 3 Date"),
    "follow_up_3_comments": ("Comentarios FU3", "Follow-Up 3 Comments"),
    "follow_up_4_date": ("Data FU 4", "Follow-Up 4 Date"),
    "follow_up_4_comments": ("Comentarios FU4", "Follow-Up 4 Comments"),
    "observations": ("Observações", "Observations"),
    "meeting_schedule_date": ("Data de agendamento da reunião", "Meeting Schedule Date"),
    "meeting_date": ("Data da Reunião", "Meeting Date"),
    "proposal_date": ("Data Proposta", "Proposal Date"),
    "proposal_value": ("Valor Proposta", "Proposal Value"),
    "sale_date": ("Data Venda", "Sale Date"),
    "sale_value": ("Valor Venda", "Sale Value"),
    "profile": ("Perfil", "Profile"),
    "classification": ("Classificação", "Classification"),
    "whatsapp": ("WhatsApp",),
    "stand_day": ("Dia do Stand", "Stand Day"),
    "pavilion": ("Pavilhão", "Pavilion"),
    "stand": ("Stand",),
    "follow_up_reason": ("Porque?", "Follow-Up Reason"),
}

# Flag columns and the single literal that means "true" for each.
_FLAG_COLUMNS: Mapping[str, Sequence[tuple]] = {
    "attended_webinar": (("Participou do Webinar", "Sim"), ("Participou do Webnar", "Sim"), ("Attended Webinar", "Yes")),
    "had_follow_up": (("Teve FU?", "Sim"), ("Had Follow-Up", "Yes")),
}

_CONNECTED_FRAGMENT = re.compile(r"Connected:\s*(.+?)\s*$", re.IGNORECASE)
_PIPELINE_STATUSES = {status.value: status for status in LeadStatus}


def parse_leads_table(
    table: RawTable,
    settings: Optional[ImportSettings] = None,
) -> LeadsParseResult:
    """Turn a positive or negative leads sheet into :class:`Lead` records."""

    settings = settings or ImportSettings()
    columns = _resolve_columns(table.headers)
    branch = _choose_branch(table, columns)

    report = ParseReport(file_name=table.file_name, format=FileFormat.LEADS)
    leads: List[Lead] = []

    for row_number, row in enumerate(table.rows, start=2):
        report.rows_read += 1
        text = _row_reader(table, row, columns)

        name = text("name")
        if not name:
            first, last = text("first_name"), text("last_name")
            name = " ".join(part for part in (first, last) if part) or None
        campaign = text("campaign")
        if not name or not campaign:
            LOGGER.debug("Row %s of %s is missing name or campaign", row_number, table.file_name)
            report.skip(f"row {row_number}: missing name or campaign")
            continue

        lead = Lead(
            name=name,
            campaign=campaign,
            linkedin=text("linkedin"),
            company=text("company"),
            position=text("position"),
            status=branch,
            source=settings.lead_source,
            connection_date=_connection_date(text),
            sequence_date=parse_date(text("sequence_date")),
            observations=text("observations"),
        )

        if branch is LeadStatus.POSITIVE:
            _fill_positive(lead, text, table, row, columns)
        else:
            lead.negative_response_date = parse_date(text("negative_response_date"))
            lead.had_follow_up = _flag(table, row, columns, "had_follow_up")
            lead.follow_up_reason = text("follow_up_reason")

        leads.append(lead)

    LOGGER.info(
        "Parsed %s %s leads from %s; skipped %s rows",
        len(leads),
        branch.value,
        table.file_name,
        report.skipped_rows,
    )
    return LeadsParseResult(leads=leads, branch=branch, report=report)


def _fill_positive(lead: Lead, text: Callable[[str], Optional[str]], table: RawTable, row, columns) -> None:
    lead.positive_response_date = parse_date(text("positive_response_date"))
    lead.transfer_date = parse_date(text("transfer_date"))
    lead.status_details = text("status_details")
    lead.status = _pipeline_status(lead.status_details) or LeadStatus.POSITIVE
    lead.comments = text("comments")
    for number in range(1, 5):
        follow_up = FollowUp(
            number=number,
            date=parse_date(text(f"follow_up_{number}_date")),
            comments=text(f"follow_up_{number}_comments"),
        )
        if not follow_up.is_empty():
            lead.follow_ups.append(follow_up)
    lead.meeting_schedule_date = parse_date(text("meeting_schedule_date"))
    lead.meeting_date = parse_date(text("meeting_date"))
    lead.proposal_date = parse_date(text("proposal_date"))
    lead.proposal_value = parse_number(text("proposal_value"))
    lead.sale_date = parse_date(text("sale_date"))
    lead.sale_value = parse_number(text("sale_value"))
    lead.profile = text("profile")
    lead.classification = text("classification")
    lead.attended_webinar = _flag(table, row, columns, "attended_webinar")
    lead.whatsapp = text("whatsapp")
    lead.stand_day = text("stand_day")
    lead.pavilion = text("pavilion")
    lead.stand = text("stand")


def _resolve_columns(headers: Sequence[str]) -> Dict[str, int]:
    first_index: Dict[str, int] = {}
    for index, header in enumerate(headers):
        first_index.setdefault(normalise_header(header), index)

    columns: Dict[str, int] = {}
    for field, labels in _COLUMN_SYNONYMS.items():
        for label in labels:
            index = first_index.get(normalise_header(label))
            if index is not None:
                columns[field] = index
                break
    for field, options in _FLAG_COLUMNS.items():
        for position, (label, _) in enumerate(options):
            index = first_index.get(normalise_header(label))
            if index is not None:
                columns[f"{field}#{position}"] = index
    return columns


def _choose_branch(table: RawTable, columns: Mapping[str, int]) -> LeadStatus:
    missing: List[str] = []
    if "name" not in columns and "first_name" not in columns:
        missing.append("Nome")
    if "campaign" not in columns:
        missing.append("Campanha")
    if missing:
        raise MissingRequiredColumnsError(missing, file_name=table.file_name)
    if "positive_response_date" in columns:
        return LeadStatus.POSITIVE
    if "negative_response_date" in columns:
        return LeadStatus.NEGATIVE
    raise MissingRequiredColumnsError(
        ["Data Resposta Positiva or Data Resposta Negativa"],
        file_name=table.file_name,
    )


def _row_reader(table: RawTable, row: Sequence[str], columns: Mapping[str, int]) -> Callable[[str], Optional[str]]:
    def text(field: str) -> Optional[str]:
        return clean_text(table.cell(row, columns.get(field)))

    return text


def _flag(table: RawTable, row: Sequence[str], columns: Mapping[str, int], field: str) -> bool:
    for position, (_, literal) in enumerate(_FLAG_COLUMNS[field]):
        index = columns.get(f"{field}#{position}")
        if index is not None and table.cell(row, index) == literal:
            return True
    return False


def _connection_date(text: Callable[[str], Optional[str]]) -> Optional[str]:
    connected = parse_date(text("connection_date"))
    if connected:
        return connected
    messages = text("messages")
    if messages:
        match = _CONNECTED_FRAGMENT.search(messages)
        if match:
            return parse_date(match.group(1))
    return None


def _pipeline_status(value: Optional[str]) -> Optional[LeadStatus]:
    if not value:
        return None
    slug = re.sub(r"[^a-z]+", "-", strip_accents(value).lower()).strip("-")
    status = _PIPELINE_STATUSES.get(slug)
    if status in {LeadStatus.PENDING, LeadStatus.NEGATIVE}:
        return None
    return status


__all__ = ["parse_leads_table"]
