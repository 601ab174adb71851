"""Detect a file's layout and dispatch it to the matching parser."""
from __future__ import annotations

import logging
from pathlib import Path
from typing import Optional

from ..config import ImportSettings
from ..errors import UnrecognizedFormatError
from ..models import FileFormat, ParsedFile
from .campaign_parser import parse_campaign_table
from .detector import detect_format
from .hybrid_parser import parse_hybrid_table
from .leads_parser import parse_leads_table
from .loaders import PathLike, RawTable, load_table, read_csv_text

LOGGER = logging.getLogger(__name__)


def parse_table(
    table: RawTable,
    settings: Optional[ImportSettings] = None,
    *,
    campaign_name: Optional[str] = None,
    profile_name: Optional[str] = None,
) -> ParsedFile:
    """Parse an already loaded table into a :class:`ParsedFile`.

    ``campaign_name`` and ``profile_name`` only apply to hybrid exports, which
    carry neither in their columns.
    """

    settings = settings or ImportSettings()
    detection = detect_format(table.headers)
    LOGGER.debug("Detected %s (%s) for %s", detection.type.value, detection.confidence.name, table.file_name)

    if detection.type is FileFormat.CAMPAIGN_INPUT:
        campaign = parse_campaign_table(table, settings)
        parsed = ParsedFile(
            file_name=table.file_name,
            detection=detection,
            report=campaign.report,
            metrics=campaign.metrics,
            groups=campaign.groups,
        )
    elif detection.type is FileFormat.LEADS:
        leads = parse_leads_table(table, settings)
        parsed = ParsedFile(
            file_name=table.file_name,
            detection=detection,
            report=leads.report,
            leads=leads.leads,
        )
    elif detection.type is FileFormat.HYBRID:
        hybrid = parse_hybrid_table(table, settings, campaign_name=campaign_name, profile_name=profile_name)
        parsed = ParsedFile(
            file_name=table.file_name,
            detection=detection,
            report=hybrid.report,
            leads=hybrid.leads,
            metrics=hybrid.metrics,
            summary=hybrid.summary,
        )
    else:
        raise UnrecognizedFormatError(table.headers, file_name=table.file_name)

    parsed.fingerprint = table.fingerprint()
    return parsed


def parse_text(
    text: str,
    file_name: str,
    settings: Optional[ImportSettings] = None,
    *,
    campaign_name: Optional[str] = None,
    profile_name: Optional[str] = None,
) -> ParsedFile:
    """Parse CSV text that has already been read into memory."""

    table = read_csv_text(text, file_name=file_name)
    return parse_table(table, settings, campaign_name=campaign_name, profile_name=profile_name)


def parse_path(
    path: PathLike,
    settings: Optional[ImportSettings] = None,
    *,
    campaign_name: Optional[str] = None,
    profile_name: Optional[str] = None,
) -> ParsedFile:
    """Load and parse a CSV or Excel file from disk."""

    table = load_table(Path(path))
    return parse_table(table, settings, campaign_name=campaign_name, profile_name=profile_name)


__all__ = ["parse_path", "parse_table", "parse_text"]
