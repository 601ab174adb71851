"""Import LinkedIn prospecting exports into canonical leads and campaign metrics."""

from . import models  # noqa: F401
from .config import ImportSettings, load_configuration, settings_from_config
from .errors import (
    CampaignImportError,
    MalformedCsvError,
    MissingRequiredColumnsError,
    UnexpectedColumnLayoutError,
    UnrecognizedFormatError,
    UnsupportedFileTypeError,
)
from .ingestion.detector import detect_format
from .ingestion.pipeline import parse_path, parse_table, parse_text
from .merge import InMemoryCampaignStore, ReimportPolicy
from .metrics import DEFAULT_SYNONYMS, EventTypeSynonyms, MetricsAggregator
from .models import CampaignMetric, FileFormat, Lead, LeadStatus, ParsedFile
from .orchestrator import ImportOrchestrator

__all__ = [
    "CampaignImportError",
    "CampaignMetric",
    "DEFAULT_SYNONYMS",
    "EventTypeSynonyms",
    "FileFormat",
    "ImportOrchestrator",
    "ImportSettings",
    "InMemoryCampaignStore",
    "Lead",
    "LeadStatus",
    "MalformedCsvError",
    "MetricsAggregator",
    "MissingRequiredColumnsError",
    "ParsedFile",
    "ReimportPolicy",
    "UnexpectedColumnLayoutError",
    "UnrecognizedFormatError",
    "UnsupportedFileTypeError",
    "detect_format",
    "load_configuration",
    "parse_path",
    "parse_table",
    "parse_text",
    "settings_from_config",
    "ingestion",
    "orchestrator",
]
