"""Classify a header row into one of the supported export layouts."""
from __future__ import annotations

import logging
import re
from typing import Any, Iterable, List

from ..models import Confidence, DetectionResult, FileFormat
from .values import normalise_header

LOGGER = logging.getLogger(__name__)

CAMPAIGN_INPUT_HEADERS = ("campaign_name", "event_type", "profile_name")
NAME_HEADERS = {"nome", "name"}
CAMPAIGN_HEADERS = {"campanha", "campaign"}
POSITIVE_RESPONSE_HEADERS = {"data_resposta_positiva", "positive_response_date"}
NEGATIVE_RESPONSE_HEADERS = {"data_resposta_negativa", "negative_response_date"}

_FOLLOW_UP_MARKER = re.compile(r"^(fu|follow_?up)_?\d$")


def detect_format(headers: Iterable[Any]) -> DetectionResult:
    """Return the layout of a file given its header row.

    The check order matters: hybrid exports also carry Nome/LinkedIn, so their
    send-flag markers are tested before the plain leads layout.
    """

    try:
        normalised = _normalise_all(headers)
    except TypeError:
        LOGGER.debug("Header row is not iterable: %r", headers)
        return DetectionResult(FileFormat.UNRECOGNIZED, Confidence.NONE)

    present = set(normalised)

    if all(header in present for header in CAMPAIGN_INPUT_HEADERS):
        return DetectionResult(FileFormat.CAMPAIGN_INPUT, Confidence.HIGH)

    has_name = bool(present & NAME_HEADERS)
    has_linkedin = any("linkedin" in header for header in normalised)

    if has_name and has_linkedin and any(is_hybrid_marker(header) for header in normalised):
        return DetectionResult(FileFormat.HYBRID, Confidence.HIGH)

    has_campaign = bool(present & CAMPAIGN_HEADERS)
    has_response_date = bool(present & (POSITIVE_RESPONSE_HEADERS | NEGATIVE_RESPONSE_HEADERS))
    if has_name and has_linkedin and has_campaign and has_response_date:
        return DetectionResult(FileFormat.LEADS, Confidence.MEDIUM)

    return DetectionResult(FileFormat.UNRECOGNIZED, Confidence.NONE)


def is_hybrid_marker(header: str) -> bool:
    """Return whether a normalised header is a hybrid send-flag column."""

    if header in {"convite", "aceito", "accepted"}:
        return True
    if "invite" in header:
        return True
    return _FOLLOW_UP_MARKER.match(header) is not None


def _normalise_all(headers: Iterable[Any]) -> List[str]:
    if headers is None or isinstance(headers, (str, bytes)):
        return []
    return [normalise_header(header) for header in headers if header is not None]


__all__ = ["detect_format", "is_hybrid_marker"]
