"""Cell-level coercion helpers shared by the CSV parsers.

Every helper is "absent on failure": unparseable input yields ``None`` (or
``False`` for flags) and never raises, so a bad cell cannot fabricate
activity or abort a row.
"""
from __future__ import annotations

import re
import unicodedata
import warnings
from datetime import date
from enum import Enum
from typing import Any, Optional

import pandas as pd

_ISO_DATE = re.compile(r"^(\d{4})-(\d{2})-(\d{2})$")
_ISO_DATETIME = re.compile(r"^(\d{4}-\d{2}-\d{2})[ T]\d{2}:\d{2}(:\d{2}(\.\d+)?)?")
_DAY_FIRST_DATE = re.compile(r"^(\d{1,2})/(\d{1,2})/(\d{4})$")
_HAS_YEAR = re.compile(r"\d{4}")
_NUMBER_JUNK = re.compile(r"[^\d,.\-]")

_EMPTY_MARKERS = {"", "-", "n/a", "na", "none", "null", "nan", "never"}
_YES_VALUES = {"sim", "yes", "s", "y", "1", "true"}
_NEGATION_WORDS = {"nao", "no", "not", "nunca", "never", "nope"}


class ResponseType(str, Enum):
    POSITIVE = "positive"
    NEGATIVE = "negative"


def clean_text(value: Any) -> Optional[str]:
    """Return the stripped string form of ``value`` or ``None`` when blank."""

    if value is None:
        return None
    if isinstance(value, float) and pd.isna(value):
        return None
    text = str(value).strip()
    return text or None


def strip_accents(text: str) -> str:
    decomposed = unicodedata.normalize("NFD", text)
    return "".join(char for char in decomposed if not unicodedata.combining(char))


def normalise_header(name: Any) -> str:
    """Collapse a header to ``lower_snake`` without accents or punctuation.

    ``"Data de envio"`` becomes ``"data_de_envio"`` and ``"Teve FU?"`` becomes
    ``"teve_fu"``.
    """

    if name is None:
        return ""
    text = strip_accents(str(name)).lower()
    text = re.sub(r"[^a-z0-9]+", "_", text)
    return text.strip("_")


def is_yes(value: Any) -> bool:
    """Locale tolerant yes/no test used for send flags."""

    text = clean_text(value)
    if text is None:
        return False
    return text.lower() in _YES_VALUES


def parse_date(value: Any) -> Optional[str]:
    """Normalise a date cell to ``YYYY-MM-DD``.

    Accepts ``DD/MM/YYYY``, ``YYYY-MM-DD`` (optionally followed by a time) and
    falls back to a general calendar parse for values that mention a year.
    """

    text = clean_text(value)
    if text is None or text.lower() in _EMPTY_MARKERS:
        return None

    match = _DAY_FIRST_DATE.match(text)
    if match:
        day, month, year = (int(part) for part in match.groups())
        return _safe_iso(year, month, day)

    match = _ISO_DATE.match(text)
    if match:
        year, month, day = (int(part) for part in match.groups())
        return _safe_iso(year, month, day)

    match = _ISO_DATETIME.match(text)
    if match:
        return parse_date(match.group(1))

    if not _HAS_YEAR.search(text):
        return None

    with warnings.catch_warnings():
        warnings.simplefilter("ignore")
        parsed = pd.to_datetime(text, errors="coerce")
    if parsed is None or pd.isna(parsed):
        return None
    return parsed.date().isoformat()


def _safe_iso(year: int, month: int, day: int) -> Optional[str]:
    try:
        return date(year, month, day).isoformat()
    except ValueError:
        return None


def is_iso_date(value: Any) -> bool:
    return isinstance(value, str) and _ISO_DATE.match(value) is not None and parse_date(value) == value


def parse_number(value: Any) -> Optional[float]:
    """Parse a permissive numeric cell (``"1.500,00"``, ``"R$ 2,000.50"``, ``"12"``)."""

    if isinstance(value, bool):
        return None
    if isinstance(value, (int, float)):
        return None if pd.isna(value) else float(value)

    text = clean_text(value)
    if text is None:
        return None
    text = _NUMBER_JUNK.sub("", text)
    if not text or not any(char.isdigit() for char in text):
        return None

    if "," in text and "." in text:
        if text.rfind(",") > text.rfind("."):
            text = text.replace(".", "").replace(",", ".")
        else:
            text = text.replace(",", "")
    elif "," in text:
        head, _, tail = text.rpartition(",")
        if len(tail) == 3 and "," not in head and head.lstrip("-"):
            text = head + tail
        else:
            text = text.replace(",", ".")
    elif text.count(".") > 1:
        text = text.replace(".", "")

    try:
        return float(text)
    except ValueError:
        return None


def parse_int(value: Any) -> Optional[int]:
    number = parse_number(value)
    if number is None:
        return None
    return int(round(number))


def classify_response(value: Any) -> Optional[ResponseType]:
    """Classify a free-text reply cell as positive, negative or neither."""

    text = clean_text(value)
    if text is None:
        return None
    normalised = strip_accents(text).lower()

    if "negativ" in normalised or "sem interesse" in normalised:
        return ResponseType.NEGATIVE
    if "positiv" in normalised:
        return ResponseType.POSITIVE
    tokens = set(re.findall(r"[a-z]+", normalised))
    if tokens & _NEGATION_WORDS:
        return ResponseType.NEGATIVE
    if "interes" in normalised or is_yes(text):
        return ResponseType.POSITIVE
    return None


__all__ = [
    "ResponseType",
    "classify_response",
    "clean_text",
    "is_iso_date",
    "is_yes",
    "normalise_header",
    "parse_date",
    "parse_int",
    "parse_number",
    "strip_accents",
]
