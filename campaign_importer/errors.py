"""Exceptions raised while importing campaign export files."""
from __future__ import annotations

from typing import Iterable, Optional, Sequence


class CampaignImportError(Exception):
    """Base class for file-level import failures.

    Every error carries the name of the file that produced it so callers can
    report failures per file and keep processing the rest of a batch.
    """

    def __init__(self, message: str, *, file_name: Optional[str] = None) -> None:
        super().__init__(message)
        self.message = message
        self.file_name = file_name

    def __str__(self) -> str:
        if self.file_name:
            return f"{self.file_name}: {self.message}"
        return self.message


class MissingRequiredColumnsError(CampaignImportError):
    """Raised when a detected file lacks columns its parser cannot do without."""

    def __init__(self, missing: Iterable[str], *, file_name: Optional[str] = None) -> None:
        self.missing = list(missing)
        super().__init__(f"Missing required columns: {', '.join(self.missing)}", file_name=file_name)


class UnrecognizedFormatError(CampaignImportError):
    """Raised when the header row matches none of the known export layouts."""

    def __init__(self, headers: Sequence[str], *, file_name: Optional[str] = None) -> None:
        self.headers = list(headers)
        super().__init__(
            "Unrecognized file format; check that the file has the expected columns",
            file_name=file_name,
        )


class MalformedCsvError(CampaignImportError):
    """Raised when the file cannot be tokenised into a header row and records."""


class UnexpectedColumnLayoutError(CampaignImportError):
    """Raised when repeated follow-up column blocks do not line up."""


class UnsupportedFileTypeError(CampaignImportError, ValueError):
    """Raised when an unsupported file extension is passed to the loader."""


__all__ = [
    "CampaignImportError",
    "MalformedCsvError",
    "MissingRequiredColumnsError",
    "UnexpectedColumnLayoutError",
    "UnrecognizedFormatError",
    "UnsupportedFileTypeError",
]
