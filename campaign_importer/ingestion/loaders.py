"""Utilities for loading campaign exports into a raw header/row grid."""
from __future__ import annotations

import hashlib
import io
import re
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any, List, MutableMapping, Optional, Sequence, Union

import pandas as pd

from ..errors import MalformedCsvError, UnsupportedFileTypeError

PathLike = Union[str, Path]

_TEXT_SUFFIXES = {".csv", ".tsv", ".txt"}
_EXCEL_SUFFIXES = {".xls", ".xlsx", ".xlsm", ".xlsb"}
_EXCEL_DATE_HEADER = re.compile(r"^(\d{4}-\d{2}-\d{2}) 00:00:00$")


@dataclass(slots=True)
class RawTable:
    """Header row and records of one file, with duplicate headers preserved.

    Columns are addressed by index because hybrid exports repeat header names
    verbatim across follow-up blocks.
    """

    file_name: str
    headers: List[str]
    rows: List[List[str]] = field(default_factory=list)

    def cell(self, row: Sequence[str], index: Optional[int]) -> str:
        if index is None or index >= len(row):
            return ""
        return row[index]

    def fingerprint(self) -> str:
        """Return a content hash usable as an import batch id."""

        digest = hashlib.sha256()
        for record in [self.headers, *self.rows]:
            digest.update("\x1f".join(record).encode("utf-8"))
            digest.update(b"\x1e")
        return digest.hexdigest()


def read_csv_text(
    text: str,
    *,
    file_name: str = "<memory>",
    delimiter: Optional[str] = None,
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> RawTable:
    """Tokenise CSV text (optional BOM, RFC 4180 quoting) into a :class:`RawTable`.

    Parameters
    ----------
    text:
        Decoded file contents. The first non-blank line is the header row.
    file_name:
        Name reported on errors and in parse reports.
    delimiter:
        Field separator. Sniffed from the header line when omitted so that
        semicolon separated exports from spreadsheet tools also load.
    loader_kwargs:
        Extra keyword arguments forwarded to :func:`pandas.read_csv`.
    """

    loader_kwargs = dict(loader_kwargs or {})
    if text.startswith("\ufeff"):
        text = text[1:]
    if not text.strip():
        raise MalformedCsvError("File is empty; a header row is required", file_name=file_name)

    loader_kwargs.setdefault("sep", delimiter or _sniff_delimiter(text))
    try:
        frame = pd.read_csv(
            io.StringIO(text),
            header=None,
            dtype=str,
            keep_default_na=False,
            skip_blank_lines=True,
            **loader_kwargs,
        )
    except (pd.errors.ParserError, pd.errors.EmptyDataError, ValueError) as exc:
        raise MalformedCsvError(f"Could not parse CSV: {exc}", file_name=file_name) from exc

    return _frame_to_table(frame, file_name)


def load_table(
    path: PathLike,
    *,
    sheet_name: Union[str, int] = 0,
    encoding: str = "utf-8-sig",
    loader_kwargs: Optional[MutableMapping[str, Any]] = None,
) -> RawTable:
    """Load a CSV/TSV file or an Excel worksheet from disk."""

    loader_kwargs = dict(loader_kwargs or {})
    path_obj = Path(path)
    suffix = path_obj.suffix.lower()

    if suffix in _TEXT_SUFFIXES:
        try:
            text = path_obj.read_bytes().decode(encoding)
        except UnicodeDecodeError as exc:
            raise MalformedCsvError(f"File is not valid {encoding} text", file_name=path_obj.name) from exc
        delimiter = "\t" if suffix == ".tsv" else None
        return read_csv_text(text, file_name=path_obj.name, delimiter=delimiter, loader_kwargs=loader_kwargs)

    if suffix in _EXCEL_SUFFIXES:
        engine = loader_kwargs.pop("engine", None) or "openpyxl"
        try:
            frame = pd.read_excel(
                path_obj,
                sheet_name=sheet_name,
                header=None,
                dtype=str,
                engine=engine,
                **loader_kwargs,
            )
        except ValueError as exc:
            raise MalformedCsvError(f"Could not read worksheet: {exc}", file_name=path_obj.name) from exc
        return _frame_to_table(frame.fillna(""), path_obj.name)

    raise UnsupportedFileTypeError(f"Unsupported file extension: {path_obj.suffix}", file_name=path_obj.name)


def _sniff_delimiter(text: str) -> str:
    header_line = text.lstrip().splitlines()[0]
    if header_line.count(";") > header_line.count(","):
        return ";"
    return ","


def _frame_to_table(frame: pd.DataFrame, file_name: str) -> RawTable:
    frame = frame.fillna("")
    records = [[_clean_cell(value) for value in row] for row in frame.itertuples(index=False, name=None)]
    records = [record for record in records if not _row_is_empty(record)]
    if not records:
        raise MalformedCsvError("File has no header row", file_name=file_name)

    headers = [_clean_header(value) for value in records[0]]
    while headers and not headers[-1]:
        headers.pop()
    if not headers:
        raise MalformedCsvError("Header row is empty", file_name=file_name)

    return RawTable(file_name=file_name, headers=headers, rows=records[1:])


def _clean_cell(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _clean_header(value: str) -> str:
    text = value.strip()
    match = _EXCEL_DATE_HEADER.match(text)
    if match:
        return match.group(1)
    return text


def _row_is_empty(row: Sequence[str]) -> bool:
    return all(not value.strip() for value in row)


__all__ = ["RawTable", "load_table", "read_csv_text"]
