"""Import orchestrator that parses export files and merges them into a store."""
from __future__ import annotations

import logging
from concurrent.futures import ThreadPoolExecutor, as_completed
from dataclasses import dataclass, field
from typing import Callable, Iterable, List, Mapping, Optional, Sequence, Tuple

from ..config import ImportSettings
from ..ingestion.loaders import PathLike
from ..ingestion.pipeline import parse_path, parse_text
from ..merge import CampaignStore
from ..models import FileFormat, ParsedFile

LOGGER = logging.getLogger(__name__)

ParseJob = Tuple[str, Callable[[], ParsedFile]]


@dataclass(slots=True)
class FileOutcome:
    """Result of importing a single file."""

    file_name: str
    format: Optional[FileFormat] = None
    leads: int = 0
    metrics: int = 0
    skipped_rows: int = 0
    error: Optional[str] = None
    parsed: Optional[ParsedFile] = None

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass(slots=True)
class ImportReport:
    outcomes: List[FileOutcome] = field(default_factory=list)

    @property
    def succeeded(self) -> List[FileOutcome]:
        return [outcome for outcome in self.outcomes if outcome.ok]

    @property
    def failed(self) -> List[FileOutcome]:
        return [outcome for outcome in self.outcomes if not outcome.ok]

    @property
    def parsed_files(self) -> List[ParsedFile]:
        return [outcome.parsed for outcome in self.succeeded if outcome.parsed is not None]


class ImportOrchestrator:
    """Parses a batch of files and merges each one into a :class:`CampaignStore`.

    Files are independent, so parsing may run on a thread pool. Merging into
    the store always happens afterwards, one file at a time and in input
    order, so later files overwrite earlier leads deterministically. A file
    that fails to parse or merge is reported and the rest of the batch still
    imports, unless ``raise_on_error`` is set.
    """

    def __init__(
        self,
        store: CampaignStore,
        settings: Optional[ImportSettings] = None,
        *,
        concurrent: bool = False,
        max_workers: Optional[int] = None,
        raise_on_error: bool = False,
        campaign_name: Optional[str] = None,
        profile_name: Optional[str] = None,
    ) -> None:
        self._store = store
        self._settings = settings or ImportSettings()
        self._concurrent = concurrent
        self._max_workers = max_workers
        self._raise_on_error = raise_on_error
        self._campaign_name = campaign_name
        self._profile_name = profile_name

    @property
    def settings(self) -> ImportSettings:
        return self._settings

    def import_paths(self, paths: Iterable[PathLike], user_id: str) -> ImportReport:
        """Import files from disk for ``user_id``."""

        jobs: List[ParseJob] = []
        for path in paths:
            jobs.append((str(path), self._path_job(path)))
        return self._import(jobs, user_id)

    def import_texts(self, texts: Mapping[str, str], user_id: str) -> ImportReport:
        """Import already decoded CSV texts keyed by file name."""

        jobs: List[ParseJob] = [(name, self._text_job(name, text)) for name, text in texts.items()]
        return self._import(jobs, user_id)

    def _path_job(self, path: PathLike) -> Callable[[], ParsedFile]:
        def job() -> ParsedFile:
            return parse_path(
                path,
                self._settings,
                campaign_name=self._campaign_name,
                profile_name=self._profile_name,
            )

        return job

    def _text_job(self, name: str, text: str) -> Callable[[], ParsedFile]:
        def job() -> ParsedFile:
            return parse_text(
                text,
                name,
                self._settings,
                campaign_name=self._campaign_name,
                profile_name=self._profile_name,
            )

        return job

    def _import(self, jobs: Sequence[ParseJob], user_id: str) -> ImportReport:
        report = ImportReport()
        for outcome in self._parse_all(jobs):
            if outcome.parsed is not None:
                outcome = self._merge(outcome, user_id)
            report.outcomes.append(outcome)

        LOGGER.info(
            "Imported %s of %s files for user %s",
            len(report.succeeded),
            len(report.outcomes),
            user_id,
        )
        return report

    def _parse_all(self, jobs: Sequence[ParseJob]) -> List[FileOutcome]:
        if not self._concurrent or len(jobs) <= 1:
            return [self._execute_parse(name, job) for name, job in jobs]

        outcomes: List[Optional[FileOutcome]] = [None] * len(jobs)
        with ThreadPoolExecutor(max_workers=self._max_workers) as executor:
            futures = {executor.submit(self._execute_parse, name, job): index for index, (name, job) in enumerate(jobs)}
            for future in as_completed(futures):
                outcomes[futures[future]] = future.result()
        return [outcome for outcome in outcomes if outcome is not None]

    def _execute_parse(self, name: str, job: Callable[[], ParsedFile]) -> FileOutcome:
        try:
            LOGGER.debug("Parsing %s", name)
            parsed = job()
        except Exception as exc:
            LOGGER.exception("Could not parse %s", name)
            if self._raise_on_error:
                raise
            return FileOutcome(file_name=name, error=str(exc))
        return FileOutcome(
            file_name=name,
            format=parsed.format,
            skipped_rows=parsed.report.skipped_rows,
            parsed=parsed,
        )

    def _merge(self, outcome: FileOutcome, user_id: str) -> FileOutcome:
        parsed = outcome.parsed
        try:
            if parsed.leads:
                outcome.leads = self._store.upsert_leads(user_id, parsed.leads)
            if parsed.metrics:
                outcome.metrics = self._store.accumulate_metrics(
                    user_id,
                    parsed.metrics,
                    batch_id=parsed.fingerprint or outcome.file_name,
                )
        except Exception as exc:
            LOGGER.exception("Could not store %s", outcome.file_name)
            if self._raise_on_error:
                raise
            outcome.error = str(exc)
            return outcome

        LOGGER.info(
            "%s: %s file, %s leads, %s metric series, %s rows skipped",
            outcome.file_name,
            parsed.format.value,
            outcome.leads,
            outcome.metrics,
            outcome.skipped_rows,
        )
        return outcome


__all__ = ["FileOutcome", "ImportOrchestrator", "ImportReport"]
