"""Workflow orchestration for importing batches of export files."""

from .service import FileOutcome, ImportOrchestrator, ImportReport

__all__ = ["FileOutcome", "ImportOrchestrator", "ImportReport"]
