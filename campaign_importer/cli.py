"""Command line interface for importing campaign export files."""
from __future__ import annotations

import argparse
import dataclasses
import logging
import sys
from pathlib import Path
from typing import Dict, List

from .config import ConfigurationError, ImportSettings, load_configuration, settings_from_config
from .ingestion.exporters import export_leads, export_metrics, export_totals
from .merge import InMemoryCampaignStore, ReimportPolicy
from .metrics import CampaignTotals, MetricsAggregator
from .models import CampaignMetric
from .orchestrator import ImportOrchestrator, ImportReport

LOGGER = logging.getLogger(__name__)


def build_parser(prog: str | None = None) -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog=prog,
        description="Import LinkedIn prospecting exports and report campaign totals",
    )
    parser.add_argument("files", nargs="+", help="CSV, TSV or Excel export files to import")
    parser.add_argument("--user-id", default="local", help="Owner of the imported records")
    parser.add_argument("--config", help="Path to an importer configuration file (YAML or JSON)")
    parser.add_argument("--campaign", help="Campaign name for hybrid exports, which carry none")
    parser.add_argument("--profile", help="Sending profile name for hybrid exports")
    parser.add_argument("--output-dir", help="Directory where leads, metrics and totals are written")
    parser.add_argument(
        "--format",
        choices=["csv", "xlsx"],
        default="csv",
        help="File format used for --output-dir exports",
    )
    parser.add_argument(
        "--mode",
        choices=["sequential", "concurrent"],
        default="sequential",
        help="Whether to parse files sequentially or concurrently",
    )
    parser.add_argument(
        "--max-workers",
        type=int,
        default=None,
        help="Maximum number of workers to use in concurrent mode",
    )
    parser.add_argument(
        "--reimport-policy",
        choices=[policy.value for policy in ReimportPolicy],
        default=None,
        help="How a repeated file is merged into metrics (overrides the configuration)",
    )
    parser.add_argument(
        "--raise-on-error",
        action="store_true",
        help="Stop at the first failing file instead of reporting it and continuing",
    )
    parser.add_argument(
        "--log-level",
        default="INFO",
        help="Logging level (e.g. DEBUG, INFO, WARNING)",
    )
    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    return build_parser().parse_args(argv)


def main(argv: list[str] | None = None) -> int:
    args = parse_args(argv)
    logging.basicConfig(level=getattr(logging, args.log_level.upper(), logging.INFO))

    try:
        settings = _load_settings(args)
    except ConfigurationError as exc:
        LOGGER.error("%s", exc)
        return 1

    store = InMemoryCampaignStore(settings.reimport_policy)
    orchestrator = ImportOrchestrator(
        store,
        settings,
        concurrent=args.mode == "concurrent",
        max_workers=args.max_workers,
        raise_on_error=args.raise_on_error,
        campaign_name=args.campaign,
        profile_name=args.profile,
    )
    report = orchestrator.import_paths(args.files, args.user_id)
    _print_report(report)

    metrics = store.metrics(args.user_id)
    totals = campaign_totals(metrics, settings)
    for campaign, campaign_total in totals.items():
        print(
            f"{campaign}: invites={campaign_total.invites} connections={campaign_total.connections} "
            f"acceptance={campaign_total.acceptance_rate}% messages={campaign_total.messages} "
            f"positive={campaign_total.positive_responses} activities={campaign_total.total_activities}"
        )

    if args.output_dir:
        output_dir = Path(args.output_dir)
        suffix = f".{args.format}"
        export_leads(store.leads(args.user_id), output_dir / f"leads{suffix}")
        export_metrics(metrics, output_dir / f"metrics{suffix}")
        export_totals(totals, output_dir / f"totals{suffix}")
        LOGGER.info("Exports written to %s", output_dir.resolve())

    return 0 if not report.failed else 1


def campaign_totals(metrics: List[CampaignMetric], settings: ImportSettings) -> Dict[str, CampaignTotals]:
    """Dashboard totals per campaign name, in first-seen order."""

    by_campaign: Dict[str, List[CampaignMetric]] = {}
    for metric in metrics:
        by_campaign.setdefault(metric.campaign_name, []).append(metric)
    aggregator = MetricsAggregator(settings.synonyms)
    return {campaign: aggregator.calculate_totals(series) for campaign, series in by_campaign.items()}


def _load_settings(args: argparse.Namespace) -> ImportSettings:
    settings = settings_from_config(load_configuration(args.config)) if args.config else ImportSettings()
    if args.reimport_policy:
        settings = dataclasses.replace(settings, reimport_policy=ReimportPolicy(args.reimport_policy))
    return settings


def _print_report(report: ImportReport) -> None:
    for outcome in report.outcomes:
        if outcome.ok:
            print(
                f"OK   {outcome.file_name} [{outcome.format.value}] "
                f"leads={outcome.leads} metrics={outcome.metrics} skipped={outcome.skipped_rows}"
            )
        else:
            print(f"FAIL {outcome.file_name}: {outcome.error}")


if __name__ == "__main__":  # pragma: no cover - CLI entry point
    sys.exit(main())
