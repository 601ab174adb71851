"""Smoke tests for the CLI entry point."""
from __future__ import annotations

import json

import pandas as pd
import pytest

from campaign_importer import __main__
from campaign_importer.cli import main

CAMPAIGN_CSV = (
    "Campaign Name,Event Type,Profile Name,Total Count,2025-01-01,2025-01-02\n"
    "C1,Connection Requests Sent,P1,10,4,6\n"
    "C1,Connection Requests Accepted,P1,3,1,2\n"
    "Campaign 0,Connection Requests Sent,P1,99,99,\n"
)

LEADS_CSV = (
    "Nome,LinkedIn,Campanha,Data Resposta Positiva\n"
    "Ada Lovelace,https://linkedin.com/in/ada,C1,05/01/2025\n"
)


def test_cli_smoke_imports_files_and_exports(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    campaign_path = tmp_path / "campaign.csv"
    campaign_path.write_text(CAMPAIGN_CSV, encoding="utf-8")
    leads_path = tmp_path / "leads.csv"
    leads_path.write_text(LEADS_CSV, encoding="utf-8")
    output_dir = tmp_path / "out"

    exit_code = main(
        [
            str(campaign_path),
            str(leads_path),
            "--output-dir",
            str(output_dir),
            "--mode",
            "concurrent",
        ]
    )

    assert exit_code == 0
    captured = capsys.readouterr()
    assert "C1: invites=10 connections=3 acceptance=30.0%" in captured.out
    assert "Campaign 0" not in captured.out
    leads = pd.read_csv(output_dir / "leads.csv")
    assert leads.loc[0, "name"] == "Ada Lovelace"
    metrics = pd.read_csv(output_dir / "metrics.csv")
    assert metrics["count"].sum() == 13
    assert (output_dir / "totals.csv").exists()


def test_cli_reports_failures_with_exit_code(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    good = tmp_path / "leads.csv"
    good.write_text(LEADS_CSV, encoding="utf-8")
    bad = tmp_path / "mystery.csv"
    bad.write_text("foo,bar\n1,2\n", encoding="utf-8")

    exit_code = main([str(good), str(bad)])

    captured = capsys.readouterr()
    assert exit_code == 1
    assert "leads.csv [leads] leads=1" in captured.out
    assert "FAIL" in captured.out and "mystery.csv" in captured.out


def test_cli_applies_configuration_and_policy_override(tmp_path, capsys: pytest.CaptureFixture[str]) -> None:
    config_path = tmp_path / "config.json"
    config_path.write_text(json.dumps({"excluded_campaigns": []}), encoding="utf-8")
    campaign_path = tmp_path / "campaign.csv"
    campaign_path.write_text(CAMPAIGN_CSV, encoding="utf-8")

    exit_code = main(
        [
            str(campaign_path),
            str(campaign_path),
            "--config",
            str(config_path),
            "--reimport-policy",
            "replace-batch",
        ]
    )

    captured = capsys.readouterr()
    assert exit_code == 0
    assert "Campaign 0: invites=99" in captured.out
    assert "C1: invites=10 " in captured.out


def test_cli_rejects_bad_configuration(tmp_path) -> None:
    campaign_path = tmp_path / "campaign.csv"
    campaign_path.write_text(CAMPAIGN_CSV, encoding="utf-8")

    assert main([str(campaign_path), "--config", str(tmp_path / "missing.yaml")]) == 1


def test_module_entry_point_delegates_to_cli(tmp_path) -> None:
    """The package entry point should behave like the CLI."""

    leads_path = tmp_path / "leads.csv"
    leads_path.write_text(LEADS_CSV, encoding="utf-8")
    output_dir = tmp_path / "exports"

    exit_code = __main__.main([str(leads_path), "--output-dir", str(output_dir), "--format", "xlsx"])

    assert exit_code == 0
    assert (output_dir / "leads.xlsx").exists()
    contents = pd.read_excel(output_dir / "leads.xlsx")
    assert contents.loc[0, "campaign"] == "C1"


def test_module_entry_point_without_arguments_shows_help(capsys: pytest.CaptureFixture[str]) -> None:
    exit_code = __main__.main([])

    captured = capsys.readouterr()
    assert "python -m campaign_importer" in captured.out
    assert exit_code == 2
