"""Tests for command-line argument parsing."""

import sys
from pathlib import Path

import pytest

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gh_pr_metrics.cli import parse_args


def test_parse_args_with_valid_arguments(monkeypatch):
    """Verify CLI parsing succeeds when all arguments are provided."""
    monkeypatch.setattr(
        sys,
        "argv",
        [
            "github-pr-metrics",
            "--repo",
            "octo/repo",
            "--days",
            "14",
            "--no-date",
            "--exclude-hotfixes",
            "--large-loc-threshold",
            "250",
            "--large-files-threshold",
            "8",
            "--output-dir",
            "out",
        ],
    )

    args = parse_args()

    assert args.repo == "octo/repo"
    assert args.days == 14
    assert args.date is False
    assert args.exclude_hotfixes is True
    assert args.large_loc_threshold == 250
    assert args.large_files_threshold == 8
    assert args.output_dir == "out"


def test_parse_args_defaults():
    """Verify optional arguments fall back to their documented defaults."""
    args = parse_args(["-r", "octo/repo"])

    assert args.days is None
    assert args.date is True
    assert args.exclude_hotfixes is False
    assert args.large_loc_threshold == 400
    assert args.large_files_threshold == 15
    assert args.issues is False
    assert args.labels is None
    assert args.output_dir == "metrics"
    assert args.verbose is False


def test_parse_args_issue_mode():
    """Verify issue mode and its label list are parsed."""
    args = parse_args(["-r", "octo/repo", "--issues", "--labels", "bug,P1"])

    assert args.issues is True
    assert args.labels == "bug,P1"


def test_parse_args_with_negative_days_fails_validation():
    """Verify CLI parsing exits with an error when --days is negative."""
    with pytest.raises(SystemExit):
        parse_args(["-r", "octo/repo", "--days", "-1"])


def test_parse_args_requires_repo():
    """Verify the repository argument is mandatory."""
    with pytest.raises(SystemExit):
        parse_args([])
