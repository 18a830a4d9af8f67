"""Command-line argument parsing for the GitHub PR metrics collector."""

from __future__ import annotations

import argparse
from typing import Optional, Sequence

from .config import DEFAULT_LARGE_FILES_THRESHOLD, DEFAULT_LARGE_LOC_THRESHOLD, DEFAULT_OUTPUT_DIR


def _positive_int(value: str) -> int:
    """Parse and validate a positive integer CLI value.

    Args:
        value: Raw command-line argument value.

    Returns:
        The validated positive integer.

    Raises:
        argparse.ArgumentTypeError: If value is not a positive integer.
    """
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed <= 0:
        raise argparse.ArgumentTypeError("must be greater than 0")

    return parsed


def _non_negative_int(value: str) -> int:
    try:
        parsed = int(value)
    except ValueError as exc:
        raise argparse.ArgumentTypeError("must be an integer") from exc

    if parsed < 0:
        raise argparse.ArgumentTypeError("must not be negative")

    return parsed


def parse_args(argv: Optional[Sequence[str]] = None) -> argparse.Namespace:
    """Parse command-line arguments for metric collection.

    Returns:
        Parsed CLI arguments. ``date`` is ``False`` when ``--no-date`` is given.
    """
    parser = argparse.ArgumentParser(
        prog="github-pr-metrics",
        description=(
            "Collect GitHub pull request process metrics (merge time, lead time, "
            "review latency, review cycles, CI outcome, change size) or closed "
            "issue label metrics for a repository."
        ),
    )

    parser.add_argument(
        "-r",
        "--repo",
        required=True,
        help="GitHub repository in the form owner/repo.",
    )
    parser.add_argument(
        "-d",
        "--days",
        type=_positive_int,
        default=None,
        help="Number of days to look back; omit to process the full history.",
    )
    parser.add_argument(
        "--no-date",
        dest="date",
        action="store_false",
        help="Do not append the date to the output filenames.",
    )
    parser.add_argument(
        "--exclude-hotfixes",
        action="store_true",
        help='Exclude pull requests with "hotfix" in the title.',
    )
    parser.add_argument(
        "--large-loc-threshold",
        type=_non_negative_int,
        default=DEFAULT_LARGE_LOC_THRESHOLD,
        help=(
            "Lines of code (additions + deletions) at which a PR is considered large "
            f"(default: {DEFAULT_LARGE_LOC_THRESHOLD})."
        ),
    )
    parser.add_argument(
        "--large-files-threshold",
        type=_non_negative_int,
        default=DEFAULT_LARGE_FILES_THRESHOLD,
        help=(
            "Changed-file count above which a PR is considered large "
            f"(default: {DEFAULT_LARGE_FILES_THRESHOLD})."
        ),
    )
    parser.add_argument(
        "--issues",
        action="store_true",
        help="Collect issue label metrics instead of pull request metrics.",
    )
    parser.add_argument(
        "--labels",
        default=None,
        help="Comma-separated list of issue labels to analyze (requires --issues).",
    )
    parser.add_argument(
        "--output-dir",
        default=DEFAULT_OUTPUT_DIR,
        help=f"Directory for JSON and CSV output (default: {DEFAULT_OUTPUT_DIR}).",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="store_true",
        help="Enable debug logging.",
    )

    return parser.parse_args(argv)
