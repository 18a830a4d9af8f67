"""Configuration parsing and validation for the GitHub PR metrics collector."""

from __future__ import annotations

import os
from dataclasses import dataclass
from typing import List, Optional, Tuple

from .errors import AuthenticationError, ConfigurationError

DEFAULT_LARGE_LOC_THRESHOLD = 400
DEFAULT_LARGE_FILES_THRESHOLD = 15
DEFAULT_OUTPUT_DIR = "metrics"


@dataclass(frozen=True)
class Config:
    """Validated runtime settings used by the metrics collector."""

    owner: str
    repo: str
    days: Optional[int]
    token: str
    exclude_hotfixes: bool = False
    large_loc_threshold: int = DEFAULT_LARGE_LOC_THRESHOLD
    large_files_threshold: int = DEFAULT_LARGE_FILES_THRESHOLD
    issues: bool = False
    labels: Tuple[str, ...] = ()
    append_date: bool = True
    output_dir: str = DEFAULT_OUTPUT_DIR

    @property
    def repository(self) -> str:
        return f"{self.owner}/{self.repo}"


def parse_labels(raw_labels: Optional[str]) -> Tuple[str, ...]:
    """Split a comma-separated label list.

    Entries are trimmed and empty entries dropped. Duplicates are removed
    case-insensitively, keeping the first spelling seen.
    """
    if not raw_labels:
        return ()

    labels: List[str] = []
    seen = set()
    for label in raw_labels.split(","):
        label = label.strip()
        if not label or label.casefold() in seen:
            continue
        seen.add(label.casefold())
        labels.append(label)

    return tuple(labels)


def _split_repository(repository: str) -> Tuple[str, str]:
    parts = repository.strip().split("/")
    if len(parts) != 2 or not all(part.strip() for part in parts):
        raise ConfigurationError(
            f"Invalid value for 'repo': expected 'owner/name', got '{repository}'."
        )
    return parts[0].strip(), parts[1].strip()


def load_config(
    repository: str,
    days: Optional[int] = None,
    exclude_hotfixes: bool = False,
    large_loc_threshold: int = DEFAULT_LARGE_LOC_THRESHOLD,
    large_files_threshold: int = DEFAULT_LARGE_FILES_THRESHOLD,
    issues: bool = False,
    labels: Optional[str] = None,
    append_date: bool = True,
    output_dir: str = DEFAULT_OUTPUT_DIR,
) -> Config:
    """Build and validate application configuration.

    Option validation runs before the credential lookup so that a bad
    combination of flags is reported without touching the network or the
    environment.

    Args:
        repository: GitHub repository in ``owner/name`` form.
        days: Optional positive lookback window in days.
        exclude_hotfixes: Drop pull requests with ``hotfix`` in the title.
        large_loc_threshold: Added plus deleted lines at which a PR is large.
        large_files_threshold: Changed-file count above which a PR is large.
        issues: Collect issue label metrics instead of pull request metrics.
        labels: Comma-separated target labels, required in issue mode.
        append_date: Append the current date to output filenames.
        output_dir: Directory that receives the JSON and CSV output.

    Returns:
        A validated ``Config`` instance.

    Raises:
        ConfigurationError: If any option is invalid or inconsistent.
        AuthenticationError: If ``GITHUB_TOKEN`` is not configured.
    """
    owner, repo = _split_repository(repository)

    if days is not None and days <= 0:
        raise ConfigurationError("Invalid value for 'days': expected an integer greater than 0.")

    if large_loc_threshold < 0 or large_files_threshold < 0:
        raise ConfigurationError("Large-change thresholds must not be negative.")

    parsed_labels = parse_labels(labels)
    if issues and not parsed_labels:
        raise ConfigurationError("The --issues flag requires --labels to specify which labels to analyze.")
    if parsed_labels and not issues:
        raise ConfigurationError("The --labels option can only be used together with --issues.")

    token: str = os.getenv("GITHUB_TOKEN", "").strip()
    if not token:
        raise AuthenticationError(
            "Missing required GitHub token. "
            "Set the 'GITHUB_TOKEN' environment variable or add it to a .env file."
        )

    return Config(
        owner=owner,
        repo=repo,
        days=days,
        token=token,
        exclude_hotfixes=exclude_hotfixes,
        large_loc_threshold=large_loc_threshold,
        large_files_threshold=large_files_threshold,
        issues=issues,
        labels=parsed_labels,
        append_date=append_date,
        output_dir=output_dir,
    )
