"""Statistics and formatting helpers for PR and issue metric reporting.

This module provides utilities for:
- Computing medians and averages over values that may be absent.
- Aggregating derived pull request records into a ``PullRequestSummary``.
- Cross-tabulating issue labels into an ``IssueLabelSummary``.
- Formatting minute-based durations and percentages.
- Building human-readable reports for both modes.

Absent values (``None``) are removed before any statistic is computed and an
empty input yields ``None`` ("no data") rather than zero.
"""

from __future__ import annotations

import math
from typing import Iterable, List, Optional, Sequence

from .models import (
    FieldStatistics,
    IssueLabelSummary,
    IssueRecord,
    PullRequest,
    PullRequestMetrics,
    PullRequestSummary,
)

MERGED_STATE = "MERGED"
CLOSED_STATE = "CLOSED"
NO_DATA = "N/A"


def _present(values: Iterable[Optional[float]]) -> List[float]:
    return [value for value in values if value is not None and not math.isnan(value)]


def median(values: Iterable[Optional[float]]) -> Optional[float]:
    """Return the median of the present values.

    For an even number of values the two central values are averaged.
    Returns ``None`` when no value is present.
    """
    sorted_values = sorted(_present(values))
    if not sorted_values:
        return None

    mid = len(sorted_values) // 2
    if len(sorted_values) % 2:
        return sorted_values[mid]
    return (sorted_values[mid - 1] + sorted_values[mid]) / 2


def average(values: Iterable[Optional[float]]) -> Optional[float]:
    """Return the arithmetic mean of the present values, or ``None`` if there are none."""
    present = _present(values)
    if not present:
        return None
    return sum(present) / len(present)


def percentage(part: int, total: int) -> Optional[float]:
    """Return ``part`` as a percentage of ``total``, or ``None`` when ``total`` is 0."""
    if not total:
        return None
    return part / total * 100


def compute_field_statistics(values: Iterable[Optional[float]]) -> FieldStatistics:
    present = _present(values)
    return FieldStatistics(median=median(present), average=average(present), count=len(present))


def summarize_pull_requests(
    records: Sequence[PullRequestMetrics],
    prs: Sequence[PullRequest],
) -> PullRequestSummary:
    """Aggregate derived pull request records.

    ``prs`` are the raw items the records were derived from; the
    closed-without-merge count is taken from them.
    """
    return PullRequestSummary(
        opened=len(records),
        merged=sum(1 for record in records if record.state == MERGED_STATE),
        closed_not_merged=sum(1 for pr in prs if pr.state == CLOSED_STATE and pr.mergedAt is None),
        merged_without_ci_passing=sum(
            1 for record in records if record.state == MERGED_STATE and not record.ci_passed
        ),
        large=sum(1 for record in records if record.is_large),
        publish_to_merge=compute_field_statistics(record.publish_to_merge for record in records),
        lead_time_for_changes=compute_field_statistics(record.lead_time_for_changes for record in records),
        time_to_first_review=compute_field_statistics(record.time_to_first_review for record in records),
        time_to_first_comment=compute_field_statistics(record.time_to_first_comment for record in records),
        review_cycles=compute_field_statistics(record.review_cycles for record in records),
    )


def summarize_issues(records: Sequence[IssueRecord], target_labels: Sequence[str]) -> IssueLabelSummary:
    """Cross-tabulate target labels over issue records.

    ``only_specific_label`` counts issues that carry exactly that one target
    label (non-target labels are ignored). Issues with two or more target
    labels are counted in ``multiple_target_labels``, which always equals the
    any-label total minus the sum of the exclusive totals.
    """
    with_any = [record for record in records if record.has_any_target_label]
    label_breakdown = {label: 0 for label in target_labels}
    only_specific_label = {label: 0 for label in target_labels}

    for record in with_any:
        for label in record.matched_labels:
            label_breakdown[label] += 1
        if len(record.matched_labels) == 1:
            only_specific_label[record.matched_labels[0]] += 1

    return IssueLabelSummary(
        target_labels=tuple(target_labels),
        total_closed_issues=len(records),
        issues_with_any_target_label=len(with_any),
        issues_with_all_target_labels=sum(1 for record in records if record.has_all_target_labels),
        label_breakdown=label_breakdown,
        only_specific_label=only_specific_label,
        multiple_target_labels=len(with_any) - sum(only_specific_label.values()),
        issue_details=with_any,
    )


def format_duration(minutes: Optional[float]) -> str:
    """Format minutes as ``"1d 2h 3m"``, dropping zero leading units.

    Args:
        minutes: Duration in minutes.

    Returns:
        ``"N/A"`` when ``minutes`` is ``None``; otherwise the rounded duration,
        ``"0m"`` for durations under half a minute.
    """
    if minutes is None:
        return NO_DATA

    total_minutes = int(round(minutes))
    sign = "-" if total_minutes < 0 else ""
    days, remainder = divmod(abs(total_minutes), 24 * 60)
    hours, mins = divmod(remainder, 60)

    parts = []
    if days:
        parts.append(f"{days}d")
    if hours:
        parts.append(f"{hours}h")
    if mins or not parts:
        parts.append(f"{mins}m")
    return sign + " ".join(parts)


def format_percentage(value: Optional[float]) -> str:
    if value is None:
        return NO_DATA
    return f"{value:.1f}%"


def format_number(value: Optional[float]) -> str:
    if value is None:
        return NO_DATA
    return f"{value:.2f}"


def generate_report(repository: str, summary: PullRequestSummary) -> str:
    """Generate a human-readable pull request metrics report.

    Durations are rendered with :func:`format_duration` and missing
    statistics as ``N/A``.
    """
    lines = [
        f"Repository: {repository}",
        "Pull Request Metrics Summary",
        "",
        f"Total PRs Opened: {summary.opened}",
        f"Total PRs Merged: {summary.merged}",
        f"Total PRs Closed (not merged): {summary.closed_not_merged}",
        f"PRs Merged Without CI Passing: {summary.merged_without_ci_passing}",
        f"Total Large PRs: {summary.large}",
        "",
    ]

    for label, stats in (
        ("Publish to Merge", summary.publish_to_merge),
        ("Lead Time for Changes", summary.lead_time_for_changes),
        ("Time to First Review", summary.time_to_first_review),
        ("Time to First Comment", summary.time_to_first_comment),
    ):
        lines.append(
            f"Median {label}: {format_duration(stats.median)}"
            f" (average {format_duration(stats.average)}, samples {stats.count})"
        )

    lines.append(f"Average Review Cycles: {format_number(summary.review_cycles.average)}")
    lines.append(f"Median Review Cycles: {format_number(summary.review_cycles.median)}")
    return "\n".join(lines)


def generate_issue_report(summary: IssueLabelSummary) -> str:
    """Generate a human-readable issue label analysis report."""
    total = summary.total_closed_issues
    multiple_labels = len(summary.target_labels) > 1

    lines = [
        "Issue Label Analysis",
        f"Target Labels: {', '.join(summary.target_labels)}",
        f"Total Closed Issues: {total}",
        f"Issues with ANY target label: {summary.issues_with_any_target_label}"
        f" ({format_percentage(percentage(summary.issues_with_any_target_label, total))})",
    ]

    if multiple_labels:
        lines.append(
            f"Issues with ALL target labels: {summary.issues_with_all_target_labels}"
            f" ({format_percentage(percentage(summary.issues_with_all_target_labels, total))})"
        )

    lines.extend(["", "Individual Label Breakdown:"])
    for label in summary.target_labels:
        total_with_label = summary.label_breakdown[label]
        lines.append(
            f'  "{label}": {total_with_label} total'
            f" ({format_percentage(percentage(total_with_label, total))}),"
            f" {summary.only_specific_label[label]} with only this label"
        )

    if multiple_labels:
        lines.extend(["", f"Issues with multiple target labels: {summary.multiple_target_labels}"])

    return "\n".join(lines)
