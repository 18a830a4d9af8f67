"""Per-item metric derivation for GitHub pull requests and issues.

This module turns fetched items into derived records:
- Pull requests: merge and lead times, first human review and comment
  latency, review cycles, CI outcome and change size.
- Issues: which of the target labels each issue carries.

All durations are minutes. A duration is ``None`` whenever one of its
timestamps is unknown, so that absent values stay distinct from zero.
"""

from __future__ import annotations

import logging
from datetime import datetime
from typing import Iterable, List, NamedTuple, Optional, Sequence

from .config import DEFAULT_LARGE_FILES_THRESHOLD, DEFAULT_LARGE_LOC_THRESHOLD, Config
from .models import Actor, Issue, IssueRecord, PullRequest, PullRequestMetrics

logger = logging.getLogger(__name__)

CI_SUCCESS_STATE = "SUCCESS"


class ResponseCandidate(NamedTuple):
    """A possible first human response, normalised across comment channels."""

    author: Optional[Actor]
    timestamp: Optional[datetime]
    qualifies: bool = True


def minutes_between(start: Optional[datetime], end: Optional[datetime]) -> Optional[float]:
    """Return minutes from ``start`` to ``end``, or ``None`` if either is unknown."""
    if start is None or end is None:
        return None
    return (end - start).total_seconds() / 60


def is_human_responder(actor: Optional[Actor], item_author: Optional[Actor]) -> bool:
    """Return whether ``actor`` is someone other than the item author and not a bot.

    An item without a known author has no login to exclude, so any non-bot
    actor with a login qualifies.
    """
    if actor is None or actor.is_bot:
        return False
    author_login = item_author.login if item_author else None
    return actor.login != author_login


def first_human_response(
    candidates: Iterable[ResponseCandidate],
    item_author: Optional[Actor],
) -> Optional[ResponseCandidate]:
    """Return the first candidate, in iteration order, from a human responder.

    Candidates without a timestamp or flagged as not qualifying are skipped.
    """
    for candidate in candidates:
        if not candidate.qualifies or candidate.timestamp is None:
            continue
        if is_human_responder(candidate.author, item_author):
            return candidate
    return None


def _first_comment_at(pr: PullRequest) -> Optional[datetime]:
    """Return the earliest first-human-response across the three comment channels.

    Each channel (issue comments, review-thread comments flattened across
    threads, reviews carrying a body) contributes at most its first qualifying
    entry in API order. The earliest of those timestamps wins.
    """
    channels = [
        (ResponseCandidate(comment.author, comment.createdAt) for comment in pr.comments),
        (
            ResponseCandidate(comment.author, comment.createdAt)
            for thread in pr.reviewThreadComments
            for comment in thread
        ),
        (
            ResponseCandidate(review.author, review.submittedAt, qualifies=bool(review.body))
            for review in pr.reviews
        ),
    ]

    timestamps = []
    for channel in channels:
        candidate = first_human_response(channel, pr.author)
        if candidate is not None:
            timestamps.append(candidate.timestamp)

    if not timestamps:
        return None
    return sorted(timestamps)[0]


def is_large_change(
    pr: PullRequest,
    large_loc_threshold: int = DEFAULT_LARGE_LOC_THRESHOLD,
    large_files_threshold: int = DEFAULT_LARGE_FILES_THRESHOLD,
) -> bool:
    """Return whether a PR meets the line threshold or exceeds the file threshold."""
    total_lines_changed = (pr.additions or 0) + (pr.deletions or 0)
    return total_lines_changed >= large_loc_threshold or (pr.changedFiles or 0) > large_files_threshold


def derive_pull_request_metrics(
    pr: PullRequest,
    large_loc_threshold: int = DEFAULT_LARGE_LOC_THRESHOLD,
    large_files_threshold: int = DEFAULT_LARGE_FILES_THRESHOLD,
) -> PullRequestMetrics:
    """Compute the derived metrics for a single pull request.

    Business logic:
    - ``publish_to_merge``: creation to merge; ``None`` if not merged.
    - ``lead_time_for_changes``: first commit to merge.
    - ``time_to_first_review``: creation to the first review in API order by
      a human other than the author.
    - ``time_to_first_comment``: creation to the earliest first human response
      across issue comments, review-thread comments and review bodies.
    - ``review_cycles``: number of review-requested timeline events.
    - ``ci_passed``: last commit rollup is ``SUCCESS``; a missing rollup is
      treated as not passed.
    - ``is_large``: line threshold met OR file threshold exceeded.
    """
    first_review = first_human_response(
        (ResponseCandidate(review.author, review.submittedAt) for review in pr.reviews),
        pr.author,
    )
    first_review_at = first_review.timestamp if first_review else None

    publish_to_merge = minutes_between(pr.createdAt, pr.mergedAt)
    if publish_to_merge is not None and publish_to_merge < 0:
        logger.debug(
            "Negative publish-to-merge duration",
            extra={"pr_number": pr.number, "duration_minutes": publish_to_merge},
        )

    return PullRequestMetrics(
        number=pr.number,
        title=pr.title,
        state=pr.state,
        publish_to_merge=publish_to_merge,
        lead_time_for_changes=minutes_between(pr.firstCommitDate, pr.mergedAt),
        time_to_first_review=minutes_between(pr.createdAt, first_review_at),
        time_to_first_comment=minutes_between(pr.createdAt, _first_comment_at(pr)),
        review_cycles=pr.reviewRequestedCount,
        ci_passed=pr.statusCheckRollup == CI_SUCCESS_STATE,
        is_large=is_large_change(pr, large_loc_threshold, large_files_threshold),
    )


def collect_pull_request_metrics(prs: Sequence[PullRequest], config: Config) -> List[PullRequestMetrics]:
    """Derive metrics for every pull request using the configured thresholds."""
    records = [
        derive_pull_request_metrics(
            pr,
            large_loc_threshold=config.large_loc_threshold,
            large_files_threshold=config.large_files_threshold,
        )
        for pr in prs
    ]

    logger.info(
        "Derived pull request metrics",
        extra={
            "repository": config.repository,
            "prs_total": len(records),
            "prs_without_review": sum(1 for record in records if record.time_to_first_review is None),
            "prs_without_comment": sum(1 for record in records if record.time_to_first_comment is None),
            "prs_not_merged": sum(1 for record in records if record.publish_to_merge is None),
        },
    )

    return records


def derive_issue_record(issue: Issue, target_labels: Sequence[str]) -> IssueRecord:
    """Compute which target labels an issue carries, comparing case-insensitively.

    ``matched_labels`` keeps the target labels' spelling and order.
    """
    issue_labels = {label.casefold() for label in issue.labels}
    matched = tuple(label for label in target_labels if label.casefold() in issue_labels)

    return IssueRecord(
        number=issue.number,
        title=issue.title,
        author=issue.author.login if issue.author else None,
        createdAt=issue.createdAt,
        closedAt=issue.closedAt,
        labels=list(issue.labels),
        matched_labels=matched,
        has_any_target_label=bool(matched),
        has_all_target_labels=bool(target_labels) and len(matched) == len(target_labels),
    )


def collect_issue_records(issues: Sequence[Issue], target_labels: Sequence[str]) -> List[IssueRecord]:
    """Derive label membership for every issue."""
    records = [derive_issue_record(issue, target_labels) for issue in issues]
    logger.info(
        "Derived issue label records",
        extra={
            "issues_total": len(records),
            "issues_with_target_labels": sum(1 for record in records if record.has_any_target_label),
        },
    )
    return records
