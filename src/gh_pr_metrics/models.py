"""Domain models for GitHub pull request and issue metrics.

Raw item dataclasses intentionally model only the subset of GraphQL payload
fields that are required for metric computation, and keep the API's field
names. Derived and summary dataclasses use snake_case.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from typing import Any, Dict, List, Optional, Tuple

BOT_ACTOR_TYPE = "Bot"


@dataclass(slots=True)
class SearchPage:
    """One page of raw search results plus its continuation state."""

    nodes: List[Dict[str, Any]]
    endCursor: Optional[str]
    hasNextPage: bool


@dataclass(slots=True)
class Actor:
    """Represents the author of an item, review or comment."""

    login: Optional[str]
    typename: Optional[str] = None

    @property
    def is_bot(self) -> bool:
        return self.typename == BOT_ACTOR_TYPE


@dataclass(slots=True)
class Review:
    """Represents a submitted pull request review."""

    author: Optional[Actor]
    submittedAt: Optional[datetime]
    body: str = ""


@dataclass(slots=True)
class Comment:
    """Represents an issue-level or review-thread comment."""

    author: Optional[Actor]
    createdAt: Optional[datetime]


@dataclass(slots=True)
class PullRequest:
    """Represents the pull request data required for metric calculations."""

    number: int
    title: str
    createdAt: Optional[datetime]
    mergedAt: Optional[datetime]
    state: str
    author: Optional[Actor] = None
    additions: int = 0
    deletions: int = 0
    changedFiles: int = 0
    firstCommitDate: Optional[datetime] = None
    statusCheckRollup: Optional[str] = None
    reviews: List[Review] = field(default_factory=list)
    comments: List[Comment] = field(default_factory=list)
    reviewThreadComments: List[List[Comment]] = field(default_factory=list)
    reviewRequestedCount: int = 0
    labels: List[str] = field(default_factory=list)


@dataclass(slots=True)
class Issue:
    """Represents the closed issue data required for label analysis."""

    number: int
    title: str
    createdAt: Optional[datetime]
    closedAt: Optional[datetime]
    state: str
    author: Optional[Actor] = None
    labels: List[str] = field(default_factory=list)


@dataclass(slots=True)
class PullRequestMetrics:
    """Per-PR derived metrics. Durations are minutes, ``None`` when unknown."""

    number: int
    title: str
    state: str
    publish_to_merge: Optional[float]
    lead_time_for_changes: Optional[float]
    time_to_first_review: Optional[float]
    time_to_first_comment: Optional[float]
    review_cycles: int
    ci_passed: bool
    is_large: bool


@dataclass(slots=True)
class IssueRecord:
    """Per-issue label membership facts."""

    number: int
    title: str
    author: Optional[str]
    createdAt: Optional[datetime]
    closedAt: Optional[datetime]
    labels: List[str]
    matched_labels: Tuple[str, ...]
    has_any_target_label: bool
    has_all_target_labels: bool


@dataclass(slots=True)
class FieldStatistics:
    """Central tendency of one metric over the records where it is present."""

    median: Optional[float]
    average: Optional[float]
    count: int


@dataclass(slots=True)
class PullRequestSummary:
    """Aggregated pull request metrics for a repository."""

    opened: int
    merged: int
    closed_not_merged: int
    merged_without_ci_passing: int
    large: int
    publish_to_merge: FieldStatistics
    lead_time_for_changes: FieldStatistics
    time_to_first_review: FieldStatistics
    time_to_first_comment: FieldStatistics
    review_cycles: FieldStatistics


@dataclass(slots=True)
class IssueLabelSummary:
    """Label cross-tabulation over closed issues."""

    target_labels: Tuple[str, ...]
    total_closed_issues: int
    issues_with_any_target_label: int
    issues_with_all_target_labels: int
    label_breakdown: Dict[str, int]
    only_specific_label: Dict[str, int]
    multiple_target_labels: int
    issue_details: List[IssueRecord] = field(default_factory=list)
