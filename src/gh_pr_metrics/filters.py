"""Item filtering applied between fetching and metric derivation."""

from __future__ import annotations

import logging
from typing import Any, Dict, Iterable, List, Sequence, TypeVar

logger = logging.getLogger(__name__)

PULL_REQUEST_TYPENAME = "PullRequest"
ISSUE_TYPENAME = "Issue"
HOTFIX_MARKER = "hotfix"

T = TypeVar("T")


def filter_by_kind(nodes: Iterable[Dict[str, Any]], typename: str) -> List[Dict[str, Any]]:
    """Keep only search nodes whose ``__typename`` matches, preserving order.

    The search endpoint can return other result kinds (and empty nodes for
    results it cannot expose); these are dropped silently.
    """
    return [node for node in nodes if node and node.get("__typename") == typename]


def exclude_hotfixes(items: Sequence[T]) -> List[T]:
    """Drop items whose title mentions a hotfix (case-insensitive)."""
    kept = [item for item in items if HOTFIX_MARKER not in (getattr(item, "title", "") or "").casefold()]
    logger.info(
        "Excluded hotfix items",
        extra={"items_total": len(items), "hotfixes_excluded": len(items) - len(kept)},
    )
    return kept
