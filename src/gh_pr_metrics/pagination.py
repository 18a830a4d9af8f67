"""Cursor pagination over the GitHub search endpoint."""

from __future__ import annotations

import logging
from datetime import date, datetime, timedelta, timezone
from typing import Any, Callable, Dict, Iterator, List, Optional

from .errors import ConfigurationError, DataValidationError
from .models import SearchPage

logger = logging.getLogger(__name__)

PULL_REQUEST_KIND = "pr"
ISSUE_KIND = "issue"


def build_search_query(
    repository: str,
    kind: str,
    days: Optional[int] = None,
    today: Optional[date] = None,
) -> str:
    """Build the search predicate for a repository.

    Pull requests are filtered on creation date, closed issues on close date.
    The date floor is ``today - days`` and is omitted when ``days`` is ``None``.
    """
    if kind == PULL_REQUEST_KIND:
        query = f"repo:{repository} is:pr"
        date_qualifier = "created"
    elif kind == ISSUE_KIND:
        query = f"repo:{repository} is:issue is:closed"
        date_qualifier = "closed"
    else:
        raise ConfigurationError(f"Unknown search kind '{kind}'.")

    if days:
        today = today or datetime.now(timezone.utc).date()
        since = today - timedelta(days=days)
        query += f" {date_qualifier}:>={since.isoformat()}"

    return query


def paginate(fetch_page: Callable[[Optional[str]], SearchPage]) -> Iterator[List[Dict[str, Any]]]:
    """Yield the raw nodes of each page until the server reports no more pages.

    ``fetch_page`` receives the continuation cursor (``None`` for the first
    page). Pages are requested strictly one after another since each cursor
    comes from the previous response. Errors raised by ``fetch_page``
    propagate unchanged.

    Raises:
        DataValidationError: If a page reports more results without a cursor.
    """
    cursor: Optional[str] = None
    page_number = 0

    while True:
        page = fetch_page(cursor)
        page_number += 1
        logger.debug(
            "Fetched search page",
            extra={"page": page_number, "nodes": len(page.nodes), "has_next_page": page.hasNextPage},
        )
        yield page.nodes

        if not page.hasNextPage:
            break

        if not page.endCursor:
            raise DataValidationError(
                f"Search page {page_number} reports more results but carries no continuation cursor."
            )
        cursor = page.endCursor
