"""GitHub GraphQL API client for pull request and issue retrieval."""

from __future__ import annotations

import logging
import time
from datetime import datetime, timezone
from functools import partial
from typing import Any, Dict, Iterator, List, Optional

import requests

from .config import Config
from .errors import ApiError, AuthenticationError
from .filters import ISSUE_TYPENAME, PULL_REQUEST_TYPENAME, filter_by_kind
from .models import Actor, Comment, Issue, PullRequest, Review, SearchPage
from .pagination import paginate

logger = logging.getLogger(__name__)

PULL_REQUEST_SEARCH_QUERY = """
query ($searchQuery: String!, $pageSize: Int!, $cursor: String) {
  search(query: $searchQuery, type: ISSUE, first: $pageSize, after: $cursor) {
    pageInfo {
      endCursor
      hasNextPage
    }
    nodes {
      __typename
      ... on PullRequest {
        number
        title
        createdAt
        mergedAt
        state
        additions
        deletions
        changedFiles
        author {
          login
          __typename
        }
        labels(first: 20) {
          nodes {
            name
          }
        }
        firstCommit: commits(first: 1) {
          nodes {
            commit {
              committedDate
            }
          }
        }
        lastCommit: commits(last: 1) {
          nodes {
            commit {
              statusCheckRollup {
                state
              }
            }
          }
        }
        reviews(first: 10) {
          nodes {
            author {
              login
              __typename
            }
            submittedAt
            body
          }
        }
        comments(first: 10) {
          nodes {
            author {
              login
              __typename
            }
            createdAt
          }
        }
        reviewThreads(first: 10) {
          nodes {
            comments(first: 10) {
              nodes {
                author {
                  login
                  __typename
                }
                createdAt
              }
            }
          }
        }
        timelineItems(itemTypes: [REVIEW_REQUESTED_EVENT], first: 100) {
          totalCount
        }
      }
    }
  }
}
"""

ISSUE_SEARCH_QUERY = """
query ($searchQuery: String!, $pageSize: Int!, $cursor: String) {
  search(query: $searchQuery, type: ISSUE, first: $pageSize, after: $cursor) {
    pageInfo {
      endCursor
      hasNextPage
    }
    nodes {
      __typename
      ... on Issue {
        number
        title
        createdAt
        closedAt
        state
        author {
          login
          __typename
        }
        labels(first: 20) {
          nodes {
            name
          }
        }
      }
    }
  }
}
"""


def _nodes(connection: Optional[Dict[str, Any]]) -> List[Dict[str, Any]]:
    """Return the non-null ``nodes`` of a GraphQL connection, tolerating nulls."""
    if not connection:
        return []
    return [node for node in connection.get("nodes") or [] if node]


class GitHubClient:
    """Small, typed client for the GitHub GraphQL search API."""

    _API_URL = "https://api.github.com/graphql"
    _PAGE_SIZE = 50
    _MAX_RETRIES = 5
    _MAX_BACKOFF_SECONDS = 30

    def __init__(self, config: Config, timeout_seconds: int = 30, page_size: Optional[int] = None) -> None:
        """Initialize an authenticated GitHub API client.

        Args:
            config: Validated runtime configuration including the token.
            timeout_seconds: Per-request timeout in seconds.
            page_size: Search results per page (GitHub allows at most 100).
        """
        self._config = config
        self._timeout_seconds = timeout_seconds
        self._page_size = page_size or self._PAGE_SIZE

        self._session = requests.Session()
        self._session.headers.update(
            {
                "Authorization": f"Bearer {config.token}",
                "Accept": "application/json",
                "User-Agent": "github-pr-metrics",
            }
        )

    def _parse_datetime(self, value: Optional[str]) -> Optional[datetime]:
        """Parse GitHub ISO8601 timestamps into timezone-aware datetimes."""
        if not value:
            return None

        normalized = value[:-1] + "+00:00" if value.endswith("Z") else value
        parsed = datetime.fromisoformat(normalized)
        if parsed.tzinfo is None:
            return parsed.replace(tzinfo=timezone.utc)
        return parsed

    def _extract_backoff_seconds(self, response: requests.Response, attempt: int) -> int:
        """Compute exponential backoff seconds, honoring Retry-After when available."""
        retry_after_header = response.headers.get("Retry-After")
        if retry_after_header:
            try:
                retry_after_seconds = int(retry_after_header)
                return min(self._MAX_BACKOFF_SECONDS, max(1, retry_after_seconds))
            except ValueError:
                pass

        return min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1))

    def _post_graphql(self, query: str, variables: Dict[str, Any]) -> Dict[str, Any]:
        """Execute a GraphQL request with retry logic for 429/5xx responses.

        Returns:
            The ``data`` object of the GraphQL response.

        Raises:
            AuthenticationError: If GitHub rejects the token (HTTP 401).
            ApiError: If the request repeatedly fails, returns HTTP >= 400,
                does not return valid JSON, or reports GraphQL errors.
        """
        last_error: Optional[Exception] = None

        for attempt in range(1, self._MAX_RETRIES + 1):
            try:
                response = self._session.post(
                    self._API_URL,
                    json={"query": query, "variables": variables},
                    timeout=self._timeout_seconds,
                )
            except requests.RequestException as exc:
                last_error = exc
                if attempt == self._MAX_RETRIES:
                    raise ApiError(f"GitHub request failed after retries: POST {self._API_URL}") from exc
                time.sleep(min(self._MAX_BACKOFF_SECONDS, 2 ** (attempt - 1)))
                continue

            status_code = response.status_code
            is_retryable = status_code == 429 or 500 <= status_code <= 599

            if is_retryable and attempt < self._MAX_RETRIES:
                logger.debug(
                    "Retrying GitHub request",
                    extra={"status_code": status_code, "attempt": attempt},
                )
                time.sleep(self._extract_backoff_seconds(response, attempt))
                continue

            if status_code == 401:
                raise AuthenticationError("GitHub rejected the token (HTTP 401). Check GITHUB_TOKEN.")

            if status_code >= 400:
                raise ApiError(
                    "GitHub API request failed: "
                    f"POST {self._API_URL} returned {status_code} - {response.text}"
                )

            try:
                payload = response.json()
            except ValueError as exc:
                raise ApiError(f"GitHub API returned invalid JSON: POST {self._API_URL}") from exc

            if not isinstance(payload, dict):
                raise ApiError(f"GitHub API returned unexpected payload shape: POST {self._API_URL}")

            if payload.get("errors"):
                messages = "; ".join(str(error.get("message", error)) for error in payload["errors"])
                raise ApiError(f"GitHub GraphQL query failed: {messages}")

            data = payload.get("data")
            if not isinstance(data, dict):
                raise ApiError(f"GitHub API response is missing 'data': POST {self._API_URL}")

            return data

        raise ApiError(f"GitHub request failed after retries: POST {self._API_URL}") from last_error

    def search_page(self, graphql_query: str, search_query: str, cursor: Optional[str]) -> SearchPage:
        """Request one page of search results starting after ``cursor``."""
        data = self._post_graphql(
            graphql_query,
            {"searchQuery": search_query, "pageSize": self._page_size, "cursor": cursor},
        )

        search = data.get("search")
        if not isinstance(search, dict):
            raise ApiError("GitHub search response is missing the 'search' object.")

        page_info = search.get("pageInfo") or {}
        return SearchPage(
            nodes=list(search.get("nodes") or []),
            endCursor=page_info.get("endCursor"),
            hasNextPage=bool(page_info.get("hasNextPage")),
        )

    def _parse_actor(self, item: Optional[Dict[str, Any]]) -> Optional[Actor]:
        if not item:
            return None
        return Actor(login=item.get("login"), typename=item.get("__typename"))

    def _parse_comment(self, item: Dict[str, Any]) -> Comment:
        return Comment(
            author=self._parse_actor(item.get("author")),
            createdAt=self._parse_datetime(item.get("createdAt")),
        )

    def _parse_labels(self, node: Dict[str, Any]) -> List[str]:
        return [label["name"] for label in _nodes(node.get("labels")) if label.get("name")]

    def _parse_pull_request(self, node: Dict[str, Any]) -> PullRequest:
        """Convert a ``PullRequest`` search node into a model.

        Missing nested objects become ``None`` or empty collections; only the
        item number is mandatory.
        """
        number = node.get("number")
        if number is None:
            raise ApiError(f"GitHub pull request payload is missing 'number': payload={node}")

        first_commit = next(iter(_nodes(node.get("firstCommit"))), {})
        last_commit = next(iter(_nodes(node.get("lastCommit"))), {})
        rollup = (last_commit.get("commit") or {}).get("statusCheckRollup") or {}

        reviews = [
            Review(
                author=self._parse_actor(item.get("author")),
                submittedAt=self._parse_datetime(item.get("submittedAt")),
                body=item.get("body") or "",
            )
            for item in _nodes(node.get("reviews"))
        ]

        return PullRequest(
            number=int(number),
            title=node.get("title") or "",
            createdAt=self._parse_datetime(node.get("createdAt")),
            mergedAt=self._parse_datetime(node.get("mergedAt")),
            state=node.get("state") or "",
            author=self._parse_actor(node.get("author")),
            additions=int(node.get("additions") or 0),
            deletions=int(node.get("deletions") or 0),
            changedFiles=int(node.get("changedFiles") or 0),
            firstCommitDate=self._parse_datetime((first_commit.get("commit") or {}).get("committedDate")),
            statusCheckRollup=rollup.get("state"),
            reviews=reviews,
            comments=[self._parse_comment(item) for item in _nodes(node.get("comments"))],
            reviewThreadComments=[
                [self._parse_comment(item) for item in _nodes(thread.get("comments"))]
                for thread in _nodes(node.get("reviewThreads"))
            ],
            reviewRequestedCount=int((node.get("timelineItems") or {}).get("totalCount") or 0),
            labels=self._parse_labels(node),
        )

    def _parse_issue(self, node: Dict[str, Any]) -> Issue:
        number = node.get("number")
        if number is None:
            raise ApiError(f"GitHub issue payload is missing 'number': payload={node}")

        return Issue(
            number=int(number),
            title=node.get("title") or "",
            createdAt=self._parse_datetime(node.get("createdAt")),
            closedAt=self._parse_datetime(node.get("closedAt")),
            state=node.get("state") or "",
            author=self._parse_actor(node.get("author")),
            labels=self._parse_labels(node),
        )

    def iter_pull_request_batches(self, search_query: str) -> Iterator[List[PullRequest]]:
        """Lazily yield one list of pull requests per search page."""
        fetch_page = partial(self.search_page, PULL_REQUEST_SEARCH_QUERY, search_query)
        for nodes in paginate(fetch_page):
            yield [self._parse_pull_request(node) for node in filter_by_kind(nodes, PULL_REQUEST_TYPENAME)]

    def iter_issue_batches(self, search_query: str) -> Iterator[List[Issue]]:
        """Lazily yield one list of issues per search page."""
        fetch_page = partial(self.search_page, ISSUE_SEARCH_QUERY, search_query)
        for nodes in paginate(fetch_page):
            yield [self._parse_issue(node) for node in filter_by_kind(nodes, ISSUE_TYPENAME)]

    def fetch_pull_requests(self, search_query: str) -> List[PullRequest]:
        """Fetch every pull request matching ``search_query``."""
        pull_requests: List[PullRequest] = []
        for page_number, batch in enumerate(self.iter_pull_request_batches(search_query), start=1):
            pull_requests.extend(batch)
            logger.info(
                "Fetched pull request page",
                extra={"page": page_number, "page_items": len(batch), "items_total": len(pull_requests)},
            )
        return pull_requests

    def fetch_issues(self, search_query: str) -> List[Issue]:
        """Fetch every issue matching ``search_query``."""
        issues: List[Issue] = []
        for page_number, batch in enumerate(self.iter_issue_batches(search_query), start=1):
            issues.extend(batch)
            logger.info(
                "Fetched issue page",
                extra={"page": page_number, "page_items": len(batch), "items_total": len(issues)},
            )
        return issues
