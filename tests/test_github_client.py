"""Tests for GitHub API client behavior with mocked HTTP."""

import sys
from datetime import datetime, timezone
from pathlib import Path
from unittest.mock import Mock, patch

import pytest
import requests

# Add src directory to path
sys.path.insert(0, str(Path(__file__).parent.parent / "src"))

from gh_pr_metrics.config import Config
from gh_pr_metrics.errors import ApiError, AuthenticationError
from gh_pr_metrics.github_client import ISSUE_SEARCH_QUERY, PULL_REQUEST_SEARCH_QUERY, GitHubClient
from gh_pr_metrics.models import SearchPage


def _build_client() -> GitHubClient:
    config = Config(owner="octo", repo="repo", days=30, token="gh-token")
    return GitHubClient(config=config)


def _response(status_code: int, payload: dict | None = None, text: str = "", headers: dict | None = None):
    response = Mock()
    response.status_code = status_code
    response.text = text
    response.headers = headers or {}
    response.json.return_value = payload if payload is not None else {}
    return response


def _search_payload(nodes: list, end_cursor: str | None = None, has_next_page: bool = False) -> dict:
    return {
        "data": {
            "search": {
                "pageInfo": {"endCursor": end_cursor, "hasNextPage": has_next_page},
                "nodes": nodes,
            }
        }
    }


def _pr_node(number: int, **overrides) -> dict:
    node = {
        "__typename": "PullRequest",
        "number": number,
        "title": f"PR {number}",
        "createdAt": "2026-01-01T10:00:00Z",
        "mergedAt": "2026-01-01T12:00:00Z",
        "state": "MERGED",
        "additions": 10,
        "deletions": 5,
        "changedFiles": 2,
        "author": {"login": "alice", "__typename": "User"},
        "labels": {"nodes": [{"name": "bug"}]},
        "firstCommit": {"nodes": [{"commit": {"committedDate": "2026-01-01T09:00:00Z"}}]},
        "lastCommit": {"nodes": [{"commit": {"statusCheckRollup": {"state": "SUCCESS"}}}]},
        "reviews": {
            "nodes": [
                {"author": {"login": "bob", "__typename": "User"}, "submittedAt": "2026-01-01T10:30:00Z", "body": ""}
            ]
        },
        "comments": {"nodes": [{"author": {"login": "carol", "__typename": "User"}, "createdAt": "2026-01-01T10:20:00Z"}]},
        "reviewThreads": {
            "nodes": [
                {"comments": {"nodes": [{"author": {"login": "bob", "__typename": "User"}, "createdAt": "2026-01-01T10:40:00Z"}]}}
            ]
        },
        "timelineItems": {"totalCount": 2},
    }
    node.update(overrides)
    return node


def test_client_sends_bearer_token_header():
    """Verify the session authenticates with the configured token."""
    client = _build_client()

    assert client._session.headers["Authorization"] == "Bearer gh-token"


def test_post_graphql_retries_on_429_and_succeeds():
    """Verify _post_graphql retries after HTTP 429 and eventually returns the data object."""
    client = _build_client()
    first = _response(429, headers={"Retry-After": "1"})
    second = _response(200, payload={"data": {"search": {}}})

    client._session.post = Mock(side_effect=[first, second])

    with patch("gh_pr_metrics.github_client.time.sleep") as sleep_mock:
        data = client._post_graphql("query", {})

    assert data == {"search": {}}
    assert client._session.post.call_count == 2
    sleep_mock.assert_called_once_with(1)


def test_post_graphql_retries_on_5xx_and_raises_after_max_retries():
    """Verify _post_graphql retries retryable server errors and raises ApiError after the limit."""
    client = _build_client()
    server_error = _response(502, text="bad gateway")
    client._session.post = Mock(side_effect=[server_error] * client._MAX_RETRIES)

    with patch("gh_pr_metrics.github_client.time.sleep") as sleep_mock:
        with pytest.raises(ApiError):
            client._post_graphql("query", {})

    assert client._session.post.call_count == client._MAX_RETRIES
    assert sleep_mock.call_count == client._MAX_RETRIES - 1


def test_post_graphql_connection_errors_raise_api_error_after_retries():
    """Verify repeated connection failures surface as ApiError."""
    client = _build_client()
    client._session.post = Mock(side_effect=requests.ConnectionError("down"))

    with patch("gh_pr_metrics.github_client.time.sleep"):
        with pytest.raises(ApiError):
            client._post_graphql("query", {})

    assert client._session.post.call_count == client._MAX_RETRIES


def test_post_graphql_unauthorized_raises_authentication_error():
    """Verify HTTP 401 is reported as an authentication failure without retrying."""
    client = _build_client()
    client._session.post = Mock(return_value=_response(401, text="Bad credentials"))

    with pytest.raises(AuthenticationError):
        client._post_graphql("query", {})

    assert client._session.post.call_count == 1


def test_post_graphql_graphql_errors_raise_api_error():
    """Verify GraphQL-level errors in a 200 response raise ApiError."""
    client = _build_client()
    client._session.post = Mock(
        return_value=_response(200, payload={"errors": [{"message": "Could not resolve to a Repository"}]})
    )

    with pytest.raises(ApiError, match="Could not resolve"):
        client._post_graphql("query", {})


def test_search_page_sends_variables_and_reads_page_info():
    """Verify search_page passes query, page size and cursor and returns continuation state."""
    client = _build_client()
    client._post_graphql = Mock(return_value=_search_payload([{"__typename": "Issue"}], "abc", True)["data"])

    page = client.search_page(ISSUE_SEARCH_QUERY, "repo:octo/repo is:issue", "cursor-1")

    assert page == SearchPage(nodes=[{"__typename": "Issue"}], endCursor="abc", hasNextPage=True)
    client._post_graphql.assert_called_once_with(
        ISSUE_SEARCH_QUERY,
        {"searchQuery": "repo:octo/repo is:issue", "pageSize": client._PAGE_SIZE, "cursor": "cursor-1"},
    )


def test_fetch_pull_requests_follows_cursor_and_drops_other_kinds():
    """Verify pull request fetching pages by cursor and keeps only PullRequest nodes."""
    client = _build_client()
    client._post_graphql = Mock(
        side_effect=[
            _search_payload([_pr_node(1), {"__typename": "Issue", "number": 99}], "c1", True)["data"],
            _search_payload([{}, _pr_node(2)], None, False)["data"],
        ]
    )

    prs = client.fetch_pull_requests("repo:octo/repo is:pr")

    assert [pr.number for pr in prs] == [1, 2]
    first_call, second_call = client._post_graphql.call_args_list
    assert first_call.args[0] == PULL_REQUEST_SEARCH_QUERY
    assert first_call.args[1]["cursor"] is None
    assert second_call.args[1]["cursor"] == "c1"


def test_parse_pull_request_maps_nested_fields():
    """Verify nested review, comment, commit and timeline payloads are mapped onto the model."""
    client = _build_client()

    pr = client._parse_pull_request(_pr_node(7))

    assert pr.number == 7
    assert pr.createdAt == datetime(2026, 1, 1, 10, 0, tzinfo=timezone.utc)
    assert pr.firstCommitDate == datetime(2026, 1, 1, 9, 0, tzinfo=timezone.utc)
    assert pr.statusCheckRollup == "SUCCESS"
    assert pr.author.login == "alice"
    assert pr.reviews[0].author.login == "bob"
    assert pr.comments[0].author.login == "carol"
    assert pr.reviewThreadComments[0][0].createdAt == datetime(2026, 1, 1, 10, 40, tzinfo=timezone.utc)
    assert pr.reviewRequestedCount == 2
    assert pr.labels == ["bug"]


def test_parse_pull_request_tolerates_missing_nested_objects():
    """Verify null author, commits, rollup and collections parse to empty values instead of failing."""
    client = _build_client()
    node = _pr_node(
        8,
        mergedAt=None,
        author=None,
        firstCommit={"nodes": []},
        lastCommit={"nodes": [{"commit": {"statusCheckRollup": None}}]},
        reviews=None,
        comments={"nodes": None},
        reviewThreads={"nodes": [None]},
        timelineItems=None,
        additions=None,
    )

    pr = client._parse_pull_request(node)

    assert pr.mergedAt is None
    assert pr.author is None
    assert pr.firstCommitDate is None
    assert pr.statusCheckRollup is None
    assert pr.reviews == []
    assert pr.comments == []
    assert pr.reviewThreadComments == []
    assert pr.reviewRequestedCount == 0
    assert pr.additions == 0


def test_parse_pull_request_without_number_raises_api_error():
    """Verify a node with no number is rejected as malformed."""
    client = _build_client()

    with pytest.raises(ApiError):
        client._parse_pull_request({"__typename": "PullRequest", "title": "x"})


def test_fetch_issues_parses_labels_and_close_date():
    """Verify issue fetching maps labels, author and close timestamp."""
    client = _build_client()
    issue_node = {
        "__typename": "Issue",
        "number": 3,
        "title": "Crash on start",
        "createdAt": "2026-02-01T00:00:00Z",
        "closedAt": "2026-02-03T00:00:00Z",
        "state": "CLOSED",
        "author": {"login": "dave", "__typename": "User"},
        "labels": {"nodes": [{"name": "bug"}, {"name": "P1"}]},
    }
    client._post_graphql = Mock(
        return_value=_search_payload([issue_node, _pr_node(4)])["data"]
    )

    issues = client.fetch_issues("repo:octo/repo is:issue is:closed")

    assert len(issues) == 1
    assert issues[0].labels == ["bug", "P1"]
    assert issues[0].author.login == "dave"
    assert issues[0].closedAt == datetime(2026, 2, 3, tzinfo=timezone.utc)
