"""Entry point and orchestration for the GitHub PR metrics collector."""

from __future__ import annotations

import logging
import sys
from typing import Optional, Sequence

from dotenv import load_dotenv

from .cli import parse_args
from .config import Config, load_config
from .errors import ApiError, AuthenticationError, ConfigurationError, DataValidationError
from .filters import exclude_hotfixes
from .github_client import GitHubClient
from .metrics import collect_issue_records, collect_pull_request_metrics
from .output import save_issue_results, save_pull_request_results
from .pagination import ISSUE_KIND, PULL_REQUEST_KIND, build_search_query
from .stats import generate_issue_report, generate_report, summarize_issues, summarize_pull_requests

logger = logging.getLogger(__name__)

EXIT_SUCCESS = 0
EXIT_UNEXPECTED_ERROR = 1
EXIT_CONFIGURATION_ERROR = 2
EXIT_AUTHENTICATION_ERROR = 3
EXIT_API_ERROR = 4
EXIT_DATA_VALIDATION_ERROR = 5


def configure_logging(verbose: bool = False) -> None:
    """Configure root logging once for the command-line run."""
    if verbose:
        log_format = "%(asctime)s - %(name)s - %(levelname)s - %(filename)s:%(lineno)d - %(message)s"
    else:
        log_format = "%(asctime)s - %(levelname)s - %(message)s"

    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO,
        format=log_format,
        datefmt="%Y-%m-%d %H:%M:%S",
    )


def run_pull_request_metrics(github_client: GitHubClient, config: Config) -> None:
    search_query = build_search_query(config.repository, PULL_REQUEST_KIND, days=config.days)
    print(f"Fetching pull requests for '{config.repository}' (query: {search_query})...")

    prs = github_client.fetch_pull_requests(search_query)
    print(f"Found {len(prs)} pull requests.")

    if config.exclude_hotfixes:
        prs = exclude_hotfixes(prs)

    records = collect_pull_request_metrics(prs, config)
    summary = summarize_pull_requests(records, prs)

    json_path, csv_path = save_pull_request_results(records, config.output_dir, append_date=config.append_date)
    print(f"Results saved to {json_path} and {csv_path}")
    print()
    print(generate_report(config.repository, summary))


def run_issue_metrics(github_client: GitHubClient, config: Config) -> None:
    search_query = build_search_query(config.repository, ISSUE_KIND, days=config.days)
    print(f"Fetching closed issues for '{config.repository}' (query: {search_query})...")
    print(f"Looking for labels: {', '.join(config.labels)}")

    issues = github_client.fetch_issues(search_query)
    print(f"Found {len(issues)} closed issues.")

    records = collect_issue_records(issues, config.labels)
    summary = summarize_issues(records, config.labels)

    json_path, csv_path = save_issue_results(summary, config.output_dir, append_date=config.append_date)
    print(f"Results saved to {json_path} and {csv_path}")
    print()
    print(generate_issue_report(summary))


def orchestrate_metrics_collection(argv: Optional[Sequence[str]] = None) -> int:
    """Run one metrics collection and map failures to exit codes.

    Exit codes: 0 success, 1 unexpected error, 2 configuration error,
    3 authentication error, 4 API error, 5 invalid API data.
    """
    try:
        args = parse_args(argv)
        configure_logging(args.verbose)
        load_dotenv()

        config = load_config(
            repository=args.repo,
            days=args.days,
            exclude_hotfixes=args.exclude_hotfixes,
            large_loc_threshold=args.large_loc_threshold,
            large_files_threshold=args.large_files_threshold,
            issues=args.issues,
            labels=args.labels,
            append_date=args.date,
            output_dir=args.output_dir,
        )
        github_client = GitHubClient(config=config)

        if config.issues:
            run_issue_metrics(github_client, config)
        else:
            run_pull_request_metrics(github_client, config)
        return EXIT_SUCCESS
    except ConfigurationError as exc:
        logger.error("Configuration error: %s", exc)
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_CONFIGURATION_ERROR
    except AuthenticationError as exc:
        logger.error("Authentication error: %s", exc)
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_AUTHENTICATION_ERROR
    except ApiError as exc:
        logger.error("GitHub API error: %s", exc)
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_API_ERROR
    except DataValidationError as exc:
        logger.error("Invalid API data: %s", exc)
        print(f"ERROR: {exc}", file=sys.stderr)
        return EXIT_DATA_VALIDATION_ERROR
    except Exception:
        logger.exception("Unexpected error during metrics collection")
        print("ERROR: Unexpected error during metrics collection.", file=sys.stderr)
        return EXIT_UNEXPECTED_ERROR


def main() -> None:
    sys.exit(orchestrate_metrics_collection())


if __name__ == "__main__":
    main()
