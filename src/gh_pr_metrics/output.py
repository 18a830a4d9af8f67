"""JSON and CSV persistence of derived metrics."""

from __future__ import annotations

import csv
import json
import logging
from dataclasses import asdict
from datetime import date, datetime, timezone
from pathlib import Path
from typing import Any, Dict, List, Optional, Sequence, Tuple

from .models import IssueLabelSummary, PullRequestMetrics

logger = logging.getLogger(__name__)

PULL_REQUEST_CSV_COLUMNS: List[Tuple[str, str]] = [
    ("number", "PR Number"),
    ("title", "Title"),
    ("state", "State"),
    ("ci_passed", "CI Passed"),
    ("is_large", "Is Large PR"),
    ("publish_to_merge", "Publish to Merge (mins)"),
    ("lead_time_for_changes", "Lead Time for Changes (mins)"),
    ("time_to_first_review", "Time to First Review (mins)"),
    ("time_to_first_comment", "Time to First Comment (mins)"),
    ("review_cycles", "Review Cycles"),
]

ISSUE_CSV_COLUMNS: List[Tuple[str, str]] = [
    ("number", "Issue Number"),
    ("title", "Title"),
    ("author", "Author"),
    ("createdAt", "Created At"),
    ("closedAt", "Closed At"),
    ("labels", "Labels"),
]


def _output_paths(output_dir: str, basename: str, append_date: bool, today: Optional[date]) -> Tuple[Path, Path]:
    folder = Path(output_dir)
    folder.mkdir(parents=True, exist_ok=True)

    suffix = ""
    if append_date:
        suffix = f"-{(today or datetime.now(timezone.utc).date()).isoformat()}"
    return folder / f"{basename}{suffix}.json", folder / f"{basename}{suffix}.csv"


def _json_default(value: Any) -> Any:
    if isinstance(value, datetime):
        return value.isoformat().replace("+00:00", "Z")
    raise TypeError(f"Object of type {type(value).__name__} is not JSON serializable")


def _csv_value(value: Any) -> Any:
    if value is None:
        return ""
    if isinstance(value, datetime):
        return value.isoformat().replace("+00:00", "Z")
    return value


def _write_csv(path: Path, columns: List[Tuple[str, str]], rows: Sequence[Dict[str, Any]]) -> None:
    with path.open("w", newline="", encoding="utf-8") as csvfile:
        writer = csv.writer(csvfile)
        writer.writerow([title for _, title in columns])
        for row in rows:
            writer.writerow([_csv_value(row.get(key)) for key, _ in columns])


def save_pull_request_results(
    records: Sequence[PullRequestMetrics],
    output_dir: str,
    append_date: bool = True,
    today: Optional[date] = None,
) -> Tuple[Path, Path]:
    """Write pull request records to ``metrics[-DATE].json`` and ``.csv``.

    Absent durations are written as JSON ``null`` and as empty CSV cells.

    Returns:
        The ``(json_path, csv_path)`` that were written.
    """
    json_path, csv_path = _output_paths(output_dir, "metrics", append_date, today)
    rows = [asdict(record) for record in records]

    json_path.write_text(json.dumps(rows, indent=2), encoding="utf-8")
    _write_csv(csv_path, PULL_REQUEST_CSV_COLUMNS, rows)

    logger.info(
        "Saved pull request metrics",
        extra={"json_path": str(json_path), "csv_path": str(csv_path), "rows": len(rows)},
    )
    return json_path, csv_path


def save_issue_results(
    summary: IssueLabelSummary,
    output_dir: str,
    append_date: bool = True,
    today: Optional[date] = None,
) -> Tuple[Path, Path]:
    """Write the issue label summary to JSON and its detail rows to CSV.

    Returns:
        The ``(json_path, csv_path)`` that were written.
    """
    json_path, csv_path = _output_paths(output_dir, "issue-metrics", append_date, today)

    json_path.write_text(json.dumps(asdict(summary), indent=2, default=_json_default), encoding="utf-8")

    rows = []
    for record in summary.issue_details:
        row = asdict(record)
        row["labels"] = ", ".join(record.labels)
        rows.append(row)
    _write_csv(csv_path, ISSUE_CSV_COLUMNS, rows)

    logger.info(
        "Saved issue metrics",
        extra={"json_path": str(json_path), "csv_path": str(csv_path), "rows": len(rows)},
    )
    return json_path, csv_path
