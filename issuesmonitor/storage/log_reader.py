"""Replay and summarize a host-keyed session log."""

import json
from pathlib import Path
from typing import Iterable, Iterator, Union
import logging

import pandas as pd

from issuesmonitor.errors import LogReadError
from issuesmonitor.session.record import SessionRecord
from issuesmonitor.storage.log_writer import LINE_SEPARATOR

logger = logging.getLogger(__name__)

SUMMARY_COLUMNS = ["issue_id", "project_id", "type", "sessions", "spent_hours", "estimated_hours", "last_end_time"]


def read_records(path: Union[str, Path]) -> Iterator[SessionRecord]:
    """
    Yield the records of a session log in file order.

    A final line without a line separator is an append still in progress
    (or one that never completed) and ends the stream.

    Raises:
        LogReadError: If a complete line cannot be decoded
    """
    with open(path, "r", encoding="utf-8", newline="") as f:
        for line_number, line in enumerate(f, start=1):
            if not line.endswith(LINE_SEPARATOR):
                logger.warning(f"Ignoring unterminated final line {line_number} in {path}")
                return
            try:
                yield SessionRecord.from_json_line(line)
            except (json.JSONDecodeError, KeyError, TypeError, ValueError) as e:
                raise LogReadError(str(path), line_number, e) from e


def summarize(records: Iterable[SessionRecord]) -> pd.DataFrame:
    """
    Aggregate sessions per issue.

    Returns:
        One row per issue with session count, total spent hours and the
        latest estimate, most recently worked issues first
    """
    rows = [
        {
            "issue_id": r.issue_id,
            "project_id": r.project_id,
            "type": r.issue_type.value,
            "spent_hours": r.spent_hours,
            "estimated_hours": r.estimated_hours,
            "end_time": r.end_time,
        }
        for r in records
    ]
    if not rows:
        return pd.DataFrame(columns=SUMMARY_COLUMNS)

    df = pd.DataFrame(rows)
    summary = (
        df.groupby("issue_id", as_index=False)
        .agg(
            project_id=("project_id", "last"),
            type=("type", "last"),
            sessions=("spent_hours", "size"),
            spent_hours=("spent_hours", "sum"),
            estimated_hours=("estimated_hours", "last"),
            last_end_time=("end_time", "max"),
        )
        .sort_values("last_end_time", ascending=False)
        .reset_index(drop=True)
    )
    return summary[SUMMARY_COLUMNS]


def format_results(df: pd.DataFrame, format: str = "table") -> str:
    """
    Format a summary for display.

    Args:
        df: Summary DataFrame
        format: Output format (table, json, csv)
    """
    if format == "json":
        return df.to_json(orient="records", indent=2, date_format="iso")
    elif format == "csv":
        return df.to_csv(index=False)
    else:  # table
        return df.to_string(index=False)
