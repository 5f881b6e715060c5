"""Commit message suggestion for a finished session."""

from issuesmonitor.session.record import SessionRecord

MIN_LOGGED_HOURS = 0.01


def format_close_issue(record: SessionRecord) -> str:
    return f"closes #{record.issue_id}"


def format_log_time(record: SessionRecord) -> str:
    # Floor applies to the suggestion only, never to the persisted record
    hours = max(record.spent_hours, MIN_LOGGED_HOURS)
    return f"@{hours:.8f}"


def commit_message_suggestion(record: SessionRecord) -> str:
    return f'svn commit -m "{format_close_issue(record)} {format_log_time(record)}"'
