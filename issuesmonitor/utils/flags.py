"""Input flags and their validation rules."""

import re
from dataclasses import dataclass
from enum import Enum
from typing import Dict, List, Optional

from issuesmonitor.errors import ValidationError
from issuesmonitor.session.record import IssueType, UNSET_ISSUE_ID

_DURATION_PART = re.compile(r"(\d+(?:\.\d+)?)([hms])")
_UNIT_HOURS = {"h": 1.0, "m": 1.0 / 60, "s": 1.0 / 3600}


def parse_duration_hours(value: str) -> float:
    """
    Parse a duration into hours.

    Accepts unit strings like "1h30m", "90m", "1.5h", "45s" or a bare
    number, which is read as hours.

    Raises:
        ValueError: If the value is not a duration
    """
    text = value.strip().lower()
    if not text:
        raise ValueError("empty duration")
    try:
        hours = float(text)
    except ValueError:
        parts = _DURATION_PART.findall(text)
        if not parts or "".join(n + u for n, u in parts) != text:
            raise ValueError(f"invalid duration {value!r}")
        hours = sum(float(number) * _UNIT_HOURS[unit] for number, unit in parts)
    if hours < 0:
        raise ValueError(f"negative duration {value!r}")
    return hours


class Rule(Enum):
    """Validation rules a flag can declare."""
    NON_EMPTY = "non-empty"
    ISSUE_ID = "issue-id"
    DURATION = "duration"
    ISSUE_TYPE = "issue-type"

    def check(self, value: str) -> Optional[str]:
        """Return None if value satisfies the rule, otherwise the reason it does not."""
        value = value.strip()
        if not value:
            return "value is required"

        if self is Rule.ISSUE_ID:
            try:
                issue_id = int(value)
            except ValueError:
                return f"{value!r} is not an integer"
            if issue_id == UNSET_ISSUE_ID:
                return "value is required"
        elif self is Rule.DURATION:
            try:
                parse_duration_hours(value)
            except ValueError as e:
                return str(e)
        elif self is Rule.ISSUE_TYPE:
            try:
                IssueType.from_name(value)
            except KeyError:
                choices = ", ".join(t.name for t in IssueType)
                return f"{value!r} is not one of {choices}"
        return None


@dataclass(frozen=True)
class Flag:
    """A user-settable input."""
    name: str
    usage: str
    default: str
    rule: Rule

    def validate(self, value: Optional[str]) -> Optional[str]:
        reason = self.rule.check(self.default if value is None else value)
        if reason:
            return f"--{self.name}: {reason} (provide {self.usage})"
        return None


PROJECT_ID = Flag("project-id", "project identifier", "", Rule.NON_EMPTY)
ISSUE_ID = Flag("issue-id", "Redmine issue identifier", str(UNSET_ISSUE_ID), Rule.ISSUE_ID)
API_KEY = Flag("api-key", "your Redmine api key", "", Rule.NON_EMPTY)
REDMINE_BASE_URL = Flag("redmine-base-url", "Redmine base URL", "", Rule.NON_EMPTY)
ESTIMATED_TIME = Flag("estimated-time", "estimated time, e.g. 1h30m", "0h", Rule.DURATION)
ISSUE_TYPE = Flag("type", "issue type", IssueType.GENERAL.name, Rule.ISSUE_TYPE)

FLAGS: List[Flag] = [PROJECT_ID, ISSUE_ID, API_KEY, REDMINE_BASE_URL, ESTIMATED_TIME, ISSUE_TYPE]


def validate_flags(values: Dict[str, Optional[str]]) -> Dict[str, str]:
    """
    Validate every declared flag.

    Args:
        values: Raw textual values keyed by flag name; None means unset

    Returns:
        Values keyed by flag name with defaults applied

    Raises:
        ValidationError: Listing every flag that failed
    """
    problems = []
    resolved = {}
    for flag in FLAGS:
        raw = values.get(flag.name)
        reason = flag.validate(raw)
        if reason:
            problems.append(reason)
        resolved[flag.name] = (flag.default if raw is None else raw).strip()
    if problems:
        raise ValidationError(problems)
    return resolved
