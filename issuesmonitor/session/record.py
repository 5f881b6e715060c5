"""Session record model - one record per timed work session."""

import json
from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Any, Dict, Optional

from issuesmonitor.errors import RecordSealedError

UNSET_ISSUE_ID = -1


class IssueType(str, Enum):
    """Work classification derived from the tracker's free-text field."""
    CODE_SMELL = "CODE_SMELL"
    BUG = "BUG"
    VULNERABILITY = "VULNERABILITY"
    GENERAL = "N/A"

    @classmethod
    def from_name(cls, name: str) -> "IssueType":
        """Look up a type by member name, case-insensitive."""
        return cls[name.strip().upper()]


# Checked in order, first match wins
_CLASSIFICATION_MARKERS = [
    ("smell", IssueType.CODE_SMELL),
    ("bug", IssueType.BUG),
    ("vulnerabilit", IssueType.VULNERABILITY),
]


def classify(text: Optional[str]) -> IssueType:
    """Map a free-text classification to an IssueType."""
    lowered = (text or "").lower()
    for marker, issue_type in _CLASSIFICATION_MARKERS:
        if marker in lowered:
            return issue_type
    return IssueType.GENERAL


@dataclass(frozen=True)
class User:
    """Tracker user as reported by the current-user endpoint."""
    id: int
    first_name: str = ""
    last_name: str = ""

    def to_dict(self) -> Dict[str, Any]:
        return {"id": self.id, "first_name": self.first_name, "last_name": self.last_name}

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "User":
        return cls(
            id=int(data["id"]),
            first_name=data.get("first_name", ""),
            last_name=data.get("last_name", ""),
        )


@dataclass
class SessionRecord:
    """
    Description of one work session.

    Identity fields come from user input, estimate/type/user from the
    remote assignment, and time fields from the stop signal. Once the
    record has been appended to the log it is sealed and further
    assignments raise RecordSealedError.
    """
    project_id: str
    issue_id: int = UNSET_ISSUE_ID
    issue_type: IssueType = IssueType.GENERAL
    parent_id: Optional[int] = None
    estimated_hours: float = 0.0
    spent_hours: float = 0.0
    start_time: Optional[datetime] = None
    end_time: Optional[datetime] = None
    assigned_user: Optional[User] = None
    _sealed: bool = field(default=False, init=False, repr=False, compare=False)

    def __setattr__(self, name: str, value: Any) -> None:
        if getattr(self, "_sealed", False):
            raise RecordSealedError(f"Record for issue #{self.issue_id} is already persisted")
        super().__setattr__(name, value)

    @property
    def is_finalized(self) -> bool:
        return self.start_time is not None and self.end_time is not None

    @property
    def is_sealed(self) -> bool:
        return self._sealed

    def start(self, start_time: datetime) -> None:
        self.start_time = start_time

    def finalize(self, end_time: datetime) -> None:
        """Close the session at end_time and compute spent hours."""
        if self.start_time is None:
            raise ValueError("Cannot finalize a session that was never started")
        if end_time < self.start_time:
            raise ValueError(
                f"Session end {end_time.isoformat()} precedes start {self.start_time.isoformat()}"
            )
        self.end_time = end_time
        self.spent_hours = (end_time - self.start_time).total_seconds() / 3600

    def seal(self) -> None:
        object.__setattr__(self, "_sealed", True)

    def to_dict(self) -> Dict[str, Any]:
        """Convert to the persisted log shape."""
        return {
            "project_id": self.project_id,
            "issue_id": self.issue_id,
            "type": self.issue_type.value,
            "parent": self.parent_id,
            "estimated_hours": self.estimated_hours,
            "spent_hours": self.spent_hours,
            "start_time": self.start_time.isoformat() if self.start_time else None,
            "end_time": self.end_time.isoformat() if self.end_time else None,
            "assigned_user": self.assigned_user.to_dict() if self.assigned_user else None,
        }

    def to_json_line(self) -> str:
        """Serialize to a single line of JSON, without the line separator."""
        return json.dumps(self.to_dict(), separators=(",", ":"))

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "SessionRecord":
        start_time = data.get("start_time")
        end_time = data.get("end_time")
        user = data.get("assigned_user")
        return cls(
            project_id=data["project_id"],
            issue_id=int(data["issue_id"]),
            issue_type=IssueType(data.get("type", IssueType.GENERAL.value)),
            parent_id=data.get("parent"),
            estimated_hours=float(data.get("estimated_hours") or 0.0),
            spent_hours=float(data.get("spent_hours") or 0.0),
            start_time=datetime.fromisoformat(start_time) if start_time else None,
            end_time=datetime.fromisoformat(end_time) if end_time else None,
            assigned_user=User.from_dict(user) if user else None,
        )

    @classmethod
    def from_json_line(cls, line: str) -> "SessionRecord":
        return cls.from_dict(json.loads(line))
