"""Exceptions raised by issuesmonitor."""

from typing import List, Optional


class IssuesMonitorError(Exception):
    """Base class for all issuesmonitor errors."""
    pass


class ValidationError(IssuesMonitorError):
    """Missing or malformed user input, raised before any session work starts."""

    def __init__(self, problems: List[str]):
        self.problems = problems
        super().__init__("; ".join(problems))


class RemoteError(IssuesMonitorError):
    """Transport failure or non-success response from the issue tracker."""

    def __init__(self, message: str, url: str = "", status: Optional[int] = None, body: str = ""):
        self.url = url
        self.status = status
        self.body = body
        super().__init__(message)

    @classmethod
    def from_response(cls, context: str, url: str, status: int, body: str) -> "RemoteError":
        """Build the error for a non-success response."""
        return cls(f"{context}: status code {status} - {body}", url=url, status=status, body=body)


class PersistenceError(IssuesMonitorError):
    """Failure while appending a record to the log; carries the record for recovery."""

    def __init__(self, record, path: str, cause: Exception):
        self.record = record
        self.path = path
        self.cause = cause
        super().__init__(f"could not save data to {path}: {cause}")


class LogReadError(IssuesMonitorError):
    """A complete log line that could not be decoded."""

    def __init__(self, path: str, line_number: int, cause: Exception):
        self.path = path
        self.line_number = line_number
        super().__init__(f"{path}:{line_number}: malformed record: {cause}")


class RecordSealedError(IssuesMonitorError):
    """Attempt to modify a session record after it was persisted."""
    pass
