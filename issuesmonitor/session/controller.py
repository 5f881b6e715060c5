"""Session controller - times one self-assigned issue from start to stop signal."""

import time
from concurrent.futures import ThreadPoolExecutor
from datetime import datetime, timedelta
from enum import Enum
from typing import Callable, Optional
import logging

from issuesmonitor.connectors.redmine_api import Assignment, RedmineConnector
from issuesmonitor.errors import PersistenceError, RemoteError
from issuesmonitor.session.record import IssueType, SessionRecord, classify
from issuesmonitor.session.stop_signal import StopSignal
from issuesmonitor.storage.log_writer import LogWriter

logger = logging.getLogger(__name__)


def local_now() -> datetime:
    return datetime.now().astimezone()


class SessionState(Enum):
    IDLE = "idle"
    AWAITING_REMOTE_AND_SIGNAL = "awaiting_remote_and_signal"
    FINALIZING = "finalizing"
    PERSISTED = "persisted"
    ABORTED = "aborted"


class SessionController:
    """
    Runs a single work session.

    The remote self-assignment runs on a worker thread while the stop
    signal is armed. The controller waits on the assignment first and
    aborts as soon as it fails; otherwise it waits for the stop signal,
    finalizes the record and appends it to the log exactly once.

    The worker only returns what the tracker reported and the signal
    handler only records its instant; this thread is the sole writer of
    the record.
    """

    def __init__(
        self,
        connector: RedmineConnector,
        writer: LogWriter,
        clock: Callable[[], datetime] = local_now,
        stop_signal: Optional[StopSignal] = None,
        install_signal_handlers: bool = True,
        monotonic: Callable[[], float] = time.monotonic
    ):
        self.connector = connector
        self.writer = writer
        self.clock = clock
        self.monotonic = monotonic
        self.stop_signal = stop_signal or StopSignal(monotonic)
        self.install_signal_handlers = install_signal_handlers
        self.state = SessionState.IDLE

    def run(
        self,
        record: SessionRecord,
        fallback_estimate: float = 0.0,
        fallback_type: IssueType = IssueType.GENERAL
    ) -> SessionRecord:
        """
        Run the session to completion.

        Args:
            record: Record with project and issue identity filled in
            fallback_estimate: Hours to record when the issue has no estimate
            fallback_type: Type to record when the issue has no classification

        Returns:
            The persisted, sealed record

        Raises:
            RemoteError: If the self-assignment failed; nothing is written
            PersistenceError: If the log append failed; carries the record
        """
        if self.state is not SessionState.IDLE:
            raise RuntimeError(f"Session controller already used (state {self.state.value})")

        if self.install_signal_handlers:
            self.stop_signal.install()
        try:
            record.start(self.clock())
            started_at = self.monotonic()
            self.state = SessionState.AWAITING_REMOTE_AND_SIGNAL
            logger.info(f"Session started for issue #{record.issue_id} at {record.start_time.isoformat()}")

            assignment = self._await_assignment(record)
            self._apply_assignment(record, assignment, fallback_estimate, fallback_type)

            if not self.stop_signal.is_set():
                logger.info("Working... press Ctrl+C to stop the timer")
            stopped_at = self.stop_signal.wait()

            self.state = SessionState.FINALIZING
            # Elapsed time is monotonic; end_time never precedes start_time
            elapsed = max(stopped_at - started_at, 0.0)
            record.finalize(record.start_time + timedelta(seconds=elapsed))
            logger.info(f"Session stopped after {record.spent_hours:.4f}h")

            self._persist(record)
            return record
        except BaseException:
            if self.state is not SessionState.PERSISTED:
                self.state = SessionState.ABORTED
            raise
        finally:
            if self.install_signal_handlers:
                self.stop_signal.restore()

    def _await_assignment(self, record: SessionRecord) -> Assignment:
        with ThreadPoolExecutor(max_workers=1, thread_name_prefix="redmine") as executor:
            future = executor.submit(self.connector.assign_to_self, record.issue_id, record.project_id)
            try:
                return future.result()
            except RemoteError as e:
                logger.error(f"Self-assignment of issue #{record.issue_id} failed: {e}")
                raise

    def _apply_assignment(
        self,
        record: SessionRecord,
        assignment: Assignment,
        fallback_estimate: float,
        fallback_type: IssueType
    ) -> None:
        issue = assignment.issue
        record.assigned_user = assignment.user
        record.estimated_hours = issue.estimated_hours if issue.estimated_hours is not None else fallback_estimate
        record.issue_type = classify(issue.classification) if issue.classification else fallback_type
        record.parent_id = issue.parent_id

    def _persist(self, record: SessionRecord) -> None:
        try:
            path = self.writer.append(record)
        except PersistenceError as e:
            logger.error(f"Could not persist session record: {e}")
            raise
        record.seal()
        self.state = SessionState.PERSISTED
        logger.info(f"Session record appended to {path}")
