"""Append-only, host-keyed session log."""

import os
import socket
from pathlib import Path
from typing import Optional, Union
import logging

from issuesmonitor.errors import PersistenceError
from issuesmonitor.session.record import SessionRecord

logger = logging.getLogger(__name__)

LINE_SEPARATOR = "\n"
DATA_DIR = "data"


def default_log_path(data_dir: Optional[Union[str, Path]] = None, hostname: Optional[str] = None) -> Path:
    """Return <data_dir>/<hostname>, with data_dir defaulting to ./data."""
    directory = Path(data_dir) if data_dir else Path.cwd() / DATA_DIR
    return directory / (hostname or socket.gethostname())


class LogWriter:
    """
    Appends one JSON line per session to the host's log file.

    Each append is a single buffered write followed by fsync, so lines from
    concurrent processes on the same host stay intact; their order is not
    guaranteed.
    """

    def __init__(self, data_dir: Optional[Union[str, Path]] = None, hostname: Optional[str] = None):
        self.data_dir = Path(data_dir) if data_dir else None
        self.hostname = hostname

    def log_path(self) -> Path:
        return default_log_path(self.data_dir, self.hostname)

    def append(self, record: SessionRecord) -> Path:
        """
        Append record to the log, creating directory and file on first use.

        Returns:
            Path of the log file

        Raises:
            PersistenceError: If any filesystem step fails
        """
        path = None
        try:
            path = self.log_path()
            line = record.to_json_line() + LINE_SEPARATOR

            path.parent.mkdir(parents=True, exist_ok=True)
            path.touch(exist_ok=True)

            with open(path, "a", encoding="utf-8") as f:
                f.write(line)
                f.flush()
                os.fsync(f.fileno())
        except (OSError, TypeError, ValueError) as e:
            raise PersistenceError(record, str(path or self.data_dir or DATA_DIR), e) from e

        logger.debug(f"Appended {len(line)} bytes to {path}")
        return path
