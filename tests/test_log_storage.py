"""Tests for the session log writer and reader."""

import json
import multiprocessing
from datetime import datetime, timedelta, timezone
from pathlib import Path
from unittest.mock import patch

import pandas as pd
import pytest

from issuesmonitor.errors import LogReadError, PersistenceError
from issuesmonitor.session.record import IssueType, SessionRecord, User
from issuesmonitor.storage.log_reader import format_results, read_records, summarize
from issuesmonitor.storage.log_writer import LogWriter, default_log_path

T0 = datetime(2024, 3, 4, 9, 0, 0, tzinfo=timezone.utc)


def make_record(issue_id=111, minutes=30, issue_type=IssueType.BUG, offset_hours=0):
    record = SessionRecord(project_id="632", issue_id=issue_id)
    start = T0 + timedelta(hours=offset_hours)
    record.start(start)
    record.issue_type = issue_type
    record.estimated_hours = 2.0
    record.assigned_user = User(id=7, first_name="Ada", last_name="Lovelace")
    record.finalize(start + timedelta(minutes=minutes))
    return record


def append_from_process(data_dir, first_issue_id, count):
    writer = LogWriter(data_dir=data_dir, hostname="testhost")
    for issue_id in range(first_issue_id, first_issue_id + count):
        record = make_record(issue_id=issue_id)
        record.project_id = f"project-{first_issue_id // 50}"
        writer.append(record)


class TestLogWriter:
    """Test suite for appending records."""

    @pytest.fixture
    def writer(self, tmp_path):
        return LogWriter(data_dir=tmp_path / "data", hostname="testhost")

    def test_default_path_is_host_keyed(self, tmp_path, monkeypatch):
        monkeypatch.chdir(tmp_path)

        with patch("issuesmonitor.storage.log_writer.socket.gethostname", return_value="workstation"):
            path = default_log_path()

        assert path == tmp_path / "data" / "workstation"

    def test_creates_directory_and_file(self, writer, tmp_path):
        path = writer.append(make_record())

        assert path == tmp_path / "data" / "testhost"
        content = path.read_text()
        assert content.endswith("\n")
        assert content.count("\n") == 1
        assert json.loads(content)["issue_id"] == 111

    def test_existing_file_only_grows(self, writer):
        path = writer.log_path()
        path.parent.mkdir(parents=True)
        path.write_text('{"existing":"line"}\n')

        writer.append(make_record(issue_id=1))
        after_first = path.read_text()
        writer.append(make_record(issue_id=2))
        after_second = path.read_text()

        assert after_first.startswith('{"existing":"line"}\n')
        assert after_second.startswith(after_first)
        assert len(after_second.splitlines()) == 3

    def test_concurrent_processes_keep_lines_intact(self, writer):
        """Separate invocations on one host share the log without mixing lines."""
        processes = [
            multiprocessing.Process(target=append_from_process, args=(str(writer.data_dir), first, 50))
            for first in range(0, 200, 50)
        ]
        for process in processes:
            process.start()
        for process in processes:
            process.join(timeout=60)

        assert [p.exitcode for p in processes] == [0, 0, 0, 0]
        lines = writer.log_path().read_text().splitlines()
        assert len(lines) == 200
        records = [SessionRecord.from_json_line(line) for line in lines]
        assert sorted(r.issue_id for r in records) == list(range(200))
        assert all(r.project_id == f"project-{r.issue_id // 50}" for r in records)

    def test_directory_failure_carries_record(self, tmp_path):
        blocker = tmp_path / "blocker"
        blocker.write_text("not a directory")
        writer = LogWriter(data_dir=blocker / "data", hostname="testhost")
        record = make_record()

        with pytest.raises(PersistenceError) as excinfo:
            writer.append(record)

        assert excinfo.value.record is record
        assert isinstance(excinfo.value.cause, OSError)
        assert "could not save data" in str(excinfo.value)

    def test_write_failure_carries_record(self, writer):
        record = make_record()

        with patch("issuesmonitor.storage.log_writer.os.fsync", side_effect=OSError(28, "No space left on device")):
            with pytest.raises(PersistenceError) as excinfo:
                writer.append(record)

        assert excinfo.value.record is record
        assert "No space left" in str(excinfo.value)


class TestLogReader:
    """Test suite for replaying the log."""

    def write_log(self, tmp_path: Path, content: str) -> Path:
        path = tmp_path / "testhost"
        path.write_text(content)
        return path

    def test_empty_file(self, tmp_path):
        path = self.write_log(tmp_path, "")

        assert list(read_records(path)) == []

    def test_single_line(self, tmp_path):
        record = make_record()
        path = self.write_log(tmp_path, record.to_json_line() + "\n")

        assert list(read_records(path)) == [record]

    def test_partial_final_line_skipped(self, tmp_path):
        complete = make_record(issue_id=1).to_json_line() + "\n"
        partial = make_record(issue_id=2).to_json_line()[:40]
        path = self.write_log(tmp_path, complete + partial)

        records = list(read_records(path))

        assert [r.issue_id for r in records] == [1]

    def test_unterminated_but_complete_line_skipped(self, tmp_path):
        path = self.write_log(tmp_path, make_record().to_json_line())

        assert list(read_records(path)) == []

    def test_malformed_complete_line(self, tmp_path):
        good = make_record().to_json_line() + "\n"
        path = self.write_log(tmp_path, good + "{not json}\n" + good)

        with pytest.raises(LogReadError) as excinfo:
            list(read_records(path))

        assert excinfo.value.line_number == 2

    def test_reads_what_writer_appends(self, tmp_path):
        writer = LogWriter(data_dir=tmp_path, hostname="testhost")
        written = [make_record(issue_id=i) for i in (1, 2, 3)]
        for record in written:
            writer.append(record)

        assert list(read_records(writer.log_path())) == written


class TestSummary:

    def test_summarize_per_issue(self):
        records = [
            make_record(issue_id=111, minutes=30, offset_hours=0),
            make_record(issue_id=222, minutes=15, issue_type=IssueType.GENERAL, offset_hours=1),
            make_record(issue_id=111, minutes=90, offset_hours=2),
        ]

        df = summarize(records)

        assert list(df["issue_id"]) == [111, 222]
        first = df.iloc[0]
        assert first["sessions"] == 2
        assert first["spent_hours"] == pytest.approx(2.0)
        assert first["type"] == "BUG"
        assert df.iloc[1]["type"] == "N/A"

    def test_summarize_empty(self):
        df = summarize([])

        assert df.empty
        assert list(df.columns) == ["issue_id", "project_id", "type", "sessions", "spent_hours",
                                    "estimated_hours", "last_end_time"]

    def test_format_results(self):
        df = summarize([make_record()])

        table_output = format_results(df, format="table")
        assert "111" in table_output

        csv_output = format_results(df, format="csv")
        assert csv_output.startswith("issue_id,project_id,type,sessions,spent_hours")

        json_output = format_results(df, format="json")
        assert json.loads(json_output)[0]["issue_id"] == 111
        assert isinstance(df, pd.DataFrame)
