"""Tests for input flags and validation rules."""

import pytest

from issuesmonitor.errors import ValidationError
from issuesmonitor.utils import flags
from issuesmonitor.utils.flags import Rule, parse_duration_hours, validate_flags


def valid_values(**overrides):
    values = {
        "project-id": "632",
        "issue-id": "111",
        "api-key": "secret",
        "redmine-base-url": "https://redmine.example.com",
        "estimated-time": None,
        "type": None,
    }
    values.update(overrides)
    return values


class TestParseDuration:

    @pytest.mark.parametrize("text, hours", [
        ("1h30m", 1.5),
        ("90m", 1.5),
        ("1.5h", 1.5),
        ("2", 2.0),
        ("0h", 0.0),
        ("1h0m36s", 1.01),
    ])
    def test_valid(self, text, hours):
        assert parse_duration_hours(text) == pytest.approx(hours)

    @pytest.mark.parametrize("text", ["", "soon", "1x", "h", "1h soon", "-1"])
    def test_invalid(self, text):
        with pytest.raises(ValueError):
            parse_duration_hours(text)


class TestRules:

    def test_non_empty(self):
        assert Rule.NON_EMPTY.check("632") is None
        assert Rule.NON_EMPTY.check("   ") == "value is required"

    def test_issue_id(self):
        assert Rule.ISSUE_ID.check("111") is None
        assert "not an integer" in Rule.ISSUE_ID.check("abc")
        assert Rule.ISSUE_ID.check("-1") == "value is required"

    def test_duration(self):
        assert Rule.DURATION.check("45m") is None
        assert "invalid duration" in Rule.DURATION.check("later")

    def test_issue_type(self):
        assert Rule.ISSUE_TYPE.check("vulnerability") is None
        assert "not one of" in Rule.ISSUE_TYPE.check("feature")


class TestValidateFlags:

    def test_defaults_applied(self):
        resolved = validate_flags(valid_values())

        assert resolved["estimated-time"] == "0h"
        assert resolved["type"] == "GENERAL"
        assert resolved["issue-id"] == "111"

    def test_every_problem_reported(self):
        with pytest.raises(ValidationError) as excinfo:
            validate_flags(valid_values(**{"project-id": None, "issue-id": None, "type": "feature"}))

        problems = excinfo.value.problems
        assert len(problems) == 3
        assert problems[0].startswith("--project-id")
        assert "provide Redmine issue identifier" in problems[1]
        assert problems[2].startswith("--type")

    def test_all_declared_flags_checked(self):
        names = [flag.name for flag in flags.FLAGS]

        assert names == ["project-id", "issue-id", "api-key", "redmine-base-url", "estimated-time", "type"]
        with pytest.raises(ValidationError, match="--api-key"):
            validate_flags(valid_values(**{"api-key": ""}))
