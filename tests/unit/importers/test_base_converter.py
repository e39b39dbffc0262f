"""
Unit tests for shared converter behavior: timestamps, roles and ids.
"""

import re
from datetime import datetime, timedelta, timezone

import pytest

from convokeep.db.importers.base import BaseConverter, to_iso, utc_now

ISO_PATTERN = re.compile(r"^\d{4}-\d{2}-\d{2}T\d{2}:\d{2}:\d{2}\.\d{3}Z$")


@pytest.fixture
def converter(id_generator):
    return BaseConverter(id_generator)


class TestFormatTimestamp:
    """format_timestamp is total and always returns an ISO string ending in Z."""

    def test_epoch_seconds(self, converter):
        assert converter.format_timestamp(1700000000) == "2023-11-14T22:13:20.000Z"

    def test_epoch_seconds_with_fraction(self, converter):
        assert converter.format_timestamp(1700000100.5) == "2023-11-14T22:15:00.500Z"

    def test_epoch_milliseconds(self, converter):
        """Values at or above 1e10 are treated as milliseconds."""
        assert converter.format_timestamp(1700000000123) == "2023-11-14T22:13:20.123Z"

    def test_numeric_string(self, converter):
        assert converter.format_timestamp("1700000000") == "2023-11-14T22:13:20.000Z"

    def test_iso_string_with_z(self, converter):
        assert converter.format_timestamp("2024-03-01T12:00:00Z") == "2024-03-01T12:00:00.000Z"

    def test_iso_string_with_offset(self, converter):
        assert converter.format_timestamp("2024-03-01T14:00:00+02:00") == "2024-03-01T12:00:00.000Z"

    def test_datetime(self, converter):
        dt = datetime(2024, 5, 6, 7, 8, 9, 123456, tzinfo=timezone.utc)
        assert converter.format_timestamp(dt) == "2024-05-06T07:08:09.123Z"

    def test_naive_datetime_is_utc(self, converter):
        assert converter.format_timestamp(datetime(2024, 5, 6)) == "2024-05-06T00:00:00.000Z"

    @pytest.mark.parametrize("value", [None, "", 0, False, True, "garbage", "2024-13-45",
                                       {"nested": 1}, [1, 2], float("inf"), 1e20])
    def test_unparsable_values_fall_back_to_now(self, converter, value):
        before = datetime.now(timezone.utc) - timedelta(seconds=1)
        result = converter.format_timestamp(value)
        after = datetime.now(timezone.utc) + timedelta(seconds=1)

        assert ISO_PATTERN.match(result)
        parsed = datetime.fromisoformat(result.replace("Z", "+00:00"))
        assert before <= parsed <= after


class TestNormalizeRole:
    """Role normalization."""

    @pytest.mark.parametrize("role,expected", [
        ("user", "user"),
        ("USER", "user"),
        ("Assistant", "assistant"),
        ("human", "user"),
        ("Human", "user"),
        ("system", "system"),
        ("Tool", "tool"),
    ])
    def test_known_and_other_roles(self, converter, role, expected):
        assert converter.normalize_role(role) == expected

    @pytest.mark.parametrize("role", [None, "", 3, ["user"]])
    def test_missing_role_is_unknown(self, converter, role):
        assert converter.normalize_role(role) == "unknown"

    @pytest.mark.parametrize("role", ["Human", "ASSISTANT", "tool", None])
    def test_idempotent(self, converter, role):
        once = converter.normalize_role(role)
        assert converter.normalize_role(once) == once


class TestHelpers:
    """Id generation and defaults."""

    def test_generate_id_uses_injected_generator(self, converter):
        assert converter.generate_id("conv") == "conv_1"
        assert converter.generate_id("msg") == "msg_2"

    def test_default_title(self, converter):
        assert converter.default_title("Hello") == "Hello"
        assert converter.default_title("") == "Untitled Conversation"
        assert converter.default_title(None) == "Untitled Conversation"

    def test_convert_is_abstract(self, converter):
        with pytest.raises(NotImplementedError):
            converter.convert({})

    def test_to_iso_converts_to_utc(self):
        dt = datetime(2024, 1, 1, 5, 30, tzinfo=timezone(timedelta(hours=5, minutes=30)))
        assert to_iso(dt) == "2024-01-01T00:00:00.000Z"

    def test_utc_now_format(self):
        assert ISO_PATTERN.match(utc_now())
