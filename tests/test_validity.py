"""Tests for the session validity policy."""

import pytest

from v0cli.models import AuthRecord
from v0cli.validity import THIRTY_DAYS_MS, is_stale, is_valid

NOW = 1_760_000_000_000


def record_aged(age_ms: int) -> AuthRecord:
    return AuthRecord(created_at_ms=NOW - age_ms, cookies_file="cookies.json")


class TestIsValid:
    """Tests for is_valid()."""

    @pytest.mark.parametrize("age_ms", [0, 1, THIRTY_DAYS_MS - 1, THIRTY_DAYS_MS, 10 * THIRTY_DAYS_MS])
    def test_false_without_cookie_file(self, age_ms):
        assert is_valid(record_aged(age_ms), cookie_jar_present=False, now=NOW) is False

    def test_true_for_fresh_record(self):
        assert is_valid(record_aged(0), cookie_jar_present=True, now=NOW) is True

    def test_true_one_millisecond_before_thirty_days(self):
        assert is_valid(record_aged(THIRTY_DAYS_MS - 1), cookie_jar_present=True, now=NOW) is True

    def test_false_at_exactly_thirty_days(self):
        assert is_valid(record_aged(THIRTY_DAYS_MS), cookie_jar_present=True, now=NOW) is False

    def test_false_past_thirty_days(self):
        assert is_valid(record_aged(THIRTY_DAYS_MS + 1), cookie_jar_present=True, now=NOW) is False

    def test_false_without_record(self):
        assert is_valid(None, cookie_jar_present=True, now=NOW) is False

    def test_uses_current_time_by_default(self):
        from v0cli.validity import now_ms

        record = AuthRecord(created_at_ms=now_ms(), cookies_file="cookies.json")
        assert is_valid(record, cookie_jar_present=True) is True


class TestIsStale:
    """Tests for is_stale()."""

    def test_boundary(self):
        assert is_stale(record_aged(THIRTY_DAYS_MS - 1), now=NOW) is False
        assert is_stale(record_aged(THIRTY_DAYS_MS), now=NOW) is True
