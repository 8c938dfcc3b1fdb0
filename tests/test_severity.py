"""Tests for the severity model."""

import pytest

from statussync.severity import (
    DEFAULT_ACTIVE_SEVERITY,
    Severity,
    parse_severity,
    worse,
)


class TestRank:
    def test_total_order(self):
        ordered = [
            Severity.OPERATIONAL,
            Severity.DEGRADED,
            Severity.MAINTENANCE,
            Severity.PARTIAL,
            Severity.MAJOR,
        ]
        assert [s.rank for s in ordered] == [0, 1, 2, 3, 4]
        assert sorted(reversed(ordered)) == ordered

    def test_rank_not_string_order(self):
        # "major" < "maintenance" alphabetically
        assert Severity.MAJOR > Severity.MAINTENANCE


class TestWorse:
    def test_picks_higher_rank(self):
        assert worse(Severity.DEGRADED, Severity.MAJOR) is Severity.MAJOR
        assert worse(Severity.PARTIAL, Severity.MAINTENANCE) is Severity.PARTIAL

    def test_tie(self):
        assert worse(Severity.PARTIAL, Severity.PARTIAL) is Severity.PARTIAL


class TestParseSeverity:
    @pytest.mark.parametrize(
        "token,expected",
        [
            ("major", Severity.MAJOR),
            ("MAJOR", Severity.MAJOR),
            ("  Partial ", Severity.PARTIAL),
            ("maintenance", Severity.MAINTENANCE),
            ("operational", Severity.OPERATIONAL),
            ("investigating", Severity.DEGRADED),
            ("major_outage", Severity.MAJOR),
        ],
    )
    def test_known_tokens(self, token, expected):
        assert parse_severity(token) is expected

    @pytest.mark.parametrize("token", [None, "", "   ", "catastrophic"])
    def test_unknown_falls_back_to_active_default(self, token):
        level = parse_severity(token)
        assert level is DEFAULT_ACTIVE_SEVERITY
        assert level is not Severity.OPERATIONAL

    def test_custom_default(self):
        assert parse_severity("???", default=Severity.PARTIAL) is Severity.PARTIAL
