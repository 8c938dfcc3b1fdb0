"""Tests for document assembly and serialisation."""

import json
from datetime import datetime, timezone

import pytest

from statussync.document import (
    assemble,
    document_from_dict,
    document_to_dict,
    dumps_document,
    format_timestamp,
    loads_document,
    parse_timestamp,
    same_content,
)
from statussync.models import LifecycleState, ParsedIncident
from statussync.severity import Severity

NOW = datetime(2024, 5, 1, 12, 30, tzinfo=timezone.utc)

INCIDENT = ParsedIncident(
    id=7,
    title="X",
    severity=Severity.MAJOR,
    services=("A", "B"),
    message="Falha",
    updates=("Investigando",),
    created_at=datetime(2024, 5, 1, 10, 0, tzinfo=timezone.utc),
    updated_at=datetime(2024, 5, 1, 11, 0, tzinfo=timezone.utc),
    url="https://github.com/acme/status/issues/7",
)


class TestAssemble:
    def test_services_derived_from_history(self):
        doc = assemble((INCIDENT,), ("A", "B", "C"), now=NOW)
        assert doc.last_updated == NOW
        assert doc.services == {
            "A": Severity.MAJOR,
            "B": Severity.MAJOR,
            "C": Severity.OPERATIONAL,
        }
        assert doc.incidents == (INCIDENT,)

    def test_inactive_history_entry_does_not_count(self):
        closed = ParsedIncident(
            id=8, title="Y", severity=Severity.MAJOR, services=("C",),
            state=LifecycleState.CLOSED,
        )
        doc = assemble((closed,), ("A", "B", "C"), now=NOW)
        assert doc.services["C"] is Severity.OPERATIONAL

    def test_defaults_to_current_time(self):
        doc = assemble((), ("A",))
        assert doc.last_updated.tzinfo is not None


class TestSerialisation:
    def test_shape_and_field_order(self):
        data = document_to_dict(assemble((INCIDENT,), ("A", "B"), now=NOW))
        assert list(data) == ["lastUpdated", "services", "incidents"]
        assert data["lastUpdated"] == "2024-05-01T12:30:00Z"
        assert data["services"] == {"A": "major", "B": "major"}
        assert list(data["incidents"][0]) == [
            "id", "title", "status", "services", "message",
            "updates", "timestamp", "updatedAt", "url",
        ]
        assert data["incidents"][0]["timestamp"] == "2024-05-01T10:00:00Z"

    def test_dumps_is_stable_text(self):
        doc = assemble((INCIDENT,), ("A", "B"), now=NOW)
        text = dumps_document(doc)
        assert text.endswith("\n")
        assert text == dumps_document(loads_document(text))
        assert json.loads(text)["incidents"][0]["status"] == "major"

    def test_non_ascii_kept_readable(self):
        doc = assemble((), ("Central Telefônica",), now=NOW)
        assert "Central Telefônica" in dumps_document(doc)

    def test_legacy_snake_case_keys(self):
        doc = document_from_dict({
            "last_updated": "2024-01-01T00:00:00.000Z",
            "services": {"A": "partial"},
            "incidents": [{
                "id": 3, "title": "t", "status": "partial", "services": ["A"],
                "message": "", "timestamp": "2024-01-01T00:00:00Z",
                "updated_at": "2024-01-02T00:00:00Z", "url": "",
            }],
        })
        assert doc.last_updated == datetime(2024, 1, 1, tzinfo=timezone.utc)
        assert doc.incidents[0].updated_at == datetime(2024, 1, 2, tzinfo=timezone.utc)
        assert doc.incidents[0].updates == ()

    def test_malformed_incident_raises_value_error(self):
        with pytest.raises(ValueError):
            document_from_dict({"incidents": [{"title": "no id"}]})

    def test_not_a_mapping(self):
        with pytest.raises(ValueError):
            document_from_dict(["nope"])


class TestTimestamps:
    def test_naive_treated_as_utc(self):
        assert format_timestamp(datetime(2024, 1, 1, 8, 0)) == "2024-01-01T08:00:00Z"

    def test_none(self):
        assert format_timestamp(None) is None
        assert parse_timestamp(None) is None

    def test_garbage(self):
        assert parse_timestamp("yesterday-ish") is None


class TestSameContent:
    def test_ignores_timestamp(self):
        a = assemble((INCIDENT,), ("A", "B"), now=NOW)
        b = assemble((INCIDENT,), ("A", "B"), now=datetime(2030, 1, 1, tzinfo=timezone.utc))
        assert same_content(a, b)

    def test_detects_change(self):
        a = assemble((INCIDENT,), ("A", "B"), now=NOW)
        b = assemble((), ("A", "B"), now=NOW)
        assert not same_content(a, b)

    def test_missing_previous(self):
        assert not same_content(None, assemble((), ("A",), now=NOW))
