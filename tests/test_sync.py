"""End-to-end tests for a sync run over raw tickets."""

from datetime import datetime, timezone

from statussync.document import dumps_document
from statussync.models import LifecycleState, SyncConfig
from statussync.reconciler import LifecycleEvent
from statussync.severity import Severity
from statussync.sync import run_sync

NOW = datetime(2024, 5, 1, 13, 0, tzinfo=timezone.utc)


class TestRunSync:
    def test_single_incident_example(self, make_raw):
        config = SyncConfig(catalog=("A", "B"))
        raw = make_raw(
            1,
            title="[INCIDENTE] X",
            body="### Severidade\nmajor\n\n### Serviços afetados\nA, B\n",
        )
        result = run_sync(None, [raw], config, now=NOW)
        doc = result.document
        assert doc.services == {"A": Severity.MAJOR, "B": Severity.MAJOR}
        assert len(doc.incidents) == 1
        assert doc.incidents[0].severity is Severity.MAJOR
        assert doc.incidents[0].services == ("A", "B")
        assert doc.incidents[0].title == "X"
        assert result.events == ((1, LifecycleEvent.OPENED),)

    def test_untrusted_ticket_never_published(self, config, make_raw):
        raw = make_raw(9, author_association="NONE")
        result = run_sync(None, [raw], config, now=NOW)
        assert result.document.incidents == ()
        assert all(s is Severity.OPERATIONAL for s in result.document.services.values())
        assert result.count(LifecycleEvent.IGNORED) == 1
        assert result.rejections[0].id == 9

    def test_untrusted_ticket_cannot_remove_entry(self, config, make_raw):
        first = run_sync(None, [make_raw(4)], config, now=NOW).document
        spoof = make_raw(4, author_association="NONE", body="")
        doc = run_sync(first, [spoof], config, now=NOW).document
        assert [i.id for i in doc.incidents] == [4]

    def test_closing_restores_operational(self, config, make_raw, form):
        opened = make_raw(2, body=form(severity="partial", services="C"))
        doc = run_sync(None, [opened], config, now=NOW).document
        assert doc.services["C"] is Severity.PARTIAL

        closed = make_raw(2, body=form(severity="partial", services="C"),
                          state=LifecycleState.CLOSED)
        result = run_sync(doc, [closed], config, now=NOW)
        assert result.document.services["C"] is Severity.OPERATIONAL
        assert result.document.incidents == ()

        again = run_sync(result.document, [closed], config, now=NOW)
        assert again.document == result.document

    def test_operational_severity_still_marks_service(self, config, make_raw, form):
        raw = make_raw(1, body=form(severity="operational", services="A"))
        doc = run_sync(None, [raw], config, now=NOW).document
        assert doc.services == {
            "A": Severity.DEGRADED,
            "B": Severity.OPERATIONAL,
            "C": Severity.OPERATIONAL,
        }
        assert doc.incidents[0].severity is Severity.DEGRADED

    def test_other_incident_keeps_service_degraded(self, config, make_raw, form):
        a = make_raw(1, body=form(severity="major", services="A"))
        b = make_raw(2, body=form(severity="degraded", services="A"))
        doc = run_sync(None, [a, b], config, now=NOW).document
        closed_a = make_raw(1, body=form(services="A"), state=LifecycleState.CLOSED)
        doc = run_sync(doc, [closed_a], config, now=NOW).document
        assert doc.services["A"] is Severity.DEGRADED

    def test_history_most_recent_first(self, config, make_raw):
        records = [make_raw(3), make_raw(1), make_raw(2)]
        doc = run_sync(None, records, config, now=NOW).document
        assert [i.id for i in doc.incidents] == [3, 2, 1]

    def test_history_never_exceeds_cap(self, config, make_raw):
        records = [make_raw(n) for n in range(1, 80)]
        doc = run_sync(None, records, config, now=NOW).document
        assert len(doc.incidents) == 50
        assert doc.incidents[0].id == 79

    def test_authoritative_listing_prunes_vanished_tickets(self, config, make_raw):
        doc = run_sync(None, [make_raw(1), make_raw(2)], config, now=NOW).document
        doc = run_sync(doc, [make_raw(2)], config, now=NOW, authoritative=True).document
        assert [i.id for i in doc.incidents] == [2]

    def test_partial_listing_keeps_history(self, config, make_raw):
        doc = run_sync(None, [make_raw(1), make_raw(2)], config, now=NOW).document
        doc = run_sync(doc, [make_raw(2)], config, now=NOW).document
        assert [i.id for i in doc.incidents] == [2, 1]

    def test_edited_out_services_retracts(self, config, make_raw, form):
        doc = run_sync(None, [make_raw(1)], config, now=NOW).document
        edited = make_raw(1, body=form(services="Nope"))
        result = run_sync(doc, [edited], config, now=NOW)
        assert result.document.incidents == ()
        assert result.events == ((1, LifecycleEvent.RETRACTED),)

    def test_rerun_is_byte_identical(self, config, make_raw, form):
        records = [
            make_raw(1, body=form(severity="major", services="A")),
            make_raw(2, body=form(severity="maintenance", services="A, C")),
        ]
        first = run_sync(None, records, config, now=NOW).document
        second = run_sync(first, records, config, now=NOW).document
        assert dumps_document(first) == dumps_document(second)
