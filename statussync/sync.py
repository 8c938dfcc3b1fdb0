"""
One sync run over a batch of raw tickets.

Pure driver for the core: parse each ticket, fold it into the history
carried over from the previous document, then assemble the next document
once every ticket has been applied.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Iterable, List, Optional, Tuple

from statussync.document import assemble
from statussync.issue_parser import matcher_for, parse_incident
from statussync.models import RawIncident, Rejection, StatusDocument, SyncConfig
from statussync.reconciler import LifecycleEvent, prune_missing, reconcile

_EPOCH = datetime.fromtimestamp(0, timezone.utc)


@dataclass(frozen=True)
class SyncResult:
    """Outcome of a run: the next document plus what happened to each ticket."""

    document: StatusDocument
    events: Tuple[Tuple[int, LifecycleEvent], ...] = ()
    rejections: Tuple[Rejection, ...] = field(default_factory=tuple)

    def count(self, event: LifecycleEvent) -> int:
        return sum(1 for _, ev in self.events if ev is event)


def _oldest_first(raw: RawIncident):
    created = raw.created_at or _EPOCH
    if created.tzinfo is None:
        created = created.replace(tzinfo=timezone.utc)
    return (created, raw.id)


def run_sync(
    previous: Optional[StatusDocument],
    records: Iterable[RawIncident],
    config: SyncConfig,
    now: Optional[datetime] = None,
    authoritative: bool = False,
) -> SyncResult:
    """
    Apply a batch of tickets to the previous document.

    Args:
        previous: Last persisted document, or None on the first run.
        records: Raw tickets to apply, in any order.
        config: Catalog, trust and form settings.
        now: Timestamp for the new document (defaults to current UTC time).
        authoritative: ``records`` is the complete ticket listing, so history
            entries missing from it are dropped.

    Returns:
        A SyncResult with the new document.
    """
    records = sorted(records, key=_oldest_first)
    history = previous.incidents if previous is not None else ()

    if authoritative:
        history = prune_missing(history, (raw.id for raw in records))

    matcher = matcher_for(config)
    events: List[Tuple[int, LifecycleEvent]] = []
    rejections: List[Rejection] = []

    for raw in records:
        outcome = parse_incident(raw, config, matcher)
        if isinstance(outcome, Rejection):
            rejections.append(outcome)
        event, history = reconcile(history, raw, outcome, config.max_history)
        events.append((raw.id, event))

    return SyncResult(
        document=assemble(history, config.catalog, now),
        events=tuple(events),
        rejections=tuple(rejections),
    )
