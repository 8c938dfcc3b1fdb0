"""
Incident history reconciliation.

The history is a tuple of ParsedIncident, most recent first, keyed by
ticket id and capped in length. Each ticket event produces a new tuple;
the previous one is never modified.

  deleted / closed / retracted  ->  entry removed (no "resolved" tombstone)
  opened                        ->  inserted at the front
  updated                       ->  replaced in place
  ignored                       ->  history unchanged
"""

from __future__ import annotations

from enum import Enum
from typing import Iterable, Optional, Tuple

from statussync.models import (
    LifecycleState,
    ParsedIncident,
    RawIncident,
    RejectReason,
    Rejection,
)

History = Tuple[ParsedIncident, ...]

DEFAULT_MAX_HISTORY = 50


class LifecycleEvent(Enum):
    OPENED = "opened"
    UPDATED = "updated"
    CLOSED = "closed"
    DELETED = "deleted"
    RETRACTED = "retracted"  # still open, but no longer a valid incident
    IGNORED = "ignored"  # untrusted ticket


_REMOVING = {LifecycleEvent.CLOSED, LifecycleEvent.DELETED, LifecycleEvent.RETRACTED}


def _index_of(history: History, incident_id: int) -> int:
    for idx, inc in enumerate(history):
        if inc.id == incident_id:
            return idx
    return -1


def classify(
    raw: RawIncident,
    outcome: ParsedIncident | Rejection,
    history: History,
) -> LifecycleEvent:
    """Derive the lifecycle event for a ticket against the current history."""
    if raw.state is LifecycleState.DELETED:
        return LifecycleEvent.DELETED
    if raw.state is LifecycleState.CLOSED:
        return LifecycleEvent.CLOSED

    if isinstance(outcome, Rejection):
        if outcome.reason is RejectReason.UNTRUSTED:
            return LifecycleEvent.IGNORED
        return LifecycleEvent.RETRACTED

    if _index_of(history, outcome.id) >= 0:
        return LifecycleEvent.UPDATED
    return LifecycleEvent.OPENED


def apply_event(
    history: History,
    event: LifecycleEvent,
    incident_id: int,
    incident: Optional[ParsedIncident] = None,
    max_history: int = DEFAULT_MAX_HISTORY,
) -> History:
    """
    Apply one event to the history and return the next history.

    ``incident`` is required for OPENED and UPDATED. An UPDATED event for
    an id that is not present behaves like OPENED, and OPENED for an id
    that is present behaves like UPDATED, so replays are harmless.
    """
    entries = list(history)
    idx = _index_of(history, incident_id)

    if event in _REMOVING:
        if idx >= 0:
            del entries[idx]
    elif event in (LifecycleEvent.OPENED, LifecycleEvent.UPDATED):
        if incident is None:
            raise ValueError(f"{event.value} event for #{incident_id} needs an incident")
        if idx >= 0:
            entries[idx] = incident
        else:
            entries.insert(0, incident)

    return tuple(entries[:max_history])


def reconcile(
    history: History,
    raw: RawIncident,
    outcome: ParsedIncident | Rejection,
    max_history: int = DEFAULT_MAX_HISTORY,
) -> Tuple[LifecycleEvent, History]:
    """Classify a ticket and fold it into the history."""
    event = classify(raw, outcome, history)
    incident = outcome if isinstance(outcome, ParsedIncident) else None
    return event, apply_event(history, event, raw.id, incident, max_history)


def prune_missing(history: History, known_ids: Iterable[int]) -> History:
    """Drop entries whose ticket no longer exists at the source."""
    known = set(known_ids)
    return tuple(inc for inc in history if inc.id in known)
