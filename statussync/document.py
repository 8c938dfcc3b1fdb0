"""
Status document assembly and serialisation.

The document is the only artifact other systems see, so its JSON form
keeps a fixed field order and a fixed timestamp format to stay
diff-friendly between runs.
"""

from __future__ import annotations

import json
from datetime import datetime, timezone
from typing import Any, Dict, Optional, Sequence

from dateutil import parser as dateutil_parser

from statussync.aggregator import active_incidents, aggregate
from statussync.models import ParsedIncident, StatusDocument
from statussync.severity import Severity, parse_severity

_TIMESTAMP_FORMAT = "%Y-%m-%dT%H:%M:%SZ"


def format_timestamp(value: Optional[datetime]) -> Optional[str]:
    """Render a datetime as UTC ISO-8601 with a ``Z`` suffix."""
    if value is None:
        return None
    if value.tzinfo is None:
        value = value.replace(tzinfo=timezone.utc)
    return value.astimezone(timezone.utc).strftime(_TIMESTAMP_FORMAT)


def parse_timestamp(value: Any) -> Optional[datetime]:
    """Parse a stored timestamp; anything unreadable becomes None."""
    if not value or not isinstance(value, str):
        return None
    try:
        parsed = dateutil_parser.isoparse(value)
    except (ValueError, OverflowError):
        return None
    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


# ─── Assembly ─────────────────────────────────────────────────


def assemble(
    history: Sequence[ParsedIncident],
    catalog: Sequence[str],
    now: Optional[datetime] = None,
) -> StatusDocument:
    """
    Build the next status document from the reconciled history.

    The services map is recomputed from the active incidents in
    ``history``. ``now`` defaults to the current UTC time.
    """
    return StatusDocument(
        last_updated=now or datetime.now(timezone.utc),
        services=aggregate(catalog, active_incidents(history)),
        incidents=tuple(history),
    )


def same_content(a: Optional[StatusDocument], b: Optional[StatusDocument]) -> bool:
    """Compare two documents ignoring their ``last_updated`` stamp."""
    if a is None or b is None:
        return a is b
    return (
        list(a.services.items()) == list(b.services.items())
        and incident_dicts(a) == incident_dicts(b)
    )


# ─── Serialisation ────────────────────────────────────────────


def incident_to_dict(incident: ParsedIncident) -> Dict[str, Any]:
    return {
        "id": incident.id,
        "title": incident.title,
        "status": incident.severity.value,
        "services": list(incident.services),
        "message": incident.message,
        "updates": list(incident.updates),
        "timestamp": format_timestamp(incident.created_at),
        "updatedAt": format_timestamp(incident.updated_at),
        "url": incident.url,
    }


def incident_dicts(doc: StatusDocument):
    return [incident_to_dict(inc) for inc in doc.incidents]


def document_to_dict(doc: StatusDocument) -> Dict[str, Any]:
    """Convert a document to its JSON-ready shape (stable key order)."""
    return {
        "lastUpdated": format_timestamp(doc.last_updated),
        "services": {name: level.value for name, level in doc.services.items()},
        "incidents": incident_dicts(doc),
    }


def incident_from_dict(data: Dict[str, Any]) -> ParsedIncident:
    """
    Rebuild a history entry from its stored form.

    Accepts both the current camelCase keys and the older snake_case
    ``updated_at``.
    """
    return ParsedIncident(
        id=int(data["id"]),
        title=str(data.get("title") or ""),
        severity=parse_severity(data.get("status")),
        services=tuple(str(s) for s in data.get("services") or ()),
        message=str(data.get("message") or ""),
        updates=tuple(str(u) for u in data.get("updates") or ()),
        created_at=parse_timestamp(data.get("timestamp")),
        updated_at=parse_timestamp(data.get("updatedAt", data.get("updated_at"))),
        url=str(data.get("url") or ""),
    )


def document_from_dict(data: Dict[str, Any]) -> StatusDocument:
    """
    Rebuild a document from its stored form.

    Raises:
        ValueError: if the data is not a document-shaped mapping.
    """
    if not isinstance(data, dict):
        raise ValueError("status document must be a JSON object")

    last_updated = parse_timestamp(data.get("lastUpdated", data.get("last_updated")))
    services = {
        str(name): parse_severity(level, Severity.OPERATIONAL)
        for name, level in (data.get("services") or {}).items()
    }
    try:
        incidents = tuple(incident_from_dict(item) for item in data.get("incidents") or ())
    except (AttributeError, KeyError, TypeError, ValueError) as exc:
        raise ValueError(f"malformed incident entry: {exc}") from exc

    return StatusDocument(
        last_updated=last_updated or datetime.fromtimestamp(0, timezone.utc),
        services=services,
        incidents=incidents,
    )


def dumps_document(doc: StatusDocument) -> str:
    """Serialise a document to its persisted text form."""
    return json.dumps(document_to_dict(doc), indent=2, ensure_ascii=False) + "\n"


def loads_document(text: str) -> StatusDocument:
    return document_from_dict(json.loads(text))
