"""
Incident issue parser.

Turns a raw ticket into a ParsedIncident, or a Rejection when the ticket
must not influence the status page:
  - the author is not a trusted repository role
  - the title does not carry the incident tag
  - none of the listed services belong to the catalog

Malformed or missing form fields never raise; they fall back to empty
values or the default severity.
"""

from __future__ import annotations

import re
from abc import ABC, abstractmethod
from typing import List, Optional, Union

from statussync.models import (
    LifecycleState,
    ParsedIncident,
    RawIncident,
    RejectReason,
    Rejection,
    SyncConfig,
)
from statussync.sections import extract_section, first_line
from statussync.severity import Severity, parse_severity

# Service lists come one-per-line, comma-joined, or a mix of both
_SERVICE_SPLIT_RE = re.compile(r"[\n,]")
_BULLET_RE = re.compile(r"^[-*]\s+")

# Placeholder GitHub renders for optional form fields left blank
_NO_RESPONSE = "_no response_"

ParseOutcome = Union[ParsedIncident, Rejection]


# ─── Title matchers ───────────────────────────────────────────


class TitleMatcher(ABC):
    """Decides whether a ticket title marks an incident."""

    def __init__(self, tag: str) -> None:
        self.tag = tag

    @abstractmethod
    def matches(self, title: str) -> bool:
        ...

    def strip(self, title: str) -> str:
        """Remove the tag (first occurrence) from a title for display."""
        pattern = re.compile(re.escape(self.tag) + r"\s*", re.IGNORECASE)
        return pattern.sub("", title.strip(), count=1).strip()


class PrefixTagMatcher(TitleMatcher):
    """Title must start with the tag (case-insensitive)."""

    def matches(self, title: str) -> bool:
        return title.strip().lower().startswith(self.tag.lower())


class ContainsTagMatcher(TitleMatcher):
    """Tag may appear anywhere in the title (case-insensitive)."""

    def matches(self, title: str) -> bool:
        return self.tag.lower() in title.lower()


_MATCHERS = {
    "prefix": PrefixTagMatcher,
    "contains": ContainsTagMatcher,
}


def matcher_for(config: SyncConfig) -> TitleMatcher:
    """Build the title matcher selected by ``config.title_match``."""
    try:
        return _MATCHERS[config.title_match](config.incident_tag)
    except KeyError:
        raise ValueError(f"Unknown title match policy: {config.title_match!r}") from None


# ─── Field helpers ────────────────────────────────────────────


def _field_value(text: str) -> str:
    """Treat the issue-form placeholder for blank fields as empty."""
    if text.strip().lower() == _NO_RESPONSE:
        return ""
    return text


def is_trusted(raw: RawIncident, config: SyncConfig) -> bool:
    """True when the ticket author holds one of the trusted roles."""
    role = (raw.author_association or "").strip().upper()
    return role in {r.upper() for r in config.trusted_roles}


def parse_services(block: Optional[str], catalog) -> List[str]:
    """
    Normalise an affected-services block into catalog members.

    Entries may be one per line, comma-separated, or both, optionally
    bulleted with ``-`` or ``*``. Unknown names are dropped; the result
    keeps first-seen order without duplicates.
    """
    if not block:
        return []

    known = set(catalog)
    services: List[str] = []
    for token in _SERVICE_SPLIT_RE.split(block):
        name = _BULLET_RE.sub("", token.strip()).strip()
        if not name or name not in known or name in services:
            continue
        services.append(name)
    return services


def build_message(description: str, update: str) -> str:
    """Join the non-empty description and update with a blank line."""
    parts = [p.strip() for p in (description, update) if p and p.strip()]
    return "\n\n".join(parts)


def resolve_severity(token: str, state: LifecycleState, config: SyncConfig) -> Severity:
    """
    Severity of a ticket in the given state.

    Closed tickets are operational. An open ticket never resolves to
    operational, even when the form says so.
    """
    if state is not LifecycleState.OPEN:
        return Severity.OPERATIONAL
    level = parse_severity(token, config.default_severity)
    if level is Severity.OPERATIONAL:
        return config.default_severity
    return level


# ─── Public API ───────────────────────────────────────────────


def parse_incident(
    raw: RawIncident,
    config: SyncConfig,
    matcher: Optional[TitleMatcher] = None,
) -> ParseOutcome:
    """
    Validate and normalise one raw ticket.

    Args:
        raw: The ticket as fetched from the source.
        config: Catalog, trust and form settings.
        matcher: Title matcher; defaults to the one named by the config.

    Returns:
        A ParsedIncident with at least one catalog service, or a Rejection.
    """
    if not is_trusted(raw, config):
        return Rejection(id=raw.id, reason=RejectReason.UNTRUSTED)

    matcher = matcher or matcher_for(config)
    if not matcher.matches(raw.title or ""):
        return Rejection(id=raw.id, reason=RejectReason.NOT_AN_INCIDENT)

    headings = config.headings
    body = raw.body or ""
    severity_token = first_line(_field_value(extract_section(body, headings.severity)))
    services = parse_services(extract_section(body, headings.services), config.catalog)
    description = _field_value(extract_section(body, headings.description))
    update = _field_value(extract_section(body, headings.update))

    if not services:
        return Rejection(id=raw.id, reason=RejectReason.NO_SERVICES)

    return ParsedIncident(
        id=raw.id,
        title=matcher.strip(raw.title),
        severity=resolve_severity(severity_token, raw.state, config),
        services=tuple(services),
        message=build_message(description, update),
        updates=tuple(u.strip() for u in raw.updates if u and u.strip()),
        created_at=raw.created_at,
        updated_at=raw.updated_at,
        url=raw.url,
        state=raw.state,
    )

