"""
Severity model.

Health levels a service can be in, with an explicit integer rank used for
"worst wins" aggregation. Comparisons always go through the rank, never
through the string values.
"""

from __future__ import annotations

from enum import Enum
from typing import Optional


class Severity(Enum):
    """Health level of a service, from healthy to fully down."""

    OPERATIONAL = "operational"
    DEGRADED = "degraded"
    MAINTENANCE = "maintenance"
    PARTIAL = "partial"
    MAJOR = "major"

    @property
    def rank(self) -> int:
        return _RANKS[self]

    def __lt__(self, other: "Severity") -> bool:
        if not isinstance(other, Severity):
            return NotImplemented
        return self.rank < other.rank

    def __str__(self) -> str:
        return self.value


_RANKS = {
    Severity.OPERATIONAL: 0,
    Severity.DEGRADED: 1,
    Severity.MAINTENANCE: 2,
    Severity.PARTIAL: 3,
    Severity.MAJOR: 4,
}

# An open incident whose severity cannot be read must still count against
# its services.
DEFAULT_ACTIVE_SEVERITY = Severity.DEGRADED

# Looser spellings seen in hand-written tickets and statuspage-style feeds
_ALIASES = {
    "investigating": Severity.DEGRADED,
    "degraded_performance": Severity.DEGRADED,
    "degraded performance": Severity.DEGRADED,
    "under_maintenance": Severity.MAINTENANCE,
    "under maintenance": Severity.MAINTENANCE,
    "partial_outage": Severity.PARTIAL,
    "partial outage": Severity.PARTIAL,
    "major_outage": Severity.MAJOR,
    "major outage": Severity.MAJOR,
}


def worse(a: Severity, b: Severity) -> Severity:
    """Return the higher-ranked of two severities (``a`` on a tie)."""
    return b if b.rank > a.rank else a


def parse_severity(
    token: Optional[str],
    default: Severity = DEFAULT_ACTIVE_SEVERITY,
) -> Severity:
    """
    Map a free-text severity token to a Severity.

    Matching is case-insensitive and ignores surrounding whitespace.
    Missing or unrecognised tokens yield ``default``.
    """
    if not token:
        return default
    key = token.strip().lower()
    for level in Severity:
        if level.value == key:
            return level
    return _ALIASES.get(key, default)
