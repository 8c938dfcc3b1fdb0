"""
Per-service status aggregation.

The status map is rebuilt from scratch on every call: every catalog
service starts operational and each active incident can only make its
services worse. Nothing is carried over from a previous map.
"""

from __future__ import annotations

from typing import Dict, Iterable, List, Sequence

from statussync.models import ParsedIncident
from statussync.severity import Severity, worse


def active_incidents(incidents: Iterable[ParsedIncident]) -> List[ParsedIncident]:
    """Incidents that still count against their services."""
    return [inc for inc in incidents if inc.is_active]


def aggregate(
    catalog: Sequence[str],
    incidents: Iterable[ParsedIncident],
) -> Dict[str, Severity]:
    """
    Compute the worst active severity for every catalog service.

    Args:
        catalog: Canonical service names; the result has exactly these keys,
            in this order.
        incidents: Incidents to apply. Inactive ones and services outside
            the catalog are ignored.

    Returns:
        Mapping of service name to Severity.
    """
    status: Dict[str, Severity] = {name: Severity.OPERATIONAL for name in catalog}

    for inc in incidents:
        if not inc.is_active:
            continue
        for service in inc.services:
            if service in status:
                status[service] = worse(status[service], inc.severity)

    return status
