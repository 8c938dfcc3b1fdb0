"""
Data models for the status sync.

Structured representations for raw tickets, parsed incidents, the persisted
status document and the configuration passed into each component.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from statussync.severity import DEFAULT_ACTIVE_SEVERITY, Severity


class LifecycleState(Enum):
    """Lifecycle of a ticket at the source."""

    OPEN = "open"
    CLOSED = "closed"
    DELETED = "deleted"


class RejectReason(Enum):
    UNTRUSTED = "untrusted"
    NOT_AN_INCIDENT = "not_an_incident"
    NO_SERVICES = "no_services"


@dataclass(frozen=True)
class RawIncident:
    """
    One ticket as handed over by the source.

    Attributes:
        id: Stable ticket number.
        title: Ticket title, including the incident tag.
        body: Issue-form body text (may be empty).
        state: Lifecycle state at the source.
        author_association: Author's role in the repository (OWNER, ...).
        created_at: When the ticket was opened.
        updated_at: When the ticket was last edited.
        url: Public URL of the ticket.
        updates: Discussion comment texts, oldest first.
    """

    id: int
    title: str = ""
    body: str = ""
    state: LifecycleState = LifecycleState.OPEN
    author_association: str = ""
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    url: str = ""
    updates: Tuple[str, ...] = ()


@dataclass(frozen=True)
class ParsedIncident:
    """A validated incident, as kept in the history and published."""

    id: int
    title: str
    severity: Severity
    services: Tuple[str, ...]
    message: str = ""
    updates: Tuple[str, ...] = ()
    created_at: Optional[datetime] = None
    updated_at: Optional[datetime] = None
    url: str = ""
    state: LifecycleState = LifecycleState.OPEN

    @property
    def is_active(self) -> bool:
        return self.state is LifecycleState.OPEN


@dataclass(frozen=True)
class Rejection:
    """A ticket that was filtered out, and why."""

    id: int
    reason: RejectReason


@dataclass(frozen=True)
class StatusDocument:
    """The persisted status page document."""

    last_updated: datetime
    services: Dict[str, Severity]
    incidents: Tuple[ParsedIncident, ...] = ()


@dataclass(frozen=True)
class FormHeadings:
    """Headings of the incident issue form."""

    severity: str = "Severidade"
    services: str = "Serviços afetados"
    description: str = "Descrição do incidente"
    update: str = "Atualização (opcional)"


@dataclass(frozen=True)
class SyncConfig:
    """Everything the parsing/reconciliation core needs to know."""

    catalog: Tuple[str, ...]
    trusted_roles: FrozenSet[str] = frozenset({"OWNER", "MEMBER", "COLLABORATOR"})
    incident_tag: str = "[INCIDENTE]"
    title_match: str = "prefix"  # "prefix" or "contains"
    max_history: int = 50
    default_severity: Severity = DEFAULT_ACTIVE_SEVERITY
    headings: FormHeadings = field(default_factory=FormHeadings)


@dataclass
class SourceConfig:
    """Configuration for the GitHub issue source."""

    repository: str = ""
    token: str = ""
    api_url: str = "https://api.github.com"
    per_page: int = 100
    max_issue_pages: int = 1
    max_comment_pages: int = 10
    max_comments: int = 1000
    keep_comments: int = 30
    timeout: int = 15  # seconds


@dataclass
class TrackerSettings:
    """Global run settings."""

    log_level: str = "INFO"
    max_retries: int = 3
    base_backoff: int = 2
    status_path: str = "status.json"


@dataclass
class AppConfig:
    sync: SyncConfig
    source: SourceConfig = field(default_factory=SourceConfig)
    settings: TrackerSettings = field(default_factory=TrackerSettings)
