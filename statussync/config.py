"""
YAML configuration loader.

Reads config.yaml and produces a typed AppConfig (sync core settings,
GitHub source, run settings). Falls back to the built-in service catalog
if the config file is missing. GITHUB_TOKEN and GITHUB_REPOSITORY from
the environment override the file.
"""

from __future__ import annotations

import os
from pathlib import Path
from typing import Any, Dict, Mapping

import yaml

from statussync.errors import ConfigurationError
from statussync.models import (
    AppConfig,
    FormHeadings,
    SourceConfig,
    SyncConfig,
    TrackerSettings,
)
from statussync.severity import DEFAULT_ACTIVE_SEVERITY, Severity, parse_severity

# Default path: config.yaml next to the project root
_DEFAULT_CONFIG_PATH = Path(__file__).resolve().parent.parent / "config.yaml"

# Fallback catalog if no config file exists at all
DEFAULT_CATALOG = (
    "Interconexão entre Data Centers (SP1 e SP2)",
    "Datacenter SP2",
    "Datacenter SP1",
    "ACS (Apache Cloud Stack)",
    "vCloud",
    "Central Telefônica",
    "Freshservice (painel de chamados)",
    "Under Control (Painel administrativo)",
    "VPN - Gerência console servidores físico Under",
)

_TITLE_MATCH_POLICIES = ("prefix", "contains")


def _section(raw: Mapping[str, Any], key: str) -> Dict[str, Any]:
    value = raw.get(key) or {}
    if not isinstance(value, dict):
        raise ConfigurationError(f"'{key}' must be a mapping")
    return value


def _parse_default_severity(token: Any) -> Severity:
    if token is None:
        return DEFAULT_ACTIVE_SEVERITY
    level = parse_severity(str(token), default=Severity.OPERATIONAL)
    if level is Severity.OPERATIONAL:
        raise ConfigurationError(
            f"default_severity must be a non-operational level, got {token!r}"
        )
    return level


def build_sync_config(raw: Mapping[str, Any]) -> SyncConfig:
    """Build the core configuration from the parsed YAML mapping."""
    catalog = raw.get("services", DEFAULT_CATALOG)
    if not isinstance(catalog, (list, tuple)) or not catalog:
        raise ConfigurationError("'services' must be a non-empty list")
    catalog = tuple(dict.fromkeys(str(name).strip() for name in catalog))

    incidents = _section(raw, "incidents")
    headings = _section(incidents, "headings")

    title_match = str(incidents.get("title_match", "prefix")).lower()
    if title_match not in _TITLE_MATCH_POLICIES:
        raise ConfigurationError(
            f"title_match must be one of {_TITLE_MATCH_POLICIES}, got {title_match!r}"
        )

    max_history = int(incidents.get("max_history", 50))
    if max_history <= 0:
        raise ConfigurationError("max_history must be positive")

    defaults = FormHeadings()
    roles = incidents.get("trusted_roles") or ("OWNER", "MEMBER", "COLLABORATOR")

    return SyncConfig(
        catalog=catalog,
        trusted_roles=frozenset(str(r).upper() for r in roles),
        incident_tag=str(incidents.get("tag", "[INCIDENTE]")),
        title_match=title_match,
        max_history=max_history,
        default_severity=_parse_default_severity(incidents.get("default_severity")),
        headings=FormHeadings(
            severity=headings.get("severity", defaults.severity),
            services=headings.get("services", defaults.services),
            description=headings.get("description", defaults.description),
            update=headings.get("update", defaults.update),
        ),
    )


def load_config(
    path: str | Path | None = None,
    env: Mapping[str, str] | None = None,
) -> AppConfig:
    """
    Load and parse the YAML configuration file.

    Returns:
        An AppConfig with sync, source and settings sections.

    Raises:
        ConfigurationError: if the file is unreadable or holds invalid values.
    """
    config_path = Path(path) if path else _DEFAULT_CONFIG_PATH
    env = os.environ if env is None else env

    raw: Dict[str, Any] = {}
    if config_path.exists():
        try:
            with open(config_path, "r", encoding="utf-8") as fh:
                raw = yaml.safe_load(fh) or {}
        except yaml.YAMLError as exc:
            raise ConfigurationError(f"Invalid YAML in {config_path}: {exc}") from exc
        if not isinstance(raw, dict):
            raise ConfigurationError(f"{config_path} must contain a mapping")
    elif path:
        raise ConfigurationError(f"Config file not found: {config_path}")

    # Parse source
    raw_source = _section(raw, "source")
    source = SourceConfig(
        repository=env.get("GITHUB_REPOSITORY") or raw_source.get("repository", ""),
        token=env.get("GITHUB_TOKEN") or raw_source.get("token", ""),
        api_url=str(raw_source.get("api_url", "https://api.github.com")).rstrip("/"),
        per_page=int(raw_source.get("per_page", 100)),
        max_issue_pages=int(raw_source.get("max_issue_pages", 1)),
        max_comment_pages=int(raw_source.get("max_comment_pages", 10)),
        max_comments=int(raw_source.get("max_comments", 1000)),
        keep_comments=int(raw_source.get("keep_comments", 30)),
        timeout=int(raw_source.get("timeout", 15)),
    )

    # Parse global settings
    raw_settings = _section(raw, "settings")
    settings = TrackerSettings(
        log_level=str(raw_settings.get("log_level", "INFO")).upper(),
        max_retries=int(raw_settings.get("max_retries", 3)),
        base_backoff=int(raw_settings.get("base_backoff", 2)),
        status_path=str(raw_settings.get("status_path", "status.json")),
    )

    return AppConfig(sync=build_sync_config(raw), source=source, settings=settings)


def require_source(source: SourceConfig) -> None:
    """Fail early when the GitHub source cannot be used."""
    if not source.token:
        raise ConfigurationError("Missing GITHUB_TOKEN")
    if not source.repository or "/" not in source.repository:
        raise ConfigurationError("Missing or invalid GITHUB_REPOSITORY (expected owner/name)")
