"""
Console notifier: structured console output for sync runs.

Prints the run banner, the per-service status table, rejected tickets
(debug level) and errors, with ANSI colors for readability.
"""

from __future__ import annotations

import sys
from datetime import datetime, timezone

from statussync.models import Rejection, StatusDocument
from statussync.severity import Severity

# ANSI color codes for terminal styling
_RESET = "\033[0m"
_BOLD = "\033[1m"
_DIM = "\033[2m"
_RED = "\033[91m"
_GREEN = "\033[92m"
_YELLOW = "\033[93m"
_BLUE = "\033[94m"
_MAGENTA = "\033[95m"
_CYAN = "\033[96m"
_WHITE = "\033[97m"
_GRAY = "\033[90m"

_SEVERITY_COLORS = {
    Severity.OPERATIONAL: _GREEN,
    Severity.DEGRADED: _YELLOW,
    Severity.MAINTENANCE: _BLUE,
    Severity.PARTIAL: _MAGENTA,
    Severity.MAJOR: _RED,
}


def _now() -> str:
    return datetime.now(timezone.utc).strftime("%Y-%m-%d %H:%M:%S")


def severity_color(level: Severity) -> str:
    """Pick a color for a severity level."""
    return _SEVERITY_COLORS.get(level, _WHITE)


def print_banner(repository: str, status_path: str, mode: str) -> None:
    """Print the run header."""
    print(
        f"{_BOLD}{_CYAN}Status Sync{_RESET} {_DIM}({mode}){_RESET}\n"
        f"  {_BOLD}{_BLUE}> Source:{_RESET} {_WHITE}{repository}{_RESET}"
        f"  {_DIM}-> {status_path}{_RESET}"
    )


def print_fetched(count: int) -> None:
    print(f"  {_DIM}[{_now()}] fetched {count} ticket(s){_RESET}")


def print_rejection(rejection: Rejection) -> None:
    """Print why a ticket was skipped (debug level)."""
    print(f"  {_GRAY}#{rejection.id} skipped: {rejection.reason.value}{_RESET}")


def print_summary(doc: StatusDocument) -> None:
    """Print the per-service table and the open incident count."""
    width = max((len(name) for name in doc.services), default=0)
    print()
    for name, level in doc.services.items():
        color = severity_color(level)
        print(f"    {_BOLD}{name.ljust(width)}{_RESET}  {color}{level.value}{_RESET}")
    print(f"\n  {_BOLD}Incidents:{_RESET} {len(doc.incidents)} open")
    for inc in doc.incidents:
        color = severity_color(inc.severity)
        print(
            f"    {_GRAY}#{inc.id}{_RESET} {color}{inc.severity.value}{_RESET} "
            f"{inc.title} {_DIM}({', '.join(inc.services)}){_RESET}"
        )
    print()


def print_saved(path: str) -> None:
    print(f"  {_BOLD}{_GREEN}Saved{_RESET} {path}")


def print_unchanged(path: str) -> None:
    print(f"  {_DIM}[{_now()}] {path}: No changes{_RESET}")


def print_error(source: str, message: str) -> None:
    """Print an error message."""
    print(
        f"  {_GRAY}[{_now()}]{_RESET} {_RED}ERROR{_RESET} "
        f"{_BOLD}{source}:{_RESET} {message}",
        file=sys.stderr,
    )


def print_retry(source: str, attempt: int, wait: float, reason: str = "") -> None:
    """Print a retry message with backoff info."""
    detail = f" {reason}" if reason else ""
    print(
        f"  {_DIM}{source}: Retrying in {wait:.1f}s "
        f"(attempt {attempt}){detail}...{_RESET}",
        file=sys.stderr,
    )
