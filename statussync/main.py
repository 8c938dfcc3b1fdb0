"""
Main entry point: the StatusSync orchestrator.

Loads the previous status document, fetches tickets from GitHub, runs
them through the sync core and writes the next document once it is
complete.

Usage:
    statussync sync                  # full listing of the repository
    statussync event --issue 42      # a single issue changed
    statussync event --issue 42 --deleted
"""

from __future__ import annotations

import argparse
import asyncio
import sys
from typing import List, Optional

import aiohttp

from statussync import notifier
from statussync.config import load_config, require_source
from statussync.document import same_content
from statussync.errors import StatusSyncError
from statussync.github_source import GitHubSource
from statussync.models import AppConfig, LifecycleState, RawIncident
from statussync.store import load_document, save_document
from statussync.sync import SyncResult, run_sync


class StatusSync:
    """
    Top-level orchestrator.

    Owns the GitHub source and the shared aiohttp session for one run.
    """

    def __init__(self, config: AppConfig, status_path: Optional[str] = None) -> None:
        self.config = config
        self.status_path = status_path or config.settings.status_path
        self.source = GitHubSource(
            config.source,
            config.settings,
            trusted_roles=config.sync.trusted_roles,
        )

    @property
    def debug(self) -> bool:
        return self.config.settings.log_level == "DEBUG"

    async def run(
        self,
        issue: Optional[int] = None,
        deleted: bool = False,
        force: bool = False,
    ) -> SyncResult:
        """
        Execute one sync:
        1. Load the previous document (may be absent)
        2. Fetch the full listing, or the single changed issue
        3. Reconcile and assemble the next document
        4. Write it, unless nothing but the timestamp would change
        """
        mode = "full" if issue is None else f"issue #{issue}"
        notifier.print_banner(self.config.source.repository, self.status_path, mode)

        previous = load_document(self.status_path)
        records = await self._fetch(issue, deleted)
        notifier.print_fetched(len(records))

        result = run_sync(
            previous,
            records,
            self.config.sync,
            authoritative=issue is None,
        )

        if self.debug:
            for rejection in result.rejections:
                notifier.print_rejection(rejection)
        notifier.print_summary(result.document)

        if not force and same_content(previous, result.document):
            notifier.print_unchanged(self.status_path)
        else:
            save_document(self.status_path, result.document)
            notifier.print_saved(self.status_path)
        return result

    async def _fetch(self, issue: Optional[int], deleted: bool) -> List[RawIncident]:
        if deleted and issue is not None:
            return [RawIncident(id=issue, state=LifecycleState.DELETED)]

        require_source(self.config.source)
        # Shared session, connection pooling across concurrent comment fetches
        connector = aiohttp.TCPConnector(limit_per_host=5)
        async with aiohttp.ClientSession(connector=connector) as session:
            if issue is None:
                return await self.source.list_records(session)
            return [await self.source.fetch_record(session, issue)]


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="statussync",
        description="Rebuild the service status document from incident issues.",
    )
    parser.add_argument("--config", help="path to config.yaml")
    parser.add_argument("--status", help="path of the status document (overrides config)")
    sub = parser.add_subparsers(dest="command", required=True)

    sync = sub.add_parser("sync", help="reconcile against every issue in the repository")
    sync.add_argument("--force", action="store_true", help="write even when unchanged")

    event = sub.add_parser("event", help="reconcile a single issue")
    event.add_argument("--issue", type=int, required=True, help="issue number")
    event.add_argument("--deleted", action="store_true", help="the issue was deleted")
    event.add_argument("--force", action="store_true", help="write even when unchanged")
    return parser


async def async_main(argv: Optional[List[str]] = None) -> int:
    """Async entry point."""
    args = _build_parser().parse_args(argv)

    try:
        config = load_config(args.config)
        tracker = StatusSync(config, status_path=args.status)
        if args.command == "event":
            await tracker.run(issue=args.issue, deleted=args.deleted, force=args.force)
        else:
            await tracker.run(force=args.force)
    except StatusSyncError as exc:
        notifier.print_error("statussync", str(exc))
        return 1
    return 0


def main() -> None:
    """Sync entry point."""
    try:
        sys.exit(asyncio.run(async_main()))
    except KeyboardInterrupt:
        sys.exit(130)


if __name__ == "__main__":
    main()
