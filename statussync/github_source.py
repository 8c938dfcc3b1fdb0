"""
GitHub issue source.

Fetches incident tickets and their discussion comments from the GitHub
REST API with aiohttp and hands them over as RawIncident records. It uses:
  - Link-header pagination with hard caps on pages and items
  - Concurrent comment fetches, one task per issue and per extra page
  - Exponential backoff with jitter on transient failures (network errors,
    429 and 5xx); other HTTP errors fail immediately

Comments from authors outside the trusted roles are dropped here, so
untrusted text never reaches the parser.
"""

from __future__ import annotations

import asyncio
import math
import random
import re
from datetime import datetime, timezone
from typing import Any, Dict, Iterable, List, Optional, Tuple

import aiohttp
from dateutil import parser as dateutil_parser

from statussync import notifier
from statussync.errors import SourceError
from statussync.models import LifecycleState, RawIncident, SourceConfig, TrackerSettings

_LINK_RE = re.compile(r'<([^>]+)>\s*;\s*rel="([^"]+)"')
_PAGE_RE = re.compile(r"[?&]page=(\d+)")

_RETRY_STATUSES = {429, 500, 502, 503, 504}
_GONE_STATUSES = {404, 410}


def _safe_parse_datetime(dt_string: Optional[str]) -> datetime:
    """Parse a datetime string flexibly, defaulting to UTC now on failure."""
    try:
        return dateutil_parser.parse(dt_string)
    except (ValueError, TypeError, OverflowError):
        return datetime.now(timezone.utc)


def parse_link_header(value: Optional[str]) -> Dict[str, str]:
    """Map each ``rel`` of a Link header to its URL."""
    if not value:
        return {}
    return {rel: url for url, rel in _LINK_RE.findall(value)}


def last_page(link_header: Optional[str]) -> int:
    """Number of the last page advertised by a Link header (1 if none)."""
    url = parse_link_header(link_header).get("last")
    if not url:
        return 1
    match = _PAGE_RE.search(url)
    return int(match.group(1)) if match else 1


def is_trusted_role(association: Optional[str], trusted_roles: Iterable[str]) -> bool:
    return (association or "").upper() in {r.upper() for r in trusted_roles}


def select_updates(
    comments: List[Dict[str, Any]],
    trusted_roles: Iterable[str],
    keep: int,
) -> Tuple[str, ...]:
    """
    Pick the update texts to publish from an issue's comments.

    Comments are oldest first; only trusted authors count, and only the
    most recent ``keep`` bodies are retained.
    """
    roles = list(trusted_roles)
    bodies = [
        (c.get("body") or "").strip()
        for c in comments
        if is_trusted_role(c.get("author_association"), roles)
    ]
    bodies = [b for b in bodies if b]
    if keep <= 0:
        return ()
    return tuple(bodies[-keep:])


def issue_to_raw(issue: Dict[str, Any], updates: Tuple[str, ...] = ()) -> RawIncident:
    """Convert a GitHub issue payload into a RawIncident."""
    state = LifecycleState.OPEN if issue.get("state") == "open" else LifecycleState.CLOSED
    return RawIncident(
        id=int(issue["number"]),
        title=issue.get("title") or "",
        body=issue.get("body") or "",
        state=state,
        author_association=issue.get("author_association") or "",
        created_at=_safe_parse_datetime(issue.get("created_at")),
        updated_at=_safe_parse_datetime(issue.get("updated_at")),
        url=issue.get("html_url") or "",
        updates=updates,
    )


class GitHubSource:
    """
    Reads incident tickets from one GitHub repository.

    Attributes:
        config: Source configuration (repository, token, limits).
        settings: Global settings (retries, backoff).
        trusted_roles: Author associations whose comments are kept.
    """

    def __init__(
        self,
        config: SourceConfig,
        settings: TrackerSettings,
        trusted_roles: Iterable[str] = ("OWNER", "MEMBER", "COLLABORATOR"),
    ) -> None:
        self.config = config
        self.settings = settings
        self.trusted_roles = frozenset(trusted_roles)
        self._sleep = asyncio.sleep

    @property
    def headers(self) -> Dict[str, str]:
        return {
            "Authorization": f"Bearer {self.config.token}",
            "Accept": "application/vnd.github+json",
            "X-GitHub-Api-Version": "2022-11-28",
        }

    def _repo_url(self, path: str) -> str:
        return f"{self.config.api_url}/repos/{self.config.repository}{path}"

    # ── Public API ────────────────────────────────────────

    async def list_records(self, session: aiohttp.ClientSession) -> List[RawIncident]:
        """
        List every issue (open and closed) with its trusted comments.

        Pull requests are skipped. Comments for all issues are fetched
        concurrently.
        """
        issues: List[Dict[str, Any]] = []
        for page in range(1, max(self.config.max_issue_pages, 1) + 1):
            batch, headers = await self._get_json(
                session,
                self._repo_url("/issues"),
                params={
                    "state": "all",
                    "per_page": self.config.per_page,
                    "sort": "created",
                    "direction": "desc",
                    "page": page,
                },
            )
            issues.extend(i for i in batch if "pull_request" not in i)
            if "next" not in parse_link_header(headers.get("link")):
                break

        updates = await asyncio.gather(*(self._fetch_updates(session, i) for i in issues))
        return [issue_to_raw(issue, upd) for issue, upd in zip(issues, updates)]

    async def fetch_record(self, session: aiohttp.ClientSession, number: int) -> RawIncident:
        """
        Fetch a single issue by number.

        A deleted (or no longer visible) issue comes back as a DELETED
        record so it can be removed from the history. Pull requests share
        the issue numbering and are treated the same way.
        """
        try:
            issue, _ = await self._get_json(session, self._repo_url(f"/issues/{number}"))
        except SourceError as exc:
            if exc.status in _GONE_STATUSES:
                return RawIncident(id=number, state=LifecycleState.DELETED)
            raise
        if "pull_request" in issue:
            return RawIncident(id=number, state=LifecycleState.DELETED)
        updates = await self._fetch_updates(session, issue)
        return issue_to_raw(issue, updates)

    # ── Comments ──────────────────────────────────────────

    async def _fetch_updates(
        self,
        session: aiohttp.ClientSession,
        issue: Dict[str, Any],
    ) -> Tuple[str, ...]:
        if not issue.get("comments"):
            return ()
        comments = await self._fetch_comments(session, int(issue["number"]))
        return select_updates(comments, self.trusted_roles, self.config.keep_comments)

    async def _fetch_comments(
        self,
        session: aiohttp.ClientSession,
        number: int,
    ) -> List[Dict[str, Any]]:
        """
        Fetch an issue's most recent comments, oldest first.

        The first page tells how many pages exist. At most the last
        ``page_cap`` pages are kept (capped by max_comment_pages and
        max_comments); the ones beyond page 1 are fetched concurrently.
        """
        per_page = min(self.config.per_page, 100)
        url = self._repo_url(f"/issues/{number}/comments")

        first, headers = await self._get_json(
            session, url, params={"per_page": per_page, "page": 1}
        )
        page_cap = max(
            1,
            min(
                self.config.max_comment_pages,
                math.ceil(self.config.max_comments / per_page),
            ),
        )
        last = last_page(headers.get("link"))
        start = max(2, last - page_cap + 1)

        rest = await asyncio.gather(
            *(
                self._get_json(session, url, params={"per_page": per_page, "page": page})
                for page in range(start, last + 1)
            )
        )

        # Page 1 falls outside the window once the issue has more pages than the cap
        comments = list(first) if last <= page_cap else []
        for batch, _ in rest:
            comments.extend(batch)
        if self.config.max_comments <= 0:
            return []
        return comments[-self.config.max_comments:]

    # ── HTTP ──────────────────────────────────────────────

    async def _get_json(
        self,
        session: aiohttp.ClientSession,
        url: str,
        params: Optional[Dict[str, Any]] = None,
    ) -> Tuple[Any, Dict[str, str]]:
        """
        GET a JSON resource, retrying transient failures.

        Returns:
            The decoded body and the response headers (lower-cased names).

        Raises:
            SourceError: on a non-retryable HTTP error or once retries
                are exhausted.
        """
        attempt = 0
        while True:
            attempt += 1
            try:
                async with session.get(
                    url,
                    params=params,
                    headers=self.headers,
                    timeout=aiohttp.ClientTimeout(total=self.config.timeout),
                ) as resp:
                    if resp.status < 400:
                        headers = {k.lower(): v for k, v in resp.headers.items()}
                        return await resp.json(), headers
                    text = await resp.text()
                    error = SourceError(
                        f"GitHub API error {resp.status}: {text[:200]}",
                        status=resp.status,
                    )
            except (aiohttp.ClientError, asyncio.TimeoutError) as exc:
                error = SourceError(f"GitHub request failed: {exc!r}")

            retryable = error.status is None or error.status in _RETRY_STATUSES
            if not retryable or attempt > self.settings.max_retries:
                raise error

            wait = self._backoff_delay(attempt)
            notifier.print_retry(self.config.repository, attempt, wait, str(error))
            await self._sleep(wait)

    def _backoff_delay(self, attempt: int) -> float:
        """
        Calculate exponential backoff with jitter.

        delay = base * 2^(attempt-1) + random jitter
        Capped at 60 seconds.
        """
        base_delay = self.settings.base_backoff * (2 ** (attempt - 1))
        jitter = random.uniform(0, base_delay * 0.5)
        return min(base_delay + jitter, 60.0)
