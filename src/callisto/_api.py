"""One connection per operation.

Each function here opens its own session from a ConnectionConfig, logs in
if the config carries a username, does one thing and closes the session
before returning, whether it succeeded or not.
"""

from __future__ import annotations

from collections.abc import Iterable, Mapping

from callisto._constants import NNTP_PORT, NNTP_SSL_PORT
from callisto._core import NNTP, NNTP_SSL
from callisto._sync import Resolver, SyncMarkStore, SyncPolicy, SyncResult, run_sync
from callisto._types import Article, ConnectionConfig, GroupInfo


def connect(config: ConnectionConfig) -> NNTP:
    """Open a session as described by `config`.  The caller must close it."""
    if config.use_tls:
        port = config.port or NNTP_SSL_PORT
        return NNTP_SSL(config.host, port, config.username, config.password, timeout=config.timeout)
    port = config.port or NNTP_PORT
    return NNTP(config.host, port, config.username, config.password, timeout=config.timeout)


def list_groups(config: ConnectionConfig) -> list[GroupInfo]:
    with connect(config) as s:
        return s.list_groups()


def fetch_recent(config: ConnectionConfig, group: str, max_count: int) -> list[Article]:
    with connect(config) as s:
        s.select_group(group)
        return s.fetch_recent_articles(max_count)


def fetch_article(config: ConnectionConfig, group: str, number: int) -> Article | None:
    with connect(config) as s:
        s.select_group(group)
        return s.fetch_article(number)


def post(config: ConnectionConfig, headers: Mapping[str, str], body_lines: str | Iterable[str]) -> bool:
    """Post an article; see NNTP.post()."""
    with connect(config) as s:
        return s.post(headers, body_lines)


def sync_group(
    config: ConnectionConfig,
    group: str,
    store: SyncMarkStore,
    resolve: Resolver,
    policy: SyncPolicy | None = None,
) -> SyncResult:
    """Fetch what is new in `group` since the mark kept in `store`.

    `resolve(group, new_count, threshold)` is only called when more than
    `policy.threshold` articles are new, and must return a Resolution.
    The mark is advanced to the group's high water mark once the fetch
    has succeeded; a cancelled or failed sync leaves it alone.
    """
    with connect(config) as s:
        return run_sync(s, group, store, resolve, policy or SyncPolicy())
