"""High-water-mark based synchronization of a group.

The last article number seen in each group is kept in a SyncMarkStore
owned by the caller.  On each sync the number of new articles is compared
to a threshold: below it a batch is fetched silently, above it the caller's
resolver chooses between fetching everything, fetching `threshold`
articles, or cancelling.  The mark only moves after a successful fetch.
"""

from __future__ import annotations

import enum
import json
import logging
import os
from collections.abc import Callable

from typing_extensions import NamedTuple, Protocol, TypeAlias

from callisto._types import Article, GroupStat

_log = logging.getLogger(__name__)


class Resolution(enum.Enum):
    FETCH_ALL = "all"
    FETCH_CAPPED = "capped"
    CANCEL = "cancel"


# resolve(group, new_count, threshold) -> Resolution
Resolver: TypeAlias = Callable[[str, int, int], Resolution]


class FetchPlan(NamedTuple):
    new_count: int
    count: int
    needs_confirmation: bool


class SyncResult(NamedTuple):
    group: str
    stat: GroupStat
    resolution: Resolution | None
    articles: list[Article]

    @property
    def cancelled(self) -> bool:
        return self.resolution is Resolution.CANCEL


class SyncPolicy(NamedTuple):
    threshold: int = 200
    default_batch: int = 100

    def new_count(self, high: int, last_seen: int) -> int:
        return max(0, high - last_seen)

    def plan(self, high: int, last_seen: int) -> FetchPlan:
        """Decide how many articles to fetch.  When `needs_confirmation` is
        set, `count` is meaningless until the caller resolves the plan."""
        new = self.new_count(high, last_seen)
        if new <= self.threshold:
            return FetchPlan(new, max(new, self.default_batch), False)
        return FetchPlan(new, new, True)

    def resolve(self, plan: FetchPlan, resolution: Resolution) -> int | None:
        """Number of articles to fetch for the caller's choice, None to cancel."""
        if resolution is Resolution.FETCH_ALL:
            return plan.new_count
        if resolution is Resolution.FETCH_CAPPED:
            return self.threshold
        if resolution is Resolution.CANCEL:
            return None
        raise ValueError("unknown resolution: {0!r}".format(resolution))


class SyncMarkStore(Protocol):
    def get(self, group: str) -> int: ...

    def put(self, group: str, high: int) -> None: ...


class MemorySyncMarkStore:
    """SyncMarkStore kept in a dict; unknown groups read as 0."""

    def __init__(self, marks: dict[str, int] | None = None) -> None:
        self.marks = dict(marks or {})

    def get(self, group: str) -> int:
        return self.marks.get(group, 0)

    def put(self, group: str, high: int) -> None:
        self.marks[group] = high


class JsonSyncMarkStore(MemorySyncMarkStore):
    """SyncMarkStore persisted as a JSON object {group: high} in `path`.
    The file is rewritten on every put()."""

    def __init__(self, path: str | os.PathLike[str]) -> None:
        self.path = os.fspath(path)
        try:
            with open(self.path, encoding="utf-8") as f:
                marks = json.load(f)
        except FileNotFoundError:
            marks = {}
        if not isinstance(marks, dict):
            raise ValueError("{0}: expected a JSON object".format(self.path))
        super().__init__({str(k): int(v) for k, v in marks.items()})

    def put(self, group: str, high: int) -> None:
        super().put(group, high)
        tmp = self.path + ".tmp"
        with open(tmp, "w", encoding="utf-8") as f:
            json.dump(self.marks, f, indent=2, sort_keys=True)
        os.replace(tmp, self.path)


def run_sync(session, group: str, store: SyncMarkStore, resolve: Resolver, policy: SyncPolicy) -> SyncResult:
    """Sync `group` over an open session.  Only the GROUP command is sent
    before the resolver is consulted."""
    stat = session.select_group(group)
    last_seen = store.get(group)
    plan = policy.plan(stat.high, last_seen)
    _log.debug("%s: high=%d last_seen=%d new=%d", group, stat.high, last_seen, plan.new_count)

    resolution = None
    count = plan.count
    if plan.needs_confirmation:
        resolution = resolve(group, plan.new_count, policy.threshold)
        count = policy.resolve(plan, resolution)
        _log.info("%s: %d new articles, caller chose %s", group, plan.new_count, resolution.value)
        if count is None:
            return SyncResult(group, stat, resolution, [])

    articles = session.fetch_recent_articles(count)
    if stat.high > 0:
        store.put(group, stat.high)
        _log.debug("%s: mark advanced to %d", group, stat.high)
    return SyncResult(group, stat, resolution, articles)
