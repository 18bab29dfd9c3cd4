from __future__ import annotations

from typing_extensions import NamedTuple


class GroupInfo(NamedTuple):
    name: str
    high: int | None
    low: int | None
    status: str | None


class GroupStat(NamedTuple):
    name: str
    count: int
    low: int
    high: int


class Article(NamedTuple):
    number: int
    message_id: str
    subject: str
    from_: str
    date: str
    body: str
    headers: dict[str, str]


class ConnectionConfig(NamedTuple):
    host: str
    port: int | None = None
    use_tls: bool = False
    username: str | None = None
    password: str | None = None
    timeout: float | None = None
