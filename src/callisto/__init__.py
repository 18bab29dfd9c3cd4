from __future__ import annotations

from callisto._api import connect, fetch_article, fetch_recent, list_groups, post, sync_group
from callisto._constants import NNTP_PORT, NNTP_SSL_PORT
from callisto._core import NNTP, NNTP_SSL
from callisto._exceptions import (
    NNTPAuthError,
    NNTPDataError,
    NNTPError,
    NNTPProtocolError,
    NNTPTransportError,
)
from callisto._helpers import compose_headers, decode_header, format_sender, netrc_credentials
from callisto._sync import (
    FetchPlan,
    JsonSyncMarkStore,
    MemorySyncMarkStore,
    Resolution,
    SyncMarkStore,
    SyncPolicy,
    SyncResult,
)
from callisto._types import Article, ConnectionConfig, GroupInfo, GroupStat

__all__ = [
    "NNTP",
    "NNTP_SSL",
    "NNTP_PORT",
    "NNTP_SSL_PORT",
    "NNTPError",
    "NNTPTransportError",
    "NNTPProtocolError",
    "NNTPDataError",
    "NNTPAuthError",
    "Article",
    "ConnectionConfig",
    "GroupInfo",
    "GroupStat",
    "FetchPlan",
    "Resolution",
    "SyncMarkStore",
    "MemorySyncMarkStore",
    "JsonSyncMarkStore",
    "SyncPolicy",
    "SyncResult",
    "connect",
    "list_groups",
    "fetch_recent",
    "fetch_article",
    "post",
    "sync_group",
    "compose_headers",
    "format_sender",
    "decode_header",
    "netrc_credentials",
]
