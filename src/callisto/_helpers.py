from __future__ import annotations

import datetime
import socket
import ssl
import uuid
from collections.abc import Iterable, Mapping
from email.header import decode_header as _email_decode_header
from email.utils import format_datetime

from callisto._constants import _CRLF
from callisto._exceptions import NNTPDataError
from callisto._types import GroupInfo, GroupStat


# Helper function(s)
def decode_header(header_str: str) -> str:
    """Takes a unicode string representing a munged header value
    and decodes it as a (possibly non-ASCII) readable value."""
    parts = []
    for v, enc in _email_decode_header(header_str):
        if isinstance(v, bytes):
            parts.append(v.decode(enc or "ascii"))
        else:
            parts.append(v)
    return "".join(parts)


def _parse_int(token: str | None) -> int | None:
    if token is None:
        return None
    try:
        return int(token)
    except ValueError:
        return None


def _parse_group_list(lines: Iterable[str]) -> list[GroupInfo]:
    """Parse the lines of a LIST / LIST ACTIVE block into GroupInfo tuples.
    Each line is "group high low status"; only the name is mandatory and
    numbers that don't parse become None."""
    groups = []
    for line in lines:
        fields = line.split()
        if not fields:
            continue
        fields += [None] * (4 - len(fields))
        name, high, low, status = fields[:4]
        groups.append(GroupInfo(name, _parse_int(high), _parse_int(low), status))
    return groups


def _parse_group_stat(resp: str, requested: str) -> GroupStat:
    """Parse a "211 count low high [name]" GROUP response line.
    The requested name is used when the server doesn't echo one back."""
    words = resp.split()
    if len(words) < 4:
        raise NNTPDataError(resp)
    try:
        count, low, high = int(words[1]), int(words[2]), int(words[3])
    except ValueError:
        raise NNTPDataError(resp) from None
    name = words[4] if len(words) > 4 else requested
    return GroupStat(name, count, low, high)


def _parse_headers(lines: Iterable[str]) -> dict[str, str]:
    """Parse "Key: value" lines into a dict with lower-cased keys.
    A repeated key has its values joined with a single space; the dict keeps
    the order in which keys were first seen."""
    headers: dict[str, str] = {}
    for line in lines:
        key, sep, value = line.partition(":")
        key = key.strip().lower()
        if not sep or not key:
            continue
        value = value.strip()
        if key in headers:
            headers[key] = headers[key] + " " + value
        else:
            headers[key] = value
    return headers


def _fetch_window(stat: GroupStat, max_count: int) -> range:
    """Return the article numbers to fetch, oldest first, for the newest
    `max_count` articles of the group described by `stat`."""
    if stat.count <= 0 or stat.high <= 0 or stat.high < stat.low:
        return range(0)
    start = max(1, max(stat.low, stat.high - max_count + 1))
    return range(start, stat.high + 1)


def _dot_stuff(line: bytes) -> bytes:
    """Escape a payload line so it can't be taken for the block terminator."""
    line = line.rstrip(b"\r\n")
    if line.startswith(b"."):
        line = b"." + line
    return line + _CRLF


def _check_header_field(key: str, value: str) -> None:
    if not key or ":" in key or any(c in key for c in " \t\r\n"):
        raise ValueError("invalid header name: {0!r}".format(key))
    if "\r" in value or "\n" in value:
        raise ValueError("header {0} contains a line break".format(key))


def _missing_post_headers(headers: Mapping[str, str], required: Iterable[str]) -> list[str]:
    present = {key.lower() for key, value in headers.items() if value and value.strip()}
    return [name for name in required if name not in present]


def format_sender(display_name: str, email: str) -> str:
    """Build a From header value out of a display name and an address."""
    display_name = display_name.strip()
    email = email.strip()
    if not display_name or not email:
        raise ValueError("a display name and an email address are required to post")
    return "{0} <{1}>".format(display_name, email)


def compose_headers(
    newsgroups: str,
    subject: str,
    from_: str,
    references: str | None = None,
    date: datetime.datetime | None = None,
    message_id: str | None = None,
) -> dict[str, str]:
    """Build the header set of a new article, in posting order:
    From, Newsgroups, Subject, Date, Message-ID and, for a reply,
    References and In-Reply-To."""
    newsgroups, subject, from_ = newsgroups.strip(), subject.strip(), from_.strip()
    for label, value in (("Newsgroups", newsgroups), ("Subject", subject), ("From", from_)):
        if not value:
            raise ValueError("{0} required".format(label))
    if date is None:
        date = datetime.datetime.now(datetime.timezone.utc)
    if message_id is None:
        message_id = "<{0}@callisto>".format(uuid.uuid4())
    headers = {
        "From": from_,
        "Newsgroups": newsgroups,
        "Subject": subject,
        "Date": format_datetime(date),
        "Message-ID": message_id,
    }
    if references and references.strip():
        ref = references.strip()
        if not (ref.startswith("<") and ref.endswith(">")):
            ref = "<{0}>".format(ref)
        headers["References"] = ref
        headers["In-Reply-To"] = ref
    return headers


def netrc_credentials(host: str) -> tuple[str, str | None] | None:
    """Look up (user, password) for `host` in ~/.netrc, or None."""
    import netrc

    try:
        auth = netrc.netrc().authenticators(host)
    except (OSError, netrc.NetrcParseError):
        return None
    if not auth or not auth[0]:
        return None
    return auth[0], auth[2]


def _encrypt_on(sock: socket.socket, context: ssl.SSLContext | None, hostname: str) -> ssl.SSLSocket:
    """Wrap a socket in SSL/TLS. Arguments:
    - sock: Socket to wrap
    - context: SSL context to use for the encrypted connection
    Returns:
    - sock: New, encrypted socket.
    The handshake completes before this returns.
    """
    # Generate a default SSL context if none was passed.
    if context is None:
        context = ssl.create_default_context()
    return context.wrap_socket(sock, server_hostname=hostname, do_handshake_on_connect=True)
