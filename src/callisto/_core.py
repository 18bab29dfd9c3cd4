"""A news reader client class based on:
- RFC 3977: Network News Transfer Protocol (version 2)
- RFC 4643: NNTP Extension for Authentication
- RFC 5536: Netnews Article Format

Example:

>>> from callisto import NNTP, compose_headers
>>> with NNTP('news') as s:
...     stat = s.select_group('comp.lang.python')
...     print('Group', stat.name, 'has', stat.count, 'articles, range', stat.low, 'to', stat.high)
...     articles = s.fetch_recent_articles(10)
Group comp.lang.python has 51 articles, range 5770 to 5821
>>>

Error responses are turned into exceptions, except for articles that have
gone missing from a group: those are skipped (fetch_article() returns None).

To post an article:
>>> headers = compose_headers('comp.test', 'Hello', 'Me <me@example.com>')
>>> with NNTP('news') as s:
...     accepted = s.post(headers, ['first line', '.', 'last line'])
>>>

One command is outstanding at a time: every method sends its command and
reads the whole response, including any multi-line block, before returning.
"""

# Differences from nntplib:
# - 4xx/5xx replies are not turned into exceptions by the line reader; each
#   command decides what a reply means ("no such article" is not an error)
# - socket errors, EOF and half-read lines all become NNTPTransportError and
#   leave the session unusable; close() is still safe to call
# - the current group's statistics are kept on the instance and scope
#   fetch_article() and fetch_recent_articles()
# - debug output goes through the logging module
from __future__ import annotations

import logging
import socket
import sys
from collections.abc import Iterable, Mapping
from typing import TYPE_CHECKING

from typing_extensions import Self

from callisto._constants import (
    _AUTH_CONTINUE,
    _AUTH_OK,
    _BODY_OK,
    _CRLF,
    _GROUP_OK,
    _HEAD_OK,
    _LIST_OK,
    _MAXLINE,
    _NO_SUCH_ARTICLE,
    _POST_OK,
    _POST_SEND,
    _REQUIRED_POST_HEADERS,
    _WELCOME,
    NNTP_PORT,
    NNTP_SSL_PORT,
)
from callisto._exceptions import (
    NNTPAuthError,
    NNTPDataError,
    NNTPError,
    NNTPProtocolError,
    NNTPTransportError,
)
from callisto._helpers import (
    _check_header_field,
    _dot_stuff,
    _encrypt_on,
    _fetch_window,
    _missing_post_headers,
    _parse_group_list,
    _parse_group_stat,
    _parse_headers,
)
from callisto._types import Article, GroupInfo, GroupStat

if TYPE_CHECKING:
    from ssl import SSLContext, SSLSocket

    from _typeshed import Unused

__all__ = [
    "NNTP",
    "NNTP_SSL",
]

_log = logging.getLogger(__name__)


def _masked(line: str) -> str:
    if line[:13].upper() == "AUTHINFO PASS":
        return line[:13] + " ****"
    return line


# The classes themselves
class NNTP:
    # UTF-8 is the character set for all NNTP commands and responses: they
    # are automatically encoded (when sending) and decoded (and receiving)
    # by this class. Non-compliant servers may still send other bytes, so
    # we use 'surrogateescape' as the error handler for fault tolerance
    # and easy round-tripping.

    encoding: str = "utf-8"
    errors: str = "surrogateescape"

    def __init__(
        self,
        host: str,
        port: int = NNTP_PORT,
        user: str | None = None,
        password: str | None = None,
        timeout: float | None = None,
    ):
        """Initialize an instance.  Arguments:
        - host: hostname to connect to
        - port: port to connect to (default the standard NNTP port)
        - user: username to authenticate with
        - password: password to use with username
        - timeout: timeout (in seconds) used for socket connections and
                   reads; None (the default) blocks forever

        The server greeting is read and checked before this returns.
        """
        self.host = host
        self.port = port
        self.debugging = 0
        self.file = None
        self.sock = None
        self.group_stat: GroupStat | None = None
        self.authenticated = False
        self._broken = False
        self.sock = self._create_socket(timeout)
        try:
            self.file = self.sock.makefile("rwb")
            self._base_init()
            if user:
                self.login(user, password)
        except BaseException:
            self._close()
            raise

    def _base_init(self) -> None:
        """Partial initialization for the NNTP protocol.
        This instance method is extracted for supporting the test code.
        """
        self.welcome = self._getresp()
        if self.welcome[:3] not in _WELCOME:
            raise NNTPProtocolError("Bad banner: " + self.welcome)
        # 200: posting allowed, 201: posting prohibited
        self.posting_allowed = self.welcome.startswith("200")

    def __enter__(self) -> Self:
        return self

    def __exit__(self, *args: Unused) -> None:
        self.close()

    def _create_socket(self, timeout: float | None):
        if timeout is not None and not timeout:
            raise ValueError("Non-blocking socket (timeout=0) is not supported")
        sys.audit("callisto.connect", self, self.host, self.port)
        try:
            return socket.create_connection((self.host, self.port), timeout)
        except OSError as e:
            raise NNTPTransportError("Cannot connect to {0}:{1}: {2}".format(self.host, self.port, e)) from e

    @property
    def closed(self) -> bool:
        return self.file is None

    def getwelcome(self) -> str:
        """Get the welcome message from the server
        (this is read and squirreled away by __init__()).
        If the response code is 200, posting is allowed;
        if it 201, posting is not allowed."""

        if self.debugging:
            _log.debug("*welcome* %r", self.welcome)
        return self.welcome

    def set_debuglevel(self, level: int) -> None:
        """Set the debugging level.  Argument 'level' means:
        0: no debugging output (default)
        1: log commands and responses but not body text etc.
        2: also log raw lines read and sent before stripping CR/LF"""

        self.debugging = level

    debug = set_debuglevel

    def _check_usable(self) -> None:
        if self.file is None:
            raise NNTPTransportError("Session is closed")
        if self._broken:
            raise NNTPTransportError("Session is unusable after a transport failure")

    def _transport_failed(self, message: str) -> NNTPTransportError:
        self._broken = True
        return NNTPTransportError(message)

    def _write(self, data: bytes) -> None:
        self._check_usable()
        try:
            self.file.write(data)
        except OSError as e:
            raise self._transport_failed("Write failed: {0}".format(e)) from e

    def _flush(self) -> None:
        self._check_usable()
        try:
            self.file.flush()
        except OSError as e:
            raise self._transport_failed("Write failed: {0}".format(e)) from e

    def _putline(self, line: bytes) -> None:
        """Internal: send one line to the server, appending CRLF.
        The `line` must be a bytes-like object."""
        sys.audit("callisto.putline", self, line)
        line = line + _CRLF
        if self.debugging > 1:
            _log.debug("*put* %r", _masked(line.decode(self.encoding, self.errors)))
        self._write(line)
        self._flush()

    def _putcmd(self, line: str) -> None:
        """Internal: send one command to the server (through _putline()).
        The `line` must be a unicode string."""
        if "\r" in line or "\n" in line:
            raise ValueError("command contains a line break: {0!r}".format(line))
        if self.debugging:
            _log.debug("*cmd* %r", _masked(line))
        self._putline(line.encode(self.encoding, self.errors))

    def _getline(self) -> bytes:
        """Internal: return one line from the server, stripping _CRLF.
        Raise NNTPTransportError if the connection is closed, even in the
        middle of a line.
        Returns a bytes object."""
        self._check_usable()
        try:
            line = self.file.readline(_MAXLINE + 1)
        except OSError as e:
            raise self._transport_failed("Read failed: {0}".format(e)) from e
        if len(line) > _MAXLINE:
            self._broken = True
            raise NNTPDataError("line too long")
        if self.debugging > 1:
            _log.debug("*get* %r", line)
        if not line:
            raise self._transport_failed("Connection closed by server")
        if not line.endswith(b"\n"):
            raise self._transport_failed("Connection closed in the middle of a line")
        if line[-2:] == _CRLF:
            return line[:-2]
        return line[:-1]

    def _getresp(self) -> str:
        """Internal: get a status line from the server.
        Raise NNTPProtocolError if it doesn't start with a status code.
        Returns a unicode string."""
        resp = self._getline().decode(self.encoding, self.errors)
        if self.debugging:
            _log.debug("*resp* %r", resp)
        if resp[:1] not in ("1", "2", "3", "4", "5") or not resp[:3].isdigit():
            raise NNTPProtocolError(resp)
        return resp

    def _getblock(self, skip_blank: bool = False) -> list[str]:
        """Internal: read a multi-line block up to the terminating ".".
        Lines starting with ".." lose their first dot.  Blank lines are
        dropped when `skip_blank` is true.
        Returns a list of unicode strings."""
        lines = []
        terminator = b"."
        while 1:
            line = self._getline()
            if line == terminator:
                break
            if line.startswith(b".."):
                line = line[1:]
            if skip_blank and not line.strip():
                continue
            lines.append(line.decode(self.encoding, self.errors))
        return lines

    def _shortcmd(self, line: str) -> str:
        """Internal: send a command and get the response.
        Same return value as _getresp()."""
        self._putcmd(line)
        return self._getresp()

    def list_groups(self) -> list[GroupInfo]:
        """Process a LIST command, falling back to LIST ACTIVE if the server
        refuses it.
        Returns:
        - list: list of GroupInfo (name, high, low, status); numbers the
                server left out or garbled are None
        """
        resp = self._shortcmd("LIST")
        if not resp.startswith(_LIST_OK):
            _log.debug("LIST refused (%s), trying LIST ACTIVE", resp)
            resp = self._shortcmd("LIST ACTIVE")
            if not resp.startswith(_LIST_OK):
                raise NNTPProtocolError("Server does not support LIST / LIST ACTIVE: " + resp)
        return _parse_group_list(self._getblock(skip_blank=True))

    def select_group(self, name: str) -> GroupStat:
        """Process a GROUP command.  Argument:
        - name: the group name
        Returns:
        - GroupStat (name, count, low, high); the name is the one echoed by
          the server, or `name` if it didn't echo one
        The group becomes the scope of subsequent article fetches.
        """
        resp = self._shortcmd("GROUP " + name)
        if not resp.startswith(_GROUP_OK):
            raise NNTPProtocolError(resp)
        self.group_stat = _parse_group_stat(resp, name)
        return self.group_stat

    def _artcmd(self, command: str, number: int, ok: str, skip_blank: bool) -> list[str] | None:
        """Internal: process a HEAD or BODY command.  Returns None if the
        server says there is no such article."""
        resp = self._shortcmd("{0} {1}".format(command, number))
        code = resp[:3]
        if code == ok:
            return self._getblock(skip_blank)
        if code in _NO_SUCH_ARTICLE:
            return None
        raise NNTPProtocolError("{0} {1} failed: {2}".format(command, number, resp))

    def _head(self, number: int) -> dict[str, str] | None:
        lines = self._artcmd("HEAD", number, _HEAD_OK, skip_blank=True)
        if lines is None:
            return None
        return _parse_headers(lines)

    def _body(self, number: int) -> list[str] | None:
        return self._artcmd("BODY", number, _BODY_OK, skip_blank=False)

    def _require_group(self) -> GroupStat:
        if self.group_stat is None:
            raise ValueError("No group selected; call select_group() first.")
        return self.group_stat

    def fetch_article(self, number: int) -> Article | None:
        """Retrieve the headers and body of article `number` in the current
        group.  Returns None if the server has no such article."""
        self._require_group()
        headers = self._head(number)
        if headers is None:
            return None
        body = self._body(number)
        if body is None:
            return None
        return Article(
            number=number,
            message_id=headers.get("message-id", ""),
            subject=headers.get("subject", ""),
            from_=headers.get("from", ""),
            date=headers.get("date", ""),
            body="\n".join(body),
            headers=headers,
        )

    def fetch_recent_articles(self, max_count: int) -> list[Article]:
        """Retrieve up to `max_count` of the newest articles of the current
        group, newest first.  Articles the server no longer has are skipped.
        An empty group gives an empty list."""
        stat = self._require_group()
        articles = []
        window = _fetch_window(stat, max_count)
        _log.debug("fetching %s articles %s", stat.name, window)
        for number in window:
            article = self.fetch_article(number)
            if article is None:
                _log.debug("article %d is missing from %s, skipped", number, stat.name)
                continue
            articles.append(article)
        articles.reverse()
        return articles

    def _encode_body(self, body_lines: str | bytes | Iterable[str | bytes]) -> list[bytes]:
        """Internal: turn a post body into dot-stuffed, CRLF-terminated lines.
        Embedded newlines split a line in two."""
        if isinstance(body_lines, (str, bytes, bytearray)):
            body_lines = [body_lines]
        out = []
        for line in body_lines:
            if isinstance(line, str):
                line = line.encode(self.encoding, self.errors)
            elif not isinstance(line, (bytes, bytearray)):
                raise TypeError("body lines must be str or bytes, not {0}".format(type(line).__name__))
            for part in bytes(line).rstrip(b"\r\n").split(b"\n"):
                out.append(_dot_stuff(part))
        return out

    def post(self, headers: Mapping[str, str], body_lines: str | bytes | Iterable[str | bytes]) -> bool:
        """Process a POST command.  Arguments:
        - headers: header names mapped to values, sent in iteration order;
                   From, Newsgroups and Subject are required
        - body_lines: the body, as an iterable of lines (str or bytes) or a
                      single string
        Returns:
        - True if the server accepted the article, False if it rejected it
        Raises NNTPProtocolError if the server won't take an article at all
        and NNTPTransportError if the connection fails on the way.
        The body is checked before POST is sent."""
        missing = _missing_post_headers(headers, _REQUIRED_POST_HEADERS)
        if missing:
            raise ValueError("Missing required header(s): " + ", ".join(missing))
        for key, value in headers.items():
            _check_header_field(key, value)
        body = self._encode_body(body_lines)

        resp = self._shortcmd("POST")
        if not resp.startswith(_POST_SEND):
            raise NNTPProtocolError(resp)
        # The server is now reading an article: anything that stops us before
        # the terminator leaves the session out of step.
        try:
            # We don't use _putline() because we don't want a spurious flush()
            # after each line is written
            for key, value in headers.items():
                self._write("{0}: {1}".format(key, value).encode(self.encoding, self.errors) + _CRLF)
            self._write(_CRLF)
            for line in body:
                self._write(line)
            self._write(b"." + _CRLF)
            self._flush()
        except BaseException:
            self._broken = True
            raise
        resp = self._getresp()
        if resp.startswith(_POST_OK):
            return True
        _log.info("article rejected by %s: %s", self.host, resp)
        return False

    def login(self, user: str, password: str | None = None) -> None:
        """Process AUTHINFO USER / AUTHINFO PASS.  Must be done right after
        connecting, before any group is selected.
        Raises NNTPAuthError if the server doesn't accept the credentials."""
        if self.authenticated:
            raise ValueError("Already logged in.")
        if self.group_stat is not None:
            raise ValueError("Authentication must happen before a group is selected.")
        resp = self._shortcmd("AUTHINFO USER " + user)
        if not resp.startswith(_AUTH_CONTINUE):
            raise NNTPAuthError(resp)
        resp = self._shortcmd("AUTHINFO PASS " + (password or ""))
        if not resp.startswith(_AUTH_OK):
            raise NNTPAuthError(resp)
        self.authenticated = True

    auth = login

    def _close(self) -> None:
        file, sock = self.file, self.sock
        self.file = self.sock = None
        try:
            if file is not None:
                file.close()
        except OSError as e:
            _log.debug("error closing stream to %s: %s", self.host, e)
        finally:
            if sock is not None:
                sock.close()

    def quit(self) -> str:
        """Process a QUIT command and close the socket.  Returns:
        - resp: server response if successful"""
        try:
            resp = self._shortcmd("QUIT")
        finally:
            self._close()
        return resp

    def close(self) -> None:
        """Say QUIT if the connection still works, then release the stream
        and the socket whatever happens.  Safe to call more than once."""
        if self.file is None and self.sock is None:
            return
        try:
            if self.file is not None and not self._broken:
                self._shortcmd("QUIT")
        except NNTPError as e:
            _log.debug("QUIT to %s failed: %s", self.host, e)
        finally:
            self._close()


class NNTP_SSL(NNTP):
    def __init__(
        self,
        host: str,
        port: int = NNTP_SSL_PORT,
        user: str | None = None,
        password: str | None = None,
        ssl_context: SSLContext | None = None,
        timeout: float | None = None,
    ) -> None:
        """This works identically to NNTP.__init__, except for the change
        in default port and the `ssl_context` argument for SSL connections.
        The TLS handshake is completed before the greeting is read.
        """
        self.ssl_context = ssl_context
        super().__init__(host, port, user, password, timeout)

    def _create_socket(self, timeout: float | None) -> SSLSocket:
        sock = super()._create_socket(timeout)
        try:
            sock = _encrypt_on(sock, self.ssl_context, self.host)
        except OSError as e:
            sock.close()
            raise NNTPTransportError("TLS handshake with {0} failed: {1}".format(self.host, e)) from e
        else:
            return sock
