from __future__ import annotations

import io

import pytest

from callisto import NNTP, NNTP_SSL

GREETING = "200 news.example.com ready - posting allowed"


class FakeFile:
    """The "rwb" file object returned by FakeSocket.makefile()."""

    def __init__(self, sock: FakeSocket) -> None:
        self.sock = sock

    def readline(self, size: int = -1) -> bytes:
        return self.sock.incoming.readline(size)

    def write(self, data: bytes) -> int:
        self.sock.sent.extend(data)
        return len(data)

    def flush(self) -> None:
        pass

    def close(self) -> None:
        self.sock.file_closes += 1


class FakeSocket:
    """Plays back a canned server script and records what the client sent."""

    def __init__(self, script: bytes) -> None:
        self.incoming = io.BytesIO(script)
        self.sent = bytearray()
        self.closes = 0
        self.file_closes = 0

    def makefile(self, mode: str) -> FakeFile:
        return FakeFile(self)

    def close(self) -> None:
        self.closes += 1

    def sent_lines(self) -> list[str]:
        return self.sent.decode("utf-8").split("\r\n")[:-1]


@pytest.fixture
def serve(monkeypatch):
    """serve(*lines) makes the next session talk to a server that answers
    with the greeting followed by `lines`.  str items get a CRLF appended,
    bytes items are sent as they are."""

    def factory(*lines, greeting: str | None = GREETING) -> FakeSocket:
        script = bytearray()
        for line in ([greeting] if greeting is not None else []) + list(lines):
            if isinstance(line, bytes):
                script.extend(line)
            else:
                script.extend(line.encode("utf-8") + b"\r\n")
        sock = FakeSocket(bytes(script))
        monkeypatch.setattr(NNTP, "_create_socket", lambda self, timeout: sock)
        monkeypatch.setattr(NNTP_SSL, "_create_socket", lambda self, timeout: sock)
        return sock

    return factory


def article_lines(number: int, subject: str = "", body: tuple[str, ...] = ("hello",)) -> list[str]:
    """HEAD and BODY responses for one article."""
    msgid = "<{0}@example.com>".format(number)
    return [
        "221 {0} {1} head".format(number, msgid),
        "From: Poster {0} <p{0}@example.com>".format(number),
        "Subject: {0}".format(subject or "article {0}".format(number)),
        "Message-ID: {0}".format(msgid),
        "Date: Mon, 19 Oct 2026 10:00:00 +0000",
        ".",
        "222 {0} {1} body".format(number, msgid),
        *body,
        ".",
    ]
