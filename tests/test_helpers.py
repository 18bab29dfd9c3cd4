from __future__ import annotations

import datetime

import pytest

from callisto import GroupInfo, GroupStat, NNTPDataError, compose_headers, decode_header, format_sender
from callisto._helpers import _dot_stuff, _fetch_window, _parse_group_list, _parse_group_stat, _parse_headers


def test_group_list_is_tolerant():
    lines = ["comp.test 14 10 y", "   ", "alt.bad x 3", "single", "misc.extra 5 1 m moderated"]
    assert _parse_group_list(lines) == [
        GroupInfo("comp.test", 14, 10, "y"),
        GroupInfo("alt.bad", None, 3, None),
        GroupInfo("single", None, None, None),
        GroupInfo("misc.extra", 5, 1, "m"),
    ]


def test_group_stat_with_echoed_name():
    stat = _parse_group_stat("211 5 10 14 comp.test", "ignored")
    assert stat == GroupStat(name="comp.test", count=5, low=10, high=14)


def test_group_stat_falls_back_to_requested_name():
    assert _parse_group_stat("211 5 10 14", "comp.test").name == "comp.test"


@pytest.mark.parametrize("resp", ["211 5 10", "211 five 10 14 comp.test"])
def test_group_stat_malformed(resp):
    with pytest.raises(NNTPDataError):
        _parse_group_stat(resp, "comp.test")


def test_repeated_headers_are_joined_in_first_seen_order():
    headers = _parse_headers(
        [
            "From: someone@example.com",
            "Subject: part one",
            "Date: today",
            "subject: part two",
            "not a header line",
            ": no key",
            "X-Empty:",
        ]
    )
    assert headers == {
        "from": "someone@example.com",
        "subject": "part one part two",
        "date": "today",
        "x-empty": "",
    }
    assert list(headers) == ["from", "subject", "date", "x-empty"]


@pytest.mark.parametrize(
    "stat",
    [
        GroupStat("g", 0, 1, 10),
        GroupStat("g", -1, 1, 10),
        GroupStat("g", 5, 0, 0),
        GroupStat("g", 5, 11, 10),
    ],
)
@pytest.mark.parametrize("max_count", [0, 1, 100])
def test_fetch_window_empty_groups(stat, max_count):
    assert list(_fetch_window(stat, max_count)) == []


def test_fetch_window_newest_articles():
    assert _fetch_window(GroupStat("g", 21, 40, 60), 5) == range(56, 61)


def test_fetch_window_clamped_to_low():
    assert _fetch_window(GroupStat("g", 3, 10, 12), 100) == range(10, 13)


def test_fetch_window_never_below_one():
    assert _fetch_window(GroupStat("g", 3, 0, 3), 100) == range(1, 4)


def test_dot_stuff():
    assert _dot_stuff(b".") == b"..\r\n"
    assert _dot_stuff(b".hidden\r\n") == b"..hidden\r\n"
    assert _dot_stuff(b"plain") == b"plain\r\n"
    assert _dot_stuff(b"") == b"\r\n"


def test_compose_headers_for_reply():
    date = datetime.datetime(2026, 10, 19, 12, 30, tzinfo=datetime.timezone.utc)
    headers = compose_headers(
        " comp.test ", "Re: hello", "Jane <jane@example.com>", references="abc@host", date=date, message_id="<id@x>"
    )
    assert list(headers.items()) == [
        ("From", "Jane <jane@example.com>"),
        ("Newsgroups", "comp.test"),
        ("Subject", "Re: hello"),
        ("Date", "Mon, 19 Oct 2026 12:30:00 +0000"),
        ("Message-ID", "<id@x>"),
        ("References", "<abc@host>"),
        ("In-Reply-To", "<abc@host>"),
    ]


def test_compose_headers_generates_message_id():
    headers = compose_headers("comp.test", "hello", "Jane <jane@example.com>")
    assert headers["Message-ID"].startswith("<")
    assert headers["Message-ID"].endswith("@callisto>")
    assert "References" not in headers


@pytest.mark.parametrize("field", ["newsgroups", "subject", "from_"])
def test_compose_headers_requires_fields(field):
    kwargs = {"newsgroups": "comp.test", "subject": "hello", "from_": "Jane <jane@example.com>"}
    kwargs[field] = "  "
    with pytest.raises(ValueError):
        compose_headers(**kwargs)


def test_format_sender():
    assert format_sender(" Jane Doe ", "jane@example.com") == "Jane Doe <jane@example.com>"
    with pytest.raises(ValueError):
        format_sender("", "jane@example.com")


def test_decode_header():
    assert decode_header("=?utf-8?q?caf=C3=A9?=") == "café"
    assert decode_header("plain subject") == "plain subject"
