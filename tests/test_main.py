from __future__ import annotations

import io
import json

from conftest import article_lines

from callisto.__main__ import main


def test_groups(serve, capsys):
    sock = serve("215 list follows", "comp.test 14 10 y", "alt.odd", ".", "205 bye")
    assert main(["-s", "news", "groups"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0].split() == ["comp.test", "14", "10", "y"]
    assert out[1].split() == ["alt.odd"]
    assert sock.closes == 1


def test_read(serve, capsys):
    serve("211 2 1 2 comp.test", *article_lines(1), *article_lines(2, subject="=?utf-8?q?caf=C3=A9?="), "205 bye")
    assert main(["read", "comp.test", "-n", "5"]) == 0
    out = capsys.readouterr().out.splitlines()
    assert out[0] == "Group comp.test has 2 articles, range 1 to 2"
    assert out[1].split()[:4] == ["2", "Poster", "2", "café"]
    assert out[2].split()[0] == "1"


def test_sync_cancel_keeps_state(serve, capsys, tmp_path):
    state = tmp_path / "marks.json"
    state.write_text(json.dumps({"comp.test": 10}), encoding="utf-8")
    serve("211 500 1 500 comp.test", "205 bye")
    assert main(["sync", "comp.test", "--state", str(state), "--cancel"]) == 0
    assert "Cancelled" in capsys.readouterr().out
    assert json.loads(state.read_text(encoding="utf-8")) == {"comp.test": 10}


def test_post_from_stdin(serve, capsys, monkeypatch):
    sock = serve("340 send article", "240 article posted", "205 bye")
    monkeypatch.setattr("sys.stdin", io.StringIO("hello\n.\n"))
    assert main(["post", "comp.test", "--subject", "hi", "--from", "Jane <jane@example.com>"]) == 0
    assert capsys.readouterr().out.strip() == "Posted"
    sent = sock.sent_lines()
    assert sent[sent.index("") + 1 :] == ["hello", "..", ".", "QUIT"]


def test_failure_reported(serve, capsys):
    serve("411 no such group", "205 bye")
    assert main(["read", "comp.nothing"]) == 1
    assert "411 no such group" in capsys.readouterr().err


def test_sync_prompt_without_stdin_cancels(serve, capsys, monkeypatch, tmp_path):
    state = tmp_path / "marks.json"
    sock = serve("211 500 1 500 comp.test", "205 bye")
    monkeypatch.setattr("sys.stdin", io.StringIO(""))
    assert main(["sync", "comp.test", "--state", str(state)]) == 0
    assert "Cancelled" in capsys.readouterr().out
    assert sock.sent_lines() == ["GROUP comp.test", "QUIT"]
    assert not state.exists()
