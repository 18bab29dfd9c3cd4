"""callisto command line - list groups, read, sync and post articles."""

from __future__ import annotations

import argparse
import logging
import sys

from callisto._api import connect, sync_group
from callisto._constants import NNTP_PORT, NNTP_SSL_PORT
from callisto._exceptions import NNTPError
from callisto._helpers import compose_headers, decode_header, netrc_credentials
from callisto._sync import JsonSyncMarkStore, Resolution, SyncPolicy
from callisto._types import Article, ConnectionConfig


def cut(s: str, lim: int) -> str:
    if len(s) > lim:
        s = s[: lim - 4] + "..."
    return s


def _blank(value: int | None) -> str:
    return "" if value is None else str(value)


def _print_articles(articles: list[Article]) -> None:
    for art in articles:
        author = decode_header(art.from_).split("<", 1)[0]
        subject = decode_header(art.subject)
        lines = art.body.count("\n") + 1 if art.body else 0
        print("{:7} {:20} {:42} ({})".format(art.number, cut(author, 20), cut(subject, 42), lines))


def _prompt_resolution(group: str, new_count: int, threshold: int) -> Resolution:
    try:
        answer = input(
            "{0} has {1} new articles. Fetch [a]ll, the newest [{2}], or [c]ancel? ".format(group, new_count, threshold)
        )
    except EOFError:
        # stdin closed: nobody to ask
        return Resolution.CANCEL
    answer = answer.strip().lower()
    if answer.startswith("a"):
        return Resolution.FETCH_ALL
    if answer.startswith("c") or not answer:
        return Resolution.CANCEL
    return Resolution.FETCH_CAPPED


def _config(args: argparse.Namespace) -> ConnectionConfig:
    port = args.port
    if port == -1:
        port = NNTP_SSL_PORT if args.ssl else NNTP_PORT
    user, password = args.user, args.password
    if args.netrc and not user:
        credentials = netrc_credentials(args.server)
        if credentials:
            user, password = credentials
    return ConnectionConfig(args.server, port, args.ssl, user, password, args.timeout)


def main(argv: list[str] | None = None) -> int:
    parser = argparse.ArgumentParser(
        prog="callisto",
        description="""\
        callisto - a small news reader for the command line""",
    )
    parser.add_argument(
        "-s",
        "--server",
        default="news.gmane.io",
        help="NNTP server hostname (default: %(default)s)",
    )
    parser.add_argument(
        "-p",
        "--port",
        default=-1,
        type=int,
        help="NNTP port number (default: %s / %s)" % (NNTP_PORT, NNTP_SSL_PORT),
    )
    parser.add_argument("-S", "--ssl", action="store_true", default=False, help="use NNTP over SSL")
    parser.add_argument("-u", "--user", default=None, help="username to authenticate with")
    parser.add_argument("--password", default=None, help="password to authenticate with")
    parser.add_argument(
        "--netrc", action="store_true", default=False, help="read credentials from ~/.netrc if no user is given"
    )
    parser.add_argument("-t", "--timeout", default=None, type=float, help="socket timeout in seconds (default: none)")
    parser.add_argument("-v", "--verbose", action="count", default=0, help="log protocol traffic (repeat for raw lines)")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("groups", help="list the groups carried by the server")

    read = sub.add_parser("read", help="display the latest articles in a newsgroup")
    read.add_argument("group")
    read.add_argument(
        "-n",
        "--nb-articles",
        default=10,
        type=int,
        help="number of articles to fetch (default: %(default)s)",
    )

    sync = sub.add_parser("sync", help="fetch the articles posted since the last sync")
    sync.add_argument("group")
    sync.add_argument("--state", default=".callisto-marks.json", help="file keeping the marks (default: %(default)s)")
    sync.add_argument("--threshold", default=SyncPolicy().threshold, type=int, help="ask above this many new articles")
    sync.add_argument("--batch", default=SyncPolicy().default_batch, type=int, help="articles fetched without asking")
    choice = sync.add_mutually_exclusive_group()
    choice.add_argument("--all", dest="resolution", action="store_const", const=Resolution.FETCH_ALL)
    choice.add_argument("--cap", dest="resolution", action="store_const", const=Resolution.FETCH_CAPPED)
    choice.add_argument("--cancel", dest="resolution", action="store_const", const=Resolution.CANCEL)

    post = sub.add_parser("post", help="post an article read from standard input")
    post.add_argument("group")
    post.add_argument("--subject", required=True)
    post.add_argument("--from", dest="from_", required=True, help='e.g. "Jane Doe <jane@example.com>"')
    post.add_argument("--references", default=None, help="message-id of the article replied to")

    args = parser.parse_args(argv)
    if args.verbose:
        logging.basicConfig(level=logging.DEBUG, format="%(name)s: %(message)s")
    config = _config(args)

    try:
        if args.command == "sync":
            if args.resolution is not None:
                resolve = lambda group, new_count, threshold: args.resolution  # noqa: E731
            else:
                resolve = _prompt_resolution
            policy = SyncPolicy(args.threshold, args.batch)
            result = sync_group(config, args.group, JsonSyncMarkStore(args.state), resolve, policy)
            if result.cancelled:
                print("Cancelled; nothing fetched")
            else:
                _print_articles(result.articles)
            return 0

        if args.command == "post":
            headers = compose_headers(args.group, args.subject, args.from_, args.references)
            body = sys.stdin.read()
            with connect(config) as s:
                s.set_debuglevel(args.verbose)
                accepted = s.post(headers, body.rstrip("\n"))
            print("Posted" if accepted else "Rejected by server")
            return 0 if accepted else 1

        with connect(config) as s:
            s.set_debuglevel(args.verbose)
            if args.command == "groups":
                for info in s.list_groups():
                    print("{:50} {:>10} {:>10} {}".format(info.name, _blank(info.high), _blank(info.low), info.status or ""))
            else:
                stat = s.select_group(args.group)
                print("Group", stat.name, "has", stat.count, "articles, range", stat.low, "to", stat.high)
                articles = s.fetch_recent_articles(args.nb_articles)
                if not articles:
                    print("No articles yet in", stat.name)
                _print_articles(articles)
    except (NNTPError, ValueError) as e:
        print("Failed:", e, file=sys.stderr)
        return 1
    return 0


if __name__ == "__main__":
    sys.exit(main())
