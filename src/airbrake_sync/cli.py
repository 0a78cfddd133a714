from __future__ import annotations

import argparse
import json
import logging
import os
import sys
from datetime import datetime
from typing import Any

from .client import AirbrakeClient
from .config import load_client_config
from .env import load_dotenv
from .errors import AirbrakeError
from .xmlparse import parse_datetime


def _parse_when(value: str) -> datetime:
    try:
        return parse_datetime(value)
    except ValueError:
        raise argparse.ArgumentTypeError(f"not an ISO-8601 timestamp: {value}") from None


def _configure_logging() -> None:
    level_name = os.environ.get("LOG_LEVEL", "WARNING").upper()
    logging.basicConfig(
        level=getattr(logging, level_name, logging.WARNING),
        format="%(asctime)s %(levelname)s %(name)s: %(message)s",
    )
    # urllib3 logs full request URLs, which carry the auth token.
    logging.getLogger("urllib3").setLevel(logging.WARNING)


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="airbrake-sync",
        description="Pull projects, error groups and notices from the Airbrake API as JSON",
    )
    parser.add_argument("--out", help="write JSON to a file instead of stdout")
    parser.add_argument("--env-file", default=".env", help="dotenv file to load first")
    sub = parser.add_subparsers(dest="command", required=True)

    sub.add_parser("projects", help="list projects")

    for name, help_text in (
        ("errors", "error groups with a notice in the window"),
        ("notices", "every notice in the window, joined with its error and project"),
    ):
        cmd = sub.add_parser(name, help=help_text)
        cmd.add_argument("--since", required=True, type=_parse_when)
        cmd.add_argument(
            "--until", type=_parse_when, default=None, help="defaults to now"
        )

    return parser


def run(args: argparse.Namespace, client: AirbrakeClient) -> list[dict[str, Any]]:
    if args.command == "projects":
        records: list[Any] = client.list_projects()
    elif args.command == "errors":
        records = client.list_errors(args.since, args.until)
    else:
        records = client.sync_all(args.since, args.until)
    return [r.to_dict() for r in records]


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)

    load_dotenv(path=args.env_file)
    _configure_logging()

    try:
        client = AirbrakeClient(load_client_config())
        result = run(args, client)
    except AirbrakeError as error:
        print(f"airbrake-sync: {error}", file=sys.stderr)
        return 1

    out = json.dumps(result, ensure_ascii=False, indent=2, default=str) + "\n"
    if args.out:
        with open(args.out, "w", encoding="utf-8") as f:
            f.write(out)
    else:
        print(out, end="")
    return 0


if __name__ == "__main__":
    raise SystemExit(main())
