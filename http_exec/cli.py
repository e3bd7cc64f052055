"""CLI entry point for http-exec.

Loads request files, sends every request concurrently, and prints each
result as JSON.
"""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from dataclasses import dataclass
from pathlib import Path

from http_exec.executor import Executor
from http_exec.models import Error, Request, Response
from http_exec.request_loader import RequestFileError, load_requests


@dataclass
class SendArgs:
    """Parsed arguments for send mode."""

    files: list[Path]
    verbose: bool


def build_parser() -> argparse.ArgumentParser:
    """Build the argument parser with the send subcommand."""
    parser = argparse.ArgumentParser(
        prog="http-exec",
        description="Execute HTTP requests described in YAML or JSON files and print JSON results.",
    )

    subparsers = parser.add_subparsers(dest="command", required=True, help="Command")

    send_parser = subparsers.add_parser(
        "send",
        help="Send every request in the given files",
    )
    send_parser.add_argument(
        "files",
        type=Path,
        nargs="+",
        metavar="FILE",
        help="Request file (YAML or JSON) holding one request or a list of requests",
    )
    send_parser.add_argument(
        "--verbose",
        action="store_true",
        help="Log each request and its outcome to stderr",
    )

    return parser


def parse_send_args(namespace: argparse.Namespace) -> SendArgs:
    """Convert parsed namespace to SendArgs dataclass."""
    return SendArgs(files=list(namespace.files), verbose=namespace.verbose)


def parse_args(args: list[str] | None = None) -> SendArgs:
    """Parse command-line arguments and return typed args dataclass.

    Raises:
        SystemExit: If arguments are invalid (argparse behavior).
    """
    parser = build_parser()
    namespace = parser.parse_args(args)

    if namespace.command == "send":
        return parse_send_args(namespace)
    # Should not happen with required=True on subparsers
    parser.error(f"Unknown command: {namespace.command}")


def format_result(result: Response | Error) -> str:
    """Render a result as an indented JSON document keyed by its outcome."""
    key = "response" if isinstance(result, Response) else "error"
    return json.dumps({key: result.model_dump(mode="json")}, indent=2)


async def _send(requests: list[Request]) -> list[Response | Error]:
    async with Executor() as executor:
        return await executor.send_all(requests)


def run_send(args: SendArgs) -> int:
    """Run send mode. Returns 0 only if every request produced a Response."""
    if args.verbose:
        logging.basicConfig(
            level=logging.DEBUG,
            stream=sys.stderr,
            format="%(asctime)s %(levelname)s %(name)s: %(message)s",
        )

    requests: list[Request] = []
    for path in args.files:
        try:
            requests.extend(load_requests(path))
        except RequestFileError as e:
            print(f"Error loading request file: {e}", file=sys.stderr)
            return 1

    results = asyncio.run(_send(requests))

    for result in results:
        print(format_result(result))

    return 0 if all(isinstance(r, Response) for r in results) else 1


def main() -> int:
    """Main entry point."""
    try:
        return run_send(parse_args())
    except KeyboardInterrupt:
        print("\nInterrupted", file=sys.stderr)
        return 1


if __name__ == "__main__":
    sys.exit(main())
