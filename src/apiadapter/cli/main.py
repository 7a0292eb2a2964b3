# SPDX-FileCopyrightText: 2025 Theori Inc.
# SPDX-License-Identifier: AGPL-3.0-or-later

"""apiadapter CLI: issue one request through the adapter and print the response."""

from __future__ import annotations

import argparse
import asyncio
import json
import sys
from typing import Any

from ..adapter import APIAdapter
from ..config import AdapterSettings, load_adapter_settings
from ..errors import RequestFailedError
from ..http import create_default_transport
from ..log import setup_logging

CLI_TEXT_TRUNCATION_BYTES = 4096
HTTP_METHODS = ("GET", "POST", "PUT", "PATCH", "DELETE")


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(description="Send a request through apiadapter (dedup, retry, header rotation)")
    parser.add_argument("method", type=str.upper, choices=HTTP_METHODS, help="HTTP method")
    parser.add_argument("path", help="Path relative to --host, or an absolute URL")
    parser.add_argument("--host", help="Host URL prefixed to relative paths (default: $APIADAPTER_HOST_URL)")
    parser.add_argument(
        "-H",
        "--header",
        action="append",
        default=[],
        metavar="NAME:VALUE",
        help="Extra request header (repeatable)",
    )
    parser.add_argument("--data", help="JSON request body")
    parser.add_argument("--label", default="operation", help="Operation name used in error messages")
    parser.add_argument(
        "--json",
        action="store_true",
        help="Output the full response as JSON instead of only the body",
    )
    parser.add_argument(
        "--ignore-ssl-errors",
        action="store_true",
        help="Skip TLS verification (useful for lab/self-signed hosts)",
    )
    parser.add_argument("--log-level", help="Logging level (default: $APIADAPTER_LOG_LEVEL or WARNING)")
    return parser


def parse_header_args(values: list[str]) -> dict[str, str]:
    headers: dict[str, str] = {}
    for raw in values:
        name, sep, value = raw.partition(":")
        if not sep or not name.strip():
            raise ValueError(f"Invalid header {raw!r}; expected NAME:VALUE")
        headers[name.strip()] = value.strip()
    return headers


def _truncate_text_bytes(text: str, max_bytes: int) -> str:
    raw = text.encode("utf-8")
    if len(raw) <= max_bytes:
        return text
    suffix = "...[truncated]"
    keep = max_bytes - len(suffix.encode("utf-8"))
    if keep <= 0:
        return suffix
    return raw[:keep].decode("utf-8", errors="ignore") + suffix


def _print_json(data: Any) -> None:
    json.dump(data, sys.stdout, indent=2, sort_keys=True, default=str)
    sys.stdout.write("\n")


def _print_body(data: Any) -> None:
    if isinstance(data, (dict, list)):
        _print_json(data)
    else:
        print(_truncate_text_bytes(str(data if data is not None else ""), CLI_TEXT_TRUNCATION_BYTES))


async def _run(args: argparse.Namespace, settings: AdapterSettings) -> int:
    options: dict[str, Any] = {"label": args.label, "headers": parse_header_args(args.header)}
    if args.data is not None:
        options["body"] = json.loads(args.data)

    async with APIAdapter(create_default_transport(settings), settings=settings) as adapter:
        try:
            response = await adapter.request(args.method, args.path, options)
        except RequestFailedError as exc:
            print(str(exc), file=sys.stderr)
            return 1

    if args.json:
        _print_json(
            {
                "status_code": response.status_code,
                "url": response.url,
                "headers": response.headers,
                "data": response.data,
            }
        )
    else:
        _print_body(response.data)
    return 0


def main(argv: list[str] | None = None) -> int:
    parser = build_parser()
    args = parser.parse_args(argv)
    setup_logging(args.log_level)

    settings = load_adapter_settings()
    if args.host:
        settings.host_url = args.host
    if args.ignore_ssl_errors:
        settings.verify_ssl = False

    try:
        return asyncio.run(_run(args, settings))
    except ValueError as exc:
        parser.error(str(exc))
    return 2


if __name__ == "__main__":
    raise SystemExit(main())
