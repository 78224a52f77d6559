"""Command-line interface for parsing and resolving request documents."""

from __future__ import annotations

import argparse
import asyncio
import json
import logging
import sys
from typing import Any

from httprex.core.config.app import HttpRexConfig
from httprex.core.config.loader import load_from_file
from httprex.core.exceptions import HttpRexError
from httprex.runner.session import HttpRexSession

logger = logging.getLogger(__name__)


def _build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="httprex",
        description="Parse an HTTP request document and print it as JSON.",
    )
    parser.add_argument(
        "file",
        help="Path to the request document, or '-' to read standard input.",
    )
    parser.add_argument(
        "--config",
        help="Path to a HOCON session configuration file.",
    )
    parser.add_argument(
        "--env-file",
        help="Path to an http-client.env.json environment file.",
    )
    parser.add_argument(
        "--env",
        help="Name of the environment to select.",
    )
    parser.add_argument(
        "--var",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Variable override with the highest precedence; may be repeated.",
    )
    parser.add_argument(
        "--resolve",
        action="store_true",
        default=False,
        help="Substitute variables and secrets before printing.",
    )
    parser.add_argument(
        "--log-level",
        choices=["DEBUG", "INFO", "WARNING", "ERROR"],
        default=None,
        help="Set the logging level (default: from config, else WARNING).",
    )
    return parser


def _parse_vars(pairs: list[str]) -> dict[str, str]:
    variables: dict[str, str] = {}
    for pair in pairs:
        key, sep, value = pair.partition("=")
        if not sep or not key:
            raise ValueError(f"Invalid --var '{pair}', expected KEY=VALUE")
        variables[key.strip()] = value
    return variables


def _read_document(path: str) -> str:
    if path == "-":
        return sys.stdin.read()
    with open(path, encoding="utf-8") as handle:
        return handle.read()


async def _resolve_all(session: HttpRexSession, requests: list[Any]) -> list[dict[str, Any]]:
    try:
        output = []
        for request in requests:
            resolved = await session.resolve_async(request)
            entry = resolved.to_dict()
            entry["unresolved"] = session.unresolved(resolved)
            output.append(entry)
        return output
    finally:
        await session.aclose()


def main(argv: list[str] | None = None) -> int:
    """CLI entrypoint for parsing request documents.

    Args:
        argv: Command-line arguments. Defaults to ``sys.argv[1:]``.

    Returns:
        Exit code: 0 if every request parsed, 2 if some failed, 1 if none
        parsed or the inputs could not be loaded.
    """
    parser = _build_parser()
    args = parser.parse_args(argv)

    try:
        config: HttpRexConfig = load_from_file(args.config, HttpRexConfig) if args.config else HttpRexConfig()
    except Exception as exc:
        logging.basicConfig(format="%(asctime)s [%(levelname)s] %(name)s: %(message)s")
        logger.error("Failed to load configuration: %s", exc)
        return 1

    logging.basicConfig(
        level=getattr(logging, args.log_level or config.logging.level.value),
        format="%(asctime)s [%(levelname)s] %(name)s: %(message)s",
    )

    try:
        session = HttpRexSession.from_config(config)
        if args.env_file:
            session.environment_manager.load_from_file(args.env_file)
        if args.env:
            session.environment_manager.set_current_environment(args.env)
        session.resolver.update_context(from_system=_parse_vars(args.var))
        text = _read_document(args.file)
    except (HttpRexError, OSError, ValueError) as exc:
        logger.error("Failed to load inputs: %s", exc)
        return 1

    result = session.parse(text)
    document = result.data
    requests = document.requests if document is not None else []

    output: dict[str, Any] = {
        "success": result.success,
        "requests": [r.to_dict() for r in requests],
        "file_variables": dict(document.file_variables) if document is not None else {},
        "errors": [e.to_dict() for e in result.errors],
    }
    if args.resolve and requests:
        output["requests"] = asyncio.run(_resolve_all(session, requests))

    print(json.dumps(output, indent=2, default=str))

    if not requests:
        return 1
    if any(error.is_fatal for error in result.errors):
        return 2
    return 0


if __name__ == "__main__":
    sys.exit(main())
