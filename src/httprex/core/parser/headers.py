"""Header block parsing.

Supports RFC 822 style continuation lines and merges repeated headers.
"""

from __future__ import annotations

import re
from collections.abc import Mapping, Sequence

from httprex.core.parser.types import ParseResult, ParserError, ParserErrorType

HEADER_PATTERN = re.compile(r"^([^:]+):\s*(.*)$")


def _merge(headers: dict[str, str], name: str, value: str) -> None:
    key = name.lower()
    if key not in headers:
        headers[key] = value
    elif key == "set-cookie":
        # cookies must stay individually parseable
        headers[key] = f"{headers[key]}\n{value}"
    else:
        headers[key] = f"{headers[key]}, {value}"


def parse_headers(lines: Sequence[str], start_line: int = 2) -> ParseResult[dict[str, str]]:
    """Parse header lines up to the first blank line.

    Malformed lines are reported as ``INVALID_HEADER`` and skipped; they
    never abort the remaining lines.

    Args:
        lines: Candidate header lines.
        start_line: Document line number of ``lines[0]``.

    Returns:
        A :class:`ParseResult` carrying the header map (lower-cased keys).
    """
    headers: dict[str, str] = {}
    errors: list[ParserError] = []

    current_name: str | None = None
    current_value = ""

    for offset, line in enumerate(lines):
        line_number = start_line + offset

        if not line.strip():
            break

        if current_name is not None and line[:1].isspace():
            current_value = f"{current_value} {line.strip()}"
            continue

        if current_name is not None:
            _merge(headers, current_name, current_value)
            current_name = None
            current_value = ""

        match = HEADER_PATTERN.match(line.strip())
        if match is None:
            errors.append(
                ParserError(
                    type=ParserErrorType.INVALID_HEADER,
                    message='Invalid header format. Expected: "Header-Name: value"',
                    line=line_number,
                    context=line,
                )
            )
            continue

        name = match.group(1).strip()
        if not name:
            errors.append(
                ParserError(
                    type=ParserErrorType.INVALID_HEADER,
                    message="Header name cannot be empty",
                    line=line_number,
                    context=line,
                )
            )
            continue

        current_name = name
        current_value = match.group(2).strip()

    if current_name is not None:
        _merge(headers, current_name, current_value)

    return ParseResult(success=True, data=headers, errors=errors)


def get_header_value(headers: Mapping[str, str], name: str) -> str | None:
    """Case-insensitive header lookup."""
    wanted = name.lower()
    for key, value in headers.items():
        if key.lower() == wanted:
            return value
    return None


def get_content_type(headers: Mapping[str, str]) -> str | None:
    """Return the lower-cased media type of the Content-Type header.

    Parameters such as ``charset`` are dropped.
    """
    value = get_header_value(headers, "content-type")
    if value is None:
        return None
    media_type = value.split(";", 1)[0].strip().lower()
    return media_type or None
