"""Content-type aware body parsing."""

from __future__ import annotations

import json
import logging
from collections.abc import Sequence
from urllib.parse import quote_plus

from httprex.core.parser.lexer import VARIABLE_PATTERN
from httprex.core.parser.types import (
    ABSENT,
    Body,
    ParseResult,
    ParserError,
    ParserErrorType,
    StructuredBody,
    TextBody,
)

logger = logging.getLogger(__name__)

CONTEXT_LENGTH = 100
"""Number of characters of offending input kept in error context."""

FORM_URLENCODED = "application/x-www-form-urlencoded"


def is_json(content_type: str) -> bool:
    return content_type == "application/json" or content_type.endswith("+json")


def is_xml(content_type: str) -> bool:
    return content_type in ("application/xml", "text/xml") or content_type.endswith("+xml")


def _parse_failed(message: str, content: str, start_line: int) -> ParserError:
    return ParserError(
        type=ParserErrorType.PARSE_FAILED,
        message=message,
        line=start_line,
        context=content[:CONTEXT_LENGTH],
    )


def parse_body(
    lines: Sequence[str],
    content_type: str | None,
    start_line: int,
) -> ParseResult[Body]:
    """Parse body lines according to *content_type*.

    Failures never discard the input: a body that cannot be parsed is
    returned as :class:`TextBody` together with a ``PARSE_FAILED`` error.

    Args:
        lines: Lines following the blank line that ends the headers.
        content_type: Media type without parameters, or ``None``.
        start_line: Document line number of ``lines[0]``.

    Returns:
        A :class:`ParseResult` whose ``data`` is the parsed body.
    """
    body_lines = list(lines)
    while body_lines and not body_lines[-1].strip():
        body_lines.pop()

    if not body_lines:
        return ParseResult(success=True, data=ABSENT)

    raw = "\n".join(body_lines)

    if not content_type:
        return ParseResult(success=True, data=TextBody(raw))
    if is_json(content_type):
        return _parse_json(raw, start_line)
    if is_xml(content_type):
        return _parse_xml(raw, start_line)
    if content_type == FORM_URLENCODED:
        return _parse_form(body_lines)
    return ParseResult(success=True, data=TextBody(raw))


def _parse_json(content: str, start_line: int) -> ParseResult[Body]:
    trimmed = content.strip()
    if not trimmed:
        return ParseResult(success=True, data=ABSENT)
    try:
        return ParseResult(success=True, data=StructuredBody(json.loads(trimmed)))
    except json.JSONDecodeError as exc:
        logger.debug("JSON body at line %d did not parse: %s", start_line, exc)
        error = _parse_failed(f"Invalid JSON: {exc}", content, start_line)
        return ParseResult(success=False, data=TextBody(content), errors=[error])


def _parse_xml(content: str, start_line: int) -> ParseResult[Body]:
    trimmed = content.strip()
    if not trimmed:
        return ParseResult(success=True, data=ABSENT)
    if trimmed.startswith("<") and trimmed.endswith(">"):
        return ParseResult(success=True, data=TextBody(trimmed))
    error = _parse_failed("Invalid XML: Must start with < and end with >", trimmed, start_line)
    return ParseResult(success=False, data=TextBody(trimmed), errors=[error])


def encode_form_component(value: str) -> str:
    """Percent-encode *value* once, leaving ``{{...}}`` placeholders intact."""
    encoded: list[str] = []
    position = 0
    for match in VARIABLE_PATTERN.finditer(value):
        encoded.append(quote_plus(value[position : match.start()]))
        encoded.append(match.group(0))
        position = match.end()
    encoded.append(quote_plus(value[position:]))
    return "".join(encoded)


def split_form_pairs(lines: Sequence[str]) -> list[tuple[str, str]]:
    """Split form body lines into raw ``(key, value)`` pairs."""
    pairs: list[tuple[str, str]] = []
    for line in lines:
        stripped = line.strip()
        if stripped.startswith("&"):
            stripped = stripped[1:]
        for chunk in stripped.split("&"):
            if not chunk.strip():
                continue
            key, sep, value = chunk.partition("=")
            pairs.append((key.strip(), value.strip() if sep else ""))
    return pairs


def _parse_form(lines: Sequence[str]) -> ParseResult[Body]:
    pairs = split_form_pairs(lines)
    if not pairs:
        return ParseResult(success=True, data=ABSENT)
    encoded = "&".join(
        f"{encode_form_component(key)}={encode_form_component(value)}" for key, value in pairs
    )
    return ParseResult(success=True, data=TextBody(encoded))
