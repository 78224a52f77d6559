"""Request line parsing: ``METHOD URL [HTTP/VERSION]``."""

from __future__ import annotations

import re
from dataclasses import dataclass

from httprex.core.parser.types import (
    ParseResult,
    ParserError,
    ParserErrorType,
    RequestMethod,
)

HTTP_VERSION_PATTERN = re.compile(r"^HTTP/\d\.\d$")
URL_SCHEME_PATTERN = re.compile(r"^(https?|wss?)://.+")
PLACEHOLDER_PATTERN = re.compile(r"\{\{.+?\}\}")

_VALID_METHODS = ", ".join(m.value for m in RequestMethod)


@dataclass(frozen=True)
class RequestLine:
    """Components of a parsed request line."""

    method: RequestMethod
    url: str
    http_version: str | None = None


def is_valid_url(url: str) -> bool:
    """Return ``True`` for absolute URLs, absolute paths, or templated URLs."""
    return (
        URL_SCHEME_PATTERN.match(url) is not None
        or url.startswith("/")
        or PLACEHOLDER_PATTERN.search(url) is not None
    )


def _invalid_method(token: str, line: str, line_number: int) -> ParserError:
    return ParserError(
        type=ParserErrorType.INVALID_METHOD,
        message=f"Invalid HTTP method: {token}. Valid methods are: {_VALID_METHODS}",
        line=line_number,
        column=0,
        context=line,
    )


def parse_request_line(line: str, line_number: int = 1) -> ParseResult[RequestLine]:
    """Parse the first line of a request.

    The method is optional and defaults to GET. An unrecognised method is
    reported as ``INVALID_METHOD`` while GET is still used, so the caller
    always receives a usable request line alongside the error.

    Args:
        line: The raw request line.
        line_number: Line number used in error reports.

    Returns:
        A :class:`ParseResult` whose ``data`` is ``None`` only when the
        line is blank.
    """
    errors: list[ParserError] = []

    parts = line.split()
    if not parts:
        errors.append(
            ParserError(
                type=ParserErrorType.SYNTAX_ERROR,
                message="Request line is empty",
                line=line_number,
                context=line,
            )
        )
        return ParseResult(success=False, data=None, errors=errors)

    http_version: str | None = None

    if len(parts) == 1:
        method = RequestMethod.GET
        url = parts[0]
    elif len(parts) == 2:
        known = RequestMethod.lookup(parts[0])
        if known is not None:
            method, url = known, parts[1]
        elif HTTP_VERSION_PATTERN.match(parts[1]):
            method, url, http_version = RequestMethod.GET, parts[0], parts[1]
        else:
            errors.append(_invalid_method(parts[0], line, line_number))
            method, url = RequestMethod.GET, parts[1]
    else:
        known = RequestMethod.lookup(parts[0])
        if known is None:
            errors.append(_invalid_method(parts[0], line, line_number))
            known = RequestMethod.GET
        method, url = known, parts[1]
        if HTTP_VERSION_PATTERN.match(parts[-1]):
            http_version = parts[-1]

    if not is_valid_url(url):
        errors.append(
            ParserError(
                type=ParserErrorType.INVALID_URL,
                message=(
                    f"Invalid URL format: {url}. URL must start with http://, "
                    "https://, ws://, wss://, /, or contain variables {{...}}"
                ),
                line=line_number,
                context=line,
            )
        )

    return ParseResult(
        success=not any(e.is_fatal for e in errors),
        data=RequestLine(method=method, url=url, http_version=http_version),
        errors=errors,
    )
