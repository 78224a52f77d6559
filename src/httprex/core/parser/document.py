"""Request document parser.

Combines the lexer, separator splitter, and the request-line, header,
and body parsers. Errors are collected rather than raised so that a
partially valid document still yields everything that could be parsed.
"""

from __future__ import annotations

import logging
from dataclasses import replace

from httprex.core.parser.body import parse_body
from httprex.core.parser.headers import get_content_type, parse_headers
from httprex.core.parser.lexer import extract_variables, file_variables_to_dict, is_file_variable
from httprex.core.parser.request_line import parse_request_line
from httprex.core.parser.separators import extract_request_name, is_comment, split_requests
from httprex.core.parser.types import (
    ParsedRequest,
    ParsedRequestFile,
    ParseResult,
    ParserError,
    ParserErrorType,
    RawRequest,
)

logger = logging.getLogger(__name__)


def _failure(message: str, line: int = 1) -> list[ParserError]:
    return [ParserError(type=ParserErrorType.PARSE_FAILED, message=message, line=line)]


class HttpParser:
    """Parser for single requests and multi-request documents."""

    def parse_one(self, text: str, start_line: int = 1) -> ParseResult[ParsedRequest]:
        """Parse a single request.

        Args:
            text: Request text: request line, optional headers, optional
                blank line and body.
            start_line: Document line number of the first line of *text*;
                used so errors from a block point into the whole document.

        Returns:
            A :class:`ParseResult`. ``success`` is ``False`` when an
            ``INVALID_METHOD``, ``INVALID_URL`` or ``PARSE_FAILED`` error was
            collected or the request line could not be read; ``data`` still
            holds the best-effort request whenever a request line exists.
        """
        if not text or not text.strip():
            return ParseResult(success=False, data=None, errors=_failure("Input text is empty", start_line))

        lines = text.split("\n")
        variables = extract_variables(text, start_line)
        name = extract_request_name(lines)

        numbered = [
            (start_line + index, line) for index, line in enumerate(lines) if not is_comment(line)
        ]
        # skip anything before the request line that is not part of the request
        while numbered and (not numbered[0][1].strip() or is_file_variable(numbered[0][1])):
            numbered.pop(0)

        if not numbered:
            return ParseResult(
                success=False,
                data=None,
                errors=_failure("No content found after removing comments", start_line),
            )

        errors: list[ParserError] = []
        request_line_number, request_line = numbered[0]
        line_result = parse_request_line(request_line, request_line_number)
        errors.extend(line_result.errors)
        if line_result.data is None:
            return ParseResult(success=False, data=None, errors=errors)

        url = line_result.data.url
        position = 1
        while position < len(numbered) and numbered[position][1].strip()[:1] in ("?", "&"):
            url += numbered[position][1].strip()
            position += 1

        header_end = len(numbered)
        for index in range(position, len(numbered)):
            if not numbered[index][1].strip():
                header_end = index
                break

        header_lines = [line for _, line in numbered[position:header_end]]
        header_start = numbered[position][0] if position < len(numbered) else request_line_number + 1
        header_result = parse_headers(header_lines, header_start)
        errors.extend(header_result.errors)
        headers = header_result.data or {}

        body_numbered = numbered[header_end + 1 :]
        body_lines = [line for _, line in body_numbered]
        body_start = body_numbered[0][0] if body_numbered else request_line_number
        body_result = parse_body(body_lines, get_content_type(headers), body_start)
        errors.extend(body_result.errors)

        request = ParsedRequest(
            method=line_result.data.method,
            url=url,
            headers=headers,
            body=body_result.data,
            variables=tuple(variables),
            name=name,
            raw=RawRequest(
                request_line=request_line,
                header_lines=tuple(header_lines),
                body_lines=tuple(body_lines),
            ),
            http_version=line_result.data.http_version,
        )

        success = not any(e.is_fatal for e in errors)
        return ParseResult(success=success, data=request, errors=errors)

    def parse_many(self, text: str) -> ParseResult[ParsedRequestFile]:
        """Parse a document that may hold several ``###``-separated requests.

        A failing block is reported in the aggregated errors and left out of
        ``requests``; it never stops later blocks from parsing. The result is
        successful when at least one block parsed.
        """
        if not text or not text.strip():
            return ParseResult(success=False, data=None, errors=_failure("Input text is empty"))

        file_variables = file_variables_to_dict(text.split("\n"))
        blocks = split_requests(text)
        if not blocks:
            errors = _failure("No requests found in file")
            return ParseResult(
                success=False,
                data=ParsedRequestFile(file_variables=file_variables, errors=errors),
                errors=errors,
            )

        requests: list[ParsedRequest] = []
        errors: list[ParserError] = []
        for block in blocks:
            result = self.parse_one(block.content, block.start_line)
            errors.extend(result.errors)
            if not result.success or result.data is None:
                logger.debug("Skipping request block at line %d: parse failed", block.start_line)
                continue
            request = result.data
            if block.name:
                request = replace(request, name=block.name)
            requests.append(request)

        logger.debug("Parsed %d of %d request block(s)", len(requests), len(blocks))
        parsed = ParsedRequestFile(requests=requests, file_variables=file_variables, errors=errors)
        return ParseResult(success=bool(requests), data=parsed, errors=errors)
