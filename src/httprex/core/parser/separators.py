"""Splitting multi-request documents on ``###`` separator lines."""

from __future__ import annotations

import re
from collections.abc import Sequence
from dataclasses import dataclass

from httprex.core.parser.lexer import is_file_variable

SEPARATOR_PATTERN = re.compile(r"^#{3,}\s*$")
NAME_PATTERN = re.compile(r"^(?:#|//)\s*@name\s+(\w+)\s*$")
COMMENT_PATTERN = re.compile(r"^(#|//)")


@dataclass(frozen=True)
class RequestBlock:
    """One request's worth of text.

    Args:
        content: Block text with surrounding blank lines removed.
        start_line: Document line number of the first line of ``content``.
        end_line: Document line number of the last line of ``content``.
        name: Name from a ``# @name`` comment, if any.
    """

    content: str
    start_line: int
    end_line: int
    name: str | None = None


def is_separator(line: str) -> bool:
    return SEPARATOR_PATTERN.match(line.strip()) is not None


def is_comment(line: str) -> bool:
    return COMMENT_PATTERN.match(line.strip()) is not None


def is_only_file_variables(lines: Sequence[str]) -> bool:
    """Return ``True`` if every meaningful line is an ``@name = value``."""
    for line in lines:
        stripped = line.strip()
        if not stripped or is_comment(stripped):
            continue
        if not is_file_variable(stripped):
            return False
    return True


def extract_request_name(lines: Sequence[str]) -> str | None:
    for line in lines:
        match = NAME_PATTERN.match(line.strip())
        if match:
            return match.group(1)
    return None


def remove_comments(lines: Sequence[str]) -> list[str]:
    """Drop comment lines, including ``# @name`` lines."""
    return [line for line in lines if not is_comment(line)]


def _make_block(lines: list[str], first_line: int) -> RequestBlock | None:
    start = 0
    end = len(lines)
    while start < end and not lines[start].strip():
        start += 1
    while end > start and not lines[end - 1].strip():
        end -= 1
    body = lines[start:end]
    if not body or is_only_file_variables(body):
        return None
    return RequestBlock(
        content="\n".join(body),
        start_line=first_line + start,
        end_line=first_line + end - 1,
        name=extract_request_name(body),
    )


def split_requests(text: str) -> list[RequestBlock]:
    """Split *text* into request blocks.

    Blocks made only of comments and file-variable assignments are
    configuration rather than requests and are dropped. A document without
    any separator forms a single block.
    """
    blocks: list[RequestBlock] = []
    current: list[str] = []
    current_start = 1

    for index, line in enumerate(text.split("\n")):
        if is_separator(line):
            block = _make_block(current, current_start)
            if block is not None:
                blocks.append(block)
            current = []
            current_start = index + 2
            continue
        current.append(line)

    block = _make_block(current, current_start)
    if block is not None:
        blocks.append(block)
    return blocks
