"""Parsed request models and parser error types."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, Generic, TypeVar, Union

T = TypeVar("T")


class RequestMethod(str, Enum):
    """HTTP methods accepted on a request line."""

    GET = "GET"
    HEAD = "HEAD"
    POST = "POST"
    PUT = "PUT"
    DELETE = "DELETE"
    CONNECT = "CONNECT"
    OPTIONS = "OPTIONS"
    TRACE = "TRACE"
    PATCH = "PATCH"

    @classmethod
    def lookup(cls, token: str) -> RequestMethod | None:
        """Return the method matching *token* case-insensitively, or ``None``."""
        try:
            return cls(token.upper())
        except ValueError:
            return None


class ParserErrorType(str, Enum):
    """Kinds of problems reported by the parsers."""

    SYNTAX_ERROR = "SYNTAX_ERROR"
    INVALID_METHOD = "INVALID_METHOD"
    INVALID_URL = "INVALID_URL"
    INVALID_HEADER = "INVALID_HEADER"
    PARSE_FAILED = "PARSE_FAILED"


FATAL_ERROR_TYPES = frozenset(
    {
        ParserErrorType.INVALID_METHOD,
        ParserErrorType.INVALID_URL,
        ParserErrorType.PARSE_FAILED,
    }
)
"""Error types that mark the containing request as failed."""


@dataclass(frozen=True)
class ParserError:
    """A single non-fatal diagnostic collected while parsing.

    Args:
        type: Category of the problem.
        message: Human-readable description.
        line: 1-based line number in the parsed document, if known.
        column: 0-based column, if known.
        context: Snippet of the offending input.
    """

    type: ParserErrorType
    message: str
    line: int | None = None
    column: int | None = None
    context: str | None = None

    @property
    def is_fatal(self) -> bool:
        return self.type in FATAL_ERROR_TYPES

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "type": self.type.value,
            "message": self.message,
            "line": self.line,
            "column": self.column,
            "context": self.context,
        }


@dataclass
class ParseResult(Generic[T]):
    """Best-effort parse output together with every collected error.

    ``data`` is populated whenever anything useful could be built, even
    when ``success`` is ``False``, so callers can show a partially parsed
    request next to its diagnostics.
    """

    success: bool
    data: T | None
    errors: list[ParserError] = field(default_factory=list)


@dataclass(frozen=True)
class VariableReference:
    """Position of a ``{{name}}`` placeholder in the source text."""

    name: str
    line: int
    column: int


# ---------------------------------------------------------------------------
# Body variants
# ---------------------------------------------------------------------------


@dataclass(frozen=True)
class AbsentBody:
    """The request has no body."""

    @property
    def value(self) -> None:
        return None


@dataclass(frozen=True)
class TextBody:
    """A body kept as text (plain, XML, form data, or unparseable JSON)."""

    text: str

    @property
    def value(self) -> str:
        return self.text


@dataclass(frozen=True)
class StructuredBody:
    """A body decoded from JSON into Python values."""

    data: Any

    @property
    def value(self) -> Any:
        return self.data


Body = Union[AbsentBody, TextBody, StructuredBody]

ABSENT = AbsentBody()


@dataclass(frozen=True)
class RawRequest:
    """Source lines a request was built from, kept for diagnostics."""

    request_line: str = ""
    header_lines: tuple[str, ...] = ()
    body_lines: tuple[str, ...] = ()


@dataclass(frozen=True)
class ParsedRequest:
    """A single request parsed from a request document.

    Instances are never mutated; resolving placeholders produces a new
    request via :func:`dataclasses.replace`.

    Args:
        method: Upper-cased HTTP method.
        url: Request target, possibly still containing placeholders.
        headers: Header map keyed by lower-cased name, in source order.
        body: One of :class:`AbsentBody`, :class:`TextBody`,
            :class:`StructuredBody`.
        variables: Every placeholder occurrence found in the source text.
        name: Optional name from a ``# @name`` comment.
        raw: Source lines the request was parsed from.
        http_version: Version token from the request line, if present.
    """

    method: RequestMethod
    url: str
    headers: dict[str, str] = field(default_factory=dict)
    body: Body = ABSENT
    variables: tuple[VariableReference, ...] = ()
    name: str | None = None
    raw: RawRequest = field(default_factory=RawRequest)
    http_version: str | None = None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "name": self.name,
            "method": self.method.value,
            "url": self.url,
            "http_version": self.http_version,
            "headers": dict(self.headers),
            "body": self.body.value,
            "variables": [
                {"name": v.name, "line": v.line, "column": v.column}
                for v in self.variables
            ],
        }


@dataclass
class ParsedRequestFile:
    """All requests of a multi-request document plus its file variables."""

    requests: list[ParsedRequest] = field(default_factory=list)
    file_variables: dict[str, str] = field(default_factory=dict)
    errors: list[ParserError] = field(default_factory=list)

    def get_request(self, name: str) -> ParsedRequest | None:
        """Return the first request named *name*, or ``None``."""
        for request in self.requests:
            if request.name == name:
                return request
        return None

    def to_dict(self) -> dict[str, Any]:
        """Convert to a JSON-serializable dictionary."""
        return {
            "requests": [r.to_dict() for r in self.requests],
            "file_variables": dict(self.file_variables),
            "errors": [e.to_dict() for e in self.errors],
        }
