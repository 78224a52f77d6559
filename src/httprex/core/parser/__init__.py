"""Request document parsing: lexer, request line, headers, body, separators."""

from httprex.core.parser.body import parse_body
from httprex.core.parser.document import HttpParser
from httprex.core.parser.headers import get_content_type, get_header_value, parse_headers
from httprex.core.parser.lexer import (
    FileVariable,
    extract_file_variables,
    extract_variables,
    file_variables_to_dict,
    has_unresolved_variables,
    resolve_variables,
)
from httprex.core.parser.request_line import RequestLine, parse_request_line
from httprex.core.parser.separators import RequestBlock, split_requests
from httprex.core.parser.types import (
    ABSENT,
    AbsentBody,
    Body,
    ParsedRequest,
    ParsedRequestFile,
    ParseResult,
    ParserError,
    ParserErrorType,
    RawRequest,
    RequestMethod,
    StructuredBody,
    TextBody,
    VariableReference,
)

__all__ = [
    "ABSENT",
    "AbsentBody",
    "Body",
    "FileVariable",
    "HttpParser",
    "ParseResult",
    "ParsedRequest",
    "ParsedRequestFile",
    "ParserError",
    "ParserErrorType",
    "RawRequest",
    "RequestBlock",
    "RequestLine",
    "RequestMethod",
    "StructuredBody",
    "TextBody",
    "VariableReference",
    "extract_file_variables",
    "extract_variables",
    "file_variables_to_dict",
    "get_content_type",
    "get_header_value",
    "has_unresolved_variables",
    "parse_body",
    "parse_headers",
    "parse_request_line",
    "resolve_variables",
    "split_requests",
]
