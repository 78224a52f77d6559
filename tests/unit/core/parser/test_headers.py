"""Tests for header parsing."""

from __future__ import annotations

from httprex.core.parser.headers import get_content_type, get_header_value, parse_headers
from httprex.core.parser.types import ParserErrorType


class TestParseHeaders:
    def test_keys_lower_cased(self) -> None:
        result = parse_headers(["Content-Type: application/json", "X-Trace-Id:abc"])

        assert result.data == {"content-type": "application/json", "x-trace-id": "abc"}
        assert result.errors == []

    def test_stops_at_blank_line(self) -> None:
        result = parse_headers(["Accept: */*", "", "Not-A-Header: x"])
        assert result.data == {"accept": "*/*"}

    def test_duplicates_joined_with_comma(self) -> None:
        result = parse_headers(["Accept: A", "Accept: B"])
        assert result.data == {"accept": "A, B"}

    def test_set_cookie_joined_with_newline(self) -> None:
        result = parse_headers(["Set-Cookie: a=1", "Set-Cookie: b=2"])
        assert result.data == {"set-cookie": "a=1\nb=2"}

    def test_continuation_line(self) -> None:
        result = parse_headers(["X-Long: first", "   second part"])
        assert result.data == {"x-long": "first second part"}

    def test_empty_value_kept(self) -> None:
        result = parse_headers(["X-Empty:"])
        assert result.data == {"x-empty": ""}

    def test_value_containing_colons(self) -> None:
        result = parse_headers(["Referer: https://example.com:8443/a"])
        assert result.data == {"referer": "https://example.com:8443/a"}

    def test_invalid_line_reported_and_skipped(self) -> None:
        result = parse_headers(["Accept: */*", "garbage line", "X-Ok: 1"], start_line=5)

        assert result.success
        assert result.data == {"accept": "*/*", "x-ok": "1"}
        assert len(result.errors) == 1
        assert result.errors[0].type is ParserErrorType.INVALID_HEADER
        assert result.errors[0].line == 6


class TestHeaderLookups:
    def test_get_header_value_case_insensitive(self) -> None:
        assert get_header_value({"content-type": "text/plain"}, "Content-Type") == "text/plain"
        assert get_header_value({}, "accept") is None

    def test_get_content_type_strips_parameters(self) -> None:
        headers = {"content-type": "Application/JSON; charset=utf-8"}
        assert get_content_type(headers) == "application/json"

    def test_get_content_type_absent(self) -> None:
        assert get_content_type({"accept": "*/*"}) is None
