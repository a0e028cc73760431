"""
Unit tests for request line parsing.
"""

import pytest

from staticserver.errors import BadRequestError, RequestError
from staticserver.http.request import HttpRequestLine, parse_request_line


class TestParseRequestLine:
    """Tests for parse_request_line()."""

    def test_parse_simple_get(self):
        """Test parsing a plain GET request line."""
        request = parse_request_line(b"GET /index.html HTTP/1.1")

        assert request.method == "GET"
        assert request.uri == "/index.html"
        assert request.version == "HTTP/1.1"

    def test_trailing_crlf_ignored(self):
        request = parse_request_line(b"GET /a.css HTTP/1.1\r\n")
        assert request == HttpRequestLine("GET", "/a.css", "HTTP/1.1")

    def test_version_kept_verbatim(self):
        """The version token is echoed back, so it must not be normalized."""
        assert parse_request_line(b"GET / HTTP/1.0").version == "HTTP/1.0"
        assert parse_request_line(b"GET / FOO/9").version == "FOO/9"

    def test_method_not_validated(self):
        assert parse_request_line(b"BREW /pot.html HTTP/1.1").method == "BREW"

    def test_extra_tokens_ignored(self):
        request = parse_request_line(b"GET /x.js HTTP/1.1 trailing junk")
        assert request == HttpRequestLine("GET", "/x.js", "HTTP/1.1")

    def test_runs_of_whitespace(self):
        request = parse_request_line(b"GET \t /x.js   HTTP/1.1")
        assert request.uri == "/x.js"
        assert request.version == "HTTP/1.1"

    def test_uri_not_decoded(self):
        request = parse_request_line(b"GET /a%20b.html HTTP/1.1")
        assert request.uri == "/a%20b.html"

    def test_non_ascii_bytes_survive(self):
        request = parse_request_line(b"GET /caf\xe9.html HTTP/1.1")
        assert request.uri.encode("latin-1") == b"/caf\xe9.html"

    def test_str_round_trips_tokens(self):
        request = parse_request_line(b"GET  /index.html  HTTP/1.1")
        assert str(request) == "GET /index.html HTTP/1.1"


class TestMalformedRequestLine:
    """Lines that cannot be parsed."""

    @pytest.mark.parametrize("line", [
        b"",
        b"\r\n",
        b"GET",
        b"GET /index.html",
        b"   \t  ",
    ])
    def test_fewer_than_three_tokens(self, line: bytes):
        with pytest.raises(BadRequestError):
            parse_request_line(line)

    def test_bad_request_is_request_error(self):
        """Bad lines are scoped to their connection, not fatal."""
        with pytest.raises(RequestError) as exc_info:
            parse_request_line(b"GET")
        assert exc_info.value.reason == "bad_request"

    def test_request_line_is_immutable(self):
        request = parse_request_line(b"GET / HTTP/1.1")
        with pytest.raises(AttributeError):
            request.uri = "/other"
