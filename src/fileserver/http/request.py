"""
=============================================================================
HTTP REQUEST PARSER
=============================================================================

Parses the head of an HTTP/1.1 request, read line by line from a socket
stream, into an immutable HTTPRequest.

=============================================================================
ACCEPTED WIRE SUBSET
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    GET /docs/index.html?lang=en&debug= HTTP/1.1\r\n                 │
    │    ─┬─ ─────────┬──────────────────── ────┬───                      │
    │     │           │                         │                          │
    │   Method     Target                    Version                       │
    │  GET|HEAD    path[?query]          exactly HTTP/1.1                  │
    │                                                                      │
    │    Host: localhost:8000\n              ← "Name: value" lines         │
    │    Accept: text/html\n                                               │
    │    \n                                  ← blank line ends the head    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Anything outside this subset raises a ParseError and the connection
handler closes the socket without replying.

=============================================================================
ERROR FAMILY
=============================================================================

    ParseError
    ├── MalformedRequestLine   first line missing, empty, or indented
    ├── WrongArgumentCount     first line is not exactly 3 tokens
    ├── UnsupportedVersion     version is not HTTP/1.1
    ├── UnsupportedMethod      method is not GET or HEAD
    ├── MalformedHeader        header line without a colon
    ├── UnterminatedHeaders    stream ended before the blank line
    └── RequestTooLarge        head longer than max_request_size bytes

    EncodingError (a ValueError, NOT a ParseError)
        invalid percent-escape in the path or query string

EncodingError sits outside the ParseError family. Callers that only catch
ParseError will see it propagate; the connection handler catches both and
treats them identically.

=============================================================================
PATH DECODING QUIRK
=============================================================================

The path is percent-decoded only when the target carries a query string:

    /a%20b.html?x=1   →  path "/a b.html"
    /a%20b.html       →  path "/a%20b.html"   (left as sent)

Tests pin this behaviour.

=============================================================================
"""

import re
from dataclasses import dataclass, field
from enum import Enum
from types import MappingProxyType
from typing import BinaryIO, Mapping, Optional
from urllib.parse import unquote_plus


SUPPORTED_VERSION = "HTTP/1.1"

DEFAULT_MAX_REQUEST_SIZE = 64 * 1024  # 64 KB


# =============================================================================
# EXCEPTIONS
# =============================================================================

class ParseError(Exception):
    """
    Base class for every failure to derive a request from the stream.

    Always connection-fatal: the socket is closed and nothing is written.
    """


class MalformedRequestLine(ParseError):
    """The first line is absent, empty, or starts with whitespace."""


class WrongArgumentCount(ParseError):
    """The first line does not split into method, target and version."""


class UnsupportedVersion(ParseError):
    """The version token is anything other than HTTP/1.1."""


class UnsupportedMethod(ParseError):
    """The method token is not one of the supported methods."""


class MalformedHeader(ParseError):
    """A header line has no colon."""


class UnterminatedHeaders(ParseError):
    """The stream ended before the blank line closing the header block."""


class RequestTooLarge(ParseError):
    """The request head is longer than the parser is allowed to read."""


class EncodingError(ValueError):
    """A percent-escape in the request target could not be decoded."""


# =============================================================================
# REQUEST MODEL
# =============================================================================

class Method(str, Enum):
    """Request methods the parser accepts."""

    GET = "GET"
    HEAD = "HEAD"


@dataclass(frozen=True)
class HTTPRequest:
    """
    A parsed request head.

    Attributes:
        method:  GET or HEAD.
        path:    Target without the query string. Percent-decoded only when
                 a query string was present (see module docstring).
        headers: Header name → value. Names are lowercase; when a header
                 is repeated the first occurrence is kept.
        params:  Query parameter → decoded value. ``key=`` maps to "",
                 a bare ``key`` without "=" is not present at all.
    """

    method: Method
    path: str
    headers: Mapping[str, str] = field(default_factory=dict)
    params: Mapping[str, str] = field(default_factory=dict)

    def get_header(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """
        Case-insensitive header lookup.

        Example:
            request.get_header("Content-Type")  # same as "content-type"
        """
        return self.headers.get(name.lower(), default)

    def get_param(self, name: str, default: Optional[str] = None) -> Optional[str]:
        """Get a query parameter value."""
        return self.params.get(name, default)


# =============================================================================
# PERCENT DECODING
# =============================================================================

# A "%" not followed by two hex digits
_BAD_ESCAPE = re.compile(r"%(?![0-9A-Fa-f]{2})")


def decode_component(text: str) -> str:
    """
    Decode a form-encoded URL component ("+" is a space).

    Unlike urllib's lenient unquote, malformed input is rejected:

        >>> decode_component("hello%20world+again")
        'hello world again'
        >>> decode_component("100%")
        Traceback (most recent call last):
        ...
        EncodingError: Invalid percent-escape in '100%'

    Raises:
        EncodingError: On a truncated/non-hex escape, or escapes that do
                       not decode as UTF-8.
    """
    if _BAD_ESCAPE.search(text):
        raise EncodingError(f"Invalid percent-escape in {text!r}")
    try:
        return unquote_plus(text, encoding="utf-8", errors="strict")
    except UnicodeDecodeError as e:
        raise EncodingError(f"Escapes in {text!r} are not valid UTF-8") from e


# =============================================================================
# PARSER
# =============================================================================

class RequestParser:
    """
    Reads one request head from a binary stream.

    ==========================================================================
    PARSING ALGORITHM
    ==========================================================================

        stream.readline()  ──►  request line  ──►  method / target / version
              │                                          │
              │                                          ▼
              │                                   path + params
              ▼
        stream.readline() until blank line  ──►  headers

    The parser consumes exactly the request line, the header lines and the
    terminating blank line. Nothing after the blank line is read.
    At most max_request_size + 1 bytes are read before RequestTooLarge
    is raised, however long a single line is.

    A parser holds the stream of a single connection and is never shared
    between threads.
    ==========================================================================
    """

    SUPPORTED_METHODS = frozenset(m.value for m in Method)

    def __init__(self, stream: BinaryIO, max_request_size: int = DEFAULT_MAX_REQUEST_SIZE):
        """
        Args:
            stream: Binary file-like object with readline(), typically
                    ``socket.makefile("rb")``.
            max_request_size: Most bytes read for the whole head, request
                              line and headers together.
        """
        self._stream = stream
        self.max_request_size = max_request_size
        self._consumed = 0

    def parse(self) -> HTTPRequest:
        """
        Parse the request head.

        Returns:
            The parsed HTTPRequest.

        Raises:
            ParseError: The head violates the accepted wire subset.
            EncodingError: The target contains an invalid percent-escape.
            OSError: Reading from the stream failed (including timeouts).
        """
        method, target = self._parse_request_line(self._read_line())
        path, params = self._parse_target(target)
        headers = self._parse_headers()

        return HTTPRequest(
            method=Method(method),
            path=path,
            headers=MappingProxyType(headers),
            params=MappingProxyType(params),
        )

    def _read_line(self) -> Optional[str]:
        """
        Read one line, stripping the "\\n" or "\\r\\n" terminator.

        Returns:
            The line, or None at end of stream.

        Raises:
            RequestTooLarge: The head has run past max_request_size.
        """
        # One byte over the budget is enough to know the head is too long
        raw = self._stream.readline(self.max_request_size - self._consumed + 1)
        self._consumed += len(raw)
        if self._consumed > self.max_request_size:
            raise RequestTooLarge(
                f"Request head exceeds {self.max_request_size} bytes"
            )
        if not raw:
            return None
        line = raw.decode("utf-8", errors="replace")
        if line.endswith("\n"):
            line = line[:-1]
            if line.endswith("\r"):
                line = line[:-1]
        return line

    def _parse_request_line(self, line: Optional[str]) -> tuple[str, str]:
        """
        Validate the request line and return (method, target).

        Checks run in a fixed order so each failure is reported precisely:
        shape, argument count, version, then method.
        """
        # Leading whitespace would make a header continuation line look
        # like a request line.
        if not line or line[0].isspace():
            raise MalformedRequestLine(
                "Initial line of HTTP request does not follow the correct format"
            )

        parts = line.split(" ")
        if len(parts) != 3:
            raise WrongArgumentCount(
                f"First line of HTTP request has {len(parts)} arguments, expected 3"
            )

        method, target, version = parts

        if version != SUPPORTED_VERSION:
            raise UnsupportedVersion(f"Unsupported HTTP version: {version}")

        if method not in self.SUPPORTED_METHODS:
            raise UnsupportedMethod(f"Unsupported request method: {method}")

        return method, target

    def _parse_target(self, target: str) -> tuple[str, dict[str, str]]:
        """
        Split the target into path and query parameters.

        ``/index.html?a=1&b=&c`` → ("/index.html", {"a": "1", "b": ""})
        """
        params: dict[str, str] = {}

        path, sep, query = target.partition("?")
        if not sep:
            # No query string: path is returned exactly as sent.
            return target, params

        path = decode_component(path)

        for token in query.split("&"):
            raw_key, has_value, raw_value = token.partition("=")
            # The key is decoded even when the token is later dropped, so a
            # malformed bare key still fails the request.
            key = decode_component(raw_key)
            if not has_value:
                continue
            params[key] = decode_component(raw_value) if raw_value else ""

        return path, params

    def _parse_headers(self) -> dict[str, str]:
        """
        Read header lines up to and including the blank line.

        Names are stripped and lowercased, values stripped. The first
        occurrence of a repeated header wins.
        """
        headers: dict[str, str] = {}

        while True:
            line = self._read_line()
            if line is None:
                raise UnterminatedHeaders("Header block is not ended with a blank line")
            if not line:
                return headers

            name, colon, value = line.partition(":")
            if not colon:
                raise MalformedHeader(f"Header not correctly formatted: {line!r}")

            headers.setdefault(name.strip().lower(), value.strip())


def parse_request(stream: BinaryIO, max_request_size: int = DEFAULT_MAX_REQUEST_SIZE) -> HTTPRequest:
    """Convenience function: parse one request head from ``stream``."""
    return RequestParser(stream, max_request_size=max_request_size).parse()
