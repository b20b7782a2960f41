"""
=============================================================================
HTTP PROTOCOL IMPLEMENTATION
=============================================================================

The wire-level half of the server: turning socket bytes into an
HTTPRequest and a Resource into response bytes.

    ┌─────────────────────────────────────────────────────────────────────┐
    │ REQUEST PARSER (request.py)                                         │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   b"GET /index.html?lang=en HTTP/1.1\r\nHost: x\r\n\r\n"     │
    │ Output:  HTTPRequest(method=GET, path="/index.html",                │
    │                      params={"lang": "en"}, headers={"host": "x"})  │
    └─────────────────────────────────────────────────────────────────────┘

    ┌─────────────────────────────────────────────────────────────────────┐
    │ RESPONSE ASSEMBLER (response.py)                                    │
    │ ─────────────────────────────────────────────────────────────────── │
    │ Input:   Resource(b"<html></html>", "text/html"), 200               │
    │ Output:  HTTPResponse("HTTP/1.1 200 OK", Date, Server,              │
    │                       Content-type, Content-length, body)           │
    └─────────────────────────────────────────────────────────────────────┘

    status_codes.py   the four status codes we emit and their phrases
    mime_types.py     extension → Content-type table

=============================================================================
"""

from .request import (
    HTTPRequest,
    Method,
    RequestParser,
    parse_request,
    decode_component,
    ParseError,
    MalformedRequestLine,
    WrongArgumentCount,
    UnsupportedVersion,
    UnsupportedMethod,
    MalformedHeader,
    UnterminatedHeaders,
    RequestTooLarge,
    EncodingError,
)
from .response import HTTPResponse, build_response, format_http_date, SERVER_NAME
from .status_codes import HTTPStatus
from .mime_types import get_mime_type, DEFAULT_MIME_TYPE

__all__ = [
    # Request parsing
    "HTTPRequest",
    "Method",
    "RequestParser",
    "parse_request",
    "decode_component",

    # Parse failures
    "ParseError",
    "MalformedRequestLine",
    "WrongArgumentCount",
    "UnsupportedVersion",
    "UnsupportedMethod",
    "MalformedHeader",
    "UnterminatedHeaders",
    "RequestTooLarge",
    "EncodingError",

    # Response assembly
    "HTTPResponse",
    "build_response",
    "format_http_date",
    "SERVER_NAME",

    # Status codes and MIME types
    "HTTPStatus",
    "get_mime_type",
    "DEFAULT_MIME_TYPE",
]
