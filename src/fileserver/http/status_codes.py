"""
=============================================================================
HTTP STATUS CODES
=============================================================================

The file server only ever answers with a handful of status codes, so this
module keeps a small table instead of the full RFC 7231 list.

    ┌────────────────────────────────────────────────────────────────────┐
    │                    STATUS CODES WE EMIT                            │
    ├────────────────────────────────────────────────────────────────────┤
    │                                                                     │
    │  200 OK                     Requested file found and sent          │
    │  302 Found                  Fallback phrase for unknown codes      │
    │  404 Not Found              Requested file missing, 404 page sent  │
    │  500 Internal Server Error  404 page missing, error page sent      │
    │                                                                     │
    └────────────────────────────────────────────────────────────────────┘

Parse failures never produce a status code at all: the connection is closed
without a reply (see handlers/connection.py).

=============================================================================
"""

from enum import IntEnum
from typing import Optional


class HTTPStatus(IntEnum):
    """
    Status codes the server knows how to phrase.

    Being an IntEnum, members compare equal to plain integers:

        >>> HTTPStatus.OK == 200
        True
        >>> HTTPStatus.NOT_FOUND.phrase
        'Not Found'
    """

    OK = 200
    FOUND = 302
    NOT_FOUND = 404
    INTERNAL_SERVER_ERROR = 500

    @property
    def phrase(self) -> str:
        """Reason phrase used in the status line."""
        return _STATUS_PHRASES[self]

    @classmethod
    def lookup(cls, code: int) -> Optional["HTTPStatus"]:
        """Return the member for ``code``, or None if the code is unknown."""
        try:
            return cls(code)
        except ValueError:
            return None


_STATUS_PHRASES = {
    HTTPStatus.OK: "OK",
    HTTPStatus.FOUND: "Found",
    HTTPStatus.NOT_FOUND: "Not Found",
    HTTPStatus.INTERNAL_SERVER_ERROR: "Internal Server Error",
}

# Unknown codes are rendered with this status line code and phrase.
FALLBACK_STATUS = HTTPStatus.FOUND
