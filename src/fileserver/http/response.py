"""
=============================================================================
HTTP RESPONSE ASSEMBLER
=============================================================================

Turns a Resource plus a status code into a complete HTTPResponse.

=============================================================================
HTTP RESPONSE ANATOMY
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │    HTTP/1.1 200 OK\r\n                        ← status line          │
    │    Date: Thu, 15 Jan 2026 12:30:45 GMT\r\n    ┐                      │
    │    Server: FileServer/1.0\r\n                 │ always these four,   │
    │    Content-type: text/html\r\n                │ always in this order │
    │    Content-length: 13\r\n                     ┘                      │
    │    \r\n                                       ← end of header block  │
    │    <html></html>                              ← body, byte for byte  │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The body is never transformed: no compression, no chunking. Content-length
always equals the resource's length.

The header block and the body are exposed separately because the
connection handler flushes the header block before it starts on the body.

=============================================================================
"""

import logging
from dataclasses import dataclass, field
from datetime import datetime, timezone
from typing import Dict, Optional

from .status_codes import HTTPStatus, FALLBACK_STATUS
from ..resources.store import Resource


logger = logging.getLogger(__name__)


SERVER_NAME = "FileServer/1.0"
HTTP_VERSION = "HTTP/1.1"


@dataclass
class HTTPResponse:
    """
    A response ready to be written to a socket.

    Built fresh for every request by build_response(). The only mutation
    allowed afterwards is add_header(), before transmission.
    """

    status_line: str
    status: int
    headers: Dict[str, str] = field(default_factory=dict)
    body: bytes = b""

    @property
    def length(self) -> int:
        """Number of body bytes to write."""
        return len(self.body)

    def add_header(self, name: str, value: str) -> "HTTPResponse":
        """
        Append a header after the default four.

        Returns self for method chaining.
        """
        self.headers[name] = value
        return self

    def header_bytes(self) -> bytes:
        """
        Serialize the status line and headers, including the blank line
        that separates them from the body.
        """
        lines = [self.status_line]
        for name, value in self.headers.items():
            lines.append(f"{name}: {value}")
        lines.append("")
        return ("\r\n".join(lines) + "\r\n").encode("latin-1")

    def to_bytes(self) -> bytes:
        """Header block followed by the body."""
        return self.header_bytes() + self.body


def status_line_for(code: int) -> str:
    """
    Build the status line for ``code``.

    Codes outside the known table are rendered with the 302 code and its
    reason phrase:

        >>> status_line_for(404)
        'HTTP/1.1 404 Not Found'
        >>> status_line_for(418)
        'HTTP/1.1 302 Found'
    """
    status = HTTPStatus.lookup(code)
    if status is None:
        logger.warning(
            f"Unknown status code {code}, sending '{FALLBACK_STATUS.value} "
            f"{FALLBACK_STATUS.phrase}' status line"
        )
        status = FALLBACK_STATUS
    return f"{HTTP_VERSION} {status.value} {status.phrase}"


def build_response(
    resource: Resource,
    status: int,
    server_name: str = SERVER_NAME,
    now: Optional[datetime] = None,
) -> HTTPResponse:
    """
    Assemble a response for ``resource`` with the given status code.

    Args:
        resource: The resource whose bytes become the body.
        status: Numeric status code.
        server_name: Value of the Server header.
        now: Time for the Date header; defaults to the current UTC time.

    Returns:
        A new HTTPResponse with Date, Server, Content-type and
        Content-length headers, in that order.
    """
    headers = {
        "Date": format_http_date(now or datetime.now(timezone.utc)),
        "Server": server_name,
        "Content-type": resource.mime_type,
        "Content-length": str(resource.length),
    }
    return HTTPResponse(
        status_line=status_line_for(status),
        status=int(status),
        headers=headers,
        body=resource.content,
    )


def format_http_date(dt: datetime) -> str:
    """
    Format a datetime as an HTTP-date (RFC 1123, always GMT).

    Format: Day, DD Mon YYYY HH:MM:SS GMT
    Example: Thu, 15 Jan 2026 12:30:45 GMT

    Names are spelled out by hand rather than with strftime("%a"), which
    follows the process locale.
    """
    dt = dt.astimezone(timezone.utc)

    # Weekday names (0=Monday in Python's datetime)
    days = ["Mon", "Tue", "Wed", "Thu", "Fri", "Sat", "Sun"]

    # Month names (1-indexed, so we subtract 1)
    months = ["Jan", "Feb", "Mar", "Apr", "May", "Jun",
              "Jul", "Aug", "Sep", "Oct", "Nov", "Dec"]

    return (
        f"{days[dt.weekday()]}, "
        f"{dt.day:02d} {months[dt.month - 1]} {dt.year} "
        f"{dt.hour:02d}:{dt.minute:02d}:{dt.second:02d} GMT"
    )
