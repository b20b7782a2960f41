"""
=============================================================================
REQUEST HANDLER BASE
=============================================================================

A RequestHandler answers one parsed request on one connection. Subclasses
decide which resource to send (see get.py); the base class owns everything
else: building the response, writing it, and the not-found fallback.

=============================================================================
NOT-FOUND FALLBACK
=============================================================================

When the requested resource does not exist, the handler walks a fixed,
ordered list of error pages and sends the first one the store can resolve:

    ┌─────────────────────────────────────────────────────────────────────┐
    │                                                                      │
    │   resolve("404.html")  ── found ──►  send with 404 Not Found        │
    │          │                                                           │
    │       missing                                                        │
    │          ▼                                                           │
    │   resolve("internal_error.html") ── found ──►  send with 500        │
    │          │                                                           │
    │       missing                                                        │
    │          ▼                                                           │
    │   raise InternalServerError        (nothing is written)             │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

The list is finite and never re-entered, so the cascade always ends.

=============================================================================
"""

import logging
from typing import BinaryIO, Tuple

from ..http.request import HTTPRequest
from ..http.response import HTTPResponse, SERVER_NAME, build_response
from ..http.status_codes import HTTPStatus
from ..resources.store import Resource, ResourceStore


logger = logging.getLogger(__name__)


class InternalServerError(Exception):
    """No response could be produced, not even a fallback page."""


class RequestHandler:
    """
    Base class for method-specific request handlers.

    Attributes:
        FALLBACK_PAGES: (page path, status code) pairs tried in order when
                        the requested resource is missing.
    """

    FALLBACK_PAGES: Tuple[Tuple[str, int], ...] = (
        ("404.html", HTTPStatus.NOT_FOUND),
        ("internal_error.html", HTTPStatus.INTERNAL_SERVER_ERROR),
    )

    def __init__(
        self,
        request: HTTPRequest,
        store: ResourceStore,
        writer: BinaryIO,
        server_name: str = SERVER_NAME,
        connection_id: str = "-",
    ):
        """
        Args:
            request: The parsed request.
            store: Where resources are looked up.
            writer: Binary stream the response is written to.
            server_name: Value of the Server header.
            connection_id: Used to tag log messages.
        """
        self.request = request
        self.store = store
        self.writer = writer
        self.server_name = server_name
        self.connection_id = connection_id

    def handle(self) -> HTTPResponse:
        """
        Write the response for the request.

        Returns:
            The response that was written.

        Raises:
            InternalServerError: Neither the resource nor any fallback page
                                 could be found.
            OSError: A resource could not be read (ResourceReadError) or
                     the response could not be written.
        """
        raise NotImplementedError

    # =========================================================================
    # SENDING
    # =========================================================================

    def send(self, resource: Resource, status: int) -> HTTPResponse:
        """Build the response for ``resource`` and write it out."""
        response = build_response(resource, status, server_name=self.server_name)
        self.write_response_header(response)
        self.write_response_body(response)
        return response

    def send_fallback(self) -> HTTPResponse:
        """
        Send the first error page from FALLBACK_PAGES the store can find.

        Raises:
            InternalServerError: None of the pages exist.
        """
        for page, status in self.FALLBACK_PAGES:
            resource = self.store.resolve(page)
            if resource is not None:
                logger.debug(f"[{self.connection_id}] Sending fallback page {page} ({int(status)})")
                return self.send(resource, status)
            logger.warning(f"[{self.connection_id}] Fallback page {page} not found")

        raise InternalServerError(
            f"No resource for {self.request.path} and no fallback page available"
        )

    def write_response_header(self, response: HTTPResponse):
        """Write the status line and headers, then flush."""
        self.writer.write(response.header_bytes())
        self.writer.flush()

    def write_response_body(self, response: HTTPResponse):
        """Write exactly ``response.length`` body bytes, then flush."""
        self.writer.write(response.body[:response.length])
        self.writer.flush()
