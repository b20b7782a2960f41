"""GET requests: send the resource at the request path, or a fallback page."""

import logging

from ..http.response import HTTPResponse
from ..http.status_codes import HTTPStatus
from .base import RequestHandler


logger = logging.getLogger(__name__)


class GetRequestHandler(RequestHandler):
    """
    Serves static resources.

        GET /index.html  →  200 OK with index.html
        GET /missing     →  404 Not Found with 404.html

    Query parameters and headers do not affect the response.
    """

    def handle(self) -> HTTPResponse:
        path = self.request.path
        resource = self.store.resolve(path)

        if resource is None:
            logger.info(f"[{self.connection_id}] Resource not found: {path}")
            return self.send_fallback()

        return self.send(resource, HTTPStatus.OK)
