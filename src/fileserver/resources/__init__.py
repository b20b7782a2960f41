"""
Static resource loading and caching.

    ResourceStore   URL path → Resource, backed by a static root directory
    ResourceCache   process-wide, grow-only path → Resource table
    Resource        immutable bytes + MIME type
"""

from .store import (
    DEFAULT_STATIC_ROOT,
    Resource,
    ResourceCache,
    ResourceReadError,
    ResourceStore,
)

__all__ = [
    "DEFAULT_STATIC_ROOT",
    "Resource",
    "ResourceCache",
    "ResourceReadError",
    "ResourceStore",
]
