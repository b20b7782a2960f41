"""
=============================================================================
MIME TYPE DETECTION
=============================================================================

Maps file extensions to the MIME type sent in the Content-type header.

The table is fixed: there is no sniffing of file content and no lookup in
the operating system's mime database, so the same file always gets the same
Content-type no matter which machine the server runs on.

    index.html     →  text/html
    logo.png       →  image/png
    data.json      →  application/json
    archive.mimo   →  application/octet-stream   (unknown extension)
    README         →  application/octet-stream   (no extension)

An unknown extension is not an error. The caller gets the generic binary
type and a warning is logged so missing table entries show up in the logs.

=============================================================================
"""

import logging
from pathlib import Path
from typing import Optional, Union


logger = logging.getLogger(__name__)


# =============================================================================
# MIME TYPE TABLE
# =============================================================================
#
# Keys are lowercase extensions including the dot.
# Reference: https://developer.mozilla.org/en-US/docs/Web/HTTP/Basics_of_HTTP/MIME_types/Common_types
#
# =============================================================================

MIME_TYPES = {
    # Text
    ".html": "text/html",
    ".htm": "text/html",
    ".css": "text/css",
    ".csv": "text/csv",
    ".js": "text/javascript",
    ".txt": "text/plain",

    # Structured data
    ".json": "application/json",
    ".jsonld": "application/ld+json",
    ".xml": "application/xml",
    ".xhtml": "application/xhtml+xml",

    # Images
    ".png": "image/png",
    ".jpg": "image/jpeg",
    ".jpeg": "image/jpeg",
    ".gif": "image/gif",
    ".svg": "image/svg+xml",
    ".ico": "image/x-icon",
    ".webp": "image/webp",

    # Documents and archives
    ".pdf": "application/pdf",
    ".swf": "application/x-shockwave-flash",
    ".zip": "application/zip",
    ".7z": "application/x-7z-compressed",
}

# application/octet-stream = "I don't know what this is, treat as binary"
DEFAULT_MIME_TYPE = "application/octet-stream"


def lookup_mime_type(path: Union[str, Path]) -> Optional[str]:
    """
    Look up the MIME type for ``path`` without any fallback.

    Returns:
        The MIME type, or None when the extension is missing or unknown.
    """
    return MIME_TYPES.get(Path(path).suffix.lower())


def get_mime_type(path: Union[str, Path]) -> str:
    """
    Get the MIME type for a file based on its extension.

    Examples:
        >>> get_mime_type("style.css")
        'text/css'

        >>> get_mime_type("/path/to/image.PNG")
        'image/png'

        >>> get_mime_type("unknown.xyz")
        'application/octet-stream'
    """
    mime_type = lookup_mime_type(path)
    if mime_type is None:
        logger.warning(
            f"No content type known for {path}, using {DEFAULT_MIME_TYPE}"
        )
        return DEFAULT_MIME_TYPE
    return mime_type
