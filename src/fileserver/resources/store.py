"""
=============================================================================
RESOURCE STORE
=============================================================================

Loads static files by URL path, keeps them in memory, and reports their
MIME type.

=============================================================================
PATH → FILE MAPPING
=============================================================================

    URL path            storage key          file on disk
    ─────────────────   ──────────────────   ──────────────────────────
    /index.html         index.html           <root>/index.html
    /docs/              docs/index.html      <root>/docs/index.html
    /                   index.html           <root>/index.html
    404.html            404.html             <root>/404.html
    /../etc/passwd      (escapes root)       not found

=============================================================================
CACHING
=============================================================================

    ┌─────────────────────────────────────────────────────────────────────┐
    │                         resolve(path)                               │
    ├─────────────────────────────────────────────────────────────────────┤
    │                                                                      │
    │   cache hit?  ── yes ──►  return cached Resource   (no disk I/O)    │
    │       │                                                              │
    │       no                                                             │
    │       ▼                                                              │
    │   file exists? ── no ──►  return None              (nothing cached) │
    │       │                                                              │
    │       yes                                                            │
    │       ▼                                                              │
    │   read bytes  ── OSError ──►  raise ResourceReadError (not cached)  │
    │       │                                                              │
    │       ▼                                                              │
    │   cache under the original path, return Resource                    │
    │                                                                      │
    └─────────────────────────────────────────────────────────────────────┘

Entries are never evicted or refreshed. Static content is treated as
immutable for the lifetime of the process: editing a file on disk after it
has been served once has no effect until restart.

The cache is the only state shared between worker threads. Two workers
missing on the same path at the same time will both read the file and the
second insert wins. Both entries hold identical bytes, so this is harmless.

=============================================================================
"""

import logging
import threading
from dataclasses import dataclass, field
from pathlib import Path
from typing import Callable, Dict, Optional, Union

from ..http.mime_types import get_mime_type


logger = logging.getLogger(__name__)


INDEX_FILE = "index.html"

# Bundled pages shipped inside the package
DEFAULT_STATIC_ROOT = Path(__file__).resolve().parent.parent / "static"


class ResourceReadError(OSError):
    """
    An existing file could not be read.

    Nothing is cached when this is raised, so a later request for the same
    path gets a fresh attempt.
    """


@dataclass(frozen=True)
class Resource:
    """
    An in-memory static file.

    Attributes:
        content: The file's bytes.
        mime_type: Content-type to advertise.
        length: Always len(content).
    """

    content: bytes
    mime_type: str
    length: int = field(init=False)

    def __post_init__(self):
        # frozen=True blocks normal assignment
        object.__setattr__(self, "length", len(self.content))


class ResourceCache:
    """
    Process-wide path → Resource table.

    Grows only. get_or_insert() is the single way to add an entry; there is
    no removal or replacement API.
    """

    def __init__(self):
        self._entries: Dict[str, Resource] = {}
        self._lock = threading.Lock()  # Protects inserts

    def get(self, key: str) -> Optional[Resource]:
        """Return the cached resource for ``key``, or None."""
        return self._entries.get(key)

    def get_or_insert(
        self,
        key: str,
        loader: Callable[[str], Optional[Resource]],
    ) -> Optional[Resource]:
        """
        Return the cached entry, loading and caching it on a miss.

        ``loader`` runs outside the lock, so concurrent misses on the same
        key may both load; the last one to finish is kept. A loader result
        of None is returned as-is and not cached.
        """
        resource = self._entries.get(key)
        if resource is not None:
            return resource

        resource = loader(key)
        if resource is None:
            return None

        with self._lock:
            self._entries[key] = resource
        return resource

    def __contains__(self, key: str) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


class ResourceStore:
    """
    Resolves URL paths to cached Resources under a static root.

    =========================================================================
    USAGE
    =========================================================================

        store = ResourceStore("/srv/site")

        resource = store.resolve("/index.html")
        if resource is None:
            ...  # not found

    =========================================================================
    """

    def __init__(
        self,
        root: Optional[Union[str, Path]] = None,
        cache: Optional[ResourceCache] = None,
    ):
        """
        Args:
            root: Directory holding the static files. Defaults to the pages
                  bundled with the package.
            cache: Cache to use. A new empty cache is created when omitted.
        """
        # Resolve to absolute path (needed for the containment check)
        self.root = Path(root if root is not None else DEFAULT_STATIC_ROOT).resolve()
        self.cache = cache if cache is not None else ResourceCache()

        if not self.root.is_dir():
            logger.warning(f"Static root {self.root} is not a directory, every lookup will miss")

    def resolve(self, path: str) -> Optional[Resource]:
        """
        Get the resource for a URL path.

        Args:
            path: URL path as received, e.g. "/index.html" or "/docs/".

        Returns:
            The Resource, or None if there is no such file.

        Raises:
            ResourceReadError: The file exists but could not be read.
        """
        return self.cache.get_or_insert(path, self._load)

    def storage_path(self, path: str) -> Optional[Path]:
        """
        Map a URL path onto the filesystem.

        Returns:
            Absolute path inside the static root, or None when the path
            escapes the root or cannot name a file at all (NUL bytes,
            names the OS rejects as too long).
        """
        key = path + INDEX_FILE if path.endswith("/") else path
        key = key[1:] if key.startswith("/") else key

        try:
            # resolve() follows symlinks and normalizes .. components
            full_path = (self.root / key).resolve()
        except (OSError, ValueError) as e:
            logger.warning(f"Unusable path {path[:100]!r}: {e}")
            return None

        try:
            full_path.relative_to(self.root)
        except ValueError:
            logger.warning(f"Path escapes static root: {path}")
            return None
        return full_path

    def _load(self, path: str) -> Optional[Resource]:
        """Cache-miss loader: read the file behind ``path``."""
        file_path = self.storage_path(path)
        if file_path is None or not self._is_file(file_path):
            logger.debug(f"No static file for {path[:100]}")
            return None

        mime_type = get_mime_type(file_path)
        content = self._read(file_path)

        logger.debug(f"Loaded {path} ({len(content)} bytes, {mime_type})")
        return Resource(content=content, mime_type=mime_type)

    def _is_file(self, file_path: Path) -> bool:
        try:
            return file_path.is_file()
        except (OSError, ValueError) as e:
            logger.warning(f"Unable to stat {str(file_path)[:100]}: {e}")
            return False

    def _read(self, file_path: Path) -> bytes:
        try:
            return file_path.read_bytes()
        except OSError as e:
            logger.warning(f"Unable to read contents of the file {file_path}: {e}")
            raise ResourceReadError(f"Error reading file {file_path}") from e
