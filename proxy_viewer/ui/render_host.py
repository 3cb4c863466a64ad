"""
Render host.

Owns the rendering surface and the ephemeral handles used to hand rewritten
documents to it. A handle is an in-memory ``blob:`` URI; when one cannot be
created the document is passed inline as a ``data:`` URI instead. Each
handle is released exactly once, a short while after it is replaced so the
surface has finished loading from it.
"""

import logging
import threading
import urllib.parse
import uuid
from abc import ABC, abstractmethod
from typing import Dict, Optional

logger = logging.getLogger(__name__)

BLOB_PREFIX = "blob:proxy-viewer/"
DATA_URI_PREFIX = "data:text/html;charset=utf-8,"


class HandleCreationError(Exception):
    """Raised when the registry cannot hold another document."""


class RenderError(Exception):
    """Raised when the surface refuses to load a document."""


def to_data_uri(content: str) -> str:
    """Encode a document as an inline data URI."""
    return DATA_URI_PREFIX + urllib.parse.quote(content, safe="")


class HandleRegistry:
    """In-memory store behind blob URIs."""

    def __init__(self, max_bytes: Optional[int] = None):
        """
        Initialize the registry.

        Args:
            max_bytes: Total size the registry may hold, unlimited if None
        """
        self.max_bytes = max_bytes
        self._documents: Dict[str, bytes] = {}
        self._size = 0
        self._lock = threading.Lock()

    @property
    def size(self) -> int:
        """Bytes currently held."""
        return self._size

    def create(self, content: str) -> str:
        """
        Store a document and return its blob URI.

        Raises:
            HandleCreationError: If storing it would exceed max_bytes
        """
        data = content.encode("utf-8")
        with self._lock:
            if self.max_bytes is not None and self._size + len(data) > self.max_bytes:
                raise HandleCreationError(
                    f"Registry full: {self._size} + {len(data)} bytes exceeds {self.max_bytes}")
            uri = f"{BLOB_PREFIX}{uuid.uuid4()}"
            self._documents[uri] = data
            self._size += len(data)
        return uri

    def read(self, uri: str) -> Optional[str]:
        with self._lock:
            data = self._documents.get(uri)
        return data.decode("utf-8") if data is not None else None

    def revoke(self, uri: str) -> bool:
        """
        Drop a document.

        Returns:
            bool: False if the URI was unknown or already revoked
        """
        with self._lock:
            data = self._documents.pop(uri, None)
            if data is None:
                return False
            self._size -= len(data)
        return True

    def __len__(self) -> int:
        return len(self._documents)


class DisplayHandle:
    """A URI the surface can load a document from."""

    def __init__(self, uri: str, inline: bool = False):
        self.uri = uri
        self.inline = inline
        self.released = False

    def __repr__(self) -> str:
        kind = "inline" if self.inline else "blob"
        return f"DisplayHandle({kind}, released={self.released})"


class RenderingSurface(ABC):
    """Isolated container that displays whatever URI it is given."""

    @abstractmethod
    def load(self, uri: str) -> None:
        """Point the surface at a blob or data URI."""


class InMemorySurface(RenderingSurface):
    """Headless surface that only remembers what it was told to show."""

    def __init__(self):
        self.source = "about:blank"
        self.load_count = 0

    def load(self, uri: str) -> None:
        self.source = uri
        self.load_count += 1


class RenderHost:
    """Hands rewritten documents to the rendering surface."""

    def __init__(self, surface: Optional[RenderingSurface] = None,
                 registry: Optional[HandleRegistry] = None,
                 release_delay: float = 5.0):
        """
        Initialize the render host.

        Args:
            surface: Surface to display on, a headless one if None
            registry: Store for blob handles
            release_delay: Seconds a replaced handle is kept alive, 0 releases immediately
        """
        self.surface = surface or InMemorySurface()
        self.registry = registry or HandleRegistry()
        self.release_delay = release_delay

        self._current: Optional[DisplayHandle] = None
        self._timers: Dict[int, threading.Timer] = {}
        self._pending: Dict[int, DisplayHandle] = {}
        self._lock = threading.Lock()

    @property
    def current_handle(self) -> Optional[DisplayHandle]:
        return self._current

    @property
    def pending_releases(self) -> int:
        """Replaced handles still waiting for their delayed release."""
        with self._lock:
            return len(self._pending)

    def display(self, content: str) -> DisplayHandle:
        """
        Show a document on the surface.

        Args:
            content: Rewritten HTML

        Returns:
            DisplayHandle: Handle now assigned to the surface

        Raises:
            RenderError: If the surface failed to load the handle
        """
        try:
            handle = DisplayHandle(self.registry.create(content))
        except HandleCreationError as e:
            logger.warning(f"Blob handle creation failed ({e}), falling back to data URI")
            handle = DisplayHandle(to_data_uri(content), inline=True)

        try:
            self.surface.load(handle.uri)
        except Exception as e:
            self._release(handle)
            raise RenderError(f"Surface failed to load document: {e}") from e

        previous, self._current = self._current, handle
        if previous is not None:
            self._schedule_release(previous)

        logger.debug(f"Displaying {len(content)} characters via {handle!r}")
        return handle

    def current_document(self) -> Optional[str]:
        """
        Get the HTML currently on the surface.

        Returns:
            Optional[str]: Document text, None if nothing is displayed
        """
        handle = self._current
        if handle is None:
            return None
        if handle.inline:
            return urllib.parse.unquote(handle.uri[len(DATA_URI_PREFIX):])
        return self.registry.read(handle.uri)

    def close(self) -> None:
        """Release every outstanding handle now."""
        with self._lock:
            timers = list(self._timers.values())
            pending = list(self._pending.values())
            self._timers.clear()
        for timer in timers:
            timer.cancel()

        for handle in pending:
            self._release(handle)
        if self._current is not None:
            self._release(self._current)
            self._current = None

        logger.debug("Render host closed")

    def _schedule_release(self, handle: DisplayHandle) -> None:
        if self.release_delay <= 0:
            self._release(handle)
            return

        timer = threading.Timer(self.release_delay, self._release, args=(handle,))
        timer.daemon = True
        with self._lock:
            self._pending[id(handle)] = handle
            self._timers[id(handle)] = timer
        timer.start()

    def _release(self, handle: DisplayHandle) -> None:
        with self._lock:
            if handle.released:
                return
            handle.released = True
            self._pending.pop(id(handle), None)
            self._timers.pop(id(handle), None)

        if not handle.inline:
            self.registry.revoke(handle.uri)
        logger.debug(f"Released {handle!r}")
