"""
Navigation controller.

Single entry point for every navigation: typed URLs, links and forms relayed
from the sandbox, back, forward and reload all go through fetch, rewrite,
render and record here. Navigations run as coroutines on one event loop and
only suspend while the fetch is outstanding.
"""

import asyncio
import inspect
import logging
from enum import Enum
from typing import Any, Callable, List, Optional, Tuple

from proxy_viewer.core.history import HistoryState
from proxy_viewer.network.proxy_client import FetchError
from proxy_viewer.parser.content_rewriter import ContentRewriter
from proxy_viewer.parser.guard import NAVIGATE_MESSAGE_TYPE
from proxy_viewer.utils.logging import log_exception
from proxy_viewer.utils.url import normalize_url

logger = logging.getLogger(__name__)


class NavigationState(Enum):
    """Lifecycle of the most recent navigation."""
    IDLE = "idle"
    LOADING = "loading"
    LOADED = "loaded"
    FAILED = "failed"


Listener = Callable[["NavigationController"], None]


class NavigationController:
    """
    Owns the session history and drives the fetch, rewrite, render pipeline.

    A failed navigation (transport error, HTTP status >= 400, or any error
    while rewriting or rendering) is never shown as an error page: the URL is
    handed to the external browser instead and history is left untouched.

    When a second navigation starts before the first one's fetch resolves,
    the first is superseded and its result is dropped.
    """

    def __init__(self, fetch_document: Callable[[str], Any], render_host,
                 open_externally: Callable[[str], Any],
                 rewriter: Optional[ContentRewriter] = None):
        """
        Initialize the controller.

        Args:
            fetch_document: Callable returning an object with ``status``,
                ``content`` and optionally ``url``; may be sync or async
            render_host: Object with a ``display(content)`` method
            open_externally: Callable opening a URL in a full browser
            rewriter: Content rewriter, a default one if None
        """
        self.fetch_document = fetch_document
        self.render_host = render_host
        self.open_externally = open_externally
        self.rewriter = rewriter or ContentRewriter()

        self._history = HistoryState()
        self._state = NavigationState.IDLE
        self._pending_url: Optional[str] = None
        self._generation = 0
        self._listeners: List[Listener] = []

    @property
    def state(self) -> NavigationState:
        return self._state

    @property
    def history(self) -> Tuple[str, ...]:
        return self._history.entries

    @property
    def current_index(self) -> int:
        return self._history.index

    @property
    def current_url(self) -> Optional[str]:
        return self._history.current

    @property
    def pending_url(self) -> Optional[str]:
        """URL of the navigation in progress or last attempted."""
        return self._pending_url

    @property
    def back_enabled(self) -> bool:
        return self._history.can_go_back

    @property
    def forward_enabled(self) -> bool:
        return self._history.can_go_forward

    def add_listener(self, callback: Listener) -> None:
        """
        Register a callback run after every state or history change.

        Args:
            callback: Called with this controller; must only read from it
        """
        self._listeners.append(callback)

    def _notify(self) -> None:
        for callback in list(self._listeners):
            try:
                callback(self)
            except Exception as e:
                log_exception(logger, e, "Navigation listener failed")

    def _set_state(self, state: NavigationState) -> None:
        self._state = state
        self._notify()

    async def navigate(self, url: str) -> bool:
        """
        Navigate to a URL and record it in history on success.

        Args:
            url: URL as typed or relayed; normalized before use

        Returns:
            bool: True if the page was displayed
        """
        url = normalize_url(url)
        logger.info(f"Navigating to: {url}")
        return await self._load(url, record=True)

    async def go_back(self) -> bool:
        """
        Move one entry back and re-fetch it.

        Returns:
            bool: False if there is nothing to go back to or the load failed
        """
        url = self._history.back()
        if url is None:
            return False
        logger.info(f"Going back to: {url}")
        self._notify()
        return await self._load(url, record=False)

    async def go_forward(self) -> bool:
        """
        Move one entry forward and re-fetch it.

        Returns:
            bool: False if there is nothing to go forward to or the load failed
        """
        url = self._history.forward()
        if url is None:
            return False
        logger.info(f"Going forward to: {url}")
        self._notify()
        return await self._load(url, record=False)

    async def reload(self) -> bool:
        """
        Re-fetch the current entry.

        Returns:
            bool: False if history is empty or the load failed
        """
        url = self._history.current
        if url is None:
            return False
        logger.info(f"Reloading: {url}")
        return await self.navigate(url)

    async def handle_message(self, message: Any) -> bool:
        """
        Act on a message posted by the guard inside the rendering surface.

        Only ``{"type": "navigate", "url": <non-empty str>}`` is understood.
        The sender's origin is not checked: sandboxed content is untrusted
        whatever its origin.

        Args:
            message: Deserialized message payload

        Returns:
            bool: True if a navigation was performed and succeeded
        """
        if not isinstance(message, dict) or message.get("type") != NAVIGATE_MESSAGE_TYPE:
            logger.debug(f"Ignoring sandbox message: {message!r}")
            return False

        url = message.get("url")
        if not isinstance(url, str) or not url:
            logger.warning(f"Ignoring navigate message without a URL: {message!r}")
            return False

        logger.info(f"Received navigation request from sandbox: {url}")
        return await self.navigate(url)

    async def _fetch(self, url: str):
        if inspect.iscoroutinefunction(self.fetch_document):
            return await self.fetch_document(url)

        # Blocking fetchers run off the event loop
        loop = asyncio.get_running_loop()
        result = await loop.run_in_executor(None, self.fetch_document, url)
        if inspect.isawaitable(result):
            result = await result
        return result

    async def _load(self, url: str, record: bool) -> bool:
        self._generation += 1
        generation = self._generation
        self._pending_url = url
        self._set_state(NavigationState.LOADING)

        try:
            result = await self._fetch(url)
            if generation != self._generation:
                logger.debug(f"Dropping superseded response for {url}")
                return False

            # Any object with status and content will do, not just FetchResult
            if result.status >= 400:
                raise FetchError(f"HTTP {result.status}")

            base_url = getattr(result, "url", None) or url
            content = self.rewriter.rewrite(result.content, base_url)
            self.render_host.display(content)
        except Exception as e:
            if generation != self._generation:
                logger.debug(f"Ignoring failure of superseded navigation to {url}: {e}")
                return False

            if isinstance(e, FetchError):
                logger.warning(f"Navigation to {url} failed: {e}, opening in external browser")
            else:
                log_exception(logger, e, f"Navigation to {url} failed, opening in external browser")
            self._set_state(NavigationState.FAILED)
            self._hand_off(url)
            return False

        if record:
            self._history.record(url)
        logger.info(f"Page loaded: {url}")
        self._set_state(NavigationState.LOADED)
        return True

    def _hand_off(self, url: str) -> None:
        try:
            self.open_externally(url)
        except Exception as e:
            log_exception(logger, e, f"Failed to open {url} externally")
