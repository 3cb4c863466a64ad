"""
Fetch service client.
This module fetches pages on behalf of the viewer so that the rendering
surface itself never talks to the network.
"""

import logging
from typing import Optional

import certifi
import requests
from requests.adapters import HTTPAdapter
from urllib3.util.retry import Retry

from proxy_viewer.utils.config import Config, DEFAULT_USER_AGENT

logger = logging.getLogger(__name__)


class FetchError(Exception):
    """Raised when a document cannot be fetched at the transport level."""


class FetchResult:
    """Outcome of a single fetch: HTTP status, decoded body and final URL."""

    def __init__(self, status: int, content: str, url: Optional[str] = None):
        self.status = status
        self.content = content
        self.url = url

    def __repr__(self) -> str:
        return f"FetchResult(status={self.status}, url={self.url!r}, length={len(self.content)})"


class ProxyClient:
    """
    Fetches documents for the viewer.

    Every HTTP status is returned as a FetchResult; only transport failures
    (DNS, TLS, timeouts, refused connections) raise FetchError.
    """

    def __init__(self, config: Optional[Config] = None, session: Optional[requests.Session] = None):
        """
        Initialize the client.

        Args:
            config: Viewer configuration, defaults are used if None
            session: Preconfigured session, mainly for tests
        """
        self.config = config
        self.timeout = self._setting("network.timeout", 30)
        self.session = session or self._create_session()

        logger.info("Proxy client initialized")

    def _setting(self, key: str, default):
        if self.config is None:
            return default
        return self.config.get(key, default)

    def _create_session(self) -> requests.Session:
        """
        Create a requests session with retries and browser-like headers.

        Returns:
            A configured requests session
        """
        session = requests.Session()

        retry_strategy = Retry(
            total=self._setting("network.retries", 3),
            backoff_factor=0.5,
            status_forcelist=[429, 500, 502, 503, 504],
            allowed_methods=["GET", "HEAD"],
            # Error statuses are reported to the controller, not raised
            raise_on_status=False
        )
        adapter = HTTPAdapter(max_retries=retry_strategy)
        session.mount("http://", adapter)
        session.mount("https://", adapter)

        session.verify = certifi.where()

        session.headers.update({
            "User-Agent": self._setting("network.user_agent", DEFAULT_USER_AGENT),
            "Accept": "text/html,application/xhtml+xml,application/xml;q=0.9,*/*;q=0.8",
            "Accept-Language": "en-US,en;q=0.9",
        })

        if self._setting("network.proxy.enabled", False):
            proxy_url = self._setting("network.proxy.url", "")
            if proxy_url:
                session.proxies.update({"http": proxy_url, "https": proxy_url})
                logger.info(f"Routing requests through proxy {proxy_url}")
            else:
                logger.warning("Proxy enabled but network.proxy.url is empty, connecting directly")

        return session

    def fetch_document(self, url: str) -> FetchResult:
        """
        Fetch a document.

        Args:
            url: Absolute URL to fetch

        Returns:
            FetchResult: Status, text content and final URL after redirects

        Raises:
            FetchError: If the request fails before a response arrives
        """
        logger.debug(f"GET request: {url}")

        try:
            response = self.session.get(url, timeout=self.timeout, allow_redirects=True)
            content = response.text
        except requests.RequestException as e:
            logger.error(f"Request error for {url}: {e}")
            raise FetchError(str(e)) from e

        logger.debug(f"Response: {response.status_code} - {response.url}")
        return FetchResult(status=response.status_code, content=content, url=response.url)

    def close(self) -> None:
        """Close the underlying session."""
        self.session.close()
