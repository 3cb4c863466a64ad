"""
Hand-off of URLs to the user's full browser.
"""

import logging
import webbrowser
from typing import Callable, Optional

from proxy_viewer.utils.logging import log_exception
from proxy_viewer.utils.url import validate_url

logger = logging.getLogger(__name__)


class ExternalOpener:
    """Opens URLs in the system browser, best effort."""

    def __init__(self, opener: Optional[Callable[[str], bool]] = None):
        """
        Initialize the opener.

        Args:
            opener: Function that opens a URL and reports success,
                webbrowser.open if None
        """
        self.opener = opener or webbrowser.open

    def open_externally(self, url: str) -> bool:
        """
        Open a URL in the external browser.

        Failures are logged and reported through the return value, never raised.

        Args:
            url: Absolute http(s) URL

        Returns:
            bool: True if the browser accepted the URL
        """
        try:
            validate_url(url)
        except ValueError as e:
            logger.error(f"Refusing to open {url!r} externally: {e}")
            return False

        try:
            opened = bool(self.opener(url))
        except webbrowser.Error as e:
            logger.error(f"Failed to open external URL {url}: {e}")
            return False
        except Exception as e:
            log_exception(logger, e, f"External opener failed for {url}")
            return False

        if opened:
            logger.info(f"Opened {url} in external browser")
        else:
            logger.warning(f"No external browser accepted {url}")
        return opened
