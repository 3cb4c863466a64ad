"""
URL helpers: normalization of typed input, reference resolution and validation.
"""

import logging
import urllib.parse

logger = logging.getLogger(__name__)

# Schemes the viewer can fetch through the proxy
WEB_SCHEMES = ('http://', 'https://')

# Scheme prepended to bare input such as "example.com"
DEFAULT_SCHEME = 'https://'


def normalize_url(value: str) -> str:
    """
    Turn user-entered or link-derived text into an absolute URL.

    Values already starting with http:// or https:// are returned unchanged,
    anything else gets https:// prepended. Reachability and syntax are not
    checked here; malformed results fail later when parsed.

    Args:
        value: Text to normalize

    Returns:
        str: Scheme-qualified URL
    """
    if value.startswith(WEB_SCHEMES):
        return value

    normalized = f"{DEFAULT_SCHEME}{value}"
    logger.debug(f"Normalized {value!r} to {normalized}")
    return normalized


def is_absolute_reference(value: str) -> bool:
    """Check whether a reference already names its own scheme and host."""
    lowered = value.lower()
    return lowered.startswith(WEB_SCHEMES) or lowered.startswith('//')


def resolve_reference(value: str, base_url: str) -> str:
    """
    Resolve a document reference against the page URL.

    Args:
        value: Relative or absolute reference taken from the document
        base_url: Absolute URL of the page the reference appears in

    Returns:
        str: Absolute URL

    Raises:
        ValueError: If either URL cannot be parsed
    """
    reference = value.strip()

    parts = urllib.parse.urlsplit(reference)

    # Reading the port raises ValueError for a non-numeric or out-of-range port
    _ = parts.port

    return urllib.parse.urljoin(base_url, reference)


def is_source_map_reference(value: str) -> bool:
    """
    Check whether a URL points at a source map file (``*.map``).

    Args:
        value: URL or path to check

    Returns:
        bool: True if the path component ends in .map
    """
    try:
        path = urllib.parse.urlsplit(value.strip()).path
    except ValueError:
        return False
    return path.lower().endswith('.map')


def validate_url(url: str) -> None:
    """
    Check that a URL is safe to hand to an external browser.

    Args:
        url: URL to validate

    Raises:
        ValueError: If the URL is empty, not http(s), or unparsable
    """
    if not url:
        raise ValueError("URL cannot be empty")

    if not url.startswith(WEB_SCHEMES):
        raise ValueError("URL must start with http:// or https://")

    try:
        parsed = urllib.parse.urlsplit(url)
        hostname = parsed.hostname
        _ = parsed.port
    except ValueError as e:
        raise ValueError(f"Invalid URL: {e}") from e

    if not hostname:
        raise ValueError(f"Invalid URL: no host in {url!r}")
