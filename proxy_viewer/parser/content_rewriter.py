"""
Content rewriter.

Turns a fetched, untrusted HTML document into one that can be displayed on
the sandboxed rendering surface: references are made absolute, navigation is
kept inside the surface, forms are prepared for relay by the guard, remote
scripts, stylesheets and source maps are dropped, the document shell is
repaired and the isolation guard is injected.
"""

import logging
import re
from typing import List, Optional

from bs4 import BeautifulSoup, Comment, Doctype, Tag

from proxy_viewer.parser.guard import GuardInjector
from proxy_viewer.utils.logging import PerformanceLogger
from proxy_viewer.utils.url import is_absolute_reference, is_source_map_reference, resolve_reference

logger = logging.getLogger(__name__)

# Live action given to forms once their real action is parked
NEUTRAL_FORM_ACTION = "javascript:void(0)"
ORIGINAL_ACTION_ATTR = "data-original-action"
SUPPRESS_SUBMIT = "return false;"

JS_SOURCE_MAP_PATTERN = re.compile(r"//\s*[#@]\s*sourceMappingURL=[^\r\n]*", re.IGNORECASE)
CSS_SOURCE_MAP_PATTERN = re.compile(r"/\*\s*[#@]\s*sourceMappingURL=[^*]*\*/", re.IGNORECASE)

# http-equiv values that stop the page from being framed
FRAME_BLOCKING_HEADERS = {"x-frame-options"}
CSP_HEADER = "content-security-policy"


def _skip_href(value: str) -> bool:
    lowered = value.strip().lower()
    return lowered.startswith("#") or lowered.startswith("javascript:") or is_absolute_reference(lowered)


def _skip_src(value: str) -> bool:
    lowered = value.strip().lower()
    return lowered.startswith("data:") or is_absolute_reference(lowered)


def _skip_action(value: str) -> bool:
    return is_absolute_reference(value.strip())


# Attribute name -> predicate for values that must be left as written
REFERENCE_ATTRIBUTES = (
    ("href", _skip_href),
    ("src", _skip_src),
    ("action", _skip_action),
)


def _precedes(parent: Tag, first: Tag, second: Tag) -> bool:
    """Check that both tags are children of ``parent`` with ``first`` before ``second``."""
    # Identity, not Tag.__eq__, which compares markup
    positions = {id(child): index for index, child in enumerate(parent.contents)}
    if id(first) not in positions or id(second) not in positions:
        return False
    return positions[id(first)] < positions[id(second)]


def _marker(text: str) -> Comment:
    # A "--" inside the URL would end the comment early
    return Comment(f" {text.replace('--', '%2D%2D')} ")


class ContentRewriter:
    """Rewrites fetched HTML for display inside the rendering surface."""

    def __init__(self, guard_injector: Optional[GuardInjector] = None):
        """
        Initialize the rewriter.

        Args:
            guard_injector: Injector for the isolation guard, a default one if None
        """
        self.guard_injector = guard_injector or GuardInjector()
        self.perf = PerformanceLogger(logger, "ContentRewriter")

    def rewrite(self, html: str, base_url: str) -> str:
        """
        Rewrite a document for sandboxed display.

        The rewrite never fails because of a single bad reference: anything
        that cannot be resolved is left as it was.

        Args:
            html: Raw HTML as returned by the fetch service
            base_url: Absolute URL the document was fetched from

        Returns:
            str: Self-contained HTML ready for the render host
        """
        self.perf.start("rewrite")
        logger.debug(f"Rewriting {len(html)} characters of HTML from {base_url}")

        soup = self.parse(html)

        self._absolutize_references(soup, base_url)
        self._remove_targets(soup)
        self._prepare_forms(soup)
        self._disable_remote_resources(soup)
        self._strip_source_maps(soup)
        self._repair_structure(soup)
        self._remove_frame_blocking_meta(soup)
        self.guard_injector.inject(soup, base_url)

        result = str(soup)
        self.perf.end("rewrite")
        logger.debug(f"Rewrite complete, new length: {len(result)}")
        return result

    def parse(self, html: str) -> BeautifulSoup:
        """
        Parse HTML into a tree.

        Args:
            html: HTML content to parse

        Returns:
            BeautifulSoup: Parsed document
        """
        # html5lib follows the HTML5 parsing algorithm; html.parser is the fallback
        try:
            return BeautifulSoup(html, "html5lib")
        except Exception as e:
            logger.warning(f"html5lib parser failed: {e}, falling back to 'html.parser'")
            return BeautifulSoup(html, "html.parser")

    def _absolutize_references(self, soup: BeautifulSoup, base_url: str) -> None:
        for attr, skip in REFERENCE_ATTRIBUTES:
            for tag in soup.find_all(attrs={attr: True}):
                value = tag.get(attr)
                if not isinstance(value, str) or skip(value):
                    continue

                try:
                    tag[attr] = resolve_reference(value, base_url)
                except ValueError as e:
                    logger.warning(f"Failed to resolve {attr}={value!r} against {base_url}: {e}")

    def _remove_targets(self, soup: BeautifulSoup) -> None:
        for tag in soup.find_all(attrs={"target": True}):
            del tag["target"]

    def _prepare_forms(self, soup: BeautifulSoup) -> None:
        """
        Park each form's action where the guard can find it.

        The guard reads ``data-original-action`` at submit time; the live
        action and onsubmit are made inert so the surface never submits.
        """
        for form in soup.find_all("form"):
            action = form.get("action")
            if action is not None:
                form[ORIGINAL_ACTION_ATTR] = action
                form["action"] = NEUTRAL_FORM_ACTION
            form["onsubmit"] = SUPPRESS_SUBMIT

    def _disable_remote_resources(self, soup: BeautifulSoup) -> None:
        for script in soup.find_all("script", src=True):
            script.replace_with(_marker(f"Script disabled: {script['src']}"))

        for link in soup.find_all("link"):
            rel = link.get("rel") or []
            if isinstance(rel, str):
                rel = rel.split()
            if "stylesheet" in (value.lower() for value in rel):
                link.replace_with(_marker(f"Stylesheet disabled: {link.get('href', '')}"))

    def _strip_source_maps(self, soup: BeautifulSoup) -> None:
        removed: List[Tag] = []
        for tag in soup.find_all(True):
            for attr, value in list(tag.attrs.items()):
                if attr not in ("href", "src") and not attr.startswith("data-"):
                    continue
                if not isinstance(value, str) or not is_source_map_reference(value):
                    continue
                if tag.name in ("link", "script"):
                    removed.append(tag)
                    break
                del tag[attr]

        for tag in removed:
            tag.decompose()

        for script in soup.find_all("script"):
            if script.string and JS_SOURCE_MAP_PATTERN.search(script.string):
                script.string = JS_SOURCE_MAP_PATTERN.sub("", script.string)

        for style in soup.find_all("style"):
            if style.string and CSS_SOURCE_MAP_PATTERN.search(style.string):
                style.string = CSS_SOURCE_MAP_PATTERN.sub("", style.string)

        if removed:
            logger.debug(f"Removed {len(removed)} source map elements")

    def _repair_structure(self, soup: BeautifulSoup) -> None:
        """
        Make sure the document is an html root holding a head then a body.

        html5lib already builds this shape, so for its trees this is a no-op;
        the html.parser fallback keeps whatever shape the markup had.
        """
        root = soup.find("html")
        if root is None:
            root = soup.new_tag("html")
            for child in list(soup.contents):
                # The doctype stays outside the root element
                if isinstance(child, Doctype):
                    continue
                root.append(child.extract())
            soup.append(root)

        head = root.find("head")
        if head is not None:
            # An unclosed head swallows the body; close the head before it
            nested_body = head.find("body")
            if nested_body is not None:
                head.insert_after(nested_body.extract())

        body = root.find("body")
        if body is None:
            body = soup.new_tag("body")
            for child in list(root.contents):
                if child is head:
                    continue
                body.append(child.extract())
            root.append(body)

        if head is None:
            root.insert(0, soup.new_tag("head"))
        elif not _precedes(root, head, body):
            root.insert(0, head.extract())

    def _remove_frame_blocking_meta(self, soup: BeautifulSoup) -> None:
        for meta in soup.find_all("meta", attrs={"http-equiv": True}):
            header = str(meta.get("http-equiv", "")).strip().lower()
            content = str(meta.get("content", "")).lower()
            if header in FRAME_BLOCKING_HEADERS or (header == CSP_HEADER and "frame-ancestors" in content):
                logger.debug(f"Removed frame-blocking meta tag: {header}")
                meta.decompose()
