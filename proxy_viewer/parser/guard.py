"""
Isolation guard injected into every rewritten document.

The guard is a fixed, self-contained script that runs inside the rendering
surface. It keeps the page from leaving the sandbox: link clicks, form
submissions and navigation are relayed to the host as ``{type: "navigate", url}`` messages,
outbound requests are refused, history manipulation is neutralized, and the
resulting noise (source map 404s, rejected fetches) is kept off the error
channel.
"""

import logging
from typing import Optional

from bs4 import BeautifulSoup, Tag

logger = logging.getLogger(__name__)

# Message type understood by NavigationController.handle_message
NAVIGATE_MESSAGE_TYPE = "navigate"

LAYOUT_STYLE = """
html, body {
  margin: 0;
  padding: 0;
  overflow-x: auto;
  height: auto !important;
}
"""

GUARD_SCRIPT = """
(function () {
  'use strict';

  var MAP_PATTERN = /\\.map(?:$|[?#])|sourceMappingURL/i;
  var SUPPRESSED_MESSAGE = /Fetch blocked|Request blocked|Source map|\\.map\\b|sourceMappingURL|CORS|Access-Control|X-Frame-Options|blob:/i;

  function log() {
    var args = Array.prototype.slice.call(arguments);
    args.unshift('[proxy-viewer guard]');
    console.log.apply(console, args);
  }

  function isSourceMap(url) {
    return typeof url === 'string' && MAP_PATTERN.test(url);
  }

  function GuardSuppressedError(message) {
    var error = new Error(message);
    error.name = 'GuardSuppressedError';
    return error;
  }

  // Host relay: the only way out of the sandbox
  function relayNavigation(url) {
    if (window.parent && window.parent !== window) {
      window.parent.postMessage({ type: '""" + NAVIGATE_MESSAGE_TYPE + """', url: url }, '*');
    } else {
      log('No host frame to relay navigation to:', url);
    }
  }

  // Mutation subscription: one observer, many consumers of added elements
  var addedElementSubscribers = [];

  function subscribeAddedElements(callback) {
    addedElementSubscribers.push(callback);
  }

  function publishAddedElement(node) {
    for (var i = 0; i < addedElementSubscribers.length; i++) {
      try {
        addedElementSubscribers[i](node);
      } catch (error) {
        log('Mutation subscriber failed:', error);
      }
    }
  }

  if (typeof MutationObserver !== 'undefined') {
    new MutationObserver(function (mutations) {
      mutations.forEach(function (mutation) {
        mutation.addedNodes.forEach(function (node) {
          if (node.nodeType === 1) {
            publishAddedElement(node);
          }
        });
      });
    }).observe(document, { childList: true, subtree: true });
  }

  // Form relay (GET only, POST bodies are not preserved)
  function formTargetUrl(form) {
    var action = form.getAttribute('data-original-action') || document.baseURI || window.location.href;
    var url = new URL(action, document.baseURI || window.location.href);
    var params = new URLSearchParams();
    new FormData(form).forEach(function (value, key) {
      params.append(key, typeof value === 'string' ? value : value.name);
    });
    return url.origin + url.pathname + '?' + params.toString();
  }

  function relayForm(form) {
    try {
      var target = formTargetUrl(form);
      log('Form submission intercepted, relaying:', target);
      relayNavigation(target);
    } catch (error) {
      log('Form submission could not be relayed:', error);
    }
  }

  function onFormSubmit(event) {
    event.preventDefault();
    event.stopPropagation();
    event.stopImmediatePropagation();
    relayForm(event.target);
    return false;
  }

  function hijackForm(form) {
    form.onsubmit = onFormSubmit;
  }

  function hijackForms(root) {
    if (root.tagName === 'FORM') {
      hijackForm(root);
    }
    if (root.querySelectorAll) {
      root.querySelectorAll('form').forEach(hijackForm);
    }
  }

  document.addEventListener('submit', onFormSubmit, true);

  if (typeof HTMLFormElement !== 'undefined') {
    HTMLFormElement.prototype.submit = function () {
      relayForm(this);
    };
  }

  document.addEventListener('DOMContentLoaded', function () {
    hijackForms(document);
  });
  subscribeAddedElements(hijackForms);

  // Link relay: fragments stay in the page, everything else goes to the host
  function scrollToFragment(fragment) {
    var id;
    try {
      id = decodeURIComponent(fragment);
    } catch (error) {
      id = fragment;
    }
    var target = id && document.getElementById(id);
    if (target && target.scrollIntoView) {
      target.scrollIntoView();
    }
  }

  function onLinkClick(event) {
    if (event.defaultPrevented || event.button !== 0 ||
        event.metaKey || event.ctrlKey || event.shiftKey || event.altKey) {
      return;
    }
    var origin = event.target;
    var anchor = origin && origin.closest ? origin.closest('a[href]') : null;
    if (!anchor) {
      return;
    }
    var raw = (anchor.getAttribute('href') || '').trim();
    if (!raw || /^javascript:/i.test(raw)) {
      return;
    }

    var url = anchor.href;
    var hash = url.indexOf('#');
    var current = (document.baseURI || window.location.href).split('#')[0];
    // The injected base would send even '#id' links to the remote page
    event.preventDefault();
    if (raw.charAt(0) === '#' || (hash >= 0 && url.slice(0, hash) === current)) {
      scrollToFragment(url.slice(hash + 1));
      return;
    }
    log('Link click intercepted, relaying:', url);
    relayNavigation(url);
  }

  document.addEventListener('click', onLinkClick, true);

  // Outbound network primitives
  if (typeof XMLHttpRequest !== 'undefined') {
    XMLHttpRequest.prototype.open = function (method, url) {
      this.__guardUrl = String(url);
    };
    XMLHttpRequest.prototype.send = function () {
      if (isSourceMap(this.__guardUrl)) {
        log('Source map request suppressed:', this.__guardUrl);
      } else {
        log('XMLHttpRequest suppressed:', this.__guardUrl);
      }
    };
  }

  if (typeof window.fetch !== 'undefined') {
    window.fetch = function (input) {
      var url = typeof input === 'string' ? input : (input && input.url);
      if (isSourceMap(url)) {
        log('Source map fetch suppressed:', url);
        return Promise.reject(GuardSuppressedError('Source map fetch blocked: ' + url));
      }
      log('Fetch suppressed:', url);
      return Promise.reject(GuardSuppressedError('Fetch blocked: ' + url));
    };
  }

  if (typeof navigator !== 'undefined' && navigator.sendBeacon) {
    navigator.sendBeacon = function (url) {
      log('Beacon suppressed:', url);
      return false;
    };
  }

  window.SourceMap = undefined;
  window.sourceMap = undefined;

  // History manipulation throws SecurityError inside the sandbox
  if (typeof history !== 'undefined') {
    history.pushState = function () {
      log('history.pushState suppressed');
    };
    history.replaceState = function () {
      log('history.replaceState suppressed');
    };
  }

  // Source map elements, present and future
  function isSourceMapElement(node) {
    return (node.tagName === 'LINK' && isSourceMap(node.getAttribute('href'))) ||
      (node.tagName === 'SCRIPT' && isSourceMap(node.getAttribute('src')));
  }

  function removeSourceMapElements(root) {
    if (isSourceMapElement(root)) {
      root.remove();
      log('Source map element removed');
      return;
    }
    if (root.querySelectorAll) {
      root.querySelectorAll('link[href*=".map"], script[src*=".map"]').forEach(function (node) {
        if (isSourceMapElement(node)) {
          node.remove();
          log('Source map element removed');
        }
      });
    }
  }

  subscribeAddedElements(removeSourceMapElements);
  document.addEventListener('DOMContentLoaded', function () {
    removeSourceMapElements(document);
  });

  // Noise from the suppressions above
  window.addEventListener('error', function (event) {
    var target = event.target;
    var resource = target && (target.src || target.href);
    if ((event.message && SUPPRESSED_MESSAGE.test(event.message)) || isSourceMap(resource)) {
      log('Error suppressed:', event.message || resource);
      event.preventDefault();
      event.stopPropagation();
      return false;
    }
  }, true);

  window.addEventListener('unhandledrejection', function (event) {
    var reason = event.reason;
    if (reason && (reason.name === 'GuardSuppressedError' ||
        (reason.message && SUPPRESSED_MESSAGE.test(reason.message)))) {
      log('Rejection suppressed:', reason.message);
      event.preventDefault();
    }
  }, true);
})();
"""


class GuardInjector:
    """Inserts the guard, a base URL and the layout style into a document."""

    def __init__(self, script: str = GUARD_SCRIPT, style: str = LAYOUT_STYLE):
        """
        Initialize the injector.

        Args:
            script: Guard script source
            style: Layout normalization CSS
        """
        self.script = script
        self.style = style

    def inject(self, soup: BeautifulSoup, base_url: str) -> Tag:
        """
        Insert the guard at the start of the document head.

        Args:
            soup: Parsed document, modified in place
            base_url: Absolute URL the document was fetched from

        Returns:
            Tag: The head element holding the guard
        """
        head = self._ensure_head(soup)

        base = soup.new_tag("base", href=base_url)
        style = soup.new_tag("style")
        style.string = self.style
        script = soup.new_tag("script")
        script.string = self.script

        # Our base must come first so it wins over any base the page declares
        for position, tag in enumerate((base, style, script)):
            head.insert(position, tag)

        logger.debug(f"Guard injected for {base_url}")
        return head

    def _ensure_head(self, soup: BeautifulSoup) -> Tag:
        head: Optional[Tag] = soup.find("head")
        if head is not None:
            return head

        head = soup.new_tag("head")
        root = soup.find("html")
        if root is not None:
            root.insert(0, head)
        else:
            soup.insert(0, head)
        return head
