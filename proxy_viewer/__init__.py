"""
Proxy Viewer - display untrusted web pages fetched through a proxy inside a sandboxed surface.
"""

import logging

__version__ = "1.0.0"
__author__ = "Proxy Viewer Team"
__description__ = "Proxy-mediated document viewer with a sandboxing content rewriter"

logging.getLogger(__name__).addHandler(logging.NullHandler())
