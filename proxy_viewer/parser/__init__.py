"""
Document rewriting: makes fetched HTML safe to show on the rendering surface.
"""

from proxy_viewer.parser.content_rewriter import ContentRewriter
from proxy_viewer.parser.guard import GuardInjector

__all__ = [
    'ContentRewriter',
    'GuardInjector',
]
