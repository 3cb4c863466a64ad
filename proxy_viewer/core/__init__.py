"""
Navigation core: session history and the navigation controller.
"""

from proxy_viewer.core.history import HistoryState
from proxy_viewer.core.navigation import NavigationController, NavigationState

__all__ = [
    'HistoryState',
    'NavigationController',
    'NavigationState',
]
