"""
Collaborators at the network boundary: the fetch proxy client and the external browser.
"""

from proxy_viewer.network.proxy_client import FetchError, FetchResult, ProxyClient
from proxy_viewer.network.external import ExternalOpener

__all__ = [
    'FetchError',
    'FetchResult',
    'ProxyClient',
    'ExternalOpener',
]
