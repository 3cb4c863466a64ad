"""
Display side: the render host and the interactive shell.
"""

from proxy_viewer.ui.render_host import RenderHost, RenderingSurface, InMemorySurface

__all__ = [
    'RenderHost',
    'RenderingSurface',
    'InMemorySurface',
]
