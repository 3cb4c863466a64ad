"""Pytest bootstrap for local source imports.

Makes ``import proxy_viewer`` resolve to the checkout when pytest runs with
a sys.path that excludes the repository root.
"""

import sys
from pathlib import Path


PROJECT_ROOT = Path(__file__).resolve().parent.parent
PROJECT_ROOT_STR = str(PROJECT_ROOT)

if PROJECT_ROOT_STR not in sys.path:
    sys.path.insert(0, PROJECT_ROOT_STR)
