#!/usr/bin/env python3
"""
Proxy Viewer - view web pages fetched through a proxy inside a sandbox

Launcher for running the viewer from a source checkout.
"""

import os
import sys

sys.path.append(os.path.abspath(os.path.dirname(__file__)))

from proxy_viewer.main import main

if __name__ == "__main__":
    sys.exit(main())
