"""
Proxy Viewer command line entry point.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

from proxy_viewer.core.navigation import NavigationController
from proxy_viewer.network.external import ExternalOpener
from proxy_viewer.network.proxy_client import ProxyClient
from proxy_viewer.ui.render_host import HandleRegistry, RenderHost
from proxy_viewer.ui.shell import ViewerShell
from proxy_viewer.utils.config import Config
from proxy_viewer.utils.logging import get_default_log_file, setup_logging

logger = logging.getLogger(__name__)


def parse_arguments(argv: Optional[List[str]] = None) -> argparse.Namespace:
    """Parse command line arguments."""
    parser = argparse.ArgumentParser(description="Proxy Viewer - view web pages through a fetch proxy in a sandbox")
    parser.add_argument('url', nargs='?', default=None, help='URL to open')
    parser.add_argument('--dump', action='store_true', help='Print the rewritten document for URL and exit')
    parser.add_argument('--debug', action='store_true', help='Enable debug logging')
    parser.add_argument('--config', type=str, default=None, help='Path to a JSON configuration file')
    parser.add_argument('--timeout', type=float, default=None, help='Fetch timeout in seconds')
    parser.add_argument('--no-log-file', action='store_true', help='Log to the console only')
    return parser.parse_args(argv)


def _report_hand_off(url: str) -> bool:
    print(f"Could not display {url}; open it in a browser instead.", file=sys.stderr)
    return False


def main(argv: Optional[List[str]] = None) -> int:
    """Main entry point for the application."""
    args = parse_arguments(argv)

    config = Config(args.config)
    if args.timeout is not None:
        config.set("network.timeout", args.timeout)

    log_file = None
    if config.get("logging.log_to_file", True) and not args.no_log_file:
        log_file = get_default_log_file()
    setup_logging(
        log_file=log_file,
        console_level="DEBUG" if args.debug else config.get("logging.console_level", "INFO"),
        file_level=config.get("logging.file_level", "DEBUG"),
    )
    logger.info("Starting Proxy Viewer")

    client = ProxyClient(config)
    opener = ExternalOpener()
    render_host = RenderHost(
        registry=HandleRegistry(max_bytes=config.get("render.max_handle_bytes")),
        release_delay=config.get("render.release_delay", 5.0),
    )

    try:
        if args.dump:
            if not args.url:
                print("--dump needs a URL", file=sys.stderr)
                return 2
            # Dump mode reports failures instead of launching a browser
            controller = NavigationController(client.fetch_document, render_host, _report_hand_off)
            if not asyncio.run(controller.navigate(args.url)):
                return 1
            print(render_host.current_document())
            return 0

        controller = NavigationController(client.fetch_document, render_host, opener.open_externally)
        shell = ViewerShell(controller, render_host, opener)
        if args.url:
            shell.onecmd(f"go {args.url}")
        elif config.get("viewer.home_page"):
            shell.onecmd(f"go {config.get('viewer.home_page')}")
        shell.cmdloop()
        return 0
    finally:
        render_host.close()
        client.close()
        logger.info("Shutdown complete")


if __name__ == "__main__":
    sys.exit(main())
