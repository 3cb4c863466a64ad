"""
Interactive command shell for the viewer.

The shell is a thin observer: it reads navigation state from the controller
to print a status line and never touches history itself.
"""

import asyncio
import cmd
import json
import logging
from typing import Optional

from proxy_viewer.core.navigation import NavigationController, NavigationState
from proxy_viewer.network.external import ExternalOpener
from proxy_viewer.ui.render_host import RenderHost

logger = logging.getLogger(__name__)


def format_status(controller: NavigationController) -> str:
    """
    Build the one-line status shown after every navigation change.

    Args:
        controller: Controller to read from

    Returns:
        str: e.g. "[loaded] https://example.com  back: on  forward: off"
    """
    if controller.state in (NavigationState.LOADING, NavigationState.FAILED):
        url = controller.pending_url
    else:
        url = controller.current_url
    back = "on" if controller.back_enabled else "off"
    forward = "on" if controller.forward_enabled else "off"
    return f"[{controller.state.value}] {url or '-'}  back: {back}  forward: {forward}"


class ViewerShell(cmd.Cmd):
    """Command loop driving a NavigationController."""

    intro = "Proxy Viewer. Type help or ? to list commands."
    prompt = "(viewer) "

    def __init__(self, controller: NavigationController, render_host: RenderHost,
                 opener: ExternalOpener, loop: Optional[asyncio.AbstractEventLoop] = None,
                 stdin=None, stdout=None):
        super().__init__(stdin=stdin, stdout=stdout)
        self.controller = controller
        self.render_host = render_host
        self.opener = opener
        self.loop = loop or asyncio.new_event_loop()
        self.controller.add_listener(self._on_navigation_change)

    def _on_navigation_change(self, controller: NavigationController) -> None:
        self.stdout.write(format_status(controller) + "\n")

    def _run(self, coroutine) -> bool:
        return self.loop.run_until_complete(coroutine)

    def emptyline(self) -> bool:
        return False

    def do_go(self, arg: str) -> None:
        """go URL -- navigate to URL (https:// is assumed)"""
        url = arg.strip()
        if not url:
            self.stdout.write("Usage: go URL\n")
            return
        self._run(self.controller.navigate(url))

    def do_back(self, arg: str) -> None:
        """back -- go back one page"""
        if not self._run(self.controller.go_back()) and not self.controller.back_enabled:
            self.stdout.write("Nothing to go back to\n")

    def do_forward(self, arg: str) -> None:
        """forward -- go forward one page"""
        if not self._run(self.controller.go_forward()) and not self.controller.forward_enabled:
            self.stdout.write("Nothing to go forward to\n")

    def do_reload(self, arg: str) -> None:
        """reload -- fetch the current page again"""
        if self.controller.current_url is None:
            self.stdout.write("Nothing to reload\n")
            return
        self._run(self.controller.reload())

    def do_history(self, arg: str) -> None:
        """history -- list this session's pages, > marks the current one"""
        for index, url in enumerate(self.controller.history):
            marker = ">" if index == self.controller.current_index else " "
            self.stdout.write(f"{marker} {index}: {url}\n")

    def do_source(self, arg: str) -> None:
        """source -- print the rewritten document on display"""
        document = self.render_host.current_document()
        self.stdout.write((document if document is not None else "(nothing displayed)") + "\n")

    def do_open(self, arg: str) -> None:
        """open [URL] -- open URL, or the current page, in the external browser"""
        url = arg.strip() or self.controller.current_url
        if not url:
            self.stdout.write("Usage: open URL\n")
            return
        self.opener.open_externally(url)

    def do_message(self, arg: str) -> None:
        """message JSON -- deliver a message as if posted from the sandbox"""
        try:
            message = json.loads(arg)
        except ValueError as e:
            self.stdout.write(f"Invalid JSON: {e}\n")
            return
        self._run(self.controller.handle_message(message))

    def do_quit(self, arg: str) -> bool:
        """quit -- leave the viewer"""
        return True

    do_EOF = do_quit

    def postloop(self) -> None:
        self.render_host.close()
        self.loop.close()
