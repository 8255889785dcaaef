"""Interactive consent collaborators.

An authorizer opens the provider's consent screen and hands back the
URL the browser was redirected to afterwards.
"""

from __future__ import annotations

import asyncio
import logging
import webbrowser
from abc import ABC, abstractmethod
from collections.abc import Callable

from slot_scheduler.google.exceptions import AuthorizationError

logger = logging.getLogger(__name__)


class InteractiveAuthorizer(ABC):
    """Runs the user-facing part of an authorization-code grant."""

    @abstractmethod
    async def launch_interactive(self, authorization_url: str) -> str:
        """Show the consent screen and return the final redirect URL.

        Raises:
            AuthorizationError: If the user cancels or no redirect is produced.
        """


class ConsoleAuthorizer(InteractiveAuthorizer):
    """Open the consent page in a browser and read the redirect URL from the terminal.

    With a loopback redirect URI (``http://localhost``) the browser ends on
    an unreachable page whose address bar holds the code; the user pastes
    that address back. An empty answer cancels the flow.
    """

    def __init__(
        self,
        open_browser: bool = True,
        prompt: Callable[[str], str] = input,
        output: Callable[[str], None] = print,
    ):
        self.open_browser = open_browser
        self._prompt = prompt
        self._output = output

    def _run(self, authorization_url: str) -> str:
        self._output(f"Authorization URL:\n{authorization_url}\n")
        if self.open_browser and not webbrowser.open(authorization_url):
            logger.warning("Could not open a browser; visit the URL above manually")

        try:
            redirect_url = self._prompt("Paste redirect URL: ").strip()
        except (EOFError, KeyboardInterrupt) as e:
            raise AuthorizationError("Authorization cancelled by user") from e

        if not redirect_url:
            raise AuthorizationError("No redirect URL received from Google")
        return redirect_url

    async def launch_interactive(self, authorization_url: str) -> str:
        return await asyncio.to_thread(self._run, authorization_url)
