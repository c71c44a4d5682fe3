from __future__ import annotations

import inspect
from typing import Any

from base_classes import Navigator


async def _settle(result: Any) -> None:
    # push_screen/pop_screen return AwaitMount/AwaitComplete objects in recent Textual releases
    if inspect.isawaitable(result):
        await result


class AppNavigator(Navigator):
    """Navigation root backed by a running Textual App."""

    def __init__(self, app, logger=None) -> None:
        self._app = app
        self._logger = logger

    @property
    def app(self):
        return self._app

    @property
    def current_container(self) -> Any:
        return self._app.screen

    @property
    def depth(self) -> int:
        return len(self._app.screen_stack)

    async def navigate(self, route: str) -> None:
        """Push a screen registered by name (App.SCREENS or install_screen)."""
        self._log('navigate', {'route': route})
        await _settle(self._app.push_screen(route))

    async def push(self, page: Any) -> None:
        self._log('push', {'page': type(page).__name__})
        await _settle(self._app.push_screen(page))

    async def replace(self, page: Any) -> None:
        self._log('replace', {'page': page if isinstance(page, str) else type(page).__name__})
        await _settle(self._app.switch_screen(page))

    async def pop(self) -> None:
        self._log('pop', {'depth': self.depth})
        await _settle(self._app.pop_screen())

    async def reset_to_root(self) -> None:
        """Pop everything above the default screen."""
        while len(self._app.screen_stack) > 1:
            await self.pop()

    def _log(self, kind: str, details: dict) -> None:
        if self._logger is None:
            return
        try:
            self._logger.navigation_event(kind, details)
        except Exception:
            pass

