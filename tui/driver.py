"""Run a preview config against a Textual app, headless or interactively."""

from __future__ import annotations

import asyncio
import os
import time
from typing import Optional, Tuple

from base_classes import UnresolvedAwait
from core.preview_config import PreviewConfig, PreviewConfigParams
from core.preview_manager import PreviewManager
from tui.models import PreviewResult
from tui.navigation import AppNavigator


class PreviewDriver:
    """
    Binds a PreviewManager to a Textual App and executes preview configs on it.

    The app becomes the navigation root for the duration of the run. A timeout
    bounds the whole execution; the runner still resets the page entry when
    the timeout cancels it.
    """

    def __init__(self, manager: PreviewManager, app, *, timeout: Optional[float] = None, logger=None) -> None:
        self.manager = manager
        self.app = app
        self.timeout = timeout
        self._logger = logger if logger is not None else manager.logger
        self.error: Optional[BaseException] = None

    async def execute(self, config: PreviewConfig, params: PreviewConfigParams) -> None:
        self.manager.initialize(navigation=AppNavigator(self.app, logger=self._logger))
        if self.timeout is None:
            await config.internal_execute(params)
            return
        try:
            await asyncio.wait_for(config.internal_execute(params), self.timeout)
        except UnresolvedAwait:
            raise
        except asyncio.TimeoutError as exc:
            raise UnresolvedAwait(config.page_key(), self.timeout, 'preview of') from exc

    async def run_headless(
        self,
        config: PreviewConfig,
        params: PreviewConfigParams,
        *,
        params_name: str = '',
        size: Tuple[int, int] = (100, 30),
        screenshot: Optional[str] = None,
    ) -> PreviewResult:
        started = time.monotonic()
        async with self.app.run_test(headless=True, size=size) as pilot:
            await pilot.pause()
            await self.execute(config, params)
            await pilot.pause()
            screen_name = type(self.app.screen).__name__
            shot = self._save_screenshot(screenshot) if screenshot else None
        page = config.page_key()
        return PreviewResult(
            config=type(config).__name__,
            params=params_name or type(params).__name__,
            page=getattr(page, '__name__', None) or str(page),
            screen=screen_name,
            duration_ms=int((time.monotonic() - started) * 1000),
            screenshot=shot,
        )

    def run_interactive(self, config: PreviewConfig, params: PreviewConfigParams):
        """Run the app normally and apply the preview once it has started."""

        async def _auto_pilot(pilot) -> None:
            await pilot.pause()
            try:
                await self.execute(config, params)
            except Exception as exc:
                self.error = exc
                self.app.exit(return_code=1)

        result = self.app.run(auto_pilot=_auto_pilot)
        if self.error is not None:
            raise self.error
        return result

    def _save_screenshot(self, target: str) -> str:
        target = os.path.expanduser(target)
        directory, filename = os.path.split(target)
        if directory:
            os.makedirs(directory, exist_ok=True)
        return self.app.save_screenshot(filename=filename or None, path=directory or None)
