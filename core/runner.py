from __future__ import annotations

import time
from typing import Any, Awaitable, Callable, Hashable, TypeVar

from core.page_registry import PageStateRegistry

R = TypeVar('R')


class PreviewRunner:
    """Bracket one preview execution with registry resets.

    The entry for the target page is reset before the setup coroutine runs and
    again afterwards, whether setup returned or raised, so the next run never
    sees readiness left over from this one. Errors are re-raised unchanged.
    """

    def __init__(self, registry: PageStateRegistry, logger=None) -> None:
        self.registry = registry
        self._logger = logger

    async def run(self, key: Hashable, setup: Callable[[], Awaitable[R]]) -> R:
        page = getattr(key, '__name__', None) or str(key)
        self.registry.reset_entry(key)
        self._event('run_start', {'page': page})
        started = time.monotonic()
        try:
            result = await setup()
        except BaseException as exc:
            self._failed(page, exc)
            raise
        finally:
            self.registry.reset_entry(key)
        self._event('run_done', {'page': page, 'duration_ms': int((time.monotonic() - started) * 1000)})
        return result

    def _event(self, kind: str, data: dict) -> None:
        if self._logger is None:
            return
        try:
            self._logger.runner_event(kind, data)
        except Exception:
            pass

    def _failed(self, page: str, exc: BaseException) -> None:
        if self._logger is None:
            return
        try:
            self._logger.runner_event('run_failed', {'page': page, 'error': type(exc).__name__, 'message': str(exc)})
            self._logger.error('core.runner', exc)
        except Exception:
            pass


__all__ = ['PreviewRunner']
