"""
Abstract base classes and error types for preview-config components.

These classes define the interfaces that navigators and preview managers
rely on, plus the exceptions surfaced to preview-authoring code.
"""

from __future__ import annotations
from abc import ABC, abstractmethod
from typing import Any, Hashable, Iterable, Optional


class Navigator(ABC):
    """
    Abstract navigation root of the host UI framework
    """

    @property
    @abstractmethod
    def current_container(self) -> Any:
        """Return the current top-level container (e.g. the active screen)."""
        pass

    @abstractmethod
    async def navigate(self, route: str) -> None:
        """Navigate to a named route."""
        pass

    @abstractmethod
    async def push(self, page: Any) -> None:
        """Push a new page on top of the current one."""
        pass


# --- Errors ------------------------------------------------------------------

class PreviewError(Exception):
    """Base class for errors raised by the preview harness."""


class NotInitialized(PreviewError, RuntimeError):
    """Raised when the preview manager or navigation root is used before setup."""


class MissingCredentialKey(PreviewError, LookupError):
    def __init__(self, key: str, available: Iterable[str]):
        self.key = key
        self.available = list(available)
        super().__init__(
            f'No test user found for key "{key}". '
            f"Available keys: {', '.join(self.available)}"
        )


class UnresolvedAwait(PreviewError, TimeoutError):
    def __init__(self, key: Hashable, timeout: Optional[float], what: str = 'page'):
        self.key = key
        self.timeout = timeout
        name = getattr(key, '__name__', None) or str(key)
        super().__init__(f"{what} '{name}' did not become ready within {timeout}s")
