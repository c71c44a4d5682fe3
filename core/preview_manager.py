"""
Process-wide preview manager.

The manager owns the page-state registry and the preview runner, holds the
navigation root of the app under preview, and exposes helpers that preview
configs call to put the app into a given state (logging in test users and
whatever app-specific helpers a subclass adds).

It should not store app state itself: subclasses manipulate the app's own
services. Exactly one manager is active at a time, the most recently
constructed one.
"""

from __future__ import annotations

import asyncio
from abc import ABC, abstractmethod
from typing import Any, Callable, ClassVar, Dict, Hashable, Iterable, Optional, Union

from base_classes import MissingCredentialKey, Navigator, NotInitialized, UnresolvedAwait
from core.credentials import PreviewTestUser
from core.page_registry import FrameScheduler, PageStateRegistry
from core.runner import PreviewRunner


NavigationProvider = Union[Navigator, Callable[[], Optional[Navigator]]]


class PreviewManager(ABC):
    """
    Base class for app-specific preview helpers.

    Subclass it once per app, add helper methods that call into the app's
    services, and implement login_test_user/logout_test_user.
    """

    _instance: ClassVar[Optional['PreviewManager']] = None

    def __init__(self, config=None, *, registry: Optional[PageStateRegistry] = None, logger=None) -> None:
        self.config = config
        self.logger = logger
        if registry is None:
            prune = True
            if config is not None:
                prune = bool(config.get_option('PREVIEW', 'prune_on_reset', True))
            registry = PageStateRegistry(prune_on_reset=prune, logger=logger)
        self.registry = registry
        self.runner = PreviewRunner(self.registry, logger=logger)
        self._navigation: Optional[NavigationProvider] = None
        PreviewManager._instance = self

    # --- lifecycle -------------------------------------------------------
    @classmethod
    def instance(cls) -> 'PreviewManager':
        if PreviewManager._instance is None:
            raise NotInitialized('Preview manager not initialized')
        return PreviewManager._instance

    @classmethod
    def is_initialized(cls) -> bool:
        return PreviewManager._instance is not None

    def initialize(self, navigation: Optional[NavigationProvider] = None) -> 'PreviewManager':
        """Make this the active manager, optionally setting the navigation root."""
        PreviewManager._instance = self
        if navigation is not None:
            self._navigation = navigation
        return self

    @classmethod
    def teardown(cls) -> None:
        inst = PreviewManager._instance
        if inst is not None:
            inst.registry.clear()
            inst._navigation = None
        PreviewManager._instance = None

    # --- navigation ------------------------------------------------------
    @classmethod
    def set_navigation_root(cls, provider: NavigationProvider) -> None:
        """Set the navigator (or a callable returning it). Ignored before a manager exists."""
        inst = PreviewManager._instance
        if inst is None:
            return
        inst._navigation = provider
        inst._log_navigation('navigation_root_set', {'provider': type(provider).__name__})

    @classmethod
    def navigator(cls) -> Navigator:
        inst = cls.instance()
        provider = inst._navigation
        handle = provider() if callable(provider) and not isinstance(provider, Navigator) else provider
        if handle is None:
            raise NotInitialized('Navigation root not set')
        return handle

    # --- page state ------------------------------------------------------
    @classmethod
    def register_container(cls, key: Hashable, container: Any, schedule: Optional[FrameScheduler] = None) -> None:
        inst = PreviewManager._instance
        if inst is not None:
            inst.registry.register_container(key, container, schedule)

    @classmethod
    def register_instance(cls, key: Hashable, instance: Any, schedule: Optional[FrameScheduler] = None) -> None:
        inst = PreviewManager._instance
        if inst is not None:
            inst.registry.register_instance(key, instance, schedule)

    @classmethod
    def reset_page_state(cls, key: Hashable) -> None:
        inst = PreviewManager._instance
        if inst is not None:
            inst.registry.reset_entry(key)

    async def get_page_context(self, key: Hashable, timeout: Optional[float] = None) -> Any:
        """Container of the page once it has rendered (waits forever without a timeout)."""
        return await self._await_page(self.registry.get_context(key), key, timeout, 'page context')

    async def get_page_state(self, key: Hashable, timeout: Optional[float] = None) -> Any:
        """Live instance of the page once it has rendered."""
        return await self._await_page(self.registry.get_state(key), key, timeout, 'page state')

    async def _await_page(self, awaitable, key: Hashable, timeout: Optional[float], what: str) -> Any:
        if timeout is None:
            return await awaitable
        try:
            return await asyncio.wait_for(awaitable, timeout)
        except asyncio.TimeoutError as exc:
            raise UnresolvedAwait(key, timeout, what) from exc

    # --- test users ------------------------------------------------------
    @property
    def test_users(self) -> Dict[str, PreviewTestUser]:
        """
        Test users available for preview authentication.

        Defaults to the [USER.<key>] sections of the config; override to
        declare users in code:

            @property
            def test_users(self):
                return {'admin': PreviewTestUser('admin@example.com', password_env='TEST_ADMIN_PASSWORD')}
        """
        return load_test_users(self.config)

    def get_test_user(self, key: str) -> PreviewTestUser:
        users = self.test_users
        user = users.get(key)
        if user is None:
            raise MissingCredentialKey(key, users.keys())
        return user

    @property
    def test_user_keys(self) -> Iterable[str]:
        return self.test_users.keys()

    @abstractmethod
    async def login_test_user(self, key: str) -> None:
        """Log in the test user associated with key, e.g.:

            user = self.get_test_user(key)
            await auth_service.sign_in(user.email, user.resolved_password)
        """
        pass

    @abstractmethod
    async def logout_test_user(self) -> None:
        pass

    # --- logging ---------------------------------------------------------
    def log_auth(self, kind: str, details: dict) -> None:
        if self.logger is None:
            return
        try:
            self.logger.auth_event(kind, details)
        except Exception:
            pass

    def _log_navigation(self, kind: str, details: dict) -> None:
        if self.logger is None:
            return
        try:
            self.logger.navigation_event(kind, details, component='core.preview_manager')
        except Exception:
            pass


def load_test_users(config) -> Dict[str, PreviewTestUser]:
    """Build test users from [USER.<key>] config sections."""
    if config is None:
        return {}
    users: Dict[str, PreviewTestUser] = {}
    for section in config.sections('USER.'):
        key = section[len('USER.'):].strip()
        opts = config.get_section(section)
        if not key or not opts.get('email'):
            continue
        password = opts.get('password')
        users[key] = PreviewTestUser(
            email=str(opts['email']),
            password=str(password) if password not in (None, '') else None,
            password_env=opts.get('password_env') or None,
        )
    return users


__all__ = ['PreviewManager', 'load_test_users']
