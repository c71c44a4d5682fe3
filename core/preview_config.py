"""
Preview configs and their parameter sets.

A PreviewConfig describes how to drive the app into a state and navigate to
one page. Each config is paired with exactly one PreviewConfigParams type;
the named param sets a config offers are exposed as properties ending in
``_params``:

    @dataclass(frozen=True)
    class CartParams(PreviewConfigParams):
        logged_in: bool
        user_key: str = ''
        cart_items: int = 0


    class CartPreviewConfig(PreviewConfig[CartScreen, CartParams]):
        async def execute(self, params: CartParams) -> None:
            manager = self.manager
            if params.logged_in:
                await manager.login_test_user(params.user_key)
            manager.set_cart_item_count(params.cart_items)
            await self.navigator.navigate('cart')

        @property
        def admin_with_items_params(self) -> CartParams:
            return CartParams(logged_in=True, user_key='admin', cart_items=3)

Guidelines: keep execute fast by calling helpers on the app's own services,
and keep any unavoidable network calls idempotent so one run never affects
the next.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from dataclasses import dataclass
from typing import Any, ClassVar, Dict, Generic, Hashable, Optional, Tuple, TypeVar, get_args, get_origin

from base_classes import Navigator
from core.preview_manager import PreviewManager


@dataclass(frozen=True)
class PreviewConfigParams:
    """Base class for the parameters of one preview state."""


PageT = TypeVar('PageT')
ParamsT = TypeVar('ParamsT', bound=PreviewConfigParams)


class PreviewConfig(ABC, Generic[PageT, ParamsT]):
    """Base class for the preview of one page type."""

    # Explicit registry key; defaults to the first generic argument
    page: ClassVar[Optional[Hashable]] = None
    PARAMS_SUFFIX: ClassVar[str] = '_params'

    # --- pairing ---------------------------------------------------------
    @classmethod
    def _generic_args(cls) -> Tuple[Any, ...]:
        for klass in cls.__mro__:
            for base in getattr(klass, '__orig_bases__', ()):
                if get_origin(base) is PreviewConfig:
                    return get_args(base)
        return ()

    @classmethod
    def page_key(cls) -> Hashable:
        if cls.page is not None:
            return cls.page
        args = cls._generic_args()
        if args and not isinstance(args[0], TypeVar):
            return args[0]
        raise TypeError(f'{cls.__name__} does not declare its page type')

    @classmethod
    def params_type(cls) -> type:
        args = cls._generic_args()
        if len(args) > 1 and isinstance(args[1], type):
            return args[1]
        return PreviewConfigParams

    # --- collaborators ---------------------------------------------------
    @property
    def manager(self) -> PreviewManager:
        return PreviewManager.instance()

    @property
    def navigator(self) -> Navigator:
        return PreviewManager.navigator()

    # --- execution -------------------------------------------------------
    @abstractmethod
    async def execute(self, params: ParamsT) -> None:
        """Set up app state through the manager, then navigate to the page."""
        pass

    async def internal_execute(self, params: ParamsT) -> None:
        expected = self.params_type()
        if not isinstance(params, expected):
            raise TypeError(
                f'{type(self).__name__} expects {expected.__name__}, got {type(params).__name__}'
            )
        await self.manager.runner.run(self.page_key(), lambda: self.execute(params))

    # --- param sets ------------------------------------------------------
    @classmethod
    def param_names(cls) -> list:
        names = []
        for klass in reversed(cls.__mro__):
            for attr, value in vars(klass).items():
                if isinstance(value, property) and attr.endswith(cls.PARAMS_SUFFIX) and attr != cls.PARAMS_SUFFIX:
                    name = attr[: -len(cls.PARAMS_SUFFIX)]
                    if name not in names:
                        names.append(name)
        return names

    def available_params(self) -> Dict[str, ParamsT]:
        return {name: getattr(self, name + self.PARAMS_SUFFIX) for name in self.param_names()}

    def params_for(self, name: str) -> ParamsT:
        names = self.param_names()
        if name not in names:
            raise KeyError(
                f"{type(self).__name__} has no param set '{name}'. Available: {', '.join(names)}"
            )
        return getattr(self, name + self.PARAMS_SUFFIX)


__all__ = ['PreviewConfig', 'PreviewConfigParams']
