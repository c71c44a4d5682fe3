from __future__ import annotations

import asyncio
import os
import sys
from dataclasses import dataclass

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from base_classes import MissingCredentialKey, Navigator
from core.credentials import PreviewTestUser
from core.preview_config import PreviewConfig, PreviewConfigParams
from core.preview_manager import PreviewManager


class FakeScreen:
    is_attached = True


class CartPage:
    pass


class OtherPage:
    pass


class RecordingNavigator(Navigator):
    """Registers the page container when navigated to, like a rendered route."""

    def __init__(self):
        self.routes = []
        self.screen = FakeScreen()

    @property
    def current_container(self):
        return self.screen

    async def navigate(self, route):
        self.routes.append(route)
        PreviewManager.register_container(CartPage, self.screen)

    async def push(self, page):
        self.routes.append(page)


class CartManager(PreviewManager):
    def __init__(self):
        super().__init__()
        self.user = None
        self.items = 0

    @property
    def test_users(self):
        return {'admin': PreviewTestUser('admin@example.com', password='secret')}

    async def login_test_user(self, key):
        self.user = self.get_test_user(key).email

    async def logout_test_user(self):
        self.user = None

    def set_cart_item_count(self, count):
        self.items = count


@dataclass(frozen=True)
class CartParams(PreviewConfigParams):
    user_key: str = ''
    cart_items: int = 0


@dataclass(frozen=True)
class OtherParams(PreviewConfigParams):
    flag: bool = False


class CartPreviewConfig(PreviewConfig[CartPage, CartParams]):
    async def execute(self, params):
        manager = self.manager
        await manager.logout_test_user()
        if params.user_key:
            await manager.login_test_user(params.user_key)
        manager.set_cart_item_count(params.cart_items)
        await self.navigator.navigate('cart')
        self.context = await manager.get_page_context(CartPage, timeout=1)

    @property
    def admin_with_items_params(self):
        return CartParams(user_key='admin', cart_items=3)

    @property
    def empty_params(self):
        return CartParams()


class KeyedPreviewConfig(PreviewConfig[OtherPage, OtherParams]):
    page = 'other-route'

    async def execute(self, params):
        pass


@pytest.fixture(autouse=True)
def _fresh_manager():
    PreviewManager.teardown()
    yield
    PreviewManager.teardown()


def test_page_and_params_types_come_from_the_generic_pair():
    assert CartPreviewConfig.page_key() is CartPage
    assert CartPreviewConfig.params_type() is CartParams
    assert KeyedPreviewConfig.page_key() == 'other-route'
    assert KeyedPreviewConfig.params_type() is OtherParams


def test_undeclared_page_type_is_an_error():
    class Loose(PreviewConfig):
        async def execute(self, params):
            pass

    with pytest.raises(TypeError, match='does not declare its page type'):
        Loose.page_key()
    assert Loose.params_type() is PreviewConfigParams


def test_param_sets_are_discovered_by_suffix():
    config = CartPreviewConfig()
    assert CartPreviewConfig.param_names() == ['admin_with_items', 'empty']
    assert config.available_params()['admin_with_items'] == CartParams(user_key='admin', cart_items=3)
    assert config.params_for('empty') == CartParams()
    with pytest.raises(KeyError) as excinfo:
        config.params_for('missing')
    assert 'admin_with_items, empty' in excinfo.value.args[0]


def test_subclass_inherits_param_sets():
    class Extended(CartPreviewConfig):
        @property
        def busy_params(self):
            return CartParams(cart_items=50)

    assert Extended.param_names() == ['admin_with_items', 'empty', 'busy']
    assert Extended.page_key() is CartPage


def test_wrong_params_type_is_rejected():
    CartManager()
    with pytest.raises(TypeError, match='expects CartParams'):
        asyncio.run(CartPreviewConfig().internal_execute(OtherParams()))


def test_internal_execute_drives_state_and_resets_the_page():
    manager = CartManager()
    nav = RecordingNavigator()
    manager.initialize(navigation=nav)
    config = CartPreviewConfig()

    asyncio.run(config.internal_execute(config.admin_with_items_params))

    assert manager.user == 'admin@example.com'
    assert manager.items == 3
    assert nav.routes == ['cart']
    assert config.context is nav.screen
    assert manager.registry.is_pending(CartPage)


def test_failed_execute_propagates_and_still_resets():
    manager = CartManager()
    nav = RecordingNavigator()
    manager.initialize(navigation=nav)
    config = CartPreviewConfig()

    with pytest.raises(MissingCredentialKey):
        asyncio.run(config.internal_execute(CartParams(user_key='nobody')))

    assert nav.routes == []
    assert manager.registry.is_pending(CartPage)
