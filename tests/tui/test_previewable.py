from __future__ import annotations

import asyncio
import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

pytest.importorskip("textual")

from textual.app import App, ComposeResult
from textual.widgets import Static

from core.preview_manager import PreviewManager
from tui.navigation import AppNavigator
from tui.previewable import PreviewableMixin


class Badge(PreviewableMixin, Static):
    pass


class KeyedBadge(PreviewableMixin, Static):
    PREVIEW_KEY = 'badge'
    PREVIEW_REGISTER_STATE = False


class BadgeApp(App):
    def compose(self) -> ComposeResult:
        yield Badge("hi", id="badge")
        yield KeyedBadge("keyed", id="keyed")


class StubManager(PreviewManager):
    async def login_test_user(self, key):
        pass

    async def logout_test_user(self):
        pass


@pytest.fixture(autouse=True)
def _fresh_manager():
    PreviewManager.teardown()
    yield
    PreviewManager.teardown()


def test_widget_announces_instance_and_screen():
    async def scenario():
        manager = StubManager()
        app = BadgeApp()
        async with app.run_test() as pilot:
            state = await manager.get_page_state(Badge, timeout=5)
            context = await manager.get_page_context(Badge, timeout=5)
            assert state is app.query_one("#badge")
            assert context is app.screen

            keyed = await manager.get_page_context('badge', timeout=5)
            assert keyed is app.screen
            assert manager.registry.peek('badge').instance is None
            await pilot.pause()

    asyncio.run(scenario())


def test_mixin_is_inert_without_a_manager():
    async def scenario():
        app = BadgeApp()
        async with app.run_test() as pilot:
            await pilot.pause()
            assert app.query_one("#badge").preview_key() is Badge
        assert not PreviewManager.is_initialized()

    asyncio.run(scenario())


def test_app_navigator_tracks_the_screen_stack():
    from textual.screen import Screen

    class Second(PreviewableMixin, Screen):
        pass

    async def scenario():
        manager = StubManager()
        app = BadgeApp()
        async with app.run_test() as pilot:
            nav = AppNavigator(app)
            manager.initialize(navigation=nav)
            root = nav.current_container
            assert nav.depth == 1

            await PreviewManager.navigator().push(Second())
            screen = await manager.get_page_context(Second, timeout=5)
            assert screen is app.screen
            assert nav.depth == 2

            await nav.reset_to_root()
            await pilot.pause()
            assert nav.current_container is root
            assert nav.depth == 1

    asyncio.run(scenario())
