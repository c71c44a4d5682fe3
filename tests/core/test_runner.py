from __future__ import annotations

import asyncio
import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from core.page_registry import PageStateRegistry
from core.runner import PreviewRunner


class FakeScreen:
    is_attached = True


class FakeLogger:
    def __init__(self):
        self.events = []
        self.errors = []

    def runner_event(self, kind, details):
        self.events.append((kind, details))

    def error(self, where, exc):
        self.errors.append((where, exc))


def _ready_registry(key, screen):
    reg = PageStateRegistry()
    reg.register_container(key, screen)
    assert not reg.is_pending(key)
    return reg


def test_run_resets_before_and_after_success():
    screen = FakeScreen()
    reg = _ready_registry('cart', screen)
    runner = PreviewRunner(reg)
    seen = {}

    async def setup():
        seen['pending_at_start'] = reg.is_pending('cart')
        return 42

    result = asyncio.run(runner.run('cart', setup))

    assert result == 42
    assert seen['pending_at_start'] is True
    assert reg.is_pending('cart')
    assert reg.peek('cart').generation == 2


def test_run_reraises_the_same_error_and_resets():
    screen = FakeScreen()
    reg = _ready_registry('cart', screen)
    logger = FakeLogger()
    runner = PreviewRunner(reg, logger=logger)
    err = ValueError('boom')

    async def setup():
        reg.register_container('cart', screen)
        raise err

    with pytest.raises(ValueError) as excinfo:
        asyncio.run(runner.run('cart', setup))

    assert excinfo.value is err
    assert reg.is_pending('cart')
    kinds = [kind for kind, _ in logger.events]
    assert kinds == ['run_start', 'run_failed']
    assert logger.errors == [('core.runner', err)]


def test_setup_sees_its_own_render():
    first, second = FakeScreen(), FakeScreen()
    reg = _ready_registry('cart', first)
    runner = PreviewRunner(reg)

    async def setup():
        reg.register_container('cart', second)
        return await reg.get_context('cart')

    assert asyncio.run(runner.run('cart', setup)) is second
    assert reg.is_pending('cart')


def test_run_logs_duration():
    logger = FakeLogger()
    runner = PreviewRunner(PageStateRegistry(), logger=logger)

    async def setup():
        return None

    asyncio.run(runner.run('cart', setup))
    kind, details = logger.events[-1]
    assert kind == 'run_done'
    assert details['page'] == 'cart'
    assert details['duration_ms'] >= 0
