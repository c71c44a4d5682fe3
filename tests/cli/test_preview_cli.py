from __future__ import annotations

import os
import sys

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

pytest.importorskip("textual")

from click.testing import CliRunner

from core.preview_manager import PreviewManager
from main import cli


@pytest.fixture(autouse=True)
def _fresh_manager():
    PreviewManager.teardown()
    yield
    PreviewManager.teardown()


def test_list_shows_configs_and_param_sets():
    runner = CliRunner()
    result = runner.invoke(cli, ['list', 'examples.demo_shop'], obj={}, env={'COLUMNS': '200'})
    assert result.exit_code == 0, result.output
    lines = result.output.splitlines()
    assert any('Preview configs in examples.demo_shop (2 found)' in line for line in lines)
    cart_row = next(line for line in lines if 'CartPreviewConfig' in line)
    assert 'CartScreen' in cart_row and 'CartParams' in cart_row and 'admin_with_items' in cart_row
    profile_row = next(line for line in lines if 'ProfilePreviewConfig' in line)
    assert 'ProfileScreen' in profile_row and 'ProfileParams' in profile_row
    for param_name in ('guest_empty', 'discounted', 'guest', 'signed_out'):
        assert param_name in result.output


def test_list_module_without_configs():
    runner = CliRunner()
    result = runner.invoke(cli, ['list', 'core.credentials'], obj={})
    assert result.exit_code == 0
    assert 'No preview configs found in core.credentials' in result.output


def test_list_unknown_module():
    runner = CliRunner()
    result = runner.invoke(cli, ['list', 'no_such_module_here'], obj={})
    assert result.exit_code == 1
    assert 'Could not import no_such_module_here' in result.output


def test_users_masks_passwords():
    runner = CliRunner()
    result = runner.invoke(cli, ['users', 'examples.demo_shop'], obj={})
    assert result.exit_code == 0, result.output
    assert 'admin: PreviewTestUser(email: admin@example.com, password: ************)' in result.output
    assert 'admin-secret' not in result.output
    assert not PreviewManager.is_initialized()


def test_run_unknown_param_set():
    runner = CliRunner()
    result = runner.invoke(
        cli, ['run', 'examples.demo_shop', '--config', 'Cart', '--params', 'nope', '--headless'], obj={},
    )
    assert result.exit_code == 1
    assert "has no param set 'nope'" in result.output
    assert 'admin_with_items' in result.output


def test_run_headless_with_screenshot(tmp_path):
    shot = tmp_path / 'profile.svg'
    runner = CliRunner()
    result = runner.invoke(
        cli,
        [
            'run', 'examples.demo_shop',
            '--config', 'Profile', '--params', 'admin',
            '--headless', '--size', '80x24', '--timeout', '10',
            '--screenshot', str(shot),
        ],
        obj={},
    )
    assert result.exit_code == 0, result.output
    assert 'ProfilePreviewConfig/admin: ProfileScreen ready in' in result.output
    assert f'Screenshot: {shot}' in result.output
    assert shot.exists()
    assert not PreviewManager.is_initialized()


def test_run_headless_bad_size():
    runner = CliRunner()
    result = runner.invoke(
        cli, ['run', 'examples.demo_shop', '--config', 'Cart', '--params', 'guest_empty', '--headless', '--size', 'big'],
        obj={},
    )
    assert result.exit_code == 2
    assert "Invalid size 'big'" in result.output
