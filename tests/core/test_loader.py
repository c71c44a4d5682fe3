from __future__ import annotations

import os
import sys
import textwrap

import pytest

ROOT = os.path.abspath(os.path.join(os.path.dirname(__file__), os.pardir, os.pardir))
if ROOT not in sys.path:
    sys.path.insert(0, ROOT)

from core.loader import discover_configs, find_config, load_module, load_object


PREVIEWS = textwrap.dedent('''
    from dataclasses import dataclass

    from core.preview_config import PreviewConfig, PreviewConfigParams


    class InboxPage:
        pass


    @dataclass(frozen=True)
    class InboxParams(PreviewConfigParams):
        unread: int = 0


    class InboxPreviewConfig(PreviewConfig[InboxPage, InboxParams]):
        async def execute(self, params):
            pass

        @property
        def busy_params(self):
            return InboxParams(unread=99)


    class AbstractPreviewConfig(PreviewConfig[InboxPage, InboxParams]):
        pass
''')


@pytest.fixture
def previews_path(tmp_path):
    path = tmp_path / 'inbox_previews.py'
    path.write_text(PREVIEWS, encoding='utf-8')
    yield str(path)
    sys.modules.pop('inbox_previews', None)


def test_load_module_from_path(previews_path):
    mod = load_module(previews_path)
    assert mod.__name__ == 'inbox_previews'
    assert load_module(mod) is mod


def test_discover_skips_abstract_and_imported_configs(previews_path):
    configs = discover_configs(previews_path)
    # PreviewConfig itself is imported into the module but not listed
    assert list(configs) == ['InboxPreviewConfig']
    assert configs['InboxPreviewConfig'].param_names() == ['busy']


def test_find_config_accepts_short_names(previews_path):
    mod = load_module(previews_path)
    assert find_config(mod, 'InboxPreviewConfig').__name__ == 'InboxPreviewConfig'
    assert find_config(mod, 'inbox').__name__ == 'InboxPreviewConfig'
    with pytest.raises(KeyError) as excinfo:
        find_config(mod, 'Outbox')
    assert 'InboxPreviewConfig' in excinfo.value.args[0]


def test_load_object():
    assert load_object('os.path:join') is os.path.join
    with pytest.raises(ValueError):
        load_object('os.path')
    with pytest.raises(AttributeError):
        load_object('os.path:does_not_exist')
