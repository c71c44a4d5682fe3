from __future__ import annotations

import importlib
import importlib.util
import inspect
import os
import sys
from types import ModuleType
from typing import Any, Dict, Type, Union

from core.preview_config import PreviewConfig


def load_module(target: Union[str, ModuleType]) -> ModuleType:
    """Import a module by dotted name or file path."""
    if isinstance(target, ModuleType):
        return target
    if target.endswith('.py'):
        module_name = os.path.splitext(os.path.basename(target))[0]
        spec = importlib.util.spec_from_file_location(module_name, target)
        if spec is None or spec.loader is None:
            raise ImportError(f'Could not load module from {target}')
        module = importlib.util.module_from_spec(spec)
        sys.modules[module_name] = module
        spec.loader.exec_module(module)
        return module
    return importlib.import_module(target)


def load_object(target: str) -> Any:
    """Resolve 'package.module:attribute' (dotted attributes allowed)."""
    module_name, sep, attr_path = target.partition(':')
    if not sep or not attr_path:
        raise ValueError(f"Expected 'module:attribute', got '{target}'")
    obj: Any = load_module(module_name)
    for part in attr_path.split('.'):
        obj = getattr(obj, part)
    return obj


def discover_configs(module: Union[str, ModuleType]) -> Dict[str, Type[PreviewConfig]]:
    """Concrete PreviewConfig subclasses defined in a module, by class name."""
    mod = load_module(module)
    found: Dict[str, Type[PreviewConfig]] = {}
    for name, attr in vars(mod).items():
        if (isinstance(attr, type)
                and issubclass(attr, PreviewConfig)
                and attr is not PreviewConfig
                and not inspect.isabstract(attr)
                and attr.__module__ == mod.__name__):
            found[name] = attr
    return found


def find_config(module: Union[str, ModuleType], name: str) -> Type[PreviewConfig]:
    configs = discover_configs(module)
    if name in configs:
        return configs[name]
    # Allow the short form: 'Cart' for 'CartPreviewConfig'
    for cls_name, cls in configs.items():
        if cls_name.lower() in (name.lower(), f'{name.lower()}previewconfig'):
            return cls
    raise KeyError(f"No preview config '{name}'. Available: {', '.join(sorted(configs))}")
