"""
Provider plugin directory support for shh.

A plugin is a ``*.py`` file dropped into the providers directory
(``~/.config/shh/providers`` by default). Each file either defines a
``register(registry)`` function, or simply defines ``Provider`` subclasses
with an ``info`` attribute, which are registered under their ``info.name``.

``scaffold_provider`` writes a starting template for a new provider.
"""

from __future__ import annotations

import importlib.util
import re
import sys
from pathlib import Path

from .providers import Provider, ProviderRegistry

_PLUGIN_NAME = re.compile(r"^[A-Za-z][A-Za-z0-9_-]*$")

PLUGIN_TEMPLATE = '''"""
shh provider: {name}

Reference Format:
    {name}:<args...>=TARGET
"""

from shh.providers import Provider, ProviderInfo


class {class_name}(Provider):
    info = ProviderInfo(
        name="{name}",
        description="{name} provider",
        usage="{name}:<args...>",
    )

    async def resolve(self, arguments, target=None):
        # Your implementation here: return "key=value"
        raise self.error("Provider '{name}' not implemented yet", arguments)


def register(registry):
    registry.register({class_name})
'''


def load_plugin_directory(registry: ProviderRegistry, directory: Path) -> list[str]:
    """
    Import every plugin file in ``directory`` and register its providers.

    Files are loaded in name order. A plugin that fails to import, or that
    tries to claim a name already taken, is skipped with a warning.

    Returns:
        Warning messages, one per skipped plugin file
    """
    warnings: list[str] = []

    if not directory.is_dir():
        return warnings

    for path in sorted(directory.glob("*.py")):
        if path.name.startswith("_"):
            continue

        try:
            module = _import_file(path)
        except Exception as exc:
            warnings.append(f"Failed to load provider plugin {path.name}: {exc}")
            continue

        try:
            register = getattr(module, "register", None)
            if callable(register):
                register(registry)
                continue

            found = [
                obj
                for obj in vars(module).values()
                if isinstance(obj, type)
                and issubclass(obj, Provider)
                and obj is not Provider
                and obj.__module__ == module.__name__
            ]
            if not found:
                warnings.append(f"Provider plugin {path.name} defines no providers")
            for provider_class in found:
                registry.register(provider_class)
        except (KeyError, ValueError) as exc:
            warnings.append(f"Failed to register provider plugin {path.name}: {exc}")

    return warnings


def _import_file(path: Path):
    module_name = f"shh_plugin_{path.stem.replace('-', '_')}"
    spec = importlib.util.spec_from_file_location(module_name, path)
    if spec is None or spec.loader is None:
        raise ImportError(f"cannot import {path}")

    module = importlib.util.module_from_spec(spec)
    sys.modules[module_name] = module
    try:
        spec.loader.exec_module(module)
    except BaseException:
        sys.modules.pop(module_name, None)
        raise
    return module


def scaffold_provider(directory: Path, name: str) -> Path:
    """
    Write a template provider plugin named ``name`` into ``directory``.

    Raises:
        ValueError: If the name is not a valid provider name
        FileExistsError: If a plugin with that name already exists
    """
    if not _PLUGIN_NAME.match(name):
        raise ValueError(
            f"Invalid provider name '{name}': use letters, digits, '_' or '-', "
            "starting with a letter"
        )

    directory.mkdir(parents=True, exist_ok=True)
    path = directory / f"{name}.py"
    if path.exists():
        raise FileExistsError(f"Provider plugin already exists: {path}")

    class_name = "".join(part.capitalize() for part in re.split(r"[_-]", name)) + "Provider"
    path.write_text(PLUGIN_TEMPLATE.format(name=name, class_name=class_name))

    return path
