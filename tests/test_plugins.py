"""
Tests for provider plugins: the plugin directory and scaffolding.
"""

import shutil
import tempfile
from pathlib import Path
from unittest.mock import AsyncMock

import pytest

from shh.plugins import load_plugin_directory, scaffold_provider
from shh.providers import ProviderError, ProviderRegistry
from shh.providers.built_in import default_registry

EXAMPLE_PLUGIN = Path(__file__).resolve().parent.parent / "examples" / "custom_provider.py"

CLASS_ONLY_PLUGIN = '''
from shh.providers import Provider, ProviderInfo


class ShoutProvider(Provider):
    info = ProviderInfo(name="shout", description="Upper-cases", usage="shout:<text>")

    async def resolve(self, arguments, target=None):
        return f"{target}={arguments[0].upper()}"
'''


class TestLoadPluginDirectory:
    """Tests for load_plugin_directory."""

    @pytest.fixture
    def plugin_dir(self):
        """Create a temporary plugin directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir)

    def test_missing_directory(self, plugin_dir):
        """Test that a missing directory is not an error."""
        registry = ProviderRegistry()

        assert load_plugin_directory(registry, plugin_dir / "absent") == []

    def test_register_function(self, plugin_dir):
        """Test loading a plugin that defines register()."""
        shutil.copy(EXAMPLE_PLUGIN, plugin_dir / "pass.py")
        registry = default_registry()

        warnings = registry.load_directory(plugin_dir)

        assert warnings == []
        assert registry.is_registered("pass")

    @pytest.mark.asyncio
    async def test_example_plugin_resolves(self, plugin_dir):
        """Test the example plugin with its subprocess mocked."""
        shutil.copy(EXAMPLE_PLUGIN, plugin_dir / "pass.py")
        registry = ProviderRegistry()
        load_plugin_directory(registry, plugin_dir)
        provider = registry.get("pass")
        provider._run_pass = AsyncMock(return_value=(0, "pw\nuser: me\n", ""))

        assert await provider.resolve(["email/work"]) == "email_work=pw"
        assert await provider.resolve(["email/work", "2"]) == "email_work=user: me"

        with pytest.raises(ProviderError):
            await provider.resolve(["email/work", "9"])

    def test_class_only_plugin(self, plugin_dir):
        """Test that Provider subclasses are registered without register()."""
        (plugin_dir / "shout.py").write_text(CLASS_ONLY_PLUGIN)
        registry = ProviderRegistry()

        assert load_plugin_directory(registry, plugin_dir) == []
        assert registry.is_registered("shout")

    def test_broken_plugin_is_skipped(self, plugin_dir):
        """Test that a plugin with a syntax error yields a warning."""
        (plugin_dir / "broken.py").write_text("def oops(:\n")
        (plugin_dir / "shout.py").write_text(CLASS_ONLY_PLUGIN)
        registry = ProviderRegistry()

        warnings = load_plugin_directory(registry, plugin_dir)

        assert len(warnings) == 1
        assert "broken.py" in warnings[0]
        assert registry.is_registered("shout")

    def test_name_clash_is_skipped(self, plugin_dir):
        """Test that a plugin cannot replace a built-in provider."""
        (plugin_dir / "env.py").write_text(
            CLASS_ONLY_PLUGIN.replace('name="shout"', 'name="env"')
        )
        registry = default_registry()

        warnings = load_plugin_directory(registry, plugin_dir)

        assert len(warnings) == 1
        assert registry.get("env").__class__.__name__ == "EnvironmentProvider"

    def test_private_files_ignored(self, plugin_dir):
        """Test that files starting with '_' are not loaded."""
        (plugin_dir / "_helpers.py").write_text("raise RuntimeError('loaded')\n")

        assert load_plugin_directory(ProviderRegistry(), plugin_dir) == []


class TestScaffoldProvider:
    """Tests for scaffold_provider."""

    @pytest.fixture
    def plugin_dir(self):
        """Create a temporary plugin directory."""
        with tempfile.TemporaryDirectory() as tmpdir:
            yield Path(tmpdir) / "providers"

    @pytest.mark.asyncio
    async def test_scaffold_loads_and_fails(self, plugin_dir):
        """Test that the template registers and reports it is unimplemented."""
        path = scaffold_provider(plugin_dir, "my-store")
        registry = ProviderRegistry()

        assert path.name == "my-store.py"
        assert load_plugin_directory(registry, plugin_dir) == []

        with pytest.raises(ProviderError) as exc_info:
            await registry.get("my-store").resolve(["x"])

        assert "not implemented yet" in str(exc_info.value)

    def test_scaffold_existing(self, plugin_dir):
        """Test that an existing plugin is not overwritten."""
        scaffold_provider(plugin_dir, "store")

        with pytest.raises(FileExistsError):
            scaffold_provider(plugin_dir, "store")

    def test_scaffold_invalid_name(self, plugin_dir):
        """Test that an invalid name is rejected."""
        with pytest.raises(ValueError):
            scaffold_provider(plugin_dir, "../evil")
