"""
Environment variable provider for shh.

This module provides a provider that passes through variables that are already
set in the calling process's environment.

Reference Format:
    env:<VARIABLE_NAME>=TARGET

Example:
    shh -s env:HOME=MY_HOME -- printenv MY_HOME
"""

from __future__ import annotations

import os
import re
from typing import Any, Mapping

from . import Provider, ProviderInfo

_NAME_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")


class EnvironmentProvider(Provider):
    """
    Environment variable provider.

    Resolves references to existing environment variables. A variable that
    is unset or set to the empty string is treated as missing.
    """

    info = ProviderInfo(
        name="env",
        description="Pass-through of an existing environment variable",
        version="1.0.0",
        author="shh contributors",
        usage="env:<var_name>",
    )

    def __init__(self, environ: Mapping[str, str] | None = None) -> None:
        super().__init__()
        self._environ = environ

    async def resolve(self, arguments: list[str], target: str | None = None) -> str:
        """
        Resolve an environment variable reference.

        Args:
            arguments: ``[var_name]``
            target: Unused

        Returns:
            ``var_name=value``

        Raises:
            ProviderError: If the variable is not set
        """
        var_name = arguments[0] if arguments else ""

        if not var_name:
            raise self.error("No variable name provided", arguments)

        if not _NAME_PATTERN.match(var_name):
            raise self.error(f"Invalid environment variable reference: {var_name}", arguments)

        environ = self._environ if self._environ is not None else os.environ
        value = environ.get(var_name)

        if not value:
            raise self.error(f"Environment variable '{var_name}' is not set", arguments)

        return self.pair(var_name, value)

    def configure(self, config: dict[str, Any]) -> None:
        """Configure the environment provider with options."""
        if "environ" in config:
            self._environ = config["environ"]


def create_provider(environ: Mapping[str, str] | None = None) -> EnvironmentProvider:
    """Factory function to create an EnvironmentProvider instance."""
    return EnvironmentProvider(environ)
