"""
shh: Modular secret retrieval environment loader.

Resolves secret references such as ``bitwarden:MyApp:API_Key=APP_KEY`` from
pluggable providers (Bitwarden, AWS, GCP, Vault, Azure, files, environment),
exports them into the environment and hands off to a command.

Basic Usage:
    shh -s bitwarden:MyApp:API_Key=APP_KEY -- python app.py
"""

__version__ = "1.0.0"

from .cli import main
from .config import ShhConfig
from .loader import SecretLoader
from .providers import Provider, ProviderError, ProviderInfo, ProviderRegistry
from .reference import SecretReference, parse_reference

__all__ = [
    "main",
    "ShhConfig",
    "SecretLoader",
    "Provider",
    "ProviderError",
    "ProviderInfo",
    "ProviderRegistry",
    "SecretReference",
    "parse_reference",
]
