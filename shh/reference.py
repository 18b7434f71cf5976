"""
Secret reference parsing for shh.

A reference has the shape ``provider:arg1:arg2:...=ENV_VAR_NAME``. The target
name is everything after the last ``=``; when there is no ``=`` it is derived
from the source part. Parsing is pure and does no I/O.
"""

from __future__ import annotations

import re
from dataclasses import dataclass, field

IDENTIFIER_PATTERN = re.compile(r"^[A-Za-z_][A-Za-z0-9_]*$")

_NON_IDENTIFIER_CHARS = re.compile(r"[^A-Za-z0-9_]")


@dataclass(frozen=True)
class SecretReference:
    """A parsed ``(provider, arguments, target_name)`` triple."""

    provider: str
    arguments: tuple[str, ...] = field(default_factory=tuple)
    target_name: str = ""
    raw: str = ""

    @property
    def source(self) -> str:
        """The reference without its target, e.g. ``bitwarden:MyApp:API_Key``."""
        return ":".join((self.provider, *self.arguments))


class ReferenceParseError(ValueError):
    """Raised for malformed references or invalid environment variable names."""

    def __init__(self, message: str, raw: str = "", offending_name: str | None = None):
        self.message = message
        self.raw = raw
        self.offending_name = offending_name
        super().__init__(message)


def is_valid_identifier(name: str) -> bool:
    """Check a name against ``^[A-Za-z_][A-Za-z0-9_]*$``."""
    return bool(IDENTIFIER_PATTERN.match(name))


def derive_target_name(source: str) -> str:
    """
    Derive an environment variable name from a source part.

    ``:`` and every other character outside ``[A-Za-z0-9_]`` become ``_`` and
    the result is upper-cased, e.g. ``file:/tmp/secret.txt`` gives
    ``FILE__TMP_SECRET_TXT``. The result may still be invalid (for instance
    when it starts with a digit); callers validate it.
    """
    return _NON_IDENTIFIER_CHARS.sub("_", source.replace(":", "_")).upper()


def split_target(raw: str) -> tuple[str, str]:
    """Split a raw reference into ``(source_part, target_name)`` on the last ``=``."""
    if "=" in raw:
        source, _, target = raw.rpartition("=")
        return source, target

    return raw, derive_target_name(raw)


def parse_reference(raw: str) -> SecretReference:
    """
    Parse a raw reference string.

    Raises:
        ReferenceParseError: If the provider is missing or the target name is
            not a valid identifier
    """
    source, target = split_target(raw)

    if not is_valid_identifier(target):
        raise ReferenceParseError(
            f"Invalid environment variable name: '{target}'. Must start with a letter "
            "or underscore and contain only letters, numbers and underscores.",
            raw=raw,
            offending_name=target,
        )

    provider, *arguments = source.split(":")

    if not provider:
        raise ReferenceParseError(f"Missing provider in secret reference: '{raw}'", raw=raw)

    return SecretReference(
        provider=provider,
        arguments=tuple(arguments),
        target_name=target,
        raw=raw,
    )


def parse_assignment(raw: str) -> tuple[str, str]:
    """
    Parse a literal ``KEY=VALUE`` assignment (split on the first ``=``).

    Raises:
        ReferenceParseError: If there is no ``=`` or the key is not a valid identifier
    """
    if "=" not in raw:
        raise ReferenceParseError(
            f"Invalid -e argument format: {raw} (should be KEY=VALUE)", raw=raw
        )

    key, _, value = raw.partition("=")

    if not is_valid_identifier(key):
        raise ReferenceParseError(f"Invalid variable name: {key}", raw=raw, offending_name=key)

    return key, value
