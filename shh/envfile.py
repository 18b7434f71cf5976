"""
Plain ``.env`` file loading for shh.

Lines are ``KEY=VALUE`` assignments; blank lines, ``#`` comments and lines
without ``=`` are skipped. An optional ``export`` prefix and matching
surrounding quotes are removed. No variable expansion is performed.
"""

from __future__ import annotations

from dataclasses import dataclass
from pathlib import Path
from typing import MutableMapping

from .reference import is_valid_identifier


@dataclass
class EnvVariable:
    """Represents a single environment variable from an env file."""

    key: str
    value: str
    line_number: int
    raw_value: str


def parse_env_lines(lines: list[str]) -> list[EnvVariable]:
    """Parse lines into EnvVariable objects."""
    variables = []

    for line_num, line in enumerate(lines, 1):
        stripped_line = line.strip()

        if not stripped_line or stripped_line.startswith("#"):
            continue

        if "=" not in stripped_line:
            continue

        if stripped_line.startswith("export "):
            stripped_line = stripped_line[len("export ") :].lstrip()

        key, raw_value = stripped_line.split("=", 1)
        key = key.strip()
        raw_value = raw_value.strip()

        if not is_valid_identifier(key):
            continue

        if len(raw_value) >= 2 and (
            (raw_value.startswith('"') and raw_value.endswith('"'))
            or (raw_value.startswith("'") and raw_value.endswith("'"))
        ):
            raw_value = raw_value[1:-1]

        variables.append(
            EnvVariable(
                key=key,
                value=raw_value,
                line_number=line_num,
                raw_value=line,
            )
        )

    return variables


def load_env_file(
    path: str | Path,
    environ: MutableMapping[str, str],
) -> list[EnvVariable]:
    """
    Load a ``.env`` file into ``environ``.

    Returns:
        The variables that were set, in file order
    """
    variables = parse_env_lines(Path(path).read_text().splitlines())

    for var in variables:
        environ[var.key] = var.value

    return variables
