"""
Bulk secret sources for shh.

A sources file lists secret references in the same syntax accepted by
``-s``. YAML files declare them under a top-level ``sources`` list::

    sources:
      - bitwarden:MyApp:API_Key=APP_KEY
      - aws:prod:db_pass=DB_PASS

Files ending in ``.list`` or ``.sources`` use a plain line-based format,
one reference per line, with ``#`` comments and blank lines ignored.

A structurally broken file is fatal; an individual entry without ``=`` is
skipped with a warning.
"""

from __future__ import annotations

from pathlib import Path
from typing import Callable

import yaml

LINE_BASED_SUFFIXES = (".list", ".sources")

SOURCES_EXAMPLE = "sources:\n  - bitwarden:item:field=ENV_VAR"


class SourcesFileError(Exception):
    """Exception raised for missing or malformed sources files."""


def load_sources(
    file_path: str | Path,
    warn: Callable[[str], None] | None = None,
) -> list[str]:
    """
    Load raw secret references from a sources file.

    Args:
        file_path: Path to the sources file
        warn: Callback for non-fatal problems (empty list, skipped entries)

    Returns:
        Raw reference strings, in file order

    Raises:
        SourcesFileError: If the file is missing or has no valid ``sources`` list
    """
    path = Path(file_path)
    report = warn or (lambda message: None)

    if not path.is_file():
        raise SourcesFileError(f"Sources file not found: {path}")

    try:
        text = path.read_text()
    except OSError as exc:
        raise SourcesFileError(f"Cannot read sources file {path}: {exc}") from exc

    if path.suffix in LINE_BASED_SUFFIXES:
        entries: list[object] = [
            line.strip()
            for line in text.splitlines()
            if line.strip() and not line.strip().startswith("#")
        ]
    else:
        entries = _yaml_entries(path, text)

    if not entries:
        report(f"Sources file '{path}' has no entries")
        return []

    sources: list[str] = []
    for entry in entries:
        if not isinstance(entry, str):
            report(f"Skipping invalid source (not a string): {entry!r}")
            continue

        entry = entry.strip()
        if not entry:
            continue

        if "=" not in entry:
            report(f"Skipping invalid source (missing '='): {entry}")
            continue

        sources.append(entry)

    return sources


def _yaml_entries(path: Path, text: str) -> list[object]:
    try:
        data = yaml.safe_load(text)
    except yaml.YAMLError as exc:
        raise SourcesFileError(f"Invalid YAML in sources file {path}: {exc}") from exc

    if not isinstance(data, dict) or "sources" not in data:
        raise SourcesFileError(
            f"Sources file {path} must contain a top-level 'sources' list, e.g.:\n"
            f"{SOURCES_EXAMPLE}"
        )

    entries = data["sources"]

    # "sources:" with nothing under it parses as None
    if entries is None:
        return []

    if not isinstance(entries, list):
        raise SourcesFileError(
            f"'sources' in {path} must be a list, got {type(entries).__name__}"
        )

    return entries
