"""
Environment materialization for shh.

Turns the resolved name -> value mapping into process environment bindings
and/or an owner-only ``.env`` file, and hands off to the target command.
"""

from __future__ import annotations

import os
import stat
import subprocess
from pathlib import Path
from typing import Mapping, MutableMapping

from .reporting import REDACTED, Reporter

OWNER_READ_WRITE = stat.S_IRUSR | stat.S_IWUSR


class MaterializationError(Exception):
    """Raised when resolved variables cannot be exported or written."""


def export_environment(
    variables: Mapping[str, str],
    environ: MutableMapping[str, str] | None = None,
    reporter: Reporter | None = None,
    verbose: bool = False,
) -> None:
    """
    Bind every variable into ``environ`` (the process environment by default).

    Raises:
        MaterializationError: If a value cannot be placed in the environment
    """
    target = os.environ if environ is None else environ

    if reporter:
        reporter.info(f"Exporting {len(variables)} environment variables")

    for key, value in variables.items():
        try:
            target[key] = value
        except (ValueError, OSError) as exc:
            # e.g. embedded NUL bytes
            raise MaterializationError(f"Cannot export {key}: {exc}") from exc

        if verbose and reporter:
            reporter.info(f"Exported: {key}={REDACTED}")


def write_env_file(
    variables: Mapping[str, str],
    path: str | Path,
    reporter: Reporter | None = None,
) -> Path:
    """
    Append ``NAME=VALUE`` lines to ``path`` and restrict it to the owner.

    Values are written raw, without quoting or escaping. Parent directories
    are created as needed. The file is created with mode 0600; an existing
    file is narrowed to 0600 through its descriptor before anything is
    written, and chmod'ed again by path afterwards.

    Raises:
        MaterializationError: If the directory or file cannot be written
    """
    output = Path(path).expanduser()

    if reporter:
        reporter.info(f"Exporting {len(variables)} variables to: {output}")

    content = "".join(f"{key}={value}\n" for key, value in variables.items())

    try:
        output.parent.mkdir(parents=True, exist_ok=True)
    except OSError as exc:
        raise MaterializationError(
            f"Cannot create output directory {output.parent}: {exc}"
        ) from exc

    try:
        fd = os.open(output, os.O_WRONLY | os.O_CREAT | os.O_APPEND, OWNER_READ_WRITE)
        # An existing file keeps its old mode; narrow it before any value lands
        if hasattr(os, "fchmod"):
            try:
                os.fchmod(fd, OWNER_READ_WRITE)
            except OSError:
                os.close(fd)
                raise
        with os.fdopen(fd, "a", encoding="utf-8") as handle:
            handle.write(content)
        os.chmod(output, OWNER_READ_WRITE)
    except OSError as exc:
        raise MaterializationError(f"Cannot write output file {output}: {exc}") from exc

    if reporter:
        reporter.success(f"Exported to: {output}")

    return output


def exec_command(command: list[str], environ: Mapping[str, str] | None = None) -> int:
    """
    Replace the current process with ``command``.

    On platforms without exec-replace semantics the command is spawned and
    waited for instead, and its exit code is returned.

    Raises:
        FileNotFoundError: If the command cannot be found
    """
    env = dict(os.environ if environ is None else environ)

    if os.name == "posix":
        os.execvpe(command[0], command, env)
        # execvpe only returns when patched out
        return 0

    return subprocess.run(command, env=env).returncode
