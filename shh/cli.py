"""
Command-line interface for shh.

This module provides the CLI entry point and argument parsing.
"""

from __future__ import annotations

import argparse
import asyncio
import os
import sys
from dataclasses import dataclass
from pathlib import Path

from rich import print as rprint
from rich.markup import escape
from rich.table import Table

from . import __version__
from .config import ConfigurationError, ShhConfig
from .envfile import load_env_file
from .loader import DependencyError, LoadError, SecretLoader
from .materialize import MaterializationError, exec_command, export_environment, write_env_file
from .plugins import scaffold_provider
from .providers import ProviderError, ProviderRegistry
from .providers.built_in import default_registry
from .reference import ReferenceParseError, SecretReference, parse_assignment, parse_reference
from .reporting import REDACTED, FileLogSink, Reporter
from .sources import SourcesFileError, load_sources

FATAL_ERRORS = (
    ReferenceParseError,
    SourcesFileError,
    DependencyError,
    LoadError,
    MaterializationError,
)


@dataclass
class Handoff:
    """The command to run once the environment is populated."""

    command: list[str]
    reporter: Reporter


def main(argv: list[str] | None = None) -> int:
    """Main entry point for the CLI."""
    try:
        args = parse_args(argv)
    except SystemExit as exc:
        return exc.code if isinstance(exc.code, int) else 1

    try:
        outcome = asyncio.run(_main_async(args))
    except KeyboardInterrupt:
        rprint("[yellow]Cancelled.[/yellow]", file=sys.stderr)
        return 130
    except Exception as exc:
        rprint(f"[red]Error: {escape(str(exc))}[/red]", file=sys.stderr)
        return 1

    if isinstance(outcome, Handoff):
        return _handoff(outcome)

    return outcome


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog="shh",
        usage="shh [OPTIONS] -- COMMAND [ARGS...]",
        description="Load secrets from multiple sources into the environment of a command",
        formatter_class=argparse.RawDescriptionHelpFormatter,
        epilog="""
Supported sources:
  bitwarden:<item>[:field]=ENV_VAR
  aws:<profile>:<secret>=ENV_VAR
  gcp:<project>:<secret>=ENV_VAR
  vault:<path>[:key]=ENV_VAR
  azure:<vault>:<secret>=ENV_VAR
  file:<path>=ENV_VAR
  env:<var_name>=ENV_VAR

Sources file (YAML):
  sources:
    - bitwarden:MyApp:API_Key=APP_KEY
    - aws:prod:db_pass=DB_PASS

Examples:
  shh -s bitwarden:MyApp:API_Key=APP_KEY -s aws:prod:db_pass=DB_PASS -- python app.py
  shh -s file:/secrets/cert.pem=SSL_CERT -e DEBUG=true -- node server.js
  shh -i sources.yaml -o .env.local           # write resolved variables and exit
        """,
    )

    parser.add_argument(
        "-f",
        "--file",
        dest="env_file",
        metavar="FILE",
        help="Load a .env file into the environment first (default: .env)",
    )
    parser.add_argument(
        "-e",
        "--env",
        dest="assignments",
        action="append",
        default=[],
        metavar="KEY=VALUE",
        help="Set an environment variable directly",
    )
    parser.add_argument(
        "-s",
        "--secret",
        dest="secrets",
        action="append",
        default=[],
        metavar="SOURCE=ENV_VAR",
        help="Secret source with explicit env var mapping (repeatable)",
    )
    parser.add_argument(
        "-i",
        "--sources-file",
        metavar="FILE",
        help="Load secret sources from a file (YAML 'sources' list, or .list/.sources lines)",
    )
    parser.add_argument(
        "-o",
        "--output",
        metavar="FILE",
        help="Append all loaded variables to a .env-style file (mode 0600)",
    )
    parser.add_argument(
        "-l",
        "--list",
        action="store_true",
        help="List available secret providers",
    )
    parser.add_argument(
        "-v",
        "--verbose",
        action="count",
        default=0,
        help="Show loaded variable names (values are always redacted)",
    )
    parser.add_argument(
        "--strict",
        action="store_true",
        help="Fail if any secret cannot be resolved",
    )
    parser.add_argument(
        "--config",
        metavar="FILE",
        help="Configuration file path",
    )
    parser.add_argument(
        "--scaffold",
        metavar="NAME",
        help="Write a template provider plugin into the providers directory",
    )
    parser.add_argument(
        "--version",
        action="version",
        version=f"shh {__version__}",
    )

    return parser


def parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    """Parse options; everything after the first ``--`` is the command."""
    argv = list(sys.argv[1:] if argv is None else argv)

    command: list[str] = []
    if "--" in argv:
        index = argv.index("--")
        argv, command = argv[:index], argv[index + 1 :]

    args = build_parser().parse_args(argv)
    args.command = command
    return args


def build_registry(config: ShhConfig, reporter: Reporter) -> ProviderRegistry:
    """Built-ins, then installed plugins, the plugin directory and configured providers."""
    registry = default_registry()

    for warning in registry.discover_plugins():
        reporter.warn(warning)
    for warning in registry.load_directory(config.providers_dir):
        reporter.warn(warning)

    for provider in config.providers:
        try:
            if provider.name == provider.type and registry.is_registered(provider.name):
                if provider.enabled:
                    registry.configure(provider.name, provider.config)
                else:
                    registry.unregister(provider.name)
            elif provider.enabled:
                registry.alias(provider.name, provider.type, provider.config)
        except (KeyError, ProviderError) as exc:
            reporter.warn(f"Skipping configured provider '{provider.name}': {exc}")

    return registry


def _display_providers(registry: ProviderRegistry) -> None:
    """Display all available providers."""
    providers = registry.list_providers()

    if not providers:
        rprint("[yellow]No providers registered.[/yellow]")
        return

    table = Table(title="Available secret sources")
    table.add_column("Name", style="cyan")
    table.add_column("Usage", style="green")
    table.add_column("Description")

    for name, info in providers:
        table.add_row(escape(name), escape(info.usage), escape(info.description))

    rprint(table)


def collect_references(
    args: argparse.Namespace, config: ShhConfig, reporter: Reporter
) -> list[SecretReference]:
    """
    Gather and parse every reference: sources file entries first, then ``-s``.

    Raises:
        SourcesFileError: If the sources file is missing or malformed
        ReferenceParseError: On the first invalid reference
    """
    raw: list[str] = []

    sources_file = Path(args.sources_file) if args.sources_file else None
    if sources_file is None and config.sources_file.is_file():
        sources_file = config.sources_file

    if sources_file is not None:
        reporter.info(f"Loading secret sources from file: {sources_file}")
        loaded = load_sources(sources_file, warn=reporter.warn)
        reporter.info(f"Loaded {len(loaded)} sources from {sources_file}")
        raw.extend(loaded)

    raw.extend(args.secrets)

    return [parse_reference(entry) for entry in raw]


async def _main_async(args: argparse.Namespace) -> int | Handoff:
    """Async main function."""
    try:
        config = ShhConfig.load(args.config)
    except ConfigurationError as exc:
        rprint(f"[red]Error: {escape(str(exc))}[/red]", file=sys.stderr)
        return 1

    reporter = Reporter(FileLogSink(config.log_file))
    registry = build_registry(config, reporter)

    if args.list:
        _display_providers(registry)
        return 0

    if args.scaffold:
        try:
            path = scaffold_provider(config.providers_dir, args.scaffold)
        except (ValueError, FileExistsError, OSError) as exc:
            reporter.error(str(exc))
            return 1
        reporter.success(f"Created template provider: {path}")
        return 0

    if not args.command and not args.output:
        reporter.error(
            "No command specified. Use '--' followed by your command, "
            "or use --output FILE to export only."
        )
        return 1

    loader = SecretLoader(registry, reporter, strict=args.strict or config.strict)

    try:
        assignments: dict[str, str] = {}
        for raw in args.assignments:
            key, value = parse_assignment(raw)
            assignments[key] = value
            reporter.info(f"Set environment variable: {key}={REDACTED}")

        references = collect_references(args, config, reporter)

        env_file = Path(args.env_file) if args.env_file else config.env_file
        if env_file.is_file():
            reporter.info(f"Loading environment variables from: {env_file}")
            load_env_file(env_file, os.environ)
        elif args.env_file:
            reporter.warn(f"Environment file '{env_file}' not found")

        result = await loader.load(references, initial=assignments)

        if result.errors:
            reporter.warn(
                f"{len(result.errors)} secret(s) could not be loaded and will be unset: "
                + ", ".join(error.key for error in result.errors)
            )

        export_environment(result.variables, os.environ, reporter, verbose=args.verbose > 0)

        if args.output:
            write_env_file(result.variables, args.output, reporter)

    except FATAL_ERRORS as exc:
        reporter.error(str(exc))
        return 1
    finally:
        await loader.close()

    if args.verbose > 0:
        reporter.variables(list(result.variables))

    if not args.command:
        reporter.info(f"Secrets exported to '{args.output}'. No command specified, exiting.")
        return 0

    return Handoff(command=args.command, reporter=reporter)


def _handoff(handoff: Handoff) -> int:
    """Replace this process with the command (or spawn it where exec is unavailable)."""
    handoff.reporter.info(f"Executing: {' '.join(handoff.command)}")

    try:
        return exec_command(handoff.command)
    except FileNotFoundError:
        handoff.reporter.error(f"Command not found: {handoff.command[0]}")
        return 127
    except PermissionError:
        handoff.reporter.error(f"Permission denied: {handoff.command[0]}")
        return 126
