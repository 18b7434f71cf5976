"""
Secret resolution for shh.

This module dispatches parsed secret references to their providers, one at a
time and in order, and collects the results into a name -> value mapping.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Iterable

from .providers import Provider, ProviderError, ProviderRegistry
from .reference import SecretReference
from .reporting import REDACTED, Reporter


@dataclass
class ResolutionError:
    """Error that occurred during resolution."""

    key: str
    provider: str
    arguments: list[str]
    message: str


@dataclass
class LoadResult:
    """Result of resolving a batch of references."""

    variables: dict[str, str] = field(default_factory=dict)
    secrets_resolved: int = 0
    errors: list[ResolutionError] = field(default_factory=list)


class LoadError(Exception):
    """Raised in strict mode when any reference fails to resolve."""


class DependencyError(Exception):
    """Raised when a referenced provider's module or executable is missing."""

    def __init__(self, missing: dict[str, list[str]]):
        self.missing = missing
        details = "; ".join(f"{name}: {', '.join(deps)}" for name, deps in sorted(missing.items()))
        super().__init__(f"Missing required dependencies ({details})")


def extract_value(output: str) -> str:
    """Take the value out of a provider's ``key=value`` output (verbatim if no ``=``)."""
    if "=" in output:
        return output.split("=", 1)[1]
    return output


class SecretLoader:
    """
    Resolves secret references through a provider registry.

    References are processed strictly in the order given. A later reference
    with the same target name overwrites an earlier one. Failures are logged
    and collected; in strict mode the first failure raises ``LoadError``.

    Example:
        loader = SecretLoader(default_registry(), Reporter())
        result = await loader.load([parse_reference("env:HOME=MY_HOME")])
        print(result.variables["MY_HOME"])
    """

    def __init__(
        self,
        registry: ProviderRegistry,
        reporter: Reporter | None = None,
        strict: bool = False,
    ) -> None:
        """Initialize the secret loader."""
        self.registry = registry
        self.reporter = reporter or Reporter()
        self.strict = strict

    def check_dependencies(self, references: Iterable[SecretReference]) -> None:
        """
        Verify that every referenced, registered provider has what it needs.

        Unknown providers are skipped here; they fail individually at dispatch.

        Raises:
            DependencyError: If any referenced provider is missing a dependency
        """
        missing: dict[str, list[str]] = {}

        for name in dict.fromkeys(ref.provider for ref in references):
            if not self.registry.is_registered(name):
                continue
            deps = self.registry.get(name).missing_dependencies()
            if deps:
                missing[name] = deps

        if missing:
            for name, deps in sorted(missing.items()):
                self.reporter.error(
                    f"Required dependency for '{name}' is not installed: {', '.join(deps)}"
                )
            raise DependencyError(missing)

    async def load(
        self,
        references: list[SecretReference],
        initial: dict[str, str] | None = None,
    ) -> LoadResult:
        """
        Resolve every reference into a name -> value mapping.

        Args:
            references: Parsed references, in resolve order
            initial: Literal assignments seeded into the mapping first

        Returns:
            A LoadResult with the mapping and any per-reference errors

        Raises:
            DependencyError: If a referenced provider is missing a dependency
            LoadError: In strict mode, on the first failed reference
        """
        self.check_dependencies(references)

        result = LoadResult(variables=dict(initial or {}))

        for ref in references:
            try:
                value = await self.resolve(ref)
            except ProviderError as exc:
                error = ResolutionError(
                    key=ref.target_name,
                    provider=ref.provider,
                    arguments=list(ref.arguments),
                    message=str(exc),
                )
                self.reporter.error(f"Failed to load secret {ref.target_name}: {exc}")
                if self.strict:
                    raise LoadError(f"Failed to resolve {ref.target_name}: {exc}") from exc
                result.errors.append(error)
                continue

            result.variables[ref.target_name] = value
            result.secrets_resolved += 1
            self.reporter.success(f"Loaded: {ref.target_name} = {REDACTED}")

        return result

    async def resolve(self, reference: SecretReference) -> str:
        """
        Resolve a single secret reference to its value.

        Raises:
            ProviderError: If the provider is unknown, the arguments are
                malformed, or the backend fails
        """
        # Raises UnknownProviderError before any provider code runs
        provider = self.registry.get(reference.provider)

        arguments = list(reference.arguments)
        if not provider.validate_arguments(arguments):
            raise ProviderError(
                f"Invalid arguments for provider '{reference.provider}', "
                f"expected {provider.info.usage or reference.provider}",
                provider=reference.provider,
                arguments=arguments,
            )

        self.reporter.info(f"Loading secret from {reference.provider} → {reference.target_name}")

        output = await self._call(provider, arguments, reference.target_name)

        return extract_value(output)

    async def _call(self, provider: Provider, arguments: list[str], target: str) -> str:
        try:
            output = await provider.resolve(arguments, target=target)
        except ProviderError:
            raise
        except Exception as exc:
            # Plugin providers may raise anything
            raise ProviderError(
                f"Unexpected error: {exc}", provider=provider.info.name, arguments=arguments
            ) from exc

        if not isinstance(output, str):
            raise ProviderError(
                f"Provider returned {type(output).__name__}, expected a string",
                provider=provider.info.name,
                arguments=arguments,
            )

        return output

    async def close(self) -> None:
        """Clean up all providers."""
        await self.registry.close()
