"""Priority-ordered secret resolution with caching."""

from __future__ import annotations

import dataclasses
import logging
import threading
from collections.abc import Iterable, Sequence
from dataclasses import dataclass, field

from httprex.core.secrets.base import SecretProvider, SecretProviderResult, SecretReference
from httprex.core.utils import maybe_await

logger = logging.getLogger(__name__)


@dataclass
class RegisteredProvider:
    """A provider together with its registration settings.

    Args:
        provider: The provider instance.
        priority: Higher values are tried first. Defaults to 0.
        environments: If non-empty, the provider is only consulted while
            one of these environments is active.
    """

    provider: SecretProvider
    priority: int = 0
    environments: tuple[str, ...] = field(default_factory=tuple)

    def applies_to(self, environment: str | None) -> bool:
        return not self.environments or environment in self.environments


class SecretManager:
    """Resolve secret references through registered providers.

    Providers are tried one at a time, highest priority first, with ties
    broken by registration order. An unavailable or failing provider is
    skipped; the first ``found`` result is stamped with the provider name,
    cached under ``type:name`` within the active environment, and returned.
    Cache entries are scoped per environment so a value from a provider
    restricted to one environment is never served in another. Callers get
    a copy of the cached result. Misses are not cached, so a provider
    registered later can still succeed.

    The manager imposes no timeout and no retries; wrap :meth:`get_secret`
    in :func:`asyncio.wait_for` for a deadline.

    Args:
        cache_enabled: Whether found secrets are cached. Defaults to ``True``.
    """

    def __init__(self, cache_enabled: bool = True) -> None:
        self._providers: dict[str, RegisteredProvider] = {}
        self._cache: dict[tuple[str | None, str], SecretProviderResult] = {}
        self._cache_enabled = cache_enabled
        self._lock = threading.Lock()

    # ------------------------------------------------------------------
    # Registry
    # ------------------------------------------------------------------

    def register_provider(
        self,
        provider: SecretProvider,
        priority: int = 0,
        environments: Iterable[str] | None = None,
    ) -> None:
        """Register *provider*, replacing any provider with the same name."""
        with self._lock:
            self._providers[provider.name] = RegisteredProvider(
                provider=provider,
                priority=priority,
                environments=tuple(environments or ()),
            )
        logger.debug("Registered secret provider %s (priority %d)", provider.name, priority)

    def unregister_provider(self, name: str) -> None:
        with self._lock:
            self._providers.pop(name, None)

    def get_provider(self, name: str) -> SecretProvider | None:
        with self._lock:
            registration = self._providers.get(name)
        return registration.provider if registration else None

    def list_providers(self) -> list[str]:
        with self._lock:
            return list(self._providers)

    def _sorted_providers(self) -> list[RegisteredProvider]:
        with self._lock:
            registrations = list(self._providers.values())
        # sorted() is stable, so equal priorities keep registration order
        return sorted(registrations, key=lambda r: -r.priority)

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def get_secret(
        self,
        ref: SecretReference,
        environment: str | None = None,
    ) -> SecretProviderResult:
        """Resolve *ref* through the registered providers.

        Never raises for provider problems; a secret that no provider
        returns yields ``found=False`` with a descriptive ``error``.

        Args:
            ref: The secret to look up.
            environment: Name of the active environment, used to skip
                providers restricted to other environments.
        """
        key = (environment, ref.cache_key)
        if self._cache_enabled:
            with self._lock:
                cached = self._cache.get(key)
            if cached is not None:
                return dataclasses.replace(cached)

        for registration in self._sorted_providers():
            provider = registration.provider
            if not registration.applies_to(environment):
                continue

            try:
                if not await maybe_await(provider.is_available()):
                    continue
            except Exception:
                logger.debug("Secret provider %s availability check failed", provider.name, exc_info=True)
                continue

            try:
                result = await provider.get_secret(ref)
            except Exception as exc:
                logger.warning("Secret provider %s failed: %s", provider.name, exc)
                continue

            if result.found:
                result.provider = provider.name
                if self._cache_enabled:
                    with self._lock:
                        self._cache[key] = dataclasses.replace(result)
                logger.debug("Resolved secret %s via %s", ref.cache_key, provider.name)
                return result

        return SecretProviderResult.miss(f'Secret "{ref.name}" not found in any provider')

    async def get_unresolved_secrets(
        self,
        names: Sequence[str],
        environment: str | None = None,
    ) -> list[str]:
        """Return the secret-reference names in *names* that cannot be resolved."""
        unresolved: list[str] = []
        for name in names:
            ref = SecretManager.parse_secret_reference(name)
            if ref is None:
                continue
            result = await self.get_secret(ref, environment)
            if not result.found:
                unresolved.append(name)
        return unresolved

    @staticmethod
    def parse_secret_reference(name: str) -> SecretReference | None:
        return SecretReference.parse(name)

    @staticmethod
    def is_secret_reference(name: str) -> bool:
        return SecretReference.parse(name) is not None

    # ------------------------------------------------------------------
    # Cache
    # ------------------------------------------------------------------

    def clear_cache(self) -> None:
        with self._lock:
            self._cache.clear()

    def set_cache_enabled(self, enabled: bool) -> None:
        """Turn caching on or off; disabling also clears the cache."""
        self._cache_enabled = enabled
        if not enabled:
            self.clear_cache()

    def is_cache_enabled(self) -> bool:
        return self._cache_enabled
