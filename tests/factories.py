"""Shared test factories for building requests, providers and sessions.

Import them directly::

    from tests.factories import StaticSecretProvider, make_request
"""

from __future__ import annotations

from typing import Any

from httprex.core.parser.types import ABSENT, Body, ParsedRequest, RequestMethod
from httprex.core.secrets.base import SecretProvider, SecretProviderResult, SecretReference
from httprex.core.secrets.manager import SecretManager


class StaticSecretProvider(SecretProvider):
    """In-memory provider keyed by secret name, with call counting."""

    def __init__(
        self,
        name: str = "static",
        secrets: dict[str, str] | None = None,
        *,
        available: bool = True,
        error: Exception | None = None,
    ) -> None:
        self.name = name
        self.description = f"static test provider {name}"
        self.secrets = dict(secrets or {})
        self.available = available
        self.error = error
        self.calls: list[str] = []

    def is_available(self) -> bool:
        return self.available

    async def get_secret(self, ref: SecretReference) -> SecretProviderResult:
        self.calls.append(ref.name)
        if self.error is not None:
            raise self.error
        if ref.display_name in self.secrets:
            return SecretProviderResult.hit(self.secrets[ref.display_name])
        return SecretProviderResult.miss(f"{ref.name} not in {self.name}")

    async def list_secrets(self) -> list[str]:
        return sorted(self.secrets)


class AsyncAvailabilityProvider(StaticSecretProvider):
    """Provider whose availability check is a coroutine."""

    async def is_available(self) -> bool:  # type: ignore[override]
        return self.available


def make_request(
    url: str = "https://api.example.com/users",
    *,
    method: RequestMethod = RequestMethod.GET,
    headers: dict[str, str] | None = None,
    body: Body = ABSENT,
    name: str | None = None,
) -> ParsedRequest:
    """Build a ``ParsedRequest`` with sensible test defaults."""
    return ParsedRequest(
        method=method,
        url=url,
        headers=headers or {},
        body=body,
        name=name,
    )


def make_secret_manager(*providers: tuple[SecretProvider, int], **kwargs: Any) -> SecretManager:
    """Build a ``SecretManager`` with ``(provider, priority)`` pairs registered in order."""
    manager = SecretManager(**kwargs)
    for provider, priority in providers:
        manager.register_provider(provider, priority=priority)
    return manager
