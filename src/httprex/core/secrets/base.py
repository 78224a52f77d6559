"""Secret provider abstractions and models."""

from __future__ import annotations

from abc import ABC, abstractmethod
from collections.abc import Awaitable
from dataclasses import dataclass
from enum import Enum


class SecretReferenceType(str, Enum):
    """Placeholder prefixes that route a name to the secret providers."""

    SECRET = "secret"
    VAULT = "vault"
    ONEPASSWORD = "onepassword"


SECRET_PREFIX = "secret:"
VAULT_PREFIX = "vault:"
ONEPASSWORD_PREFIX = "op://"


@dataclass(frozen=True)
class SecretReference:
    """Reference to a secret, parsed from a placeholder name.

    Args:
        type: Which placeholder syntax was used.
        name: Secret name; for 1Password references the full ``op://`` string.
        path: For 1Password references, the ``vault/item/field`` part.
    """

    type: SecretReferenceType
    name: str
    path: str | None = None

    @property
    def cache_key(self) -> str:
        return f"{self.type.value}:{self.name}"

    @property
    def display_name(self) -> str:
        if self.type is SecretReferenceType.ONEPASSWORD and self.path:
            return self.path
        return self.name

    @classmethod
    def parse(cls, name: str) -> SecretReference | None:
        """Parse a placeholder name into a reference.

        ``secret:x`` and ``vault:x`` give the name after the prefix;
        ``op://vault/item/field`` keeps the full string as the name and the
        part after the scheme as ``path``. Any other string is not a secret
        reference.
        """
        if name.startswith(SECRET_PREFIX):
            return cls(SecretReferenceType.SECRET, name[len(SECRET_PREFIX) :])
        if name.startswith(VAULT_PREFIX):
            return cls(SecretReferenceType.VAULT, name[len(VAULT_PREFIX) :])
        if name.startswith(ONEPASSWORD_PREFIX):
            return cls(SecretReferenceType.ONEPASSWORD, name, path=name[len(ONEPASSWORD_PREFIX) :])
        return None


@dataclass
class SecretProviderResult:
    """Outcome of asking a provider for a secret.

    The ``value`` field is masked in ``__repr__`` to prevent accidental
    leakage in logs or tracebacks.

    Args:
        value: The secret value, or ``None`` if not found.
        found: ``True`` if the secret exists (even when its value is empty).
        error: Error description when resolution failed.
        provider: Name of the provider that produced the value.
    """

    value: str | None = None
    found: bool = False
    error: str | None = None
    provider: str | None = None

    @classmethod
    def hit(cls, value: str) -> SecretProviderResult:
        return cls(value=value, found=True)

    @classmethod
    def miss(cls, error: str | None = None) -> SecretProviderResult:
        return cls(value=None, found=False, error=error)

    def __repr__(self) -> str:
        masked = "***" if self.value is not None else "None"
        return (
            f"SecretProviderResult("
            f"value={masked}, "
            f"found={self.found!r}, "
            f"error={self.error!r}, "
            f"provider={self.provider!r})"
        )


class SecretProvider(ABC):
    """Base class for secret backends.

    Subclasses set :attr:`name` and :attr:`description` and implement
    :meth:`get_secret`. Backend failures should be returned as a
    ``found=False`` result with an error message; an exception escaping
    :meth:`get_secret` is tolerated by the
    :class:`~httprex.core.secrets.manager.SecretManager`, which logs it and
    moves on to the next provider.
    """

    name: str = ""
    description: str = ""

    def is_available(self) -> bool | Awaitable[bool]:
        """Report whether the provider can serve requests right now.

        May be overridden with either a plain or an ``async`` method.
        """
        return True

    @abstractmethod
    async def get_secret(self, ref: SecretReference) -> SecretProviderResult:
        """Look up a single secret."""
        ...

    async def list_secrets(self) -> list[str]:
        """List known secret names, for autocompletion."""
        return []

    @property
    def writable(self) -> bool:
        return False

    async def set_secret(self, name: str, value: str) -> None:
        """Store a secret. Only vault-like providers support this."""
        raise NotImplementedError(f"Secret provider '{self.name}' is read-only")

    async def delete_secret(self, name: str) -> None:
        """Delete a secret. Only vault-like providers support this."""
        raise NotImplementedError(f"Secret provider '{self.name}' is read-only")
