"""Exceptions raised for programmer errors.

Expected input problems (malformed request text, missing secrets) are
reported as values instead; see :class:`~httprex.core.parser.types.ParseResult`
and :class:`~httprex.core.secrets.base.SecretProviderResult`.
"""


class HttpRexError(Exception):
    """Base exception for httprex errors."""

    pass


class EnvironmentNotFoundError(HttpRexError, KeyError):
    """Selecting an environment name that was never loaded."""

    def __init__(self, name: str) -> None:
        self.name = name
        super().__init__(f'Environment "{name}" not found')

    def __str__(self) -> str:
        return str(self.args[0])


class EnvironmentFileError(HttpRexError, ValueError):
    """An environment file could not be read or decoded."""

    def __init__(self, reason: str, cause: Exception | None = None) -> None:
        self.reason = reason
        self.cause = cause
        super().__init__(f"Invalid http-client.env.json format: {reason}")
        self.__cause__ = cause


class SecretVaultLockedError(HttpRexError):
    """Writing to an encrypted secret vault that has not been unlocked."""

    def __init__(self, provider_name: str) -> None:
        self.provider_name = provider_name
        super().__init__(f"Vault '{provider_name}' is locked. Call unlock() with the password first.")
