"""Session wiring parser, environments, secrets, storage and resolver together."""

from __future__ import annotations

import logging
from pathlib import Path
from typing import Any

from httprex.core.config.app import HttpRexConfig
from httprex.core.config.base import SecretProviderType
from httprex.core.config.loader import load_from_file
from httprex.core.config.secrets import SecretProviderConfig
from httprex.core.parser.document import HttpParser
from httprex.core.parser.types import ParsedRequest, ParsedRequestFile, ParseResult
from httprex.core.secrets.base import SecretProvider
from httprex.core.secrets.manager import SecretManager
from httprex.core.secrets.providers import (
    AwsSecretsManagerProvider,
    EncryptedFileSecretProvider,
    EnvSecretProvider,
    OnePasswordCLIProvider,
    OnePasswordConnectProvider,
    PromptSecretProvider,
    VaultSecretProvider,
)
from httprex.core.variables.environment import EnvironmentManager
from httprex.core.variables.resolver import VariableResolver
from httprex.core.variables.storage import InMemoryVariableStorage, VariableStorage

logger = logging.getLogger(__name__)


def build_provider(config: SecretProviderConfig) -> SecretProvider:
    """Create a built-in secret provider from its configuration.

    An encrypted-file provider with ``vault_password`` set is unlocked
    immediately.

    Raises:
        ValueError: If the provider type is not supported.
    """
    provider_type = config.type
    if provider_type == SecretProviderType.ENV:
        return EnvSecretProvider(prefix=config.env_prefix)
    if provider_type == SecretProviderType.PROMPT:
        return PromptSecretProvider()
    if provider_type == SecretProviderType.ONEPASSWORD_CLI:
        return OnePasswordCLIProvider(service_account_token=config.service_account_token)
    if provider_type == SecretProviderType.ONEPASSWORD_CONNECT:
        assert config.connect_url is not None and config.connect_token is not None
        return OnePasswordConnectProvider(
            server_url=config.connect_url,
            token=config.connect_token,
            default_vault_id=config.default_vault_id,
        )
    if provider_type == SecretProviderType.VAULT:
        assert config.vault_url is not None
        return VaultSecretProvider(
            url=config.vault_url,
            token=config.vault_token,
            mount_point=config.vault_mount_point,
        )
    if provider_type == SecretProviderType.AWS_SECRETS_MANAGER:
        return AwsSecretsManagerProvider(region_name=config.aws_region)
    if provider_type == SecretProviderType.ENCRYPTED_FILE:
        assert config.vault_file is not None
        provider = EncryptedFileSecretProvider(config.vault_file)
        if config.vault_password:
            provider.unlock(config.vault_password)
        return provider
    raise ValueError(f"Unsupported secret provider type: {provider_type}")


class HttpRexSession:
    """Owns one instance of each collaborator and exposes the common flow.

    Parse a document, then resolve its requests; file variables from the
    most recent :meth:`parse` are fed to the resolver automatically.

    Args:
        secret_manager: Defaults to an empty :class:`SecretManager`.
        environment_manager: Defaults to an empty :class:`EnvironmentManager`.
        storage: Global variable storage. Defaults to in-memory storage.
        parser: Defaults to :class:`HttpParser`.
    """

    def __init__(
        self,
        secret_manager: SecretManager | None = None,
        environment_manager: EnvironmentManager | None = None,
        storage: VariableStorage | None = None,
        parser: HttpParser | None = None,
    ) -> None:
        self.parser = parser or HttpParser()
        self.secret_manager = secret_manager or SecretManager()
        self.environment_manager = environment_manager or EnvironmentManager()
        self.storage: VariableStorage = storage or InMemoryVariableStorage()
        self.resolver = VariableResolver(
            environment_manager=self.environment_manager,
            secret_manager=self.secret_manager,
            storage=self.storage,
        )
        if isinstance(self.storage, InMemoryVariableStorage):
            self.resolver.set_global_variables(self.storage.snapshot())

    @classmethod
    def from_config(cls, config: HttpRexConfig, **kwargs: Any) -> HttpRexSession:
        """Build a session from a loaded configuration.

        Args:
            config: Session configuration.
            **kwargs: Forwarded to the constructor; explicit collaborators
                take precedence over the configured ones.
        """
        secret_manager = kwargs.pop("secret_manager", None)
        if secret_manager is None:
            secret_manager = SecretManager(cache_enabled=config.secrets.cache_enabled)
            for provider_config in config.secrets.providers:
                secret_manager.register_provider(
                    build_provider(provider_config),
                    priority=provider_config.priority,
                    environments=provider_config.environments,
                )

        environment_manager = kwargs.pop("environment_manager", None)
        if environment_manager is None:
            environment_manager = EnvironmentManager(auto_select_first=config.environments.auto_select_first)
            if config.environments.file:
                environment_manager.load_from_file(config.environments.file)
            if config.environments.default:
                environment_manager.set_current_environment(config.environments.default)

        storage = kwargs.pop("storage", None) or InMemoryVariableStorage(config.variables)

        return cls(
            secret_manager=secret_manager,
            environment_manager=environment_manager,
            storage=storage,
            **kwargs,
        )

    @classmethod
    def from_file(cls, path: str | Path, **kwargs: Any) -> HttpRexSession:
        """Create a session from a HOCON configuration file."""
        config: HttpRexConfig = load_from_file(path, HttpRexConfig)
        return cls.from_config(config, **kwargs)

    # ------------------------------------------------------------------
    # Parsing
    # ------------------------------------------------------------------

    def parse(self, text: str) -> ParseResult[ParsedRequestFile]:
        """Parse a multi-request document and remember its file variables."""
        result = self.parser.parse_many(text)
        if result.data is not None:
            self.resolver.update_context(from_file=result.data.file_variables)
        for error in result.errors:
            logger.debug("Parse error at line %s: %s", error.line, error.message)
        return result

    def parse_file(self, path: str | Path) -> ParseResult[ParsedRequestFile]:
        return self.parse(Path(path).read_text(encoding="utf-8"))

    # ------------------------------------------------------------------
    # Resolution
    # ------------------------------------------------------------------

    async def load_globals(self) -> None:
        """Refresh the global variable snapshot used by :meth:`resolve`."""
        await self.resolver.load_global_variables()

    def resolve(self, request: ParsedRequest) -> ParsedRequest:
        """Substitute variables without consulting secret providers.

        Global variables come from the snapshot taken when the session was
        built, or by the last :meth:`load_globals` or :meth:`resolve_async`.
        """
        return self.resolver.resolve_request(request)

    async def resolve_async(self, request: ParsedRequest) -> ParsedRequest:
        """Substitute secrets and variables."""
        return await self.resolver.resolve_request_async(request)

    def unresolved(self, request: ParsedRequest) -> list[str]:
        """Names still missing after sync resolution; see :meth:`resolve`."""
        return self.resolver.get_unresolved_variables(request)

    async def aclose(self) -> None:
        """Release network clients held by registered providers."""
        for name in self.secret_manager.list_providers():
            provider = self.secret_manager.get_provider(name)
            close = getattr(provider, "aclose", None)
            if close is not None:
                await close()
