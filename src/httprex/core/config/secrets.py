"""Secret provider configuration models."""

from dataclasses import dataclass, field

from .base import SecretProviderType


@dataclass
class SecretProviderConfig:
    """One secret provider to register with the secret manager."""

    type: SecretProviderType
    """Provider backend (required)"""

    priority: int = 0
    """Higher priorities are tried first (default: 0)"""

    environments: list[str] = field(default_factory=list)
    """Only consult this provider in these environments (default: all)"""

    env_prefix: str = ""
    """Prefix for environment variable names (env provider)"""

    vault_url: str | None = None
    """HashiCorp Vault URL (required for vault provider)"""

    vault_token: str | None = None
    """Vault token (optional, falls back to VAULT_TOKEN)"""

    vault_mount_point: str = "secret"
    """KV v2 mount point (default: secret)"""

    aws_region: str | None = None
    """AWS region (required for aws_secrets_manager provider)"""

    connect_url: str | None = None
    """1Password Connect server URL (required for onepassword_connect provider)"""

    connect_token: str | None = None
    """1Password Connect access token (required for onepassword_connect provider)"""

    default_vault_id: str | None = None
    """1Password vault searched for plain secret names (optional)"""

    service_account_token: str | None = None
    """1Password service account token for the op CLI (optional)"""

    vault_file: str | None = None
    """Path of the encrypted vault file (required for encrypted_file provider)"""

    vault_password: str | None = None
    """Password that unlocks the encrypted vault at startup (optional)"""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        if self.type == SecretProviderType.VAULT and not self.vault_url:
            raise ValueError("vault_url is required when type is vault")

        if self.type == SecretProviderType.AWS_SECRETS_MANAGER and not self.aws_region:
            raise ValueError("aws_region is required when type is aws_secrets_manager")

        if self.type == SecretProviderType.ONEPASSWORD_CONNECT and not (self.connect_url and self.connect_token):
            raise ValueError("connect_url and connect_token are required when type is onepassword_connect")

        if self.type == SecretProviderType.ENCRYPTED_FILE and not self.vault_file:
            raise ValueError("vault_file is required when type is encrypted_file")


@dataclass
class SecretsConfig:
    """Secret manager settings and its providers."""

    cache_enabled: bool = True
    """Cache resolved secrets for the session (default: True)"""

    providers: list[SecretProviderConfig] = field(default_factory=list)
    """Providers to register, in registration order (default: none)"""

    def __post_init__(self) -> None:
        """Validate configuration after initialization."""
        types = [p.type for p in self.providers]
        if len(types) != len(set(types)):
            raise ValueError("Each secret provider type may only be configured once")
