"""Secret references, the provider contract, and built-in providers."""

from httprex.core.secrets.base import (
    SecretProvider,
    SecretProviderResult,
    SecretReference,
    SecretReferenceType,
)
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

__all__ = [
    "AwsSecretsManagerProvider",
    "EncryptedFileSecretProvider",
    "EnvSecretProvider",
    "OnePasswordCLIProvider",
    "OnePasswordConnectProvider",
    "PromptSecretProvider",
    "SecretManager",
    "SecretProvider",
    "SecretProviderResult",
    "SecretReference",
    "SecretReferenceType",
    "VaultSecretProvider",
]
