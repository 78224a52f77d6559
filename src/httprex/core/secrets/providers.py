"""Built-in secret provider implementations."""

from __future__ import annotations

import asyncio
import base64
import getpass
import json
import logging
import os
import re
import shutil
import sys
from collections.abc import Awaitable, Callable
from pathlib import Path
from typing import Any

import httpx

from httprex.core.exceptions import SecretVaultLockedError
from httprex.core.secrets.base import (
    SecretProvider,
    SecretProviderResult,
    SecretReference,
    SecretReferenceType,
)
from httprex.core.utils import maybe_await

logger = logging.getLogger(__name__)

PromptFn = Callable[[str], "str | None | Awaitable[str | None]"]


class EnvSecretProvider(SecretProvider):
    """Resolve secrets from environment variables.

    The name is looked up as written first, then in upper snake case
    (``api-token`` -> ``API_TOKEN``). An optional prefix is prepended to
    both forms.

    Args:
        prefix: Prefix for environment variable names, e.g. ``"HTTPREX_"``.
    """

    name = "env"
    description = "Process environment variables"

    def __init__(self, prefix: str = "") -> None:
        self._prefix = prefix

    def _candidates(self, ref: SecretReference) -> list[str]:
        raw = ref.display_name
        normalized = re.sub(r"[^A-Za-z0-9]+", "_", raw).upper()
        names = [f"{self._prefix}{raw}"]
        if normalized != raw:
            names.append(f"{self._prefix}{normalized}")
        return names

    async def get_secret(self, ref: SecretReference) -> SecretProviderResult:
        candidates = self._candidates(ref)
        for candidate in candidates:
            value = os.environ.get(candidate)
            if value is not None:
                return SecretProviderResult.hit(value)
        return SecretProviderResult.miss(f"Environment variable '{candidates[-1]}' not set")

    async def list_secrets(self) -> list[str]:
        if not self._prefix:
            return []
        return sorted(k[len(self._prefix) :] for k in os.environ if k.startswith(self._prefix))


class PromptSecretProvider(SecretProvider):
    """Ask the user for secret values.

    Answers are cached per reference for the life of the provider so the
    user is asked at most once per secret.

    Args:
        prompt_fn: Callable receiving the prompt message and returning the
            answer (or ``None`` to cancel); may be ``async``. Defaults to
            :func:`getpass.getpass` when stdin is a terminal.
        cache_prompts: Remember answers. Defaults to ``True``.
    """

    name = "prompt"
    description = "Prompts the user to enter secret values"

    def __init__(self, prompt_fn: PromptFn | None = None, cache_prompts: bool = True) -> None:
        self._prompt_fn = prompt_fn
        self._cache_prompts = cache_prompts
        self._answers: dict[str, str] = {}

    def is_available(self) -> bool:
        return self._prompt_fn is not None or sys.stdin.isatty()

    async def _prompt(self, message: str) -> str | None:
        if self._prompt_fn is not None:
            return await maybe_await(self._prompt_fn(message))
        if sys.stdin.isatty():
            return await asyncio.to_thread(getpass.getpass, message + " ")
        return None

    async def get_secret(self, ref: SecretReference) -> SecretProviderResult:
        key = ref.cache_key
        if self._cache_prompts and key in self._answers:
            return SecretProviderResult.hit(self._answers[key])

        value = await self._prompt(f'Enter value for secret "{ref.display_name}":')
        if not value:
            return SecretProviderResult.miss("User cancelled or provided empty value")

        if self._cache_prompts:
            self._answers[key] = value
        return SecretProviderResult.hit(value)

    def clear_cache(self) -> None:
        self._answers.clear()

    def remove_from_cache(self, name: str) -> None:
        for kind in SecretReferenceType:
            self._answers.pop(f"{kind.value}:{name}", None)


class _CommandError(Exception):
    """A CLI invocation exited with a non-zero status."""


class OnePasswordCLIProvider(SecretProvider):
    """Resolve secrets through the 1Password ``op`` command-line tool.

    ``op://vault/item/field`` references are read with ``op read``; other
    references look up the password field of the item with that title.

    Args:
        service_account_token: Exported as ``OP_SERVICE_ACCOUNT_TOKEN`` for
            each call. Defaults to the current ``op`` session.
        executable: Name or path of the CLI binary. Defaults to ``"op"``.
    """

    name = "1password-cli"
    description = "1Password CLI (op) integration"

    def __init__(self, service_account_token: str | None = None, executable: str = "op") -> None:
        self._token = service_account_token
        self._executable = executable

    def _env(self) -> dict[str, str]:
        env = dict(os.environ)
        if self._token:
            env["OP_SERVICE_ACCOUNT_TOKEN"] = self._token
        return env

    async def _run(self, *args: str) -> str:
        process = await asyncio.create_subprocess_exec(
            self._executable,
            *args,
            stdout=asyncio.subprocess.PIPE,
            stderr=asyncio.subprocess.PIPE,
            env=self._env(),
        )
        stdout, stderr = await process.communicate()
        if process.returncode != 0:
            raise _CommandError(stderr.decode().strip() or f"op exited with status {process.returncode}")
        return stdout.decode()

    async def is_available(self) -> bool:
        if shutil.which(self._executable) is None:
            return False
        try:
            output = await self._run("whoami", "--format=json")
        except (OSError, _CommandError):
            return False
        return "account" in output

    async def get_secret(self, ref: SecretReference) -> SecretProviderResult:
        try:
            if ref.type is SecretReferenceType.ONEPASSWORD and ref.path:
                output = await self._run("read", f"op://{ref.path}")
                return SecretProviderResult.hit(output.strip())

            output = await self._run("item", "get", ref.name, "--fields", "password", "--format=json")
        except (OSError, _CommandError) as exc:
            message = str(exc)
            if "not found" in message or "no item" in message:
                return SecretProviderResult.miss(f'Item "{ref.name}" not found in 1Password')
            if "not signed in" in message:
                return SecretProviderResult.miss('1Password CLI not signed in. Run "op signin" first.')
            return SecretProviderResult.miss(f"1Password CLI error: {message}")

        try:
            parsed = json.loads(output)
        except json.JSONDecodeError:
            return SecretProviderResult.hit(output.strip())
        if isinstance(parsed, dict) and "value" in parsed:
            return SecretProviderResult.hit(str(parsed["value"]))
        if isinstance(parsed, str):
            return SecretProviderResult.hit(parsed)
        return SecretProviderResult.hit(output.strip())

    async def list_secrets(self) -> list[str]:
        try:
            items = json.loads(await self._run("item", "list", "--format=json"))
        except (OSError, _CommandError, json.JSONDecodeError):
            logger.debug("Listing 1Password items failed", exc_info=True)
            return []
        return [item["title"] for item in items if "title" in item]


class OnePasswordConnectProvider(SecretProvider):
    """Resolve secrets from a self-hosted 1Password Connect server.

    Args:
        server_url: Connect server base URL.
        token: Connect server access token.
        default_vault_id: Vault searched for plain ``secret:``/``vault:``
            references. ``op://`` references name their vault explicitly.
        client: Optional pre-configured :class:`httpx.AsyncClient`.
        timeout: Request timeout in seconds for the default client.
    """

    name = "1password-connect"
    description = "1Password Connect Server integration"

    def __init__(
        self,
        server_url: str,
        token: str,
        default_vault_id: str | None = None,
        client: httpx.AsyncClient | None = None,
        timeout: float = 10.0,
    ) -> None:
        if not server_url:
            raise ValueError("server_url is required")
        self._server_url = server_url.rstrip("/")
        self._token = token
        self._default_vault_id = default_vault_id
        self._client = client
        self._timeout = timeout
        self._vault_ids: dict[str, str] = {}

    def _get_client(self) -> httpx.AsyncClient:
        if self._client is None:
            self._client = httpx.AsyncClient(
                base_url=self._server_url,
                headers={
                    "Authorization": f"Bearer {self._token}",
                    "Content-Type": "application/json",
                },
                timeout=self._timeout,
            )
        return self._client

    async def _get_json(self, path: str, **params: str) -> Any:
        response = await self._get_client().get(path, params=params or None)
        if response.status_code >= 400:
            return None
        return response.json()

    async def is_available(self) -> bool:
        try:
            response = await self._get_client().get("/health")
        except httpx.HTTPError:
            return False
        return response.is_success

    async def get_secret(self, ref: SecretReference) -> SecretProviderResult:
        try:
            if ref.type is SecretReferenceType.ONEPASSWORD and ref.path:
                return await self._get_by_path(ref.path)
            return await self._get_by_name(ref.name)
        except httpx.HTTPError as exc:
            return SecretProviderResult.miss(f"1Password Connect error: {exc}")

    async def _get_by_path(self, path: str) -> SecretProviderResult:
        parts = path.split("/")
        if len(parts) < 3:
            return SecretProviderResult.miss(
                f"Invalid 1Password path: {path}. Expected format: vault/item/field"
            )
        vault_name, item_title = parts[0], parts[1]
        field_name = "/".join(parts[2:])

        vault_id = await self._get_vault_id(vault_name)
        if vault_id is None:
            return SecretProviderResult.miss(f'Vault "{vault_name}" not found')

        item = await self._get_item_by_title(vault_id, item_title)
        if item is None:
            return SecretProviderResult.miss(f'Item "{item_title}" not found in vault "{vault_name}"')

        for entry in item.get("fields") or []:
            if field_name in (entry.get("label"), entry.get("id")):
                return SecretProviderResult.hit(entry.get("value", ""))
        return SecretProviderResult.miss(f'Field "{field_name}" not found in item "{item_title}"')

    async def _get_by_name(self, name: str) -> SecretProviderResult:
        if not self._default_vault_id:
            return SecretProviderResult.miss(
                "No default vault configured. Use op://vault/item/field format or set default_vault_id."
            )
        item = await self._get_item_by_title(self._default_vault_id, name)
        if item is None:
            return SecretProviderResult.miss()

        for entry in item.get("fields") or []:
            if entry.get("purpose") == "PASSWORD" or entry.get("type") == "CONCEALED":
                return SecretProviderResult.hit(entry.get("value", ""))
        return SecretProviderResult.miss("No secret field found in item")

    async def _get_vault_id(self, vault_name: str) -> str | None:
        if vault_name in self._vault_ids:
            return self._vault_ids[vault_name]
        for vault in await self._get_json("/v1/vaults") or []:
            if vault.get("name") == vault_name:
                self._vault_ids[vault_name] = vault["id"]
                return vault["id"]
        return None

    async def _get_item_by_title(self, vault_id: str, title: str) -> dict[str, Any] | None:
        items = await self._get_json(f"/v1/vaults/{vault_id}/items", filter=f'title eq "{title}"')
        if not items:
            return None
        return await self._get_json(f"/v1/vaults/{vault_id}/items/{items[0]['id']}")

    async def list_secrets(self) -> list[str]:
        if not self._default_vault_id:
            return []
        try:
            items = await self._get_json(f"/v1/vaults/{self._default_vault_id}/items")
        except httpx.HTTPError:
            return []
        return [item["title"] for item in items or [] if "title" in item]

    def clear_cache(self) -> None:
        self._vault_ids.clear()

    async def aclose(self) -> None:
        if self._client is not None:
            await self._client.aclose()
            self._client = None


class VaultSecretProvider(SecretProvider):
    """Resolve and store secrets in HashiCorp Vault (KV v2 engine).

    Requires ``hvac`` to be installed. The client is created lazily on
    first use, and blocking calls run in a worker thread.

    Name format: ``"path/to/secret"`` returns the ``"value"`` field,
    ``"path/to/secret#field"`` returns a specific field.

    Args:
        url: Vault server URL.
        token: Vault token. Defaults to ``VAULT_TOKEN`` environment variable.
        mount_point: KV v2 mount point. Defaults to ``"secret"``.
        namespace: Vault Enterprise namespace (optional).
    """

    name = "hashicorp-vault"
    description = "HashiCorp Vault KV v2 engine"

    def __init__(
        self,
        url: str,
        token: str | None = None,
        mount_point: str = "secret",
        namespace: str | None = None,
    ) -> None:
        if not url:
            raise ValueError("url is required")
        self._url = url
        self._token = token or os.environ.get("VAULT_TOKEN")
        self._mount_point = mount_point
        self._namespace = namespace
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is None:
            import hvac  # type: ignore[import-untyped]

            self._client = hvac.Client(url=self._url, token=self._token, namespace=self._namespace)
        return self._client

    @property
    def writable(self) -> bool:
        return True

    @staticmethod
    def _split(name: str) -> tuple[str, str]:
        if "#" in name:
            path, field = name.rsplit("#", 1)
            return path, field
        return name, "value"

    async def is_available(self) -> bool:
        try:
            return bool(await asyncio.to_thread(lambda: self._get_client().is_authenticated()))
        except Exception:
            logger.debug("Vault availability check failed", exc_info=True)
            return False

    async def get_secret(self, ref: SecretReference) -> SecretProviderResult:
        path, field = self._split(ref.display_name)
        try:
            response = await asyncio.to_thread(
                self._get_client().secrets.kv.v2.read_secret_version,
                path=path,
                mount_point=self._mount_point,
                raise_on_deleted_version=True,
            )
        except Exception as exc:
            if type(exc).__name__ == "InvalidPath":
                return SecretProviderResult.miss(f"Secret '{path}' not found in Vault")
            return SecretProviderResult.miss(f"Vault error: {exc}")

        data = response.get("data", {}).get("data", {})
        value = data.get(field)
        if value is None:
            return SecretProviderResult.miss(f"Field '{field}' not found in secret '{path}'")
        return SecretProviderResult.hit(str(value))

    async def set_secret(self, name: str, value: str) -> None:
        path, field = self._split(name)
        await asyncio.to_thread(
            self._get_client().secrets.kv.v2.create_or_update_secret,
            path=path,
            secret={field: value},
            mount_point=self._mount_point,
        )

    async def delete_secret(self, name: str) -> None:
        path, _ = self._split(name)
        await asyncio.to_thread(
            self._get_client().secrets.kv.v2.delete_metadata_and_all_versions,
            path=path,
            mount_point=self._mount_point,
        )

    async def list_secrets(self) -> list[str]:
        try:
            response = await asyncio.to_thread(
                self._get_client().secrets.kv.v2.list_secrets,
                path="",
                mount_point=self._mount_point,
            )
        except Exception:
            logger.debug("Listing Vault secrets failed", exc_info=True)
            return []
        return list(response.get("data", {}).get("keys", []))


class AwsSecretsManagerProvider(SecretProvider):
    """Resolve secrets from AWS Secrets Manager.

    Requires ``boto3`` to be installed. The client is created lazily on
    first use, and blocking calls run in a worker thread.

    Args:
        region_name: AWS region. Defaults to boto3's default region.
    """

    name = "aws-secrets-manager"
    description = "AWS Secrets Manager"

    def __init__(self, region_name: str | None = None) -> None:
        self._region = region_name
        self._client: Any = None

    def _get_client(self) -> Any:
        if self._client is None:
            import boto3  # type: ignore[import-untyped]

            self._client = boto3.client("secretsmanager", region_name=self._region)
        return self._client

    async def get_secret(self, ref: SecretReference) -> SecretProviderResult:
        try:
            response = await asyncio.to_thread(
                self._get_client().get_secret_value, SecretId=ref.display_name
            )
        except Exception as exc:
            code = getattr(exc, "response", {}).get("Error", {}).get("Code")
            if code == "ResourceNotFoundException":
                return SecretProviderResult.miss(f"Secret '{ref.display_name}' not found in AWS")
            return SecretProviderResult.miss(f"AWS Secrets Manager error: {exc}")

        value = response.get("SecretString")
        if value is None:
            return SecretProviderResult.miss(f"Secret '{ref.display_name}' has no string value")
        return SecretProviderResult.hit(value)

    async def list_secrets(self) -> list[str]:
        try:
            response = await asyncio.to_thread(self._get_client().list_secrets)
        except Exception:
            logger.debug("Listing AWS secrets failed", exc_info=True)
            return []
        return [entry["Name"] for entry in response.get("SecretList", [])]


class EncryptedFileSecretProvider(SecretProvider):
    """A local, password-protected secret vault stored as a JSON file.

    Each value is encrypted with AES-256-GCM under a key derived from the
    vault password with PBKDF2-HMAC-SHA256. The vault must be unlocked
    with :meth:`unlock` before secrets can be read or written.

    Args:
        path: Location of the vault file; created on first write.
        iterations: PBKDF2 iteration count. Defaults to 100000.
    """

    name = "encrypted-file"
    description = "Password-protected local secret vault"

    _VERIFIER = b"httprex-vault"

    def __init__(self, path: str | Path, iterations: int = 100_000) -> None:
        self._path = Path(path)
        self._iterations = iterations
        self._key: bytes | None = None

    @property
    def writable(self) -> bool:
        return True

    def is_available(self) -> bool:
        return self._key is not None

    def is_unlocked(self) -> bool:
        return self._key is not None

    def _load(self) -> dict[str, Any]:
        if not self._path.exists():
            return {}
        return json.loads(self._path.read_text(encoding="utf-8"))

    def _save(self, document: dict[str, Any]) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        self._path.write_text(json.dumps(document, indent=2), encoding="utf-8")

    def _derive(self, password: str, salt: bytes) -> bytes:
        from cryptography.hazmat.primitives import hashes
        from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

        kdf = PBKDF2HMAC(algorithm=hashes.SHA256(), length=32, salt=salt, iterations=self._iterations)
        return kdf.derive(password.encode("utf-8"))

    def _encrypt(self, key: bytes, plaintext: bytes) -> dict[str, str]:
        from cryptography.hazmat.primitives.ciphers.aead import AESGCM

        nonce = os.urandom(12)
        ciphertext = AESGCM(key).encrypt(nonce, plaintext, None)
        return {
            "nonce": base64.b64encode(nonce).decode("ascii"),
            "ciphertext": base64.b64encode(ciphertext).decode("ascii"),
        }

    def _decrypt(self, key: bytes, entry: dict[str, str]) -> bytes:
        from cryptography.hazmat.primitives.ciphers.aead import AESGCM

        nonce = base64.b64decode(entry["nonce"])
        ciphertext = base64.b64decode(entry["ciphertext"])
        return AESGCM(key).decrypt(nonce, ciphertext, None)

    def unlock(self, password: str) -> None:
        """Derive the vault key from *password*, creating the vault if needed.

        Raises:
            ValueError: If the password does not match an existing vault.
        """
        from cryptography.exceptions import InvalidTag

        document = self._load()
        if "salt" in document:
            salt = base64.b64decode(document["salt"])
            key = self._derive(password, salt)
            try:
                self._decrypt(key, document["verifier"])
            except InvalidTag:
                raise ValueError("Incorrect vault password") from None
        else:
            salt = os.urandom(16)
            key = self._derive(password, salt)
            document = {
                "salt": base64.b64encode(salt).decode("ascii"),
                "verifier": self._encrypt(key, self._VERIFIER),
                "secrets": {},
            }
            self._save(document)
        self._key = key

    def lock(self) -> None:
        """Forget the derived key."""
        self._key = None

    async def get_secret(self, ref: SecretReference) -> SecretProviderResult:
        if self._key is None:
            return SecretProviderResult.miss("Vault not unlocked. Call unlock() with the password first.")
        from cryptography.exceptions import InvalidTag

        entry = self._load().get("secrets", {}).get(ref.display_name)
        if entry is None:
            return SecretProviderResult.miss()
        try:
            return SecretProviderResult.hit(self._decrypt(self._key, entry).decode("utf-8"))
        except (InvalidTag, KeyError, ValueError) as exc:
            return SecretProviderResult.miss(f"Decryption failed: {exc or type(exc).__name__}")

    async def set_secret(self, name: str, value: str) -> None:
        if self._key is None:
            raise SecretVaultLockedError(self.name)
        document = self._load()
        document.setdefault("secrets", {})[name] = self._encrypt(self._key, value.encode("utf-8"))
        self._save(document)

    async def delete_secret(self, name: str) -> None:
        document = self._load()
        if document.get("secrets", {}).pop(name, None) is not None:
            self._save(document)

    async def list_secrets(self) -> list[str]:
        return sorted(self._load().get("secrets", {}))

    async def clear_all(self) -> None:
        for name in await self.list_secrets():
            await self.delete_secret(name)
