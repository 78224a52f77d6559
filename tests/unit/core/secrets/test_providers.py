"""Tests for built-in secret providers."""

from __future__ import annotations

import json
from pathlib import Path
from typing import Any
from unittest.mock import AsyncMock, MagicMock, patch

import httpx
import pytest

from httprex.core.exceptions import SecretVaultLockedError
from httprex.core.secrets.base import SecretReference, SecretReferenceType
from httprex.core.secrets.providers import (
    AwsSecretsManagerProvider,
    EncryptedFileSecretProvider,
    EnvSecretProvider,
    OnePasswordCLIProvider,
    OnePasswordConnectProvider,
    PromptSecretProvider,
    VaultSecretProvider,
    _CommandError,
)


def _secret(name: str) -> SecretReference:
    return SecretReference(SecretReferenceType.SECRET, name)


def _op(path: str) -> SecretReference:
    return SecretReference(SecretReferenceType.ONEPASSWORD, f"op://{path}", path=path)


# ---------------------------------------------------------------------------
# EnvSecretProvider
# ---------------------------------------------------------------------------


class TestEnvSecretProvider:
    @pytest.mark.asyncio
    async def test_exact_name(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("MY_SECRET", "secret-value")

        result = await EnvSecretProvider().get_secret(_secret("MY_SECRET"))

        assert result.found
        assert result.value == "secret-value"

    @pytest.mark.asyncio
    async def test_normalized_name(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("api-token", raising=False)
        monkeypatch.setenv("API_TOKEN", "abc")

        result = await EnvSecretProvider().get_secret(_secret("api-token"))

        assert result.value == "abc"

    @pytest.mark.asyncio
    async def test_prefix(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.setenv("HTTPREX_DB_PASSWORD", "pw")
        provider = EnvSecretProvider(prefix="HTTPREX_")

        assert (await provider.get_secret(_secret("db.password"))).value == "pw"
        assert "DB_PASSWORD" in await provider.list_secrets()

    @pytest.mark.asyncio
    async def test_missing(self, monkeypatch: pytest.MonkeyPatch) -> None:
        monkeypatch.delenv("NONEXISTENT_VAR", raising=False)

        result = await EnvSecretProvider().get_secret(_secret("NONEXISTENT_VAR"))

        assert not result.found
        assert "NONEXISTENT_VAR" in (result.error or "")


# ---------------------------------------------------------------------------
# PromptSecretProvider
# ---------------------------------------------------------------------------


class TestPromptSecretProvider:
    @pytest.mark.asyncio
    async def test_prompts_once_per_secret(self) -> None:
        prompt = MagicMock(return_value="typed")
        provider = PromptSecretProvider(prompt_fn=prompt)

        first = await provider.get_secret(_secret("token"))
        second = await provider.get_secret(_secret("token"))

        assert first.value == second.value == "typed"
        prompt.assert_called_once_with('Enter value for secret "token":')

    @pytest.mark.asyncio
    async def test_async_prompt(self) -> None:
        provider = PromptSecretProvider(prompt_fn=AsyncMock(return_value="async-typed"))
        assert (await provider.get_secret(_secret("token"))).value == "async-typed"

    @pytest.mark.asyncio
    @pytest.mark.parametrize("answer", ["", None])
    async def test_cancelled(self, answer: str | None) -> None:
        provider = PromptSecretProvider(prompt_fn=lambda _: answer)

        result = await provider.get_secret(_secret("token"))

        assert not result.found
        assert result.error == "User cancelled or provided empty value"

    @pytest.mark.asyncio
    async def test_clear_and_remove_cache(self) -> None:
        prompt = MagicMock(return_value="v")
        provider = PromptSecretProvider(prompt_fn=prompt)
        await provider.get_secret(_secret("a"))

        provider.remove_from_cache("a")
        await provider.get_secret(_secret("a"))
        provider.clear_cache()
        await provider.get_secret(_secret("a"))

        assert prompt.call_count == 3

    def test_availability(self) -> None:
        assert PromptSecretProvider(prompt_fn=lambda _: "x").is_available()
        with patch("httprex.core.secrets.providers.sys.stdin") as stdin:
            stdin.isatty.return_value = False
            assert not PromptSecretProvider().is_available()


# ---------------------------------------------------------------------------
# OnePasswordCLIProvider
# ---------------------------------------------------------------------------


class TestOnePasswordCLIProvider:
    @pytest.mark.asyncio
    async def test_reads_op_path(self) -> None:
        provider = OnePasswordCLIProvider()
        provider._run = AsyncMock(return_value="ghp_123\n")  # type: ignore[method-assign]

        result = await provider.get_secret(_op("Private/GitHub/token"))

        assert result.value == "ghp_123"
        provider._run.assert_awaited_once_with("read", "op://Private/GitHub/token")

    @pytest.mark.asyncio
    async def test_item_password_json(self) -> None:
        provider = OnePasswordCLIProvider()
        provider._run = AsyncMock(return_value=json.dumps({"value": "pw"}))  # type: ignore[method-assign]

        result = await provider.get_secret(_secret("Database"))

        assert result.value == "pw"
        provider._run.assert_awaited_once_with(
            "item", "get", "Database", "--fields", "password", "--format=json"
        )

    @pytest.mark.asyncio
    @pytest.mark.parametrize(
        ("stderr", "expected"),
        [
            ('"Database" isn\'t an item. Specify the item with its UUID. not found', "not found in 1Password"),
            ("you are not signed in", "not signed in"),
            ("unexpected failure", "1Password CLI error"),
        ],
    )
    async def test_error_mapping(self, stderr: str, expected: str) -> None:
        provider = OnePasswordCLIProvider()
        provider._run = AsyncMock(side_effect=_CommandError(stderr))  # type: ignore[method-assign]

        result = await provider.get_secret(_secret("Database"))

        assert not result.found
        assert expected in (result.error or "")

    @pytest.mark.asyncio
    async def test_run_passes_service_account_token(self) -> None:
        process = MagicMock()
        process.communicate = AsyncMock(return_value=(b"out", b""))
        process.returncode = 0
        provider = OnePasswordCLIProvider(service_account_token="ops_abc")

        with patch(
            "httprex.core.secrets.providers.asyncio.create_subprocess_exec",
            new=AsyncMock(return_value=process),
        ) as spawn:
            output = await provider._run("whoami")

        assert output == "out"
        assert spawn.call_args.args[:2] == ("op", "whoami")
        assert spawn.call_args.kwargs["env"]["OP_SERVICE_ACCOUNT_TOKEN"] == "ops_abc"

    @pytest.mark.asyncio
    async def test_run_nonzero_exit(self) -> None:
        process = MagicMock()
        process.communicate = AsyncMock(return_value=(b"", b"boom"))
        process.returncode = 1

        with patch(
            "httprex.core.secrets.providers.asyncio.create_subprocess_exec",
            new=AsyncMock(return_value=process),
        ):
            with pytest.raises(_CommandError, match="boom"):
                await OnePasswordCLIProvider()._run("whoami")

    @pytest.mark.asyncio
    async def test_unavailable_without_binary(self) -> None:
        with patch("httprex.core.secrets.providers.shutil.which", return_value=None):
            assert not await OnePasswordCLIProvider().is_available()

    @pytest.mark.asyncio
    async def test_available_when_signed_in(self) -> None:
        provider = OnePasswordCLIProvider()
        provider._run = AsyncMock(return_value='{"account_uuid": "A1"}')  # type: ignore[method-assign]
        with patch("httprex.core.secrets.providers.shutil.which", return_value="/usr/bin/op"):
            assert await provider.is_available()


# ---------------------------------------------------------------------------
# OnePasswordConnectProvider
# ---------------------------------------------------------------------------

_ITEM = {
    "id": "item-1",
    "title": "GitHub",
    "fields": [
        {"id": "username", "label": "username", "value": "octocat"},
        {"id": "password", "label": "password", "purpose": "PASSWORD", "value": "hunter2"},
        {"id": "f3", "label": "token", "type": "CONCEALED", "value": "ghp_123"},
    ],
}


def _connect_handler(request: httpx.Request) -> httpx.Response:
    assert request.headers["Authorization"] == "Bearer connect-token"
    path = request.url.path
    if path == "/health":
        return httpx.Response(200, json={"name": "1Password Connect API"})
    if path == "/v1/vaults":
        return httpx.Response(200, json=[{"id": "vault-1", "name": "Private"}])
    if path == "/v1/vaults/vault-1/items":
        wanted = request.url.params.get("filter")
        if wanted == 'title eq "GitHub"':
            return httpx.Response(200, json=[{"id": "item-1", "title": "GitHub"}])
        if wanted is None:
            return httpx.Response(200, json=[{"id": "item-1", "title": "GitHub"}])
        return httpx.Response(200, json=[])
    if path == "/v1/vaults/vault-1/items/item-1":
        return httpx.Response(200, json=_ITEM)
    return httpx.Response(404, json={"message": "not found"})


def _connect_provider(**kwargs: Any) -> OnePasswordConnectProvider:
    client = httpx.AsyncClient(
        base_url="https://connect.example",
        headers={"Authorization": "Bearer connect-token"},
        transport=httpx.MockTransport(_connect_handler),
    )
    return OnePasswordConnectProvider("https://connect.example", "connect-token", client=client, **kwargs)


class TestOnePasswordConnectProvider:
    def test_requires_url(self) -> None:
        with pytest.raises(ValueError, match="server_url"):
            OnePasswordConnectProvider("", "t")

    @pytest.mark.asyncio
    async def test_health(self) -> None:
        assert await _connect_provider().is_available()

    @pytest.mark.asyncio
    async def test_field_by_label(self) -> None:
        result = await _connect_provider().get_secret(_op("Private/GitHub/token"))
        assert result.value == "ghp_123"

    @pytest.mark.asyncio
    async def test_missing_vault(self) -> None:
        result = await _connect_provider().get_secret(_op("Work/GitHub/token"))
        assert result.error == 'Vault "Work" not found'

    @pytest.mark.asyncio
    async def test_missing_field(self) -> None:
        result = await _connect_provider().get_secret(_op("Private/GitHub/otp"))
        assert result.error == 'Field "otp" not found in item "GitHub"'

    @pytest.mark.asyncio
    async def test_short_path(self) -> None:
        result = await _connect_provider().get_secret(_op("Private/GitHub"))
        assert "Invalid 1Password path" in (result.error or "")

    @pytest.mark.asyncio
    async def test_name_uses_default_vault_password_field(self) -> None:
        provider = _connect_provider(default_vault_id="vault-1")

        result = await provider.get_secret(_secret("GitHub"))

        assert result.value == "hunter2"
        assert await provider.list_secrets() == ["GitHub"]

    @pytest.mark.asyncio
    async def test_name_without_default_vault(self) -> None:
        result = await _connect_provider().get_secret(_secret("GitHub"))
        assert "No default vault configured" in (result.error or "")

    @pytest.mark.asyncio
    async def test_transport_error_is_a_miss(self) -> None:
        def fail(request: httpx.Request) -> httpx.Response:
            raise httpx.ConnectError("refused", request=request)

        client = httpx.AsyncClient(base_url="https://c", transport=httpx.MockTransport(fail))
        provider = OnePasswordConnectProvider("https://c", "t", client=client)

        result = await provider.get_secret(_op("Private/GitHub/token"))

        assert not result.found
        assert "refused" in (result.error or "")
        assert not await provider.is_available()


# ---------------------------------------------------------------------------
# VaultSecretProvider
# ---------------------------------------------------------------------------


class InvalidPath(Exception):
    """Stand-in for ``hvac.exceptions.InvalidPath``."""


class TestVaultSecretProvider:
    def _provider(self) -> tuple[VaultSecretProvider, MagicMock]:
        provider = VaultSecretProvider(url="https://vault.example", token="t")
        client = MagicMock()
        provider._client = client
        return provider, client

    def test_requires_url(self) -> None:
        with pytest.raises(ValueError, match="url"):
            VaultSecretProvider(url="")

    @pytest.mark.asyncio
    async def test_reads_value_field(self) -> None:
        provider, client = self._provider()
        client.secrets.kv.v2.read_secret_version.return_value = {"data": {"data": {"value": "pw"}}}

        result = await provider.get_secret(_secret("db/password"))

        assert result.value == "pw"
        client.secrets.kv.v2.read_secret_version.assert_called_once_with(
            path="db/password", mount_point="secret", raise_on_deleted_version=True
        )

    @pytest.mark.asyncio
    async def test_reads_named_field(self) -> None:
        provider, client = self._provider()
        client.secrets.kv.v2.read_secret_version.return_value = {"data": {"data": {"user": "admin"}}}

        assert (await provider.get_secret(_secret("db#user"))).value == "admin"

    @pytest.mark.asyncio
    async def test_missing_field(self) -> None:
        provider, client = self._provider()
        client.secrets.kv.v2.read_secret_version.return_value = {"data": {"data": {}}}

        result = await provider.get_secret(_secret("db"))

        assert result.error == "Field 'value' not found in secret 'db'"

    @pytest.mark.asyncio
    async def test_invalid_path(self) -> None:
        provider, client = self._provider()
        client.secrets.kv.v2.read_secret_version.side_effect = InvalidPath("no")

        result = await provider.get_secret(_secret("nope"))

        assert result.error == "Secret 'nope' not found in Vault"

    @pytest.mark.asyncio
    async def test_writable(self) -> None:
        provider, client = self._provider()

        assert provider.writable
        await provider.set_secret("api#token", "v")
        await provider.delete_secret("api#token")

        client.secrets.kv.v2.create_or_update_secret.assert_called_once_with(
            path="api", secret={"token": "v"}, mount_point="secret"
        )
        client.secrets.kv.v2.delete_metadata_and_all_versions.assert_called_once_with(
            path="api", mount_point="secret"
        )

    @pytest.mark.asyncio
    async def test_availability(self) -> None:
        provider, client = self._provider()
        client.is_authenticated.return_value = True
        assert await provider.is_available()

        client.is_authenticated.side_effect = RuntimeError("sealed")
        assert not await provider.is_available()

    def test_lazy_client_init(self) -> None:
        provider = VaultSecretProvider(url="https://vault.example", token="t")
        mock_hvac = MagicMock()

        with patch.dict("sys.modules", {"hvac": mock_hvac}):
            provider._get_client()

        mock_hvac.Client.assert_called_once_with(url="https://vault.example", token="t", namespace=None)


# ---------------------------------------------------------------------------
# AwsSecretsManagerProvider
# ---------------------------------------------------------------------------


class TestAwsSecretsManagerProvider:
    @pytest.mark.asyncio
    async def test_resolves_secret(self) -> None:
        provider = AwsSecretsManagerProvider(region_name="us-east-1")
        client = MagicMock()
        client.get_secret_value.return_value = {"SecretString": "my-db-password"}
        provider._client = client

        result = await provider.get_secret(_secret("prod/db/password"))

        assert result.value == "my-db-password"
        client.get_secret_value.assert_called_once_with(SecretId="prod/db/password")

    @pytest.mark.asyncio
    async def test_not_found(self) -> None:
        error = RuntimeError("missing")
        error.response = {"Error": {"Code": "ResourceNotFoundException"}}  # type: ignore[attr-defined]
        provider = AwsSecretsManagerProvider()
        provider._client = MagicMock()
        provider._client.get_secret_value.side_effect = error

        result = await provider.get_secret(_secret("x"))

        assert result.error == "Secret 'x' not found in AWS"

    @pytest.mark.asyncio
    async def test_other_error(self) -> None:
        provider = AwsSecretsManagerProvider()
        provider._client = MagicMock()
        provider._client.get_secret_value.side_effect = RuntimeError("access denied")

        result = await provider.get_secret(_secret("x"))

        assert not result.found
        assert "access denied" in (result.error or "")

    def test_lazy_client_init(self) -> None:
        provider = AwsSecretsManagerProvider(region_name="eu-west-1")
        assert provider._client is None

        mock_boto3 = MagicMock()
        with patch.dict("sys.modules", {"boto3": mock_boto3}):
            client = provider._get_client()

        mock_boto3.client.assert_called_once_with("secretsmanager", region_name="eu-west-1")
        assert client is not None


# ---------------------------------------------------------------------------
# EncryptedFileSecretProvider
# ---------------------------------------------------------------------------


class TestEncryptedFileSecretProvider:
    def _provider(self, tmp_path: Path) -> EncryptedFileSecretProvider:
        return EncryptedFileSecretProvider(tmp_path / "vault.json", iterations=1000)

    @pytest.mark.asyncio
    async def test_round_trip_across_instances(self, tmp_path: Path) -> None:
        writer = self._provider(tmp_path)
        writer.unlock("correct horse")
        await writer.set_secret("api-token", "s3cr3t")

        reader = self._provider(tmp_path)
        reader.unlock("correct horse")
        result = await reader.get_secret(_secret("api-token"))

        assert result.value == "s3cr3t"
        assert "s3cr3t" not in (tmp_path / "vault.json").read_text()

    def test_wrong_password(self, tmp_path: Path) -> None:
        self._provider(tmp_path).unlock("right")

        with pytest.raises(ValueError, match="Incorrect vault password"):
            self._provider(tmp_path).unlock("wrong")

    @pytest.mark.asyncio
    async def test_locked(self, tmp_path: Path) -> None:
        provider = self._provider(tmp_path)

        assert not provider.is_available()
        result = await provider.get_secret(_secret("a"))
        assert "not unlocked" in (result.error or "")
        with pytest.raises(SecretVaultLockedError):
            await provider.set_secret("a", "b")

    @pytest.mark.asyncio
    async def test_lock_forgets_key(self, tmp_path: Path) -> None:
        provider = self._provider(tmp_path)
        provider.unlock("pw")
        assert provider.is_unlocked()

        provider.lock()

        assert not provider.is_unlocked()

    @pytest.mark.asyncio
    async def test_list_delete_and_clear(self, tmp_path: Path) -> None:
        provider = self._provider(tmp_path)
        provider.unlock("pw")
        await provider.set_secret("b", "2")
        await provider.set_secret("a", "1")

        assert await provider.list_secrets() == ["a", "b"]
        await provider.delete_secret("a")
        assert await provider.list_secrets() == ["b"]
        assert not (await provider.get_secret(_secret("a"))).found

        await provider.clear_all()
        assert await provider.list_secrets() == []
