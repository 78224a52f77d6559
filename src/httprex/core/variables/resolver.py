"""Placeholder substitution across layered variable sources."""

from __future__ import annotations

import dataclasses
import logging
import re
from collections.abc import Awaitable, Callable, Mapping
from dataclasses import dataclass, field
from typing import Any

from httprex.core.parser.lexer import VARIABLE_PATTERN
from httprex.core.parser.types import ParsedRequest, StructuredBody, TextBody
from httprex.core.secrets.base import SecretReference
from httprex.core.secrets.manager import SecretManager
from httprex.core.variables.environment import EnvironmentManager
from httprex.core.variables.storage import VariableStorage
from httprex.core.variables.system import is_system_variable, resolve_system_variable

logger = logging.getLogger(__name__)


@dataclass
class VariableContext:
    """Explicitly supplied variable sources.

    Args:
        from_environment: Environment-level values, applied above the
            environment manager's current environment.
        from_file: ``@name = value`` assignments of the document.
        from_system: Caller-supplied overrides with the highest precedence.
    """

    from_environment: dict[str, str] = field(default_factory=dict)
    from_file: dict[str, str] = field(default_factory=dict)
    from_system: dict[str, str] = field(default_factory=dict)


class VariableResolver:
    """Substitute ``{{name}}`` placeholders in parsed requests.

    Variable map precedence, lowest first: environment manager, then
    ``context.from_environment``, ``context.from_file``, the last global
    storage snapshot, and ``context.from_system``. For each placeholder a
    secret reference (async path only) is tried first, then system
    variables, then the map. Anything unmatched is left as written.

    The async path reloads the global snapshot from *storage* on every
    request. The sync path uses whatever snapshot was last taken by
    :meth:`load_global_variables` or :meth:`set_global_variables`.

    Args:
        context: Explicit variable sources.
        environment_manager: Supplies the current environment's variables
            and its name for environment-restricted secret providers.
        secret_manager: Resolves ``secret:``/``vault:``/``op://`` names.
        storage: Global variable storage read by
            :meth:`load_global_variables`.
    """

    def __init__(
        self,
        context: VariableContext | None = None,
        environment_manager: EnvironmentManager | None = None,
        secret_manager: SecretManager | None = None,
        storage: VariableStorage | None = None,
    ) -> None:
        self._context = context or VariableContext()
        self._environment_manager = environment_manager
        self._secret_manager = secret_manager
        self._storage = storage
        self._global_variables: dict[str, str] = {}

    @property
    def context(self) -> VariableContext:
        return self._context

    def set_context(self, context: VariableContext) -> None:
        self._context = context

    def update_context(
        self,
        from_environment: Mapping[str, str] | None = None,
        from_file: Mapping[str, str] | None = None,
        from_system: Mapping[str, str] | None = None,
    ) -> None:
        """Replace only the context sources that are given."""
        changes: dict[str, dict[str, str]] = {}
        if from_environment is not None:
            changes["from_environment"] = dict(from_environment)
        if from_file is not None:
            changes["from_file"] = dict(from_file)
        if from_system is not None:
            changes["from_system"] = dict(from_system)
        self._context = dataclasses.replace(self._context, **changes)

    async def load_global_variables(self) -> None:
        """Snapshot the global storage into the variable map."""
        if self._storage is None:
            return
        self._global_variables = dict(await self._storage.get_all())
        logger.debug("Loaded %d global variables", len(self._global_variables))

    def set_global_variables(self, variables: Mapping[str, str]) -> None:
        """Replace the global snapshot without reading storage."""
        self._global_variables = dict(variables)

    def build_variable_map(self) -> dict[str, str]:
        variables: dict[str, str] = {}
        if self._environment_manager is not None:
            variables.update(self._environment_manager.get_environment_variables())
        variables.update(self._context.from_environment)
        variables.update(self._context.from_file)
        variables.update(self._global_variables)
        variables.update(self._context.from_system)
        return variables

    def _environment_name(self) -> str | None:
        if self._environment_manager is None:
            return None
        return self._environment_manager.get_current_environment_name()

    # ------------------------------------------------------------------
    # Strings
    # ------------------------------------------------------------------

    def resolve_string(self, text: str, variables: Mapping[str, str] | None = None) -> str:
        """Substitute system variables and map values in *text*."""
        if variables is None:
            variables = self.build_variable_map()

        def _replace(match: re.Match[str]) -> str:
            name = match.group(1).strip()
            if is_system_variable(name):
                value = resolve_system_variable(name)
                if value is not None:
                    return value
            if name in variables:
                return variables[name]
            return match.group(0)

        return VARIABLE_PATTERN.sub(_replace, text)

    async def resolve_string_async(
        self,
        text: str,
        variables: Mapping[str, str] | None = None,
    ) -> str:
        """Like :meth:`resolve_string`, consulting the secret manager first."""
        if variables is None:
            variables = self.build_variable_map()
        environment = self._environment_name()

        parts: list[str] = []
        position = 0
        for match in VARIABLE_PATTERN.finditer(text):
            parts.append(text[position : match.start()])
            position = match.end()

            name = match.group(1).strip()
            ref = SecretReference.parse(name)
            if ref is not None and self._secret_manager is not None:
                result = await self._secret_manager.get_secret(ref, environment)
                if result.found and result.value is not None:
                    parts.append(result.value)
                    continue
                logger.debug("Secret %s unresolved: %s", name, result.error)

            parts.append(self.resolve_string(match.group(0), variables))
        parts.append(text[position:])
        return "".join(parts)

    # ------------------------------------------------------------------
    # Requests
    # ------------------------------------------------------------------

    def resolve_request(self, request: ParsedRequest) -> ParsedRequest:
        """Return a copy of *request* with placeholders substituted.

        Secret references are not resolved on this path; use
        :meth:`resolve_request_async` for that.
        """
        variables = self.build_variable_map()

        def _resolve(text: str) -> str:
            return self.resolve_string(text, variables)

        headers = {key: _resolve(value) for key, value in request.headers.items()}
        body = request.body
        if isinstance(body, TextBody):
            body = TextBody(_resolve(body.text))
        elif isinstance(body, StructuredBody):
            body = StructuredBody(_walk(body.data, _resolve))
        return dataclasses.replace(request, url=_resolve(request.url), headers=headers, body=body)

    async def resolve_request_async(self, request: ParsedRequest) -> ParsedRequest:
        """Reload global variables, then substitute secrets and variables."""
        await self.load_global_variables()
        variables = self.build_variable_map()

        async def _resolve(text: str) -> str:
            return await self.resolve_string_async(text, variables)

        url = await _resolve(request.url)
        headers = {key: await _resolve(value) for key, value in request.headers.items()}
        body = request.body
        if isinstance(body, TextBody):
            body = TextBody(await _resolve(body.text))
        elif isinstance(body, StructuredBody):
            body = StructuredBody(await _walk_async(body.data, _resolve))
        return dataclasses.replace(request, url=url, headers=headers, body=body)

    def get_unresolved_variables(self, request: ParsedRequest) -> list[str]:
        """Names that no source can satisfy, in order of first appearance.

        Secret references and system variables are never reported.
        """
        variables = self.build_variable_map()
        unresolved: dict[str, None] = {}

        def _scan(text: str) -> str:
            for match in VARIABLE_PATTERN.finditer(text):
                name = match.group(1).strip()
                if SecretReference.parse(name) is not None or is_system_variable(name):
                    continue
                if name not in variables:
                    unresolved.setdefault(name)
            return text

        _scan(request.url)
        for value in request.headers.values():
            _scan(value)
        if isinstance(request.body, TextBody):
            _scan(request.body.text)
        elif isinstance(request.body, StructuredBody):
            _walk(request.body.data, _scan)
        return list(unresolved)


def _walk(value: Any, fn: Callable[[str], str]) -> Any:
    """Apply *fn* to every string inside nested dicts and lists."""
    if isinstance(value, str):
        return fn(value)
    if isinstance(value, dict):
        return {key: _walk(item, fn) for key, item in value.items()}
    if isinstance(value, list):
        return [_walk(item, fn) for item in value]
    return value


async def _walk_async(value: Any, fn: Callable[[str], Awaitable[str]]) -> Any:
    if isinstance(value, str):
        return await fn(value)
    if isinstance(value, dict):
        return {key: await _walk_async(item, fn) for key, item in value.items()}
    if isinstance(value, list):
        return [await _walk_async(item, fn) for item in value]
    return value
