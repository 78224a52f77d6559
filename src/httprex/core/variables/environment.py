"""Named variable environments loaded from ``http-client.env.json`` files."""

from __future__ import annotations

import json
import logging
import threading
from collections.abc import Callable, Mapping
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

from httprex.core.exceptions import EnvironmentFileError, EnvironmentNotFoundError
from httprex.core.utils import safe_call

logger = logging.getLogger(__name__)

SHARED_KEY = "$shared"

EnvironmentListener = Callable[["str | None"], None]


@dataclass(frozen=True)
class Environment:
    """One named environment.

    Args:
        name: Environment name, e.g. ``"staging"``.
        variables: ``$shared`` values merged with this environment's own;
            the environment's own values win.
        shared_variables: Keys whose value came from ``$shared``.
    """

    name: str
    variables: dict[str, str] = field(default_factory=dict)
    shared_variables: tuple[str, ...] = ()


def _stringify(value: Any) -> str:
    return value if isinstance(value, str) else json.dumps(value)


def _string_map(name: str, values: Any) -> dict[str, str]:
    if not isinstance(values, Mapping):
        raise EnvironmentFileError(f'environment "{name}" must be an object')
    return {str(key): _stringify(value) for key, value in values.items()}


class EnvironmentManager:
    """Hold the loaded environments and the currently selected one.

    Args:
        auto_select_first: Select the first environment after each load
            when nothing is selected.
        on_environment_change: Called with the new environment name (or
            ``None``) whenever the selection changes.
    """

    def __init__(
        self,
        auto_select_first: bool = False,
        on_environment_change: EnvironmentListener | None = None,
    ) -> None:
        self._auto_select_first = auto_select_first
        self._on_environment_change = on_environment_change
        self._environments: dict[str, Environment] = {}
        self._current: str | None = None
        self._listeners: list[EnvironmentListener] = []
        self._lock = threading.RLock()

    # ------------------------------------------------------------------
    # Loading
    # ------------------------------------------------------------------

    def load_environments(self, data: str | bytes | Mapping[str, Any]) -> None:
        """Replace all environments with those in *data*.

        Args:
            data: JSON text or an already decoded mapping of environment
                name to variables, with optional ``$shared`` defaults.

        Raises:
            EnvironmentFileError: If *data* is not valid JSON or is not
                shaped as an environment file.
        """
        if isinstance(data, (str, bytes)):
            try:
                data = json.loads(data)
            except json.JSONDecodeError as exc:
                raise EnvironmentFileError(str(exc), exc) from exc
        if not isinstance(data, Mapping):
            raise EnvironmentFileError("top level must be an object")

        shared = _string_map(SHARED_KEY, data.get(SHARED_KEY) or {})
        environments: dict[str, Environment] = {}
        for name, values in data.items():
            if name == SHARED_KEY:
                continue
            own = _string_map(name, values or {})
            environments[name] = Environment(
                name=name,
                variables={**shared, **own},
                shared_variables=tuple(key for key in shared if key not in own),
            )

        with self._lock:
            self._environments = environments
            stale = self._current is not None and self._current not in environments
        logger.debug("Loaded %d environments", len(environments))

        if stale:
            self.set_current_environment(None)
        if self._auto_select_first and self._current is None and environments:
            self.set_current_environment(next(iter(environments)))

    def load_from_file(self, path: str | Path) -> None:
        """Load environments from a JSON file.

        Raises:
            EnvironmentFileError: If the file cannot be read or decoded.
        """
        try:
            text = Path(path).read_text(encoding="utf-8")
        except OSError as exc:
            raise EnvironmentFileError(f"cannot read {path}: {exc}", exc) from exc
        self.load_environments(text)

    # ------------------------------------------------------------------
    # Selection
    # ------------------------------------------------------------------

    def set_current_environment(self, name: str | None) -> None:
        """Select *name*, or clear the selection with ``None``.

        Raises:
            EnvironmentNotFoundError: If *name* was never loaded.
        """
        with self._lock:
            if name is not None and name not in self._environments:
                raise EnvironmentNotFoundError(name)
            if name == self._current:
                return
            self._current = name
            listeners = list(self._listeners)

        logger.debug("Current environment changed to %s", name)
        self._notify(name, listeners)

    def _notify(self, name: str | None, listeners: list[EnvironmentListener]) -> None:
        for listener in listeners:
            safe_call(lambda: listener(name), logger, "Environment listener %r failed", listener)
        if self._on_environment_change is not None:
            callback = self._on_environment_change
            safe_call(lambda: callback(name), logger, "Environment change callback failed")

    def get_current_environment(self) -> Environment | None:
        with self._lock:
            if self._current is None:
                return None
            return self._environments.get(self._current)

    def get_current_environment_name(self) -> str | None:
        return self._current

    def get_environment(self, name: str) -> Environment | None:
        with self._lock:
            return self._environments.get(name)

    def get_environment_variables(self) -> dict[str, str]:
        """Variables of the current environment; empty when none is selected."""
        environment = self.get_current_environment()
        return dict(environment.variables) if environment else {}

    def list_environments(self) -> list[str]:
        with self._lock:
            return list(self._environments)

    def has_environment(self, name: str) -> bool:
        with self._lock:
            return name in self._environments

    # ------------------------------------------------------------------
    # Listeners
    # ------------------------------------------------------------------

    def on_change(self, listener: EnvironmentListener) -> Callable[[], None]:
        """Subscribe to selection changes.

        Returns:
            A callable that removes *listener* again.
        """
        with self._lock:
            self._listeners.append(listener)

        def unsubscribe() -> None:
            with self._lock:
                if listener in self._listeners:
                    self._listeners.remove(listener)

        return unsubscribe

    def clear(self) -> None:
        """Forget every environment and the current selection."""
        with self._lock:
            self._environments = {}
            had_selection = self._current is not None
            self._current = None
            listeners = list(self._listeners)
        if had_selection:
            self._notify(None, listeners)
