"""Session state store.

Holds what the view renders. Only the sync controller writes to it; views
read snapshots and watch for changes.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Callable, Iterable, Optional

from .common.models import AppState, AudioDevice, Config

_log = logging.getLogger(__name__)

Watcher = Callable[[str], None]


@dataclass(frozen=True, slots=True)
class SessionSnapshot:
    state: AppState
    config: Optional[Config]
    devices: tuple[AudioDevice, ...]
    preview: str
    error: str


class SessionStore:
    """Current session values with one whole-field setter per field."""

    def __init__(self) -> None:
        self._state = AppState.IDLE
        self._config: Optional[Config] = None
        self._devices: tuple[AudioDevice, ...] = ()
        self._preview = ""
        self._error = ""
        self._watchers: list[Watcher] = []

    # ---- Read access ----
    @property
    def state(self) -> AppState:
        return self._state

    @property
    def config(self) -> Optional[Config]:
        return self._config

    @property
    def devices(self) -> tuple[AudioDevice, ...]:
        return self._devices

    @property
    def preview(self) -> str:
        return self._preview

    @property
    def error(self) -> str:
        return self._error

    def snapshot(self) -> SessionSnapshot:
        return SessionSnapshot(
            state=self._state,
            config=self._config,
            devices=self._devices,
            preview=self._preview,
            error=self._error,
        )

    # ---- Setters ----
    def set_state(self, state: AppState) -> None:
        self._state = AppState(state)
        self._changed("state")

    def set_config(self, config: Optional[Config]) -> None:
        self._config = config
        self._changed("config")

    def set_devices(self, devices: Iterable[AudioDevice]) -> None:
        self._devices = tuple(devices)
        self._changed("devices")

    def set_preview(self, preview: str) -> None:
        self._preview = preview
        self._changed("preview")

    def set_error(self, error: str) -> None:
        self._error = error
        self._changed("error")

    # ---- Change notification ----
    def watch(self, watcher: Watcher) -> Callable[[], None]:
        self._watchers.append(watcher)

        def unwatch() -> None:
            if watcher in self._watchers:
                self._watchers.remove(watcher)

        return unwatch

    def _changed(self, field_name: str) -> None:
        for watcher in tuple(self._watchers):
            try:
                watcher(field_name)
            except Exception:
                _log.exception("store watcher failed on %s", field_name)
