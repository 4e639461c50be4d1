"""Synchronization controller for a recording session.

Loads configuration and devices from the backend, subscribes to the backend
event stream and turns every event into store updates via the transition
table. User intents (toggle, save, refresh devices) go out through the
command gateway; failures are logged here and never reach the view.
"""

from __future__ import annotations

import asyncio
import logging
from contextlib import asynccontextmanager
from typing import Any, AsyncIterator, Callable, Optional

from .common.models import Config, parse_devices
from .events import ALL_EVENTS, CONFIG_UPDATED, Disposer, EventRegistry
from .gateway import (
    GET_AUDIO_DEVICES,
    LOAD_CONFIG,
    SAVE_CONFIG,
    SET_AUDIO_DEVICE,
    TOGGLE_RECORDING,
    BackendCommandFailure,
    CommandGateway,
)
from .machine import EffectKind, transition
from .state import SessionStore

_log = logging.getLogger(__name__)


class SyncController:
    """Owns one session: activation, event handling, intents and teardown."""

    def __init__(
        self,
        gateway: CommandGateway,
        events: EventRegistry,
        store: Optional[SessionStore] = None,
    ) -> None:
        self._gateway = gateway
        self._events = events
        self.store = store if store is not None else SessionStore()
        self._disposers: list[Disposer] = []
        self._tasks: set[asyncio.Task] = set()
        self._loop: Optional[asyncio.AbstractEventLoop] = None
        self._activated = False
        self._closed = False

    @property
    def active(self) -> bool:
        return self._activated and not self._closed

    # ---- Lifecycle ----
    async def activate(self) -> None:
        if self._activated:
            _log.warning("controller already activated; ignoring")
            return
        self._activated = True
        self._loop = asyncio.get_running_loop()

        await self.load_config()
        if not self._closed:
            await self.load_devices()

        if self._closed:
            _log.debug("torn down during activation; not subscribing")
            return
        for event in ALL_EVENTS:
            self._disposers.append(self._events.subscribe(event, self._handler(event)))
        _log.info("session active (%d subscriptions)", len(self._disposers))

    def teardown(self) -> None:
        self._closed = True
        disposers, self._disposers = self._disposers, []
        for dispose in disposers:
            dispose()
        tasks, self._tasks = self._tasks, set()
        for task in tasks:
            task.cancel()
        if disposers:
            _log.info("session closed (%d subscriptions released)", len(disposers))

    @asynccontextmanager
    async def session(self) -> AsyncIterator["SyncController"]:
        await self.activate()
        try:
            yield self
        finally:
            self.teardown()

    # ---- Event handling ----
    def _handler(self, event: str) -> Callable[[Any], None]:
        def handle(payload: Any) -> None:
            self._apply(event, payload)

        return handle

    def _apply(self, event: str, payload: Any) -> None:
        if self._closed:
            return
        previous = self.store.state
        state, effects = transition(previous, event, payload)
        for effect in effects:
            if effect.kind is EffectKind.SET_PREVIEW:
                self.store.set_preview(effect.value)
            elif effect.kind is EffectKind.SET_ERROR:
                self.store.set_error(effect.value)
            elif effect.kind is EffectKind.RELOAD_CONFIG:
                self._spawn(self.load_config())
        if state is not previous:
            _log.debug("%s: %s -> %s", event, previous.value, state.value)
            self.store.set_state(state)

    def _spawn(self, coro) -> None:  # noqa: ANN001
        if self._loop is None:
            coro.close()
            raise RuntimeError("controller is not activated")
        task = self._loop.create_task(coro)
        self._tasks.add(task)
        task.add_done_callback(self._tasks.discard)

    # ---- Backend round trips ----
    async def load_config(self) -> None:
        try:
            config = await self._gateway.invoke(LOAD_CONFIG, parse=Config.from_dict)
        except BackendCommandFailure as e:
            _log.error("Failed to load config: %s", e)
            return
        if self._closed:
            _log.debug("session closed; dropping loaded config")
            return
        self.store.set_config(config)
        if config.audio_device:
            await self._sync_audio_device(config.audio_device)

    async def load_devices(self) -> None:
        try:
            devices = await self._gateway.invoke(GET_AUDIO_DEVICES, parse=parse_devices)
        except BackendCommandFailure as e:
            _log.error("Failed to load devices: %s", e)
            return
        if self._closed:
            _log.debug("session closed; dropping device list")
            return
        self.store.set_devices(devices)

    async def save_config(self, candidate: Config) -> bool:
        config = candidate.normalized()
        try:
            await self._gateway.invoke(SAVE_CONFIG, {"config": config.to_dict()})
        except BackendCommandFailure as e:
            _log.error("Failed to save config: %s", e)
            return False
        await self._sync_audio_device(config.audio_device)
        self.store.set_config(config)
        self._events.emit(CONFIG_UPDATED)
        return True

    async def toggle_recording(self) -> None:
        try:
            await self._gateway.invoke(TOGGLE_RECORDING)
        except BackendCommandFailure as e:
            _log.error("Failed to toggle recording: %s", e)

    async def _sync_audio_device(self, device_name: Optional[str]) -> None:
        # Best effort; the primary config change stands either way
        try:
            await self._gateway.invoke(SET_AUDIO_DEVICE, {"device_name": device_name})
        except BackendCommandFailure as e:
            _log.warning("Failed to set audio device %r: %s", device_name, e)
