"""In-process backend peer for OpenVoice.

Implements the command surface the session layer talks to: configuration
persistence, input device enumeration and the record/transcribe toggle.
Progress is reported by emitting events on the shared registry. The actual
transcription is a pluggable hook; without one, stopping a recording ends in
a `transcription-error`.
"""

from __future__ import annotations

import asyncio
import logging
from pathlib import Path
from typing import Any, Awaitable, Callable, Optional

from .common.models import Config
from .common.settings import load_settings, save_settings
from .events import (
    RECORDING_STARTED,
    RECORDING_STOPPED,
    TRANSCRIPTION_COMPLETE,
    TRANSCRIPTION_ERROR,
    TRANSCRIPTION_STARTED,
    EventRegistry,
)

_log = logging.getLogger(__name__)

Transcribe = Callable[[Config], Awaitable[str]]

NO_PIPELINE_MESSAGE = "No transcription pipeline configured"
NO_API_KEY_MESSAGE = "No API key configured"


class UnknownCommand(LookupError):
    pass


def list_input_devices() -> list[dict[str, Any]]:
    """Return input-capable devices as `{name, is_default}` mappings."""
    import sounddevice as sd

    devs = sd.query_devices()
    try:
        default_index = int(sd.default.device[0])
    except (TypeError, ValueError, IndexError):
        default_index = -1
    return [
        {"name": d["name"], "is_default": i == default_index}
        for i, d in enumerate(devs)
        if d.get("max_input_channels", 0) > 0
    ]


class LocalBackend:
    """Backend commands served in-process; call the instance as a transport."""

    def __init__(
        self,
        events: EventRegistry,
        *,
        settings_path: Optional[Path] = None,
        transcribe: Optional[Transcribe] = None,
        device_lister: Callable[[], list[dict[str, Any]]] = list_input_devices,
    ) -> None:
        self._events = events
        self._settings_path = settings_path
        self._transcribe = transcribe
        self._device_lister = device_lister
        self._commands: dict[str, Callable[..., Awaitable[Any]]] = {
            "load_config": self.load_config,
            "save_config": self.save_config,
            "set_audio_device": self.set_audio_device,
            "get_audio_devices": self.get_audio_devices,
            "toggle_recording": self.toggle_recording,
        }
        self.audio_device: Optional[str] = None
        self._recording = False
        self._job: Optional[asyncio.Task] = None

    async def __call__(self, command: str, args: dict[str, Any]) -> Any:
        try:
            fn = self._commands[command]
        except KeyError:
            raise UnknownCommand(command) from None
        return await fn(**args)

    @property
    def is_recording(self) -> bool:
        return self._recording

    @property
    def is_processing(self) -> bool:
        return self._job is not None and not self._job.done()

    # ---- Commands ----
    async def load_config(self) -> dict[str, Any]:
        return load_settings(self._settings_path).to_dict()

    async def save_config(self, config: dict[str, Any]) -> None:
        save_settings(Config.from_dict(config), self._settings_path)
        _log.info("Config saved")

    async def set_audio_device(self, device_name: Optional[str] = None) -> None:
        self.audio_device = device_name
        _log.info("Audio device set to %s", device_name or "<default>")

    async def get_audio_devices(self) -> list[dict[str, Any]]:
        return self._device_lister()

    async def toggle_recording(self) -> None:
        if self.is_processing:
            _log.warning("Already processing, ignoring toggle")
            return
        if self._recording:
            self._stop_and_transcribe()
        else:
            self._start_recording()

    # ---- Recording flow ----
    def _start_recording(self) -> None:
        config = load_settings(self._settings_path)
        if not config.api_key:
            _log.error(NO_API_KEY_MESSAGE)
            return
        _log.info("Recording started")
        self._recording = True
        self._events.emit(RECORDING_STARTED)

    def _stop_and_transcribe(self) -> None:
        _log.info("Recording stopped")
        self._recording = False
        self._events.emit(RECORDING_STOPPED)
        config = load_settings(self._settings_path)
        if not config.api_key:
            _log.error(NO_API_KEY_MESSAGE)
            self._events.emit(TRANSCRIPTION_ERROR, NO_API_KEY_MESSAGE)
            return
        self._job = asyncio.get_running_loop().create_task(self._run_transcription(config))

    async def _run_transcription(self, config: Config) -> None:
        self._events.emit(TRANSCRIPTION_STARTED)
        if self._transcribe is None:
            _log.error(NO_PIPELINE_MESSAGE)
            self._events.emit(TRANSCRIPTION_ERROR, NO_PIPELINE_MESSAGE)
            return
        try:
            text = await self._transcribe(config)
        except Exception as e:  # noqa: BLE001 - reported to the frontend as an event
            _log.error("Transcription failed: %s", e)
            self._events.emit(TRANSCRIPTION_ERROR, str(e))
            return
        _log.info("Transcription successful: %s", text[:50])
        self._events.emit(TRANSCRIPTION_COMPLETE, text)

    async def wait_idle(self) -> None:
        """Wait for an in-flight transcription to finish emitting its events."""
        if self._job is not None:
            await asyncio.shield(self._job)
