import asyncio
import sys
from pathlib import Path
from types import SimpleNamespace

import pytest

from openvoice.backend import NO_API_KEY_MESSAGE, NO_PIPELINE_MESSAGE, LocalBackend, UnknownCommand, list_input_devices
from openvoice.common.models import AppState, Config
from openvoice.common.settings import save_settings
from openvoice.controller import SyncController
from openvoice.events import ALL_EVENTS, EventRegistry
from openvoice.gateway import BackendCommandFailure, CommandGateway


def _recorder(events: EventRegistry) -> list[tuple[str, object]]:
    seen: list[tuple[str, object]] = []
    for name in ALL_EVENTS:
        events.subscribe(name, lambda payload, name=name: seen.append((name, payload)))
    return seen


def _backend(tmp_path: Path, api_key: str | None = "sk-test", **kwargs):
    settings = tmp_path / "config.json"
    if api_key is not None:
        save_settings(Config(api_key=api_key), settings)
    events = EventRegistry()
    backend = LocalBackend(
        events,
        settings_path=settings,
        device_lister=lambda: [{"name": "Mic", "is_default": True}],
        **kwargs,
    )
    return backend, events


def test_config_commands_roundtrip(tmp_path: Path) -> None:
    backend, _ = _backend(tmp_path, api_key=None)

    async def scenario():
        first = await backend("load_config", {})
        await backend("save_config", {"config": {"api_key": "k", "audio_device": "Mic", "model": None}})
        second = await backend("load_config", {})
        return first, second

    first, second = asyncio.run(scenario())
    assert first == {"api_key": None, "audio_device": None, "model": None}
    assert second == {"api_key": "k", "audio_device": "Mic", "model": None}


def test_set_audio_device_and_enumeration(tmp_path: Path) -> None:
    backend, _ = _backend(tmp_path)

    asyncio.run(backend("set_audio_device", {"device_name": "Mic"}))
    devices = asyncio.run(backend("get_audio_devices", {}))

    assert backend.audio_device == "Mic"
    assert devices == [{"name": "Mic", "is_default": True}]


def test_unknown_command(tmp_path: Path) -> None:
    backend, _ = _backend(tmp_path)

    with pytest.raises(UnknownCommand):
        asyncio.run(backend("paste_text", {}))

    with pytest.raises(BackendCommandFailure):
        asyncio.run(CommandGateway(backend).invoke("paste_text"))


def test_toggle_without_api_key_does_not_start(tmp_path: Path) -> None:
    backend, events = _backend(tmp_path, api_key=None)
    seen = _recorder(events)

    asyncio.run(backend("toggle_recording", {}))

    assert seen == []
    assert backend.is_recording is False


def test_toggle_without_pipeline_reports_error(tmp_path: Path) -> None:
    backend, events = _backend(tmp_path)
    seen = _recorder(events)

    async def scenario() -> None:
        await backend("toggle_recording", {})
        assert backend.is_recording is True
        await backend("toggle_recording", {})
        await backend.wait_idle()

    asyncio.run(scenario())
    assert seen == [
        ("recording-started", None),
        ("recording-stopped", None),
        ("transcription-started", None),
        ("transcription-error", NO_PIPELINE_MESSAGE),
    ]


def test_toggle_with_pipeline_completes(tmp_path: Path) -> None:
    received: list[Config] = []

    async def transcribe(config: Config) -> str:
        received.append(config)
        return "hello world"

    backend, events = _backend(tmp_path, transcribe=transcribe)
    seen = _recorder(events)

    async def scenario() -> None:
        await backend("toggle_recording", {})
        await backend("toggle_recording", {})
        await backend.wait_idle()

    asyncio.run(scenario())
    assert seen[-1] == ("transcription-complete", "hello world")
    assert received == [Config(api_key="sk-test")]


def test_pipeline_failure_becomes_error_event(tmp_path: Path) -> None:
    async def transcribe(_config: Config) -> str:
        raise RuntimeError("HTTP 401 from transcription endpoint")

    backend, events = _backend(tmp_path, transcribe=transcribe)
    seen = _recorder(events)

    async def scenario() -> None:
        await backend("toggle_recording", {})
        await backend("toggle_recording", {})
        await backend.wait_idle()

    asyncio.run(scenario())
    assert seen[-1] == ("transcription-error", "HTTP 401 from transcription endpoint")


def test_toggle_ignored_while_processing(tmp_path: Path) -> None:
    gate: dict[str, asyncio.Event] = {}

    async def transcribe(_config: Config) -> str:
        await gate["open"].wait()
        return "done"

    backend, events = _backend(tmp_path, transcribe=transcribe)
    seen = _recorder(events)

    async def scenario() -> None:
        gate["open"] = asyncio.Event()
        await backend("toggle_recording", {})
        await backend("toggle_recording", {})
        await asyncio.sleep(0)
        assert backend.is_processing
        await backend("toggle_recording", {})
        gate["open"].set()
        await backend.wait_idle()

    asyncio.run(scenario())
    assert [name for name, _ in seen].count("recording-started") == 1


def test_list_input_devices_uses_sounddevice(monkeypatch) -> None:
    fake_sd = SimpleNamespace(
        query_devices=lambda: [
            {"name": "Speakers", "max_input_channels": 0},
            {"name": "MacBook Pro Microphone", "max_input_channels": 1},
            {"name": "BlackHole 2ch", "max_input_channels": 2},
        ],
        default=SimpleNamespace(device=[1, 0]),
    )
    monkeypatch.setitem(sys.modules, "sounddevice", fake_sd)

    assert list_input_devices() == [
        {"name": "MacBook Pro Microphone", "is_default": True},
        {"name": "BlackHole 2ch", "is_default": False},
    ]


def test_full_stack_recording_session(tmp_path: Path) -> None:
    async def transcribe(_config: Config) -> str:
        return "Meeting notes: " + "ship it " * 10

    backend, events = _backend(tmp_path, transcribe=transcribe)
    controller = SyncController(CommandGateway(backend), events)

    async def scenario() -> None:
        async with controller.session():
            await controller.toggle_recording()
            assert controller.store.state is AppState.RECORDING
            await controller.toggle_recording()
            await backend.wait_idle()

    asyncio.run(scenario())
    assert controller.store.state is AppState.SUCCESS
    assert controller.store.preview.endswith("...")
    assert len(controller.store.preview) == 53
    assert events.listener_count() == 0


def test_stop_without_api_key_reports_error(tmp_path: Path) -> None:
    calls: list[Config] = []

    async def transcribe(config: Config) -> str:
        calls.append(config)
        return "text"

    backend, events = _backend(tmp_path, transcribe=transcribe)
    seen = _recorder(events)

    async def scenario() -> None:
        await backend("toggle_recording", {})
        await backend("save_config", {"config": Config().to_dict()})
        await backend("toggle_recording", {})
        await backend.wait_idle()

    asyncio.run(scenario())
    assert calls == []
    assert seen == [
        ("recording-started", None),
        ("recording-stopped", None),
        ("transcription-error", NO_API_KEY_MESSAGE),
    ]
    assert backend.is_recording is False
    assert backend.is_processing is False
