"""Shared data model for OpenVoice.

Values exchanged between the session layer and the backend peer. On the wire
they are plain mappings with snake_case keys; here they are immutable
dataclasses so a cached copy can only ever be replaced as a whole.
"""

from __future__ import annotations

from dataclasses import asdict, dataclass
from enum import Enum
from typing import Any, Mapping


class AppState(str, Enum):
    IDLE = "idle"
    RECORDING = "recording"
    PROCESSING = "processing"
    SUCCESS = "success"
    ERROR = "error"


def _optional_str(raw: Mapping[str, Any], key: str) -> str | None:
    value = raw.get(key)
    if value is None or isinstance(value, str):
        return value
    raise ValueError(f"'{key}' must be a string or null, got {type(value).__name__}")


@dataclass(frozen=True, slots=True)
class Config:
    api_key: str | None = None
    audio_device: str | None = None
    model: str | None = None

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "Config":
        """Build a Config from a backend mapping; raise ValueError if malformed."""
        if not isinstance(raw, Mapping):
            raise TypeError(f"config must be a mapping, got {type(raw).__name__}")
        return cls(
            api_key=_optional_str(raw, "api_key"),
            audio_device=_optional_str(raw, "audio_device"),
            model=_optional_str(raw, "model"),
        )

    def to_dict(self) -> dict[str, str | None]:
        return asdict(self)

    def normalized(self) -> "Config":
        """Return a copy with a blank API key and an empty device name as None."""
        api_key = (self.api_key or "").strip() or None
        return Config(
            api_key=api_key,
            audio_device=self.audio_device or None,
            model=self.model,
        )


@dataclass(frozen=True, slots=True)
class AudioDevice:
    name: str
    is_default: bool = False

    @classmethod
    def from_dict(cls, raw: Mapping[str, Any]) -> "AudioDevice":
        if not isinstance(raw, Mapping):
            raise TypeError(f"device must be a mapping, got {type(raw).__name__}")
        name = raw["name"]
        if not isinstance(name, str):
            raise ValueError("device 'name' must be a string")
        return cls(name=name, is_default=bool(raw.get("is_default", False)))

    def to_dict(self) -> dict[str, Any]:
        return asdict(self)


def parse_devices(raw: Any) -> tuple[AudioDevice, ...]:
    """Parse a `get_audio_devices` response into an immutable device list."""
    if isinstance(raw, (str, bytes)) or not isinstance(raw, (list, tuple)):
        raise TypeError("device list must be a sequence")
    return tuple(AudioDevice.from_dict(item) for item in raw)
