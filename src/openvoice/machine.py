"""Recording session transition table.

`transition` maps the current AppState and one backend event to the next
AppState plus the store effects the controller must apply. It knows nothing
about asyncio or the store, which keeps the table testable on its own.
"""

from __future__ import annotations

from dataclasses import dataclass
from enum import Enum
from typing import Any

from .common.models import AppState
from .events import (
    CONFIG_UPDATED,
    RECORDING_STARTED,
    RECORDING_STOPPED,
    TRANSCRIPTION_COMPLETE,
    TRANSCRIPTION_ERROR,
    TRANSCRIPTION_STARTED,
)

PREVIEW_LIMIT = 50
ERROR_LIMIT = 40
ELLIPSIS = "..."


class EffectKind(Enum):
    SET_PREVIEW = "set_preview"
    SET_ERROR = "set_error"
    RELOAD_CONFIG = "reload_config"


@dataclass(frozen=True, slots=True)
class Effect:
    kind: EffectKind
    value: str = ""


def truncate_preview(text: str) -> str:
    if len(text) > PREVIEW_LIMIT:
        return text[:PREVIEW_LIMIT] + ELLIPSIS
    return text


def truncate_error(message: str) -> str:
    return message[:ERROR_LIMIT]


def _text(payload: Any) -> str:
    return "" if payload is None else str(payload)


def transition(
    state: AppState, event: str, payload: Any = None
) -> tuple[AppState, tuple[Effect, ...]]:
    """Return the next state and effects for `event` arriving in `state`.

    Every row applies regardless of the current state, so any interleaving of
    backend events (for example `transcription-started` overtaking
    `recording-stopped`) lands in the same place.
    """
    if event == RECORDING_STARTED:
        return AppState.RECORDING, (
            Effect(EffectKind.SET_PREVIEW, ""),
            Effect(EffectKind.SET_ERROR, ""),
        )
    if event in (RECORDING_STOPPED, TRANSCRIPTION_STARTED):
        return AppState.PROCESSING, ()
    if event == TRANSCRIPTION_COMPLETE:
        return AppState.SUCCESS, (
            Effect(EffectKind.SET_PREVIEW, truncate_preview(_text(payload))),
            Effect(EffectKind.SET_ERROR, ""),
        )
    if event == TRANSCRIPTION_ERROR:
        return AppState.ERROR, (
            Effect(EffectKind.SET_ERROR, truncate_error(_text(payload))),
            Effect(EffectKind.SET_PREVIEW, ""),
        )
    if event == CONFIG_UPDATED:
        return state, (Effect(EffectKind.RELOAD_CONFIG),)
    raise ValueError(f"Unknown session event: {event!r}")
