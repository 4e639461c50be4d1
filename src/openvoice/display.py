"""Presentation text for session values."""

from __future__ import annotations

from .common.models import AppState, AudioDevice

STATE_DISPLAY: dict[AppState, tuple[str, str]] = {
    AppState.IDLE: ("Ready", "Press Enter to start recording"),
    AppState.RECORDING: ("Recording", "Press Enter to stop recording"),
    AppState.PROCESSING: ("Processing...", "Please wait"),
    AppState.SUCCESS: ("Copied to clipboard", "Ready for another recording"),
    AppState.ERROR: ("Error", "Try again"),
}

SAVE_OK_MESSAGE = "Settings saved!"
SAVE_FAILED_MESSAGE = "Failed to save settings"


def device_label(device: AudioDevice) -> str:
    return device.name + (" (default)" if device.is_default else "")


def toggle_label(state: AppState) -> str:
    return "Stop Recording" if state is AppState.RECORDING else "Start Recording"


def can_toggle(state: AppState) -> bool:
    return state is not AppState.PROCESSING
