"""Request/response calls into the backend peer."""

from __future__ import annotations

import json
import logging
from typing import Any, Awaitable, Callable, Mapping, TypeVar

_log = logging.getLogger(__name__)

T = TypeVar("T")

# Backend command names
LOAD_CONFIG = "load_config"
SAVE_CONFIG = "save_config"
SET_AUDIO_DEVICE = "set_audio_device"
GET_AUDIO_DEVICES = "get_audio_devices"
TOGGLE_RECORDING = "toggle_recording"

Transport = Callable[[str, dict[str, Any]], Awaitable[Any]]


class BackendCommandFailure(Exception):
    """A backend command failed, could not be delivered, or answered garbage."""

    def __init__(self, command: str, cause: BaseException | str) -> None:
        self.command = command
        self.cause = cause
        super().__init__(f"{command} failed: {cause}")


class CommandGateway:
    """Thin call surface over a backend transport.

    Each `invoke` is one round trip. There are no retries and no local
    timeouts; the backend is trusted to settle every call.
    """

    def __init__(self, transport: Transport) -> None:
        self._transport = transport

    async def invoke(
        self,
        command: str,
        args: Mapping[str, Any] | None = None,
        *,
        parse: Callable[[Any], T] | None = None,
    ) -> T:
        payload = dict(args or {})
        try:
            json.dumps(payload)
        except (TypeError, ValueError) as e:
            raise BackendCommandFailure(command, e) from e

        _log.debug("invoke %s %s", command, sorted(payload))
        try:
            raw = await self._transport(command, payload)
        except BackendCommandFailure:
            raise
        except Exception as e:  # noqa: BLE001 - any backend fault becomes a failure
            raise BackendCommandFailure(command, e) from e

        if parse is None:
            return raw
        try:
            return parse(raw)
        except (TypeError, ValueError, KeyError) as e:
            raise BackendCommandFailure(command, f"malformed response: {e}") from e
