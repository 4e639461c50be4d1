"""Console host for OpenVoice.

Hosts exactly one sync controller for the lifetime of the process, prints
the session state whenever it changes and forwards typed commands:

- Enter: start/stop recording
- `devices`: refresh and list input devices
- `device <name>`: select an input device (empty name for default)
- `key <api key>`: store the API key
- `quit`: exit
"""

from __future__ import annotations

import argparse
import asyncio
import logging
import sys
import threading
from dataclasses import replace
from pathlib import Path
from typing import Awaitable, Callable, Optional, Sequence

from .backend import LocalBackend
from .common.logs import setup_logging
from .common.models import Config
from .common.settings import resolve_settings_path
from .controller import SyncController
from .display import (
    SAVE_FAILED_MESSAGE,
    SAVE_OK_MESSAGE,
    STATE_DISPLAY,
    can_toggle,
    device_label,
)
from .events import EventRegistry
from .gateway import CommandGateway

_log = logging.getLogger(__name__)

ReadLine = Callable[[], Awaitable[Optional[str]]]
Write = Callable[[str], None]


async def _stdin_line() -> Optional[str]:
    """Read one line on a daemon thread; None at end of input.

    The thread must not be joined at shutdown: it may still be blocked in
    `readline` when Ctrl-C stops the loop.
    """
    loop = asyncio.get_running_loop()
    fut: asyncio.Future[Optional[str]] = loop.create_future()

    def deliver(line: Optional[str]) -> None:
        if not fut.done():
            fut.set_result(line)

    def read() -> None:
        line = sys.stdin.readline()
        try:
            loop.call_soon_threadsafe(deliver, line.rstrip("\r\n") if line else None)
        except RuntimeError:
            # Loop already closed; nobody is waiting for this line
            pass

    threading.Thread(target=read, name="stdin-reader", daemon=True).start()
    return await fut


def render_state(controller: SyncController) -> str:
    snap = controller.store.snapshot()
    title, hint = STATE_DISPLAY[snap.state]
    lines = [f"[{snap.state.value}] {title} - {hint}"]
    if snap.error:
        lines.append(f"  error: {snap.error}")
    if snap.preview:
        lines.append(f"  {snap.preview}")
    return "\n".join(lines)


async def handle_command(controller: SyncController, line: str, write: Write) -> bool:
    """Run one typed command; return False when the host should exit."""
    cmd, _, arg = line.strip().partition(" ")
    store = controller.store
    if cmd in ("quit", "q", "exit"):
        return False
    if cmd == "":
        if can_toggle(store.state):
            await controller.toggle_recording()
        else:
            write("Busy, please wait")
    elif cmd == "devices":
        await controller.load_devices()
        for device in store.devices:
            write(f"  {device_label(device)}")
        if not store.devices:
            write("  (no input devices)")
    elif cmd in ("device", "key"):
        current = store.config or Config()
        if cmd == "device":
            candidate = replace(current, audio_device=arg.strip() or None)
        else:
            candidate = replace(current, api_key=arg)
        ok = await controller.save_config(candidate)
        write(SAVE_OK_MESSAGE if ok else SAVE_FAILED_MESSAGE)
    else:
        write(f"Unknown command: {cmd}")
    return True


async def run_console(
    controller: SyncController,
    *,
    read_line: ReadLine = _stdin_line,
    write: Write = print,
) -> None:
    def on_change(field_name: str) -> None:
        if field_name in ("state", "preview", "error"):
            write(render_state(controller))

    async with controller.session():
        write(render_state(controller))
        unwatch = controller.store.watch(on_change)
        try:
            while True:
                line = await read_line()
                if line is None or not await handle_command(controller, line, write):
                    break
        finally:
            unwatch()


def build_controller(settings_path: Optional[Path] = None) -> tuple[SyncController, LocalBackend]:
    events = EventRegistry()
    backend = LocalBackend(events, settings_path=settings_path)
    controller = SyncController(CommandGateway(backend), events)
    return controller, backend


def main(argv: Optional[Sequence[str]] = None) -> None:
    parser = argparse.ArgumentParser(prog="openvoice", description="Voice-to-clipboard session console")
    parser.add_argument("--debug", action="store_true", help="verbose logging")
    parser.add_argument("--settings", type=Path, default=None, help="settings file or directory")
    args = parser.parse_args(argv)

    setup_logging(debug=True if args.debug else None)
    settings_path = resolve_settings_path(args.settings) if args.settings is not None else None

    controller, _backend = build_controller(settings_path)
    _log.info("OpenVoice started")
    try:
        asyncio.run(run_console(controller))
    except KeyboardInterrupt:
        pass


if __name__ == "__main__":
    main()
