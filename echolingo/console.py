"""Console review session: narrate a learner's due items from the terminal.

Commands (type a letter and press Enter): ``p`` pause/resume, ``n`` next,
``b`` back, ``q`` quit.
"""
from __future__ import annotations

import argparse
import asyncio
import sys
import threading
from pathlib import Path
from typing import Optional

from echolingo.config import settings
from echolingo.core.grouping import GROUP_DUE, group_options
from echolingo.main import configure_logging
from echolingo.services.auth import SessionRegistry
from echolingo.services.playback import QueueSnapshot, StartOutcome, Track
from echolingo.services.speech import HostedVoiceBackend, LocalVoiceBackend, Narrator, SoundDevicePlayer
from echolingo.services.store import JsonStore
from echolingo.services.tts import OpenAISpeechClient
from echolingo.services.users import UserService
from echolingo.services.workspace import LearnerWorkspace
from echolingo.utils.exceptions import AccountNotFoundError


def _start_stdin_reader(queue: asyncio.Queue[Optional[str]]) -> None:
    """Feed stdin lines into ``queue`` from a daemon thread (``None`` on EOF)."""

    loop = asyncio.get_running_loop()

    def pump() -> None:
        for line in sys.stdin:
            loop.call_soon_threadsafe(queue.put_nowait, line)
        loop.call_soon_threadsafe(queue.put_nowait, None)

    threading.Thread(target=pump, name="echolingo-stdin", daemon=True).start()


def _print_progress(workspace: LearnerWorkspace, snapshot: QueueSnapshot) -> None:
    if not snapshot.running:
        print("Review stopped.")
        return
    item = workspace.session.track(snapshot.track).state.current
    label = getattr(item, "word", None) or getattr(item, "sentence", "")
    marker = " (paused)" if snapshot.paused else ""
    print(f"[{snapshot.cursor + 1}/{snapshot.length}] {label}{marker}")


async def _handle_commands(workspace: LearnerWorkspace, track: Track) -> None:
    session = workspace.session
    lines: asyncio.Queue[Optional[str]] = asyncio.Queue()
    _start_stdin_reader(lines)

    idle = asyncio.create_task(session.wait_until_idle())
    try:
        while not idle.done():
            reader = asyncio.create_task(lines.get())
            done, _ = await asyncio.wait({reader, idle}, return_when=asyncio.FIRST_COMPLETED)
            if reader not in done:
                reader.cancel()
                break

            line = reader.result()
            command = (line or "q").strip().lower()
            if command == "p":
                session.toggle_pause(track)
            elif command == "n":
                session.skip(track, 1)
            elif command == "b":
                session.skip(track, -1)
            elif command == "q":
                session.stop(track)
                break
            elif command:
                print("Commands: p pause/resume, n next, b back, q quit")

            if idle.done():
                # a skip launches a new drive loop after the previous one ended
                idle = asyncio.create_task(session.wait_until_idle())
    finally:
        if not idle.done():
            idle.cancel()


async def review(account: str, track: Track, group: str, data_dir: Path) -> int:
    store = JsonStore(data_dir)
    await store.load()
    users = UserService(store, SessionRegistry())

    speech_client = OpenAISpeechClient()
    narrator = Narrator(
        LocalVoiceBackend(),
        HostedVoiceBackend(speech_client, SoundDevicePlayer()),
        on_notice=print,
    )
    try:
        workspace = LearnerWorkspace(account, users, narrator, on_notice=print)
    except AccountNotFoundError:
        print(f"Unknown account: {account}")
        await speech_client.close()
        return 1

    workspace.session.on_progress = lambda snapshot: _print_progress(workspace, snapshot)
    try:
        outcome = workspace.session.start(track, group)
        if outcome is StartOutcome.EMPTY:
            items = workspace.session.track(track).live_items(workspace.record)
            print(f"Nothing to review in group '{group}'. Try one of: {', '.join(group_options(items))}")
            return 0
        print("Commands: p pause/resume, n next, b back, q quit")
        await _handle_commands(workspace, track)
    finally:
        await workspace.aclose()
        await speech_client.close()
    return 0


def main(argv: Optional[list[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Review an account's items with spoken narration")
    parser.add_argument("--account", required=True, help="Account whose items to review")
    parser.add_argument(
        "--track",
        choices=[track.value for track in Track],
        default=Track.VOCABULARY.value,
        help="Which list to review (default: vocabulary)",
    )
    parser.add_argument(
        "--group",
        default=GROUP_DUE,
        help="Group key: due, all, needs-work or tag:<name> (default: due)",
    )
    parser.add_argument("--data-dir", type=Path, default=settings.DATA_DIR, help="Directory holding app-db.json")
    parser.add_argument("--log-level", default=None, help="Override LOG_LEVEL")

    args = parser.parse_args(argv)
    configure_logging(args.log_level or "WARNING")
    return asyncio.run(review(args.account, Track(args.track), args.group, args.data_dir))


if __name__ == "__main__":
    sys.exit(main())
