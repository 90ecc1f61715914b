"""Watch mode: re-verify exercises whenever their files change."""

from __future__ import annotations

import os
import queue
import subprocess
import sys
import threading
from collections.abc import Iterable
from dataclasses import dataclass, field
from enum import Enum, auto
from pathlib import Path

from watchdog.events import FileSystemEvent, FileSystemEventHandler
from watchdog.observers import Observer

from rustlings.exercise import Exercise
from rustlings.verify import VerificationFailed, verify

EXERCISES_DIR = "./exercises"
_POLL_SECONDS = 1.0
_DEBOUNCE_SECONDS = 1.0
_RESET_TERMINAL = "\x1bc"

_HELP = """Commands available to you in watch mode:
  hint   - prints the current exercise's hint
  clear  - clears the screen
  quit   - quits watch mode
  !<cmd> - executes a command, like `!rustc --explain E0381`
  help   - displays this help message

Watch mode automatically re-evaluates the current exercise
when you edit a file's contents."""


class WatchStatus(Enum):
    """How watch mode ended."""

    FINISHED = auto()
    UNFINISHED = auto()


@dataclass
class WatchState:
    """State shared between the watch loop and the command shell."""

    failed_exercise_hint: str | None = None
    should_quit: threading.Event = field(default_factory=threading.Event)
    lock: threading.Lock = field(default_factory=threading.Lock, repr=False)


def clear_screen() -> None:
    """Reset the terminal with an ANSI escape code and flush it out at once."""
    stream = sys.stdout
    stream.write(f"{_RESET_TERMINAL}\n")
    stream.flush()


def handle_command(line: str, state: WatchState) -> None:
    """Carry out one command typed in watch mode."""
    command = line.strip()
    if command == "hint":
        with state.lock:
            hint = state.failed_exercise_hint
        if hint is not None:
            print(hint)
    elif command == "clear":
        print("\x1b[2J\x1b[1;1H")
    elif command == "quit":
        state.should_quit.set()
        print("Bye!")
    elif command == "help":
        print(_HELP)
    elif command.startswith("!"):
        cmd = command[1:]
        parts = cmd.split()
        if not parts:
            print("no command provided")
        else:
            try:
                subprocess.run(parts)
            except OSError as exc:
                print(f"failed to execute command `{cmd}`: {exc}")
    else:
        print(f"unknown command: {command}")


def spawn_watch_shell(state: WatchState) -> threading.Thread:
    """Start a background thread that reads commands from standard input."""
    print(
        "Welcome to watch mode! You can type 'help' to get an overview "
        "of the commands you can use here."
    )

    def _loop() -> None:
        while True:
            try:
                line = sys.stdin.readline()
            except (OSError, ValueError) as exc:
                print(f"error reading command: {exc}")
                return
            if not line:
                return
            handle_command(line, state)

    thread = threading.Thread(target=_loop, name="watch-shell", daemon=True)
    thread.start()
    return thread


def _ends_with(path: Path, suffix: Path) -> bool:
    tail = suffix.parts
    return len(tail) <= len(path.parts) and path.parts[len(path.parts) - len(tail):] == tail


def pending_after_change(
    changed: str | os.PathLike[str], exercises: Iterable[Exercise]
) -> list[Exercise]:
    """The changed exercise first, then every other exercise that is not done."""
    filepath = Path(changed).resolve()
    exercises = list(exercises)
    first = [next((e for e in exercises if _ends_with(filepath, e.path)), None)]
    rest = [
        e for e in exercises
        if not e.looks_done() and not _ends_with(filepath, e.path)
    ]
    return [e for e in first if e is not None] + rest


class _ChangeHandler(FileSystemEventHandler):
    def __init__(self, events: queue.Queue[Path]) -> None:
        super().__init__()
        self._events = events

    def _record(self, event: FileSystemEvent) -> None:
        if not event.is_directory:
            self._events.put(Path(os.fsdecode(event.src_path)))

    def on_created(self, event: FileSystemEvent) -> None:
        self._record(event)

    def on_modified(self, event: FileSystemEvent) -> None:
        self._record(event)


def _next_changes(events: queue.Queue[Path]) -> list[Path]:
    """Wait briefly for a change, then gather changes until things go quiet."""
    try:
        first = events.get(timeout=_POLL_SECONDS)
    except queue.Empty:
        return []
    changed = [first]
    while True:
        try:
            path = events.get(timeout=_DEBOUNCE_SECONDS)
        except queue.Empty:
            break
        if path not in changed:
            changed.append(path)
    return changed


def watch(
    exercises: Iterable[Exercise], verbose: bool, success_hints: bool
) -> WatchStatus:
    """Verify exercises, then re-verify on every change until done or quit."""
    exercises = list(exercises)
    events: queue.Queue[Path] = queue.Queue()
    state = WatchState()

    observer = Observer()
    observer.schedule(_ChangeHandler(events), EXERCISES_DIR, recursive=True)
    observer.start()
    try:
        clear_screen()
        try:
            verify(exercises, (0, len(exercises)), verbose, success_hints)
        except VerificationFailed as failed:
            state.failed_exercise_hint = failed.exercise.hint
        else:
            return WatchStatus.FINISHED

        spawn_watch_shell(state)
        while True:
            for changed in _next_changes(events):
                if changed.suffix != ".rs" or not changed.exists():
                    continue
                pending = pending_after_change(changed, exercises)
                num_done = sum(1 for e in exercises if e.looks_done())
                clear_screen()
                try:
                    verify(pending, (num_done, len(exercises)), verbose, success_hints)
                except VerificationFailed as failed:
                    with state.lock:
                        state.failed_exercise_hint = failed.exercise.hint
                else:
                    return WatchStatus.FINISHED
            if state.should_quit.is_set():
                return WatchStatus.UNFINISHED
    finally:
        observer.stop()
        observer.join()