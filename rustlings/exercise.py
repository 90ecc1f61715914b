"""Exercises: loading, compiling, running and checking progress."""

from __future__ import annotations

import os
import re
import subprocess
import threading
import tomllib
from collections.abc import Mapping, Sequence
from dataclasses import dataclass
from enum import Enum
from pathlib import Path
from types import TracebackType

from rustlings import ui

RUSTC_COLOR_ARGS = ("--color", "always")
RUSTC_EDITION_ARGS = ("--edition", "2021")
I_AM_DONE_REGEX = re.compile(r"^\s*///?\s*I\s+AM\s+NOT\s+DONE", re.MULTILINE)
CONTEXT = 2
CLIPPY_CARGO_TOML_PATH = Path("./exercises/clippy/Cargo.toml")
BUILD_SCRIPT_CARGO_TOML_PATH = Path("./exercises/tests/Cargo.toml")


def temp_file() -> str:
    """Return a binary path unique to this process and thread."""
    return f"./temp_{os.getpid()}_{threading.get_ident()}"


def clean() -> None:
    """Remove the compiled binary, ignoring a missing file."""
    try:
        os.remove(temp_file())
    except OSError:
        pass


class Mode(Enum):
    """How an exercise is built and checked."""

    COMPILE = "compile"
    TEST = "test"
    CLIPPY = "clippy"
    BUILD_SCRIPT = "buildscript"


@dataclass(frozen=True)
class ContextLine:
    """A source line shown around the pending marker."""

    line: str
    number: int
    important: bool


@dataclass(frozen=True)
class ExerciseState:
    """Done when there is no context; pending otherwise."""

    context: tuple[ContextLine, ...] = ()

    def is_done(self) -> bool:
        return not self.context


@dataclass(frozen=True)
class ExerciseOutput:
    """Captured output of a finished command."""

    stdout: str
    stderr: str


class ExerciseFailed(Exception):
    """A compile or run step exited unsuccessfully."""

    def __init__(self, output: ExerciseOutput) -> None:
        super().__init__(output.stderr or output.stdout)
        self.output = output


class CompiledExercise:
    """A successfully built exercise; closing it removes the binary."""

    def __init__(self, exercise: Exercise) -> None:
        self.exercise = exercise
        self._closed = False

    def run(self) -> ExerciseOutput:
        return self.exercise.run()

    def close(self) -> None:
        if not self._closed:
            self._closed = True
            clean()

    def __enter__(self) -> CompiledExercise:
        return self

    def __exit__(
        self,
        exc_type: type[BaseException] | None,
        exc: BaseException | None,
        tb: TracebackType | None,
    ) -> None:
        self.close()


def _output(result: subprocess.CompletedProcess) -> ExerciseOutput:
    return ExerciseOutput(
        stdout=result.stdout.decode("utf-8", errors="replace"),
        stderr=result.stderr.decode("utf-8", errors="replace"),
    )


def _execute(args: Sequence[str], failure: str) -> subprocess.CompletedProcess:
    try:
        return subprocess.run(list(args), capture_output=True)
    except OSError as exc:
        raise RuntimeError(failure) from exc


def _lines(source: str) -> list[str]:
    lines = source.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return [line[:-1] if line.endswith("\r") else line for line in lines]


def _cargo_toml(name: str) -> str:
    return (
        "[package]\n"
        f'name = "{name}"\n'
        'version = "0.0.1"\n'
        'edition = "2021"\n'
        "[[bin]]\n"
        f'name = "{name}"\n'
        f'path = "{name}.rs"'
    )


@dataclass
class Exercise:
    """One exercise as described in info.toml."""

    name: str
    path: Path
    mode: Mode
    hint: str

    @classmethod
    def from_dict(cls, data: Mapping[str, object]) -> Exercise:
        try:
            return cls(
                name=str(data["name"]),
                path=Path(str(data["path"])),
                mode=Mode(data["mode"]),
                hint=str(data["hint"]),
            )
        except KeyError as exc:
            raise ValueError(f"missing field {exc.args[0]!r}") from exc

    def __str__(self) -> str:
        return str(self.path)

    def _write_cargo_toml(self, target: Path) -> None:
        message = (
            "Failed to write Clippy Cargo.toml file."
            if ui.no_emoji()
            else "Failed to write 📎 Clippy 📎 Cargo.toml file."
        )
        try:
            target.write_text(_cargo_toml(self.name), encoding="utf-8")
        except OSError as exc:
            raise RuntimeError(message) from exc

    def _build(self) -> subprocess.CompletedProcess:
        path = str(self.path)
        failure = "Failed to run 'compile' command."
        match self.mode:
            case Mode.COMPILE:
                return _execute(
                    ["rustc", path, "-o", temp_file(), *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS],
                    failure,
                )
            case Mode.TEST:
                return _execute(
                    ["rustc", "--test", path, "-o", temp_file(),
                     *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS],
                    failure,
                )
            case Mode.CLIPPY:
                self._write_cargo_toml(CLIPPY_CARGO_TOML_PATH)
                # Build a binary too so the exercise can be run; clippy reports
                # any compilation failure itself.
                _execute(
                    ["rustc", path, "-o", temp_file(), *RUSTC_COLOR_ARGS, *RUSTC_EDITION_ARGS],
                    "Failed to compile!",
                )
                manifest = str(CLIPPY_CARGO_TOML_PATH)
                _execute(
                    ["cargo", "clean", "--manifest-path", manifest, *RUSTC_COLOR_ARGS],
                    "Failed to run 'cargo clean'",
                )
                return _execute(
                    ["cargo", "clippy", "--manifest-path", manifest, *RUSTC_COLOR_ARGS,
                     "--", "-D", "warnings", "-D", "clippy::float_cmp"],
                    failure,
                )
            case Mode.BUILD_SCRIPT:
                self._write_cargo_toml(BUILD_SCRIPT_CARGO_TOML_PATH)
                return _execute(
                    ["cargo", "test", "--manifest-path", str(BUILD_SCRIPT_CARGO_TOML_PATH)],
                    failure,
                )
        raise ValueError(f"unknown mode {self.mode!r}")

    def compile(self) -> CompiledExercise:
        """Build the exercise, raising ExerciseFailed on a failed build."""
        result = self._build()
        if result.returncode == 0:
            return CompiledExercise(self)
        clean()
        raise ExerciseFailed(_output(result))

    def run(self) -> ExerciseOutput:
        """Run the built binary, raising ExerciseFailed on a non-zero exit."""
        if self.mode is Mode.BUILD_SCRIPT:
            return ExerciseOutput(stdout="", stderr="")
        arg = "--show-output" if self.mode is Mode.TEST else ""
        result = _execute([temp_file(), arg], "Failed to run 'run' command")
        output = _output(result)
        if result.returncode == 0:
            return output
        raise ExerciseFailed(output)

    def state(self) -> ExerciseState:
        """Find the pending marker and the lines around it."""
        source = self.path.read_text(encoding="utf-8")
        if not I_AM_DONE_REGEX.search(source):
            return ExerciseState()
        lines = _lines(source)
        matched = next(
            (index for index, line in enumerate(lines) if I_AM_DONE_REGEX.search(line)),
            None,
        )
        if matched is None:
            raise RuntimeError(f"pending marker in {self.path} does not sit on one line")
        low = max(matched - CONTEXT, 0)
        high = matched + CONTEXT
        context = tuple(
            ContextLine(line=line, number=index + 1, important=index == matched)
            for index, line in enumerate(lines)
            if low <= index <= high
        )
        return ExerciseState(context)

    def looks_done(self) -> bool:
        """Whether the pending marker has been removed."""
        return self.state().is_done()


def load_exercises(path: str | os.PathLike[str]) -> list[Exercise]:
    """Read the exercise list from an info.toml file."""
    with open(path, "rb") as handle:
        data = tomllib.load(handle)
    return [Exercise.from_dict(entry) for entry in data.get("exercises", [])]