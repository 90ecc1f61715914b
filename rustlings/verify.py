"""Checking exercises: build them, run them and report progress."""

from __future__ import annotations

import sys
from collections.abc import Iterable
from enum import Enum, auto

from rustlings import ui
from rustlings.exercise import CompiledExercise, Exercise, ExerciseFailed, Mode

_BAR_WIDTH = 60


class CheckFailed(Exception):
    """Building, running or testing an exercise did not succeed."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(f"checking {exercise} failed")
        self.exercise = exercise


class VerificationFailed(Exception):
    """Verification stopped at an exercise that is failing or not finished."""

    def __init__(self, exercise: Exercise) -> None:
        super().__init__(f"{exercise} is not finished")
        self.exercise = exercise


class RunMode(Enum):
    """Whether a passing test harness leads to the completion prompt."""

    INTERACTIVE = auto()
    NON_INTERACTIVE = auto()


class _Spinner:
    """A one-line status message on a terminal's standard error."""

    def __init__(self, message: str) -> None:
        self._stream = sys.stderr
        self.set_message(message)

    def _active(self) -> bool:
        return self._stream.isatty()

    def set_message(self, message: str) -> None:
        if self._active():
            self._stream.write(f"\r\x1b[2K{message}")
            self._stream.flush()

    def finish_and_clear(self) -> None:
        if self._active():
            self._stream.write("\r\x1b[2K")
            self._stream.flush()


class _ProgressBar:
    """A progress bar drawn on a terminal's standard error."""

    def __init__(self, position: int, total: int) -> None:
        self._stream = sys.stderr
        self.position = position
        self.total = total

    def draw(self, message: str) -> None:
        if not self._stream.isatty():
            return
        if self.total:
            filled = min(_BAR_WIDTH, _BAR_WIDTH * self.position // self.total)
        else:
            filled = _BAR_WIDTH
        rest = "" if filled >= _BAR_WIDTH else ">" + "-" * (_BAR_WIDTH - filled - 1)
        bar = ui.green("#" * filled) + ui.red(rest)
        self._stream.write(
            f"\rProgress: [{bar}] {self.position}/{self.total} {message}"
        )
        self._stream.flush()

    def inc(self) -> None:
        self.position += 1


def verify(
    exercises: Iterable[Exercise],
    progress: tuple[int, int],
    verbose: bool,
    success_hints: bool,
) -> None:
    """Check exercises in order, raising VerificationFailed at the first one not done."""
    num_done, total = progress
    percentage = num_done / total * 100.0 if total else 0.0
    bar = _ProgressBar(num_done, total)
    bar.draw(f"({percentage:.1f} %)")

    for exercise in exercises:
        try:
            match exercise.mode:
                case Mode.TEST | Mode.BUILD_SCRIPT:
                    done = _compile_and_test(
                        exercise, RunMode.INTERACTIVE, verbose, success_hints
                    )
                case Mode.COMPILE:
                    done = _compile_and_run_interactively(exercise, success_hints)
                case Mode.CLIPPY:
                    done = _compile_only(exercise, success_hints)
        except CheckFailed:
            done = False
        if not done:
            raise VerificationFailed(exercise)
        if total:
            percentage += 100.0 / total
        bar.inc()
        bar.draw(f"({percentage:.1f} %)")


def test(exercise: Exercise, verbose: bool) -> None:
    """Build and run an exercise's test harness, raising CheckFailed on failure."""
    _compile_and_test(exercise, RunMode.NON_INTERACTIVE, verbose, False)


def _compile(exercise: Exercise, spinner: _Spinner) -> CompiledExercise:
    try:
        return exercise.compile()
    except ExerciseFailed as exc:
        spinner.finish_and_clear()
        ui.warn(f"Compiling of {exercise} failed! Please try again. Here's the output:")
        print(exc.output.stderr)
        raise CheckFailed(exercise) from exc


def _compile_only(exercise: Exercise, success_hints: bool) -> bool:
    spinner = _Spinner(f"Compiling {exercise}...")
    with _compile(exercise, spinner):
        spinner.finish_and_clear()
        return prompt_for_completion(exercise, None, success_hints)


def _compile_and_run_interactively(exercise: Exercise, success_hints: bool) -> bool:
    spinner = _Spinner(f"Compiling {exercise}...")
    with _compile(exercise, spinner) as compiled:
        spinner.set_message(f"Running {exercise}...")
        try:
            output = compiled.run()
        except ExerciseFailed as exc:
            spinner.finish_and_clear()
            ui.warn(f"Ran {exercise} with errors")
            print(exc.output.stdout)
            print(exc.output.stderr)
            raise CheckFailed(exercise) from exc
        spinner.finish_and_clear()
        return prompt_for_completion(exercise, output.stdout, success_hints)


def _compile_and_test(
    exercise: Exercise, run_mode: RunMode, verbose: bool, success_hints: bool
) -> bool:
    spinner = _Spinner(f"Testing {exercise}...")
    with _compile(exercise, spinner) as compiled:
        try:
            output = compiled.run()
        except ExerciseFailed as exc:
            spinner.finish_and_clear()
            ui.warn(f"Testing of {exercise} failed! Please try again. Here's the output:")
            print(exc.output.stdout)
            raise CheckFailed(exercise) from exc
        spinner.finish_and_clear()
        if verbose:
            print(output.stdout)
        if run_mode is RunMode.INTERACTIVE:
            return prompt_for_completion(exercise, None, success_hints)
        return True


def separator() -> str:
    """The rule printed around output and hints."""
    return ui.bold("====================")


def prompt_for_completion(
    exercise: Exercise, prompt_output: str | None, success_hints: bool
) -> bool:
    """Return True if the exercise is done; otherwise show where the marker sits."""
    state = exercise.state()
    if state.is_done():
        return True

    match exercise.mode:
        case Mode.COMPILE:
            ui.success(f"Successfully ran {exercise}!")
        case Mode.TEST:
            ui.success(f"Successfully tested {exercise}!")
        case Mode.CLIPPY | Mode.BUILD_SCRIPT:
            ui.success(f"Successfully compiled {exercise}!")

    no_emoji = ui.no_emoji()
    clippy_message = (
        "The code is compiling, and Clippy is happy!"
        if no_emoji
        else "The code is compiling, and 📎 Clippy 📎 is happy!"
    )
    success_message = {
        Mode.COMPILE: "The code is compiling!",
        Mode.TEST: "The code is compiling, and the tests pass!",
        Mode.CLIPPY: clippy_message,
        Mode.BUILD_SCRIPT: "Build script works!",
    }[exercise.mode]

    print()
    if no_emoji:
        print(f"~*~ {success_message} ~*~")
    else:
        print(f"🎉 🎉  {success_message} 🎉 🎉")
    print()

    if prompt_output is not None:
        print("Output:")
        print(separator())
        print(prompt_output)
        print(separator())
        print()
    if success_hints:
        print("Hints:")
        print(separator())
        print(exercise.hint)
        print(separator())
        print()

    print("You can keep working on this exercise,")
    print(
        "or jump into the next one by removing the "
        f"{ui.bold('`I AM NOT DONE`')} comment:"
    )
    print()
    for context_line in state.context:
        text = ui.bold(context_line.line) if context_line.important else context_line.line
        number = ui.blue(ui.bold(f"{context_line.number:>2}"))
        print(f"{number} {ui.blue('|')}  {text}")

    return False