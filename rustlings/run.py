"""Running a single exercise and resetting it."""

from __future__ import annotations

import subprocess

from rustlings import ui
from rustlings.exercise import Exercise, ExerciseFailed, Mode
from rustlings.verify import CheckFailed, _Spinner, test


def run(exercise: Exercise, verbose: bool) -> None:
    """Build and run one exercise, raising CheckFailed if it fails."""
    match exercise.mode:
        case Mode.TEST | Mode.BUILD_SCRIPT:
            test(exercise, verbose)
        case Mode.COMPILE | Mode.CLIPPY:
            _compile_and_run(exercise)


def reset(exercise: Exercise) -> None:
    """Stash the changes made to an exercise file with git."""
    try:
        subprocess.Popen(["git", "stash", "--", str(exercise.path)])
    except OSError as exc:
        raise CheckFailed(exercise) from exc


def _compile_and_run(exercise: Exercise) -> None:
    spinner = _Spinner(f"Compiling {exercise}...")
    try:
        compiled = exercise.compile()
    except ExerciseFailed as exc:
        spinner.finish_and_clear()
        ui.warn(f"Compilation of {exercise} failed!, Compiler error message:\n")
        print(exc.output.stderr)
        raise CheckFailed(exercise) from exc

    with compiled:
        spinner.set_message(f"Running {exercise}...")
        try:
            output = compiled.run()
        except ExerciseFailed as exc:
            spinner.finish_and_clear()
            print(exc.output.stdout)
            print(exc.output.stderr)
            ui.warn(f"Ran {exercise} with errors")
            raise CheckFailed(exercise) from exc
        spinner.finish_and_clear()

    print(output.stdout)
    ui.success(f"Successfully ran {exercise}")