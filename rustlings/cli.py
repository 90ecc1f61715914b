"""The rustlings command line."""

from __future__ import annotations

import argparse
import json
import os
import subprocess
import sys
import threading
import time
from collections.abc import Iterable, Sequence
from concurrent.futures import ThreadPoolExecutor
from dataclasses import asdict, dataclass, field
from pathlib import Path

from rustlings import ui
from rustlings.exercise import Exercise, load_exercises
from rustlings.project import RustAnalyzerProject
from rustlings.run import reset, run
from rustlings.verify import CheckFailed, VerificationFailed, verify
from rustlings.watch import WatchStatus, watch

VERSION = "5.5.1"
INFO_FILE = "info.toml"
CHECK_RESULT_PATH = ".github/result/check_result.json"

DEFAULT_OUT = """Thanks for installing Rustlings!

Is this your first time? Don't worry, Rustlings was made for beginners! We are
going to teach you a lot of things about Rust, but before we can get
started, here's a couple of notes about how Rustlings operates:

1. The central concept behind Rustlings is that you solve exercises. These
   exercises usually have some sort of syntax error in them, which will cause
   them to fail compilation or testing. Sometimes there's a logic error instead
   of a syntax error. No matter what error, it's your job to find it and fix it!
   You'll know when you fixed it because then, the exercise will compile and
   Rustlings will be able to move on to the next exercise.
2. If you run Rustlings in watch mode (which we recommend), it'll automatically
   start with the first exercise. Don't get confused by an error message popping
   up as soon as you run Rustlings! This is part of the exercise that you're
   supposed to solve, so open the exercise file in an editor and start your
   detective work!
3. If you're stuck on an exercise, there is a helpful hint you can view by typing
   'hint' (in watch mode), or running `rustlings hint exercise_name`.
4. If an exercise doesn't make sense to you, feel free to open an issue!
   We look at every issue, and sometimes, other learners do too so you can
   help each other out!
5. If you want to use `rust-analyzer` with exercises, which provides features like
   autocompletion, run the command `rustlings lsp`.

Got all that? Great! To get started, run `rustlings watch` in order to get the first
exercise. Make sure to have your editor open!"""

FINISH_LINE = r"""+----------------------------------------------------+
|          You made it to the Fe-nish line!          |
+--------------------------  ------------------------+
                          \/
     ▒▒          ▒▒▒▒▒▒▒▒      ▒▒▒▒▒▒▒▒          ▒▒
   ▒▒▒▒  ▒▒    ▒▒        ▒▒  ▒▒        ▒▒    ▒▒  ▒▒▒▒
   ▒▒▒▒  ▒▒  ▒▒            ▒▒            ▒▒  ▒▒  ▒▒▒▒
 ░░▒▒▒▒░░▒▒  ▒▒            ▒▒            ▒▒  ▒▒░░▒▒▒▒
   ▓▓▓▓▓▓▓▓  ▓▓      ▓▓██  ▓▓  ▓▓██      ▓▓  ▓▓▓▓▓▓▓▓
     ▒▒▒▒    ▒▒      ████  ▒▒  ████      ▒▒░░  ▒▒▒▒
       ▒▒  ▒▒▒▒▒▒        ▒▒▒▒▒▒        ▒▒▒▒▒▒  ▒▒
         ▒▒▒▒▒▒▒▒▒▒▓▓▓▓▓▓▒▒▒▒▒▒▒▒▓▓▒▒▓▓▒▒▒▒▒▒▒▒
           ▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒
             ▒▒▒▒▒▒▒▒▒▒██▒▒▒▒▒▒██▒▒▒▒▒▒▒▒▒▒
           ▒▒  ▒▒▒▒▒▒▒▒▒▒██████▒▒▒▒▒▒▒▒▒▒  ▒▒
         ▒▒    ▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒    ▒▒
       ▒▒    ▒▒    ▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒▒    ▒▒    ▒▒
       ▒▒  ▒▒    ▒▒                  ▒▒    ▒▒  ▒▒
           ▒▒  ▒▒                      ▒▒  ▒▒

We hope you enjoyed learning about the various aspects of Rust!
If you noticed any issues, please don't hesitate to report them.
You can also contribute your own exercises to help the greater community!

Before reporting an issue or contributing, please read the contributing guidelines."""

WELCOME = r"""       welcome to...
                 _   _ _
  _ __ _   _ ___| |_| (_)_ __   __ _ ___
 | '__| | | / __| __| | | '_ \ / _` / __|
 | |  | |_| \__ \ |_| | | | | | (_| \__ \
 |_|   \__,_|___/\__|_|_|_| |_|\__, |___/
                               |___/"""


@dataclass
class ExerciseResult:
    """Whether one exercise passed a check run."""

    name: str
    result: bool


@dataclass
class ExerciseStatistics:
    """Totals of a check run."""

    total_exercations: int = 0
    total_succeeds: int = 0
    total_failures: int = 0
    total_time: int = 0


@dataclass
class ExerciseCheckList:
    """The report written by a check run."""

    exercises: list[ExerciseResult] = field(default_factory=list)
    user_name: str | None = None
    statistics: ExerciseStatistics = field(default_factory=ExerciseStatistics)

    def to_dict(self) -> dict[str, object]:
        return asdict(self)


class ExerciseNotFound(LookupError):
    """No exercise matches the requested name."""


class _Parser(argparse.ArgumentParser):
    """An argument parser that exits with status 1 on usage errors."""

    def error(self, message: str) -> None:  # type: ignore[override]
        self.print_usage(sys.stderr)
        self.exit(1, f"{self.prog}: error: {message}\n")


def build_parser() -> argparse.ArgumentParser:
    """Build the parser for the command line."""
    parser = _Parser(
        prog="rustlings",
        description=(
            "Rustlings is a collection of small exercises to get you used to "
            "writing and reading Rust code"
        ),
    )
    parser.add_argument(
        "--nocapture", action="store_true", help="show outputs from the test exercises"
    )
    parser.add_argument(
        "-v", "--version", action="store_true", help="show the executable version"
    )
    commands = parser.add_subparsers(dest="command")

    commands.add_parser("verify", help="Verifies all exercises according to the recommended order")

    watch_parser = commands.add_parser("watch", help="Reruns `verify` when files were edited")
    watch_parser.add_argument(
        "--success-hints", action="store_true", help="show hints on success"
    )

    for name, text in (
        ("run", "Runs/Tests a single exercise"),
        ("reset", 'Resets a single exercise using "git stash -- <filename>"'),
        ("hint", "Returns a hint for the given exercise"),
    ):
        sub = commands.add_parser(name, help=text)
        sub.add_argument("name", help="the name of the exercise")

    list_parser = commands.add_parser("list", help="Lists the exercises available in Rustlings")
    list_parser.add_argument(
        "-p", "--paths", action="store_true", help="show only the paths of the exercises"
    )
    list_parser.add_argument(
        "-n", "--names", action="store_true", help="show only the names of the exercises"
    )
    list_parser.add_argument(
        "-f",
        "--filter",
        default=None,
        help="provide a string to match exercise names; comma separated patterns are acceptable",
    )
    list_parser.add_argument(
        "-u", "--unsolved", action="store_true", help="display only exercises not yet solved"
    )
    list_parser.add_argument(
        "-s", "--solved", action="store_true", help="display only exercises that have been solved"
    )

    commands.add_parser("lsp", help="Enable rust-analyzer for exercises")
    commands.add_parser("cicvverify", help="cicvverify")
    return parser


def rustc_exists() -> bool:
    """Whether `rustc --version` can be run successfully."""
    try:
        result = subprocess.run(["rustc", "--version"], stdout=subprocess.DEVNULL)
    except OSError:
        return False
    return result.returncode == 0


def find_exercise(name: str, exercises: Iterable[Exercise]) -> Exercise:
    """Find an exercise by name; "next" means the first one not yet done."""
    if name == "next":
        found = next((e for e in exercises if not e.looks_done()), None)
        if found is None:
            raise ExerciseNotFound(
                "🎉 Congratulations! You have done all the exercises!\n"
                "🔚 There are no more exercises to do next!"
            )
        return found
    found = next((e for e in exercises if e.name == name), None)
    if found is None:
        raise ExerciseNotFound(f"No exercise found for '{name}'!")
    return found


def list_exercises(
    exercises: Iterable[Exercise],
    paths: bool = False,
    names: bool = False,
    filter: str | None = None,
    unsolved: bool = False,
    solved: bool = False,
) -> int:
    """Print the exercises and the progress line; return how many are done."""
    exercises = list(exercises)
    if not paths and not names:
        print(f"{'Name':<17}\t{'Path':<46}\t{'Status':<7}")
    patterns = [p for p in (filter or "").lower().split(",") if p.strip()]
    done_count = 0
    for exercise in exercises:
        fname = str(exercise.path)
        done = exercise.looks_done()
        if done:
            done_count += 1
        status = "Done" if done else "Pending"
        matches = filter is None or any(p in exercise.name or p in fname for p in patterns)
        wanted = (done and solved) or (not done and unsolved) or (not solved and not unsolved)
        if wanted and matches:
            if paths:
                line = fname
            elif names:
                line = exercise.name
            else:
                line = f"{exercise.name:<17}\t{fname:<46}\t{status:<7}"
            sys.stdout.write(f"{line}\n")
    percentage = done_count / len(exercises) * 100.0 if exercises else 0.0
    print(
        f"Progress: You completed {done_count} / {len(exercises)} exercises "
        f"({percentage:.1f} %)."
    )
    return done_count


def cicv_verify(
    exercises: Iterable[Exercise],
    verbose: bool = True,
    output_path: str | os.PathLike[str] = CHECK_RESULT_PATH,
) -> ExerciseCheckList:
    """Run every exercise concurrently and write a JSON report of the results."""
    exercises = list(exercises)
    started = int(time.time())
    total = len(exercises)
    check_list = ExerciseCheckList(statistics=ExerciseStatistics(total_exercations=total))
    lock = threading.Lock()

    def check(exercise: Exercise, task_started: int) -> None:
        try:
            run(exercise, verbose)
        except CheckFailed:
            passed = False
        else:
            passed = True
        with lock:
            stats = check_list.statistics
            if passed:
                stats.total_succeeds += 1
            else:
                stats.total_failures += 1
            outcome = "执行成功" if passed else "执行失败"
            print(f"{exercise.name}{outcome}")
            print(f"总的题目数: {total}")
            print(f"当前做正确的题目数: {stats.total_succeeds}")
            print(f"当前修改试卷耗时: {int(time.time()) - task_started} s")
            check_list.exercises.append(ExerciseResult(name=exercise.name, result=passed))

    with ThreadPoolExecutor() as pool:
        futures = [pool.submit(check, e, int(time.time())) for e in exercises]
        for future in futures:
            future.result()

    total_time = int(time.time()) - started
    rule = "=" * 31
    print(f"{rule}试卷批改完成,总耗时: {total_time} s; {rule}===")
    check_list.statistics.total_time = total_time
    text = json.dumps(check_list.to_dict(), indent=2, ensure_ascii=False)
    Path(output_path).write_text(text, encoding="utf-8")
    return check_list


def _lsp() -> int:
    project = RustAnalyzerProject()
    try:
        project.get_sysroot_src()
    except OSError:
        print("Couldn't find toolchain path, do you have `rustc` installed?")
        return 1
    try:
        project.exercises_to_json()
    except OSError:
        print("Couldn't parse rustlings exercises files")
        return 1
    if not project.crates:
        print("Failed find any exercises, make sure you're in the `rustlings` folder")
        return 0
    try:
        project.write_to_disk()
    except OSError:
        print("Failed to write rust-project.json to disk for rust-analyzer")
        return 0
    print("Successfully generated rust-project.json")
    print("rust-analyzer will now parse exercises, restart your language server or editor")
    return 0


def _watch(exercises: list[Exercise], verbose: bool, success_hints: bool) -> int:
    try:
        status = watch(exercises, verbose, success_hints)
    except OSError as exc:
        print(f"Error: Could not watch your progress. Error message was {exc!r}.")
        print(
            "Most likely you've run out of disk space or your 'inotify limit' "
            "has been reached."
        )
        return 1
    if status is WatchStatus.FINISHED:
        emoji = "★" if ui.no_emoji() else "🎉"
        print(f"{emoji} All exercises completed! {emoji}")
        print(f"\n{FINISH_LINE}\n")
    else:
        print("We hope you're enjoying learning about Rust!")
        print(
            "If you want to continue working on the exercises at a later point, "
            "you can simply run `rustlings watch` again"
        )
    return 0


def main(argv: Sequence[str] | None = None) -> int:
    """Run the command line and return the exit status."""
    args = build_parser().parse_args(argv)

    if args.version:
        print(f"v{VERSION}")
        return 0

    if args.command is None:
        print(f"\n{WELCOME}\n")

    if not Path(INFO_FILE).exists():
        print(f"{sys.argv[0]} must be run from the rustlings directory")
        print("Try `cd rustlings/`!")
        return 1

    if not rustc_exists():
        print("We cannot find `rustc`.")
        print("Try running `rustc --version` to diagnose your problem.")
        print("For instructions on how to install Rust, check the README.")
        return 1

    exercises = load_exercises(INFO_FILE)
    verbose = args.nocapture

    if args.command is None:
        print(f"{DEFAULT_OUT}\n")
        return 0

    try:
        match args.command:
            case "list":
                try:
                    list_exercises(
                        exercises, args.paths, args.names, args.filter,
                        args.unsolved, args.solved,
                    )
                except BrokenPipeError:
                    return 0
                except OSError:
                    return 1
            case "run":
                run(find_exercise(args.name, exercises), verbose)
            case "reset":
                reset(find_exercise(args.name, exercises))
            case "hint":
                print(find_exercise(args.name, exercises).hint)
            case "verify":
                verify(exercises, (0, len(exercises)), verbose, False)
            case "cicvverify":
                cicv_verify(exercises, True, CHECK_RESULT_PATH)
            case "lsp":
                return _lsp()
            case "watch":
                return _watch(exercises, verbose, args.success_hints)
    except ExerciseNotFound as exc:
        print(exc)
        return 1
    except (CheckFailed, VerificationFailed):
        return 1
    return 0