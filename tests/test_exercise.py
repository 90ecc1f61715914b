import os
import subprocess
from pathlib import Path
from unittest.mock import patch

import pytest

from rustlings.exercise import (
    CompiledExercise,
    ContextLine,
    Exercise,
    ExerciseFailed,
    ExerciseOutput,
    ExerciseState,
    Mode,
    clean,
    load_exercises,
    temp_file,
)

PENDING = "// fake_exercise\n\n// I AM NOT DONE\n\nfn main() {\n\n}\n"
FINISHED = "// fake_exercise\n\nfn main() {\n\n}\n"
TEST_SUCCESS = (
    "#[test]\nfn passing() {\n"
    '    println!("THIS TEST TOO SHALL PASS");\n    assert!(true);\n}\n'
)


def make(tmp_path, name, source, mode=Mode.COMPILE, hint=""):
    path = tmp_path / f"{name}.rs"
    path.write_text(source, encoding="utf-8")
    return Exercise(name=name, path=path, mode=mode, hint=hint)


def done(stdout=b"", stderr=b"", code=0):
    return subprocess.CompletedProcess([], code, stdout=stdout, stderr=stderr)


@pytest.fixture
def in_tmp(tmp_path, monkeypatch):
    monkeypatch.chdir(tmp_path)
    return tmp_path


def test_pending_state(tmp_path):
    exercise = make(tmp_path, "pending_exercise", PENDING)
    expected = (
        ContextLine("// fake_exercise", 1, False),
        ContextLine("", 2, False),
        ContextLine("// I AM NOT DONE", 3, True),
        ContextLine("", 4, False),
        ContextLine("fn main() {", 5, False),
    )
    assert exercise.state() == ExerciseState(expected)
    assert exercise.looks_done() is False


def test_finished_exercise(tmp_path):
    exercise = make(tmp_path, "finished_exercise", FINISHED)
    assert exercise.state() == ExerciseState()
    assert exercise.state().is_done() is True
    assert exercise.looks_done() is True


def test_context_clamped_at_start(tmp_path):
    exercise = make(tmp_path, "top", "// I AM NOT DONE\n\n#[test]\nfn it_works() {}\n")
    context = exercise.state().context
    assert [line.number for line in context] == [1, 2, 3]
    assert context[0].important is True


def test_marker_variants(tmp_path):
    exercise = make(tmp_path, "variant", "fn a() {}\n   ///I  AM\tNOT DONE\r\nfn b() {}\n")
    context = exercise.state().context
    assert [c.important for c in context] == [False, True, False]
    assert context[1].line == "   ///I  AM\tNOT DONE"


def test_done_marker_is_not_pending(tmp_path):
    exercise = make(tmp_path, "done", "// I AM DONE\nfn main() {}\n")
    assert exercise.looks_done() is True


def test_marker_split_over_lines_raises(tmp_path):
    exercise = make(tmp_path, "split", "//\nI AM NOT DONE\n")
    with pytest.raises(RuntimeError):
        exercise.state()


def test_missing_file_raises(tmp_path):
    exercise = Exercise("ghost", tmp_path / "ghost.rs", Mode.COMPILE, "")
    with pytest.raises(OSError):
        exercise.state()


def test_str_is_path(tmp_path):
    exercise = make(tmp_path, "intro1", FINISHED)
    assert str(exercise) == str(tmp_path / "intro1.rs")


def test_from_dict_and_modes():
    exercise = Exercise.from_dict(
        {"name": "x", "path": "exercises/x.rs", "mode": "buildscript", "hint": "h"}
    )
    assert exercise.mode is Mode.BUILD_SCRIPT
    assert exercise.path == Path("exercises/x.rs")
    assert exercise.hint == "h"


def test_from_dict_rejects_bad_input():
    with pytest.raises(ValueError):
        Exercise.from_dict({"name": "x", "path": "x.rs", "mode": "bogus", "hint": ""})
    with pytest.raises(ValueError):
        Exercise.from_dict({"name": "x", "path": "x.rs", "mode": "test"})


def test_load_exercises(tmp_path):
    info = tmp_path / "info.toml"
    info.write_text(
        '[[exercises]]\nname = "intro1"\npath = "exercises/intro/intro1.rs"\n'
        'mode = "compile"\nhint = "No hints this time ;)"\n\n'
        '[[exercises]]\nname = "if1"\npath = "exercises/if/if1.rs"\n'
        'mode = "test"\nhint = ""\n',
        encoding="utf-8",
    )
    exercises = load_exercises(info)
    assert [e.name for e in exercises] == ["intro1", "if1"]
    assert [e.mode for e in exercises] == [Mode.COMPILE, Mode.TEST]
    assert exercises[0].hint == "No hints this time ;)"


def test_temp_file_is_stable_and_process_specific():
    assert temp_file() == temp_file()
    assert str(os.getpid()) in temp_file()


def test_clean(in_tmp):
    Path(temp_file()).write_text("")
    clean()
    assert not Path(temp_file()).exists()
    clean()
    assert not Path(temp_file()).exists()


def test_compile_then_close_removes_binary(in_tmp):
    Path(temp_file()).write_text("")
    exercise = make(in_tmp, "pending_exercise", PENDING)
    with patch("rustlings.exercise.subprocess.run", return_value=done()) as run:
        compiled = exercise.compile()
    args = run.call_args.args[0]
    assert args[:4] == ["rustc", str(exercise.path), "-o", temp_file()]
    assert "--edition" in args and "2021" in args
    assert compiled.exercise is exercise
    compiled.close()
    assert not Path(temp_file()).exists()


def test_compiled_exercise_context_manager(in_tmp):
    exercise = make(in_tmp, "ctx", FINISHED)
    Path(temp_file()).write_text("")
    with CompiledExercise(exercise):
        assert Path(temp_file()).exists()
    assert not Path(temp_file()).exists()


def test_compile_failure_raises_and_cleans(in_tmp):
    Path(temp_file()).write_text("")
    exercise = make(in_tmp, "compFailure", "fn main() {\n    let\n}\n")
    with patch(
        "rustlings.exercise.subprocess.run",
        return_value=done(stdout=b"", stderr=b"error: expected pattern", code=1),
    ):
        with pytest.raises(ExerciseFailed) as info:
            exercise.compile()
    assert info.value.output == ExerciseOutput("", "error: expected pattern")
    assert not Path(temp_file()).exists()


def test_test_mode_compiles_with_test_flag(in_tmp):
    exercise = make(in_tmp, "testSuccess", TEST_SUCCESS, Mode.TEST)
    with patch("rustlings.exercise.subprocess.run", return_value=done()) as run:
        exercise.compile()
    assert run.call_args.args[0][:3] == ["rustc", "--test", str(exercise.path)]


def test_exercise_with_output(in_tmp):
    exercise = make(in_tmp, "exercise_with_output", TEST_SUCCESS, Mode.TEST)
    outputs = [done(), done(stdout=b"THIS TEST TOO SHALL PASS\ntest passing ... ok\n")]
    with patch("rustlings.exercise.subprocess.run", side_effect=outputs) as run:
        out = exercise.compile().run()
    assert "THIS TEST TOO SHALL PASS" in out.stdout
    assert run.call_args.args[0] == [temp_file(), "--show-output"]


def test_run_failure_raises(in_tmp):
    exercise = make(in_tmp, "testNotPassed", "#[test]\nfn not_passing() {}\n", Mode.TEST)
    with patch(
        "rustlings.exercise.subprocess.run",
        return_value=done(stdout=b"FAILED", stderr=b"panicked", code=101),
    ):
        with pytest.raises(ExerciseFailed) as info:
            exercise.run()
    assert info.value.output.stdout == "FAILED"
    assert info.value.output.stderr == "panicked"


def test_run_decodes_invalid_utf8(in_tmp):
    exercise = make(in_tmp, "bytes", FINISHED)
    with patch("rustlings.exercise.subprocess.run", return_value=done(stdout=b"ok\xff")):
        assert exercise.run().stdout == "ok\ufffd"


def test_build_script_run_is_empty(in_tmp):
    exercise = make(in_tmp, "build", FINISHED, Mode.BUILD_SCRIPT)
    with patch("rustlings.exercise.subprocess.run") as run:
        assert exercise.run() == ExerciseOutput("", "")
    assert run.call_count == 0


def test_clippy_writes_manifest_and_runs_cargo(in_tmp):
    (in_tmp / "exercises" / "clippy").mkdir(parents=True)
    exercise = make(in_tmp, "clippy1", FINISHED, Mode.CLIPPY)
    with patch("rustlings.exercise.subprocess.run", return_value=done()) as run:
        exercise.compile()
    manifest = (in_tmp / "exercises" / "clippy" / "Cargo.toml").read_text()
    assert 'name = "clippy1"' in manifest
    assert 'path = "clippy1.rs"' in manifest
    commands = [call.args[0][:2] for call in run.call_args_list]
    assert commands == [["rustc", str(exercise.path)], ["cargo", "clean"], ["cargo", "clippy"]]
    assert run.call_args.args[0][-4:] == ["-D", "warnings", "-D", "clippy::float_cmp"]


def test_build_script_writes_manifest(in_tmp):
    (in_tmp / "exercises" / "tests").mkdir(parents=True)
    exercise = make(in_tmp, "tests5", FINISHED, Mode.BUILD_SCRIPT)
    with patch("rustlings.exercise.subprocess.run", return_value=done()) as run:
        exercise.compile()
    assert 'name = "tests5"' in (in_tmp / "exercises" / "tests" / "Cargo.toml").read_text()
    assert run.call_args.args[0][:2] == ["cargo", "test"]


def test_clippy_manifest_write_failure(in_tmp):
    exercise = make(in_tmp, "clippy2", FINISHED, Mode.CLIPPY)
    with pytest.raises(RuntimeError, match="Cargo.toml"):
        exercise.compile()


def test_missing_compiler_raises(in_tmp):
    exercise = make(in_tmp, "nocompiler", FINISHED)
    with patch("rustlings.exercise.subprocess.run", side_effect=FileNotFoundError("rustc")):
        with pytest.raises(RuntimeError, match="compile"):
            exercise.compile()