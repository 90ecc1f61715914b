# rustlings

A runner for small Rust exercises. Each exercise is a Rust source file that
has a compile error, a failing test or a logic mistake for you to fix. The
runner compiles the exercises and runs them or their tests. It moves you on to
the next one once you are done.

## Requirements

- Python 3.11 or later.
- A working Rust toolchain. `rustc` must be on your `PATH`. The Clippy and
  build-script exercises also need `cargo`. `git` is needed for `reset`.

## Installation

```
pip install .
```

## Usage

Run every command from the exercise directory. That directory holds
`info.toml` and the `exercises/` folder. Any other directory gives exit
status 1, except for `--version`. The command also exits with status 1 when
`rustc --version` cannot be run.

```
rustlings                 # welcome text and a short introduction
rustlings watch           # recheck your exercises each time a file changes
rustlings verify          # check all exercises in the order of info.toml
rustlings run NAME        # compile and run (or test) one exercise
rustlings run next        # the first exercise that is not done yet
rustlings hint NAME       # print the hint for an exercise
rustlings reset NAME      # run "git stash -- <path>" on the exercise file
rustlings list            # table of exercises with Done / Pending status
rustlings lsp             # write rust-project.json for rust-analyzer
rustlings cicvverify      # run every exercise and write a JSON report
rustlings --version       # print the version
```

Put `--nocapture` before the subcommand to show the output of test
exercises. An unknown exercise name gives exit status 1. So does a failing
check, or a bad command line.

### Exercise modes

Each entry in `info.toml` has a `name`, a `path`, a `hint` and a `mode`. The
mode sets how the exercise is checked:

- `compile`: built with `rustc`, then run.
- `test`: built with `rustc --test`, then its tests are run.
- `clippy`: the runner writes `exercises/clippy/Cargo.toml`, builds the file,
  and then runs `cargo clippy` with warnings denied.
- `buildscript`: the runner writes `exercises/tests/Cargo.toml` and runs
  `cargo test`.

### Finishing an exercise

An exercise counts as done when it compiles and passes, and it no longer holds
this comment:

```
// I AM NOT DONE
```

While the comment is there, `verify` and `watch` stop at the exercise. They
show the comment with two lines of context on each side.

### Watch mode

`rustlings watch` checks your progress first. It then waits for `.rs` files to
be created or changed under `exercises/`. After a change it checks the changed
exercise first, then every other exercise that is not done yet. You can type
these commands while it runs:

- `hint`: the hint of the exercise you are stuck on
- `clear`: clear the screen
- `quit`: leave watch mode
- `!<cmd>`: run a command, for example `!rustc --explain E0381`
- `help`: list these commands

`rustlings watch --success-hints` also prints the hint of an exercise that
passes but still has its `I AM NOT DONE` comment.

### Listing exercises

```
rustlings list --names          # names only
rustlings list --paths          # paths only
rustlings list --filter vars,if # comma separated substrings of name or path
rustlings list --solved         # only exercises that are done
rustlings list --unsolved       # only exercises still pending
```

The filter patterns are lowercased before they are compared. The last line
reports your progress as a count and a percentage.

### Grading report

`rustlings cicvverify` runs all exercises at the same time. For each result
it prints a short summary. It then writes `.github/result/check_result.json`,
which holds the result of each exercise, the totals and the elapsed time in
seconds. The `.github/result/` directory must already exist.

### Editor support

`rustlings lsp` writes `rust-project.json` to the current directory. Every
`.rs` file under `exercises/` becomes one crate in that file. The standard
library sources come from `RUST_SRC_PATH` when it is set. Otherwise they are
found through `rustc --print sysroot`.

### Environment

- `NO_EMOJI`: set it to any value to print plain symbols instead of emoji.
- `RUST_SRC_PATH`: where `rustlings lsp` looks for the standard library
  sources.
- Colours are used only when standard output is a terminal. Set
  `CLICOLOR_FORCE` to a value other than `0` to force colours. Set
  `CLICOLOR=0` to turn them off.

## Using it from Python

The runner can also be driven from code:

```python
from rustlings.exercise import load_exercises
from rustlings.verify import VerificationFailed, verify

exercises = load_exercises("info.toml")
print([e.name for e in exercises if e.looks_done()])

try:
    verify(exercises, (0, len(exercises)), verbose=False, success_hints=False)
except VerificationFailed as failed:
    print("stuck on", failed.exercise.name)
```

`Exercise.state()` returns an `ExerciseState`. Its `context` holds the
`ContextLine`s around the pending comment, and it is empty once the exercise
is done. `rustlings.cli.main(argv)` runs the command line and returns the exit
status.

## Limitations

- The runner builds and runs exercises with the Rust toolchain found on
  `PATH`. It has no compiler or test harness of its own.
- `reset` starts `git stash` and does not wait for it to finish or check its
  result.