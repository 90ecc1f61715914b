"""Runner for small Rust exercises: compile, run and test them, and track your progress."""

__version__ = "5.5.1"