"""Terminal styling and status messages."""

from __future__ import annotations

import os
import sys

_RESET = "\x1b[0m"


def no_emoji() -> bool:
    """Return True when the NO_EMOJI environment variable is set."""
    return "NO_EMOJI" in os.environ


def _colors_enabled() -> bool:
    force = os.environ.get("CLICOLOR_FORCE")
    if force and force != "0":
        return True
    if os.environ.get("CLICOLOR") == "0":
        return False
    return sys.stdout.isatty()


def _style(text: object, code: str) -> str:
    text = str(text)
    if not _colors_enabled():
        return text
    return f"\x1b[{code}m{text}{_RESET}"


def red(text: object) -> str:
    """Render text in red."""
    return _style(text, "31")


def green(text: object) -> str:
    """Render text in green."""
    return _style(text, "32")


def blue(text: object) -> str:
    """Render text in blue."""
    return _style(text, "34")


def bold(text: object) -> str:
    """Render text in bold."""
    return _style(text, "1")


def warn(message: str) -> None:
    """Print a warning line in red."""
    mark = "!" if no_emoji() else "⚠️ "
    print(f"{red(mark)} {red(message)}")


def success(message: str) -> None:
    """Print a success line in green."""
    mark = "✓" if no_emoji() else "✅"
    print(f"{green(mark)} {green(message)}")