# -----------------------------------------------------------------------------
#  Utility functions
# -----------------------------------------------------------------------------

from __future__ import annotations

import os
import shutil
import sys


# --- Errors ------------------------------------------------------------------

class SeqClassError(ValueError):
    """Base class for every input-validation failure raised by the engine."""


class InvalidRuleError(SeqClassError):
    pass


class DuplicateLabelError(InvalidRuleError):
    pass


class InvalidPositionError(SeqClassError):
    pass


class InvalidArgumentError(SeqClassError):
    pass


class UserInputError(Exception):
    pass


# --- Validation --------------------------------------------------------------

def is_int(value: object) -> bool:
    # bool is an int subclass; True is not a position
    return isinstance(value, int) and not isinstance(value, bool)


def check_position(position: object) -> int:
    """Return position unchanged or raise InvalidPositionError."""
    if not is_int(position):
        raise InvalidPositionError(f"position must be an integer, got {typename(position)}")
    if position < 0:
        raise InvalidPositionError(f"position must be non-negative, got {position}")
    return position


def check_count(count: object, what: str = "count") -> int:
    if not is_int(count):
        raise InvalidArgumentError(f"{what} must be an integer, got {typename(count)}")
    if count < 0:
        raise InvalidArgumentError(f"{what} must be non-negative, got {count}")
    return count


def dec_digits(n: int) -> int:
    """Number of decimal digits of |n| without building str(n)."""
    n = abs(n)
    if n < 10:
        return 1
    # bit_length gives a cheap estimate; correct it by one comparison
    est = int(n.bit_length() * 0.30102999566398120) + 1
    if n < 10 ** (est - 1):
        est -= 1
    return est


# --- Terminal ----------------------------------------------------------------

def clear_screen(keep_scrollback: bool = False) -> None:
    """
    Clear the terminal screen.
    - On Windows: uses 'cls'
    - On POSIX: ANSI sequences; optionally clear scrollback
    """
    try:
        if os.name == "nt":
            os.system("cls")
        else:
            seq = "\033[H\033[2J" if keep_scrollback else "\033[3J\033[H\033[2J"
            sys.stdout.write(seq)
            sys.stdout.flush()
    except OSError:
        pass


def get_terminal_width(default=80):
    """
    Return the terminal's character width if detected, else the default
    value (80 by default).
    """
    try:
        return shutil.get_terminal_size().columns
    except OSError:
        return default


# --- Settings helpers --------------------------------------------------------

def validate_output_setting(output_file: str | None) -> str | None:
    """
    Validate output setting.
    - None / "" => ok (screen only)
    - "." / "./" / trailing "/" => ok (per-window directory mode)
    - path/to/file => must not be in forbidden base names or extensions
    Returns the output_file, or raises ValueError.
    """
    FORBIDDEN_FILENAMES = {
        ".gitignore",
        "LICENSE",
        "pyproject.toml",
        # Windows reserved device names (case-insensitive on Windows)
        "con", "prn", "aux", "nul",
        "com1", "com2", "com3", "com4", "com5", "com6", "com7", "com8", "com9",
        "lpt1", "lpt2", "lpt3", "lpt4", "lpt5", "lpt6", "lpt7", "lpt8", "lpt9",
    }

    FORBIDDEN_EXTENSIONS = {".py", ".md", ".toml"}

    if not output_file:
        return output_file  # screen only

    if output_file in (".", "./") or output_file.endswith("/"):
        return output_file

    basename = os.path.basename(output_file)
    name_no_ext, ext = os.path.splitext(basename)
    ext = ext.lower()

    if basename.lower() in FORBIDDEN_FILENAMES or name_no_ext.lower() in FORBIDDEN_FILENAMES:
        raise ValueError(f"Forbidden output filename: {basename}")

    if ext in FORBIDDEN_EXTENSIONS:
        raise ValueError(f"Forbidden output file extension: {ext}")

    return output_file


def typename(v: object) -> str:
    return type(v).__name__


def flatten_dotted(d: dict, prefix: str = "") -> dict[str, object]:
    out: dict[str, object] = {}
    for k, v in (d or {}).items():
        key = f"{prefix}.{k}" if prefix else str(k)
        if isinstance(v, dict):
            out.update(flatten_dotted(v, key))
        else:
            out[key] = v
    return out
