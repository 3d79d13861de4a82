# output_manager.py

import hashlib
import os
import re

from seqclass.fmt import strip_ansi
from seqclass.workspace import workspace_dir

_SAFE_CHARS_RE = re.compile(r"[^A-Za-z0-9._=-]+")


def resolve_output_path(path: str, workspace_root: str) -> str:
    """
    Resolve user-provided output path.

    Rules:
    - '~' expanded to user home
    - Absolute paths unchanged
    - Relative paths are relative to workspace_root
    """
    if not path:
        raise ValueError("Output path is empty")

    path = os.path.expanduser(path)
    if os.path.isabs(path):
        return os.path.normpath(path)
    return os.path.normpath(os.path.join(workspace_root, path))


def _fallback_filename_for_window(start: int, ext: str = ".txt", head: int = 12, tail: int = 12) -> str:
    """
    Filesystem-safe shortened filename for a huge start position.

    Format:
      digits=<ndigits>_<head>...<tail>_sha=<sha12>.txt
    """
    s = str(start)
    sha12 = hashlib.sha256(s.encode("utf-8")).hexdigest()[:12]
    tail_part = s[-tail:] if len(s) > tail else s
    stem = f"digits={len(s)}_{s[:head]}...{tail_part}_sha={sha12}"
    stem = _SAFE_CHARS_RE.sub("_", stem).strip("._-=")
    return stem + ext


def _choose_split_output_path(directory: str, start: int, count: int | None,
                              ext: str = ".txt", max_full_path_len: int = 250) -> str:
    """
    Use '<start>-<end>.txt' (or '<start>-inf.txt') when the FULL path is short
    enough, otherwise a shortened, recognizable name.
    """
    end = "inf" if count is None else str(start + max(count, 1) - 1)
    original = os.path.join(directory, f"{start}-{end}{ext}")
    if len(original) < max_full_path_len:
        return original
    return os.path.join(directory, _fallback_filename_for_window(start, ext=ext))


class OutputManager:
    """
    Sink for rendered lines: screen and/or file.

    Usage:
        # Split mode (one file per window):
        om = OutputManager(output_file="results/", start=200, count=5)
        om.write("Fizz")    # prints and writes <dir>/200-204.txt
        om.close()

        # Single file (append all windows to one file):
        om = OutputManager(output_file="results/all.txt")
        om.write("Fizz")    # prints and appends
        om.close()
    """

    def __init__(self, output_file: str | None = None, quiet: bool = False,
                 start: int | None = None, count: int | None = None):
        """
        Parameters:
            output_file:
                None or ""       => screen only
                "." or "./"      => per-window files in the workspace
                endswith "/"     => per-window files in specified dir
                path/to/file.txt => append all windows to this file
            quiet: if True, no output to screen (only to file)
            start, count: the window, used for the filename in per-window mode
        """
        self.quiet = quiet
        self.output_file = output_file or ""
        self._split_started = False

        self._mode: str = "none"     # "none" | "split" | "single"
        self._split_path: str | None = None
        self._single_path: str | None = None

        if self.output_file in (".", "./") or self.output_file.endswith("/"):
            if start is None:
                raise ValueError("A start position must be provided when outputting to a directory.")
            directory = resolve_output_path(self.output_file, str(workspace_dir()))
            os.makedirs(directory, exist_ok=True)
            self._mode = "split"
            self._split_path = _choose_split_output_path(directory, start, count)

        elif self.output_file:
            path = resolve_output_path(self.output_file, str(workspace_dir()))
            parent = os.path.dirname(path)
            if parent:
                os.makedirs(parent, exist_ok=True)
            self._mode = "single"
            self._single_path = path

    @property
    def target(self) -> str | None:
        return self._split_path or self._single_path

    def write(self, *args, sep: str = " ", end: str = "\n") -> None:
        """Write to screen and file (if configured)."""
        text = sep.join(str(a) for a in args) + end

        if not self.quiet:
            print(text, end="")

        if self._mode == "single" and self._single_path:
            with open(self._single_path, "a", encoding="utf-8") as fh:
                fh.write(strip_ansi(text))
        elif self._mode == "split" and self._split_path:
            # the first line of a window truncates an older file of the same name
            with open(self._split_path, "a" if self._split_started else "w", encoding="utf-8") as fh:
                fh.write(strip_ansi(text))
            self._split_started = True

    def close(self) -> None:
        """Separate runs with an empty line in single-file mode."""
        if self._mode == "single" and self._single_path:
            with open(self._single_path, "a", encoding="utf-8") as fh:
                fh.write("\n")  # one empty line between runs

    def __enter__(self):
        return self

    def __exit__(self, *exc):
        self.close()
