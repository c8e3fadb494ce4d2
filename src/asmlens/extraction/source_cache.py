"""Lazily loaded source files with clipped line windows."""

from __future__ import annotations

from pathlib import Path, PurePosixPath, PureWindowsPath
from typing import Iterator, Sequence

from asmlens.extraction.binary_artifact import SourceWindow
from asmlens.utils.logging import get_logger

log = get_logger(__name__)


class SourceCache:
    """Reads each source file at most once per process.

    Files are assumed not to change during a run. Entries are only ever
    added, and concurrent loads of the same file keep whichever result was
    stored first.
    """

    def __init__(self, roots: Sequence[str | Path] = ()):
        self._roots = [Path(r) for r in roots]
        self._files: dict[str, tuple[str, ...] | None] = {}
        self._windows: dict[tuple[str, int, int], SourceWindow | None] = {}

    def lines(self, file: str) -> tuple[str, ...] | None:
        """Return all lines of ``file``, or None when it cannot be read."""
        try:
            return self._files[file]
        except KeyError:
            pass
        return self._files.setdefault(file, self._read(file))

    def window(self, file: str, center_line: int, context: int) -> SourceWindow | None:
        """Return up to ``2 * context + 1`` lines centered on ``center_line``."""
        key = (file, center_line, context)
        try:
            return self._windows[key]
        except KeyError:
            pass
        return self._windows.setdefault(key, self._make_window(file, center_line, context))

    def _make_window(self, file: str, center_line: int, context: int) -> SourceWindow | None:
        lines = self.lines(file)
        if lines is None or not 1 <= center_line <= len(lines):
            return None
        context = max(context, 0)
        first = max(1, center_line - context)
        last = min(len(lines), center_line + context)
        return SourceWindow(file=file, first_line=first, lines=lines[first - 1 : last])

    def _read(self, file: str) -> tuple[str, ...] | None:
        for candidate in self._candidates(file):
            try:
                text = candidate.read_text(encoding="utf-8", errors="replace")
            except FileNotFoundError:
                continue
            except OSError as exc:
                log.debug("source_unreadable", file=file, path=str(candidate), error=str(exc))
                return None
            return _split_lines(text)

        log.debug("source_missing", file=file)
        return None

    def _candidates(self, file: str) -> Iterator[Path]:
        """Yield the recorded path, then its tails re-rooted at each source root."""
        yield Path(file)

        pure = PureWindowsPath(file) if "\\" in file else PurePosixPath(file)
        parts = pure.parts[1:] if pure.anchor else pure.parts
        for root in self._roots:
            for i in range(len(parts)):
                yield root.joinpath(*parts[i:])


def _split_lines(text: str) -> tuple[str, ...]:
    lines = text.split("\n")
    if lines and lines[-1] == "":
        lines.pop()
    return tuple(line.rstrip("\r") for line in lines)
