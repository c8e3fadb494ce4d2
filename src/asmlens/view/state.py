"""Selection and scroll state owned by a presentation layer."""

from __future__ import annotations

from dataclasses import dataclass, replace

from asmlens.extraction.binary_artifact import Match, Output

PANES = ("asm", "src")


@dataclass
class ViewState:
    """Which match is shown and where each pane is scrolled to.

    Scroll offsets are block indices. Both panes normally move together,
    but each can be nudged on its own.
    """

    selected: int = -1
    asm_scroll: int = 0
    src_scroll: int = 0

    def current(self, output: Output) -> Match | None:
        if 0 <= self.selected < len(output.matches):
            return output.matches[self.selected]
        return None

    def select(self, output: Output, index: int) -> Match | None:
        """Select match ``index``; out-of-range indices clear the selection."""
        if not 0 <= index < len(output.matches):
            self.selected = -1
            self.reset_scroll()
            return None
        if index != self.selected:
            self.selected = index
            self.reset_scroll()
        return output.matches[index]

    def scroll(self, output: Output, delta: int, pane: str | None = None) -> None:
        match = self.current(output)
        if match is None:
            return
        last = max(len(match.blocks) - 1, 0)
        panes = PANES if pane is None else (pane,)
        for name in panes:
            if name not in PANES:
                raise ValueError(f"unknown pane {name!r}")
            attr = f"{name}_scroll"
            setattr(self, attr, min(max(getattr(self, attr) + delta, 0), last))

    def reset_scroll(self) -> None:
        self.asm_scroll = 0
        self.src_scroll = 0

    def open_in_new(self) -> ViewState:
        """Independent copy for a second view of the current match."""
        return replace(self)
