#!/usr/bin/env python3
"""
Pane geometry.
A pure function from terminal size and view mode to pane rectangles.
"""

from dataclasses import dataclass
from typing import NamedTuple, Optional


HEADER_HEIGHT = 1
FOOTER_HEIGHT = 10      # output pane + progress bar + status line
MIN_MAIN_HEIGHT = 10
PROGRESS_HEIGHT = 1
STATUS_HEIGHT = 1
BORDER = 1              # panes are drawn with a one-cell rounded border


class Rect(NamedTuple):
    x: int
    y: int
    width: int
    height: int

    def inner(self) -> 'Rect':
        """The area inside a one-cell border"""
        return Rect(
            self.x + BORDER,
            self.y + BORDER,
            max(self.width - 2 * BORDER, 0),
            max(self.height - 2 * BORDER, 0),
        )


@dataclass(frozen=True)
class Layout:
    """Rectangles for every pane of one frame"""
    header: Rect
    editor: Rect
    solution: Optional[Rect]
    output: Rect
    progress: Rect
    status: Rect

    @property
    def editor_rows(self) -> int:
        """Number of buffer lines visible in the editor pane"""
        return max(self.editor.inner().height, 1)


def compute_layout(width: int, height: int, split: bool = False) -> Layout:
    """
    Header on top, main area in the middle, footer at the bottom.

    The main area keeps at least MIN_MAIN_HEIGHT rows; on a short terminal
    the footer gives up rows first. `split` halves the main area between
    the editor and the solution pane.
    """
    width = max(width, 1)
    height = max(height, 1)

    header_h = min(HEADER_HEIGHT, height)
    footer_h = min(FOOTER_HEIGHT, max(height - header_h - MIN_MAIN_HEIGHT, 0))
    footer_h = max(footer_h, min(PROGRESS_HEIGHT + STATUS_HEIGHT, height - header_h))
    main_h = max(height - header_h - footer_h, 0)

    header = Rect(0, 0, width, header_h)
    main = Rect(0, header_h, width, main_h)

    if split:
        left_w = width // 2
        editor = Rect(main.x, main.y, left_w, main_h)
        solution = Rect(main.x + left_w, main.y, width - left_w, main_h)
    else:
        editor = main
        solution = None

    footer_y = header_h + main_h
    output_h = max(footer_h - PROGRESS_HEIGHT - STATUS_HEIGHT, 0)
    output = Rect(0, footer_y, width, output_h)
    progress = Rect(0, footer_y + output_h, width, min(PROGRESS_HEIGHT, footer_h))
    status = Rect(0, footer_y + output_h + progress.height, width,
                  min(STATUS_HEIGHT, max(footer_h - output_h - progress.height, 0)))

    return Layout(header, editor, solution, output, progress, status)
