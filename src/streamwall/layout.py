"""
layout.py – tile placement

Pure functions from (tile count, has focus) to a grid description. Rows and
columns are 1-based, matching how the grid is laid out on screen.

With a focused channel and other tiles the grid is an "L": tiles stack in
the left column (at most seven, so they keep a usable height) and the rest
run along the bottom strip under the focus. The strip has at least six
columns so bottom tiles stay close to widescreen proportions.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Hashable, List, Optional, Sequence, Tuple

MAX_FLAT_COLUMNS = 5
MAX_LEFT_TILES = 7
MIN_BOTTOM_COLUMNS = 6
L_BODY_ROWS = 7
L_TOTAL_ROWS = L_BODY_ROWS + 1


@dataclass(frozen=True)
class Track:
    size: int
    unit: str = "fr"  # "fr" or "cells"

    def css(self) -> str:
        return f"{self.size}fr" if self.unit == "fr" else str(self.size)


FLEX = Track(1, "fr")


@dataclass(frozen=True)
class Placement:
    row: int
    column: int
    row_span: int = 1
    column_span: int = 1

    def cells(self) -> List[Tuple[int, int]]:
        return [
            (r, c)
            for r in range(self.row, self.row + self.row_span)
            for c in range(self.column, self.column + self.column_span)
        ]


@dataclass(frozen=True)
class GridLayout:
    columns: Tuple[Track, ...]
    rows: Tuple[Track, ...]
    tiles: Tuple[Placement, ...]
    focus: Optional[Placement]
    branding: Placement
    left_count: int = 0
    bottom_count: int = 0
    right_columns: int = 0

    @property
    def column_count(self) -> int:
        return len(self.columns)

    @property
    def row_count(self) -> int:
        return len(self.rows)


def compute_layout(
    n: int,
    has_focus: bool,
    *,
    side_width: int = 24,
    branding_height: int = 3,
) -> GridLayout:
    """Place `n` non-focus tiles, plus the focus when `has_focus` is set."""

    side = Track(side_width, "cells")
    branding_row = Track(branding_height, "cells")

    if n <= 0 and not has_focus:
        return GridLayout(
            columns=(FLEX,),
            rows=(FLEX, branding_row),
            tiles=(),
            focus=None,
            branding=Placement(2, 1),
        )

    if not has_focus:
        cols = min(n, MAX_FLAT_COLUMNS)
        body_rows = -(-n // cols)
        tiles = tuple(Placement(i // cols + 1, i % cols + 1) for i in range(n))
        return GridLayout(
            columns=(FLEX,) * cols,
            rows=(FLEX,) * body_rows + (branding_row,),
            tiles=tiles,
            focus=None,
            branding=Placement(body_rows + 1, 1),
        )

    if n <= 0:
        return GridLayout(
            columns=(side, FLEX),
            rows=(FLEX, branding_row),
            tiles=(),
            focus=Placement(1, 1, column_span=2),
            branding=Placement(2, 1),
        )

    left_count = min(-(-n // 2), MAX_LEFT_TILES)
    bottom_count = n - left_count
    right_cols = max(bottom_count, MIN_BOTTOM_COLUMNS) if bottom_count > 0 else 1

    left = [Placement(i + 1, 1) for i in range(left_count)]
    bottom = [Placement(L_TOTAL_ROWS, i + 2) for i in range(bottom_count)]
    return GridLayout(
        columns=(side,) + (FLEX,) * right_cols,
        rows=(FLEX,) * L_TOTAL_ROWS,
        tiles=tuple(left + bottom),
        focus=Placement(1, 2, row_span=L_BODY_ROWS, column_span=right_cols),
        branding=Placement(L_TOTAL_ROWS, 1),
        left_count=left_count,
        bottom_count=bottom_count,
        right_columns=right_cols,
    )


def flow_order(
    layout: GridLayout,
    placed: Sequence[Tuple[Hashable, Placement]],
) -> List[Tuple[Optional[Hashable], Placement]]:
    """Order items so that row-major auto-placement puts each at its explicit cell.

    Cells not covered by any item become spacers (key None). Trailing
    spacers are dropped.
    """

    anchors: Dict[Tuple[int, int], Tuple[Hashable, Placement]] = {}
    covered = set()
    for key, placement in placed:
        anchors[(placement.row, placement.column)] = (key, placement)
        covered.update(placement.cells())

    out: List[Tuple[Optional[Hashable], Placement]] = []
    for r in range(1, layout.row_count + 1):
        for c in range(1, layout.column_count + 1):
            if (r, c) in anchors:
                out.append(anchors[(r, c)])
            elif (r, c) not in covered:
                out.append((None, Placement(r, c)))

    while out and out[-1][0] is None:
        out.pop()
    return out
