"""
Shared builders for hand-made layouts.
"""

from __future__ import annotations

from typing import Iterable, Tuple, Union

from bubble_shooter.bubble_core.level_generator import GridCell, LevelData, LevelMeta
from bubble_shooter.bubble_core.palette import SPECIAL_NONE

CellSpec = Union[Tuple[int, int, int], Tuple[int, int, int, str]]


def make_level(
    cells: Iterable[CellSpec],
    level_number: int = 1,
    base_columns: int = 8,
    pattern: str = "custom",
) -> LevelData:
    """Build LevelData from (row, column, color[, special]) tuples."""
    grid_cells = []
    for spec in cells:
        row, column, color = spec[0], spec[1], spec[2]
        special = spec[3] if len(spec) > 3 else SPECIAL_NONE
        grid_cells.append(GridCell(
            row=row,
            column=column,
            color=color,
            special=special,
            is_hole=False,
            is_odd_row=row % 2 == 1,
        ))
    rows = max((c.row for c in grid_cells), default=0) + 1
    colors = tuple(sorted({c.color for c in grid_cells}))
    return LevelData(
        rows=rows,
        base_columns=base_columns,
        colors=colors,
        cells=tuple(grid_cells),
        meta=LevelMeta(level_number=level_number, pattern_name=pattern, difficulty=0.0),
    )


def full_rows(rows: Iterable[int], color: int = 0, base_columns: int = 8):
    """Cell specs filling every column of the given rows."""
    specs = []
    for row in rows:
        columns = base_columns - 1 if row % 2 == 1 else base_columns
        specs.extend((row, column, color) for column in range(columns))
    return specs
