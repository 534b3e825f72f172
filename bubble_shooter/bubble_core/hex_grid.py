"""
Hex Grid
========

Hexagonal-offset addressing shared by level generation and shot resolution.

Odd rows are shifted right by one bubble radius and hold one fewer column.
Rows are spaced R*sqrt(3) apart so that every bubble touches its six neighbors.
"""

from __future__ import annotations

import math
from typing import Iterator, List, Optional, Tuple

from bubble_shooter.bubble_core.config_loader import GameConfig, get_config

Cell = Tuple[int, int]

# (row delta, column delta) per row parity
EVEN_ROW_OFFSETS: Tuple[Cell, ...] = ((-1, -1), (-1, 0), (0, -1), (0, 1), (1, -1), (1, 0))
ODD_ROW_OFFSETS: Tuple[Cell, ...] = ((-1, 0), (-1, 1), (0, -1), (0, 1), (1, 0), (1, 1))

SQRT3 = math.sqrt(3.0)


def _round_half_up(value: float) -> int:
    return int(math.floor(value + 0.5))


class HexGrid:
    """
    Row/column <-> pixel mapping and adjacency for a hex-offset grid.

    Coordinates are pixels with y growing downward; row 0 is the ceiling.
    """

    def __init__(
        self,
        rows: int,
        base_columns: int,
        bubble_radius: float,
        grid_start_x: float
    ):
        """
        Initialize grid.

        Args:
            rows: Number of rows.
            base_columns: Columns on even rows (odd rows hold one fewer).
            bubble_radius: Radius of one bubble in pixels.
            grid_start_x: X of the centre of column 0 on even rows.
        """
        if rows < 1 or base_columns < 2:
            raise ValueError(f"Grid needs rows >= 1 and base_columns >= 2, got {rows}x{base_columns}")
        self._rows = rows
        self._base_columns = base_columns
        self._radius = float(bubble_radius)
        self._grid_start_x = float(grid_start_x)
        self._row_height = self._radius * SQRT3

    @classmethod
    def from_config(cls, config: Optional[GameConfig] = None) -> "HexGrid":
        """Build the live-board grid, centred between the walls."""
        if config is None:
            config = get_config()
        board = config.board
        base_columns = config.generation.base_columns
        margin = (board.width - base_columns * board.bubble_diameter) / 2
        return cls(
            rows=board.rows,
            base_columns=base_columns,
            bubble_radius=board.bubble_radius,
            grid_start_x=margin + board.bubble_radius
        )

    @property
    def rows(self) -> int:
        return self._rows

    @property
    def base_columns(self) -> int:
        return self._base_columns

    @property
    def bubble_radius(self) -> float:
        return self._radius

    @property
    def grid_start_x(self) -> float:
        return self._grid_start_x

    @property
    def row_height(self) -> float:
        return self._row_height

    @staticmethod
    def is_odd_row(row: int) -> bool:
        return row % 2 == 1

    def columns_for_row(self, row: int) -> int:
        """Number of columns on a row, determined by its parity."""
        return self._base_columns - 1 if self.is_odd_row(row) else self._base_columns

    def in_bounds(self, row: int, column: int) -> bool:
        """True if (row, column) addresses a cell of this grid."""
        return 0 <= row < self._rows and 0 <= column < self.columns_for_row(row)

    def cell_to_pixel(self, row: int, column: int) -> Tuple[float, float]:
        """Centre of a cell in pixels."""
        offset = self._radius if self.is_odd_row(row) else 0.0
        x = self._grid_start_x + offset + column * 2 * self._radius
        y = self._radius + row * self._row_height
        return (x, y)

    def pixel_to_cell(self, x: float, y: float) -> Cell:
        """
        Nearest cell to a pixel position.

        Row and column are rounded half-up and clamped to the valid range
        for the resulting row's parity.
        """
        row = _round_half_up((y - self._radius) / self._row_height)
        row = max(0, min(self._rows - 1, row))

        offset = self._radius if self.is_odd_row(row) else 0.0
        column = _round_half_up((x - self._grid_start_x - offset) / (2 * self._radius))
        column = max(0, min(self.columns_for_row(row) - 1, column))
        return (row, column)

    def neighbors(self, row: int, column: int) -> List[Cell]:
        """The up-to-six valid cells adjacent to (row, column)."""
        offsets = ODD_ROW_OFFSETS if self.is_odd_row(row) else EVEN_ROW_OFFSETS
        result = []
        for dr, dc in offsets:
            nr, nc = row + dr, column + dc
            if self.in_bounds(nr, nc):
                result.append((nr, nc))
        return result

    def ring(self, row: int, column: int, radius: int = 2) -> List[Cell]:
        """
        Cells exactly `radius` adjacency steps away from (row, column).

        Returned in breadth-first discovery order.
        """
        start = (row, column)
        seen = {start}
        frontier = [start]
        for _ in range(radius):
            next_frontier = []
            for r, c in frontier:
                for cell in self.neighbors(r, c):
                    if cell not in seen:
                        seen.add(cell)
                        next_frontier.append(cell)
            frontier = next_frontier
        return frontier

    def all_cells(self) -> Iterator[Cell]:
        """Every valid cell, row by row."""
        for row in range(self._rows):
            for column in range(self.columns_for_row(row)):
                yield (row, column)

    def distance_to_cell(self, x: float, y: float, cell: Cell) -> float:
        """Pixel distance from a point to a cell centre."""
        cx, cy = self.cell_to_pixel(*cell)
        return math.hypot(x - cx, y - cy)
