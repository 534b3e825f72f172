"""
Board
=====

The live, mutable bubble grid of an active session, plus a pymunk spatial
index of settled bubbles used for projectile collision queries.
"""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Dict, Iterator, List, Optional, Set, Tuple

import pymunk

from bubble_shooter.bubble_core.config_loader import GameConfig, get_config
from bubble_shooter.bubble_core.hex_grid import Cell, HexGrid
from bubble_shooter.bubble_core.level_generator import LevelData
from bubble_shooter.bubble_core.palette import SPECIAL_NONE

# Collision type for settled bubble shapes
COLLISION_TYPE_BUBBLE = 1


@dataclass(frozen=True)
class Bubble:
    """Occupant of one board cell."""
    color: int
    special: str = SPECIAL_NONE


@dataclass(frozen=True)
class CollisionHit:
    """Nearest settled bubble to a query point."""
    cell: Cell
    distance: float              # Centre-to-centre distance in pixels


class Board:
    """
    Sparse map of (row, column) -> Bubble over a HexGrid.

    Every occupant is mirrored by a static pymunk circle so that
    "is anything within d of this point" is a spatial index lookup rather
    than a scan of the grid.
    """

    def __init__(self, grid: Optional[HexGrid] = None, config: Optional[GameConfig] = None):
        """
        Initialize an empty board.

        Args:
            grid: Grid geometry. Built from config if None.
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()
        if grid is None:
            grid = HexGrid.from_config(config)

        self._config = config
        self._grid = grid
        self._cells: Dict[Cell, Bubble] = {}

        self._space = pymunk.Space()
        self._shapes: Dict[Cell, pymunk.Circle] = {}
        self._cell_by_shape: Dict[pymunk.Shape, Cell] = {}
        self._filter = pymunk.ShapeFilter()

    @property
    def grid(self) -> HexGrid:
        return self._grid

    @property
    def space(self) -> pymunk.Space:
        """The pymunk Space holding the collision index."""
        return self._space

    @property
    def occupied_count(self) -> int:
        return len(self._cells)

    @property
    def is_empty(self) -> bool:
        return not self._cells

    def __len__(self) -> int:
        return len(self._cells)

    def __contains__(self, cell: Cell) -> bool:
        return cell in self._cells

    def __iter__(self) -> Iterator[Tuple[Cell, Bubble]]:
        return iter(sorted(self._cells.items()))

    def get(self, row: int, column: int) -> Optional[Bubble]:
        return self._cells.get((row, column))

    def is_occupied(self, row: int, column: int) -> bool:
        return (row, column) in self._cells

    def occupied_cells(self) -> List[Cell]:
        """All occupied cells in row-major order."""
        return sorted(self._cells)

    def colors_present(self) -> Set[int]:
        """Distinct colors currently on the board."""
        return {bubble.color for bubble in self._cells.values()}

    def place(self, row: int, column: int, bubble: Bubble) -> None:
        """
        Put a bubble into an empty cell.

        Raises:
            ValueError: If the cell is out of bounds or already occupied.
        """
        if not self._grid.in_bounds(row, column):
            raise ValueError(f"Cell ({row}, {column}) is outside the board")
        cell = (row, column)
        if cell in self._cells:
            raise ValueError(f"Cell {cell} is already occupied")

        self._cells[cell] = bubble

        x, y = self._grid.cell_to_pixel(row, column)
        shape = pymunk.Circle(self._space.static_body, self._grid.bubble_radius, (x, y))
        shape.collision_type = COLLISION_TYPE_BUBBLE
        self._space.add(shape)
        self._shapes[cell] = shape
        self._cell_by_shape[shape] = cell

    def remove(self, row: int, column: int) -> Optional[Bubble]:
        """
        Remove the occupant of a cell.

        Returns:
            The removed Bubble, or None if the cell was empty.
        """
        cell = (row, column)
        bubble = self._cells.pop(cell, None)
        if bubble is not None:
            shape = self._shapes.pop(cell)
            del self._cell_by_shape[shape]
            self._space.remove(shape)
        return bubble

    def clear(self) -> None:
        """Remove every occupant."""
        for cell in list(self._cells):
            self.remove(*cell)

    def populate(self, level: LevelData) -> int:
        """
        Fill an empty board from generated level data.

        Hole cells are skipped.

        Returns:
            Number of bubbles placed.
        """
        self.clear()
        placed = 0
        for cell in level.cells:
            if cell.is_hole or cell.color is None:
                continue
            self.place(cell.row, cell.column, Bubble(cell.color, cell.special))
            placed += 1
        return placed

    def nearest_occupant(self, x: float, y: float, max_distance: float) -> Optional[CollisionHit]:
        """
        Nearest settled bubble whose centre lies within max_distance of (x, y).

        Args:
            x: Query X in pixels.
            y: Query Y in pixels.
            max_distance: Centre-to-centre distance limit.

        Returns:
            CollisionHit, or None when nothing is that close.
        """
        if not self._cells:
            return None

        radius = self._grid.bubble_radius
        # point_query_nearest measures to the shape surface, not its centre
        surface_limit = max(0.0, max_distance - radius)
        info = self._space.point_query_nearest((x, y), surface_limit, self._filter)
        if info is None or info.shape is None:
            return None

        cell = self._cell_by_shape.get(info.shape)
        if cell is None:
            return None
        cx, cy = self._grid.cell_to_pixel(*cell)
        distance = math.hypot(x - cx, y - cy)
        if distance >= max_distance:
            return None
        return CollisionHit(cell=cell, distance=distance)

    def occupancy(self) -> Dict[Cell, Bubble]:
        """Copy of the occupant map."""
        return dict(self._cells)
