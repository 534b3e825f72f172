"""
Level Generator
===============

Builds a complete, reproducible level from its number alone. There is no
authored level data: the generator is the level database.

The order in which random draws are taken is fixed; changing it changes
every level.
"""

from __future__ import annotations

import math
from dataclasses import dataclass, field
from typing import Dict, Optional, Tuple

from bubble_shooter.bubble_core.config_loader import GameConfig, get_config
from bubble_shooter.bubble_core.hex_grid import Cell
from bubble_shooter.bubble_core.palette import (
    SPECIAL_BOMB,
    SPECIAL_ICE,
    SPECIAL_LOCKED,
    SPECIAL_NONE,
    SPECIAL_RAINBOW,
)
from bubble_shooter.bubble_core.rng import Mulberry32

PATTERN_SOLID_ROWS = "solid-rows"
PATTERN_STAGGERED = "staggered-clusters"
PATTERN_CHEVRONS = "chevrons"
PATTERN_PYRAMID = "pyramid"
PATTERN_DIAGONAL = "diagonal-shift"
PATTERN_HOLES = "holes"
PATTERN_MIXED = "mixed"


class GenerationError(RuntimeError):
    """The generator produced a cell that violates grid bounds."""


@dataclass(frozen=True)
class GridCell:
    """A cell as emitted by generation."""
    row: int
    column: int
    color: Optional[int]         # Palette ID, None for a hole
    special: str = SPECIAL_NONE
    is_hole: bool = False
    is_odd_row: bool = False

    @property
    def key(self) -> Cell:
        return (self.row, self.column)


@dataclass(frozen=True)
class LevelMeta:
    level_number: int
    pattern_name: str
    difficulty: float


@dataclass(frozen=True)
class LevelData:
    """
    Complete, immutable description of a level's starting layout.

    `colors` holds palette IDs in generation order; cell colors index the
    master palette directly.
    """
    rows: int
    base_columns: int
    colors: Tuple[int, ...]
    cells: Tuple[GridCell, ...]
    meta: LevelMeta
    _by_key: Dict[Cell, GridCell] = field(
        default=None, init=False, repr=False, compare=False, hash=False
    )

    def __post_init__(self) -> None:
        object.__setattr__(self, "_by_key", {cell.key: cell for cell in self.cells})

    def columns_for_row(self, row: int) -> int:
        return self.base_columns - 1 if row % 2 == 1 else self.base_columns

    def cell_at(self, row: int, column: int) -> Optional[GridCell]:
        return self._by_key.get((row, column))

    @property
    def cell_count(self) -> int:
        return len(self.cells)

    @property
    def specials(self) -> Dict[Cell, str]:
        """Positions of every non-plain cell."""
        return {c.key: c.special for c in self.cells if c.special != SPECIAL_NONE}

    def to_dict(self) -> dict:
        """JSON-friendly representation."""
        return {
            "rows": self.rows,
            "base_columns": self.base_columns,
            "colors": list(self.colors),
            "cells": [
                {
                    "row": c.row,
                    "column": c.column,
                    "color": c.color,
                    "special": c.special,
                    "is_hole": c.is_hole,
                    "is_odd_row": c.is_odd_row,
                }
                for c in self.cells
            ],
            "meta": {
                "level_number": self.meta.level_number,
                "pattern_name": self.meta.pattern_name,
                "difficulty": self.meta.difficulty,
            },
        }


@dataclass(frozen=True)
class SpecialOdds:
    """Special-cell probabilities for one level."""
    chance: float
    locked: float
    bomb: float
    rainbow: float
    ice: float


def compute_difficulty(level: int, config: Optional[GameConfig] = None) -> float:
    """Difficulty in [0, 1], rising linearly with the level number."""
    if config is None:
        config = get_config()
    return min(1.0, level / config.generation.difficulty_divisor)


def special_odds(difficulty: float, config: Optional[GameConfig] = None) -> SpecialOdds:
    """Special-cell probabilities for a difficulty."""
    if config is None:
        config = get_config()
    sp = config.generation.specials
    return SpecialOdds(
        chance=sp.base_chance + difficulty * sp.chance_scale,
        locked=sp.locked_base + difficulty * sp.locked_scale,
        bomb=sp.bomb_base + difficulty * sp.bomb_scale,
        rainbow=max(0.0, difficulty - sp.rainbow_threshold) * sp.rainbow_scale,
        ice=sp.ice_probability,
    )


def _active_range(pattern: str, row: int, rows: int, cols: int, base_columns: int) -> Tuple[int, int]:
    """Column range [start, end) that receives bubbles on this row."""
    if pattern != PATTERN_PYRAMID:
        return (0, cols)
    mid = rows // 2
    width = max(2, base_columns - abs(row - mid) * 2)
    skip = (cols - width) // 2
    return (skip, skip + width)


def _color_index(
    pattern: str,
    row: int,
    column: int,
    cols: int,
    n_colors: int,
    noise: float,
    rng: Mulberry32
) -> int:
    """Index into the level's colors for one cell."""
    if pattern == PATTERN_SOLID_ROWS:
        return (row + math.floor(rng() * 2)) % n_colors
    if pattern == PATTERN_STAGGERED:
        return ((row + column) // 2 + math.floor(rng() * n_colors)) % n_colors
    if pattern == PATTERN_CHEVRONS:
        return abs(column - cols // 2) % n_colors
    if pattern == PATTERN_MIXED:
        return math.floor(rng() * n_colors)

    index = (row * 3 + column) % n_colors
    if rng() < noise:
        index = math.floor(rng() * n_colors)
    return index


def _roll_special(odds: SpecialOdds, rng: Mulberry32) -> str:
    """Roll a special kind in priority order locked, bomb, rainbow, ice."""
    if rng() >= odds.chance:
        return SPECIAL_NONE
    t = rng()
    if t < odds.locked:
        return SPECIAL_LOCKED
    if t < odds.locked + odds.bomb:
        return SPECIAL_BOMB
    if t < odds.locked + odds.bomb + odds.rainbow:
        return SPECIAL_RAINBOW
    if rng() < odds.ice:
        return SPECIAL_ICE
    return SPECIAL_NONE


def _validate_cells(level: LevelData) -> None:
    seen = set()
    for cell in level.cells:
        if not 0 <= cell.row < level.rows:
            raise GenerationError(f"Row {cell.row} outside [0, {level.rows})")
        if not 0 <= cell.column < level.columns_for_row(cell.row):
            raise GenerationError(
                f"Column {cell.column} outside [0, {level.columns_for_row(cell.row)}) on row {cell.row}"
            )
        if cell.is_hole or cell.color is None:
            raise GenerationError(f"Hole emitted at {cell.key}")
        if cell.key in seen:
            raise GenerationError(f"Duplicate cell {cell.key}")
        seen.add(cell.key)


def generate_level(level: int, config: Optional[GameConfig] = None) -> LevelData:
    """
    Generate the layout of a level.

    Args:
        level: Level number, 1 or greater.
        config: Game configuration. Uses default if None.

    Returns:
        LevelData, identical for identical level numbers.

    Raises:
        ValueError: If level is not a positive integer.
        GenerationError: If a generated cell falls outside the grid.
    """
    if isinstance(level, bool) or not isinstance(level, int) or level < 1:
        raise ValueError(f"Level must be a positive integer, got {level!r}")
    if config is None:
        config = get_config()

    gen = config.generation
    rng = Mulberry32(level + gen.seed_offset)
    difficulty = compute_difficulty(level, config)

    rows = gen.base_rows + math.floor(difficulty * gen.row_span) + math.floor(rng() * 2)
    rows = min(rows, gen.max_rows)

    color_count = min(
        gen.max_colors,
        gen.min_colors + math.floor(difficulty * gen.color_span + rng() * 1.5)
    )
    colors = tuple(range(max(gen.min_colors, color_count)))
    n_colors = len(colors)

    pattern = gen.patterns[math.floor(rng() * len(gen.patterns))]
    odds = special_odds(difficulty, config)
    hole_chance = gen.hole_probability.get(pattern, 0.0)

    cells = []
    for r in range(rows):
        is_odd = r % 2 == 1
        cols = gen.base_columns - 1 if is_odd else gen.base_columns
        start, end = _active_range(pattern, r, rows, cols, gen.base_columns)

        for c in range(cols):
            if c < start or c >= end:
                continue

            color_index = _color_index(pattern, r, c, cols, n_colors, gen.noise_probability, rng)

            is_hole = hole_chance > 0 and rng() < hole_chance
            if is_hole:
                continue

            special = _roll_special(odds, rng)
            cells.append(GridCell(
                row=r,
                column=c,
                color=colors[color_index],
                special=special,
                is_hole=False,
                is_odd_row=is_odd
            ))

    result = LevelData(
        rows=rows,
        base_columns=gen.base_columns,
        colors=colors,
        cells=tuple(cells),
        meta=LevelMeta(level_number=level, pattern_name=pattern, difficulty=difficulty)
    )
    _validate_cells(result)
    return result
