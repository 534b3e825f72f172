"""
State Snapshot
==============

Packs board and shooter state into fixed-size numpy arrays for hosts and
Gymnasium observations.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Optional, TYPE_CHECKING

import numpy as np

from bubble_shooter.bubble_core.config_loader import GameConfig, get_config
from bubble_shooter.bubble_core.palette import SPECIAL_KINDS

if TYPE_CHECKING:
    from bubble_shooter.bubble_core.board import Board

EMPTY = -1

# Integer code of each special kind in the special_grid array
SPECIAL_CODES: Dict[str, int] = {kind: i for i, kind in enumerate(SPECIAL_KINDS)}


@dataclass
class BoardSnapshot:
    """
    Complete, read-only view of a session.

    Grids are (rows, base_columns); cells past the end of an odd row are
    always empty.
    """
    level_number: int
    score: int
    shots_fired: int
    current_color: int           # EMPTY while the shooter is hidden
    next_color: int
    occupied_count: int
    cleared: bool

    color_grid: np.ndarray       # (rows, cols) int16, EMPTY for no bubble
    special_grid: np.ndarray     # (rows, cols) int8, SPECIAL_CODES
    occupied_mask: np.ndarray    # (rows, cols) bool
    color_counts: np.ndarray     # (num_colors,) int32

    def to_obs_dict(self) -> Dict[str, np.ndarray]:
        """Convert to Gymnasium observation dictionary."""
        return {
            "level_number": np.array(self.level_number, dtype=np.int32),
            "score": np.array(self.score, dtype=np.int64),
            "shots_fired": np.array(self.shots_fired, dtype=np.int32),
            "current_color": np.array(self.current_color, dtype=np.int32),
            "next_color": np.array(self.next_color, dtype=np.int32),
            "occupied_count": np.array(self.occupied_count, dtype=np.int32),
            "color_grid": self.color_grid,
            "special_grid": self.special_grid,
            "occupied_mask": self.occupied_mask,
            "color_counts": self.color_counts,
        }


class SnapshotBuilder:
    """Builds snapshots with arrays sized from the configuration."""

    def __init__(self, config: Optional[GameConfig] = None):
        if config is None:
            config = get_config()

        self._config = config
        self._rows = config.board.rows
        self._cols = config.max_columns
        self._num_colors = config.num_colors

    @property
    def grid_shape(self):
        return (self._rows, self._cols)

    def build(
        self,
        board: "Board",
        level_number: int,
        score: int,
        shots_fired: int,
        current_color: Optional[int],
        next_color: Optional[int],
        cleared: bool
    ) -> BoardSnapshot:
        """
        Build a snapshot of the current state.

        Args:
            board: The live board.
            level_number: Level being played (0 before any level starts).
            score: Session score.
            shots_fired: Shots launched this level.
            current_color: Shooter color, None if hidden.
            next_color: Queued color, None if hidden.
            cleared: True once the level has been cleared.

        Returns:
            BoardSnapshot with freshly allocated arrays.
        """
        color_grid = np.full(self.grid_shape, EMPTY, dtype=np.int16)
        special_grid = np.zeros(self.grid_shape, dtype=np.int8)
        occupied_mask = np.zeros(self.grid_shape, dtype=bool)
        color_counts = np.zeros(self._num_colors, dtype=np.int32)

        for (row, column), bubble in board:
            color_grid[row, column] = bubble.color
            special_grid[row, column] = SPECIAL_CODES.get(bubble.special, 0)
            occupied_mask[row, column] = True
            color_counts[bubble.color] += 1

        return BoardSnapshot(
            level_number=level_number,
            score=score,
            shots_fired=shots_fired,
            current_color=EMPTY if current_color is None else current_color,
            next_color=EMPTY if next_color is None else next_color,
            occupied_count=int(occupied_mask.sum()),
            cleared=cleared,
            color_grid=color_grid,
            special_grid=special_grid,
            occupied_mask=occupied_mask,
            color_counts=color_counts,
        )
