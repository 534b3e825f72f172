"""
Match System
============

Cluster detection, popping, orphan removal and the level-clear check that
run after every snapped shot.
"""

from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass, field
from typing import Iterable, List, Optional, Set

from bubble_shooter.bubble_core.board import Board
from bubble_shooter.bubble_core.config_loader import GameConfig, get_config
from bubble_shooter.bubble_core.hex_grid import Cell
from bubble_shooter.bubble_core.scoring import ScoreEvent, ScoreTracker

logger = logging.getLogger(__name__)


@dataclass
class MatchResult:
    """Outcome of resolving one landed bubble."""
    landing_cell: Cell
    cluster: List[Cell]
    popped: List[Cell] = field(default_factory=list)
    dropped: List[Cell] = field(default_factory=list)
    score_events: List[ScoreEvent] = field(default_factory=list)
    cleared: bool = False

    @property
    def delta_score(self) -> int:
        return sum(event.points for event in self.score_events)

    @property
    def did_pop(self) -> bool:
        return bool(self.popped)


def find_cluster(board: Board, start: Cell, color: Optional[int] = None) -> List[Cell]:
    """
    Breadth-first flood fill of same-color occupied cells.

    Args:
        board: Board to search.
        start: Cell to start from.
        color: Color to match. Defaults to the occupant of `start`.

    Returns:
        Cells of the cluster in discovery order, `start` first. Empty if
        `start` is unoccupied and no color is given.
    """
    if color is None:
        bubble = board.get(*start)
        if bubble is None:
            return []
        color = bubble.color

    grid = board.grid
    visited = {start}
    cluster = [start]
    queue = deque([start])

    while queue:
        row, column = queue.popleft()
        for neighbor in grid.neighbors(row, column):
            if neighbor in visited:
                continue
            bubble = board.get(*neighbor)
            if bubble is not None and bubble.color == color:
                visited.add(neighbor)
                cluster.append(neighbor)
                queue.append(neighbor)

    return cluster


def find_anchored(board: Board) -> Set[Cell]:
    """Occupied cells connected to the ceiling row through occupied cells."""
    grid = board.grid
    anchored: Set[Cell] = set()
    queue: deque = deque()

    for column in range(grid.columns_for_row(0)):
        if board.is_occupied(0, column):
            anchored.add((0, column))
            queue.append((0, column))

    while queue:
        row, column = queue.popleft()
        for neighbor in grid.neighbors(row, column):
            if neighbor not in anchored and board.is_occupied(*neighbor):
                anchored.add(neighbor)
                queue.append(neighbor)

    return anchored


def find_orphans(board: Board) -> List[Cell]:
    """Occupied cells not connected to the ceiling, in row-major order."""
    anchored = find_anchored(board)
    return [cell for cell in board.occupied_cells() if cell not in anchored]


class MatchSystem:
    """
    Resolves a landed bubble against the board.

    A cluster of at least min_cluster_size same-color bubbles is popped;
    popping triggers an orphan pass that drops everything no longer hanging
    from the ceiling.
    """

    def __init__(
        self,
        board: Board,
        scorer: ScoreTracker,
        config: Optional[GameConfig] = None
    ):
        """
        Initialize match system.

        Args:
            board: The live board.
            scorer: Score tracker instance.
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._board = board
        self._scorer = scorer

    def resolve(self, landing_cell: Cell) -> MatchResult:
        """
        Run cluster detection, pop, orphan removal and win check.

        Args:
            landing_cell: Cell the projectile snapped into.

        Returns:
            MatchResult describing every change made to the board.
        """
        cluster = find_cluster(self._board, landing_cell)
        result = MatchResult(landing_cell=landing_cell, cluster=cluster)

        if len(cluster) < self._config.scoring.min_cluster_size:
            return result

        self._remove(cluster)
        result.popped = cluster
        result.score_events.append(self._scorer.apply_pop(len(cluster)))

        orphans = find_orphans(self._board)
        if orphans:
            self._remove(orphans)
            result.dropped = orphans
            result.score_events.append(self._scorer.apply_drop(len(orphans)))

        result.cleared = self._board.is_empty
        logger.debug(
            "Popped %d at %s, dropped %d, cleared=%s",
            len(cluster), landing_cell, len(result.dropped), result.cleared
        )
        return result

    def _remove(self, cells: Iterable[Cell]) -> None:
        for cell in cells:
            self._board.remove(*cell)
