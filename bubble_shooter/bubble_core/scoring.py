"""
Scoring System
==============

Applies pop and drop scores based on game configuration.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Optional

from bubble_shooter.bubble_core.config_loader import GameConfig, get_config

EVENT_POP = "pop"
EVENT_DROP = "drop"


@dataclass
class ScoreEvent:
    """Record of a scoring event."""
    points: int
    kind: str                    # EVENT_POP or EVENT_DROP
    bubbles: int

    def __repr__(self) -> str:
        return f"ScoreEvent({self.kind} x{self.bubbles}={self.points})"


class ScoreTracker:
    """
    Tracks the session score.

    - Popped cluster: pop_points per bubble (10)
    - Dropped orphan: drop_points per bubble (20)

    The score never decreases within a session.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize score tracker.

        Args:
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._score: int = 0
        self._pops: int = 0
        self._drops: int = 0

    @property
    def score(self) -> int:
        """Current total score."""
        return self._score

    @property
    def pops(self) -> int:
        """Total number of bubbles popped."""
        return self._pops

    @property
    def drops(self) -> int:
        """Total number of orphans dropped."""
        return self._drops

    def apply_pop(self, cluster_size: int) -> ScoreEvent:
        """
        Award points for a popped cluster.

        Args:
            cluster_size: Number of bubbles in the cluster.

        Returns:
            ScoreEvent describing the points awarded.
        """
        points = self._config.scoring.pop_points * cluster_size
        self._score += points
        self._pops += cluster_size
        return ScoreEvent(points=points, kind=EVENT_POP, bubbles=cluster_size)

    def apply_drop(self, orphan_count: int) -> ScoreEvent:
        """Award points for dropped orphans."""
        points = self._config.scoring.drop_points * orphan_count
        self._score += points
        self._drops += orphan_count
        return ScoreEvent(points=points, kind=EVENT_DROP, bubbles=orphan_count)

    def reset(self) -> None:
        """Reset score to zero."""
        self._score = 0
        self._pops = 0
        self._drops = 0
