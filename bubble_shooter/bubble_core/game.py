"""
Core Game
=========

Session orchestrator combining level generation, the live board, shot
resolution, matching, scoring and the shooter queue.

A host (renderer, UI, agent) talks to BubbleGame only: it forwards aim,
release and frame-tick events and reads state back for drawing.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any, Callable, Dict, List, Optional, Tuple

from bubble_shooter.bubble_core.board import Board
from bubble_shooter.bubble_core.config_loader import GameConfig, get_config
from bubble_shooter.bubble_core.level_generator import LevelData, generate_level
from bubble_shooter.bubble_core.match_system import MatchResult, MatchSystem
from bubble_shooter.bubble_core.palette import Palette, TextureTable
from bubble_shooter.bubble_core.rng import ShooterQueue
from bubble_shooter.bubble_core.scoring import ScoreTracker
from bubble_shooter.bubble_core.shot_physics import (
    FlightResult,
    ShotResolver,
    aim_angle,
)
from bubble_shooter.bubble_core.state_snapshot import BoardSnapshot, SnapshotBuilder

logger = logging.getLogger(__name__)


@dataclass
class ShotResult:
    """Result of one resolved shot."""
    flight: FlightResult
    match: Optional[MatchResult]
    delta_score: int
    score: int
    cleared: bool

    @property
    def reason(self) -> str:
        return self.flight.reason


class BubbleGame:
    """
    Main game session.

    Orchestrates:
    - Level generation and board population
    - Shot state machine and projectile travel
    - Cluster pops and orphan drops
    - Scoring
    - Shooter color queue
    - Level-complete notification

    Nothing outside the session writes to its board, score or shooter.
    """

    def __init__(
        self,
        config: Optional[GameConfig] = None,
        on_level_complete: Optional[Callable[[int], None]] = None
    ):
        """
        Initialize session. No level is loaded until start_level().

        Args:
            config: Game configuration. Uses default if None.
            on_level_complete: Called with the final score, once per cleared level.
        """
        if config is None:
            config = get_config()

        self._config = config
        self.on_level_complete = on_level_complete

        self._palette = Palette(config)
        self._board = Board(config=config)
        self._scorer = ScoreTracker(config)
        self._matcher = MatchSystem(self._board, self._scorer, config)
        self._resolver = ShotResolver(self._board, config)
        self._shooter = ShooterQueue(config.shot.shooter_seed_offset)
        self._snapshot_builder = SnapshotBuilder(config)

        self._level_data: Optional[LevelData] = None
        self._textures: Optional[TextureTable] = None
        self._shots_fired: int = 0
        self._cleared: bool = False
        self._completion_reported: bool = False
        self._paused: bool = False

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def board(self) -> Board:
        """The live board (read it, do not mutate it)."""
        return self._board

    @property
    def level_data(self) -> Optional[LevelData]:
        return self._level_data

    @property
    def level_number(self) -> int:
        """Current level number, 0 before any level has started."""
        return self._level_data.meta.level_number if self._level_data else 0

    @property
    def textures(self) -> Optional[TextureTable]:
        """Texture keys resolved for the current level."""
        return self._textures

    @property
    def score(self) -> int:
        return self._scorer.score

    @property
    def current_color(self) -> Optional[int]:
        return self._shooter.current_color

    @property
    def next_color(self) -> Optional[int]:
        return self._shooter.next_color

    @property
    def shooter_visible(self) -> bool:
        return self._shooter.visible

    @property
    def occupied_count(self) -> int:
        return self._board.occupied_count

    @property
    def phase(self) -> str:
        return self._resolver.phase

    @property
    def in_flight(self) -> bool:
        return self._resolver.in_flight

    @property
    def projectile(self):
        return self._resolver.projectile

    @property
    def shots_fired(self) -> int:
        return self._shots_fired

    @property
    def is_cleared(self) -> bool:
        return self._cleared

    @property
    def is_paused(self) -> bool:
        return self._paused

    # ------------------------------------------------------------------
    # Level lifecycle
    # ------------------------------------------------------------------

    def start_level(self, level: int) -> Optional[LevelData]:
        """
        Generate a level and reset the session onto it.

        Any in-flight projectile is discarded.

        Returns:
            The LevelData, or None if the level number is invalid.
        """
        try:
            level_data = generate_level(level, self._config)
        except ValueError as e:
            logger.info("Rejected level %r: %s", level, e)
            return None

        self.load_level(level_data)
        return level_data

    def load_level(self, level_data: LevelData) -> None:
        """
        Reset the session onto prebuilt level data.

        start_level() goes through here; editors and tests can also hand in
        layouts of their own. The shooter is seeded from the level number,
        as for generated levels.
        """
        self._load(level_data)
        logger.info(
            "Level %d started: pattern=%s rows=%d bubbles=%d colors=%d",
            level_data.meta.level_number, level_data.meta.pattern_name,
            level_data.rows, level_data.cell_count, len(level_data.colors)
        )

    def restart_level(self) -> Optional[LevelData]:
        """Rebuild the current level from a fresh generator call."""
        if self._level_data is None:
            return None
        return self.start_level(self.level_number)

    def next_level(self) -> Optional[LevelData]:
        """Start the level after the current one (level 1 if none)."""
        return self.start_level(self.level_number + 1)

    def _load(self, level_data: LevelData) -> None:
        self._resolver.reset()
        self._board.populate(level_data)
        self._scorer.reset()

        self._level_data = level_data
        self._textures = TextureTable(level_data.colors)
        self._shots_fired = 0
        self._cleared = False
        self._completion_reported = False
        self._paused = False

        seed = level_data.meta.level_number + self._config.shot.shooter_seed_offset
        self._shooter.reset(self._board.colors_present(), seed=seed)
        if self._board.is_empty:
            self._mark_cleared()

    def pause(self) -> None:
        """Freeze the session; ticks and releases are ignored until resume()."""
        self._paused = True

    def resume(self) -> None:
        self._paused = False

    # ------------------------------------------------------------------
    # Host events
    # ------------------------------------------------------------------

    def _can_shoot(self) -> bool:
        return (
            self._level_data is not None
            and not self._paused
            and not self._cleared
            and self._shooter.visible
        )

    def on_aim_start(self) -> bool:
        """Enter aiming. Refused while a shot is in flight."""
        if not self._can_shoot():
            return False
        return self._resolver.begin_aim()

    def on_aim_move(self, pointer_x: float, pointer_y: float) -> List[Tuple[float, float]]:
        """
        Trajectory preview towards a pointer position.

        Advisory only; the engine does not need it to run a shot.

        Returns:
            Preview polyline, empty if the pointer is outside the legal arc.
        """
        if not self._can_shoot() or self._resolver.in_flight:
            return []
        angle = aim_angle(self._resolver.origin, (pointer_x, pointer_y))
        return self._resolver.trace_trajectory(angle)

    def on_release(self, angle: float) -> bool:
        """
        Fire the current color.

        Args:
            angle: Radians from straight up, positive to the right.

        Returns:
            False if the angle is outside the legal arc, a shot is already in
            flight, the session is paused, or the level is over.
        """
        if not self._can_shoot():
            return False
        accepted = self._resolver.release(angle, self._shooter.current_color)
        if accepted:
            self._shots_fired += 1
        return accepted

    def on_release_towards(self, pointer_x: float, pointer_y: float) -> bool:
        """Fire towards a pointer position."""
        return self.on_release(aim_angle(self._resolver.origin, (pointer_x, pointer_y)))

    def on_advance(self, delta_time_ms: float) -> Optional[ShotResult]:
        """
        Advance any in-flight projectile.

        A no-op when nothing is in flight or the session is paused.

        Returns:
            ShotResult on the tick the shot resolves, otherwise None.
        """
        if self._paused:
            return None
        flight = self._resolver.advance(delta_time_ms)
        if flight is None:
            return None
        return self._resolve(flight)

    def _resolve(self, flight: FlightResult) -> ShotResult:
        """Match the landed bubble, then re-arm or finish the level."""
        score_before = self._scorer.score

        match = None
        if flight.placed:
            match = self._matcher.resolve(flight.landing_cell)
        self._resolver.finish()

        if self._board.is_empty:
            self._mark_cleared()
        else:
            self._shooter.rearm(self._board.colors_present())

        return ShotResult(
            flight=flight,
            match=match,
            delta_score=self._scorer.score - score_before,
            score=self._scorer.score,
            cleared=self._cleared
        )

    def _mark_cleared(self) -> None:
        self._cleared = True
        self._shooter.hide()
        self._resolver.reset()
        if self._completion_reported:
            return
        self._completion_reported = True
        logger.info("Level %d cleared with score %d", self.level_number, self._scorer.score)
        if self.on_level_complete is not None:
            self.on_level_complete(self._scorer.score)

    # ------------------------------------------------------------------
    # Read-only views
    # ------------------------------------------------------------------

    def snapshot(self) -> BoardSnapshot:
        """Numpy snapshot of the session."""
        return self._snapshot_builder.build(
            board=self._board,
            level_number=self.level_number,
            score=self._scorer.score,
            shots_fired=self._shots_fired,
            current_color=self._shooter.current_color,
            next_color=self._shooter.next_color,
            cleared=self._cleared
        )

    def get_info(self) -> Dict[str, Any]:
        """Summary dict for logs and Gymnasium info."""
        return {
            "level": self.level_number,
            "pattern": self._level_data.meta.pattern_name if self._level_data else "",
            "score": self._scorer.score,
            "shots_fired": self._shots_fired,
            "occupied": self._board.occupied_count,
            "popped": self._scorer.pops,
            "dropped": self._scorer.drops,
            "cleared": self._cleared,
        }

    def get_render_data(self) -> Dict[str, Any]:
        """
        Get data needed for rendering.

        Returns:
            Dict with bubble positions, texture keys, projectile and HUD values.
        """
        grid = self._board.grid
        bubbles = []
        for (row, column), bubble in self._board:
            x, y = grid.cell_to_pixel(row, column)
            bubbles.append({
                "row": row,
                "column": column,
                "x": x,
                "y": y,
                "color": bubble.color,
                "hex": self._palette[bubble.color].hex,
                "special": bubble.special,
                "texture": self._textures.key_for(bubble.color, bubble.special).name
                if self._textures is not None and (bubble.color, bubble.special) in self._textures
                else None,
            })

        projectile = self._resolver.projectile
        return {
            "board_width": self._config.board.width,
            "board_height": self._config.board.height,
            "bubble_radius": grid.bubble_radius,
            "bubbles": bubbles,
            "projectile": None if projectile is None else {
                "x": projectile.x,
                "y": projectile.y,
                "color": projectile.color,
            },
            "shooter_x": self._resolver.origin[0],
            "shooter_y": self._resolver.origin[1],
            "shooter_visible": self._shooter.visible,
            "current_color": self._shooter.current_color,
            "next_color": self._shooter.next_color,
            "score": self._scorer.score,
            "level": self.level_number,
            "phase": self._resolver.phase,
            "paused": self._paused,
            "cleared": self._cleared,
        }
