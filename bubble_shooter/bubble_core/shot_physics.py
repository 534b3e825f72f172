"""
Shot Physics
============

Projectile travel, wall reflection, collision detection and snapping.

One shot runs idle -> aiming -> in_flight -> snapping -> idle. The host drives
travel with small time steps; a shot that never meets a termination condition
is cleaned up once its accumulated flight time passes the configured timeout.
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass
from typing import List, Optional, Tuple

from bubble_shooter.bubble_core.board import Board, Bubble
from bubble_shooter.bubble_core.config_loader import GameConfig, get_config
from bubble_shooter.bubble_core.hex_grid import Cell

logger = logging.getLogger(__name__)

PHASE_IDLE = "idle"
PHASE_AIMING = "aiming"
PHASE_IN_FLIGHT = "in_flight"
PHASE_SNAPPING = "snapping"

# Why a flight ended
END_COLLISION = "collision"
END_CEILING = "ceiling"
END_STALL = "stall"
END_TIMEOUT = "timeout"

# Upper bound on integration steps for a trajectory preview
_MAX_PREVIEW_STEPS = 20000


@dataclass
class Projectile:
    """The single in-flight bubble."""
    x: float
    y: float
    vx: float
    vy: float
    color: int
    elapsed_ms: float = 0.0

    @property
    def position(self) -> Tuple[float, float]:
        return (self.x, self.y)

    @property
    def speed(self) -> float:
        return math.hypot(self.vx, self.vy)


@dataclass
class FlightResult:
    """How an in-flight shot ended."""
    reason: str                  # One of the END_* constants
    position: Tuple[float, float]
    color: int
    landing_cell: Optional[Cell] = None

    @property
    def placed(self) -> bool:
        """True if the projectile became a board occupant."""
        return self.landing_cell is not None


def angle_is_legal(angle: float, max_angle: float) -> bool:
    """True if an angle (radians from straight up) lies strictly inside the arc."""
    return math.isfinite(angle) and abs(angle) < max_angle


def aim_angle(origin: Tuple[float, float], target: Tuple[float, float]) -> float:
    """
    Angle from straight up towards a target point.

    Positive angles lean right. Screen y grows downward, so a target above the
    origin has a smaller y.
    """
    dx = target[0] - origin[0]
    dy = target[1] - origin[1]
    return math.atan2(dx, -dy)


def launch_velocity(angle: float, speed: float) -> Tuple[float, float]:
    """Velocity vector for a launch angle measured from straight up."""
    return (math.sin(angle) * speed, -math.cos(angle) * speed)


def _step(projectile: Projectile, dt_s: float, left: float, right: float) -> bool:
    """
    Move a projectile by one sub-step, mirroring it off the side walls.

    Returns:
        True if the projectile bounced.
    """
    projectile.x += projectile.vx * dt_s
    projectile.y += projectile.vy * dt_s

    if projectile.x < left:
        projectile.x = 2 * left - projectile.x
        projectile.vx = abs(projectile.vx)
        return True
    if projectile.x > right:
        projectile.x = 2 * right - projectile.x
        projectile.vx = -abs(projectile.vx)
        return True
    return False


def find_snap_cell(board: Board, x: float, y: float) -> Optional[Cell]:
    """
    Free cell a projectile at (x, y) settles into.

    The nearest cell wins if it is free. Otherwise direct neighbors, then the
    ring two steps out, are searched for the free cell closest to (x, y).

    Returns:
        The chosen cell, or None if the whole neighborhood is occupied.
    """
    grid = board.grid
    nearest = grid.pixel_to_cell(x, y)
    if not board.is_occupied(*nearest):
        return nearest

    for candidates in (grid.neighbors(*nearest), grid.ring(*nearest, 2)):
        free = [cell for cell in candidates if not board.is_occupied(*cell)]
        if free:
            return min(free, key=lambda cell: (grid.distance_to_cell(x, y, cell), cell))
    return None


class ShotResolver:
    """
    State machine for one shot at a time.

    Only one projectile may exist; release() is refused while one is flying.
    """

    def __init__(self, board: Board, config: Optional[GameConfig] = None):
        """
        Initialize resolver.

        Args:
            board: The live board shots are resolved against.
            config: Game configuration. Uses default if None.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._board = board
        self._phase = PHASE_IDLE
        self._projectile: Optional[Projectile] = None

        radius = config.board.bubble_radius
        self._left = radius
        self._right = config.board.width - radius
        self._ceiling = radius
        self._origin = (config.board.shooter_x, config.board.shooter_y)

    @property
    def phase(self) -> str:
        return self._phase

    @property
    def projectile(self) -> Optional[Projectile]:
        return self._projectile

    @property
    def in_flight(self) -> bool:
        return self._phase == PHASE_IN_FLIGHT

    @property
    def origin(self) -> Tuple[float, float]:
        """Launch point of every shot."""
        return self._origin

    def begin_aim(self) -> bool:
        """Enter aiming. Refused unless idle."""
        if self._phase not in (PHASE_IDLE, PHASE_AIMING):
            return False
        self._phase = PHASE_AIMING
        return True

    def cancel_aim(self) -> None:
        if self._phase == PHASE_AIMING:
            self._phase = PHASE_IDLE

    def release(self, angle: float, color: int) -> bool:
        """
        Fire a projectile.

        Args:
            angle: Radians from straight up, positive to the right.
            color: Color of the fired bubble.

        Returns:
            True if the shot was launched. An illegal angle drops back to idle.
        """
        if self._phase not in (PHASE_IDLE, PHASE_AIMING):
            return False

        if not angle_is_legal(angle, self._config.shot.max_angle):
            logger.debug("Rejected launch angle %.4f", angle)
            self._phase = PHASE_IDLE
            return False

        vx, vy = launch_velocity(angle, self._config.shot.speed)
        self._projectile = Projectile(
            x=self._origin[0],
            y=self._origin[1],
            vx=vx,
            vy=vy,
            color=color
        )
        self._phase = PHASE_IN_FLIGHT
        return True

    def advance(self, dt_ms: float) -> Optional[FlightResult]:
        """
        Advance the projectile by dt_ms milliseconds.

        Returns:
            FlightResult once the flight has ended, None while still flying
            or when there is nothing in flight.
        """
        if self._phase != PHASE_IN_FLIGHT or self._projectile is None:
            return None
        if not math.isfinite(dt_ms) or dt_ms <= 0:
            return None

        projectile = self._projectile
        shot = self._config.shot
        dt_s = dt_ms / 1000.0
        distance = projectile.speed * dt_s
        substeps = max(1, int(math.ceil(distance / shot.max_step_px)))
        h = dt_s / substeps

        for _ in range(substeps):
            if projectile.speed < shot.stall_speed:
                logger.debug("Projectile stalled at (%.1f, %.1f)", projectile.x, projectile.y)
                return self._snap(END_STALL)

            _step(projectile, h, self._left, self._right)

            if projectile.y <= self._ceiling:
                projectile.y = self._ceiling
                return self._snap(END_CEILING)

            hit = self._board.nearest_occupant(projectile.x, projectile.y, shot.collision_distance)
            if hit is not None:
                return self._snap(END_COLLISION)

        projectile.elapsed_ms += dt_ms
        if projectile.elapsed_ms >= shot.timeout_ms:
            logger.info(
                "Shot timed out after %.0f ms at (%.1f, %.1f); discarding",
                projectile.elapsed_ms, projectile.x, projectile.y
            )
            result = FlightResult(
                reason=END_TIMEOUT,
                position=projectile.position,
                color=projectile.color
            )
            self.reset()
            return result

        return None

    def _snap(self, reason: str) -> FlightResult:
        """Convert the projectile into a board occupant, if a free cell is near."""
        projectile = self._projectile
        self._phase = PHASE_SNAPPING

        cell = find_snap_cell(self._board, projectile.x, projectile.y)
        if cell is None:
            logger.debug("No free cell near (%.1f, %.1f); shot dropped", projectile.x, projectile.y)
        else:
            self._board.place(cell[0], cell[1], Bubble(projectile.color))

        self._projectile = None
        return FlightResult(
            reason=reason,
            position=(projectile.x, projectile.y),
            color=projectile.color,
            landing_cell=cell
        )

    def finish(self) -> None:
        """Return to idle after the landed bubble has been resolved."""
        if self._phase == PHASE_SNAPPING:
            self._phase = PHASE_IDLE

    def reset(self) -> None:
        """Discard any projectile and return to idle."""
        self._projectile = None
        self._phase = PHASE_IDLE

    def trace_trajectory(self, angle: float, max_bounces: Optional[int] = None) -> List[Tuple[float, float]]:
        """
        Preview the path a shot at this angle would take.

        Args:
            angle: Radians from straight up.
            max_bounces: Wall reflections to follow. Uses config if None.

        Returns:
            Polyline starting at the shooter: one point per wall bounce, then
            the point where the path meets a bubble, the ceiling, or the
            bounce limit. Empty if the angle is illegal.
        """
        shot = self._config.shot
        if not angle_is_legal(angle, shot.max_angle):
            return []
        if max_bounces is None:
            max_bounces = shot.preview_bounces

        vx, vy = launch_velocity(angle, shot.speed)
        ghost = Projectile(x=self._origin[0], y=self._origin[1], vx=vx, vy=vy, color=-1)
        h = shot.max_step_px / shot.speed if shot.speed > 0 else 0.0
        points = [ghost.position]
        if h <= 0:
            return points

        bounces = 0
        for _ in range(_MAX_PREVIEW_STEPS):
            if _step(ghost, h, self._left, self._right):
                points.append(ghost.position)
                bounces += 1
                if bounces > max_bounces:
                    return points
            if ghost.y <= self._ceiling:
                ghost.y = self._ceiling
                break
            if self._board.nearest_occupant(ghost.x, ghost.y, shot.collision_distance) is not None:
                break
        points.append(ghost.position)
        return points
