"""
Tests for projectile travel, termination and snapping.
"""

import dataclasses
import math

import pytest

from bubble_shooter.bubble_core.board import Board, Bubble
from bubble_shooter.bubble_core.config_loader import load_config
from bubble_shooter.bubble_core.shot_physics import (
    END_CEILING,
    END_COLLISION,
    END_STALL,
    END_TIMEOUT,
    PHASE_AIMING,
    PHASE_IDLE,
    PHASE_IN_FLIGHT,
    PHASE_SNAPPING,
    ShotResolver,
    aim_angle,
    angle_is_legal,
    find_snap_cell,
    launch_velocity,
)


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def board(config):
    return Board(config=config)


@pytest.fixture
def resolver(board, config):
    return ShotResolver(board, config)


def with_shot(config, **changes):
    """Config copy with some shot parameters replaced."""
    return dataclasses.replace(config, shot=dataclasses.replace(config.shot, **changes))


def fly(resolver, dt_ms=16.0, max_ticks=2000):
    """Tick until the flight ends."""
    for _ in range(max_ticks):
        result = resolver.advance(dt_ms)
        if result is not None:
            return result
    raise AssertionError("Shot never resolved")


class TestAngles:
    """Legal arc and aim helpers."""

    def test_arc_is_strict(self, config):
        limit = config.shot.max_angle
        assert angle_is_legal(0.0, limit)
        assert angle_is_legal(limit - 1e-6, limit)
        assert angle_is_legal(-(limit - 1e-6), limit)
        assert not angle_is_legal(limit, limit)
        assert not angle_is_legal(-limit, limit)
        assert not angle_is_legal(limit + 0.1, limit)
        assert not angle_is_legal(float("nan"), limit)

    def test_aim_angle_directions(self):
        origin = (160.0, 600.0)
        assert aim_angle(origin, (160.0, 100.0)) == pytest.approx(0.0)
        assert aim_angle(origin, (260.0, 500.0)) == pytest.approx(math.pi / 4)
        assert aim_angle(origin, (60.0, 500.0)) == pytest.approx(-math.pi / 4)

    def test_launch_velocity_points_up(self):
        vx, vy = launch_velocity(0.0, 800.0)
        assert vx == pytest.approx(0.0)
        assert vy == pytest.approx(-800.0)

        vx, vy = launch_velocity(0.5, 800.0)
        assert vx > 0
        assert vy < 0
        assert math.hypot(vx, vy) == pytest.approx(800.0)


class TestStateMachine:
    """Phase transitions of a single shot."""

    def test_full_cycle(self, resolver):
        assert resolver.phase == PHASE_IDLE
        assert resolver.begin_aim()
        assert resolver.phase == PHASE_AIMING

        assert resolver.release(0.0, color=2)
        assert resolver.phase == PHASE_IN_FLIGHT
        assert resolver.projectile.color == 2

        fly(resolver)
        assert resolver.phase == PHASE_SNAPPING
        assert resolver.projectile is None

        resolver.finish()
        assert resolver.phase == PHASE_IDLE

    def test_illegal_release_returns_to_idle(self, resolver, config):
        resolver.begin_aim()
        assert not resolver.release(config.shot.max_angle, color=0)
        assert resolver.phase == PHASE_IDLE
        assert resolver.projectile is None

    @pytest.mark.parametrize("angle", [1.37, -1.37, 1.47, -3.0])
    def test_out_of_arc_rejected(self, resolver, angle):
        assert not resolver.release(angle, color=0)
        assert not resolver.in_flight

    def test_single_projectile(self, resolver):
        """A second release while flying is refused."""
        assert resolver.release(0.0, color=0)
        first = resolver.projectile

        assert not resolver.release(0.3, color=1)
        assert not resolver.begin_aim()
        assert resolver.projectile is first

    def test_advance_without_projectile(self, resolver):
        assert resolver.advance(16.0) is None
        assert resolver.phase == PHASE_IDLE

    def test_non_positive_dt_ignored(self, resolver):
        resolver.release(0.0, color=0)
        y = resolver.projectile.y

        assert resolver.advance(0.0) is None
        assert resolver.advance(-5.0) is None
        assert resolver.projectile.y == y

    @pytest.mark.parametrize("dt_ms", [float("nan"), float("inf"), float("-inf")])
    def test_non_finite_dt_ignored(self, resolver, dt_ms):
        """Bad frame times leave the projectile where it is."""
        resolver.release(0.0, color=0)
        y = resolver.projectile.y

        assert resolver.advance(dt_ms) is None
        assert resolver.in_flight
        assert resolver.projectile.y == y
        assert resolver.projectile.elapsed_ms == 0.0


class TestTermination:
    """How flights end."""

    def test_straight_shot_hits_pair(self, board, resolver):
        """Firing between two ceiling bubbles lands directly below them."""
        board.place(0, 3, Bubble(0))  # x=140
        board.place(0, 4, Bubble(0))  # x=180

        resolver.release(0.0, color=1)
        result = fly(resolver)

        assert result.reason == END_COLLISION
        assert result.landing_cell == (1, 3)
        assert result.placed
        assert board.get(1, 3) == Bubble(1)

    def test_ceiling_snap(self, board, resolver):
        resolver.release(0.0, color=3)
        result = fly(resolver)

        assert result.reason == END_CEILING
        assert result.position[1] == pytest.approx(board.grid.bubble_radius)
        assert result.landing_cell[0] == 0
        assert board.get(*result.landing_cell) == Bubble(3)

    def test_wall_bounce_stays_inside(self, board, resolver, config):
        """The projectile mirrors off the side walls instead of leaving the board."""
        radius = config.board.bubble_radius
        resolver.release(1.2, color=0)

        result = None
        bounced = False
        last_vx = resolver.projectile.vx
        for _ in range(2000):
            result = resolver.advance(16.0)
            if result is not None:
                break
            projectile = resolver.projectile
            assert radius <= projectile.x <= config.board.width - radius
            if projectile.vx != last_vx:
                bounced = True
            last_vx = projectile.vx

        assert bounced
        assert result is not None
        assert result.reason == END_CEILING

    def test_distant_bubble_not_hit(self, board, resolver):
        """Bubbles farther than the hit distance from the path are ignored."""
        board.place(10, 0, Bubble(0))  # x=20, far from a straight shot at x=160

        resolver.release(0.0, color=1)
        result = fly(resolver)

        assert result.reason == END_CEILING
        assert board.occupied_count == 2

    def test_stall_forces_snap(self, config):
        slow = with_shot(config, speed=0.5)
        board = Board(config=slow)
        resolver = ShotResolver(board, slow)

        resolver.release(0.0, color=4)
        result = resolver.advance(16.0)

        assert result.reason == END_STALL
        assert result.landing_cell == (15, 3)
        assert board.get(15, 3) == Bubble(4)

    def test_stall_with_no_room_drops_shot(self, config):
        """If every nearby cell is taken the bubble is discarded."""
        slow = with_shot(config, speed=0.5)
        board = Board(config=slow)
        for row in (13, 14, 15):
            for column in range(board.grid.columns_for_row(row)):
                board.place(row, column, Bubble(0))
        before = board.occupancy()
        resolver = ShotResolver(board, slow)

        resolver.release(0.0, color=1)
        result = resolver.advance(16.0)

        assert result.reason == END_STALL
        assert not result.placed
        assert board.occupancy() == before

    def test_timeout_discards_shot(self, config):
        slow = with_shot(config, speed=5.0, timeout_ms=5000.0)
        board = Board(config=slow)
        resolver = ShotResolver(board, slow)

        resolver.release(0.0, color=0)
        result = fly(resolver, dt_ms=100.0, max_ticks=100)

        assert result.reason == END_TIMEOUT
        assert not result.placed
        assert board.is_empty
        assert resolver.phase == PHASE_IDLE
        assert resolver.projectile is None


class TestSnapCell:
    """Free-cell search around the stopping point."""

    def test_free_nearest_cell(self, board):
        assert find_snap_cell(board, 140, 20) == (0, 3)

    def test_nearest_neighbor_when_occupied(self, board):
        board.place(0, 3, Bubble(0))
        assert find_snap_cell(board, 150, 25) == (0, 4)

    def test_falls_back_to_second_ring(self, board):
        for cell in [(0, 2), (0, 3), (0, 4), (1, 2), (1, 3)]:
            board.place(*cell, Bubble(0))
        assert find_snap_cell(board, 150, 25) == (1, 4)

    def test_none_when_packed(self, board):
        for row in range(3):
            for column in range(board.grid.columns_for_row(row)):
                board.place(row, column, Bubble(0))
        assert find_snap_cell(board, 150, 25) is None


class TestTrajectoryPreview:
    def test_illegal_angle_has_no_preview(self, resolver, config):
        assert resolver.trace_trajectory(config.shot.max_angle) == []

    def test_straight_preview(self, resolver, config):
        points = resolver.trace_trajectory(0.0)

        assert points[0] == (config.board.shooter_x, config.board.shooter_y)
        assert points[-1][0] == pytest.approx(config.board.shooter_x)
        assert points[-1][1] == pytest.approx(config.board.bubble_radius)

    def test_preview_records_bounces(self, resolver, config):
        radius = config.board.bubble_radius
        right = config.board.width - radius
        points = resolver.trace_trajectory(1.0, max_bounces=2)

        assert len(points) >= 3
        for x, _ in points[1:-1]:
            assert min(abs(x - radius), abs(x - right)) < config.shot.max_step_px

    def test_preview_leaves_board_untouched(self, board, resolver):
        board.place(0, 3, Bubble(0))
        resolver.trace_trajectory(0.2)

        assert board.occupied_cells() == [(0, 3)]
        assert resolver.phase == PHASE_IDLE
