"""
Tests for the board, cluster pops and orphan drops.
"""

import pytest

from bubble_shooter.bubble_core.board import Board, Bubble
from bubble_shooter.bubble_core.config_loader import load_config
from bubble_shooter.bubble_core.level_generator import GridCell, LevelData, LevelMeta
from bubble_shooter.bubble_core.match_system import (
    MatchSystem,
    find_anchored,
    find_cluster,
    find_orphans,
)
from bubble_shooter.bubble_core.palette import SPECIAL_LOCKED
from bubble_shooter.bubble_core.scoring import EVENT_DROP, EVENT_POP, ScoreTracker


@pytest.fixture
def config():
    return load_config()


@pytest.fixture
def board(config):
    return Board(config=config)


@pytest.fixture
def scorer(config):
    return ScoreTracker(config)


@pytest.fixture
def matcher(board, scorer, config):
    return MatchSystem(board, scorer, config)


def fill(board, cells):
    for row, column, color in cells:
        board.place(row, column, Bubble(color))


class TestBoard:
    """Occupancy and collision queries."""

    def test_place_and_remove(self, board):
        board.place(0, 3, Bubble(2))

        assert board.is_occupied(0, 3)
        assert board.get(0, 3) == Bubble(2)
        assert board.occupied_count == 1
        assert len(board.space.shapes) == 1

        assert board.remove(0, 3) == Bubble(2)
        assert board.is_empty
        assert len(board.space.shapes) == 0

    def test_remove_empty_cell(self, board):
        assert board.remove(4, 4) is None

    def test_place_out_of_bounds(self, board):
        with pytest.raises(ValueError):
            board.place(1, 7, Bubble(0))
        with pytest.raises(ValueError):
            board.place(-1, 0, Bubble(0))

    def test_place_occupied(self, board):
        board.place(0, 0, Bubble(0))
        with pytest.raises(ValueError):
            board.place(0, 0, Bubble(1))

    def test_colors_present(self, board):
        fill(board, [(0, 0, 1), (0, 1, 4), (1, 0, 1)])
        assert board.colors_present() == {1, 4}

    def test_iteration_is_row_major(self, board):
        fill(board, [(2, 1, 0), (0, 5, 0), (0, 1, 0)])
        assert [cell for cell, _ in board] == [(0, 1), (0, 5), (2, 1)]

    def test_nearest_occupant_within_distance(self, board):
        board.place(0, 3, Bubble(0))  # centre (140, 20)

        hit = board.nearest_occupant(140, 50, 35)
        assert hit is not None
        assert hit.cell == (0, 3)
        assert hit.distance == pytest.approx(30)

    def test_nearest_occupant_too_far(self, board):
        board.place(0, 3, Bubble(0))
        assert board.nearest_occupant(140, 56, 35) is None

    def test_nearest_occupant_picks_closest(self, board):
        fill(board, [(0, 3, 0), (0, 4, 1)])  # centres x=140 and x=180

        hit = board.nearest_occupant(165, 40, 35)
        assert hit.cell == (0, 4)
        assert hit.distance == pytest.approx(25)

    def test_nearest_occupant_empty_board(self, board):
        assert board.nearest_occupant(160, 300, 35) is None

    def test_populate_skips_holes(self, board):
        level = LevelData(
            rows=1,
            base_columns=8,
            colors=(0,),
            cells=(
                GridCell(0, 0, 0),
                GridCell(0, 1, None, is_hole=True),
                GridCell(0, 2, 0, special=SPECIAL_LOCKED),
            ),
            meta=LevelMeta(level_number=1, pattern_name="custom", difficulty=0.0),
        )

        assert board.populate(level) == 2
        assert board.occupied_cells() == [(0, 0), (0, 2)]
        assert board.get(0, 2).special == SPECIAL_LOCKED

    def test_populate_replaces_previous(self, board):
        fill(board, [(5, 5, 3)])
        level = LevelData(
            rows=1, base_columns=8, colors=(0,), cells=(GridCell(0, 0, 0),),
            meta=LevelMeta(level_number=1, pattern_name="custom", difficulty=0.0),
        )
        board.populate(level)

        assert board.occupied_cells() == [(0, 0)]
        assert len(board.space.shapes) == 1


class TestClusters:
    """Flood fill and anchoring."""

    def test_cluster_starts_at_origin(self, board):
        fill(board, [(0, 3, 0), (0, 4, 0), (1, 3, 0), (0, 5, 1)])
        cluster = find_cluster(board, (1, 3))

        assert cluster[0] == (1, 3)
        assert set(cluster) == {(0, 3), (0, 4), (1, 3)}

    def test_cluster_of_empty_cell(self, board):
        assert find_cluster(board, (3, 3)) == []

    def test_other_color_breaks_cluster(self, board):
        fill(board, [(0, 0, 0), (0, 1, 1), (0, 2, 0), (1, 1, 0)])
        assert set(find_cluster(board, (1, 1))) == {(1, 1), (0, 2)}

    def test_anchored_and_orphans(self, board):
        fill(board, [(0, 0, 0), (1, 0, 0), (2, 0, 1), (4, 4, 2), (5, 4, 2)])

        assert find_anchored(board) == {(0, 0), (1, 0), (2, 0)}
        assert find_orphans(board) == [(4, 4), (5, 4)]


class TestMatchSystem:
    """Pop, drop and clear."""

    def test_three_pop(self, board, matcher, scorer):
        fill(board, [(0, 3, 0), (0, 4, 0), (1, 3, 0)])
        result = matcher.resolve((1, 3))

        assert result.did_pop
        assert set(result.popped) == {(0, 3), (0, 4), (1, 3)}
        assert result.dropped == []
        assert result.delta_score == 30
        assert scorer.score == 30
        assert result.cleared
        assert board.is_empty

    def test_pair_does_not_pop(self, board, matcher, scorer):
        """Below the cluster size nothing changes, not even floating bubbles."""
        fill(board, [(0, 0, 0), (0, 1, 0), (6, 3, 1)])
        result = matcher.resolve((0, 1))

        assert not result.did_pop
        assert result.delta_score == 0
        assert scorer.score == 0
        assert board.occupied_count == 3
        assert not result.cleared

    def test_pop_drops_orphans(self, board, matcher, scorer):
        fill(board, [
            (0, 3, 0), (0, 4, 0), (1, 3, 0),   # cluster
            (1, 4, 1), (2, 4, 1),              # hangs from the cluster only
            (0, 0, 2), (1, 0, 2),              # anchored elsewhere
        ])
        result = matcher.resolve((1, 3))

        assert len(result.popped) == 3
        assert result.dropped == [(1, 4), (2, 4)]
        assert [e.kind for e in result.score_events] == [EVENT_POP, EVENT_DROP]
        assert result.delta_score == 3 * 10 + 2 * 20
        assert scorer.score == 70
        assert scorer.pops == 3
        assert scorer.drops == 2
        assert board.occupied_cells() == [(0, 0), (1, 0)]
        assert not result.cleared

    def test_no_orphans_after_pop(self, board, matcher):
        """After a pop every remaining bubble hangs from the ceiling."""
        fill(board, [
            (0, 2, 1), (1, 2, 1), (2, 2, 1), (3, 2, 1),
            (0, 5, 0), (1, 4, 0), (2, 4, 1), (2, 5, 0), (3, 4, 2),
        ])
        board.place(1, 5, Bubble(0))
        matcher.resolve((1, 5))

        assert find_orphans(board) == []

    def test_specials_match_by_color(self, board, matcher):
        board.place(0, 3, Bubble(0, SPECIAL_LOCKED))
        fill(board, [(0, 4, 0), (1, 3, 0)])

        assert matcher.resolve((1, 3)).did_pop
        assert board.is_empty

    def test_large_cluster_scores_per_bubble(self, board, matcher, scorer):
        fill(board, [(0, c, 4) for c in range(8)])
        result = matcher.resolve((0, 0))

        assert len(result.popped) == 8
        assert scorer.score == 80
