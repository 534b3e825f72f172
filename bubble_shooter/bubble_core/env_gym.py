"""
Gymnasium Environment Wrapper
=============================

Provides a standard Gymnasium interface to one bubble-shooter level.
One step = one shot, ticked until it resolves. Reward is the score delta.
"""

from __future__ import annotations

from typing import Any, Dict, Optional, Tuple

import numpy as np

import gymnasium as gym
from gymnasium import spaces

from bubble_shooter.bubble_core.config_loader import GameConfig, load_config
from bubble_shooter.bubble_core.game import BubbleGame
from bubble_shooter.bubble_core.palette import SPECIAL_KINDS


class BubbleEnv(gym.Env):
    """
    Bubble-shooter level as a Gymnasium environment.

    Action Space:
        Box(low=-max_angle, high=max_angle, shape=(), dtype=float32)
        Launch angle in radians from straight up. The bounds themselves are
        outside the legal arc and are rejected as no-op steps.

    Observation Space:
        Dict of board grids and shooter state (see BoardSnapshot).

    Reward:
        Points scored by the shot.

    Info:
        Contains score, shots_fired, occupied, cleared, rejected, end_reason.
    """

    metadata = {"render_modes": []}

    def __init__(
        self,
        config_path: Optional[str] = None,
        level: int = 1,
        config: Optional[GameConfig] = None,
    ):
        """
        Initialize environment.

        Args:
            config_path: Path to game_config.yaml. Uses default if None.
            level: Level played after reset() unless options override it.
            config: Pre-loaded configuration, takes precedence over config_path.
        """
        super().__init__()

        self._config = config if config is not None else load_config(config_path)
        if not 0 < self._config.observation.tick_ms < float("inf"):
            raise ValueError(f"observation.tick_ms must be positive, got {self._config.observation.tick_ms}")
        self._level = level
        self._game = BubbleGame(config=self._config)
        self._steps = 0

        max_angle = self._config.shot.max_angle
        self.action_space = spaces.Box(
            low=-max_angle,
            high=max_angle,
            shape=(),
            dtype=np.float32
        )
        self.observation_space = self._build_observation_space()

    def _build_observation_space(self) -> spaces.Dict:
        """Build the observation space definition."""
        rows = self._config.board.rows
        cols = self._config.max_columns
        n_colors = self._config.num_colors
        max_cells = rows * cols

        return spaces.Dict({
            "level_number": spaces.Box(low=0, high=np.iinfo(np.int32).max, shape=(), dtype=np.int32),
            "score": spaces.Box(low=0, high=np.iinfo(np.int64).max, shape=(), dtype=np.int64),
            "shots_fired": spaces.Box(low=0, high=np.iinfo(np.int32).max, shape=(), dtype=np.int32),
            "current_color": spaces.Box(low=-1, high=n_colors - 1, shape=(), dtype=np.int32),
            "next_color": spaces.Box(low=-1, high=n_colors - 1, shape=(), dtype=np.int32),
            "occupied_count": spaces.Box(low=0, high=max_cells, shape=(), dtype=np.int32),
            "color_grid": spaces.Box(low=-1, high=n_colors - 1, shape=(rows, cols), dtype=np.int16),
            "special_grid": spaces.Box(
                low=0, high=len(SPECIAL_KINDS) - 1, shape=(rows, cols), dtype=np.int8
            ),
            "occupied_mask": spaces.MultiBinary((rows, cols)),
            "color_counts": spaces.Box(low=0, high=max_cells, shape=(n_colors,), dtype=np.int32),
        })

    @property
    def config(self) -> GameConfig:
        return self._config

    @property
    def game(self) -> BubbleGame:
        """The underlying session."""
        return self._game

    def reset(
        self,
        *,
        seed: Optional[int] = None,
        options: Optional[Dict[str, Any]] = None
    ) -> Tuple[Dict[str, np.ndarray], Dict[str, Any]]:
        """
        Start (or restart) a level.

        Levels are fully determined by their number; `seed` only seeds
        the environment's own np_random.

        Args:
            seed: Seed for np_random.
            options: {"level": n} to switch levels.
        """
        super().reset(seed=seed)
        if options and "level" in options:
            self._level = int(options["level"])

        if self._game.start_level(self._level) is None:
            raise ValueError(f"Invalid level: {self._level}")
        self._steps = 0

        info = self._game.get_info()
        info.update({"rejected": False, "end_reason": ""})
        return self._game.snapshot().to_obs_dict(), info

    def step(self, action) -> Tuple[Dict[str, np.ndarray], float, bool, bool, Dict[str, Any]]:
        """
        Fire one shot and tick until it resolves.

        Returns:
            (observation, reward, terminated, truncated, info)
        """
        angle = float(np.asarray(action, dtype=np.float64).reshape(()))
        self._steps += 1

        reward = 0.0
        end_reason = ""
        accepted = self._game.on_release(angle)
        if accepted:
            tick = self._config.observation.tick_ms
            result = None
            while result is None:
                result = self._game.on_advance(tick)
            reward = float(result.delta_score)
            end_reason = result.reason

        terminated = self._game.is_cleared
        truncated = not terminated and self._steps >= self._config.observation.max_shots

        info = self._game.get_info()
        info.update({"rejected": not accepted, "end_reason": end_reason})
        return self._game.snapshot().to_obs_dict(), reward, terminated, truncated, info

    def close(self) -> None:
        pass
