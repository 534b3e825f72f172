"""
Replay Recorder
===============

Records the shots fired in a level so the exact game can be replayed.

Levels and shooter colors are both derived from the level number, so a level
number, the tick length and the ordered list of launch angles fully determine
a game.

Usage:
    from bubble_shooter.bubble_core import BubbleEnv, ReplayRecorder

    env = BubbleEnv(level=3)
    recorder = ReplayRecorder(env, agent_name="my_agent")

    obs, info = recorder.reset()
    done = False
    while not done:
        obs, reward, terminated, truncated, info = recorder.step(agent(obs))
        done = terminated or truncated

    recorder.save("level3.json")
"""

from __future__ import annotations

import hashlib
import json
import math
from dataclasses import dataclass
from datetime import datetime
from pathlib import Path
from typing import Any, Dict, List, Optional, Union

import numpy as np

from bubble_shooter.bubble_core.config_loader import GameConfig, get_config
from bubble_shooter.bubble_core.env_gym import BubbleEnv
from bubble_shooter.bubble_core.game import BubbleGame

REPLAY_VERSION = 1


def _validate_tick(tick_ms: Any) -> float:
    """Tick length of a replay, which must move simulated time forward."""
    try:
        tick = float(tick_ms)
    except (TypeError, ValueError):
        raise ValueError(f"Replay tick_ms is not a number: {tick_ms!r}")
    if not math.isfinite(tick) or tick <= 0:
        raise ValueError(f"Replay tick_ms must be positive and finite, got {tick_ms!r}")
    return tick


def generate_replay_filename(
    agent_name: str = "replay",
    level: Optional[int] = None,
    directory: Optional[Union[str, Path]] = None
) -> Path:
    """
    Generate a timestamped replay filename.

    Format: {agent_name}_{YYYYMMDD_HHMMSS}_L{level}.json
    """
    timestamp = datetime.now().strftime("%Y%m%d_%H%M%S")

    if level is not None:
        filename = f"{agent_name}_{timestamp}_L{level}.json"
    else:
        filename = f"{agent_name}_{timestamp}.json"

    if directory:
        return Path(directory) / filename
    return Path(filename)


def compute_config_hash(config: Optional[GameConfig] = None) -> str:
    """Hash of every parameter that changes how a replay plays out."""
    if config is None:
        config = get_config()
    hash_data = {
        "board": {
            "width": config.board.width,
            "rows": config.board.rows,
            "bubble_radius": config.board.bubble_radius,
            "shooter": [config.board.shooter_x, config.board.shooter_y],
        },
        "generation": {
            "seed_offset": config.generation.seed_offset,
            "base_rows": config.generation.base_rows,
            "row_span": config.generation.row_span,
            "max_rows": config.generation.max_rows,
            "base_columns": config.generation.base_columns,
            "patterns": list(config.generation.patterns),
        },
        "shot": {
            "speed": config.shot.speed,
            "max_angle": config.shot.max_angle,
            "collision_distance": config.shot.collision_distance,
            "timeout_ms": config.shot.timeout_ms,
            "max_step_px": config.shot.max_step_px,
            "shooter_seed_offset": config.shot.shooter_seed_offset,
        },
        "scoring": {
            "min_cluster_size": config.scoring.min_cluster_size,
            "pop_points": config.scoring.pop_points,
            "drop_points": config.scoring.drop_points,
        },
    }
    return hashlib.md5(json.dumps(hash_data, sort_keys=True).encode()).hexdigest()[:8]


@dataclass
class ReplayOutcome:
    """Result of replaying a recording."""
    final_score: int
    cleared: bool
    shots_accepted: int
    matches_recording: bool


class ReplayRecorder:
    """
    Wrapper that records environment interactions for replay.

    Attributes:
        env: The wrapped environment.
        recording: Whether currently recording.
    """

    def __init__(
        self,
        env: BubbleEnv,
        agent_name: str = "unknown",
        auto_save_path: Optional[str] = None
    ):
        """
        Initialize the replay recorder.

        Args:
            env: The environment to wrap.
            agent_name: Name of the agent (stored in replay metadata).
            auto_save_path: If provided, automatically save replay on episode end.
        """
        self.env = env
        self.agent_name = agent_name
        self.auto_save_path = auto_save_path
        self.recording = False

        self._level: int = 0
        self._angles: List[float] = []
        self._scores: List[int] = []
        self._final_score: int = 0
        self._cleared: bool = False
        self._start_time: Optional[datetime] = None

    def reset(self, **kwargs):
        """Reset the environment and start a fresh recording."""
        obs, info = self.env.reset(**kwargs)
        self._level = info["level"]
        self._angles = []
        self._scores = []
        self._final_score = info["score"]
        self._cleared = False
        self._start_time = datetime.now()
        self.recording = True
        return obs, info

    def step(self, action):
        """Step the environment and record the action."""
        obs, reward, terminated, truncated, info = self.env.step(action)

        if self.recording:
            self._angles.append(float(np.asarray(action, dtype=np.float64).reshape(())))
            self._scores.append(int(info["score"]))
            self._final_score = int(info["score"])
            self._cleared = bool(info["cleared"])

            if (terminated or truncated) and self.auto_save_path:
                self.save(self.auto_save_path)

        return obs, reward, terminated, truncated, info

    @property
    def shot_count(self) -> int:
        return len(self._angles)

    def to_dict(self) -> Dict[str, Any]:
        """Serializable replay document."""
        return {
            "version": REPLAY_VERSION,
            "agent_name": self.agent_name,
            "recorded_at": self._start_time.isoformat() if self._start_time else None,
            "config_hash": compute_config_hash(self.env.config),
            "level": self._level,
            "tick_ms": self.env.config.observation.tick_ms,
            "angles": self._angles,
            "scores": self._scores,
            "final_score": self._final_score,
            "cleared": self._cleared,
        }

    def save(self, path: Union[str, Path]) -> Path:
        """
        Save the recording as JSON.

        Returns:
            Path written to.
        """
        path = Path(path)
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(self.to_dict(), f, indent=2)
        self.recording = False
        return path


def load_replay(path: Union[str, Path]) -> Dict[str, Any]:
    """
    Load a replay document.

    Raises:
        ValueError: If the file is not a supported replay.
    """
    with open(path, "r") as f:
        data = json.load(f)
    if data.get("version") != REPLAY_VERSION:
        raise ValueError(f"Unsupported replay version: {data.get('version')!r}")
    for key in ("level", "tick_ms", "angles"):
        if key not in data:
            raise ValueError(f"Replay is missing '{key}'")
    _validate_tick(data["tick_ms"])
    return data


def replay_shots(replay: Dict[str, Any], config: Optional[GameConfig] = None) -> ReplayOutcome:
    """
    Play a recorded shot list against a fresh session.

    Args:
        replay: Document from ReplayRecorder.to_dict() or load_replay().
        config: Game configuration. Uses default if None.

    Returns:
        ReplayOutcome; matches_recording is False if the config hash or the
        per-shot scores disagree with the recording.

    Raises:
        ValueError: If the level or tick length cannot be replayed.
    """
    if config is None:
        config = get_config()

    tick = _validate_tick(replay["tick_ms"])
    game = BubbleGame(config=config)
    if game.start_level(int(replay["level"])) is None:
        raise ValueError(f"Replay has an invalid level: {replay['level']!r}")

    scores = []
    accepted = 0
    for angle in replay["angles"]:
        if game.on_release(float(angle)):
            accepted += 1
            result = None
            while result is None:
                result = game.on_advance(tick)
        scores.append(game.score)

    recorded_scores = replay.get("scores")
    matches = replay.get("config_hash") in (None, compute_config_hash(config))
    if recorded_scores is not None:
        matches = matches and recorded_scores == scores

    return ReplayOutcome(
        final_score=game.score,
        cleared=game.is_cleared,
        shots_accepted=accepted,
        matches_recording=matches
    )
