"""
Bubble Core - The puzzle engine.

This module provides deterministic level generation, the hex-offset grid,
shot resolution, cluster matching and the session that ties them together.

Main exports:
- BubbleGame: One level-play session driven by host events
- BubbleEnv: Gymnasium environment (one step = one shot)
- generate_level: Level number -> LevelData
- HexGrid: Hex-offset addressing and adjacency
- GameConfig: Configuration loaded from game_config.yaml
"""

from bubble_shooter.bubble_core.config_loader import GameConfig, load_config
from bubble_shooter.bubble_core.rng import Mulberry32, ShooterQueue
from bubble_shooter.bubble_core.palette import Palette, TextureKey, TextureTable
from bubble_shooter.bubble_core.hex_grid import HexGrid
from bubble_shooter.bubble_core.level_generator import (
    GenerationError,
    GridCell,
    LevelData,
    generate_level,
)
from bubble_shooter.bubble_core.board import Board, Bubble
from bubble_shooter.bubble_core.game import BubbleGame, ShotResult
from bubble_shooter.bubble_core.env_gym import BubbleEnv
from bubble_shooter.bubble_core.replay_recorder import (
    ReplayRecorder,
    generate_replay_filename,
    load_replay,
    replay_shots,
)

__all__ = [
    "GameConfig",
    "load_config",
    "Mulberry32",
    "ShooterQueue",
    "Palette",
    "TextureKey",
    "TextureTable",
    "HexGrid",
    "GenerationError",
    "GridCell",
    "LevelData",
    "generate_level",
    "Board",
    "Bubble",
    "BubbleGame",
    "ShotResult",
    "BubbleEnv",
    "ReplayRecorder",
    "generate_replay_filename",
    "load_replay",
    "replay_shots",
]
