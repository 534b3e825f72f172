"""
Configuration Loader
====================

Loads and validates game_config.yaml, providing typed access to all parameters.
"""

from __future__ import annotations

import os
from dataclasses import dataclass
from pathlib import Path
from typing import Dict, List, Tuple, Optional

import yaml


@dataclass(frozen=True)
class BoardConfig:
    """Playfield geometry and live board dimensions."""
    width: int                   # Playfield width in pixels (walls at 0 and width)
    height: int                  # Playfield height in pixels
    rows: int                    # Rows available on the live board
    bubble_radius: float
    shooter_x: float             # Launch point of every projectile
    shooter_y: float

    @property
    def bubble_diameter(self) -> float:
        return self.bubble_radius * 2


@dataclass(frozen=True)
class SpecialConfig:
    """Special-cell probabilities as linear functions of difficulty."""
    base_chance: float
    chance_scale: float
    locked_base: float
    locked_scale: float
    bomb_base: float
    bomb_scale: float
    rainbow_threshold: float
    rainbow_scale: float
    ice_probability: float


@dataclass(frozen=True)
class GenerationConfig:
    """Level generator tunables."""
    seed_offset: int
    difficulty_divisor: float
    base_rows: int
    row_span: int
    max_rows: int
    base_columns: int
    min_colors: int
    max_colors: int
    color_span: int
    noise_probability: float
    hole_probability: Dict[str, float]
    patterns: Tuple[str, ...]
    specials: SpecialConfig


@dataclass(frozen=True)
class PaletteEntry:
    """A single bubble color in the master palette."""
    id: int
    name: str
    hex: str
    rgb: Tuple[int, int, int]


@dataclass(frozen=True)
class ShotConfig:
    """Projectile travel and snapping parameters."""
    speed: float                 # Pixels per second
    max_angle: float             # Radians from vertical, exclusive bound
    collision_distance: float    # Centre distance counted as a hit
    stall_speed: float           # Below this speed the shot is forced to snap
    timeout_ms: float            # Safety net for shots that never terminate
    max_step_px: float           # Longest integration sub-step
    shooter_seed_offset: int
    preview_bounces: int


@dataclass(frozen=True)
class ScoringConfig:
    """Scoring parameters."""
    min_cluster_size: int
    pop_points: int
    drop_points: int


@dataclass(frozen=True)
class ObservationConfig:
    """Gymnasium adapter parameters."""
    max_shots: int
    tick_ms: float


@dataclass(frozen=True)
class GameConfig:
    """
    Complete game configuration loaded from YAML.

    All values are immutable to prevent accidental modification during runtime.
    """
    board: BoardConfig
    generation: GenerationConfig
    palette: Tuple[PaletteEntry, ...]
    shot: ShotConfig
    scoring: ScoringConfig
    observation: ObservationConfig

    @property
    def num_colors(self) -> int:
        """Number of entries in the master palette."""
        return len(self.palette)

    @property
    def max_columns(self) -> int:
        """Column count of even rows, the widest row of any board."""
        return self.generation.base_columns

    def get_color(self, color_id: int) -> PaletteEntry:
        """Get palette entry by ID."""
        if 0 <= color_id < len(self.palette):
            return self.palette[color_id]
        raise ValueError(f"Invalid color ID: {color_id}")


def _parse_hex(hex_value: str) -> Tuple[int, int, int]:
    """Parse a '#RRGGBB' string into an RGB tuple."""
    value = hex_value.lstrip("#")
    if len(value) != 6:
        raise ValueError(f"Color must be '#RRGGBB', got {hex_value!r}")
    return (int(value[0:2], 16), int(value[2:4], 16), int(value[4:6], 16))


def _parse_palette(palette_data: List) -> Tuple[PaletteEntry, ...]:
    """Parse the master palette from YAML."""
    entries = []
    for i, entry in enumerate(palette_data):
        hex_value = str(entry["hex"])
        entries.append(PaletteEntry(
            id=i,
            name=str(entry["name"]),
            hex=hex_value.upper(),
            rgb=_parse_hex(hex_value)
        ))
    return tuple(entries)


def _parse_specials(data: dict) -> SpecialConfig:
    return SpecialConfig(
        base_chance=float(data["base_chance"]),
        chance_scale=float(data["chance_scale"]),
        locked_base=float(data["locked_base"]),
        locked_scale=float(data["locked_scale"]),
        bomb_base=float(data["bomb_base"]),
        bomb_scale=float(data["bomb_scale"]),
        rainbow_threshold=float(data["rainbow_threshold"]),
        rainbow_scale=float(data["rainbow_scale"]),
        ice_probability=float(data.get("ice_probability", 0.15))
    )


def _validate_config(config: GameConfig) -> None:
    """Validate configuration consistency."""
    gen = config.generation
    board = config.board

    if gen.base_columns < 2:
        raise ValueError(f"base_columns must be at least 2, got {gen.base_columns}")

    # Generated levels must fit on the live board
    if gen.max_rows > board.rows:
        raise ValueError(
            f"generation.max_rows ({gen.max_rows}) exceeds board.rows ({board.rows})"
        )

    if not 1 <= gen.min_colors <= gen.max_colors:
        raise ValueError(
            f"Color bounds must satisfy 1 <= min_colors ({gen.min_colors}) "
            f"<= max_colors ({gen.max_colors})"
        )

    if gen.max_colors > config.num_colors:
        raise ValueError(
            f"max_colors ({gen.max_colors}) exceeds palette size ({config.num_colors})"
        )

    if not gen.patterns:
        raise ValueError("At least one generation pattern is required")

    # The grid must fit between the walls
    grid_width = gen.base_columns * board.bubble_diameter
    if grid_width > board.width:
        raise ValueError(
            f"{gen.base_columns} columns of diameter {board.bubble_diameter} "
            f"do not fit a board {board.width} wide"
        )

    if not 0 < config.shot.max_angle < 1.5707963267948966:
        raise ValueError(f"shot.max_angle must be in (0, pi/2), got {config.shot.max_angle}")

    if config.shot.max_step_px <= 0:
        raise ValueError("shot.max_step_px must be positive")

    if not 0 < config.shot.timeout_ms < float("inf"):
        raise ValueError(f"shot.timeout_ms must be positive and finite, got {config.shot.timeout_ms}")

    # Shots are ticked until they resolve, so a tick must advance time
    if not 0 < config.observation.tick_ms < float("inf"):
        raise ValueError(f"observation.tick_ms must be positive and finite, got {config.observation.tick_ms}")

    if config.scoring.min_cluster_size < 1:
        raise ValueError("scoring.min_cluster_size must be positive")


def load_config(config_path: Optional[str] = None) -> GameConfig:
    """
    Load and validate game configuration from YAML.

    Args:
        config_path: Path to game_config.yaml. If None, uses default location.

    Returns:
        Validated GameConfig instance.

    Raises:
        FileNotFoundError: If config file doesn't exist.
        ValueError: If config validation fails.
    """
    if config_path is None:
        config_path = os.path.join(
            os.path.dirname(os.path.dirname(__file__)),
            "game_config.yaml"
        )

    config_path = Path(config_path)
    if not config_path.exists():
        raise FileNotFoundError(f"Config file not found: {config_path}")

    with open(config_path, "r") as f:
        raw = yaml.safe_load(f)

    board_data = raw["board"]
    board = BoardConfig(
        width=int(board_data["width"]),
        height=int(board_data["height"]),
        rows=int(board_data["rows"]),
        bubble_radius=float(board_data["bubble_radius"]),
        shooter_x=float(board_data.get("shooter_x", int(board_data["width"]) / 2)),
        shooter_y=float(board_data["shooter_y"])
    )

    gen_data = raw["generation"]
    generation = GenerationConfig(
        seed_offset=int(gen_data["seed_offset"]),
        difficulty_divisor=float(gen_data["difficulty_divisor"]),
        base_rows=int(gen_data["base_rows"]),
        row_span=int(gen_data["row_span"]),
        max_rows=int(gen_data["max_rows"]),
        base_columns=int(gen_data["base_columns"]),
        min_colors=int(gen_data["min_colors"]),
        max_colors=int(gen_data["max_colors"]),
        color_span=int(gen_data["color_span"]),
        noise_probability=float(gen_data.get("noise_probability", 0.08)),
        hole_probability={
            str(k): float(v) for k, v in gen_data.get("hole_probability", {}).items()
        },
        patterns=tuple(str(p) for p in gen_data["patterns"]),
        specials=_parse_specials(gen_data["specials"])
    )

    shot_data = raw["shot"]
    shot = ShotConfig(
        speed=float(shot_data["speed"]),
        max_angle=float(shot_data["max_angle"]),
        collision_distance=float(shot_data["collision_distance"]),
        stall_speed=float(shot_data.get("stall_speed", 1.0)),
        timeout_ms=float(shot_data["timeout_ms"]),
        max_step_px=float(shot_data.get("max_step_px", 10.0)),
        shooter_seed_offset=int(shot_data.get("shooter_seed_offset", 54321)),
        preview_bounces=int(shot_data.get("preview_bounces", 2))
    )

    scoring_data = raw["scoring"]
    scoring = ScoringConfig(
        min_cluster_size=int(scoring_data.get("min_cluster_size", 3)),
        pop_points=int(scoring_data["pop_points"]),
        drop_points=int(scoring_data["drop_points"])
    )

    obs_data = raw.get("observation", {})
    observation = ObservationConfig(
        max_shots=int(obs_data.get("max_shots", 500)),
        tick_ms=float(obs_data.get("tick_ms", 16.0))
    )

    config = GameConfig(
        board=board,
        generation=generation,
        palette=_parse_palette(raw["palette"]),
        shot=shot,
        scoring=scoring,
        observation=observation
    )

    _validate_config(config)
    return config


# Module-level singleton for convenience
_cached_config: Optional[GameConfig] = None


def get_config() -> GameConfig:
    """Get the cached game configuration, loading if necessary."""
    global _cached_config
    if _cached_config is None:
        _cached_config = load_config()
    return _cached_config


def reload_config(config_path: Optional[str] = None) -> GameConfig:
    """Reload the configuration (useful for testing)."""
    global _cached_config
    _cached_config = load_config(config_path)
    return _cached_config
