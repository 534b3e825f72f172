"""
Level Preview
=============

Prints generated levels as text, exports them as JSON, and can autoplay a
level with random legal shots to sanity-check the ladder.

Usage:
    python -m tools.level_preview 1 2 3
    python -m tools.level_preview 250 --json level250.json
    python -m tools.level_preview 10 --autoplay --shots 200 --seed 7
    python -m tools.level_preview 10 --autoplay --record replays/
"""

from __future__ import annotations

import argparse
import json
import logging
import sys
from typing import List, Optional

import numpy as np

from bubble_shooter.bubble_core.config_loader import GameConfig, load_config
from bubble_shooter.bubble_core.env_gym import BubbleEnv
from bubble_shooter.bubble_core.level_generator import LevelData, generate_level
from bubble_shooter.bubble_core.palette import SPECIAL_NONE, get_palette
from bubble_shooter.bubble_core.replay_recorder import ReplayRecorder, generate_replay_filename

# Marker per special kind; plain bubbles show their color's initial
SPECIAL_MARKERS = {
    "locked": "#",
    "bomb": "*",
    "rainbow": "@",
    "ice": "~",
}


def render_level(level: LevelData, config: GameConfig) -> str:
    """ASCII rendering with odd rows indented by half a cell."""
    palette = get_palette(config)
    lines = [
        f"Level {level.meta.level_number}: pattern={level.meta.pattern_name} "
        f"difficulty={level.meta.difficulty:.3f} rows={level.rows} "
        f"bubbles={level.cell_count} colors={len(level.colors)}"
    ]
    for row in range(level.rows):
        cells = []
        for column in range(level.columns_for_row(row)):
            cell = level.cell_at(row, column)
            if cell is None:
                cells.append(".")
            elif cell.special != SPECIAL_NONE:
                cells.append(SPECIAL_MARKERS.get(cell.special, "?"))
            else:
                cells.append(palette[cell.color].name[0].upper())
        indent = " " if row % 2 == 1 else ""
        lines.append(indent + " ".join(cells))
    return "\n".join(lines)


def autoplay(
    level: int,
    config: GameConfig,
    max_shots: int,
    seed: int,
    record_dir: Optional[str] = None
) -> dict:
    """
    Play a level with uniformly random angles inside the legal arc.

    Returns:
        Dict with score, shots and whether the level was cleared.
    """
    env = BubbleEnv(level=level, config=config)
    runner = ReplayRecorder(env, agent_name="random") if record_dir else env
    rng = np.random.default_rng(seed)
    limit = config.shot.max_angle * 0.98

    obs, info = runner.reset(seed=seed)
    shots = 0
    terminated = truncated = False
    while shots < max_shots and not (terminated or truncated):
        obs, reward, terminated, truncated, info = runner.step(rng.uniform(-limit, limit))
        shots += 1

    if record_dir:
        path = runner.save(generate_replay_filename("random", level=level, directory=record_dir))
        print(f"Replay saved to {path}")

    return {
        "level": level,
        "score": info["score"],
        "shots": shots,
        "cleared": info["cleared"],
        "remaining": info["occupied"],
    }


def main(argv: Optional[List[str]] = None) -> int:
    parser = argparse.ArgumentParser(description="Preview generated bubble-shooter levels")
    parser.add_argument("levels", type=int, nargs="+", help="Level numbers to generate")
    parser.add_argument("--config", type=str, default=None, help="Path to game_config.yaml")
    parser.add_argument("--json", type=str, default=None,
                        help="Write the generated levels to this JSON file")
    parser.add_argument("--autoplay", action="store_true",
                        help="Play each level with random shots")
    parser.add_argument("--shots", type=int, default=300, help="Shot limit for autoplay")
    parser.add_argument("--seed", type=int, default=0, help="Seed for autoplay angles")
    parser.add_argument("--record", type=str, default=None,
                        help="Directory to save autoplay replays in")
    parser.add_argument("--verbose", action="store_true", help="Show engine log output")

    args = parser.parse_args(argv)

    logging.basicConfig(
        level=logging.DEBUG if args.verbose else logging.WARNING,
        format="%(levelname)s %(name)s: %(message)s"
    )

    try:
        config = load_config(args.config)
    except (FileNotFoundError, ValueError) as e:
        print(f"Error loading config: {e}")
        return 1

    exported = []
    for number in args.levels:
        try:
            level = generate_level(number, config)
        except ValueError as e:
            print(f"Skipping level {number}: {e}")
            continue

        print(render_level(level, config))
        exported.append(level.to_dict())

        if args.autoplay:
            result = autoplay(number, config, args.shots, args.seed, args.record)
            print(
                f"  autoplay: score={result['score']} shots={result['shots']} "
                f"cleared={result['cleared']} remaining={result['remaining']}"
            )
        print()

    if args.json:
        with open(args.json, "w") as f:
            json.dump(exported, f, indent=2)
        print(f"Levels saved to {args.json}")

    return 0


if __name__ == "__main__":
    sys.exit(main())
