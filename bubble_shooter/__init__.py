"""
Bubble Shooter
==============

Core puzzle engine of the bubble-shooter game: seeded level generation and
the shot, match and collapse rules. Rendering and input belong to the host.

All tunable parameters are in game_config.yaml.
"""

import logging

# Package logger. Handlers are left to the host application.
logger = logging.getLogger("bubble_shooter")
logger.addHandler(logging.NullHandler())

__all__ = ["logger"]
