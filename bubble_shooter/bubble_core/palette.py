"""
Palette
=======

Provides convenient access to bubble color definitions loaded from config,
and the typed texture key table hosts use to look up bubble sprites.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Dict, Iterable, Iterator, Optional, Tuple

from bubble_shooter.bubble_core.config_loader import GameConfig, PaletteEntry, get_config

# Special-cell kinds, in the priority order the generator rolls them
SPECIAL_NONE = "none"
SPECIAL_LOCKED = "locked"
SPECIAL_BOMB = "bomb"
SPECIAL_RAINBOW = "rainbow"
SPECIAL_ICE = "ice"

SPECIAL_KINDS: Tuple[str, ...] = (
    SPECIAL_NONE,
    SPECIAL_LOCKED,
    SPECIAL_BOMB,
    SPECIAL_RAINBOW,
    SPECIAL_ICE,
)


@dataclass
class BubbleColor:
    """Runtime representation of a palette entry."""
    entry: PaletteEntry

    @property
    def id(self) -> int:
        return self.entry.id

    @property
    def name(self) -> str:
        return self.entry.name

    @property
    def hex(self) -> str:
        return self.entry.hex

    @property
    def rgb(self) -> Tuple[int, int, int]:
        return self.entry.rgb

    def __repr__(self) -> str:
        return f"BubbleColor({self.id}: {self.name})"


@dataclass(frozen=True)
class TextureKey:
    """Identifies one bubble sprite: a color and a special modifier."""
    color_id: int
    special: str = SPECIAL_NONE

    @property
    def name(self) -> str:
        if self.special == SPECIAL_NONE:
            return f"bubble_{self.color_id}"
        return f"bubble_{self.color_id}_{self.special}"


class Palette:
    """
    The master palette of bubble colors.

    Provides indexed access and slicing to a level's color count.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize palette from game config.

        Args:
            config: GameConfig instance. If None, loads from default location.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._colors: Tuple[BubbleColor, ...] = tuple(
            BubbleColor(entry) for entry in config.palette
        )

    def __len__(self) -> int:
        return len(self._colors)

    def __getitem__(self, color_id: int) -> BubbleColor:
        """Get color by ID."""
        if 0 <= color_id < len(self._colors):
            return self._colors[color_id]
        raise IndexError(f"Color ID {color_id} out of range [0, {len(self._colors)})")

    def __iter__(self) -> Iterator[BubbleColor]:
        return iter(self._colors)

    @property
    def all_colors(self) -> Tuple[BubbleColor, ...]:
        return self._colors

    def first(self, count: int) -> Tuple[BubbleColor, ...]:
        """The first `count` colors in palette order."""
        return self._colors[:count]

    def get_by_name(self, name: str) -> Optional[BubbleColor]:
        """Get color by name (case-insensitive)."""
        name_lower = name.lower()
        for color in self._colors:
            if color.name.lower() == name_lower:
                return color
        return None


class TextureTable:
    """
    Texture keys for one level, resolved once when the level starts.

    Hosts map every (color, special) pair they may need to draw to a key up
    front instead of building string keys while rendering.
    """

    def __init__(self, color_ids: Iterable[int]):
        self._color_ids = tuple(color_ids)
        self._keys: Dict[Tuple[int, str], TextureKey] = {
            (color_id, special): TextureKey(color_id, special)
            for color_id in self._color_ids
            for special in SPECIAL_KINDS
        }

    def __len__(self) -> int:
        return len(self._keys)

    def __contains__(self, item: Tuple[int, str]) -> bool:
        return item in self._keys

    @property
    def color_ids(self) -> Tuple[int, ...]:
        return self._color_ids

    def key_for(self, color_id: int, special: str = SPECIAL_NONE) -> TextureKey:
        """
        Look up the texture key for a bubble.

        Raises:
            KeyError: If the color is not part of this level.
        """
        return self._keys[(color_id, special)]

    def keys(self) -> Tuple[TextureKey, ...]:
        return tuple(self._keys.values())


# Module-level singleton
_cached_palette: Optional[Palette] = None


def get_palette(config: Optional[GameConfig] = None) -> Palette:
    """
    Get the palette singleton.

    Args:
        config: Optional config to use. If None, uses cached or default config.

    Returns:
        Palette instance.
    """
    global _cached_palette
    if _cached_palette is None or config is not None:
        _cached_palette = Palette(config)
    return _cached_palette
