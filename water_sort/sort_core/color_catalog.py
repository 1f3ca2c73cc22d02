"""
Color Catalog
=============

Provides convenient access to liquid color definitions loaded from config.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Tuple, Optional, Union

from water_sort.sort_core.config_loader import (
    GameConfig,
    ColorConfig,
    ConfigurationError,
    get_config
)


@dataclass(frozen=True)
class LiquidColor:
    """
    Runtime representation of a liquid color.

    Wraps ColorConfig; units in containers store only the integer id.
    """
    config: ColorConfig

    @property
    def id(self) -> int:
        return self.config.id

    @property
    def name(self) -> str:
        return self.config.name

    @property
    def rgb(self) -> Tuple[int, int, int]:
        return self.config.rgb

    @property
    def hex(self) -> str:
        """Color as a #rrggbb string."""
        return "#{:02x}{:02x}{:02x}".format(*self.rgb)

    def __repr__(self) -> str:
        return f"LiquidColor({self.id}: {self.name})"


class ColorCatalog:
    """
    Collection of all liquid colors in the palette.

    Color ids beyond the palette wrap around, so a level may request more
    colors than the palette defines.
    """

    def __init__(self, config: Optional[GameConfig] = None):
        """
        Initialize catalog from game config.

        Args:
            config: GameConfig instance. If None, loads from default location.
        """
        if config is None:
            config = get_config()

        self._config = config
        self._colors: Tuple[LiquidColor, ...] = tuple(
            LiquidColor(color_config) for color_config in config.palette
        )

    def __len__(self) -> int:
        """Number of distinct palette colors."""
        return len(self._colors)

    def __getitem__(self, color_id: int) -> LiquidColor:
        """Get color by ID, wrapping around the palette."""
        if color_id < 0:
            raise IndexError(f"Color ID {color_id} must be non-negative")
        return self._colors[color_id % len(self._colors)]

    def __iter__(self):
        """Iterate over palette colors."""
        return iter(self._colors)

    def name_of(self, color_id: Optional[int]) -> str:
        """Display name for a color id, or '-' for no color."""
        if color_id is None:
            return "-"
        return self[color_id].name

    def get_by_name(self, name: str) -> Optional[LiquidColor]:
        """Get color by name (case-insensitive)."""
        name_lower = name.lower()
        for color in self._colors:
            if color.name.lower() == name_lower:
                return color
        return None

    def resolve(self, value: Union[int, str]) -> int:
        """
        Resolve authored color data to a color id.

        Args:
            value: Color id or palette color name.

        Returns:
            Integer color id.

        Raises:
            ConfigurationError: If the name is unknown or the id is negative.
        """
        if isinstance(value, bool):
            raise ConfigurationError(f"Invalid color value: {value!r}")
        if isinstance(value, int):
            if value < 0:
                raise ConfigurationError(f"Color id must be non-negative, got {value}")
            return value
        color = self.get_by_name(str(value))
        if color is None:
            raise ConfigurationError(f"Unknown color name: {value!r}")
        return color.id
