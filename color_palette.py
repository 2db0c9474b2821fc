"""
Color palette for map layers

Every layer id gets a stable, visually distinct color from a fixed palette.
Assignments live in a ColorRegistry owned by the caller; two map views in one
process can each hold their own registry.
"""
import logging
import threading
from dataclasses import dataclass
from typing import Dict, List, Optional

from exceptions import ConfigurationError

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ColorInfo:
    """A palette entry."""

    color: str
    name: str
    description: str


# Predefined color palette for map layers
LAYER_COLORS: List[ColorInfo] = [
    ColorInfo('#FF6B35', 'Orange', 'WIC Locations'),
    ColorInfo('#088', 'Teal', 'Ahupuaa Boundaries'),
    ColorInfo('#800080', 'Purple', 'School Complex Areas'),
    ColorInfo('#008000', 'Green', 'School Districts'),
    ColorInfo('#6B46C1', 'Violet', 'GIS Layer Features'),
    ColorInfo('#007cba', 'Blue', 'Drawn Features'),
    ColorInfo('#DC2626', 'Red', 'Emergency Services'),
    ColorInfo('#F59E0B', 'Amber', 'Transportation'),
    ColorInfo('#10B981', 'Emerald', 'Parks & Recreation'),
    ColorInfo('#8B5CF6', 'Indigo', 'Utilities'),
    ColorInfo('#EF4444', 'Rose', 'Healthcare'),
    ColorInfo('#06B6D4', 'Cyan', 'Water Features'),
    ColorInfo('#84CC16', 'Lime', 'Agriculture'),
    ColorInfo('#F97316', 'Orange Red', 'Commercial'),
    ColorInfo('#EC4899', 'Pink', 'Residential'),
    ColorInfo('#6366F1', 'Blue Violet', 'Government'),
    ColorInfo('#14B8A6', 'Teal Green', 'Environmental'),
    ColorInfo('#FACC15', 'Yellow', 'Infrastructure'),
    ColorInfo('#8B5A2B', 'Brown', 'Historical'),
    ColorInfo('#6B7280', 'Gray', 'Other Features'),
]


def lookup_by_color(color: str, palette: Optional[List[ColorInfo]] = None) -> ColorInfo:
    """
    Get color information by color code.

    Args:
        color: The color code (e.g. '#FF6B35')
        palette: Palette to search, LAYER_COLORS by default

    Returns:
        Palette entry, or a synthesized 'Custom' entry for unknown colors
    """
    for info in palette or LAYER_COLORS:
        if info.color == color:
            return info
    return ColorInfo(color=color, name='Custom', description='Custom color')


class ColorRegistry:
    """
    Layer id -> palette color assignments.

    Once a layer id has a color it keeps it until reset(). When every
    palette color is taken, assignment wraps around the palette, so two
    layers may share a color.
    """

    def __init__(self, palette: Optional[List[ColorInfo]] = None):
        self.palette = list(palette) if palette is not None else list(LAYER_COLORS)
        if not self.palette:
            raise ConfigurationError("Color palette must not be empty")

        self._assigned: Dict[str, ColorInfo] = {}
        self._lock = threading.Lock()

    def assign_color(self, layer_id: str) -> ColorInfo:
        """
        Get the color for a layer, assigning one on first use.

        Args:
            layer_id: The layer identifier

        Returns:
            ColorInfo for the layer (identical on repeated calls)
        """
        with self._lock:
            existing = self._assigned.get(layer_id)
            if existing is not None:
                return existing

            taken = {info.color for info in self._assigned.values()}
            for info in self.palette:
                if info.color not in taken:
                    self._assigned[layer_id] = info
                    return info

            # Palette exhausted, cycle through it
            info = self.palette[len(self._assigned) % len(self.palette)]
            logger.warning(
                f"Color palette exhausted; layer {layer_id} shares {info.name} ({info.color})"
            )
            self._assigned[layer_id] = info
            return info

    def lookup_by_color(self, color: str) -> ColorInfo:
        return lookup_by_color(color, self.palette)

    def assigned_colors(self) -> Dict[str, str]:
        """Copy of the layer id -> color code mapping."""
        with self._lock:
            return {layer_id: info.color for layer_id, info in self._assigned.items()}

    def is_color_available(self, color: str) -> bool:
        with self._lock:
            return all(info.color != color for info in self._assigned.values())

    def reset(self) -> None:
        """Clear all assignments."""
        with self._lock:
            self._assigned.clear()

    def __len__(self) -> int:
        return len(self._assigned)

    def __contains__(self, layer_id: str) -> bool:
        return layer_id in self._assigned
