"""Colormaps, palette presets, enumerations and colorbar images."""
from .colormap import PRESETS_2D, ColorMap, ColorMap2D
from .image import colorbar_image
from .presets import PRESETS, PresetRegistry
from .types import BlendMode, CorrectionMethod, LayerKind, OrientationType, StatType

__all__ = [
    'ColorMap',
    'ColorMap2D',
    'PRESETS_2D',
    'PRESETS',
    'PresetRegistry',
    'colorbar_image',
    'BlendMode',
    'CorrectionMethod',
    'LayerKind',
    'OrientationType',
    'StatType',
]
