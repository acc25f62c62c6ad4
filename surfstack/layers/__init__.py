"""Surface layers and the layer stack.

Architecture
------------
**Layer contract** (:mod:`~surfstack.layers.base`): :class:`Layer` and the
constant-color :class:`BaseLayer` and :class:`RGBALayer`.

**Concrete layers**: :class:`DataLayer`, :class:`TwoDataLayer`
(:mod:`~surfstack.layers.data`), :class:`LabelLayer`, :class:`OutlineLayer`
(:mod:`~surfstack.layers.label`), :class:`CurvatureLayer`
(:mod:`~surfstack.layers.curvature`), :class:`ParcelValueLayer`
(:mod:`~surfstack.layers.parcel`) and :class:`StatisticalMapLayer`
(:mod:`~surfstack.layers.statistical`).

**Compositing** (:mod:`~surfstack.layers.stack`): :class:`LayerStack` and the
single fold step :func:`blend_into`.

:func:`layer_from_config` builds any layer from a plain dict.
"""
from .base import BaseLayer, Layer, RGBALayer
from .curvature import CurvatureLayer
from .data import DataLayer, TwoDataLayer
from .factory import layer_from_config
from .label import LabelLayer, OutlineLayer
from .parcel import ParcelValueLayer
from .stack import LayerStack, blend_into
from .statistical import DualThresholdConfig, StatisticalMapLayer, VertexStatInfo

__all__ = [
    'Layer',
    'BaseLayer',
    'RGBALayer',
    'DataLayer',
    'TwoDataLayer',
    'LabelLayer',
    'OutlineLayer',
    'CurvatureLayer',
    'ParcelValueLayer',
    'StatisticalMapLayer',
    'DualThresholdConfig',
    'VertexStatInfo',
    'LayerStack',
    'blend_into',
    'layer_from_config',
]
