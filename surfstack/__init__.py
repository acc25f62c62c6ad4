"""SurfStack: layered per-vertex coloring and statistics for brain surface meshes.

SurfStack turns scalar maps on a triangle mesh into per-vertex RGBA colors
ready for any renderer. It includes:

- **Colormaps**: value and two-variable colormaps with display ranges and
  hide-zone thresholds, plus a registry of named palettes
- **Layers**: base color, precomputed RGBA, scalar data, two-variable data,
  parcellation labels, per-parcel values, curvature shading, ROI outlines
  and statistical maps
- **Compositing**: a layer stack blending visible layers with ``normal``,
  ``additive``, ``multiply`` or ``screen`` arithmetic
- **Statistics**: FDR and Bonferroni corrections, mesh cluster thresholding,
  p-to-z and t-to-z conversions

Composite a thresholded statistic over a gray surface::

    from surfstack import LayerStack, StatisticalMapLayer

    stack = LayerStack(base_color=0xcccccc)
    tmap = StatisticalMapLayer(
        'tmap', t_values, colormap='hot', value_range=(2, 6),
        threshold=(-2, 2), p_values=p_values, stat_type='t',
    )
    tmap.apply_fdr(0.05)
    stack.add_layer(tmap)
    rgba = stack.composite(vertex_count)   # flat float32, 4 per vertex

Keep only clusters of at least 20 vertices::

    tmap.set_mesh_adjacency(faces, vertex_count)
    tmap.apply_cluster_threshold(3.1, min_cluster_size=20)
"""

from ._config import sys_info  # noqa: F401
from ._version import __version__  # noqa: F401
from .errors import InvalidInputError, InvalidParameterError, MissingPrerequisiteError
from .geometry import MeshAdjacency, build_vertex_adjacency
from .layers import (
    BaseLayer,
    CurvatureLayer,
    DataLayer,
    LabelLayer,
    LayerStack,
    OutlineLayer,
    ParcelValueLayer,
    RGBALayer,
    StatisticalMapLayer,
    TwoDataLayer,
    blend_into,
    layer_from_config,
)
from .utils.colormap import ColorMap, ColorMap2D
from .utils.types import BlendMode, CorrectionMethod, LayerKind, StatType

# Export list
__all__ = [
    "__version__",
    "sys_info",
    "InvalidInputError",
    "InvalidParameterError",
    "MissingPrerequisiteError",
    "MeshAdjacency",
    "build_vertex_adjacency",
    "ColorMap",
    "ColorMap2D",
    "BaseLayer",
    "RGBALayer",
    "DataLayer",
    "TwoDataLayer",
    "LabelLayer",
    "OutlineLayer",
    "CurvatureLayer",
    "ParcelValueLayer",
    "StatisticalMapLayer",
    "LayerStack",
    "blend_into",
    "layer_from_config",
    "BlendMode",
    "CorrectionMethod",
    "LayerKind",
    "StatType",
]
