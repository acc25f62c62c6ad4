"""Curvature underlay shading sulci and gyri in gray."""

import logging

import numpy as np

from ..geometry.inputs import resolve_values
from ..utils.types import LayerKind
from .base import Layer, clamp_unit

# Module logger
logger = logging.getLogger(__name__)

MIN_SMOOTHNESS = 0.01


def curvature_gray(curvature, brightness=0.5, contrast=0.5, smoothness=1.0):
    """Map curvature values to gray levels.

    ``gray = clip(clip(c / smoothness, -0.5, 0.5) * contrast + brightness, 0, 1)``

    Non-finite curvature is treated as flat (0).

    Parameters
    ----------
    curvature : array_like
        Per-vertex curvature.
    brightness : float, optional
        Gray level of flat regions. Default 0.5.
    contrast : float, optional
        How strongly curvature shifts the gray level. Default 0.5.
    smoothness : float, optional
        Curvature scale; larger values flatten the shading. Default 1.

    Returns
    -------
    numpy.ndarray
        float32 gray levels in [0, 1].
    """
    c = np.nan_to_num(np.asarray(curvature, dtype=np.float64), nan=0.0, posinf=0.0, neginf=0.0)
    scaled = np.clip(c / smoothness, -0.5, 0.5)
    return np.clip(scaled * contrast + brightness, 0.0, 1.0).astype(np.float32)


class CurvatureLayer(Layer):
    """Gray curvature shading drawn below the base layer.

    Vertices beyond the curvature array are shaded as flat. Alpha equals the
    layer opacity.

    Parameters
    ----------
    layer_id : str
    curvature : array_like
        Per-vertex curvature.
    brightness, contrast : float, optional
        Clamped to [0, 1]. Defaults 0.5.
    smoothness : float, optional
        Clamped to at least 0.01. Default 1.
    **kwargs
        Forwarded to :class:`~surfstack.layers.base.Layer`.
    """

    kind = LayerKind.CURVATURE
    default_order = -2
    update_keys = Layer.update_keys | {"curvature", "brightness", "contrast", "smoothness"}

    def __init__(self, layer_id, curvature, brightness=0.5, contrast=0.5, smoothness=1.0,
                 **kwargs):
        super().__init__(layer_id, **kwargs)
        self._curvature = resolve_values(curvature, name="curvature")
        self.brightness = clamp_unit(brightness, "brightness")
        self.contrast = clamp_unit(contrast, "contrast")
        self.smoothness = max(MIN_SMOOTHNESS, float(smoothness))
        logger.debug("CurvatureLayer %s: %d vertices", self.id, self._curvature.shape[0])

    @property
    def curvature(self):
        return self._curvature

    def _stage(self, changes):
        staged = super()._stage(changes)
        if "curvature" in changes:
            staged["_curvature"] = resolve_values(changes["curvature"], name="curvature")
        if "brightness" in changes:
            staged["brightness"] = clamp_unit(changes["brightness"], "brightness")
        if "contrast" in changes:
            staged["contrast"] = clamp_unit(changes["contrast"], "contrast")
        if "smoothness" in changes:
            staged["smoothness"] = max(MIN_SMOOTHNESS, float(changes["smoothness"]))
        return staged

    def get_rgba_data(self, vertex_count):
        rgba = self._scratch(vertex_count).reshape(-1, 4)
        curv = np.zeros(rgba.shape[0], dtype=np.float32)
        n = min(rgba.shape[0], self._curvature.shape[0])
        curv[:n] = self._curvature[:n]
        gray = curvature_gray(curv, self.brightness, self.contrast, self.smoothness)
        rgba[:, 0] = gray
        rgba[:, 1] = gray
        rgba[:, 2] = gray
        rgba[:, 3] = self.opacity
        return self._buffer

    def to_state(self):
        state = super().to_state()
        state.update(brightness=self.brightness, contrast=self.contrast, smoothness=self.smoothness)
        return state
