"""Scalar data layers colored through a colormap."""

import logging

import numpy as np

from ..errors import InvalidInputError
from ..geometry.inputs import resolve_indices, resolve_values
from ..utils.colormap import ColorMap, ColorMap2D, check_pair
from ..utils.presets import PRESETS
from ..utils.types import LayerKind
from .base import Layer

# Module logger
logger = logging.getLogger(__name__)

#: Preset used when a requested preset name is unknown.
FALLBACK_PRESET = "jet"


def resolve_colormap(colormap, registry=None, layer_id=None):
    """Turn a colormap specification into a :class:`ColorMap`.

    Parameters
    ----------
    colormap : ColorMap, str, or sequence
        An existing colormap (shared, not copied), a preset name, or a list
        of colors.
    registry : PresetRegistry, optional
        Registry for preset names. Defaults to
        :data:`~surfstack.utils.presets.PRESETS`.
    layer_id : str, optional
        Used in the fallback warning.

    Returns
    -------
    ColorMap
        Unknown preset names fall back to ``'jet'`` with a warning.

    Raises
    ------
    InvalidInputError
        If ``colormap`` is ``None`` or an invalid color list.
    """
    registry = PRESETS if registry is None else registry
    if isinstance(colormap, ColorMap):
        return colormap
    if colormap is None:
        raise InvalidInputError("A colormap is required.")
    if isinstance(colormap, str):
        if colormap not in registry:
            logger.warning(
                "Layer %s: preset %r unavailable, falling back to %r",
                layer_id, colormap, FALLBACK_PRESET,
            )
            colormap = FALLBACK_PRESET
        return ColorMap.from_preset(colormap, registry=registry)
    return ColorMap(colormap)


class DataLayer(Layer):
    """Scalar values mapped to colors through a :class:`ColorMap`.

    Entry ``i`` colors vertex ``indices[i]``. Entries whose destination is
    outside ``[0, vertex_count)`` or whose value is not finite are left
    transparent. The layer pushes its range and threshold into its colormap;
    a colormap shared between layers therefore follows the last layer that
    set them.

    Parameters
    ----------
    layer_id : str
    data : array_like
        Scalar values.
    indices : array_like, optional
        Destination vertex for every value; identity when omitted.
    colormap : ColorMap, str or sequence, optional
        Default ``'jet'``.
    value_range : tuple of float, optional
        Display range. Defaults to the colormap's range when a
        :class:`ColorMap` is passed, else ``(0, 1)``.
    threshold : tuple of float, optional
        Hide zone. Same default rule as ``value_range`` with ``(0, 0)``.
    registry : PresetRegistry, optional
        Registry used to resolve preset names.
    **kwargs
        Forwarded to :class:`~surfstack.layers.base.Layer`.
    """

    kind = LayerKind.DATA
    update_keys = Layer.update_keys | {"data", "indices", "colormap", "value_range", "threshold"}
    default_colormap = "jet"

    def __init__(self, layer_id, data, indices=None, colormap=None, value_range=None,
                 threshold=None, registry=None, **kwargs):
        super().__init__(layer_id, **kwargs)
        self._registry = PRESETS if registry is None else registry
        self._data = resolve_values(data)
        self._indices = resolve_indices(indices, n_values=self._data.shape[0])
        cmap = resolve_colormap(
            self.default_colormap if colormap is None else colormap, self._registry, self.id
        )
        shared = isinstance(colormap, ColorMap)
        if value_range is None:
            value_range = cmap.value_range if shared else (0.0, 1.0)
        if threshold is None:
            threshold = cmap.threshold if shared else (0.0, 0.0)
        self._range = check_pair(value_range, "range")
        self._threshold = check_pair(threshold, "threshold")
        self._colormap = cmap
        self._sync_colormap()
        self._revision = 0
        self._cache_key = None
        self._rendered_cmap_revision = None
        logger.debug("DataLayer %s: %d values", self.id, self._data.shape[0])

    # ------------------------------------------------------------------
    # accessors
    # ------------------------------------------------------------------

    @property
    def data(self):
        return self._data

    @property
    def indices(self):
        return self._indices

    @property
    def colormap(self):
        return self._colormap

    @property
    def colormap_name(self):
        return self._colormap.name

    @property
    def value_range(self):
        return self._range

    @property
    def threshold(self):
        return self._threshold

    # ------------------------------------------------------------------
    # setters
    # ------------------------------------------------------------------

    def set_data(self, data, indices=None):
        """Replace the values and their destination vertices."""
        self.update(data=data, indices=indices)

    def set_colormap(self, colormap):
        self.update(colormap=colormap)

    def set_range(self, value_range):
        self.update(value_range=value_range)

    def set_threshold(self, threshold):
        self.update(threshold=threshold)

    def _stage(self, changes):
        staged = super()._stage(changes)
        if "data" in changes:
            data = resolve_values(changes["data"])
            staged["_data"] = data
            staged["_indices"] = resolve_indices(changes.get("indices"), n_values=data.shape[0])
        elif "indices" in changes:
            staged["_indices"] = resolve_indices(changes["indices"], n_values=self._data.shape[0])
        if "colormap" in changes:
            staged["_colormap"] = resolve_colormap(changes["colormap"], self._registry, self.id)
        if "value_range" in changes:
            staged["_range"] = check_pair(changes["value_range"], "range")
        if "threshold" in changes:
            staged["_threshold"] = check_pair(changes["threshold"], "threshold")
        return staged

    def _commit(self, staged):
        super()._commit(staged)
        if staged.keys() & {"_colormap", "_range", "_threshold"}:
            self._sync_colormap()
        self._revision += 1

    def _sync_colormap(self):
        self._colormap.set_range(self._range)
        self._colormap.set_threshold(self._threshold)

    # ------------------------------------------------------------------
    # rendering
    # ------------------------------------------------------------------

    def is_stale(self):
        return self.needs_update or self._rendered_cmap_revision != self._colormap.revision

    def mark_clean(self):
        super().mark_clean()
        self._rendered_cmap_revision = self._colormap.revision

    def _render_key(self, vertex_count):
        return (
            int(vertex_count), self._revision, id(self._colormap),
            self._colormap.revision, self.opacity,
        )

    def _gate(self, keep, indices, values):
        """Narrow the set of drawn entries; ``keep`` is a boolean mask over entries."""
        return keep

    def _lookup(self, values):
        """Return ``(n, 4)`` colors for the given finite values."""
        return self._colormap.get_colors(values)

    def get_rgba_data(self, vertex_count):
        """Return the per-vertex RGBA buffer.

        The alpha channel is the colormap alpha scaled by the layer opacity;
        hidden values stay transparent. The buffer is reused across calls
        and only recomputed when the data, colormap, range, threshold or
        opacity changed.
        """
        key = self._render_key(vertex_count)
        if self._buffer is not None and key == self._cache_key:
            return self._buffer
        rgba = self._scratch(vertex_count).reshape(-1, 4)
        n = min(self._indices.shape[0], self._data.shape[0])
        indices = self._indices[:n]
        values = self._data[:n]
        keep = (indices >= 0) & (indices < vertex_count) & np.isfinite(values)
        keep = self._gate(keep, indices, values)
        selected = np.flatnonzero(keep)
        if selected.size:
            colors = self._lookup(values[selected])
            colors[:, 3] *= self.opacity
            rgba[indices[selected]] = colors
        self._cache_key = key
        self._rendered_cmap_revision = self._colormap.revision
        logger.debug(
            "%s %s: %d of %d entries visible",
            type(self).__name__, self.id, int(np.count_nonzero(rgba[:, 3] > 0)), n,
        )
        return self._buffer

    def to_state(self):
        state = super().to_state()
        state.update(
            colormap=self._colormap.name,
            value_range=list(self._range),
            threshold=list(self._threshold),
        )
        return state

    def dispose(self):
        super().dispose()
        self._cache_key = None


class TwoDataLayer(Layer):
    """Two scalar fields mapped through a :class:`ColorMap2D`.

    Parameters
    ----------
    layer_id : str
    data_x, data_y : array_like
        Scalar fields of equal length.
    indices : array_like, optional
        Destination vertex for every pair; identity when omitted.
    colormap : ColorMap2D or str, optional
        2-D colormap or preset name. Default ``'confidence'``.
    range_x, range_y, threshold_x, threshold_y : tuple of float, optional
        Per-axis display ranges and hide zones.
    **kwargs
        Forwarded to :class:`~surfstack.layers.base.Layer`.
    """

    kind = LayerKind.TWO_DATA
    update_keys = Layer.update_keys | {
        "data_x", "data_y", "indices", "colormap",
        "range_x", "range_y", "threshold_x", "threshold_y",
    }
    _axis_settings = ("range_x", "range_y", "threshold_x", "threshold_y")

    def __init__(self, layer_id, data_x, data_y, indices=None, colormap="confidence",
                 range_x=None, range_y=None, threshold_x=None, threshold_y=None, **kwargs):
        super().__init__(layer_id, **kwargs)
        self._data_x, self._data_y = self._resolve_pair(data_x, data_y)
        self._indices = resolve_indices(indices, n_values=self._data_x.shape[0])
        self._colormap = self._resolve_colormap(colormap)
        self._settings = {
            "range_x": (0.0, 1.0) if range_x is None else check_pair(range_x, "range_x"),
            "range_y": (0.0, 1.0) if range_y is None else check_pair(range_y, "range_y"),
            "threshold_x": (0.0, 0.0) if threshold_x is None else check_pair(threshold_x, "threshold_x"),
            "threshold_y": (0.0, 0.0) if threshold_y is None else check_pair(threshold_y, "threshold_y"),
        }
        self._sync_colormap()

    @staticmethod
    def _resolve_pair(data_x, data_y):
        x = resolve_values(data_x, name="data_x")
        y = resolve_values(data_y, name="data_y", n_values=x.shape[0])
        return x, y

    @staticmethod
    def _resolve_colormap(colormap):
        if isinstance(colormap, ColorMap2D):
            return colormap
        if isinstance(colormap, str):
            return ColorMap2D.from_preset(colormap)
        raise InvalidInputError(f"Invalid 2D colormap: {colormap!r}")

    def _sync_colormap(self):
        cmap = self._colormap
        cmap.set_range_x(self._settings["range_x"])
        cmap.set_range_y(self._settings["range_y"])
        cmap.set_threshold_x(self._settings["threshold_x"])
        cmap.set_threshold_y(self._settings["threshold_y"])

    @property
    def colormap(self):
        return self._colormap

    @property
    def data_x(self):
        return self._data_x

    @property
    def data_y(self):
        return self._data_y

    def _stage(self, changes):
        staged = super()._stage(changes)
        if "data_x" in changes or "data_y" in changes:
            x, y = self._resolve_pair(
                changes.get("data_x", self._data_x), changes.get("data_y", self._data_y)
            )
            staged["_data_x"] = x
            staged["_data_y"] = y
            staged["_indices"] = resolve_indices(changes.get("indices"), n_values=x.shape[0])
        elif "indices" in changes:
            staged["_indices"] = resolve_indices(changes["indices"], n_values=self._data_x.shape[0])
        if "colormap" in changes:
            staged["_colormap"] = self._resolve_colormap(changes["colormap"])
        settings = {k: check_pair(changes[k], k) for k in self._axis_settings if k in changes}
        if settings:
            staged["_settings"] = {**self._settings, **settings}
        return staged

    def _commit(self, staged):
        super()._commit(staged)
        if "_colormap" in staged or "_settings" in staged:
            self._sync_colormap()

    def get_rgba_data(self, vertex_count):
        rgba = self._scratch(vertex_count).reshape(-1, 4)
        n = min(self._indices.shape[0], self._data_x.shape[0])
        indices = self._indices[:n]
        keep = np.flatnonzero((indices >= 0) & (indices < vertex_count))
        if keep.size:
            colors = self._colormap.get_colors(self._data_x[:n][keep], self._data_y[:n][keep])
            colors[:, 3] *= self.opacity
            rgba[indices[keep]] = colors
        return self._buffer

    def to_state(self):
        state = super().to_state()
        state["colormap"] = self._colormap.name
        state.update({k: list(v) for k, v in self._settings.items()})
        return state
