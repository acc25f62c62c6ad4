"""Categorical layers: parcellation labels and ROI outlines."""

import logging

import numpy as np

from ..errors import InvalidInputError
from ..geometry.inputs import resolve_color, resolve_faces
from ..utils.types import LayerKind
from .base import Layer

# Module logger
logger = logging.getLogger(__name__)


def resolve_labels(labels, name="labels"):
    """Resolve a per-vertex label array to 1-D int64."""
    if labels is None:
        raise InvalidInputError(f"{name} is required.")
    arr = np.asarray(labels)
    if arr.size == 0:
        return np.zeros(0, dtype=np.int64)
    if arr.ndim != 1:
        raise InvalidInputError(f"{name} must be one-dimensional, got shape {arr.shape}.")
    if not np.issubdtype(arr.dtype, np.integer):
        if not np.all(np.isfinite(arr)) or not np.all(np.equal(np.mod(arr, 1), 0)):
            raise InvalidInputError(f"{name} must contain integer label ids.")
    return arr.astype(np.int64)


def resolve_label_defs(label_defs):
    """Return ``(ids, colors)`` from label definitions.

    Parameters
    ----------
    label_defs : mapping or sequence
        Either ``{label_id: color}`` or a sequence of dicts with ``id`` and
        ``color`` keys (an optional ``name`` is ignored).

    Returns
    -------
    ids : numpy.ndarray
        Sorted int64 label ids.
    colors : numpy.ndarray
        float32 RGB colors of shape (K, 3), aligned with ``ids``.
    """
    if label_defs is None:
        raise InvalidInputError("label_defs is required.")
    if hasattr(label_defs, "items"):
        pairs = list(label_defs.items())
    else:
        pairs = []
        for entry in label_defs:
            try:
                pairs.append((entry["id"], entry["color"]))
            except (KeyError, TypeError) as exc:
                raise InvalidInputError(
                    f"Label definition needs 'id' and 'color': {entry!r}"
                ) from exc
    table = {}
    for label_id, color in pairs:
        table[int(label_id)] = resolve_color(color)
    ids = np.array(sorted(table), dtype=np.int64)
    colors = np.array([table[i] for i in ids.tolist()], dtype=np.float32).reshape(-1, 3)
    return ids, colors


class LabelLayer(Layer):
    """Categorical label id to solid color.

    Vertices whose label has no definition, and vertices beyond the label
    array, get ``default_color``. Alpha is 1; the stack applies opacity.

    Parameters
    ----------
    layer_id : str
    labels : array_like of int
        Label id per vertex.
    label_defs : mapping or sequence
        See :func:`resolve_label_defs`.
    default_color : int, str or sequence, optional
        Default ``0x999999``.
    **kwargs
        Forwarded to :class:`~surfstack.layers.base.Layer`.
    """

    kind = LayerKind.LABEL
    update_keys = Layer.update_keys | {"labels", "label_defs", "default_color"}

    def __init__(self, layer_id, labels, label_defs, default_color=0x999999, **kwargs):
        super().__init__(layer_id, **kwargs)
        self._labels = resolve_labels(labels)
        self._def_ids, self._def_colors = resolve_label_defs(label_defs)
        self.default_color = resolve_color(default_color)

    @property
    def labels(self):
        return self._labels

    def label_color(self, label_id):
        """Return the RGB color drawn for ``label_id``."""
        pos = np.searchsorted(self._def_ids, label_id)
        if pos < self._def_ids.shape[0] and self._def_ids[pos] == label_id:
            return self._def_colors[pos].copy()
        return self.default_color.copy()

    def _stage(self, changes):
        staged = super()._stage(changes)
        if "labels" in changes:
            staged["_labels"] = resolve_labels(changes["labels"])
        if "label_defs" in changes:
            staged["_def_ids"], staged["_def_colors"] = resolve_label_defs(changes["label_defs"])
        if "default_color" in changes:
            staged["default_color"] = resolve_color(changes["default_color"])
        return staged

    def get_rgba_data(self, vertex_count):
        rgba = self._scratch(vertex_count).reshape(-1, 4)
        rgba[:, :3] = self.default_color
        rgba[:, 3] = 1.0
        n = min(rgba.shape[0], self._labels.shape[0])
        if n and self._def_ids.size:
            labels = self._labels[:n]
            pos = np.clip(np.searchsorted(self._def_ids, labels), 0, self._def_ids.shape[0] - 1)
            known = self._def_ids[pos] == labels
            rgba[:n][known, :3] = self._def_colors[pos[known]]
        return self._buffer

    def to_state(self):
        state = super().to_state()
        state["default_color"] = [float(c) for c in self.default_color]
        state["label_defs"] = {
            int(i): [float(c) for c in color]
            for i, color in zip(self._def_ids.tolist(), self._def_colors)
        }
        return state


class OutlineLayer(Layer):
    """ROI boundary lines drawn by the host renderer.

    The layer takes no part in the color composite: :meth:`get_rgba_data`
    returns a zero buffer. :meth:`boundary_edges` and :meth:`boundary_faces`
    give the renderer the geometry to draw.

    Parameters
    ----------
    layer_id : str
    roi_labels : array_like of int
        ROI id per vertex.
    color : int, str or sequence, optional
        Line color. Default black.
    width : float, optional
        Line width. Default 1.5.
    halo : bool, optional
        Draw a halo under the line. Default False.
    halo_color : int, str or sequence, optional
        Default white.
    halo_width : float, optional
        Default 1.
    offset : float, optional
        Offset along the surface normal. Default 0.
    roi_subset : sequence of int, optional
        Only draw boundaries touching these ROI ids.
    **kwargs
        Forwarded to :class:`~surfstack.layers.base.Layer`.
    """

    kind = LayerKind.OUTLINE
    composites = False
    default_order = 10
    update_keys = Layer.update_keys | {
        "roi_labels", "color", "width", "halo", "halo_color", "halo_width", "offset", "roi_subset",
    }

    def __init__(self, layer_id, roi_labels, color=0x000000, width=1.5, halo=False,
                 halo_color=0xFFFFFF, halo_width=1.0, offset=0.0, roi_subset=None, **kwargs):
        super().__init__(layer_id, **kwargs)
        self._roi_labels = resolve_labels(roi_labels, "roi_labels")
        self.color = resolve_color(color)
        self.width = float(width)
        self.halo = bool(halo)
        self.halo_color = resolve_color(halo_color)
        self.halo_width = float(halo_width)
        self.offset = float(offset)
        self.roi_subset = self._resolve_subset(roi_subset)

    @staticmethod
    def _resolve_subset(roi_subset):
        if roi_subset is None or len(roi_subset) == 0:
            return None
        return np.unique(np.asarray(roi_subset, dtype=np.int64))

    @property
    def roi_labels(self):
        return self._roi_labels

    def _stage(self, changes):
        staged = super()._stage(changes)
        if "roi_labels" in changes:
            staged["_roi_labels"] = resolve_labels(changes["roi_labels"], "roi_labels")
        for key in ("color", "halo_color"):
            if key in changes:
                staged[key] = resolve_color(changes[key])
        for key in ("width", "halo_width", "offset"):
            if key in changes:
                staged[key] = float(changes[key])
        if "halo" in changes:
            staged["halo"] = bool(changes["halo"])
        if "roi_subset" in changes:
            staged["roi_subset"] = self._resolve_subset(changes["roi_subset"])
        return staged

    def get_rgba_data(self, vertex_count):
        return self._scratch(vertex_count)

    def _in_subset(self, labels):
        if self.roi_subset is None:
            return np.ones(labels.shape, dtype=bool)
        return np.isin(labels, self.roi_subset)

    def boundary_edges(self, faces):
        """Return the mesh edges whose endpoints carry different ROI labels.

        Parameters
        ----------
        faces : array_like
            Triangle list; indices must be valid for ``roi_labels``.

        Returns
        -------
        numpy.ndarray
            Unique edges of shape (K, 2), each as ``(low, high)`` vertex ids,
            sorted lexicographically. With ``roi_subset`` set, an edge is kept
            when either side belongs to the subset.
        """
        tris = resolve_faces(faces, vertex_count=self._roi_labels.shape[0])
        edges = np.vstack([tris[:, [0, 1]], tris[:, [1, 2]], tris[:, [2, 0]]])
        la = self._roi_labels[edges[:, 0]]
        lb = self._roi_labels[edges[:, 1]]
        keep = (la != lb) & (self._in_subset(la) | self._in_subset(lb))
        edges = np.sort(edges[keep], axis=1)
        if edges.shape[0] == 0:
            return np.zeros((0, 2), dtype=np.int64)
        return np.unique(edges, axis=0)

    def boundary_faces(self, faces):
        """Return indices of triangles whose corners span more than one ROI.

        With ``roi_subset`` set, a triangle is kept when any corner belongs to
        the subset.
        """
        tris = resolve_faces(faces, vertex_count=self._roi_labels.shape[0])
        corner = self._roi_labels[tris]
        mixed = (corner[:, 0] != corner[:, 1]) | (corner[:, 1] != corner[:, 2])
        keep = mixed & np.any(self._in_subset(corner), axis=1)
        return np.flatnonzero(keep)

    def to_state(self):
        state = super().to_state()
        state.update(
            color=[float(c) for c in self.color],
            width=self.width,
            halo=self.halo,
            halo_color=[float(c) for c in self.halo_color],
            halo_width=self.halo_width,
            offset=self.offset,
            roi_subset=None if self.roi_subset is None else self.roi_subset.tolist(),
        )
        return state
