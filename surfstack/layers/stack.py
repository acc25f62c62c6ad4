"""Layer stack and per-vertex blend algebra."""

import logging

import numpy as np

from ..errors import InvalidInputError
from ..geometry.inputs import resolve_color
from ..utils.types import BlendMode, coerce_enum
from .base import Layer

# Module logger
logger = logging.getLogger(__name__)


def blend_into(dst, src, blend_mode=BlendMode.NORMAL, opacity=1.0):
    """Fold one layer's RGBA buffer into a composite, in place.

    With ``srcA = src_alpha * opacity`` per vertex (vertices with
    ``srcA == 0`` are left untouched):

    * ``normal``: ``outA = srcA + dstA (1 - srcA)``,
      ``outRGB = (srcRGB srcA + dstRGB dstA (1 - srcA)) / outA``;
    * ``additive``: ``outRGB = min(1, dstRGB + srcRGB srcA)``,
      ``outA = min(1, dstA + srcA)``;
    * ``multiply``: ``outRGB = dstRGB ((1 - srcA) + srcRGB srcA)``,
      ``outA = dstA + srcA (1 - dstA)``;
    * ``screen``: the screened color ``1 - (1 - dstRGB)(1 - srcRGB)`` is
      laid over the destination like ``normal``.

    Parameters
    ----------
    dst : numpy.ndarray
        Composite buffer, flat (``4 * n``) or ``(n, 4)``, float32. Modified.
    src : array_like
        Layer buffer with the same number of vertices.
    blend_mode : BlendMode or str, optional
        Default ``normal``.
    opacity : float, optional
        Layer opacity. Default 1.

    Returns
    -------
    numpy.ndarray
        ``dst``.

    Raises
    ------
    InvalidInputError
        If the buffers differ in size or the blend mode is unknown.
    """
    blend_mode = coerce_enum(BlendMode, blend_mode)
    out = dst.reshape(-1, 4)
    layer = np.asarray(src, dtype=np.float32).reshape(-1, 4)
    if layer.shape != out.shape:
        raise InvalidInputError(
            f"Layer buffer holds {layer.shape[0]} vertices, composite holds {out.shape[0]}."
        )
    src_a = layer[:, 3].astype(np.float64) * opacity
    hit = np.flatnonzero(src_a != 0)
    if hit.size == 0:
        return dst

    sa = src_a[hit][:, None]
    s_rgb = layer[hit, :3].astype(np.float64)
    d_rgb = out[hit, :3].astype(np.float64)
    da = out[hit, 3:4].astype(np.float64)

    if blend_mode is BlendMode.ADDITIVE:
        out[hit, :3] = np.minimum(1.0, d_rgb + s_rgb * sa)
        out[hit, 3:4] = np.minimum(1.0, da + sa)
        return dst
    if blend_mode is BlendMode.MULTIPLY:
        out[hit, :3] = d_rgb * ((1.0 - sa) + s_rgb * sa)
        out[hit, 3:4] = da + sa * (1.0 - da)
        return dst

    if blend_mode is BlendMode.SCREEN:
        s_rgb = 1.0 - (1.0 - d_rgb) * (1.0 - s_rgb)
    out_a = sa + da * (1.0 - sa)
    ok = out_a[:, 0] != 0
    rgb = (s_rgb * sa + d_rgb * da * (1.0 - sa))[ok] / out_a[ok]
    out[hit[ok], :3] = rgb
    out[hit[ok], 3:4] = out_a[ok]
    return dst


class LayerStack:
    """Ordered collection of layers producing one composite RGBA buffer.

    Layers are kept in insertion order; compositing walks the visible
    layers sorted by ``order`` (ties keep insertion order), starting from
    the opaque base color.

    Parameters
    ----------
    base_color : int, str or sequence, optional
        Color every composite starts from. Default ``0xcccccc``.
    """

    def __init__(self, base_color=0xCCCCCC):
        self._layers = {}
        self._base_color = resolve_color(base_color)
        self._buffer = None
        self._dirty = True

    def __len__(self):
        return len(self._layers)

    def __contains__(self, layer_id):
        return layer_id in self._layers

    def __iter__(self):
        return iter(self.layers)

    @property
    def base_color(self):
        return self._base_color

    def set_base_color(self, color):
        self._base_color = resolve_color(color)
        self._dirty = True

    @property
    def layers(self):
        """All layers in insertion order."""
        return list(self._layers.values())

    @property
    def needs_composite(self):
        """True when the stack or any of its layers changed since the last composite."""
        return self._dirty or any(layer.is_stale() for layer in self._layers.values())

    def add_layer(self, layer):
        """Add ``layer``; a layer with the same id is disposed and replaced in place."""
        if not isinstance(layer, Layer):
            raise InvalidInputError(f"Expected a Layer, got {type(layer).__name__}.")
        previous = self._layers.get(layer.id)
        if previous is not None and previous is not layer:
            previous.dispose()
            logger.debug("LayerStack: replacing layer %s", layer.id)
        self._layers[layer.id] = layer
        self._dirty = True
        logger.debug("LayerStack: added layer %s (%s)", layer.id, layer.kind.value)

    def remove_layer(self, layer_id):
        """Remove and dispose a layer; return False when the id is unknown."""
        layer = self._layers.pop(layer_id, None)
        if layer is None:
            return False
        layer.dispose()
        self._dirty = True
        logger.debug("LayerStack: removed layer %s", layer_id)
        return True

    def get_layer(self, layer_id):
        return self._layers.get(layer_id)

    def update_layer(self, layer_id, **changes):
        """Forward ``changes`` to the layer's ``update``; return False when the id is unknown."""
        layer = self._layers.get(layer_id)
        if layer is None:
            return False
        layer.update(**changes)
        if layer.needs_update:
            self._dirty = True
        return True

    def visible_layers(self):
        """Visible layers in composite order."""
        ordered = sorted(self._layers.values(), key=lambda layer: layer.order)
        return [layer for layer in ordered if layer.visible]

    def set_layer_order(self, layer_ids):
        """Set an explicit composite order, bottom layer first.

        Each layer's ``order`` becomes its position in the resulting
        sequence. Unknown or repeated ids are ignored; layers not listed
        follow the listed ones in insertion order.

        Parameters
        ----------
        layer_ids : iterable of str
            Layer ids from bottom to top.

        Returns
        -------
        list of str
            The applied order.
        """
        sequence = []
        for layer_id in layer_ids:
            if layer_id in self._layers and layer_id not in sequence:
                sequence.append(layer_id)
            elif layer_id not in self._layers:
                logger.debug("LayerStack: ignoring unknown layer %s in order", layer_id)
        sequence.extend(layer_id for layer_id in self._layers if layer_id not in sequence)
        for position, layer_id in enumerate(sequence):
            self._layers[layer_id].set_order(position)
        self._dirty = True
        return sequence

    def clear(self):
        """Dispose and remove every layer."""
        for layer in self._layers.values():
            layer.dispose()
        self._layers.clear()
        self._dirty = True

    def composite(self, vertex_count):
        """Blend all visible compositing layers over the base color.

        Parameters
        ----------
        vertex_count : int
            Number of mesh vertices.

        Returns
        -------
        numpy.ndarray
            Flat float32 RGBA buffer of length ``4 * vertex_count``. The
            buffer belongs to the stack and is overwritten by the next call.
        """
        vertex_count = int(vertex_count)
        if vertex_count < 0:
            raise InvalidInputError(f"vertex_count must be non-negative, got {vertex_count}.")
        size = 4 * vertex_count
        if self._buffer is None or self._buffer.shape[0] != size:
            self._buffer = np.empty(size, dtype=np.float32)
        rgba = self._buffer.reshape(-1, 4)
        rgba[:, :3] = self._base_color
        rgba[:, 3] = 1.0

        for layer in self.visible_layers():
            if not layer.composites:
                continue
            src = layer.get_rgba_data(vertex_count)
            blend_into(self._buffer, src, layer.blend_mode, layer.opacity)
            logger.debug(
                "LayerStack: composited %s (%s), %d non-transparent vertices",
                layer.id, layer.blend_mode.value,
                int(np.count_nonzero(src.reshape(-1, 4)[:, 3] > 0)),
            )

        for layer in self._layers.values():
            layer.mark_clean()
        self._dirty = False
        return self._buffer

    def dispose(self):
        self.clear()
        self._buffer = None
