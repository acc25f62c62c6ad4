"""Layer contract and the constant-color layers.

Every layer produces a dense RGBA buffer (flat float32, length
``4 * vertex_count``) for the :class:`~surfstack.layers.stack.LayerStack`
to fold into its composite. The buffer returned by
:meth:`Layer.get_rgba_data` is the layer's own scratch array: it is
overwritten by the next call, so callers that need a stable snapshot must
copy it.

``update(**changes)`` validates every change before applying any of them;
an invalid change leaves the layer untouched.
"""

import logging
from abc import ABC, abstractmethod

import numpy as np

from ..errors import InvalidInputError
from ..geometry.inputs import resolve_color, resolve_rgba
from ..utils.types import BlendMode, LayerKind, coerce_enum

# Module logger
logger = logging.getLogger(__name__)


def clamp_unit(value, name="opacity"):
    """Clamp a number to [0, 1]."""
    try:
        value = float(value)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must be a number, got {value!r}.") from exc
    if np.isnan(value):
        raise InvalidInputError(f"{name} must not be NaN.")
    return min(1.0, max(0.0, value))


class Layer(ABC):
    """Base class for all surface layers.

    Parameters
    ----------
    layer_id : str
        Unique identifier within a stack.
    visible : bool, optional
        Default True.
    opacity : float, optional
        Layer opacity, clamped to [0, 1]. Default 1.
    blend_mode : BlendMode or str, optional
        One of ``normal``, ``additive``, ``multiply``, ``screen``.
    order : int, optional
        Composite order; lower draws first. Defaults to the class's
        ``default_order``.
    """

    #: Variant tag.
    kind = None
    #: False for layers that draw outside the color composite.
    composites = True
    default_order = 0
    #: Keyword names accepted by :meth:`update`.
    update_keys = frozenset({"visible", "opacity", "blend_mode", "order"})

    def __init__(self, layer_id, visible=True, opacity=1.0,
                 blend_mode=BlendMode.NORMAL, order=None):
        if not isinstance(layer_id, str) or not layer_id:
            logger.error("Layer: invalid id %r", layer_id)
            raise InvalidInputError(f"Layer id must be a non-empty string, got {layer_id!r}.")
        self.id = layer_id
        self.visible = bool(visible)
        self.opacity = clamp_unit(opacity)
        self.blend_mode = coerce_enum(BlendMode, blend_mode)
        self.order = self.default_order if order is None else int(order)
        self.needs_update = True
        self._buffer = None

    # ------------------------------------------------------------------
    # rendering
    # ------------------------------------------------------------------

    @abstractmethod
    def get_rgba_data(self, vertex_count):
        """Return this layer's RGBA buffer for a mesh of ``vertex_count`` vertices."""

    def _scratch(self, vertex_count):
        """Return the layer-owned buffer of length ``4 * vertex_count``, zeroed."""
        vertex_count = int(vertex_count)
        if vertex_count < 0:
            raise InvalidInputError(f"vertex_count must be non-negative, got {vertex_count}.")
        size = 4 * vertex_count
        if self._buffer is None or self._buffer.shape[0] != size:
            self._buffer = np.zeros(size, dtype=np.float32)
        else:
            self._buffer.fill(0.0)
        return self._buffer

    def is_stale(self):
        """True when the layer changed since the last composite."""
        return self.needs_update

    def mark_clean(self):
        """Record that the current state has been composited."""
        self.needs_update = False

    # ------------------------------------------------------------------
    # settings
    # ------------------------------------------------------------------

    def set_visible(self, visible):
        visible = bool(visible)
        if visible != self.visible:
            self.visible = visible
            self.needs_update = True

    def set_opacity(self, opacity):
        """Set opacity, clamped to [0, 1]."""
        opacity = clamp_unit(opacity)
        if opacity != self.opacity:
            self.opacity = opacity
            self.needs_update = True

    def set_blend_mode(self, blend_mode):
        """Set the blend mode.

        Raises
        ------
        InvalidInputError
            If ``blend_mode`` is not a known mode.
        """
        blend_mode = coerce_enum(BlendMode, blend_mode)
        if blend_mode != self.blend_mode:
            self.blend_mode = blend_mode
            self.needs_update = True

    def set_order(self, order):
        order = int(order)
        if order != self.order:
            self.order = order
            self.needs_update = True

    def update(self, **changes):
        """Apply several settings at once.

        Parameters
        ----------
        **changes
            Any of :attr:`update_keys`.

        Raises
        ------
        InvalidInputError
            If a key is unknown or a value is invalid. Nothing is applied in
            that case.
        """
        unknown = sorted(set(changes) - self.update_keys)
        if unknown:
            logger.error("%s %s: unknown update keys %s", type(self).__name__, self.id, unknown)
            raise InvalidInputError(
                f"Unknown update keys for {type(self).__name__}: {', '.join(unknown)}."
            )
        staged = self._stage(changes)
        self._commit(staged)
        if staged:
            self.needs_update = True

    def _stage(self, changes):
        """Validate ``changes`` and return ``{attribute: value}`` without mutating."""
        staged = {}
        if "visible" in changes:
            staged["visible"] = bool(changes["visible"])
        if "opacity" in changes:
            staged["opacity"] = clamp_unit(changes["opacity"])
        if "blend_mode" in changes:
            staged["blend_mode"] = coerce_enum(BlendMode, changes["blend_mode"])
        if "order" in changes:
            staged["order"] = int(changes["order"])
        return staged

    def _commit(self, staged):
        for name, value in staged.items():
            setattr(self, name, value)

    def to_state(self):
        """Return the layer's settings as a plain dict."""
        return {
            "type": self.kind.value,
            "id": self.id,
            "visible": self.visible,
            "opacity": self.opacity,
            "blend_mode": self.blend_mode.value,
            "order": self.order,
        }

    def dispose(self):
        """Release buffers held by the layer."""
        self._buffer = None

    def __repr__(self):
        return (
            f"{type(self).__name__}(id={self.id!r}, visible={self.visible}, "
            f"opacity={self.opacity}, blend_mode={self.blend_mode.value}, order={self.order})"
        )


class BaseLayer(Layer):
    """Constant surface color drawn beneath every data layer.

    Alpha equals the layer opacity.

    Parameters
    ----------
    color : int, str or sequence, optional
        Surface color. Default ``0xcccccc``.
    layer_id : str, optional
        Default ``'base'``.
    **kwargs
        Forwarded to :class:`Layer`.
    """

    kind = LayerKind.BASE
    default_order = -1
    update_keys = Layer.update_keys | {"color"}

    def __init__(self, color=0xCCCCCC, layer_id="base", **kwargs):
        super().__init__(layer_id, **kwargs)
        self.color = resolve_color(color)

    def set_color(self, color):
        self.color = resolve_color(color)
        self.needs_update = True

    def _stage(self, changes):
        staged = super()._stage(changes)
        if "color" in changes:
            staged["color"] = resolve_color(changes["color"])
        return staged

    def get_rgba_data(self, vertex_count):
        rgba = self._scratch(vertex_count).reshape(-1, 4)
        rgba[:, :3] = self.color
        rgba[:, 3] = self.opacity
        return self._buffer

    def to_state(self):
        state = super().to_state()
        state["color"] = [float(c) for c in self.color]
        return state


class RGBALayer(Layer):
    """Precomputed per-vertex colors.

    Parameters
    ----------
    layer_id : str
    rgba : array_like
        Flat RGBA buffer (length divisible by 4) or an ``(N, 4)`` array.
    **kwargs
        Forwarded to :class:`Layer`.

    Notes
    -----
    When the buffer holds a different number of vertices than requested,
    a warning is logged and the output is zero-padded or truncated.
    """

    kind = LayerKind.RGBA
    update_keys = Layer.update_keys | {"rgba"}

    def __init__(self, layer_id, rgba, **kwargs):
        super().__init__(layer_id, **kwargs)
        self._rgba = resolve_rgba(rgba)
        logger.debug("RGBALayer %s: %d vertices", self.id, self._rgba.shape[0] // 4)

    @property
    def rgba(self):
        return self._rgba

    def set_rgba(self, rgba):
        self._rgba = resolve_rgba(rgba)
        self.needs_update = True

    def _stage(self, changes):
        staged = super()._stage(changes)
        if "rgba" in changes:
            staged["_rgba"] = resolve_rgba(changes["rgba"])
        return staged

    def get_rgba_data(self, vertex_count):
        out = self._scratch(vertex_count)
        if self._rgba.shape[0] != out.shape[0]:
            logger.warning(
                "RGBALayer %s: data length mismatch, expected %d, got %d",
                self.id, out.shape[0], self._rgba.shape[0],
            )
        n = min(out.shape[0], self._rgba.shape[0])
        out[:n] = self._rgba[:n]
        return out

    def dispose(self):
        super().dispose()
        self._rgba = np.zeros(0, dtype=np.float32)
