"""Value-to-color mapping.

:class:`ColorMap` maps one scalar to a color from a discretized palette;
:class:`ColorMap2D` maps a pair of scalars to a color from a square table.
Both carry a display range and a "hide zone" threshold: values inside an
active hide zone come back fully transparent instead of clipped.

Neither class notifies anyone when it changes. Every setter bumps
``revision``; layers remember the revision they rendered with and re-derive
their buffers when it moves.
"""

import logging

import numpy as np
from matplotlib import colors as mcolors

from ..errors import InvalidInputError, InvalidParameterError
from .presets import PRESETS

# Module logger
logger = logging.getLogger(__name__)


def _parse_color(color):
    """Return one palette entry as a list of 3 or 4 floats in [0, 1]."""
    if isinstance(color, str):
        if not color.startswith("#"):
            raise InvalidInputError(f"Invalid hex color: {color!r}")
        try:
            return list(mcolors.to_rgb(color))
        except ValueError as exc:
            raise InvalidInputError(f"Invalid hex color: {color!r}") from exc
    try:
        components = [float(c) for c in color]
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"Invalid color specification: {color!r}") from exc
    if len(components) not in (3, 4):
        raise InvalidInputError(f"Invalid color specification: {color!r}")
    for c in components:
        if not 0.0 <= c <= 1.0:
            raise InvalidInputError(
                f"Color components must be numbers in the range [0, 1], got {c}"
            )
    return components


def parse_palette(colors):
    """Validate a palette and return it as an ``(N, 3|4)`` float32 array.

    Parameters
    ----------
    colors : sequence or numpy.ndarray
        Hex strings (``'#rrggbb'``) or RGB/RGBA sequences with components in
        [0, 1], or an array of shape (N, 3) or (N, 4).

    Returns
    -------
    numpy.ndarray

    Raises
    ------
    InvalidInputError
        If the palette is empty, an entry is malformed, or entries disagree
        on channel count.
    """
    if isinstance(colors, np.ndarray) and colors.ndim == 2:
        if colors.shape[0] == 0 or colors.shape[1] not in (3, 4):
            raise InvalidInputError(
                f"Palette must have shape (N, 3) or (N, 4), got {colors.shape}."
            )
        arr = np.array(colors, dtype=np.float32)
        if not np.all((arr >= 0.0) & (arr <= 1.0)):
            raise InvalidInputError("Color components must be numbers in the range [0, 1].")
        return arr
    if isinstance(colors, str) or colors is None or len(colors) == 0:
        logger.error("parse_palette: colors must be a non-empty sequence")
        raise InvalidInputError("Colors must be a non-empty sequence.")
    parsed = [_parse_color(c) for c in colors]
    n_channels = len(parsed[0])
    for i, entry in enumerate(parsed):
        if len(entry) != n_channels:
            raise InvalidInputError(
                f"Palette entry {i} has {len(entry)} channels, expected {n_channels}."
            )
    return np.asarray(parsed, dtype=np.float32)


def check_pair(pair, name):
    """Return ``pair`` as two finite floats or raise :class:`InvalidInputError`."""
    try:
        lo, hi = (float(v) for v in pair)
    except (TypeError, ValueError) as exc:
        raise InvalidInputError(f"{name} must be a pair of numbers, got {pair!r}.") from exc
    if not (np.isfinite(lo) and np.isfinite(hi)):
        logger.error("check_pair: non-finite %s %r", name, pair)
        raise InvalidInputError(f"{name} bounds must be finite, got {pair!r}.")
    return lo, hi


def _normalize(values, value_range):
    """Map values into [0, 1]; a degenerate range maps everything to 0."""
    vmin, vmax = value_range
    denom = vmax - vmin
    if denom == 0:
        return np.zeros_like(values)
    return np.clip((values - vmin) / denom, 0.0, 1.0)


class ColorMap:
    """Map scalar values to colors from an ordered, discretized palette.

    Palette entries are spaced uniformly over the normalized value range.
    A value ``v`` selects entry ``floor(t * (N - 1))`` with
    ``t = clamp((v - min) / (max - min), 0, 1)``; a zero-width range selects
    the first entry. When the threshold ``(lo, hi)`` has ``lo != hi``,
    values with ``lo <= v <= hi`` are hidden (transparent).

    Parameters
    ----------
    colors : sequence or numpy.ndarray
        Palette; see :func:`parse_palette`.
    value_range : tuple of float, optional
        Display range ``(min, max)``. Default ``(0, 1)``.
    threshold : tuple of float, optional
        Hide zone ``(lo, hi)``. Default ``(0, 0)`` (inactive).
    alpha : float, optional
        Multiplier for the 4th channel of RGBA palettes. Default 1.

    Raises
    ------
    InvalidInputError
        If the palette is empty or malformed.
    """

    name = "custom"

    def __init__(self, colors, value_range=None, threshold=None, alpha=None):
        self._colors = parse_palette(colors)
        self._range = (0.0, 1.0)
        self._threshold = (0.0, 0.0)
        self._alpha = 1.0
        self.revision = 0
        self.set_range(value_range)
        self.set_threshold(threshold)
        self.set_alpha(alpha)

    @classmethod
    def from_preset(cls, name, registry=None, **options):
        """Create a colormap from a named palette.

        Parameters
        ----------
        name : str
            Palette name known to ``registry`` (``'_r'`` suffix reverses).
        registry : PresetRegistry, optional
            Registry to look the name up in. Defaults to
            :data:`~surfstack.utils.presets.PRESETS`.
        **options
            ``value_range``, ``threshold`` and ``alpha``, passed to the
            constructor.

        Raises
        ------
        InvalidInputError
            If ``name`` is not in the registry.
        """
        registry = PRESETS if registry is None else registry
        if name not in registry:
            raise InvalidInputError(
                f"Colormap preset {name!r} is not supported; "
                f"available: {', '.join(registry.names())}."
            )
        cmap = cls(registry[name], **options)
        cmap.name = name
        logger.debug("ColorMap.from_preset: %s with %d colors", name, cmap.n_colors)
        return cmap

    # ------------------------------------------------------------------
    # state
    # ------------------------------------------------------------------

    @property
    def colors(self):
        """Copy of the palette, shape (N, 3) or (N, 4)."""
        return self._colors.copy()

    @property
    def n_colors(self):
        return self._colors.shape[0]

    @property
    def has_alpha(self):
        """True for 4-channel palettes."""
        return self._colors.shape[1] == 4

    @property
    def value_range(self):
        return self._range

    @property
    def threshold(self):
        return self._threshold

    @property
    def alpha(self):
        return self._alpha

    @property
    def threshold_active(self):
        """True when the hide zone has non-zero width."""
        return self._threshold[0] != self._threshold[1]

    def set_range(self, value_range):
        """Set the display range; ``None`` restores ``(0, 1)``.

        Returns
        -------
        bool
            True if the range changed.
        """
        new = (0.0, 1.0) if value_range is None else check_pair(value_range, "range")
        return self._assign("_range", new)

    def set_threshold(self, threshold):
        """Set the hide zone; ``None`` restores the inactive ``(0, 0)``.

        Returns
        -------
        bool
            True if the threshold changed.
        """
        new = (0.0, 0.0) if threshold is None else check_pair(threshold, "threshold")
        return self._assign("_threshold", new)

    def set_alpha(self, alpha):
        """Set the alpha multiplier; ``None`` restores 1.

        Returns
        -------
        bool
            True if alpha changed.

        Raises
        ------
        InvalidParameterError
            If ``alpha`` is outside [0, 1].
        """
        if alpha is None:
            alpha = 1.0
        alpha = float(alpha)
        if not 0.0 <= alpha <= 1.0:
            raise InvalidParameterError(f"alpha must be in [0, 1], got {alpha}.")
        return self._assign("_alpha", alpha)

    def _assign(self, attr, value):
        if getattr(self, attr) == value:
            return False
        setattr(self, attr, value)
        self.revision += 1
        return True

    # ------------------------------------------------------------------
    # lookup
    # ------------------------------------------------------------------

    def _palette_index(self, values):
        t = _normalize(values, self._range)
        n = self.n_colors
        idx = np.floor(t * (n - 1)).astype(np.int64)
        return np.clip(idx, 0, n - 1)

    def _hidden(self, values):
        lo, hi = self._threshold
        if lo == hi:
            return np.zeros(values.shape, dtype=bool)
        return (values >= lo) & (values <= hi)

    def rgba_palette(self):
        """Return the palette as RGBA with ``alpha`` applied, shape (N, 4)."""
        out = np.ones((self.n_colors, 4), dtype=np.float32)
        out[:, : self._colors.shape[1]] = self._colors
        if self.has_alpha:
            out[:, 3] *= self._alpha
        return out

    def get_color(self, value):
        """Return the color for one value.

        Parameters
        ----------
        value : float

        Returns
        -------
        numpy.ndarray
            A copy of the selected palette entry (3 or 4 channels, alpha
            scaled), or zeros when the value falls in the hide zone.
        """
        v = np.array([value], dtype=np.float64)
        if self._hidden(v)[0]:
            return np.zeros(self._colors.shape[1], dtype=np.float32)
        color = self._colors[self._palette_index(v)[0]].copy()
        if self.has_alpha:
            color[3] *= self._alpha
        return color

    def get_rgba(self, value):
        """Return the color for one value as 4 channels.

        Three-channel palettes get alpha 1; hidden values get alpha 0.
        """
        return self.get_colors([value])[0]

    def get_colors(self, values):
        """Vectorized lookup.

        Parameters
        ----------
        values : array_like
            1-D array of values. NaN entries come back transparent.

        Returns
        -------
        numpy.ndarray
            Array of shape (N, 4), dtype float32.
        """
        v = np.asarray(values, dtype=np.float64).reshape(-1)
        out = np.zeros((v.size, 4), dtype=np.float32)
        visible = ~np.isnan(v) & ~self._hidden(v)
        if np.any(visible):
            out[visible] = self.rgba_palette()[self._palette_index(v[visible])]
        return out

    def copy(self):
        """Return an independent colormap with the same palette and settings."""
        clone = ColorMap(self._colors, self._range, self._threshold, self._alpha)
        clone.name = self.name
        return clone

    def __repr__(self):
        return (
            f"ColorMap(name={self.name!r}, n_colors={self.n_colors}, "
            f"range={self._range}, threshold={self._threshold}, alpha={self._alpha})"
        )


# ---------------------------------------------------------------------------
# Two-dimensional colormaps
# ---------------------------------------------------------------------------

def _hot_cold(x, y):
    r = np.where(x < 0.5, x * 2, 1.0)
    g = np.where(x < 0.5, x * 2, 1 - (x - 0.5) * 2)
    b = np.where(x < 0.5, 1.0, 1 - (x - 0.5) * 2)
    return np.stack([r * y, g * y, b * y, np.ones_like(x)], axis=-1)


def _rgba_wheel(x, y):
    cx = x - 0.5
    cy = y - 0.5
    radius = np.sqrt(cx * cx + cy * cy) * 2
    hue = (np.arctan2(cy, cx) + np.pi) / (2 * np.pi)
    sat = np.minimum(1.0, radius)
    rgb = mcolors.hsv_to_rgb(np.stack([hue, sat, np.ones_like(x)], axis=-1))
    alpha = np.where(radius <= 1, 1.0, 0.0)
    return np.concatenate([rgb, alpha[..., None]], axis=-1)


def _confidence(x, y):
    rgb = mcolors.hsv_to_rgb(np.stack([x * 0.8, y, np.ones_like(x)], axis=-1))
    return np.concatenate([rgb, np.ones_like(x)[..., None]], axis=-1)


def _diverging(x, y):
    r = np.where(x < 0.5, x * 2, 1.0)
    g = np.where(x < 0.5, x * 2, 1 - (x - 0.5) * 2)
    b = np.where(x < 0.5, 1.0, 1 - (x - 0.5) * 2)
    rgb = np.stack([r, g, b], axis=-1)
    # low y fades toward white
    rgb = 1 - (1 - rgb) * y[..., None]
    return np.concatenate([rgb, np.ones_like(x)[..., None]], axis=-1)


def _magnitude_phase(x, y):
    rgb = mcolors.hsv_to_rgb(np.stack([y, np.ones_like(x), x], axis=-1))
    return np.concatenate([rgb, np.ones_like(x)[..., None]], axis=-1)


PRESETS_2D = {
    "hot_cold": _hot_cold,
    "rgba_wheel": _rgba_wheel,
    "confidence": _confidence,
    "diverging": _diverging,
    "magnitude_phase": _magnitude_phase,
}


class ColorMap2D:
    """Map pairs of values to colors from a square RGBA table.

    The table row is selected by the normalized Y value and the column by
    the normalized X value. Each axis has its own range and hide zone.

    Parameters
    ----------
    table : array_like
        RGBA table of shape (size, size, 4) indexed ``[y, x]``.
    range_x, range_y : tuple of float, optional
        Display ranges. Default ``(0, 1)``.
    threshold_x, threshold_y : tuple of float, optional
        Hide zones. Default ``(0, 0)`` (inactive).
    alpha : float, optional
        Alpha multiplier. Default 1.
    """

    def __init__(self, table, range_x=None, range_y=None, threshold_x=None,
                 threshold_y=None, alpha=None):
        table = np.array(table, dtype=np.float32)
        if table.ndim != 3 or table.shape[0] != table.shape[1] or table.shape[2] != 4 \
                or table.shape[0] < 2:
            raise InvalidInputError(
                f"2D colormap table must have shape (size, size, 4), got {table.shape}."
            )
        self._table = table
        self.name = "custom"
        self.revision = 0
        self.range_x = (0.0, 1.0) if range_x is None else check_pair(range_x, "range_x")
        self.range_y = (0.0, 1.0) if range_y is None else check_pair(range_y, "range_y")
        self.threshold_x = (0.0, 0.0) if threshold_x is None else check_pair(threshold_x, "threshold_x")
        self.threshold_y = (0.0, 0.0) if threshold_y is None else check_pair(threshold_y, "threshold_y")
        self.alpha = 1.0
        if alpha is not None:
            self.set_alpha(alpha)

    @classmethod
    def from_generator(cls, generator, size=256, **options):
        """Build a table by evaluating ``generator`` on a unit grid.

        ``generator`` is called once with two ``(size, size)`` arrays holding
        the X and Y coordinates in [0, 1] and must return an array of shape
        ``(size, size, 4)``.
        """
        axis = np.linspace(0.0, 1.0, size)
        x, y = np.meshgrid(axis, axis)
        return cls(generator(x, y), **options)

    @classmethod
    def from_preset(cls, name, size=256, **options):
        """Build one of the named tables in :data:`PRESETS_2D`.

        Raises
        ------
        InvalidInputError
            If ``name`` is unknown.
        """
        if name not in PRESETS_2D:
            raise InvalidInputError(
                f"2D colormap preset {name!r} is not supported; "
                f"available: {', '.join(sorted(PRESETS_2D))}."
            )
        cmap = cls.from_generator(PRESETS_2D[name], size, **options)
        cmap.name = name
        return cmap

    @property
    def size(self):
        return self._table.shape[0]

    @property
    def table(self):
        return self._table.copy()

    def set_range_x(self, value_range):
        self.range_x = check_pair(value_range, "range_x")
        self.revision += 1

    def set_range_y(self, value_range):
        self.range_y = check_pair(value_range, "range_y")
        self.revision += 1

    def set_threshold_x(self, threshold):
        self.threshold_x = check_pair(threshold, "threshold_x")
        self.revision += 1

    def set_threshold_y(self, threshold):
        self.threshold_y = check_pair(threshold, "threshold_y")
        self.revision += 1

    def set_alpha(self, alpha):
        alpha = float(alpha)
        if not 0.0 <= alpha <= 1.0:
            raise InvalidParameterError(f"alpha must be in [0, 1], got {alpha}.")
        self.alpha = alpha
        self.revision += 1

    def get_colors(self, values_x, values_y):
        """Vectorized lookup; returns an (N, 4) float32 array.

        Pairs with a non-finite component or inside either active hide zone
        are transparent.
        """
        x = np.asarray(values_x, dtype=np.float64).reshape(-1)
        y = np.asarray(values_y, dtype=np.float64).reshape(-1)
        if x.shape != y.shape:
            raise InvalidInputError("values_x and values_y must have the same length.")
        out = np.zeros((x.size, 4), dtype=np.float32)
        visible = np.isfinite(x) & np.isfinite(y)
        for values, (lo, hi) in ((x, self.threshold_x), (y, self.threshold_y)):
            if lo != hi:
                visible &= ~((values >= lo) & (values <= hi))
        if np.any(visible):
            n = self.size
            col = np.floor(_normalize(x[visible], self.range_x) * (n - 1)).astype(np.int64)
            row = np.floor(_normalize(y[visible], self.range_y) * (n - 1)).astype(np.int64)
            colors = self._table[row, col].copy()
            colors[:, 3] *= self.alpha
            out[visible] = colors
        return out

    def get_color(self, value_x, value_y):
        """Return the RGBA color for one pair of values."""
        return self.get_colors([value_x], [value_y])[0]
