"""Named palette registry.

A :class:`PresetRegistry` maps palette names to ``(N, 4)`` RGBA arrays. It
is immutable once built. :data:`PRESETS` is constructed once when the module
is imported and is the default registry used by
:meth:`surfstack.utils.colormap.ColorMap.from_preset`; callers that need a
different resolution or extra palettes build their own registry and pass it
explicitly.

Palettes come from:

* matplotlib colormaps, sampled at ``n_shades`` evenly spaced points;
* linear gradients between anchor colors for palettes matplotlib does not
  ship (``red-yellow``, ``blue-lightblue``, ``bluered``);
* the FreeSurfer-style ``heat`` scale from :func:`heat_color`.

A trailing ``_r`` on any name returns the reversed palette.
"""

import logging
from collections.abc import Mapping
from types import MappingProxyType

import matplotlib
import numpy as np

from ..errors import InvalidInputError

# Module logger
logger = logging.getLogger(__name__)

# registry key -> matplotlib colormap name
MATPLOTLIB_PRESETS = {
    "jet": "jet",
    "hsv": "hsv",
    "hot": "hot",
    "cool": "cool",
    "spring": "spring",
    "summer": "summer",
    "autumn": "autumn",
    "winter": "winter",
    "bone": "bone",
    "copper": "copper",
    "gray": "gray",
    "greys": "Greys",
    "greens": "Greens",
    "blues": "Blues",
    "reds": "Reds",
    "oranges": "Oranges",
    "purples": "Purples",
    "rdbu": "RdBu",
    "rdylbu": "RdYlBu",
    "rdylgn": "RdYlGn",
    "spectral": "Spectral",
    "coolwarm": "coolwarm",
    "bwr": "bwr",
    "seismic": "seismic",
    "rainbow": "rainbow",
    "cubehelix": "cubehelix",
    "viridis": "viridis",
    "inferno": "inferno",
    "magma": "magma",
    "plasma": "plasma",
    "cividis": "cividis",
    "twilight": "twilight",
}

# registry key -> anchor colors (0-255) joined by linear segments
GRADIENT_PRESETS = {
    "red-yellow": ([255, 0, 0], [255, 255, 0]),
    "blue-lightblue": ([0, 0, 255], [0, 255, 255]),
    "green-lightgreen": ([0, 128, 0], [0, 255, 0]),
    "bluered": ([0, 0, 255], [255, 0, 0]),
}

ALIASES = {
    "grey": "gray",
    "grays": "gray",
    "r-y": "red-yellow",
    "b-lb": "blue-lightblue",
    "g-lg": "green-lightgreen",
}


def linear_gradient(anchors, n_shades=256):
    """Build an RGBA palette by linear interpolation between anchor colors.

    Parameters
    ----------
    anchors : sequence of sequence
        Two or more RGB anchor colors with components in [0, 255].
    n_shades : int, optional
        Number of palette entries. Default is 256.

    Returns
    -------
    numpy.ndarray
        Array of shape (n_shades, 4), dtype float32, alpha fixed at 1.
    """
    anchors = np.asarray(anchors, dtype=np.float64) / 255.0
    if anchors.ndim != 2 or anchors.shape[0] < 2 or anchors.shape[1] != 3:
        raise InvalidInputError("A gradient needs at least two RGB anchor colors.")
    stops = np.linspace(0.0, 1.0, anchors.shape[0])
    t = np.linspace(0.0, 1.0, n_shades)
    palette = np.ones((n_shades, 4), dtype=np.float32)
    for channel in range(3):
        palette[:, channel] = np.interp(t, stops, anchors[:, channel])
    return palette


def heat_color(values, invert=False):
    """Convert an array of float values into RGB heat color values.

    Maps values in a symmetric range around zero to the FreeSurfer-style
    heat scale: cyan-blue for negative values, dark at zero, red-yellow for
    positive values. NaN inputs propagate to NaN outputs.

    Parameters
    ----------
    values : array_like
        1-D array of float values, nominally in [-1, 1]. May include NaNs.
    invert : bool, optional
        If True, invert the sign of the input values before mapping.
        Default is False.

    Returns
    -------
    numpy.ndarray
        Array of shape (N, 3) and dtype float32 with RGB channels in [0, 1].
    """
    values = np.asarray(values, dtype=np.float64)
    if invert:
        values = -1.0 * values
    vabs = np.abs(values)
    colors = np.zeros((vabs.size, 3), dtype=np.float32)
    crb = 0.5625 + 3 * 0.4375 * vabs
    cg = 1.5 * (vabs - (1.0 / 3.0))
    n1 = values < -1.0
    nm = (values >= -1.0) & (values < -(1.0 / 3.0))
    n0 = (values >= -(1.0 / 3.0)) & (values < 0)
    p0 = (values >= 0) & (values < (1.0 / 3.0))
    pm = (values >= (1.0 / 3.0)) & (values < 1.0)
    p1 = values >= 1.0
    colors[n1, 1:3] = 1.0
    colors[nm, 1] = cg[nm]
    colors[nm, 2] = 1.0
    colors[n0, 2] = crb[n0]
    colors[p0, 0] = crb[p0]
    colors[pm, 1] = cg[pm]
    colors[pm, 0] = 1.0
    colors[p1, 0:2] = 1.0
    colors[np.isnan(values), :] = np.nan
    return colors


def heat_palette(n_shades=256):
    """Sample :func:`heat_color` over [-1, 1] into an RGBA palette."""
    palette = np.ones((n_shades, 4), dtype=np.float32)
    palette[:, :3] = heat_color(np.linspace(-1.0, 1.0, n_shades))
    return palette


def sample_matplotlib(name, n_shades=256):
    """Sample a matplotlib colormap into an ``(n_shades, 4)`` float32 array."""
    cmap = matplotlib.colormaps[name]
    return np.asarray(cmap(np.linspace(0.0, 1.0, n_shades)), dtype=np.float32)


class PresetRegistry(Mapping):
    """Immutable mapping from palette name to RGBA palette.

    Lookups are case-insensitive, resolve :data:`ALIASES`, and honor a
    trailing ``_r`` for reversed palettes. Returned arrays are read-only.

    Parameters
    ----------
    palettes : mapping of str to array-like
        Palettes keyed by name; each must have shape (N, 3) or (N, 4).
    """

    def __init__(self, palettes):
        frozen = {}
        for name, colors in palettes.items():
            arr = np.array(colors, dtype=np.float32)
            if arr.ndim != 2 or arr.shape[0] == 0 or arr.shape[1] not in (3, 4):
                raise InvalidInputError(
                    f"Palette {name!r} must have shape (N, 3) or (N, 4), got {arr.shape}."
                )
            arr.setflags(write=False)
            frozen[name.lower()] = arr
        self._palettes = MappingProxyType(frozen)

    @classmethod
    def build(cls, n_shades=256):
        """Build the default registry.

        Parameters
        ----------
        n_shades : int, optional
            Entries per palette. Default is 256.

        Returns
        -------
        PresetRegistry
        """
        palettes = {}
        for key, mpl_name in MATPLOTLIB_PRESETS.items():
            try:
                palettes[key] = sample_matplotlib(mpl_name, n_shades)
            except KeyError:
                logger.debug("PresetRegistry: matplotlib has no colormap %r", mpl_name)
        for key, anchors in GRADIENT_PRESETS.items():
            palettes[key] = linear_gradient(anchors, n_shades)
        palettes["heat"] = heat_palette(n_shades)
        logger.debug("PresetRegistry: built %d palettes", len(palettes))
        return cls(palettes)

    def _resolve(self, name):
        key = name.lower()
        reverse = False
        if key not in self._palettes and ALIASES.get(key) is None and key.endswith("_r"):
            key = key[:-2]
            reverse = True
        key = ALIASES.get(key, key)
        return key, reverse

    def __getitem__(self, name):
        if not isinstance(name, str):
            raise KeyError(name)
        key, reverse = self._resolve(name)
        palette = self._palettes[key]
        return palette[::-1] if reverse else palette

    def __contains__(self, name):
        if not isinstance(name, str):
            return False
        key, _ = self._resolve(name)
        return key in self._palettes

    def __iter__(self):
        return iter(self._palettes)

    def __len__(self):
        return len(self._palettes)

    def names(self):
        """Return the sorted list of registered palette names."""
        return sorted(self._palettes)


#: Default registry, built once at import.
PRESETS = PresetRegistry.build()
