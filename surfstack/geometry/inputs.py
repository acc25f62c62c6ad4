"""Input resolver functions for SurfStack arrays.

This module is the single source of truth for converting and validating the
array-like inputs handed to layers and the statistics engine (triangle lists,
scalar fields, destination index arrays, precomputed RGBA buffers, colors).
Layers never call ``np.asarray`` on user input directly; all conversions go
through the resolvers defined here.
"""

import logging

import numpy as np
from matplotlib import colors as mcolors

from ..errors import InvalidInputError

# Module logger
logger = logging.getLogger(__name__)


def resolve_faces(faces, *, vertex_count=None):
    """Resolve a triangle list to an ``(M, 3)`` int64 numpy array.

    Parameters
    ----------
    faces : array-like
        Either a flat index sequence whose length is divisible by 3, or an
        ``(M, 3)`` array of vertex indices.
    vertex_count : int or None, optional
        When given, every index must lie in ``[0, vertex_count)``.

    Returns
    -------
    numpy.ndarray
        Triangle index array of shape (M, 3), dtype int64.

    Raises
    ------
    InvalidInputError
        If the list cannot be shaped into triangles or an index is out of
        range.
    """
    arr = np.asarray(faces)
    if arr.size == 0:
        return np.zeros((0, 3), dtype=np.int64)
    if arr.ndim == 1:
        if arr.shape[0] % 3 != 0:
            logger.error("resolve_faces: flat face list of length %d", arr.shape[0])
            raise InvalidInputError(
                f"faces length must be divisible by 3, got {arr.shape[0]}."
            )
        arr = arr.reshape(-1, 3)
    if arr.ndim != 2 or arr.shape[1] != 3:
        raise InvalidInputError(
            f"faces must be a flat list or an array of shape (M, 3), got shape {arr.shape}."
        )
    if not np.issubdtype(arr.dtype, np.integer):
        if not np.all(np.equal(np.mod(arr, 1), 0)):
            raise InvalidInputError("faces must contain integer vertex indices.")
    arr = arr.astype(np.int64)
    if vertex_count is not None:
        if int(arr.min()) < 0 or int(arr.max()) >= vertex_count:
            raise InvalidInputError(
                f"Face indices out of range [0, {vertex_count}): "
                f"min={int(arr.min())}, max={int(arr.max())}."
            )
    return arr


def resolve_values(values, *, name="data", n_values=None):
    """Resolve a scalar field to a 1-D float32 numpy array.

    Parameters
    ----------
    values : array-like
        Scalar values. ``NaN`` and ``±inf`` are kept as-is; layers treat them
        as absent at render time.
    name : str, optional
        Name used in error messages.
    n_values : int or None, optional
        Expected length, checked when not ``None``.

    Returns
    -------
    numpy.ndarray of shape (n,) and dtype float32

    Raises
    ------
    InvalidInputError
        If ``values`` is ``None``, not one-dimensional, or of the wrong
        length.
    """
    if values is None:
        raise InvalidInputError(f"{name} is required.")
    arr = np.asarray(values, dtype=np.float32)
    if arr.ndim == 2 and 1 in arr.shape:
        arr = arr.reshape(-1)
    if arr.ndim != 1:
        raise InvalidInputError(f"{name} must be one-dimensional, got shape {arr.shape}.")
    if n_values is not None and arr.shape[0] != n_values:
        raise InvalidInputError(
            f"{name} length ({arr.shape[0]}) must match data length ({n_values})."
        )
    return arr


def resolve_indices(indices, *, n_values):
    """Resolve a destination vertex index array.

    Parameters
    ----------
    indices : None or array-like
        Destination vertex id for every data entry. ``None`` means the
        identity mapping ``0 .. n_values - 1``.
    n_values : int
        Number of data entries; used to build the identity mapping.

    Returns
    -------
    numpy.ndarray
        1-D int64 array. Out-of-range ids are kept; layers skip them.

    Raises
    ------
    InvalidInputError
        If ``indices`` is not one-dimensional or holds non-integers.
    """
    if indices is None:
        return np.arange(n_values, dtype=np.int64)
    arr = np.asarray(indices)
    if arr.size == 0:
        return np.zeros(0, dtype=np.int64)
    if arr.ndim != 1:
        raise InvalidInputError(f"indices must be one-dimensional, got shape {arr.shape}.")
    if not np.issubdtype(arr.dtype, np.integer):
        if not np.all(np.isfinite(arr)) or not np.all(np.equal(np.mod(arr, 1), 0)):
            raise InvalidInputError("indices must contain integer vertex ids.")
    return arr.astype(np.int64)


def resolve_rgba(rgba):
    """Resolve a precomputed RGBA buffer to a flat float32 array.

    Parameters
    ----------
    rgba : array-like
        Flat buffer (length divisible by 4) or an ``(N, 4)`` array.

    Returns
    -------
    numpy.ndarray
        Flat float32 array of length ``4 * N``.

    Raises
    ------
    InvalidInputError
        If ``rgba`` is ``None`` or its length is not divisible by 4.
    """
    if rgba is None:
        raise InvalidInputError("RGBA data is required.")
    arr = np.asarray(rgba, dtype=np.float32).reshape(-1)
    if arr.shape[0] % 4 != 0:
        raise InvalidInputError(
            f"RGBA data length must be divisible by 4, got {arr.shape[0]}."
        )
    return arr


def resolve_color(color):
    """Resolve a single color specification to an RGB float triple.

    Parameters
    ----------
    color : int, str, or sequence
        ``0xRRGGBB`` integer, any matplotlib color string (``'#ff0000'``,
        ``'red'``), or an RGB/RGBA sequence with components in [0, 1].

    Returns
    -------
    numpy.ndarray
        Array of shape (3,), dtype float32.

    Raises
    ------
    InvalidInputError
        If the color cannot be interpreted.
    """
    if isinstance(color, (int, np.integer)) and not isinstance(color, bool):
        value = int(color)
        if value < 0 or value > 0xFFFFFF:
            raise InvalidInputError(f"Integer color must be in [0, 0xFFFFFF], got {value:#x}.")
        return np.array(
            [((value >> 16) & 255) / 255.0, ((value >> 8) & 255) / 255.0, (value & 255) / 255.0],
            dtype=np.float32,
        )
    try:
        rgb = mcolors.to_rgb(color)
    except (ValueError, TypeError) as exc:
        raise InvalidInputError(f"Invalid color specification: {color!r}") from exc
    return np.asarray(rgb, dtype=np.float32)
