"""Contains the types used in SurfStack.

This module defines small enumeration types used across the package for
selecting blend arithmetic, tagging layer variants, tracking the active
statistical correction, and laying out colorbars.

Classes
-------
BlendMode
    Per-vertex arithmetic used to fold a layer onto the composite.
LayerKind
    Closed set of layer variants known to the layer stack.
CorrectionMethod
    Multiple-comparison correction active on a statistical map.
StatType
    Kind of statistic stored in a statistical map.
OrientationType
    Orientation of UI elements such as the colorbar (horizontal or vertical).

Functions
---------
coerce_enum
    Convert a string or enum member into a member of the given enum.
"""

import enum

from ..errors import InvalidInputError


class BlendMode(enum.Enum):
    """Blend modes used by :class:`~surfstack.layers.LayerStack`.

    Attributes
    ----------
    NORMAL : str
        Standard alpha-over compositing.
    ADDITIVE : str
        Source color added on top of the destination, clamped to 1.
    MULTIPLY : str
        Destination darkened by the source color.
    SCREEN : str
        Inverse multiply, then alpha-over like ``NORMAL``.
    """
    NORMAL = "normal"
    ADDITIVE = "additive"
    MULTIPLY = "multiply"
    SCREEN = "screen"


class LayerKind(enum.Enum):
    """Tag identifying each concrete layer variant.

    Attributes
    ----------
    BASE, RGBA, DATA, TWO_DATA, LABEL, CURVATURE, STATISTICAL_MAP, OUTLINE, PARCEL : str
        One member per layer class in :mod:`surfstack.layers`.
    """
    BASE = "base"
    RGBA = "rgba"
    DATA = "data"
    TWO_DATA = "twodata"
    LABEL = "label"
    CURVATURE = "curvature"
    STATISTICAL_MAP = "statistical"
    OUTLINE = "outline"
    PARCEL = "parcel"


class CorrectionMethod(enum.Enum):
    """Multiple-comparison correction applied to a statistical map.

    Attributes
    ----------
    NONE : str
        No correction; only the hide zone gates visibility.
    FDR : str
        Benjamini-Hochberg false discovery rate.
    BONFERRONI : str
        Bonferroni family-wise error correction.
    CLUSTER : str
        Connected-cluster size thresholding on the mesh.
    """
    NONE = "none"
    FDR = "fdr"
    BONFERRONI = "bonferroni"
    CLUSTER = "cluster"


class StatType(enum.Enum):
    """Kind of statistic held in a statistical map's data array.

    Attributes
    ----------
    T : str
        Student t statistic (needs degrees of freedom for z conversion).
    Z : str
        Standard normal z statistic.
    F : str
        F statistic.
    GENERIC : str
        Any other scalar.
    """
    T = "t"
    Z = "z"
    F = "f"
    GENERIC = "generic"


class OrientationType(enum.Enum):
    """Enum describing orientation choices for elements like the colorbar.

    Attributes
    ----------
    HORIZONTAL : int
        Layout along the horizontal axis.
    VERTICAL : int
        Layout along the vertical axis.
    """
    HORIZONTAL = 1
    VERTICAL = 2


def coerce_enum(enum_type, value):
    """Return ``value`` as a member of ``enum_type``.

    Parameters
    ----------
    enum_type : type
        An :class:`enum.Enum` subclass with string values.
    value : enum_type or str
        Member or its (case-insensitive) value.

    Returns
    -------
    enum_type
        The matching member.

    Raises
    ------
    InvalidInputError
        If ``value`` names no member of ``enum_type``.
    """
    if isinstance(value, enum_type):
        return value
    if isinstance(value, str):
        try:
            return enum_type(value.lower())
        except ValueError:
            pass
    valid = ", ".join(repr(m.value) for m in enum_type)
    raise InvalidInputError(
        f"{value!r} is not a valid {enum_type.__name__}; expected one of {valid}."
    )
