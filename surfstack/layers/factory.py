"""Build layers from plain configuration dicts."""

import logging

from ..errors import InvalidInputError
from ..utils.types import LayerKind, coerce_enum
from .base import BaseLayer, RGBALayer
from .curvature import CurvatureLayer
from .data import DataLayer, TwoDataLayer
from .label import LabelLayer, OutlineLayer
from .parcel import ParcelValueLayer
from .statistical import StatisticalMapLayer

# Module logger
logger = logging.getLogger(__name__)

_COMMON_KEYS = ("visible", "opacity", "blend_mode", "order")


def _common(config):
    options = {key: config[key] for key in _COMMON_KEYS if config.get(key) is not None}
    if "opacity" not in options and config.get("alpha") is not None:
        options["opacity"] = config["alpha"]
    return options


def _pick(config, *keys):
    return {key: config[key] for key in keys if config.get(key) is not None}


def _require(config, kind, *keys):
    missing = [key for key in keys if config.get(key) is None]
    if missing:
        logger.error("layer_from_config: %s layer missing %s", kind.value, missing)
        raise InvalidInputError(f"{kind.value} layer requires {', '.join(missing)}.")


def _colormap(config, default):
    if config.get("colormap") is not None:
        return config["colormap"]
    return config.get("cmap", default)


def layer_from_config(config):
    """Create a layer from a dict with a ``type`` and an ``id``.

    Parameters
    ----------
    config : dict
        ``type`` is one of ``base``, ``rgba``, ``data``, ``twodata``,
        ``label``, ``outline``, ``curvature``, ``parcel``, ``statistical``. Common keys
        are ``visible``, ``opacity`` (or ``alpha``), ``blend_mode`` and
        ``order``; the remaining keys are the constructor arguments of the
        layer class. ``cmap`` is accepted as an alias of ``colormap``.

    Returns
    -------
    Layer

    Raises
    ------
    InvalidInputError
        If ``type`` or ``id`` is missing, the type is unknown, or a required
        field of that layer type is missing.
    """
    if not config or not config.get("type") or not config.get("id"):
        raise InvalidInputError("Layer config requires 'type' and 'id'.")
    kind = coerce_enum(LayerKind, config["type"])
    layer_id = config["id"]
    common = _common(config)

    if kind is LayerKind.BASE:
        return BaseLayer(config.get("color", 0xCCCCCC), layer_id=layer_id, **common)
    if kind is LayerKind.RGBA:
        _require(config, kind, "data")
        return RGBALayer(layer_id, config["data"], **common)
    if kind is LayerKind.DATA:
        _require(config, kind, "data")
        return DataLayer(
            layer_id, config["data"], indices=config.get("indices"),
            colormap=_colormap(config, "jet"),
            **_pick(config, "value_range", "threshold"), **common,
        )
    if kind is LayerKind.TWO_DATA:
        _require(config, kind, "data_x", "data_y")
        return TwoDataLayer(
            layer_id, config["data_x"], config["data_y"], indices=config.get("indices"),
            colormap=_colormap(config, "confidence"),
            **_pick(config, "range_x", "range_y", "threshold_x", "threshold_y"), **common,
        )
    if kind is LayerKind.LABEL:
        _require(config, kind, "labels", "label_defs")
        return LabelLayer(
            layer_id, config["labels"], config["label_defs"],
            **_pick(config, "default_color"), **common,
        )
    if kind is LayerKind.OUTLINE:
        _require(config, kind, "roi_labels")
        return OutlineLayer(
            layer_id, config["roi_labels"],
            **_pick(config, "color", "width", "halo", "halo_color", "halo_width",
                    "offset", "roi_subset"),
            **common,
        )
    if kind is LayerKind.CURVATURE:
        _require(config, kind, "curvature")
        return CurvatureLayer(
            layer_id, config["curvature"],
            **_pick(config, "brightness", "contrast", "smoothness"), **common,
        )
    if kind is LayerKind.PARCEL:
        _require(config, kind, "parcel_data", "vertex_labels")
        return ParcelValueLayer(
            layer_id, config["parcel_data"], config["vertex_labels"],
            colormap=_colormap(config, "viridis"),
            **_pick(config, "value_column", "value_range", "threshold"), **common,
        )
    # LayerKind.STATISTICAL_MAP
    _require(config, kind, "data")
    return StatisticalMapLayer(
        layer_id, config["data"], indices=config.get("indices"),
        colormap=_colormap(config, "hot"),
        **_pick(config, "value_range", "threshold", "p_values", "stat_type", "degrees_of_freedom"),
        **common,
    )
