"""Tests for layer_from_config."""

import numpy as np
import pytest

from surfstack.errors import InvalidInputError
from surfstack.layers import (
    BaseLayer,
    CurvatureLayer,
    DataLayer,
    LabelLayer,
    LayerStack,
    OutlineLayer,
    ParcelValueLayer,
    RGBALayer,
    StatisticalMapLayer,
    TwoDataLayer,
    layer_from_config,
)
from surfstack.utils.types import BlendMode, StatType


class TestLayerFromConfig:
    @pytest.mark.parametrize(
        "config, cls",
        [
            ({"type": "base", "id": "b"}, BaseLayer),
            ({"type": "rgba", "id": "r", "data": [0, 0, 0, 1]}, RGBALayer),
            ({"type": "data", "id": "d", "data": [0.5]}, DataLayer),
            ({"type": "twodata", "id": "t", "data_x": [0.1], "data_y": [0.2]}, TwoDataLayer),
            ({"type": "label", "id": "l", "labels": [1], "label_defs": {1: 0xFF0000}}, LabelLayer),
            ({"type": "outline", "id": "o", "roi_labels": [1, 2]}, OutlineLayer),
            ({"type": "curvature", "id": "c", "curvature": [0.1]}, CurvatureLayer),
            ({"type": "statistical", "id": "s", "data": [2.0]}, StatisticalMapLayer),
            (
                {"type": "parcel", "id": "p", "vertex_labels": [1], "parcel_data": {
                    "schema_version": "1.0.0", "atlas": {"id": "toy"},
                    "parcels": [{"id": 1, "label": "A", "hemi": None, "value": 0.5}],
                }},
                ParcelValueLayer,
            ),
        ],
    )
    def test_every_type(self, config, cls):
        layer = layer_from_config(config)
        assert type(layer) is cls
        assert layer.id == config["id"]

    def test_common_keys(self):
        layer = layer_from_config({
            "type": "base", "id": "b", "visible": False, "opacity": 0.3,
            "blend_mode": "additive", "order": 4, "color": "#ff0000",
        })
        assert not layer.visible
        assert layer.opacity == pytest.approx(0.3)
        assert layer.blend_mode is BlendMode.ADDITIVE
        assert layer.order == 4
        np.testing.assert_allclose(layer.color, [1, 0, 0])

    def test_alpha_alias(self):
        layer = layer_from_config({"type": "data", "id": "d", "data": [1.0], "alpha": 0.5})
        assert layer.opacity == 0.5

    def test_cmap_alias(self):
        layer = layer_from_config({"type": "data", "id": "d", "data": [1.0], "cmap": "viridis"})
        assert layer.colormap_name == "viridis"

    def test_statistical_options(self):
        layer = layer_from_config({
            "type": "statistical", "id": "s", "data": [2.0, -3.0],
            "p_values": [0.01, 0.2], "stat_type": "t", "degrees_of_freedom": 15,
            "value_range": (2, 6), "threshold": (-2, 2),
        })
        assert layer.colormap_name == "hot"
        assert layer.stat_type is StatType.T
        assert layer.value_range == (2.0, 6.0)
        assert layer.apply_bonferroni(0.05).surviving_count == 1

    def test_outline_options(self):
        layer = layer_from_config({
            "type": "outline", "id": "o", "roi_labels": [1, 2], "width": 3, "halo": True,
        })
        assert layer.width == 3.0
        assert layer.halo

    def test_type_case_insensitive(self):
        assert isinstance(layer_from_config({"type": "Curvature", "id": "c", "curvature": [0]}),
                          CurvatureLayer)

    @pytest.mark.parametrize(
        "config",
        [
            None,
            {},
            {"type": "data"},
            {"id": "d", "data": [1.0]},
            {"type": "volume", "id": "v"},
            {"type": "data", "id": "d"},
            {"type": "label", "id": "l", "labels": [1]},
            {"type": "twodata", "id": "t", "data_x": [1.0]},
            {"type": "parcel", "id": "p", "parcel_data": {}},
        ],
    )
    def test_invalid_config_raises(self, config):
        with pytest.raises(InvalidInputError):
            layer_from_config(config)

    def test_builds_composable_stack(self):
        stack = LayerStack()
        for config in (
            {"type": "curvature", "id": "curv", "curvature": [0.0, 0.0]},
            {"type": "data", "id": "d", "data": [1.0, 0.0], "colormap": ["#ff0000", "#ff0000"],
             "threshold": (-0.5, 0.5)},
        ):
            stack.add_layer(layer_from_config(config))
        rgba = stack.composite(2).reshape(-1, 4)
        np.testing.assert_allclose(rgba[0], [1, 0, 0, 1])
        np.testing.assert_allclose(rgba[1], [0.5, 0.5, 0.5, 1])
