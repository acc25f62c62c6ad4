"""Tests for StatisticalMapLayer corrections, dual threshold and inspection."""

import numpy as np
import pytest

from surfstack.errors import InvalidInputError, InvalidParameterError, MissingPrerequisiteError
from surfstack.geometry import build_vertex_adjacency
from surfstack.layers import DualThresholdConfig, StatisticalMapLayer
from surfstack.stats import p_to_z, t_to_z
from surfstack.utils.colormap import ColorMap
from surfstack.utils.types import CorrectionMethod, StatType

# ---------------------------------------------------------------------------
# Synthetic data
# ---------------------------------------------------------------------------

_DATA = [5.0, 4.0, 3.0, 0.5, -4.0]
_P = [0.001, 0.004, 0.03, 0.6, 0.002]

# five vertices, four triangles; vertex 3 is the only inactive one in _FAN_DATA
_FAN_FACES = [0, 1, 2, 0, 2, 3, 1, 4, 2, 3, 2, 4]
_FAN_DATA = [5.0, 5.0, 5.0, 0.5, 5.0]


def _alpha(layer, vertex_count=5):
    return layer.get_rgba_data(vertex_count).reshape(-1, 4)[:, 3].copy()


def _visible(layer, vertex_count=5):
    return (_alpha(layer, vertex_count) > 0).astype(int).tolist()


def _fan_layer(**kwargs):
    layer = StatisticalMapLayer("stat", _FAN_DATA, **kwargs)
    layer.set_mesh_adjacency(_FAN_FACES, 5)
    return layer


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestConstruction:
    def test_defaults(self):
        layer = StatisticalMapLayer("stat", _DATA)
        assert layer.colormap_name == "hot"
        assert layer.stat_type is StatType.GENERIC
        assert layer.correction_method is CorrectionMethod.NONE
        assert layer.p_values is None
        assert layer.correction_mask is None

    def test_p_values_length_checked(self):
        with pytest.raises(InvalidInputError):
            StatisticalMapLayer("stat", _DATA, p_values=[0.1, 0.2])

    def test_bad_dof_raises(self):
        with pytest.raises(InvalidParameterError):
            StatisticalMapLayer("stat", _DATA, stat_type="t", degrees_of_freedom=0)

    def test_bad_stat_type_raises(self):
        with pytest.raises(InvalidInputError):
            StatisticalMapLayer("stat", _DATA, stat_type="chi2")

    def test_bad_adjacency_raises(self):
        with pytest.raises(InvalidInputError):
            StatisticalMapLayer("stat", _DATA, adjacency=[[1], [0]])

    def test_uncorrected_shows_all_finite(self):
        assert _visible(StatisticalMapLayer("stat", _DATA)) == [1, 1, 1, 1, 1]

    def test_hide_zone(self):
        layer = StatisticalMapLayer("stat", _DATA, value_range=(0, 6), threshold=(-1, 1))
        assert _visible(layer) == [1, 1, 1, 0, 1]


# ---------------------------------------------------------------------------
# FDR / Bonferroni
# ---------------------------------------------------------------------------

class TestPValueCorrections:
    def test_fdr(self):
        layer = StatisticalMapLayer("stat", _DATA, p_values=_P)
        result = layer.apply_fdr(0.05)
        assert result.surviving_count == 4
        assert layer.correction_method is CorrectionMethod.FDR
        assert layer.fdr_q == 0.05
        assert _visible(layer) == [1, 1, 1, 0, 1]

    def test_bonferroni(self):
        layer = StatisticalMapLayer("stat", _DATA, p_values=_P)
        result = layer.apply_bonferroni(0.05)
        assert result.p_threshold == pytest.approx(0.01)
        assert layer.correction_method is CorrectionMethod.BONFERRONI
        assert layer.bonferroni_alpha == 0.05
        assert _visible(layer) == [1, 1, 0, 0, 1]

    def test_mask_follows_entries_not_vertices(self):
        layer = StatisticalMapLayer("stat", [5.0, 5.0], indices=[1, 0], p_values=[0.001, 0.9])
        layer.apply_bonferroni(0.05)
        assert _visible(layer, 2) == [0, 1]

    def test_applying_replaces_previous(self):
        layer = StatisticalMapLayer("stat", _DATA, p_values=_P)
        layer.apply_fdr(0.05)
        layer.apply_bonferroni(0.05)
        assert layer.correction_method is CorrectionMethod.BONFERRONI
        assert layer.fdr_q == 0.0

    def test_missing_p_values_raises(self):
        layer = StatisticalMapLayer("stat", _DATA)
        with pytest.raises(MissingPrerequisiteError):
            layer.apply_fdr()
        with pytest.raises(MissingPrerequisiteError):
            layer.apply_bonferroni()

    def test_invalid_rate_keeps_previous(self):
        layer = StatisticalMapLayer("stat", _DATA, p_values=_P)
        layer.apply_fdr(0.05)
        with pytest.raises(InvalidParameterError):
            layer.apply_bonferroni(0.0)
        assert layer.correction_method is CorrectionMethod.FDR

    def test_correction_marks_stale(self):
        layer = StatisticalMapLayer("stat", _DATA, p_values=_P)
        layer.get_rgba_data(5)
        layer.mark_clean()
        layer.apply_fdr(0.05)
        assert layer.is_stale()

    def test_clear_correction(self):
        layer = StatisticalMapLayer("stat", _DATA, p_values=_P, threshold=(-1, 1))
        layer.apply_bonferroni(0.05)
        layer.clear_correction()
        assert layer.correction_method is CorrectionMethod.NONE
        assert _visible(layer) == [1, 1, 1, 0, 1]


# ---------------------------------------------------------------------------
# Cluster thresholding
# ---------------------------------------------------------------------------

class TestClusterCorrection:
    def test_requires_adjacency(self):
        layer = StatisticalMapLayer("stat", _FAN_DATA)
        with pytest.raises(MissingPrerequisiteError):
            layer.apply_cluster_threshold(3.0)

    def test_keeps_large_cluster(self):
        layer = _fan_layer()
        result = layer.apply_cluster_threshold(3.0, min_cluster_size=4)
        assert result.cluster_count == 1
        assert layer.correction_method is CorrectionMethod.CLUSTER
        assert layer.cluster_threshold == 3.0
        assert layer.cluster_min_size == 4
        np.testing.assert_array_equal(layer.correction_mask, [1, 1, 1, 0, 1])
        assert _visible(layer) == [1, 1, 1, 0, 1]

    def test_drops_small_cluster(self):
        layer = _fan_layer()
        layer.apply_cluster_threshold(3.0, min_cluster_size=5)
        assert _visible(layer) == [0, 0, 0, 0, 0]

    def test_prebuilt_adjacency(self):
        adj = build_vertex_adjacency(_FAN_FACES, 5)
        layer = StatisticalMapLayer("stat", _FAN_DATA, adjacency=adj)
        assert layer.adjacency is adj
        layer.apply_cluster_threshold(3.0)
        assert layer.cluster_result.cluster_sizes == {0: 4}

    def test_vertices_outside_mesh_hidden(self):
        layer = StatisticalMapLayer("stat", [5.0, 5.0, 5.0])
        layer.set_mesh_adjacency([0, 1, 1], 2)
        layer.apply_cluster_threshold(1.0)
        assert _visible(layer, 3) == [1, 1, 0]

    def test_faces_need_vertex_count(self):
        layer = StatisticalMapLayer("stat", _FAN_DATA)
        with pytest.raises(InvalidInputError):
            layer.set_mesh_adjacency(_FAN_FACES)

    def test_new_adjacency_clears_cluster_correction(self):
        layer = _fan_layer()
        layer.apply_cluster_threshold(3.0, min_cluster_size=5)
        layer.set_mesh_adjacency(_FAN_FACES, 5)
        assert layer.correction_method is CorrectionMethod.NONE
        assert _visible(layer) == [1, 1, 1, 1, 1]

    @pytest.mark.parametrize("args", [(float("nan"), 1), (3.0, 0)])
    def test_invalid_parameters_raise(self, args):
        layer = _fan_layer()
        with pytest.raises(InvalidParameterError):
            layer.apply_cluster_threshold(*args)

    def test_clear_restores_hide_zone_only(self):
        layer = _fan_layer(threshold=(-1, 1))
        layer.apply_cluster_threshold(3.0, min_cluster_size=5)
        assert _visible(layer) == [0, 0, 0, 0, 0]
        layer.clear_correction()
        assert _visible(layer) == [1, 1, 1, 0, 1]
        assert layer.cluster_result is None


# ---------------------------------------------------------------------------
# Updates reset corrections
# ---------------------------------------------------------------------------

class TestUpdates:
    def test_new_data_clears_correction(self):
        layer = StatisticalMapLayer("stat", _DATA, p_values=_P)
        layer.apply_fdr(0.05)
        layer.set_data([1.0, 2.0, 3.0, 4.0, 5.0])
        assert layer.correction_method is CorrectionMethod.NONE

    def test_new_p_values_clear_correction(self):
        layer = StatisticalMapLayer("stat", _DATA, p_values=_P)
        layer.apply_fdr(0.05)
        layer.update(p_values=[0.5] * 5)
        assert layer.correction_method is CorrectionMethod.NONE

    def test_display_change_keeps_correction(self):
        layer = StatisticalMapLayer("stat", _DATA, p_values=_P)
        layer.apply_fdr(0.05)
        layer.update(opacity=0.5, value_range=(0, 10))
        assert layer.correction_method is CorrectionMethod.FDR

    def test_data_length_change_needs_new_p_values(self):
        layer = StatisticalMapLayer("stat", _DATA, p_values=_P)
        with pytest.raises(InvalidInputError):
            layer.update(data=[1.0, 2.0])
        assert layer.data.shape == (5,)
        layer.update(data=[1.0, 2.0], p_values=[0.01, 0.02])
        assert layer.p_values.shape == (2,)

    def test_update_stat_type(self):
        layer = StatisticalMapLayer("stat", _DATA)
        layer.update(stat_type="t", degrees_of_freedom=12)
        assert layer.stat_type is StatType.T
        assert layer.degrees_of_freedom == 12.0


# ---------------------------------------------------------------------------
# Dual threshold
# ---------------------------------------------------------------------------

_DUAL = {
    "positive_colormap": "hot",
    "negative_colormap": "cool",
    "positive_range": (2, 5),
    "negative_range": (-5, -2),
}


class TestDualThreshold:
    def test_routes_by_sign(self):
        layer = StatisticalMapLayer("stat", [3.0, 1.0, 0.0, -1.0, -3.0])
        layer.set_dual_threshold(_DUAL)
        rgba = layer.get_rgba_data(5).reshape(-1, 4)
        assert (rgba[:, 3] > 0).astype(int).tolist() == [1, 0, 0, 0, 1]
        hot = ColorMap.from_preset("hot", value_range=(2, 5))
        cool = ColorMap.from_preset("cool", value_range=(-5, -2))
        np.testing.assert_allclose(rgba[0], hot.get_rgba(3.0))
        np.testing.assert_allclose(rgba[4], cool.get_rgba(-3.0))

    def test_config_object(self):
        config = DualThresholdConfig.coerce(_DUAL)
        layer = StatisticalMapLayer("stat", [3.0])
        layer.set_dual_threshold(config)
        assert layer.dual_threshold is config
        assert layer.to_state()["dual_threshold"]["negative_range"] == [-5.0, -2.0]

    def test_clear(self):
        layer = StatisticalMapLayer("stat", [3.0, 1.0, 0.0, -1.0, -3.0])
        layer.set_dual_threshold(_DUAL)
        layer.clear_dual_threshold()
        assert layer.dual_threshold is None
        assert _visible(layer) == [1, 1, 1, 1, 1]

    def test_combines_with_correction(self):
        layer = StatisticalMapLayer("stat", [3.0, 3.0, -3.0], p_values=[0.001, 0.9, 0.001])
        layer.set_dual_threshold(_DUAL)
        layer.apply_bonferroni(0.05)
        assert _visible(layer, 3) == [1, 0, 1]

    def test_missing_key_raises(self):
        with pytest.raises(InvalidInputError):
            DualThresholdConfig.coerce({"positive_colormap": "hot"})

    def test_unknown_preset_leaves_layer(self):
        layer = StatisticalMapLayer("stat", [3.0])
        with pytest.raises(InvalidInputError):
            layer.set_dual_threshold({**_DUAL, "negative_colormap": "nope"})
        assert layer.dual_threshold is None


# ---------------------------------------------------------------------------
# Vertex inspection and state
# ---------------------------------------------------------------------------

class TestVertexStatInfo:
    def test_z_from_p_value(self):
        layer = StatisticalMapLayer("stat", _DATA, p_values=_P)
        info = layer.get_vertex_stat_info(0)
        assert info.value == 5.0
        assert info.p_value == pytest.approx(0.001)
        assert info.z_score == pytest.approx(p_to_z(0.001), rel=1e-4)
        assert info.cluster_id == -1
        assert info.cluster_size == 0

    def test_z_from_t(self):
        layer = StatisticalMapLayer("stat", [2.5], stat_type="t", degrees_of_freedom=20)
        info = layer.get_vertex_stat_info(0)
        assert info.p_value is None
        assert info.z_score == pytest.approx(t_to_z(2.5, 20))

    def test_t_without_dof_has_no_z(self):
        layer = StatisticalMapLayer("stat", [2.5], stat_type="t")
        assert layer.get_vertex_stat_info(0).z_score is None

    def test_z_statistic_passthrough(self):
        layer = StatisticalMapLayer("stat", [1.5], stat_type="z")
        assert layer.get_vertex_stat_info(0).z_score == 1.5

    def test_indices_lookup(self):
        layer = StatisticalMapLayer("stat", [7.0, 8.0], indices=[2, 0])
        assert layer.get_vertex_stat_info(2).value == 7.0
        assert layer.get_vertex_stat_info(0).value == 8.0
        assert layer.get_vertex_stat_info(1) is None

    def test_cluster_fields(self):
        layer = _fan_layer()
        layer.apply_cluster_threshold(3.0)
        info = layer.get_vertex_stat_info(4)
        assert info.cluster_id == 0
        assert info.cluster_size == 4
        assert layer.get_vertex_stat_info(3).cluster_id == -1

    def test_to_state(self):
        layer = StatisticalMapLayer("stat", _DATA, p_values=_P, stat_type="t",
                                    degrees_of_freedom=10)
        layer.apply_fdr(0.05)
        state = layer.to_state()
        assert state["type"] == "statistical"
        assert state["correction_method"] == "fdr"
        assert state["fdr_q"] == 0.05
        assert state["stat_type"] == "t"
        assert state["degrees_of_freedom"] == 10.0
        assert state["dual_threshold"] is None
