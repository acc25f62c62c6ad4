"""Tests for ColorMap, ColorMap2D and the palette registry."""

import numpy as np
import pytest

from surfstack.errors import InvalidInputError, InvalidParameterError
from surfstack.utils.colormap import PRESETS_2D, ColorMap, ColorMap2D
from surfstack.utils.presets import PRESETS, PresetRegistry, heat_color, linear_gradient

# ---------------------------------------------------------------------------
# Fixtures
# ---------------------------------------------------------------------------

_BW = ["#000000", "#ffffff"]
_RGBA = [[1.0, 0.0, 0.0, 0.5], [0.0, 1.0, 0.0, 1.0], [0.0, 0.0, 1.0, 1.0]]


# ---------------------------------------------------------------------------
# Construction
# ---------------------------------------------------------------------------

class TestColorMapConstruction:
    def test_hex_palette(self):
        cmap = ColorMap(_BW)
        assert cmap.n_colors == 2
        assert not cmap.has_alpha

    def test_rgba_palette(self):
        cmap = ColorMap(_RGBA)
        assert cmap.has_alpha
        assert cmap.colors.shape == (3, 4)

    def test_array_palette(self):
        cmap = ColorMap(np.array([[0, 0, 0], [1, 1, 1]], dtype=float))
        assert cmap.n_colors == 2

    def test_defaults(self):
        cmap = ColorMap(_BW)
        assert cmap.value_range == (0.0, 1.0)
        assert cmap.threshold == (0.0, 0.0)
        assert cmap.alpha == 1.0

    @pytest.mark.parametrize(
        "colors",
        [
            [],
            ["#zzzzzz"],
            ["red"],
            [(2.0, 0.0, 0.0)],
            [(1.0, 0.0)],
            [(1.0, 0.0, 0.0), (1.0, 0.0, 0.0, 1.0)],
            np.zeros((0, 3)),
        ],
    )
    def test_invalid_palette_raises(self, colors):
        with pytest.raises(InvalidInputError):
            ColorMap(colors)

    def test_colors_is_a_copy(self):
        cmap = ColorMap(_BW)
        cmap.colors[0, 0] = 0.5
        assert cmap.colors[0, 0] == 0.0


# ---------------------------------------------------------------------------
# Lookup
# ---------------------------------------------------------------------------

class TestColorMapLookup:
    def test_endpoints(self):
        cmap = ColorMap(_RGBA, value_range=(-2, 2))
        np.testing.assert_allclose(cmap.get_color(-2), [1, 0, 0, 0.5])
        np.testing.assert_allclose(cmap.get_color(2), [0, 0, 1, 1])

    def test_clamped_outside_range(self):
        cmap = ColorMap(_BW)
        np.testing.assert_allclose(cmap.get_color(-5), [0, 0, 0])
        np.testing.assert_allclose(cmap.get_color(5), [1, 1, 1])

    def test_floor_index(self):
        cmap = ColorMap(_RGBA)
        # t = 0.99 -> floor(0.99 * 2) = 1
        np.testing.assert_allclose(cmap.get_color(0.99)[:3], [0, 1, 0])

    def test_degenerate_range(self):
        cmap = ColorMap(_BW, value_range=(3, 3))
        color = cmap.get_color(10)
        assert np.all(np.isfinite(color))
        np.testing.assert_allclose(color, [0, 0, 0])

    def test_returns_copy(self):
        cmap = ColorMap(_BW)
        c = cmap.get_color(1)
        c[:] = 0
        np.testing.assert_allclose(cmap.get_color(1), [1, 1, 1])

    def test_alpha_multiplies_fourth_channel(self):
        cmap = ColorMap(_RGBA, alpha=0.5)
        assert cmap.get_color(0)[3] == pytest.approx(0.25)
        assert cmap.get_color(1)[3] == pytest.approx(0.5)

    def test_alpha_ignored_for_rgb(self):
        cmap = ColorMap(_BW, alpha=0.5)
        assert cmap.get_color(1).shape == (3,)
        assert cmap.get_rgba(1)[3] == 1.0

    def test_get_rgba_always_four_channels(self):
        cmap = ColorMap(_BW)
        np.testing.assert_allclose(cmap.get_rgba(1), [1, 1, 1, 1])


class TestHideZone:
    def test_values_inside_hidden(self):
        cmap = ColorMap(_BW, value_range=(-1, 1), threshold=(-0.5, 0.5))
        for v in (-0.5, 0.0, 0.25, 0.5):
            assert cmap.get_rgba(v)[3] == 0.0
            np.testing.assert_array_equal(cmap.get_color(v), [0, 0, 0])

    def test_values_outside_visible(self):
        cmap = ColorMap(_BW, value_range=(-1, 1), threshold=(-0.5, 0.5))
        for v in (-1.0, -0.51, 0.51, 3.0):
            assert cmap.get_rgba(v)[3] > 0.0

    def test_hidden_four_channel_is_transparent(self):
        cmap = ColorMap(_RGBA, threshold=(0.0, 0.5))
        np.testing.assert_array_equal(cmap.get_color(0.2), [0, 0, 0, 0])

    def test_zero_width_hides_nothing(self):
        cmap = ColorMap(_BW, threshold=(0.5, 0.5))
        assert not cmap.threshold_active
        for v in (0.0, 0.5, 1.0):
            assert cmap.get_rgba(v)[3] == 1.0


class TestVectorizedLookup:
    def test_matches_scalar(self):
        cmap = ColorMap(_RGBA, value_range=(-1, 1), threshold=(-0.2, 0.1), alpha=0.7)
        values = np.linspace(-1.5, 1.5, 61)
        colors = cmap.get_colors(values)
        assert colors.shape == (61, 4)
        assert colors.dtype == np.float32
        for v, c in zip(values, colors):
            np.testing.assert_allclose(c, cmap.get_color(v), rtol=1e-6)

    def test_matches_scalar_rgb(self):
        cmap = ColorMap(_BW, value_range=(0, 10))
        values = np.arange(11, dtype=float)
        colors = cmap.get_colors(values)
        for v, c in zip(values, colors):
            np.testing.assert_array_equal(c[:3], cmap.get_color(v))
            assert c[3] == 1.0

    def test_nan_transparent(self):
        cmap = ColorMap(_BW)
        np.testing.assert_array_equal(cmap.get_colors([np.nan])[0], [0, 0, 0, 0])

    def test_empty(self):
        assert ColorMap(_BW).get_colors([]).shape == (0, 4)


# ---------------------------------------------------------------------------
# Setters and revision
# ---------------------------------------------------------------------------

class TestColorMapSetters:
    def test_set_range_reports_change(self):
        cmap = ColorMap(_BW)
        rev = cmap.revision
        assert cmap.set_range((0, 5)) is True
        assert cmap.revision == rev + 1
        assert cmap.set_range((0, 5)) is False
        assert cmap.revision == rev + 1

    def test_set_threshold(self):
        cmap = ColorMap(_BW)
        assert cmap.set_threshold((0.1, 0.2)) is True
        assert cmap.threshold == (0.1, 0.2)

    def test_none_restores_defaults(self):
        cmap = ColorMap(_BW, value_range=(2, 3), threshold=(1, 2))
        cmap.set_range(None)
        cmap.set_threshold(None)
        assert cmap.value_range == (0.0, 1.0)
        assert cmap.threshold == (0.0, 0.0)

    @pytest.mark.parametrize("bad", [5, "ab", (1, 2, 3), ("x", 1)])
    def test_set_range_invalid_raises(self, bad):
        cmap = ColorMap(_BW)
        with pytest.raises(InvalidInputError):
            cmap.set_range(bad)

    @pytest.mark.parametrize(
        "bad", [(float("nan"), 1), (0, float("inf")), (float("-inf"), float("inf"))]
    )
    def test_non_finite_bounds_raise(self, bad):
        cmap = ColorMap(_BW)
        with pytest.raises(InvalidInputError):
            cmap.set_range(bad)
        with pytest.raises(InvalidInputError):
            cmap.set_threshold(bad)
        assert cmap.value_range == (0.0, 1.0)
        assert cmap.threshold == (0.0, 0.0)

    @pytest.mark.parametrize("alpha", [-0.1, 1.5])
    def test_set_alpha_out_of_domain_raises(self, alpha):
        with pytest.raises(InvalidParameterError):
            ColorMap(_BW).set_alpha(alpha)

    def test_copy_is_independent(self):
        cmap = ColorMap.from_preset("jet", value_range=(0, 2))
        clone = cmap.copy()
        clone.set_range((5, 6))
        assert cmap.value_range == (0.0, 2.0)
        assert clone.name == "jet"


# ---------------------------------------------------------------------------
# Presets
# ---------------------------------------------------------------------------

class TestPresets:
    def test_from_preset(self):
        cmap = ColorMap.from_preset("jet")
        assert cmap.name == "jet"
        assert cmap.n_colors == 256
        np.testing.assert_allclose(cmap.get_color(0), PRESETS["jet"][0])
        np.testing.assert_allclose(cmap.get_color(1), PRESETS["jet"][-1])

    def test_reversed(self):
        fwd = ColorMap.from_preset("viridis")
        rev = ColorMap.from_preset("viridis_r")
        np.testing.assert_allclose(rev.get_color(0), fwd.get_color(1))

    def test_case_and_alias(self):
        assert "Viridis" in PRESETS
        np.testing.assert_array_equal(PRESETS["grey"], PRESETS["gray"])
        np.testing.assert_array_equal(PRESETS["r-y"], PRESETS["red-yellow"])

    def test_gradient_presets(self):
        ry = PRESETS["red-yellow"]
        np.testing.assert_allclose(ry[0], [1, 0, 0, 1])
        np.testing.assert_allclose(ry[-1], [1, 1, 0, 1])
        assert "bluered" in PRESETS
        assert "heat" in PRESETS

    def test_unknown_preset_raises(self):
        with pytest.raises(InvalidInputError):
            ColorMap.from_preset("no-such-map")

    def test_registry_is_read_only(self):
        with pytest.raises(ValueError):
            PRESETS["jet"][0, 0] = 0.5
        with pytest.raises(TypeError):
            PRESETS["mine"] = np.zeros((2, 4))

    def test_names_sorted(self):
        names = PRESETS.names()
        assert names == sorted(names)
        assert len(PRESETS) == len(names)

    def test_custom_registry(self):
        registry = PresetRegistry({"mine": [[0, 0, 0], [1, 1, 1]]})
        cmap = ColorMap.from_preset("mine", registry=registry)
        np.testing.assert_allclose(cmap.get_color(1), [1, 1, 1])
        assert "jet" not in registry

    def test_registry_rejects_bad_palette(self):
        with pytest.raises(InvalidInputError):
            PresetRegistry({"bad": np.zeros((3, 2))})

    def test_linear_gradient_midpoint(self):
        pal = linear_gradient([[255, 0, 0], [255, 255, 0]], 3)
        np.testing.assert_allclose(pal[1], [1, 0.5, 0, 1])


class TestHeatColor:
    def test_extremes(self):
        colors = heat_color(np.array([-1.0, 1.0]))
        np.testing.assert_allclose(colors[0], [0, 1, 1])
        np.testing.assert_allclose(colors[1], [1, 1, 0])

    def test_zero_is_dark_red(self):
        np.testing.assert_allclose(heat_color([0.0])[0], [0.5625, 0, 0])

    def test_invert(self):
        np.testing.assert_allclose(heat_color([1.0], invert=True)[0], [0, 1, 1])

    def test_nan_propagates(self):
        assert np.all(np.isnan(heat_color([np.nan])[0]))


# ---------------------------------------------------------------------------
# ColorMap2D
# ---------------------------------------------------------------------------

class TestColorMap2D:
    def test_presets_build(self):
        for name in PRESETS_2D:
            cmap = ColorMap2D.from_preset(name, size=16)
            assert cmap.size == 16
            assert cmap.table.shape == (16, 16, 4)
            assert cmap.name == name

    def test_hot_cold_corners(self):
        cmap = ColorMap2D.from_preset("hot_cold", size=16)
        np.testing.assert_allclose(cmap.get_color(0, 0), [0, 0, 0, 1])
        np.testing.assert_allclose(cmap.get_color(1, 1), [1, 0, 0, 1], atol=1e-6)
        np.testing.assert_allclose(cmap.get_color(0, 1), [0, 0, 1, 1], atol=1e-6)

    def test_rgba_wheel_corner_transparent(self):
        cmap = ColorMap2D.from_preset("rgba_wheel", size=32)
        assert cmap.get_color(0, 0)[3] == 0.0
        assert cmap.get_color(0.5, 0.5)[3] == 1.0

    def test_ranges(self):
        cmap = ColorMap2D.from_preset("hot_cold", size=16, range_x=(-1, 1), range_y=(0, 10))
        np.testing.assert_allclose(cmap.get_color(1, 10), [1, 0, 0, 1], atol=1e-6)

    def test_non_finite_transparent(self):
        cmap = ColorMap2D.from_preset("confidence", size=8)
        colors = cmap.get_colors([np.nan, 0.5, np.inf], [0.5, np.nan, 0.5])
        np.testing.assert_array_equal(colors, np.zeros((3, 4)))

    def test_threshold_hides(self):
        cmap = ColorMap2D.from_preset("confidence", size=8, threshold_y=(0.0, 0.05))
        assert cmap.get_color(0.5, 0.01)[3] == 0.0
        assert cmap.get_color(0.5, 0.5)[3] == 1.0

    def test_alpha(self):
        cmap = ColorMap2D.from_preset("confidence", size=8, alpha=0.5)
        assert cmap.get_color(0.5, 0.5)[3] == pytest.approx(0.5)

    def test_from_generator(self):
        def solid(x, y):
            return np.stack([np.ones_like(x), np.zeros_like(x), np.zeros_like(x), np.ones_like(x)], axis=-1)

        cmap = ColorMap2D.from_generator(solid, size=4)
        np.testing.assert_allclose(cmap.get_color(0.3, 0.9), [1, 0, 0, 1])

    def test_setters_bump_revision(self):
        cmap = ColorMap2D.from_preset("diverging", size=8)
        rev = cmap.revision
        cmap.set_range_x((0, 2))
        cmap.set_threshold_y((0, 0.1))
        assert cmap.revision == rev + 2

    def test_unknown_preset_raises(self):
        with pytest.raises(InvalidInputError):
            ColorMap2D.from_preset("plaid")

    def test_bad_table_raises(self):
        with pytest.raises(InvalidInputError):
            ColorMap2D(np.zeros((4, 3, 4)))

    def test_length_mismatch_raises(self):
        cmap = ColorMap2D.from_preset("confidence", size=8)
        with pytest.raises(InvalidInputError):
            cmap.get_colors([0.1, 0.2], [0.1])
