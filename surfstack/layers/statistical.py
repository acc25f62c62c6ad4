"""Statistical map layer with multiple-comparison corrections.

:class:`StatisticalMapLayer` draws a statistic (t, z, F or generic) like a
:class:`~surfstack.layers.data.DataLayer` but first gates every entry
through the active correction:

* ``fdr`` / ``bonferroni``: a per-entry survival mask computed from the
  layer's p-values;
* ``cluster``: a per-vertex mask keeping connected supra-threshold regions
  of at least a minimum size, computed over the mesh adjacency.

At most one correction is active. Applying one replaces the previous mask;
changing the data, the indices, or the p-values clears it.

A dual threshold routes positive and negative values through separate
colormaps and ranges, for the usual hot/cool display of signed maps.
"""

import logging
from dataclasses import dataclass
from typing import Optional

import numpy as np

from ..errors import InvalidInputError, InvalidParameterError, MissingPrerequisiteError
from ..geometry.adjacency import MeshAdjacency, build_vertex_adjacency
from ..geometry.inputs import resolve_values
from ..stats import (
    compute_bonferroni_threshold,
    compute_fdr_threshold,
    filter_clusters_by_size,
    find_clusters,
    p_to_z,
    t_to_z,
)
from ..utils.colormap import ColorMap, check_pair
from ..utils.types import CorrectionMethod, LayerKind, StatType, coerce_enum
from .data import DataLayer

# Module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class DualThresholdConfig:
    """Sign-routed display settings.

    Attributes
    ----------
    positive_colormap : str
        Preset used for values above zero, e.g. ``'hot'``.
    negative_colormap : str
        Preset used for values below zero, e.g. ``'cool'``.
    positive_range : tuple of float
        Display range for positive values.
    negative_range : tuple of float
        Display range for negative values (both ends typically negative).
    """
    positive_colormap: str
    negative_colormap: str
    positive_range: tuple
    negative_range: tuple

    @classmethod
    def coerce(cls, config):
        """Accept a :class:`DualThresholdConfig` or a dict with the same keys."""
        if isinstance(config, cls):
            return config
        try:
            return cls(
                positive_colormap=config["positive_colormap"],
                negative_colormap=config["negative_colormap"],
                positive_range=check_pair(config["positive_range"], "positive_range"),
                negative_range=check_pair(config["negative_range"], "negative_range"),
            )
        except (KeyError, TypeError) as exc:
            raise InvalidInputError(f"Invalid dual threshold config: {config!r}") from exc

    def to_dict(self):
        return {
            "positive_colormap": self.positive_colormap,
            "negative_colormap": self.negative_colormap,
            "positive_range": list(self.positive_range),
            "negative_range": list(self.negative_range),
        }


@dataclass(frozen=True)
class VertexStatInfo:
    """Statistics reported for one vertex.

    Attributes
    ----------
    value : float
        Raw statistic.
    p_value : float or None
        p-value when the layer has p-values.
    z_score : float or None
        From the p-value when it lies in (0, 1), else from ``t_to_z`` for t
        statistics with known degrees of freedom, else the value itself for
        z statistics.
    cluster_id : int
        Cluster id, ``-1`` outside clusters or without cluster correction.
    cluster_size : int
        Size of that cluster, 0 when none.
    """
    value: float
    p_value: Optional[float]
    z_score: Optional[float]
    cluster_id: int
    cluster_size: int


class StatisticalMapLayer(DataLayer):
    """Statistic map with FDR, Bonferroni and cluster corrections.

    Parameters
    ----------
    layer_id : str
    data : array_like
        Statistic per entry.
    indices : array_like, optional
        Destination vertex per entry; identity when omitted.
    colormap : ColorMap, str or sequence, optional
        Default ``'hot'``.
    p_values : array_like, optional
        One p-value per entry; required by :meth:`apply_fdr` and
        :meth:`apply_bonferroni`.
    stat_type : StatType or str, optional
        ``t``, ``z``, ``f`` or ``generic`` (default).
    degrees_of_freedom : float, optional
        Needed to convert t statistics to z-scores.
    adjacency : MeshAdjacency, optional
        Mesh adjacency for cluster thresholding.
    **kwargs
        Forwarded to :class:`~surfstack.layers.data.DataLayer`.
    """

    kind = LayerKind.STATISTICAL_MAP
    update_keys = DataLayer.update_keys | {"p_values", "stat_type", "degrees_of_freedom"}
    default_colormap = "hot"

    def __init__(self, layer_id, data, indices=None, colormap=None, p_values=None,
                 stat_type=StatType.GENERIC, degrees_of_freedom=None, adjacency=None, **kwargs):
        super().__init__(layer_id, data, indices=indices, colormap=colormap, **kwargs)
        self._p_values = self._resolve_p_values(p_values, self._data.shape[0])
        self.stat_type = coerce_enum(StatType, stat_type)
        self.degrees_of_freedom = self._resolve_dof(degrees_of_freedom)
        if adjacency is not None and not isinstance(adjacency, MeshAdjacency):
            raise InvalidInputError("adjacency must be a MeshAdjacency.")
        self._adjacency = adjacency
        self._dual = None
        self._positive_cmap = None
        self._negative_cmap = None
        self._reset_correction()

    @staticmethod
    def _resolve_p_values(p_values, n_values):
        if p_values is None:
            return None
        return resolve_values(p_values, name="p_values", n_values=n_values)

    @staticmethod
    def _resolve_dof(dof):
        if dof is None:
            return None
        dof = float(dof)
        if not dof >= 1:
            raise InvalidParameterError(f"Degrees of freedom must be >= 1, got {dof}.")
        return dof

    def _reset_correction(self):
        self._method = CorrectionMethod.NONE
        self._correction_mask = None
        self._cluster_mask = None
        self._cluster_result = None
        self._fdr_q = 0.0
        self._bonferroni_alpha = 0.0
        self._cluster_threshold = 0.0
        self._cluster_min_size = 0

    # ------------------------------------------------------------------
    # queries
    # ------------------------------------------------------------------

    @property
    def p_values(self):
        return self._p_values

    @property
    def adjacency(self):
        return self._adjacency

    @property
    def correction_method(self):
        """Active :class:`~surfstack.utils.types.CorrectionMethod`."""
        return self._method

    @property
    def fdr_q(self):
        """q of the active FDR correction, 0 otherwise."""
        return self._fdr_q

    @property
    def bonferroni_alpha(self):
        """alpha of the active Bonferroni correction, 0 otherwise."""
        return self._bonferroni_alpha

    @property
    def cluster_threshold(self):
        return self._cluster_threshold

    @property
    def cluster_min_size(self):
        return self._cluster_min_size

    @property
    def cluster_result(self):
        """:class:`~surfstack.stats.ClusterResult` of the active cluster correction."""
        return self._cluster_result

    @property
    def correction_mask(self):
        """Active survival mask: per entry for fdr/bonferroni, per vertex for cluster."""
        if self._method is CorrectionMethod.CLUSTER:
            return self._cluster_mask
        return self._correction_mask

    @property
    def dual_threshold(self):
        return self._dual

    # ------------------------------------------------------------------
    # corrections
    # ------------------------------------------------------------------

    def _require_p_values(self, what):
        if self._p_values is None:
            logger.error("StatisticalMapLayer %s: %s without p-values", self.id, what)
            raise MissingPrerequisiteError(
                f"Cannot apply {what}: p-values not provided."
            )

    def _changed(self):
        self._revision += 1
        self.needs_update = True

    def apply_fdr(self, q=0.05):
        """Show only entries surviving Benjamini-Hochberg FDR at level ``q``.

        Raises
        ------
        MissingPrerequisiteError
            If the layer has no p-values.
        InvalidParameterError
            If ``q`` is outside (0, 1].
        """
        self._require_p_values("FDR")
        result = compute_fdr_threshold(self._p_values, q)
        self._reset_correction()
        self._method = CorrectionMethod.FDR
        self._correction_mask = result.surviving_mask
        self._fdr_q = float(q)
        self._changed()
        logger.debug(
            "StatisticalMapLayer %s: FDR q=%g keeps %d entries", self.id, q, result.surviving_count
        )
        return result

    def apply_bonferroni(self, alpha=0.05):
        """Show only entries surviving Bonferroni correction at ``alpha``.

        Raises
        ------
        MissingPrerequisiteError
            If the layer has no p-values.
        InvalidParameterError
            If ``alpha`` is outside (0, 1].
        """
        self._require_p_values("Bonferroni")
        result = compute_bonferroni_threshold(self._p_values, alpha)
        self._reset_correction()
        self._method = CorrectionMethod.BONFERRONI
        self._correction_mask = result.surviving_mask
        self._bonferroni_alpha = float(alpha)
        self._changed()
        logger.debug(
            "StatisticalMapLayer %s: Bonferroni alpha=%g keeps %d entries",
            self.id, alpha, result.surviving_count,
        )
        return result

    def set_mesh_adjacency(self, adjacency, vertex_count=None):
        """Attach the mesh adjacency used by cluster thresholding.

        Parameters
        ----------
        adjacency : MeshAdjacency or array_like
            A prebuilt adjacency, or a triangle list to build one from.
        vertex_count : int, optional
            Required when ``adjacency`` is a triangle list.

        Notes
        -----
        An active cluster correction is cleared since it belongs to the
        previous mesh.
        """
        if not isinstance(adjacency, MeshAdjacency):
            if vertex_count is None:
                raise InvalidInputError("vertex_count is required when passing faces.")
            adjacency = build_vertex_adjacency(adjacency, vertex_count)
        self._adjacency = adjacency
        if self._method is CorrectionMethod.CLUSTER:
            self._reset_correction()
            self._changed()

    def apply_cluster_threshold(self, threshold, min_cluster_size=1):
        """Show only connected regions with ``|value| > threshold`` of a minimum size.

        Parameters
        ----------
        threshold : float
            Absolute-value activation threshold.
        min_cluster_size : int, optional
            Smallest cluster kept. Default 1.

        Returns
        -------
        ClusterResult
            Components of the active set before size filtering.

        Raises
        ------
        MissingPrerequisiteError
            If no mesh adjacency has been set.
        InvalidParameterError
            If ``threshold`` is not finite or ``min_cluster_size`` is below 1.
        """
        if self._adjacency is None:
            logger.error("StatisticalMapLayer %s: cluster threshold without adjacency", self.id)
            raise MissingPrerequisiteError(
                "Cannot apply cluster threshold: mesh adjacency not set; "
                "call set_mesh_adjacency() first."
            )
        threshold = float(threshold)
        if not np.isfinite(threshold):
            raise InvalidParameterError(f"threshold must be finite, got {threshold}.")
        min_cluster_size = int(min_cluster_size)
        if min_cluster_size < 1:
            raise InvalidParameterError(f"min_cluster_size must be >= 1, got {min_cluster_size}.")

        n_vertices = self._adjacency.vertex_count
        n = min(self._indices.shape[0], self._data.shape[0])
        indices = self._indices[:n]
        values = self._data[:n]
        with np.errstate(invalid="ignore"):
            hot = (
                (indices >= 0) & (indices < n_vertices)
                & np.isfinite(values) & (np.abs(values) > threshold)
            )
        active = np.zeros(n_vertices, dtype=np.uint8)
        active[indices[hot]] = 1

        result = find_clusters(active, self._adjacency.neighbors)
        mask = filter_clusters_by_size(result.cluster_ids, result.cluster_sizes, min_cluster_size)

        self._reset_correction()
        self._method = CorrectionMethod.CLUSTER
        self._cluster_mask = mask
        self._cluster_result = result
        self._cluster_threshold = threshold
        self._cluster_min_size = min_cluster_size
        self._changed()
        logger.debug(
            "StatisticalMapLayer %s: %d clusters, %d vertices kept",
            self.id, result.cluster_count, int(mask.sum()),
        )
        return result

    def clear_correction(self):
        """Drop the active correction; only the hide zone gates visibility."""
        self._reset_correction()
        self._changed()

    # ------------------------------------------------------------------
    # dual threshold
    # ------------------------------------------------------------------

    def set_dual_threshold(self, config):
        """Route positive and negative values through separate colormaps.

        Positive values use ``positive_colormap`` over ``positive_range``,
        negative values ``negative_colormap`` over ``negative_range``. Zero,
        positive values below ``min(positive_range)`` and negative values
        above ``max(negative_range)`` are transparent.

        Parameters
        ----------
        config : DualThresholdConfig or dict

        Raises
        ------
        InvalidInputError
            If the config is malformed or names an unknown preset.
        """
        config = DualThresholdConfig.coerce(config)
        positive = ColorMap.from_preset(
            config.positive_colormap, registry=self._registry, value_range=config.positive_range
        )
        negative = ColorMap.from_preset(
            config.negative_colormap, registry=self._registry, value_range=config.negative_range
        )
        self._dual = config
        self._positive_cmap = positive
        self._negative_cmap = negative
        self._changed()

    def clear_dual_threshold(self):
        """Return to single-colormap rendering."""
        self._dual = None
        self._positive_cmap = None
        self._negative_cmap = None
        self._changed()

    # ------------------------------------------------------------------
    # updates
    # ------------------------------------------------------------------

    def _stage(self, changes):
        staged = super()._stage(changes)
        n_values = staged["_data"].shape[0] if "_data" in staged else self._data.shape[0]
        if "p_values" in changes:
            staged["_p_values"] = self._resolve_p_values(changes["p_values"], n_values)
        elif "_data" in staged and self._p_values is not None \
                and self._p_values.shape[0] != n_values:
            raise InvalidInputError(
                f"p_values length ({self._p_values.shape[0]}) must match data length ({n_values})."
            )
        if "stat_type" in changes:
            staged["stat_type"] = coerce_enum(StatType, changes["stat_type"])
        if "degrees_of_freedom" in changes:
            staged["degrees_of_freedom"] = self._resolve_dof(changes["degrees_of_freedom"])
        return staged

    def _commit(self, staged):
        super()._commit(staged)
        if staged.keys() & {"_data", "_indices", "_p_values"}:
            self._reset_correction()

    # ------------------------------------------------------------------
    # rendering
    # ------------------------------------------------------------------

    def _gate(self, keep, indices, values):
        n = keep.shape[0]
        if self._correction_mask is not None:
            mask = np.zeros(n, dtype=bool)
            m = min(n, self._correction_mask.shape[0])
            mask[:m] = self._correction_mask[:m] != 0
            keep &= mask
        if self._cluster_mask is not None:
            inside = (indices >= 0) & (indices < self._cluster_mask.shape[0])
            survives = np.zeros(n, dtype=bool)
            survives[inside] = self._cluster_mask[indices[inside]] != 0
            keep &= survives
        lo, hi = self._threshold
        if lo != hi:
            with np.errstate(invalid="ignore"):
                keep &= ~((values >= lo) & (values <= hi))
        return keep

    def _lookup(self, values):
        if self._dual is None:
            return super()._lookup(values)
        colors = np.zeros((values.shape[0], 4), dtype=np.float32)
        pos_floor = min(self._dual.positive_range)
        neg_ceiling = max(self._dual.negative_range)
        positive = (values > 0) & (values >= pos_floor)
        negative = (values < 0) & (values <= neg_ceiling)
        if np.any(positive):
            colors[positive] = self._positive_cmap.get_colors(values[positive])
        if np.any(negative):
            colors[negative] = self._negative_cmap.get_colors(values[negative])
        return colors

    # ------------------------------------------------------------------
    # inspection
    # ------------------------------------------------------------------

    def _data_index(self, vertex):
        n = min(self._indices.shape[0], self._data.shape[0])
        if vertex < n and self._indices[vertex] == vertex:
            return vertex
        hits = np.flatnonzero(self._indices[:n] == vertex)
        return int(hits[0]) if hits.size else -1

    def get_vertex_stat_info(self, vertex):
        """Return :class:`VertexStatInfo` for ``vertex``, or None when no entry maps to it."""
        vertex = int(vertex)
        i = self._data_index(vertex)
        if i < 0:
            return None
        value = float(self._data[i])
        p_value = None if self._p_values is None else float(self._p_values[i])

        z_score = None
        if p_value is not None and np.isfinite(p_value) and 0.0 < p_value < 1.0:
            z_score = p_to_z(p_value)
        elif self.stat_type is StatType.T and np.isfinite(value) \
                and self.degrees_of_freedom is not None:
            z_score = t_to_z(value, self.degrees_of_freedom)
        elif self.stat_type is StatType.Z and np.isfinite(value):
            z_score = value

        cluster_id, cluster_size = -1, 0
        result = self._cluster_result
        if result is not None and 0 <= vertex < result.cluster_ids.shape[0]:
            cluster_id = int(result.cluster_ids[vertex])
            cluster_size = result.size_of(vertex)
        return VertexStatInfo(value, p_value, z_score, cluster_id, cluster_size)

    def to_state(self):
        state = super().to_state()
        state.update(
            correction_method=self._method.value,
            fdr_q=self._fdr_q,
            bonferroni_alpha=self._bonferroni_alpha,
            cluster_threshold=self._cluster_threshold,
            cluster_min_size=self._cluster_min_size,
            stat_type=self.stat_type.value,
            degrees_of_freedom=self.degrees_of_freedom,
            dual_threshold=None if self._dual is None else self._dual.to_dict(),
        )
        return state

    def dispose(self):
        super().dispose()
        self._reset_correction()
        self._adjacency = None
        self._dual = None
        self._positive_cmap = None
        self._negative_cmap = None
