"""Statistics engine: multiple-comparison corrections, clusters and z-scores."""
from .clusters import ClusterResult, cluster_threshold, filter_clusters_by_size, find_clusters
from .multitest import CorrectionResult, compute_bonferroni_threshold, compute_fdr_threshold
from .zscores import p_to_z, t_to_z

__all__ = [
    'CorrectionResult',
    'compute_fdr_threshold',
    'compute_bonferroni_threshold',
    'ClusterResult',
    'find_clusters',
    'filter_clusters_by_size',
    'cluster_threshold',
    'p_to_z',
    't_to_z',
]
