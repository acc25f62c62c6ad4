"""Connected-component cluster detection on mesh vertices."""

import logging
from collections import deque
from dataclasses import dataclass, field

import numpy as np

from ..errors import InvalidInputError, InvalidParameterError

# Module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ClusterResult:
    """Connected components of an active vertex set.

    Attributes
    ----------
    cluster_ids : numpy.ndarray
        int32 cluster id per vertex, ``-1`` for vertices in no cluster.
    cluster_sizes : dict
        Cluster id to vertex count.
    cluster_count : int
        Number of clusters found.
    """
    cluster_ids: np.ndarray
    cluster_sizes: dict = field(default_factory=dict)
    cluster_count: int = 0

    def size_of(self, vertex):
        """Return the size of the cluster containing ``vertex``, or 0."""
        cid = int(self.cluster_ids[vertex])
        return self.cluster_sizes.get(cid, 0) if cid >= 0 else 0


def find_clusters(active_mask, neighbors):
    """Label connected components of active vertices by breadth-first search.

    Vertices are scanned in ascending order; every unvisited active vertex
    seeds a new cluster id (0, 1, ...) and floods through active neighbors.

    Parameters
    ----------
    active_mask : array_like
        Per-vertex mask, non-zero for active vertices.
    neighbors : sequence of set of int
        ``neighbors[v]`` lists the vertices adjacent to ``v``; typically
        :attr:`surfstack.geometry.MeshAdjacency.neighbors`. Neighbor ids
        beyond the mask are treated as inactive.

    Returns
    -------
    ClusterResult
    """
    active = np.asarray(active_mask).reshape(-1) != 0
    n = active.shape[0]
    cluster_ids = np.full(n, -1, dtype=np.int32)
    sizes = {}
    n_neighbors = len(neighbors)
    queue = deque()

    for seed in np.flatnonzero(active).tolist():
        if cluster_ids[seed] != -1:
            continue
        cid = len(sizes)
        cluster_ids[seed] = cid
        size = 1
        queue.append(seed)
        while queue:
            u = queue.popleft()
            if u >= n_neighbors:
                continue
            for nb in neighbors[u]:
                if nb < n and active[nb] and cluster_ids[nb] == -1:
                    cluster_ids[nb] = cid
                    size += 1
                    queue.append(nb)
        sizes[cid] = size

    logger.debug("find_clusters: %d active vertices, %d clusters", int(active.sum()), len(sizes))
    return ClusterResult(cluster_ids=cluster_ids, cluster_sizes=sizes, cluster_count=len(sizes))


def filter_clusters_by_size(cluster_ids, cluster_sizes, min_size):
    """Return a uint8 mask keeping vertices whose cluster has ``>= min_size`` vertices."""
    ids = np.asarray(cluster_ids).reshape(-1)
    keep = [cid for cid, size in cluster_sizes.items() if size >= min_size]
    mask = (ids >= 0) & np.isin(ids, keep)
    return mask.astype(np.uint8)


def cluster_threshold(values, adjacency, threshold, min_cluster_size=1):
    """Threshold a per-vertex map and keep only large enough clusters.

    A vertex is active when its value is finite and ``|value| > threshold``.

    Parameters
    ----------
    values : array_like
        One value per mesh vertex.
    adjacency : MeshAdjacency
        Adjacency of the mesh the values live on.
    threshold : float
        Absolute-value cutoff.
    min_cluster_size : int, optional
        Smallest cluster kept. Default 1.

    Returns
    -------
    result : ClusterResult
        Components of the active set before size filtering.
    mask : numpy.ndarray
        uint8 mask of vertices in surviving clusters.

    Raises
    ------
    InvalidInputError
        If ``values`` does not have one entry per vertex.
    InvalidParameterError
        If ``min_cluster_size`` is below 1.
    """
    v = np.asarray(values, dtype=np.float64).reshape(-1)
    if v.shape[0] != adjacency.vertex_count:
        raise InvalidInputError(
            f"values length ({v.shape[0]}) must match vertex count ({adjacency.vertex_count})."
        )
    if int(min_cluster_size) < 1:
        raise InvalidParameterError(f"min_cluster_size must be >= 1, got {min_cluster_size}.")
    with np.errstate(invalid="ignore"):
        active = np.isfinite(v) & (np.abs(v) > threshold)
    result = find_clusters(active, adjacency.neighbors)
    mask = filter_clusters_by_size(result.cluster_ids, result.cluster_sizes, int(min_cluster_size))
    return result, mask
