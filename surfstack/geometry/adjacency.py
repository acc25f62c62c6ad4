"""Vertex adjacency derived from a triangle list.

:func:`build_vertex_adjacency` turns an immutable triangle list into the
vertex-to-vertex neighbor relation and the vertex-to-triangle incidence
relation used by cluster thresholding. The result is read-only and can be
shared between every layer drawn on the same mesh.
"""

import logging
from dataclasses import dataclass

import numpy as np

from ..errors import InvalidInputError
from .inputs import resolve_faces

# Module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class MeshAdjacency:
    """Neighbor and face-incidence relations of a triangle mesh.

    Attributes
    ----------
    neighbors : tuple of frozenset of int
        ``neighbors[v]`` holds every vertex sharing a triangle edge with ``v``.
    vertex_faces : tuple of tuple of int
        ``vertex_faces[v]`` lists the triangle indices referencing ``v``,
        in ascending order.
    vertex_count : int
        Number of vertices of the mesh.
    """
    neighbors: tuple
    vertex_faces: tuple
    vertex_count: int

    def degree(self, vertex):
        """Return the number of neighbors of ``vertex``."""
        return len(self.neighbors[vertex])

    def edge_count(self):
        """Return the number of unique undirected edges."""
        return sum(len(n) for n in self.neighbors) // 2


def build_vertex_adjacency(faces, vertex_count):
    """Build vertex adjacency from a triangle list.

    Every triangle ``(a, b, c)`` makes its three vertices mutual neighbors
    and records the triangle index against each of them.

    Parameters
    ----------
    faces : array-like
        Flat triangle index list (length divisible by 3) or an ``(M, 3)``
        array.
    vertex_count : int
        Number of vertices of the mesh; must be positive.

    Returns
    -------
    MeshAdjacency
        The derived neighbor and incidence relations.

    Raises
    ------
    InvalidInputError
        If ``vertex_count`` is not positive, the face list is malformed, or
        a face references a vertex outside ``[0, vertex_count)``.
    """
    if vertex_count is None or int(vertex_count) <= 0:
        logger.error("build_vertex_adjacency: vertex_count=%r", vertex_count)
        raise InvalidInputError(f"vertex_count must be positive, got {vertex_count!r}.")
    vertex_count = int(vertex_count)
    tris = resolve_faces(faces, vertex_count=vertex_count)

    neighbors = [set() for _ in range(vertex_count)]
    edges = np.vstack([tris[:, [0, 1]], tris[:, [1, 2]], tris[:, [2, 0]]])
    edges = edges[edges[:, 0] != edges[:, 1]]
    if edges.size:
        edges = np.unique(np.sort(edges, axis=1), axis=0)
    for v0, v1 in edges.tolist():
        neighbors[v0].add(v1)
        neighbors[v1].add(v0)

    # group face ids by vertex with a stable sort so each list stays ascending
    face_ids = np.repeat(np.arange(tris.shape[0]), 3)
    corner_vertices = tris.reshape(-1)
    order = np.argsort(corner_vertices, kind="stable")
    counts = np.bincount(corner_vertices, minlength=vertex_count)
    split = np.split(face_ids[order], np.cumsum(counts)[:-1])
    vertex_faces = tuple(tuple(int(f) for f in fids) for fids in split)

    logger.debug(
        "build_vertex_adjacency: %d vertices, %d faces, %d edges",
        vertex_count, tris.shape[0], edges.shape[0],
    )
    return MeshAdjacency(
        neighbors=tuple(frozenset(n) for n in neighbors),
        vertex_faces=vertex_faces,
        vertex_count=vertex_count,
    )
