"""Tests for build_vertex_adjacency."""

import numpy as np
import pytest

from surfstack.errors import InvalidInputError
from surfstack.geometry import MeshAdjacency, build_vertex_adjacency

# ---------------------------------------------------------------------------
# Synthetic meshes
# ---------------------------------------------------------------------------

# two triangles sharing the edge 0-2
_QUAD = [0, 1, 2, 0, 2, 3]

# tetrahedron: every vertex touches every other
_TET = np.array([[0, 1, 2], [0, 1, 3], [0, 2, 3], [1, 2, 3]])


class TestBuildVertexAdjacency:
    def test_quad_neighbors(self):
        adj = build_vertex_adjacency(_QUAD, 4)
        assert isinstance(adj, MeshAdjacency)
        assert adj.neighbors[0] == {1, 2, 3}
        assert adj.neighbors[1] == {0, 2}
        assert adj.neighbors[2] == {0, 1, 3}
        assert adj.neighbors[3] == {0, 2}

    def test_quad_vertex_faces(self):
        adj = build_vertex_adjacency(_QUAD, 4)
        assert adj.vertex_faces[0] == (0, 1)
        assert adj.vertex_faces[1] == (0,)
        assert adj.vertex_faces[2] == (0, 1)
        assert adj.vertex_faces[3] == (1,)

    def test_neighbor_relation_symmetric(self):
        adj = build_vertex_adjacency(_TET, 4)
        for v, nbrs in enumerate(adj.neighbors):
            for n in nbrs:
                assert v in adj.neighbors[n]

    def test_edge_count_and_degree(self):
        adj = build_vertex_adjacency(_TET, 4)
        assert adj.edge_count() == 6
        assert all(adj.degree(v) == 3 for v in range(4))

    def test_isolated_vertex(self):
        adj = build_vertex_adjacency(_QUAD, 6)
        assert adj.vertex_count == 6
        assert adj.neighbors[5] == frozenset()
        assert adj.vertex_faces[4] == ()

    def test_no_self_neighbors_for_degenerate_face(self):
        adj = build_vertex_adjacency([0, 0, 1], 2)
        assert 0 not in adj.neighbors[0]
        assert adj.neighbors[0] == {1}

    def test_deterministic(self):
        a = build_vertex_adjacency(_TET, 4)
        b = build_vertex_adjacency(_TET.reshape(-1).tolist(), 4)
        assert a == b

    def test_empty_faces(self):
        adj = build_vertex_adjacency([], 3)
        assert adj.edge_count() == 0

    @pytest.mark.parametrize("count", [0, -3])
    def test_non_positive_vertex_count_raises(self, count):
        with pytest.raises(InvalidInputError):
            build_vertex_adjacency(_QUAD, count)

    def test_bad_length_raises(self):
        with pytest.raises(InvalidInputError):
            build_vertex_adjacency([0, 1, 2, 3], 4)

    def test_index_out_of_range_raises(self):
        with pytest.raises(InvalidInputError):
            build_vertex_adjacency(_QUAD, 3)

    def test_immutable(self):
        adj = build_vertex_adjacency(_QUAD, 4)
        with pytest.raises(AttributeError):
            adj.vertex_count = 10
