"""Geometry subpackage: input resolvers and mesh adjacency.

Architecture
------------
The subpackage has two layers:

**Layer 1, resolvers** (:mod:`~surfstack.geometry.inputs`):

``resolve_faces``, ``resolve_values``, ``resolve_indices``, ``resolve_rgba``,
``resolve_color``: the **single public interface** for turning user input
into clean numpy arrays. Each resolver accepts any array-like, validates
shapes and dtypes, and raises :class:`~surfstack.errors.InvalidInputError`
on malformed input.

**Layer 2, topology** (:mod:`~surfstack.geometry.adjacency`):

``build_vertex_adjacency`` derives the vertex-neighbor and vertex-triangle
relations consumed by cluster thresholding.
"""
from .adjacency import MeshAdjacency, build_vertex_adjacency
from .inputs import resolve_color, resolve_faces, resolve_indices, resolve_rgba, resolve_values

__all__ = [
    # Layer 2: topology
    'MeshAdjacency',
    'build_vertex_adjacency',
    # Layer 1: resolvers
    'resolve_faces',
    'resolve_values',
    'resolve_indices',
    'resolve_rgba',
    'resolve_color',
]
