"""
coastmesh

A Python package for building the unstructured polygonal meshes of
finite-volume ocean and estuary models.

The gmsh-backed front end lives in `coastmesh.meshgen` and is imported
explicitly.
"""

from . import polymesh

__all__ = [
    "polymesh",
]
