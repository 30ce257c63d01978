# -*- coding: utf-8 -*-
"""
Exception and warning types raised while assembling a mesh.

Fatal conditions derive from the builtin `ValueError` or `RuntimeError`.
Recoverable conditions are reported
with `warnings.warn` using the `UserWarning` subclasses defined here; the
affected cells are dropped and assembly continues.
"""


class MeshError(Exception):
    """Base class for all fatal mesh construction errors."""


class InputConsistencyError(MeshError, ValueError):
    """The triangulation or cell input violates the edge-sharing invariant."""


class MeshTopologyError(MeshError, RuntimeError):
    """The assembled mesh does not have the expected topology."""


class BoundaryDefinitionError(MeshError, ValueError):
    """An open boundary definition cannot be bound to the mesh perimeter."""


class DanglingBoundaryError(MeshTopologyError):
    """An open boundary references a cell that has been removed."""


class MeshFormatError(MeshError, ValueError):
    """A persisted mesh file cannot be parsed."""


class ConfigError(MeshError, ValueError):
    """A mesh configuration entry is missing or invalid."""


class DegenerateCellWarning(UserWarning):
    """A cell could not be stitched cleanly and was dropped."""


class LakeCellsRemovedWarning(UserWarning):
    """Cells disconnected from the main water body were removed."""


class PerimeterWarning(UserWarning):
    """Boundary cells were left off the perimeter path (e.g. islands)."""
