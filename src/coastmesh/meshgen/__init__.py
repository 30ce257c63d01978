from .geometry import read_gmsh_triangulation, triangulate_perimeter

__all__ = [
    "read_gmsh_triangulation",
    "triangulate_perimeter",
]
