# -*- coding: utf-8 -*-
"""
Configuration of a mesh build.

`MeshConfig` gathers every option that changes how a mesh is assembled: the
projection used for metrics, the cell type built from a triangulation, the
interior seed used for lake removal and the named open boundaries. It can be
built directly, from a dictionary or from a JSON file such as::

    {
        "projection": "geographic",
        "interior_seed": [147.5, -42.9],
        "open_boundaries": {
            "east": {"start": [148.1, -42.5], "mid": [148.2, -42.9],
                     "end": [148.1, -43.3]},
            "south": [147.2, -43.4, 147.6, -43.5, 147.9, -43.4]
        }
    }
"""
from __future__ import annotations

import json
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional, Tuple

from .cells import DegenerateCellPolicy
from .errors import ConfigError

PLANAR = "planar"
GEOGRAPHIC = "geographic"
PROJECTIONS = (PLANAR, GEOGRAPHIC)

VORONOI = "voronoi"
TRIANGLE = "triangle"
CELL_TYPES = (VORONOI, TRIANGLE)

Coordinate = Tuple[float, float]


def _as_coordinate(value: Any, what: str) -> Coordinate:
    try:
        x, y = value
        return float(x), float(y)
    except (TypeError, ValueError) as e:
        raise ConfigError(f"{what} must be an (x, y) pair, got {value!r}.") from e


@dataclass(frozen=True)
class OpenBoundarySpec:
    """
    A named open boundary given by three points along the domain perimeter.

    The boundary runs from the perimeter cell nearest `start` to the one
    nearest `end`, in the direction that passes the cell nearest `mid`.
    """

    name: str
    start: Coordinate
    mid: Coordinate
    end: Coordinate

    @classmethod
    def from_entry(cls, name: str, entry: Any) -> "OpenBoundarySpec":
        """
        Parses either `{"start": .., "mid": .., "end": ..}` or the flat form
        `[start_x, start_y, mid_x, mid_y, end_x, end_y]`.
        """
        if isinstance(entry, dict):
            missing = {"start", "mid", "end"}.difference(entry)
            if missing:
                raise ConfigError(
                    f"Open boundary '{name}' is missing {sorted(missing)}."
                )
            return cls(
                name=name,
                start=_as_coordinate(entry["start"], f"'{name}' start"),
                mid=_as_coordinate(entry["mid"], f"'{name}' mid"),
                end=_as_coordinate(entry["end"], f"'{name}' end"),
            )
        try:
            values = [float(v) for v in entry]
        except (TypeError, ValueError) as e:
            raise ConfigError(f"Open boundary '{name}' is malformed: {entry!r}.") from e
        if len(values) != 6:
            raise ConfigError(
                f"Open boundary '{name}' needs 6 coordinates, got {len(values)}."
            )
        return cls(name, tuple(values[0:2]), tuple(values[2:4]), tuple(values[4:6]))

    def to_dict(self) -> Dict[str, List[float]]:
        return {"start": list(self.start), "mid": list(self.mid), "end": list(self.end)}


@dataclass
class MeshConfig:
    """
    Options controlling mesh assembly.

    Attributes:
        projection (str): "planar" or "geographic". Geographic coordinates are
            (longitude, latitude) in degrees and metrics use great circles.
        cell_type (str): "voronoi" builds the dual polygon mesh of a
            triangulation; "triangle" uses the triangles as cells.
        interior_seed (Coordinate, optional): A point inside the main water
            body. When set, cells not connected to the cell nearest this
            point are removed.
        open_boundaries (List[OpenBoundarySpec]): Named open boundaries.
        vertex_tolerance (float): Quantization step for vertex pooling;
            0.0 pools exactly equal coordinates only.
        compact_vertices (bool): Drop pooled vertices left unreferenced after
            lake removal.
        walk_perimeter (bool): Compute the perimeter path even without open
            boundaries. A walk that fails to close is then reported with a
            `PerimeterWarning` and leaves the perimeter empty.
        degenerate_policy (DegenerateCellPolicy): Rules for dropping cells
            that cannot be stitched cleanly.
    """

    projection: str = PLANAR
    cell_type: str = VORONOI
    interior_seed: Optional[Coordinate] = None
    open_boundaries: List[OpenBoundarySpec] = field(default_factory=list)
    vertex_tolerance: float = 0.0
    compact_vertices: bool = True
    walk_perimeter: bool = False
    degenerate_policy: DegenerateCellPolicy = field(default_factory=DegenerateCellPolicy)

    def __post_init__(self) -> None:
        self.projection = str(self.projection).lower()
        if self.projection not in PROJECTIONS:
            raise ConfigError(
                f"Unknown projection '{self.projection}'; expected one of {PROJECTIONS}."
            )
        self.cell_type = str(self.cell_type).lower()
        if self.cell_type not in CELL_TYPES:
            raise ConfigError(
                f"Unknown cell type '{self.cell_type}'; expected one of {CELL_TYPES}."
            )
        if self.interior_seed is not None:
            self.interior_seed = _as_coordinate(self.interior_seed, "interior_seed")
        if self.vertex_tolerance < 0.0:
            raise ConfigError(
                f"vertex_tolerance must be non-negative, got {self.vertex_tolerance}."
            )

    @property
    def is_geographic(self) -> bool:
        return self.projection == GEOGRAPHIC

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "MeshConfig":
        """
        Builds a configuration from a plain dictionary.

        `open_boundaries` may be a mapping from name to entry or a list of
        entries carrying a "name" key.
        """
        known = {
            "projection",
            "cell_type",
            "interior_seed",
            "open_boundaries",
            "vertex_tolerance",
            "compact_vertices",
            "walk_perimeter",
            "min_boundary_sides",
        }
        unknown = set(data).difference(known)
        if unknown:
            raise ConfigError(f"Unknown mesh configuration keys: {sorted(unknown)}.")

        raw_boundaries = data.get("open_boundaries") or {}
        boundaries = []
        if isinstance(raw_boundaries, dict):
            for name, entry in raw_boundaries.items():
                boundaries.append(OpenBoundarySpec.from_entry(str(name), entry))
        else:
            for k, entry in enumerate(raw_boundaries):
                if not isinstance(entry, dict):
                    raise ConfigError(f"Open boundary entry {k} must be a mapping.")
                name = str(entry.get("name", f"BOUNDARY{k}"))
                fields = {key: val for key, val in entry.items() if key != "name"}
                if "coords" in fields:
                    fields = fields["coords"]
                boundaries.append(OpenBoundarySpec.from_entry(name, fields))

        try:
            policy = DegenerateCellPolicy(
                min_boundary_sides=int(data.get("min_boundary_sides", 4))
            )
        except ValueError as e:
            raise ConfigError(str(e)) from e

        return cls(
            projection=data.get("projection", PLANAR),
            cell_type=data.get("cell_type", VORONOI),
            interior_seed=data.get("interior_seed"),
            open_boundaries=boundaries,
            vertex_tolerance=float(data.get("vertex_tolerance", 0.0)),
            compact_vertices=bool(data.get("compact_vertices", True)),
            walk_perimeter=bool(data.get("walk_perimeter", False)),
            degenerate_policy=policy,
        )

    @classmethod
    def from_json(cls, path: str) -> "MeshConfig":
        """Reads a configuration from a JSON file."""
        try:
            with open(path, "r", encoding="utf-8") as f:
                data = json.load(f)
        except (OSError, json.JSONDecodeError) as e:
            raise ConfigError(f"Cannot read mesh configuration '{path}': {e}") from e
        if not isinstance(data, dict):
            raise ConfigError(f"Mesh configuration '{path}' must hold a JSON object.")
        return cls.from_dict(data)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "projection": self.projection,
            "cell_type": self.cell_type,
            "interior_seed": list(self.interior_seed) if self.interior_seed else None,
            "open_boundaries": {b.name: b.to_dict() for b in self.open_boundaries},
            "vertex_tolerance": self.vertex_tolerance,
            "compact_vertices": self.compact_vertices,
            "walk_perimeter": self.walk_perimeter,
            "min_boundary_sides": self.degenerate_policy.min_boundary_sides,
        }
