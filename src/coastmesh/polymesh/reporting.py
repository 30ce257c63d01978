# -*- coding: utf-8 -*-
"""
Text blocks for the PolyMesh summary report: open boundaries, quality metrics
and topology checks. Every block is 80 columns wide.
"""
from __future__ import annotations
from typing import TYPE_CHECKING, List, Optional
import numpy as np

if TYPE_CHECKING:
    from .poly_mesh import PolyMesh
    from .quality import MeshQuality

REPORT_WIDTH = 80


def _section(title: str) -> str:
    return f"\n{'--- ' + title + ' ---':^{REPORT_WIDTH}}"


def _stat_row(name: str, values, finite_only: bool = False) -> Optional[str]:
    """Min, max and mean of `values`; None when nothing is left to report."""
    data = np.atleast_1d(np.asarray(values, dtype=float))
    if finite_only:
        data = data[np.isfinite(data)]
    if data.size == 0:
        return None
    if data.size == 1:
        return f"  {name:<25} {data[0]:>15.4f} {'-':>15} {'-':>15}"
    return (
        f"  {name:<25} {data.min():>15.4f} {data.max():>15.4f} "
        f"{data.mean():>15.4f}"
    )


def format_boundary_summary(mesh: "PolyMesh") -> str:
    """Perimeter coverage and one line per named open boundary."""
    n_boundary = int(np.count_nonzero(mesh.is_boundary_cell))
    lines = [_section("Boundaries"), ""]
    lines.append(f"  {'Boundary Cells:':<25} {n_boundary}")
    lines.append(f"  {'Perimeter Path Length:':<25} {len(mesh.perimeter)}")
    lines.append(f"  {'Open Boundaries:':<25} {len(mesh.open_boundaries)}")
    for segment in mesh.open_boundaries:
        lines.append(
            f"    - {segment.name + ':':<20} {segment.n_edges} edges, "
            f"{len(segment.cells)} cells"
        )
    return "\n".join(lines)


def format_quality_summary(quality: Optional["MeshQuality"]) -> str:
    """Quality metric table followed by the topology check results."""
    if quality is None:
        return "Quality metrics not computed."

    rows = [
        _stat_row("Min/Max Area Ratio", quality.min_max_area_ratio),
        _stat_row("Aspect Ratio", quality.cell_aspect_ratio_values, finite_only=True),
        _stat_row("Non-Orthogonality (deg)", quality.cell_non_orthogonality_values),
    ]
    lines: List[str] = [_section("Mesh Quality Metrics")]
    lines.append(f"  {'Metric':<25} {'Min':>15} {'Max':>15} {'Average':>15}")
    lines.append(f"  {'-' * 24} {'-' * 15} {'-' * 15} {'-' * 15}")
    lines.extend(row for row in rows if row)

    lines.append(_section("Topology Check"))
    if quality.is_valid:
        lines.append("  No topology issues found.")
    else:
        lines.append(f"  {len(quality.connectivity_issues)} issue(s):")
        lines.extend(f"    - {issue}" for issue in quality.connectivity_issues)
    return "\n".join(lines)
