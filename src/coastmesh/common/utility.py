import numpy as np
import matplotlib.pyplot as plt
from matplotlib.patches import Polygon, Rectangle
from matplotlib.collections import PatchCollection

CELL_COLORS = {
    3: ("#87CEEB", "Triangle"),
    4: ("#90EE90", "Quad"),
    5: ("#FFD700", "Pentagon"),
    6: ("#FFA07A", "Hexagon"),
    7: ("#DDA0DD", "Heptagon"),
    "other": ("#D3D3D3", "Other"),
}


def get_geometry_extent(nodes):
    """Diagonal of the bounding box of the node coordinates."""
    min_coords = np.min(nodes, axis=0)
    max_coords = np.max(nodes, axis=0)
    extent = np.linalg.norm(max_coords - min_coords)
    return extent if extent > 0 else 1.0


def _label_cells(ax, nodes, cells, extent):
    for i, cell_conn in enumerate(cells):
        points = nodes[cell_conn]
        x, y = points[:, 0], points[:, 1]
        area = 0.5 * np.abs(np.dot(x, np.roll(y, 1)) - np.dot(y, np.roll(x, 1)))
        # font grows with the cell, bounded to [2, 10]
        fontsize = min(max(2, int(np.sqrt(area) / extent * 120)), 10)
        center = np.mean(points, axis=0)
        ax.text(
            center[0],
            center[1],
            str(i),
            color="black",
            ha="center",
            va="center",
            fontsize=fontsize,
            weight="bold",
            bbox=dict(facecolor="white", alpha=0.6, edgecolor="none", boxstyle="round,pad=0.2"),
        )


def _label_nodes(ax, nodes, cells, extent):
    used = sorted({v for cell_conn in cells for v in cell_conn})
    spacing = {}
    for cell_conn in cells:
        n = len(cell_conn)
        for k in range(n):
            a, b = cell_conn[k], cell_conn[(k + 1) % n]
            length = float(np.linalg.norm(nodes[a] - nodes[b]))
            spacing.setdefault(a, []).append(length)
            spacing.setdefault(b, []).append(length)

    for i in used:
        avg_dist = np.mean(spacing[i]) if spacing.get(i) else 0.0
        fontsize = min(max(2, int(avg_dist / extent * 100)), 10) if avg_dist > 0 else 8
        ax.text(
            nodes[i, 0],
            nodes[i, 1],
            str(i),
            color="darkred",
            ha="center",
            va="center",
            fontsize=fontsize,
            bbox=dict(facecolor="yellow", alpha=0.6, edgecolor="none", boxstyle="round,pad=0.1"),
        )


def plot_mesh(
    ax, nodes, cells, show_nodes=False, show_cells=False, values=None, title="Mesh"
):
    """
    Plots polygonal cells on a matplotlib axes.

    Args:
        ax: Matplotlib axes object.
        nodes (np.ndarray): Node coordinates (num_nodes, 2).
        cells (list): Node indices of each cell, in order.
        show_nodes (bool): Whether to display node labels.
        show_cells (bool): Whether to display cell labels.
        values (np.ndarray, optional): One value per cell (e.g. depth), drawn
            with a colour bar instead of colouring cells by side count.
        title (str, optional): The title for the plot.
    """
    nodes = np.asarray(nodes)[:, :2]
    extent = get_geometry_extent(nodes)

    patches = []
    for cell_conn in cells:
        color, _ = CELL_COLORS.get(len(cell_conn), CELL_COLORS["other"])
        patches.append(
            Polygon(nodes[cell_conn], facecolor=color, edgecolor="k", alpha=0.7, lw=0.5)
        )

    if values is not None:
        collection = PatchCollection(patches, cmap="viridis", edgecolor="k", lw=0.5)
        collection.set_array(np.asarray(values, dtype=float))
        ax.add_collection(collection)
        plt.colorbar(collection, ax=ax, shrink=0.8)
    else:
        ax.add_collection(PatchCollection(patches, match_original=True))

    if show_cells:
        _label_cells(ax, nodes, cells, extent)
    if show_nodes:
        _label_nodes(ax, nodes, cells, extent)

    ax.set_title(title, fontsize=18, pad=20)
    ax.set_xlabel("X", fontsize=14, labelpad=8)
    ax.set_ylabel("Y", fontsize=14, labelpad=8)
    ax.grid(True, linestyle="--", alpha=0.5)
    ax.set_aspect("equal", adjustable="box")
    ax.tick_params(axis="both", which="major", pad=2, labelsize=12)
    ax.autoscale_view()

    for spine in ax.spines.values():
        spine.set_visible(False)

    if values is None:
        counts = {}
        for cell_conn in cells:
            _, label = CELL_COLORS.get(len(cell_conn), CELL_COLORS["other"])
            counts[label] = counts.get(label, 0) + 1
        handles = [
            Rectangle((0, 0), 1, 1, color=color, label=f"{label} (#{counts[label]})")
            for color, label in CELL_COLORS.values()
            if counts.get(label)
        ]
        ax.legend(
            handles=handles,
            loc="upper left",
            bbox_to_anchor=(1.0, 1.0),
            fontsize=14,
            frameon=False,
            ncol=1,
        )
