"""2-D plotting utilities.

Functions
---------
plot_cell_field
    Plot a cell-centred field component on a triangular mesh.
"""

from __future__ import annotations

from typing import Any

import numpy as np


def plot_cell_field(
    mesh: Any,
    values: np.ndarray,
    colorbar: bool = True,
    title: str = "",
    ax: Any = None,
    cmap: str = "viridis",
) -> Any:
    """Plot one value per cell on a 2-D triangular mesh.

    Args:
        mesh: Computational mesh.
        values: Cell values, shape ``(n_cells,)``.
        colorbar: Show colour bar.
        title: Plot title.
        ax: Matplotlib axes (creates new figure if None).
        cmap: Matplotlib colour map name.

    Returns:
        Matplotlib axes.
    """
    import matplotlib.tri as mtri

    if ax is None:
        import matplotlib.pyplot as plt

        fig, ax = plt.subplots(1, 1, figsize=(12, 4))

    nodes = mesh.nodes
    triang = mtri.Triangulation(nodes[:, 0], nodes[:, 1], mesh.cells)

    pc = ax.tripcolor(triang, facecolors=np.asarray(values, dtype=float), cmap=cmap)
    if colorbar:
        ax.figure.colorbar(pc, ax=ax, label=title)

    ax.set_aspect("equal")
    ax.set_title(title)
    ax.set_xlabel("x (m)")
    ax.set_ylabel("y (m)")
    return ax
