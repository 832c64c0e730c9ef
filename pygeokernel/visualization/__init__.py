"""Visualization: 2-D plotting utilities."""

from pygeokernel.visualization.plot2d import plot_cell_field

__all__ = [
    "plot_cell_field",
]
