"""Postprocess: visualization sinks for state snapshots."""

from pygeokernel.postprocess.vis import Vis, MemoryVis, CSVVis, MeshioVis, PlotVis

__all__ = [
    "Vis",
    "MemoryVis",
    "CSVVis",
    "MeshioVis",
    "PlotVis",
]
