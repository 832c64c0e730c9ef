"""Geometry: domain, mesh blocks and meshing."""

from pygeokernel.geometry.primitives import Geometry, Rectangle
from pygeokernel.geometry.mesh import Mesh, import_mesh

__all__ = [
    "Geometry",
    "Rectangle",
    "Mesh",
    "import_mesh",
]
