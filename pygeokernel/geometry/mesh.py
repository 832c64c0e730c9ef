"""Mesh generation and import.

Classes
-------
Mesh
    Container for nodes, cells, faces and mesh-block tags, with
    convenience methods for structured mesh generation.
"""

from __future__ import annotations

from typing import Any

import numpy as np
from scipy import sparse

from pygeokernel.state.field import FieldLocation


class Mesh:
    """Unstructured or structured 2-D mesh.

    Faces are the unique cell edges.  Each face carries a fixed
    orientation: its normal is the edge vector (from the lower to the
    higher node index) rotated clockwise, scaled by the face length.

    Attributes:
        nodes: Node coordinates, shape ``(n_nodes, dim)``.
        cells: Cell connectivity, shape ``(n_cells, nodes_per_cell)``.
        cell_tags: Mesh block ID per cell.
        dim: Spatial dimension.
        subdomain_map: Mapping from subdomain name to mesh block ID.
        faces: Face connectivity, shape ``(n_faces, 2)``.
        cell_faces: Sparse ``(n_cells, n_faces)`` incidence matrix.
    """

    def __init__(
        self,
        nodes: np.ndarray,
        cells: np.ndarray,
        cell_tags: np.ndarray | None = None,
        subdomain_map: dict[str, int] | None = None,
    ) -> None:
        self.nodes = np.asarray(nodes, dtype=float)
        self.cells = np.asarray(cells, dtype=int)
        self.dim = self.nodes.shape[1]
        self.cell_tags = (
            np.asarray(cell_tags, dtype=int)
            if cell_tags is not None
            else np.zeros(len(self.cells), dtype=int)
        )
        self.subdomain_map: dict[str, int] = subdomain_map or {}
        self.faces, self.cell_faces = self._build_faces()

    # ------------------------------------------------------------------
    # Properties
    # ------------------------------------------------------------------

    @property
    def n_nodes(self) -> int:
        """Number of nodes."""
        return len(self.nodes)

    @property
    def n_cells(self) -> int:
        """Number of cells."""
        return len(self.cells)

    @property
    def n_faces(self) -> int:
        """Number of faces."""
        return len(self.faces)

    @property
    def block_ids(self) -> list[int]:
        """Sorted mesh block IDs present on the mesh."""
        return sorted(int(t) for t in np.unique(self.cell_tags))

    def n_entities(self, location: FieldLocation) -> int:
        """Number of mesh entities carrying values at *location*."""
        if location is FieldLocation.CELL:
            return self.n_cells
        if location is FieldLocation.FACE:
            return self.n_faces
        return self.n_nodes

    # ------------------------------------------------------------------
    # Derived quantities
    # ------------------------------------------------------------------

    def cell_centers(self) -> np.ndarray:
        """Compute centroids of all cells.

        Returns:
            Array of shape ``(n_cells, dim)``.
        """
        return self.nodes[self.cells].mean(axis=1)

    def face_normals(self) -> np.ndarray:
        """Area-weighted face normals, padded to three components.

        Returns:
            Array of shape ``(n_faces, 3)``.
        """
        edge = self.nodes[self.faces[:, 1]] - self.nodes[self.faces[:, 0]]
        normals = np.zeros((self.n_faces, 3))
        normals[:, 0] = edge[:, 1]
        normals[:, 1] = -edge[:, 0]
        return normals

    def block_cells(self, block_id: int) -> np.ndarray:
        """Indices of the cells in mesh block *block_id*."""
        return np.flatnonzero(self.cell_tags == block_id)

    def block_faces(self, block_id: int) -> np.ndarray:
        """Indices of the faces bounding at least one cell of the block."""
        cells = self.block_cells(block_id)
        touched = np.asarray(self.cell_faces[cells].sum(axis=0)).ravel()
        return np.flatnonzero(touched > 0)

    def block_entities(self, location: FieldLocation, block_id: int) -> np.ndarray:
        """Indices of the entities at *location* belonging to a block."""
        if location is FieldLocation.CELL:
            return self.block_cells(block_id)
        if location is FieldLocation.FACE:
            return self.block_faces(block_id)
        cells = self.block_cells(block_id)
        return np.unique(self.cells[cells].ravel())

    def _build_faces(self) -> tuple[np.ndarray, sparse.csr_matrix]:
        if self.dim != 2:
            raise NotImplementedError("Face construction only supports 2-D meshes.")
        k = self.cells.shape[1]
        local = [(i, (i + 1) % k) for i in range(k)]
        edges = np.concatenate([self.cells[:, [a, b]] for a, b in local])
        edges.sort(axis=1)
        faces, inverse = np.unique(edges, axis=0, return_inverse=True)
        inverse = np.asarray(inverse).ravel()
        rows = np.tile(np.arange(self.n_cells), k)
        incidence = sparse.coo_matrix(
            (np.ones(len(rows)), (rows, inverse)),
            shape=(self.n_cells, len(faces)),
        ).tocsr()
        return faces, incidence

    # ------------------------------------------------------------------
    # Factory methods
    # ------------------------------------------------------------------

    @classmethod
    def from_geometry(cls, geometry: Any, resolution: float = 1.0) -> "Mesh":
        """Build a mesh from a :class:`~pygeokernel.geometry.primitives.Geometry`.

        Creates a structured triangular mesh for :class:`Rectangle`
        domains.  Cells whose centroid falls in a registered subdomain
        take that subdomain's mesh block ID; all other cells are block 0.

        Args:
            geometry: Geometry to mesh.
            resolution: Default element size.

        Returns:
            Mesh instance.
        """
        from pygeokernel.geometry.primitives import Rectangle

        if isinstance(geometry, Rectangle):
            return cls._structured_rect(geometry, resolution)

        raise NotImplementedError(
            f"Auto-meshing not yet supported for {type(geometry).__name__}.  "
            "Use import_mesh() to load a mesh from file."
        )

    @classmethod
    def _structured_rect(cls, rect: Any, resolution: float) -> "Mesh":
        """Create a structured triangular mesh for a Rectangle."""
        nx = max(2, int(np.ceil(rect.Lx / resolution)) + 1)
        ny = max(2, int(np.ceil(rect.Ly / resolution)) + 1)
        x = np.linspace(rect.x_min, rect.x_max, nx)
        y = np.linspace(rect.y_min, rect.y_max, ny)
        xx, yy = np.meshgrid(x, y)
        nodes = np.column_stack([xx.ravel(), yy.ravel()])

        # Two triangles per quad
        cells = []
        for j in range(ny - 1):
            for i in range(nx - 1):
                n0 = j * nx + i
                n1 = n0 + 1
                n2 = n0 + nx
                n3 = n2 + 1
                cells.append([n0, n1, n2])
                cells.append([n1, n3, n2])
        cells = np.array(cells, dtype=int)

        centroids = nodes[cells].mean(axis=1)
        tags = np.zeros(len(cells), dtype=int)
        for name, geom in rect.subdomains.items():
            tags[geom.contains(centroids)] = rect.subdomain_ids[name]

        return cls(
            nodes=nodes,
            cells=cells,
            cell_tags=tags,
            subdomain_map=dict(rect.subdomain_ids),
        )

    def __repr__(self) -> str:
        return (
            f"Mesh(n_nodes={self.n_nodes}, n_cells={self.n_cells}, "
            f"n_faces={self.n_faces}, blocks={self.block_ids})"
        )


def import_mesh(filename: str) -> Mesh:
    """Import a 2-D mesh from an external file using *meshio*.

    Supported formats include ``.msh`` (gmsh), ``.vtk``, ``.vtu``, etc.
    The first integer cell-data array, if any, becomes the mesh block
    IDs.

    Args:
        filename: Path to the mesh file.

    Returns:
        Mesh instance.
    """
    import meshio

    m = meshio.read(filename)
    nodes = m.points[:, :2]

    cell_block = m.cells[0]
    cells = cell_block.data

    cell_tags = None
    for key in m.cell_data:
        cell_tags = np.asarray(m.cell_data[key][0], dtype=int)
        break

    return Mesh(nodes=nodes, cells=cells, cell_tags=cell_tags)
