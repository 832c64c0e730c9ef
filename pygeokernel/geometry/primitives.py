"""Geometric primitives for domain and mesh-block definition.

Classes
-------
Geometry
    Abstract base class for all geometric objects.
Rectangle
    Axis-aligned 2-D rectangle.
"""

from __future__ import annotations

from abc import ABC, abstractmethod

import numpy as np
from numpy.typing import ArrayLike


class Geometry(ABC):
    """Abstract base class for all geometric primitives.

    Subdomains registered on a geometry become numbered mesh blocks once
    the geometry is meshed.

    Attributes:
        dim: Spatial dimension (2 or 3).
        subdomains: Named subregions within the geometry.
        subdomain_ids: Mesh block ID of each named subregion.
    """

    dim: int
    subdomains: dict[str, "Geometry"]

    def __init__(self, dim: int) -> None:
        self.dim = dim
        self.subdomains: dict[str, Geometry] = {}
        self.subdomain_ids: dict[str, int] = {}

    # ------------------------------------------------------------------
    # Subdomain management
    # ------------------------------------------------------------------

    def add_subdomain(
        self,
        name: str,
        geometry: "Geometry",
        block_id: int | None = None,
    ) -> int:
        """Register a named subdomain inside this geometry.

        Args:
            name: Unique identifier for the subdomain.
            geometry: Geometric object describing the subdomain.
            block_id: Mesh block ID given to cells inside the subdomain.
                Defaults to one more than the largest ID in use.

        Returns:
            The mesh block ID of the subdomain.

        Raises:
            ValueError: If the subdomain dimension does not match, or the
                block ID is already taken by another subdomain.
        """
        if geometry.dim != self.dim:
            raise ValueError(
                f"Subdomain dimension ({geometry.dim}) must match "
                f"domain dimension ({self.dim})."
            )
        if block_id is None:
            block_id = max(self.subdomain_ids.values(), default=0) + 1
        taken = {v: k for k, v in self.subdomain_ids.items() if k != name}
        if block_id in taken:
            raise ValueError(
                f"Mesh block ID {block_id} already used by subdomain "
                f"'{taken[block_id]}'."
            )
        self.subdomains[name] = geometry
        self.subdomain_ids[name] = int(block_id)
        return int(block_id)

    # ------------------------------------------------------------------
    # Queries
    # ------------------------------------------------------------------

    @abstractmethod
    def contains(self, points: ArrayLike) -> np.ndarray:
        """Test whether each point lies inside the geometry.

        Args:
            points: Array of shape ``(N, dim)``.

        Returns:
            Boolean array of shape ``(N,)``.
        """

    # ------------------------------------------------------------------
    # Meshing convenience
    # ------------------------------------------------------------------

    def generate_mesh(self, resolution: float = 1.0) -> "Mesh":
        """Generate a mesh for this geometry.

        Args:
            resolution: Default element size.

        Returns:
            A :class:`~pygeokernel.geometry.mesh.Mesh` instance.
        """
        from pygeokernel.geometry.mesh import Mesh

        return Mesh.from_geometry(self, resolution=resolution)


class Rectangle(Geometry):
    """Axis-aligned rectangle.

    Args:
        Lx: Width (x-extent).
        Ly: Height (y-extent).
        origin: Bottom-left corner ``(x0, y0)``.  Defaults to ``(0, 0)``.
        x0: Alternative: left x coordinate.
        y0: Alternative: bottom y coordinate.
        width: Alternative name for *Lx* (used together with *x0*/*y0*).
        height: Alternative name for *Ly*.
    """

    def __init__(
        self,
        Lx: float | None = None,
        Ly: float | None = None,
        origin: tuple[float, float] = (0.0, 0.0),
        *,
        x0: float | None = None,
        y0: float | None = None,
        width: float | None = None,
        height: float | None = None,
    ) -> None:
        super().__init__(dim=2)

        if x0 is not None and y0 is not None:
            origin = (x0, y0)
        _w = width if width is not None else Lx
        _h = height if height is not None else Ly
        if _w is None or _h is None:
            raise ValueError("Must provide (Lx, Ly) or (width, height).")

        self.origin = np.asarray(origin, dtype=float)
        self.Lx = float(_w)
        self.Ly = float(_h)

    @property
    def x_min(self) -> float:
        return float(self.origin[0])

    @property
    def x_max(self) -> float:
        return float(self.origin[0] + self.Lx)

    @property
    def y_min(self) -> float:
        return float(self.origin[1])

    @property
    def y_max(self) -> float:
        return float(self.origin[1] + self.Ly)

    def contains(self, points: ArrayLike) -> np.ndarray:
        pts = np.atleast_2d(np.asarray(points, dtype=float))
        x, y = pts[:, 0], pts[:, 1]
        return (
            (x >= self.x_min) & (x <= self.x_max)
            & (y >= self.y_min) & (y <= self.y_max)
        )

    def __repr__(self) -> str:
        return (
            f"Rectangle(Lx={self.Lx}, Ly={self.Ly}, "
            f"origin=({self.origin[0]}, {self.origin[1]}))"
        )
