"""A single named field stored over the mesh.

Classes
-------
FieldLocation
    Where on the mesh a field's values live.
Field
    Field record: signature, owner, sub-field names and storage.
"""

from __future__ import annotations

import copy
from enum import Enum
from typing import Any, Sequence

import numpy as np
from numpy.typing import ArrayLike

from pygeokernel.state.errors import OwnershipError


class FieldLocation(Enum):
    """Mesh entity on which a field is discretized."""

    CELL = "cell"
    FACE = "face"
    NODE = "node"

    def __str__(self) -> str:
        return self.value


class Field:
    """A named physical quantity with a fixed location and DOF count.

    The storage is a float array of shape ``(n_entities, num_dofs)``.
    Every write names the writing module, and only the registered owner
    is allowed to write.

    Args:
        name: Unique field name.
        location: Mesh entity carrying the values.
        mesh: Mesh the field is stored on.
        owner: Owning module name, or the registry sentinel.
        num_dofs: Degrees of freedom per entity.
    """

    def __init__(
        self,
        name: str,
        location: FieldLocation,
        mesh: Any,
        owner: str,
        num_dofs: int = 1,
    ) -> None:
        if num_dofs < 1:
            raise ValueError(f"Field '{name}' needs at least one DOF, got {num_dofs}.")
        self._name = name
        self._location = FieldLocation(location)
        self._num_dofs = int(num_dofs)
        self.mesh = mesh
        self.owner = owner
        self.initialized = False
        self.io_vis = True
        self._subfield_names: list[str] = []
        self._data = np.zeros((mesh.n_entities(self._location), self._num_dofs))

    # ------------------------------------------------------------------
    # Signature
    # ------------------------------------------------------------------

    @property
    def name(self) -> str:
        return self._name

    @property
    def location(self) -> FieldLocation:
        return self._location

    @property
    def num_dofs(self) -> int:
        return self._num_dofs

    @property
    def shape(self) -> tuple[int, int]:
        """Storage shape ``(n_entities, num_dofs)``."""
        return self._data.shape

    @property
    def subfield_names(self) -> list[str]:
        """Component names, one per DOF once assigned."""
        return list(self._subfield_names)

    def set_subfield_names(self, names: Sequence[str]) -> None:
        """Name the field's components.

        Raises:
            ValueError: If the number of names differs from the DOF count.
        """
        names = list(names)
        if len(names) != self._num_dofs:
            raise ValueError(
                f"Field '{self._name}' has {self._num_dofs} DOFs but "
                f"{len(names)} sub-field names were given."
            )
        self._subfield_names = names

    def set_initialized(self, initialized: bool = True) -> None:
        self.initialized = initialized

    def set_io_vis(self, io_vis: bool = True) -> None:
        self.io_vis = io_vis

    # ------------------------------------------------------------------
    # Data access
    # ------------------------------------------------------------------

    def get_data(self, owner: str | None = None) -> np.ndarray:
        """Return the field values.

        Without *owner* a read-only view is returned.  With *owner*, the
        writable storage is returned if *owner* owns the field.

        Raises:
            OwnershipError: If *owner* is not the field's owner.
        """
        if owner is None:
            view = self._data.view()
            view.flags.writeable = False
            return view
        self._check_owner(owner)
        return self._data

    def set_data(
        self,
        owner: str,
        value: ArrayLike,
        mesh_block_id: int | None = None,
    ) -> None:
        """Write values into the field.

        *value* is either a full array (shape ``(n_entities, num_dofs)``,
        or ``(n_entities,)`` for single-DOF fields), a scalar applied to
        every DOF, or a sequence of one constant per DOF.

        Args:
            owner: Writing module; must own the field.
            value: Values to write.
            mesh_block_id: Restrict the write to one mesh block.
        """
        self._check_owner(owner)
        rows = (
            slice(None)
            if mesh_block_id is None
            else self.mesh.block_entities(self._location, mesh_block_id)
        )
        arr = np.asarray(value, dtype=float)
        if self._is_full(arr):
            self._data[rows] = arr.reshape(self._data.shape)[rows]
            return
        if arr.ndim == 0:
            self._data[rows] = float(arr)
            return
        if arr.shape != (self._num_dofs,):
            raise ValueError(
                f"Cannot assign values of shape {arr.shape} to field "
                f"'{self._name}' with storage shape {self._data.shape}."
            )
        self._data[rows] = arr[np.newaxis, :]

    def set_vector_data(
        self,
        owner: str,
        u: ArrayLike,
        mesh_block_id: int | None = None,
    ) -> None:
        """Assign the normal flux of a constant 3-vector on faces.

        Single-DOF face fields hold the normal component of a vector
        quantity, scaled by face area: ``u . n_f``.

        Raises:
            ValueError: If the field is not a single-DOF face field.
        """
        self._check_owner(owner)
        if self._location is not FieldLocation.FACE or self._num_dofs != 1:
            raise ValueError(
                f"Field '{self._name}' is not a single-DOF face field; "
                "vector data cannot be assigned."
            )
        u = np.asarray(u, dtype=float).reshape(3)
        flux = self.mesh.face_normals() @ u
        if mesh_block_id is None:
            self._data[:, 0] = flux
        else:
            faces = self.mesh.block_faces(mesh_block_id)
            self._data[faces, 0] = flux[faces]

    def set_data_pointer(self, owner: str, data: np.ndarray) -> None:
        """Replace the storage with *data* without copying.

        Raises:
            ValueError: If *data* does not match the field's storage shape.
        """
        self._check_owner(owner)
        if not isinstance(data, np.ndarray) or data.shape != self._data.shape:
            raise ValueError(
                f"Replacement storage for field '{self._name}' must be an "
                f"array of shape {self._data.shape}."
            )
        if data.dtype != np.float64:
            raise ValueError(
                f"Replacement storage for field '{self._name}' must be float64."
            )
        self._data = data

    # ------------------------------------------------------------------
    # Copy
    # ------------------------------------------------------------------

    def copy(self) -> "Field":
        """Independent copy sharing only the mesh."""
        new = copy.copy(self)
        new._data = self._data.copy()
        new._subfield_names = list(self._subfield_names)
        return new

    def assign_from(self, other: "Field") -> None:
        """Copy values, owner and flags of a structurally identical field."""
        if (other.name, other.location, other.num_dofs) != (
            self._name, self._location, self._num_dofs
        ):
            raise ValueError(
                f"Cannot assign field '{other.name}' to field '{self._name}'."
            )
        self._data[...] = other._data
        self.owner = other.owner
        self.initialized = other.initialized
        self.io_vis = other.io_vis
        self._subfield_names = list(other._subfield_names)

    # ------------------------------------------------------------------
    # Helpers
    # ------------------------------------------------------------------

    def _check_owner(self, owner: str) -> None:
        if owner != self.owner:
            raise OwnershipError(
                f"'{owner}' may not write field '{self._name}', which is "
                f"owned by '{self.owner}'.",
                fieldname=self._name,
            )

    def _is_full(self, arr: np.ndarray) -> bool:
        if arr.shape == self._data.shape:
            return True
        return self._num_dofs == 1 and arr.shape == (self._data.shape[0],)

    def __repr__(self) -> str:
        return (
            f"Field(name={self._name!r}, location={self._location.value}, "
            f"num_dofs={self._num_dofs}, owner={self.owner!r}, "
            f"initialized={self.initialized})"
        )
