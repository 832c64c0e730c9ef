"""The field registry shared by all process kernels.

A :class:`State` holds every field of one simulation snapshot.  Process
kernels register the fields they need with :meth:`State.require_field`
during setup; the registry arbitrates ownership so that each field has
at most one writer, and checks that every module agrees on where the
field lives.  Fields owned by nobody (independent variables) get their
initial values from configuration in :meth:`State.initialize`.

Only one State is populated by registration.  Every other State used in
a run (old/new time levels, trial states) is derived from it with
:meth:`State.derive` and kept in sync with :meth:`State.assign_from`.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from typing import Any, Iterator, Mapping, Protocol, Sequence

import numpy as np
from numpy.typing import ArrayLike

from pygeokernel.config import ParameterList
from pygeokernel.state.errors import (
    IncompatibleStateError,
    OwnershipError,
    StateErrorKind,
    UninitializedFieldsError,
    error_for,
)
from pygeokernel.state.field import Field, FieldLocation

logger = logging.getLogger(__name__)

#: Owner of fields that are declared but not claimed by any module.
OWNER_STATE = "state"


class Visualization(Protocol):
    """What :meth:`State.write_vis` needs from an output sink."""

    def dump_requested(self, cycle: int) -> bool: ...

    def is_disabled(self) -> bool: ...

    def create_timestep(self, time: float, cycle: int) -> None: ...

    def write_vector(
        self,
        data: np.ndarray,
        names: Sequence[str],
        fieldname: str | None = None,
        location: FieldLocation | None = None,
    ) -> None: ...


class FieldHandle:
    """Access to one field, returned by :meth:`State.require_field`.

    A writable handle is the write capability of the field's owner: its
    setters do not take an owner name.  Handles of readers only expose
    read-only data.  A handle can be rebound to any snapshot derived
    from the same registry with :meth:`on`.
    """

    def __init__(self, state: "State", name: str, owner: str) -> None:
        self._state = state
        self.name = name
        self.owner = owner

    @property
    def writable(self) -> bool:
        return self.owner != OWNER_STATE and self.record.owner == self.owner

    @property
    def record(self) -> Field:
        return self._state.get_field_record(self.name)

    @property
    def data(self) -> np.ndarray:
        """Read-only view of the values."""
        return self.record.get_data()

    def get_data(self) -> np.ndarray:
        """Mutable values; only for the owner."""
        return self.record.get_data(self._writer())

    def set(self, value: ArrayLike, mesh_block_id: int | None = None) -> None:
        self.record.set_data(self._writer(), value, mesh_block_id)

    def set_vector(self, u: ArrayLike, mesh_block_id: int | None = None) -> None:
        self.record.set_vector_data(self._writer(), u, mesh_block_id)

    def set_pointer(self, data: np.ndarray) -> None:
        self.record.set_data_pointer(self._writer(), data)

    def set_subfield_names(self, names: Sequence[str]) -> None:
        self._writer()
        self.record.set_subfield_names(names)

    def set_initialized(self, initialized: bool = True) -> None:
        self._writer()
        self.record.set_initialized(initialized)

    def on(self, state: "State") -> "FieldHandle":
        """The same capability on another snapshot of this registry.

        Raises:
            IncompatibleStateError: If *state* does not share this
                registry's structure.
        """
        if not self._state.shares_structure_with(state):
            raise IncompatibleStateError(
                f"Cannot rebind handle of field '{self.name}' to an "
                "unrelated state.",
                fieldname=self.name,
            )
        return FieldHandle(state, self.name, self.owner)

    def _writer(self) -> str:
        if not self.writable:
            raise OwnershipError(
                f"Handle of '{self.owner}' on field '{self.name}' is read-only.",
                fieldname=self.name,
            )
        return self.owner

    def __repr__(self) -> str:
        return (
            f"FieldHandle(name={self.name!r}, owner={self.owner!r}, "
            f"writable={self.writable})"
        )


@dataclass(frozen=True)
class RequireResult:
    """Outcome of :meth:`State.try_require_field`.

    Attributes:
        handle: Field handle on success, else ``None``.
        error: Failure kind, ``None`` on success.
        message: Human-readable failure description.
    """

    handle: FieldHandle | None
    error: StateErrorKind | None = None
    message: str = ""

    @property
    def ok(self) -> bool:
        return self.error is None


@dataclass
class InitializationReport:
    """Which fields :meth:`State.initialize` assigned from configuration.

    Attributes:
        global_fields: Fields assigned domain-wide.
        block_fields: Fields assigned per mesh block ID.
    """

    global_fields: list[str] = field(default_factory=list)
    block_fields: dict[int, list[str]] = field(default_factory=dict)

    @property
    def fieldnames(self) -> set[str]:
        names = set(self.global_fields)
        for block in self.block_fields.values():
            names.update(block)
        return names


class State:
    """Registry of the named fields of one simulation snapshot.

    Args:
        mesh: Mesh all fields are stored on.
        parameters: Initial-condition configuration, a
            :class:`~pygeokernel.config.ParameterList` or a mapping.

    Attributes:
        time: Current simulation time.
        cycle: Number of accepted time steps.
        status: Status flag of the snapshot.
        density: Constant water density.
        viscosity: Constant viscosity.
    """

    def __init__(
        self,
        mesh: Any,
        parameters: ParameterList | Mapping[str, Any] | None = None,
    ) -> None:
        self.mesh = mesh
        if parameters is None:
            parameters = ParameterList(name="State")
        elif not isinstance(parameters, ParameterList):
            parameters = ParameterList.from_dict(parameters, name="State")
        self.parameters = parameters

        self._fields: list[Field] = []
        self._index: dict[str, int] = {}
        self._structure_shared = False

        self.density = 0.0
        self.viscosity = 0.0
        self._gravity = np.zeros(3)
        self.time = 0.0
        self.cycle = 0
        self.status = 0

    # ------------------------------------------------------------------
    # Registration
    # ------------------------------------------------------------------

    def require_field(
        self,
        fieldname: str,
        location: FieldLocation | str,
        owner: str = OWNER_STATE,
        num_dofs: int = 1,
    ) -> FieldHandle:
        """Declare that *owner* needs field *fieldname*.

        The first request creates the field and fixes its signature.
        Later requests may claim an unowned field, or read an owned one,
        as long as the signature matches.

        Args:
            fieldname: Field name.
            location: Mesh entity carrying the values.
            owner: Requesting module, or :data:`OWNER_STATE` to read
                without owning.
            num_dofs: Degrees of freedom per entity.

        Returns:
            A :class:`FieldHandle`, writable if *owner* owns the field.

        Raises:
            SignatureConflictError: On a location or DOF mismatch.
            DoubleOwnershipError: If another module already owns it.
            IncompatibleStateError: If snapshots share this registry.
        """
        result = self.try_require_field(fieldname, location, owner, num_dofs)
        if result.error is not None:
            raise error_for(result.error)(result.message, fieldname=fieldname)
        return result.handle

    def try_require_field(
        self,
        fieldname: str,
        location: FieldLocation | str,
        owner: str = OWNER_STATE,
        num_dofs: int = 1,
    ) -> RequireResult:
        """Like :meth:`require_field`, but reports failure as a value."""
        location = FieldLocation(location)

        if self._structure_shared:
            return RequireResult(
                None,
                StateErrorKind.INCOMPATIBLE_STATE,
                f"Cannot require field '{fieldname}': the field structure is "
                "shared with derived states.",
            )

        if fieldname not in self._index:
            self._index[fieldname] = len(self._fields)
            self._fields.append(Field(fieldname, location, self.mesh, owner, num_dofs))
            logger.debug(
                "Created field %s on %s (%d dofs), owner %s",
                fieldname, location, num_dofs, owner,
            )
            return RequireResult(FieldHandle(self, fieldname, owner))

        record = self._fields[self._index[fieldname]]
        if location != record.location or num_dofs != record.num_dofs:
            return RequireResult(
                None,
                StateErrorKind.SIGNATURE_CONFLICT,
                f"Requested field {fieldname} on location {location} with "
                f"{num_dofs} dofs already exists on location {record.location} "
                f"with {record.num_dofs} dofs.",
            )

        if record.owner == OWNER_STATE:
            if owner != OWNER_STATE:
                logger.debug("Field %s claimed by %s", fieldname, owner)
            record.owner = owner
        elif owner != OWNER_STATE:
            return RequireResult(
                None,
                StateErrorKind.DOUBLE_OWNERSHIP,
                f"Requested field {fieldname} by {owner} already exists and is "
                f"owned by {record.owner}.",
            )
        return RequireResult(FieldHandle(self, fieldname, owner))

    # ------------------------------------------------------------------
    # Initialization
    # ------------------------------------------------------------------

    def initialize(self) -> InitializationReport:
        """Initialize constants and fields from configuration.

        Reads gravity (required), density and viscosity (optional), then
        assigns ``"Constant <sub-field>"`` values to cell fields, first
        domain-wide and then per ``"Mesh block N"`` sublist.  Single-DOF
        face fields take ``"Constant <field> x/y/z"`` per mesh block.
        A field is only assigned when every one of its components has a
        constant.

        Returns:
            The fields assigned in each pass.

        Raises:
            KeyError: If a gravity component or a counted mesh block
                sublist is missing.
        """
        plist = self.parameters
        self.set_gravity([plist.get_float(f"Gravity {c}") for c in "xyz"])

        if plist.is_parameter("Constant water density"):
            self.set_density(plist.get_float("Constant water density"))
            logger.info("Initializing in state: density = %g", self.density)
        if plist.is_parameter("Constant viscosity"):
            self.set_viscosity(plist.get_float("Constant viscosity"))
            logger.info("Initializing in state: viscosity = %g", self.viscosity)

        report = InitializationReport()

        for record in self._fields:
            if record.location is not FieldLocation.CELL:
                continue
            values = self._cell_constants(record, plist)
            if values is not None:
                record.set_data(record.owner, values)
                record.set_initialized()
                report.global_fields.append(record.name)
                logger.debug("Assigned %s = %s over the domain", record.name, values)

        num_blocks = plist.get_int("Number of mesh blocks", 0)
        for nb in range(1, num_blocks + 1):
            key = f"Mesh block {nb}"
            if not plist.is_sublist(key):
                raise KeyError(
                    f"Sublist '{key}' is missing from parameter list '{plist.name}'."
                )
            sublist = plist[key]
            block_id = sublist.get_int("Mesh block ID")
            assigned = report.block_fields.setdefault(block_id, [])

            for record in self._fields:
                if record.location is FieldLocation.CELL:
                    values = self._cell_constants(record, sublist)
                    if values is None:
                        continue
                    record.set_data(record.owner, values, block_id)
                elif record.location is FieldLocation.FACE and record.num_dofs == 1:
                    keys = [f"Constant {record.name} {c}" for c in "xyz"]
                    if not all(sublist.is_parameter(k) for k in keys):
                        continue
                    values = np.array([sublist.get_float(k) for k in keys])
                    record.set_vector_data(record.owner, values, block_id)
                else:
                    continue
                record.set_initialized()
                assigned.append(record.name)
                logger.debug(
                    "Assigned %s = %s on mesh block %d", record.name, values, block_id,
                )

        missing = self.uninitialized_fields()
        if missing:
            logger.debug("Fields left to their owners: %s", ", ".join(missing))
        return report

    @staticmethod
    def _cell_constants(record: Field, plist: ParameterList) -> np.ndarray | None:
        """Per-DOF constants for *record*, or ``None`` unless all are given."""
        names = record.subfield_names
        if len(names) != record.num_dofs:
            return None
        keys = [f"Constant {name}" for name in names]
        if not all(plist.is_parameter(k) for k in keys):
            return None
        return np.array([plist.get_float(k) for k in keys])

    def uninitialized_fields(self) -> list[str]:
        """Names of fields without initial values, in registry order."""
        return [f.name for f in self._fields if not f.initialized]

    def check_all_initialized(self) -> bool:
        """True iff every field has been initialized."""
        return all(f.initialized for f in self._fields)

    def require_all_initialized(self) -> None:
        """Raise :class:`UninitializedFieldsError` unless all fields are set."""
        missing = self.uninitialized_fields()
        if missing:
            raise UninitializedFieldsError(missing)

    # ------------------------------------------------------------------
    # Field access
    # ------------------------------------------------------------------

    def get_field_record(self, fieldname: str) -> Field:
        try:
            return self._fields[self._index[fieldname]]
        except KeyError:
            raise KeyError(f"Field '{fieldname}' has not been required.") from None

    def get_field(self, fieldname: str, owner: str | None = None) -> np.ndarray:
        """Field values: read-only, or mutable when *owner* owns the field."""
        return self.get_field_record(fieldname).get_data(owner)

    def handle(self, fieldname: str, owner: str = OWNER_STATE) -> FieldHandle:
        """Handle on an already-required field."""
        self.get_field_record(fieldname)
        return FieldHandle(self, fieldname, owner)

    def set_field(
        self,
        fieldname: str,
        owner: str,
        value: ArrayLike,
        mesh_block_id: int | None = None,
    ) -> None:
        self.get_field_record(fieldname).set_data(owner, value, mesh_block_id)

    def set_vector_field(
        self,
        fieldname: str,
        owner: str,
        u: ArrayLike,
        mesh_block_id: int | None = None,
    ) -> None:
        self.get_field_record(fieldname).set_vector_data(owner, u, mesh_block_id)

    def set_field_pointer(self, fieldname: str, owner: str, data: np.ndarray) -> None:
        self.get_field_record(fieldname).set_data_pointer(owner, data)

    def set_subfield_names(self, fieldname: str, names: Sequence[str]) -> None:
        self.get_field_record(fieldname).set_subfield_names(names)

    # ------------------------------------------------------------------
    # Simulation-wide constants
    # ------------------------------------------------------------------

    @property
    def gravity(self) -> np.ndarray:
        """Gravity vector (a copy)."""
        return self._gravity.copy()

    def set_density(self, density: float) -> None:
        self.density = float(density)

    def set_viscosity(self, viscosity: float) -> None:
        self.viscosity = float(viscosity)

    def set_gravity(self, gravity: ArrayLike) -> None:
        g = np.asarray(gravity, dtype=float)
        if g.shape != (3,):
            raise ValueError(f"Gravity needs three components, got shape {g.shape}.")
        self._gravity = g.copy()

    # ------------------------------------------------------------------
    # Snapshots
    # ------------------------------------------------------------------

    def derive(self) -> "State":
        """Create an independent snapshot with the same field structure.

        Field values, constants, time, cycle and status are deep-copied.
        The name-to-index map is shared, and neither state accepts new
        registrations afterwards.
        """
        self._structure_shared = True
        new = State.__new__(State)
        new.mesh = self.mesh
        new.parameters = self.parameters
        new._index = self._index
        new._fields = [f.copy() for f in self._fields]
        new._structure_shared = True
        new.density = self.density
        new.viscosity = self.viscosity
        new._gravity = self._gravity.copy()
        new.time = self.time
        new.cycle = self.cycle
        new.status = self.status
        return new

    def __copy__(self) -> "State":
        return self.derive()

    def __deepcopy__(self, memo: dict) -> "State":
        return self.derive()

    def shares_structure_with(self, other: "State") -> bool:
        """True if *other* is this state or was derived from a common one."""
        return other._index is self._index

    def assign_from(self, other: "State") -> None:
        """Copy all data of a structurally identical state into this one.

        Raises:
            IncompatibleStateError: If the field count or signature
                differs; this state is left unmodified.
        """
        if other is self:
            return
        if len(other._fields) != len(self._fields) or other.signature() != self.signature():
            raise IncompatibleStateError(
                "Attempted copy of non-compatible states: "
                f"{len(other._fields)} fields into {len(self._fields)} fields."
            )
        for mine, theirs in zip(self._fields, other._fields):
            mine.assign_from(theirs)
        self.density = other.density
        self.viscosity = other.viscosity
        self._gravity = other._gravity.copy()
        self.time = other.time
        self.cycle = other.cycle
        self.status = other.status

    def signature(self) -> tuple[tuple[str, FieldLocation, int], ...]:
        """Ordered ``(name, location, num_dofs)`` of every field."""
        return tuple((f.name, f.location, f.num_dofs) for f in self._fields)

    # ------------------------------------------------------------------
    # Output
    # ------------------------------------------------------------------

    def write_vis(self, vis: Visualization) -> bool:
        """Write a visualization snapshot if *vis* asks for one.

        Returns:
            True if a snapshot was written.
        """
        if not vis.dump_requested(self.cycle) or vis.is_disabled():
            return False
        vis.create_timestep(self.time, self.cycle)
        for record in self._fields:
            if record.io_vis:
                vis.write_vector(
                    record.get_data(), record.subfield_names,
                    fieldname=record.name, location=record.location,
                )
        return True

    # ------------------------------------------------------------------
    # Container protocol
    # ------------------------------------------------------------------

    @property
    def field_names(self) -> list[str]:
        return [f.name for f in self._fields]

    def __contains__(self, fieldname: str) -> bool:
        return fieldname in self._index

    def __len__(self) -> int:
        return len(self._fields)

    def __iter__(self) -> Iterator[Field]:
        return iter(self._fields)

    def __repr__(self) -> str:
        return (
            f"State(n_fields={len(self._fields)}, time={self.time}, "
            f"cycle={self.cycle})"
        )
