"""State: field registry, ownership arbitration and snapshots."""

from pygeokernel.state.errors import (
    StateErrorKind,
    StateError,
    SignatureConflictError,
    DoubleOwnershipError,
    IncompatibleStateError,
    OwnershipError,
    UninitializedFieldsError,
)
from pygeokernel.state.field import Field, FieldLocation
from pygeokernel.state.state import (
    OWNER_STATE,
    FieldHandle,
    InitializationReport,
    RequireResult,
    State,
    Visualization,
)

__all__ = [
    "StateErrorKind",
    "StateError",
    "SignatureConflictError",
    "DoubleOwnershipError",
    "IncompatibleStateError",
    "OwnershipError",
    "UninitializedFieldsError",
    "Field",
    "FieldLocation",
    "OWNER_STATE",
    "FieldHandle",
    "InitializationReport",
    "RequireResult",
    "State",
    "Visualization",
]
