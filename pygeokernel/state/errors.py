"""Errors raised by the field registry.

Every registry error carries a :class:`StateErrorKind` so that callers
can branch on the failure without matching message text.  Advance
failures of process kernels are not exceptions; they are reported as a
boolean by ``advance()``.
"""

from __future__ import annotations

from enum import Enum


class StateErrorKind(Enum):
    """Taxonomy of registry failures."""

    SIGNATURE_CONFLICT = "signature-conflict"
    DOUBLE_OWNERSHIP = "double-ownership"
    INCOMPATIBLE_STATE = "incompatible-state"
    NOT_OWNER = "not-owner"


class StateError(ValueError):
    """Base class for unrecoverable registry configuration errors."""

    kind: StateErrorKind

    def __init__(self, message: str, fieldname: str | None = None) -> None:
        super().__init__(message)
        self.fieldname = fieldname


class SignatureConflictError(StateError):
    """Two requests for the same field disagree on location or DOFs."""

    kind = StateErrorKind.SIGNATURE_CONFLICT


class DoubleOwnershipError(StateError):
    """Two modules claim ownership of the same field."""

    kind = StateErrorKind.DOUBLE_OWNERSHIP


class IncompatibleStateError(StateError):
    """Copy between registries that do not share a structure."""

    kind = StateErrorKind.INCOMPATIBLE_STATE


class OwnershipError(StateError):
    """Mutable access requested by a module that does not own the field."""

    kind = StateErrorKind.NOT_OWNER


class UninitializedFieldsError(RuntimeError):
    """Raised when fields lack initial conditions before the first step.

    Attributes:
        fieldnames: Names of the uninitialized fields, in registry order.
    """

    def __init__(self, fieldnames: list[str]) -> None:
        super().__init__(
            "Fields have not been initialized by their owner or by "
            f"configuration constants: {', '.join(fieldnames)}"
        )
        self.fieldnames = list(fieldnames)


_ERRORS = {
    cls.kind: cls
    for cls in (
        SignatureConflictError,
        DoubleOwnershipError,
        IncompatibleStateError,
        OwnershipError,
    )
}


def error_for(kind: StateErrorKind) -> type[StateError]:
    """Exception class raised for a given error kind."""
    return _ERRORS[kind]
