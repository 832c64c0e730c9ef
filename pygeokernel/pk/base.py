"""Abstract base class for process kernels.

A process kernel (PK) evolves one physical process over the shared
mesh.  All of its physical state lives in fields of the
:class:`~pygeokernel.state.State` registry; a PK only keeps its
configuration and references to the states it works on.

Lifecycle, driven by a coupler or the time driver:

1. ``setup(S)`` -- register fields with ``S.require_field``.
2. ``initialize(S)`` -- set initial values of owned fields that the
   registry did not initialize from configuration.
3. ``set_states(S, S_next)`` then ``advance(dt)`` -- compute the new
   time level into ``S_next``.  Returns ``True`` on failure.
4. ``commit(dt, S_next)`` -- finalize an accepted step.
"""

from __future__ import annotations

from abc import ABC, abstractmethod
from typing import Any, Mapping

from pygeokernel.config import ParameterList


class ProcessKernel(ABC):
    """Process kernel capability interface.

    Args:
        parameters: PK configuration.
        name: Identifier used as the owner name of the fields this PK
            writes.  Defaults to the ``"PK name"`` parameter, then to
            the class name.

    Attributes:
        name: Owner identifier.
        parameters: PK configuration.
        S: State at the beginning of the current step.
        S_next: State receiving the result of the current step.
    """

    def __init__(
        self,
        parameters: ParameterList | Mapping[str, Any] | None = None,
        name: str | None = None,
    ) -> None:
        if parameters is None:
            parameters = ParameterList()
        elif not isinstance(parameters, ParameterList):
            parameters = ParameterList.from_dict(parameters)
        self.parameters = parameters
        self.name = name or parameters.get("PK name") or type(self).__name__
        self.S: Any = None
        self.S_next: Any = None

    @abstractmethod
    def setup(self, S: Any) -> None:
        """Register required fields on the primary state."""

    @abstractmethod
    def initialize(self, S: Any) -> None:
        """Set initial conditions of owned fields still uninitialized."""

    @abstractmethod
    def advance(self, dt: float) -> bool:
        """Advance from ``S`` to ``S_next`` over *dt*.

        A failing advance must report failure instead of leaving partial
        writes unflagged.

        Returns:
            True if the step failed.
        """

    @abstractmethod
    def get_dt(self) -> float:
        """Time-step size this PK would like to take next."""

    def commit(self, dt: float, S: Any) -> None:
        """Finalize an accepted step of size *dt* whose result is *S*."""

    def set_states(self, S: Any, S_next: Any) -> None:
        """Point the PK at the old and new time levels."""
        self.S = S
        self.S_next = S_next

    def validate(self) -> list[str]:
        """Run basic consistency checks.

        Returns:
            List of warning/error strings (empty if all OK).
        """
        issues: list[str] = []
        if not self.name:
            issues.append("PK has no name.")
        return issues

    def __repr__(self) -> str:
        return f"{type(self).__name__}(name={self.name!r})"
