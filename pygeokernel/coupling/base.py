"""Base class for multi-process couplers.

Classes
-------
MPC
    A process kernel made of an ordered collection of sub-kernels.
"""

from __future__ import annotations

from abc import abstractmethod
from typing import Any, Mapping, Sequence

from pygeokernel.config import ParameterList
from pygeokernel.pk.base import ProcessKernel


class MPC(ProcessKernel):
    """Abstract multi-process coupler.

    An MPC owns an ordered sequence of sub-kernels, which may themselves
    be couplers.  The order is fixed at construction and is the order in
    which every lifecycle call is forwarded.  Subclasses implement one
    coupling strategy in :meth:`advance`.

    Args:
        sub_pks: Ordered sub-kernels.
        parameters: Coupler configuration.
        name: Coupler identifier.

    Attributes:
        sub_pks: Ordered sub-kernels.
        coupling_strategy: Name of the coupling approach.
    """

    coupling_strategy: str

    def __init__(
        self,
        sub_pks: Sequence[ProcessKernel],
        parameters: ParameterList | Mapping[str, Any] | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(parameters, name)
        self._sub_pks = tuple(sub_pks)

    @property
    def sub_pks(self) -> tuple[ProcessKernel, ...]:
        return self._sub_pks

    def setup(self, S: Any) -> None:
        for pk in self._sub_pks:
            pk.setup(S)

    def initialize(self, S: Any) -> None:
        for pk in self._sub_pks:
            pk.initialize(S)

    def set_states(self, S: Any, S_next: Any) -> None:
        super().set_states(S, S_next)
        for pk in self._sub_pks:
            pk.set_states(S, S_next)

    def commit(self, dt: float, S: Any) -> None:
        for pk in self._sub_pks:
            pk.commit(dt, S)

    def get_dt(self) -> float:
        """Smallest time step requested by any sub-kernel."""
        return min(pk.get_dt() for pk in self._sub_pks)

    @abstractmethod
    def advance(self, dt: float) -> bool:
        """Advance all sub-kernels according to the coupling strategy."""

    def validate(self) -> list[str]:
        """Validate the coupler and every sub-kernel."""
        issues = super().validate()
        if not self._sub_pks:
            issues.append(f"Coupler '{self.name}' has no sub-PKs.")
        names = [pk.name for pk in self._sub_pks]
        duplicates = sorted({n for n in names if names.count(n) > 1})
        if duplicates:
            issues.append(f"Duplicate sub-PK names: {duplicates}")
        for pk in self._sub_pks:
            issues.extend(pk.validate())
        return issues

    def __repr__(self) -> str:
        names = [pk.name for pk in self._sub_pks]
        return f"{type(self).__name__}(name={self.name!r}, sub_pks={names})"
