"""Time-integration driver.

Classes
-------
TimeControl
    End time and step-retry policy.
Coordinator
    Runs the PK lifecycle and advances the PK tree to the end time.
"""

from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Any

from pygeokernel.config import ParameterList

logger = logging.getLogger(__name__)


class TimeStepCrash(RuntimeError):
    """The time step was cut below the minimum without a successful advance."""


@dataclass
class TimeControl:
    """Time window and failure policy of a run.

    Args:
        t_end: End time (s).
        t_start: Start time (s).  Defaults to 0.
        dt_min: Smallest time step tried before giving up (s).
        reduction: Factor applied to dt after a failed advance.
        max_cycles: Optional cap on the number of accepted steps.

    Example::

        control = TimeControl(t_end=86400.0, dt_min=1.0)
    """

    t_end: float
    t_start: float = 0.0
    dt_min: float = 1e-10
    reduction: float = 0.5
    max_cycles: int | None = None

    def __post_init__(self) -> None:
        if not 0.0 < self.reduction < 1.0:
            raise ValueError(f"reduction must be in (0, 1), got {self.reduction}.")
        if self.t_end < self.t_start:
            raise ValueError("t_end must not precede t_start.")

    @classmethod
    def from_parameters(cls, plist: ParameterList) -> "TimeControl":
        """Read ``"End time"`` and the optional retry parameters."""
        max_cycles = plist.get("Maximum cycles")
        return cls(
            t_end=plist.get_float("End time"),
            t_start=plist.get_float("Start time", 0.0),
            dt_min=plist.get_float("Minimum time step", 1e-10),
            reduction=plist.get_float("Time step reduction factor", 0.5),
            max_cycles=None if max_cycles is None else int(max_cycles),
        )


class Coordinator:
    """Drive a process kernel (usually a coupler) through a simulation.

    The coordinator owns two time levels: ``S`` (accepted) and
    ``S_next`` (trial), derived from the same registry.  A failed
    advance is retried from ``S`` with a smaller step.

    Args:
        pk: Top-level process kernel.
        S: Primary state, not yet populated by the PK.
        control: Time window and retry policy.
        vis: Optional visualization sink.
    """

    def __init__(
        self,
        pk: Any,
        S: Any,
        control: TimeControl,
        vis: Any = None,
    ) -> None:
        self.pk = pk
        self.S = S
        self.S_next: Any = None
        self.control = control
        self.vis = vis
        self.n_failures = 0

    @classmethod
    def from_parameters(
        cls, pk: Any, S: Any, parameters: Any, vis: Any = None,
    ) -> "Coordinator":
        """Build a coordinator from a ``"Time control"``-style parameter list.

        See :meth:`TimeControl.from_parameters` for the keys read.
        """
        if not isinstance(parameters, ParameterList):
            parameters = ParameterList.from_dict(parameters, name="Time control")
        return cls(pk, S, TimeControl.from_parameters(parameters), vis=vis)

    def setup(self) -> None:
        """Register, initialize and check all fields.

        Raises:
            UninitializedFieldsError: If a field has no initial value.
        """
        self.pk.setup(self.S)
        self.S.initialize()
        self.pk.initialize(self.S)
        self.S.require_all_initialized()
        self.S.time = self.control.t_start
        self.S_next = self.S.derive()
        logger.info("Setup complete: %d fields", len(self.S))

    def step(self, dt: float) -> float:
        """Take one accepted step, shrinking *dt* until it succeeds.

        Returns:
            The step size actually taken.

        Raises:
            TimeStepCrash: If *dt* drops below the minimum.
        """
        S, S_next = self.S, self.S_next
        while True:
            S_next.assign_from(S)
            S_next.time = S.time + dt
            self.pk.set_states(S, S_next)
            if not self.pk.advance(dt):
                break
            self.n_failures += 1
            new_dt = dt * self.control.reduction
            logger.warning(
                "Cycle %d: advance failed with dt = %g, retrying with dt = %g",
                S.cycle, dt, new_dt,
            )
            if new_dt < self.control.dt_min:
                raise TimeStepCrash(
                    f"Time step {new_dt:g} fell below the minimum "
                    f"{self.control.dt_min:g} at t = {S.time:g}."
                )
            dt = new_dt

        self.pk.commit(dt, S_next)
        S_next.cycle = S.cycle + 1
        S.assign_from(S_next)
        if self.vis is not None:
            S.write_vis(self.vis)
        return dt

    def run(self) -> int:
        """Advance to the end time.

        The visualization sink, if any, is closed when the run ends.

        Returns:
            Number of accepted cycles.
        """
        if self.S_next is None:
            self.setup()
        if self.vis is not None:
            self.S.write_vis(self.vis)

        t_end = self.control.t_end
        try:
            while self.S.time < t_end - 1e-12:
                if self.control.max_cycles is not None and self.S.cycle >= self.control.max_cycles:
                    break
                dt = min(self.pk.get_dt(), t_end - self.S.time)
                self.step(dt)
                logger.debug("Cycle %d: t = %g", self.S.cycle, self.S.time)
        finally:
            if self.vis is not None:
                self.vis.close()
        return self.S.cycle

    def __repr__(self) -> str:
        return f"Coordinator(pk={self.pk!r}, control={self.control!r})"
