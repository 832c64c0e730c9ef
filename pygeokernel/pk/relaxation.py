"""Reference process kernel: exponential relaxation of a cell field.

Each step solves ``du/dt = -k (u - u_target)`` exactly:

    u_new = u_target + (u_old - u_target) exp(-k dt)

The target is a constant or another cell field, read from the new
state so that a PK advanced earlier in the same step is seen.  Two
relaxation PKs make a minimal weakly-coupled system.
"""

from __future__ import annotations

import logging
from typing import Any, Mapping

import numpy as np

from pygeokernel.config import ParameterList
from pygeokernel.pk.base import ProcessKernel
from pygeokernel.state.field import FieldLocation
from pygeokernel.state.state import OWNER_STATE, FieldHandle

logger = logging.getLogger(__name__)


class RelaxationPK(ProcessKernel):
    """Relax a single-DOF cell field toward a target.

    Parameters (in the PK's parameter list):

    * ``"Primary variable"`` -- owned field name (required).
    * ``"Relaxation rate"`` -- k (1/s), default 1.
    * ``"Target value"`` -- constant target, default 0.
    * ``"Target field"`` -- name of a cell field used as target instead.
    * ``"Initial value"`` -- owner-side initial condition.
    * ``"Initial time step"`` -- requested dt, default 1.
    * ``"Maximum time step"`` -- steps longer than this fail.
    """

    def __init__(
        self,
        parameters: ParameterList | Mapping[str, Any] | None = None,
        name: str | None = None,
    ) -> None:
        super().__init__(parameters, name)
        self.fieldname = self.parameters["Primary variable"]
        self.rate = self.parameters.get_float("Relaxation rate", 1.0)
        self.target_value = self.parameters.get_float("Target value", 0.0)
        self.target_field = self.parameters.get("Target field")
        self.dt = self.parameters.get_float("Initial time step", 1.0)
        self.max_dt = self.parameters.get("Maximum time step")
        self._handle: FieldHandle | None = None

    def setup(self, S: Any) -> None:
        self._handle = S.require_field(self.fieldname, FieldLocation.CELL, self.name)
        self._handle.set_subfield_names([self.fieldname])
        if self.target_field is not None:
            S.require_field(self.target_field, FieldLocation.CELL, OWNER_STATE)

    def initialize(self, S: Any) -> None:
        handle = self._handle.on(S)
        if handle.record.initialized:
            return
        if "Initial value" in self.parameters:
            handle.set(self.parameters.get_float("Initial value"))
            handle.set_initialized()

    def advance(self, dt: float) -> bool:
        if self.max_dt is not None and dt > float(self.max_dt):
            logger.debug("%s: dt = %g exceeds maximum %s", self.name, dt, self.max_dt)
            return True
        u_old = self.S.get_field(self.fieldname)
        if self.target_field is not None:
            target = self.S_next.get_field(self.target_field)
        else:
            target = self.target_value
        u_new = target + (u_old - target) * np.exp(-self.rate * dt)
        self._handle.on(self.S_next).set(u_new)
        return False

    def get_dt(self) -> float:
        return self.dt
