"""Coupling: multi-process couplers."""

from pygeokernel.coupling.base import MPC
from pygeokernel.coupling.weak import WeakMPC

__all__ = [
    "MPC",
    "WeakMPC",
]
