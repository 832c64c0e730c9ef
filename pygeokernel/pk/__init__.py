"""Process kernels: lifecycle contract and a reference kernel."""

from pygeokernel.pk.base import ProcessKernel
from pygeokernel.pk.relaxation import RelaxationPK

__all__ = [
    "ProcessKernel",
    "RelaxationPK",
]
