"""
pygeokernel: field registry and process-kernel coupling for
multiphysics geoscience simulations.

Subpackages
-----------
geometry
    Domain, mesh blocks, and meshing.
state
    Field registry: ownership arbitration, initialization, snapshots.
pk
    Process-kernel lifecycle contract and a reference kernel.
coupling
    Multi-process couplers (weak coupling).
time
    Time-integration driver with step-retry policy.
postprocess
    Visualization sinks for state snapshots.
visualization
    2-D plotting utilities.
"""

import logging

from pygeokernel import (
    config,
    geometry,
    state,
    pk,
    coupling,
    time,
    postprocess,
    visualization,
)
from pygeokernel.logging_utils import configure_logging

logging.getLogger(__name__).addHandler(logging.NullHandler())

__version__ = "0.1.0"

__all__ = [
    "config",
    "geometry",
    "state",
    "pk",
    "coupling",
    "time",
    "postprocess",
    "visualization",
    "configure_logging",
]
