"""Time: time-integration driver and step-retry policy."""

from pygeokernel.time.coordinator import Coordinator, TimeControl, TimeStepCrash

__all__ = [
    "Coordinator",
    "TimeControl",
    "TimeStepCrash",
]
