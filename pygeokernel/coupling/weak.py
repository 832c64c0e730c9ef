"""Weak (sequential, non-iterative) coupling.

Sub-kernels are advanced once each, in order.  Later kernels see the
results written by earlier ones in the new state; earlier kernels are
never re-advanced with the results of later ones.
"""

from __future__ import annotations

import logging

from pygeokernel.coupling.base import MPC

logger = logging.getLogger(__name__)


class WeakMPC(MPC):
    """Weakly coupled multi-process coupler.

    The first failing sub-kernel stops the step: the remaining
    sub-kernels are not advanced and failure is reported upward.  The
    coupler never retries; shrinking the time step is the driver's job.

    Attributes:
        last_failure: ``(index, name)`` of the sub-kernel that failed the
            last advance, or ``None`` if it succeeded.
    """

    coupling_strategy = "weak"

    def __init__(self, *args, **kwargs) -> None:
        super().__init__(*args, **kwargs)
        self.last_failure: tuple[int, str] | None = None

    def advance(self, dt: float) -> bool:
        """Advance each sub-kernel in order.

        Returns:
            True if a sub-kernel failed.
        """
        self.last_failure = None
        for index, pk in enumerate(self.sub_pks):
            if pk.advance(dt):
                self.last_failure = (index, pk.name)
                logger.warning(
                    "%s: sub-PK %d (%s) failed to advance dt = %g",
                    self.name, index, pk.name, dt,
                )
                return True
        return False
