# voxel_geomech/cancel.py
"""Cooperative cancellation and progress reporting for long-running runs."""

import logging
import threading
from typing import Callable, Optional

from .params import GeomechanicsError

logger = logging.getLogger(__name__)

ProgressCallback = Callable[[float], None]


class SimulationCancelled(GeomechanicsError):
    """The run was stopped through its CancellationToken. Partial state may exist."""


class CancellationToken:
    """
    Thread-safe flag polled by the solver and the fluid loop.

    Examples:
    ---------
    >>> token = CancellationToken()
    >>> token.cancel()
    >>> token.cancelled
    True
    """

    def __init__(self):
        self._event = threading.Event()

    def cancel(self) -> None:
        self._event.set()

    @property
    def cancelled(self) -> bool:
        return self._event.is_set()

    def raise_if_cancelled(self, where: str = "") -> None:
        if self._event.is_set():
            raise SimulationCancelled(f"Cancelled{' during ' + where if where else ''}")


class ProgressReporter:
    """Clamps fractional progress to [0, 1] and forwards it to an optional callback."""

    def __init__(self, callback: Optional[ProgressCallback] = None):
        self._callback = callback
        self.last = 0.0

    def __call__(self, fraction: float) -> None:
        fraction = min(max(float(fraction), 0.0), 1.0)
        self.last = fraction
        if self._callback is not None:
            self._callback(fraction)


def check_cancel(token: Optional[CancellationToken], where: str = "") -> None:
    if token is not None:
        token.raise_if_cancelled(where)
