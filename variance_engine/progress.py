"""
Progress checkpoints for long-running Monte Carlo loops.

Loops call ``report(fraction)`` roughly every 1% of their runs. The reporter
forwards the value to an optional callback and then polls an optional cancel
predicate; reporting never touches the numeric state of the loop, so a run
that completes gives the same result with or without a reporter.
"""

from typing import Callable, Optional, Union
import logging

logger = logging.getLogger(__name__)


class SimulationCancelled(RuntimeError):
    """Raised from a checkpoint when the caller asked to stop."""


class ProgressReporter:
    """
    Periodic checkpoint injected into simulation loops.

    Args:
        callback: Receives progress in [0, 1], monotonically non-decreasing
        should_cancel: Polled after each report; returning True aborts the run
    """

    def __init__(
        self,
        callback: Optional[Callable[[float], None]] = None,
        should_cancel: Optional[Callable[[], bool]] = None,
    ):
        self._callback = callback
        self._should_cancel = should_cancel
        self._last = 0.0

    @property
    def last(self) -> float:
        return self._last

    def report(self, fraction: float) -> None:
        fraction = min(1.0, max(0.0, float(fraction)))
        # Progress never moves backwards
        if fraction < self._last:
            fraction = self._last
        self._last = fraction

        if self._callback is not None:
            self._callback(fraction)

        if self._should_cancel is not None and self._should_cancel():
            logger.info(f"Simulation cancelled at {fraction:.0%}")
            raise SimulationCancelled("Simulation cancelled by caller.")

    def scaled(self, start: float, span: float) -> 'ProgressReporter':
        """Child reporter mapping its [0, 1] onto [start, start + span] of this one."""
        return _ScaledReporter(self, start, span)


class _ScaledReporter(ProgressReporter):

    def __init__(self, parent: ProgressReporter, start: float, span: float):
        super().__init__()
        self._parent = parent
        self._start = start
        self._span = span

    def report(self, fraction: float) -> None:
        fraction = min(1.0, max(0.0, float(fraction)))
        self._last = max(self._last, fraction)
        self._parent.report(self._start + self._last * self._span)


ProgressLike = Union[ProgressReporter, Callable[[float], None], None]


def as_reporter(progress: ProgressLike) -> ProgressReporter:
    """Wrap a plain callable (or None) into a ProgressReporter."""
    if isinstance(progress, ProgressReporter):
        return progress
    return ProgressReporter(callback=progress)


def report_interval(num_runs: int) -> int:
    """Runs between two checkpoints: about 1% of the total, at least 1."""
    return max(1, num_runs // 100)
