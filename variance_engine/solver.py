"""
Bisection root finding shared by the payout and skill curve fits.
"""

from dataclasses import dataclass
from typing import Callable
import logging

logger = logging.getLogger(__name__)


@dataclass
class SolverResult:
    """
    Attributes:
        root: Last midpoint evaluated
        value: func(root)
        iterations: Number of midpoints evaluated
        converged: True if |value - target| fell below the tolerance
    """
    root: float
    value: float
    iterations: int
    converged: bool


def bisect(
    func: Callable[[float], float],
    target: float,
    lo: float,
    hi: float,
    max_iterations: int = 60,
    tolerance: float = 0.0,
) -> SolverResult:
    """
    Find x in [lo, hi] with func(x) ≈ target for a non-decreasing func.

    Each iteration evaluates the midpoint; the search stops early once
    |func(mid) - target| < tolerance (a tolerance of 0 always runs the full
    iteration budget). The bracket is trusted as given: if the target lies
    outside [func(lo), func(hi)] the result converges to the nearer end.

    Args:
        func: Monotone non-decreasing function
        target: Value to match
        lo: Lower end of the bracket
        hi: Upper end of the bracket
        max_iterations: Maximum midpoints to evaluate
        tolerance: Absolute tolerance on func(x) - target

    Returns:
        SolverResult for the last midpoint evaluated
    """
    if lo > hi:
        lo, hi = hi, lo

    root = lo
    value = float('nan')
    iterations = 0

    for iterations in range(1, max_iterations + 1):
        root = (lo + hi) / 2
        value = func(root)
        if abs(value - target) < tolerance:
            return SolverResult(root=root, value=value, iterations=iterations, converged=True)
        if value < target:
            lo = root
        else:
            hi = root

    if iterations == 0:
        value = func(root)

    converged = tolerance > 0 and abs(value - target) < tolerance
    logger.debug(
        f"Bisection finished after {iterations} iterations: "
        f"x={root:.6g}, f(x)={value:.6g}, target={target:.6g}"
    )
    return SolverResult(root=root, value=value, iterations=iterations, converged=converged)
