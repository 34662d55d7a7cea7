"""
Skill model: an exponential tilt of the finish distribution.

With n entrants, finishing rank k (0 = winner) has probability

    P(k) = exp(a*k) / S,   a = -beta / max(1, n - 1),   S = sum_{k<n} exp(a*k)

beta = 0 is a uniform finish (ROI = prize_pool / (n * cost) - 1), positive beta
favours the top places. beta is solved so the expected ROI on the entry cost
matches the requested target.
"""

import logging
import math
from typing import List, Tuple

import numpy as np

from ..solver import bisect
from ..types import PayoutModel, SkillModel

logger = logging.getLogger(__name__)

ROI_TARGET_MIN = -1.0
ROI_TARGET_MAX = 100.0
BETA_MAX_EXPANSION = 20000
BETA_ITERATIONS = 70
ROI_TOLERANCE = 1e-6


def geometric_sum_exp(a: float, n: int) -> float:
    """sum_{k=0}^{n-1} exp(a*k), computed with expm1."""
    if n <= 0:
        return 0.0
    if abs(a) < 1e-14:
        return float(n)
    return math.expm1(a * n) / math.expm1(a)


def finish_probabilities(
    field_size: int,
    num_paid: int,
    beta: float,
) -> Tuple[np.ndarray, float]:
    """
    Probabilities of finishing in each paid place, and of busting.

    Returns:
        (p_paid, p_bust) with p_bust floored at 0
    """
    a = -beta / max(1, field_size - 1)
    total = geometric_sum_exp(a, field_size)
    p_paid = np.exp(a * np.arange(num_paid, dtype=np.float64)) / total
    p_bust = max(0.0, 1.0 - float(p_paid.sum()))
    return p_paid, p_bust


def expected_roi(payout_model: PayoutModel, cost: float, beta: float) -> float:
    """Expected profit over cost for a given tilt."""
    if cost <= 0:
        return 0.0
    p_paid, _ = finish_probabilities(payout_model.field_size, payout_model.num_paid, beta)
    expected_prize = float(np.dot(p_paid, payout_model.prizes))
    return (expected_prize - cost) / cost


def _bracket(payout_model: PayoutModel, cost: float, target: float, base_roi: float):
    """Bracket [lo, hi] for beta by geometric expansion away from 0."""
    def roi(beta: float) -> float:
        return expected_roi(payout_model, cost, beta)

    if target >= base_roi:
        lo, hi = 0.0, 1.0
        while roi(hi) < target and hi < BETA_MAX_EXPANSION:
            hi *= 2
        return lo, hi

    # a*n must stay below ~700 to keep exp() finite for negative beta
    n = payout_model.field_size
    beta_min_safe = -math.floor(700 * max(1, n - 1) / max(1, n))

    lo, hi = -1.0, 0.0
    current = roi(lo)
    while current > target and lo > beta_min_safe:
        lo *= 2
        if lo < beta_min_safe:
            lo = float(beta_min_safe)
        current = roi(lo)
        if lo == beta_min_safe:
            break
    return lo, hi


def solve_skill_model(
    payout_model: PayoutModel,
    cost: float,
    roi_target: float,
) -> Tuple[SkillModel, np.ndarray, float]:
    """
    Solve beta for a target ROI.

    Args:
        payout_model: Fitted payout table
        cost: Buy-in plus fee
        roi_target: Target ROI as a fraction (0.2 = 20%)

    Returns:
        (skill_model, p_paid, p_bust) evaluated at the solved beta
    """
    warnings: List[str] = []
    target = min(ROI_TARGET_MAX, max(ROI_TARGET_MIN, roi_target))

    if target != roi_target:
        message = (
            f"ROI target {roi_target * 100:.1f}% is outside the supported range "
            f"[{ROI_TARGET_MIN * 100:.0f}%, {ROI_TARGET_MAX * 100:.0f}%]. "
            f"Clamped to {target * 100:.1f}%."
        )
        warnings.append(message)
        logger.warning(message)

    prizes = payout_model.prizes
    max_roi = (float(prizes[0]) - cost) / cost if cost > 0 else 0.0

    if target > max_roi:
        message = (
            f"ROI target {target * 100:.1f}% exceeds max feasible ROI {max_roi * 100:.1f}% "
            f"given the modeled payout (you can't win more than 1st place every time). Clamped."
        )
        warnings.append(message)
        logger.warning(message)

    clamped = min(max_roi, max(ROI_TARGET_MIN, target))

    base_roi = expected_roi(payout_model, cost, 0.0)
    lo, hi = _bracket(payout_model, cost, clamped, base_roi)

    result = bisect(
        lambda beta: expected_roi(payout_model, cost, beta),
        clamped,
        lo,
        hi,
        max_iterations=BETA_ITERATIONS,
        tolerance=ROI_TOLERANCE,
    )
    beta = result.root
    p_paid, p_bust = finish_probabilities(payout_model.field_size, payout_model.num_paid, beta)

    logger.debug(
        f"Skill fit: beta={beta:.4f}, ROI {result.value:.4%} "
        f"(target {clamped:.4%}, {result.iterations} iterations)"
    )

    skill = SkillModel(
        beta=beta,
        roi_target=clamped,
        roi_achieved=result.value,
        max_roi_feasible=max_roi,
        warnings=warnings,
    )
    return skill, p_paid, p_bust
