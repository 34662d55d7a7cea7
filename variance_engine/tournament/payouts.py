"""
Approximate tournament payout table.

Prizes follow a power law over the paid places:

    weight(place) = 1 / place^alpha
    prize(place)  = weight(place) / sum(weights) * prize_pool

alpha is fitted so the first prize matches the requested top prize
(top_prize_multiple * buy_in), after clamping that request into the feasible
range [equal payout, winner-take-all].
"""

import logging
import math
from typing import List

import numpy as np

from ..solver import bisect
from ..types import PayoutModel

logger = logging.getLogger(__name__)

ALPHA_MIN = 0.0
ALPHA_MAX = 10.0
ALPHA_ITERATIONS = 60


def _clamp(value: float, lo: float, hi: float) -> float:
    return min(hi, max(lo, value))


def power_weights(num_paid: int, alpha: float) -> np.ndarray:
    places = np.arange(1, num_paid + 1, dtype=np.float64)
    return 1.0 / np.power(places, alpha)


def first_prize(prize_pool: float, num_paid: int, alpha: float) -> float:
    """First prize produced by the curve with exponent alpha."""
    return prize_pool / float(power_weights(num_paid, alpha).sum())


def build_payout_model(
    field_size: float,
    percent_paid: float,
    buy_in: float,
    top_prize_multiple: float,
) -> PayoutModel:
    """
    Fit a power-law payout table.

    Inputs are normalised rather than rejected here (field >= 2, percent paid
    in [0.1, 100], buy-in and multiple >= 0.01); the engine validates them
    beforehand.

    Args:
        field_size: Number of entrants
        percent_paid: Percentage of the field that cashes
        buy_in: Prize-pool contribution per entrant
        top_prize_multiple: Requested first prize in buy-ins

    Returns:
        PayoutModel with prizes summing to the prize pool
    """
    warnings: List[str] = []

    field_size = max(2, int(math.floor(field_size)))
    percent_paid = _clamp(percent_paid, 0.1, 100)
    buy_in = max(0.01, buy_in)
    top_prize_multiple = max(0.01, top_prize_multiple)

    prize_pool = buy_in * field_size
    num_paid = max(1, int(math.floor(field_size * percent_paid / 100)))

    min_top_prize = prize_pool / num_paid  # equal payout
    max_top_prize = prize_pool  # winner-take-all

    requested = top_prize_multiple * buy_in
    target = requested

    if requested < min_top_prize:
        warnings.append(
            f"Top prize target (${requested:.2f}) is too small for {num_paid} paid places; "
            f"clamped to equal-payout minimum (${min_top_prize:.2f})."
        )
        target = min_top_prize
    if requested > max_top_prize:
        warnings.append(
            f"Top prize target (${requested:.2f}) exceeds prize pool (${max_top_prize:.2f}); "
            f"clamped to prize pool."
        )
        target = max_top_prize

    for message in warnings:
        logger.warning(message)

    if abs(target - min_top_prize) / max(1e-9, min_top_prize) < 1e-10:
        alpha = ALPHA_MIN
    elif abs(target - max_top_prize) / max(1e-9, max_top_prize) < 1e-10:
        alpha = ALPHA_MAX
    else:
        result = bisect(
            lambda a: first_prize(prize_pool, num_paid, a),
            target,
            ALPHA_MIN,
            ALPHA_MAX,
            max_iterations=ALPHA_ITERATIONS,
        )
        alpha = result.root

    weights = power_weights(num_paid, alpha)
    prizes = weights / weights.sum() * prize_pool

    logger.debug(
        f"Payout curve: {num_paid} paid of {field_size}, alpha={alpha:.4f}, "
        f"first prize {prizes[0]:.2f} (target {target:.2f})"
    )

    return PayoutModel(
        field_size=field_size,
        percent_paid=percent_paid,
        num_paid=num_paid,
        prize_pool=prize_pool,
        top_prize_target=target,
        top_prize_actual=float(prizes[0]) if num_paid > 0 else 0.0,
        alpha=alpha,
        prizes=prizes,
        warnings=warnings,
    )
