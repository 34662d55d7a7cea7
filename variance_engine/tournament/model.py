"""
Single-tournament model: payout table + skill tilt -> discrete outcome set.

The outcome set is "Bust" followed by one outcome per paid place. Its
moments give the per-tournament EV / SD used by the normal approximation
and the confidence bands.
"""

import logging
import math
from typing import List, Sequence

import numpy as np

from ..config import Z_70, Z_95
from ..types import ConfidencePoint, Outcome, PerTournamentStats, TournamentModel
from .payouts import build_payout_model
from .skill import solve_skill_model

logger = logging.getLogger(__name__)

BUST_LABEL = "Bust"


def ordinal(place: int) -> str:
    """1 -> '1st', 2 -> '2nd', 11 -> '11th', 23 -> '23rd'."""
    p = abs(place)
    if 11 <= p % 100 <= 13:
        return f"{place}th"
    suffix = {1: "st", 2: "nd", 3: "rd"}.get(p % 10, "th")
    return f"{place}{suffix}"


def compute_single_tournament_stats(
    cost: float,
    prizes: Sequence[float],
    p_paid: Sequence[float],
    p_bust: float,
) -> PerTournamentStats:
    """
    Moments of the single-tournament profit distribution.

    Args:
        cost: Buy-in plus fee
        prizes: Prize per paid place
        p_paid: Probability of finishing in each paid place
        p_bust: Probability of finishing outside the money

    Returns:
        PerTournamentStats (variance floored at 0)
    """
    prizes = np.asarray(prizes, dtype=np.float64)
    p_paid = np.asarray(p_paid, dtype=np.float64)
    profits = prizes - cost

    ev_prize = float(np.dot(p_paid, prizes))
    itm = float(p_paid[prizes > 0].sum())

    bust_profit = -cost
    ev_profit = float(np.dot(p_paid, profits)) + p_bust * bust_profit
    second_moment = float(np.dot(p_paid, profits * profits)) + p_bust * bust_profit * bust_profit

    variance = max(0.0, second_moment - ev_profit * ev_profit)

    return PerTournamentStats(
        cost=cost,
        ev=ev_profit,
        variance=variance,
        sd=math.sqrt(variance),
        itm_probability=itm,
        avg_prize_when_cashing=ev_prize / itm if itm > 0 else 0.0,
        avg_profit_when_cashing=(ev_profit - p_bust * bust_profit) / itm if itm > 0 else 0.0,
    )


def build_outcomes(
    cost: float,
    prizes: Sequence[float],
    p_paid: Sequence[float],
    p_bust: float,
) -> List[Outcome]:
    """Bust plus one outcome per paid place, renormalised to sum to 1."""
    outcomes = [Outcome(label=BUST_LABEL, prize=0.0, profit=-cost, probability=float(p_bust))]
    for i, (prize, probability) in enumerate(zip(prizes, p_paid), start=1):
        outcomes.append(Outcome(
            label=ordinal(i),
            place=i,
            prize=float(prize),
            profit=float(prize) - cost,
            probability=float(probability),
        ))

    total = sum(o.probability for o in outcomes)
    if total > 0 and abs(total - 1) > 1e-9:
        for o in outcomes:
            o.probability /= total

    return outcomes


def build_tournament_model(
    field_size: float,
    percent_paid: float,
    buy_in: float,
    fee: float,
    top_prize_multiple: float,
    roi_target_percent: float,
) -> TournamentModel:
    """
    Fit payouts and skill, then assemble the outcome set.

    Inputs are assumed validated; buy-in and fee are still floored at 0.01
    and 0.

    Args:
        field_size: Number of entrants
        percent_paid: Percentage of the field that cashes
        buy_in: Prize-pool contribution per entrant
        fee: Rake per entry
        top_prize_multiple: Requested first prize in buy-ins
        roi_target_percent: Target ROI in percent (20 = 20%)
    """
    buy_in = max(0.01, buy_in)
    fee = max(0.0, fee)
    cost = buy_in + fee

    payout_model = build_payout_model(field_size, percent_paid, buy_in, top_prize_multiple)
    skill_model, p_paid, p_bust = solve_skill_model(payout_model, cost, roi_target_percent / 100)

    per_tournament = compute_single_tournament_stats(cost, payout_model.prizes, p_paid, p_bust)
    outcomes = build_outcomes(cost, payout_model.prizes, p_paid, p_bust)

    logger.info(
        f"Tournament model: {payout_model.field_size} entrants, {payout_model.num_paid} paid, "
        f"ROI {skill_model.roi_achieved:.2%}, EV {per_tournament.ev:.2f}, SD {per_tournament.sd:.2f}"
    )

    return TournamentModel(
        buy_in=buy_in,
        fee=fee,
        payout_model=payout_model,
        skill_model=skill_model,
        outcomes=outcomes,
        per_tournament=per_tournament,
    )


def _band(trials: int, ev: float, sd: float) -> ConfidencePoint:
    return ConfidencePoint(
        trials=trials,
        ev=ev,
        ci70_lower=ev - Z_70 * sd,
        ci70_upper=ev + Z_70 * sd,
        ci95_lower=ev - Z_95 * sd,
        ci95_upper=ev + Z_95 * sd,
    )


def generate_tournament_confidence_data(
    tournaments: float,
    ev_per_tournament: float,
    sd_per_tournament: float,
    num_points: float = 150,
) -> List[ConfidencePoint]:
    """
    EV and 70%/95% bands over the tournament horizon.

    num_points is clamped to [50, 300]; the spacing is
    max(1, tournaments // num_points) and the final count is always included.
    """
    total = max(0, int(math.floor(tournaments)))
    num_points = max(50, min(300, int(math.floor(num_points))))

    if total == 0:
        return [_band(0, 0.0, 0.0)]

    step = max(1, total // num_points)
    points = [_band(0, 0.0, 0.0)]
    for t in range(step, total + 1, step):
        points.append(_band(t, t * ev_per_tournament, math.sqrt(t) * sd_per_tournament))

    if points[-1].trials != total:
        points.append(_band(total, total * ev_per_tournament, math.sqrt(total) * sd_per_tournament))

    return points
