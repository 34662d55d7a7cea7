"""
Analytical (closed-form) summaries for the cash-game model.

These are the deterministic companions of the Monte Carlo output: headline
metrics, the EV / confidence band series for charting, and the milestone
table.
"""

import math
from typing import List, Optional, Tuple

from .config import MILESTONE_HANDS, Z_70, Z_95
from .stats.cash import (
    expected_value,
    value_std_dev,
    standard_error,
    confidence_interval_70,
    confidence_interval_95,
    probability_of_loss,
    probability_of_profit,
    probability_above_observed,
    probability_below_observed,
    minimum_bankroll,
)
from .types import AnalyticalMetrics, ConfidencePoint, MilestoneSummary


def calculate_analytical_metrics(
    hands: float,
    winrate: float,
    std_dev: float,
    observed_winrate: Optional[float] = None,
) -> AnalyticalMetrics:
    """
    Headline metrics for one parameter set.

    The observed-winrate probabilities are only filled in when an observed
    winrate is supplied.
    """
    metrics = AnalyticalMetrics(
        expected_value=expected_value(hands, winrate),
        standard_deviation=value_std_dev(hands, std_dev),
        standard_error=standard_error(hands, std_dev),
        probability_of_loss=probability_of_loss(hands, winrate, std_dev),
        confidence_interval_70=confidence_interval_70(hands, winrate, std_dev),
        confidence_interval_95=confidence_interval_95(hands, winrate, std_dev),
        minimum_bankroll_5pct=minimum_bankroll(winrate, std_dev),
    )

    if observed_winrate is not None:
        metrics.probability_above_observed = probability_above_observed(
            hands, winrate, std_dev, observed_winrate
        )
        metrics.probability_below_observed = probability_below_observed(
            hands, winrate, std_dev, observed_winrate
        )

    return metrics


def _confidence_point(trials: int, ev: float, sigma: float) -> ConfidencePoint:
    return ConfidencePoint(
        trials=trials,
        ev=ev,
        ci70_lower=ev - Z_70 * sigma,
        ci70_upper=ev + Z_70 * sigma,
        ci95_lower=ev - Z_95 * sigma,
        ci95_upper=ev + Z_95 * sigma,
    )


def generate_confidence_data(
    total_hands: int,
    winrate: float,
    std_dev: float,
    num_points: int = 100,
) -> List[ConfidencePoint]:
    """
    EV and 70%/95% bands at regular intervals from 0 to total_hands.

    The spacing is max(100, total_hands // num_points); the final hand count
    is always included.
    """
    step = max(100, total_hands // max(1, num_points))
    points = []

    for h in range(0, int(total_hands) + 1, step):
        if h == 0:
            points.append(_confidence_point(0, 0.0, 0.0))
            continue
        points.append(_confidence_point(
            h, expected_value(h, winrate), value_std_dev(h, std_dev)
        ))

    if total_hands > 0 and points[-1].trials != total_hands:
        points.append(_confidence_point(
            total_hands,
            expected_value(total_hands, winrate),
            value_std_dev(total_hands, std_dev),
        ))

    return points


def generate_milestone_summaries(
    total_hands: int,
    winrate: float,
    std_dev: float,
) -> List[MilestoneSummary]:
    """Variance table rows for every milestone up to total_hands, plus total_hands itself."""
    milestones = [h for h in MILESTONE_HANDS if h <= total_hands]
    if total_hands > 0 and total_hands not in milestones:
        milestones.append(total_hands)
        milestones.sort()

    required = minimum_bankroll(winrate, std_dev)
    summaries = []
    for hands in milestones:
        ci95 = confidence_interval_95(hands, winrate, std_dev)
        summaries.append(MilestoneSummary(
            hands=hands,
            expected_value=expected_value(hands, winrate),
            standard_deviation=value_std_dev(hands, std_dev),
            ci95_lower=ci95.lower,
            ci95_upper=ci95.upper,
            probability_of_profit=probability_of_profit(hands, winrate, std_dev),
            required_bankroll=required,
        ))
    return summaries


def round_hands(hands: float) -> Tuple[int, bool]:
    """
    Round a hand count to the nearest 100 (halves round up), minimum 100.

    Returns:
        (rounded, was_rounded)
    """
    rounded = max(100, int(math.floor(hands / 100 + 0.5)) * 100)
    return rounded, rounded != hands
