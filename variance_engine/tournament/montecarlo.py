"""
Tournament Monte Carlo.

Each tournament is one draw from the discrete outcome set (inverse-CDF
sampling on a single uniform). Two tracks are kept per trial:

  - profit: always plays every tournament; feeds the profit distribution,
    P(profit) and the drawdown statistics
  - bankroll: absorbing; once the bankroll drops below the entry cost the
    player stops, which gives the finite-horizon bust probability

Trials are simulated in chunks of rows, one row per trial drawn in trial
order, so results match a one-trial-at-a-time loop over the same stream.
"""

import logging
import math
from typing import List, Optional, Sequence, Tuple

import numpy as np

from ..config import DEFAULT_TOURNAMENT_THRESHOLDS
from ..progress import ProgressLike, as_reporter, report_interval
from ..simulation.paths import walk
from ..simulation.rng import Mulberry32
from ..stats.normal import normal_cdf
from ..types import (
    MonteCarloResult,
    Outcome,
    Quantiles,
    SimulationPath,
    TournamentDownswingStats,
)

logger = logging.getLogger(__name__)

QUANTILE_LEVELS = (0.05, 0.25, 0.50, 0.75, 0.95)
DEFAULT_PATH_POINTS = 220

# Upper bound on tournaments held in memory per chunk
_CHUNK_ELEMENTS = 1 << 20


def build_cdf(outcomes: Sequence[Outcome]) -> Tuple[np.ndarray, np.ndarray]:
    """
    Profits and cumulative probabilities for inverse-CDF sampling.

    Negative probabilities count as 0, the CDF is renormalised when it does
    not sum to 1 and its last entry is forced to exactly 1.

    Returns:
        (profits, cdf)
    """
    profits = np.array([o.profit for o in outcomes], dtype=np.float64)
    probabilities = np.array([max(0.0, o.probability) for o in outcomes], dtype=np.float64)
    cdf = np.cumsum(probabilities)

    if cdf.size:
        total = cdf[-1]
        if total > 0 and abs(total - 1) > 1e-9:
            cdf = cdf / total
        cdf[-1] = 1.0

    return profits, cdf


def sample_index(cdf: np.ndarray, u):
    """First index with cdf[index] >= u (works on scalars and arrays)."""
    return np.searchsorted(cdf, u, side='left')


def simulate_tournament_path(
    tournaments: float,
    outcomes: Sequence[Outcome],
    rng: Mulberry32,
    record_every: Optional[float] = None,
) -> SimulationPath:
    """
    One profit path over `tournaments` entries.

    A point is recorded every `record_every` tournaments (default
    max(1, tournaments // 220)) and at the final tournament.
    """
    total = max(0, int(math.floor(tournaments)))
    profits, cdf = build_cdf(outcomes)

    if record_every is not None and record_every >= 1:
        stride = int(math.floor(record_every))
    else:
        stride = max(1, total // DEFAULT_PATH_POINTS)

    deltas = profits[sample_index(cdf, rng.random(total))] if total else np.zeros(0)
    cumulative, peaks, drawdowns = walk(deltas)

    t = np.arange(1, total + 1)
    recorded = (t % stride == 0) | (t == total)

    return SimulationPath(
        trials=np.concatenate(([0.0], t[recorded])),
        values=np.concatenate(([0.0], cumulative[recorded])),
        peaks=np.concatenate(([0.0], peaks[recorded])),
        drawdowns=np.concatenate(([0.0], drawdowns[recorded])),
        max_drawdown=float(drawdowns.max()) if total else 0.0,
        final_value=float(cumulative[-1]) if total else 0.0,
    )


def _normalise_thresholds(thresholds_buy_ins: Sequence[float]) -> List[float]:
    return sorted(float(x) for x in thresholds_buy_ins if x > 0)


def _simulate_chunk(
    deltas: np.ndarray,
    bankroll: float,
    cost: float,
):
    """
    Final profit, max drawdown and bust flag for a block of trials.

    Returns:
        (final_profits, max_drawdowns, busted)
    """
    rows = deltas.shape[0]
    zeros = np.zeros((rows, 1))

    cumulative = np.cumsum(np.hstack((zeros, deltas)), axis=1)
    peaks = np.maximum.accumulate(cumulative, axis=1)
    max_drawdowns = (peaks - cumulative).max(axis=1)

    start = np.full((rows, 1), bankroll)
    bankroll_walk = np.cumsum(np.hstack((start, deltas)), axis=1)[:, 1:]
    # Entering requires bankroll >= cost; the first shortfall ends the run
    busted = (bankroll < cost) | (bankroll_walk < cost).any(axis=1)

    return cumulative[:, -1], max_drawdowns, busted


def run_tournament_monte_carlo(
    tournaments: float,
    outcomes: Sequence[Outcome],
    num_trials: float,
    bankroll: float,
    cost: float,
    buy_in: float,
    rng: Mulberry32,
    thresholds_buy_ins: Sequence[float] = DEFAULT_TOURNAMENT_THRESHOLDS,
    progress: ProgressLike = None,
) -> MonteCarloResult:
    """
    Simulate `num_trials` independent series of `tournaments` entries.

    Args:
        tournaments: Horizon per trial
        outcomes: Single-tournament outcome set
        num_trials: Number of trials
        bankroll: Starting bankroll in currency
        cost: Entry cost (buy-in plus fee)
        buy_in: Buy-in used to convert drawdown thresholds to currency
        rng: Shared generator; trials consume it one after another
        thresholds_buy_ins: Drawdown levels in buy-ins (non-positive values dropped)
        progress: Reporter or callback, called about every 1% of trials

    Returns:
        MonteCarloResult with the final-profit sample, drawdown and bust stats
    """
    reporter = as_reporter(progress)
    total = max(0, int(math.floor(tournaments)))
    num_trials = max(0, int(math.floor(num_trials)))

    profits, cdf = build_cdf(outcomes)
    thresholds = _normalise_thresholds(thresholds_buy_ins)
    thresholds_dollars = np.array(thresholds, dtype=np.float64) * buy_in

    logger.debug(f"Tournament Monte Carlo: {num_trials} trials x {total} tournaments")

    interval = report_interval(num_trials)
    rows_per_chunk = max(1, min(interval, _CHUNK_ELEMENTS // max(1, total)))

    final_profits = np.zeros(num_trials)
    max_drawdowns = np.zeros(num_trials)
    busted = np.zeros(num_trials, dtype=bool)

    done = 0
    next_report = 0
    while done < num_trials:
        if done >= next_report:
            reporter.report(done / num_trials)
            next_report = done + interval

        rows = min(rows_per_chunk, num_trials - done)
        draws = rng.random(rows * total).reshape(rows, total)
        deltas = profits[sample_index(cdf, draws)] if total else np.zeros((rows, 0))

        chunk = slice(done, done + rows)
        final_profits[chunk], max_drawdowns[chunk], busted[chunk] = _simulate_chunk(
            deltas, bankroll, cost
        )
        done += rows

    reporter.report(1.0)

    if num_trials > 0:
        probabilities = [
            float(np.count_nonzero(max_drawdowns >= level) / num_trials)
            for level in thresholds_dollars
        ]
        average_max = float(max_drawdowns.mean())
        worst_max = float(max_drawdowns.max())
        p_profit = float(np.count_nonzero(final_profits > 0) / num_trials)
        p_bust = float(np.count_nonzero(busted) / num_trials)
    else:
        probabilities = [0.0 for _ in thresholds]
        average_max = worst_max = p_profit = p_bust = 0.0

    return MonteCarloResult(
        final_profits=final_profits,
        simulated_probability_of_profit=p_profit,
        downswing=TournamentDownswingStats(
            thresholds_buy_ins=thresholds,
            probabilities=probabilities,
            average_max_drawdown=average_max,
            worst_max_drawdown=worst_max,
        ),
        bust_probability=p_bust,
    )


def summarize_final_profit_distribution(
    final_profits: Sequence[float],
    total_cost: float,
    tournaments: float,
) -> Tuple[Quantiles, Quantiles]:
    """
    5/25/50/75/95% quantiles of final profit (linear interpolation) and the
    matching ROI quantiles, ROI = profit / (tournaments * cost).

    Returns:
        (profit_quantiles, roi_quantiles)
    """
    values = np.asarray(final_profits, dtype=np.float64)
    if values.size == 0:
        q = [0.0] * len(QUANTILE_LEVELS)
    else:
        q = [float(x) for x in np.quantile(values, QUANTILE_LEVELS)]

    denom = max(1e-12, tournaments * total_cost)
    profit_quantiles = Quantiles(*q)
    roi_quantiles = Quantiles(*[x / denom for x in q])
    return profit_quantiles, roi_quantiles


def normal_approx_probability_of_profit(mean: float, sd: float) -> float:
    """P(profit > 0) under Normal(mean, sd); step function when sd is 0."""
    if sd <= 0:
        if mean > 0:
            return 1.0
        return 0.0 if mean < 0 else 0.5
    return 1 - normal_cdf(-mean / sd)
