"""
Downswing analysis over many independent cash-game runs.

Runs are generated in chunks of rows (one row per run, drawn in run order
from the shared stream) so numpy can walk every row at once while each run
still sees exactly the draws a one-run-at-a-time loop would give it.

Episode bookkeeping per run:
  - A downswing starts at the first block with drawdown > 0 after a peak.
  - It ends at the next block that makes a new peak; the recovery length is
    the number of trials between start and end. Unfinished downswings are
    not counted as recoveries.
  - Each threshold is counted at most once per downswing.
"""

import logging
import math
from typing import List, Sequence

import numpy as np

from ..config import DOWNSWING_THRESHOLDS, DOWNSWING_BLOCK_SIZE
from ..progress import ProgressLike, as_reporter, report_interval
from ..types import (
    DownswingStats,
    ThresholdCount,
    ThresholdProbability,
)
from .paths import block_parameters, walk
from .rng import Mulberry32, box_muller, normals_from_draws

logger = logging.getLogger(__name__)

# Upper bound on blocks held in memory per chunk
_CHUNK_ELEMENTS = 1 << 20

# Blocks looked ahead on the first pass of a single early-exit run
_FIRST_LOOKAHEAD = 64


def _chunk_rows(num_steps: int, interval: int) -> int:
    return max(1, min(interval, _CHUNK_ELEMENTS // max(1, num_steps)))


def _draw_rows(rng: Mulberry32, rows: int, num_steps: int, mean: float, sd: float) -> np.ndarray:
    """`rows` runs of `num_steps` normal blocks, consumed in run order."""
    draws = rng.random(2 * rows * num_steps).reshape(rows, 2 * num_steps)
    return box_muller(draws[:, 0::2], draws[:, 1::2], mean, sd)


def _row_walk(results: np.ndarray):
    """Row-wise cumulative, prior peak and drawdown, every run starting at 0."""
    rows = results.shape[0]
    zeros = np.zeros((rows, 1))
    cumulative = np.cumsum(np.hstack((zeros, results)), axis=1)[:, 1:]
    running_peak = np.maximum.accumulate(np.hstack((zeros, cumulative)), axis=1)
    prior_peak = running_peak[:, :-1]
    peaks = running_peak[:, 1:]
    return cumulative, prior_peak, peaks - cumulative


def _analyse_chunk(
    results: np.ndarray,
    thresholds: np.ndarray,
    block_size: int,
):
    """
    Per-run statistics for one chunk of runs.

    Returns:
        (max_drawdowns, counts, recoveries) where counts has shape
        (rows, len(thresholds)) and recoveries is a flat array of every
        completed recovery length in the chunk
    """
    rows, num_steps = results.shape
    cumulative, prior_peak, drawdowns = _row_walk(results)
    max_drawdowns = drawdowns.max(axis=1)

    # Segments run from one new peak to the block before the next; every run
    # starts a fresh segment at its first block.
    new_peak = cumulative > prior_peak
    segment_start = new_peak.copy()
    segment_start[:, 0] = True

    flat_dd = drawdowns.ravel()
    starts = np.flatnonzero(segment_start.ravel())
    segment_rows = starts // num_steps

    segment_max = np.maximum.reduceat(flat_dd, starts)
    hits = segment_max[:, None] >= thresholds[None, :]
    counts = np.zeros((rows, len(thresholds)))
    np.add.at(counts, segment_rows, hits.astype(np.float64))

    # First block with a positive drawdown inside each segment
    sentinel = flat_dd.size
    index = np.arange(flat_dd.size)
    first_positive = np.minimum.reduceat(np.where(flat_dd > 0, index, sentinel), starts)

    # A downswing recovers when the next segment of the same run begins
    has_next = np.zeros(len(starts), dtype=bool)
    has_next[:-1] = segment_rows[:-1] == segment_rows[1:]
    recovered = has_next & (first_positive < sentinel)
    ends = np.empty_like(starts)
    ends[:-1] = starts[1:]
    ends[-1] = sentinel
    recoveries = (ends[recovered] - first_positive[recovered]) * float(block_size)

    return max_drawdowns, counts, recoveries


def run_downswing_analysis(
    total_trials: int,
    winrate: float,
    std_dev: float,
    num_simulations: int,
    rng: Mulberry32,
    thresholds: Sequence[float] = DOWNSWING_THRESHOLDS,
    progress: ProgressLike = None,
) -> DownswingStats:
    """
    Simulate `num_simulations` runs and aggregate their drawdown behaviour.

    Args:
        total_trials: Trials per run (rounded up to whole 100-trial blocks)
        winrate: Winrate per 100 trials
        std_dev: Standard deviation per 100 trials
        num_simulations: Number of independent runs
        rng: Shared generator; runs consume it one after another
        thresholds: Drawdown levels to track
        progress: Reporter or callback, called about every 1% of runs

    Returns:
        DownswingStats with per-threshold probabilities and expected counts
    """
    reporter = as_reporter(progress)
    block_size = DOWNSWING_BLOCK_SIZE
    num_steps = max(0, math.ceil(total_trials / block_size))
    block_mean, block_sd = block_parameters(winrate, std_dev, block_size)
    threshold_values = np.array(list(thresholds), dtype=np.float64)

    if num_simulations <= 0:
        return DownswingStats(
            probabilities=[ThresholdProbability(float(t), 0.0) for t in threshold_values],
            expected_counts=[ThresholdCount(float(t), 0.0) for t in threshold_values],
            average_max_drawdown=0.0,
            worst_max_drawdown=0.0,
            average_recovery=0.0,
            longest_recovery=0.0,
        )

    logger.debug(
        f"Downswing analysis: {num_simulations} runs x {num_steps} blocks "
        f"(mean={block_mean:.4g}, sd={block_sd:.4g})"
    )

    interval = report_interval(num_simulations)
    rows_per_chunk = _chunk_rows(num_steps, interval)

    max_drawdowns: List[np.ndarray] = []
    counts: List[np.ndarray] = []
    recoveries: List[np.ndarray] = []

    done = 0
    next_report = 0
    while done < num_simulations:
        if done >= next_report:
            reporter.report(done / num_simulations)
            next_report = done + interval

        rows = min(rows_per_chunk, num_simulations - done)
        if num_steps == 0:
            max_drawdowns.append(np.zeros(rows))
            counts.append(np.zeros((rows, len(threshold_values))))
        else:
            results = _draw_rows(rng, rows, num_steps, block_mean, block_sd)
            chunk_max, chunk_counts, chunk_recoveries = _analyse_chunk(
                results, threshold_values, block_size
            )
            max_drawdowns.append(chunk_max)
            counts.append(chunk_counts)
            recoveries.append(chunk_recoveries)
        done += rows

    all_max = np.concatenate(max_drawdowns)
    all_counts = np.vstack(counts)
    all_recoveries = np.concatenate(recoveries) if recoveries else np.zeros(0)

    probabilities = []
    expected_counts = []
    for j, threshold in enumerate(threshold_values):
        probabilities.append(ThresholdProbability(
            threshold=float(threshold),
            probability=float(np.count_nonzero(all_counts[:, j] > 0) / num_simulations),
        ))
        expected_counts.append(ThresholdCount(
            threshold=float(threshold),
            count=float(all_counts[:, j].sum() / num_simulations),
        ))

    return DownswingStats(
        probabilities=probabilities,
        expected_counts=expected_counts,
        average_max_drawdown=float(all_max.mean()),
        worst_max_drawdown=float(all_max.max()),
        average_recovery=float(all_recoveries.mean()) if all_recoveries.size else 0.0,
        longest_recovery=float(all_recoveries.max()) if all_recoveries.size else 0.0,
    )


def _run_crosses(
    rng: Mulberry32,
    num_steps: int,
    threshold: float,
    block_mean: float,
    block_sd: float,
) -> bool:
    """
    Walk one run until its drawdown first reaches `threshold`.

    Draws are looked ahead in chunks that start at `_FIRST_LOOKAHEAD` blocks
    and double up to `_CHUNK_ELEMENTS`; only the draws up to and including
    the crossing block are consumed.
    """
    chunk = _FIRST_LOOKAHEAD
    cumulative = 0.0
    peak = 0.0
    remaining = num_steps

    while remaining > 0:
        n = min(chunk, remaining)
        chunk = min(2 * chunk, _CHUNK_ELEMENTS)
        draws = rng.peek(2 * n)
        results = normals_from_draws(draws, block_mean, block_sd)
        values, peaks, drawdowns = walk(results, cumulative, peak)

        crossed = np.flatnonzero(drawdowns >= threshold)
        if crossed.size:
            rng.advance(2 * (int(crossed[0]) + 1))
            return True

        rng.advance(2 * n)
        cumulative = float(values[-1])
        peak = float(peaks[-1])
        remaining -= n

    return False


def estimate_max_drawdown_probability(
    total_trials: int,
    winrate: float,
    std_dev: float,
    threshold: float,
    num_simulations: int,
    rng: Mulberry32,
    progress: ProgressLike = None,
    block_size: int = DOWNSWING_BLOCK_SIZE,
) -> float:
    """
    P(max drawdown >= threshold) within `total_trials`, by simulation.

    A run stops drawing as soon as the threshold is reached.

    Returns:
        Fraction of runs whose drawdown reached the threshold
    """
    reporter = as_reporter(progress)

    if num_simulations <= 0:
        return 0.0
    if total_trials <= 0:
        return 0.0
    if threshold <= 0:
        return 1.0

    num_steps = math.ceil(total_trials / block_size)
    block_mean, block_sd = block_parameters(winrate, std_dev, block_size)
    interval = report_interval(num_simulations)

    exceeded = 0
    for trial in range(num_simulations):
        if _run_crosses(rng, num_steps, threshold, block_mean, block_sd):
            exceeded += 1
        if trial % interval == 0:
            reporter.report(trial / num_simulations)

    reporter.report(1.0)
    return exceeded / num_simulations
