"""
Single-path Monte Carlo walk for the cash-game model.

Trials are grouped into blocks; each block is one normal draw with
mean = winrate·B/100 and sd = std_dev·sqrt(B/100) instead of one draw per
trial.
"""

import math
from typing import List, Tuple

import numpy as np

from ..types import SimulationPath
from ..validation import ValidationError
from .rng import Mulberry32, normal_block


def block_parameters(winrate: float, std_dev: float, block_size: int) -> Tuple[float, float]:
    """Mean and standard deviation of one block of `block_size` trials."""
    return winrate * (block_size / 100), std_dev * math.sqrt(block_size / 100)


def walk(block_results: np.ndarray, start: float = 0.0, peak: float = 0.0):
    """
    Cumulative sums, running peaks and drawdowns for a sequence of results.

    Sums are accumulated left to right from `start`, so splitting a walk into
    consecutive chunks (passing the last cumulative value and peak along)
    reproduces the unsplit walk exactly.

    Returns:
        (cumulative, peaks, drawdowns) arrays, same length as block_results
    """
    cumulative = np.cumsum(np.concatenate(([start], block_results)))[1:]
    peaks = np.maximum.accumulate(np.concatenate(([peak], cumulative)))[1:]
    return cumulative, peaks, peaks - cumulative


def simulate_path(
    total_trials: int,
    winrate: float,
    std_dev: float,
    rng: Mulberry32,
    block_size: int = 100,
) -> SimulationPath:
    """
    Simulate one path of cumulative results.

    The horizon is rounded up to a whole number of blocks. One point is
    recorded per block boundary, plus the origin.

    Args:
        total_trials: Trials to simulate
        winrate: Winrate per 100 trials
        std_dev: Standard deviation per 100 trials
        rng: Seeded generator (advanced by two draws per block)
        block_size: Trials per block (>= 1)

    Returns:
        SimulationPath with per-block points, max drawdown and final value
    """
    if block_size < 1:
        raise ValidationError("Block size must be at least 1.")

    num_blocks = max(0, math.ceil(total_trials / block_size))
    block_mean, block_sd = block_parameters(winrate, std_dev, block_size)

    results = normal_block(rng, num_blocks, block_mean, block_sd)
    cumulative, peaks, drawdowns = walk(results)

    trials = np.arange(num_blocks + 1, dtype=np.float64) * block_size

    return SimulationPath(
        trials=trials,
        values=np.concatenate(([0.0], cumulative)),
        peaks=np.concatenate(([0.0], peaks)),
        drawdowns=np.concatenate(([0.0], drawdowns)),
        max_drawdown=float(drawdowns.max()) if num_blocks > 0 else 0.0,
        final_value=float(cumulative[-1]) if num_blocks > 0 else 0.0,
    )


def generate_sample_paths(
    total_trials: int,
    winrate: float,
    std_dev: float,
    num_paths: int,
    rng: Mulberry32,
    block_size: int = 100,
) -> List[SimulationPath]:
    """Draw `num_paths` paths one after another from the same stream."""
    return [
        simulate_path(total_trials, winrate, std_dev, rng, block_size)
        for _ in range(num_paths)
    ]
