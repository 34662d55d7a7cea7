"""Seeded Monte Carlo: PRNG, sample paths and downswing analysis."""

from .rng import (
    Mulberry32,
    box_muller,
    normal_variate,
    normal_block,
    generate_random_seed,
)
from .paths import simulate_path, generate_sample_paths
from .downswing import run_downswing_analysis, estimate_max_drawdown_probability

__all__ = [
    "Mulberry32",
    "box_muller",
    "normal_variate",
    "normal_block",
    "generate_random_seed",
    "simulate_path",
    "generate_sample_paths",
    "run_downswing_analysis",
    "estimate_max_drawdown_probability",
]
