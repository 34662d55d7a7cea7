"""Tournament model: payout curve, skill tilt, outcome set and Monte Carlo."""

from .payouts import build_payout_model
from .skill import solve_skill_model
from .model import (
    build_tournament_model,
    compute_single_tournament_stats,
    generate_tournament_confidence_data,
    ordinal,
)
from .montecarlo import (
    build_cdf,
    sample_index,
    simulate_tournament_path,
    run_tournament_monte_carlo,
    summarize_final_profit_distribution,
    normal_approx_probability_of_profit,
)

__all__ = [
    "build_payout_model",
    "solve_skill_model",
    "build_tournament_model",
    "compute_single_tournament_stats",
    "generate_tournament_confidence_data",
    "ordinal",
    "build_cdf",
    "sample_index",
    "simulate_tournament_path",
    "run_tournament_monte_carlo",
    "summarize_final_profit_distribution",
    "normal_approx_probability_of_profit",
]
