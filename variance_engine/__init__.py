"""Variance engine: bankroll variance, downswing and risk-of-ruin simulation."""

from .engine import (
    run_cash_game_simulation,
    run_downswing_estimate,
    build_tournament_model,
    run_tournament_simulation,
)
from .progress import ProgressReporter, SimulationCancelled
from .types import GameParameters, SimulationModeConfig, TournamentModeConfig
from .validation import ValidationError

__version__ = "0.1.0"

__all__ = [
    "run_cash_game_simulation",
    "run_downswing_estimate",
    "build_tournament_model",
    "run_tournament_simulation",
    "ProgressReporter",
    "SimulationCancelled",
    "GameParameters",
    "SimulationModeConfig",
    "TournamentModeConfig",
    "ValidationError",
]
