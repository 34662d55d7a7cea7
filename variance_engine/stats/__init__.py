"""Closed-form statistics: normal approximations and cash-game formulas."""

from .normal import normal_cdf, normal_inverse_cdf, normal_pdf, z_for_confidence
from .cash import (
    expected_value,
    value_std_dev,
    standard_error,
    confidence_interval,
    confidence_interval_70,
    confidence_interval_95,
    probability_of_loss,
    probability_of_profit,
    risk_of_ruin,
    bankroll_for_risk_of_ruin,
    minimum_bankroll,
    downswing_probability,
    percentile_outcome,
    outcome_percentile,
    winrate_confidence_interval,
    probability_true_winrate_above,
)
from .bayesian import bayesian_winner_analysis
from .scenarios import compare_scenarios

__all__ = [
    "normal_cdf",
    "normal_inverse_cdf",
    "normal_pdf",
    "z_for_confidence",
    "expected_value",
    "value_std_dev",
    "standard_error",
    "confidence_interval",
    "confidence_interval_70",
    "confidence_interval_95",
    "probability_of_loss",
    "probability_of_profit",
    "risk_of_ruin",
    "bankroll_for_risk_of_ruin",
    "minimum_bankroll",
    "downswing_probability",
    "percentile_outcome",
    "outcome_percentile",
    "winrate_confidence_interval",
    "probability_true_winrate_above",
    "bayesian_winner_analysis",
    "compare_scenarios",
]
