"""
"Am I a winner?" analysis.

With a flat prior the posterior for the true winrate is approximately
Normal(observed winrate, standard error), so these are the frequentist
sampling-distribution results under a friendlier name. No real Bayesian
update happens here.
"""

from dataclasses import dataclass, field
from typing import List, Sequence, Dict, Any

import numpy as np
from scipy import stats

from .cash import observed_winrate, standard_error, probability_true_winrate_above
from .normal import z_for_confidence

DEFAULT_CREDIBLE_LEVELS = (0.50, 0.70, 0.90, 0.95)


@dataclass
class CredibleInterval:
    probability: float
    lower: float
    upper: float
    label: str


@dataclass
class WinnerAnalysis:
    """
    Attributes:
        probability_winner: P(true winrate > 0)
        probability_above_target: P(true winrate > target_winrate)
        posterior_winrates: x-values of the density curve (BB/100)
        posterior_density: density at each x-value
    """
    probability_winner: float
    probability_above_target: float
    target_winrate: float
    observed_winrate: float
    hands_played: float
    standard_error: float
    credible_intervals: List[CredibleInterval]
    posterior_winrates: np.ndarray = field(default_factory=lambda: np.zeros(0))
    posterior_density: np.ndarray = field(default_factory=lambda: np.zeros(0))

    def to_dict(self) -> Dict[str, Any]:
        return {
            'probability_winner': self.probability_winner,
            'probability_above_target': self.probability_above_target,
            'target_winrate': self.target_winrate,
            'observed_winrate': self.observed_winrate,
            'hands_played': self.hands_played,
            'standard_error': self.standard_error,
            'credible_intervals': [
                {'probability': ci.probability, 'lower': ci.lower,
                 'upper': ci.upper, 'label': ci.label}
                for ci in self.credible_intervals
            ],
            'posterior_winrates': self.posterior_winrates.tolist(),
            'posterior_density': self.posterior_density.tolist(),
        }


def posterior_distribution(
    observed_winnings: float,
    hands: float,
    std_dev: float,
    num_points: int = 100,
):
    """
    Density curve of the true winrate over observed ± 4 SE.

    Returns:
        (winrates, density) arrays of length num_points + 1
    """
    observed = observed_winrate(observed_winnings, hands)
    se = standard_error(hands, std_dev)

    if not np.isfinite(se) or se <= 0:
        return np.array([observed]), np.array([np.inf if se == 0 else 0.0])

    winrates = np.linspace(observed - 4 * se, observed + 4 * se, num_points + 1)
    density = stats.norm.pdf(winrates, loc=observed, scale=se)
    return winrates, density


def multiple_credible_intervals(
    observed_winnings: float,
    hands: float,
    std_dev: float,
    probabilities: Sequence[float] = DEFAULT_CREDIBLE_LEVELS,
) -> List[CredibleInterval]:
    """Central intervals for the true winrate at several levels."""
    observed = observed_winrate(observed_winnings, hands)
    se = standard_error(hands, std_dev)

    intervals = []
    for prob in probabilities:
        margin = z_for_confidence(prob) * se
        intervals.append(CredibleInterval(
            probability=prob,
            lower=observed - margin,
            upper=observed + margin,
            label=f"{round(prob * 100)}% confident",
        ))
    return intervals


def bayesian_winner_analysis(
    observed_winnings: float,
    hands: float,
    std_dev: float,
    target_winrate: float = 0.0,
    num_points: int = 100,
) -> WinnerAnalysis:
    """Full "am I a winner?" summary for an observed result."""
    winrates, density = posterior_distribution(observed_winnings, hands, std_dev, num_points)

    return WinnerAnalysis(
        probability_winner=probability_true_winrate_above(observed_winnings, hands, std_dev, 0.0),
        probability_above_target=probability_true_winrate_above(
            observed_winnings, hands, std_dev, target_winrate
        ),
        target_winrate=target_winrate,
        observed_winrate=observed_winrate(observed_winnings, hands),
        hands_played=hands,
        standard_error=standard_error(hands, std_dev),
        credible_intervals=multiple_credible_intervals(observed_winnings, hands, std_dev),
        posterior_winrates=winrates,
        posterior_density=density,
    )
