"""
Closed-form statistics for the fixed-edge cash-game model.

Rates are per 100 trials (BB/100). The functions never raise for finite
input: degenerate cases (zero variance, non-positive winrate, empty samples)
map to documented sentinel values (0, 1, inf) so callers can render a
"not applicable" state without special error handling.
"""

import math

from ..config import Z_70, Z_95
from ..types import Interval
from .normal import normal_cdf, normal_inverse_cdf, z_for_confidence


def expected_value(hands: float, winrate: float) -> float:
    """Expected total result after `hands` trials."""
    return winrate * (hands / 100)


def value_std_dev(hands: float, std_dev: float) -> float:
    """Standard deviation of the total result after `hands` trials."""
    return std_dev * math.sqrt(hands / 100)


def standard_error(hands: float, std_dev: float) -> float:
    """Standard error of the winrate estimate (BB/100); inf without a sample."""
    if hands <= 0:
        return math.inf
    return std_dev / math.sqrt(hands / 100)


def confidence_interval(hands: float, winrate: float, std_dev: float, z_value: float) -> Interval:
    """EV ± z·σ for the total result after `hands` trials."""
    mean = expected_value(hands, winrate)
    margin = z_value * value_std_dev(hands, std_dev)
    return Interval(mean=mean, lower=mean - margin, upper=mean + margin)


def confidence_interval_70(hands: float, winrate: float, std_dev: float) -> Interval:
    return confidence_interval(hands, winrate, std_dev, Z_70)


def confidence_interval_95(hands: float, winrate: float, std_dev: float) -> Interval:
    return confidence_interval(hands, winrate, std_dev, Z_95)


def probability_of_loss(hands: float, winrate: float, std_dev: float) -> float:
    """
    P(total result < 0) after `hands` trials.

    Exactly 0.5 for a break-even winrate. Without variance the answer is
    certain: 1 for a losing winrate, 0 otherwise.
    """
    if winrate == 0:
        return 0.5

    mean = expected_value(hands, winrate)
    sigma = value_std_dev(hands, std_dev)

    if sigma == 0:
        return 1.0 if winrate < 0 else 0.0

    return normal_cdf((0 - mean) / sigma)


def probability_of_profit(hands: float, winrate: float, std_dev: float) -> float:
    return 1 - probability_of_loss(hands, winrate, std_dev)


def probability_above_observed(
    hands: float,
    true_winrate: float,
    std_dev: float,
    observed_winrate: float,
) -> float:
    """P(running at or above `observed_winrate`) for a player whose true rate is `true_winrate`."""
    target = expected_value(hands, observed_winrate)
    mean = expected_value(hands, true_winrate)
    sigma = value_std_dev(hands, std_dev)

    if sigma == 0:
        return 1.0 if mean >= target else 0.0

    return 1 - normal_cdf((target - mean) / sigma)


def probability_below_observed(
    hands: float,
    true_winrate: float,
    std_dev: float,
    observed_winrate: float,
) -> float:
    return 1 - probability_above_observed(hands, true_winrate, std_dev, observed_winrate)


# =============================================================================
# Risk of ruin
# =============================================================================

def _drift_exponent(winrate: float, amount: float, std_dev: float) -> float:
    """exp(-2·μ·A/σ²) with per-trial μ = winrate/100 and σ² = std_dev²/100."""
    mu = winrate / 100
    variance = (std_dev * std_dev) / 100
    return math.exp(-2 * mu * amount / variance)


def risk_of_ruin(winrate: float, bankroll: float, std_dev: float) -> float:
    """
    Probability of ever losing `bankroll` (Brownian motion with drift).

    Returns 1 for a non-positive winrate or bankroll and 0 when there is no
    variance to ruin a winning player.
    """
    if winrate <= 0 or bankroll <= 0:
        return 1.0
    if std_dev <= 0:
        return 0.0
    return min(1.0, max(0.0, _drift_exponent(winrate, bankroll, std_dev)))


def bankroll_for_risk_of_ruin(winrate: float, target_ror: float, std_dev: float) -> float:
    """
    Bankroll giving `target_ror` risk of ruin: -σ²·ln(R) / (2μ).

    inf for a non-positive winrate or target, 0 for a target of 1 or more.
    """
    if winrate <= 0 or target_ror <= 0:
        return math.inf
    if target_ror >= 1:
        return 0.0

    mu = winrate / 100
    variance = (std_dev * std_dev) / 100
    return -variance * math.log(target_ror) / (2 * mu)


def minimum_bankroll(winrate: float, std_dev: float, ror_target: float = 0.05) -> float:
    """Bankroll for `ror_target` risk of ruin, rounded up to a whole unit."""
    bankroll = bankroll_for_risk_of_ruin(winrate, ror_target, std_dev)
    if math.isinf(bankroll):
        return bankroll
    return float(math.ceil(bankroll))


def downswing_probability(threshold: float, winrate: float, std_dev: float) -> float:
    """
    Lifetime probability of a downswing of at least `threshold`.

    Same functional form as risk_of_ruin with the threshold as a virtual
    bankroll.
    """
    if winrate <= 0 or threshold <= 0:
        return 1.0
    if std_dev <= 0:
        return 0.0
    return min(1.0, max(0.0, _drift_exponent(winrate, threshold, std_dev)))


# =============================================================================
# Planning helpers
# =============================================================================

def hands_for_accuracy(std_dev: float, accuracy: float, confidence: float = 0.95) -> float:
    """Hands needed to pin the winrate down to ± `accuracy` BB/100."""
    if accuracy <= 0:
        return math.inf
    z = z_for_confidence(confidence)
    return float(math.ceil(((z * std_dev) / accuracy) ** 2 * 100))


def recovery_hands(downswing: float, winrate: float) -> float:
    """Expected hands to win back `downswing` at the given winrate."""
    if winrate <= 0:
        return math.inf
    if downswing <= 0:
        return 0.0
    return float(math.ceil(downswing / (winrate / 100)))


def goal_probability(goal: float, hands: float, winrate: float, std_dev: float) -> float:
    """P(total result >= goal) after `hands` trials."""
    ev = expected_value(hands, winrate)
    sigma = value_std_dev(hands, std_dev)

    if sigma == 0:
        return 1.0 if ev >= goal else 0.0

    return 1 - normal_cdf((goal - ev) / sigma)


# =============================================================================
# Percentiles
# =============================================================================

def percentile_outcome(percentile: float, hands: float, winrate: float, std_dev: float) -> float:
    """Total result at the given percentile (0-100)."""
    ev = expected_value(hands, winrate)
    sigma = value_std_dev(hands, std_dev)
    z = normal_inverse_cdf(percentile / 100)
    if sigma == 0:
        return ev
    return ev + z * sigma


def outcome_percentile(outcome: float, hands: float, winrate: float, std_dev: float) -> float:
    """Percentile (0-100) of a given total result."""
    ev = expected_value(hands, winrate)
    sigma = value_std_dev(hands, std_dev)

    if sigma == 0:
        return 100.0 if outcome >= ev else 0.0

    return normal_cdf((outcome - ev) / sigma) * 100


# =============================================================================
# Estimating the true winrate
# =============================================================================
# These treat the sampling distribution of the observed winrate as if it
# were a posterior under a flat prior.

def observed_winrate(observed_winnings: float, hands: float) -> float:
    if hands <= 0:
        return 0.0
    return (observed_winnings / hands) * 100


def winrate_confidence_interval(
    observed_winnings: float,
    hands: float,
    std_dev: float,
    confidence: float = 0.95,
) -> Interval:
    """Interval for the true winrate (BB/100) given an observed result."""
    observed = observed_winrate(observed_winnings, hands)
    se = standard_error(hands, std_dev)
    margin = z_for_confidence(confidence) * se
    return Interval(mean=observed, lower=observed - margin, upper=observed + margin)


def probability_true_winrate_above(
    observed_winnings: float,
    hands: float,
    std_dev: float,
    threshold: float = 0.0,
) -> float:
    """P(true winrate > threshold) given an observed result."""
    observed = observed_winrate(observed_winnings, hands)
    se = standard_error(hands, std_dev)

    if se == 0:
        return 1.0 if observed > threshold else 0.0
    if math.isinf(se):
        return 0.5

    return normal_cdf((observed - threshold) / se)
