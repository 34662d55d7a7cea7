"""
Core data structures for the variance engine.

Every entity is a plain value: simulation calls build their own instances and
hand them to the caller wholesale. Array fields are numpy float64 arrays that
are frozen (read-only) once the owning value is constructed.
"""

from dataclasses import dataclass, field
from typing import List, Dict, Optional, Any
import numpy as np


def _frozen(values) -> np.ndarray:
    """Copy values into a read-only float64 array."""
    arr = np.array(values, dtype=np.float64)
    arr.flags.writeable = False
    return arr


# =============================================================================
# Cash-game model
# =============================================================================

@dataclass
class GameParameters:
    """
    Inputs for the fixed-edge cash-game model.

    Attributes:
        winrate: Expected result per 100 trials (BB/100), may be negative
        std_dev: Standard deviation per 100 trials (BB/100)
        hands: Number of trials to analyse
        observed_winrate: Optional winrate the player actually observed
    """
    winrate: float
    std_dev: float
    hands: int
    observed_winrate: Optional[float] = None


@dataclass
class Interval:
    """Symmetric interval around a mean."""
    mean: float
    lower: float
    upper: float


@dataclass
class SimulationPath:
    """
    A single sample path of cumulative results.

    Attributes:
        trials: x-axis (hands or tournaments played at each recorded point)
        values: Cumulative result at each point
        peaks: Running peak at each point
        drawdowns: peak - value at each point
        max_drawdown: Largest drawdown seen anywhere on the path
        final_value: Cumulative result after the last trial
    """
    trials: np.ndarray
    values: np.ndarray
    peaks: np.ndarray
    drawdowns: np.ndarray
    max_drawdown: float
    final_value: float

    def __post_init__(self) -> None:
        self.trials = _frozen(self.trials)
        self.values = _frozen(self.values)
        self.peaks = _frozen(self.peaks)
        self.drawdowns = _frozen(self.drawdowns)

    def __len__(self) -> int:
        return len(self.trials)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'trials': self.trials.tolist(),
            'values': self.values.tolist(),
            'peaks': self.peaks.tolist(),
            'drawdowns': self.drawdowns.tolist(),
            'max_drawdown': self.max_drawdown,
            'final_value': self.final_value,
        }


@dataclass
class ThresholdProbability:
    threshold: float
    probability: float


@dataclass
class ThresholdCount:
    threshold: float
    count: float


@dataclass
class DownswingStats:
    """
    Drawdown statistics aggregated over many independent runs.

    Attributes:
        probabilities: P(run ever reaches a drawdown >= threshold)
        expected_counts: Mean number of separate downswings per run reaching each threshold
        average_max_drawdown: Mean of the per-run max drawdown
        worst_max_drawdown: Largest max drawdown over all runs
        average_recovery: Mean trials from downswing start back to a new peak
        longest_recovery: Longest such recovery
    """
    probabilities: List[ThresholdProbability]
    expected_counts: List[ThresholdCount]
    average_max_drawdown: float
    worst_max_drawdown: float
    average_recovery: float
    longest_recovery: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'probabilities': [
                {'threshold': p.threshold, 'probability': p.probability}
                for p in self.probabilities
            ],
            'expected_counts': [
                {'threshold': c.threshold, 'count': c.count}
                for c in self.expected_counts
            ],
            'average_max_drawdown': self.average_max_drawdown,
            'worst_max_drawdown': self.worst_max_drawdown,
            'average_recovery': self.average_recovery,
            'longest_recovery': self.longest_recovery,
        }


@dataclass
class DownswingEstimate:
    """P(max drawdown >= threshold) within a finite horizon."""
    hands: int
    threshold: float
    probability: float
    num_simulations: int
    block_size: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hands': self.hands,
            'threshold': self.threshold,
            'probability': self.probability,
            'num_simulations': self.num_simulations,
            'block_size': self.block_size,
        }


@dataclass
class AnalyticalMetrics:
    """Closed-form metrics for one parameter set."""
    expected_value: float
    standard_deviation: float
    standard_error: float
    probability_of_loss: float
    confidence_interval_70: Interval
    confidence_interval_95: Interval
    minimum_bankroll_5pct: float
    probability_above_observed: Optional[float] = None
    probability_below_observed: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'expected_value': self.expected_value,
            'standard_deviation': self.standard_deviation,
            'standard_error': self.standard_error,
            'probability_of_loss': self.probability_of_loss,
            'confidence_interval_70': {
                'lower': self.confidence_interval_70.lower,
                'upper': self.confidence_interval_70.upper,
            },
            'confidence_interval_95': {
                'lower': self.confidence_interval_95.lower,
                'upper': self.confidence_interval_95.upper,
            },
            'minimum_bankroll_5pct': self.minimum_bankroll_5pct,
            'probability_above_observed': self.probability_above_observed,
            'probability_below_observed': self.probability_below_observed,
        }


@dataclass
class ConfidencePoint:
    """EV and 70%/95% bands after a given number of trials."""
    trials: int
    ev: float
    ci70_lower: float
    ci70_upper: float
    ci95_lower: float
    ci95_upper: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'trials': self.trials,
            'ev': self.ev,
            'ci70_lower': self.ci70_lower,
            'ci70_upper': self.ci70_upper,
            'ci95_lower': self.ci95_lower,
            'ci95_upper': self.ci95_upper,
        }


@dataclass
class MilestoneSummary:
    hands: int
    expected_value: float
    standard_deviation: float
    ci95_lower: float
    ci95_upper: float
    probability_of_profit: float
    required_bankroll: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'hands': self.hands,
            'expected_value': self.expected_value,
            'standard_deviation': self.standard_deviation,
            'ci95_lower': self.ci95_lower,
            'ci95_upper': self.ci95_upper,
            'probability_of_profit': self.probability_of_profit,
            'required_bankroll': self.required_bankroll,
        }


@dataclass
class SimulationResult:
    """Everything produced by one cash-game simulation request."""
    sample_paths: List[SimulationPath]
    detailed_path: SimulationPath
    downswing_stats: DownswingStats
    analytical_metrics: AnalyticalMetrics
    confidence_data: List[ConfidencePoint]
    milestone_summaries: List[MilestoneSummary]
    rounded_hands: int
    seed: int
    mode: str

    def to_dict(self) -> Dict[str, Any]:
        return {
            'sample_paths': [p.to_dict() for p in self.sample_paths],
            'detailed_path': self.detailed_path.to_dict(),
            'downswing_stats': self.downswing_stats.to_dict(),
            'analytical_metrics': self.analytical_metrics.to_dict(),
            'confidence_data': [c.to_dict() for c in self.confidence_data],
            'milestone_summaries': [m.to_dict() for m in self.milestone_summaries],
            'rounded_hands': self.rounded_hands,
            'seed': self.seed,
            'mode': self.mode,
        }


# =============================================================================
# Tournament model
# =============================================================================

@dataclass
class PayoutModel:
    """
    Power-law payout table: prize(place) ∝ 1 / place^alpha.

    Attributes:
        field_size: Number of entrants
        percent_paid: Percentage of the field that cashes
        num_paid: Number of paid places
        prize_pool: buy_in * field_size
        top_prize_target: Requested first prize after feasibility clamping
        top_prize_actual: First prize produced by the fitted curve
        alpha: Fitted curve exponent
        prizes: Prize for places 1..num_paid (non-increasing, sums to prize_pool)
        warnings: Clamping notes
    """
    field_size: int
    percent_paid: float
    num_paid: int
    prize_pool: float
    top_prize_target: float
    top_prize_actual: float
    alpha: float
    prizes: np.ndarray
    warnings: List[str] = field(default_factory=list)

    def __post_init__(self) -> None:
        self.prizes = _frozen(self.prizes)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'field_size': self.field_size,
            'percent_paid': self.percent_paid,
            'num_paid': self.num_paid,
            'prize_pool': self.prize_pool,
            'top_prize_target': self.top_prize_target,
            'top_prize_actual': self.top_prize_actual,
            'alpha': self.alpha,
            'prizes': self.prizes.tolist(),
            'warnings': list(self.warnings),
        }


@dataclass
class SkillModel:
    """
    Exponential finish-bias: P(rank = k) ∝ exp(-beta * k / (field_size - 1)).

    roi_* values are fractions (0.2 = 20% ROI on buy-in plus fee).
    """
    beta: float
    roi_target: float
    roi_achieved: float
    max_roi_feasible: float
    warnings: List[str] = field(default_factory=list)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'beta': self.beta,
            'roi_target': self.roi_target,
            'roi_achieved': self.roi_achieved,
            'max_roi_feasible': self.max_roi_feasible,
            'warnings': list(self.warnings),
        }


@dataclass
class Outcome:
    """One possible result of a single tournament."""
    label: str
    prize: float
    profit: float
    probability: float
    place: Optional[int] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'label': self.label,
            'place': self.place,
            'prize': self.prize,
            'profit': self.profit,
            'probability': self.probability,
        }


@dataclass
class PerTournamentStats:
    cost: float
    ev: float
    variance: float
    sd: float
    itm_probability: float
    avg_prize_when_cashing: float
    avg_profit_when_cashing: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'cost': self.cost,
            'ev': self.ev,
            'variance': self.variance,
            'sd': self.sd,
            'itm_probability': self.itm_probability,
            'avg_prize_when_cashing': self.avg_prize_when_cashing,
            'avg_profit_when_cashing': self.avg_profit_when_cashing,
        }


@dataclass
class TournamentModel:
    """
    Fitted single-tournament distribution.

    Attributes:
        buy_in: Amount that goes into the prize pool
        fee: Rake, not part of the prize pool
        payout_model: Fitted payout table
        skill_model: Fitted finish-bias
        outcomes: "Bust" followed by one outcome per paid place
        per_tournament: Moments of the single-tournament profit
    """
    buy_in: float
    fee: float
    payout_model: PayoutModel
    skill_model: SkillModel
    outcomes: List[Outcome]
    per_tournament: PerTournamentStats

    @property
    def cost(self) -> float:
        return self.buy_in + self.fee

    @property
    def warnings(self) -> List[str]:
        return list(self.payout_model.warnings) + list(self.skill_model.warnings)

    def to_dict(self) -> Dict[str, Any]:
        return {
            'buy_in': self.buy_in,
            'fee': self.fee,
            'cost': self.cost,
            'payout_model': self.payout_model.to_dict(),
            'skill_model': self.skill_model.to_dict(),
            'outcomes': [o.to_dict() for o in self.outcomes],
            'per_tournament': self.per_tournament.to_dict(),
            'warnings': self.warnings,
        }


@dataclass
class Quantiles:
    p05: float
    p25: float
    p50: float
    p75: float
    p95: float

    def to_dict(self) -> Dict[str, float]:
        return {
            'p05': self.p05,
            'p25': self.p25,
            'p50': self.p50,
            'p75': self.p75,
            'p95': self.p95,
        }


@dataclass
class TournamentDownswingStats:
    """P(max drawdown >= threshold) in the horizon, thresholds in buy-ins."""
    thresholds_buy_ins: List[float]
    probabilities: List[float]
    average_max_drawdown: float
    worst_max_drawdown: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'thresholds_buy_ins': list(self.thresholds_buy_ins),
            'probabilities': list(self.probabilities),
            'average_max_drawdown': self.average_max_drawdown,
            'worst_max_drawdown': self.worst_max_drawdown,
        }


@dataclass
class MonteCarloResult:
    """Raw tournament Monte Carlo output (ephemeral, never persisted)."""
    final_profits: np.ndarray
    simulated_probability_of_profit: float
    downswing: TournamentDownswingStats
    bust_probability: float

    def __post_init__(self) -> None:
        self.final_profits = _frozen(self.final_profits)

    @property
    def num_trials(self) -> int:
        return len(self.final_profits)


@dataclass
class AggregateStats:
    tournaments: int
    expected_profit: float
    sd_profit: float
    normal_approx_probability_of_profit: float
    simulated_probability_of_profit: float
    profit_quantiles: Quantiles
    roi_quantiles: Quantiles

    def to_dict(self) -> Dict[str, Any]:
        return {
            'tournaments': self.tournaments,
            'expected_profit': self.expected_profit,
            'sd_profit': self.sd_profit,
            'normal_approx_probability_of_profit': self.normal_approx_probability_of_profit,
            'simulated_probability_of_profit': self.simulated_probability_of_profit,
            'profit_quantiles': self.profit_quantiles.to_dict(),
            'roi_quantiles': self.roi_quantiles.to_dict(),
        }


@dataclass
class BankrollStats:
    """
    Attributes:
        bust_probability: P(bankroll < cost at any point) within the horizon
        approx_infinite_ror: Brownian-drift RoR approximation, None if undefined
        approx_bankroll_for_1pct_ror: Buy-ins needed for 1% RoR, None if undefined
    """
    bankroll_buy_ins: float
    bankroll_dollars: float
    bust_probability: float
    approx_infinite_ror: Optional[float] = None
    approx_bankroll_for_1pct_ror: Optional[float] = None

    def to_dict(self) -> Dict[str, Any]:
        return {
            'bankroll_buy_ins': self.bankroll_buy_ins,
            'bankroll_dollars': self.bankroll_dollars,
            'bust_probability': self.bust_probability,
            'approx_infinite_ror': self.approx_infinite_ror,
            'approx_bankroll_for_1pct_ror': self.approx_bankroll_for_1pct_ror,
        }


@dataclass
class TournamentSimulationResult:
    """Everything produced by one tournament simulation request."""
    model: TournamentModel
    confidence: List[ConfidencePoint]
    sample_paths: List[SimulationPath]
    detailed_path: SimulationPath
    aggregate: AggregateStats
    downswing: TournamentDownswingStats
    bankroll: BankrollStats
    num_trials: int
    seed: int

    def to_dict(self) -> Dict[str, Any]:
        return {
            'model': self.model.to_dict(),
            'confidence': [c.to_dict() for c in self.confidence],
            'sample_paths': [p.to_dict() for p in self.sample_paths],
            'detailed_path': self.detailed_path.to_dict(),
            'aggregate': self.aggregate.to_dict(),
            'downswing': self.downswing.to_dict(),
            'bankroll': self.bankroll.to_dict(),
            'num_trials': self.num_trials,
            'seed': self.seed,
        }


# =============================================================================
# Mode presets
# =============================================================================

@dataclass
class SimulationModeConfig:
    """
    Cash-game precision/runtime preset.

    Attributes:
        step_size: Hands per block for the sample paths
        num_paths: Number of sample paths to draw
        downswing_trials: Runs used by the downswing analysis
        confidence_points: Number of points in the CI band series
    """
    step_size: int
    num_paths: int
    downswing_trials: int
    confidence_points: int = 100

    def __post_init__(self) -> None:
        if self.step_size < 1:
            raise ValueError("SimulationModeConfig.step_size must be at least 1.")
        if self.num_paths < 0 or self.downswing_trials < 0:
            raise ValueError("SimulationModeConfig counts must be non-negative.")

    def to_dict(self) -> Dict[str, int]:
        return {
            'step_size': self.step_size,
            'num_paths': self.num_paths,
            'downswing_trials': self.downswing_trials,
            'confidence_points': self.confidence_points,
        }


@dataclass
class TournamentModeConfig:
    """Tournament precision/runtime preset."""
    num_paths: int
    num_trials: int
    confidence_points: int = 160

    def __post_init__(self) -> None:
        if self.num_paths < 0 or self.num_trials < 0:
            raise ValueError("TournamentModeConfig counts must be non-negative.")

    def to_dict(self) -> Dict[str, int]:
        return {
            'num_paths': self.num_paths,
            'num_trials': self.num_trials,
            'confidence_points': self.confidence_points,
        }
