"""
Request/response operations of the variance engine.

Wires the statistics, path simulation, downswing analysis and tournament
modules together. Each operation validates its inputs, derives independent
PRNG streams from one seed, reports progress through an optional reporter
and returns a self-contained result value.
"""

import logging
import math
from typing import Optional, Sequence

from .analytics import (
    calculate_analytical_metrics,
    generate_confidence_data,
    generate_milestone_summaries,
    round_hands,
)
from .config import (
    DEFAULT_TOURNAMENT_THRESHOLDS,
    DOWNSWING_BLOCK_SIZE,
    DOWNSWING_THRESHOLDS,
    MODE_NAMES,
    get_mode_config,
    get_tournament_mode_config,
)
from .progress import ProgressLike, as_reporter
from .simulation.downswing import estimate_max_drawdown_probability, run_downswing_analysis
from .simulation.paths import generate_sample_paths, simulate_path
from .simulation.rng import Mulberry32, generate_random_seed
from .tournament.model import (
    build_tournament_model as _build_tournament_model,
    generate_tournament_confidence_data,
)
from .tournament.montecarlo import (
    normal_approx_probability_of_profit,
    run_tournament_monte_carlo,
    simulate_tournament_path,
    summarize_final_profit_distribution,
)
from .types import (
    AggregateStats,
    BankrollStats,
    DownswingEstimate,
    GameParameters,
    SimulationModeConfig,
    SimulationResult,
    TournamentModeConfig,
    TournamentModel,
    TournamentSimulationResult,
)
from .validation import (
    require_count,
    require_finite,
    require_non_negative,
    validate_game_parameters,
    validate_mode,
    validate_seed,
    validate_tournament_inputs,
)

logger = logging.getLogger(__name__)

# Stream offsets from the base seed
DETAILED_PATH_SEED_OFFSET = 1
DOWNSWING_SEED_OFFSET = 2
TOURNAMENT_PATH_SEED_OFFSET = 10
TOURNAMENT_PATH_SEED_STRIDE = 997
TOURNAMENT_DETAILED_SEED_OFFSET = 99991
TOURNAMENT_MONTE_CARLO_SEED_OFFSET = 2222

# Target RoR for the tournament bankroll recommendation
TOURNAMENT_ROR_TARGET = 0.01


def _resolve_seed(seed) -> int:
    seed = validate_seed(seed)
    if seed is None:
        seed = generate_random_seed()
        logger.debug(f"No seed supplied, using {seed}")
    return seed


def _resolve_cash_config(mode: str, config: Optional[SimulationModeConfig]) -> SimulationModeConfig:
    if config is not None:
        return config
    return get_mode_config(validate_mode(mode, MODE_NAMES))


def _resolve_tournament_config(mode: str, config: Optional[TournamentModeConfig]) -> TournamentModeConfig:
    if config is not None:
        return config
    return get_tournament_mode_config(validate_mode(mode, MODE_NAMES))


def run_cash_game_simulation(
    params: GameParameters,
    mode: str = "fast",
    seed: Optional[int] = None,
    config: Optional[SimulationModeConfig] = None,
    progress: ProgressLike = None,
) -> SimulationResult:
    """
    Full cash-game analysis.

    Steps:
    1. Round the hand count to the nearest 100 (minimum 100)
    2. Draw the sample paths from `seed` at the mode's step size
    3. Draw one detailed 100-hand path from `seed + 1`
    4. Run the downswing analysis from `seed + 2`
    5. Compute analytical metrics, CI bands and milestone table

    Args:
        params: Winrate / std dev / hands (and optional observed winrate)
        mode: 'turbo', 'fast' or 'accurate' (ignored when config is given)
        seed: Positive integer seed; a random one is drawn when omitted
        config: Explicit precision preset
        progress: Reporter or callback receiving values in [0, 1]

    Returns:
        SimulationResult

    Raises:
        ValidationError: On non-finite or out-of-domain input
        SimulationCancelled: If the reporter's cancel predicate fires
    """
    validate_game_parameters(params.winrate, params.std_dev, params.hands, params.observed_winrate)
    sim_config = _resolve_cash_config(mode, config)
    seed = _resolve_seed(seed)
    reporter = as_reporter(progress)

    winrate = float(params.winrate)
    std_dev = float(params.std_dev)
    rounded_hands, was_rounded = round_hands(params.hands)
    if was_rounded:
        logger.info(f"Rounded {params.hands} hands to {rounded_hands}")

    logger.info(
        f"Cash-game simulation: {rounded_hands} hands, {winrate} BB/100, "
        f"SD {std_dev}, mode={mode}, seed={seed}"
    )
    reporter.report(0.05)

    sample_paths = generate_sample_paths(
        rounded_hands, winrate, std_dev, sim_config.num_paths,
        Mulberry32(seed), sim_config.step_size,
    )
    reporter.report(0.2)

    detailed_path = simulate_path(
        rounded_hands, winrate, std_dev,
        Mulberry32(seed + DETAILED_PATH_SEED_OFFSET), DOWNSWING_BLOCK_SIZE,
    )
    reporter.report(0.3)

    downswing_stats = run_downswing_analysis(
        rounded_hands, winrate, std_dev, sim_config.downswing_trials,
        Mulberry32(seed + DOWNSWING_SEED_OFFSET),
        DOWNSWING_THRESHOLDS,
        reporter.scaled(0.3, 0.5),
    )
    reporter.report(0.85)

    metrics = calculate_analytical_metrics(rounded_hands, winrate, std_dev, params.observed_winrate)
    confidence_data = generate_confidence_data(
        rounded_hands, winrate, std_dev, sim_config.confidence_points
    )
    milestones = generate_milestone_summaries(rounded_hands, winrate, std_dev)
    reporter.report(1.0)

    logger.info(
        f"Cash-game simulation finished: avg max drawdown "
        f"{downswing_stats.average_max_drawdown:.1f} BB over {sim_config.downswing_trials} runs"
    )

    return SimulationResult(
        sample_paths=sample_paths,
        detailed_path=detailed_path,
        downswing_stats=downswing_stats,
        analytical_metrics=metrics,
        confidence_data=confidence_data,
        milestone_summaries=milestones,
        rounded_hands=rounded_hands,
        seed=seed,
        mode=mode if config is None else "custom",
    )


def run_downswing_estimate(
    hands: float,
    winrate: float,
    std_dev: float,
    threshold: float,
    num_simulations: Optional[int] = None,
    mode: str = "turbo",
    seed: Optional[int] = None,
    config: Optional[SimulationModeConfig] = None,
    progress: ProgressLike = None,
) -> DownswingEstimate:
    """
    Monte Carlo P(max drawdown >= threshold) within `hands`, 100-hand blocks.

    The number of runs defaults to the mode's downswing_trials.

    Raises:
        ValidationError: On non-finite or out-of-domain input
    """
    validate_game_parameters(winrate, std_dev, hands)
    require_finite(threshold, "Threshold")
    if num_simulations is None:
        num_simulations = _resolve_cash_config(mode, config).downswing_trials
    num_simulations = require_count(num_simulations, "Number of simulations")
    seed = _resolve_seed(seed)

    logger.info(
        f"Downswing estimate: {threshold} BB within {hands} hands, "
        f"{num_simulations} runs, seed={seed}"
    )

    probability = estimate_max_drawdown_probability(
        hands, float(winrate), float(std_dev), float(threshold), num_simulations,
        Mulberry32(seed), progress, DOWNSWING_BLOCK_SIZE,
    )

    return DownswingEstimate(
        hands=hands,
        threshold=threshold,
        probability=probability,
        num_simulations=num_simulations,
        block_size=DOWNSWING_BLOCK_SIZE,
    )


def build_tournament_model(
    field_size: float,
    percent_paid: float,
    buy_in: float,
    fee: float,
    top_prize_multiple: float,
    roi_target_percent: float,
) -> TournamentModel:
    """
    Validate tournament inputs and fit the single-tournament model.

    Raises:
        ValidationError: On non-finite or out-of-domain input
    """
    validate_tournament_inputs(
        field_size, percent_paid, buy_in, fee, top_prize_multiple, roi_target_percent
    )
    return _build_tournament_model(
        int(math.floor(field_size)), percent_paid, buy_in, fee,
        top_prize_multiple, roi_target_percent,
    )


def _bankroll_stats(model: TournamentModel, bankroll_buy_ins: float, bust_probability: float) -> BankrollStats:
    """Finite-horizon bust probability plus the Brownian-drift RoR approximations."""
    stats = model.per_tournament
    bankroll_dollars = bankroll_buy_ins * model.buy_in

    approx_ror = None
    approx_bankroll = None
    if stats.ev > 0 and stats.variance > 0 and bankroll_dollars > 0:
        ror = math.exp(-2 * stats.ev * bankroll_dollars / stats.variance)
        approx_ror = min(1.0, max(0.0, ror))
        target_dollars = -stats.variance * math.log(TOURNAMENT_ROR_TARGET) / (2 * stats.ev)
        approx_bankroll = target_dollars / model.buy_in
    elif stats.ev <= 0:
        approx_ror = 1.0

    return BankrollStats(
        bankroll_buy_ins=bankroll_buy_ins,
        bankroll_dollars=bankroll_dollars,
        bust_probability=bust_probability,
        approx_infinite_ror=approx_ror,
        approx_bankroll_for_1pct_ror=approx_bankroll,
    )


def run_tournament_simulation(
    model: TournamentModel,
    tournaments: float,
    num_trials: Optional[int] = None,
    bankroll_buy_ins: float = 0,
    drawdown_thresholds: Sequence[float] = DEFAULT_TOURNAMENT_THRESHOLDS,
    seed: Optional[int] = None,
    mode: str = "fast",
    config: Optional[TournamentModeConfig] = None,
    progress: ProgressLike = None,
) -> TournamentSimulationResult:
    """
    Full tournament analysis for a fitted model.

    Steps:
    1. Confidence bands from the per-tournament EV / SD
    2. Sample paths, path i from `seed + 10 + 997 i`
    3. One detailed path (every tournament) from `seed + 99991`
    4. Monte Carlo from `seed + 2222`: profit quantiles, drawdowns, bust
    5. Normal-approximation aggregates and bankroll approximations

    Args:
        model: Output of build_tournament_model
        tournaments: Tournaments per series (floored)
        num_trials: Monte Carlo trials, defaults to the mode's preset
        bankroll_buy_ins: Starting bankroll in buy-ins
        drawdown_thresholds: Drawdown levels in buy-ins
        seed: Positive integer seed; a random one is drawn when omitted
        mode: 'turbo', 'fast' or 'accurate' (ignored when config is given)
        config: Explicit precision preset
        progress: Reporter or callback receiving values in [0, 1]

    Raises:
        ValidationError: On non-finite or out-of-domain input
        SimulationCancelled: If the reporter's cancel predicate fires
    """
    tournaments = require_count(tournaments, "Tournaments")
    bankroll_buy_ins = require_non_negative(bankroll_buy_ins, "Bankroll (buy-ins)")
    for threshold in drawdown_thresholds:
        require_finite(threshold, "Drawdown threshold")
    sim_config = _resolve_tournament_config(mode, config)
    if num_trials is None:
        num_trials = sim_config.num_trials
    num_trials = require_count(num_trials, "Number of trials")
    seed = _resolve_seed(seed)
    reporter = as_reporter(progress)

    stats = model.per_tournament
    logger.info(
        f"Tournament simulation: {tournaments} tournaments x {num_trials} trials, "
        f"bankroll {bankroll_buy_ins} buy-ins, seed={seed}"
    )
    reporter.report(0.08)

    confidence = generate_tournament_confidence_data(
        tournaments, stats.ev, stats.sd, sim_config.confidence_points
    )
    reporter.report(0.14)

    record_every = max(1, tournaments // 220)
    sample_paths = [
        simulate_tournament_path(
            tournaments, model.outcomes,
            Mulberry32(seed + TOURNAMENT_PATH_SEED_OFFSET + i * TOURNAMENT_PATH_SEED_STRIDE),
            record_every,
        )
        for i in range(sim_config.num_paths)
    ]
    detailed_path = simulate_tournament_path(
        tournaments, model.outcomes,
        Mulberry32(seed + TOURNAMENT_DETAILED_SEED_OFFSET), 1,
    )
    reporter.report(0.24)

    bankroll_dollars = bankroll_buy_ins * model.buy_in
    mc = run_tournament_monte_carlo(
        tournaments,
        model.outcomes,
        num_trials,
        bankroll_dollars,
        model.cost,
        model.buy_in,
        Mulberry32(seed + TOURNAMENT_MONTE_CARLO_SEED_OFFSET),
        drawdown_thresholds,
        reporter.scaled(0.24, 0.68),
    )

    profit_quantiles, roi_quantiles = summarize_final_profit_distribution(
        mc.final_profits, model.cost, tournaments
    )

    expected_profit = tournaments * stats.ev
    sd_profit = math.sqrt(tournaments) * stats.sd
    aggregate = AggregateStats(
        tournaments=tournaments,
        expected_profit=expected_profit,
        sd_profit=sd_profit,
        normal_approx_probability_of_profit=normal_approx_probability_of_profit(
            expected_profit, sd_profit
        ),
        simulated_probability_of_profit=mc.simulated_probability_of_profit,
        profit_quantiles=profit_quantiles,
        roi_quantiles=roi_quantiles,
    )
    bankroll = _bankroll_stats(model, bankroll_buy_ins, mc.bust_probability)
    reporter.report(1.0)

    logger.info(
        f"Tournament simulation finished: P(profit)={mc.simulated_probability_of_profit:.3f}, "
        f"P(bust)={mc.bust_probability:.3f}"
    )

    return TournamentSimulationResult(
        model=model,
        confidence=confidence,
        sample_paths=sample_paths,
        detailed_path=detailed_path,
        aggregate=aggregate,
        downswing=mc.downswing,
        bankroll=bankroll,
        num_trials=num_trials,
        seed=seed,
    )
