"""
Tests for the request/response operations.
"""

import json
import math

import numpy as np
import pytest

from variance_engine import (
    GameParameters,
    ProgressReporter,
    SimulationCancelled,
    SimulationModeConfig,
    TournamentModeConfig,
    ValidationError,
    build_tournament_model,
    run_cash_game_simulation,
    run_downswing_estimate,
    run_tournament_simulation,
)
from variance_engine.analytics import generate_confidence_data, round_hands
from variance_engine.config import DOWNSWING_THRESHOLDS
from variance_engine.simulation.downswing import (
    estimate_max_drawdown_probability,
    run_downswing_analysis,
)
from variance_engine.simulation.paths import generate_sample_paths, simulate_path
from variance_engine.simulation.rng import Mulberry32
from variance_engine.tournament.montecarlo import run_tournament_monte_carlo, simulate_tournament_path

SMALL_CASH = SimulationModeConfig(step_size=1000, num_paths=3, downswing_trials=60, confidence_points=20)
SMALL_TOURNAMENT = TournamentModeConfig(num_paths=2, num_trials=150, confidence_points=50)


@pytest.fixture(scope="module")
def params():
    return GameParameters(winrate=2.5, std_dev=75, hands=10000)


@pytest.fixture(scope="module")
def model():
    return build_tournament_model(200, 15, 10, 1, 20, 10)


class TestRoundHands:

    @pytest.mark.parametrize("hands,expected,rounded", [
        (10000, 10000, False),
        (10049, 10000, True),
        (10050, 10100, True),
        (30, 100, True),
        (0, 100, True),
    ])
    def test_round_hands(self, hands, expected, rounded):
        assert round_hands(hands) == (expected, rounded)

    def test_confidence_data_ends_at_total(self):
        points = generate_confidence_data(10050, 2.5, 75, 100)
        assert points[0].trials == 0
        assert points[-1].trials == 10050
        assert points[1].trials == 100


class TestCashGameSimulation:
    """Tests for run_cash_game_simulation."""

    def test_same_seed_same_result(self, params):
        a = run_cash_game_simulation(params, seed=42, config=SMALL_CASH)
        b = run_cash_game_simulation(params, seed=42, config=SMALL_CASH)
        assert a.to_dict() == b.to_dict()

    def test_different_seeds_differ(self, params):
        a = run_cash_game_simulation(params, seed=1, config=SMALL_CASH)
        b = run_cash_game_simulation(params, seed=2, config=SMALL_CASH)
        assert a.sample_paths[0].final_value != b.sample_paths[0].final_value

    def test_streams_are_derived_from_seed(self, params):
        """Paths use seed, the detailed path seed + 1, downswings seed + 2."""
        result = run_cash_game_simulation(params, seed=42, config=SMALL_CASH)

        paths = generate_sample_paths(10000, 2.5, 75, 3, Mulberry32(42), 1000)
        for got, expected in zip(result.sample_paths, paths):
            np.testing.assert_array_equal(got.values, expected.values)

        detailed = simulate_path(10000, 2.5, 75, Mulberry32(43), 100)
        np.testing.assert_array_equal(result.detailed_path.values, detailed.values)

        downswings = run_downswing_analysis(10000, 2.5, 75, 60, Mulberry32(44), DOWNSWING_THRESHOLDS)
        assert result.downswing_stats.to_dict() == downswings.to_dict()

    def test_result_shape(self, params):
        result = run_cash_game_simulation(params, seed=7, config=SMALL_CASH)
        assert result.seed == 7
        assert result.mode == "custom"
        assert result.rounded_hands == 10000
        assert len(result.sample_paths) == 3
        assert len(result.sample_paths[0]) == 11
        assert len(result.detailed_path) == 101
        assert result.confidence_data[-1].trials == 10000
        assert [m.hands for m in result.milestone_summaries] == [10000]
        assert result.analytical_metrics.expected_value == pytest.approx(250)
        assert result.analytical_metrics.probability_above_observed is None
        json.dumps(result.to_dict())

    def test_hands_are_rounded(self):
        result = run_cash_game_simulation(
            GameParameters(2.5, 75, 10049), seed=3, config=SMALL_CASH
        )
        assert result.rounded_hands == 10000
        assert result.detailed_path.trials[-1] == 10000

    def test_observed_winrate(self):
        result = run_cash_game_simulation(
            GameParameters(2.5, 75, 10000, observed_winrate=5.0), seed=3, config=SMALL_CASH
        )
        metrics = result.analytical_metrics
        assert metrics.probability_above_observed + metrics.probability_below_observed == pytest.approx(1)

    def test_named_mode(self):
        result = run_cash_game_simulation(GameParameters(2.5, 75, 2000), mode="turbo", seed=5)
        assert result.mode == "turbo"
        assert len(result.sample_paths) == 10

    def test_random_seed_is_reported(self, params):
        result = run_cash_game_simulation(params, config=SMALL_CASH)
        assert 1 <= result.seed <= 2147483647

    @pytest.mark.parametrize("kwargs", [
        {'mode': 'ludicrous'},
        {'seed': 0},
        {'seed': -3},
        {'seed': 1.5},
    ])
    def test_invalid_options(self, params, kwargs):
        with pytest.raises(ValidationError):
            run_cash_game_simulation(params, **kwargs)

    @pytest.mark.parametrize("bad", [
        GameParameters(float('nan'), 75, 10000),
        GameParameters(2.5, -1, 10000),
        GameParameters(2.5, 75, -100),
        GameParameters(2.5, float('inf'), 10000),
        GameParameters(2.5, 75, 10000, observed_winrate=float('nan')),
    ])
    def test_invalid_parameters(self, bad):
        with pytest.raises(ValidationError):
            run_cash_game_simulation(bad, seed=1, config=SMALL_CASH)

    def test_integral_float_seed(self, params):
        a = run_cash_game_simulation(params, seed=3.0, config=SMALL_CASH)
        assert a.seed == 3

    def test_progress(self, params):
        seen = []
        run_cash_game_simulation(params, seed=1, config=SMALL_CASH, progress=seen.append)
        assert seen == sorted(seen)
        assert seen[0] == pytest.approx(0.05)
        assert seen[-1] == 1.0
        assert 0.85 in seen

    def test_cancellation(self, params):
        reporter = ProgressReporter(should_cancel=lambda: True)
        with pytest.raises(SimulationCancelled):
            run_cash_game_simulation(params, seed=1, config=SMALL_CASH, progress=reporter)

    def test_cancel_mid_downswing(self, params):
        seen = []
        reporter = ProgressReporter(callback=seen.append, should_cancel=lambda: seen[-1] > 0.4)
        config = SimulationModeConfig(step_size=1000, num_paths=1, downswing_trials=500)
        with pytest.raises(SimulationCancelled):
            run_cash_game_simulation(params, seed=1, config=config, progress=reporter)
        assert 0.4 < seen[-1] < 0.85


class TestDownswingEstimate:
    """Tests for run_downswing_estimate."""

    def test_matches_estimator(self):
        estimate = run_downswing_estimate(20000, 2.5, 75, 1000, num_simulations=200, seed=11)
        expected = estimate_max_drawdown_probability(20000, 2.5, 75, 1000, 200, Mulberry32(11))
        assert estimate.probability == expected
        assert estimate.hands == 20000
        assert estimate.block_size == 100
        assert estimate.num_simulations == 200

    def test_default_runs_come_from_mode(self):
        estimate = run_downswing_estimate(2000, 2.5, 75, 500, mode="turbo", seed=1)
        assert estimate.num_simulations == 1000

    def test_hands_are_not_rounded(self):
        estimate = run_downswing_estimate(2050, 2.5, 75, 500, num_simulations=10, seed=1)
        assert estimate.hands == 2050

    def test_invalid_threshold(self):
        with pytest.raises(ValidationError):
            run_downswing_estimate(2000, 2.5, 75, float('nan'), num_simulations=10, seed=1)

    def test_zero_threshold(self):
        estimate = run_downswing_estimate(2000, 2.5, 75, 0, num_simulations=10, seed=1)
        assert estimate.probability == 1.0


class TestTournamentOperations:
    """Tests for build_tournament_model / run_tournament_simulation."""

    @pytest.mark.parametrize("args", [
        (1, 15, 10, 1, 20, 10),
        (200, 0, 10, 1, 20, 10),
        (200, 101, 10, 1, 20, 10),
        (200, 15, 0, 1, 20, 10),
        (200, 15, 10, -1, 20, 10),
        (200, 15, 10, 1, 0, 10),
        (200, 15, 10, 1, 20, float('nan')),
        (float('inf'), 15, 10, 1, 20, 10),
    ])
    def test_invalid_model_inputs(self, args):
        with pytest.raises(ValidationError):
            build_tournament_model(*args)

    def test_fractional_field_is_floored(self):
        model = build_tournament_model(200.9, 15, 10, 1, 20, 10)
        assert model.payout_model.field_size == 200

    def test_simulation(self, model):
        result = run_tournament_simulation(
            model, 100, bankroll_buy_ins=30, seed=7, config=SMALL_TOURNAMENT
        )
        per = model.per_tournament
        assert result.num_trials == 150
        assert result.seed == 7
        assert len(result.sample_paths) == 2
        assert len(result.detailed_path) == 101
        assert result.aggregate.expected_profit == pytest.approx(100 * per.ev)
        assert result.aggregate.sd_profit == pytest.approx(10 * per.sd)
        assert result.confidence[-1].trials == 100
        assert result.bankroll.bankroll_dollars == pytest.approx(300)
        assert result.downswing.thresholds_buy_ins == [20, 30, 50, 75, 100, 150, 200]
        json.dumps(result.to_dict())

    def test_streams_are_derived_from_seed(self, model):
        result = run_tournament_simulation(
            model, 100, bankroll_buy_ins=30, seed=7, config=SMALL_TOURNAMENT
        )
        for i, path in enumerate(result.sample_paths):
            expected = simulate_tournament_path(100, model.outcomes, Mulberry32(7 + 10 + 997 * i), 1)
            np.testing.assert_array_equal(path.values, expected.values)

        detailed = simulate_tournament_path(100, model.outcomes, Mulberry32(7 + 99991), 1)
        np.testing.assert_array_equal(result.detailed_path.values, detailed.values)

        mc = run_tournament_monte_carlo(
            100, model.outcomes, 150, 300, model.cost, model.buy_in, Mulberry32(7 + 2222)
        )
        assert result.bankroll.bust_probability == mc.bust_probability
        assert result.aggregate.simulated_probability_of_profit == mc.simulated_probability_of_profit

    def test_same_seed_same_result(self, model):
        a = run_tournament_simulation(model, 80, num_trials=100, bankroll_buy_ins=20, seed=3, config=SMALL_TOURNAMENT)
        b = run_tournament_simulation(model, 80, num_trials=100, bankroll_buy_ins=20, seed=3, config=SMALL_TOURNAMENT)
        assert a.to_dict() == b.to_dict()

    def test_bankroll_approximations(self, model):
        result = run_tournament_simulation(model, 50, bankroll_buy_ins=100, seed=1, config=SMALL_TOURNAMENT)
        per = model.per_tournament
        bankroll = result.bankroll
        assert bankroll.approx_infinite_ror == pytest.approx(
            math.exp(-2 * per.ev * 1000 / per.variance)
        )
        assert bankroll.approx_bankroll_for_1pct_ror == pytest.approx(
            -per.variance * math.log(0.01) / (2 * per.ev) / model.buy_in
        )

    def test_losing_player_is_ruined(self):
        model = build_tournament_model(200, 15, 10, 1, 20, -20)
        result = run_tournament_simulation(model, 50, bankroll_buy_ins=100, seed=1, config=SMALL_TOURNAMENT)
        assert model.per_tournament.ev < 0
        assert result.bankroll.approx_infinite_ror == 1.0
        assert result.bankroll.approx_bankroll_for_1pct_ror is None

    def test_zero_bankroll_always_busts(self, model):
        result = run_tournament_simulation(model, 50, bankroll_buy_ins=0, seed=1, config=SMALL_TOURNAMENT)
        assert result.bankroll.bust_probability == 1.0

    def test_invalid_simulation_inputs(self, model):
        with pytest.raises(ValidationError):
            run_tournament_simulation(model, -1, seed=1, config=SMALL_TOURNAMENT)
        with pytest.raises(ValidationError):
            run_tournament_simulation(model, 10, bankroll_buy_ins=-5, seed=1, config=SMALL_TOURNAMENT)
        with pytest.raises(ValidationError):
            run_tournament_simulation(model, 10, drawdown_thresholds=[float('nan')], seed=1,
                                      config=SMALL_TOURNAMENT)
        with pytest.raises(ValidationError):
            run_tournament_simulation(model, 10, mode='slow', seed=1)

    def test_progress(self, model):
        seen = []
        run_tournament_simulation(model, 50, seed=1, config=SMALL_TOURNAMENT, progress=seen.append)
        assert seen[0] == pytest.approx(0.08)
        assert seen[-1] == 1.0
        assert seen == sorted(seen)
