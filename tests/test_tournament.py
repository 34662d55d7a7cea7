"""
Tests for the tournament payout, skill and Monte Carlo models.
"""

import math

import numpy as np
import pytest

from variance_engine.simulation.rng import Mulberry32
from variance_engine.tournament.model import (
    BUST_LABEL,
    build_tournament_model,
    compute_single_tournament_stats,
    generate_tournament_confidence_data,
    ordinal,
)
from variance_engine.tournament.montecarlo import (
    build_cdf,
    normal_approx_probability_of_profit,
    run_tournament_monte_carlo,
    sample_index,
    simulate_tournament_path,
    summarize_final_profit_distribution,
)
from variance_engine.tournament.payouts import ALPHA_MAX, build_payout_model, first_prize
from variance_engine.tournament.skill import (
    expected_roi,
    finish_probabilities,
    geometric_sum_exp,
    solve_skill_model,
)
from variance_engine.types import Outcome


@pytest.fixture(scope="module")
def payout():
    return build_payout_model(1000, 20, 22, 50)


@pytest.fixture(scope="module")
def model():
    return build_tournament_model(200, 15, 10, 1, 20, 10)


def make_outcomes(profits, probabilities):
    return [
        Outcome(label=f"o{i}", prize=0.0, profit=float(p), probability=float(q))
        for i, (p, q) in enumerate(zip(profits, probabilities))
    ]


class TestPayoutModel:
    """Tests for the power-law payout fit."""

    def test_reference_tournament(self, payout):
        assert payout.num_paid == 200
        assert payout.prize_pool == pytest.approx(22000)
        assert payout.top_prize_target == pytest.approx(1100)
        assert payout.top_prize_actual == pytest.approx(1100, rel=1e-9)
        assert payout.warnings == []

    def test_prizes_sum_to_pool_and_decrease(self, payout):
        assert payout.prizes.sum() == pytest.approx(payout.prize_pool, rel=1e-6)
        assert np.all(np.diff(payout.prizes) <= 0)
        assert payout.prizes[-1] >= 0

    def test_first_prize_grows_with_alpha(self):
        values = [first_prize(22000, 200, a) for a in (0.0, 0.5, 1.0, 2.0)]
        assert values == sorted(values)
        assert values[0] == pytest.approx(110)

    def test_small_top_prize_is_clamped_to_equal_split(self):
        model = build_payout_model(1000, 20, 22, 1)
        assert model.alpha == 0.0
        assert model.top_prize_target == pytest.approx(110)
        np.testing.assert_allclose(model.prizes, 110)
        assert len(model.warnings) == 1
        assert "equal-payout" in model.warnings[0]

    def test_large_top_prize_is_clamped_to_pool(self):
        model = build_payout_model(1000, 20, 22, 5000)
        assert model.alpha == ALPHA_MAX
        assert model.top_prize_target == pytest.approx(22000)
        assert "exceeds prize pool" in model.warnings[0]
        assert model.prizes.sum() == pytest.approx(22000)

    def test_single_paid_place(self):
        model = build_payout_model(2, 10, 5, 100)
        assert model.num_paid == 1
        np.testing.assert_allclose(model.prizes, [10.0])

    def test_inputs_are_normalised(self):
        model = build_payout_model(1000.7, 250, 22, 50)
        assert model.field_size == 1000
        assert model.percent_paid == 100
        assert model.num_paid == 1000


class TestSkillModel:
    """Tests for the exponential finish tilt."""

    def test_geometric_sum(self):
        assert geometric_sum_exp(0.0, 5) == 5
        assert geometric_sum_exp(0.1, 3) == pytest.approx(1 + math.exp(0.1) + math.exp(0.2))
        assert geometric_sum_exp(-0.5, 0) == 0.0

    @pytest.mark.parametrize("beta", [-50.0, 0.0, 3.0, 400.0])
    def test_probabilities_sum_to_one(self, payout, beta):
        p_paid, p_bust = finish_probabilities(payout.field_size, payout.num_paid, beta)
        assert p_paid.sum() + p_bust == pytest.approx(1.0, abs=1e-6)
        if beta >= 0:
            assert np.all(np.diff(p_paid) <= 0)

    def test_uniform_finish_roi(self, payout):
        """beta = 0 returns the pool share minus the rake."""
        assert expected_roi(payout, 24, 0.0) == pytest.approx(22000 / (1000 * 24) - 1)

    @pytest.mark.parametrize("target", [0.2, -0.2, 0.0, 3.0])
    def test_target_is_hit(self, payout, target):
        skill, p_paid, p_bust = solve_skill_model(payout, 24, target)
        assert skill.roi_achieved == pytest.approx(target, abs=1e-6)
        assert skill.warnings == []
        assert p_paid.sum() + p_bust == pytest.approx(1.0, abs=1e-6)

    def test_positive_roi_favours_top_places(self, payout):
        skill, p_paid, _ = solve_skill_model(payout, 24, 0.2)
        assert skill.beta > 0
        assert p_paid[0] > p_paid[-1]

    def test_infeasible_target_is_clamped(self, payout):
        skill, _, _ = solve_skill_model(payout, 24, 100.0)
        assert skill.max_roi_feasible == pytest.approx((1100 - 24) / 24, rel=1e-9)
        assert skill.roi_target == pytest.approx(skill.max_roi_feasible)
        assert skill.roi_achieved == pytest.approx(skill.max_roi_feasible, abs=1e-6)
        assert len(skill.warnings) == 1
        assert "exceeds max feasible ROI" in skill.warnings[0]

    def test_target_above_supported_range_warns(self):
        large = build_payout_model(100000, 15, 10, 5000)
        skill, _, _ = solve_skill_model(large, 10, 3000.0)
        assert skill.max_roi_feasible > 100
        assert skill.roi_target == 100.0
        assert len(skill.warnings) == 1
        assert "outside the supported range" in skill.warnings[0]
        assert "300000.0%" in skill.warnings[0]

    def test_target_below_supported_range_warns(self, payout):
        skill, _, _ = solve_skill_model(payout, 24, -2.0)
        assert skill.roi_target == -1.0
        assert len(skill.warnings) == 1
        assert "outside the supported range" in skill.warnings[0]


class TestTournamentModel:
    """Tests for the assembled single-tournament model."""

    @pytest.mark.parametrize("place,expected", [
        (1, "1st"), (2, "2nd"), (3, "3rd"), (4, "4th"), (11, "11th"), (12, "12th"),
        (13, "13th"), (21, "21st"), (22, "22nd"), (101, "101st"), (111, "111th"),
    ])
    def test_ordinal(self, place, expected):
        assert ordinal(place) == expected

    def test_outcome_set(self, model):
        outcomes = model.outcomes
        assert outcomes[0].label == BUST_LABEL
        assert outcomes[0].profit == pytest.approx(-11)
        assert outcomes[1].label == "1st"
        assert len(outcomes) == model.payout_model.num_paid + 1
        assert sum(o.probability for o in outcomes) == pytest.approx(1.0, abs=1e-9)
        for o in outcomes[1:]:
            assert o.profit == pytest.approx(o.prize - model.cost)

    def test_ev_matches_roi(self, model):
        per = model.per_tournament
        assert model.cost == pytest.approx(11)
        assert per.ev == pytest.approx(model.skill_model.roi_achieved * model.cost, abs=1e-9)
        assert per.ev == pytest.approx(1.1, abs=1e-4)
        assert per.sd == pytest.approx(math.sqrt(per.variance))
        assert per.itm_probability == pytest.approx(1 - model.outcomes[0].probability)

    def test_single_tournament_stats(self):
        stats = compute_single_tournament_stats(10, [30, 10], [0.1, 0.2], 0.7)
        assert stats.ev == pytest.approx(-5)
        assert stats.variance == pytest.approx(85)
        assert stats.itm_probability == pytest.approx(0.3)
        assert stats.avg_prize_when_cashing == pytest.approx(5 / 0.3)
        assert stats.avg_profit_when_cashing == pytest.approx(2 / 0.3)

    def test_confidence_data(self):
        points = generate_tournament_confidence_data(1000, 2.0, 30.0)
        assert points[0].trials == 0
        assert points[0].ci95_upper == 0
        assert points[-1].trials == 1000
        assert points[-1].ev == pytest.approx(2000)
        assert points[-1].ci70_upper - points[-1].ev == pytest.approx(1.036433 * 30 * math.sqrt(1000))

    def test_confidence_point_count_is_clamped(self):
        points = generate_tournament_confidence_data(1000, 1.0, 10.0, num_points=10)
        assert len(points) == 51
        assert generate_tournament_confidence_data(0, 1.0, 10.0)[0].trials == 0
        assert len(generate_tournament_confidence_data(0, 1.0, 10.0)) == 1


class TestSampling:
    """Tests for inverse-CDF sampling and paths."""

    def test_build_cdf(self):
        profits, cdf = build_cdf(make_outcomes([-1, 5, 20], [0.5, 0.3, 0.2]))
        np.testing.assert_array_equal(profits, [-1, 5, 20])
        np.testing.assert_allclose(cdf, [0.5, 0.8, 1.0])
        assert cdf[-1] == 1.0

    def test_build_cdf_renormalises(self):
        _, cdf = build_cdf(make_outcomes([0, 1, 2, 3], [1, -1, 1, 2]))
        np.testing.assert_allclose(cdf, [0.25, 0.25, 0.5, 1.0])

    def test_sample_index(self):
        cdf = np.array([0.5, 0.8, 1.0])
        assert sample_index(cdf, 0.0) == 0
        assert sample_index(cdf, 0.5) == 0
        assert sample_index(cdf, 0.50001) == 1
        assert sample_index(cdf, 0.99) == 2
        np.testing.assert_array_equal(sample_index(cdf, np.array([0.1, 0.7, 0.9])), [0, 1, 2])

    def test_path_recording(self, model):
        path = simulate_tournament_path(1000, model.outcomes, Mulberry32(1))
        assert len(path) == 251
        assert path.trials[-1] == 1000
        full = simulate_tournament_path(1000, model.outcomes, Mulberry32(1), record_every=1)
        assert len(full) == 1001
        assert full.final_value == pytest.approx(path.final_value)
        assert full.max_drawdown == pytest.approx(full.drawdowns.max())

    def test_path_keeps_final_point(self, model):
        path = simulate_tournament_path(7, model.outcomes, Mulberry32(1), record_every=3)
        np.testing.assert_array_equal(path.trials, [0, 3, 6, 7])

    def test_path_draws(self):
        outcomes = make_outcomes([-10, 90], [0.9, 0.1])
        profits, cdf = build_cdf(outcomes)
        draws = Mulberry32(4).random(50)
        expected = np.cumsum(profits[sample_index(cdf, draws)])
        path = simulate_tournament_path(50, outcomes, Mulberry32(4), record_every=1)
        np.testing.assert_allclose(path.values[1:], expected)

    def test_empty_path(self, model):
        path = simulate_tournament_path(0, model.outcomes, Mulberry32(1))
        assert len(path) == 1
        assert path.final_value == 0.0


class TestMonteCarlo:
    """Tests for the tournament Monte Carlo."""

    def test_matches_trial_by_trial_reference(self):
        outcomes = make_outcomes([-10, 10, 90], [0.8, 0.15, 0.05])
        result = run_tournament_monte_carlo(60, outcomes, 250, 300, 10, 10, Mulberry32(55), [5, 10])

        profits, cdf = build_cdf(outcomes)
        rng = Mulberry32(55)
        finals = []
        busted = 0
        for _ in range(250):
            walk = np.cumsum(profits[sample_index(cdf, rng.random(60))])
            finals.append(walk[-1])
            if np.any(300 + walk < 10):
                busted += 1

        np.testing.assert_allclose(result.final_profits, finals)
        assert result.num_trials == 250
        assert result.bust_probability == pytest.approx(busted / 250)
        assert result.simulated_probability_of_profit == pytest.approx(
            np.count_nonzero(np.array(finals) > 0) / 250
        )

    def test_bust_falls_with_bankroll(self, model):
        probabilities = []
        for buy_ins in (0, 10, 30, 100, 1e9):
            mc = run_tournament_monte_carlo(
                300, model.outcomes, 400, buy_ins * model.buy_in, model.cost, model.buy_in,
                Mulberry32(9),
            )
            probabilities.append(mc.bust_probability)
        assert probabilities[0] == 1.0
        assert probabilities[-1] == 0.0
        assert probabilities == sorted(probabilities, reverse=True)

    def test_thresholds_are_normalised(self, model):
        mc = run_tournament_monte_carlo(
            200, model.outcomes, 100, 1000, model.cost, model.buy_in, Mulberry32(2),
            [50, -5, 0, 10],
        )
        assert mc.downswing.thresholds_buy_ins == [10.0, 50.0]
        p10, p50 = mc.downswing.probabilities
        assert p10 >= p50
        assert mc.downswing.worst_max_drawdown >= mc.downswing.average_max_drawdown

    def test_final_profits_are_read_only(self, model):
        mc = run_tournament_monte_carlo(10, model.outcomes, 5, 0, model.cost, model.buy_in, Mulberry32(1))
        with pytest.raises(ValueError):
            mc.final_profits[0] = 0.0

    def test_no_trials(self, model):
        mc = run_tournament_monte_carlo(10, model.outcomes, 0, 100, model.cost, model.buy_in, Mulberry32(1))
        assert mc.num_trials == 0
        assert mc.bust_probability == 0.0

    def test_progress_reaches_one(self, model):
        seen = []
        run_tournament_monte_carlo(
            20, model.outcomes, 500, 100, model.cost, model.buy_in, Mulberry32(1),
            progress=seen.append,
        )
        assert seen[0] == 0.0
        assert seen[-1] == 1.0
        assert seen == sorted(seen)


class TestSummaries:

    def test_quantiles(self):
        profit_q, roi_q = summarize_final_profit_distribution(np.arange(101, dtype=float), 10, 10)
        assert [profit_q.p05, profit_q.p25, profit_q.p50, profit_q.p75, profit_q.p95] == \
            pytest.approx([5, 25, 50, 75, 95])
        assert roi_q.p50 == pytest.approx(0.5)

    def test_quantiles_of_nothing(self):
        profit_q, roi_q = summarize_final_profit_distribution([], 10, 0)
        assert profit_q.p50 == 0.0
        assert roi_q.p95 == 0.0

    def test_normal_approximation(self):
        assert normal_approx_probability_of_profit(0, 1) == 0.5
        assert normal_approx_probability_of_profit(1, 1) == pytest.approx(0.841345, abs=1e-6)
        assert normal_approx_probability_of_profit(5, 0) == 1.0
        assert normal_approx_probability_of_profit(-5, 0) == 0.0
        assert normal_approx_probability_of_profit(0, 0) == 0.5
