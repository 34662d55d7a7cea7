"""
Tests for the downswing analysis and the single-threshold estimate.
"""

import math

import numpy as np
import pytest

from variance_engine.progress import ProgressReporter, SimulationCancelled
from variance_engine.simulation.downswing import (
    estimate_max_drawdown_probability,
    run_downswing_analysis,
)
from variance_engine.simulation.paths import block_parameters
from variance_engine.simulation.rng import Mulberry32, normal_block, normal_variate
from variance_engine.stats.cash import downswing_probability


def reference_analysis(total_trials, winrate, std_dev, num_runs, seed, thresholds):
    """One run at a time, one block at a time."""
    rng = Mulberry32(seed)
    num_steps = math.ceil(total_trials / 100)
    mean, sd = block_parameters(winrate, std_dev, 100)

    max_drawdowns = []
    counts = np.zeros((num_runs, len(thresholds)))
    recoveries = []

    for run in range(num_runs):
        results = normal_block(rng, num_steps, mean, sd)
        cumulative = 0.0
        peak = 0.0
        worst = 0.0
        in_downswing = False
        start = 0
        counted = set()
        for k, result in enumerate(results):
            cumulative += result
            if cumulative > peak:
                peak = cumulative
                if in_downswing:
                    recoveries.append((k - start) * 100)
                    in_downswing = False
                counted = set()
            drawdown = peak - cumulative
            if drawdown > 0 and not in_downswing:
                in_downswing = True
                start = k
            worst = max(worst, drawdown)
            for j, threshold in enumerate(thresholds):
                if drawdown >= threshold and j not in counted:
                    counts[run, j] += 1
                    counted.add(j)
        max_drawdowns.append(worst)

    return np.array(max_drawdowns), counts, recoveries


def reference_estimate(total_trials, winrate, std_dev, threshold, num_runs, seed):
    rng = Mulberry32(seed)
    num_steps = math.ceil(total_trials / 100)
    mean, sd = block_parameters(winrate, std_dev, 100)
    exceeded = 0
    for _ in range(num_runs):
        cumulative = 0.0
        peak = 0.0
        for _ in range(num_steps):
            cumulative += normal_variate(rng, mean, sd)
            peak = max(peak, cumulative)
            if peak - cumulative >= threshold:
                exceeded += 1
                break
    return exceeded / num_runs


class TestDownswingAnalysis:
    """Tests for run_downswing_analysis."""

    THRESHOLDS = [100, 250, 500, 1000]

    @pytest.mark.parametrize("num_runs", [7, 300])
    def test_matches_run_by_run_reference(self, num_runs):
        """Chunked analysis agrees with a one-run-at-a-time walk."""
        stats = run_downswing_analysis(
            2000, 1.5, 80, num_runs, Mulberry32(4242), self.THRESHOLDS
        )
        max_dd, counts, recoveries = reference_analysis(
            2000, 1.5, 80, num_runs, 4242, self.THRESHOLDS
        )

        assert stats.average_max_drawdown == pytest.approx(max_dd.mean(), rel=1e-9)
        assert stats.worst_max_drawdown == pytest.approx(max_dd.max(), rel=1e-9)
        for j, threshold in enumerate(self.THRESHOLDS):
            assert stats.probabilities[j].threshold == threshold
            assert stats.probabilities[j].probability == pytest.approx(
                np.count_nonzero(counts[:, j]) / num_runs
            )
            assert stats.expected_counts[j].count == pytest.approx(counts[:, j].sum() / num_runs)
        assert stats.average_recovery == pytest.approx(np.mean(recoveries))
        assert stats.longest_recovery == max(recoveries)

    def test_consumes_two_draws_per_block(self):
        rng = Mulberry32(10)
        run_downswing_analysis(1000, 2.5, 75, 25, rng, self.THRESHOLDS)
        reference = Mulberry32(10)
        reference.advance(2 * 10 * 25)
        assert rng.state == reference.state

    def test_probabilities_fall_with_threshold(self):
        stats = run_downswing_analysis(20000, 2.5, 75, 500, Mulberry32(3))
        probabilities = [p.probability for p in stats.probabilities]
        counts = [c.count for c in stats.expected_counts]
        assert probabilities == sorted(probabilities, reverse=True)
        assert counts == sorted(counts, reverse=True)
        assert all(0 <= p <= 1 for p in probabilities)

    def test_zero_variance_winner_never_draws_down(self):
        stats = run_downswing_analysis(10000, 5.0, 0.0, 50, Mulberry32(1), self.THRESHOLDS)
        assert all(p.probability == 0 for p in stats.probabilities)
        assert stats.worst_max_drawdown == 0
        assert stats.average_recovery == 0
        assert stats.longest_recovery == 0

    def test_zero_variance_loser(self):
        """A steady loser hits every threshold up to its total loss, once."""
        stats = run_downswing_analysis(10000, -10.0, 0.0, 20, Mulberry32(1), [500, 1000, 2000])
        assert [p.probability for p in stats.probabilities] == [1.0, 1.0, 0.0]
        assert [c.count for c in stats.expected_counts] == [1.0, 1.0, 0.0]
        assert stats.worst_max_drawdown == 1000
        assert stats.longest_recovery == 0

    def test_no_runs(self):
        stats = run_downswing_analysis(10000, 2.5, 75, 0, Mulberry32(1), self.THRESHOLDS)
        assert [p.probability for p in stats.probabilities] == [0.0] * 4
        assert stats.average_max_drawdown == 0.0

    def test_progress_is_monotone(self):
        seen = []
        run_downswing_analysis(2000, 2.5, 75, 1000, Mulberry32(1), progress=seen.append)
        assert seen[0] == 0.0
        assert seen == sorted(seen)
        assert all(0 <= p < 1 for p in seen)
        assert len(seen) >= 50

    def test_progress_does_not_change_results(self):
        silent = run_downswing_analysis(3000, 2.5, 75, 200, Mulberry32(6))
        noisy = run_downswing_analysis(3000, 2.5, 75, 200, Mulberry32(6), progress=lambda p: None)
        assert silent.to_dict() == noisy.to_dict()

    def test_cancellation(self):
        calls = []

        def should_cancel():
            calls.append(1)
            return len(calls) > 3

        reporter = ProgressReporter(should_cancel=should_cancel)
        with pytest.raises(SimulationCancelled):
            run_downswing_analysis(2000, 2.5, 75, 1000, Mulberry32(1), progress=reporter)


class TestSingleThresholdEstimate:
    """Tests for estimate_max_drawdown_probability."""

    def test_matches_sequential_reference(self):
        estimate = estimate_max_drawdown_probability(5000, 1.0, 80, 600, 400, Mulberry32(2718))
        assert estimate == reference_estimate(5000, 1.0, 80, 600, 400, 2718)

    def test_edge_cases(self):
        assert estimate_max_drawdown_probability(10000, 2.5, 75, 500, 0, Mulberry32(1)) == 0.0
        assert estimate_max_drawdown_probability(0, 2.5, 75, 500, 100, Mulberry32(1)) == 0.0
        assert estimate_max_drawdown_probability(10000, 2.5, 75, 0, 100, Mulberry32(1)) == 1.0
        assert estimate_max_drawdown_probability(10000, 2.5, 75, -5, 100, Mulberry32(1)) == 1.0

    def test_stops_at_first_crossing(self):
        """Only the draws up to the crossing block are consumed."""
        rng = Mulberry32(21)
        probability = estimate_max_drawdown_probability(10000, -10.0, 0.0, 500, 8, rng)
        assert probability == 1.0
        reference = Mulberry32(21)
        reference.advance(8 * 2 * 50)
        assert rng.state == reference.state

    def test_early_crossing_generates_few_draws(self, monkeypatch):
        """A run that crosses in its first blocks never looks far ahead."""
        generated = []
        original_peek = Mulberry32.peek

        def counting_peek(self, n):
            generated.append(n)
            return original_peek(self, n)

        monkeypatch.setattr(Mulberry32, 'peek', counting_peek)
        probability = estimate_max_drawdown_probability(10_000_000, -50.0, 75, 500, 200, Mulberry32(5))
        assert probability == 1.0
        assert sum(generated) / 200 <= 2 * 64 * 4

    def test_long_run_looks_ahead_in_growing_chunks(self, monkeypatch):
        generated = []
        original_peek = Mulberry32.peek

        def counting_peek(self, n):
            generated.append(n)
            return original_peek(self, n)

        monkeypatch.setattr(Mulberry32, 'peek', counting_peek)
        estimate_max_drawdown_probability(100000, 2.5, 75, 1e9, 1, Mulberry32(5))
        assert generated == [128, 256, 512, 1024, 80]

    def test_uncrossed_runs_consume_whole_horizon(self):
        rng = Mulberry32(21)
        probability = estimate_max_drawdown_probability(3000, 2.5, 75, 1e9, 12, rng)
        assert probability == 0.0
        reference = Mulberry32(21)
        reference.advance(12 * 2 * 30)
        assert rng.state == reference.state

    def test_losing_player_agrees_with_closed_form(self):
        """Both the simulation and exp(-2 mu B / sigma^2) say a loser goes broke."""
        estimate = estimate_max_drawdown_probability(100000, -5.0, 50, 500, 300, Mulberry32(8))
        assert downswing_probability(500, -5.0, 50) == 1.0
        assert estimate > 0.95

    def test_long_horizon_winner_is_at_least_closed_form(self):
        """Later peaks only add downswings to the first passage from the start."""
        closed_form = downswing_probability(1000, 5.0, 80)
        estimate = estimate_max_drawdown_probability(200000, 5.0, 80, 1000, 500, Mulberry32(12))
        assert 0 < closed_form < 1
        assert estimate >= closed_form - 0.05

    def test_probability_rises_with_horizon(self):
        short = estimate_max_drawdown_probability(5000, 2.5, 75, 1000, 2000, Mulberry32(17))
        long = estimate_max_drawdown_probability(100000, 2.5, 75, 1000, 2000, Mulberry32(17))
        assert short < long

    def test_progress_ends_at_one(self):
        seen = []
        estimate_max_drawdown_probability(2000, 2.5, 75, 300, 250, Mulberry32(1), progress=seen.append)
        assert seen[-1] == 1.0
        assert seen == sorted(seen)
