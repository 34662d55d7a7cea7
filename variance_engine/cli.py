"""
Command-line interface for the variance engine.
"""

import json
import logging

import click

from .config import (
    DEFAULTS,
    DEFAULT_TOURNAMENT_THRESHOLDS,
    MODE_NAMES,
    VALIDATION_RANGES,
    load_mode_config_from_json,
)
from .engine import (
    build_tournament_model,
    run_cash_game_simulation,
    run_downswing_estimate,
    run_tournament_simulation,
)
from .export import export_detailed_path_csv, export_sample_paths_csv, scenarios_to_frame
from .stats.bayesian import bayesian_winner_analysis
from .stats.scenarios import compare_scenarios
from .types import GameParameters
from .validation import (
    ValidationError,
    require_finite,
    require_non_negative,
    require_positive,
    validate_game_parameters,
)


def _setup_logging(verbose: bool) -> None:
    if verbose:
        logging.basicConfig(
            level=logging.INFO,
            format='%(asctime)s - %(name)s - %(levelname)s - %(message)s'
        )


def _load_custom_config(path, section: str):
    if not path:
        return None
    try:
        configs = load_mode_config_from_json(path)
    except ValueError as e:
        raise click.BadParameter(str(e), param_hint="'--mode-config'")
    if section not in configs:
        raise click.BadParameter(
            f"Mode config has no '{section}' section", param_hint="'--mode-config'"
        )
    return configs[section]


def _write_json(output: str, data: dict) -> None:
    with open(output, 'w') as f:
        json.dump(data, f, indent=2, default=str)
    click.echo(f"\nResults saved to {output}")


def _progress_printer(verbose: bool):
    if not verbose:
        return None

    state = {'last': -1}

    def callback(fraction: float) -> None:
        pct = int(fraction * 100)
        if pct // 10 > state['last'] // 10:
            state['last'] = pct
            click.echo(f"  ... {pct}%", err=True)

    return callback


def _note_unusual_inputs(**values) -> None:
    """Point out inputs outside the usual ranges; they are still simulated."""
    for name, value in values.items():
        bounds = VALIDATION_RANGES.get(name)
        if bounds is None or value is None:
            continue
        if not bounds['min'] <= value <= bounds['max']:
            click.echo(
                f"Note: {name} = {value:g} is outside the usual range "
                f"[{bounds['min']:g}, {bounds['max']:g}]",
                err=True,
            )


def _pct(value) -> str:
    return "n/a" if value is None else f"{value:.1%}"


@click.group()
def main():
    """Bankroll variance and risk-of-ruin simulator."""


@main.command()
@click.option('--winrate', '-w', type=float, default=DEFAULTS['winrate'], show_default=True,
              help='Winrate in BB/100')
@click.option('--std-dev', '-s', type=float, default=DEFAULTS['std_dev'], show_default=True,
              help='Standard deviation in BB/100')
@click.option('--hands', '-n', type=int, default=DEFAULTS['hands'], show_default=True,
              help='Number of hands to simulate')
@click.option('--observed-winrate', type=float, default=None,
              help='Winrate you actually observed (BB/100)')
@click.option('--mode', '-m', type=click.Choice(MODE_NAMES), default=DEFAULTS['mode'], show_default=True,
              help='Precision / runtime preset')
@click.option('--mode-config', type=click.Path(exists=True),
              help='JSON file with a custom cash-game preset (overrides --mode)')
@click.option('--seed', type=int, help='Random seed for reproducibility')
@click.option('--output', '-o', type=click.Path(), help='Output file for results JSON')
@click.option('--paths-csv', type=click.Path(), help='Write sample paths and CI bands to CSV')
@click.option('--detailed-csv', type=click.Path(), help='Write the detailed 100-hand path to CSV')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
def cash(winrate, std_dev, hands, observed_winrate, mode, mode_config, seed,
         output, paths_csv, detailed_csv, verbose):
    """Simulate a cash-game results distribution."""
    _setup_logging(verbose)
    config = _load_custom_config(mode_config, 'cash')
    _note_unusual_inputs(
        winrate=winrate, std_dev=std_dev, hands=hands, observed_winrate=observed_winrate
    )

    params = GameParameters(
        winrate=winrate, std_dev=std_dev, hands=hands, observed_winrate=observed_winrate
    )
    try:
        result = run_cash_game_simulation(
            params, mode=mode, seed=seed, config=config, progress=_progress_printer(verbose)
        )
    except ValidationError as e:
        raise click.BadParameter(str(e))

    metrics = result.analytical_metrics
    ds = result.downswing_stats

    click.echo("\n" + "=" * 60)
    click.echo("CASH-GAME RESULTS")
    click.echo("=" * 60)
    click.echo(f"  Hands: {result.rounded_hands:,} (seed {result.seed}, mode {result.mode})")
    click.echo(f"  Expected value: {metrics.expected_value:,.1f} BB")
    click.echo(f"  Standard deviation: {metrics.standard_deviation:,.1f} BB")
    click.echo(f"  70% range: {metrics.confidence_interval_70.lower:,.1f} to "
               f"{metrics.confidence_interval_70.upper:,.1f} BB")
    click.echo(f"  95% range: {metrics.confidence_interval_95.lower:,.1f} to "
               f"{metrics.confidence_interval_95.upper:,.1f} BB")
    click.echo(f"  P(Loss): {metrics.probability_of_loss:.1%}")
    click.echo(f"  Bankroll for 5% RoR: {metrics.minimum_bankroll_5pct:,.0f} BB")
    if metrics.probability_above_observed is not None:
        click.echo(f"  P(at or above observed winrate): {metrics.probability_above_observed:.1%}")

    click.echo("\n  Downswings:")
    for p, c in zip(ds.probabilities, ds.expected_counts):
        click.echo(f"    {p.threshold:>8,.0f} BB: {p.probability:6.1%}  (avg {c.count:.2f} per run)")
    click.echo(f"  Avg max drawdown: {ds.average_max_drawdown:,.0f} BB | "
               f"Worst: {ds.worst_max_drawdown:,.0f} BB")
    click.echo(f"  Avg recovery: {ds.average_recovery:,.0f} hands | "
               f"Longest: {ds.longest_recovery:,.0f} hands")

    if paths_csv:
        export_sample_paths_csv(paths_csv, result.sample_paths, result.confidence_data)
        click.echo(f"\nSample paths saved to {paths_csv}")
    if detailed_csv:
        export_detailed_path_csv(detailed_csv, result.detailed_path)
        click.echo(f"Detailed path saved to {detailed_csv}")
    if output:
        _write_json(output, result.to_dict())


@main.command()
@click.option('--hands', '-n', type=int, default=DEFAULTS['hands'], show_default=True,
              help='Horizon in hands')
@click.option('--winrate', '-w', type=float, default=DEFAULTS['winrate'], show_default=True,
              help='Winrate in BB/100')
@click.option('--std-dev', '-s', type=float, default=DEFAULTS['std_dev'], show_default=True,
              help='Standard deviation in BB/100')
@click.option('--threshold', '-t', type=float, required=True,
              help='Drawdown threshold in BB')
@click.option('--simulations', type=int, default=None,
              help='Number of runs (default: the mode preset)')
@click.option('--mode', '-m', type=click.Choice(MODE_NAMES), default='turbo', show_default=True,
              help='Precision / runtime preset')
@click.option('--seed', type=int, help='Random seed for reproducibility')
@click.option('--output', '-o', type=click.Path(), help='Output file for results JSON')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
def downswing(hands, winrate, std_dev, threshold, simulations, mode, seed, output, verbose):
    """Estimate P(max drawdown >= threshold) within a horizon."""
    _setup_logging(verbose)
    _note_unusual_inputs(winrate=winrate, std_dev=std_dev, hands=hands)
    try:
        estimate = run_downswing_estimate(
            hands, winrate, std_dev, threshold,
            num_simulations=simulations, mode=mode, seed=seed,
            progress=_progress_printer(verbose),
        )
    except ValidationError as e:
        raise click.BadParameter(str(e))

    click.echo(
        f"P(drawdown >= {estimate.threshold:,.0f} BB within {estimate.hands:,} hands): "
        f"{estimate.probability:.1%} ({estimate.num_simulations} runs)"
    )
    if output:
        _write_json(output, estimate.to_dict())


@main.command()
@click.option('--field-size', type=int, default=1000, show_default=True, help='Entrants')
@click.option('--percent-paid', type=float, default=15.0, show_default=True,
              help='Percentage of the field that cashes')
@click.option('--buy-in', type=float, default=20.0, show_default=True,
              help='Prize-pool contribution per entry')
@click.option('--fee', type=float, default=2.0, show_default=True, help='Rake per entry')
@click.option('--top-prize', type=float, default=200.0, show_default=True,
              help='Requested first prize in buy-ins')
@click.option('--roi', type=float, default=10.0, show_default=True, help='Target ROI in percent')
@click.option('--tournaments', '-n', type=int, default=1000, show_default=True,
              help='Tournaments per series')
@click.option('--bankroll', type=float, default=100.0, show_default=True,
              help='Starting bankroll in buy-ins')
@click.option('--threshold', 'thresholds', type=float, multiple=True,
              help='Drawdown threshold in buy-ins (repeatable)')
@click.option('--trials', type=int, default=None, help='Monte Carlo trials (default: the mode preset)')
@click.option('--mode', '-m', type=click.Choice(MODE_NAMES), default=DEFAULTS['mode'], show_default=True,
              help='Precision / runtime preset')
@click.option('--mode-config', type=click.Path(exists=True),
              help='JSON file with a custom tournament preset (overrides --mode)')
@click.option('--seed', type=int, help='Random seed for reproducibility')
@click.option('--output', '-o', type=click.Path(), help='Output file for results JSON')
@click.option('--paths-csv', type=click.Path(), help='Write sample paths and CI bands to CSV')
@click.option('--verbose', '-v', is_flag=True, help='Verbose output')
def tournament(field_size, percent_paid, buy_in, fee, top_prize, roi, tournaments, bankroll,
               thresholds, trials, mode, mode_config, seed, output, paths_csv, verbose):
    """Fit a tournament model and simulate a series of entries."""
    _setup_logging(verbose)
    config = _load_custom_config(mode_config, 'tournament')

    try:
        model = build_tournament_model(field_size, percent_paid, buy_in, fee, top_prize, roi)
        result = run_tournament_simulation(
            model,
            tournaments,
            num_trials=trials,
            bankroll_buy_ins=bankroll,
            drawdown_thresholds=list(thresholds) or DEFAULT_TOURNAMENT_THRESHOLDS,
            seed=seed,
            mode=mode,
            config=config,
            progress=_progress_printer(verbose),
        )
    except ValidationError as e:
        raise click.BadParameter(str(e))

    payout = model.payout_model
    per = model.per_tournament
    agg = result.aggregate
    br = result.bankroll

    for warning in model.warnings:
        click.echo(f"Warning: {warning}", err=True)

    click.echo("\n" + "=" * 60)
    click.echo("TOURNAMENT MODEL")
    click.echo("=" * 60)
    click.echo(f"  Paid places: {payout.num_paid} of {payout.field_size} | "
               f"Prize pool: ${payout.prize_pool:,.2f}")
    click.echo(f"  First prize: ${payout.top_prize_actual:,.2f} (alpha {payout.alpha:.3f})")
    click.echo(f"  ROI: {model.skill_model.roi_achieved:.1%} (beta {model.skill_model.beta:.3f})")
    click.echo(f"  EV: ${per.ev:,.2f} | SD: ${per.sd:,.2f} | ITM: {per.itm_probability:.1%}")

    click.echo("\n" + "=" * 60)
    click.echo(f"SIMULATION ({result.num_trials} trials, seed {result.seed})")
    click.echo("=" * 60)
    click.echo(f"  Expected profit: ${agg.expected_profit:,.2f} | SD: ${agg.sd_profit:,.2f}")
    click.echo(f"  P(Profit): {agg.simulated_probability_of_profit:.1%} "
               f"(normal approx {agg.normal_approx_probability_of_profit:.1%})")
    q = agg.profit_quantiles
    click.echo(f"  Profit 5/50/95%: ${q.p05:,.0f} / ${q.p50:,.0f} / ${q.p95:,.0f}")
    click.echo(f"  P(Bust) with {br.bankroll_buy_ins:g} buy-ins: {br.bust_probability:.1%} | "
               f"Long-run RoR: {_pct(br.approx_infinite_ror)}")
    if br.approx_bankroll_for_1pct_ror is not None:
        click.echo(f"  Bankroll for 1% RoR: {br.approx_bankroll_for_1pct_ror:,.0f} buy-ins")

    click.echo("\n  Drawdowns:")
    for level, probability in zip(result.downswing.thresholds_buy_ins, result.downswing.probabilities):
        click.echo(f"    {level:>6g} buy-ins: {probability:6.1%}")

    if paths_csv:
        export_sample_paths_csv(paths_csv, result.sample_paths, result.confidence,
                                index_name='tournaments')
        click.echo(f"\nSample paths saved to {paths_csv}")
    if output:
        _write_json(output, result.to_dict())


@main.command()
@click.option('--winnings', type=float, required=True, help='Total result so far in BB')
@click.option('--hands', '-n', type=int, required=True, help='Hands played')
@click.option('--std-dev', '-s', type=float, default=DEFAULTS['std_dev'], show_default=True,
              help='Standard deviation in BB/100')
@click.option('--target', type=float, default=0.0, show_default=True,
              help='Winrate to compare against (BB/100)')
@click.option('--output', '-o', type=click.Path(), help='Output file for results JSON')
def winner(winnings, hands, std_dev, target, output):
    """How sure can you be that you are a winning player?"""
    try:
        require_finite(winnings, "Winnings")
        require_finite(target, "Target winrate")
        validate_game_parameters(0.0, std_dev, hands)
    except ValidationError as e:
        raise click.BadParameter(str(e))

    analysis = bayesian_winner_analysis(winnings, hands, std_dev, target)

    click.echo(f"Observed winrate: {analysis.observed_winrate:.2f} BB/100 over {hands:,} hands "
               f"(SE {analysis.standard_error:.2f})")
    click.echo(f"  P(true winrate > 0): {analysis.probability_winner:.1%}")
    if target != 0:
        click.echo(f"  P(true winrate > {target:g}): {analysis.probability_above_target:.1%}")
    for ci in analysis.credible_intervals:
        click.echo(f"  {ci.label}: {ci.lower:.2f} to {ci.upper:.2f} BB/100")
    if output:
        _write_json(output, analysis.to_dict())


@main.command()
@click.option('--winrate', '-w', type=float, default=DEFAULTS['winrate'], show_default=True,
              help='Winrate in BB/100')
@click.option('--std-dev', '-s', type=float, default=DEFAULTS['std_dev'], show_default=True,
              help='Standard deviation in BB/100')
@click.option('--hands', '-n', type=int, default=DEFAULTS['hands'], show_default=True,
              help='Hands per scenario')
@click.option('--stakes', type=float, default=1.0, show_default=True,
              help='Currency per big blind')
@click.option('--bankroll', type=float, default=3000.0, show_default=True,
              help='Bankroll in BB')
@click.option('--csv', 'csv_path', type=click.Path(), help='Write the comparison table to CSV')
def scenarios(winrate, std_dev, hands, stakes, bankroll, csv_path):
    """Compare the current winrate with better, worse and lower-stakes variants."""
    try:
        validate_game_parameters(winrate, std_dev, hands)
        require_positive(stakes, "Stakes")
        require_non_negative(bankroll, "Bankroll")
    except ValidationError as e:
        raise click.BadParameter(str(e))

    frame = scenarios_to_frame(compare_scenarios(winrate, stakes, hands, std_dev, bankroll))
    columns = ['name', 'winrate', 'expected_value_dollars', 'probability_of_profit',
               'risk_of_ruin', 'hourly_rate_dollars']
    click.echo(frame[columns].to_string(float_format=lambda x: f"{x:,.3f}"))

    if csv_path:
        frame.to_csv(csv_path)
        click.echo(f"\nScenarios saved to {csv_path}")


if __name__ == '__main__':
    main()
