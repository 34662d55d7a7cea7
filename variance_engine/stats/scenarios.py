"""
Alternative winrate / stakes scenarios around a base parameter set.
"""

from dataclasses import dataclass
from typing import List, Dict, Any

from ..config import HANDS_PER_HOUR
from .cash import (
    expected_value,
    probability_of_profit,
    confidence_interval_95,
    risk_of_ruin,
    bankroll_for_risk_of_ruin,
)


@dataclass
class Scenario:
    id: str
    name: str
    description: str
    winrate: float
    stakes: float  # currency per big blind
    is_base: bool = False


@dataclass
class ScenarioMetrics:
    scenario: Scenario
    expected_value: float
    expected_value_dollars: float
    probability_of_profit: float
    ci95_lower: float
    ci95_upper: float
    risk_of_ruin: float
    recommended_bankroll: float
    recommended_bankroll_dollars: float
    hourly_rate_dollars: float

    def to_dict(self) -> Dict[str, Any]:
        return {
            'id': self.scenario.id,
            'name': self.scenario.name,
            'description': self.scenario.description,
            'winrate': self.scenario.winrate,
            'stakes': self.scenario.stakes,
            'is_base': self.scenario.is_base,
            'expected_value': self.expected_value,
            'expected_value_dollars': self.expected_value_dollars,
            'probability_of_profit': self.probability_of_profit,
            'ci95_lower': self.ci95_lower,
            'ci95_upper': self.ci95_upper,
            'risk_of_ruin': self.risk_of_ruin,
            'recommended_bankroll': self.recommended_bankroll,
            'recommended_bankroll_dollars': self.recommended_bankroll_dollars,
            'hourly_rate_dollars': self.hourly_rate_dollars,
        }


@dataclass
class ScenarioComparison:
    scenarios: List[ScenarioMetrics]
    base: ScenarioMetrics
    hands: int
    bankroll: float


def generate_default_scenarios(base_winrate: float, base_stakes: float) -> List[Scenario]:
    """Current parameters plus ±30%/±60% winrate and a half-stakes variant."""
    scenarios = [
        Scenario('current', 'Current', 'Your current parameters',
                 base_winrate, base_stakes, is_base=True),
    ]

    for scenario_id, name, factor in [
        ('plus30', '+30% Winrate', 1.3),
        ('minus30', '-30% Winrate', 0.7),
        ('plus60', '+60% Winrate', 1.6),
        ('minus60', '-60% Winrate', 0.4),
    ]:
        winrate = base_winrate * factor
        scenarios.append(Scenario(
            scenario_id, name, f"{winrate:.1f} BB/100 at same stakes",
            winrate, base_stakes,
        ))

    half_winrate = base_winrate * 1.6
    scenarios.append(Scenario(
        'halfStakes', 'Half Stakes +60% WR',
        f"{half_winrate:.1f} BB/100 at ${base_stakes / 2:.2f} BB",
        half_winrate, base_stakes / 2,
    ))
    return scenarios


def calculate_scenario_metrics(
    scenario: Scenario,
    hands: int,
    std_dev: float,
    bankroll: float,
) -> ScenarioMetrics:
    ev = expected_value(hands, scenario.winrate)
    ci95 = confidence_interval_95(hands, scenario.winrate, std_dev)
    recommended = bankroll_for_risk_of_ruin(scenario.winrate, 0.05, std_dev)

    return ScenarioMetrics(
        scenario=scenario,
        expected_value=ev,
        expected_value_dollars=ev * scenario.stakes,
        probability_of_profit=probability_of_profit(hands, scenario.winrate, std_dev),
        ci95_lower=ci95.lower,
        ci95_upper=ci95.upper,
        risk_of_ruin=risk_of_ruin(scenario.winrate, bankroll, std_dev),
        recommended_bankroll=recommended,
        recommended_bankroll_dollars=recommended * scenario.stakes,
        hourly_rate_dollars=(scenario.winrate / 100) * HANDS_PER_HOUR * scenario.stakes,
    )


def compare_scenarios(
    base_winrate: float,
    base_stakes: float,
    hands: int,
    std_dev: float,
    bankroll: float,
) -> ScenarioComparison:
    metrics = [
        calculate_scenario_metrics(s, hands, std_dev, bankroll)
        for s in generate_default_scenarios(base_winrate, base_stakes)
    ]
    base = next(m for m in metrics if m.scenario.is_base)
    return ScenarioComparison(scenarios=metrics, base=base, hands=hands, bankroll=bankroll)
