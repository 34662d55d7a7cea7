"""
Configuration management for the variance engine.

Mode presets, analysis defaults, and JSON loading utilities. Presets are plain
values: operations receive the config they should use instead of reading
these tables themselves.
"""

import json
from typing import Dict, Any, Union
from copy import deepcopy

from .types import SimulationModeConfig, TournamentModeConfig


# Z-values for confidence intervals
Z_70 = 1.036433  # normal_inverse_cdf(0.85), central 70%
Z_95 = 1.959964  # normal_inverse_cdf(0.975), central 95%

DEFAULTS: Dict[str, Any] = {
    'winrate': 2.5,
    'std_dev': 75.0,
    'hands': 100000,
    'mode': 'fast',
}

# Usual input ranges; the CLI notes values outside them. The engine itself only
# rejects values that are out of domain.
VALIDATION_RANGES: Dict[str, Dict[str, float]] = {
    'winrate': {'min': -50, 'max': 50},
    'std_dev': {'min': 10, 'max': 200},
    'hands': {'min': 1000, 'max': 10000000},
    'observed_winrate': {'min': -50, 'max': 50},
    'seed': {'min': 1, 'max': 2147483647},
}

# Hand counts for the variance summary table
MILESTONE_HANDS = [
    10000,
    25000,
    50000,
    100000,
    250000,
    500000,
    1000000,
]

# Downswing thresholds for the cash-game analysis (in BB)
DOWNSWING_THRESHOLDS = [
    2000,
    3000,
    4000,
    5000,
    7500,
    10000,
    15000,
    20000,
    30000,
    50000,
]

# Drawdown thresholds for the tournament analysis (in buy-ins)
DEFAULT_TOURNAMENT_THRESHOLDS = [20, 30, 50, 75, 100, 150, 200]

# Block size used by every downswing estimate
DOWNSWING_BLOCK_SIZE = 100

HANDS_PER_HOUR = 500


# =============================================================================
# Mode Presets
# =============================================================================

SIMULATION_MODES: Dict[str, SimulationModeConfig] = {
    'turbo': SimulationModeConfig(
        step_size=1000,
        num_paths=10,
        downswing_trials=1000,
        confidence_points=100,
    ),
    'fast': SimulationModeConfig(
        step_size=500,
        num_paths=20,
        downswing_trials=5000,
        confidence_points=100,
    ),
    'accurate': SimulationModeConfig(
        step_size=100,
        num_paths=20,
        downswing_trials=50000,
        confidence_points=200,
    ),
}

TOURNAMENT_MODES: Dict[str, TournamentModeConfig] = {
    'turbo': TournamentModeConfig(num_paths=12, num_trials=5000, confidence_points=160),
    'fast': TournamentModeConfig(num_paths=20, num_trials=20000, confidence_points=160),
    'accurate': TournamentModeConfig(num_paths=20, num_trials=50000, confidence_points=240),
}

MODE_NAMES = list(SIMULATION_MODES.keys())


def get_mode_config(name: str) -> SimulationModeConfig:
    """
    Get a copy of a cash-game mode preset.

    Raises:
        ValueError: If the mode name is unknown
    """
    if name not in SIMULATION_MODES:
        raise ValueError(
            f"Unknown mode '{name}'. Available: {', '.join(MODE_NAMES)}"
        )
    return deepcopy(SIMULATION_MODES[name])


def get_tournament_mode_config(name: str) -> TournamentModeConfig:
    """
    Get a copy of a tournament mode preset.

    Raises:
        ValueError: If the mode name is unknown
    """
    if name not in TOURNAMENT_MODES:
        raise ValueError(
            f"Unknown mode '{name}'. Available: {', '.join(TOURNAMENT_MODES)}"
        )
    return deepcopy(TOURNAMENT_MODES[name])


# =============================================================================
# JSON Loading Utilities
# =============================================================================

MODE_CONFIG_VERSION = "1.0"


def _validate_version(config: Dict[str, Any]) -> None:
    version = config.get('version', MODE_CONFIG_VERSION)
    if version != MODE_CONFIG_VERSION:
        raise ValueError(
            f"Unsupported mode config version '{version}'. "
            f"Expected '{MODE_CONFIG_VERSION}'."
        )


def load_mode_config_from_json(path: str) -> Dict[str, Union[SimulationModeConfig, TournamentModeConfig]]:
    """
    Load custom mode presets from a JSON file.

    Expected format:
    {
        "version": "1.0",
        "cash": {"step_size": 250, "num_paths": 15, "downswing_trials": 20000},
        "tournament": {"num_paths": 10, "num_trials": 10000}
    }

    Either section may be omitted, missing fields fall back to the 'fast'
    preset.

    Returns:
        Dict with 'cash' and/or 'tournament' keys

    Raises:
        ValueError: If config version is unsupported
    """
    with open(path, 'r') as f:
        data = json.load(f)

    _validate_version(data)

    configs: Dict[str, Union[SimulationModeConfig, TournamentModeConfig]] = {}

    if 'cash' in data:
        base = SIMULATION_MODES['fast']
        cash = data['cash']
        configs['cash'] = SimulationModeConfig(
            step_size=int(cash.get('step_size', base.step_size)),
            num_paths=int(cash.get('num_paths', base.num_paths)),
            downswing_trials=int(cash.get('downswing_trials', base.downswing_trials)),
            confidence_points=int(cash.get('confidence_points', base.confidence_points)),
        )

    if 'tournament' in data:
        base_t = TOURNAMENT_MODES['fast']
        tourney = data['tournament']
        configs['tournament'] = TournamentModeConfig(
            num_paths=int(tourney.get('num_paths', base_t.num_paths)),
            num_trials=int(tourney.get('num_trials', base_t.num_trials)),
            confidence_points=int(tourney.get('confidence_points', base_t.confidence_points)),
        )

    return configs


def save_mode_config_to_json(
    path: str,
    cash: SimulationModeConfig = None,
    tournament: TournamentModeConfig = None,
) -> None:
    """Save custom mode presets to a JSON file readable by load_mode_config_from_json()."""
    data: Dict[str, Any] = {'version': MODE_CONFIG_VERSION}
    if cash is not None:
        data['cash'] = cash.to_dict()
    if tournament is not None:
        data['tournament'] = tournament.to_dict()

    with open(path, 'w') as f:
        json.dump(data, f, indent=2)
