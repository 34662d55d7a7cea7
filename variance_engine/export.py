"""
Tabular export of simulation output.

Paths and tables are turned into pandas DataFrames so callers can either
write CSV directly or keep working with the frame.
"""

import logging
from typing import Optional, Sequence

import numpy as np
import pandas as pd

from .stats.scenarios import ScenarioComparison
from .types import ConfidencePoint, MilestoneSummary, SimulationPath

logger = logging.getLogger(__name__)


def sample_paths_to_frame(
    paths: Sequence[SimulationPath],
    confidence: Optional[Sequence[ConfidencePoint]] = None,
    index_name: str = 'hands',
) -> pd.DataFrame:
    """
    One row per recorded trial count, one column per path.

    When confidence points are given, EV and band columns are joined on the
    trial count (missing counts are left empty).

    Args:
        paths: Sample paths sharing the same x-axis
        confidence: Optional EV / CI band series
        index_name: Name of the x-axis column ('hands' or 'tournaments')
    """
    if not paths:
        frame = pd.DataFrame({index_name: pd.Series(dtype=np.float64)})
    else:
        frame = pd.DataFrame({index_name: paths[0].trials})
        for i, path in enumerate(paths, start=1):
            if len(path) != len(frame):
                raise ValueError("Sample paths must share the same x-axis to be exported together.")
            frame[f'path_{i}'] = path.values

    if confidence:
        bands = pd.DataFrame([c.to_dict() for c in confidence]).rename(columns={'trials': index_name})
        bands[index_name] = bands[index_name].astype(np.float64)
        frame = frame.merge(bands, on=index_name, how='left')

    return frame


def export_sample_paths_csv(
    path: str,
    paths: Sequence[SimulationPath],
    confidence: Optional[Sequence[ConfidencePoint]] = None,
    index_name: str = 'hands',
) -> pd.DataFrame:
    """Write sample_paths_to_frame() to CSV and return the frame."""
    frame = sample_paths_to_frame(paths, confidence, index_name)
    frame.to_csv(path, index=False)
    logger.info(f"Wrote {len(paths)} sample paths to {path}")
    return frame


def detailed_path_to_frame(path: SimulationPath, index_name: str = 'hands') -> pd.DataFrame:
    return pd.DataFrame({
        index_name: path.trials,
        'value': path.values,
        'peak': path.peaks,
        'drawdown': path.drawdowns,
    })


def export_detailed_path_csv(path: str, detailed: SimulationPath, index_name: str = 'hands') -> pd.DataFrame:
    frame = detailed_path_to_frame(detailed, index_name)
    frame.to_csv(path, index=False)
    logger.info(f"Wrote detailed path ({len(frame)} points) to {path}")
    return frame


def milestones_to_frame(milestones: Sequence[MilestoneSummary]) -> pd.DataFrame:
    columns = [
        'hands', 'expected_value', 'standard_deviation', 'ci95_lower',
        'ci95_upper', 'probability_of_profit', 'required_bankroll',
    ]
    return pd.DataFrame([m.to_dict() for m in milestones], columns=columns)


def scenarios_to_frame(comparison: ScenarioComparison) -> pd.DataFrame:
    """One row per scenario, indexed by scenario id."""
    return pd.DataFrame([m.to_dict() for m in comparison.scenarios]).set_index('id')
