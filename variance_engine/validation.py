"""
Input validation for the engine's entry points.

Validation happens once, before any simulation work starts. Degenerate but
in-domain values (zero variance, losing winrate, zero threshold) are not
errors; the statistics layer answers them with sentinel values.
"""

import math
from numbers import Integral, Real
from typing import Optional, Iterable


class ValidationError(ValueError):
    """Raised when an operation receives non-finite or out-of-domain input."""


def _is_number(value) -> bool:
    return isinstance(value, Real) and not isinstance(value, bool)


def require_finite(value, name: str) -> float:
    if not _is_number(value) or not math.isfinite(value):
        raise ValidationError(f"{name} must be a finite number.")
    return float(value)


def require_positive(value, name: str) -> float:
    value = require_finite(value, name)
    if value <= 0:
        raise ValidationError(f"{name} must be a positive number.")
    return value


def require_non_negative(value, name: str) -> float:
    value = require_finite(value, name)
    if value < 0:
        raise ValidationError(f"{name} must be 0 or greater.")
    return value


def require_count(value, name: str) -> int:
    """Non-negative whole number (floats are floored, as the front end sends them)."""
    value = require_non_negative(value, name)
    return int(math.floor(value))


def validate_seed(seed) -> Optional[int]:
    """A seed is either omitted or a positive integer."""
    if seed is None:
        return None
    if isinstance(seed, bool) or not isinstance(seed, Integral):
        if _is_number(seed) and math.isfinite(seed) and float(seed).is_integer():
            seed = int(seed)
        else:
            raise ValidationError("Seed must be a positive integer.")
    if seed <= 0:
        raise ValidationError("Seed must be a positive integer.")
    return int(seed)


def validate_mode(mode: str, available: Iterable[str]) -> str:
    available = list(available)
    if mode not in available:
        raise ValidationError(
            f"Invalid mode '{mode}'. Expected one of: {', '.join(available)}."
        )
    return mode


def validate_game_parameters(winrate, std_dev, hands, observed_winrate=None) -> None:
    """Validate cash-game inputs."""
    require_finite(winrate, "Winrate")
    require_non_negative(std_dev, "Standard deviation")
    require_non_negative(hands, "Hands")
    if observed_winrate is not None:
        require_finite(observed_winrate, "Observed winrate")


def validate_tournament_inputs(
    field_size,
    percent_paid,
    buy_in,
    fee,
    top_prize_multiple,
    roi_target_percent,
) -> None:
    """Validate the inputs that define a tournament model."""
    require_positive(buy_in, "Buy-in")
    require_non_negative(fee, "Fee")
    require_finite(field_size, "Field size")
    if field_size < 2:
        raise ValidationError("Field size must be at least 2.")
    require_finite(percent_paid, "Percent paid")
    if percent_paid <= 0 or percent_paid > 100:
        raise ValidationError("Percent paid must be between 0 and 100.")
    require_positive(top_prize_multiple, "Top prize multiple")
    require_finite(roi_target_percent, "ROI")
