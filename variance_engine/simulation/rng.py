"""
Seeded pseudo-random generation.

Mulberry32 is a 32-bit generator whose state advances by a fixed increment,
so draw i depends only on (seed, i). That makes bulk generation with numpy
bit-identical to calling next() in a loop, and lets callers look ahead with
peek() and then consume exactly the draws a sequential loop would have used.
"""

import math
from typing import Optional

import numpy as np

_MASK = 0xFFFFFFFF
_INCREMENT = 0x6D2B79F5
_TWO_32 = 4294967296.0

_U_MASK = np.uint64(_MASK)
_U_INCREMENT = np.uint64(_INCREMENT)

# Smallest positive double, replaces u1 == 0 to avoid log(0)
_TINY = math.ulp(0.0)

MAX_SEED = 2147483647


def _mix(state: int) -> float:
    t = ((state ^ (state >> 15)) * (state | 1)) & _MASK
    t = ((t + (((t ^ (t >> 7)) * (t | 61)) & _MASK)) & _MASK) ^ t
    return ((t ^ (t >> 14)) & _MASK) / _TWO_32


def _mix_array(states: np.ndarray) -> np.ndarray:
    s = states
    t = ((s ^ (s >> np.uint64(15))) * (s | np.uint64(1))) & _U_MASK
    t = ((t + (((t ^ (t >> np.uint64(7))) * (t | np.uint64(61))) & _U_MASK)) & _U_MASK) ^ t
    return ((t ^ (t >> np.uint64(14))) & _U_MASK) / _TWO_32


class Mulberry32:
    """
    Reproducible uniform [0, 1) generator.

    Each instance owns its state; independent streams come from distinct
    seeds (conventionally base_seed + offset).
    """

    def __init__(self, seed: int):
        self._state = int(seed) & _MASK

    @property
    def state(self) -> int:
        return self._state

    def next(self) -> float:
        """Advance by one draw and return it."""
        self._state = (self._state + _INCREMENT) & _MASK
        return _mix(self._state)

    __call__ = next

    def peek(self, n: int) -> np.ndarray:
        """The next n draws, without advancing."""
        if n <= 0:
            return np.zeros(0, dtype=np.float64)
        steps = np.arange(1, n + 1, dtype=np.uint64)
        states = (np.uint64(self._state) + steps * _U_INCREMENT) & _U_MASK
        return _mix_array(states)

    def advance(self, n: int) -> None:
        """Skip n draws."""
        self._state = (self._state + _INCREMENT * int(n)) & _MASK

    def random(self, n: int) -> np.ndarray:
        """Draw n uniforms at once (same values as n calls to next())."""
        draws = self.peek(n)
        self.advance(max(0, n))
        return draws


def box_muller(u1, u2, mean: float, std_dev: float):
    """Normal variate(s) from uniform pair(s) using the basic Box-Muller form."""
    if isinstance(u1, np.ndarray):
        u1 = np.where(u1 == 0, _TINY, u1)
        z = np.sqrt(-2 * np.log(u1)) * np.cos(2 * np.pi * u2)
        return mean + std_dev * z

    if u1 == 0:
        u1 = _TINY
    z = math.sqrt(-2 * math.log(u1)) * math.cos(2 * math.pi * u2)
    return mean + std_dev * z


def normal_variate(rng: Mulberry32, mean: float, std_dev: float) -> float:
    """One normal sample; consumes exactly two draws."""
    u1 = rng.next()
    u2 = rng.next()
    return box_muller(u1, u2, mean, std_dev)


def normals_from_draws(draws: np.ndarray, mean: float, std_dev: float) -> np.ndarray:
    """Pair consecutive uniforms (u1, u2), (u3, u4), ... into normal samples."""
    return box_muller(draws[0::2], draws[1::2], mean, std_dev)


def normal_block(rng: Mulberry32, n: int, mean: float, std_dev: float) -> np.ndarray:
    """n normal samples; consumes exactly 2n draws."""
    return normals_from_draws(rng.random(2 * n), mean, std_dev)


def generate_random_seed(rng: Optional[np.random.Generator] = None) -> int:
    """Fresh seed in [1, 2^31 - 1] for callers that did not supply one."""
    rng = rng if rng is not None else np.random.default_rng()
    return int(rng.integers(1, MAX_SEED, endpoint=True))
