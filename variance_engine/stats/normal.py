"""
Closed-form approximations to the standard normal distribution.

normal_cdf uses Abramowitz & Stegun formula 26.2.17 (absolute error below
7.5e-8); normal_inverse_cdf uses Acklam's rational approximation (relative
error below 1.15e-9 on 0 < p < 1).
"""

import math

_SQRT_2PI = math.sqrt(2 * math.pi)

# Abramowitz & Stegun 26.2.17
_AS_P = 0.2316419
_AS_B = (0.319381530, -0.356563782, 1.781477937, -1.821255978, 1.330274429)

# Acklam coefficients
_A = (-3.969683028665376e+01, 2.209460984245205e+02, -2.759285104469687e+02,
      1.383577518672690e+02, -3.066479806614716e+01, 2.506628277459239e+00)
_B = (-5.447609879822406e+01, 1.615858368580409e+02, -1.556989798598866e+02,
      6.680131188771972e+01, -1.328068155288572e+01)
_C = (-7.784894002430293e-03, -3.223964580411365e-01, -2.400758277161838e+00,
      -2.549732539343734e+00, 4.374664141464968e+00, 2.938163982698783e+00)
_D = (7.784695709041462e-03, 3.224671290700398e-01, 2.445134137142996e+00,
      3.754408661907416e+00)

_P_LOW = 0.02425
_P_HIGH = 1 - _P_LOW


def normal_pdf(z: float) -> float:
    """Standard normal density."""
    return math.exp(-0.5 * z * z) / _SQRT_2PI


def normal_cdf(z: float) -> float:
    """
    P(Z <= z) for a standard normal Z.

    Exactly 0.5 at z = 0, clamps to 0 below -8 and 1 above 8. The negative
    half is computed as 1 - cdf(|z|), so cdf(-z) == 1 - cdf(z).
    """
    if z == 0:
        return 0.5
    if z < -8:
        return 0.0
    if z > 8:
        return 1.0

    x = abs(z)
    t = 1 / (1 + _AS_P * x)
    b1, b2, b3, b4, b5 = _AS_B
    poly = t * (b1 + t * (b2 + t * (b3 + t * (b4 + t * b5))))
    upper = 1 - normal_pdf(x) * poly

    return upper if z > 0 else 1 - upper


def normal_inverse_cdf(p: float) -> float:
    """
    z such that P(Z <= z) = p.

    Returns -inf for p <= 0, +inf for p >= 1 and exactly 0 for p = 0.5.
    """
    if p <= 0:
        return -math.inf
    if p >= 1:
        return math.inf
    if p == 0.5:
        return 0.0

    c1, c2, c3, c4, c5, c6 = _C
    d1, d2, d3, d4 = _D

    if p < _P_LOW:
        q = math.sqrt(-2 * math.log(p))
        return ((((((c1 * q + c2) * q + c3) * q + c4) * q + c5) * q + c6) /
                ((((d1 * q + d2) * q + d3) * q + d4) * q + 1))

    if p <= _P_HIGH:
        a1, a2, a3, a4, a5, a6 = _A
        b1, b2, b3, b4, b5 = _B
        q = p - 0.5
        r = q * q
        return ((((((a1 * r + a2) * r + a3) * r + a4) * r + a5) * r + a6) * q /
                (((((b1 * r + b2) * r + b3) * r + b4) * r + b5) * r + 1))

    q = math.sqrt(-2 * math.log(1 - p))
    return -((((((c1 * q + c2) * q + c3) * q + c4) * q + c5) * q + c6) /
             ((((d1 * q + d2) * q + d3) * q + d4) * q + 1))


def z_for_confidence(confidence: float) -> float:
    """Two-sided z-score for a central interval (0.95 -> ~1.96)."""
    return normal_inverse_cdf(1 - (1 - confidence) / 2)
