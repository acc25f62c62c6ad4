"""Conversions from p-values and t-statistics to z-scores."""

import math

from ..errors import InvalidParameterError

# Abramowitz & Stegun 26.2.23
_C0, _C1, _C2 = 2.515517, 0.802853, 0.010328
_D1, _D2, _D3 = 1.432788, 0.189269, 0.001308

#: z-score returned for p == 0
Z_CAP = 38.0


def p_to_z(p):
    """Convert a two-tailed p-value to a positive z-score.

    Uses the Abramowitz & Stegun rational approximation of the inverse
    normal CDF evaluated at ``1 - p / 2`` (absolute error below 4.5e-4).

    Parameters
    ----------
    p : float
        Two-tailed p-value in [0, 1].

    Returns
    -------
    float
        ``Z_CAP`` for ``p == 0``, 0 for ``p == 1``.

    Raises
    ------
    InvalidParameterError
        If ``p`` is outside [0, 1] or NaN.
    """
    p = float(p)
    if not 0.0 <= p <= 1.0:
        raise InvalidParameterError(f"p-value must be in [0, 1], got {p}.")
    if p / 2.0 == 0.0:
        return Z_CAP
    if p == 1.0:
        return 0.0
    t = math.sqrt(-2.0 * math.log(p / 2.0))
    return t - (_C0 + _C1 * t + _C2 * t * t) / (1.0 + _D1 * t + _D2 * t * t + _D3 * t ** 3)


def t_to_z(t, df):
    """Convert a t-statistic to an approximately equivalent z-score.

    For ``df > 30`` the first-order correction
    ``(1 - 1/(4 df)) t / sqrt(1 + t^2 / (2 df))`` is used. For smaller
    ``df``, ``F = t^2`` follows F(1, df) and Paulson's form of the
    Wilson-Hilferty cube-root transform gives its two-tailed p-value, which
    is mapped back through :func:`p_to_z`. The sign of ``t`` is preserved.

    Parameters
    ----------
    t : float
        t-statistic.
    df : float
        Degrees of freedom, at least 1.

    Returns
    -------
    float

    Raises
    ------
    InvalidParameterError
        If ``df < 1``.
    """
    t = float(t)
    df = float(df)
    if not df >= 1.0:
        raise InvalidParameterError(f"Degrees of freedom must be >= 1, got {df}.")
    if t == 0.0:
        return 0.0
    if df > 30:
        return (1.0 - 1.0 / (4.0 * df)) * t / math.hypot(1.0, t / math.sqrt(2.0 * df))
    # cube root of F = t^2, taken from |t| so that large t does not overflow
    u = abs(t) ** (2.0 / 3.0)
    a = 2.0 / (9.0 * df)
    spread = a * u * u + 2.0 / 9.0
    if math.isinf(spread):
        return math.copysign(Z_CAP, t)
    z_f = ((1.0 - a) * u - 7.0 / 9.0) / math.sqrt(spread)
    p = 0.5 * math.erfc(z_f / math.sqrt(2.0))
    return math.copysign(p_to_z(p), t)
