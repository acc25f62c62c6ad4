"""Multiple-comparison corrections over per-vertex p-values."""

import logging
from dataclasses import dataclass

import numpy as np

from ..errors import InvalidParameterError

# Module logger
logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class CorrectionResult:
    """Outcome of a p-value correction.

    Attributes
    ----------
    p_threshold : float
        p-values at or below this threshold survive.
    surviving_mask : numpy.ndarray
        uint8 mask, 1 where the test survives.
    surviving_count : int
        Number of surviving tests.
    """
    p_threshold: float
    surviving_mask: np.ndarray
    surviving_count: int


def _check_rate(value, name):
    value = float(value)
    if not 0.0 < value <= 1.0:
        logger.error("%s=%r outside (0, 1]", name, value)
        raise InvalidParameterError(f"{name} must be in (0, 1], got {value}.")
    return value


def _survivors(p, threshold):
    with np.errstate(invalid="ignore"):
        mask = (~np.isnan(p)) & (p <= threshold)
    return mask.astype(np.uint8)


def compute_fdr_threshold(p_values, q=0.05):
    """Benjamini-Hochberg false discovery rate threshold.

    The ``V`` non-NaN p-values are ranked in ascending order. The threshold
    is the p-value at the largest rank ``i`` (1-indexed) with
    ``p(i) <= i / V * q``; every non-NaN p-value at or below it survives.
    When no rank qualifies, or every entry is NaN, the threshold is 0 and
    nothing survives.

    Parameters
    ----------
    p_values : array_like
        One p-value per test. May contain NaN.
    q : float, optional
        False discovery rate in (0, 1]. Default 0.05.

    Returns
    -------
    CorrectionResult

    Raises
    ------
    InvalidParameterError
        If ``q`` is outside (0, 1].
    """
    q = _check_rate(q, "q")
    p = np.asarray(p_values, dtype=np.float64).reshape(-1)
    n_valid = int(np.count_nonzero(~np.isnan(p)))
    if n_valid == 0:
        return CorrectionResult(0.0, np.zeros(p.shape[0], dtype=np.uint8), 0)

    # NaN sorts last, so the valid p-values are the leading n_valid entries
    sorted_p = np.sort(p)[:n_valid]
    critical = np.arange(1, n_valid + 1, dtype=np.float64) / n_valid * q
    passing = np.flatnonzero(sorted_p <= critical)
    threshold = float(sorted_p[passing[-1]]) if passing.size else 0.0
    mask = _survivors(p, threshold) if passing.size else np.zeros(p.shape[0], dtype=np.uint8)
    count = int(mask.sum())
    logger.debug(
        "compute_fdr_threshold: q=%g threshold=%g survivors=%d/%d",
        q, threshold, count, n_valid,
    )
    return CorrectionResult(threshold, mask, count)


def compute_bonferroni_threshold(p_values, alpha=0.05):
    """Bonferroni family-wise threshold ``alpha / V``.

    ``V`` counts the non-NaN p-values; with none the threshold is 0.

    Parameters
    ----------
    p_values : array_like
        One p-value per test. NaN never survives.
    alpha : float, optional
        Family-wise error rate in (0, 1]. Default 0.05.

    Returns
    -------
    CorrectionResult

    Raises
    ------
    InvalidParameterError
        If ``alpha`` is outside (0, 1].
    """
    alpha = _check_rate(alpha, "alpha")
    p = np.asarray(p_values, dtype=np.float64).reshape(-1)
    n_valid = int(np.count_nonzero(~np.isnan(p)))
    if n_valid == 0:
        return CorrectionResult(0.0, np.zeros(p.shape[0], dtype=np.uint8), 0)
    threshold = alpha / n_valid
    mask = _survivors(p, threshold)
    count = int(mask.sum())
    logger.debug(
        "compute_bonferroni_threshold: alpha=%g threshold=%g survivors=%d/%d",
        alpha, threshold, count, n_valid,
    )
    return CorrectionResult(threshold, mask, count)
