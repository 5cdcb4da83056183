"""Long-only weight construction: minimum variance and risk parity.

Both strategies are deterministic heuristics over a covariance matrix rather
than exact constrained QP solutions:

* minimum variance solves the unconstrained global-minimum-variance portfolio
  ``inv(C) 1 / 1' inv(C) 1``, clips shorts to zero and renormalises;
* risk parity runs a fixed number of multiplicative updates that pull every
  asset's risk contribution toward ``1/n``.

An optional per-asset cap is applied by repeated cap-and-renormalise passes.
When ``max_weight * n < 1`` the cap cannot be met exactly and the result still
sums to 1 with some weights above the cap.
"""

from __future__ import annotations

from dataclasses import dataclass

import numpy as np

from folio_analytics.analysis.risk import risk_contributions
from folio_analytics.config import OptimizerConfig
from folio_analytics.utils.logger import setup_logger

logger = setup_logger("optimizer")

PIVOT_EPS = 1e-12
WEIGHT_FLOOR = 1e-10
CAP_TOLERANCE = 1e-9


@dataclass(frozen=True)
class MatrixInverse:
    """Outcome of a Gauss-Jordan inversion; ``inverse`` is None when singular."""

    inverse: np.ndarray | None

    @property
    def singular(self) -> bool:
        return self.inverse is None


def invert_matrix(matrix: np.ndarray, eps: float = PIVOT_EPS) -> MatrixInverse:
    """Gauss-Jordan elimination with partial pivoting on ``[A | I]``.

    A pivot smaller than *eps* in magnitude marks the matrix as singular;
    nearly collinear assets make that an ordinary outcome, not an error.
    """
    a = np.asarray(matrix, dtype=float)
    n = a.shape[0]
    aug = np.hstack([a.copy(), np.eye(n)])

    for i in range(n):
        max_row = i + int(np.argmax(np.abs(aug[i:, i])))
        if max_row != i:
            aug[[i, max_row]] = aug[[max_row, i]]

        pivot = aug[i, i]
        if abs(pivot) < eps:
            return MatrixInverse(None)
        aug[i] /= pivot

        for k in range(n):
            if k == i:
                continue
            factor = aug[k, i]
            if factor != 0.0:
                aug[k] -= factor * aug[i]

    return MatrixInverse(aug[:, n:])


def _equal_weights(n: int) -> np.ndarray:
    return np.full(n, 1.0 / n)


def _valid_cap(max_weight: float | None) -> bool:
    return max_weight is not None and 0 < max_weight < 1


def apply_weight_cap(
    weights: np.ndarray,
    max_weight: float | None,
    max_passes: int = OptimizerConfig.MAX_CAP_PASSES,
) -> np.ndarray:
    """Cap each weight at *max_weight* and renormalise, for a bounded number of passes."""
    w = np.asarray(weights, dtype=float).copy()
    if not _valid_cap(max_weight):
        return w
    for _ in range(max_passes):
        if not np.any(w > max_weight + CAP_TOLERANCE):
            break
        w = np.minimum(w, max_weight)
        total = w.sum()
        if total > 0:
            w = w / total
    return w


def min_variance_weights(cov: np.ndarray, max_weight: float | None = None) -> np.ndarray:
    """Long-only minimum-variance heuristic.

    Falls back to equal weights when the covariance matrix is singular or
    ``1' inv(C) 1`` is numerically zero.
    """
    c = np.asarray(cov, dtype=float)
    n = c.shape[0] if c.ndim == 2 else 0
    if n == 0:
        return np.zeros(0)

    result = invert_matrix(c)
    if result.singular:
        logger.debug("Covariance matrix is singular, using equal weights")
        weights = _equal_weights(n)
    else:
        inv_ones = result.inverse.sum(axis=1)
        denom = inv_ones.sum()
        if abs(denom) < PIVOT_EPS:
            logger.debug("Degenerate inverse (1'C^-1 1 ~ 0), using equal weights")
            weights = _equal_weights(n)
        else:
            weights = inv_ones / denom

    weights = np.maximum(weights, 0.0)
    weights = apply_weight_cap(weights, max_weight)

    total = weights.sum()
    if total > 0:
        return weights / total
    logger.debug("All minimum-variance weights clipped to zero, using equal weights")
    return _equal_weights(n)


def risk_parity_weights(
    cov: np.ndarray,
    max_weight: float | None = None,
    iterations: int = OptimizerConfig.RISK_PARITY_ITERATIONS,
    step: float = OptimizerConfig.RISK_PARITY_STEP,
    tolerance: float | None = None,
) -> np.ndarray:
    """Equal-risk-contribution weights by multiplicative rescaling.

    Each iteration multiplies ``w_i`` by ``(1/n / rc_i) ** step``, floors the
    result at 1e-10 so no asset collapses to exactly zero, applies the cap and
    renormalises. The loop always runs *iterations* times unless *tolerance*
    is given, in which case it stops once no weight moves by more than it.
    """
    c = np.asarray(cov, dtype=float)
    n = c.shape[0] if c.ndim == 2 else 0
    if n == 0:
        return np.zeros(0)

    target = 1.0 / n
    weights = _equal_weights(n)
    capped = _valid_cap(max_weight)

    for _ in range(iterations):
        rc = risk_contributions(weights, c)
        ratio = np.ones(n)
        np.divide(target, rc, out=ratio, where=rc > WEIGHT_FLOOR)
        updated = np.maximum(weights * ratio ** step, WEIGHT_FLOOR)
        if capped:
            updated = np.minimum(updated, max_weight)
        updated = updated / updated.sum()

        moved = float(np.max(np.abs(updated - weights)))
        weights = updated
        if tolerance is not None and moved < tolerance:
            break

    return weights
