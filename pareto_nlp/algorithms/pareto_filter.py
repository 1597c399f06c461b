import numpy as np
import numpy.typing as npt

from pareto_nlp.core.results import ParetoFront

DEFAULT_ABS_TOLERANCE = 1e-9
DEFAULT_REL_TOLERANCE = 1e-6


def _tolerance(a, b, atol: float, rtol: float):
    return atol + rtol * np.maximum(np.abs(a), np.abs(b))


def dominates(a: npt.ArrayLike, b: npt.ArrayLike,
              atol: float = DEFAULT_ABS_TOLERANCE,
              rtol: float = DEFAULT_REL_TOLERANCE) -> bool:
    """
    True if objective vector `a` dominates `b` (minimization).

    Every component of `a` must be no worse than `b` within the tolerance
    and at least one must be better by more than the tolerance, so points
    that only differ by solver noise never dominate each other.
    """
    a = np.asarray(a, dtype=float)
    b = np.asarray(b, dtype=float)
    tol = _tolerance(a, b, atol, rtol)
    return bool(np.all(a <= b + tol) and np.any(a < b - tol))


def dominance_matrix(objective_values: npt.NDArray,
                     atol: float = DEFAULT_ABS_TOLERANCE,
                     rtol: float = DEFAULT_REL_TOLERANCE) -> npt.NDArray:
    """
    Pairwise dominance, D[i, j] is True when point i dominates point j.

    :param objective_values: Array of shape (n_points, n_objectives)
    :return: Boolean array of shape (n_points, n_points)
    """
    F = np.asarray(objective_values, dtype=float)
    if F.size == 0:
        return np.zeros((len(F), len(F)), dtype=bool)
    A = F[:, None, :]
    B = F[None, :, :]
    tol = _tolerance(A, B, atol, rtol)
    no_worse = np.all(A <= B + tol, axis=2)
    better = np.any(A < B - tol, axis=2)
    D = no_worse & better
    np.fill_diagonal(D, False)
    return D


def non_dominated_mask(objective_values: npt.NDArray,
                       atol: float = DEFAULT_ABS_TOLERANCE,
                       rtol: float = DEFAULT_REL_TOLERANCE) -> npt.NDArray:
    """Boolean mask of the points no other point dominates"""
    D = dominance_matrix(objective_values, atol, rtol)
    return ~np.any(D, axis=0)


def filter_pareto_front(front: ParetoFront,
                        atol: float = DEFAULT_ABS_TOLERANCE,
                        rtol: float = DEFAULT_REL_TOLERANCE,
                        exclude_unconverged: bool = True) -> ParetoFront:
    """
    Remove dominated candidates from a front.

    Returns a new front holding the surviving candidate objects in their
    original relative order; the input is left untouched. With
    `exclude_unconverged` the points whose status is not CONVERGED are
    removed before the dominance check and can therefore neither survive
    nor dominate. Points with non-finite objective values never survive.
    """
    points = [p for p in front if p.converged or not exclude_unconverged]
    points = [p for p in points if np.all(np.isfinite(p.f))]
    if not points:
        return ParetoFront()

    keep = non_dominated_mask(np.vstack([p.f for p in points]), atol, rtol)
    return ParetoFront([p for p, k in zip(points, keep) if k])
