from dataclasses import dataclass, field
from enum import Enum
from typing import List, Optional, Sequence, Tuple
import numpy as np


class CandidateStatus(Enum):
    CONVERGED = 'converged'
    TOLERANCE_NOT_MET = 'tolerance_not_met'
    SOLVER_FAILURE = 'solver_failure'


@dataclass(frozen=True)
class ScalarizationParameter:
    """
    Simplex coordinate of one scalarized subproblem.

    `weights` is the convex-combination vector (WS weights, NBI beta). For
    NNC, `offset` holds the normalized point on the utopia hyperplane and
    `active_objective` the objective minimized directly.
    """
    index: int
    weights: Tuple[float, ...]
    offset: Optional[Tuple[float, ...]] = None
    active_objective: Optional[int] = None


@dataclass(frozen=True, eq=False)
class AnchorPoint:
    """Individual minimum of a single objective"""
    objective_index: int
    x: np.ndarray
    f: np.ndarray
    status: CandidateStatus = CandidateStatus.CONVERGED
    n_iterations: int = 0


@dataclass(frozen=True, eq=False)
class CandidatePoint:
    """Result of one scalarized subproblem"""
    parameter: ScalarizationParameter
    x: np.ndarray
    f: np.ndarray
    status: CandidateStatus
    n_iterations: int = 0
    step: Optional[float] = None
    message: str = field(default='', compare=False)

    @property
    def converged(self) -> bool:
        return self.status == CandidateStatus.CONVERGED

    def as_tuple(self) -> Tuple[np.ndarray, np.ndarray, CandidateStatus]:
        return self.f, self.x, self.status


class ParetoFront:
    """Ordered, read-only sequence of candidate points in generation order"""

    def __init__(self, points: Sequence[CandidatePoint] = ()):
        self._points = tuple(points)

    def __len__(self):
        return len(self._points)

    def __iter__(self):
        return iter(self._points)

    def __getitem__(self, item):
        if isinstance(item, slice):
            return ParetoFront(self._points[item])
        return self._points[item]

    def __repr__(self):
        return f"ParetoFront(n_points={len(self)})"

    @property
    def points(self) -> Tuple[CandidatePoint, ...]:
        return self._points

    def objective_matrix(self) -> np.ndarray:
        """Objective vectors stacked row-wise, shape (n_points, n_objectives)"""
        if not self._points:
            return np.empty((0, 0))
        return np.vstack([p.f for p in self._points])

    def variable_matrix(self) -> np.ndarray:
        if not self._points:
            return np.empty((0, 0))
        return np.vstack([p.x for p in self._points])

    def weight_matrix(self) -> np.ndarray:
        if not self._points:
            return np.empty((0, 0))
        return np.array([p.parameter.weights for p in self._points])

    def statuses(self) -> List[CandidateStatus]:
        return [p.status for p in self._points]

    def count(self, status: CandidateStatus) -> int:
        return sum(1 for p in self._points if p.status == status)

    def converged(self) -> 'ParetoFront':
        """Sub-front of the converged points, order preserved"""
        return ParetoFront([p for p in self._points if p.converged])

    def as_tuples(self) -> List[Tuple[np.ndarray, np.ndarray, CandidateStatus]]:
        """(objective_vector, variable_vector, status) per point"""
        return [p.as_tuple() for p in self._points]
