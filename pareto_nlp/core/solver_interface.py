from abc import ABC, abstractmethod
from typing import Any, Callable, Dict, List, NamedTuple, Optional, Tuple
import numpy as np

from pareto_nlp.core.results import CandidateStatus


class ScalarNLP(NamedTuple):
    """
    Single-objective NLP handed to the external solver.

    Constraints are scipy-style dictionaries ({'type': 'eq'|'ineq', 'fun',
    optional 'jac'}) with inequalities meaning fun(z) >= 0.
    """
    objective: Callable[[np.ndarray], float]
    bounds: List[Tuple[Optional[float], Optional[float]]]
    constraints: List[Dict[str, Any]]
    gradient: Optional[Callable[[np.ndarray], np.ndarray]] = None

    @property
    def n_variables(self) -> int:
        return len(self.bounds)


class SolverResult(NamedTuple):
    x: np.ndarray
    fun: float
    status: CandidateStatus
    n_iterations: int = 0
    message: str = ''


class NLPSolver(ABC):
    """Base class for single-objective NLP solvers used by the engine"""

    def __init__(self, tolerance: float = 1e-8, max_iterations: int = 500):
        self.tolerance = tolerance
        self.max_iterations = max_iterations

    def configure(self, tolerance: Optional[float] = None,
                  max_iterations: Optional[int] = None) -> 'NLPSolver':
        """Apply run-level settings; returns self for chaining"""
        if tolerance is not None:
            self.tolerance = tolerance
        if max_iterations is not None:
            self.max_iterations = max_iterations
        return self

    @abstractmethod
    def solve(self, nlp: ScalarNLP, initial_guess: np.ndarray) -> SolverResult:
        """Minimize nlp.objective starting from initial_guess"""
        pass
