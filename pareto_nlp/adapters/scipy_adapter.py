import numpy as np
from typing import Optional
from scipy.optimize import minimize

from pareto_nlp.core.results import CandidateStatus
from pareto_nlp.core.solver_interface import NLPSolver, ScalarNLP, SolverResult


class ScipyNLPSolver(NLPSolver):
    """
    Single-objective NLP solver backed by scipy.optimize.minimize.

    Supports the SLSQP and trust-constr methods. The convergence tolerance
    maps to `ftol` for SLSQP and to `gtol`/`xtol` for trust-constr; running
    out of iterations is reported as TOLERANCE_NOT_MET.
    """

    SUPPORTED_METHODS = ('SLSQP', 'trust-constr')

    def __init__(self, method: str = 'SLSQP', tolerance: float = 1e-8,
                 max_iterations: int = 500, finite_diff_step: Optional[float] = None,
                 feasibility_tolerance: float = 1e-6):
        if method not in self.SUPPORTED_METHODS:
            raise ValueError(f"Unsupported scipy method: {method}")
        super().__init__(tolerance, max_iterations)
        self.method = method
        self.finite_diff_step = finite_diff_step
        self.feasibility_tolerance = feasibility_tolerance

    def _options(self):
        if self.method == 'SLSQP':
            options = {'maxiter': self.max_iterations, 'ftol': self.tolerance, 'disp': False}
            if self.finite_diff_step is not None:
                options['eps'] = self.finite_diff_step
            return options
        return {
            'maxiter': self.max_iterations,
            'gtol': self.tolerance,
            'xtol': self.tolerance,
            'disp': False,
        }

    @staticmethod
    def max_violation(nlp: ScalarNLP, x: np.ndarray) -> float:
        """Largest bound or constraint violation of nlp at x"""
        violation = 0.0
        for xi, (lower, upper) in zip(x, nlp.bounds):
            if lower is not None:
                violation = max(violation, lower - xi)
            if upper is not None:
                violation = max(violation, xi - upper)
        for c in nlp.constraints:
            values = np.atleast_1d(np.asarray(c['fun'](x), dtype=float))
            if c['type'] == 'eq':
                violation = max(violation, float(np.max(np.abs(values))))
            else:
                violation = max(violation, float(np.max(-values)))
        return violation

    def _status(self, nlp: ScalarNLP, result) -> CandidateStatus:
        if not np.all(np.isfinite(result.x)):
            return CandidateStatus.SOLVER_FAILURE
        if self.method == 'SLSQP':
            if result.success:
                return CandidateStatus.CONVERGED
            # 9: iteration limit exceeded
            if result.status == 9:
                return CandidateStatus.TOLERANCE_NOT_MET
            # 8: line search stalled; an iterate that is still feasible only misses the tolerance
            if result.status == 8 and self.max_violation(nlp, result.x) <= self.feasibility_tolerance:
                return CandidateStatus.TOLERANCE_NOT_MET
            return CandidateStatus.SOLVER_FAILURE
        # trust-constr: 1 gtol met, 2 xtol met, 0 iteration limit
        if result.status in (1, 2):
            return CandidateStatus.CONVERGED
        if result.status == 0:
            return CandidateStatus.TOLERANCE_NOT_MET
        return CandidateStatus.SOLVER_FAILURE

    def solve(self, nlp: ScalarNLP, initial_guess: np.ndarray) -> SolverResult:
        x0 = np.asarray(initial_guess, dtype=float)
        result = minimize(
            nlp.objective,
            x0,
            jac=nlp.gradient,
            method=self.method,
            bounds=nlp.bounds,
            constraints=nlp.constraints,
            options=self._options(),
        )
        return SolverResult(
            x=np.asarray(result.x, dtype=float),
            fun=float(result.fun),
            status=self._status(nlp, result),
            n_iterations=int(getattr(result, 'nit', 0)),
            message=str(result.message),
        )
