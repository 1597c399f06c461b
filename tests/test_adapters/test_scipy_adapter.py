import unittest
import sys
import os

# Add the project root to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

import numpy as np
from scipy.optimize import OptimizeResult

from pareto_nlp.adapters.scipy_adapter import ScipyNLPSolver
from pareto_nlp.core.results import CandidateStatus
from pareto_nlp.core.solver_interface import ScalarNLP


def _nlp():
    # minimize (x - 2)^2 on [0, 1] with x >= 0.5
    return ScalarNLP(
        objective=lambda x: float((x[0] - 2.0) ** 2),
        bounds=[(0.0, 1.0)],
        constraints=[{'type': 'ineq', 'fun': lambda x: np.array([x[0] - 0.5])}],
        gradient=lambda x: np.array([2.0 * (x[0] - 2.0)]),
    )


def _result(x, success, status):
    return OptimizeResult(x=np.array(x, dtype=float), success=success, status=status,
                          fun=0.0, nit=1, message='')


class TestScipyNLPSolver(unittest.TestCase):
    """Tests for the scipy solver adapter"""

    def setUp(self):
        self.solver = ScipyNLPSolver()
        self.nlp = _nlp()

    def test_solve_active_bound(self):
        result = self.solver.solve(self.nlp, np.array([0.6]))
        self.assertEqual(result.status, CandidateStatus.CONVERGED)
        np.testing.assert_allclose(result.x, [1.0], atol=1e-8)

    def test_max_violation(self):
        self.assertEqual(ScipyNLPSolver.max_violation(self.nlp, np.array([0.7])), 0.0)
        self.assertAlmostEqual(ScipyNLPSolver.max_violation(self.nlp, np.array([0.2])), 0.3)
        self.assertAlmostEqual(ScipyNLPSolver.max_violation(self.nlp, np.array([1.5])), 0.5)

    def test_slsqp_status_mapping(self):
        cases = [
            (_result([0.7], True, 0), CandidateStatus.CONVERGED),
            (_result([0.7], False, 9), CandidateStatus.TOLERANCE_NOT_MET),
            (_result([0.7], False, 8), CandidateStatus.TOLERANCE_NOT_MET),
            (_result([0.2], False, 8), CandidateStatus.SOLVER_FAILURE),
            (_result([0.7], False, 4), CandidateStatus.SOLVER_FAILURE),
            (_result([np.nan], True, 0), CandidateStatus.SOLVER_FAILURE),
        ]
        for result, expected in cases:
            with self.subTest(status=result.status, x=result.x):
                self.assertEqual(self.solver._status(self.nlp, result), expected)

    def test_trust_constr_status_mapping(self):
        solver = ScipyNLPSolver(method='trust-constr')
        self.assertEqual(solver._status(self.nlp, _result([0.7], True, 1)), CandidateStatus.CONVERGED)
        self.assertEqual(solver._status(self.nlp, _result([0.7], False, 0)),
                         CandidateStatus.TOLERANCE_NOT_MET)
        self.assertEqual(solver._status(self.nlp, _result([0.7], False, 3)),
                         CandidateStatus.SOLVER_FAILURE)

    def test_unknown_method(self):
        with self.assertRaises(ValueError):
            ScipyNLPSolver(method='COBYLA')


if __name__ == '__main__':
    unittest.main()
