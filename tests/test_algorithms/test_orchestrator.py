import unittest
import threading
import sys
import os

# Add the project root to the path
sys.path.insert(0, os.path.abspath(os.path.join(os.path.dirname(__file__), '../..')))

import numpy as np

from pareto_nlp.algorithms.orchestrator import (
    build_chains, hot_start_order, solve_chains, solve_subproblem)
from pareto_nlp.algorithms.scalarization import Normalization, generate_subproblems, simplex_grid
from pareto_nlp.core.results import AnchorPoint, CandidateStatus
from pareto_nlp.core.solver_interface import NLPSolver, SolverResult
from pareto_nlp.problems.benchmarks import ConvexQuadraticProblem


class ShiftSolver(NLPSolver):
    """Returns initial guess + 1 and records every initial guess it receives"""

    def __init__(self, fail_on=(), status=CandidateStatus.CONVERGED):
        super().__init__()
        self.fail_on = set(fail_on)
        self.status = status
        self.calls = []
        self._lock = threading.Lock()

    def solve(self, nlp, initial_guess):
        with self._lock:
            self.calls.append((nlp, np.array(initial_guess, dtype=float)))
        if id(nlp) in self.fail_on:
            raise FloatingPointError("objective evaluation failed")
        return SolverResult(x=np.asarray(initial_guess) + 1.0, fun=0.0,
                            status=self.status, n_iterations=3, message='ok')


class TestChains(unittest.TestCase):
    """Tests for solve ordering"""

    def test_two_objective_walk_is_sequential(self):
        self.assertEqual(hot_start_order(simplex_grid(2, 6)), list(range(6)))

    def test_walk_visits_every_point_once(self):
        grid = simplex_grid(3, 5)
        order = hot_start_order(grid)

        self.assertEqual(order[0], 0)
        self.assertEqual(sorted(order), list(range(len(grid))))
        # Every step moves to a nearest unvisited point
        for k in range(1, len(order)):
            remaining = order[k:]
            distances = np.linalg.norm(grid[remaining] - grid[order[k - 1]], axis=1)
            self.assertAlmostEqual(np.linalg.norm(grid[order[k]] - grid[order[k - 1]]),
                                   distances.min())

    def test_chains_without_hot_start_are_singletons(self):
        self.assertEqual(build_chains([2, 0, 1], hot_start=False, n_chains=4), [[2], [0], [1]])

    def test_chains_split_the_walk(self):
        self.assertEqual(build_chains([0, 1, 2, 3, 4], hot_start=True), [[0, 1, 2, 3, 4]])
        self.assertEqual(build_chains([0, 1, 2, 3, 4], hot_start=True, n_chains=2),
                         [[0, 1, 2], [3, 4]])
        self.assertEqual(build_chains([0, 1], hot_start=True, n_chains=5), [[0], [1]])

    def test_empty(self):
        self.assertEqual(hot_start_order(np.empty((0, 2))), [])
        self.assertEqual(build_chains([], hot_start=True), [])


class TestSolveSubproblem(unittest.TestCase):
    """Tests for a single orchestration step"""

    def setUp(self):
        self.problem = ConvexQuadraticProblem().get_problem()
        self.subproblems = generate_subproblems('WS', self.problem, 3)

    def test_previous_candidate_seeds_the_solve(self):
        solver = ShiftSolver()
        first = solve_subproblem(self.problem, self.subproblems[0], solver)
        second = solve_subproblem(self.problem, self.subproblems[1], solver, previous=first)

        np.testing.assert_allclose(solver.calls[1][1], first.x)
        np.testing.assert_allclose(second.x, first.x + 1.0)
        np.testing.assert_allclose(second.f, self.problem.evaluate(second.x))
        self.assertIs(second.parameter, self.subproblems[1].parameter)

    def test_fallback_guess_used_without_previous(self):
        solver = ShiftSolver()
        solve_subproblem(self.problem, self.subproblems[0], solver,
                         fallback_guess=np.array([-1.0, 2.0]))
        np.testing.assert_allclose(solver.calls[0][1], [-1.0, 2.0])

    def test_variable_space_default_as_last_resort(self):
        solver = ShiftSolver()
        solve_subproblem(self.problem, self.subproblems[0], solver)
        np.testing.assert_allclose(solver.calls[0][1], [0.5, 0.5])

    def test_solver_error_becomes_failure_status(self):
        solver = ShiftSolver(fail_on={id(self.subproblems[0].nlp)})
        candidate = solve_subproblem(self.problem, self.subproblems[0], solver)

        self.assertEqual(candidate.status, CandidateStatus.SOLVER_FAILURE)
        self.assertTrue(np.all(np.isnan(candidate.f)))
        self.assertIn("objective evaluation failed", candidate.message)

    def test_failed_previous_is_not_used_as_hot_start(self):
        solver = ShiftSolver(fail_on={id(self.subproblems[0].nlp)})
        failed = solve_subproblem(self.problem, self.subproblems[0], solver,
                                  fallback_guess=np.array([2.0, 2.0]))
        solve_subproblem(self.problem, self.subproblems[1], solver, previous=failed,
                         fallback_guess=np.array([-1.0, -1.0]))
        np.testing.assert_allclose(solver.calls[1][1], [-1.0, -1.0])


class TestSolveChains(unittest.TestCase):
    """Tests for front collection"""

    def setUp(self):
        self.problem = ConvexQuadraticProblem().get_problem()
        self.subproblems = generate_subproblems('WS', self.problem, 4)

    def test_hot_start_chains_solutions(self):
        solver = ShiftSolver()
        front = solve_chains(self.problem, self.subproblems, solver, hot_start=True)

        guesses = [g for _, g in solver.calls]
        np.testing.assert_allclose(guesses, [[0.5, 0.5], [1.5, 1.5], [2.5, 2.5], [3.5, 3.5]])
        self.assertEqual([p.parameter.index for p in front], [0, 1, 2, 3])

    def test_without_hot_start_every_solve_uses_the_same_guess(self):
        solver = ShiftSolver()
        solve_chains(self.problem, self.subproblems, solver, hot_start=False,
                     fallback_guess=np.array([0.0, 1.0]))

        for _, guess in solver.calls:
            np.testing.assert_allclose(guess, [0.0, 1.0])

    def test_failures_are_kept_in_the_front(self):
        solver = ShiftSolver(fail_on={id(self.subproblems[2].nlp)})
        front = solve_chains(self.problem, self.subproblems, solver, hot_start=True)

        self.assertEqual(len(front), 4)
        self.assertEqual(front[2].status, CandidateStatus.SOLVER_FAILURE)
        self.assertEqual(front.count(CandidateStatus.CONVERGED), 3)

    def test_unconverged_status_is_propagated(self):
        solver = ShiftSolver(status=CandidateStatus.TOLERANCE_NOT_MET)
        front = solve_chains(self.problem, self.subproblems, solver)
        self.assertEqual(front.count(CandidateStatus.TOLERANCE_NOT_MET), 4)

    def test_parallel_chains_keep_generation_order(self):
        subproblems = generate_subproblems('WS', self.problem, 9)
        solver = ShiftSolver()
        front = solve_chains(self.problem, subproblems, solver, hot_start=True, workers=3)

        self.assertEqual(len(front), 9)
        self.assertEqual([p.parameter.index for p in front], list(range(9)))
        # Three chains of three: every chain head starts from the default guess
        heads = [g for _, g in solver.calls if np.allclose(g, [0.5, 0.5])]
        self.assertEqual(len(heads), 3)
        # Inside a chain, each member is its predecessor plus one
        for i in (1, 2, 4, 5, 7, 8):
            np.testing.assert_allclose(front[i].x, front[i - 1].x + 1.0)

    def test_parallel_without_hot_start(self):
        subproblems = generate_subproblems('WS', self.problem, 7)
        front = solve_chains(self.problem, subproblems, ShiftSolver(), hot_start=False, workers=4)

        self.assertEqual([p.parameter.index for p in front], list(range(7)))
        for p in front:
            np.testing.assert_allclose(p.x, [1.5, 1.5])


class TestVertexSeeding(unittest.TestCase):
    """Subproblems at simplex vertices start from their anchors"""

    def setUp(self):
        self.problem = ConvexQuadraticProblem().get_problem()
        anchors = [AnchorPoint(0, np.array([0.0, 0.0]), np.array([0.0, 2.0])),
                   AnchorPoint(1, np.array([1.0, 1.0]), np.array([2.0, 0.0]))]
        self.normalization = Normalization(anchors)

    def test_vertices_are_flagged(self):
        for method in ('WS', 'NBI', 'NNC'):
            with self.subTest(method=method):
                subproblems = generate_subproblems(method, self.problem, 4, self.normalization)
                self.assertEqual([s.anchor_seeded for s in subproblems], [True, False, False, True])
        unnormalized = generate_subproblems('WS', self.problem, 4)
        self.assertFalse(any(s.anchor_seeded for s in unnormalized))

    def test_chain_end_starts_from_anchor(self):
        subproblems = generate_subproblems('NBI', self.problem, 3, self.normalization)
        solver = ShiftSolver()
        solve_chains(self.problem, subproblems, solver, hot_start=True,
                     fallback_guess=np.array([2.0, -1.0]))

        guesses = [g for _, g in solver.calls]
        # Anchor of f2 with t = 0, hot start from it, then the anchor of f1 with t = 0
        np.testing.assert_allclose(guesses[0], [1.0, 1.0, 0.0], atol=1e-12)
        np.testing.assert_allclose(guesses[1], [2.0, 2.0, 1.0])
        np.testing.assert_allclose(guesses[2], [0.0, 0.0, 0.0], atol=1e-12)

    def test_vertex_ignores_previous_candidate(self):
        subproblems = generate_subproblems('NNC', self.problem, 3, self.normalization)
        solver = ShiftSolver()
        previous = solve_subproblem(self.problem, subproblems[1], solver)
        solve_subproblem(self.problem, subproblems[2], solver, previous=previous)
        np.testing.assert_allclose(solver.calls[-1][1], [0.0, 0.0])


if __name__ == '__main__':
    unittest.main()
