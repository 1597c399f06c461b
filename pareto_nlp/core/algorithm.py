from typing import Any, Dict, List, Optional
import numpy as np

from pareto_nlp.core.exceptions import DegenerateScalarization, InvalidConfiguration
from pareto_nlp.core.metrics import calculate_hypervolume, normalize_front
from pareto_nlp.core.options import OPTION_NAMES, ParetoOptions
from pareto_nlp.core.problem import MultiObjectiveProblem
from pareto_nlp.core.results import AnchorPoint, CandidateStatus, ParetoFront
from pareto_nlp.core.solver_interface import NLPSolver
from pareto_nlp.adapters.scipy_adapter import ScipyNLPSolver
from pareto_nlp.algorithms.anchor import compute_anchors, payoff_matrix, solve_anchor
from pareto_nlp.algorithms.orchestrator import solve_chains
from pareto_nlp.algorithms.pareto_filter import filter_pareto_front
from pareto_nlp.algorithms.scalarization import (
    Normalization, generate_subproblems, requires_anchors, simplex_grid)
from pareto_nlp.utils.front_io import write_front

# Options whose change invalidates cached anchors
ANCHOR_OPTIONS = ('convergence_tolerance', 'max_iterations', 'anchor_refinement',
                  'anchor_multistart')


class MultiObjectiveAlgorithm:
    """
    Pareto front generation by scalarization.

    Typical use:

        algorithm = MultiObjectiveAlgorithm(problem)
        algorithm.set_option('ScalarizationMethod', 'NBI')
        algorithm.set_option('Discretization', 41)
        algorithm.solve()
        front = algorithm.get_pareto_front_with_filter()
    """

    def __init__(self, problem: MultiObjectiveProblem, solver: Optional[NLPSolver] = None,
                 options: Optional[ParetoOptions] = None, **kwargs):
        """
        Args:
            problem: Problem descriptor (read only)
            solver: Single-objective NLP solver, defaults to scipy SLSQP
            options: Run configuration; keyword arguments override single options
        """
        self.problem = problem
        self.solver = solver if solver is not None else ScipyNLPSolver()
        self.options = options if options is not None else ParetoOptions()
        for name, value in kwargs.items():
            self.options.set_option(name, value)

        self._initial_guess = None
        self._anchor_guesses = {}
        self._setup()

    def _setup(self):
        """Reset everything a run produces"""
        self._anchors = {}
        self._front = None
        self._filtered_front = None

    def set_option(self, name: str, value: Any):
        self.options.set_option(name, value)
        self._front = None
        self._filtered_front = None
        if OPTION_NAMES.get(name, name) in ANCHOR_OPTIONS:
            self._anchors = {}
        return self

    def get_option(self, name: str) -> Any:
        return self.options.get_option(name)

    def set_initial_guess(self, x):
        """Initial guess for every subproblem that is not hot-started"""
        x = np.asarray(x, dtype=float)
        if x.shape != (self.problem.n_variables,):
            raise InvalidConfiguration(
                f"Initial guess must have {self.problem.n_variables} entries, got shape {x.shape}")
        self._initial_guess = x
        return self

    def set_anchor_guess(self, objective_index: int, x):
        """Initial guess for the anchor solve of one objective"""
        if not 0 <= objective_index < self.problem.n_objectives:
            raise InvalidConfiguration(f"No objective with index {objective_index}")
        x = np.asarray(x, dtype=float)
        if x.shape != (self.problem.n_variables,):
            raise InvalidConfiguration(
                f"Anchor guess must have {self.problem.n_variables} entries, got shape {x.shape}")
        self._anchor_guesses[objective_index] = x
        return self

    def _validate(self):
        self.problem.check()
        self.options.validate(self.problem.n_objectives)

    def _configure_solver(self):
        self.solver.configure(tolerance=self.options.convergence_tolerance,
                              max_iterations=self.options.max_iterations)

    def _anchor_guess(self, index: int):
        guess = self._anchor_guesses.get(index)
        return guess if guess is not None else self._initial_guess

    def _ensure_anchors(self) -> List[AnchorPoint]:
        missing = [i for i in range(self.problem.n_objectives) if i not in self._anchors]
        if missing:
            if self.options.verbose:
                print(f"Computing {len(missing)} anchor point(s)...")
            guesses = {i: self._anchor_guess(i) for i in missing}
            if len(missing) == self.problem.n_objectives:
                anchors = compute_anchors(self.problem, self.solver, guesses,
                                          refine=self.options.anchor_refinement,
                                          multistart=self.options.anchor_multistart,
                                          workers=self.options.workers,
                                          verbose=self.options.verbose)
            else:
                anchors = [solve_anchor(self.problem, i, self.solver, guesses[i],
                                        refine=self.options.anchor_refinement,
                                        multistart=self.options.anchor_multistart,
                                        verbose=self.options.verbose)
                           for i in missing]
            for anchor in anchors:
                self._anchors[anchor.objective_index] = anchor
        return [self._anchors[i] for i in range(self.problem.n_objectives)]

    def solve(self) -> ParetoFront:
        """
        Generate the (unfiltered) Pareto front.

        Raises:
            InvalidConfiguration: before any solve, for bad options or m < 2
            ConvergenceFailure: an anchor solve did not converge
            DegenerateScalarization: anchors coincide (NBI/NNC)
        """
        self._validate()
        self._configure_solver()
        self._front = None
        self._filtered_front = None
        method = self.options.method

        normalization = None
        if requires_anchors(method):
            normalization = Normalization(self._ensure_anchors())
        elif self._anchors and len(self._anchors) == self.problem.n_objectives:
            # WS does not need anchors but uses cached ones for initial guesses
            try:
                normalization = Normalization(self._ensure_anchors())
            except DegenerateScalarization:
                normalization = None

        subproblems = generate_subproblems(method, self.problem, self.options.discretization,
                                           normalization, self.options.nnc_objective)
        if self.options.verbose:
            print(f"Solving {len(subproblems)} {method.value} subproblems "
                  f"(hot start: {self.options.hot_start}, workers: {self.options.workers})")

        self._front = solve_chains(self.problem, subproblems, self.solver,
                                   hot_start=self.options.hot_start,
                                   workers=self.options.workers,
                                   fallback_guess=self._initial_guess,
                                   verbose=self.options.verbose)
        if self.options.verbose:
            print(f"Front generated: {self._front.count(CandidateStatus.CONVERGED)}"
                  f"/{len(self._front)} subproblems converged")
        return self._front

    def solve_single_objective(self, objective_index: int) -> AnchorPoint:
        """Run only the anchor solve of one objective and cache its result"""
        self.problem.check()
        if not 0 <= objective_index < self.problem.n_objectives:
            raise InvalidConfiguration(f"No objective with index {objective_index}")
        self.options.validate(self.problem.n_objectives)
        self._configure_solver()
        anchor = solve_anchor(self.problem, objective_index, self.solver,
                              self._anchor_guess(objective_index),
                              refine=self.options.anchor_refinement,
                              multistart=self.options.anchor_multistart,
                              verbose=self.options.verbose)
        self._anchors[objective_index] = anchor
        return anchor

    def _require_front(self) -> ParetoFront:
        if self._front is None:
            raise RuntimeError("No Pareto front available; call solve() first")
        return self._front

    def get_pareto_front(self) -> ParetoFront:
        """All candidates in generation order, including non-converged ones"""
        return self._require_front()

    def get_pareto_front_with_filter(self) -> ParetoFront:
        """Candidates that survive the dominance filter, in generation order"""
        front = self._require_front()
        if self._filtered_front is None:
            self._filtered_front = filter_pareto_front(
                front,
                atol=self.options.filter_abs_tolerance,
                rtol=self.options.filter_rel_tolerance,
                exclude_unconverged=self.options.filter_unconverged)
        return self._filtered_front

    def get_anchor_points(self) -> List[AnchorPoint]:
        """Anchors in objective order, computed on first use"""
        self._validate()
        self._configure_solver()
        return self._ensure_anchors()

    def get_payoff_matrix(self) -> np.ndarray:
        return payoff_matrix(self.get_anchor_points())

    def get_utopia_point(self) -> np.ndarray:
        return np.diag(self.get_payoff_matrix()).copy()

    def get_nadir_point(self) -> np.ndarray:
        return self.get_payoff_matrix().max(axis=1)

    def get_weights(self) -> np.ndarray:
        """Scalarization weight vectors in generation order"""
        if self._front is not None:
            return self._front.weight_matrix()
        self.options.validate(self.problem.n_objectives)
        return simplex_grid(self.problem.n_objectives, self.options.discretization)

    def get_normalized_pareto_front(self, filtered: bool = False) -> np.ndarray:
        """Objective matrix scaled so that utopia -> 0 and nadir -> 1"""
        front = self.get_pareto_front_with_filter() if filtered else self.get_pareto_front()
        return normalize_front(front.objective_matrix(), self.get_utopia_point(),
                               self.get_nadir_point())

    def get_hypervolume(self, ref_point=None, filtered: bool = True) -> float:
        """Hypervolume of the front; reference point defaults to the nadir point"""
        front = self.get_pareto_front_with_filter() if filtered else self.get_pareto_front().converged()
        if ref_point is None:
            ref_point = self.get_nadir_point()
        return calculate_hypervolume(front.objective_matrix(), ref_point)

    def export_pareto_front(self, path, filtered: bool = False, columns: str = 'objectives'):
        front = self.get_pareto_front_with_filter() if filtered else self.get_pareto_front()
        write_front(path, front, columns)

    def summary(self) -> Dict[str, Any]:
        info = {
            'method': self.options.method.value,
            'n_objectives': self.problem.n_objectives,
            'n_variables': self.problem.n_variables,
            'discretization': self.options.discretization,
            'hot_start': self.options.hot_start,
        }
        if self._front is not None:
            info['n_points'] = len(self._front)
            info['status_counts'] = {s.value: self._front.count(s) for s in CandidateStatus}
            info['n_filtered'] = len(self.get_pareto_front_with_filter())
        if len(self._anchors) == self.problem.n_objectives:
            info['utopia'] = self.get_utopia_point().tolist()
            info['nadir'] = self.get_nadir_point().tolist()
        return info

    def print_info(self):
        info = self.summary()
        print(f"Scalarization method: {info['method']}")
        print(f"Objectives: {info['n_objectives']}, variables: {info['n_variables']}")
        print(f"Discretization: {info['discretization']}, hot start: {info['hot_start']}")
        if 'n_points' in info:
            counts = ', '.join(f"{k}: {v}" for k, v in info['status_counts'].items())
            print(f"Front points: {info['n_points']} ({counts})")
            print(f"Filtered front points: {info['n_filtered']}")
        if 'utopia' in info:
            print(f"Utopia point: {info['utopia']}")
            print(f"Nadir point: {info['nadir']}")
