"""
Scalarization strategies.

Each strategy turns the simplex grid of a discretization level into an
ordered list of single-objective subproblems:

- WS  (weighted sum): minimize sum_i w_i f_i(x)
- NBI (normal boundary intersection): maximize the step t along the
  quasi-normal of the CHIM, subject to fbar(x) = Phi beta + t n
- NNC (normalized normal constraint): minimize one normalized objective
  subject to hyperplane cuts through the CHIM point Phi beta

NBI and NNC work in normalized objective space, where the utopia point
maps to the origin and the nadir point to the ones vector.

References:
[1] I. Das and J. E. Dennis. Normal-Boundary Intersection: A New Method for
    Generating the Pareto Surface in Nonlinear Multicriteria Optimization
    Problems. SIAM J. Optim. 8(3), 1998.
[2] A. Messac, A. Ismail-Yahaya and C. A. Mattson. The normalized normal
    constraint method for generating the Pareto frontier. Struct.
    Multidiscip. Optim. 25(2), 2003.
"""

from typing import Callable, Dict, List, Optional, Sequence
import numpy as np
from scipy.special import comb

from pymoo.util.ref_dirs import get_reference_directions

from pareto_nlp.core.exceptions import DegenerateScalarization, InvalidConfiguration
from pareto_nlp.core.options import ScalarizationMethod
from pareto_nlp.core.problem import MultiObjectiveProblem
from pareto_nlp.core.results import AnchorPoint, ScalarizationParameter
from pareto_nlp.core.solver_interface import ScalarNLP


def expected_point_count(n_objectives: int, discretization: int) -> int:
    """Number of simplex grid points: C(np + m - 2, m - 1)"""
    return int(comb(discretization + n_objectives - 2, n_objectives - 1, exact=True))


def simplex_grid(n_objectives: int, discretization: int) -> np.ndarray:
    """
    Weight vectors on the unit simplex with components in
    {0, 1/(np-1), ..., 1}, shape (C(np+m-2, m-1), m).

    Points are sorted lexicographically by their components, so for two
    objectives the grid runs from (0, 1) to (1, 0).
    """
    if n_objectives < 2:
        raise InvalidConfiguration(
            f"At least two objectives are required, got {n_objectives}")
    if discretization < 2:
        raise InvalidConfiguration(
            f"Discretization must be at least 2, got {discretization}")

    n_partitions = discretization - 1
    ref_dirs = get_reference_directions("das-dennis", n_objectives, n_partitions=n_partitions)
    # Snap to the exact grid; the recursion accumulates rounding in the last component
    grid = np.round(np.asarray(ref_dirs, dtype=float) * n_partitions) / n_partitions

    expected = expected_point_count(n_objectives, discretization)
    if grid.shape != (expected, n_objectives):
        raise RuntimeError(
            f"Simplex grid has {grid.shape[0]} points, expected {expected}")
    return grid


class Normalization:
    """Payoff matrix of the anchors with utopia/nadir based scaling"""

    def __init__(self, anchors: Sequence[AnchorPoint]):
        anchors = sorted(anchors, key=lambda a: a.objective_index)
        self.anchor_x = np.vstack([a.x for a in anchors])
        # Column j holds the objective vector at anchor j
        self.payoff = np.column_stack([a.f for a in anchors])
        self.utopia = np.diag(self.payoff).copy()
        self.nadir = self.payoff.max(axis=1)
        self.scale = self.nadir - self.utopia

        threshold = 1e-10 * np.maximum(1.0, np.abs(self.utopia))
        if np.any(self.scale <= threshold):
            degenerate = [int(i) for i in np.flatnonzero(self.scale <= threshold)]
            raise DegenerateScalarization(
                f"Anchor points coincide in objective(s) {degenerate}; "
                "the CHIM is degenerate")

        self.normalized_payoff = (self.payoff - self.utopia[:, None]) / self.scale[:, None]

    @property
    def n_objectives(self) -> int:
        return len(self.utopia)

    def normalize(self, f) -> np.ndarray:
        return (np.asarray(f, dtype=float) - self.utopia) / self.scale

    def denormalize(self, fbar) -> np.ndarray:
        return np.asarray(fbar, dtype=float) * self.scale + self.utopia

    def chim_point(self, weights) -> np.ndarray:
        """Normalized point sum_i beta_i anchor_i on the CHIM"""
        return self.normalized_payoff @ np.asarray(weights, dtype=float)

    def quasi_normal(self) -> np.ndarray:
        """NBI search direction -Phi e, pointing from the CHIM towards the utopia point"""
        return -self.normalized_payoff.sum(axis=1)

    def anchor_combination(self, weights) -> np.ndarray:
        return np.asarray(weights, dtype=float) @ self.anchor_x


class Subproblem:
    """One scalarized single-objective NLP tagged with its simplex coordinate"""

    def __init__(self, parameter: ScalarizationParameter, nlp: ScalarNLP,
                 n_variables: int, default_guess: Optional[np.ndarray] = None,
                 step_fit: Optional[Callable[[np.ndarray], float]] = None,
                 anchor_seeded: bool = False):
        self.parameter = parameter
        self.nlp = nlp
        self.n_variables = n_variables
        self.default_guess = default_guess
        self._step_fit = step_fit
        # Vertex of the simplex whose default guess is the anchor itself
        self.anchor_seeded = anchor_seeded

    @property
    def index(self) -> int:
        return self.parameter.index

    @property
    def has_step(self) -> bool:
        return self._step_fit is not None

    def extend_guess(self, x, step: Optional[float] = None) -> np.ndarray:
        """Initial guess in the subproblem's variables (adds t for NBI)"""
        x = np.asarray(x, dtype=float)
        if not self.has_step:
            return x.copy()
        if step is None:
            step = self._step_fit(x)
        return np.append(x, step)

    def split(self, z):
        """Subproblem solution -> (x, step)"""
        z = np.asarray(z, dtype=float)
        if not self.has_step:
            return z, None
        return z[:self.n_variables], float(z[self.n_variables])

    def __repr__(self):
        return f"Subproblem(index={self.index}, weights={self.parameter.weights})"


def _lift_constraints(problem: MultiObjectiveProblem, n_extra: int) -> List[Dict]:
    """Original constraints as scipy dicts over z = [x, extra variables]"""
    n = problem.n_variables
    lifted = []
    for c in problem.constraints:
        if n_extra == 0:
            entry = {'type': c.kind, 'fun': c.fun}
            if c.jac is not None:
                entry['jac'] = c.jac
        else:
            entry = {'type': c.kind, 'fun': (lambda z, _f=c.fun: _f(z[:n]))}
            if c.jac is not None:
                def jac(z, _j=c.jac):
                    J = np.atleast_2d(np.asarray(_j(z[:n]), dtype=float))
                    return np.hstack([J, np.zeros((J.shape[0], n_extra))])
                entry['jac'] = jac
        lifted.append(entry)
    return lifted


def _default_guess(problem, weights, normalization):
    if normalization is None:
        return None
    return problem.variable_space.clip(normalization.anchor_combination(weights))


def _is_vertex(weights, normalization) -> bool:
    return normalization is not None and int(np.count_nonzero(weights)) == 1


def weighted_sum_subproblems(problem: MultiObjectiveProblem, grid: np.ndarray,
                             normalization: Optional[Normalization] = None,
                             **kwargs) -> List[Subproblem]:
    """minimize sum_i w_i f_i(x) for every weight vector of the grid"""
    with_gradient = problem.has_gradients
    subproblems = []
    for index, w in enumerate(grid):
        w = np.array(w, dtype=float)

        def objective(x, _w=w):
            return float(_w @ problem.evaluate(x))

        gradient = None
        if with_gradient:
            def gradient(x, _w=w):
                return _w @ problem.objective_jacobian(x)

        nlp = ScalarNLP(
            objective=objective,
            bounds=problem.bounds(),
            constraints=_lift_constraints(problem, 0),
            gradient=gradient,
        )
        parameter = ScalarizationParameter(index=index, weights=tuple(float(v) for v in w))
        subproblems.append(Subproblem(parameter, nlp, problem.n_variables,
                                      default_guess=_default_guess(problem, w, normalization),
                                      anchor_seeded=_is_vertex(w, normalization)))
    return subproblems


def nbi_subproblems(problem: MultiObjectiveProblem, grid: np.ndarray,
                    normalization: Normalization, **kwargs) -> List[Subproblem]:
    """maximize t subject to fbar(x) = Phi beta + t n, over z = [x, t]"""
    if normalization is None:
        raise InvalidConfiguration("NBI requires anchor points")

    n = problem.n_variables
    normal = normalization.quasi_normal()
    normal_sq = float(normal @ normal)
    with_gradient = problem.has_gradients
    bounds = problem.bounds() + [(None, None)]
    lifted = _lift_constraints(problem, 1)

    def objective(z):
        return -float(z[n])

    def gradient(z):
        g = np.zeros(n + 1)
        g[n] = -1.0
        return g

    subproblems = []
    for index, beta in enumerate(grid):
        beta = np.array(beta, dtype=float)
        origin = normalization.chim_point(beta)

        def on_ray(z, _origin=origin):
            return normalization.normalize(problem.evaluate(z[:n])) - _origin - z[n] * normal

        ray = {'type': 'eq', 'fun': on_ray}
        if with_gradient:
            def on_ray_jac(z):
                J = problem.objective_jacobian(z[:n]) / normalization.scale[:, None]
                return np.hstack([J, -normal[:, None]])
            ray['jac'] = on_ray_jac

        def step_fit(x, _origin=origin):
            # least-squares t for the ray equation at x
            residual = normalization.normalize(problem.evaluate(x)) - _origin
            return float(residual @ normal) / normal_sq

        nlp = ScalarNLP(
            objective=objective,
            bounds=bounds,
            constraints=lifted + [ray],
            gradient=gradient,
        )
        parameter = ScalarizationParameter(index=index, weights=tuple(float(v) for v in beta))
        subproblems.append(Subproblem(parameter, nlp, n,
                                      default_guess=_default_guess(problem, beta, normalization),
                                      step_fit=step_fit,
                                      anchor_seeded=_is_vertex(beta, normalization)))
    return subproblems


def nnc_subproblems(problem: MultiObjectiveProblem, grid: np.ndarray,
                    normalization: Normalization, nnc_objective: int = -1,
                    **kwargs) -> List[Subproblem]:
    """minimize fbar_a(x) subject to (mu_a - mu_k) . (fbar(x) - Phi beta) <= 0, k != a"""
    if normalization is None:
        raise InvalidConfiguration("NNC requires anchor points")

    m = problem.n_objectives
    active = nnc_objective % m
    mu = normalization.normalized_payoff
    others = [k for k in range(m) if k != active]
    # Rows: utopia plane directions from each other anchor towards the active one
    directions = np.vstack([mu[:, active] - mu[:, k] for k in others])
    with_gradient = problem.has_gradients
    lifted = _lift_constraints(problem, 0)
    scale = normalization.scale

    def objective(x):
        return float(normalization.normalize(problem.evaluate(x))[active])

    gradient = None
    if with_gradient:
        def gradient(x):
            return problem.objective_jacobian(x)[active] / scale[active]

    subproblems = []
    for index, beta in enumerate(grid):
        beta = np.array(beta, dtype=float)
        offset = normalization.chim_point(beta)

        def cut(x, _offset=offset):
            return -(directions @ (normalization.normalize(problem.evaluate(x)) - _offset))

        hyperplanes = {'type': 'ineq', 'fun': cut}
        if with_gradient:
            def cut_jac(x):
                return -(directions @ (problem.objective_jacobian(x) / scale[:, None]))
            hyperplanes['jac'] = cut_jac

        nlp = ScalarNLP(
            objective=objective,
            bounds=problem.bounds(),
            constraints=lifted + [hyperplanes],
            gradient=gradient,
        )
        parameter = ScalarizationParameter(
            index=index,
            weights=tuple(float(v) for v in beta),
            offset=tuple(float(v) for v in offset),
            active_objective=active,
        )
        subproblems.append(Subproblem(parameter, nlp, problem.n_variables,
                                      default_guess=_default_guess(problem, beta, normalization),
                                      anchor_seeded=_is_vertex(beta, normalization)))
    return subproblems


STRATEGIES = {
    ScalarizationMethod.WS: weighted_sum_subproblems,
    ScalarizationMethod.NBI: nbi_subproblems,
    ScalarizationMethod.NNC: nnc_subproblems,
}


def requires_anchors(method) -> bool:
    return ScalarizationMethod.parse(method) != ScalarizationMethod.WS


def generate_subproblems(method, problem: MultiObjectiveProblem, discretization: int,
                         normalization: Optional[Normalization] = None,
                         nnc_objective: int = -1) -> List[Subproblem]:
    """Ordered subproblems of a strategy, one per simplex grid point"""
    method = ScalarizationMethod.parse(method)
    grid = simplex_grid(problem.n_objectives, discretization)
    return STRATEGIES[method](problem, grid, normalization, nnc_objective=nnc_objective)
