from concurrent.futures import ThreadPoolExecutor
import itertools
from typing import Dict, List, Optional, Sequence
import numpy as np

from pareto_nlp.core.exceptions import ConvergenceFailure
from pareto_nlp.core.problem import MultiObjectiveProblem
from pareto_nlp.core.results import AnchorPoint, CandidateStatus
from pareto_nlp.core.solver_interface import NLPSolver, ScalarNLP

# Box corners tried by a multi-start anchor solve; larger boxes use the default point only
MAX_CORNERS = 16


def _single_objective_nlp(problem: MultiObjectiveProblem, index: int) -> ScalarNLP:
    objective = problem.objectives[index]
    constraints = []
    for c in problem.constraints:
        entry = {'type': c.kind, 'fun': c.fun}
        if c.jac is not None:
            entry['jac'] = c.jac
        constraints.append(entry)
    return ScalarNLP(
        objective=lambda x: float(objective.fun(x)),
        bounds=problem.bounds(),
        constraints=constraints,
        gradient=objective.jac if problem.has_gradients else None,
    )


def _refinement_nlp(problem: MultiObjectiveProblem, index: int, level: float) -> ScalarNLP:
    """minimize the other objectives while keeping f_index(x) <= level"""
    base = _single_objective_nlp(problem, index)
    others = [o for o in problem.objectives if o.index != index]
    target = problem.objectives[index]

    cap = {'type': 'ineq', 'fun': lambda x: level - float(target.fun(x))}
    gradient = None
    if problem.has_gradients:
        cap['jac'] = lambda x: -np.asarray(target.jac(x), dtype=float)

        def gradient(x):
            return np.sum([np.asarray(o.jac(x), dtype=float) for o in others], axis=0)

    return ScalarNLP(
        objective=lambda x: float(sum(o.fun(x) for o in others)),
        bounds=base.bounds,
        constraints=base.constraints + [cap],
        gradient=gradient,
    )


def anchor_starts(problem: MultiObjectiveProblem, initial_guess: Optional[np.ndarray] = None,
                  multistart: bool = True) -> List[np.ndarray]:
    """
    Initial points for an anchor solve: the given guess (or the variable
    space default), then with `multistart` the default point and every
    corner of a finite box with at most MAX_CORNERS corners.
    """
    space = problem.variable_space
    default = space.default_point()
    starts = [default if initial_guess is None else np.asarray(initial_guess, dtype=float)]
    if not multistart:
        return starts

    if initial_guess is not None:
        starts.append(default)
    lower = space.lower_bounds()
    upper = space.upper_bounds()
    if np.all(np.isfinite(lower)) and np.all(np.isfinite(upper)) and 2 ** space.size <= MAX_CORNERS:
        starts.extend(np.array(corner, dtype=float)
                      for corner in itertools.product(*zip(lower, upper)))
    return starts


def _try_solve(solver: NLPSolver, nlp: ScalarNLP, x0: np.ndarray):
    """Solver result, or the exception the solver raised"""
    try:
        return solver.solve(nlp, x0)
    except Exception as e:
        return e


def solve_anchor(problem: MultiObjectiveProblem, index: int, solver: NLPSolver,
                 initial_guess: Optional[np.ndarray] = None,
                 refine: bool = True, multistart: bool = True,
                 verbose: bool = False) -> AnchorPoint:
    """
    Minimize objective `index` alone subject to all constraints and bounds.

    With `multistart`, the solve is repeated from the points of
    `anchor_starts` and the lowest converged minimum is kept (the first one
    on ties). With `refine`, a second solve minimizes the sum of the other
    objectives while holding objective `index` at its minimum, so that a
    non-unique individual minimum still yields a Pareto optimal anchor.

    Raises:
        ConvergenceFailure: no start converged
    """
    nlp = _single_objective_nlp(problem, index)
    best = None
    first_failure = None
    n_iterations = 0
    for x0 in anchor_starts(problem, initial_guess, multistart):
        result = _try_solve(solver, nlp, x0)
        if isinstance(result, Exception):
            if verbose:
                print(f"Anchor solve for objective {index} raised: {result}")
            if first_failure is None:
                first_failure = result
            continue
        n_iterations += result.n_iterations
        if result.status != CandidateStatus.CONVERGED:
            if first_failure is None:
                first_failure = result
            continue
        if best is None or result.fun < best.fun:
            best = result

    if best is None:
        if isinstance(first_failure, Exception):
            raise ConvergenceFailure(
                f"Anchor solve for objective {index} failed: {first_failure}",
                objective_index=index, status=CandidateStatus.SOLVER_FAILURE) from first_failure
        raise ConvergenceFailure(
            f"Anchor solve for objective {index} did not converge "
            f"({first_failure.status.value}): {first_failure.message}",
            objective_index=index, status=first_failure.status)

    x = best.x
    if refine:
        f_min = float(problem.objectives[index].fun(x))
        delta = max(10.0 * solver.tolerance, 1e-9) * max(1.0, abs(f_min))
        refined = _try_solve(solver, _refinement_nlp(problem, index, f_min + delta), x)
        if isinstance(refined, Exception):
            if verbose:
                print(f"Anchor refinement for objective {index} raised ({refined}); "
                      f"keeping the unrefined anchor")
        else:
            n_iterations += refined.n_iterations
            if refined.status == CandidateStatus.CONVERGED:
                x = refined.x
            elif verbose:
                print(f"Anchor refinement for objective {index} did not converge "
                      f"({refined.message}); keeping the unrefined anchor")

    try:
        f = problem.evaluate(x)
    except Exception as e:
        raise ConvergenceFailure(
            f"Objectives could not be evaluated at anchor {index}: {e}",
            objective_index=index, status=CandidateStatus.SOLVER_FAILURE) from e
    if not np.all(np.isfinite(f)):
        raise ConvergenceFailure(
            f"Anchor {index} has non-finite objective values {f}",
            objective_index=index, status=CandidateStatus.SOLVER_FAILURE)
    if verbose:
        print(f"Anchor {index}: f = {np.array2string(f, precision=6)} "
              f"after {n_iterations} iterations")
    return AnchorPoint(objective_index=index, x=np.asarray(x, dtype=float), f=f,
                       status=CandidateStatus.CONVERGED, n_iterations=n_iterations)


def compute_anchors(problem: MultiObjectiveProblem, solver: NLPSolver,
                    initial_guesses: Optional[Dict[int, np.ndarray]] = None,
                    refine: bool = True, multistart: bool = True, workers: int = 1,
                    verbose: bool = False) -> List[AnchorPoint]:
    """Solve every anchor; independent solves run on `workers` threads"""
    initial_guesses = initial_guesses or {}
    indices = range(problem.n_objectives)

    def solve(i):
        return solve_anchor(problem, i, solver, initial_guesses.get(i),
                            refine=refine, multistart=multistart, verbose=verbose)

    if workers <= 1:
        return [solve(i) for i in indices]

    with ThreadPoolExecutor(max_workers=workers) as executor:
        # map re-raises the first ConvergenceFailure in objective order
        return list(executor.map(solve, indices))


def payoff_matrix(anchors: Sequence[AnchorPoint]) -> np.ndarray:
    """Column j is the objective vector at the anchor of objective j"""
    anchors = sorted(anchors, key=lambda a: a.objective_index)
    return np.column_stack([a.f for a in anchors])


def utopia_point(anchors: Sequence[AnchorPoint]) -> np.ndarray:
    return np.diag(payoff_matrix(anchors)).copy()


def nadir_point(anchors: Sequence[AnchorPoint]) -> np.ndarray:
    return payoff_matrix(anchors).max(axis=1)
