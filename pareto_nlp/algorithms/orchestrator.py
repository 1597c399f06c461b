"""
Solve orchestration for scalarized subproblems.

Subproblems are walked in nearest-neighbour order through weight space and
split into chains. Inside a chain each solve is seeded from the previous
candidate (hot start); chains are independent and run on a thread pool.
Every candidate is written to the slot of its generation index, so the
resulting front is always in generation order.
"""

from concurrent.futures import ThreadPoolExecutor
from typing import Callable, List, Optional, Sequence
import numpy as np
from tqdm import tqdm

from pareto_nlp.core.problem import MultiObjectiveProblem
from pareto_nlp.core.results import CandidatePoint, CandidateStatus, ParetoFront
from pareto_nlp.core.solver_interface import NLPSolver
from pareto_nlp.algorithms.scalarization import Subproblem


def hot_start_order(weights: np.ndarray) -> List[int]:
    """
    Greedy nearest-neighbour walk over the weight vectors, starting at
    generation index 0. Ties go to the lower generation index.
    """
    weights = np.asarray(weights, dtype=float)
    n = len(weights)
    if n == 0:
        return []
    visited = np.zeros(n, dtype=bool)
    order = [0]
    visited[0] = True
    for _ in range(n - 1):
        distances = np.linalg.norm(weights - weights[order[-1]], axis=1)
        distances[visited] = np.inf
        # argmin returns the first (lowest index) minimum
        nxt = int(np.argmin(distances))
        order.append(nxt)
        visited[nxt] = True
    return order


def build_chains(order: Sequence[int], hot_start: bool, n_chains: int = 1) -> List[List[int]]:
    """Split the solve order into chains; without hot start every index is its own chain"""
    order = list(order)
    if not order:
        return []
    if not hot_start:
        return [[i] for i in order]
    n_chains = max(1, min(n_chains, len(order)))
    return [list(map(int, chunk)) for chunk in np.array_split(order, n_chains)]


def solve_subproblem(problem: MultiObjectiveProblem, subproblem: Subproblem,
                     solver: NLPSolver, previous: Optional[CandidatePoint] = None,
                     fallback_guess: Optional[np.ndarray] = None,
                     verbose: bool = False) -> CandidatePoint:
    """
    Solve one subproblem and wrap the result as a candidate point.

    A subproblem at a simplex vertex starts from its anchor. Otherwise the
    initial guess is the previous candidate's solution when one is given
    and did not fail outright, then `fallback_guess`, then the subproblem's
    own default guess, then the variable space default.
    Solver errors are recorded as SOLVER_FAILURE, never raised.
    """
    if subproblem.anchor_seeded:
        z0 = subproblem.extend_guess(subproblem.default_guess)
    elif previous is not None and previous.status != CandidateStatus.SOLVER_FAILURE:
        z0 = subproblem.extend_guess(previous.x, previous.step)
    else:
        x0 = fallback_guess
        if x0 is None:
            x0 = subproblem.default_guess
        if x0 is None:
            x0 = problem.variable_space.default_point()
        z0 = subproblem.extend_guess(x0)

    try:
        result = solver.solve(subproblem.nlp, z0)
    except Exception as e:
        if verbose:
            print(f"Error solving subproblem {subproblem.index}: {e}")
        x, step = subproblem.split(z0)
        return CandidatePoint(
            parameter=subproblem.parameter,
            x=x,
            f=np.full(problem.n_objectives, np.nan),
            status=CandidateStatus.SOLVER_FAILURE,
            step=step,
            message=str(e),
        )

    x, step = subproblem.split(result.x)
    try:
        f = problem.evaluate(x)
    except Exception as e:
        if verbose:
            print(f"Error evaluating objectives of subproblem {subproblem.index}: {e}")
        return CandidatePoint(subproblem.parameter, x, np.full(problem.n_objectives, np.nan),
                              CandidateStatus.SOLVER_FAILURE, result.n_iterations, step, str(e))

    status = result.status
    if status == CandidateStatus.CONVERGED and not np.all(np.isfinite(f)):
        status = CandidateStatus.SOLVER_FAILURE
    return CandidatePoint(
        parameter=subproblem.parameter,
        x=x,
        f=f,
        status=status,
        n_iterations=result.n_iterations,
        step=step,
        message=result.message,
    )


def solve_chain(problem: MultiObjectiveProblem, subproblems: Sequence[Subproblem],
                chain: Sequence[int], solver: NLPSolver, slots: List,
                fallback_guess: Optional[np.ndarray] = None,
                on_solved: Optional[Callable[[CandidatePoint], None]] = None,
                verbose: bool = False):
    """Solve a chain in order, passing each candidate on as the next hot start"""
    previous = None
    for index in chain:
        candidate = solve_subproblem(problem, subproblems[index], solver, previous,
                                     fallback_guess, verbose)
        slots[index] = candidate
        previous = candidate
        if on_solved is not None:
            on_solved(candidate)


def solve_chains(problem: MultiObjectiveProblem, subproblems: Sequence[Subproblem],
                 solver: NLPSolver, hot_start: bool = True, workers: int = 1,
                 fallback_guess: Optional[np.ndarray] = None,
                 verbose: bool = False) -> ParetoFront:
    """
    Solve all subproblems and collect the candidates in generation order.

    Args:
        problem: Problem descriptor the subproblems were generated from
        subproblems: Subproblems in generation order (index i at position i)
        solver: Single-objective NLP solver
        hot_start: Chain neighbouring subproblems through their solutions
        workers: Number of threads; with hot start also the number of chains
        fallback_guess: Caller-supplied initial guess for chain heads
        verbose: Show a progress bar and error messages

    Returns:
        ParetoFront with one candidate per subproblem
    """
    weights = np.array([s.parameter.weights for s in subproblems], dtype=float)
    chains = build_chains(hot_start_order(weights), hot_start, workers)

    # One slot per generation index; each chain only writes its own slots
    slots = [None] * len(subproblems)

    progress = tqdm(total=len(subproblems), desc="Solving subproblems", disable=not verbose)
    try:
        def advance(candidate):
            progress.update(1)

        if workers <= 1:
            for chain in chains:
                solve_chain(problem, subproblems, chain, solver, slots,
                            fallback_guess, advance, verbose)
        else:
            with ThreadPoolExecutor(max_workers=workers) as executor:
                futures = [executor.submit(solve_chain, problem, subproblems, chain, solver,
                                           slots, fallback_guess, advance, verbose)
                           for chain in chains]
                for future in futures:
                    future.result()
    finally:
        progress.close()

    return ParetoFront(slots)
