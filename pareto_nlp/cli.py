#!/usr/bin/env python3
import argparse
import sys
import time

from pareto_nlp.adapters.scipy_adapter import ScipyNLPSolver
from pareto_nlp.core.algorithm import MultiObjectiveAlgorithm
from pareto_nlp.core.exceptions import ParetoError
from pareto_nlp.core.options import ParetoOptions
from pareto_nlp.problems.benchmarks import describe_benchmarks, get_benchmark


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        description="Generate the Pareto front of a benchmark problem by scalarization")
    parser.add_argument('--problem', type=str, default='nonconvex_boundary',
                        help='Benchmark problem to solve')
    parser.add_argument('--method', type=str, default='NBI', choices=['WS', 'NBI', 'NNC'],
                        help='Scalarization method')
    parser.add_argument('--discretization', type=int, default=41,
                        help='Points per simplex edge')
    parser.add_argument('--tolerance', type=float, default=1e-12,
                        help='Convergence tolerance of the NLP solver')
    parser.add_argument('--max-iterations', type=int, default=500,
                        help='Iteration budget per subproblem')
    parser.add_argument('--no-hot-start', action='store_true',
                        help='Solve every subproblem from the default initial guess')
    parser.add_argument('--no-anchor-multistart', action='store_true',
                        help='Solve each anchor from a single initial guess')
    parser.add_argument('--workers', type=int, default=1,
                        help='Number of worker threads')
    parser.add_argument('--solver', type=str, default='SLSQP', choices=['SLSQP', 'trust-constr'],
                        help='scipy method used for the subproblems')
    parser.add_argument('--output', type=str, default=None,
                        help='Write the front to this file (one point per line)')
    parser.add_argument('--columns', type=str, default='objectives',
                        choices=['objectives', 'variables', 'both'],
                        help='Fields written per point')
    parser.add_argument('--filtered', action='store_true',
                        help='Write the filtered front instead of the raw one')
    parser.add_argument('--list', action='store_true',
                        help='List available benchmark problems and exit')
    parser.add_argument('--quiet', action='store_true', help='Suppress progress output')
    return parser


def main(argv=None) -> int:
    args = build_parser().parse_args(argv)

    if args.list:
        for name, description in describe_benchmarks().items():
            print(f"{name:22s} {description}")
        return 0

    options = ParetoOptions(
        scalarization_method=args.method,
        discretization=args.discretization,
        convergence_tolerance=args.tolerance,
        hot_start=not args.no_hot_start,
        anchor_multistart=not args.no_anchor_multistart,
        max_iterations=args.max_iterations,
        workers=args.workers,
        verbose=not args.quiet,
    )

    try:
        benchmark = get_benchmark(args.problem)
        algorithm = MultiObjectiveAlgorithm(benchmark.get_problem(),
                                            solver=ScipyNLPSolver(method=args.solver),
                                            options=options)
        for index, guess in benchmark.get_anchor_guesses().items():
            algorithm.set_anchor_guess(index, guess)
        start_time = time.time()
        algorithm.solve()
        elapsed = time.time() - start_time
    except (ParetoError, ValueError) as e:
        print(f"Error: {e}", file=sys.stderr)
        return 1

    if not args.quiet:
        algorithm.print_info()
        print(f"Completed in {elapsed:.2f} seconds")

    if args.output:
        algorithm.export_pareto_front(args.output, filtered=args.filtered, columns=args.columns)
        if not args.quiet:
            print(f"Front written to {args.output}")
    return 0


if __name__ == '__main__':
    sys.exit(main())
