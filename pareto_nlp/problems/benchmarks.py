import numpy as np
from abc import ABC, abstractmethod
from typing import Dict, List

from pareto_nlp.core.problem import Constraint, MultiObjectiveProblem, Objective
from pareto_nlp.core.variable_space import VariableSpace


class BenchmarkProblem(ABC):
    """Base class for benchmark problems"""

    @abstractmethod
    def get_variable_space(self) -> VariableSpace:
        """Return the variables of the problem"""
        pass

    @abstractmethod
    def get_problem(self) -> MultiObjectiveProblem:
        """Return the problem descriptor"""
        pass

    @property
    @abstractmethod
    def num_objectives(self) -> int:
        pass

    def get_anchor_guesses(self) -> Dict[int, List[float]]:
        """Known good starting points for individual minima, by objective index"""
        return {}

    @property
    def name(self) -> str:
        return self.__class__.__name__


class NonConvexBoundaryProblem(BenchmarkProblem):
    """
    Two objectives f = (y1, y2) on y1 in [0, 5], y2 in [0, 5.2] with

        y2 >= 5 exp(-y1) + 2 exp(-0.5 (y1 - 3)^2)

    The constraint boundary rises between y1 ~ 1.4 and y1 ~ 2.9, so part of
    the boundary is dominated. Anchors: (5.0, 0.304) and (0.0, 5.022).
    """

    def get_variable_space(self) -> VariableSpace:
        return (VariableSpace()
                .add_variable('y1', 0.0, 5.0)
                .add_variable('y2', 0.0, 5.2))

    def get_anchor_guesses(self) -> Dict[int, List[float]]:
        # min y2 has a local minimum at y1 ~ 1.58 on the boundary
        return {0: [0.0, 5.1], 1: [5.0, 0.5]}

    @staticmethod
    def boundary(y1):
        return 5.0 * np.exp(-y1) + 2.0 * np.exp(-0.5 * (y1 - 3.0) ** 2)

    def get_problem(self) -> MultiObjectiveProblem:
        def constraint(y):
            return y[1] - self.boundary(y[0])

        def constraint_jac(y):
            d_y1 = 5.0 * np.exp(-y[0]) + 2.0 * (y[0] - 3.0) * np.exp(-0.5 * (y[0] - 3.0) ** 2)
            return np.array([d_y1, 1.0])

        objectives = [
            Objective(0, lambda y: float(y[0]), lambda y: np.array([1.0, 0.0]), 'y1'),
            Objective(1, lambda y: float(y[1]), lambda y: np.array([0.0, 1.0]), 'y2'),
        ]
        return MultiObjectiveProblem(
            self.get_variable_space(), objectives,
            constraints=[Constraint('ineq', constraint, constraint_jac, 'boundary')])

    @property
    def num_objectives(self) -> int:
        return 2


class ConvexQuadraticProblem(BenchmarkProblem):
    """
    f1 = x1^2 + x2^2, f2 = (x1 - 1)^2 + (x2 - 1)^2 on [-2, 3]^2.

    The Pareto set is the segment x1 = x2 in [0, 1]; the front is convex.
    """

    def get_variable_space(self) -> VariableSpace:
        return (VariableSpace()
                .add_variable('x1', -2.0, 3.0)
                .add_variable('x2', -2.0, 3.0))

    def get_problem(self) -> MultiObjectiveProblem:
        objectives = [
            Objective(0, lambda x: float(x[0] ** 2 + x[1] ** 2),
                      lambda x: np.array([2.0 * x[0], 2.0 * x[1]]), 'f1'),
            Objective(1, lambda x: float((x[0] - 1.0) ** 2 + (x[1] - 1.0) ** 2),
                      lambda x: np.array([2.0 * (x[0] - 1.0), 2.0 * (x[1] - 1.0)]), 'f2'),
        ]
        return MultiObjectiveProblem(self.get_variable_space(), objectives)

    @property
    def num_objectives(self) -> int:
        return 2


class ThreeObjectiveSphereProblem(BenchmarkProblem):
    """
    f_i = ||x - e_i||^2 for i = 1..3 with x in [-1, 2]^3.

    Anchors are the unit vectors; the Pareto set is their convex hull.
    """

    def get_variable_space(self) -> VariableSpace:
        space = VariableSpace()
        for i in range(3):
            space.add_variable(f"x{i + 1}", -1.0, 2.0)
        return space

    def get_problem(self) -> MultiObjectiveProblem:
        objectives = []
        for i in range(3):
            target = np.eye(3)[i]
            objectives.append(Objective(
                i,
                lambda x, _t=target: float(np.sum((np.asarray(x) - _t) ** 2)),
                lambda x, _t=target: 2.0 * (np.asarray(x) - _t),
                f"f{i + 1}"))
        return MultiObjectiveProblem(self.get_variable_space(), objectives)

    @property
    def num_objectives(self) -> int:
        return 3


class FonsecaFlemingProblem(BenchmarkProblem):
    """
    Fonseca-Fleming problem with a concave front:

    f1 = 1 - exp(-sum (x_i - 1/sqrt(n))^2)
    f2 = 1 - exp(-sum (x_i + 1/sqrt(n))^2),  x in [-4, 4]^n

    Weighted sums only reach the two ends of this front.
    """

    def __init__(self, n_variables: int = 2):
        self.n_variables = n_variables

    def get_variable_space(self) -> VariableSpace:
        space = VariableSpace()
        for i in range(self.n_variables):
            space.add_variable(f"x{i + 1}", -4.0, 4.0)
        return space

    def get_problem(self) -> MultiObjectiveProblem:
        shift = 1.0 / np.sqrt(self.n_variables)

        def make(sign):
            def fun(x):
                return float(1.0 - np.exp(-np.sum((np.asarray(x) - sign * shift) ** 2)))

            def jac(x):
                d = np.asarray(x) - sign * shift
                return 2.0 * d * np.exp(-np.sum(d ** 2))
            return fun, jac

        f1, g1 = make(1.0)
        f2, g2 = make(-1.0)
        objectives = [Objective(0, f1, g1, 'f1'), Objective(1, f2, g2, 'f2')]
        return MultiObjectiveProblem(self.get_variable_space(), objectives)

    @property
    def num_objectives(self) -> int:
        return 2


BENCHMARKS = {
    'nonconvex_boundary': NonConvexBoundaryProblem,
    'convex_quadratic': ConvexQuadraticProblem,
    'three_sphere': ThreeObjectiveSphereProblem,
    'fonseca_fleming': FonsecaFlemingProblem,
}


def get_benchmark(name: str) -> BenchmarkProblem:
    """Get a benchmark problem by name"""
    if name not in BENCHMARKS:
        raise ValueError(f"Unknown benchmark problem: {name}. "
                         f"Available problems: {', '.join(BENCHMARKS)}")
    return BENCHMARKS[name]()


def list_benchmarks() -> List[str]:
    return list(BENCHMARKS.keys())


def describe_benchmarks() -> Dict[str, str]:
    return {name: (cls.__doc__ or '').strip().splitlines()[0] for name, cls in BENCHMARKS.items()}
