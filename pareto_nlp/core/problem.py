from typing import List, Callable, Optional, Sequence, NamedTuple
import numpy as np

from pareto_nlp.core.exceptions import InvalidConfiguration
from pareto_nlp.core.variable_space import VariableSpace


class Objective(NamedTuple):
    """Scalar objective to be minimized; jac is the optional analytic gradient"""
    index: int
    fun: Callable[[np.ndarray], float]
    jac: Optional[Callable[[np.ndarray], np.ndarray]] = None
    name: str = ''


class Constraint(NamedTuple):
    """General constraint: kind 'ineq' means fun(x) >= 0, 'eq' means fun(x) == 0"""
    kind: str
    fun: Callable[[np.ndarray], object]
    jac: Optional[Callable[[np.ndarray], np.ndarray]] = None
    name: str = ''


class MultiObjectiveProblem:
    """Definition of a constrained multi-objective nonlinear program"""

    def __init__(self, variable_space: VariableSpace,
                 objective_functions: Sequence,
                 constraints: Optional[Sequence] = None,
                 objective_gradients: Optional[Sequence] = None,
                 objective_names: Optional[Sequence[str]] = None):
        """
        Args:
            variable_space: Variables and their bounds
            objective_functions: Callables f_i(x) -> float, or Objective tuples
            constraints: Constraint tuples or scipy-style dicts
                ({'type': 'ineq'|'eq', 'fun': ..., 'jac': ...})
            objective_gradients: Optional gradients matching objective_functions
            objective_names: Optional labels used for axis/column naming
        """
        self.variable_space = variable_space

        objectives = []
        for i, f in enumerate(objective_functions):
            if isinstance(f, Objective):
                objectives.append(f._replace(index=i))
                continue
            jac = objective_gradients[i] if objective_gradients is not None else None
            name = objective_names[i] if objective_names is not None else f"f{i + 1}"
            objectives.append(Objective(index=i, fun=f, jac=jac, name=name))
        self._objectives = tuple(objectives)

        parsed = []
        for c in constraints or []:
            if isinstance(c, dict):
                c = Constraint(kind=c['type'], fun=c['fun'], jac=c.get('jac'),
                               name=c.get('name', ''))
            if c.kind not in ('ineq', 'eq'):
                raise InvalidConfiguration(f"Unknown constraint type '{c.kind}'")
            parsed.append(c)
        self._constraints = tuple(parsed)

    @property
    def objectives(self):
        return self._objectives

    @property
    def constraints(self):
        return self._constraints

    @property
    def n_objectives(self) -> int:
        return len(self._objectives)

    @property
    def n_variables(self) -> int:
        return self.variable_space.size

    @property
    def objective_names(self) -> List[str]:
        return [o.name for o in self._objectives]

    @property
    def has_gradients(self) -> bool:
        """True when every objective and constraint provides an analytic jacobian"""
        return (all(o.jac is not None for o in self._objectives)
                and all(c.jac is not None for c in self._constraints))

    def bounds(self):
        return self.variable_space.bounds()

    def evaluate(self, x) -> np.ndarray:
        """Evaluate a single point on all objectives"""
        x = np.asarray(x, dtype=float)
        return np.array([o.fun(x) for o in self._objectives], dtype=float)

    def evaluate_batch(self, xs) -> np.ndarray:
        """Evaluate a batch of points on all objectives"""
        return np.array([self.evaluate(x) for x in xs])

    def objective_jacobian(self, x) -> np.ndarray:
        """Stacked objective gradients, shape (n_objectives, n_variables)"""
        x = np.asarray(x, dtype=float)
        return np.vstack([np.atleast_1d(o.jac(x)) for o in self._objectives])

    def constraint_violation(self, x) -> float:
        """Largest violation of bounds and constraints at x (0 when feasible)"""
        x = np.asarray(x, dtype=float)
        lower = self.variable_space.lower_bounds()
        upper = self.variable_space.upper_bounds()
        violation = max(0.0, float(np.max(lower - x, initial=0.0)),
                        float(np.max(x - upper, initial=0.0)))
        for c in self._constraints:
            values = np.atleast_1d(np.asarray(c.fun(x), dtype=float))
            if c.kind == 'eq':
                violation = max(violation, float(np.max(np.abs(values))))
            else:
                violation = max(violation, float(np.max(-values, initial=0.0)))
        return violation

    def check(self):
        """Fail fast on problems the engine cannot handle"""
        if self.n_objectives < 2:
            raise InvalidConfiguration(
                f"At least two objectives are required, got {self.n_objectives}")
        if self.n_variables < 1:
            raise InvalidConfiguration("Problem has no variables")
