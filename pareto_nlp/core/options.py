from enum import Enum
from typing import Any, Dict
import json
import numbers

from pareto_nlp.core.exceptions import InvalidConfiguration


class ScalarizationMethod(Enum):
    WS = 'WS'
    NBI = 'NBI'
    NNC = 'NNC'

    @classmethod
    def parse(cls, value) -> 'ScalarizationMethod':
        if isinstance(value, cls):
            return value
        aliases = {
            'WEIGHTED_SUM': 'WS',
            'NORMAL_BOUNDARY_INTERSECTION': 'NBI',
            'NORMALIZED_NORMAL_CONSTRAINT': 'NNC',
        }
        key = str(value).strip().upper().replace('-', '_')
        key = aliases.get(key, key)
        try:
            return cls(key)
        except ValueError:
            raise InvalidConfiguration(f"Unknown scalarization method: {value}") from None


# CamelCase option name -> attribute name
OPTION_NAMES = {
    'ScalarizationMethod': 'scalarization_method',
    'Discretization': 'discretization',
    'ConvergenceTolerance': 'convergence_tolerance',
    'HotStart': 'hot_start',
    'MaxIterations': 'max_iterations',
    'Workers': 'workers',
    'FilterAbsTolerance': 'filter_abs_tolerance',
    'FilterRelTolerance': 'filter_rel_tolerance',
    'FilterUnconverged': 'filter_unconverged',
    'AnchorRefinement': 'anchor_refinement',
    'AnchorMultiStart': 'anchor_multistart',
    'NNCObjective': 'nnc_objective',
    'Verbose': 'verbose',
}


class ParetoOptions:
    """Configuration of a Pareto front generation run"""

    def __init__(self,
                 scalarization_method='NBI',
                 discretization: int = 11,
                 convergence_tolerance: float = 1e-8,
                 hot_start: bool = True,
                 max_iterations: int = 500,
                 workers: int = 1,
                 filter_abs_tolerance: float = 1e-9,
                 filter_rel_tolerance: float = 1e-6,
                 filter_unconverged: bool = True,
                 anchor_refinement: bool = True,
                 anchor_multistart: bool = True,
                 nnc_objective: int = -1,
                 verbose: bool = False):
        """
        Args:
            scalarization_method: WS, NBI or NNC
            discretization: Points per simplex edge (np >= 2)
            convergence_tolerance: Tolerance passed to the NLP solver
            hot_start: Seed each subproblem with its predecessor's solution
            max_iterations: Iteration budget of a single NLP solve
            workers: Threads used for anchors and independent chains
            filter_abs_tolerance: Absolute tolerance of the dominance test
            filter_rel_tolerance: Relative tolerance of the dominance test
            filter_unconverged: Drop non-converged points before filtering
            anchor_refinement: Lexicographic second pass on every anchor
            anchor_multistart: Repeat anchor solves from the box corners, keep the best
            nnc_objective: Objective minimized directly by NNC (-1 = last)
            verbose: Print progress messages
        """
        self.scalarization_method = scalarization_method
        self.discretization = discretization
        self.convergence_tolerance = convergence_tolerance
        self.hot_start = hot_start
        self.max_iterations = max_iterations
        self.workers = workers
        self.filter_abs_tolerance = filter_abs_tolerance
        self.filter_rel_tolerance = filter_rel_tolerance
        self.filter_unconverged = filter_unconverged
        self.anchor_refinement = anchor_refinement
        self.anchor_multistart = anchor_multistart
        self.nnc_objective = nnc_objective
        self.verbose = verbose

    @property
    def method(self) -> ScalarizationMethod:
        return ScalarizationMethod.parse(self.scalarization_method)

    def set_option(self, name: str, value: Any):
        """Set an option by its CamelCase or snake_case name"""
        attr = OPTION_NAMES.get(name, name)
        if attr not in OPTION_NAMES.values():
            raise InvalidConfiguration(f"Unknown option: {name}")
        setattr(self, attr, value)
        return self

    def get_option(self, name: str) -> Any:
        attr = OPTION_NAMES.get(name, name)
        if attr not in OPTION_NAMES.values():
            raise InvalidConfiguration(f"Unknown option: {name}")
        return getattr(self, attr)

    def validate(self, n_objectives: int = None):
        """Raise InvalidConfiguration for any unusable option value"""
        method = self.method

        if (isinstance(self.discretization, bool)
                or not isinstance(self.discretization, numbers.Integral)):
            raise InvalidConfiguration(
                f"Discretization must be an integer, got {self.discretization!r}")
        if self.discretization < 2:
            raise InvalidConfiguration(
                f"Discretization must be at least 2, got {self.discretization}")

        if (not isinstance(self.convergence_tolerance, numbers.Real)
                or not self.convergence_tolerance > 0):
            raise InvalidConfiguration(
                f"ConvergenceTolerance must be positive, got {self.convergence_tolerance!r}")

        if not isinstance(self.max_iterations, numbers.Integral) or self.max_iterations < 1:
            raise InvalidConfiguration(
                f"MaxIterations must be a positive integer, got {self.max_iterations!r}")
        if not isinstance(self.workers, numbers.Integral) or self.workers < 1:
            raise InvalidConfiguration(
                f"Workers must be a positive integer, got {self.workers!r}")

        for name in ('filter_abs_tolerance', 'filter_rel_tolerance'):
            value = getattr(self, name)
            if not isinstance(value, numbers.Real) or value < 0:
                raise InvalidConfiguration(f"{name} must be non-negative, got {value!r}")

        for name in ('hot_start', 'filter_unconverged', 'anchor_refinement', 'anchor_multistart',
                     'verbose'):
            if not isinstance(getattr(self, name), bool):
                raise InvalidConfiguration(f"{name} must be a boolean")

        if isinstance(self.nnc_objective, bool) or not isinstance(self.nnc_objective, numbers.Integral):
            raise InvalidConfiguration(
                f"NNCObjective must be an integer, got {self.nnc_objective!r}")

        if n_objectives is not None:
            if n_objectives < 2:
                raise InvalidConfiguration(
                    f"At least two objectives are required, got {n_objectives}")
            if method == ScalarizationMethod.NNC and not -n_objectives <= self.nnc_objective < n_objectives:
                raise InvalidConfiguration(
                    f"NNCObjective {self.nnc_objective} out of range for {n_objectives} objectives")
        return self

    def to_dict(self) -> Dict:
        result = {camel: getattr(self, attr) for camel, attr in OPTION_NAMES.items()}
        result['ScalarizationMethod'] = self.method.value
        return result

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, config: Dict) -> 'ParetoOptions':
        options = cls()
        for name, value in config.items():
            options.set_option(name, value)
        return options

    @classmethod
    def from_json(cls, json_str: str) -> 'ParetoOptions':
        return cls.from_dict(json.loads(json_str))

    def __repr__(self):
        items = ', '.join(f"{k}={v!r}" for k, v in self.to_dict().items())
        return f"ParetoOptions({items})"
