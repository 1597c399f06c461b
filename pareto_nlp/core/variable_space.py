from typing import Dict, List, Optional, Tuple
import json
import math

import numpy as np

from pareto_nlp.core.exceptions import InvalidConfiguration


class VariableSpace:
    """Ordered set of real decision variables with optional bounds"""

    def __init__(self):
        self.variables = {}

    def add_variable(self, name: str, lower_bound: float = -math.inf,
                     upper_bound: float = math.inf):
        """Add a real variable; omitted bounds default to -inf/+inf"""
        if name in self.variables:
            raise InvalidConfiguration(f"Variable '{name}' is already defined")
        lower = -math.inf if lower_bound is None else float(lower_bound)
        upper = math.inf if upper_bound is None else float(upper_bound)
        if lower > upper:
            raise InvalidConfiguration(
                f"Variable '{name}' has lower bound {lower} above upper bound {upper}")
        self.variables[name] = {
            'bounds': [lower, upper]
        }
        return self

    @property
    def names(self) -> List[str]:
        return list(self.variables.keys())

    @property
    def size(self) -> int:
        return len(self.variables)

    def lower_bounds(self) -> np.ndarray:
        return np.array([v['bounds'][0] for v in self.variables.values()], dtype=float)

    def upper_bounds(self) -> np.ndarray:
        return np.array([v['bounds'][1] for v in self.variables.values()], dtype=float)

    def bounds(self) -> List[Tuple[Optional[float], Optional[float]]]:
        """Bounds as (lower, upper) pairs with None for infinite sides"""
        result = []
        for v in self.variables.values():
            lower, upper = v['bounds']
            result.append((lower if math.isfinite(lower) else None,
                           upper if math.isfinite(upper) else None))
        return result

    def default_point(self) -> np.ndarray:
        """
        Point used when no initial guess is given: the midpoint of each
        finite interval, zero clipped into one-sided intervals.
        """
        lower = self.lower_bounds()
        upper = self.upper_bounds()
        point = np.zeros(self.size)
        both = np.isfinite(lower) & np.isfinite(upper)
        point[both] = 0.5 * (lower[both] + upper[both])
        point[~both] = np.clip(point[~both], lower[~both], upper[~both])
        return point

    def clip(self, x) -> np.ndarray:
        return np.clip(np.asarray(x, dtype=float), self.lower_bounds(), self.upper_bounds())

    def to_dict(self) -> Dict:
        """Convert variable space to dictionary (infinite bounds become None)"""
        return {
            'variables': {
                name: {'bounds': [b if math.isfinite(b) else None for b in v['bounds']]}
                for name, v in self.variables.items()
            }
        }

    def to_json(self) -> str:
        return json.dumps(self.to_dict(), indent=2)

    @classmethod
    def from_dict(cls, config: Dict) -> 'VariableSpace':
        """Create variable space from dictionary"""
        space = cls()
        for name, v in config['variables'].items():
            lower, upper = v.get('bounds', [None, None])
            space.add_variable(name, lower, upper)
        return space

    @classmethod
    def from_json(cls, json_str: str) -> 'VariableSpace':
        return cls.from_dict(json.loads(json_str))
