"""
Plain-text persistence of Pareto fronts and initial guesses.

Layout: one point per line, whitespace separated floating point fields in
objective/variable declaration order, no header row.
"""

import os
from typing import Union
import numpy as np

from pareto_nlp.core.results import ParetoFront

COLUMNS = ('objectives', 'variables', 'both')


def front_matrix(front: ParetoFront, columns: str = 'objectives') -> np.ndarray:
    """Rows of the persisted layout for a front"""
    if columns not in COLUMNS:
        raise ValueError(f"columns must be one of {COLUMNS}, got {columns!r}")
    if len(front) == 0:
        return np.empty((0, 0))
    if columns == 'objectives':
        return front.objective_matrix()
    if columns == 'variables':
        return front.variable_matrix()
    return np.hstack([front.variable_matrix(), front.objective_matrix()])


def write_matrix(path: Union[str, os.PathLike], matrix) -> None:
    matrix = np.atleast_2d(np.asarray(matrix, dtype=float))
    with open(path, 'w') as handle:
        if matrix.size:
            np.savetxt(handle, matrix, fmt='%.17g', delimiter=' ')


def write_front(path: Union[str, os.PathLike], front: ParetoFront,
                columns: str = 'objectives') -> None:
    """Write a front; `columns` selects objectives, variables or both (variables first)"""
    write_matrix(path, front_matrix(front, columns))


def read_front(path: Union[str, os.PathLike]) -> np.ndarray:
    """Read a persisted front back as an (n_points, n_fields) array"""
    data = np.loadtxt(path, dtype=float, ndmin=2)
    return data


def read_initial_guess(path: Union[str, os.PathLike]) -> np.ndarray:
    """Read a single point (first line) to be used as initial guess"""
    data = read_front(path)
    if data.shape[0] == 0:
        raise ValueError(f"No initial guess found in {path}")
    return data[0]
