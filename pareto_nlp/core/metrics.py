import numpy as np
from typing import Optional
import numpy.typing as npt
from pymoo.indicators.hv import HV


def normalize_front(objective_values: npt.NDArray, utopia: npt.ArrayLike,
                    nadir: npt.ArrayLike) -> npt.NDArray:
    """
    Map objective values so that the utopia point becomes 0 and the nadir
    point becomes 1 in every objective.

    :param objective_values: Array of shape (n_points, n_objectives)
    :return: Array of the same shape
    """
    utopia = np.asarray(utopia, dtype=float)
    nadir = np.asarray(nadir, dtype=float)
    scale = np.where(nadir - utopia > 0, nadir - utopia, 1.0)
    return (np.asarray(objective_values, dtype=float) - utopia) / scale


def calculate_hypervolume(points: npt.NDArray, reference_point: Optional[npt.ArrayLike] = None) -> float:
    """
    Hypervolume dominated by a set of points (minimization), any dimension.

    :param points: Array of shape (n_points, n_objectives)
    :param reference_point: Defaults to the component-wise maximum of the points
    :return: Hypervolume value
    """
    points = np.asarray(points, dtype=float)
    if points.size == 0:
        return 0.0
    points = points[np.all(np.isfinite(points), axis=1)]
    if len(points) == 0:
        return 0.0
    if reference_point is None:
        reference_point = points.max(axis=0)
    hv_calculator = HV(ref_point=np.asarray(reference_point, dtype=float))
    return float(hv_calculator.do(points))


def spacing(points: npt.NDArray) -> float:
    """
    Schott's spacing metric: standard deviation of the L1 distance from each
    point to its nearest neighbour. Zero for a perfectly even front.
    """
    points = np.asarray(points, dtype=float)
    if len(points) < 2:
        return 0.0
    distances = np.abs(points[:, None, :] - points[None, :, :]).sum(axis=2)
    np.fill_diagonal(distances, np.inf)
    nearest = distances.min(axis=1)
    return float(np.sqrt(np.sum((nearest - nearest.mean()) ** 2) / (len(points) - 1)))
