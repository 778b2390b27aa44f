"""
Acceptance criteria derived from region statistics.

Scalar images use an intensity interval ``[mean - c*sigma, mean + c*sigma]``.
Multi-channel images use a Mahalanobis ellipsoid
``(x - mean)^T inv(cov) (x - mean) <= c^2``.

Criteria only describe the region statistics; keeping the seeds in the
region is up to the caller.
"""

from dataclasses import dataclass
from typing import Tuple, Union

import numpy as np

from .errors import InsufficientStatisticsError


@dataclass(frozen=True)
class ScalarCriterion:
    mean: float
    sigma: float
    lower: float
    upper: float

    def accepts(self, image: np.ndarray) -> np.ndarray:
        """Boolean mask of voxels whose intensity lies inside the interval."""
        return (image >= self.lower) & (image <= self.upper)


@dataclass(frozen=True, eq=False)
class VectorCriterion:
    mean: np.ndarray
    covariance: np.ndarray
    radius_squared: float

    def mahalanobis_squared(self, values: np.ndarray) -> np.ndarray:
        """
        Squared Mahalanobis distance of each vector to the region mean.

        ``values`` has shape (..., K); the result has shape (...).
        """
        k = self.mean.shape[0]
        diff = np.asarray(values, dtype=np.float64).reshape(-1, k) - self.mean
        solved = np.linalg.solve(self.covariance, diff.T).T
        d2 = np.einsum("ij,ij->i", diff, solved)
        return d2.reshape(np.shape(values)[:-1])

    def accepts(self, image: np.ndarray) -> np.ndarray:
        return self.mahalanobis_squared(image) <= self.radius_squared


Criterion = Union[ScalarCriterion, VectorCriterion]


def region_statistics(values: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
    """
    Mean and unbiased spread of the voxels currently in the region.

    Parameters:
    ----------
    values : np.ndarray
        Region intensities, shape (N,) for scalar images or (N, K) for
        K-channel images.

    Returns:
    -------
    tuple
        (mean, variance) for scalar input, (mean vector, K x K covariance)
        for vector input.
    """
    values = np.asarray(values, dtype=np.float64)
    n = values.shape[0]
    if n < 2:
        raise InsufficientStatisticsError(
            f"Region holds {n} voxel(s), at least 2 are needed to estimate a spread"
        )

    # A constant region has an exact mean and no spread, skip the rounding noise
    if np.all(values == values[0]):
        mean = values[0].copy()
        if values.ndim == 1:
            return mean, np.float64(0.0)
        k = values.shape[1]
        return mean, np.zeros((k, k), dtype=np.float64)

    mean = values.mean(axis=0)
    if values.ndim == 1:
        return mean, values.var(ddof=1)
    return mean, np.atleast_2d(np.cov(values, rowvar=False, ddof=1))


def scalar_criterion(values: np.ndarray, multiplier: float) -> ScalarCriterion:
    """Intensity interval of half-width ``multiplier * sigma`` around the region mean."""
    mean, variance = region_statistics(values)
    sigma = float(np.sqrt(variance))
    lower = float(mean) - multiplier * sigma
    upper = float(mean) + multiplier * sigma
    return ScalarCriterion(mean=float(mean), sigma=sigma, lower=lower, upper=upper)


def _ridge(values: np.ndarray) -> float:
    scale = float(np.max(np.abs(values)))
    if scale == 0.0:
        scale = 1.0
    return (scale * 1e-6) ** 2


def vector_criterion(values: np.ndarray, multiplier: float) -> VectorCriterion:
    """Mahalanobis ellipsoid of radius ``multiplier`` around the region mean."""
    values = np.asarray(values, dtype=np.float64)
    mean, covariance = region_statistics(values)
    k = mean.shape[0]

    # Singular covariance (flat channel, constant region): regularize so the
    # solve stays defined and zero-spread directions only admit exact matches
    try:
        np.linalg.cholesky(covariance)
    except np.linalg.LinAlgError:
        covariance = covariance + _ridge(values) * np.eye(k)

    return VectorCriterion(mean=mean, covariance=covariance,
                           radius_squared=float(multiplier) ** 2)
