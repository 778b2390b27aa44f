"""
Confidence Connected Region Growing
-----------------------------------
Seeded segmentation of scalar and multi-channel N-D images by iterative,
statistics driven connected-threshold growth.

Every pass estimates the mean and spread of the current region, admits the
voxels within ``multiplier`` standard deviations (or Mahalanobis radius for
multi-channel images), and floods again from the seeds through face-adjacent
admitted voxels.

Example:
    >>> import numpy as np
    >>> from confgrow import grow
    >>>
    >>> volume = np.full((10, 10, 10), 100.0)
    >>> volume[4:7, 4:7, 4:7] = 500.0
    >>>
    >>> mask = grow(volume, [(5, 5, 5)], number_of_iterations=1,
    ...             multiplier=2.5, initial_neighborhood_radius=1)
    >>> int(mask.sum())
    27
"""

from .core import (IterationResult, connected_threshold, grow, grow_iterations,
                   initial_neighborhood, process_image_file)
from .criteria import ScalarCriterion, VectorCriterion
from .errors import (EmptyRegionError, GrowCancelledError, InsufficientStatisticsError,
                     InvalidSeedError, RegionGrowError)
from .io import overlay_mask

__version__ = "0.1.0"
__all__ = [
    "grow",
    "grow_iterations",
    "initial_neighborhood",
    "connected_threshold",
    "process_image_file",
    "overlay_mask",
    "IterationResult",
    "ScalarCriterion",
    "VectorCriterion",
    "RegionGrowError",
    "InvalidSeedError",
    "InsufficientStatisticsError",
    "EmptyRegionError",
    "GrowCancelledError",
]
