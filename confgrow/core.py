"""
Core functionality for confidence connected region growing.
"""

import logging
from typing import Callable, Iterator, NamedTuple, Optional, Sequence

import numpy as np

from .criteria import Criterion, ScalarCriterion, scalar_criterion, vector_criterion
from .errors import EmptyRegionError, GrowCancelledError, InvalidSeedError
from .flood import flood_fill
from .io import load_image

logger = logging.getLogger(__name__)

DEFAULT_ITERATIONS = 4
DEFAULT_MULTIPLIER = 2.5
DEFAULT_RADIUS = 1
DEFAULT_REPLACE_VALUE = 1


class IterationResult(NamedTuple):
    """Region snapshot after one pass. Iteration 0 is the initial neighborhood."""
    iteration: int
    criterion: Optional[Criterion]
    region: np.ndarray


def _spatial_values(image: np.ndarray, channel_axis: Optional[int]) -> np.ndarray:
    image = np.asarray(image)
    if image.size == 0:
        raise ValueError(f"Image must not be empty, got shape {image.shape}")
    if channel_axis is None:
        return image.astype(np.float64, copy=False)
    if image.ndim < 2:
        raise ValueError(f"A multi-channel image needs a spatial axis besides the channel axis, got shape {image.shape}")
    return np.moveaxis(image, channel_axis, -1).astype(np.float64, copy=False)


def _validate_seeds(seeds, shape: tuple) -> np.ndarray:
    """Return seeds as an (S, ndim) integer array, or raise InvalidSeedError."""
    if seeds is None:
        raise InvalidSeedError("At least one seed is required")
    try:
        arr = np.asarray(seeds)
    except ValueError as e:
        raise InvalidSeedError(f"Seeds must be coordinate tuples of equal length: {e}") from e

    ndim = len(shape)
    if arr.size == 0:
        raise InvalidSeedError("At least one seed is required")
    if not np.issubdtype(arr.dtype, np.integer):
        raise InvalidSeedError(f"Seed coordinates must be integers, got dtype {arr.dtype}")

    # A lone coordinate tuple is accepted as a single seed
    if arr.ndim == 1:
        arr = arr.reshape(1, ndim) if ndim > 1 and arr.size == ndim else arr.reshape(-1, 1)
    if arr.ndim != 2 or arr.shape[1] != ndim:
        raise InvalidSeedError(f"Each seed needs {ndim} coordinates for an image of shape {shape}")

    outside = np.any((arr < 0) | (arr >= np.asarray(shape)), axis=1)
    if outside.any():
        bad = tuple(int(c) for c in arr[np.argmax(outside)])
        raise InvalidSeedError(f"Seed {bad} lies outside image of shape {shape}")
    return arr.astype(np.intp)


def _label_dtype(replace_value) -> np.dtype:
    if isinstance(replace_value, bool) or not isinstance(replace_value, (int, np.integer)):
        raise ValueError(f"replace_value must be an integer, got {replace_value!r}")
    if replace_value == 0:
        raise ValueError("replace_value must differ from the background label 0")
    return np.min_scalar_type(int(replace_value))


def _check_cancel(should_cancel: Optional[Callable[[], bool]], iteration: int) -> None:
    if should_cancel is not None and should_cancel():
        raise GrowCancelledError(f"Region growing cancelled before iteration {iteration}")


def _describe(criterion: Criterion) -> str:
    if isinstance(criterion, ScalarCriterion):
        return (f"mean {criterion.mean:.4g}, sigma {criterion.sigma:.4g}, "
                f"interval [{criterion.lower:.4g}, {criterion.upper:.4g}]")
    return f"mean {np.round(criterion.mean, 4).tolist()}, radius^2 {criterion.radius_squared:.4g}"


def initial_neighborhood(shape: Sequence[int], seeds, radius: int) -> np.ndarray:
    """
    Boolean mask of every voxel within Chebyshev distance ``radius`` of a seed.

    The neighborhood of a seed is the box of side ``2 * radius + 1`` centered
    on it, clipped to the image bounds.
    """
    shape = tuple(int(s) for s in shape)
    if radius < 0:
        raise ValueError(f"Neighborhood radius must be non-negative, got {radius}")
    seeds = _validate_seeds(seeds, shape)

    region = np.zeros(shape, dtype=bool)
    for seed in seeds:
        window = tuple(slice(max(c - radius, 0), min(c + radius + 1, size))
                       for c, size in zip(seed, shape))
        region[window] = True
    return region


def grow_iterations(image: np.ndarray,
                    seeds,
                    number_of_iterations: int = DEFAULT_ITERATIONS,
                    multiplier: float = DEFAULT_MULTIPLIER,
                    initial_neighborhood_radius: int = DEFAULT_RADIUS,
                    channel_axis: Optional[int] = None,
                    should_cancel: Optional[Callable[[], bool]] = None) -> Iterator[IterationResult]:
    """
    Run confidence connected growth and yield the region after every pass.

    Inputs are validated immediately. The returned iterator first yields the
    initial neighborhood (iteration 0, no criterion), then one
    IterationResult per pass. Every pass recomputes the statistics over the
    previous region and floods again from the original seeds, so voxels
    admitted earlier can drop out later. Seeds are admitted on every pass
    whatever their intensity. Yielded regions are read-only snapshots.

    Parameters are the same as for ``grow``.
    """
    values = _spatial_values(image, channel_axis)
    spatial_shape = values.shape if channel_axis is None else values.shape[:-1]

    if isinstance(number_of_iterations, bool) or int(number_of_iterations) != number_of_iterations \
            or number_of_iterations < 0:
        raise ValueError(f"number_of_iterations must be a non-negative integer, got {number_of_iterations!r}")
    if not np.isfinite(multiplier) or multiplier < 0:
        raise ValueError(f"multiplier must be a non-negative finite number, got {multiplier!r}")
    if int(initial_neighborhood_radius) != initial_neighborhood_radius:
        raise ValueError(f"initial_neighborhood_radius must be an integer, got {initial_neighborhood_radius!r}")

    seeds = _validate_seeds(seeds, spatial_shape)
    region = initial_neighborhood(spatial_shape, seeds, int(initial_neighborhood_radius))
    build = scalar_criterion if channel_axis is None else vector_criterion

    return _iterate(values, seeds, int(number_of_iterations), float(multiplier),
                    region, build, should_cancel)


def _iterate(values, seeds, number_of_iterations, multiplier, region, build, should_cancel):
    seed_index = tuple(seeds.T)
    region.flags.writeable = False
    yield IterationResult(0, None, region)

    for iteration in range(1, number_of_iterations + 1):
        _check_cancel(should_cancel, iteration)
        criterion = build(values[region], multiplier)
        accepted = criterion.accepts(values)
        accepted[seed_index] = True

        region = flood_fill(accepted, seeds, should_cancel)
        if not region.any():
            raise EmptyRegionError(f"Flood fill admitted no voxel at iteration {iteration}")

        logger.debug(f"iteration {iteration}: {_describe(criterion)}, voxels {int(region.sum())}")
        region.flags.writeable = False
        yield IterationResult(iteration, criterion, region)


def grow(image: np.ndarray,
         seeds,
         number_of_iterations: int = DEFAULT_ITERATIONS,
         multiplier: float = DEFAULT_MULTIPLIER,
         initial_neighborhood_radius: int = DEFAULT_RADIUS,
         replace_value: int = DEFAULT_REPLACE_VALUE,
         channel_axis: Optional[int] = None,
         stop_on_convergence: bool = False,
         should_cancel: Optional[Callable[[], bool]] = None) -> np.ndarray:
    """
    Segment the region connected to the seeds with confidence connected growth.

    Parameters:
    ----------
    image : np.ndarray
        N-D scalar image, or multi-channel image when ``channel_axis`` is set.
        Never modified.

    seeds : sequence of coordinate tuples
        Integer voxel coordinates in numpy index order, e.g. [(z, y, x)].
        A single tuple is accepted for one seed.

    number_of_iterations : int, optional
        Passes of statistics estimation and re-flooding. 0 returns the
        initial neighborhood. Default: 4

    multiplier : float, optional
        Width of the acceptance interval in standard deviations (scalar) or
        Mahalanobis radius (multi-channel). Default: 2.5

    initial_neighborhood_radius : int, optional
        Chebyshev radius of the box around each seed that forms the initial
        region. Default: 1

    replace_value : int, optional
        Label written to foreground voxels. Default: 1

    channel_axis : int, optional
        Axis holding the channels of a multi-channel image. Default: None

    stop_on_convergence : bool, optional
        Stop early once a pass leaves the region unchanged. Default: False

    should_cancel : callable, optional
        Polled between passes and between flood fill levels; returning True
        raises GrowCancelledError.

    Returns:
    -------
    np.ndarray
        Mask with the spatial shape of ``image``, ``replace_value`` on the
        region and 0 elsewhere. dtype is the smallest integer type holding
        ``replace_value``.

    Raises:
    ------
    InvalidSeedError
        A seed is malformed or out of bounds.
    InsufficientStatisticsError
        A pass needs statistics of a region smaller than 2 voxels.
    EmptyRegionError
        A flood fill admitted nothing.
    """
    dtype = _label_dtype(replace_value)
    passes = grow_iterations(image, seeds, number_of_iterations, multiplier,
                             initial_neighborhood_radius, channel_axis, should_cancel)

    previous = None
    for result in passes:
        if stop_on_convergence and previous is not None and np.array_equal(previous, result.region):
            logger.debug(f"converged after {result.iteration} iteration(s)")
            break
        previous = result.region

    mask = np.zeros(previous.shape, dtype=dtype)
    mask[previous] = replace_value
    return mask


def connected_threshold(image: np.ndarray, seeds, lower: float, upper: float,
                        replace_value: int = DEFAULT_REPLACE_VALUE) -> np.ndarray:
    """
    Flood fill from the seeds through voxels with ``lower <= v <= upper``.

    Seeds outside the interval do not start a fill, so the result may be empty.
    """
    dtype = _label_dtype(replace_value)
    if lower > upper:
        raise ValueError(f"lower ({lower}) must not exceed upper ({upper})")
    values = _spatial_values(image, None)
    seeds = _validate_seeds(seeds, values.shape)

    region = flood_fill((values >= lower) & (values <= upper), seeds)
    mask = np.zeros(values.shape, dtype=dtype)
    mask[region] = replace_value
    return mask


def process_image_file(image_path: str, seeds, rgb: bool = False, **grow_kwargs) -> np.ndarray:
    """
    Load an image file and segment it with confidence connected growth.

    Parameters:
    ----------
    image_path : str
        Path to a 2-D image readable by Pillow, or a ``.npy`` array

    seeds : sequence of coordinate tuples
        Seed voxels in numpy index order

    rgb : bool, optional
        Load the image as RGB and grow with the three channels
        Default: False

    Returns:
    -------
    np.ndarray
        Mask from ``grow``
    """
    image = load_image(image_path, rgb=rgb)
    if rgb:
        grow_kwargs.setdefault("channel_axis", -1)
    return grow(image, seeds, **grow_kwargs)
