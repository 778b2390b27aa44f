"""
Face-connected flood fill over N-D boolean acceptance masks.

The traversal is breadth first and runs one wavefront level at a time on
flat indices. The admission test is a precomputed per-voxel mask, so the
resulting region does not depend on the order in which voxels are visited.
"""

import logging
from typing import Callable, List, Optional, Sequence, Tuple

import numpy as np

from .errors import GrowCancelledError

logger = logging.getLogger(__name__)


def _flat_strides(shape: Tuple[int, ...]) -> List[int]:
    # element strides of a C-ordered array
    return [int(np.prod(shape[axis + 1:], dtype=np.int64)) for axis in range(len(shape))]


def face_neighbors(indices: np.ndarray, shape: Tuple[int, ...]) -> np.ndarray:
    """
    Face-adjacent neighbors of a batch of voxels.

    Parameters:
    ----------
    indices : np.ndarray
        Flat (C order) voxel indices.
    shape : tuple of int
        Image shape the indices refer to.

    Returns:
    -------
    np.ndarray
        Flat indices of every in-bounds neighbor sharing a face with one of
        the input voxels (2 per axis at most). Duplicates are kept.
    """
    indices = np.asarray(indices, dtype=np.intp)
    if indices.size == 0:
        return indices
    coords = np.unravel_index(indices, shape)
    found = []
    for axis, stride in enumerate(_flat_strides(tuple(shape))):
        c = coords[axis]
        found.append(indices[c > 0] - stride)
        found.append(indices[c < shape[axis] - 1] + stride)
    return np.concatenate(found)


def flood_fill(accepted: np.ndarray,
               seeds: Sequence[Sequence[int]],
               should_cancel: Optional[Callable[[], bool]] = None) -> np.ndarray:
    """
    Grow from the seeds through face-connected voxels of ``accepted``.

    Parameters:
    ----------
    accepted : np.ndarray
        Boolean mask, True where a voxel passes the admission test.
    seeds : sequence of coordinate tuples
        Start points, one integer per axis of ``accepted``. Seeds lying on a
        rejected voxel do not start a fill.
    should_cancel : callable, optional
        Polled between wavefront levels; returning True aborts the fill
        with GrowCancelledError.

    Returns:
    -------
    np.ndarray
        Boolean mask of the admitted voxels, same shape as ``accepted``.
    """
    accepted = np.asarray(accepted, dtype=bool)
    shape = accepted.shape
    flat_accepted = accepted.ravel()
    visited = np.zeros(accepted.size, dtype=bool)

    seeds = np.asarray(seeds, dtype=np.intp).reshape(-1, accepted.ndim)
    seed_idx = np.ravel_multi_index(tuple(seeds.T), shape)
    frontier = np.unique(seed_idx[flat_accepted[seed_idx]])
    visited[frontier] = True

    levels = 0
    while frontier.size:
        if should_cancel is not None and should_cancel():
            raise GrowCancelledError(f"Flood fill cancelled after {levels} level(s)")
        candidates = face_neighbors(frontier, shape)
        candidates = candidates[flat_accepted[candidates] & ~visited[candidates]]
        frontier = np.unique(candidates)
        visited[frontier] = True
        levels += 1

    logger.debug(f"flood fill: {levels} levels, {int(visited.sum())} voxels admitted")
    return visited.reshape(shape)
