"""
Exceptions raised by the region growing engine.
"""


class RegionGrowError(Exception):
    """Base class for every error raised while growing a region."""


class InvalidSeedError(RegionGrowError, ValueError):
    """A seed is missing, malformed, or outside the image bounds."""


class InsufficientStatisticsError(RegionGrowError, ArithmeticError):
    """The region holds too few voxels to estimate a spread."""


class EmptyRegionError(RegionGrowError, RuntimeError):
    """A flood fill admitted no voxel at all."""


class GrowCancelledError(RegionGrowError):
    """Raised when the caller's cancellation hook asks to stop."""
