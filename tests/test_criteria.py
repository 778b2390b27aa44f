"""Tests for region statistics and acceptance criteria."""

import numpy as np
import pytest

from confgrow.criteria import (
    ScalarCriterion,
    VectorCriterion,
    region_statistics,
    scalar_criterion,
    vector_criterion,
)
from confgrow.errors import InsufficientStatisticsError


class TestRegionStatistics:
    def test_unbiased_variance(self):
        mean, variance = region_statistics(np.array([1.0, 2.0, 3.0, 4.0]))
        assert mean == pytest.approx(2.5)
        assert variance == pytest.approx(5.0 / 3.0)

    def test_constant_region_is_exact(self):
        mean, variance = region_statistics(np.full(7, 0.1))
        assert mean == 0.1
        assert variance == 0.0

    @pytest.mark.parametrize("values", [np.array([]), np.array([3.0]), np.ones((1, 2))])
    def test_needs_two_voxels(self, values):
        with pytest.raises(InsufficientStatisticsError):
            region_statistics(values)

    def test_vector_covariance(self):
        values = np.array([[0.0, 0.0], [2.0, 2.0], [4.0, 4.0]])
        mean, cov = region_statistics(values)
        assert np.allclose(mean, [2.0, 2.0])
        assert np.allclose(cov, [[4.0, 4.0], [4.0, 4.0]])

    def test_single_channel_covariance_is_matrix(self):
        mean, cov = region_statistics(np.array([[1.0], [3.0]]))
        assert cov.shape == (1, 1)
        assert cov[0, 0] == pytest.approx(2.0)


class TestScalarCriterion:
    def test_interval(self):
        values = np.array([8.0, 10.0, 12.0])
        criterion = scalar_criterion(values, 2.0)

        assert criterion.mean == pytest.approx(10.0)
        assert criterion.sigma == pytest.approx(2.0)
        assert criterion.lower == pytest.approx(6.0)
        assert criterion.upper == pytest.approx(14.0)

    def test_accepts_closed_interval(self):
        criterion = ScalarCriterion(mean=5.0, sigma=1.0, lower=4.0, upper=6.0)
        accepted = criterion.accepts(np.array([3.9, 4.0, 5.0, 6.0, 6.1]))
        assert accepted.tolist() == [False, True, True, True, False]

    def test_zero_multiplier_is_the_mean_alone(self):
        values = np.array([8.0, 10.0, 12.0])
        criterion = scalar_criterion(values, 0.0)

        assert criterion.lower == criterion.upper == 10.0
        assert criterion.accepts(values).tolist() == [False, True, False]

    def test_zero_multiplier_keeps_mean(self):
        criterion = scalar_criterion(np.array([1.0, 3.0]), 0.0)
        assert criterion.lower == criterion.upper == 2.0


class TestVectorCriterion:
    def test_mahalanobis_with_identity(self):
        criterion = VectorCriterion(mean=np.zeros(2), covariance=np.eye(2), radius_squared=4.0)
        d2 = criterion.mahalanobis_squared(np.array([[1.0, 1.0], [3.0, 0.0]]))
        assert np.allclose(d2, [2.0, 9.0])
        assert criterion.accepts(np.array([[1.0, 1.0], [3.0, 0.0]])).tolist() == [True, False]

    def test_keeps_spatial_shape(self):
        criterion = VectorCriterion(mean=np.zeros(3), covariance=np.eye(3), radius_squared=1.0)
        assert criterion.accepts(np.zeros((4, 5, 6, 3))).shape == (4, 5, 6)

    def test_scaled_axes(self):
        rng = np.random.default_rng(0)
        values = rng.normal(0.0, [1.0, 10.0], size=(5000, 2))
        criterion = vector_criterion(values, 2.0)

        # a step of 5 is far along the narrow axis, close along the wide one
        d2 = criterion.mahalanobis_squared(np.array([[5.0, 0.0], [0.0, 5.0]]))
        assert d2[0] > criterion.radius_squared
        assert d2[1] < criterion.radius_squared

    def test_singular_covariance_is_regularized(self):
        values = np.array([[0.0, 7.0], [1.0, 7.0], [2.0, 7.0]])
        criterion = vector_criterion(values, 2.5)

        accepted = criterion.accepts(np.array([[1.0, 7.0], [1.0, 7.5]]))
        assert accepted.tolist() == [True, False]

    def test_far_vector_is_rejected(self):
        values = np.array([[0.0, 0.0], [1.0, 1.0], [0.0, 1.0], [1.0, 0.0]])
        far = np.array([[10.0, -10.0]])
        criterion = vector_criterion(values, 1.0)

        assert criterion.radius_squared == pytest.approx(1.0)
        assert not criterion.accepts(far).any()

    def test_radius_is_multiplier_squared(self):
        values = np.array([[0.0, 0.0], [1.0, 1.0], [0.0, 1.0], [1.0, 0.0]])
        criterion = vector_criterion(values, 3.0)
        assert criterion.radius_squared == pytest.approx(9.0)
