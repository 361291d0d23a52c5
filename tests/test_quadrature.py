"""Gauss-Legendre rules on [-1,1] and the reference square."""

import numpy as np
import pytest

from felab.quadrature import QuadratureRule


class TestQuadratureRule:
    """1D and tensor-product Gauss rules."""

    def test_zero_points_raises(self):
        with pytest.raises(ValueError):
            QuadratureRule(0)

    def test_weights_sum_to_interval_length(self):
        rule = QuadratureRule(4)
        assert np.isclose(rule.weights.sum(), 2.0)
        assert len(rule.points) == 4

    def test_exact_for_degree_2n_minus_1(self):
        """Three points integrate x^5 - 2x^4 + x^2 exactly on [-1,1]."""
        rule = QuadratureRule(3)
        x = rule.points
        result = np.sum(rule.weights * (x**5 - 2.0 * x**4 + x**2))
        assert result == pytest.approx(-4.0 / 5.0 + 2.0 / 3.0)

    def test_tensor_points_order(self):
        """xi runs fastest in the flattened tensor rule."""
        rule = QuadratureRule(2)
        xi, eta, w = rule.tensor_points()
        assert np.allclose(xi, np.tile(rule.points, 2))
        assert np.allclose(eta, np.repeat(rule.points, 2))
        assert np.isclose(w.sum(), 4.0)

    def test_tensor_rule_integrates_product(self):
        xi, eta, w = QuadratureRule(2).tensor_points()
        assert np.sum(w * xi**2 * eta**2) == pytest.approx(4.0 / 9.0)
