"""Unit tests for the scalar normal helpers."""

import math

import pytest

from bpm.utils.gaussian_utils import (
    ASYMPTOTIC_THRESHOLD,
    log_norm_cdf,
    norm_cdf,
    norm_pdf,
    truncated_moments,
    v_w_greater_than_zero,
)


class TestNormalFunctions:

    def test_pdf_and_cdf_at_zero(self):
        assert norm_pdf(0.0) == pytest.approx(1.0 / math.sqrt(2.0 * math.pi))
        assert norm_cdf(0.0) == pytest.approx(0.5)

    def test_cdf_symmetry(self):
        assert norm_cdf(1.3) + norm_cdf(-1.3) == pytest.approx(1.0)

    @pytest.mark.parametrize("x", [-5.0, -1.0, 0.0, 2.0])
    def test_log_cdf_matches_direct(self, x):
        assert log_norm_cdf(x) == pytest.approx(math.log(norm_cdf(x)))

    def test_log_cdf_continuous_at_threshold(self):
        inside = log_norm_cdf(ASYMPTOTIC_THRESHOLD + 1e-9)
        outside = log_norm_cdf(ASYMPTOTIC_THRESHOLD)
        assert inside == pytest.approx(outside, rel=1e-6)

    def test_log_cdf_finite_in_far_tail(self):
        value = log_norm_cdf(-200.0)
        assert math.isfinite(value)
        assert value < log_norm_cdf(-40.0)


class TestCorrectionFunctions:

    def test_v_w_at_zero(self):
        v, w = v_w_greater_than_zero(0.0)
        assert v == pytest.approx(2.0 * norm_pdf(0.0))
        assert w == pytest.approx(v * v)

    @pytest.mark.parametrize("t", [-50.0, -10.0, -1.0, 0.0, 1.0, 5.0])
    def test_w_in_unit_interval(self, t):
        v, w = v_w_greater_than_zero(t)
        assert v >= 0.0
        assert 0.0 <= w < 1.0

    def test_truncated_standard_normal(self):
        mean, variance = truncated_moments(0.0, 1.0)
        assert mean == pytest.approx(math.sqrt(2.0 / math.pi))
        assert variance == pytest.approx(1.0 - 2.0 / math.pi)
