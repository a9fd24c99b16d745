#!/usr/bin/env python3
"""
Scalar normal-distribution helpers: pdf, cdf and the truncated-Gaussian
correction functions used by the ranking constraint.

For a Gaussian difference d ~ N(mu, sigma^2) conditioned on d > 0, with
t = mu / sigma:
    E[d | d > 0]   = mu + sigma * V(t)
    Var[d | d > 0] = sigma^2 * (1 - W(t))
where V(t) = pdf(t) / cdf(t) and W(t) = V(t) * (V(t) + t).
"""

import math
from typing import Tuple

SQRT2 = math.sqrt(2.0)
SQRT2PI = math.sqrt(2.0 * math.pi)
LOG_SQRT2PI = 0.5 * math.log(2.0 * math.pi)
INV_SQRT2 = 1.0 / SQRT2

# Below this the cdf is evaluated through its asymptotic expansion
ASYMPTOTIC_THRESHOLD = -30.0


def norm_pdf(x: float) -> float:
    """Standard normal PDF."""
    return math.exp(-0.5 * x * x) / SQRT2PI


def norm_cdf(x: float) -> float:
    """Standard normal CDF using the complementary error function."""
    return 0.5 * math.erfc(-x * INV_SQRT2)


def log_norm_cdf(x: float) -> float:
    """Log of the standard normal CDF, accurate far into the left tail."""
    if x > ASYMPTOTIC_THRESHOLD:
        cdf = norm_cdf(x)
        if cdf > 0.0:
            return math.log(cdf)
    # Mills ratio: cdf(x) ~ pdf(x) / -x * (1 - 1/x^2 + 3/x^4)
    x2 = x * x
    series = 1.0 - 1.0 / x2 + 3.0 / (x2 * x2)
    return -0.5 * x2 - LOG_SQRT2PI - math.log(-x) + math.log(series)


def v_w_greater_than_zero(t: float) -> Tuple[float, float]:
    """
    Compute V and W for the constraint d > 0.

    - v = pdf(t) / cdf(t)
    - w = v * (v + t)
    """
    if t > ASYMPTOTIC_THRESHOLD:
        cdf_t = norm_cdf(t)
        if cdf_t > 1e-300:
            v = norm_pdf(t) / cdf_t
            return v, v * (v + t)
    # Far left tail: v -> -t - 1/t + 2/t^3, w -> 1 - 1/t^2 + 6/t^4
    t2 = t * t
    v = -t - 1.0 / t + 2.0 / (t2 * t)
    w = 1.0 - 1.0 / t2 + 6.0 / (t2 * t2)
    return v, w


def truncated_moments(mean: float, variance: float) -> Tuple[float, float]:
    """Mean and variance of N(mean, variance) truncated to the positive half-line."""
    sigma = math.sqrt(variance)
    v, w = v_w_greater_than_zero(mean / sigma)
    return mean + sigma * v, variance * (1.0 - w)
