#!/usr/bin/env python3
"""
Natural-parameter algebra over Gaussian beliefs.

multiply / divide add and subtract natural parameters; point_mass and
uniform build the two degenerate beliefs; to_moments converts back to
(mean, variance) or (mean, covariance). Division is where precision can go
non-positive, so it is the one place the divergence policy applies.
"""

import numpy as np
import structlog
from typing import Tuple, Union

from .beliefs import Gaussian, DiagonalGaussian, VectorGaussian
from .exceptions import DivergencePolicy, InferenceDivergence
from .utils.linear_algebra_utils import clamp_precision_matrix, min_eigenvalue

logger = structlog.get_logger(__name__)

Belief = Union[Gaussian, DiagonalGaussian, VectorGaussian]

DEFAULT_MIN_PRECISION = 1e-10


def point_mass(value) -> Belief:
    """Zero-variance belief at ``value`` (scalar or vector)."""
    if np.ndim(value) == 0:
        return Gaussian(np.inf, 0.0, float(value))
    value = np.asarray(value, dtype=float)
    dim = value.shape[0]
    return VectorGaussian(np.zeros((dim, dim)), np.zeros(dim), value.copy())


def diagonal_point_mass(value: np.ndarray) -> DiagonalGaussian:
    """Zero-variance diagonal belief at ``value``."""
    value = np.asarray(value, dtype=float)
    return DiagonalGaussian(np.zeros(value.shape[0]), np.zeros(value.shape[0]), value.copy())


def uniform(dim: int = 0, diagonal: bool = False) -> Belief:
    """Zero-precision belief; ``dim == 0`` gives a scalar."""
    if dim == 0:
        return Gaussian()
    if diagonal:
        return DiagonalGaussian(np.zeros(dim), np.zeros(dim))
    return VectorGaussian(np.zeros((dim, dim)), np.zeros(dim))


def standard_prior(dim: int, diagonal: bool = False, precision: float = 1.0) -> Belief:
    """Zero-mean prior with isotropic precision."""
    if diagonal:
        return DiagonalGaussian(np.full(dim, precision), np.zeros(dim))
    return VectorGaussian(precision * np.eye(dim), np.zeros(dim))


def is_uniform(belief: Belief) -> bool:
    if belief.is_point_mass:
        return False
    return not np.any(belief.precision) and not np.any(belief.information)


def to_moments(belief: Belief) -> Tuple:
    """Return (mean, variance) for scalars/diagonals, (mean, covariance) for full vectors."""
    if isinstance(belief, VectorGaussian):
        return belief.mean, belief.covariance
    return belief.mean, belief.variance


def _check_compatible(a: Belief, b: Belief):
    if type(a) is not type(b):
        raise TypeError(f"Cannot combine {type(a).__name__} with {type(b).__name__}")
    if not isinstance(a, Gaussian) and a.dim != b.dim:
        raise ValueError(f"Dimension mismatch: {a.dim} vs {b.dim}")


def multiply(a: Belief, b: Belief) -> Belief:
    """Product of two beliefs (sum of natural parameters)."""
    _check_compatible(a, b)
    if a.is_point_mass:
        return a.copy()
    if b.is_point_mass:
        return b.copy()
    if isinstance(a, Gaussian):
        return Gaussian(a.precision + b.precision, a.information + b.information)
    return type(a)(a.precision + b.precision, a.information + b.information)


def divide(
    a: Belief,
    b: Belief,
    policy: DivergencePolicy = DivergencePolicy.CLAMP,
    min_precision: float = DEFAULT_MIN_PRECISION
) -> Belief:
    """
    Quotient of two beliefs (difference of natural parameters).
    
    Division by a uniform belief is the identity and a point mass divided by
    an equal point mass is uniform. A quotient whose precision is not
    positive (semi-)definite is an InferenceDivergence: under CLAMP the
    precision is floored at ``min_precision`` keeping the mean, under RAISE
    the exception propagates.
    
    Args:
        a: Numerator belief
        b: Denominator belief
        policy: Divergence policy
        min_precision: Precision floor used by CLAMP
    
    Returns:
        The quotient belief
    """
    _check_compatible(a, b)
    if b.is_point_mass:
        if a.is_point_mass and np.allclose(a.point, b.point):
            return uniform(0 if isinstance(a, Gaussian) else a.dim,
                           diagonal=isinstance(a, DiagonalGaussian))
        raise InferenceDivergence("divide by point mass", -np.inf)
    if a.is_point_mass or is_uniform(b):
        return a.copy()

    precision = a.precision - b.precision
    information = a.information - b.information

    if isinstance(a, Gaussian):
        if precision < -min_precision or not np.isfinite(precision):
            _diverged("divide", precision, policy)
            mean = information / precision if np.isfinite(precision) else 0.0
            return Gaussian.from_mean_and_precision(mean, min_precision)
        if precision <= 0.0:
            return Gaussian()
        return Gaussian(precision, information)

    if isinstance(a, DiagonalGaussian):
        negative = precision < -min_precision
        if np.any(negative):
            _diverged("divide", float(precision.min()), policy)
            mean = information[negative] / precision[negative]
            precision[negative] = min_precision
            information[negative] = min_precision * mean
        # Round-off below the floor cancels to uniform
        vanishing = precision <= 0.0
        precision[vanishing] = 0.0
        information[vanishing] = 0.0
        return DiagonalGaussian(precision, information)

    smallest = min_eigenvalue(precision)
    if smallest < -min_precision:
        _diverged("divide", smallest, policy)
        precision, information = clamp_precision_matrix(precision, information, min_precision)
    return VectorGaussian(precision, information)


def _diverged(operation: str, precision: float, policy: DivergencePolicy):
    if DivergencePolicy(policy) is DivergencePolicy.RAISE:
        raise InferenceDivergence(operation, precision)
    logger.warning("Precision clamped", operation=operation, precision=precision)


def uniform_like(belief: Belief) -> Belief:
    """Zero-precision belief of the same kind and dimension as ``belief``."""
    if isinstance(belief, Gaussian):
        return Gaussian()
    return uniform(belief.dim, diagonal=isinstance(belief, DiagonalGaussian))
