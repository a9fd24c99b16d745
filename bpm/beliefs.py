#!/usr/bin/env python3
"""
Belief data structures for the Bayes Point Machine.

All Gaussian beliefs are held in natural-parameter form (precision and
information = precision * mean) so that products and quotients reduce to
addition and subtraction. A point mass is flagged explicitly and carries
its location in ``point``.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Optional, Tuple

from .utils.linear_algebra_utils import rank_one_precision, safe_inverse, safe_precision_to_mean


@dataclass
class Gaussian:
    """Scalar Gaussian belief (used for scores and per-item messages)."""
    precision: float = 0.0
    information: float = 0.0
    point: Optional[float] = None

    @classmethod
    def from_mean_and_variance(cls, mean: float, variance: float) -> "Gaussian":
        if variance == 0.0:
            return cls(np.inf, 0.0, float(mean))
        if np.isinf(variance):
            return cls()
        precision = 1.0 / variance
        return cls(precision, precision * mean)

    @classmethod
    def from_mean_and_precision(cls, mean: float, precision: float) -> "Gaussian":
        return cls(precision, precision * mean)

    @property
    def is_point_mass(self) -> bool:
        return self.point is not None

    @property
    def is_uniform(self) -> bool:
        return not self.is_point_mass and self.precision == 0.0

    @property
    def mean(self) -> float:
        if self.is_point_mass:
            return self.point
        if self.precision == 0.0:
            return 0.0
        return self.information / self.precision

    @property
    def variance(self) -> float:
        if self.is_point_mass:
            return 0.0
        if self.precision == 0.0:
            return np.inf
        return 1.0 / self.precision

    def copy(self) -> "Gaussian":
        return Gaussian(self.precision, self.information, self.point)

    def __str__(self) -> str:
        if self.is_point_mass:
            return f"Gaussian.PointMass({self.point:.4g})"
        if self.is_uniform:
            return "Gaussian.Uniform"
        return f"Gaussian({self.mean:.4g}, {self.variance:.4g})"


@dataclass
class DiagonalGaussian:
    """Vector of independent scalar Gaussians (sparse weight representation)."""
    precision: np.ndarray
    information: np.ndarray
    point: Optional[np.ndarray] = None

    @property
    def dim(self) -> int:
        return self.precision.shape[0]

    @property
    def is_point_mass(self) -> bool:
        return self.point is not None

    @property
    def mean(self) -> np.ndarray:
        if self.is_point_mass:
            return self.point.copy()
        mean = np.zeros(self.dim)
        informative = self.precision > 0
        mean[informative] = self.information[informative] / self.precision[informative]
        return mean

    @property
    def variance(self) -> np.ndarray:
        if self.is_point_mass:
            return np.zeros(self.dim)
        variance = np.full(self.dim, np.inf)
        informative = self.precision > 0
        variance[informative] = 1.0 / self.precision[informative]
        return variance

    def marginal(self, index: int) -> Gaussian:
        """Scalar belief over a single weight."""
        if self.is_point_mass:
            return Gaussian(np.inf, 0.0, float(self.point[index]))
        return Gaussian(float(self.precision[index]), float(self.information[index]))

    def copy(self) -> "DiagonalGaussian":
        point = None if self.point is None else self.point.copy()
        return DiagonalGaussian(self.precision.copy(), self.information.copy(), point)

    def __str__(self) -> str:
        return "[" + ", ".join(str(self.marginal(i)) for i in range(self.dim)) + "]"


@dataclass
class VectorGaussian:
    """
    Multivariate Gaussian with full precision matrix (dense weight representation).

    The covariance is computed once on first use and cached. Rank-one
    updates carry the cache forward by Sherman-Morrison, so scoring an
    item only reads the covariance rows of the item's own features.
    """
    precision: np.ndarray
    information: np.ndarray
    point: Optional[np.ndarray] = None
    _covariance: Optional[np.ndarray] = field(default=None, repr=False, compare=False)

    @property
    def dim(self) -> int:
        return self.information.shape[0]

    @property
    def is_point_mass(self) -> bool:
        return self.point is not None

    @property
    def mean(self) -> np.ndarray:
        if self.is_point_mass:
            return self.point.copy()
        if self._covariance is not None:
            return self._covariance @ self.information
        return safe_precision_to_mean(self.precision, self.information)

    def _cached_covariance(self) -> np.ndarray:
        if self._covariance is None:
            self._covariance = safe_inverse(self.precision)
        return self._covariance

    @property
    def covariance(self) -> np.ndarray:
        if self.is_point_mass:
            return np.zeros((self.dim, self.dim))
        return self._cached_covariance().copy()

    def block_moments(self, indices: np.ndarray) -> Tuple[np.ndarray, np.ndarray]:
        """Mean and covariance of the weights at ``indices`` only."""
        if self.is_point_mass:
            return self.point[indices], np.zeros((len(indices), len(indices)))
        covariance = self._cached_covariance()
        return covariance[indices] @ self.information, covariance[np.ix_(indices, indices)]

    def rank_one_update(self, indices: np.ndarray, values: np.ndarray,
                        precision: float, information: float) -> Optional["VectorGaussian"]:
        """
        Add ``precision * x x^T`` to the precision and ``information * x`` to
        the information, where x holds ``values`` at ``indices`` and zero
        elsewhere. A negative ``precision`` retracts a previous update.

        Only the named sub-block of the natural parameters changes. Returns
        None when the result would not be positive definite.
        """
        covariance = self._cached_covariance()
        column = covariance[:, indices] @ values
        denominator = 1.0 + precision * float(values @ column[indices])
        if denominator <= 0.0:
            return None

        new_precision = self.precision.copy()
        new_precision[np.ix_(indices, indices)] += rank_one_precision(values, precision)
        new_information = self.information.copy()
        new_information[indices] += information * values

        return VectorGaussian(new_precision, new_information,
                              _covariance=covariance - (precision / denominator) * np.outer(column, column))

    def copy(self) -> "VectorGaussian":
        point = None if self.point is None else self.point.copy()
        covariance = None if self._covariance is None else self._covariance.copy()
        return VectorGaussian(self.precision.copy(), self.information.copy(), point, covariance)

    def __str__(self) -> str:
        if self.is_point_mass:
            return f"VectorGaussian.PointMass({np.array2string(self.point, precision=4)})"
        return (f"VectorGaussian(mean={np.array2string(self.mean, precision=4)}, "
                f"covariance={np.array2string(self.covariance, precision=4)})")


@dataclass
class Discrete:
    """Categorical distribution over class labels."""
    probs: np.ndarray

    @classmethod
    def uniform(cls, n_classes: int) -> "Discrete":
        return cls(np.full(n_classes, 1.0 / n_classes))

    @property
    def n_classes(self) -> int:
        return self.probs.shape[0]

    @property
    def mode(self) -> int:
        return int(np.argmax(self.probs))

    def __getitem__(self, label: int) -> float:
        return float(self.probs[label])

    def __str__(self) -> str:
        return "Discrete(" + " ".join(f"{p:.4f}" for p in self.probs) + ")"
