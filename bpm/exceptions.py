#!/usr/bin/env python3
"""
Exceptions raised by the Bayes Point Machine inference core
"""

from enum import Enum


class DivergencePolicy(str, Enum):
    """What to do when an operation would leave a non-positive precision."""
    CLAMP = "clamp"
    RAISE = "raise"


class BPMError(Exception):
    """Base class for all Bayes Point Machine errors."""


class InvalidDimension(BPMError, ValueError):
    """
    Raised when an item, batch or index does not fit the model's dimensions.

    Covers feature indices outside [0, n_features), duplicate indices,
    mismatched indices/values lengths, dense items of the wrong length,
    batches with the wrong number of classes and chunk indices outside
    [0, n_chunks). Raised before any belief is touched.
    """


class InferenceDivergence(BPMError, ArithmeticError):
    """
    Raised when a belief operation produces a non-positive precision.

    Attributes:
        operation: Name of the operation that diverged
        precision: Offending precision value (minimum eigenvalue for matrices)
    """

    def __init__(self, operation: str, precision: float):
        self.operation = operation
        self.precision = precision
        super().__init__(
            f"{operation} produced non-positive precision {precision:.6g}"
        )
