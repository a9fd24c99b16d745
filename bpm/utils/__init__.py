#!/usr/bin/env python3
"""
Utility modules for the Bayes Point Machine
"""

from .linear_algebra_utils import (
    regularize_precision_matrix,
    safe_precision_to_mean,
    safe_inverse,
    min_eigenvalue,
    clamp_precision_matrix,
    rank_one_precision,
    sum_natural_parameters
)
from .gaussian_utils import (
    norm_pdf,
    norm_cdf,
    log_norm_cdf,
    v_w_greater_than_zero,
    truncated_moments
)

__all__ = [
    'regularize_precision_matrix',
    'safe_precision_to_mean',
    'safe_inverse',
    'min_eigenvalue',
    'clamp_precision_matrix',
    'rank_one_precision',
    'sum_natural_parameters',
    'norm_pdf',
    'norm_cdf',
    'log_norm_cdf',
    'v_w_greater_than_zero',
    'truncated_moments'
]
