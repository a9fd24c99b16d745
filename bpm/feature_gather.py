#!/usr/bin/env python3
"""
Sparse feature gather: weight beliefs <-> per-item score beliefs.

The score of class k on an item is ``s_k = sum_i values[i] * w_k[indices[i]]
+ noise`` with noise of precision ``noise_precision``. gather_score builds
the Gaussian belief over s_k; scatter_message carries a message on s_k back
onto the weights. The message onto the weights ("site") is kept in a compact
form tied to the item:

- full-covariance weights (VectorGaussian): a scalar Gaussian over the
  noise-free inner product u = w . x, i.e. precision ``pi * x x^T`` and
  information ``tau * x`` on w;
- diagonal weights (DiagonalGaussian): a DiagonalGaussian over the item's
  own indices only.
"""

import numpy as np
from typing import Union

from .beliefs import Gaussian, DiagonalGaussian, VectorGaussian
from .belief_algebra import DEFAULT_MIN_PRECISION, divide
from .exceptions import DivergencePolicy
from .items import Item
from .utils.linear_algebra_utils import rank_one_precision

WeightBelief = Union[DiagonalGaussian, VectorGaussian]
Site = Union[Gaussian, DiagonalGaussian]


def gather_score(weight: WeightBelief, item: Item, noise_precision: float) -> Gaussian:
    """
    Belief over the noisy score of ``item`` under ``weight``.
    
    Args:
        weight: Weight belief over the full feature range
        item: Item (indices, values)
        noise_precision: Precision of the additive score noise
    
    Returns:
        Scalar Gaussian over the score
    """
    noise_variance = 1.0 / noise_precision
    if weight.is_point_mass:
        mean = float(weight.point[item.indices] @ item.values)
        return Gaussian.from_mean_and_variance(mean, noise_variance)

    if isinstance(weight, DiagonalGaussian):
        mean, variance = _diagonal_terms(weight, item)
        return Gaussian.from_mean_and_variance(float(mean.sum()), float(variance.sum()) + noise_variance)

    block_mean, block_covariance = weight.block_moments(item.indices)
    mean = float(block_mean @ item.values)
    variance = max(float(item.values @ block_covariance @ item.values), 0.0)
    return Gaussian.from_mean_and_variance(mean, variance + noise_variance)


def _diagonal_terms(weight: DiagonalGaussian, item: Item):
    """Means and variances of the products values[i] * w[indices[i]]."""
    precision = weight.precision[item.indices]
    information = weight.information[item.indices]
    values = item.values
    mean = np.zeros(len(item))
    variance = np.zeros(len(item))
    active = values != 0.0
    informative = active & (precision > 0.0)
    mean[informative] = values[informative] * information[informative] / precision[informative]
    variance[informative] = values[informative] ** 2 / precision[informative]
    variance[active & ~informative] = np.inf
    return mean, variance


def score_to_inner_product(score_message: Gaussian, noise_precision: float) -> Gaussian:
    """Remove the score noise from a message on the noisy score."""
    if score_message.is_uniform or score_message.precision <= 0.0:
        return Gaussian()
    scale = noise_precision / (score_message.precision + noise_precision)
    return Gaussian(score_message.precision * scale, score_message.information * scale)


def scatter_message(
    cavity: WeightBelief,
    item: Item,
    score_message: Gaussian,
    noise_precision: float
) -> Site:
    """
    Map a message on the noisy score back onto the weights.
    
    For diagonal weights the message on the inner product is passed through
    the sum factor (subtracting the cavity contributions of the other
    features) and divided by each feature value.
    
    Args:
        cavity: Weight belief excluding this item's previous site
        item: The item
        score_message: Message on the noisy score
        noise_precision: Precision of the score noise
    
    Returns:
        The new site for this item and class
    """
    inner = score_to_inner_product(score_message, noise_precision)
    if isinstance(cavity, VectorGaussian):
        return Gaussian() if cavity.is_point_mass else inner

    n = len(item)
    site = DiagonalGaussian(np.zeros(n), np.zeros(n))
    if cavity.is_point_mass or inner.precision <= 0.0:
        return site

    term_mean, term_variance = _diagonal_terms(cavity, item)
    finite = np.isfinite(term_variance)
    n_infinite = int((~finite).sum())
    finite_total = float(term_variance[finite].sum())
    mean_total = float(term_mean.sum())

    for i in range(n):
        value = item.values[i]
        if value == 0.0:
            continue
        if n_infinite - (0 if finite[i] else 1) > 0:
            continue
        others_variance = finite_total - (term_variance[i] if finite[i] else 0.0)
        message_variance = 1.0 / inner.precision + max(others_variance, 0.0)
        message_mean = inner.mean - (mean_total - term_mean[i])
        site.precision[i] = value * value / message_variance
        site.information[i] = value * message_mean / message_variance
    return site


def multiply_site(weight: WeightBelief, item: Item, site: Site) -> WeightBelief:
    """Apply an item's site to a weight belief."""
    if weight.is_point_mass:
        return weight.copy()
    if isinstance(weight, VectorGaussian):
        if site.is_uniform:
            return weight.copy()
        return weight.rank_one_update(item.indices, item.values, site.precision, site.information)
    result = weight.copy()
    result.precision[item.indices] += site.precision
    result.information[item.indices] += site.information
    return result


def divide_site(
    weight: WeightBelief,
    item: Item,
    site: Site,
    policy: DivergencePolicy = DivergencePolicy.CLAMP,
    min_precision: float = DEFAULT_MIN_PRECISION
) -> WeightBelief:
    """Retract an item's site from a weight belief (the EP cavity)."""
    if weight.is_point_mass:
        return weight.copy()
    if isinstance(weight, VectorGaussian):
        if site.is_uniform:
            return weight.copy()
        retracted = weight.rank_one_update(item.indices, item.values, -site.precision, -site.information)
        if retracted is not None:
            return retracted
        # Not positive definite: the full quotient applies the divergence policy
        x = item.to_dense(weight.dim)
        lifted = VectorGaussian(rank_one_precision(x, site.precision), site.information * x)
        return divide(weight, lifted, policy, min_precision)
    local = DiagonalGaussian(weight.precision[item.indices], weight.information[item.indices])
    quotient = divide(local, site, policy, min_precision)
    result = weight.copy()
    result.precision[item.indices] = quotient.precision
    result.information[item.indices] = quotient.information
    return result
