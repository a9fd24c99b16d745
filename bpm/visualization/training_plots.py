#!/usr/bin/env python3
"""
Plots for training runs: weight-mean trajectories across passes and
predictive class probabilities.
"""

import numpy as np
import matplotlib.pyplot as plt
from typing import List, Optional, Sequence, Tuple

from ..beliefs import Discrete, VectorGaussian
from ..feature_gather import WeightBelief


def weight_moments(belief: WeightBelief) -> Tuple[np.ndarray, np.ndarray]:
    """Per-feature mean and standard deviation of a weight belief."""
    if isinstance(belief, VectorGaussian):
        variance = np.diag(belief.covariance)
    else:
        variance = belief.variance
    return belief.mean, np.sqrt(np.maximum(variance, 0.0))


def plot_weight_trajectories(history: Sequence[Sequence[WeightBelief]], ax=None):
    """
    Plot the mean of every weight after each pass, with 1-sigma bands.
    
    Args:
        history: history[p][c] is class c's weight belief after pass p
        ax: Axes to draw on (a new figure is created if None)
    
    Returns:
        The matplotlib figure
    """
    if ax is None:
        fig, ax = plt.subplots(1, 1, figsize=(8, 6))
    else:
        fig = ax.figure
    
    passes = np.arange(1, len(history) + 1)
    n_classes = len(history[0])
    for c in range(n_classes):
        moments = [weight_moments(weights[c]) for weights in history]
        means = np.array([m for m, _ in moments])
        stds = np.array([s for _, s in moments])
        for f in range(means.shape[1]):
            line, = ax.plot(passes, means[:, f], marker='o', markersize=3,
                            label=f'w_{c}[{f}]')
            ax.fill_between(passes, means[:, f] - stds[:, f], means[:, f] + stds[:, f],
                            color=line.get_color(), alpha=0.15)
    
    ax.set_xlabel('Pass')
    ax.set_ylabel('Weight mean')
    ax.set_title('Weight Convergence')
    ax.grid(True, alpha=0.3)
    ax.legend(fontsize='small', ncol=max(1, n_classes - 1))
    return fig


def plot_predictions(predictions: List[Discrete], labels: Optional[Sequence[str]] = None, ax=None):
    """Stacked bars of the predictive class probabilities for each test item."""
    if ax is None:
        fig, ax = plt.subplots(1, 1, figsize=(8, 4))
    else:
        fig = ax.figure
    
    probs = np.array([p.probs for p in predictions])
    positions = np.arange(len(predictions))
    bottom = np.zeros(len(predictions))
    for c in range(probs.shape[1]):
        ax.bar(positions, probs[:, c], bottom=bottom, label=f'class {c}')
        bottom += probs[:, c]
    
    ax.set_xticks(positions)
    ax.set_xticklabels(labels if labels is not None else [f'item {i}' for i in positions])
    ax.set_ylim(0.0, 1.0)
    ax.set_ylabel('Probability')
    ax.set_title('Predictive Class Probabilities')
    ax.legend(fontsize='small')
    return fig
