#!/usr/bin/env python3
"""
Visualization modules for Bayes Point Machine training runs
"""

from .training_plots import plot_weight_trajectories, plot_predictions, weight_moments

__all__ = [
    'plot_weight_trajectories',
    'plot_predictions',
    'weight_moments'
]
