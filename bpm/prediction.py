#!/usr/bin/env python3
"""
Prediction engine: predictive class distribution for a test item.
"""

import numpy as np
from typing import List, Optional, Sequence, Tuple

from .beliefs import Discrete, Gaussian
from .exceptions import DivergencePolicy, InvalidDimension
from .feature_gather import WeightBelief, gather_score
from .items import Item, as_item
from .ranking_factor import RankingConstraintFactor


class PredictionEngine:
    """Scores an item under every class's weight belief and mixes the argmax constraint."""

    def __init__(self, noise_precision: float, class_prior: Optional[Sequence[float]] = None,
                 policy: DivergencePolicy = DivergencePolicy.CLAMP):
        if noise_precision <= 0:
            raise ValueError(f"noise_precision must be positive, got {noise_precision}")
        self.noise_precision = noise_precision
        self.class_prior = None if class_prior is None else np.asarray(class_prior, dtype=float)
        self.factor = RankingConstraintFactor(policy)

    def _prior(self, n_classes: int) -> np.ndarray:
        if self.class_prior is None:
            return np.full(n_classes, 1.0 / n_classes)
        if self.class_prior.shape[0] != n_classes:
            raise InvalidDimension(
                f"Class prior has {self.class_prior.shape[0]} entries, model has {n_classes} classes"
            )
        return self.class_prior / self.class_prior.sum()

    def scores(self, weights: Sequence[WeightBelief], item: Item) -> List[Gaussian]:
        """Score belief of each class for the item."""
        n_features = weights[0].dim
        item = as_item(item, n_features=n_features)
        item.validate(n_features)
        return [gather_score(w, item, self.noise_precision) for w in weights]

    def predict_with_scores(self, weights: Sequence[WeightBelief], item) -> Tuple[Discrete, List[Gaussian]]:
        """Predictive distribution and the mixed score beliefs for one item."""
        scores = self.scores(weights, item)
        result = self.factor.mixture(scores, self._prior(len(weights)))
        return result.posterior, result.scores

    def predict(self, weights: Sequence[WeightBelief], item) -> Discrete:
        """
        Predictive categorical distribution over classes for ``item``.
        
        Args:
            weights: Trained weight belief per class (not modified)
            item: Item or dense feature vector
        
        Returns:
            Discrete distribution over the classes
        """
        posterior, _ = self.predict_with_scores(weights, item)
        return posterior

    def predict_batch(self, weights: Sequence[WeightBelief], items) -> List[Discrete]:
        return [self.predict(weights, item) for item in items]
