#!/usr/bin/env python3
"""
Bayes Point Machine classifier trained by expectation propagation.

Class 0 is the anchor: its weight is pinned to the zero vector so that only
score differences matter. Every other class starts from N(0, I). Each
training item of class c contributes the constraint "s_c is the largest
score" through the ranking factor; its messages onto the weights are kept
as per-item sites so that further sweeps refine rather than repeat them.
"""

import threading
import numpy as np
import structlog
from typing import Dict, List, Optional, Sequence, Tuple

from .beliefs import Discrete
from .belief_algebra import DEFAULT_MIN_PRECISION, diagonal_point_mass, point_mass, standard_prior
from .exceptions import DivergencePolicy
from .feature_gather import (
    WeightBelief,
    divide_site,
    gather_score,
    multiply_site,
    scatter_message,
)
from .items import Item, TrainingBatch
from .prediction import PredictionEngine
from .ranking_factor import RankingConstraintFactor

logger = structlog.get_logger(__name__)

ANCHOR_CLASS = 0

# sites[item_position][class] -> message last sent by that item, None for the anchor
SiteTable = Dict[int, List[Optional[object]]]


class BayesPointMachine:
    """Multi-class Bayes point machine with dense or sparse (diagonal) weights."""
    
    def __init__(self, n_classes: int, n_features: int, noise_precision: float,
                 sparse: bool = False, n_iterations: int = 1,
                 divergence_policy: DivergencePolicy = DivergencePolicy.CLAMP,
                 min_precision: float = DEFAULT_MIN_PRECISION,
                 prior_precision: float = 1.0):
        """
        Args:
            n_classes: Number of classes (at least 2)
            n_features: Number of features (at least 1)
            noise_precision: Precision of the additive score noise
            sparse: Fully factorised per-feature weights instead of a full covariance
            n_iterations: EP sweeps over a batch per training call
            divergence_policy: CLAMP floors bad precisions, RAISE propagates them
            min_precision: Precision floor used by CLAMP
            prior_precision: Precision of the N(0, I / prior_precision) prior
        """
        if n_classes < 2:
            raise ValueError(f"n_classes must be at least 2, got {n_classes}")
        if n_features < 1:
            raise ValueError(f"n_features must be at least 1, got {n_features}")
        if noise_precision <= 0:
            raise ValueError(f"noise_precision must be positive, got {noise_precision}")
        if n_iterations < 1:
            raise ValueError(f"n_iterations must be at least 1, got {n_iterations}")
        
        self.n_classes = n_classes
        self.n_features = n_features
        self.noise_precision = noise_precision
        self.sparse = sparse
        self.n_iterations = n_iterations
        self.divergence_policy = DivergencePolicy(divergence_policy)
        self.min_precision = min_precision
        self.prior_precision = prior_precision
        
        self.factor = RankingConstraintFactor(self.divergence_policy)
        self.predictor = PredictionEngine(noise_precision, policy=self.divergence_policy)
        
        self._lock = threading.Lock()
        self._weights: List[WeightBelief] = self.canonical_priors()
        self._trained = False
    
    def canonical_priors(self) -> List[WeightBelief]:
        """Anchor point mass at zero for class 0, N(0, I) for the others."""
        priors = []
        for c in range(self.n_classes):
            if c == ANCHOR_CLASS:
                zero = np.zeros(self.n_features)
                priors.append(diagonal_point_mass(zero) if self.sparse else point_mass(zero))
            else:
                priors.append(standard_prior(self.n_features, self.sparse, self.prior_precision))
        return priors
    
    @property
    def is_trained(self) -> bool:
        return self._trained
    
    @property
    def weights(self) -> List[WeightBelief]:
        """Snapshot of the current weight belief for each class."""
        return [w.copy() for w in self._weights]
    
    def reset(self):
        """Discard everything learnt and return to the canonical priors."""
        with self._lock:
            self._weights = self.canonical_priors()
            self._trained = False
    
    def infer(self, priors: Sequence[WeightBelief], batch: TrainingBatch,
              sites: Optional[SiteTable] = None) -> Tuple[List[WeightBelief], SiteTable]:
        """
        Run EP over a batch starting from ``priors``.
        
        ``priors`` must already include any ``sites`` passed in (the sites are
        retracted item by item before being replaced). Neither argument is
        modified.
        
        Args:
            priors: Starting weight belief per class
            batch: Labelled items
            sites: Sites from a previous run over the same batch, keyed by
                item position
        
        Returns:
            (posterior weight beliefs, updated site table)
        """
        batch.validate(self.n_classes, self.n_features)
        beliefs = [w.copy() for w in priors]
        sites = {} if sites is None else dict(sites)
        
        items = list(batch.labeled_items())
        if not items:
            logger.debug("Empty batch, priors pass through")
            return beliefs, sites
        for label, count in enumerate(batch.class_counts()):
            if count == 0:
                logger.debug("No items for class", label=label)
        
        for iteration in range(self.n_iterations):
            max_change = 0.0
            for position, (label, item) in enumerate(items):
                change = self._update_item(beliefs, sites, position, label, item)
                max_change = max(max_change, change)
            logger.debug("EP sweep", iteration=iteration, max_change=max_change)
        
        return beliefs, sites
    
    def _update_item(self, beliefs: List[WeightBelief], sites: SiteTable,
                     position: int, label: int, item: Item) -> float:
        """Replace one item's sites; returns the largest change in site parameters."""
        old_sites = sites.get(position)
        cavities = []
        for k, belief in enumerate(beliefs):
            if old_sites is None or old_sites[k] is None:
                cavities.append(belief)
            else:
                cavities.append(divide_site(belief, item, old_sites[k],
                                            self.divergence_policy, self.min_precision))
        
        scores = [gather_score(cavity, item, self.noise_precision) for cavity in cavities]
        result = self.factor.constrain_argmax(scores, label)
        
        new_sites = []
        change = 0.0
        for k, cavity in enumerate(cavities):
            if cavity.is_point_mass:
                new_sites.append(None)
                continue
            site = scatter_message(cavity, item, result.messages[k], self.noise_precision)
            beliefs[k] = multiply_site(cavity, item, site)
            if old_sites is not None and old_sites[k] is not None:
                change = max(change, _site_change(old_sites[k], site))
            new_sites.append(site)
        sites[position] = new_sites
        return change
    
    def train(self, batch: TrainingBatch) -> List[WeightBelief]:
        """
        Train from the canonical priors on a whole training set.
        
        Args:
            batch: Items grouped by class
        
        Returns:
            Posterior weight belief for each class
        """
        with self._lock:
            logger.info("Training", n_items=len(batch), class_counts=batch.class_counts(),
                        sparse=self.sparse, n_iterations=self.n_iterations)
            return self._commit(self.canonical_priors(), batch)
    
    def train_incremental(self, batch: TrainingBatch) -> List[WeightBelief]:
        """
        Train on the next batch, using the current posterior as the prior.
        
        The first call starts from the canonical priors, like train(). The
        choice of prior and the update happen under one lock acquisition.
        """
        with self._lock:
            if self._trained:
                logger.info("Incremental training", n_items=len(batch),
                            class_counts=batch.class_counts())
                priors = self._weights
            else:
                logger.info("Training", n_items=len(batch), class_counts=batch.class_counts(),
                            sparse=self.sparse, n_iterations=self.n_iterations)
                priors = self.canonical_priors()
            return self._commit(priors, batch)
    
    def _commit(self, priors: Sequence[WeightBelief], batch: TrainingBatch) -> List[WeightBelief]:
        """Infer from ``priors`` and store the posterior; caller holds the lock."""
        posteriors, _ = self.infer(priors, batch)
        self._weights = posteriors
        self._trained = True
        return [w.copy() for w in posteriors]
    
    def test(self, items) -> List[Discrete]:
        """Predictive distribution over classes for each test item."""
        return self.predictor.predict_batch(self.weights, items)


def _site_change(old, new) -> float:
    delta = np.concatenate([
        np.atleast_1d(np.asarray(new.precision) - np.asarray(old.precision)),
        np.atleast_1d(np.asarray(new.information) - np.asarray(old.information)),
    ])
    return float(np.abs(delta).max()) if delta.size else 0.0
