#!/usr/bin/env python3
"""
Chunked training with a shared weight belief.

The shared belief for each class is its prior times one contribution per
chunk. The contributions live on the edges of a small factor graph
(chunk factor node ``f_chunk_<i>`` -- weight variable node ``w_<c>``), so
re-training chunk i retracts the contribution it injected last time before
applying the new one, instead of counting the chunk twice.
"""

import threading
import networkx as nx
import structlog
from typing import Dict, List, Sequence

from .beliefs import Discrete
from .belief_algebra import (
    DEFAULT_MIN_PRECISION,
    Belief,
    divide,
    multiply,
    uniform_like,
)
from .classifier import BayesPointMachine, SiteTable
from .exceptions import DivergencePolicy, InvalidDimension
from .feature_gather import WeightBelief
from .items import TrainingBatch
from .utils.linear_algebra_utils import sum_natural_parameters

logger = structlog.get_logger(__name__)


def weight_node(c: int) -> str:
    return f'w_{c}'


def chunk_node(i: int) -> str:
    return f'f_chunk_{i}'


class ChunkCombiner:
    """Retract-then-reapply bookkeeping for per-chunk contributions."""
    
    def __init__(self, priors: Sequence[Belief], n_chunks: int,
                 policy: DivergencePolicy = DivergencePolicy.CLAMP,
                 min_precision: float = DEFAULT_MIN_PRECISION):
        if n_chunks < 1:
            raise ValueError(f"n_chunks must be at least 1, got {n_chunks}")
        self.n_chunks = n_chunks
        self.policy = DivergencePolicy(policy)
        self.min_precision = min_precision
        
        self.graph = nx.Graph()
        for c, prior in enumerate(priors):
            self.graph.add_node(weight_node(c), prior=prior.copy())
        for i in range(n_chunks):
            self.graph.add_node(chunk_node(i))
        
        self._global: List[Belief] = [p.copy() for p in priors]
    
    @property
    def n_classes(self) -> int:
        return len(self._global)
    
    @property
    def global_beliefs(self) -> List[Belief]:
        return [g.copy() for g in self._global]
    
    def check_index(self, chunk_index: int):
        if not 0 <= chunk_index < self.n_chunks:
            raise InvalidDimension(f"Chunk index {chunk_index} out of range [0, {self.n_chunks})")
    
    def contribution(self, chunk_index: int, c: int) -> Belief:
        """Contribution chunk ``chunk_index`` last made to class ``c`` (uniform if none)."""
        self.check_index(chunk_index)
        edge = self.graph.get_edge_data(chunk_node(chunk_index), weight_node(c))
        if edge is None:
            return uniform_like(self._global[c])
        return edge['contribution'].copy()
    
    def has_contribution(self, chunk_index: int) -> bool:
        return self.graph.degree(chunk_node(chunk_index)) > 0
    
    def cavity(self, chunk_index: int) -> List[Belief]:
        """Shared belief with chunk ``chunk_index``'s contribution removed."""
        return [divide(g, self.contribution(chunk_index, c), self.policy, self.min_precision)
                for c, g in enumerate(self._global)]
    
    def combine(self, global_beliefs: Sequence[Belief], chunk_index: int,
                new_contributions: Sequence[Belief]) -> List[Belief]:
        """
        Replace the contribution of a chunk in the shared belief.
        
        updated = global / old[chunk_index] * new; old[chunk_index] = new.
        Calling this twice with the same contribution leaves the shared
        belief unchanged after the second call.
        
        Args:
            global_beliefs: Current shared belief per class
            chunk_index: Index of the chunk being replaced
            new_contributions: The chunk's new contribution per class
        
        Returns:
            Updated shared belief per class
        """
        self.check_index(chunk_index)
        if len(global_beliefs) != self.n_classes or len(new_contributions) != self.n_classes:
            raise InvalidDimension(f"Expected beliefs for {self.n_classes} classes")
        
        updated = []
        for c, (g, new) in enumerate(zip(global_beliefs, new_contributions)):
            retracted = divide(g, self.contribution(chunk_index, c), self.policy, self.min_precision)
            updated.append(multiply(retracted, new))
        
        for c, new in enumerate(new_contributions):
            self.graph.add_edge(chunk_node(chunk_index), weight_node(c), contribution=new.copy())
        self._global = updated
        logger.debug("Chunk combined", chunk_index=chunk_index)
        return self.global_beliefs
    
    def recompute_global(self) -> List[Belief]:
        """Prior times every stored contribution, rebuilt from the graph."""
        beliefs = []
        for c in range(self.n_classes):
            node = weight_node(c)
            prior = self.graph.nodes[node]['prior']
            if prior.is_point_mass:
                beliefs.append(prior.copy())
                continue
            contributions = [self.graph.edges[node, chunk]['contribution']
                             for chunk in self.graph.neighbors(node)]
            precision, information = sum_natural_parameters(
                [prior.precision] + [b.precision for b in contributions],
                [prior.information] + [b.information for b in contributions]
            )
            beliefs.append(type(prior)(precision, information))
        return beliefs


class SharedBayesPointMachine:
    """Bayes point machine trained chunk by chunk over several passes."""
    
    def __init__(self, n_classes: int, n_features: int, noise_precision: float,
                 n_chunks: int, sparse: bool = False, n_iterations: int = 1,
                 divergence_policy: DivergencePolicy = DivergencePolicy.CLAMP,
                 min_precision: float = DEFAULT_MIN_PRECISION,
                 prior_precision: float = 1.0):
        self.model = BayesPointMachine(
            n_classes, n_features, noise_precision, sparse=sparse,
            n_iterations=n_iterations, divergence_policy=divergence_policy,
            min_precision=min_precision, prior_precision=prior_precision
        )
        self.combiner = ChunkCombiner(self.model.canonical_priors(), n_chunks,
                                      divergence_policy, min_precision)
        self._chunk_sites: Dict[int, SiteTable] = {}
        self._lock = threading.Lock()
    
    @property
    def n_chunks(self) -> int:
        return self.combiner.n_chunks
    
    @property
    def weights(self) -> List[WeightBelief]:
        return self.combiner.global_beliefs
    
    def train(self, batch: TrainingBatch, chunk_index: int) -> List[WeightBelief]:
        """
        Train on one chunk, replacing whatever that chunk contributed before.
        
        A chunk index must always name the same items. Inference for the
        chunk starts from the shared belief and refines the chunk's stored
        item sites, so repeated passes over all chunks converge to the same
        fixed point however the data is split.
        
        Args:
            batch: The chunk's items grouped by class
            chunk_index: Index of the chunk, in [0, n_chunks)
        
        Returns:
            Shared posterior weight belief for each class
        """
        with self._lock:
            self.combiner.check_index(chunk_index)
            batch.validate(self.model.n_classes, self.model.n_features)
            
            cavity = self.combiner.cavity(chunk_index)
            sites = self._chunk_sites.get(chunk_index)
            if sites is not None and len(sites) == len(batch):
                start = self.combiner.global_beliefs
            else:
                sites = None
                start = cavity
            
            posteriors, sites = self.model.infer(start, batch, sites)
            contributions = [divide(p, q, self.model.divergence_policy, self.model.min_precision)
                             for p, q in zip(posteriors, cavity)]
            updated = self.combiner.combine(self.combiner.global_beliefs, chunk_index, contributions)
            self._chunk_sites[chunk_index] = sites
            logger.info("Chunk trained", chunk_index=chunk_index, n_items=len(batch))
        return updated
    
    def test(self, items) -> List[Discrete]:
        """Predictive distribution over classes from the shared belief."""
        return self.model.predictor.predict_batch(self.weights, items)
