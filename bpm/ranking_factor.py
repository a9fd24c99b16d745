#!/usr/bin/env python3
"""
Ranking constraint factor: the approximate "argmax" factor of the BPM.

Asserting that class c wins an item means s_c > s_k for every k != c. Each
pairwise comparison is treated as an independent factor I(s_c - s_k > 0);
its EP message is obtained by moment-matching the truncated difference
d = s_c - s_k and pushing the resulting message on d back onto s_c and s_k.
"""

import math
import numpy as np
import structlog
from dataclasses import dataclass
from typing import List, Sequence, Tuple

from .beliefs import Discrete, Gaussian
from .belief_algebra import multiply
from .exceptions import DivergencePolicy, InferenceDivergence
from .utils.gaussian_utils import log_norm_cdf, v_w_greater_than_zero

logger = structlog.get_logger(__name__)

LOG_HALF = math.log(0.5)


@dataclass
class ConstraintResult:
    """Messages onto each class score plus the log evidence of the constraint."""
    messages: List[Gaussian]
    log_evidence: float

    def tilted(self, scores: Sequence[Gaussian]) -> List[Gaussian]:
        """Score beliefs after the constraint (input belief times message)."""
        return [multiply(score, message) for score, message in zip(scores, self.messages)]


@dataclass
class MixtureResult:
    """Outcome of asserting each class as winner in turn and mixing."""
    posterior: Discrete
    scores: List[Gaussian]
    log_evidence: np.ndarray


class RankingConstraintFactor:
    """EP messages for "the given class has the largest score"."""

    def __init__(self, policy: DivergencePolicy = DivergencePolicy.CLAMP):
        self.policy = DivergencePolicy(policy)

    def pair_messages(self, winner: Gaussian, loser: Gaussian) -> Tuple[Gaussian, Gaussian, float]:
        """
        Messages from the factor I(s_winner - s_loser > 0).
        
        Args:
            winner: Input belief over the winning score
            loser: Input belief over the losing score
        
        Returns:
            (message to winner, message to loser, log evidence)
        """
        diff_variance = winner.variance + loser.variance
        if not np.isfinite(diff_variance) or diff_variance <= 0.0:
            return Gaussian(), Gaussian(), LOG_HALF

        diff_mean = winner.mean - loser.mean
        sigma = math.sqrt(diff_variance)
        t = diff_mean / sigma
        v, w = v_w_greater_than_zero(t)
        log_evidence = log_norm_cdf(t)

        if w <= 0.0:
            # Constraint already certain under the input beliefs
            return Gaussian(), Gaussian(), log_evidence
        if not (w < 1.0) or not np.isfinite(v):
            if self.policy is DivergencePolicy.RAISE:
                raise InferenceDivergence("ranking constraint", 1.0 - w)
            logger.warning("Ranking message skipped", t=t, w=w)
            return Gaussian(), Gaussian(), log_evidence

        # Message onto d: tilted(d) / prior(d)
        message_variance = diff_variance * (1.0 - w) / w
        message_mean = diff_mean + sigma * v / w

        to_winner = Gaussian.from_mean_and_variance(
            message_mean + loser.mean, message_variance + loser.variance)
        to_loser = Gaussian.from_mean_and_variance(
            winner.mean - message_mean, message_variance + winner.variance)
        return to_winner, to_loser, log_evidence

    def constrain_argmax(self, scores: Sequence[Gaussian], winner: int) -> ConstraintResult:
        """
        Enforce s_winner > s_k for every k != winner.
        
        All K-1 pairwise factors read the same input score beliefs; the
        winner's messages multiply together, each loser gets one message.
        """
        messages = [Gaussian() for _ in scores]
        log_evidence = 0.0
        for k, score in enumerate(scores):
            if k == winner:
                continue
            to_winner, to_loser, log_z = self.pair_messages(scores[winner], score)
            messages[winner] = multiply(messages[winner], to_winner)
            messages[k] = to_loser
            log_evidence += log_z
        return ConstraintResult(messages, log_evidence)

    def mixture(self, scores: Sequence[Gaussian], class_probs: Sequence[float]) -> MixtureResult:
        """
        Switch over the winning class, weighted by the current class probabilities.
        
        The argmax constraint is applied once per hypothesised winner; the
        posterior weight of hypothesis c is class_probs[c] times its
        evidence. The per-hypothesis tilted score beliefs are mixed and
        moment-matched.
        
        Args:
            scores: Score beliefs, one per class
            class_probs: Prior probability of each class winning
        
        Returns:
            MixtureResult with the posterior over classes and mixed scores
        """
        n_classes = len(scores)
        results = [self.constrain_argmax(scores, c) for c in range(n_classes)]
        log_evidence = np.array([r.log_evidence for r in results])

        with np.errstate(divide="ignore"):
            log_weights = np.log(np.asarray(class_probs, dtype=float)) + log_evidence
        log_weights -= log_weights.max()
        weights = np.exp(log_weights)
        weights /= weights.sum()

        tilted = [r.tilted(scores) for r in results]
        mixed = []
        for k in range(n_classes):
            means = np.array([tilted[c][k].mean for c in range(n_classes)])
            variances = np.array([tilted[c][k].variance for c in range(n_classes)])
            mean = float(weights @ means)
            variance = float(weights @ (variances + means ** 2)) - mean ** 2
            mixed.append(Gaussian.from_mean_and_variance(mean, max(variance, 0.0)))
        return MixtureResult(Discrete(weights), mixed, log_evidence)
