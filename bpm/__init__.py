#!/usr/bin/env python3
"""
Bayes Point Machine package

Multi-class linear classification by expectation propagation over Gaussian
weight beliefs, with sparse items, incremental and chunked training
"""

from .beliefs import Gaussian, DiagonalGaussian, VectorGaussian, Discrete
from .belief_algebra import (
    multiply,
    divide,
    point_mass,
    diagonal_point_mass,
    uniform,
    uniform_like,
    standard_prior,
    to_moments
)
from .exceptions import BPMError, InvalidDimension, InferenceDivergence, DivergencePolicy
from .items import Item, TrainingBatch
from .feature_gather import gather_score, scatter_message, multiply_site, divide_site
from .ranking_factor import RankingConstraintFactor
from .classifier import BayesPointMachine
from .chunk_combiner import ChunkCombiner, SharedBayesPointMachine
from .prediction import PredictionEngine

__all__ = [
    'Gaussian',
    'DiagonalGaussian',
    'VectorGaussian',
    'Discrete',
    'multiply',
    'divide',
    'point_mass',
    'diagonal_point_mass',
    'uniform',
    'uniform_like',
    'standard_prior',
    'to_moments',
    'BPMError',
    'InvalidDimension',
    'InferenceDivergence',
    'DivergencePolicy',
    'Item',
    'TrainingBatch',
    'gather_score',
    'scatter_message',
    'multiply_site',
    'divide_site',
    'RankingConstraintFactor',
    'BayesPointMachine',
    'ChunkCombiner',
    'SharedBayesPointMachine',
    'PredictionEngine'
]
