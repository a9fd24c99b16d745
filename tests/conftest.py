"""Shared fixtures for Bayes Point Machine tests."""

import numpy as np
import pytest

from bpm import DiagonalGaussian, Item, TrainingBatch, VectorGaussian
from bpm.utils.data_utils import make_synthetic_data


@pytest.fixture
def rng():
    return np.random.default_rng(1234)


@pytest.fixture
def single_item_batch():
    """K=2, F=1: one item of class 1 with x = [1.0]."""
    return TrainingBatch([[], [Item.from_dense([1.0])]])


@pytest.fixture
def separable_batch():
    """Three classes in two dimensions, labelled by the argmax of known weights."""
    batch, _ = make_synthetic_data(
        n_classes=3, n_items=60, n_features=2, seed=7,
        class_weights=[[0.0, 0.0], [3.0, 0.0], [0.0, 3.0]]
    )
    return batch


@pytest.fixture
def two_feature_batch():
    """Small mixed dataset used by the chunking tests."""
    batch, _ = make_synthetic_data(n_classes=2, n_items=8, n_features=2, seed=3,
                                   class_weights=[[0.0, 0.0], [1.0, -1.0]])
    return batch


@pytest.fixture
def diagonal_weights():
    """Diagonal belief with means [1, 2, 3] and unit variances."""
    return DiagonalGaussian(np.ones(3), np.array([1.0, 2.0, 3.0]))


@pytest.fixture
def vector_weights():
    """Full-covariance belief with means [1, 2, 3] and unit variances."""
    return VectorGaussian(np.eye(3), np.array([1.0, 2.0, 3.0]))
