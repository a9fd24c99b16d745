#!/usr/bin/env python3
"""
Data utilities: reading labelled feature files and generating demo data.

File format: one item per line, ``classId v1 v2 ... vF``, fields separated
by tabs, spaces or commas.
"""

import re
import numpy as np
from typing import Iterator, Optional, Sequence, Tuple

from ..exceptions import InvalidDimension
from ..items import Item, TrainingBatch

FIELD_SEPARATOR = re.compile(r"[\t ,]+")


def parse_line(line: str, n_classes: int) -> Tuple[int, np.ndarray]:
    """Split one line into (class id, feature vector)."""
    pieces = FIELD_SEPARATOR.split(line.strip())
    label = int(pieces[0])
    if not 0 <= label < n_classes:
        raise InvalidDimension(f"Class id {label} out of range [0, {n_classes})")
    return label, np.array([float(p) for p in pieces[1:]])


def read_labeled_data(
    path: str,
    n_classes: int,
    max_items: Optional[int] = None,
    start: int = 0
) -> Tuple[TrainingBatch, int]:
    """
    Read up to ``max_items`` labelled items starting at line ``start``.
    
    Args:
        path: Path of the data file
        n_classes: Number of classes
        max_items: Maximum number of items to read (None reads to the end)
        start: Line number to start from
    
    Returns:
        (batch of dense items grouped by class, line number to continue from)
    """
    items_by_class = [[] for _ in range(n_classes)]
    n_features = None
    location = 0
    n_read = 0
    with open(path) as f:
        for line in f:
            if location < start:
                location += 1
                continue
            if max_items is not None and n_read >= max_items:
                break
            location += 1
            if not line.strip():
                continue
            label, x = parse_line(line, n_classes)
            if n_features is None:
                n_features = x.shape[0]
            elif x.shape[0] != n_features:
                raise InvalidDimension(
                    f"Line {location} has {x.shape[0]} features, expected {n_features}"
                )
            items_by_class[label].append(Item.from_dense(x))
            n_read += 1
    return TrainingBatch(items_by_class), location


def iter_chunks(path: str, n_classes: int, chunk_size: int) -> Iterator[TrainingBatch]:
    """Yield successive chunks of at most ``chunk_size`` items."""
    location = 0
    while True:
        batch, location = read_labeled_data(path, n_classes, chunk_size, location)
        if len(batch) == 0:
            return
        yield batch


def make_sparse(batch: TrainingBatch, value_to_ignore: float = 0.0) -> TrainingBatch:
    """Drop every feature whose value equals ``value_to_ignore``."""
    return TrainingBatch([
        [_drop_value(item, value_to_ignore) for item in items]
        for items in batch.items_by_class
    ])


def _drop_value(item: Item, value_to_ignore: float) -> Item:
    keep = item.values != value_to_ignore
    return Item(item.indices[keep], item.values[keep])


def split_into_chunks(batch: TrainingBatch, chunk_size: int) -> list[TrainingBatch]:
    """Split a batch into chunks of ``chunk_size`` items in class-major order."""
    labeled = list(batch.labeled_items())
    chunks = []
    for begin in range(0, len(labeled), chunk_size):
        chunks.append(TrainingBatch.from_labeled(labeled[begin:begin + chunk_size], batch.n_classes))
    return chunks


def make_synthetic_data(
    n_classes: int,
    n_items: int,
    n_features: int,
    seed: int = 0,
    sparsity: float = 0.0,
    class_weights: Optional[Sequence[np.ndarray]] = None
) -> Tuple[TrainingBatch, np.ndarray]:
    """
    Generate items labelled by the argmax of linear class scores.
    
    Args:
        n_classes: Number of classes
        n_items: Number of items
        n_features: Number of features
        seed: Random seed
        sparsity: Fraction of feature values zeroed out
        class_weights: True weights per class (random if None)
    
    Returns:
        (batch of dense items, true weights with shape (n_classes, n_features))
    """
    rng = np.random.default_rng(seed)
    if class_weights is None:
        weights = rng.normal(size=(n_classes, n_features))
        weights[0] = 0.0
    else:
        weights = np.asarray(class_weights, dtype=float)
    
    x = rng.normal(size=(n_items, n_features))
    if sparsity > 0.0:
        x[rng.random(size=x.shape) < sparsity] = 0.0
    labels = np.argmax(x @ weights.T, axis=1)
    
    pairs = [(int(label), Item.from_dense(row)) for label, row in zip(labels, x)]
    return TrainingBatch.from_labeled(pairs, n_classes), weights


def feature_count(batch: TrainingBatch) -> int:
    """Number of features spanned by a batch (largest index plus one)."""
    widths = [int(item.indices.max()) + 1 for _, item in batch.labeled_items() if len(item)]
    if not widths:
        raise InvalidDimension("Batch has no feature values")
    return max(widths)
