#!/usr/bin/env python3
"""
Items and training batches.

An item is a pair of parallel arrays (feature indices, feature values).
Dense items simply name every feature. Training batches group items by
their class label, class 0 first, which is the order training visits them.
"""

import numpy as np
from dataclasses import dataclass, field
from typing import Iterator, List, Optional, Sequence, Tuple

from .exceptions import InvalidDimension


@dataclass
class Item:
    """A single example: values[i] is the value of feature indices[i]."""
    indices: np.ndarray
    values: np.ndarray

    def __post_init__(self):
        self.indices = np.asarray(self.indices, dtype=int).reshape(-1)
        self.values = np.asarray(self.values, dtype=float).reshape(-1)
        if self.indices.shape[0] != self.values.shape[0]:
            raise InvalidDimension(
                f"Item has {self.indices.shape[0]} indices but {self.values.shape[0]} values"
            )
        if np.unique(self.indices).shape[0] != self.indices.shape[0]:
            raise InvalidDimension("Item has duplicate feature indices")

    @classmethod
    def from_dense(cls, x: Sequence[float], value_to_ignore: Optional[float] = None) -> "Item":
        """
        Build an item from a full feature vector.
        
        Args:
            x: Feature vector
            value_to_ignore: Entries equal to this value are left out of the
                item; None keeps every entry
        """
        x = np.asarray(x, dtype=float).reshape(-1)
        if value_to_ignore is None:
            return cls(np.arange(x.shape[0]), x)
        keep = np.flatnonzero(x != value_to_ignore)
        return cls(keep, x[keep])

    def __len__(self) -> int:
        return self.indices.shape[0]

    def to_dense(self, n_features: int) -> np.ndarray:
        x = np.zeros(n_features)
        x[self.indices] = self.values
        return x

    def validate(self, n_features: int):
        """Raise InvalidDimension unless every index lies in [0, n_features)."""
        if len(self) and (self.indices.min() < 0 or self.indices.max() >= n_features):
            raise InvalidDimension(
                f"Feature index out of range [0, {n_features}): {self.indices.tolist()}"
            )


def as_item(item, value_to_ignore: Optional[float] = None,
            n_features: Optional[int] = None) -> Item:
    """Accept an Item or a dense feature vector (checked against n_features when given)."""
    if isinstance(item, Item):
        return item
    x = np.asarray(item, dtype=float).reshape(-1)
    if n_features is not None and x.shape[0] != n_features:
        raise InvalidDimension(f"Dense item has {x.shape[0]} features, expected {n_features}")
    return Item.from_dense(x, value_to_ignore)


@dataclass
class TrainingBatch:
    """Items grouped by class; items_by_class[c] are the items labelled c."""
    items_by_class: List[List[Item]] = field(default_factory=list)

    @classmethod
    def from_class_lists(cls, data: Sequence[Sequence], value_to_ignore: Optional[float] = None) -> "TrainingBatch":
        """Build a batch from per-class lists of items or dense vectors."""
        return cls([[as_item(x, value_to_ignore) for x in items] for items in data])

    @classmethod
    def from_labeled(cls, pairs: Sequence[Tuple[int, object]], n_classes: int) -> "TrainingBatch":
        """Build a batch from (label, item) pairs."""
        items_by_class = [[] for _ in range(n_classes)]
        for label, item in pairs:
            if not 0 <= label < n_classes:
                raise InvalidDimension(f"Class label {label} out of range [0, {n_classes})")
            items_by_class[label].append(as_item(item))
        return cls(items_by_class)

    @property
    def n_classes(self) -> int:
        return len(self.items_by_class)

    def __len__(self) -> int:
        return sum(len(items) for items in self.items_by_class)

    def class_counts(self) -> List[int]:
        return [len(items) for items in self.items_by_class]

    def labeled_items(self) -> Iterator[Tuple[int, Item]]:
        """Iterate (label, item) in class-major order."""
        for label, items in enumerate(self.items_by_class):
            for item in items:
                yield label, item

    def validate(self, n_classes: int, n_features: int):
        """Check the whole batch before any belief is updated."""
        if self.n_classes != n_classes:
            raise InvalidDimension(
                f"Batch has {self.n_classes} classes, model has {n_classes}"
            )
        for _, item in self.labeled_items():
            item.validate(n_features)
