"""
Unit tests for BayesPointMachine training.

Covers the anchor class, batch versus incremental training, validation
before any update, determinism and the dense/sparse agreement on a single
feature.
"""

import threading
import time

import numpy as np
import pytest

from bpm import (
    BayesPointMachine,
    DivergencePolicy,
    InferenceDivergence,
    InvalidDimension,
    Item,
    TrainingBatch,
)
from bpm.utils.data_utils import make_synthetic_data


class TestConstruction:

    @pytest.mark.parametrize("kwargs", [
        dict(n_classes=1, n_features=1, noise_precision=1.0),
        dict(n_classes=2, n_features=0, noise_precision=1.0),
        dict(n_classes=2, n_features=1, noise_precision=0.0),
        dict(n_classes=2, n_features=1, noise_precision=1.0, n_iterations=0),
    ])
    def test_invalid_arguments(self, kwargs):
        with pytest.raises(ValueError):
            BayesPointMachine(**kwargs)

    @pytest.mark.parametrize("sparse", [False, True])
    def test_canonical_priors(self, sparse):
        model = BayesPointMachine(3, 2, 1.0, sparse=sparse)
        priors = model.canonical_priors()
        assert priors[0].is_point_mass
        np.testing.assert_array_equal(priors[0].point, np.zeros(2))
        for prior in priors[1:]:
            np.testing.assert_array_equal(prior.mean, np.zeros(2))
        assert not model.is_trained


class TestTrain:

    @pytest.mark.parametrize("sparse", [False, True])
    def test_single_positive_item(self, single_item_batch, sparse):
        model = BayesPointMachine(2, 1, noise_precision=1.0, sparse=sparse)
        weights = model.train(single_item_batch)
        assert weights[1].mean[0] > 0.0
        assert weights[0].is_point_mass
        assert weights[0].point[0] == 0.0
        assert model.is_trained

    @pytest.mark.parametrize("sparse", [False, True])
    def test_anchor_stays_at_zero(self, separable_batch, sparse):
        model = BayesPointMachine(3, 2, noise_precision=1.0, sparse=sparse, n_iterations=3)
        weights = model.train(separable_batch)
        assert weights[0].is_point_mass
        np.testing.assert_array_equal(weights[0].point, np.zeros(2))

    def test_learns_separable_data(self, separable_batch):
        model = BayesPointMachine(3, 2, noise_precision=1.0, n_iterations=3)
        model.train(separable_batch)
        labels, items = zip(*separable_batch.labeled_items())
        predictions = model.test(list(items))
        accuracy = np.mean([p.mode == label for p, label in zip(predictions, labels)])
        assert accuracy >= 0.8

    def test_train_restarts_from_priors(self, single_item_batch):
        model = BayesPointMachine(2, 1, noise_precision=1.0)
        first = model.train(single_item_batch)
        second = model.train(single_item_batch)
        np.testing.assert_allclose(first[1].precision, second[1].precision)
        np.testing.assert_allclose(first[1].information, second[1].information)

    def test_deterministic(self, separable_batch):
        a = BayesPointMachine(3, 2, noise_precision=1.0).train(separable_batch)
        b = BayesPointMachine(3, 2, noise_precision=1.0).train(separable_batch)
        for wa, wb in zip(a[1:], b[1:]):
            np.testing.assert_array_equal(wa.precision, wb.precision)
            np.testing.assert_array_equal(wa.information, wb.information)

    def test_empty_batch_leaves_priors(self):
        model = BayesPointMachine(2, 2, noise_precision=1.0)
        weights = model.train(TrainingBatch([[], []]))
        np.testing.assert_array_equal(weights[1].precision, np.eye(2))
        np.testing.assert_array_equal(weights[1].information, np.zeros(2))

    def test_class_without_items(self):
        batch = TrainingBatch([[Item.from_dense([1.0])], [], [Item.from_dense([-1.0])]])
        model = BayesPointMachine(3, 1, noise_precision=1.0)
        weights = model.train(batch)
        # Class 1 only ever loses, yet still learns from both items
        assert weights[1].precision[0, 0] > 1.0
        assert np.isfinite(weights[1].mean[0])

    @pytest.mark.parametrize("n_iterations", [1, 4])
    def test_sparse_matches_dense_on_one_feature(self, n_iterations):
        batch = TrainingBatch.from_class_lists([[[-1.0], [-0.5]], [[2.0], [0.7], [1.5]]])
        dense = BayesPointMachine(2, 1, 1.0, n_iterations=n_iterations).train(batch)
        sparse = BayesPointMachine(2, 1, 1.0, sparse=True, n_iterations=n_iterations).train(batch)
        assert sparse[1].mean[0] == pytest.approx(dense[1].mean[0], abs=1e-9)
        assert sparse[1].variance[0] == pytest.approx(dense[1].covariance[0, 0], abs=1e-9)


class TestIncremental:

    def test_first_increment_equals_train(self, separable_batch):
        a = BayesPointMachine(3, 2, noise_precision=1.0).train_incremental(separable_batch)
        b = BayesPointMachine(3, 2, noise_precision=1.0).train(separable_batch)
        np.testing.assert_allclose(a[1].precision, b[1].precision)
        np.testing.assert_allclose(a[2].information, b[2].information)

    def test_second_increment_builds_on_posterior(self, single_item_batch):
        model = BayesPointMachine(2, 1, noise_precision=1.0)
        first = model.train_incremental(single_item_batch)
        second = model.train_incremental(single_item_batch)
        assert second[1].precision[0, 0] > first[1].precision[0, 0]

    def test_reset(self, single_item_batch):
        model = BayesPointMachine(2, 1, noise_precision=1.0)
        model.train(single_item_batch)
        model.reset()
        assert not model.is_trained
        np.testing.assert_array_equal(model.weights[1].precision, np.eye(1))


class TestValidation:

    def test_out_of_range_feature_leaves_beliefs(self, single_item_batch):
        model = BayesPointMachine(2, 1, noise_precision=1.0)
        before = model.train(single_item_batch)
        bad = TrainingBatch([[Item.from_dense([1.0])], [Item([0, 3], [1.0, 1.0])]])
        with pytest.raises(InvalidDimension):
            model.train_incremental(bad)
        after = model.weights
        np.testing.assert_array_equal(before[1].precision, after[1].precision)
        np.testing.assert_array_equal(before[1].information, after[1].information)

    def test_wrong_class_count(self):
        model = BayesPointMachine(3, 1, noise_precision=1.0)
        with pytest.raises(InvalidDimension):
            model.train(TrainingBatch([[], []]))

    def test_divergence_propagates_without_update(self, single_item_batch, monkeypatch):
        model = BayesPointMachine(2, 1, noise_precision=1.0,
                                  divergence_policy=DivergencePolicy.RAISE)

        def diverge(scores, winner):
            raise InferenceDivergence("ranking constraint", -1.0)

        monkeypatch.setattr(model.factor, "constrain_argmax", diverge)
        with pytest.raises(InferenceDivergence):
            model.train(single_item_batch)
        assert not model.is_trained
        np.testing.assert_array_equal(model.weights[1].precision, np.eye(1))


class TestSyntheticData:

    def test_sparse_items_train(self):
        batch, _ = make_synthetic_data(3, 40, 5, seed=11, sparsity=0.5)
        model = BayesPointMachine(3, 5, noise_precision=1.0, sparse=True)
        weights = model.train(batch)
        for w in weights[1:]:
            assert np.all(np.isfinite(w.mean))
            assert np.all(w.precision > 0.0)


class TestConcurrency:

    def test_overlapping_first_increments_both_apply(self, monkeypatch):
        batch_a = TrainingBatch([[Item.from_dense([-1.0])], [Item.from_dense([1.0])]])
        batch_b = TrainingBatch([[], [Item.from_dense([2.0]), Item.from_dense([0.5])]])

        def serial(first, second):
            model = BayesPointMachine(2, 1, noise_precision=1.0)
            model.train_incremental(first)
            return model.train_incremental(second)[1].precision[0, 0]

        expected = [serial(batch_a, batch_b), serial(batch_b, batch_a)]

        model = BayesPointMachine(2, 1, noise_precision=1.0)
        original_infer = model.infer

        def slow_infer(*args, **kwargs):
            time.sleep(0.1)
            return original_infer(*args, **kwargs)

        monkeypatch.setattr(model, "infer", slow_infer)
        threads = [threading.Thread(target=model.train_incremental, args=(batch,))
                   for batch in (batch_a, batch_b)]
        for thread in threads:
            thread.start()
            time.sleep(0.02)
        for thread in threads:
            thread.join()

        precision = model.weights[1].precision[0, 0]
        assert any(precision == pytest.approx(e, abs=1e-12) for e in expected)
        assert precision > BayesPointMachine(2, 1, 1.0).train(batch_b)[1].precision[0, 0]
