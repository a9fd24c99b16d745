"""
Unit tests for the sparse feature gather.

Scores gathered from sparse and dense views of the same item must agree,
and scattered sites must only touch the item's own features.
"""

import numpy as np
import pytest

import bpm.beliefs as beliefs_module
from bpm import (
    BayesPointMachine,
    DiagonalGaussian,
    Gaussian,
    Item,
    TrainingBatch,
    VectorGaussian,
    diagonal_point_mass,
    standard_prior,
)
from bpm.feature_gather import (
    divide_site,
    gather_score,
    multiply_site,
    scatter_message,
    score_to_inner_product,
)


class TestGatherScore:

    def test_diagonal_score_moments(self, diagonal_weights):
        item = Item([0, 2], [1.0, 2.0])
        score = gather_score(diagonal_weights, item, noise_precision=2.0)
        assert score.mean == pytest.approx(7.0)
        assert score.variance == pytest.approx(1.0 + 4.0 + 0.5)

    def test_dense_score_moments(self, vector_weights):
        item = Item([0, 2], [1.0, 2.0])
        score = gather_score(vector_weights, item, noise_precision=2.0)
        assert score.mean == pytest.approx(7.0)
        assert score.variance == pytest.approx(5.5)

    def test_sparse_and_dense_items_agree(self, diagonal_weights, vector_weights):
        x = [1.0, 0.0, 2.0]
        views = [Item.from_dense(x), Item.from_dense(x, value_to_ignore=0.0), Item([2, 0], [2.0, 1.0])]
        for weights in (diagonal_weights, vector_weights):
            scores = [gather_score(weights, item, 1.0) for item in views]
            for score in scores[1:]:
                assert score.mean == pytest.approx(scores[0].mean)
                assert score.variance == pytest.approx(scores[0].variance)

    def test_point_mass_score_is_noise_only(self):
        weights = diagonal_point_mass(np.zeros(3))
        score = gather_score(weights, Item.from_dense([1.0, 2.0, 3.0]), noise_precision=4.0)
        assert score.mean == 0.0
        assert score.variance == pytest.approx(0.25)

    def test_uninformed_feature_gives_uniform_score(self):
        weights = DiagonalGaussian(np.array([1.0, 0.0]), np.array([0.0, 0.0]))
        score = gather_score(weights, Item([0, 1], [1.0, 1.0]), noise_precision=1.0)
        assert score.is_uniform


class TestScatter:

    def test_noise_removed_from_message(self):
        inner = score_to_inner_product(Gaussian(1.0, 2.0), noise_precision=1.0)
        assert inner.precision == pytest.approx(0.5)
        assert inner.information == pytest.approx(1.0)

    def test_uniform_message_stays_uniform(self):
        assert score_to_inner_product(Gaussian(), 1.0).is_uniform

    def test_single_feature_sparse_matches_dense(self):
        item = Item([0], [2.0])
        message = Gaussian.from_mean_and_variance(1.5, 0.8)
        diag = DiagonalGaussian(np.array([1.0]), np.array([0.3]))
        dense = VectorGaussian(np.eye(1), np.array([0.3]))

        diag_after = multiply_site(diag, item, scatter_message(diag, item, message, 1.0))
        dense_after = multiply_site(dense, item, scatter_message(dense, item, message, 1.0))
        np.testing.assert_allclose(diag_after.precision, np.diag(dense_after.precision))
        np.testing.assert_allclose(diag_after.information, dense_after.information)

    def test_site_touches_only_item_features(self, diagonal_weights):
        item = Item([1], [1.0])
        message = Gaussian.from_mean_and_variance(0.0, 1.0)
        site = scatter_message(diagonal_weights, item, message, 1.0)
        after = multiply_site(diagonal_weights, item, site)
        np.testing.assert_array_equal(after.precision[[0, 2]], diagonal_weights.precision[[0, 2]])
        np.testing.assert_array_equal(after.information[[0, 2]], diagonal_weights.information[[0, 2]])
        assert after.precision[1] > diagonal_weights.precision[1]

    def test_zero_valued_feature_gets_no_site(self, diagonal_weights):
        item = Item([0, 1], [0.0, 2.0])
        site = scatter_message(diagonal_weights, item, Gaussian.from_mean_and_variance(1.0, 1.0), 1.0)
        assert site.precision[0] == 0.0
        assert site.precision[1] > 0.0

    def test_divide_site_undoes_multiply_site(self, diagonal_weights, vector_weights):
        item = Item([0, 2], [1.0, -1.0])
        message = Gaussian.from_mean_and_variance(0.5, 2.0)
        for weights in (diagonal_weights, vector_weights):
            site = scatter_message(weights, item, message, 1.0)
            restored = divide_site(multiply_site(weights, item, site), item, site)
            np.testing.assert_allclose(restored.precision, weights.precision, atol=1e-12)
            np.testing.assert_allclose(restored.information, weights.information, atol=1e-12)

    def test_point_mass_weights_are_never_updated(self):
        weights = diagonal_point_mass(np.zeros(2))
        item = Item([0, 1], [1.0, 1.0])
        site = scatter_message(weights, item, Gaussian.from_mean_and_variance(3.0, 1.0), 1.0)
        after = multiply_site(weights, item, site)
        assert after.is_point_mass
        np.testing.assert_array_equal(after.point, np.zeros(2))


class TestFullCovarianceLocality:
    """Full-covariance scoring and sites work on the item's own sub-block."""

    def test_score_matches_dense_quadratic_form(self, rng):
        m = rng.normal(size=(6, 6))
        weights = VectorGaussian(m @ m.T + np.eye(6), rng.normal(size=6))
        item = Item([4, 1], [0.5, -2.0])
        x = item.to_dense(6)
        covariance = np.linalg.inv(weights.precision)
        score = gather_score(weights, item, noise_precision=1.0)
        assert score.mean == pytest.approx(float(x @ covariance @ weights.information))
        assert score.variance == pytest.approx(float(x @ covariance @ x) + 1.0)

    def test_site_changes_only_named_block(self):
        weights = standard_prior(200)
        item = Item([3, 17], [1.0, -2.0])
        after = multiply_site(weights, item, Gaussian.from_mean_and_variance(0.5, 2.0))
        changed = {tuple(ij) for ij in np.argwhere(after.precision != weights.precision)}
        assert changed <= {(3, 3), (3, 17), (17, 3), (17, 17)}
        np.testing.assert_array_equal(np.flatnonzero(after.information != weights.information), [3, 17])
        np.testing.assert_allclose(after.covariance, np.linalg.inv(after.precision), atol=1e-12)

    def test_training_inverts_each_prior_once(self, monkeypatch):
        calls = []
        original = beliefs_module.safe_inverse

        def counting_inverse(precision):
            calls.append(precision.shape)
            return original(precision)

        monkeypatch.setattr(beliefs_module, "safe_inverse", counting_inverse)
        batch = TrainingBatch([[Item([0], [1.0])], [Item([3], [1.0]), Item([7], [2.0])]])
        weights = BayesPointMachine(2, 300, 1.0, n_iterations=2).train(batch)
        assert calls == [(300, 300)]
        np.testing.assert_allclose(weights[1].covariance, np.linalg.inv(weights[1].precision), atol=1e-10)
