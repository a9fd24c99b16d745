#!/usr/bin/env python3
"""
Bayes Point Machine demo driver
Trains each model variant on a labelled data file (or synthetic data) and
prints the predictive distribution for a few test items
"""

import argparse
import structlog
from bpm import BayesPointMachine, SharedBayesPointMachine, Item
from bpm.config import settings
from bpm.logging_config import configure_logging
from bpm.utils.data_utils import (
    feature_count,
    make_sparse,
    make_synthetic_data,
    read_labeled_data,
    split_into_chunks
)

logger = structlog.get_logger(__name__)

VARIANTS = ['bpm', 'incremental', 'shared', 'sparse', 'sparse-shared']


def load_chunks(args):
    """Return the full training batch and its chunks (sets args.n_features from a data file)."""
    if args.data:
        batch, _ = read_labeled_data(args.data, args.n_classes)
        n_features = feature_count(batch)
        if n_features != args.n_features:
            logger.info("Feature count taken from data file", n_features=n_features,
                        requested=args.n_features)
            args.n_features = n_features
    else:
        batch, _ = make_synthetic_data(args.n_classes, args.n_items, args.n_features,
                                       seed=args.seed, sparsity=0.5)
    return batch, split_into_chunks(batch, args.chunk_size)


def default_test_items(n_features):
    """One-hot style test items, dense and sparse forms of the same vectors."""
    dense = []
    for f, value in [(0, 2.1), (min(2, n_features - 1), 1.3)]:
        x = [0.0] * n_features
        x[f] = value
        dense.append(x)
    sparse = [Item.from_dense(x, settings.VALUE_TO_IGNORE) for x in dense]
    return dense, sparse


def run_variant(variant, args, batch, chunks):
    """Train one variant; returns (predictions, weight history per pass)."""
    common = dict(
        noise_precision=args.noise_precision,
        n_iterations=args.iterations,
        divergence_policy=settings.DIVERGENCE_POLICY,
        min_precision=settings.MIN_PRECISION,
        prior_precision=settings.PRIOR_PRECISION
    )
    dense_test, sparse_test = default_test_items(args.n_features)
    history = []
    
    if variant == 'bpm':
        model = BayesPointMachine(args.n_classes, args.n_features, **common)
        history.append(model.train(batch))
        return model.test(dense_test), history
    
    if variant == 'incremental':
        model = BayesPointMachine(args.n_classes, args.n_features, **common)
        for chunk in chunks:
            history.append(model.train_incremental(chunk))
        return model.test(dense_test), history
    
    if variant == 'sparse':
        model = BayesPointMachine(args.n_classes, args.n_features, sparse=True, **common)
        history.append(model.train(make_sparse(batch, settings.VALUE_TO_IGNORE)))
        return model.test(sparse_test), history
    
    sparse = variant == 'sparse-shared'
    n_passes = settings.SPARSE_N_PASSES if sparse else args.passes
    model = SharedBayesPointMachine(args.n_classes, args.n_features, n_chunks=len(chunks),
                                    sparse=sparse, **common)
    if sparse:
        chunks = [make_sparse(chunk, settings.VALUE_TO_IGNORE) for chunk in chunks]
    for _ in range(n_passes):
        for chunk_index, chunk in enumerate(chunks):
            weights = model.train(chunk, chunk_index)
        history.append(weights)
    return model.test(sparse_test if sparse else dense_test), history


def main():
    """Main function with argument parsing."""
    parser = argparse.ArgumentParser(description='Bayes Point Machine')
    
    parser.add_argument('-v', '--variant', type=str, choices=VARIANTS + ['all'], default='all',
                        help='Model variant to run')
    
    parser.add_argument('-f', '--data', type=str, default=None,
                        help='Data file with lines "classId v1 ... vF" (synthetic data if omitted)')
    
    parser.add_argument('-k', '--n-classes', type=int, default=settings.N_CLASSES,
                        help='Number of classes')
    
    parser.add_argument('-n', '--n-features', type=int, default=settings.N_FEATURES,
                        help='Number of features')
    
    parser.add_argument('--n-items', type=int, default=30,
                        help='Number of synthetic items')
    
    parser.add_argument('--noise-precision', type=float, default=settings.NOISE_PRECISION,
                        help='Precision of the score noise')
    
    parser.add_argument('--chunk-size', type=int, default=settings.CHUNK_SIZE,
                        help='Items per chunk for incremental and shared training')
    
    parser.add_argument('--passes', type=int, default=settings.N_PASSES,
                        help='Passes over the chunks for shared training')
    
    parser.add_argument('--iterations', type=int, default=settings.N_ITERATIONS,
                        help='EP sweeps per training call')
    
    parser.add_argument('--seed', type=int, default=0,
                        help='Seed for synthetic data')
    
    parser.add_argument('--show-weights', action='store_true',
                        help='Print the posterior weight beliefs')
    
    parser.add_argument('--plot', action='store_true',
                        help='Plot weight convergence and predictions')
    
    args = parser.parse_args()
    configure_logging(settings.LOG_LEVEL, settings.ENVIRONMENT)
    
    batch, chunks = load_chunks(args)
    variants = VARIANTS if args.variant == 'all' else [args.variant]
    
    for variant in variants:
        print(f"\n------- {variant} -------")
        predictions, history = run_variant(variant, args, batch, chunks)
        if args.show_weights:
            for c, weight in enumerate(history[-1]):
                print(f"w_{c}: {weight}")
        print("\nPredictions:")
        for prediction in predictions:
            print(prediction)
        
        if args.plot:
            import matplotlib.pyplot as plt
            from bpm.visualization import plot_predictions, plot_weight_trajectories
            plot_weight_trajectories(history).suptitle(variant)
            plot_predictions(predictions).suptitle(variant)
            plt.show()


if __name__ == "__main__":
    main()
