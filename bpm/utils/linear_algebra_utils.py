#!/usr/bin/env python3
"""
Linear algebra utilities for natural-parameter Gaussian beliefs.
Contains precision-matrix conditioning and precision/mean conversions.
"""

import numpy as np
from typing import Tuple


def regularize_precision_matrix(precision: np.ndarray, reg_factor: float = 1e-8) -> np.ndarray:
    """
    Add regularization to precision matrix to prevent singularity.
    
    Args:
        precision: Input precision matrix
        reg_factor: Regularization factor (added to diagonal)
    
    Returns:
        Regularized precision matrix
    """
    return precision + reg_factor * np.eye(precision.shape[0])


def safe_precision_to_mean(precision: np.ndarray, information: np.ndarray) -> np.ndarray:
    """
    Safely convert precision/information form to mean.
    
    Args:
        precision: Precision matrix
        information: Information vector
    
    Returns:
        Mean vector (precision^(-1) * information)
    """
    try:
        return np.linalg.solve(precision, information)
    except np.linalg.LinAlgError:
        # Singular precision: minimum-norm solution
        return np.linalg.pinv(precision) @ information


def safe_inverse(precision: np.ndarray) -> np.ndarray:
    """Covariance from a possibly singular precision matrix."""
    try:
        return np.linalg.inv(precision)
    except np.linalg.LinAlgError:
        try:
            return np.linalg.inv(regularize_precision_matrix(precision))
        except np.linalg.LinAlgError:
            return np.linalg.pinv(precision)


def min_eigenvalue(precision: np.ndarray) -> float:
    """Smallest eigenvalue of a symmetric precision matrix."""
    if precision.size == 0:
        return np.inf
    return float(np.linalg.eigvalsh(0.5 * (precision + precision.T))[0])


def clamp_precision_matrix(
    precision: np.ndarray,
    information: np.ndarray,
    min_precision: float
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Floor the eigenvalues of a precision matrix, keeping the mean fixed.
    
    The symmetric part of the precision is eigendecomposed, every eigenvalue
    below ``min_precision`` is raised to it, and the information vector is
    recomputed from the mean implied by the original parameters.
    
    Args:
        precision: Precision matrix (possibly indefinite)
        information: Information vector
        min_precision: Eigenvalue floor
    
    Returns:
        (clamped_precision, clamped_information)
    """
    symmetric = 0.5 * (precision + precision.T)
    mean = np.linalg.pinv(symmetric) @ information
    eigenvalues, eigenvectors = np.linalg.eigh(symmetric)
    eigenvalues = np.maximum(eigenvalues, min_precision)
    clamped = (eigenvectors * eigenvalues) @ eigenvectors.T
    return clamped, clamped @ mean


def rank_one_precision(vector: np.ndarray, scale: float) -> np.ndarray:
    """Precision matrix ``scale * v v^T`` of a message along a single direction."""
    return scale * np.outer(vector, vector)


def sum_natural_parameters(
    precisions: list[np.ndarray],
    informations: list[np.ndarray]
) -> Tuple[np.ndarray, np.ndarray]:
    """
    Combine multiple Gaussian beliefs by summing precisions and information.
    
    Args:
        precisions: List of precision matrices (or diagonal precision vectors)
        informations: List of information vectors
    
    Returns:
        (combined_precision, combined_information)
    """
    if not precisions:
        raise ValueError("Empty precision list")
    
    combined_precision = np.zeros_like(precisions[0], dtype=float)
    combined_information = np.zeros_like(informations[0], dtype=float)
    
    for precision, information in zip(precisions, informations):
        combined_precision += precision
        combined_information += information
    
    return combined_precision, combined_information
