"""
Dense linear algebra used by homography estimation and inversion.

Provides:
1. Gaussian elimination with partial pivoting on an augmented matrix
2. 3x3 matrix inversion via the adjugate (cofactor) method

Both signal singular input by raising SingularMatrixError; no fallback
solution is ever substituted.
"""

import logging
from typing import Union

import numpy as np

from src.rectification.errors import SingularMatrixError

logger = logging.getLogger(__name__)

DEFAULT_EPSILON = 1e-12


def solve(augmented: Union[np.ndarray, list], epsilon: float = DEFAULT_EPSILON) -> np.ndarray:
    """
    Solve a square linear system given as an n x (n+1) augmented matrix.

    At each column the row with the largest-magnitude entry in the active
    column is swapped into the pivot position before elimination.

    Args:
        augmented: Matrix [A | b] with shape (n, n+1).
        epsilon: Pivot magnitude below which the system is singular.

    Returns:
        Solution vector x of shape (n,) such that A @ x = b.

    Raises:
        ValueError: If the matrix is not n x (n+1).
        SingularMatrixError: If a chosen pivot is smaller than epsilon.

    Example:
        >>> solve([[2, 1, 5], [1, 3, 10]])
        array([1., 3.])
    """
    a = np.array(augmented, dtype=np.float64)

    if a.ndim != 2 or a.shape[0] == 0 or a.shape[1] != a.shape[0] + 1:
        raise ValueError(f"Expected an n x (n+1) augmented matrix, got shape {a.shape}")

    n = a.shape[0]

    for col in range(n):
        pivot_row = col + int(np.argmax(np.abs(a[col:, col])))
        pivot = a[pivot_row, col]

        if abs(pivot) < epsilon:
            logger.debug(f"Pivot {pivot:.3e} below {epsilon:.0e} at column {col}")
            raise SingularMatrixError(
                f"Linear system is singular: pivot {abs(pivot):.3e} at column {col} "
                f"is below {epsilon:.0e}"
            )

        if pivot_row != col:
            a[[col, pivot_row]] = a[[pivot_row, col]]

        # Eliminate below the pivot
        factors = a[col + 1 :, col] / a[col, col]
        a[col + 1 :, col:] -= np.outer(factors, a[col, col:])

    # Back-substitution on the upper-triangular system
    x = np.zeros(n, dtype=np.float64)
    for row in range(n - 1, -1, -1):
        x[row] = (a[row, n] - np.dot(a[row, row + 1 : n], x[row + 1 :])) / a[row, row]

    return x


def invert_3x3(m: Union[np.ndarray, list], epsilon: float = DEFAULT_EPSILON) -> np.ndarray:
    """
    Invert a 3x3 matrix with the adjugate method.

    Args:
        m: Matrix of shape (3, 3).
        epsilon: Determinant magnitude below which the matrix is singular.

    Returns:
        Inverse matrix of shape (3, 3).

    Raises:
        ValueError: If m is not 3x3.
        SingularMatrixError: If |det(m)| < epsilon.
    """
    m = np.asarray(m, dtype=np.float64)
    if m.shape != (3, 3):
        raise ValueError(f"Expected a 3x3 matrix, got shape {m.shape}")

    (a, b, c), (d, e, f), (g, h, i) = m

    # Cofactors
    c00 = e * i - f * h
    c01 = -(d * i - f * g)
    c02 = d * h - e * g
    c10 = -(b * i - c * h)
    c11 = a * i - c * g
    c12 = -(a * h - b * g)
    c20 = b * f - c * e
    c21 = -(a * f - c * d)
    c22 = a * e - b * d

    det = a * c00 + b * c01 + c * c02
    if abs(det) < epsilon:
        raise SingularMatrixError(
            f"Matrix is singular: |det| = {abs(det):.3e} is below {epsilon:.0e}"
        )

    # Adjugate is the transposed cofactor matrix
    adjugate = np.array(
        [
            [c00, c10, c20],
            [c01, c11, c21],
            [c02, c12, c22],
        ],
        dtype=np.float64,
    )
    return adjugate / det
