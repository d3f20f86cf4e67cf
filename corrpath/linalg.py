"""
corrpath/linalg.py
==================
Small dense-matrix kernel used by every estimation stage.

Matrices here are a handful of variables wide, so inverse and determinant
are done by explicit pivoted elimination rather than LAPACK: a pivot below
the tolerance must surface as a ``SingularMatrixError`` naming what was
being inverted, never as a silently huge or NaN result.
"""

from __future__ import annotations

import numpy as np

from corrpath.errors import SingularMatrixError

PIVOT_TOLERANCE = 1e-12


def identity(n: int) -> np.ndarray:
    return np.eye(n, dtype=float)


def clone(A) -> np.ndarray:
    return np.array(A, dtype=float, copy=True)


def transpose(A) -> np.ndarray:
    return np.asarray(A, dtype=float).T.copy()


def multiply(A, B) -> np.ndarray:
    return np.asarray(A, dtype=float) @ np.asarray(B, dtype=float)


def mat_vec(A, v) -> np.ndarray:
    return np.asarray(A, dtype=float) @ np.asarray(v, dtype=float)


def dot(a, b) -> float:
    return float(np.dot(np.asarray(a, dtype=float), np.asarray(b, dtype=float)))


def trace(A) -> float:
    return float(np.trace(np.asarray(A, dtype=float)))


def _pivot_row(M: np.ndarray, col: int) -> int:
    """Row index (>= col) holding the largest |value| in column ``col``."""
    return col + int(np.argmax(np.abs(M[col:, col])))


def inverse(A, context: str = "matrix", tolerance: float = PIVOT_TOLERANCE) -> np.ndarray:
    """
    Invert a square matrix by Gauss-Jordan elimination with partial pivoting.

    Parameters:
        A: Square, finite matrix
        context: What is being inverted; used in the error message
        tolerance: Smallest acceptable pivot magnitude

    Returns:
        The inverse as a new array

    Raises:
        SingularMatrixError: if a pivot falls below ``tolerance``
    """
    M = clone(A)
    n = M.shape[0]
    inv = identity(n)

    for col in range(n):
        pivot = _pivot_row(M, col)
        if abs(M[pivot, col]) < tolerance:
            raise SingularMatrixError(
                f"Matrix is singular: cannot invert {context}. "
                "Consider removing or adjusting variables or paths.",
                operation=context,
            )
        if pivot != col:
            M[[col, pivot]] = M[[pivot, col]]
            inv[[col, pivot]] = inv[[pivot, col]]

        piv = M[col, col]
        M[col] /= piv
        inv[col] /= piv

        for r in range(n):
            if r == col:
                continue
            factor = M[r, col]
            if factor != 0.0:
                M[r] -= factor * M[col]
                inv[r] -= factor * inv[col]

    return inv


def determinant(A, tolerance: float = PIVOT_TOLERANCE) -> float:
    """
    Determinant by pivoted forward elimination.

    Returns exactly 0.0 when a pivot is numerically zero; never raises, since
    a zero determinant is how callers detect a non-positive-definite matrix.
    """
    M = clone(A)
    n = M.shape[0]
    det = 1.0

    for i in range(n):
        pivot = _pivot_row(M, i)
        if abs(M[pivot, i]) < tolerance:
            return 0.0
        if pivot != i:
            M[[i, pivot]] = M[[pivot, i]]
            det = -det
        det *= M[i, i]
        if i + 1 < n:
            factors = M[i + 1:, i] / M[i, i]
            M[i + 1:, i:] -= np.outer(factors, M[i, i:])

    return float(det)
