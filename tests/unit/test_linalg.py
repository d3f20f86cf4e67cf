"""
tests/unit/test_linalg.py
=========================
Tests for the pivoted inverse / determinant kernel.
"""
import numpy as np
import pytest

from corrpath import linalg
from corrpath.errors import SingularMatrixError


class TestInverse:
    def test_inverse_times_matrix_is_identity(self):
        A = np.array([[1.0, 0.5, 0.3], [0.5, 1.0, 0.2], [0.3, 0.2, 1.0]])
        inv = linalg.inverse(A)
        np.testing.assert_allclose(linalg.multiply(A, inv), np.eye(3), atol=1e-12)

    def test_inverse_needs_row_swap(self):
        A = np.array([[0.0, 1.0], [1.0, 0.0]])
        np.testing.assert_allclose(linalg.inverse(A), A)

    def test_inverse_does_not_modify_input(self):
        A = np.array([[2.0, 1.0], [1.0, 3.0]])
        before = A.copy()
        linalg.inverse(A)
        np.testing.assert_array_equal(A, before)

    def test_singular_raises_with_context(self):
        A = np.array([[1.0, 1.0], [1.0, 1.0]])
        with pytest.raises(SingularMatrixError) as exc:
            linalg.inverse(A, context="parent-correlation submatrix for path estimation of y")
        assert "path estimation of y" in str(exc.value)
        assert exc.value.operation.endswith("of y")

    def test_tiny_pivot_counts_as_singular(self):
        A = np.array([[1e-13, 0.0], [0.0, 1.0]])
        with pytest.raises(SingularMatrixError):
            linalg.inverse(A)


class TestDeterminant:
    def test_identity(self):
        assert linalg.determinant(np.eye(4)) == pytest.approx(1.0)

    def test_two_by_two(self):
        A = np.array([[1.0, 0.6], [0.6, 1.0]])
        assert linalg.determinant(A) == pytest.approx(0.64)

    def test_row_swap_flips_sign(self):
        assert linalg.determinant(np.array([[0.0, 1.0], [1.0, 0.0]])) == pytest.approx(-1.0)

    def test_singular_returns_exact_zero(self):
        A = np.array([[1.0, 2.0], [2.0, 4.0]])
        assert linalg.determinant(A) == 0.0

    def test_matches_numpy(self):
        A = np.array([[1.0, 0.3, -0.2], [0.3, 1.0, 0.4], [-0.2, 0.4, 1.0]])
        assert linalg.determinant(A) == pytest.approx(np.linalg.det(A))


class TestHelpers:
    def test_trace_dot_transpose(self):
        A = np.array([[1.0, 2.0], [3.0, 4.0]])
        assert linalg.trace(A) == 5.0
        assert linalg.dot([1, 2], [3, 4]) == 11.0
        np.testing.assert_array_equal(linalg.transpose(A), A.T)
        np.testing.assert_array_equal(linalg.mat_vec(A, [1, 1]), [3.0, 7.0])

    def test_clone_is_independent(self):
        A = np.eye(2)
        B = linalg.clone(A)
        B[0, 0] = 5.0
        assert A[0, 0] == 1.0
