"""
tests/unit/test_correlation.py
==============================
Tests for the correlation matrix model and validator: forced diagonal,
immutable edits, symmetry reconciliation and error accumulation.
"""
import math

import numpy as np
import pandas as pd
import pytest

from corrpath.config import EngineConfig
from corrpath.correlation import Cell, CorrelationMatrix, normalize_name, validate
from corrpath.errors import ModelSpecificationError


def _pair(r1, n1, r2, n2):
    return CorrelationMatrix.from_nested({
        "a": {"b": {"r": r1, "n": n1}},
        "b": {"a": {"r": r2, "n": n2}},
    })


class TestMatrixModel:
    def test_names_are_trimmed_and_case_insensitive(self):
        assert normalize_name("  Loyalty ") == "loyalty"
        m = CorrelationMatrix.empty(["Loyalty", "Value"])
        assert m.variables == ("loyalty", "value")
        assert "LOYALTY" in m

    def test_duplicate_names_rejected(self):
        with pytest.raises(ModelSpecificationError):
            CorrelationMatrix.empty(["a", " A "])

    def test_diagonal_is_forced(self):
        m = CorrelationMatrix(["a", "b"], {("a", "a"): Cell(0.5, 10), ("a", "b"): Cell(0.2, 50)})
        assert m.cell("a", "a") == Cell(1.0, None)
        assert m.cell("b", "b") == Cell(1.0, None)

    def test_set_pair_writes_both_slots_and_returns_new(self):
        m = CorrelationMatrix.empty(["a", "b"])
        m2 = m.set_pair("a", "b", r=0.3, n=120)
        assert m2.cell("a", "b") == m2.cell("b", "a") == Cell(0.3, 120.0)
        assert m.cell("a", "b") == Cell(None, None)

    def test_set_pair_partial_update(self):
        m = CorrelationMatrix.empty(["a", "b"]).set_pair("a", "b", r=0.3, n=120)
        m2 = m.set_pair("b", "a", n=80)
        assert m2.cell("a", "b") == Cell(0.3, 80.0)

    def test_set_pair_on_diagonal_is_ignored(self):
        m = CorrelationMatrix.empty(["a", "b"])
        assert m.set_pair("a", "a", r=0.2).cell("a", "a") == Cell(1.0, None)

    def test_with_variables_carries_over_cells(self):
        m = CorrelationMatrix.empty(["a", "b"]).set_pair("a", "b", r=0.3, n=120)
        m2 = m.with_variables(["a", "b", "c"])
        assert m2.variables == ("a", "b", "c")
        assert m2.cell("a", "b") == Cell(0.3, 120.0)
        assert m2.cell("a", "c") == Cell(None, None)
        assert m2.cell("c", "c") == Cell(1.0, None)

    def test_frames_round_trip(self, loyalty_matrix):
        r_df, n_df = loyalty_matrix.to_frames()
        assert r_df.loc["loyalty", "value"] == pytest.approx(0.545)
        assert math.isnan(n_df.loc["value", "value"])
        assert CorrelationMatrix.from_frames(r_df, n_df) == loyalty_matrix

    def test_from_frames_nan_is_missing(self):
        r_df = pd.DataFrame([[1.0, np.nan], [np.nan, 1.0]], index=["a", "b"], columns=["a", "b"])
        m = CorrelationMatrix.from_frames(r_df)
        assert m.cell("a", "b") == Cell(None, None)

    def test_non_numeric_cell_rejected(self):
        with pytest.raises(ModelSpecificationError):
            CorrelationMatrix.from_nested({"a": {"b": {"r": "high"}}, "b": {}})


class TestValidateHappyPath:
    def test_loyalty_table_is_valid(self, loyalty_vars, loyalty_matrix):
        report = validate(loyalty_vars, loyalty_matrix)
        assert report.ok
        assert report.errors == []
        assert report.warnings == []
        assert report.matrix == loyalty_matrix

    def test_validation_is_idempotent(self):
        report = validate(["a", "b"], _pair(0.5, 100, 0.3, 100))
        again = validate(["a", "b"], report.matrix)
        assert again.ok and again.warnings == []
        assert again.matrix == report.matrix

    def test_input_not_modified(self):
        m = _pair(0.5, 100, 0.3, 100)
        validate(["a", "b"], m)
        assert m.cell("a", "b") == Cell(0.5, 100.0)
        assert m.cell("b", "a") == Cell(0.3, 100.0)

    def test_reconciled_matrix_follows_declared_order(self, loyalty_matrix):
        report = validate(["quality", "value"], loyalty_matrix)
        assert report.matrix.variables == ("quality", "value")


class TestSymmetryReconciliation:
    def test_mismatched_r_is_averaged_with_one_warning(self):
        report = validate(["a", "b"], _pair(0.5, 100, 0.3, 100))
        assert report.ok
        assert len(report.warnings) == 1
        assert "not symmetric in r" in report.warnings[0]
        assert report.matrix.r("a", "b") == pytest.approx(0.4)
        assert report.matrix.r("b", "a") == pytest.approx(0.4)

    def test_mismatched_n_uses_minimum(self):
        report = validate(["a", "b"], _pair(0.5, 100, 0.5, 80))
        assert report.ok
        assert len(report.warnings) == 1
        assert report.matrix.cell("a", "b").n == 80.0
        assert report.matrix.cell("b", "a").n == 80.0

    def test_difference_within_tolerance_is_not_a_mismatch(self):
        report = validate(["a", "b"], _pair(0.5, 100, 0.5 + 1e-8, 100))
        assert report.warnings == []

    def test_single_defined_side_is_used(self):
        report = validate(["a", "b"], _pair(0.5, None, None, 100))
        assert report.ok
        assert report.warnings == []
        assert report.matrix.cell("b", "a") == Cell(0.5, 100.0)


class TestValidateErrors:
    def test_missing_row(self, loyalty_matrix):
        report = validate(["loyalty", "price"], loyalty_matrix)
        assert not report.ok
        assert report.errors == ['Missing row "price".']
        assert report.matrix is None

    def test_out_of_bounds_r(self):
        report = validate(["a", "b"], _pair(1.0, 100, 1.0, 100))
        assert not report.ok
        assert any("out of bounds" in e for e in report.errors)

    def test_out_of_bounds_half_is_not_averaged_away(self):
        report = validate(["a", "b"], _pair(1.5, 100, 0.1, 100))
        assert not report.ok
        assert report.errors == ["Correlation r out of bounds (-1,1) at (a, b): 1.5."]
        assert report.matrix is None

    def test_both_halves_out_of_bounds_reported_separately(self):
        report = validate(["a", "b"], _pair(1.5, 100, -2.0, 100))
        assert report.errors == [
            "Correlation r out of bounds (-1,1) at (a, b): 1.5.",
            "Correlation r out of bounds (-1,1) at (b, a): -2.",
        ]

    def test_non_finite_r_names_coordinate(self):
        report = validate(["a", "b"], _pair(float("nan"), 100, 0.5, 100))
        assert "Invalid correlation r at (a, b)." in report.errors

    def test_missing_r_on_both_sides(self):
        report = validate(["a", "b"], _pair(None, 100, None, 100))
        assert any("Missing correlation r" in e for e in report.errors)

    def test_small_n(self):
        report = validate(["a", "b"], _pair(0.5, 2, 0.5, 2))
        assert any("must be > 2" in e for e in report.errors)

    def test_missing_n(self):
        report = validate(["a", "b"], _pair(0.5, None, 0.5, None))
        assert any("sample size n" in e for e in report.errors)

    def test_findings_accumulate(self):
        m = CorrelationMatrix.from_pairs(
            ["a", "b", "c"],
            {("a", "b"): (1.5, 100), ("a", "c"): (0.2, 1), ("b", "c"): (None, 50)},
        )
        report = validate(["a", "b", "c"], m)
        assert len(report.errors) == 3

    def test_missing_cell(self):
        m = CorrelationMatrix(["a", "b"], {("a", "b"): Cell(0.5, 100)})
        report = validate(["a", "b"], m)
        assert "Missing cell (b, a)." in report.errors

    def test_variable_cap(self):
        cfg = EngineConfig(max_extra_variables=0)
        names = ["a", "b", "c", "d", "e"]
        report = validate(names, CorrelationMatrix.empty(names), cfg)
        assert not report.ok
        assert any("Too many variables" in e for e in report.errors)


class TestWarnings:
    def test_near_unity_warns_but_passes(self):
        report = validate(["a", "b"], _pair(0.9999995, 100, 0.9999995, 100))
        assert report.ok
        assert len(report.warnings) == 1
        assert "unstable" in report.warnings[0]
