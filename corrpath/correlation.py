"""
corrpath/correlation.py
=======================
Correlation-matrix data model and validator.

A ``CorrelationMatrix`` maps ordered (row, column) variable pairs to a
``Cell`` holding the correlation ``r`` and the pairwise sample size ``n``.
Matrices are immutable: every edit returns a new matrix, and the diagonal is
forced to ``Cell(r=1.0, n=None)`` on every construction.

``None`` means "not supplied". A NaN or infinite value is an invalid entry
and is reported by ``validate`` rather than treated as missing.

Validation result structure
---------------------------
ValidationReport(
    ok       : bool,
    errors   : list[str],
    warnings : list[str],
    matrix   : CorrelationMatrix | None   # reconciled copy, only when ok
)
"""

from __future__ import annotations

import logging
import math
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Iterable, Mapping, Optional

import numpy as np
import pandas as pd

from corrpath.config import EngineConfig, resolve
from corrpath.errors import ModelSpecificationError

logger = logging.getLogger(__name__)

_UNSET = object()


def normalize_name(name) -> str:
    """Variables are case-insensitive and trimmed."""
    return str(name).strip().lower()


def _as_number(x, what: str) -> Optional[float]:
    if x is None:
        return None
    if isinstance(x, str) and not x.strip():
        return None
    try:
        return float(x)
    except (TypeError, ValueError):
        raise ModelSpecificationError(f"{what} is not a number: {x!r}") from None


def _is_finite(x: Optional[float]) -> bool:
    return x is not None and math.isfinite(x)


@dataclass(frozen=True)
class Cell:
    r: Optional[float] = None
    n: Optional[float] = None

    @classmethod
    def coerce(cls, raw) -> "Cell":
        """Accept a Cell, a {"r", "n"} dict, an (r, n) pair or a bare r."""
        if isinstance(raw, Cell):
            return raw
        if isinstance(raw, Mapping):
            return cls(_as_number(raw.get("r"), "r"), _as_number(raw.get("n"), "n"))
        if isinstance(raw, (tuple, list)):
            if len(raw) != 2:
                raise ModelSpecificationError(f"Cell must be (r, n), got {raw!r}")
            return cls(_as_number(raw[0], "r"), _as_number(raw[1], "n"))
        return cls(_as_number(raw, "r"), None)


DIAGONAL = Cell(1.0, None)
EMPTY = Cell(None, None)


# ---------------------------------------------------------------------------
# Reconciliation policy (the only place mismatched halves are combined)
# ---------------------------------------------------------------------------

def reconcile_r(r1: Optional[float], r2: Optional[float], tolerance: float) -> tuple[Optional[float], bool]:
    """Return (reconciled r, mismatch). Mismatched finite halves are averaged."""
    ok1, ok2 = _is_finite(r1), _is_finite(r2)
    if ok1 and ok2:
        if abs(r1 - r2) > tolerance:
            return (r1 + r2) / 2.0, True
        return r1, False
    if ok1:
        return r1, False
    if ok2:
        return r2, False
    return None, False


def reconcile_n(n1: Optional[float], n2: Optional[float], tolerance: float) -> tuple[Optional[float], bool]:
    """Return (reconciled n, mismatch). Mismatched finite halves use the minimum."""
    ok1, ok2 = _is_finite(n1), _is_finite(n2)
    if ok1 and ok2:
        if abs(n1 - n2) > tolerance:
            return min(n1, n2), True
        return n1, False
    if ok1:
        return n1, False
    if ok2:
        return n2, False
    return None, False


# ---------------------------------------------------------------------------
# Matrix
# ---------------------------------------------------------------------------

class CorrelationMatrix:
    """Immutable (row, column) -> Cell mapping over an ordered variable list."""

    __slots__ = ("_variables", "_cells")

    def __init__(self, variables: Iterable[str], cells: Optional[Mapping] = None):
        names = tuple(normalize_name(v) for v in variables)
        if any(not v for v in names):
            raise ModelSpecificationError("Variable names must be non-empty.")
        dup = next((v for i, v in enumerate(names) if v in names[:i]), None)
        if dup is not None:
            raise ModelSpecificationError(
                f'Duplicate variable name detected: "{dup}". Variable names must be unique.'
            )

        known = set(names)
        store: dict[tuple[str, str], Cell] = {}
        for (a, b), raw in (cells or {}).items():
            a, b = normalize_name(a), normalize_name(b)
            if a not in known or b not in known:
                raise ModelSpecificationError(f"Cell ({a}, {b}) references an unknown variable.")
            store[(a, b)] = Cell.coerce(raw)
        for v in names:
            store[(v, v)] = DIAGONAL

        self._variables = names
        self._cells = MappingProxyType(store)

    # -- construction -------------------------------------------------------

    @classmethod
    def empty(cls, variables: Iterable[str]) -> "CorrelationMatrix":
        names = [normalize_name(v) for v in variables]
        return cls(names, {(a, b): EMPTY for a in names for b in names if a != b})

    @classmethod
    def from_pairs(cls, variables: Iterable[str], pairs: Mapping) -> "CorrelationMatrix":
        """Build a symmetric matrix from {(a, b): (r, n)}; unlisted pairs are empty."""
        matrix = cls.empty(variables)
        cells = dict(matrix._cells)
        for (a, b), raw in pairs.items():
            cell = Cell.coerce(raw)
            a, b = normalize_name(a), normalize_name(b)
            cells[(a, b)] = cell
            cells[(b, a)] = cell
        return cls(matrix._variables, cells)

    @classmethod
    def from_nested(cls, nested: Mapping, variables: Optional[Iterable[str]] = None) -> "CorrelationMatrix":
        """Build from {row: {col: cell}} as-is; asymmetric halves are kept for the validator."""
        if variables is None:
            variables = list(nested.keys())
        names = [normalize_name(v) for v in variables]
        cells = {}
        for row, cols in nested.items():
            if not isinstance(cols, Mapping):
                raise ModelSpecificationError(f'Row "{row}" must map column names to cells.')
            for col, raw in cols.items():
                cells[(row, col)] = raw
        return cls(names, cells)

    @classmethod
    def from_frames(cls, r_frame: pd.DataFrame, n_frame: Optional[pd.DataFrame] = None) -> "CorrelationMatrix":
        """Build from a square DataFrame of r (and optionally one of n); NaN means missing."""
        variables = [str(c) for c in r_frame.columns]
        cells = {}
        for row in r_frame.index:
            for col in r_frame.columns:
                r = r_frame.loc[row, col]
                n = n_frame.loc[row, col] if n_frame is not None else None
                cells[(str(row), str(col))] = Cell(
                    None if pd.isna(r) else float(r),
                    None if n is None or pd.isna(n) else float(n),
                )
        return cls(variables, cells)

    # -- access -------------------------------------------------------------

    @property
    def variables(self) -> tuple[str, ...]:
        return self._variables

    def __len__(self) -> int:
        return len(self._variables)

    def __contains__(self, name) -> bool:
        return normalize_name(name) in self._variables

    def __eq__(self, other) -> bool:
        if not isinstance(other, CorrelationMatrix):
            return NotImplemented
        return self._variables == other._variables and dict(self._cells) == dict(other._cells)

    def __repr__(self) -> str:
        return f"CorrelationMatrix(variables={list(self._variables)})"

    def cell(self, a: str, b: str) -> Optional[Cell]:
        return self._cells.get((normalize_name(a), normalize_name(b)))

    def r(self, a: str, b: str) -> Optional[float]:
        c = self.cell(a, b)
        return None if c is None else c.r

    def pair_n(self, a: str, b: str, tolerance: float = 1e-6) -> Optional[float]:
        """Reconciled pairwise n for an unordered pair."""
        c1, c2 = self.cell(a, b) or EMPTY, self.cell(b, a) or EMPTY
        n, _ = reconcile_n(c1.n, c2.n, tolerance)
        return n

    def r_array(self, variables: Optional[Iterable[str]] = None) -> np.ndarray:
        """Correlations as a float array in ``variables`` order; missing r becomes NaN."""
        names = self._variables if variables is None else [normalize_name(v) for v in variables]
        out = np.full((len(names), len(names)), np.nan)
        for i, a in enumerate(names):
            for j, b in enumerate(names):
                val = self.r(a, b)
                if val is not None:
                    out[i, j] = val
        return out

    def to_frames(self) -> tuple[pd.DataFrame, pd.DataFrame]:
        """Return (r, n) DataFrames indexed by variable; missing values are NaN."""
        names = list(self._variables)
        n_vals = np.full((len(names), len(names)), np.nan)
        for i, a in enumerate(names):
            for j, b in enumerate(names):
                c = self.cell(a, b)
                if c is not None and c.n is not None:
                    n_vals[i, j] = c.n
        r_df = pd.DataFrame(self.r_array(), index=names, columns=names)
        n_df = pd.DataFrame(n_vals, index=names, columns=names)
        return r_df, n_df

    # -- edits (each returns a new matrix) ----------------------------------

    def set_pair(self, a: str, b: str, r=_UNSET, n=_UNSET) -> "CorrelationMatrix":
        """Write r and/or n to both (a, b) and (b, a). Diagonal pairs stay forced."""
        a, b = normalize_name(a), normalize_name(b)
        if a not in self._variables or b not in self._variables:
            raise ModelSpecificationError(f"Unknown variable in pair ({a}, {b}).")
        if a == b:
            return self
        old = self._cells.get((a, b), EMPTY)
        new = Cell(
            old.r if r is _UNSET else _as_number(r, "r"),
            old.n if n is _UNSET else _as_number(n, "n"),
        )
        cells = dict(self._cells)
        cells[(a, b)] = new
        cells[(b, a)] = new
        return CorrelationMatrix(self._variables, cells)

    def with_variables(self, variables: Iterable[str]) -> "CorrelationMatrix":
        """Re-shape to a new variable list, carrying over cells of retained variables."""
        target = CorrelationMatrix.empty(variables)
        cells = dict(target._cells)
        for (a, b), cell in self._cells.items():
            if (a, b) in cells and a != b:
                cells[(a, b)] = cell
        return CorrelationMatrix(target._variables, cells)


# ---------------------------------------------------------------------------
# Validation
# ---------------------------------------------------------------------------

@dataclass(frozen=True)
class ValidationReport:
    ok: bool
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)
    matrix: Optional[CorrelationMatrix] = None


def _fmt(x: float) -> str:
    return f"{x:g}"


def validate(
    variables: Iterable[str],
    matrix: CorrelationMatrix,
    config: Optional[EngineConfig] = None,
) -> ValidationReport:
    """
    Check a correlation matrix against a declared variable list.

    Findings are accumulated, never short-circuited, except that missing rows
    stop the cell checks. Mismatched symmetric halves are reconciled (mean r,
    minimum n) and reported as warnings. The input matrix is not modified;
    when valid, the report carries a reconciled copy restricted to
    ``variables`` in their declared order.

    Parameters:
        variables: Declared variable names (order defines matrix order)
        matrix: Matrix to check
        config: Tolerances and limits. Defaults to DEFAULT_CONFIG

    Returns:
        ValidationReport
    """
    cfg = resolve(config)
    errors: list[str] = []
    warnings: list[str] = []
    names = [normalize_name(v) for v in variables]

    # 1. rows and variable set
    if any(not v for v in names):
        errors.append("Variable names must be non-empty.")
    seen: set[str] = set()
    for v in names:
        if v in seen:
            errors.append(f'Duplicate variable name "{v}".')
        seen.add(v)
    if len(names) > cfg.max_variables:
        errors.append(
            f"Too many variables: {len(names)} (at most {len(cfg.base_variables)} base + "
            f"{cfg.max_extra_variables} additional = {cfg.max_variables})."
        )
    for v in names:
        if v and v not in matrix:
            errors.append(f'Missing row "{v}".')
    if errors:
        return ValidationReport(False, errors, warnings, None)

    # 2-3. diagonal
    for v in names:
        d = matrix.cell(v, v)
        if d is None:
            errors.append(f"Missing cell ({v}, {v}).")
        elif not _is_finite(d.r):
            errors.append(f"Invalid correlation r at ({v}, {v}).")
        elif abs(d.r - 1.0) > cfg.diagonal_tolerance:
            errors.append(f"Diagonal must be 1. Found ({v},{v})={_fmt(d.r)}.")

    # 2-6. off-diagonal pairs
    reconciled: dict[tuple[str, str], Cell] = {}
    for i, a in enumerate(names):
        for b in names[i + 1:]:
            c1, c2 = matrix.cell(a, b), matrix.cell(b, a)
            missing = [(x, y) for (x, y), c in (((a, b), c1), ((b, a), c2)) if c is None]
            for x, y in missing:
                errors.append(f"Missing cell ({x}, {y}).")
            if missing:
                continue

            invalid_r = False
            out_of_bounds: list[tuple[str, str, float]] = []
            for (x, y), c in (((a, b), c1), ((b, a), c2)):
                if c.r is not None and not math.isfinite(c.r):
                    errors.append(f"Invalid correlation r at ({x}, {y}).")
                    invalid_r = True
                elif _is_finite(c.r) and abs(c.r) >= 1.0:
                    out_of_bounds.append((x, y, c.r))

            r, r_mismatch = reconcile_r(c1.r, c2.r, cfg.symmetry_tolerance)

            # each half is bounds-checked before the halves are averaged;
            # a symmetric out-of-range pair is reported once
            if len(out_of_bounds) == 2 and not r_mismatch:
                out_of_bounds = out_of_bounds[:1]
            for x, y, value in out_of_bounds:
                errors.append(f"Correlation r out of bounds (-1,1) at ({x}, {y}): {_fmt(value)}.")
            if r is None and not invalid_r:
                errors.append(f"Missing correlation r at ({a}, {b}).")

            invalid_n = False
            for (x, y), c in (((a, b), c1), ((b, a), c2)):
                if c.n is not None and not math.isfinite(c.n):
                    errors.append(f"Missing/invalid sample size n at ({x}, {y}). Use r|n or r(n).")
                    invalid_n = True

            n, n_mismatch = reconcile_n(c1.n, c2.n, cfg.symmetry_tolerance)
            if n is None:
                if not invalid_n:
                    errors.append(f"Missing/invalid sample size n at ({a}, {b}). Use r|n or r(n).")
            elif n <= cfg.min_pairwise_n:
                errors.append(
                    f"Sample size n must be > {_fmt(cfg.min_pairwise_n)} at ({a}, {b}). Found n={_fmt(n)}."
                )

            # 5. symmetry
            if r_mismatch:
                warnings.append(
                    f"Matrix not symmetric in r: r({a},{b})={_fmt(c1.r)} != r({b},{a})={_fmt(c2.r)}. "
                    f"Using the mean {_fmt(r)}."
                )
            if n_mismatch:
                warnings.append(
                    f"n not symmetric: n({a},{b})={_fmt(c1.n)} != n({b},{a})={_fmt(c2.n)}. "
                    f"Using the smaller value {_fmt(n)}."
                )

            # 6. near-unity
            if r is not None and not out_of_bounds and cfg.near_unity_threshold <= abs(r) < 1.0:
                warnings.append(
                    f"Very high |r|≈1 between {a} and {b}. "
                    "This can make estimation unstable (singular)."
                )

            reconciled[(a, b)] = reconciled[(b, a)] = Cell(r, n)

    if errors:
        logger.debug("Validation failed with %d error(s)", len(errors))
        return ValidationReport(False, errors, warnings, None)

    return ValidationReport(True, errors, warnings, CorrelationMatrix(names, reconciled))
