"""
corrpath/results.py
===================
Containers returned by a run, plus dict/DataFrame views for callers.

Result structure (``EstimationResult.to_dict``)
-----------------------------------------------
{
  "variables": list[str],
  "endogenous_vars": list[str],
  "exogenous_vars": list[str],
  "path_coefficients": [{"from": str, "to": str, "estimate": float}, ...],
  "r_squared": {var: float, ...},
  "residual_variances": {var: float, ...},
  "total_effects": [{"from", "to", "direct", "indirect", "total"}, ...],
  "indirect_effects": [{"route": list[str], "from", "to", "estimate"}, ...],
  "fit_indices": {...FitStatistics fields...},
  "implied_matrix": {row: {col: float}}
}
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Optional

import numpy as np
import pandas as pd

from corrpath.effects import Effect, IndirectPath
from corrpath.estimation import Coefficient
from corrpath.fit import FitStatistics


@dataclass(frozen=True, eq=False)
class EstimationResult:
    variables: tuple[str, ...]
    endogenous: tuple[str, ...]
    coefficients: list[Coefficient]
    r2: dict[str, float]
    residual_variance: dict[str, float]
    fit: FitStatistics
    implied: np.ndarray
    effects: list[Effect] = field(default_factory=list)
    indirect_paths: list[IndirectPath] = field(default_factory=list)

    @property
    def exogenous(self) -> tuple[str, ...]:
        return tuple(v for v in self.variables if v not in self.endogenous)

    def beta(self, source: str, target: str) -> Optional[float]:
        for c in self.coefficients:
            if c.source == source and c.target == target:
                return c.beta
        return None

    def to_dict(self) -> dict:
        names = list(self.variables)
        return {
            "variables":         names,
            "endogenous_vars":   list(self.endogenous),
            "exogenous_vars":    list(self.exogenous),
            "path_coefficients": [
                {"from": c.source, "to": c.target, "estimate": c.beta}
                for c in self.coefficients
            ],
            "r_squared":          dict(self.r2),
            "residual_variances": dict(self.residual_variance),
            "total_effects": [
                {"from": e.source, "to": e.target, "direct": e.direct,
                 "indirect": e.indirect, "total": e.total}
                for e in self.effects
            ],
            "indirect_effects": [
                {"route": list(ip.route), "from": ip.source, "to": ip.target,
                 "estimate": ip.estimate}
                for ip in self.indirect_paths
            ],
            "fit_indices":    self.fit.to_dict(),
            "implied_matrix": {
                a: {b: float(self.implied[i, j]) for j, b in enumerate(names)}
                for i, a in enumerate(names)
            },
        }

    def to_frames(self) -> dict[str, pd.DataFrame]:
        """Coefficient, R2, effects and implied-matrix tables."""
        names = list(self.variables)
        coef_df = pd.DataFrame(
            [(c.source, c.target, c.beta) for c in self.coefficients],
            columns=["from", "to", "beta"],
        )
        r2_df = pd.DataFrame({
            "r2": pd.Series(self.r2, dtype=float),
            "residual_variance": pd.Series(self.residual_variance, dtype=float),
        })
        effects_df = pd.DataFrame(
            [(e.source, e.target, e.direct, e.indirect, e.total) for e in self.effects],
            columns=["from", "to", "direct", "indirect", "total"],
        )
        implied_df = pd.DataFrame(self.implied, index=names, columns=names)
        return {
            "coefficients": coef_df,
            "r_squared":    r2_df,
            "effects":      effects_df,
            "implied":      implied_df,
        }


@dataclass(frozen=True)
class RunOutcome:
    """Either a result or errors, never both. Warnings accompany either."""

    ok: bool
    result: Optional[EstimationResult] = None
    errors: list[str] = field(default_factory=list)
    warnings: list[str] = field(default_factory=list)

    def to_dict(self) -> dict:
        return {
            "success":  self.ok,
            "result":   self.result.to_dict() if self.result is not None else None,
            "errors":   list(self.errors),
            "warnings": list(self.warnings),
        }
