"""
corrpath/pipeline.py
====================
One estimation run: Validate -> Aggregate N -> Estimate -> Reconstruct ->
Evaluate fit.

``estimate_model`` raises the first typed error it meets. ``run_estimation``
wraps it for callers that want a report instead of an exception: the outcome
carries either a result or errors, never both, and warnings in either case.
"""

from __future__ import annotations

import logging
import math
from typing import Iterable, Optional

from corrpath.config import N_METHODS, EngineConfig, resolve
from corrpath.correlation import CorrelationMatrix, normalize_name, validate
from corrpath.effects import decompose_effects, indirect_paths
from corrpath.errors import (
    EmptyModelError,
    InvalidTotalNError,
    ModelSpecificationError,
    PathModelError,
    ValidationError,
)
from corrpath.estimation import estimate
from corrpath.fit import evaluate
from corrpath.implied import implied_matrix
from corrpath.model import PathModel, check_acyclic, normalize_edges
from corrpath.results import EstimationResult, RunOutcome
from corrpath.sample_size import compute_total_n

logger = logging.getLogger(__name__)

EMPTY_MODEL_MESSAGE = "No paths defined. Create at least one directed edge."
ZERO_DF_WARNING = "df = 0. Fit indices like χ²/RMSEA/CFI/TLI are not meaningful."


def estimate_model(
    variables: Iterable[str],
    matrix: CorrelationMatrix,
    edges: Iterable,
    n_method: str = "harmonic",
    config: Optional[EngineConfig] = None,
    max_workers: Optional[int] = None,
    warnings: Optional[list[str]] = None,
) -> EstimationResult:
    """
    Run the full pipeline and return a fresh EstimationResult.

    Parameters:
        variables: Ordered variable names
        matrix: Correlation matrix (reconciled here; the input is not modified)
        edges: Edges, as Edge objects, {"from", "to"} dicts or (from, to) pairs
        n_method: "harmonic" or "min" total-N aggregation
        config: Tolerances and limits. Defaults to DEFAULT_CONFIG
        max_workers: Threads for per-variable regressions
        warnings: If given, advisory findings are appended to it

    Raises:
        ValidationError: the matrix is invalid; edge problems are appended to its errors
        PathModelError subclass describing the first failing stage otherwise
    """
    if n_method not in N_METHODS:
        raise ValueError(f"n_method must be one of {N_METHODS}, got '{n_method}'")
    cfg = resolve(config)
    found = warnings if warnings is not None else []
    names = [normalize_name(v) for v in variables]

    # validation always runs first so its findings are reported with any edge problem
    report = validate(names, matrix, cfg)
    found.extend(report.warnings)

    edge_error: Optional[PathModelError] = None
    edge_list: list = []
    try:
        edge_list = normalize_edges(names, edges)
    except ModelSpecificationError as exc:
        edge_error = exc
    if edge_error is None and not edge_list:
        edge_error = EmptyModelError(EMPTY_MODEL_MESSAGE)

    if not report.ok:
        errors = list(report.errors)
        if edge_error is not None:
            errors.append(str(edge_error))
        raise ValidationError(errors, report.warnings)
    if edge_error is not None:
        raise edge_error

    model = PathModel(tuple(names), report.matrix, tuple(edge_list))
    check_acyclic(model.variables, model.edges)

    total_n = compute_total_n(model.variables, model.matrix, n_method)
    if not math.isfinite(total_n) or total_n <= 2:
        raise InvalidTotalNError(
            "Total N is invalid (check pairwise n values).", {"total_n": total_n}
        )

    estimates = estimate(model.variables, model.matrix, model.edges, cfg, max_workers=max_workers)
    S = model.matrix.r_array(model.variables)
    Sigma = implied_matrix(
        model.variables, S, model.edges, estimates.coefficients, estimates.residual_variance, cfg
    )
    fit = evaluate(S, Sigma, model.variables, model.edges, total_n, n_method, cfg)
    if fit.df == 0:
        found.append(ZERO_DF_WARNING)

    for w in found:
        logger.warning(w)
    logger.info(
        "Estimated %d path(s) for %d endogenous variable(s); SRMR=%.4f df=%d",
        len(estimates.coefficients), fit.endogenous_count, fit.srmr, fit.df,
    )

    return EstimationResult(
        variables=model.variables,
        endogenous=tuple(model.endogenous),
        coefficients=list(estimates.coefficients),
        r2=dict(estimates.r2),
        residual_variance=dict(estimates.residual_variance),
        fit=fit,
        implied=Sigma,
        effects=decompose_effects(model.variables, estimates.coefficients, cfg),
        indirect_paths=indirect_paths(estimates.coefficients),
    )


def run_estimation(
    variables: Iterable[str],
    matrix: CorrelationMatrix,
    edges: Iterable,
    n_method: str = "harmonic",
    config: Optional[EngineConfig] = None,
    max_workers: Optional[int] = None,
) -> RunOutcome:
    """Run the pipeline and report the outcome instead of raising modeling errors."""
    warnings: list[str] = []
    try:
        result = estimate_model(
            variables, matrix, edges, n_method, config, max_workers, warnings=warnings
        )
    except ValidationError as exc:
        return RunOutcome(False, None, list(exc.errors), warnings)
    except PathModelError as exc:
        logger.info("Estimation failed: %s", exc)
        return RunOutcome(False, None, [str(exc)], warnings)
    return RunOutcome(True, result, [], warnings)
