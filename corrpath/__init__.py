"""
corrpath
========

Closed-form path analysis from pairwise correlation matrices.

Modules:
    config       - Tolerances, variable limits, fit cutoffs
    errors       - Exception hierarchy
    linalg       - Pivoted inverse/determinant and small matrix helpers
    correlation  - Cell / CorrelationMatrix model and validator
    sample_size  - Total-N aggregation (harmonic mean or minimum)
    model        - Edges, acyclicity check, model syntax
    estimation   - Per-equation standardized regressions
    implied      - Model-implied correlation matrix
    fit          - SRMR, ML chi-square, RMSEA, CFI, TLI
    effects      - Direct / indirect / total effects
    parsing      - r|n matrix text
    pipeline     - One full estimation run
    wrapper      - JSON stdin/stdout runner
"""

from corrpath.config import DEFAULT_CONFIG, EngineConfig
from corrpath.correlation import Cell, CorrelationMatrix, ValidationReport, validate
from corrpath.errors import (
    CyclicModelError,
    EmptyModelError,
    InvalidTotalNError,
    MatrixParseError,
    MissingDataError,
    ModelSpecificationError,
    NotPositiveDefiniteError,
    PathModelError,
    SingularMatrixError,
    ValidationError,
)
from corrpath.estimation import Coefficient, PathEstimates, estimate
from corrpath.fit import FitStatistics, evaluate
from corrpath.implied import implied_matrix
from corrpath.model import Edge, PathModel, parse_model_syntax
from corrpath.parsing import parse_matrix_text
from corrpath.pipeline import estimate_model, run_estimation
from corrpath.results import EstimationResult, RunOutcome
from corrpath.sample_size import compute_total_n

__version__ = '1.0.0'

__all__ = [
    'DEFAULT_CONFIG',
    'EngineConfig',
    'Cell',
    'CorrelationMatrix',
    'ValidationReport',
    'validate',
    'compute_total_n',
    'Edge',
    'PathModel',
    'parse_model_syntax',
    'Coefficient',
    'PathEstimates',
    'estimate',
    'implied_matrix',
    'FitStatistics',
    'evaluate',
    'EstimationResult',
    'RunOutcome',
    'estimate_model',
    'run_estimation',
    'parse_matrix_text',
    'PathModelError',
    'ValidationError',
    'ModelSpecificationError',
    'MatrixParseError',
    'MissingDataError',
    'EmptyModelError',
    'CyclicModelError',
    'SingularMatrixError',
    'NotPositiveDefiniteError',
    'InvalidTotalNError',
]
