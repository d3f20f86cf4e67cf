#!/usr/bin/env python3
"""
corrpath JSON runner

Reads a JSON request from stdin, runs one path estimation, then writes a
single JSON response to stdout. Log records go to stderr so stdout stays a
single response line.

Wire format (stdin):
  {
    "id": "<uuid>",
    "variables": ["loyalty", "satisfaction", ...],   # optional; defaults to matrix order
    "matrix": {row: {col: {"r": float, "n": float}}},  # or
    "matrixText": ",a,b\\na,1,0.5|100\\nb,0.5|100,1",
    "paths": [{"from": "value", "to": "satisfaction"}, ...],  # or
    "model": "satisfaction ~ value + quality",
    "nMethod": "harmonic" | "min"
  }

Wire format (stdout, last line):
  {
    "id": "<uuid>",
    "success": true|false,
    "result": <EstimationResult.to_dict()> | null,
    "errors": ["<message>", ...],
    "warnings": ["<message>", ...]
  }
"""

import json
import logging
import math
import os
import sys

import numpy as np

from corrpath.correlation import CorrelationMatrix
from corrpath.errors import PathModelError
from corrpath.model import parse_model_syntax
from corrpath.parsing import parse_matrix_text
from corrpath.pipeline import run_estimation

logger = logging.getLogger("corrpath.wrapper")


# ---------------------------------------------------------------------------
# Serialization helpers
# ---------------------------------------------------------------------------

def _serialize(obj, _depth=0):
    """
    Recursively convert results to JSON-compatible types.
    Non-finite floats become null; numpy scalars and arrays become Python values.
    """
    if _depth > 20:
        return str(obj)

    if obj is None or isinstance(obj, (bool, int, str)):
        return obj
    if isinstance(obj, float):
        return obj if math.isfinite(obj) else None

    if isinstance(obj, np.integer):
        return int(obj)
    if isinstance(obj, np.floating):
        return _serialize(float(obj))
    if isinstance(obj, np.bool_):
        return bool(obj)
    if isinstance(obj, np.ndarray):
        return _serialize(obj.tolist(), _depth + 1)

    if isinstance(obj, (list, tuple)):
        return [_serialize(v, _depth + 1) for v in obj]
    if isinstance(obj, dict):
        return {str(k): _serialize(v, _depth + 1) for k, v in obj.items()}

    return str(obj)


# ---------------------------------------------------------------------------
# Request handling
# ---------------------------------------------------------------------------

def _failure(req_id, message: str) -> dict:
    return {"id": req_id, "success": False, "result": None, "errors": [message], "warnings": []}


def _resolve_matrix(request: dict) -> CorrelationMatrix:
    if request.get("matrixText"):
        return parse_matrix_text(str(request["matrixText"]))
    nested = request.get("matrix")
    if not nested or not isinstance(nested, dict):
        raise PathModelError("Either 'matrix' (nested r/n cells) or 'matrixText' must be provided.")
    return CorrelationMatrix.from_nested(nested)


def _resolve_paths(request: dict) -> list:
    model_syntax = request.get("model")
    if isinstance(model_syntax, str) and model_syntax.strip():
        return parse_model_syntax(model_syntax)
    paths = request.get("paths") or []
    if not isinstance(paths, list):
        raise PathModelError("'paths' must be a list of {\"from\", \"to\"} objects.")
    return paths


def _execute(request: dict) -> dict:
    req_id = request.get("id", "")
    logger.debug("Handling request %r", req_id)
    n_method = str(request.get("nMethod", "harmonic")).lower()
    if n_method not in ("harmonic", "min"):
        return _failure(req_id, f"nMethod must be 'harmonic' or 'min', got '{n_method}'.")

    try:
        matrix = _resolve_matrix(request)
        paths = _resolve_paths(request)
    except PathModelError as exc:
        return _failure(req_id, str(exc))

    variables = request.get("variables") or list(matrix.variables)
    if not isinstance(variables, list) or not all(isinstance(v, str) for v in variables):
        return _failure(req_id, "'variables' must be a list of variable names.")

    try:
        outcome = run_estimation(variables, matrix, paths, n_method=n_method)
    except (TypeError, ValueError) as exc:
        logger.exception("Malformed request %r", req_id)
        return _failure(req_id, f"Malformed request: {exc}")

    response = {"id": req_id}
    response.update(_serialize(outcome.to_dict()))
    return response


# ---------------------------------------------------------------------------
# Entry point
# ---------------------------------------------------------------------------

def main():
    logging.basicConfig(
        stream=sys.stderr,
        level=os.environ.get("CORRPATH_LOG_LEVEL", "WARNING").upper(),
        format="%(levelname)s %(name)s: %(message)s",
    )

    raw = sys.stdin.read()
    try:
        request = json.loads(raw)
    except json.JSONDecodeError as exc:
        response = _failure("", f"Invalid JSON request: {exc}")
        print(json.dumps(response), flush=True)
        return

    if not isinstance(request, dict):
        response = _failure("", "Request must be a JSON object.")
        print(json.dumps(response), flush=True)
        return

    response = _execute(request)
    print(json.dumps(response), flush=True)


if __name__ == "__main__":
    main()
