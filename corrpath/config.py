"""
corrpath/config.py
==================
Engine configuration: numerical tolerances, variable limits and fit cutoffs.

Override by constructing an ``EngineConfig`` and passing it to any stage;
stages receiving ``config=None`` use ``DEFAULT_CONFIG``.
"""

from __future__ import annotations

from dataclasses import dataclass

# Variables every model starts from (meta-analytic customer loyalty table).
BASE_VARIABLES: tuple[str, ...] = ("loyalty", "satisfaction", "value", "quality")

N_METHODS = ("harmonic", "min")


@dataclass(frozen=True)
class EngineConfig:
    # matrix validation
    symmetry_tolerance:   float = 1e-6
    diagonal_tolerance:   float = 1e-6
    near_unity_threshold: float = 0.999999
    min_pairwise_n:       float = 2.0    # n must be strictly greater

    # variable limits
    base_variables:       tuple[str, ...] = BASE_VARIABLES
    max_extra_variables:  int   = 12

    # numerics
    pivot_tolerance:      float = 1e-12
    residual_floor:       float = 1e-8
    cfi_epsilon:          float = 1e-12

    # fit interpretation cutoffs
    cfi_good:             float = 0.95
    rmsea_good:           float = 0.06
    srmr_good:            float = 0.08

    @property
    def max_variables(self) -> int:
        return len(self.base_variables) + self.max_extra_variables


DEFAULT_CONFIG = EngineConfig()


def resolve(config: EngineConfig | None) -> EngineConfig:
    """Return ``config`` or the module default."""
    return DEFAULT_CONFIG if config is None else config
