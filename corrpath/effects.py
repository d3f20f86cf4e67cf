"""
corrpath/effects.py
===================
Direct, indirect and total effects implied by the estimated paths.

In a recursive model the total effect matrix is T = (I - B)^-1 - I; the
direct part is B itself and the indirect part is T - B. Specific indirect
effects are the products of betas along each mediated route.
"""

from __future__ import annotations

from dataclasses import dataclass
from typing import Iterable, Optional, Sequence

from corrpath import linalg
from corrpath.config import EngineConfig, resolve
from corrpath.estimation import Coefficient
from corrpath.implied import structural_matrix

_ZERO = 1e-12


@dataclass(frozen=True)
class Effect:
    source: str
    target: str
    direct: float
    indirect: float
    total: float


@dataclass(frozen=True)
class IndirectPath:
    route: tuple[str, ...]    # source, mediators..., target
    estimate: float

    @property
    def source(self) -> str:
        return self.route[0]

    @property
    def target(self) -> str:
        return self.route[-1]


def decompose_effects(
    variables: Sequence[str],
    coefficients: Iterable[Coefficient],
    config: Optional[EngineConfig] = None,
) -> list[Effect]:
    """Effects for every ordered pair with a nonzero total, in variable order."""
    cfg = resolve(config)
    names = list(variables)
    B = structural_matrix(names, coefficients)
    p = len(names)
    T = linalg.inverse(
        linalg.identity(p) - B,
        context="I - B for the effects decomposition",
        tolerance=cfg.pivot_tolerance,
    ) - linalg.identity(p)

    out: list[Effect] = []
    for j, source in enumerate(names):
        for i, target in enumerate(names):
            if i == j or abs(T[i, j]) < _ZERO:
                continue
            direct = float(B[i, j])
            total = float(T[i, j])
            out.append(Effect(source, target, direct, total - direct, total))
    return out


def indirect_paths(coefficients: Sequence[Coefficient]) -> list[IndirectPath]:
    """Every directed route with at least one mediator, with its beta product."""
    children: dict[str, list[Coefficient]] = {}
    for c in coefficients:
        children.setdefault(c.source, []).append(c)

    out: list[IndirectPath] = []

    def walk(route: list[str], product: float) -> None:
        for c in children.get(route[-1], []):
            if c.target in route:
                continue
            nxt = route + [c.target]
            value = product * c.beta
            if len(nxt) > 2:
                out.append(IndirectPath(tuple(nxt), value))
            walk(nxt, value)

    for source in dict.fromkeys(c.source for c in coefficients):
        walk([source], 1.0)
    return out
