"""
corrpath/model.py
=================
Structural model specification: directed edges, endogenous/exogenous
partition, acyclicity check and lavaan-style model syntax.

Syntax accepted by ``parse_model_syntax`` (one regression per line):

    satisfaction ~ value + quality
    loyalty ~ satisfaction + value + quality   # comments allowed

Label prefixes such as ``a*value`` are stripped; ``~~`` (covariance) lines
and numeric terms are ignored, since exogenous covariances are taken from the
observed matrix.
"""

from __future__ import annotations

import re
from collections import deque
from dataclasses import dataclass
from typing import Iterable, Mapping, Sequence

from corrpath.correlation import CorrelationMatrix, normalize_name
from corrpath.errors import CyclicModelError, ModelSpecificationError


@dataclass(frozen=True)
class Edge:
    """Hypothesized directed effect of ``source`` on ``target``."""

    source: str
    target: str

    @classmethod
    def coerce(cls, raw) -> "Edge":
        """Accept an Edge, a {"from", "to"} dict or a (from, to) pair."""
        if isinstance(raw, Edge):
            return cls(normalize_name(raw.source), normalize_name(raw.target))
        if isinstance(raw, Mapping):
            return cls(normalize_name(raw.get("from", "")), normalize_name(raw.get("to", "")))
        if isinstance(raw, (tuple, list)) and len(raw) == 2:
            return cls(normalize_name(raw[0]), normalize_name(raw[1]))
        raise ModelSpecificationError(f"Cannot interpret {raw!r} as an edge.")

    def __str__(self) -> str:
        return f"{self.source} -> {self.target}"


def normalize_edges(variables: Iterable[str], edges: Iterable) -> list[Edge]:
    """
    Normalize edge names and check them against the variable list.

    Duplicate edges are dropped (first occurrence kept). Unknown variables and
    self-loops raise ModelSpecificationError.
    """
    known = {normalize_name(v) for v in variables}
    out: list[Edge] = []
    for raw in edges:
        e = Edge.coerce(raw)
        if not e.source or not e.target:
            raise ModelSpecificationError("Each path needs non-empty 'from' and 'to' fields.")
        for v in (e.source, e.target):
            if v not in known:
                raise ModelSpecificationError(f'Path {e} references unknown variable "{v}".')
        if e.source == e.target:
            raise ModelSpecificationError(f'Self-loop on "{e.source}" is not a valid path.')
        if e not in out:
            out.append(e)
    return out


def parents_of(node: str, edges: Iterable[Edge]) -> list[str]:
    """Distinct sources of edges into ``node``, in edge order."""
    out: list[str] = []
    for e in edges:
        if e.target == node and e.source not in out:
            out.append(e.source)
    return out


def endogenous_variables(variables: Iterable[str], edges: Iterable[Edge]) -> list[str]:
    targets = {e.target for e in edges}
    return [v for v in variables if v in targets]


def exogenous_variables(variables: Iterable[str], edges: Iterable[Edge]) -> list[str]:
    targets = {e.target for e in edges}
    return [v for v in variables if v not in targets]


def _find_cycle(nodes: set[str], edges: Sequence[Edge]) -> list[str]:
    """Return one directed cycle among ``nodes`` as [v0, v1, ..., v0]."""
    children: dict[str, list[str]] = {v: [] for v in nodes}
    for e in edges:
        if e.source in nodes and e.target in nodes:
            children[e.source].append(e.target)

    start = sorted(nodes)[0]
    path: list[str] = []
    on_path: dict[str, int] = {}
    v = start
    # every remaining node keeps an outgoing edge inside ``nodes``, so walking
    # forward must revisit a node
    while v not in on_path:
        on_path[v] = len(path)
        path.append(v)
        v = children[v][0]
    return path[on_path[v]:] + [v]


def check_acyclic(variables: Iterable[str], edges: Sequence[Edge]) -> list[str]:
    """
    Topologically sort the variables (Kahn's algorithm).

    Returns:
        Variables in an order where every source precedes its targets

    Raises:
        CyclicModelError: if the edges contain a directed cycle
    """
    names = list(variables)
    indegree = {v: 0 for v in names}
    children: dict[str, list[str]] = {v: [] for v in names}
    for e in edges:
        indegree[e.target] += 1
        children[e.source].append(e.target)

    queue = deque(v for v in names if indegree[v] == 0)
    order: list[str] = []
    while queue:
        v = queue.popleft()
        order.append(v)
        for c in children[v]:
            indegree[c] -= 1
            if indegree[c] == 0:
                queue.append(c)

    if len(order) < len(names):
        # nodes outside ``order`` include a cycle plus anything downstream of it;
        # prune the downstream ones so each survivor has an edge back into the set
        remaining = {v for v in names if v not in order}
        changed = True
        while changed:
            changed = False
            for v in list(remaining):
                if not any(c in remaining for c in children[v]):
                    remaining.discard(v)
                    changed = True
        cycle = _find_cycle(remaining, edges)
        raise CyclicModelError(
            "Model is not recursive: paths form a cycle "
            f"({' -> '.join(cycle)}). Remove a path to break the cycle.",
            cycle=cycle,
        )
    return order


@dataclass(frozen=True)
class PathModel:
    """Read-only snapshot handed to one estimation run."""

    variables: tuple[str, ...]
    matrix: CorrelationMatrix
    edges: tuple[Edge, ...]

    @classmethod
    def build(cls, variables: Iterable[str], matrix: CorrelationMatrix, edges: Iterable) -> "PathModel":
        names = tuple(normalize_name(v) for v in variables)
        return cls(names, matrix, tuple(normalize_edges(names, edges)))

    @property
    def endogenous(self) -> list[str]:
        return endogenous_variables(self.variables, self.edges)

    @property
    def exogenous(self) -> list[str]:
        return exogenous_variables(self.variables, self.edges)


# ---------------------------------------------------------------------------
# Model syntax
# ---------------------------------------------------------------------------

_LABEL_RE = re.compile(r".*\*")
_NUMBER_RE = re.compile(r"^[0-9.]+$")


def _strip_label(term: str) -> str:
    return _LABEL_RE.sub("", term.strip()).strip()


def parse_model_syntax(syntax: str) -> list[Edge]:
    """Convert lavaan-style regression lines into edges, in order of appearance."""
    edges: list[Edge] = []
    for lineno, line in enumerate(syntax.splitlines(), 1):
        line = line.split("#", 1)[0].strip()
        if not line or "~~" in line:
            continue
        if "~" not in line:
            raise ModelSpecificationError(f"Line {lineno}: expected 'outcome ~ predictors', got '{line}'.")
        lhs, rhs = line.split("~", 1)
        outcome = normalize_name(_strip_label(lhs))
        if not outcome:
            raise ModelSpecificationError(f"Line {lineno}: missing outcome variable.")
        preds = [_strip_label(t) for t in rhs.split("+")]
        preds = [normalize_name(p) for p in preds if p and not _NUMBER_RE.match(p)]
        if not preds:
            raise ModelSpecificationError(f"Line {lineno}: '{outcome}' has no predictors.")
        for p in preds:
            e = Edge(p, outcome)
            if e not in edges:
                edges.append(e)
    return edges


def build_model_syntax(edges: Iterable[Edge]) -> str:
    """Convert edges into lavaan-style syntax, one line per outcome."""
    path_map: dict[str, list[str]] = {}
    for e in edges:
        preds = path_map.setdefault(e.target, [])
        if e.source not in preds:
            preds.append(e.source)
    return "\n".join(f"{outcome} ~ {' + '.join(preds)}" for outcome, preds in path_map.items())
