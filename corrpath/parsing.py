"""
corrpath/parsing.py
===================
Combined r/n matrix text, as pasted from a spreadsheet.

    ,loyalty,satisfaction,value
    loyalty,1,0.734|63671,0.545(81110)
    satisfaction,0.734|63671,1,0.708[37150]
    value,0.545|81110,0.708{37150},1

Separators: comma, tab or semicolon. Cell tokens: ``r|n``, ``r(n)``,
``r[n]``, ``r{n}`` or a bare ``r``; an empty token is a missing cell value.
Any n given on the diagonal is ignored.
"""

from __future__ import annotations

import re

from corrpath.correlation import Cell, CorrelationMatrix, normalize_name
from corrpath.errors import MatrixParseError

_NUM = r"[+-]?\d*\.?\d+(?:[eE][+-]?\d+)?"
_PIPE_RE = re.compile(rf"^({_NUM})\s*\|\s*({_NUM})$")
_BRACKET_RE = re.compile(rf"^({_NUM})\s*[\(\[\{{]\s*({_NUM})\s*[\)\]\}}]$")
_BARE_RE = re.compile(rf"^({_NUM})$")
_SPLIT_RE = re.compile(r",|\t|;")


def split_line(line: str) -> list[str]:
    return [s.strip() for s in _SPLIT_RE.split(line)]


def parse_cell_token(token: str, is_diagonal: bool = False) -> Cell:
    """Parse one cell token; raises MatrixParseError when it is not a number form."""
    t = (token or "").strip()
    if not t:
        return Cell(None, None)

    for pattern in (_PIPE_RE, _BRACKET_RE):
        m = pattern.match(t)
        if m:
            return Cell(float(m.group(1)), None if is_diagonal else float(m.group(2)))

    m = _BARE_RE.match(t)
    if m:
        return Cell(float(m.group(1)), None)

    raise MatrixParseError(f"Cannot parse cell '{t}'. Use r|n or r(n).")


def parse_matrix_text(text: str) -> CorrelationMatrix:
    """
    Parse header-plus-rows matrix text into a CorrelationMatrix.

    Cells are stored as written; the validator reconciles asymmetric halves.

    Raises:
        MatrixParseError: for structural problems or unparseable tokens
    """
    if not (text or "").strip():
        raise MatrixParseError("Matrix text is empty.")

    # only blank lines are dropped; a leading tab is the empty corner cell
    lines = [line for line in text.splitlines() if line.strip()]
    if len(lines) < 2:
        raise MatrixParseError("Matrix needs at least 2 rows.")

    rows = [split_line(line) for line in lines]
    header = rows[0]
    if len(header) < 2:
        raise MatrixParseError('Header row must include variable names (e.g., ",A,B,C").')

    names = [normalize_name(v) for v in header[1:]]
    if any(not v for v in names):
        raise MatrixParseError("Header contains empty variable name.")
    if len(set(names)) != len(names):
        raise MatrixParseError("Duplicate variable names in header.")

    cells = {}
    seen_rows = set()
    for i, row in enumerate(rows[1:], 2):
        row_name = normalize_name(row[0])
        if not row_name:
            raise MatrixParseError(f"Row {i} has empty variable name.")
        if row_name not in names:
            raise MatrixParseError(f'Row "{row_name}" does not match any header variable.')
        if row_name in seen_rows:
            raise MatrixParseError(f'Duplicate row "{row_name}" in matrix text.')
        seen_rows.add(row_name)
        for j, col_name in enumerate(names, 1):
            token = row[j] if j < len(row) else ""
            try:
                cells[(row_name, col_name)] = parse_cell_token(token, row_name == col_name)
            except MatrixParseError as exc:
                raise MatrixParseError(f"Row {i}, column {col_name}: {exc}") from None

    for v in names:
        if v not in seen_rows:
            raise MatrixParseError(f'Missing row for "{v}". Row names must match header.')

    return CorrelationMatrix(names, cells)


def _fmt_cell(cell: Cell | None) -> str:
    if cell is None or cell.r is None:
        return ""
    if cell.n is None:
        return f"{cell.r:g}"
    return f"{cell.r:g}|{cell.n:g}"


def format_matrix_text(matrix: CorrelationMatrix) -> str:
    """Write a matrix back in the comma-separated ``r|n`` form."""
    names = list(matrix.variables)
    lines = [",".join([""] + names)]
    for a in names:
        lines.append(",".join([a] + [_fmt_cell(matrix.cell(a, b)) for b in names]))
    return "\n".join(lines)
