"""
tests/unit/test_parsing.py
==========================
Tests for combined r|n matrix text.
"""
import pytest

from corrpath.correlation import Cell, validate
from corrpath.errors import MatrixParseError, ModelSpecificationError
from corrpath.parsing import format_matrix_text, parse_cell_token, parse_matrix_text


SAMPLE = """
,Loyalty,Satisfaction,Value
loyalty,1,0.734|63671,0.545(81110)
satisfaction,0.734|63671,1,0.708[37150]
value,0.545|81110,0.708{37150},1
"""


class TestCellTokens:
    @pytest.mark.parametrize("token", ["0.5|120", "0.5 | 120", "0.5(120)", "0.5[120]", "0.5{120}"])
    def test_forms(self, token):
        assert parse_cell_token(token) == Cell(0.5, 120.0)

    def test_bare_and_signed(self):
        assert parse_cell_token("-.25") == Cell(-0.25, None)
        assert parse_cell_token("1e-1|1e3") == Cell(0.1, 1000.0)

    def test_empty_is_missing(self):
        assert parse_cell_token("  ") == Cell(None, None)

    def test_diagonal_drops_n(self):
        assert parse_cell_token("1|500", is_diagonal=True) == Cell(1.0, None)

    def test_garbage(self):
        with pytest.raises(MatrixParseError, match="Cannot parse cell"):
            parse_cell_token("abc")


class TestMatrixText:
    def test_parse_sample(self):
        m = parse_matrix_text(SAMPLE)
        assert m.variables == ("loyalty", "satisfaction", "value")
        assert m.cell("loyalty", "value") == Cell(0.545, 81110.0)
        assert m.cell("value", "satisfaction") == Cell(0.708, 37150.0)
        assert validate(m.variables, m).ok

    def test_tab_and_semicolon_separators(self):
        m = parse_matrix_text("\ta\tb\na\t1\t0.3|50\nb\t0.3|50\t1")
        assert m.cell("a", "b") == Cell(0.3, 50.0)
        m = parse_matrix_text(";a;b\na;1;0.3|50\nb;0.3|50;1")
        assert m.cell("b", "a") == Cell(0.3, 50.0)

    def test_short_row_leaves_cells_missing(self):
        m = parse_matrix_text(",a,b\na,1\nb,0.3|50,1")
        assert m.cell("a", "b") == Cell(None, None)

    def test_asymmetric_cells_kept_as_written(self):
        m = parse_matrix_text(",a,b\na,1,0.3|50\nb,0.5|40,1")
        assert m.cell("a", "b") == Cell(0.3, 50.0)
        assert m.cell("b", "a") == Cell(0.5, 40.0)

    @pytest.mark.parametrize("text,message", [
        ("", "empty"),
        (",a,b", "at least 2 rows"),
        ("x\na", "Header row"),
        (",a,A\na,1,1\nb,1,1", "Duplicate"),
        (",a,b\nc,1,0.3|50\nb,0.3|50,1", "does not match"),
        (",a,b\na,1,0.3|50", "Missing row"),
        (",a,b\na,1,0.3|50\na,1,0.3|50\nb,0.3|50,1", "Duplicate row"),
        (",a,b\na,1,oops\nb,0.3|50,1", "Row 2, column b"),
    ])
    def test_errors(self, text, message):
        with pytest.raises(MatrixParseError, match=message):
            parse_matrix_text(text)

    def test_parse_error_is_specification_error(self):
        with pytest.raises(ModelSpecificationError):
            parse_matrix_text(",a,b\na,1,?\nb,0.3|50,1")

    def test_format_then_parse(self, loyalty_matrix):
        text = format_matrix_text(loyalty_matrix)
        assert text.splitlines()[0] == ",loyalty,satisfaction,value,quality"
        assert parse_matrix_text(text) == loyalty_matrix
