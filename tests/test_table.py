"""
probkit table tests

Tests the typed table:
1. Type aliases and cell type inference
2. CSV reading with and without header and type rows
3. Column access and derived tables
4. Writing CSV back out
"""

import io

import pytest

from probkit.interval import ScalarType
from probkit.table import ColumnType, Table, guess_column_type, guess_type, resolve_type_alias
from probkit.variant import Var


def make_weather_csv() -> str:
    return (
        "Cloud , Rain , Sprinkler , WetGrass, Prob\n"
        "bool , string , Uint , bool, float\n"
        "yes, heavy, 3, yes, 0.999\n"
        "no, none, 0, no, 0.7\n"
        "no, light, 1, yes, 0.2\n"
    )


# ============================================================================
# 1. Types
# ============================================================================

@pytest.mark.parametrize("alias, expected", [
    ("Uint", ColumnType.UINT),
    ("unsigned   INT", ColumnType.UINT),
    ("boolean", ColumnType.BOOL),
    ("real", ColumnType.FLOAT),
    ("normal", ColumnType.GAUSSIAN),
    ("exp", ColumnType.EXPONENTIAL),
    ("text", ColumnType.STRING),
    ("letter", ColumnType.CHAR),
])
def test_type_aliases(alias, expected):
    assert resolve_type_alias(alias) is expected


def test_unknown_alias():
    with pytest.raises(ValueError):
        resolve_type_alias("complex")


def test_distribution_columns_hold_floats():
    assert ColumnType.GAUSSIAN.scalar_type is ScalarType.FLOAT
    assert ColumnType.EXPONENTIAL.scalar_type is ScalarType.FLOAT
    assert ColumnType.UINT.scalar_type is ScalarType.UINT


@pytest.mark.parametrize("cell, expected", [
    ("0", ColumnType.INT),
    ("1", ColumnType.INT),
    ("42", ColumnType.UINT),
    ("-42", ColumnType.INT),
    ("3.25", ColumnType.FLOAT),
    ("1e-3", ColumnType.FLOAT),
    ("2021-06-01", ColumnType.DATE),
    ("yes", ColumnType.BOOL),
    ("x", ColumnType.CHAR),
    ("heavy", ColumnType.STRING),
])
def test_guess_type(cell, expected):
    assert guess_type(cell) is expected


def test_guess_column_type_unifies():
    assert guess_column_type(["1", "17", "-3"]) is ColumnType.INT
    assert guess_column_type(["1", "2.5"]) is ColumnType.FLOAT
    assert guess_column_type(["1", "no", "yes"]) is ColumnType.BOOL
    assert guess_column_type(["1", "heavy"]) is ColumnType.STRING
    assert guess_column_type([]) is ColumnType.STRING


# ============================================================================
# 2. Reading
# ============================================================================

def test_read_with_header_and_types():
    table = Table.from_string(make_weather_csv())
    assert table.header == ["Cloud", "Rain", "Sprinkler", "WetGrass", "Prob"]
    assert table.types == [ColumnType.BOOL, ColumnType.STRING, ColumnType.UINT,
                           ColumnType.BOOL, ColumnType.FLOAT]
    assert table.lines == 3
    assert table.row(0) == [Var(True), Var("heavy"), Var(3, ScalarType.UINT),
                            Var(True), Var(0.999)]
    assert table.has_weight_column


def test_read_without_header():
    table = Table.from_string("bool, float\nyes, 0.5\nno, 0.5\n", has_header=False)
    assert table.header == ["Column0", "Column1"]
    assert table.column("Column1") == [Var(0.5), Var(0.5)]


def test_read_without_types():
    table = Table.from_string("a, b, c\n5, 2.5, x\n17, 3, z\n", has_types=False)
    assert table.types == [ColumnType.UINT, ColumnType.FLOAT, ColumnType.CHAR]


def test_read_stops_at_empty_line():
    text = make_weather_csv() + "\nyes, light, 2, no, 0.1\n"
    assert Table.from_string(text).lines == 3


def test_read_with_delimiter():
    table = Table.from_string("a;b\nint;string\n-1;x y\n", delimiter=";")
    assert table.row(0) == [Var(-1), Var("x y")]


def test_read_file(tmp_path):
    path = tmp_path / "weather.csv"
    path.write_text(make_weather_csv())
    assert Table.read_csv(path).lines == 3
    assert Table.read_csv(str(path)).columns == 5


def test_ragged_row_rejected():
    with pytest.raises(ValueError):
        Table.from_string("a, b\nint, int\n1, 2, 3\n")


def test_bad_cell_rejected():
    with pytest.raises(ValueError):
        Table.from_string("a\nbool\nmaybe\n")


# ============================================================================
# 3. Columns
# ============================================================================

def test_column_lookup():
    table = Table.from_string(make_weather_csv())
    assert table.column_index("Sprinkler") == 2
    assert table.column_type("Rain") is ColumnType.STRING
    assert table.float_column("Prob") == [0.999, 0.7, 0.2]
    with pytest.raises(KeyError):
        table.column_index("Sun")


def test_sub_table():
    table = Table.from_string(make_weather_csv())
    sub = table.sub_table(["Rain", "Cloud", "Prob"])
    assert sub.header == ["Rain", "Cloud", "Prob"]
    assert sub.row(1) == [Var("none"), Var(False), Var(0.7)]


def test_append_and_erase_column():
    table = Table.from_string(make_weather_csv())
    wider = table.append_column("Weight", "float", 1.0)
    assert wider.columns == 6
    assert table.columns == 5
    assert wider.column("Weight") == [Var(1.0)] * 3
    narrower = wider.erase_column("Prob")
    assert narrower.header == ["Cloud", "Rain", "Sprinkler", "WetGrass", "Weight"]


def test_table_from_rows():
    table = Table.from_rows([["a", "1.5"], ["b", "2"]], header=["Name", "Value"])
    assert table.types == [ColumnType.CHAR, ColumnType.FLOAT]
    assert table.column("Value") == [Var(1.5), Var(2.0)]
    assert not table.empty()


# ============================================================================
# 4. Writing
# ============================================================================

def test_write_csv():
    table = Table.from_string(make_weather_csv())
    out = io.StringIO()
    table.write_csv(out)
    lines = out.getvalue().splitlines()
    assert lines[0] == "Cloud,Rain,Sprinkler,WetGrass,Prob"
    assert lines[1] == "bool,string,uint,bool,float"
    assert lines[2] == "true,heavy,3,true,0.999"
    assert Table.from_string(out.getvalue()).rows == table.rows
