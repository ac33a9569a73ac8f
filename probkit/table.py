"""
probkit Tables

The typed tabular input the probability functions and the Bayesian network
train from. A table has a header row of column names, a type row mapping
each column to a ColumnType, and data rows held as variants. When the last
column is a float column it can carry per-row weights.

CSV files may omit the header (columns become Column0..ColumnN-1) and the
type row (types are inferred from the cells). Type names accept a set of
case-insensitive aliases, see TYPE_ALIASES.
"""

from __future__ import annotations

import csv
import io
import logging
import re
from datetime import datetime
from enum import Enum
from pathlib import Path
from typing import Any, Iterable, Optional, Sequence, TextIO, Union

from probkit.interval import ScalarType
from probkit.variant import Var, is_bool_literal, scan_as

logger = logging.getLogger(__name__)


class ColumnType(Enum):
    BOOL = "bool"
    CHAR = "char"
    INT = "int"
    UINT = "uint"
    FLOAT = "float"
    DATE = "date"
    STRING = "string"
    GAUSSIAN = "gaussian"
    EXPONENTIAL = "exponential"

    @property
    def scalar_type(self) -> ScalarType:
        if self in (ColumnType.GAUSSIAN, ColumnType.EXPONENTIAL):
            return ScalarType.FLOAT
        return ScalarType(self.value)


TYPE_ALIASES: dict[str, ColumnType] = {
    "b": ColumnType.BOOL, "bool": ColumnType.BOOL, "boolean": ColumnType.BOOL,
    "truefalse": ColumnType.BOOL,
    "c": ColumnType.CHAR, "char": ColumnType.CHAR, "character": ColumnType.CHAR,
    "letter": ColumnType.CHAR,
    "i": ColumnType.INT, "int": ColumnType.INT, "integer": ColumnType.INT,
    "u": ColumnType.UINT, "uint": ColumnType.UINT, "unsigned": ColumnType.UINT,
    "unsigned int": ColumnType.UINT, "ordinal": ColumnType.UINT,
    "f": ColumnType.FLOAT, "float": ColumnType.FLOAT, "real": ColumnType.FLOAT,
    "floating point": ColumnType.FLOAT,
    "d": ColumnType.DATE, "date": ColumnType.DATE,
    "s": ColumnType.STRING, "string": ColumnType.STRING, "text": ColumnType.STRING,
    "e": ColumnType.EXPONENTIAL, "exp": ColumnType.EXPONENTIAL,
    "exponential": ColumnType.EXPONENTIAL,
    "g": ColumnType.GAUSSIAN, "gauss": ColumnType.GAUSSIAN, "gaussian": ColumnType.GAUSSIAN,
    "bell": ColumnType.GAUSSIAN, "normal": ColumnType.GAUSSIAN,
}


def resolve_type_alias(name: str) -> ColumnType:
    key = " ".join(name.strip().lower().split())
    if key not in TYPE_ALIASES:
        raise ValueError(f"Unknown column type '{name}'. Known: {sorted(set(TYPE_ALIASES))}")
    return TYPE_ALIASES[key]


# ============================================================================
# Type inference
# ============================================================================

_SIGNED_INT = re.compile(r"^[+-]\d+$")
_UNSIGNED_INT = re.compile(r"^\d+$")
_FLOAT = re.compile(r"^[+-]?(\d+\.\d*|\.\d+|\d+)([eE][+-]?\d+)?$")


def guess_type(cell: str) -> ColumnType:
    """Classify one cell: integers by sign, floats, dates, bool literals,
    single characters, and strings otherwise. 0 and 1 count as integers."""
    text = cell.strip()
    if text in ("0", "1"):
        return ColumnType.INT
    if _UNSIGNED_INT.match(text):
        return ColumnType.UINT
    if _SIGNED_INT.match(text):
        return ColumnType.INT if text.startswith("-") else ColumnType.UINT
    if _FLOAT.match(text):
        return ColumnType.FLOAT
    if text and _is_date(text):
        return ColumnType.DATE
    if text and is_bool_literal(text):
        return ColumnType.BOOL
    if len(text) == 1:
        return ColumnType.CHAR
    return ColumnType.STRING


def _is_date(text: str) -> bool:
    try:
        datetime.fromisoformat(text)
    except ValueError:
        return False
    return True


_NUMERIC = (ColumnType.INT, ColumnType.UINT, ColumnType.FLOAT)


def guess_column_type(cells: Iterable[str]) -> ColumnType:
    """Unify the per-cell guesses of one column.

    Integer kinds widen to INT, integers mixed with floats to FLOAT; any
    other mix falls back to STRING.
    """
    cells = list(cells)
    guesses = {guess_type(c) for c in cells}
    if not guesses:
        return ColumnType.STRING
    if len(guesses) == 1:
        return guesses.pop()
    if guesses <= set(_NUMERIC):
        return ColumnType.FLOAT if ColumnType.FLOAT in guesses else ColumnType.INT
    if guesses <= {ColumnType.INT, ColumnType.BOOL}:
        return ColumnType.BOOL if all(is_bool_literal(c) for c in cells) else ColumnType.STRING
    return ColumnType.STRING


def _to_var(value: Any, column_type: ColumnType) -> Var:
    if isinstance(value, Var):
        return value
    if isinstance(value, str):
        return scan_as(column_type.scalar_type, value)
    return Var(value, column_type.scalar_type)


# ============================================================================
# Table
# ============================================================================

class Table:
    """Header, types and rows of variants."""

    def __init__(
        self,
        header: Sequence[str],
        types: Sequence[Union[ColumnType, str]],
        rows: Iterable[Sequence[Any]] = (),
    ) -> None:
        if len(header) != len(types):
            raise ValueError(f"{len(header)} headers but {len(types)} types")
        self.header: list[str] = [h.strip() for h in header]
        self.types: list[ColumnType] = [
            t if isinstance(t, ColumnType) else resolve_type_alias(t) for t in types
        ]
        self.rows: list[list[Var]] = []
        for line, row in enumerate(rows):
            if len(row) != len(self.header):
                raise ValueError(
                    f"Row {line} has {len(row)} cells, expected {len(self.header)}"
                )
            self.rows.append([_to_var(v, t) for v, t in zip(row, self.types)])

    @classmethod
    def from_rows(
        cls,
        rows: Sequence[Sequence[str]],
        header: Optional[Sequence[str]] = None,
        types: Optional[Sequence[Union[ColumnType, str]]] = None,
    ) -> Table:
        """Build from string cells, generating a missing header and inferring
        missing types."""
        width = len(header) if header is not None else (len(rows[0]) if rows else 0)
        if header is None:
            header = [f"Column{i}" for i in range(width)]
        if types is None:
            types = [guess_column_type([r[i] for r in rows]) for i in range(width)]
            logger.debug("Inferred column types %s", [t.value for t in types])
        return cls(header, types, rows)

    @classmethod
    def read_csv(
        cls,
        source: Union[str, Path, TextIO],
        has_header: bool = True,
        has_types: bool = True,
        delimiter: str = ",",
    ) -> Table:
        """Read a CSV file or stream. Reading stops at the first empty line."""
        if isinstance(source, (str, Path)):
            with open(source, newline="", encoding="utf-8") as f:
                return cls.read_csv(f, has_header, has_types, delimiter)

        reader = csv.reader(source, delimiter=delimiter, skipinitialspace=True)
        header = types = None
        rows: list[list[str]] = []
        for record in reader:
            if not record or all(not cell.strip() for cell in record):
                break
            cells = [cell.strip() for cell in record]
            if has_header and header is None:
                header = cells
            elif has_types and types is None:
                types = cells
            else:
                rows.append(cells)
        logger.debug("Read %d rows from CSV", len(rows))
        return cls.from_rows(rows, header, types)

    @classmethod
    def from_string(cls, text: str, **kwargs) -> Table:
        return cls.read_csv(io.StringIO(text), **kwargs)

    def write_csv(self, target: Union[str, Path, TextIO], delimiter: str = ",") -> None:
        if isinstance(target, (str, Path)):
            with open(target, "w", newline="", encoding="utf-8") as f:
                self.write_csv(f, delimiter)
            return
        writer = csv.writer(target, delimiter=delimiter)
        writer.writerow(self.header)
        writer.writerow([t.value for t in self.types])
        for row in self.rows:
            writer.writerow([str(v) for v in row])

    # ------------------------------------------------------------------
    # Shape and access
    # ------------------------------------------------------------------

    @property
    def columns(self) -> int:
        return len(self.header)

    @property
    def lines(self) -> int:
        return len(self.rows)

    def __len__(self) -> int:
        return len(self.rows)

    def empty(self) -> bool:
        return not self.rows

    def column_index(self, name: str) -> int:
        if name not in self.header:
            raise KeyError(f"Unknown column '{name}'. Columns: {self.header}")
        return self.header.index(name)

    def _index(self, column: Union[str, int]) -> int:
        return column if isinstance(column, int) else self.column_index(column)

    def column_type(self, column: Union[str, int]) -> ColumnType:
        return self.types[self._index(column)]

    def column(self, column: Union[str, int]) -> list[Var]:
        i = self._index(column)
        return [row[i] for row in self.rows]

    def float_column(self, column: Union[str, int]) -> list[float]:
        return [v.as_float() for v in self.column(column)]

    def row(self, index: int) -> list[Var]:
        return self.rows[index]

    @property
    def has_weight_column(self) -> bool:
        return bool(self.types) and self.types[-1] is ColumnType.FLOAT

    # ------------------------------------------------------------------
    # Derived tables
    # ------------------------------------------------------------------

    def sub_table(self, columns: Sequence[Union[str, int]]) -> Table:
        indices = [self._index(c) for c in columns]
        return Table(
            [self.header[i] for i in indices],
            [self.types[i] for i in indices],
            [[row[i] for i in indices] for row in self.rows],
        )

    def append_column(self, name: str, column_type: Union[ColumnType, str], value: Any) -> Table:
        """A copy with one more column holding value in every row."""
        if not isinstance(column_type, ColumnType):
            column_type = resolve_type_alias(column_type)
        cell = _to_var(value, column_type)
        return Table(
            self.header + [name],
            self.types + [column_type],
            [row + [cell] for row in self.rows],
        )

    def erase_column(self, column: Union[str, int]) -> Table:
        i = self._index(column)
        keep = [c for c in range(self.columns) if c != i]
        return self.sub_table(keep)

    def __repr__(self) -> str:
        cols = ", ".join(f"{h}:{t.value}" for h, t in zip(self.header, self.types))
        return f"<Table [{cols}] {self.lines} rows>"
