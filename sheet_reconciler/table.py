"""Plain-table helpers shared by the engine and the classifier."""

from __future__ import annotations

import math
from dataclasses import dataclass
from typing import Any, Sequence

import pandas as pd
from openpyxl.utils import get_column_letter

Row = Sequence[Any]
Table = Sequence[Row]


def normalize_cell(value: Any) -> Any:
    if value is None:
        return None
    if isinstance(value, (list, tuple, dict)):
        return value
    if pd.isna(value):
        return None
    if hasattr(value, "item") and not isinstance(value, (str, bytes)):
        # numpy scalars coming out of a DataFrame
        return value.item()
    return value


def as_rows(data: Any) -> list[list[Any]]:
    """Copy a list of rows or a DataFrame into a fresh list-of-lists table.

    DataFrame column labels are not treated as a header row; read sheets with
    ``header=None`` so the header stays addressable by index like any other row.
    """
    if isinstance(data, pd.DataFrame):
        return [[normalize_cell(value) for value in row] for row in data.itertuples(index=False, name=None)]
    rows: list[list[Any]] = []
    for row in data or []:
        if row is None:
            rows.append([])
            continue
        rows.append([normalize_cell(value) for value in row])
    return rows


def cell_at(table: Table, row: int, col: int) -> Any:
    if row < 0 or col < 0 or row >= len(table):
        return None
    values = table[row]
    if values is None or col >= len(values):
        return None
    return values[col]


def cell_text(value: Any) -> str:
    if value is None or value is False:
        return ""
    if isinstance(value, float) and math.isnan(value):
        return ""
    if isinstance(value, (int, float)) and not isinstance(value, bool) and value == 0:
        return ""
    return str(value)


def indent_level(value: Any) -> int:
    """Count leading whitespace characters (space, tab, NBSP, ideographic space...)."""
    if not isinstance(value, str):
        return 0
    count = 0
    for char in value:
        if not char.isspace():
            break
        count += 1
    return count


def cell_ref(row: int, col: int) -> str:
    """A1-style reference for zero-based coordinates."""
    return f"{get_column_letter(col + 1)}{row + 1}"


@dataclass(frozen=True)
class CellRange:
    """Zero-based active rectangle. ``end_row``/``end_col`` are exclusive; None means table edge."""

    header_row: int = 0
    end_row: int | None = None
    start_col: int = 0
    end_col: int | None = None

    def __post_init__(self) -> None:
        for name in ("header_row", "start_col"):
            if getattr(self, name) < 0:
                raise ValueError(f"{name} must be >= 0")
        for name in ("end_row", "end_col"):
            value = getattr(self, name)
            if value is not None and value < 0:
                raise ValueError(f"{name} must be >= 0")

    def resolve(self, table: Table) -> "ResolvedRange":
        end_row = len(table) if self.end_row is None else min(self.end_row, len(table))
        if self.end_col is None:
            header = table[self.header_row] if self.header_row < len(table) else None
            end_col = len(header) if header is not None else 0
        else:
            end_col = self.end_col
        return ResolvedRange(self.header_row, end_row, self.start_col, end_col)


@dataclass(frozen=True)
class ResolvedRange:
    header_row: int
    end_row: int
    start_col: int
    end_col: int

    @property
    def data_rows(self) -> range:
        return range(self.header_row + 1, self.end_row)

    @property
    def columns(self) -> range:
        return range(self.start_col, self.end_col)

    def headers(self, table: Table) -> list[Any]:
        if self.header_row >= len(table) or table[self.header_row] is None:
            return []
        return list(table[self.header_row])
