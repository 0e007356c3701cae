"""
Reconciliation engine.

``validate`` walks the active range of a table under one of five grouping
conventions and returns the cells whose declared value disagrees with the value
computed from the surrounding cells by more than ``TOLERANCE``.

Cells that do not parse as numbers are skipped by the keyword and indent modes
but count as zero in the two manual equation modes.

VerticalIndent scans forward from every parent row to the end of its subtree,
so its worst case is O(rows^2 * cols) on long runs of ambiguous indentation.
All other modes are a single O(rows * cols) pass.
"""

from __future__ import annotations

import copy
from typing import Any

from sheet_reconciler.ledger import Ledger, ValidationResult
from sheet_reconciler.modes import (
    HorizontalGroup,
    HorizontalManual,
    SumDirection,
    ValidationRequest,
    VerticalGroup,
    VerticalIndent,
    VerticalManual,
)
from sheet_reconciler.numeric import parse_numeric
from sheet_reconciler.table import ResolvedRange, Table, cell_at, cell_text, indent_level


_REQUEST_TYPES = (VerticalGroup, HorizontalGroup, VerticalIndent, HorizontalManual, VerticalManual)


def validate(table: Table, request: ValidationRequest) -> ValidationResult:
    """Reconcile ``table`` under ``request`` and return a fresh, immutable result."""
    if not isinstance(request, _REQUEST_TYPES):
        raise TypeError(f"Unsupported validation request: {type(request).__name__}")
    ledger = Ledger()
    bounds = request.range.resolve(table)
    if isinstance(request, VerticalGroup):
        _validate_vertical_group(table, bounds, request, ledger)
    elif isinstance(request, HorizontalGroup):
        _validate_horizontal_group(table, bounds, request, ledger)
    elif isinstance(request, VerticalIndent):
        _validate_vertical_indent(table, bounds, request, ledger)
    elif isinstance(request, HorizontalManual):
        _validate_horizontal_manual(table, bounds, request, ledger)
    else:
        _validate_vertical_manual(table, bounds, request, ledger)
    return ledger.to_result()


def _validate_vertical_group(table: Table, bounds: ResolvedRange, request: VerticalGroup, ledger: Ledger) -> None:
    keywords = request.keywords
    labels = {row: cell_text(cell_at(table, row, request.name_col)) for row in bounds.data_rows}

    for col in bounds.columns:
        if col == request.name_col:
            continue
        running = 0.0
        pending: tuple[int, float] | None = None

        for row in bounds.data_rows:
            label = labels[row]
            if keywords.is_excluded(label):
                continue
            value = parse_numeric(cell_at(table, row, col))

            if not keywords.is_trigger(label):
                if value is not None:
                    running += value
                continue

            if request.direction is SumDirection.BOTTOM:
                if value is not None:
                    ledger.check(row, col, running, value)
            else:
                if pending is not None:
                    ledger.check(pending[0], col, running, pending[1])
                pending = (row, value) if value is not None else None
            running = 0.0

        if request.direction is SumDirection.TOP and pending is not None:
            ledger.check(pending[0], col, running, pending[1])


def _validate_horizontal_group(table: Table, bounds: ResolvedRange, request: HorizontalGroup, ledger: Ledger) -> None:
    keywords = request.keywords
    headers = bounds.headers(table)
    header_text = {col: cell_text(headers[col] if col < len(headers) else None) for col in bounds.columns}

    for row in bounds.data_rows:
        running = 0.0
        for col in bounds.columns:
            label = header_text[col]
            value = parse_numeric(cell_at(table, row, col))
            if keywords.is_trigger(label):
                if value is not None:
                    ledger.check(row, col, running, value)
                running = 0.0
            elif not keywords.is_excluded(label) and value is not None:
                running += value


def _validate_vertical_indent(table: Table, bounds: ResolvedRange, request: VerticalIndent, ledger: Ledger) -> None:
    rows = list(bounds.data_rows)
    levels = {row: indent_level(cell_text(cell_at(table, row, request.name_col))) for row in rows}

    for col in bounds.columns:
        if col == request.name_col:
            continue
        for position, parent in enumerate(rows[:-1]):
            child_level = levels[rows[position + 1]]
            if child_level <= levels[parent]:
                continue

            children_sum = 0.0
            has_child = False
            for row in rows[position + 1:]:
                if levels[row] <= levels[parent]:
                    break
                if levels[row] != child_level:
                    continue
                value = parse_numeric(cell_at(table, row, col))
                if value is not None:
                    children_sum += value
                    has_child = True

            if not has_child:
                continue
            declared = parse_numeric(cell_at(table, parent, col))
            if declared is not None:
                ledger.check(parent, col, children_sum, declared)


def _signed_sum(values: list[tuple[Any, int]]) -> float:
    total = 0.0
    for raw, sign in values:
        value = parse_numeric(raw)
        total += (value if value is not None else 0.0) * sign
    return total


def _selection_warning(count: int) -> str:
    return f"Selection has {count} index(es); at least 2 are needed, so no comparisons were made"


def _validate_horizontal_manual(table: Table, bounds: ResolvedRange, request: HorizontalManual, ledger: Ledger) -> None:
    selection = request.selection
    if not selection.is_usable():
        ledger.warnings.append(_selection_warning(len(selection.indices)))
        return
    target = selection.target
    for row in bounds.data_rows:
        declared = parse_numeric(cell_at(table, row, target))
        if declared is None:
            continue
        computed = _signed_sum([(cell_at(table, row, col), selection.sign(col)) for col in selection.inputs])
        ledger.check(row, target, computed, declared)


def _validate_vertical_manual(table: Table, bounds: ResolvedRange, request: VerticalManual, ledger: Ledger) -> None:
    selection = request.selection
    if not selection.is_usable():
        ledger.warnings.append(_selection_warning(len(selection.indices)))
        return
    target = selection.target
    for col in bounds.columns:
        declared = parse_numeric(cell_at(table, target, col))
        if declared is None:
            continue
        computed = _signed_sum([(cell_at(table, row, col), selection.sign(row)) for row in selection.inputs])
        ledger.check(target, col, computed, declared)


def apply_corrections(table: Table, result: ValidationResult) -> list[list[Any]]:
    """Return a copy of ``table`` with every discrepant cell set to its expected value."""
    corrected = [list(copy.deepcopy(row)) if row is not None else [] for row in table]
    for (row, col), value in result.corrections.items():
        while len(corrected) <= row:
            corrected.append([])
        cells = corrected[row]
        while len(cells) <= col:
            cells.append(None)
        cells[col] = value
    return corrected
