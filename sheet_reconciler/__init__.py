"""Reconcile declared subtotals and totals in spreadsheet tables."""

__version__ = "0.1.0"

from sheet_reconciler.classifier import Recommendation, TableProfile, classify, suggest_request
from sheet_reconciler.engine import apply_corrections, validate
from sheet_reconciler.keywords import KeywordSet, parse_keywords
from sheet_reconciler.ledger import TOLERANCE, DiscrepancyRecord, Ledger, ValidationResult
from sheet_reconciler.modes import (
    HorizontalGroup,
    HorizontalManual,
    Selection,
    SumDirection,
    ValidationMode,
    VerticalGroup,
    VerticalIndent,
    VerticalManual,
    request_from_dict,
)
from sheet_reconciler.numeric import parse_numeric
from sheet_reconciler.table import CellRange, as_rows

__all__ = [
    "__version__",
    "CellRange",
    "DiscrepancyRecord",
    "HorizontalGroup",
    "HorizontalManual",
    "KeywordSet",
    "Ledger",
    "Recommendation",
    "Selection",
    "SumDirection",
    "TOLERANCE",
    "TableProfile",
    "ValidationMode",
    "ValidationResult",
    "VerticalGroup",
    "VerticalIndent",
    "VerticalManual",
    "apply_corrections",
    "as_rows",
    "classify",
    "parse_keywords",
    "parse_numeric",
    "request_from_dict",
    "suggest_request",
    "validate",
]
