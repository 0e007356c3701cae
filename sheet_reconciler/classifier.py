"""
Heuristic recommendation of a validation mode from raw table shape.

Signals:
- column typing over a sample of rows (numeric-dominant vs text-dominant)
- trigger keywords inside data cells and inside the header row
- leading-whitespace indentation in the first text column

Each mode is scored independently; the highest score wins and is reported as
a 0-100 confidence together with the evidence behind it.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any

from sheet_reconciler.keywords import KeywordSet
from sheet_reconciler.modes import (
    HorizontalGroup,
    SumDirection,
    ValidationMode,
    ValidationRequest,
    VerticalGroup,
    VerticalIndent,
)
from sheet_reconciler.numeric import parse_numeric
from sheet_reconciler.table import CellRange, Table, cell_text, indent_level

MIN_ROWS = 3
SAMPLE_ROWS = 20
BASELINE_SCORE = 10

# Tie-break order for equal scores.
SCORE_ORDER = (
    ValidationMode.VERTICAL_GROUP,
    ValidationMode.VERTICAL_INDENT,
    ValidationMode.VERTICAL_MANUAL,
    ValidationMode.HORIZONTAL_MANUAL,
    ValidationMode.HORIZONTAL_GROUP,
)

INSUFFICIENT_DATA_REASON = "Insufficient data: at least 3 rows are needed to detect a layout"
MANUAL_REASON = "Manual selection suggested: pick the columns or rows and set the formula by hand"


@dataclass(frozen=True)
class KeywordHit:
    row: int
    col: int
    text: str


@dataclass(frozen=True)
class IndentedRow:
    row: int
    indent: int
    text: str


@dataclass
class TableProfile:
    numeric_columns: list[int] = field(default_factory=list)
    text_columns: list[int] = field(default_factory=list)
    keyword_hits: list[KeywordHit] = field(default_factory=list)
    keyword_columns: list[int] = field(default_factory=list)
    indented_rows: list[IndentedRow] = field(default_factory=list)
    has_hierarchy: bool = False
    header_row: int = 0

    @property
    def label_column(self) -> int | None:
        return self.text_columns[0] if self.text_columns else None

    def to_dict(self) -> dict[str, Any]:
        return {
            "header_row": self.header_row,
            "numeric_columns": list(self.numeric_columns),
            "text_columns": list(self.text_columns),
            "label_column": self.label_column,
            "keyword_hits": [{"row": hit.row, "col": hit.col, "text": hit.text} for hit in self.keyword_hits],
            "keyword_columns": list(self.keyword_columns),
            "indented_rows": [{"row": item.row, "indent": item.indent, "text": item.text} for item in self.indented_rows],
            "has_hierarchy": self.has_hierarchy,
        }


@dataclass(frozen=True)
class Recommendation:
    mode: ValidationMode | None
    confidence: int
    reasons: tuple[str, ...]
    scores: dict[ValidationMode, float]
    profile: TableProfile

    def to_dict(self) -> dict[str, Any]:
        return {
            "mode": self.mode.value if self.mode else None,
            "confidence": self.confidence,
            "reasons": list(self.reasons),
            "scores": {mode.value: score for mode, score in self.scores.items()},
            "profile": self.profile.to_dict(),
        }


def _profile_columns(table: Table, header_row: int, profile: TableProfile) -> None:
    headers = table[header_row] or []
    sample = table[header_row + 1:header_row + 1 + SAMPLE_ROWS]
    for col in range(len(headers)):
        numeric_count = 0
        text_count = 0
        for row in sample:
            value = row[col] if row is not None and col < len(row) else None
            if value is None or value == "":
                continue
            if parse_numeric(value) is not None:
                numeric_count += 1
            elif isinstance(value, str) and value.strip():
                text_count += 1
        if numeric_count > text_count * 2:
            profile.numeric_columns.append(col)
        elif text_count > 0:
            profile.text_columns.append(col)


def _scan_keywords(table: Table, header_row: int, keywords: KeywordSet, profile: TableProfile) -> None:
    for row in range(header_row + 1, len(table)):
        for col, value in enumerate(table[row] or []):
            text = cell_text(value)
            if keywords.is_trigger(text):
                profile.keyword_hits.append(KeywordHit(row, col, text))
    for col, value in enumerate(table[header_row] or []):
        if keywords.is_trigger(cell_text(value)):
            profile.keyword_columns.append(col)


def _scan_indentation(table: Table, header_row: int, profile: TableProfile) -> None:
    col = profile.label_column
    if col is None:
        return
    last_indent = 0
    for row in range(header_row + 1, len(table)):
        values = table[row]
        if values is None:
            continue
        text = cell_text(values[col] if col < len(values) else None)
        indent = indent_level(text)
        if indent > 0:
            profile.indented_rows.append(IndentedRow(row, indent, text))
        if indent != last_indent and last_indent != 0:
            profile.has_hierarchy = True
        last_indent = indent


def _score(profile: TableProfile) -> dict[ValidationMode, float]:
    scores = {mode: 0.0 for mode in SCORE_ORDER}
    hits = len(profile.keyword_hits)

    if hits > 0 and profile.text_columns:
        scores[ValidationMode.VERTICAL_GROUP] += 30 + min(hits * 5, 40)
    if len(profile.indented_rows) > 3 and profile.has_hierarchy:
        scores[ValidationMode.VERTICAL_INDENT] += 40 + min(len(profile.indented_rows) * 3, 40)
    if profile.keyword_columns:
        scores[ValidationMode.HORIZONTAL_GROUP] += 30 + min(len(profile.keyword_columns) * 10, 30)
    if len(profile.numeric_columns) > 5 and hits < 3:
        scores[ValidationMode.HORIZONTAL_MANUAL] += 20
        scores[ValidationMode.VERTICAL_MANUAL] += 20

    scores[ValidationMode.VERTICAL_GROUP] += BASELINE_SCORE
    return scores


def _reasons(profile: TableProfile, mode: ValidationMode, score: float) -> list[str]:
    if score <= BASELINE_SCORE:
        return [MANUAL_REASON]
    reasons = []
    if mode is ValidationMode.VERTICAL_GROUP:
        if profile.keyword_hits:
            reasons.append(f"Found {len(profile.keyword_hits)} cells containing a subtotal keyword")
        if profile.label_column is not None:
            reasons.append(f"Column {profile.label_column + 1} can serve as the label column")
    elif mode is ValidationMode.VERTICAL_INDENT:
        levels = sorted({item.indent for item in profile.indented_rows})
        reasons.append(f"Found {len(profile.indented_rows)} indented rows across {len(levels)} indent level(s)")
        reasons.append("Labels form an indentation hierarchy")
    elif mode is ValidationMode.HORIZONTAL_GROUP:
        reasons.append(f"Header row contains {len(profile.keyword_columns)} subtotal keyword column(s)")
    else:
        reasons.append(f"Found {len(profile.numeric_columns)} numeric columns and few subtotal keywords")
        reasons.append(MANUAL_REASON)
    return reasons


def classify(table: Table, header_row: int = 0, keywords: KeywordSet | None = None) -> Recommendation:
    """Recommend a validation mode for ``table`` with its header at ``header_row`` (zero-based)."""
    profile = TableProfile(header_row=header_row)
    if not table or len(table) < MIN_ROWS or not 0 <= header_row < len(table):
        return Recommendation(
            mode=None,
            confidence=0,
            reasons=(INSUFFICIENT_DATA_REASON,),
            scores={mode: 0.0 for mode in SCORE_ORDER},
            profile=profile,
        )

    keywords = keywords or KeywordSet.default()
    _profile_columns(table, header_row, profile)
    _scan_keywords(table, header_row, keywords, profile)
    _scan_indentation(table, header_row, profile)
    scores = _score(profile)

    ranked = sorted(SCORE_ORDER, key=lambda mode: -scores[mode])
    best = ranked[0]
    return Recommendation(
        mode=best,
        confidence=min(100, round(scores[best])),
        reasons=tuple(_reasons(profile, best, scores[best])),
        scores={mode: scores[mode] for mode in ranked},
        profile=profile,
    )


def suggest_request(
    recommendation: Recommendation,
    keywords: KeywordSet | None = None,
    direction: SumDirection = SumDirection.TOP,
) -> ValidationRequest | None:
    """Build a ready-to-run request for keyword and indent recommendations.

    Manual modes need a hand-picked selection, so they return None.
    """
    mode = recommendation.mode
    profile = recommendation.profile
    cell_range = CellRange(header_row=profile.header_row)
    keywords = keywords or KeywordSet.default()
    if mode is ValidationMode.HORIZONTAL_GROUP:
        return HorizontalGroup(keywords=keywords, range=cell_range)
    if profile.label_column is None:
        return None
    if mode is ValidationMode.VERTICAL_GROUP:
        return VerticalGroup(name_col=profile.label_column, keywords=keywords, direction=direction, range=cell_range)
    if mode is ValidationMode.VERTICAL_INDENT:
        return VerticalIndent(name_col=profile.label_column, range=cell_range)
    return None
