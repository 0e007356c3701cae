"""
Validation modes and their request shapes.

Each mode carries exactly the parameters its algorithm needs. Requests built
here use zero-based, half-open coordinates; ``request_from_dict`` is the
boundary that accepts the one-based, inclusive numbers users type into a
sheet UI or a JSON request file.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Any, ClassVar, Mapping, Union

from sheet_reconciler.keywords import KeywordSet
from sheet_reconciler.table import CellRange


class ValidationMode(str, Enum):
    VERTICAL_GROUP = "vertical_group"
    HORIZONTAL_GROUP = "horizontal_group"
    VERTICAL_INDENT = "vertical_indent"
    HORIZONTAL_MANUAL = "horizontal_manual"
    VERTICAL_MANUAL = "vertical_manual"


class SumDirection(str, Enum):
    TOP = "top"
    BOTTOM = "bottom"


MODE_ALIASES = {
    "horizontal": ValidationMode.HORIZONTAL_MANUAL,
    "vertical_row": ValidationMode.VERTICAL_MANUAL,
}

MODE_INFO: dict[ValidationMode, dict[str, str]] = {
    ValidationMode.VERTICAL_GROUP: {
        "name": "Vertical (keyword groups)",
        "description": "Rows labelled with a trigger keyword must equal the sum of the rows in their group. Suits budgets and financial statements.",
    },
    ValidationMode.VERTICAL_MANUAL: {
        "name": "Vertical (selected rows)",
        "description": "Pick rows and signs to check an A ± B = C equation down every column.",
    },
    ValidationMode.VERTICAL_INDENT: {
        "name": "Vertical (indent hierarchy)",
        "description": "Each parent row must equal the sum of its immediately indented children.",
    },
    ValidationMode.HORIZONTAL_MANUAL: {
        "name": "Horizontal (selected columns)",
        "description": "Pick columns and signs to check an A ± B = C equation across every row.",
    },
    ValidationMode.HORIZONTAL_GROUP: {
        "name": "Horizontal (keyword groups)",
        "description": "Columns whose header holds a trigger keyword must equal the sum of the columns to their left.",
    },
}


def parse_mode(value: str | ValidationMode) -> ValidationMode:
    if isinstance(value, ValidationMode):
        return value
    key = str(value).strip().lower()
    if key in MODE_ALIASES:
        return MODE_ALIASES[key]
    try:
        return ValidationMode(key)
    except ValueError:
        choices = ", ".join(mode.value for mode in ValidationMode)
        raise ValueError(f"Unknown validation mode '{value}'. Expected one of: {choices}") from None


@dataclass(frozen=True)
class Selection:
    """Ordered row/column indices; the last one is the target, the rest are signed inputs."""

    indices: tuple[int, ...]
    signs: Mapping[int, int] = field(default_factory=dict)

    def __post_init__(self) -> None:
        indices = tuple(self.indices)
        if len(set(indices)) != len(indices):
            raise ValueError(f"Selection indices must be distinct: {list(indices)}")
        if any(index < 0 for index in indices):
            raise ValueError(f"Selection indices must be >= 0: {list(indices)}")
        signs = dict(self.signs)
        for index, sign in signs.items():
            if sign not in (1, -1):
                raise ValueError(f"Sign for index {index} must be +1 or -1, got {sign!r}")
        object.__setattr__(self, "indices", indices)
        object.__setattr__(self, "signs", signs)

    @property
    def target(self) -> int | None:
        return self.indices[-1] if self.indices else None

    @property
    def inputs(self) -> tuple[int, ...]:
        return self.indices[:-1]

    def sign(self, index: int) -> int:
        return self.signs.get(index, 1)

    def is_usable(self) -> bool:
        return len(self.indices) >= 2


@dataclass(frozen=True)
class VerticalGroup:
    name_col: int
    keywords: KeywordSet
    direction: SumDirection = SumDirection.TOP
    range: CellRange = field(default_factory=CellRange)
    mode: ClassVar[ValidationMode] = ValidationMode.VERTICAL_GROUP


@dataclass(frozen=True)
class HorizontalGroup:
    keywords: KeywordSet
    range: CellRange = field(default_factory=CellRange)
    mode: ClassVar[ValidationMode] = ValidationMode.HORIZONTAL_GROUP


@dataclass(frozen=True)
class VerticalIndent:
    name_col: int
    range: CellRange = field(default_factory=CellRange)
    mode: ClassVar[ValidationMode] = ValidationMode.VERTICAL_INDENT


@dataclass(frozen=True)
class HorizontalManual:
    selection: Selection
    range: CellRange = field(default_factory=CellRange)
    mode: ClassVar[ValidationMode] = ValidationMode.HORIZONTAL_MANUAL


@dataclass(frozen=True)
class VerticalManual:
    selection: Selection
    range: CellRange = field(default_factory=CellRange)
    mode: ClassVar[ValidationMode] = ValidationMode.VERTICAL_MANUAL


ValidationRequest = Union[VerticalGroup, HorizontalGroup, VerticalIndent, HorizontalManual, VerticalManual]


def _as_index(value: Any, label: str) -> int:
    try:
        number = int(value)
    except (TypeError, ValueError, OverflowError):
        raise ValueError(f"'{label}' must be a whole number, got {value!r}") from None
    if number != value and not isinstance(value, str):
        raise ValueError(f"'{label}' must be a whole number, got {value!r}")
    if number < 1:
        raise ValueError(f"'{label}' is one-based and must be >= 1, got {number}")
    return number


def _one_based(payload: Mapping[str, Any], key: str, default: int | None) -> int | None:
    value = payload.get(key)
    if value is None or value == "":
        return default
    return _as_index(value, key)


def _as_sign(value: Any) -> Any:
    if value in ("+", "-"):
        return 1 if value == "+" else -1
    if isinstance(value, str):
        try:
            return int(value)
        except ValueError:
            return value
    return value


def range_from_dict(payload: Mapping[str, Any]) -> CellRange:
    header_row = _one_based(payload, "header_row", 1)
    start_col = _one_based(payload, "start_col", 1)
    # inclusive one-based end == exclusive zero-based end
    return CellRange(
        header_row=header_row - 1,
        end_row=_one_based(payload, "end_row", None),
        start_col=start_col - 1,
        end_col=_one_based(payload, "end_col", None),
    )


def keywords_from_dict(payload: Mapping[str, Any]) -> KeywordSet:
    keywords = payload.get("keywords")
    if keywords is None:
        return KeywordSet.default()
    if not isinstance(keywords, Mapping):
        raise ValueError("'keywords' must be an object with 'trigger' and 'exclude'")
    return KeywordSet.from_text(keywords.get("trigger"), keywords.get("exclude"))


def selection_from_dict(payload: Mapping[str, Any]) -> Selection:
    raw_indices = payload.get("selection") or []
    if not isinstance(raw_indices, list):
        raise ValueError("'selection' must be a list of one-based row/column numbers")
    indices = [_as_index(value, "selection") - 1 for value in raw_indices]
    raw_signs = payload.get("signs") or {}
    if not isinstance(raw_signs, Mapping):
        raise ValueError("'signs' must map one-based numbers to +1 or -1")
    signs = {_as_index(key, "signs") - 1: _as_sign(sign) for key, sign in raw_signs.items()}
    return Selection(tuple(indices), signs)


def request_from_dict(payload: Mapping[str, Any]) -> ValidationRequest:
    """Build a request from a one-based JSON-style payload."""
    if "mode" not in payload:
        raise ValueError("Request is missing 'mode'")
    mode = parse_mode(payload["mode"])
    cell_range = range_from_dict(payload)

    if mode in (ValidationMode.VERTICAL_GROUP, ValidationMode.VERTICAL_INDENT):
        name_col = _one_based(payload, "name_col", None)
        if name_col is None:
            raise ValueError(f"Mode '{mode.value}' needs 'name_col' (the label column)")
        if mode is ValidationMode.VERTICAL_INDENT:
            return VerticalIndent(name_col=name_col - 1, range=cell_range)
        try:
            direction = SumDirection(str(payload.get("direction") or SumDirection.TOP.value).lower())
        except ValueError:
            raise ValueError(f"'direction' must be 'top' or 'bottom', got {payload.get('direction')!r}") from None
        return VerticalGroup(
            name_col=name_col - 1,
            keywords=keywords_from_dict(payload),
            direction=direction,
            range=cell_range,
        )
    if mode is ValidationMode.HORIZONTAL_GROUP:
        return HorizontalGroup(keywords=keywords_from_dict(payload), range=cell_range)
    if mode is ValidationMode.HORIZONTAL_MANUAL:
        return HorizontalManual(selection=selection_from_dict(payload), range=cell_range)
    return VerticalManual(selection=selection_from_dict(payload), range=cell_range)


def request_to_dict(request: ValidationRequest) -> dict[str, Any]:
    """One-based echo of a request, used in reports."""
    cell_range = request.range
    payload: dict[str, Any] = {
        "mode": request.mode.value,
        "header_row": cell_range.header_row + 1,
        "end_row": cell_range.end_row,
        "start_col": cell_range.start_col + 1,
        "end_col": cell_range.end_col,
    }
    if isinstance(request, (VerticalGroup, VerticalIndent)):
        payload["name_col"] = request.name_col + 1
    if isinstance(request, (VerticalGroup, HorizontalGroup)):
        payload["keywords"] = request.keywords.to_dict()
    if isinstance(request, VerticalGroup):
        payload["direction"] = request.direction.value
    if isinstance(request, (HorizontalManual, VerticalManual)):
        payload["selection"] = [index + 1 for index in request.selection.indices]
        payload["signs"] = {str(index + 1): sign for index, sign in sorted(request.selection.signs.items())}
    return payload
