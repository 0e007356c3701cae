from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator

from sheet_reconciler.numeric import format_number

TOLERANCE = 1.0

Coordinate = tuple[int, int]


def discrepancy_message(expected: float, difference: float) -> str:
    sign = "+" if difference >= 0 else ""
    return f"Expected {format_number(expected)} (diff {sign}{format_number(difference)})"


@dataclass(frozen=True)
class DiscrepancyRecord:
    row: int
    col: int
    expected: float
    actual: float
    difference: float
    message: str

    @property
    def coordinate(self) -> Coordinate:
        return (self.row, self.col)

    def to_dict(self) -> dict[str, Any]:
        return {
            "row": self.row,
            "col": self.col,
            "expected": self.expected,
            "actual": self.actual,
            "difference": self.difference,
            "message": self.message,
        }


@dataclass(frozen=True)
class ValidationResult:
    discrepancies: tuple[DiscrepancyRecord, ...] = ()
    warnings: tuple[str, ...] = ()

    @property
    def count(self) -> int:
        return len(self.discrepancies)

    @property
    def corrections(self) -> dict[Coordinate, float]:
        return {record.coordinate: record.expected for record in self.discrepancies}

    @property
    def total_difference(self) -> float:
        return sum(record.difference for record in self.discrepancies)

    @property
    def has_discrepancies(self) -> bool:
        return self.count > 0

    def get(self, row: int, col: int) -> DiscrepancyRecord | None:
        for record in self.discrepancies:
            if record.coordinate == (row, col):
                return record
        return None

    def message_for(self, row: int, col: int) -> str | None:
        record = self.get(row, col)
        return record.message if record else None


@dataclass
class Ledger:
    """Discrepancies for a single validation run, keyed by (row, col)."""

    records: dict[Coordinate, DiscrepancyRecord] = field(default_factory=dict)
    corrections: dict[Coordinate, float] = field(default_factory=dict)
    warnings: list[str] = field(default_factory=list)

    def check(self, row: int, col: int, computed: float, declared: float) -> bool:
        """Record a discrepancy when ``declared`` misses ``computed`` by more than TOLERANCE."""
        difference = declared - computed
        if abs(difference) <= TOLERANCE:
            return False
        self.records[(row, col)] = DiscrepancyRecord(
            row=row,
            col=col,
            expected=computed,
            actual=declared,
            difference=difference,
            message=discrepancy_message(computed, difference),
        )
        self.corrections[(row, col)] = computed
        return True

    def has(self, row: int, col: int) -> bool:
        return (row, col) in self.records

    def get(self, row: int, col: int) -> DiscrepancyRecord | None:
        return self.records.get((row, col))

    def message_for(self, row: int, col: int) -> str | None:
        record = self.get(row, col)
        return record.message if record else None

    def __iter__(self) -> Iterator[DiscrepancyRecord]:
        return iter(self.records.values())

    def __len__(self) -> int:
        return len(self.records)

    @property
    def count(self) -> int:
        return len(self.records)

    @property
    def total_difference(self) -> float:
        return sum(record.difference for record in self.records.values())

    @property
    def has_discrepancies(self) -> bool:
        return bool(self.records)

    def to_result(self) -> ValidationResult:
        return ValidationResult(discrepancies=tuple(self.records.values()), warnings=tuple(self.warnings))
