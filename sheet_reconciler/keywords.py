from __future__ import annotations

import re
from dataclasses import dataclass, field
from typing import Iterable

DEFAULT_TRIGGER_KEYWORDS = ("主管", "小計", "核定", "結轉", "合計", "Total", "Subtotal", "Sum")
DEFAULT_EXCLUDE_KEYWORDS = ("總計", "總合計", "Grand Total")

KEYWORD_SPLIT_RE = re.compile(r"[,，]")


def parse_keywords(value: str | Iterable[str] | None) -> tuple[str, ...]:
    """Split "小計, Total，Sum" style input into a clean keyword tuple."""
    if value is None:
        return ()
    parts = KEYWORD_SPLIT_RE.split(value) if isinstance(value, str) else list(value)
    return tuple(part.strip() for part in parts if isinstance(part, str) and part.strip())


def _clean(words: Iterable[str]) -> tuple[str, ...]:
    # an empty keyword would match every label
    return tuple(word for word in words if word)


@dataclass(frozen=True)
class KeywordSet:
    """Case-sensitive substring keywords marking subtotal (trigger) and ignored (exclude) labels."""

    trigger: tuple[str, ...] = field(default=())
    exclude: tuple[str, ...] = field(default=())

    def __post_init__(self) -> None:
        object.__setattr__(self, "trigger", _clean(self.trigger))
        object.__setattr__(self, "exclude", _clean(self.exclude))

    @classmethod
    def default(cls) -> "KeywordSet":
        return cls(DEFAULT_TRIGGER_KEYWORDS, DEFAULT_EXCLUDE_KEYWORDS)

    @classmethod
    def from_text(cls, trigger: str | Iterable[str] | None, exclude: str | Iterable[str] | None = None) -> "KeywordSet":
        return cls(parse_keywords(trigger), parse_keywords(exclude))

    def is_trigger(self, label: str) -> bool:
        return any(word in label for word in self.trigger)

    def is_excluded(self, label: str) -> bool:
        return any(word in label for word in self.exclude)

    def to_dict(self) -> dict[str, list[str]]:
        return {"trigger": list(self.trigger), "exclude": list(self.exclude)}
