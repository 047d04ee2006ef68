"""Data models for the review pipeline."""

from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Iterator, List, Sequence


@dataclass(frozen=True)
class ReviewRecord:
    """One harvested review, split into its four output columns."""

    book: str
    reviewer: str
    rating: str
    review: str

    def as_row(self) -> list[str]:
        return [self.book, self.reviewer, self.rating, self.review]


class ParseErrorPolicy(str, Enum):
    """What the extractor does with a reviewer block it cannot split."""

    SKIP = "skip"
    PARTIAL = "partial"
    RAISE = "raise"


@dataclass
class ReviewTable:
    """Append-only, order-preserving accumulator of :class:`ReviewRecord`.

    The driver passes one table into each page-processing call and gets the
    same table back; records are never removed or replaced.
    """

    _records: List[ReviewRecord] = field(default_factory=list)
    pages: int = 0

    def append(self, batch: Sequence[ReviewRecord]) -> "ReviewTable":
        self._records.extend(batch)
        return self

    @property
    def records(self) -> tuple[ReviewRecord, ...]:
        return tuple(self._records)

    def __len__(self) -> int:
        return len(self._records)

    def __iter__(self) -> Iterator[ReviewRecord]:
        return iter(tuple(self._records))
