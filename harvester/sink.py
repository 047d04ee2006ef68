"""Record sinks: where the finished review table is persisted."""

from __future__ import annotations

import csv
from pathlib import Path
from typing import List, Protocol, Sequence

from harvester.scraper.models import ReviewRecord

COLUMNS = ["book", "reviewer", "rating", "review"]


class Sink(Protocol):
    def append(self, batch: Sequence[ReviewRecord]) -> None: ...


class MemorySink:
    """Keep appended records in a list."""

    def __init__(self) -> None:
        self.records: List[ReviewRecord] = []

    def append(self, batch: Sequence[ReviewRecord]) -> None:
        self.records.extend(batch)


class CsvSink:
    """Write records as CSV with a leading 1-based row index column.

    The header row is written on the first ``append``; later calls continue
    the running index, so the sink can receive one batch or many.
    """

    def __init__(self, path: Path | str) -> None:
        self.path = Path(path)
        self.rows_written = 0
        self._handle = None
        self._writer = None

    def _open(self) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        self._handle = self.path.open("w", encoding="utf-8", newline="")
        self._writer = csv.writer(self._handle)
        self._writer.writerow(["", *COLUMNS])

    def append(self, batch: Sequence[ReviewRecord]) -> None:
        if self._writer is None:
            self._open()
        for record in batch:
            self.rows_written += 1
            self._writer.writerow([self.rows_written, *record.as_row()])
        self._handle.flush()

    def close(self) -> None:
        if self._handle is not None:
            self._handle.close()
            self._handle = None
            self._writer = None

    def __enter__(self) -> "CsvSink":
        return self

    def __exit__(self, *exc_info) -> None:
        self.close()
