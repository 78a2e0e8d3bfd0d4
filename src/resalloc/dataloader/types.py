# src/resalloc/dataloader/types.py
from __future__ import annotations

from collections.abc import Mapping
from dataclasses import dataclass, field

from resalloc.schemas.models import Client, Task, Worker

# One loosely typed source row: column name -> cell value.
RawValue = str | int | float | None
RawRow = Mapping[str, RawValue]


@dataclass(slots=True)
class LoadResult:
    """
    Structured result of a dataset loading step.

    Fields:
        clients / workers / tasks: Typed collections in source order.
        total_rows: Number of rows observed across all three sections.
        skipped_rows: Rows dropped because every cell was blank.
    """

    clients: list[Client] = field(default_factory=list)
    workers: list[Worker] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    total_rows: int = 0
    skipped_rows: int = 0

    @property
    def kept_rows(self) -> int:
        return len(self.clients) + len(self.workers) + len(self.tasks)
