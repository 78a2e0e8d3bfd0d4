# src/resalloc/dataloader/normalizer.py
"""
@brief
Conversion of loosely typed raw rows into typed entity records.

@details
Spreadsheet decoders hand over rows whose cells may be strings, numbers,
NaN or missing altogether. The functions here are pure and total: they never
raise for bad cell content, they default it instead. Values that are present
and numeric are kept verbatim (0 and negatives included) so the validator can
report them; only missing or unparseable numbers fall back to the default.
"""

from __future__ import annotations

import math
from collections.abc import Iterable
from typing import Literal

from resalloc.dataloader.types import RawRow, RawValue
from resalloc.schemas.models import Client, Task, Worker

EntityType = Literal["clients", "workers", "tasks"]

DEFAULT_INT = 1

CLIENT_FIELDS = (
    "ClientID",
    "ClientName",
    "PriorityLevel",
    "RequestedTaskIDs",
    "GroupTag",
    "AttributesJSON",
)
WORKER_FIELDS = (
    "WorkerID",
    "WorkerName",
    "Skills",
    "AvailableSlots",
    "MaxLoadPerPhase",
    "WorkerGroup",
    "QualificationLevel",
)
TASK_FIELDS = (
    "TaskID",
    "TaskName",
    "Category",
    "Duration",
    "RequiredSkills",
    "PreferredPhases",
    "MaxConcurrent",
)


def _is_missing(value: RawValue) -> bool:
    if value is None:
        return True
    if isinstance(value, float) and math.isnan(value):
        return True
    return isinstance(value, str) and not value.strip()


def as_text(value: RawValue) -> str:
    """Render a cell as text; 3.0 becomes "3", missing/NaN become ""."""
    if _is_missing(value):
        return ""
    if isinstance(value, bool):
        return str(value).lower()
    if isinstance(value, float) and value.is_integer():
        return str(int(value))
    return str(value).strip()


def as_int(value: RawValue, default: int = DEFAULT_INT) -> int:
    """Read a whole number from a cell; anything else yields `default`."""
    if _is_missing(value) or isinstance(value, bool):
        return default
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if value.is_integer() else default
    try:
        number = float(str(value).strip())
    except ValueError:
        return default
    if not math.isfinite(number) or not number.is_integer():
        return default
    return int(number)


def is_blank_row(row: RawRow) -> bool:
    return all(_is_missing(v) for v in row.values())


def to_client(row: RawRow, index: int) -> Client:
    return Client(
        client_id=as_text(row.get("ClientID")) or f"C{index + 1}",
        client_name=as_text(row.get("ClientName")),
        priority_level=as_int(row.get("PriorityLevel")),
        requested_task_ids=as_text(row.get("RequestedTaskIDs")),
        group_tag=as_text(row.get("GroupTag")),
        attributes_json=as_text(row.get("AttributesJSON")),
    )


def to_worker(row: RawRow, index: int) -> Worker:
    return Worker(
        worker_id=as_text(row.get("WorkerID")) or f"W{index + 1}",
        worker_name=as_text(row.get("WorkerName")),
        skills=as_text(row.get("Skills")),
        available_slots=as_text(row.get("AvailableSlots")),
        max_load_per_phase=as_int(row.get("MaxLoadPerPhase")),
        worker_group=as_text(row.get("WorkerGroup")),
        qualification_level=as_int(row.get("QualificationLevel")),
    )


def to_task(row: RawRow, index: int) -> Task:
    return Task(
        task_id=as_text(row.get("TaskID")) or f"T{index + 1}",
        task_name=as_text(row.get("TaskName")),
        category=as_text(row.get("Category")),
        duration=as_int(row.get("Duration")),
        required_skills=as_text(row.get("RequiredSkills")),
        preferred_phases=as_text(row.get("PreferredPhases")),
        max_concurrent=as_int(row.get("MaxConcurrent")),
    )


_CONVERTERS = {
    "clients": to_client,
    "workers": to_worker,
    "tasks": to_task,
}


def normalize_rows(
    rows: Iterable[RawRow], kind: EntityType
) -> list[Client] | list[Worker] | list[Task]:
    """
    @brief
    Convert a sequence of raw rows into typed records of one entity type.

    @details
    Row order is preserved and nothing is de-duplicated; the positional index
    only feeds default identifiers for rows without one.

    @params
        rows : Iterable[RawRow]
            Raw rows keyed by column name.
        kind : "clients" | "workers" | "tasks"
            Target entity collection.

    @returns
        List of Client, Worker or Task records.
    """
    try:
        convert = _CONVERTERS[kind]
    except KeyError:
        raise ValueError(f"Unknown entity type: {kind!r}") from None
    return [convert(row, index) for index, row in enumerate(rows)]  # type: ignore[return-value]


__all__ = [
    "CLIENT_FIELDS",
    "TASK_FIELDS",
    "WORKER_FIELDS",
    "as_int",
    "as_text",
    "is_blank_row",
    "normalize_rows",
    "to_client",
    "to_task",
    "to_worker",
]
