# src/resalloc/validator/entity_checks.py
"""
@brief
Per-entity validation rules for clients, workers and tasks.

@details
Each check function inspects one collection (plus the reference data it needs)
and returns its own list of findings in row order. Nothing is shared between
calls; malformed data always becomes a Finding, never an exception.
"""

from __future__ import annotations

import json
from collections.abc import Iterable, Sequence

from resalloc.schemas.models import Client, EntityKind, Finding, Severity, Task, Worker
from resalloc.validator.phase_parser import EXPECTED_FORMATS, parse_phase_set

PRIORITY_RANGE = (1, 5)
QUALIFICATION_RANGE = (1, 10)


def split_list(value: str | None) -> list[str]:
    """Split a comma-separated cell into trimmed, non-empty tokens."""
    if not value:
        return []
    return [token.strip() for token in value.split(",") if token.strip()]


def collect_worker_skills(workers: Iterable[Worker]) -> set[str]:
    """Case-insensitive union of every skill held by any worker."""
    skills: set[str] = set()
    for worker in workers:
        skills.update(token.lower() for token in split_list(worker.skills))
    return skills


def _reject_constant(name: str) -> float:
    raise ValueError(f"{name} is not valid JSON")


def loads_strict_json(text: str) -> object:
    """json.loads without the NaN/Infinity extensions."""
    return json.loads(text, parse_constant=_reject_constant)


def _duplicate_finding(
    entity: EntityKind, field: str, row: int, value: str, seen: set[str]
) -> Finding | None:
    # (1) Running set: the first occurrence passes, later ones are reported
    if value in seen:
        return Finding.create(entity, field, row, f"Duplicate {field}: {value}")
    seen.add(value)
    return None


# ----------------------------
# CLIENTS
# ----------------------------
def check_clients(clients: Sequence[Client], tasks: Sequence[Task]) -> list[Finding]:
    """
    @brief
    Validate client rows.

    @details
    Checks duplicate ClientID, PriorityLevel range, unknown task references in
    RequestedTaskIDs and the JSON validity of AttributesJSON.

    @params
        clients : Sequence[Client]
            Client collection in input order.
        tasks : Sequence[Task]
            Task collection used to resolve RequestedTaskIDs.

    @returns
        Findings for the client collection, in row order.
    """
    findings: list[Finding] = []
    task_ids = {t.task_id for t in tasks}
    seen_ids: set[str] = set()
    low, high = PRIORITY_RANGE

    for index, client in enumerate(clients):
        dup = _duplicate_finding(EntityKind.CLIENT, "ClientID", index, client.client_id, seen_ids)
        if dup is not None:
            findings.append(dup)

        if not low <= client.priority_level <= high:
            findings.append(
                Finding.create(
                    EntityKind.CLIENT,
                    "PriorityLevel",
                    index,
                    f"Priority level must be between {low} and {high} (got {client.priority_level})",
                )
            )

        for task_id in split_list(client.requested_task_ids):
            if task_id not in task_ids:
                findings.append(
                    Finding.create(
                        EntityKind.CLIENT, "RequestedTaskIDs", index, f"Unknown task ID: {task_id}"
                    )
                )

        finding = _check_attributes_json(index, client.attributes_json)
        if finding is not None:
            findings.append(finding)

    return findings


def _check_attributes_json(index: int, raw: str) -> Finding | None:
    if not raw or not raw.strip():
        return None
    try:
        loads_strict_json(raw)
    except ValueError:
        if "{" in raw or "[" in raw:
            return Finding.create(
                EntityKind.CLIENT,
                "AttributesJSON",
                index,
                "Invalid JSON format - contains JSON characters but is malformed JSON",
            )
        return Finding.create(
            EntityKind.CLIENT,
            "AttributesJSON",
            index,
            "Non-JSON text detected - plain text should be converted to JSON",
            Severity.WARNING,
        )
    return None


# ----------------------------
# WORKERS
# ----------------------------
def check_workers(workers: Sequence[Worker]) -> list[Finding]:
    """
    @brief
    Validate worker rows.

    @details
    Checks duplicate WorkerID, the AvailableSlots expression (format and overload
    against MaxLoadPerPhase), MaxLoadPerPhase >= 1 and the advisory
    QualificationLevel range.
    """
    findings: list[Finding] = []
    seen_ids: set[str] = set()
    low, high = QUALIFICATION_RANGE

    for index, worker in enumerate(workers):
        dup = _duplicate_finding(EntityKind.WORKER, "WorkerID", index, worker.worker_id, seen_ids)
        if dup is not None:
            findings.append(dup)

        slots = parse_phase_set(worker.available_slots)
        if not slots.is_empty:
            if not slots.ok:
                findings.append(
                    Finding.create(
                        EntityKind.WORKER,
                        "AvailableSlots",
                        index,
                        f"Invalid AvailableSlots: {slots.reason}. "
                        f"Expected a phase array like [1, 2, 3] or one of {EXPECTED_FORMATS}",
                    )
                )
            else:
                if slots.needs_normalization:
                    findings.append(
                        Finding.create(
                            EntityKind.WORKER,
                            "AvailableSlots",
                            index,
                            f"Non-array slots detected: {slots.raw}. "
                            f"Consider using array format {slots.canonical()}",
                            Severity.WARNING,
                        )
                    )
                if len(slots.phases) > worker.max_load_per_phase:
                    findings.append(
                        Finding.create(
                            EntityKind.WORKER,
                            "MaxLoadPerPhase",
                            index,
                            f"Worker has more available slots ({len(slots.phases)}) "
                            f"than max load per phase ({worker.max_load_per_phase})",
                            Severity.WARNING,
                        )
                    )

        if worker.max_load_per_phase < 1:
            findings.append(
                Finding.create(
                    EntityKind.WORKER,
                    "MaxLoadPerPhase",
                    index,
                    "MaxLoadPerPhase must be at least 1",
                )
            )

        if not low <= worker.qualification_level <= high:
            findings.append(
                Finding.create(
                    EntityKind.WORKER,
                    "QualificationLevel",
                    index,
                    f"QualificationLevel should be between {low} and {high}",
                    Severity.WARNING,
                )
            )

    return findings


# ----------------------------
# TASKS
# ----------------------------
def check_tasks(tasks: Sequence[Task], workers: Sequence[Worker]) -> list[Finding]:
    """
    @brief
    Validate task rows.

    @details
    Checks duplicate TaskID, Duration and MaxConcurrent lower bounds, required
    skills against the union of worker skills (built once per call) and the
    PreferredPhases expression.
    """
    findings: list[Finding] = []
    seen_ids: set[str] = set()
    worker_skills = collect_worker_skills(workers)

    for index, task in enumerate(tasks):
        dup = _duplicate_finding(EntityKind.TASK, "TaskID", index, task.task_id, seen_ids)
        if dup is not None:
            findings.append(dup)

        if task.duration < 1:
            findings.append(
                Finding.create(EntityKind.TASK, "Duration", index, "Duration must be at least 1")
            )

        if task.max_concurrent < 1:
            findings.append(
                Finding.create(
                    EntityKind.TASK, "MaxConcurrent", index, "MaxConcurrent must be at least 1"
                )
            )

        for skill in split_list(task.required_skills):
            skill = skill.lower()
            if skill not in worker_skills:
                findings.append(
                    Finding.create(
                        EntityKind.TASK,
                        "RequiredSkills",
                        index,
                        f"No worker has required skill: {skill}",
                        Severity.WARNING,
                    )
                )

        phases = parse_phase_set(task.preferred_phases)
        if phases.is_empty:
            continue
        if not phases.ok:
            findings.append(
                Finding.create(
                    EntityKind.TASK,
                    "PreferredPhases",
                    index,
                    f"Invalid PreferredPhases '{phases.raw}': {phases.reason}",
                )
            )
        elif phases.needs_normalization:
            findings.append(
                Finding.create(
                    EntityKind.TASK,
                    "PreferredPhases",
                    index,
                    f"Non-array phases detected: {phases.raw}. "
                    f"Consider using array format {phases.canonical()}",
                    Severity.WARNING,
                )
            )

    return findings


__all__ = [
    "PRIORITY_RANGE",
    "QUALIFICATION_RANGE",
    "check_clients",
    "check_tasks",
    "check_workers",
    "collect_worker_skills",
    "loads_strict_json",
    "split_list",
]
