# src/resalloc/autofix/fixer.py
"""
@brief
Automatic repair of common formatting problems in entity collections.

@details
The fixer rewrites values the validator would flag as fixable:
    - AttributesJSON that is plain text or almost-JSON
    - RequestedTaskIDs pointing at unknown tasks
    - AvailableSlots / PreferredPhases in a non-array encoding
    - MaxLoadPerPhase lower than the number of available slots
and optionally breaks up co-requested task pairs and relieves oversaturated
phases by raising worker capacity.

Phase expressions go through the same parser the validator uses, so the two
never disagree about which encodings are valid. Inputs are never mutated;
every fix produces new records and a human-readable action line.
"""

from __future__ import annotations

import json
import logging
import re
from collections.abc import Sequence
from dataclasses import dataclass, field

from resalloc.schemas.models import AutoFixConfig, Client, Task, Worker
from resalloc.validator.cross_checks import co_requested_pairs, compute_phase_load
from resalloc.validator.entity_checks import loads_strict_json, split_list
from resalloc.validator.phase_parser import PhaseForm, parse_phase_set

logger = logging.getLogger(__name__)

_BARE_KEY_RE = re.compile(r"([{,]\s*)([A-Za-z_]\w*)\s*:")
_BARE_VALUE_RE = re.compile(r':\s*([^",{}\[\]:]+?)\s*(?=[,}])')
_JSON_LITERALS = {"true", "false", "null"}
_NUMBER_RE = re.compile(r"^-?\d+(\.\d+)?([eE][+-]?\d+)?$")


@dataclass
class FixResult:
    """
    @brief
    Repaired collections plus the list of applied actions.
    """

    clients: list[Client] = field(default_factory=list)
    workers: list[Worker] = field(default_factory=list)
    tasks: list[Task] = field(default_factory=list)
    actions: list[str] = field(default_factory=list)

    @property
    def changed(self) -> bool:
        return bool(self.actions)


def _is_json(text: str) -> bool:
    try:
        loads_strict_json(text)
    except ValueError:
        return False
    return True


def _quote_bare_value(match: re.Match[str]) -> str:
    value = match.group(1)
    if value in _JSON_LITERALS or _NUMBER_RE.match(value):
        return f": {value}"
    return f': "{value}"'


def repair_json(text: str) -> str | None:
    """
    @brief
    Best-effort repair of almost-JSON such as {name: 'x', level: high}.

    @returns
        Repaired JSON text, or None when the result still does not parse.
    """
    candidate = text.replace("'", '"')
    candidate = _BARE_KEY_RE.sub(r'\1"\2":', candidate)
    candidate = _BARE_VALUE_RE.sub(_quote_bare_value, candidate)
    return candidate if _is_json(candidate) else None


def canonical_phases(raw: str) -> str | None:
    """Array form of a parseable non-array phase expression, else None."""
    parsed = parse_phase_set(raw)
    if not parsed.ok or parsed.form in (PhaseForm.EMPTY, PhaseForm.JSON_ARRAY):
        return None
    return parsed.canonical()


class AutoFixer:
    """
    @brief
    Applies formatting fixes to client, worker and task collections.

    @details
    Configuration decides whether saturation relief runs after the
    format fixes and how far worker capacity may be raised.
    """

    def __init__(self, config: AutoFixConfig | None = None) -> None:
        self.config = config or AutoFixConfig()

    def fix(
        self,
        clients: Sequence[Client],
        workers: Sequence[Worker],
        tasks: Sequence[Task],
    ) -> FixResult:
        """
        @brief
        Run every fix and return the repaired collections.

        @details
        Order: clients → (optional) co-request breaking → tasks → workers →
        (optional) saturation relief.
        Row order and row count are preserved.
        """
        actions: list[str] = []
        task_ids = {t.task_id for t in tasks}

        fixed_clients = [self._fix_client(c, task_ids, actions) for c in clients]
        if self.config.break_co_requests:
            fixed_clients, broken = self.break_co_requests(fixed_clients)
            actions.extend(broken)

        fixed_tasks = [self._fix_task(t, actions) for t in tasks]
        fixed_workers = [self._fix_worker(w, actions) for w in workers]

        if self.config.relieve_saturation:
            fixed_workers, relief = self.relieve_saturation(fixed_workers, fixed_tasks)
            actions.extend(relief)

        for action in actions:
            logger.debug("AutoFix: %s", action)
        logger.info("AutoFix applied %d action(s)", len(actions))

        return FixResult(
            clients=fixed_clients, workers=fixed_workers, tasks=fixed_tasks, actions=actions
        )

    def break_co_requests(self, clients: Sequence[Client]) -> tuple[list[Client], list[str]]:
        """
        @brief
        Remove the second task of every co-requested pair from client requests.

        @details
        Pairs come from `co_requested_pairs`, in first-encounter order. For each
        client, every pair whose tasks are both still requested loses its second
        task; one action is recorded per removal. Afterwards no client requests
        two distinct tasks, so no co-request warning remains.
        """
        pairs = co_requested_pairs(clients)
        if not pairs:
            return list(clients), []

        actions: list[str] = []
        result: list[Client] = []
        for client in clients:
            requested = split_list(client.requested_task_ids)
            kept = list(requested)
            for first, second in pairs:
                if first in kept and second in kept:
                    kept = [tid for tid in kept if tid != second]
                    actions.append(
                        f"Fixed Client {client.client_id}: removed {second} "
                        f"to break co-request with {first}"
                    )
            if kept != requested:
                client = client.model_copy(update={"requested_task_ids": ", ".join(kept)})
            result.append(client)
        return result, actions

    def relieve_saturation(
        self, workers: Sequence[Worker], tasks: Sequence[Task]
    ) -> tuple[list[Worker], list[str]]:
        """
        @brief
        Raise capacity of workers available in oversaturated phases.

        @details
        Each worker available in at least one oversaturated phase gets
        MaxLoadPerPhase + 1, never above `max_load_ceiling`. One pass only:
        the phase may still be oversaturated afterwards.
        """
        ceiling = self.config.max_load_ceiling
        hot = {phase for phase, _, _ in compute_phase_load(workers, tasks).oversaturated()}
        if not hot:
            return list(workers), []

        actions: list[str] = []
        result: list[Worker] = []
        for worker in workers:
            slots = parse_phase_set(worker.available_slots)
            if (
                slots.ok
                and hot.intersection(slots.phases)
                and worker.max_load_per_phase < ceiling
            ):
                new_load = min(worker.max_load_per_phase + 1, ceiling)
                actions.append(
                    f"Raised Worker {worker.worker_id} MaxLoadPerPhase "
                    f"{worker.max_load_per_phase} -> {new_load} for oversaturated phase(s) "
                    f"{sorted(hot.intersection(slots.phases))}"
                )
                worker = worker.model_copy(update={"max_load_per_phase": new_load})
            result.append(worker)
        return result, actions

    # ------------------------------
    # Per-entity fixes
    # ------------------------------
    def _fix_client(self, client: Client, task_ids: set[str], actions: list[str]) -> Client:
        updates: dict[str, str] = {}

        raw = client.attributes_json
        if raw and raw.strip() and not _is_json(raw):
            if "{" not in raw and "[" not in raw:
                updates["attributes_json"] = json.dumps({"message": raw})
                actions.append(f"Fixed Client {client.client_id}: converted text to JSON")
            else:
                repaired = repair_json(raw)
                if repaired is not None:
                    updates["attributes_json"] = repaired
                    actions.append(f"Fixed Client {client.client_id}: repaired malformed JSON")
                else:
                    updates["attributes_json"] = json.dumps({"originalData": raw})
                    actions.append(
                        f"Fixed Client {client.client_id}: wrapped invalid JSON as data object"
                    )

        requested = split_list(client.requested_task_ids)
        unknown = [tid for tid in requested if tid not in task_ids]
        if unknown:
            updates["requested_task_ids"] = ", ".join(t for t in requested if t in task_ids)
            actions.append(
                f"Fixed Client {client.client_id}: removed invalid task IDs: {', '.join(unknown)}"
            )

        return client.model_copy(update=updates) if updates else client

    def _fix_task(self, task: Task, actions: list[str]) -> Task:
        canonical = canonical_phases(task.preferred_phases)
        if canonical is None:
            return task
        actions.append(
            f"Fixed Task {task.task_id}: converted PreferredPhases "
            f"'{task.preferred_phases.strip()}' to {canonical}"
        )
        return task.model_copy(update={"preferred_phases": canonical})

    def _fix_worker(self, worker: Worker, actions: list[str]) -> Worker:
        updates: dict[str, object] = {}

        canonical = canonical_phases(worker.available_slots)
        if canonical is not None:
            updates["available_slots"] = canonical
            actions.append(
                f"Fixed Worker {worker.worker_id}: converted AvailableSlots "
                f"'{worker.available_slots.strip()}' to {canonical}"
            )

        slots = parse_phase_set(canonical or worker.available_slots)
        if slots.ok and len(slots.phases) > worker.max_load_per_phase:
            updates["max_load_per_phase"] = len(slots.phases)
            actions.append(
                f"Fixed Worker {worker.worker_id}: adjusted MaxLoadPerPhase "
                f"{worker.max_load_per_phase} -> {len(slots.phases)} to match available slots"
            )

        return worker.model_copy(update=updates) if updates else worker


__all__ = ["AutoFixer", "FixResult", "canonical_phases", "repair_json"]
