# src/resalloc/validator/cross_checks.py
"""
@brief
Cross-collection rules: skill coverage, phase saturation, co-requested tasks.

@details
These checks look at relationships between clients, workers and tasks rather
than at single rows. Saturation and co-request findings are aggregate and use
GLOBAL_ROW instead of a row index.
"""

from __future__ import annotations

from collections import defaultdict
from collections.abc import Sequence
from dataclasses import dataclass, field

from resalloc.schemas.models import GLOBAL_ROW, Client, EntityKind, Finding, Severity, Task, Worker
from resalloc.validator.entity_checks import split_list
from resalloc.validator.phase_parser import parse_phase_set


@dataclass
class PhaseLoad:
    """
    @brief
    Per-phase capacity and demand totals.

    @details
    capacity[p] sums MaxLoadPerPhase of workers available in phase p;
    demand[p] sums Duration of tasks preferring phase p. Rows whose phase
    expression does not parse contribute nothing.
    """

    capacity: dict[int, int] = field(default_factory=dict)
    demand: dict[int, int] = field(default_factory=dict)

    def oversaturated(self) -> list[tuple[int, int, int]]:
        """(phase, demand, capacity) for every demanded phase over capacity, ascending."""
        result = []
        for phase in sorted(self.demand):
            demand = self.demand[phase]
            capacity = self.capacity.get(phase, 0)
            if demand > capacity:
                result.append((phase, demand, capacity))
        return result


def compute_phase_load(workers: Sequence[Worker], tasks: Sequence[Task]) -> PhaseLoad:
    capacity: dict[int, int] = defaultdict(int)
    demand: dict[int, int] = defaultdict(int)

    for worker in workers:
        slots = parse_phase_set(worker.available_slots)
        if not slots.ok:
            continue
        for phase in slots.phases:
            capacity[phase] += worker.max_load_per_phase

    for task in tasks:
        if task.duration <= 0:
            continue
        phases = parse_phase_set(task.preferred_phases)
        if not phases.ok:
            continue
        # full Duration lands on every preferred phase
        for phase in phases.phases:
            demand[phase] += task.duration

    return PhaseLoad(capacity=dict(capacity), demand=dict(demand))


def check_skill_coverage(tasks: Sequence[Task], workers: Sequence[Worker]) -> list[Finding]:
    """
    @brief
    Warn about required skills no worker lists.

    @details
    Matching is a case-insensitive substring test against each worker's raw
    Skills cell, so "weld" is covered by a worker listing "Welding".
    """
    findings: list[Finding] = []
    worker_skills = [w.skills.lower() for w in workers if w.skills]

    for index, task in enumerate(tasks):
        for skill in split_list(task.required_skills):
            needle = skill.lower()
            if not any(needle in held for held in worker_skills):
                findings.append(
                    Finding.create(
                        EntityKind.TASK,
                        "RequiredSkills",
                        index,
                        f"No worker available with skill: {skill}",
                        Severity.WARNING,
                    )
                )
    return findings


def check_phase_saturation(workers: Sequence[Worker], tasks: Sequence[Task]) -> list[Finding]:
    """
    @brief
    Warn about phases whose aggregate task demand exceeds worker capacity.
    """
    findings: list[Finding] = []
    for phase, demand, capacity in compute_phase_load(workers, tasks).oversaturated():
        findings.append(
            Finding.create(
                EntityKind.TASK,
                "PreferredPhases",
                GLOBAL_ROW,
                f"Phase {phase} is oversaturated: demand ({demand}) exceeds capacity ({capacity})",
                Severity.WARNING,
            )
        )
    return findings


def co_requested_pairs(clients: Sequence[Client]) -> list[tuple[str, str]]:
    """
    @brief
    Unordered pairs of distinct tasks requested together by some client.

    @details
    Pairs are returned once each, in the order they are first encountered
    (client row order, then position inside RequestedTaskIDs).
    """
    pairs: list[tuple[str, str]] = []
    seen: set[frozenset[str]] = set()

    for client in clients:
        requested = list(dict.fromkeys(split_list(client.requested_task_ids)))
        if len(requested) < 2:
            continue
        for i, first in enumerate(requested):
            for second in requested[i + 1 :]:
                key = frozenset((first, second))
                if key in seen:
                    continue
                seen.add(key)
                pairs.append((first, second))
    return pairs


def check_circular_groupings(clients: Sequence[Client]) -> list[Finding]:
    """
    @brief
    Flag tasks requested together as potential circular dependencies.

    @details
    Co-occurrence in one client's request list relates both tasks to each
    other, which makes every such pair look circular. This is a coarse proxy,
    not cycle detection over directed dependencies; one warning per pair.
    """
    return [
        Finding.create(
            EntityKind.TASK,
            "RequestedTaskIDs",
            GLOBAL_ROW,
            f"Potential circular dependency detected between {first} and {second}",
            Severity.WARNING,
        )
        for first, second in co_requested_pairs(clients)
    ]


__all__ = [
    "PhaseLoad",
    "check_circular_groupings",
    "check_phase_saturation",
    "check_skill_coverage",
    "co_requested_pairs",
    "compute_phase_load",
]
