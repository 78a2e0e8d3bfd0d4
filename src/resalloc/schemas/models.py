"""
@brief
Pydantic data models for the resalloc validation gate.

@details
Defines the canonical model types:
    - Client, Worker, Task: typed entity records (one row of the source sheet each)
    - Finding: one immutable validation outcome tied to entity/field/row
    - ValidationReport: aggregated result of one validation run
    - Config: runtime configuration (from config.yaml), including nested sections

Entity attributes are snake_case; the original spreadsheet column names
(ClientID, PriorityLevel, ...) are accepted as aliases. Numeric entity fields carry
no range constraints: out-of-range values must reach the validator to be reported.
"""

from __future__ import annotations

from enum import Enum
from uuid import uuid4

from pydantic import BaseModel, Field

# Row value used by findings that are not tied to a single record.
GLOBAL_ROW = -1


class Severity(str, Enum):
    ERROR = "error"
    WARNING = "warning"


class EntityKind(str, Enum):
    CLIENT = "client"
    WORKER = "worker"
    TASK = "task"


class _StrictBaseModel(BaseModel):
    """
    @brief
    Base model enforcing strict defaults for configuration and data contracts.

    @details
    Forbids unknown fields and accepts both attribute names and column aliases.
    Designed as a foundation for all other resalloc models.
    """

    model_config = {
        "extra": "forbid",  # Reject unknown fields
        "populate_by_name": True,  # Allow population by field name
        "use_enum_values": True,  # Store raw enum values ("error", "task")
    }


# ------------------------------------------------------------
# Entity records
# ------------------------------------------------------------
class Client(_StrictBaseModel):
    """
    @brief
    Represents one client row.

    @details
    RequestedTaskIDs is a comma-separated list of TaskID references.
    AttributesJSON is kept as an opaque string; only its JSON validity is checked.
    """

    client_id: str = Field(..., alias="ClientID", description="Intended-unique key")
    client_name: str = Field("", alias="ClientName")
    priority_level: int = Field(1, alias="PriorityLevel", description="Valid range 1..5")
    requested_task_ids: str = Field(
        "", alias="RequestedTaskIDs", description="Comma-separated TaskID list"
    )
    group_tag: str = Field("", alias="GroupTag")
    attributes_json: str = Field(
        "", alias="AttributesJSON", description="JSON-encoded object (may be empty)"
    )


class Worker(_StrictBaseModel):
    """
    @brief
    Represents one worker row.

    @details
    AvailableSlots encodes the set of phases the worker can take part in;
    MaxLoadPerPhase is the number of concurrent tasks per phase.
    """

    worker_id: str = Field(..., alias="WorkerID", description="Intended-unique key")
    worker_name: str = Field("", alias="WorkerName")
    skills: str = Field("", alias="Skills", description="Comma-separated, case-insensitive")
    available_slots: str = Field("", alias="AvailableSlots", description="Phase-set expression")
    max_load_per_phase: int = Field(1, alias="MaxLoadPerPhase", description="Must be >= 1")
    worker_group: str = Field("", alias="WorkerGroup")
    qualification_level: int = Field(
        1, alias="QualificationLevel", description="Advisory range 1..10"
    )


class Task(_StrictBaseModel):
    """
    @brief
    Represents one task row.

    @details
    Duration is the amount of phase capacity the task consumes in every
    preferred phase. PreferredPhases accepts several surface syntaxes.
    """

    task_id: str = Field(..., alias="TaskID", description="Intended-unique key")
    task_name: str = Field("", alias="TaskName")
    category: str = Field("", alias="Category")
    duration: int = Field(1, alias="Duration", description="Must be >= 1")
    required_skills: str = Field(
        "", alias="RequiredSkills", description="Comma-separated, case-insensitive"
    )
    preferred_phases: str = Field("", alias="PreferredPhases", description="Phase-set expression")
    max_concurrent: int = Field(1, alias="MaxConcurrent", description="Must be >= 1")


# ------------------------------------------------------------
# Validation results
# ------------------------------------------------------------
def make_finding_id(entity: str, field: str, row: int, message: str) -> str:
    """
    @brief
    Compose a unique identifier for a finding.

    @details
    Combines entity, field and row with a short whitespace-free message fragment
    and a random salt, so that two findings on the same cell stay distinguishable.
    """
    fragment = "".join(message[:10].split())
    return f"{entity}-{field}-{row}-{fragment}-{uuid4().hex[:9]}"


class Finding(_StrictBaseModel):
    """
    @brief
    One reported validation outcome.

    @details
    Immutable once produced. `row` is the zero-based record index, or GLOBAL_ROW
    for aggregate findings (phase saturation, co-requested task pairs).
    """

    model_config = {**_StrictBaseModel.model_config, "frozen": True}

    id: str = Field("", description="Unique per finding within one run")
    entity: EntityKind
    field: str = Field(..., description="Column name, e.g. PriorityLevel")
    row: int = Field(..., ge=GLOBAL_ROW)
    message: str
    severity: Severity = Severity.ERROR

    @classmethod
    def create(
        cls,
        entity: EntityKind | str,
        field: str,
        row: int,
        message: str,
        severity: Severity | str = Severity.ERROR,
    ) -> Finding:
        entity_value = EntityKind(entity).value
        return cls(
            id=make_finding_id(entity_value, field, row, message),
            entity=entity_value,
            field=field,
            row=row,
            message=message,
            severity=Severity(severity).value,
        )

    @property
    def is_error(self) -> bool:
        return Severity(self.severity) is Severity.ERROR

    def signature(self) -> tuple[str, str, int, str, str]:
        """Identity of the finding without its id (used for run-to-run comparison)."""
        return (
            EntityKind(self.entity).value,
            self.field,
            self.row,
            self.message,
            Severity(self.severity).value,
        )


class ExperimentConfig(BaseModel):
    """
    @brief
    Metadata describing the run context.

    @details
    Attached to the ValidationReport when any field is set, so saved reports
    can be traced back to the run that produced them.
    """

    name: str | None = None
    description: str | None = None
    tags: list[str] | None = None


class ValidationReport(BaseModel):
    """
    @brief
    Aggregated outcome of one validation run.

    @details
    Counts are derived from `findings`; `valid` follows the ValidationConfig policy
    (errors always invalidate, warnings only with fail_on_warnings).
    `experiment` carries the run metadata from Config, or None when unset.
    """

    timestamp: str
    valid: bool
    error_count: int = 0
    warning_count: int = 0
    by_entity: dict[str, int] = Field(default_factory=dict)
    findings: list[Finding] = Field(default_factory=list)
    experiment: ExperimentConfig | None = None


# ------------------------------------------------------------
# Runtime configuration
# ------------------------------------------------------------
class ValidationConfig(BaseModel):
    """
    @brief
    Controls behavior of the validation report.

    @details
    Determines whether to write a report and whether warnings
    should be treated as failures.
    """

    write_report: bool = True
    fail_on_warnings: bool = False
    report_filename: str = "validation_report.json"


class AutoFixConfig(BaseModel):
    """
    @brief
    Controls the auto-fix pass run before validation.

    @details
    `relieve_saturation` additionally bumps worker capacity in oversaturated
    phases, never above `max_load_ceiling`.
    `break_co_requests` drops the second task of every co-requested pair from
    the client requests, which clears the circular-grouping warnings.
    """

    enabled: bool = False
    break_co_requests: bool = False
    relieve_saturation: bool = False
    max_load_ceiling: int = Field(6, ge=1, description="Upper bound for raised MaxLoadPerPhase")


class Config(_StrictBaseModel):
    """
    @brief
    Represents the full runtime configuration loaded from config.yaml.

    @details
    Combines input/output locations with validation, auto-fix and
    experiment settings.
    """

    dataset_json: str | None = None
    output_dir: str | None = "data/output"
    validation: ValidationConfig = Field(default_factory=ValidationConfig.model_construct)
    autofix: AutoFixConfig = Field(default_factory=AutoFixConfig.model_construct)
    experiment: ExperimentConfig = Field(default_factory=ExperimentConfig.model_construct)


__all__ = [
    "GLOBAL_ROW",
    "AutoFixConfig",
    "Client",
    "Config",
    "EntityKind",
    "Finding",
    "Severity",
    "Task",
    "ValidationConfig",
    "ValidationReport",
    "Worker",
]
