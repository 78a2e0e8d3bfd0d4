# src/resalloc/validator/engine.py
from __future__ import annotations

import json
import logging
from collections import Counter
from collections.abc import Sequence
from datetime import datetime, timezone
from pathlib import Path
from typing import Any

from resalloc.errors import ValidationError
from resalloc.schemas.models import (
    Client,
    Config,
    EntityKind,
    ExperimentConfig,
    Finding,
    Severity,
    Task,
    ValidationConfig,
    ValidationReport,
    Worker,
)
from resalloc.validator.cross_checks import (
    check_circular_groupings,
    check_phase_saturation,
    check_skill_coverage,
)
from resalloc.validator.entity_checks import check_clients, check_tasks, check_workers

logger = logging.getLogger(__name__)


# ---------------------------
# VALIDATOR SERVICE (stateless)
# ----------------------------
class DataValidator:
    """
    @brief
    Pre-allocation data-quality gate.

    @details
    Runs every entity and cross-reference check over the three collections in
    a fixed order and concatenates their findings:
        clients -> workers -> tasks -> skill coverage -> saturation -> co-requests

    The object holds no state; each call recomputes everything from its
    arguments, so one instance may be shared freely. Malformed data is always
    reported as a Finding; no check aborts the run.
    """

    def validate_all(
        self,
        clients: Sequence[Client],
        workers: Sequence[Worker],
        tasks: Sequence[Task],
    ) -> list[Finding]:
        """
        @brief
        Execute the full validation sequence.

        @params
            clients : Sequence[Client]
            workers : Sequence[Worker]
            tasks : Sequence[Task]

        @returns
            Ordered list of findings (fresh on every call).
        """
        stages = (
            ("clients", lambda: check_clients(clients, tasks)),
            ("workers", lambda: check_workers(workers)),
            ("tasks", lambda: check_tasks(tasks, workers)),
            ("skill_coverage", lambda: check_skill_coverage(tasks, workers)),
            ("phase_saturation", lambda: check_phase_saturation(workers, tasks)),
            ("circular_groupings", lambda: check_circular_groupings(clients)),
        )

        findings: list[Finding] = []
        for name, run in stages:
            stage_findings = run()
            logger.debug("Validation stage %s: %d finding(s)", name, len(stage_findings))
            findings.extend(stage_findings)

        summary = summarize_findings(findings)
        logger.info(
            "Validated %d client(s), %d worker(s), %d task(s): errors=%d warnings=%d",
            len(clients),
            len(workers),
            len(tasks),
            summary["by_severity"].get(Severity.ERROR.value, 0),
            summary["by_severity"].get(Severity.WARNING.value, 0),
        )
        return findings


def validate_all(
    clients: Sequence[Client], workers: Sequence[Worker], tasks: Sequence[Task]
) -> list[Finding]:
    """Functional shortcut for DataValidator().validate_all(...)."""
    return DataValidator().validate_all(clients, workers, tasks)


# ----------------------------
# REPORTING
# ----------------------------
def summarize_findings(findings: Sequence[Finding]) -> dict[str, dict[str, int]]:
    """
    @brief
    Count findings by severity and by entity.

    @returns
        {"by_severity": {"error": n, ...}, "by_entity": {"client": n, ...}}
    """
    by_severity = Counter(Severity(f.severity).value for f in findings)
    by_entity = Counter(EntityKind(f.entity).value for f in findings)
    return {"by_severity": dict(by_severity), "by_entity": dict(by_entity)}


def build_report(
    findings: Sequence[Finding], cfg: Config | ValidationConfig | None = None
) -> ValidationReport:
    """
    @brief
    Assemble findings into a ValidationReport.

    @details
    Error-severity findings always invalidate the data. Warnings invalidate it
    only when `fail_on_warnings` is enabled. The report does not gate anything
    itself; consumers decide what to do with `valid`.

    When a full Config is given and any `cfg.experiment` field is set, the run
    metadata is attached to the report.
    """
    experiment: ExperimentConfig | None = None
    if isinstance(cfg, Config):
        policy = cfg.validation
        if cfg.experiment.model_dump(exclude_none=True):
            experiment = cfg.experiment
    elif isinstance(cfg, ValidationConfig):
        policy = cfg
    else:
        policy = ValidationConfig()

    summary = summarize_findings(findings)
    errors = summary["by_severity"].get(Severity.ERROR.value, 0)
    warnings = summary["by_severity"].get(Severity.WARNING.value, 0)
    valid = errors == 0 and not (policy.fail_on_warnings and warnings > 0)

    return ValidationReport(
        timestamp=datetime.now(timezone.utc).isoformat(timespec="seconds"),
        valid=valid,
        error_count=errors,
        warning_count=warnings,
        by_entity=summary["by_entity"],
        findings=list(findings),
        experiment=experiment,
    )


def save_report(
    report: ValidationReport,
    out_dir: Path | None = None,
    filename: str = "validation_report.json",
) -> Path:
    """
    Writes the report atomically to disk.

    Args:
        report: Validation report.
        out_dir: Target directory (defaults to 'data/output').
        filename: Target filename (default 'validation_report.json').

    Returns:
        Path to the written JSON file.
    """
    target_dir = Path(out_dir) if out_dir is not None else Path("data/output")
    final_path = target_dir / filename
    tmp_path = final_path.with_suffix(".tmp")

    try:
        target_dir.mkdir(parents=True, exist_ok=True)
        payload: dict[str, Any] = report.model_dump(mode="json")
        with open(tmp_path, "w", encoding="utf-8") as f:
            json.dump(payload, f, indent=2, ensure_ascii=False)
        tmp_path.replace(final_path)
    except OSError as e:
        raise ValidationError(
            f"Failed to write validation report: {e}",
            source="engine.save_report",
            suggested_action="Check disk permissions and free space.",
        ) from e

    logger.info("Validation report saved: %s", final_path)
    return final_path


# ----------------------------
# THIN FACADE
# ----------------------------
def validate_dataset(
    clients: Sequence[Client],
    workers: Sequence[Worker],
    tasks: Sequence[Task],
    cfg: Config | None = None,
    *,
    write_report: bool | None = None,
    out_dir: Path | None = None,
    filename: str | None = None,
) -> ValidationReport:
    """
    @brief
    High-level convenience wrapper: validate, build a report, optionally save it.

    @details
    Explicit keyword arguments override the corresponding Config values.
    Always returns the in-memory report regardless of write mode.

    @params
        clients, workers, tasks : Sequence
            Typed entity collections.
        cfg : Config | None
            Runtime configuration (defaults applied when None).
        write_report : bool | None
            Persist the report as JSON; defaults to cfg.validation.write_report.
        out_dir : Path | None
            Output directory; defaults to cfg.output_dir.
        filename : str | None
            Report filename; defaults to cfg.validation.report_filename.

    @returns
        ValidationReport for the given collections.
    """
    cfg = cfg or Config()

    # (1) Run all checks
    findings = DataValidator().validate_all(clients, workers, tasks)

    # (2) Build the report under the configured policy
    report = build_report(findings, cfg)

    # (3) Optionally persist
    should_write = cfg.validation.write_report if write_report is None else write_report
    if should_write:
        target_dir = out_dir if out_dir is not None else Path(cfg.output_dir or "data/output")
        save_report(
            report,
            out_dir=target_dir,
            filename=filename or cfg.validation.report_filename,
        )

    return report


__all__ = [
    "DataValidator",
    "build_report",
    "save_report",
    "summarize_findings",
    "validate_all",
    "validate_dataset",
]
