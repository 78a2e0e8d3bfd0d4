# tests/validator/test_engine.py
from __future__ import annotations

import json
import logging
from collections import Counter
from pathlib import Path

import pytest

from resalloc.errors import ValidationError
from resalloc.schemas.models import (
    Client,
    Config,
    ExperimentConfig,
    Task,
    ValidationConfig,
    Worker,
)
from resalloc.validator.engine import (
    DataValidator,
    build_report,
    save_report,
    summarize_findings,
    validate_all,
    validate_dataset,
)


@pytest.fixture()
def dataset() -> tuple[list[Client], list[Worker], list[Task]]:
    """
    @brief
    Small dataset that triggers at least one finding in every stage.
    """
    clients = [
        Client(client_id="C1", priority_level=6, requested_task_ids="T1,T2"),
        Client(client_id="C1", requested_task_ids="T99"),
    ]
    workers = [
        Worker(worker_id="W1", skills="data", available_slots="[1]", max_load_per_phase=1),
        Worker(worker_id="W1", skills="ops", available_slots="nope", max_load_per_phase=1),
    ]
    tasks = [
        Task(task_id="T1", duration=3, required_skills="data", preferred_phases="[1]"),
        Task(task_id="T2", duration=0, required_skills="welding", preferred_phases="1,2"),
    ]
    return clients, workers, tasks


def test_findings_follow_fixed_stage_order(dataset) -> None:
    """
    @brief
    Output order: clients, workers, tasks, then cross-reference checks.

    @details
    Cross checks run skill coverage, then saturation, then co-requested pairs.
    """
    # --- Act ---
    findings = validate_all(*dataset)

    # --- Assert ---
    stage_keys = []
    for f in findings:
        if f.entity != "task" or f.row >= 0 and "available with skill" not in f.message:
            key = f.entity
        elif "available with skill" in f.message:
            key = "skill_coverage"
        elif "oversaturated" in f.message:
            key = "saturation"
        else:
            key = "circular"
        if not stage_keys or stage_keys[-1] != key:
            stage_keys.append(key)

    assert stage_keys == [
        "client",
        "worker",
        "task",
        "skill_coverage",
        "saturation",
        "circular",
    ]


def test_validation_is_idempotent_up_to_ids(dataset) -> None:
    """
    @brief
    Two runs over the same data give the same findings, ids aside.
    """
    # --- Act ---
    first = validate_all(*dataset)
    second = DataValidator().validate_all(*dataset)

    # --- Assert ---
    assert Counter(f.signature() for f in first) == Counter(f.signature() for f in second)
    assert {f.id for f in first}.isdisjoint({f.id for f in second})


def test_finding_ids_are_unique_within_a_run(dataset) -> None:
    # --- Act ---
    findings = validate_all(*dataset)

    # --- Assert ---
    assert len({f.id for f in findings}) == len(findings)


def test_inputs_are_not_reordered_or_mutated(dataset) -> None:
    # --- Arrange ---
    clients, workers, tasks = dataset
    before = [c.model_dump() for c in clients]

    # --- Act ---
    validate_all(clients, workers, tasks)

    # --- Assert ---
    assert [c.model_dump() for c in clients] == before


def test_clean_dataset_has_no_findings() -> None:
    # --- Arrange ---
    clients = [Client(client_id="C1", priority_level=2, requested_task_ids="T1")]
    workers = [Worker(worker_id="W1", skills="data", available_slots="[1, 2]", max_load_per_phase=2)]
    tasks = [Task(task_id="T1", required_skills="data", preferred_phases="[1-2]", duration=2)]

    # --- Act / Assert ---
    assert validate_all(clients, workers, tasks) == []


def test_empty_collections_validate_cleanly() -> None:
    assert validate_all([], [], []) == []


def test_summary_logged_at_info(dataset, caplog: pytest.LogCaptureFixture) -> None:
    # --- Arrange ---
    caplog.set_level(logging.INFO, logger="resalloc.validator.engine")

    # --- Act ---
    validate_all(*dataset)

    # --- Assert ---
    assert "errors=" in caplog.text and "warnings=" in caplog.text


# -----------------------------
# Report
# -----------------------------
def test_summarize_counts_by_severity_and_entity(dataset) -> None:
    # --- Arrange ---
    findings = validate_all(*dataset)

    # --- Act ---
    summary = summarize_findings(findings)

    # --- Assert ---
    assert sum(summary["by_severity"].values()) == len(findings)
    assert sum(summary["by_entity"].values()) == len(findings)
    assert set(summary["by_entity"]) == {"client", "worker", "task"}


def test_report_invalid_when_errors_present(dataset) -> None:
    # --- Act ---
    report = build_report(validate_all(*dataset))

    # --- Assert ---
    assert report.valid is False
    assert report.error_count > 0
    assert report.error_count + report.warning_count == len(report.findings)


def test_warnings_only_invalidate_with_fail_on_warnings() -> None:
    """
    @brief
    A warning-only run is valid unless fail_on_warnings is set.
    """
    # --- Arrange ---
    tasks = [Task(task_id="T1", preferred_phases="3")]
    workers = [Worker(worker_id="W1", available_slots="[3]")]
    findings = validate_all([], workers, tasks)
    assert findings and all(f.severity == "warning" for f in findings)

    # --- Act ---
    lenient = build_report(findings)
    strict = build_report(findings, ValidationConfig(fail_on_warnings=True))

    # --- Assert ---
    assert lenient.valid is True
    assert strict.valid is False


def test_save_report_writes_json(tmp_path: Path, dataset) -> None:
    # --- Arrange ---
    report = build_report(validate_all(*dataset))

    # --- Act ---
    path = save_report(report, out_dir=tmp_path, filename="report.json")

    # --- Assert ---
    data = json.loads(path.read_text(encoding="utf-8"))
    assert data["valid"] is False
    assert len(data["findings"]) == len(report.findings)
    assert {"id", "entity", "field", "row", "message", "severity"} <= set(data["findings"][0])
    assert not (tmp_path / "report.tmp").exists()


def test_save_report_wraps_os_errors(tmp_path: Path, dataset) -> None:
    # --- Arrange ---
    blocker = tmp_path / "not_a_dir"
    blocker.write_text("x", encoding="utf-8")
    report = build_report([])

    # --- Act / Assert ---
    with pytest.raises(ValidationError) as e:
        save_report(report, out_dir=blocker)
    assert "Failed to write validation report" in str(e.value)


def test_validate_dataset_respects_config(tmp_path: Path, dataset) -> None:
    """
    @brief
    Facade writes the report under cfg.output_dir with the configured name.
    """
    # --- Arrange ---
    cfg = Config(
        output_dir=str(tmp_path),
        validation=ValidationConfig(report_filename="gate.json"),
    )

    # --- Act ---
    report = validate_dataset(*dataset, cfg)

    # --- Assert ---
    assert (tmp_path / "gate.json").exists()
    assert report.valid is False


def test_validate_dataset_without_writing(tmp_path: Path, dataset) -> None:
    # --- Act ---
    report = validate_dataset(*dataset, write_report=False, out_dir=tmp_path)

    # --- Assert ---
    assert report.findings
    assert list(tmp_path.iterdir()) == []


def test_report_carries_experiment_metadata() -> None:
    """
    @brief
    Run metadata from Config.experiment is attached only when set.
    """
    # --- Arrange ---
    tagged = Config(experiment=ExperimentConfig(name="nightly", description="full import"))

    # --- Act ---
    with_meta = build_report([], tagged)
    without_meta = build_report([], Config())
    policy_only = build_report([], ValidationConfig())

    # --- Assert ---
    assert with_meta.experiment is not None
    assert with_meta.experiment.name == "nightly"
    assert with_meta.model_dump(mode="json")["experiment"]["description"] == "full import"
    assert without_meta.experiment is None
    assert policy_only.experiment is None
