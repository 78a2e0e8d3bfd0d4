import pytest
from pydantic import ValidationError

from resalloc.schemas.models import (
    GLOBAL_ROW,
    Client,
    Config,
    Finding,
    Task,
    ValidationConfig,
    Worker,
)


def test_entity_models_accept_column_aliases():
    c = Client.model_validate({"ClientID": "C1", "PriorityLevel": 4, "GroupTag": "A"})
    w = Worker.model_validate({"WorkerID": "W1", "AvailableSlots": "[1]"})
    t = Task(task_id="T1", duration=0)

    assert c.client_id == "C1" and c.priority_level == 4
    assert w.max_load_per_phase == 1 and w.qualification_level == 1
    assert t.duration == 0
    assert "ClientID" in c.model_dump(by_alias=True)


def test_entity_models_forbid_unknown_fields():
    with pytest.raises(ValidationError):
        Client(client_id="C1", region="EU")


def test_finding_create_stores_plain_values():
    f = Finding.create("client", "PriorityLevel", 3, "Priority level must be between 1 and 5")

    assert f.entity == "client"
    assert f.severity == "error"
    assert f.is_error
    assert f.id.startswith("client-PriorityLevel-3-")
    assert f.signature() == (
        "client",
        "PriorityLevel",
        3,
        "Priority level must be between 1 and 5",
        "error",
    )


def test_finding_is_immutable_and_row_bounded():
    f = Finding.create("task", "PreferredPhases", GLOBAL_ROW, "Phase 1", "warning")
    assert not f.is_error

    with pytest.raises(ValidationError):
        f.row = 2
    with pytest.raises(ValidationError):
        Finding.create("task", "PreferredPhases", -2, "bad row")
    with pytest.raises(ValueError):
        Finding.create("project", "X", 0, "unknown entity")


def test_finding_ids_differ_for_identical_findings():
    a = Finding.create("worker", "WorkerID", 1, "Duplicate WorkerID: W1")
    b = Finding.create("worker", "WorkerID", 1, "Duplicate WorkerID: W1")

    assert a.signature() == b.signature()
    assert a.id != b.id


def test_config_defaults_and_serialization():
    cfg = Config()
    assert isinstance(cfg.validation, ValidationConfig)
    assert cfg.validation.report_filename == "validation_report.json"
    assert cfg.autofix.enabled is False
    assert cfg.autofix.max_load_ceiling == 6

    data = cfg.model_dump()
    assert "validation" in data and "autofix" in data

    schema = Finding.model_json_schema()
    assert "properties" in schema
