import json
from pathlib import Path

import pytest

from resalloc.errors import DataError
from resalloc.schemas.models import AutoFixConfig, Config, ExperimentConfig, ValidationConfig
from scripts.run import main, run_pipeline

ROOT = Path(__file__).resolve().parents[1]
SAMPLE = ROOT / "data" / "input" / "sample_dataset.json"


def _clean_dataset(path: Path) -> Path:
    """
    @brief
    Writes a dataset that passes every check.
    """
    payload = {
        "clients": [{"ClientID": "C1", "PriorityLevel": 2, "RequestedTaskIDs": "T1"}],
        "workers": [
            {"WorkerID": "W1", "Skills": "data", "AvailableSlots": "[1, 2]", "MaxLoadPerPhase": 2}
        ],
        "tasks": [
            {"TaskID": "T1", "Duration": 1, "RequiredSkills": "data", "PreferredPhases": "[1-2]"}
        ],
    }
    path.write_text(json.dumps(payload), encoding="utf-8")
    return path


def test_run_pipeline_on_sample_reports_invalid(tmp_path):
    """
    @brief
    The bundled sample contains errors and yields an invalid report on disk.

    @details
    Checks the returned summary against the written validation report.
    """
    # --- Arrange ---
    output_dir = tmp_path / "out"

    # --- Act ---
    result = run_pipeline(Config(), SAMPLE, output_dir)

    # --- Assert ---
    assert result["valid"] is False
    assert result["errors"] > 0
    assert result["fix_actions"] == []
    assert result["artifacts"]["fixed_dataset"] is None

    report_path = result["artifacts"]["validation_report"]
    assert report_path and Path(report_path).exists()
    report = json.loads(Path(report_path).read_text(encoding="utf-8"))
    assert report["error_count"] == result["errors"]
    assert report["warning_count"] == result["warnings"]


def test_run_pipeline_with_fix_writes_fixed_dataset(tmp_path):
    # --- Arrange ---
    output_dir = tmp_path / "out"
    before = run_pipeline(Config(), SAMPLE, tmp_path / "before")

    # --- Act ---
    result = run_pipeline(Config(), SAMPLE, output_dir, fix=True)

    # --- Assert ---
    fixed = result["artifacts"]["fixed_dataset"]
    assert fixed and Path(fixed).exists()
    data = json.loads(Path(fixed).read_text(encoding="utf-8"))
    assert {"clients", "workers", "tasks"} == set(data)
    assert "ClientID" in data["clients"][0]
    assert result["fix_actions"]
    assert result["warnings"] + result["errors"] < before["warnings"] + before["errors"]


def test_autofix_enabled_in_config_runs_without_flag(tmp_path):
    # --- Arrange ---
    cfg = Config(autofix=AutoFixConfig(enabled=True))

    # --- Act ---
    result = run_pipeline(cfg, SAMPLE, tmp_path)

    # --- Assert ---
    assert result["artifacts"]["fixed_dataset"] is not None


def test_run_pipeline_missing_dataset_raises(tmp_path):
    with pytest.raises(DataError):
        run_pipeline(Config(), tmp_path / "missing.json", tmp_path)


# ----------------------------------------------------------------------------------
# CLI exit codes
# ----------------------------------------------------------------------------------
def test_main_returns_zero_for_clean_data(tmp_path):
    # --- Arrange ---
    dataset = _clean_dataset(tmp_path / "clean.json")

    # --- Act ---
    code = main(["--input", str(dataset), "--output", str(tmp_path / "out")])

    # --- Assert ---
    assert code == 0
    assert (tmp_path / "out" / "validation_report.json").exists()


def test_main_returns_one_for_invalid_data(tmp_path):
    assert main(["--input", str(SAMPLE), "--output", str(tmp_path)]) == 1


def test_main_returns_one_without_dataset(tmp_path):
    """
    @brief
    Defaults carry no dataset path, so the run fails in a controlled way.
    """
    assert main(["--output", str(tmp_path)]) == 1


def test_main_returns_one_for_missing_config(tmp_path):
    assert main(["--config", str(tmp_path / "absent.yaml"), "--input", str(SAMPLE)]) == 1


def test_main_returns_two_on_unexpected_crash(monkeypatch, tmp_path):
    from scripts import run

    # --- Arrange ---
    def _boom(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(run, "run_pipeline", _boom)

    # --- Act / Assert ---
    assert main(["--input", str(SAMPLE), "--output", str(tmp_path)]) == 2


def test_stale_report_is_not_listed_when_writing_is_off(tmp_path):
    """
    @brief
    A report left over from an earlier run is not returned as an artifact.
    """
    # --- Arrange ---
    (tmp_path / "validation_report.json").write_text("{}", encoding="utf-8")
    cfg = Config(validation=ValidationConfig(write_report=False))

    # --- Act ---
    result = run_pipeline(cfg, SAMPLE, tmp_path)

    # --- Assert ---
    assert result["artifacts"]["validation_report"] is None
    assert (tmp_path / "validation_report.json").read_text(encoding="utf-8") == "{}"


def test_experiment_metadata_lands_in_saved_report(tmp_path):
    # --- Arrange ---
    cfg = Config(experiment=ExperimentConfig(name="baseline", tags=["q3"]))

    # --- Act ---
    result = run_pipeline(cfg, SAMPLE, tmp_path)

    # --- Assert ---
    report = json.loads(Path(result["artifacts"]["validation_report"]).read_text(encoding="utf-8"))
    assert report["experiment"] == {"name": "baseline", "description": None, "tags": ["q3"]}
