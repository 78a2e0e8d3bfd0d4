# scripts/run.py
from __future__ import annotations

import argparse
import json
import logging
import sys
import time
import traceback
from pathlib import Path
from typing import Any

from resalloc.autofix.fixer import AutoFixer, FixResult
from resalloc.dataloader.config_loader import ConfigLoader
from resalloc.dataloader.dataset_loader import DatasetLoader
from resalloc.errors import DataError, ResallocError
from resalloc.schemas.models import Config
from resalloc.validator.engine import build_report, save_report, validate_all


def _setup_logging(verbose: bool = False) -> None:
    """
    @brief
    Initializes global logging configuration.

    @details
    INFO by default, DEBUG with --verbose; one simple console format
    for every resalloc module.
    """
    logging.basicConfig(
        level=logging.DEBUG if verbose else logging.INFO, format="[%(levelname)s] %(message)s"
    )


def _parse_args(argv: list[str] | None = None) -> argparse.Namespace:
    parser = argparse.ArgumentParser(
        prog="resalloc-run",
        description="Validate client/worker/task data: load → (auto-fix) → validate → report",
    )
    parser.add_argument(
        "--config",
        type=str,
        default=None,
        help="Path to config YAML (default: built-in defaults)",
    )
    parser.add_argument(
        "--input",
        type=str,
        default=None,
        help="Path to dataset JSON (default: dataset_json from config)",
    )
    parser.add_argument(
        "--output",
        type=str,
        default=None,
        help="Output directory for artifacts (default: output_dir from config)",
    )
    parser.add_argument(
        "--fix",
        action="store_true",
        help="Run the auto-fixer before validation and write fixed_dataset.json",
    )
    parser.add_argument("--verbose", action="store_true", help="Enable DEBUG logging")
    return parser.parse_args(argv)


def _write_fixed_dataset(result: FixResult, out_path: Path) -> Path:
    payload = {
        "clients": [c.model_dump(by_alias=True) for c in result.clients],
        "workers": [w.model_dump(by_alias=True) for w in result.workers],
        "tasks": [t.model_dump(by_alias=True) for t in result.tasks],
    }
    out_path.parent.mkdir(parents=True, exist_ok=True)
    out_path.write_text(json.dumps(payload, indent=2, ensure_ascii=False), encoding="utf-8")
    return out_path


def run_pipeline(
    cfg: Config, input_path: Path, output_dir: Path, fix: bool = False
) -> dict[str, Any]:
    """
    @brief
    Executes the validation pipeline.

    @details
    (1) Load the dataset and normalize it into typed records.
    (2) Optionally run the auto-fixer and persist the fixed dataset.
    (3) Validate and write the report.
    Raises ResallocError subclasses on controlled failures so the pipeline
    can be embedded in batch workflows.

    @returns
        Dictionary with validity flag, counts and artifact paths.
    """
    t0 = time.perf_counter()
    output_dir.mkdir(parents=True, exist_ok=True)

    # (1) Load data
    logging.info("Loading dataset: %s", input_path)
    loaded = DatasetLoader().load(input_path)
    clients, workers, tasks = loaded.clients, loaded.workers, loaded.tasks

    # (2) Auto-fix
    fixed_path: Path | None = None
    fix_actions: list[str] = []
    if fix or cfg.autofix.enabled:
        logging.info("Running auto-fix…")
        result = AutoFixer(cfg.autofix).fix(clients, workers, tasks)
        clients, workers, tasks = result.clients, result.workers, result.tasks
        fix_actions = result.actions
        fixed_path = _write_fixed_dataset(result, output_dir / "fixed_dataset.json")

    # (3) Validate
    logging.info("Validating…")
    report = build_report(validate_all(clients, workers, tasks), cfg)
    report_path: Path | None = None
    if cfg.validation.write_report:
        report_path = save_report(
            report, out_dir=output_dir, filename=cfg.validation.report_filename
        )

    dt = time.perf_counter() - t0
    logging.info("Pipeline finished in %.2f s", dt)

    if not report.valid:
        logging.warning(
            "Data is not ready for allocation: errors=%d warnings=%d",
            report.error_count,
            report.warning_count,
        )

    return {
        "valid": report.valid,
        "errors": report.error_count,
        "warnings": report.warning_count,
        "fix_actions": fix_actions,
        "artifacts": {
            "validation_report": report_path,
            "fixed_dataset": fixed_path,
        },
    }


def main(argv: list[str] | None = None) -> int:
    """
    @brief
    CLI entry point.

    @details
    Exit codes:
      0 – data valid
      1 – invalid data or controlled failure (config/data/report)
      2 – unexpected crash
    """
    args = _parse_args(argv)
    _setup_logging(args.verbose)

    try:
        cfg = ConfigLoader().load(
            Path(args.config) if args.config else None,
            overrides={"dataset_json": args.input, "output_dir": args.output},
        )
        if not cfg.dataset_json:
            raise DataError(
                message="No dataset given",
                source="scripts.run",
                suggested_action="Pass --input or set dataset_json in config.yaml.",
            )
        result = run_pipeline(
            cfg,
            Path(cfg.dataset_json),
            Path(cfg.output_dir or "data/output"),
            fix=args.fix,
        )
        return 0 if result["valid"] else 1

    except ResallocError as e:
        logging.error(str(e))
        return 1
    except Exception:
        logging.error("Unexpected error occurred:")
        traceback.print_exc()
        return 2


if __name__ == "__main__":
    sys.exit(main())
