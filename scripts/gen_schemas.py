# scripts/gen_schemas.py
"""
Generate JSON Schemas for resalloc data models.

This script exports JSON Schema files for:
    - Client, Worker, Task (input records)
    - Finding, ValidationReport (validator output)
    - Config

Output directory: schemas/
"""

import json
from pathlib import Path

from resalloc.schemas.models import Client, Config, Finding, Task, ValidationReport, Worker

MODELS = {
    "client": Client,
    "worker": Worker,
    "task": Task,
    "finding": Finding,
    "validation_report": ValidationReport,
    "config": Config,
}


def export_schema(model_cls, name: str, out_dir: Path) -> Path:
    """
    @brief
    Exports the JSON schema of a given pydantic model.

    @details
    Entity schemas are generated in serialization mode with aliases so the
    property names match the spreadsheet columns (ClientID, PriorityLevel, ...).

    @returns
        Path of the written "<name>.schema.json" file.
    """
    out_dir.mkdir(parents=True, exist_ok=True)

    schema_path = (out_dir / f"{name}.schema.json").resolve()
    schema = model_cls.model_json_schema(by_alias=True)

    with schema_path.open("w", encoding="utf-8") as f:
        json.dump(schema, f, indent=2, ensure_ascii=False)
        f.write("\n")

    try:
        rel = schema_path.relative_to(Path.cwd())
    except ValueError:
        rel = schema_path
    print(f"Generated {rel}")
    return schema_path


def main(out_dir: Path | None = None) -> list[Path]:
    target = (out_dir or Path("schemas")).resolve()
    return [export_schema(model, name, target) for name, model in MODELS.items()]


if __name__ == "__main__":
    main()
