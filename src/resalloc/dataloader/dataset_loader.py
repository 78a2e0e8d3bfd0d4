# src/resalloc/dataloader/dataset_loader.py
from __future__ import annotations

import json
import logging
from collections.abc import Mapping
from pathlib import Path
from typing import Any

from resalloc.dataloader.normalizer import (
    CLIENT_FIELDS,
    TASK_FIELDS,
    WORKER_FIELDS,
    is_blank_row,
    normalize_rows,
)
from resalloc.dataloader.types import LoadResult, RawRow
from resalloc.errors import DataError

logger = logging.getLogger(__name__)


class DatasetLoader:
    """
    JSON document → LoadResult[Client, Worker, Task].

    Rules:
      - Format: UTF-8 JSON object with optional keys "clients", "workers", "tasks"
      - Each present section is a list of row objects (column name → cell value)
      - Missing section → empty collection
      - Rows with every cell blank are skipped; everything else goes through
        the normalizer unchanged in order (duplicates are kept for validation)
      - Columns outside the known schema are ignored and logged once per section

    Fatal errors (raise DataError immediately):
      - path is not a pathlib.Path / file missing / unreadable
      - invalid JSON or non-object root
      - a section that is not a list, or a row that is not an object
    """

    SECTIONS = {
        "clients": CLIENT_FIELDS,
        "workers": WORKER_FIELDS,
        "tasks": TASK_FIELDS,
    }

    def load(self, path: Path) -> LoadResult:
        document = self._read_json(path)
        result = self._document_to_result(document)
        self._report_summary(path, result)
        return result

    # ------------------------------
    # Internal helpers
    # ------------------------------
    def _read_json(self, path: Path) -> Mapping[str, Any]:
        if not isinstance(path, Path):
            raise DataError(
                message=f"Invalid path type: expected pathlib.Path, got {type(path).__name__}",
                source="DatasetLoader._read_json",
                suggested_action="Pass a pathlib.Path pointing to the dataset JSON file",
            )
        if not path.exists():
            raise DataError(
                message=f"Dataset file not found: {path}",
                source="DatasetLoader._read_json",
                suggested_action="Verify file path and ensure the dataset file is present.",
            )

        try:
            with path.open("r", encoding="utf-8") as f:
                document = json.load(f)
        except json.JSONDecodeError as e:
            raise DataError(
                message=f"Dataset is not valid JSON: {e}",
                source="DatasetLoader._read_json",
                suggested_action="Fix the JSON syntax of the dataset file.",
            ) from e
        except OSError as e:
            raise DataError(
                message=f"Unable to read dataset: {e}",
                source="DatasetLoader._read_json",
                suggested_action="Check file permissions and that the file is not locked.",
            ) from e

        if not isinstance(document, Mapping):
            raise DataError(
                message="Dataset root must be an object with clients/workers/tasks lists.",
                source="DatasetLoader._read_json",
                suggested_action='Wrap rows as {"clients": [...], "workers": [...], "tasks": [...]}',
            )
        return document

    def _section_rows(self, document: Mapping[str, Any], name: str) -> list[RawRow]:
        rows = document.get(name)
        if rows is None:
            return []
        if not isinstance(rows, list):
            raise DataError(
                message=f"Section '{name}' must be a list of rows, got {type(rows).__name__}",
                source="DatasetLoader._section_rows",
                suggested_action=f"Provide '{name}' as a JSON array of objects.",
            )

        for idx, row in enumerate(rows):
            if not isinstance(row, Mapping):
                raise DataError(
                    message=f"Row {idx} of section '{name}' is not an object",
                    source="DatasetLoader._section_rows",
                    suggested_action="Every row must map column names to cell values.",
                )
        return rows

    def _document_to_result(self, document: Mapping[str, Any]) -> LoadResult:
        result = LoadResult()

        for name, known_fields in self.SECTIONS.items():
            rows = self._section_rows(document, name)
            result.total_rows += len(rows)

            kept = [row for row in rows if not is_blank_row(row)]
            result.skipped_rows += len(rows) - len(kept)

            unknown = sorted({key for row in kept for key in row} - set(known_fields))
            if unknown:
                logger.warning("DatasetLoader: ignoring unknown %s column(s): %s", name, unknown)

            setattr(result, name, normalize_rows(kept, name))  # type: ignore[arg-type]

        return result

    def _report_summary(self, path: Path, result: LoadResult) -> None:
        logger.info(
            "DatasetLoader OK: clients=%d workers=%d tasks=%d (skipped %d blank of %d) from %s",
            len(result.clients),
            len(result.workers),
            len(result.tasks),
            result.skipped_rows,
            result.total_rows,
            path,
        )


__all__ = ["DatasetLoader"]
