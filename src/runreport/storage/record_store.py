"""
Per-run record storage for runreport.

Each run gets its own directory under the results root, named after its
``runTime``, holding a ``run-info.json`` document:

    test-results/
        2024-01-05T08-09-00/
            run-info.json
            results.json        (written by the test runner)
"""

import json
import logging
import shutil
from pathlib import Path
from typing import Any, Optional

from pydantic import ValidationError

from ..common.exceptions import (
    ConsistencyWarning,
    DeserializationError,
    NotFoundWarning,
    StorageError,
)
from ..common.models import RunRecord

logger = logging.getLogger(__name__)

RUN_INFO_FILE = "run-info.json"


def read_json(path: Path) -> Any:
    """
    Load a JSON document.

    Raises:
        StorageError: If the file cannot be read.
        DeserializationError: If the content is not valid UTF-8 JSON.
    """
    try:
        with open(path, "r", encoding="utf-8") as f:
            return json.load(f)
    except json.JSONDecodeError as e:
        raise DeserializationError(
            f"Malformed JSON in {path}", str(path), {"error": str(e)}
        )
    except UnicodeDecodeError as e:
        raise DeserializationError(
            f"Undecodable content in {path}", str(path), {"error": str(e)}
        )
    except OSError as e:
        raise StorageError(f"Failed to read {path}", str(path), {"error": str(e)})


def write_json(path: Path, data: Any) -> None:
    """
    Write a JSON document with 2-space indentation, creating parent dirs.

    Raises:
        StorageError: If the file cannot be written.
    """
    try:
        path.parent.mkdir(parents=True, exist_ok=True)
        with open(path, "w", encoding="utf-8") as f:
            json.dump(data, f, indent=2)
    except OSError as e:
        raise StorageError(f"Failed to write {path}", str(path), {"error": str(e)})


class RecordStore:
    """
    File-based storage of run records keyed by ``runTime``.

    Writes are whole-document and last-writer-wins; a single process is
    expected to own a given run.
    """

    def __init__(self, root: str | Path):
        """
        Initialize the store.

        Args:
            root: Results directory holding one sub-directory per run.
        """
        self._root = Path(root)

    @property
    def root(self) -> Path:
        return self._root

    def run_dir(self, run_time: str) -> Path:
        """Directory holding the documents of one run."""
        if run_time in ("", ".", "..") or Path(run_time).name != run_time:
            raise StorageError(f"Invalid run identifier: {run_time!r}", run_time)
        return self._root / run_time

    def run_info_path(self, run_time: str) -> Path:
        return self.run_dir(run_time) / RUN_INFO_FILE

    def exists(self, run_time: str) -> bool:
        return self.run_info_path(run_time).is_file()

    def write(self, record: RunRecord) -> Path:
        """
        Create or overwrite the record of a run.

        Args:
            record: The record to persist.

        Returns:
            Path of the written run-info document.

        Raises:
            StorageError: If the results directory is not writable.
        """
        path = self.run_info_path(record.run_time)
        write_json(path, record.to_document())
        logger.debug("Wrote run info for %s to %s", record.run_time, path)
        return path

    def read(self, run_time: str) -> Optional[RunRecord]:
        """
        Read the record of a run.

        Args:
            run_time: The run identifier.

        Returns:
            The RunRecord, or None if the run was never logged.

        Raises:
            DeserializationError: If the stored document is malformed.
        """
        path = self.run_info_path(run_time)
        if not path.is_file():
            return None

        document = read_json(path)
        try:
            return RunRecord.from_document(document)
        except ValidationError as e:
            raise DeserializationError(
                f"Invalid run record in {path}",
                str(path),
                {"errors": e.errors(include_url=False)},
            )

    def update(self, run_time: str, updates: dict[str, Any]) -> RunRecord:
        """
        Merge ``updates`` over the stored record and write it back.

        Args:
            run_time: The run identifier.
            updates: Partial record fields; later values win.

        Returns:
            The merged record.

        Raises:
            NotFoundWarning: If the run was never logged.
            DeserializationError: If the stored document is malformed.
            StorageError: If the merged record cannot be written.
        """
        existing = self.read(run_time)
        if existing is None:
            raise NotFoundWarning(run_time)

        updated = existing.merged(updates)

        if existing.is_terminal and updated.status != existing.status:
            warning = ConsistencyWarning(run_time, existing.status, updated.status)
            logger.warning("%s", warning)

        self.write(updated)
        return updated

    def delete(self, run_time: str) -> bool:
        """
        Remove the directory of a run and everything in it.

        Returns:
            True if a directory was removed.

        Raises:
            StorageError: If the directory exists but cannot be removed.
        """
        run_dir = self.run_dir(run_time)
        if not run_dir.exists():
            return False

        try:
            shutil.rmtree(run_dir)
        except OSError as e:
            raise StorageError(
                f"Failed to delete {run_dir}", str(run_dir), {"error": str(e)}
            )
        return True
