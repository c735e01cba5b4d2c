"""
Raw test results documents.

Two document shapes are understood:

* the Playwright JSON reporter output, where each spec sits at
  ``suites[].suites[].specs[]`` with a ``title`` and a boolean ``ok``;
* a flat custom shape with a ``stats`` object and a ``testCases`` list of
  ``{name, suite, status}`` entries, as written by the pytest plugin.
"""

import logging
from dataclasses import dataclass
from pathlib import Path
from typing import Any, Optional

from ..common.exceptions import DeserializationError
from ..storage.record_store import read_json

logger = logging.getLogger(__name__)

RESULTS_FILE = "results.json"
PASSED = "Passed"


@dataclass
class CaseResult:
    """Pass/fail outcome of one test case as shown in the report."""

    title: str
    ok: bool

    def to_dict(self) -> dict[str, Any]:
        return {"title": self.title, "ok": self.ok}


def load_results(path: str | Path | None) -> Optional[dict[str, Any]]:
    """
    Load a results document.

    Args:
        path: Location of the document; empty or missing means no results.

    Returns:
        The parsed document, or None when there is nothing to load.

    Raises:
        DeserializationError: If the document is malformed.
    """
    if not path:
        return None
    path = Path(path)
    if not path.is_file():
        return None

    document = read_json(path)
    if not isinstance(document, dict):
        raise DeserializationError(
            f"Results document {path} is not a JSON object", str(path)
        )
    return document


def _as_list(value: Any, where: str) -> list[Any]:
    if value is None:
        return []
    if not isinstance(value, list):
        raise DeserializationError(f"Expected a list at '{where}'")
    return value


def extract_case_results(document: dict[str, Any]) -> list[CaseResult]:
    """
    Collect the per-case outcomes of one results document.

    Raises:
        DeserializationError: If the document does not have the expected
            structure.
    """
    cases: list[CaseResult] = []

    for suite in _as_list(document.get("suites"), "suites"):
        if not isinstance(suite, dict):
            raise DeserializationError("Expected an object in 'suites'")
        for sub_suite in _as_list(suite.get("suites"), "suites[].suites"):
            if not isinstance(sub_suite, dict):
                raise DeserializationError("Expected an object in 'suites[].suites'")
            for spec in _as_list(sub_suite.get("specs"), "suites[].suites[].specs"):
                if not isinstance(spec, dict):
                    raise DeserializationError("Expected an object in 'specs'")
                cases.append(CaseResult(title=str(spec.get("title", "")), ok=bool(spec.get("ok"))))

    for test_case in _as_list(document.get("testCases"), "testCases"):
        if not isinstance(test_case, dict):
            raise DeserializationError("Expected an object in 'testCases'")
        cases.append(
            CaseResult(
                title=str(test_case.get("name", "")),
                ok=test_case.get("status") == PASSED,
            )
        )

    return cases


def discover_results(scan_dir: str | Path) -> list[Path]:
    """Find every results document below ``scan_dir``, in path order."""
    scan_dir = Path(scan_dir)
    if not scan_dir.is_dir():
        return []
    return sorted(scan_dir.glob(f"**/{RESULTS_FILE}"))


def scan_case_results(scan_dir: str | Path) -> list[CaseResult]:
    """
    Aggregate the case outcomes of all results documents below ``scan_dir``.

    Matrix CI runs download one results directory per job, so the report
    lists the cases of every job.

    Raises:
        StorageError: If a document cannot be read or parsed.
    """
    cases: list[CaseResult] = []
    for path in discover_results(scan_dir):
        document = load_results(path)
        if document is None:
            continue
        found = extract_case_results(document)
        logger.debug("Found %d test cases in %s", len(found), path)
        cases.extend(found)
    return cases
