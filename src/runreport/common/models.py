"""
Pydantic models for runreport records.

A run record is stored as a JSON document with camelCase keys (the format
written by the CI pipeline), while Python code uses snake_case attributes.
"""

from datetime import datetime, timezone
from enum import Enum
from typing import Any, Optional

from pydantic import BaseModel, ConfigDict, Field, ValidationError
from pydantic.alias_generators import to_camel

from .exceptions import InvalidRecordError


class RunStatus(str, Enum):
    """Lifecycle status of a test run."""

    RUNNING = "running"
    PASSED = "passed"
    FAILED = "failed"

    @classmethod
    def terminal(cls) -> tuple[str, ...]:
        """Status values a run never leaves once reached."""
        return (cls.PASSED.value, cls.FAILED.value)


# Sorts entries with a missing or unparseable timestamp after everything else.
OLDEST = datetime.min.replace(tzinfo=timezone.utc)


def generate_run_time(now: Optional[datetime] = None) -> str:
    """
    Build a run identifier from the current UTC time.

    The identifier doubles as a directory name, so colons are replaced
    by hyphens and fractional seconds are dropped, e.g.
    ``2024-01-05T08-09-00``.
    """
    now = now or datetime.now(timezone.utc)
    return now.astimezone(timezone.utc).strftime("%Y-%m-%dT%H-%M-%S")


def utc_timestamp(now: Optional[datetime] = None) -> str:
    """Return an ISO 8601 instant with millisecond precision and a Z suffix."""
    now = (now or datetime.now(timezone.utc)).astimezone(timezone.utc)
    return now.isoformat(timespec="milliseconds").replace("+00:00", "Z")


def parse_instant(value: Any) -> Optional[datetime]:
    """
    Parse an ISO 8601 instant.

    Naive values are assumed to be UTC. Returns None for anything that
    cannot be parsed.
    """
    if isinstance(value, datetime):
        parsed = value
    elif isinstance(value, str) and value.strip():
        try:
            parsed = datetime.fromisoformat(value.strip())
        except ValueError:
            return None
    else:
        return None

    if parsed.tzinfo is None:
        parsed = parsed.replace(tzinfo=timezone.utc)
    return parsed


class RunRecord(BaseModel):
    """Metadata and result counts of one test execution."""

    model_config = ConfigDict(
        alias_generator=to_camel,
        populate_by_name=True,
        use_enum_values=True,
    )

    run_time: str = Field(..., min_length=1, description="Unique run identifier")
    environment: str = Field(default="", description="Environment tag")
    test_suite: str = Field(default="", description="Suite tag")
    base_url: str = Field(default="", description="Base URL under test")
    headless: bool = Field(default=True, description="Headless browser")
    browser: str = Field(default="chromium", description="Browser project")
    workers: Optional[int] = Field(None, description="Parallel workers")
    command: str = Field(default="", description="Command that started the run")
    timestamp: str = Field(
        default_factory=utc_timestamp,
        description="ISO instant, the authoritative sort key",
    )
    # Kept as a plain string: stored documents may carry values outside
    # RunStatus (e.g. "skipped") and they must survive a round trip.
    status: Optional[str] = Field(
        default=RunStatus.RUNNING.value, description="Run status"
    )
    exit_code: Optional[int] = Field(None, description="Process exit code")
    duration: Optional[int] = Field(None, description="Duration in milliseconds")
    total_tests: Optional[int] = None
    passed_tests: Optional[int] = None
    failed_tests: Optional[int] = None
    skipped_tests: Optional[int] = None
    git_ref: Optional[str] = None
    git_sha: Optional[str] = None
    actor: Optional[str] = None

    @property
    def is_terminal(self) -> bool:
        """Whether the run reached passed or failed."""
        return self.status in RunStatus.terminal()

    def parsed_timestamp(self) -> Optional[datetime]:
        """The timestamp as an aware datetime, or None if unparseable."""
        return parse_instant(self.timestamp)

    def sort_key(self) -> datetime:
        """Key for newest-first ordering; unparseable timestamps are oldest."""
        return self.parsed_timestamp() or OLDEST

    def merged(self, updates: dict[str, Any]) -> "RunRecord":
        """
        Return a copy with ``updates`` applied field by field.

        Keys may be given in camelCase or snake_case. The last value wins
        for every field, ``None`` included. ``run_time`` is immutable and
        any attempt to change it is ignored. Unknown keys are ignored.

        Args:
            updates: Partial record fields.

        Returns:
            New RunRecord instance.

        Raises:
            InvalidRecordError: If a value fails field validation.
        """
        data = self.model_dump()
        by_alias = {
            (info.alias or name): name
            for name, info in type(self).model_fields.items()
        }

        for key, value in updates.items():
            name = by_alias.get(key, key)
            if name not in data or name == "run_time":
                continue
            if isinstance(value, Enum):
                value = value.value
            data[name] = value

        try:
            return type(self).model_validate(data)
        except ValidationError as e:
            raise InvalidRecordError(
                self.run_time, {"errors": e.errors(include_url=False)}
            )

    def to_document(self) -> dict[str, Any]:
        """Serialize to the camelCase JSON document, omitting unset optionals."""
        return self.model_dump(mode="json", by_alias=True, exclude_none=True)

    @classmethod
    def from_document(cls, document: dict[str, Any]) -> "RunRecord":
        """Build a record from a stored JSON document."""
        return cls.model_validate(document)
