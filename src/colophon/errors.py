# ABOUTME: Error taxonomy for the Colophon export engine.
# ABOUTME: Record-level errors are collected per work; job-level errors abort an export.

from typing import Any


class ColophonError(Exception):
    """Base class for all errors raised by Colophon."""

    code = "error"

    def to_dict(self) -> dict[str, Any]:
        """Machine-readable form of the error for batch reports."""
        return {"code": self.code, "message": str(self)}


# --- Record-level errors: recorded against a single work, never abort a batch ---


class NotFound(ColophonError):
    """Raised when a work id or job handle cannot be resolved."""

    code = "not_found"

    def __init__(self, identifier: str, kind: str = "work") -> None:
        super().__init__(f"{kind} {identifier!r} not found")
        self.identifier = identifier
        self.kind = kind

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "kind": self.kind, "identifier": self.identifier}


class UnmappedVocabulary(ColophonError):
    """Raised when an internal code has no equivalent in a format's vocabulary."""

    code = "unmapped_vocabulary"

    def __init__(
        self, field: str, value: str, *, format_key: str = "", work_id: str | None = None
    ) -> None:
        target = f" for {format_key}" if format_key else ""
        super().__init__(f"No mapping{target} of {field}={value!r}")
        self.field = field
        self.value = value
        self.format_key = format_key
        self.work_id = work_id

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "field": self.field,
            "value": self.value,
            "work_id": self.work_id,
        }


class EncodingError(ColophonError):
    """Raised when content cannot be represented in a target wire format."""

    code = "encoding_error"

    def __init__(
        self,
        reason: str,
        *,
        field: str | None = None,
        value: Any = None,
        work_id: str | None = None,
    ) -> None:
        where = f" ({field})" if field else ""
        super().__init__(f"{reason}{where}")
        self.reason = reason
        self.field = field
        self.value = value
        self.work_id = work_id

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "field": self.field,
            "value": None if self.value is None else str(self.value),
            "work_id": self.work_id,
        }


class ValidationError(ColophonError):
    """Raised (or recorded) when a work violates one or more format rules.

    Carries every violation found, not just the first.
    """

    code = "validation_error"

    def __init__(self, work_id: str, violations: list[Any]) -> None:
        super().__init__(f"Work {work_id!r} has {len(violations)} violation(s)")
        self.work_id = work_id
        self.violations = list(violations)

    def to_dict(self) -> dict[str, Any]:
        return {
            **super().to_dict(),
            "work_id": self.work_id,
            "violations": [v.to_dict() for v in self.violations],
        }


# --- Job-level errors: abort the affected job, surfaced as one failure ---


class UnknownFormat(ColophonError):
    """Raised when a (name, version) pair is not in the format registry."""

    code = "unknown_format"

    def __init__(self, name: str, version: str) -> None:
        super().__init__(f"Unknown format {name} {version}")
        self.name = name
        self.version = version

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "name": self.name, "version": self.version}


class RepositoryUnavailable(ColophonError):
    """Raised when the metadata repository cannot be reached or times out."""

    code = "repository_unavailable"


class TransportFailure(ColophonError):
    """Raised when an output sink fails to deliver a payload."""

    code = "transport_failure"

    def __init__(self, message: str, *, location: str | None = None) -> None:
        super().__init__(message)
        self.location = location

    def to_dict(self) -> dict[str, Any]:
        return {**super().to_dict(), "location": self.location}
