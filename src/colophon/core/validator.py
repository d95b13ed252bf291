# ABOUTME: Validates a Work against a FormatSpecification, collecting every violation.
# ABOUTME: Fixed check order: required fields, identifiers, vocabularies, cardinality.

import re
import uuid
from collections import Counter
from dataclasses import dataclass
from typing import Any

from colophon.errors import ValidationError
from colophon.formats.spec import FormatSpecification
from colophon.metadata.fields import codes_for, field_count, field_present, field_value
from colophon.metadata.types import Work

# Violation codes, in the order their checks run.
MISSING_REQUIRED_FIELD = "missing_required_field"
NO_ACCEPTED_IDENTIFIER = "no_accepted_identifier"
INVALID_IDENTIFIER = "invalid_identifier"
UNMAPPED_VOCABULARY = "unmapped_vocabulary"
CARDINALITY = "cardinality"
DUPLICATE_IDENTIFIER = "duplicate_identifier"
RANK_COLLISION = "rank_collision"

_DOI_RE = re.compile(r"^10\.\d{4,9}/\S+$")
_ISSN_RE = re.compile(r"^\d{4}-?\d{3}[\dX]$")


@dataclass(frozen=True)
class Violation:
    """One broken rule, with enough context to act on it programmatically."""

    code: str
    field: str
    message: str
    work_id: str
    value: Any = None

    def to_dict(self) -> dict[str, Any]:
        return {
            "code": self.code,
            "field": self.field,
            "message": self.message,
            "work_id": self.work_id,
            "value": None if self.value is None else str(self.value),
        }


@dataclass(frozen=True)
class ValidationReport:
    """All violations found for one (work, format) pair."""

    work_id: str
    format_key: tuple[str, str]
    violations: tuple[Violation, ...] = ()

    @property
    def is_valid(self) -> bool:
        return not self.violations

    def codes(self) -> list[str]:
        return [v.code for v in self.violations]

    def to_error(self) -> ValidationError:
        return ValidationError(self.work_id, list(self.violations))


def is_valid_isbn13(value: str) -> bool:
    """Check length, digits and the ISBN-13 check digit. Hyphens are ignored."""
    digits = value.replace("-", "").replace(" ", "")
    if len(digits) != 13 or not digits.isdigit():
        return False
    total = sum(int(d) * (1 if i % 2 == 0 else 3) for i, d in enumerate(digits[:12]))
    return (10 - total % 10) % 10 == int(digits[12])


def _is_valid_uuid(value: str) -> bool:
    try:
        uuid.UUID(value)
    except ValueError:
        return False
    return True


_IDENTIFIER_CHECKS = {
    "isbn13": is_valid_isbn13,
    "doi": lambda value: bool(_DOI_RE.match(value)),
    "issn": lambda value: bool(_ISSN_RE.match(value)),
    "uuid": _is_valid_uuid,
}


def _check_required(work: Work, spec: FormatSpecification) -> list[Violation]:
    return [
        Violation(
            code=MISSING_REQUIRED_FIELD,
            field=path,
            message=f"{path} is required by {spec.label}",
            work_id=work.work_id,
            value=field_value(work, path) or None,
        )
        for path in sorted(spec.required_fields())
        if not field_present(work, path)
    ]


def _check_identifiers(work: Work, spec: FormatSpecification) -> list[Violation]:
    accepted = spec.accepted_identifier_schemes
    if not accepted:
        return []
    violations = []
    if not any(i.scheme in accepted for i in work.identifiers):
        violations.append(
            Violation(
                code=NO_ACCEPTED_IDENTIFIER,
                field="identifiers",
                message=(
                    f"{spec.label} needs an identifier of scheme "
                    f"{', '.join(sorted(accepted))}"
                ),
                work_id=work.work_id,
                value=", ".join(sorted({i.scheme for i in work.identifiers})) or None,
            )
        )
    for identifier in work.identifiers:
        check = _IDENTIFIER_CHECKS.get(identifier.scheme)
        if identifier.scheme in accepted and check is not None and not check(identifier.value):
            violations.append(
                Violation(
                    code=INVALID_IDENTIFIER,
                    field=f"identifiers.{identifier.scheme}",
                    message=f"Malformed {identifier.scheme}: {identifier.value!r}",
                    work_id=work.work_id,
                    value=identifier.value,
                )
            )
    return violations


def _check_vocabularies(work: Work, spec: FormatSpecification) -> list[Violation]:
    violations = []
    for path in spec.vocabulary_fields():
        vocabulary = spec.vocabulary_map(path)
        for code in codes_for(work, path):
            if code not in vocabulary:
                violations.append(
                    Violation(
                        code=UNMAPPED_VOCABULARY,
                        field=path,
                        message=f"{path}={code!r} has no {spec.label} equivalent",
                        work_id=work.work_id,
                        value=code,
                    )
                )
    return violations


def _check_structure(work: Work, spec: FormatSpecification) -> list[Violation]:
    violations = []
    for path in sorted(spec.cardinality):
        minimum, maximum = spec.cardinality[path]
        count = field_count(work, path)
        # A missing required field was already reported; don't report it twice.
        if count == 0 and path in spec.required_fields():
            continue
        if count < minimum or (maximum is not None and count > maximum):
            bound = f"{minimum}..{'*' if maximum is None else maximum}"
            violations.append(
                Violation(
                    code=CARDINALITY,
                    field=path,
                    message=f"{path} occurs {count} time(s), {spec.label} allows {bound}",
                    work_id=work.work_id,
                    value=count,
                )
            )

    identifier_counts = Counter((i.scheme, i.value) for i in work.identifiers)
    for (scheme, value), count in sorted(identifier_counts.items()):
        if count > 1:
            violations.append(
                Violation(
                    code=DUPLICATE_IDENTIFIER,
                    field=f"identifiers.{scheme}",
                    message=f"{scheme} {value!r} appears {count} times",
                    work_id=work.work_id,
                    value=value,
                )
            )

    rank_counts = Counter((c.role, c.rank) for c in work.contributors)
    for (role, rank), count in sorted(rank_counts.items()):
        if count > 1:
            violations.append(
                Violation(
                    code=RANK_COLLISION,
                    field=f"contributors.{role}",
                    message=f"{count} contributors share {role} rank {rank}",
                    work_id=work.work_id,
                    value=rank,
                )
            )
    return violations


def validate(work: Work, spec: FormatSpecification) -> ValidationReport:
    """Check a work against a format specification.

    Never raises for rule violations: every problem found is returned in the
    report, in check order. Absent optional fields are not violations.

    Args:
        work: The record to check.
        spec: The target format's rules.

    Returns:
        A ValidationReport; is_valid is True when no rule is broken.
    """
    violations: list[Violation] = []
    violations.extend(_check_required(work, spec))
    violations.extend(_check_identifiers(work, spec))
    violations.extend(_check_vocabularies(work, spec))
    violations.extend(_check_structure(work, spec))
    return ValidationReport(
        work_id=work.work_id, format_key=spec.key, violations=tuple(violations)
    )
