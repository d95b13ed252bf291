# ABOUTME: FormatSpecification: declarative, versioned rules for one external wire format.
# ABOUTME: Required fields, vocabulary maps, cardinality limits, batch size, and encoder options.

from collections.abc import Iterator, Mapping
from dataclasses import dataclass, field
from types import MappingProxyType
from typing import Any

from colophon.errors import UnmappedVocabulary


class VocabularyMap(Mapping[str, str]):
    """Read-only internal-code to external-code table for one field.

    Looking up a code with no external equivalent raises UnmappedVocabulary
    instead of KeyError, so callers cannot silently substitute a default.
    """

    def __init__(self, field_path: str, codes: Mapping[str, str], format_key: str = "") -> None:
        self.field = field_path
        self.format_key = format_key
        self._codes = dict(codes)

    def __getitem__(self, code: str) -> str:
        try:
            return self._codes[code]
        except KeyError:
            raise UnmappedVocabulary(self.field, code, format_key=self.format_key) from None

    def __iter__(self) -> Iterator[str]:
        return iter(self._codes)

    def __len__(self) -> int:
        return len(self._codes)

    def __contains__(self, code: object) -> bool:
        return code in self._codes

    def translate(self, code: str, work_id: str | None = None) -> str:
        """Map a code, tagging any UnmappedVocabulary with the work id."""
        try:
            return self._codes[code]
        except KeyError:
            raise UnmappedVocabulary(
                self.field, code, format_key=self.format_key, work_id=work_id
            ) from None


def _freeze(mapping: Mapping[str, Any]) -> Mapping[str, Any]:
    return MappingProxyType(dict(mapping))


@dataclass(frozen=True)
class FormatSpecification:
    """A versioned description of one target schema.

    Field paths are attribute paths on Work ("title", "imprint.publisher.name"),
    "identifiers.<scheme>" or "contributors.<role>". Vocabulary keys name the
    code-bearing paths ("contributors.role", "languages", ...).

    Instances are immutable and shared process-wide once registered.
    """

    name: str
    version: str
    content_type: str
    file_extension: str
    description: str = ""
    required: frozenset[str] = frozenset()
    accepted_identifier_schemes: frozenset[str] = frozenset()
    vocabularies: Mapping[str, Mapping[str, str]] = field(default_factory=dict)
    cardinality: Mapping[str, tuple[int, int | None]] = field(default_factory=dict)
    batch_limit: int | None = None
    charset: str = "utf-8"
    requires_timestamp: bool = False
    options: Mapping[str, Any] = field(default_factory=dict)

    def __post_init__(self) -> None:
        if self.batch_limit is not None and self.batch_limit < 1:
            raise ValueError(f"batch_limit must be positive, got {self.batch_limit}")
        object.__setattr__(self, "required", frozenset(self.required))
        object.__setattr__(
            self, "accepted_identifier_schemes", frozenset(self.accepted_identifier_schemes)
        )
        object.__setattr__(
            self,
            "vocabularies",
            _freeze({path: _freeze(codes) for path, codes in self.vocabularies.items()}),
        )
        object.__setattr__(self, "cardinality", _freeze(self.cardinality))
        object.__setattr__(self, "options", _freeze(self.options))

    @property
    def key(self) -> tuple[str, str]:
        return (self.name, self.version)

    @property
    def label(self) -> str:
        return f"{self.name} {self.version}"

    def required_fields(self) -> frozenset[str]:
        return self.required

    def vocabulary_fields(self) -> list[str]:
        """Vocabulary-bearing field paths, sorted for deterministic validation."""
        return sorted(self.vocabularies)

    def vocabulary_map(self, field_path: str) -> VocabularyMap:
        """Return the code table for a field.

        Raises:
            KeyError: If the format defines no vocabulary for the field.
        """
        return VocabularyMap(field_path, self.vocabularies[field_path], format_key=self.label)

    def max_batch_size(self) -> int | None:
        """Largest number of works per payload, or None when unbounded."""
        return self.batch_limit

    def option(self, name: str, default: Any = None) -> Any:
        return self.options.get(name, default)
