# ABOUTME: Registry mapping (format name, version) to a specification and its encoder.
# ABOUTME: Populated once at process start and frozen; lookups need no locking.

import logging
from dataclasses import dataclass
from functools import lru_cache

from colophon.errors import UnknownFormat
from colophon.formats.base import Encoder
from colophon.formats.spec import FormatSpecification

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class FormatEntry:
    """A registered format: its specification plus the encoder strategy."""

    spec: FormatSpecification
    encoder: Encoder


class FormatRegistry:
    """Holds format entries keyed by (name, version).

    Adding a target format means registering one specification and one
    encoder; nothing else in the engine changes.
    """

    def __init__(self) -> None:
        self._entries: dict[tuple[str, str], FormatEntry] = {}
        self._frozen = False

    def register(self, spec: FormatSpecification, encoder: Encoder) -> None:
        """Add a format.

        Raises:
            RuntimeError: If the registry is frozen.
            ValueError: If (name, version) is already registered.
        """
        if self._frozen:
            raise RuntimeError("Format registry is frozen")
        if spec.key in self._entries:
            raise ValueError(f"Format {spec.label} is already registered")
        self._entries[spec.key] = FormatEntry(spec=spec, encoder=encoder)

    def freeze(self) -> "FormatRegistry":
        self._frozen = True
        return self

    @property
    def frozen(self) -> bool:
        return self._frozen

    def entry(self, name: str, version: str) -> FormatEntry:
        """Look up a format entry.

        Raises:
            UnknownFormat: If (name, version) is not registered.
        """
        entry = self._entries.get((name, version))
        if entry is None:
            raise UnknownFormat(name, version)
        return entry

    def resolve(self, name: str, version: str) -> FormatSpecification:
        return self.entry(name, version).spec

    def encoder_for(self, name: str, version: str) -> Encoder:
        return self.entry(name, version).encoder

    def formats(self) -> list[FormatSpecification]:
        """All registered specifications, in registration order."""
        return [entry.spec for entry in self._entries.values()]

    def __contains__(self, key: object) -> bool:
        return key in self._entries

    def __len__(self) -> int:
        return len(self._entries)


@lru_cache(maxsize=1)
def default_registry() -> FormatRegistry:
    """Build the process-wide registry from the bundled definitions, once."""
    from colophon.formats.definitions import register_builtin_formats

    registry = FormatRegistry()
    register_builtin_formats(registry)
    logger.debug("Registered %d export format(s)", len(registry))
    return registry.freeze()
