# ABOUTME: Metadata package: the canonical Work model and the repositories that supply it.
# ABOUTME: Exports the record types and the MetadataRepository boundary used by the exporter.

from colophon.metadata.repository import FetchResult, InMemoryRepository, MetadataRepository
from colophon.metadata.types import (
    Contributor,
    Identifier,
    Imprint,
    Price,
    Publisher,
    Subject,
    Work,
)

__all__ = [
    "Contributor",
    "FetchResult",
    "Identifier",
    "Imprint",
    "InMemoryRepository",
    "MetadataRepository",
    "Price",
    "Publisher",
    "Subject",
    "Work",
]
