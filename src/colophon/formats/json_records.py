# ABOUTME: Canonical JSON export: a JSON array of work documents.
# ABOUTME: Uses the same document shape the catalog stores, with sorted keys for stable output.

import json
from collections.abc import Sequence
from datetime import datetime

from colophon.db.mapping import work_to_dict
from colophon.formats.spec import FormatSpecification
from colophon.metadata.types import Work


class JsonEncoder:
    def encode(self, work: Work, spec: FormatSpecification) -> bytes:
        document = json.dumps(
            work_to_dict(work),
            sort_keys=True,
            indent=spec.option("indent", 2),
            ensure_ascii=spec.charset.lower() == "ascii",
        )
        return document.encode(spec.charset)

    def assemble(
        self,
        fragments: Sequence[bytes],
        spec: FormatSpecification,
        *,
        timestamp: datetime | None = None,
    ) -> bytes:
        if not fragments:
            return b"[]\n"
        return b"[\n" + b",\n".join(fragments) + b"\n]\n"
