# ABOUTME: BibTeX encoder: one @entry per work, fields in a fixed order.
# ABOUTME: Escapes LaTeX specials and rejects values whose braces do not balance.

import re
import unicodedata
from collections.abc import Sequence
from datetime import datetime

from colophon.errors import EncodingError
from colophon.formats.base import check_text
from colophon.formats.spec import FormatSpecification
from colophon.metadata.types import Work

_SPECIALS_RE = re.compile(r"([&%$#_])")
_KEY_UNSAFE_RE = re.compile(r"[^A-Za-z0-9]")

_MONTHS = ("jan", "feb", "mar", "apr", "may", "jun", "jul", "aug", "sep", "oct", "nov", "dec")


def _balanced(value: str) -> bool:
    depth = 0
    for char in value:
        if char == "{":
            depth += 1
        elif char == "}":
            depth -= 1
            if depth < 0:
                return False
    return depth == 0


def citation_key(work: Work) -> str:
    """Surname plus year plus a short work id suffix, ASCII only.

    e.g. "Eco2020-0f3a9c1e".
    """
    people = work.ordered_contributors()
    if people:
        name = people[0].key_name
    else:
        name = (work.title.split() or [""])[0]
    ascii_name = unicodedata.normalize("NFKD", name).encode("ascii", "ignore").decode()
    stem = _KEY_UNSAFE_RE.sub("", ascii_name) + (work.publication_year or "")
    suffix = _KEY_UNSAFE_RE.sub("", work.work_id)[:8]
    return f"{stem}-{suffix}" if stem else suffix


class BibtexEncoder:
    def encode(self, work: Work, spec: FormatSpecification) -> bytes:
        entry_type = spec.vocabulary_map("work_type").translate(work.work_type, work.work_id)
        names = spec.option("name_separator", " and ")
        authors = names.join(c.inverted_name for c in work.contributors_with_role("author"))
        editors = names.join(c.inverted_name for c in work.contributors_with_role("editor"))

        fields: list[tuple[str, str | None]] = [
            ("title", work.title),
            ("subtitle", work.subtitle),
            ("author", authors or None),
            ("editor", editors or None),
            ("edition", str(work.edition) if work.edition else None),
            ("year", work.publication_year),
            (
                "month",
                _MONTHS[work.publication_date.month - 1] if work.publication_date else None,
            ),
            ("publisher", work.publisher.name or None),
            ("address", work.place),
            ("pages", str(work.page_count) if work.page_count else None),
            ("isbn", work.isbn),
            ("doi", work.doi),
            ("url", work.landing_page),
            ("language", ", ".join(work.languages) or None),
            ("copyright", work.license),
            ("abstract", work.abstract),
        ]

        lines = [f"@{entry_type}{{{citation_key(work)},"]
        for name, value in fields:
            if not value:
                continue
            lines.append(f"  {name} = {{{self._escape(value, name, work, spec)}}},")
        lines.append("}")
        return ("\n".join(lines) + "\n").encode(spec.charset)

    def assemble(
        self,
        fragments: Sequence[bytes],
        spec: FormatSpecification,
        *,
        timestamp: datetime | None = None,
    ) -> bytes:
        return b"\n".join(fragments)

    def _escape(self, value: str, name: str, work: Work, spec: FormatSpecification) -> str:
        if not _balanced(value):
            raise EncodingError(
                "Unbalanced braces in BibTeX value", field=name, value=value, work_id=work.work_id
            )
        check_text(value, spec, field=name, work_id=work.work_id)
        # URLs and DOIs are read verbatim by BibTeX styles.
        if name in ("url", "doi", "copyright"):
            return value
        return _SPECIALS_RE.sub(r"\\\1", " ".join(value.split()))
