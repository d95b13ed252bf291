# ABOUTME: Delimited-text encoder shared by KBART (tab-separated) and CSV exports.
# ABOUTME: Columns, delimiter, quoting and row granularity are read from the format's options.

import csv
import io
from collections.abc import Callable, Sequence
from datetime import datetime

from colophon.errors import EncodingError
from colophon.formats.base import check_text
from colophon.formats.spec import FormatSpecification
from colophon.metadata.types import Identifier, Work

Extractor = Callable[[Work, FormatSpecification, Identifier | None], str]


def _first_surname(work: Work, role: str) -> str:
    people = work.contributors_with_role(role)
    return people[0].key_name if people else ""


def _is_digital(work: Work, spec: FormatSpecification) -> bool:
    return work.product_form in spec.option("digital_forms", frozenset())


def _publication_type(work: Work, spec: FormatSpecification, _: Identifier | None) -> str:
    if "work_type" in spec.vocabularies:
        return spec.vocabulary_map("work_type").translate(work.work_type, work.work_id)
    return work.work_type


def _year_if(digital: bool) -> Extractor:
    def extract(work: Work, spec: FormatSpecification, _: Identifier | None) -> str:
        if _is_digital(work, spec) is digital:
            return work.publication_year or ""
        return ""

    return extract


def _isbn_if(digital: bool) -> Extractor:
    def extract(work: Work, spec: FormatSpecification, _: Identifier | None) -> str:
        if _is_digital(work, spec) is digital:
            return work.isbn or ""
        return ""

    return extract


# Every column a tabular format may list, keyed by header name.
COLUMNS: dict[str, Extractor] = {
    # KBART phase II
    "publication_title": lambda w, s, i: w.full_title,
    "print_identifier": _isbn_if(False),
    "online_identifier": _isbn_if(True),
    "date_first_issue_online": lambda w, s, i: "",
    "num_first_vol_online": lambda w, s, i: "",
    "num_first_issue_online": lambda w, s, i: "",
    "date_last_issue_online": lambda w, s, i: "",
    "num_last_vol_online": lambda w, s, i: "",
    "num_last_issue_online": lambda w, s, i: "",
    "title_url": lambda w, s, i: w.landing_page or "",
    "first_author": lambda w, s, i: _first_surname(w, "author"),
    "title_id": lambda w, s, i: w.doi or w.work_id,
    "embargo_info": lambda w, s, i: "",
    "coverage_depth": lambda w, s, i: "fulltext",
    "notes": lambda w, s, i: "",
    "publisher_name": lambda w, s, i: w.publisher.name,
    "publication_type": _publication_type,
    "date_monograph_published_print": _year_if(False),
    "date_monograph_published_online": _year_if(True),
    "monograph_volume": lambda w, s, i: "",
    "monograph_edition": lambda w, s, i: str(w.edition) if w.edition else "",
    "first_editor": lambda w, s, i: _first_surname(w, "editor"),
    "parent_publication_title_id": lambda w, s, i: "",
    "preceding_publication_title_id": lambda w, s, i: "",
    "access_type": lambda w, s, i: "F" if w.license else "P",
    # Flat catalogue columns
    "work_id": lambda w, s, i: w.work_id,
    "identifier_scheme": lambda w, s, i: i.scheme if i else "",
    "identifier": lambda w, s, i: i.value if i else "",
    "title": lambda w, s, i: w.title,
    "subtitle": lambda w, s, i: w.subtitle or "",
    "work_type": lambda w, s, i: w.work_type,
    "edition": lambda w, s, i: str(w.edition) if w.edition else "",
    "contributors": lambda w, s, i: s.option("join_delimiter", "; ").join(
        c.full_name for c in w.ordered_contributors()
    ),
    "imprint": lambda w, s, i: w.imprint.name,
    "publisher": lambda w, s, i: w.publisher.name,
    "publication_date": lambda w, s, i: (
        w.publication_date.isoformat() if w.publication_date else ""
    ),
    "place": lambda w, s, i: w.place or "",
    "page_count": lambda w, s, i: str(w.page_count) if w.page_count else "",
    "product_form": lambda w, s, i: w.product_form or "",
    "languages": lambda w, s, i: s.option("join_delimiter", "; ").join(w.languages),
    "license": lambda w, s, i: w.license or "",
    "landing_page": lambda w, s, i: w.landing_page or "",
}


class TabularEncoder:
    """Writes works as delimited rows.

    Options:
        columns: header names, each a key of COLUMNS.
        delimiter: cell separator (default ",").
        quoting: "minimal" to quote cells as CSV does, "none" to forbid
            delimiters and line breaks in cells instead.
        row_per: "work" for one row per work, "identifier" for one row per
            identifier (a work without identifiers still gets one row).
    """

    def encode(self, work: Work, spec: FormatSpecification) -> bytes:
        columns = spec.option("columns", ())
        if spec.option("row_per", "work") == "identifier" and work.identifiers:
            targets: Sequence[Identifier | None] = work.identifiers
        else:
            targets = (None,)
        rows = []
        for identifier in targets:
            row = []
            for column in columns:
                value = COLUMNS[column](work, spec, identifier)
                row.append(self._cell(value, column, work, spec))
            rows.append(row)
        return self._write(rows, spec).encode(spec.charset)

    def assemble(
        self,
        fragments: Sequence[bytes],
        spec: FormatSpecification,
        *,
        timestamp: datetime | None = None,
    ) -> bytes:
        header = self._write([list(spec.option("columns", ()))], spec).encode(spec.charset)
        return header + b"".join(fragments)

    def _cell(self, value: str, column: str, work: Work, spec: FormatSpecification) -> str:
        if spec.option("quoting", "minimal") == "none":
            delimiter = spec.option("delimiter", ",")
            for forbidden in (delimiter, "\t", "\n", "\r"):
                if forbidden in value:
                    raise EncodingError(
                        f"{forbidden!r} cannot appear in a {spec.name} cell",
                        field=column,
                        value=value,
                        work_id=work.work_id,
                    )
        return check_text(value, spec, field=column, work_id=work.work_id)

    def _write(self, rows: list[list[str]], spec: FormatSpecification) -> str:
        delimiter = spec.option("delimiter", ",")
        if spec.option("quoting", "minimal") == "none":
            return "".join(delimiter.join(row) + "\n" for row in rows)
        buffer = io.StringIO()
        writer = csv.writer(buffer, delimiter=delimiter, lineterminator="\n")
        writer.writerows(rows)
        return buffer.getvalue()
