# ABOUTME: Unit tests for the delimited-text encoder behind the KBART and CSV formats.
# ABOUTME: Checks column extraction, row granularity, quoting, and forbidden characters.

import csv
import io
from datetime import datetime

import pytest

from colophon.errors import EncodingError, UnmappedVocabulary
from colophon.formats.base import encode_works
from colophon.formats.definitions import CSV_COLUMNS, KBART_COLUMNS
from colophon.formats.registry import FormatRegistry
from colophon.formats.tabular import COLUMNS, TabularEncoder
from colophon.metadata.types import Identifier
from tests.fixtures.works import VALID_DOI, VALID_ISBN, make_minimal_work, make_work


def _kbart_rows(registry: FormatRegistry, *works) -> list[dict[str, str]]:
    spec = registry.resolve("kbart", "2")
    payload = encode_works(TabularEncoder(), list(works), spec).decode("utf-8")
    lines = payload.split("\n")
    assert lines[-1] == ""
    header = lines[0].split("\t")
    return [dict(zip(header, line.split("\t"))) for line in lines[1:-1]]


def _csv_rows(registry: FormatRegistry, *works) -> list[dict[str, str]]:
    spec = registry.resolve("csv", "1")
    payload = encode_works(TabularEncoder(), list(works), spec).decode("utf-8")
    return list(csv.DictReader(io.StringIO(payload)))


class TestColumns:
    """Tests for the column table."""

    def test_every_bundled_column_has_an_extractor(self) -> None:
        assert set(KBART_COLUMNS) <= set(COLUMNS)
        assert set(CSV_COLUMNS) <= set(COLUMNS)


class TestKbart:
    """Tests for KBART output (tab-separated, unquoted)."""

    def test_header_row(self, registry: FormatRegistry) -> None:
        spec = registry.resolve("kbart", "2")
        payload = TabularEncoder().assemble([], spec)
        assert payload.decode("utf-8") == "\t".join(KBART_COLUMNS) + "\n"

    def test_row_values(self, registry: FormatRegistry) -> None:
        [row] = _kbart_rows(registry, make_work())
        assert len(row) == len(KBART_COLUMNS)
        assert row["publication_title"] == "Notes on the Analytical Engine: A Reader"
        assert row["print_identifier"] == ""
        assert row["online_identifier"] == VALID_ISBN
        assert row["title_url"] == "https://www.openbookpublishers.com/product/work-001"
        assert row["first_author"] == "Lovelace"
        assert row["first_editor"] == "Somerville"
        assert row["title_id"] == VALID_DOI
        assert row["coverage_depth"] == "fulltext"
        assert row["publisher_name"] == "Open Book Publishers"
        assert row["publication_type"] == "monograph"
        assert row["date_monograph_published_print"] == ""
        assert row["date_monograph_published_online"] == "2020"
        assert row["monograph_edition"] == "2"
        assert row["access_type"] == "F"

    def test_print_edition_uses_print_columns(self, registry: FormatRegistry) -> None:
        [row] = _kbart_rows(registry, make_work(product_form="paperback", license=None))
        assert row["print_identifier"] == VALID_ISBN
        assert row["online_identifier"] == ""
        assert row["date_monograph_published_print"] == "2020"
        assert row["access_type"] == "P"

    def test_title_id_falls_back_to_work_id(self, registry: FormatRegistry) -> None:
        work = make_work(identifiers=(Identifier("isbn13", VALID_ISBN),))
        [row] = _kbart_rows(registry, work)
        assert row["title_id"] == "work-001"

    def test_one_row_per_work(self, registry: FormatRegistry) -> None:
        rows = _kbart_rows(registry, make_work("w-1"), make_work("w-2"))
        assert [r["title_url"].rsplit("/", 1)[1] for r in rows] == ["w-1", "w-2"]

    @pytest.mark.parametrize("value", ["Tabs\tinside", "Line\nbreak", "Carriage\rreturn"])
    def test_forbidden_character_raises(self, registry: FormatRegistry, value: str) -> None:
        spec = registry.resolve("kbart", "2")
        with pytest.raises(EncodingError, match="cannot appear in a kbart cell") as exc_info:
            TabularEncoder().encode(make_work(subtitle=value), spec)
        assert exc_info.value.field == "publication_title"
        assert exc_info.value.work_id == "work-001"

    def test_unmapped_work_type_raises(self, registry: FormatRegistry) -> None:
        spec = registry.resolve("kbart", "2")
        with pytest.raises(UnmappedVocabulary, match="book_chapter"):
            TabularEncoder().encode(make_work(work_type="book_chapter"), spec)


class TestCsv:
    """Tests for CSV output (comma-separated, minimal quoting)."""

    def test_one_row_per_identifier(self, registry: FormatRegistry) -> None:
        rows = _csv_rows(registry, make_work())
        assert [(r["identifier_scheme"], r["identifier"]) for r in rows] == [
            ("doi", VALID_DOI),
            ("isbn13", VALID_ISBN),
        ]
        assert {r["work_id"] for r in rows} == {"work-001"}

    def test_work_without_identifiers_gets_one_row(self, registry: FormatRegistry) -> None:
        rows = _csv_rows(registry, make_work(identifiers=()))
        assert len(rows) == 1
        assert rows[0]["identifier"] == ""

    def test_joined_columns(self, registry: FormatRegistry) -> None:
        rows = _csv_rows(registry, make_work(languages=("eng", "fre")))
        assert rows[0]["contributors"] == "Ada Lovelace; Charles Babbage; Mary Somerville"
        assert rows[0]["languages"] == "eng; fre"
        assert rows[0]["publication_date"] == "2020-06-15"

    def test_cells_with_delimiters_are_quoted(self, registry: FormatRegistry) -> None:
        spec = registry.resolve("csv", "1")
        fragment = TabularEncoder().encode(make_minimal_work(), spec).decode("utf-8")
        assert fragment.startswith("work-min,isbn13,")
        payload = encode_works(TabularEncoder(), [make_work()], spec).decode("utf-8")
        assert '"Cambridge, UK"' in payload
        assert _csv_rows(registry, make_work())[0]["place"] == "Cambridge, UK"

    def test_line_breaks_survive_quoting(self, registry: FormatRegistry) -> None:
        rows = _csv_rows(registry, make_work(identifiers=(), subtitle="Two\nlines"))
        assert rows[0]["subtitle"] == "Two\nlines"

    def test_assemble_is_deterministic(
        self, registry: FormatRegistry, timestamp: datetime
    ) -> None:
        spec = registry.resolve("csv", "1")
        encoder = TabularEncoder()
        fragments = [encoder.encode(make_work(), spec)]
        assert encoder.assemble(fragments, spec, timestamp=timestamp) == encoder.assemble(
            fragments, spec
        )
