# ABOUTME: Unit tests for the BibTeX encoder and citation keys.
# ABOUTME: Checks entry layout, escaping of LaTeX specials, and brace balancing.

import pytest

from colophon.errors import EncodingError
from colophon.formats.bibtex import BibtexEncoder, citation_key
from colophon.formats.registry import FormatRegistry
from colophon.formats.spec import FormatSpecification
from colophon.metadata.types import Contributor
from tests.fixtures.works import make_minimal_work, make_work

EXPECTED_ENTRY = """\
@book{Lovelace2020-work001,
  title = {Notes on the Analytical Engine},
  subtitle = {A Reader},
  author = {Lovelace, Ada and Babbage, Charles},
  editor = {Somerville, Mary},
  edition = {2},
  year = {2020},
  month = {jun},
  publisher = {Open Book Publishers},
  address = {Cambridge, UK},
  pages = {248},
  isbn = {9781800640009},
  doi = {10.11647/obp.0001},
  url = {https://www.openbookpublishers.com/product/work-001},
  language = {eng},
  copyright = {https://creativecommons.org/licenses/by/4.0/},
  abstract = {Essays on the first published algorithm \\& its legacy.},
}
"""


def _bibtex(registry: FormatRegistry) -> FormatSpecification:
    return registry.resolve("bibtex", "1")


class TestCitationKey:
    """Tests for citation_key()."""

    def test_surname_year_and_id(self) -> None:
        assert citation_key(make_work()) == "Lovelace2020-work001"

    def test_accents_are_folded(self) -> None:
        author = Contributor(
            full_name="Zoë Ćurković",
            role="author",
            rank=1,
            first_name="Zoë",
            last_name="Ćurković",
        )
        assert citation_key(make_work(contributors=(author,))) == "Curkovic2020-work001"

    def test_without_contributors_uses_title(self) -> None:
        work = make_work(contributors=(), title="Engines of Thought")
        assert citation_key(work) == "Engines2020-work001"

    def test_without_date(self) -> None:
        assert citation_key(make_minimal_work()) == "Doe-workmin"


class TestBibtexEncoder:
    """Tests for BibtexEncoder."""

    def test_full_entry(self, registry: FormatRegistry) -> None:
        fragment = BibtexEncoder().encode(make_work(), _bibtex(registry))
        assert fragment.decode("utf-8") == EXPECTED_ENTRY

    def test_empty_fields_are_omitted(self, registry: FormatRegistry) -> None:
        text = BibtexEncoder().encode(make_minimal_work(), _bibtex(registry)).decode("utf-8")
        assert text == (
            "@book{Doe-workmin,\n"
            "  title = {A Minimal Book},\n"
            "  author = {Doe},\n"
            "  publisher = {Open Book Publishers},\n"
            "  isbn = {9781800640009},\n"
            "}\n"
        )

    def test_entry_type_from_work_type(self, registry: FormatRegistry) -> None:
        fragment = BibtexEncoder().encode(make_work(work_type="book_chapter"), _bibtex(registry))
        assert fragment.startswith(b"@inbook{")

    @pytest.mark.parametrize(
        ("title", "escaped"),
        [
            ("Costs & Benefits", r"Costs \& Benefits"),
            ("100% Open", r"100\% Open"),
            ("snake_case", r"snake\_case"),
            ("Issue #5 for $10", r"Issue \#5 for \$10"),
        ],
    )
    def test_specials_are_escaped(self, registry: FormatRegistry, title: str, escaped: str) -> None:
        text = BibtexEncoder().encode(make_work(title=title), _bibtex(registry)).decode("utf-8")
        assert f"  title = {{{escaped}}}," in text

    def test_urls_are_verbatim(self, registry: FormatRegistry) -> None:
        work = make_work(landing_page="https://example.org/book?id=1&format=pdf_a")
        text = BibtexEncoder().encode(work, _bibtex(registry)).decode("utf-8")
        assert "  url = {https://example.org/book?id=1&format=pdf_a}," in text

    def test_balanced_braces_are_kept(self, registry: FormatRegistry) -> None:
        text = BibtexEncoder().encode(
            make_work(title="The {ONIX} Handbook"), _bibtex(registry)
        ).decode("utf-8")
        assert "  title = {The {ONIX} Handbook}," in text

    @pytest.mark.parametrize("title", ["Open { brace", "Close } brace", "}{"])
    def test_unbalanced_braces_raise(self, registry: FormatRegistry, title: str) -> None:
        with pytest.raises(EncodingError, match="Unbalanced braces") as exc_info:
            BibtexEncoder().encode(make_work(title=title), _bibtex(registry))
        assert exc_info.value.field == "title"
        assert exc_info.value.work_id == "work-001"

    def test_assemble_separates_entries(self, registry: FormatRegistry) -> None:
        spec = _bibtex(registry)
        encoder = BibtexEncoder()
        payload = encoder.assemble(
            [encoder.encode(make_work(), spec), encoder.encode(make_minimal_work(), spec)], spec
        )
        assert payload.count(b"}\n\n@book{") == 1
