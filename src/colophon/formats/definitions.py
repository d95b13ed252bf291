# ABOUTME: The bundled format definitions: one FormatSpecification plus encoder per target.
# ABOUTME: Code tables here are data taken from each external standard's published code lists.

from typing import Any

from colophon.formats.bibtex import BibtexEncoder
from colophon.formats.deposit import CrossrefDepositEncoder
from colophon.formats.json_records import JsonEncoder
from colophon.formats.marc import MarcMarkupEncoder, MarcRecordEncoder, MarcXmlEncoder
from colophon.formats.onix import Onix21Encoder, OnixEncoder
from colophon.formats.registry import FormatRegistry
from colophon.formats.spec import FormatSpecification
from colophon.formats.tabular import TabularEncoder

DIGITAL_FORMS = frozenset({"pdf", "epub", "html", "xml", "mobi"})

ALL_IDENTIFIER_SCHEMES = frozenset({"isbn13", "doi", "issn", "uuid"})

# ISO 639-2/B (internal) to ISO 639-1, for formats that want two-letter codes.
LANGUAGE_ALPHA2 = {
    "ara": "ar",
    "baq": "eu",
    "cat": "ca",
    "chi": "zh",
    "cze": "cs",
    "dan": "da",
    "dut": "nl",
    "eng": "en",
    "fin": "fi",
    "fre": "fr",
    "ger": "de",
    "gle": "ga",
    "glg": "gl",
    "gre": "el",
    "heb": "he",
    "hin": "hi",
    "hun": "hu",
    "ita": "it",
    "jpn": "ja",
    "kor": "ko",
    "lat": "la",
    "nor": "no",
    "pol": "pl",
    "por": "pt",
    "rum": "ro",
    "rus": "ru",
    "spa": "es",
    "swe": "sv",
    "tur": "tr",
    "ukr": "uk",
    "wel": "cy",
}

# MARC and ONIX both use ISO 639-2/B directly.
LANGUAGE_BIBLIOGRAPHIC = {code: code for code in LANGUAGE_ALPHA2}

CURRENCIES = {
    code: code
    for code in ("AUD", "CAD", "CHF", "DKK", "EUR", "GBP", "INR", "JPY", "NOK", "NZD", "SEK", "USD")
}

MARC_RELATORS = {
    "author": "aut",
    "editor": "edt",
    "translator": "trl",
    "photographer": "pht",
    "illustrator": "ill",
    "music_editor": "edt",
    "foreword_by": "wfw",
    "introduction_by": "win",
    "afterword_by": "aft",
    "preface_by": "wpr",
}

MARC_RELATOR_TERMS = {
    "aut": "author",
    "edt": "editor",
    "trl": "translator",
    "pht": "photographer",
    "ill": "illustrator",
    "wfw": "writer of foreword",
    "win": "writer of introduction",
    "aft": "author of afterword, colophon, etc",
    "wpr": "writer of preface",
}

MARC_SUBJECT_SOURCES = {
    "bic": "bicssc",
    "bisac": "bisacsh",
    "thema": "thema",
    "lcc": "lcc",
    "keyword": "keyword",
    "custom": "local",
}

MARC_OPTIONS = {
    "non_repeatable_tags": frozenset({"001", "003", "005", "008", "100", "110", "245", "250"}),
    "relator_terms": MARC_RELATOR_TERMS,
    "main_entry_roles": frozenset({"author"}),
    "digital_forms": DIGITAL_FORMS,
    "cataloging_agency": "Colophon",
}

MARC_VOCABULARIES = {
    "contributors.role": MARC_RELATORS,
    "languages": LANGUAGE_BIBLIOGRAPHIC,
    "subjects.scheme": MARC_SUBJECT_SOURCES,
}

ONIX_CONTRIBUTOR_ROLES = {
    "author": "A01",
    "editor": "B01",
    "translator": "B06",
    "photographer": "A13",
    "illustrator": "A12",
    "music_editor": "B25",
    "foreword_by": "A23",
    "introduction_by": "A24",
    "afterword_by": "A19",
    "preface_by": "A15",
}

ONIX_PRODUCT_FORMS = {
    "paperback": "BC",
    "hardback": "BB",
    "pdf": "EB",
    "epub": "EB",
    "html": "EB",
    "xml": "EB",
    "mobi": "EB",
}

ONIX_SUBJECT_SCHEMES = {
    "bic": "12",
    "bisac": "10",
    "thema": "93",
    "lcc": "04",
    "keyword": "20",
    "custom": "23",
}

ONIX_PRODUCT_FORM_DETAIL = {
    "pdf": "E107",
    "epub": "E101",
    "html": "E105",
    "xml": "E113",
    "mobi": "E127",
}

# ONIX 2.1 puts every digital form under DG and qualifies it with an EpubType (list 10).
ONIX21_PRODUCT_FORMS = {
    "paperback": "BC",
    "hardback": "BB",
    "pdf": "DG",
    "epub": "DG",
    "html": "DG",
    "xml": "DG",
    "mobi": "DG",
}

ONIX21_EPUB_TYPES = {
    "pdf": "002",
    "epub": "029",
    "html": "001",
    "mobi": "022",
}

KBART_COLUMNS = (
    "publication_title",
    "print_identifier",
    "online_identifier",
    "date_first_issue_online",
    "num_first_vol_online",
    "num_first_issue_online",
    "date_last_issue_online",
    "num_last_vol_online",
    "num_last_issue_online",
    "title_url",
    "first_author",
    "title_id",
    "embargo_info",
    "coverage_depth",
    "notes",
    "publisher_name",
    "publication_type",
    "date_monograph_published_print",
    "date_monograph_published_online",
    "monograph_volume",
    "monograph_edition",
    "first_editor",
    "parent_publication_title_id",
    "preceding_publication_title_id",
    "access_type",
)

CSV_COLUMNS = (
    "work_id",
    "identifier_scheme",
    "identifier",
    "title",
    "subtitle",
    "work_type",
    "edition",
    "contributors",
    "imprint",
    "publisher",
    "publication_date",
    "place",
    "page_count",
    "product_form",
    "languages",
    "license",
    "landing_page",
)


def _catalogue_spec(
    name: str, content_type: str, extension: str, description: str
) -> FormatSpecification:
    return FormatSpecification(
        name=name,
        version="1",
        content_type=content_type,
        file_extension=extension,
        description=description,
        required=frozenset({"title", "contributors"}),
        accepted_identifier_schemes=frozenset({"isbn13", "doi"}),
        vocabularies=MARC_VOCABULARIES,
        options=MARC_OPTIONS,
    )


def _onix_spec(
    name: str,
    version: str,
    description: str,
    *,
    required: frozenset[str] = frozenset(),
    product_forms: tuple[str, ...] | None = None,
    **options: Any,
) -> FormatSpecification:
    """An ONIX message format. Platform profiles add required fields and narrow the forms."""
    if version == "2.1":
        forms = ONIX21_PRODUCT_FORMS
        form_options: dict[str, Any] = {"epub_types": ONIX21_EPUB_TYPES}
    else:
        forms = ONIX_PRODUCT_FORMS
        form_options = {"product_form_detail": ONIX_PRODUCT_FORM_DETAIL}
    if product_forms is not None:
        forms = {code: forms[code] for code in product_forms}
    return FormatSpecification(
        name=name,
        version=version,
        content_type="application/xml",
        file_extension="xml",
        description=description,
        required=frozenset({"title", "imprint.publisher.name", "product_form"}) | required,
        accepted_identifier_schemes=frozenset({"isbn13", "doi"}),
        vocabularies={
            "contributors.role": ONIX_CONTRIBUTOR_ROLES,
            "product_form": forms,
            "subjects.scheme": ONIX_SUBJECT_SCHEMES,
            "languages": LANGUAGE_BIBLIOGRAPHIC,
            "prices.currency": CURRENCIES,
        },
        cardinality={"identifiers.isbn13": (0, 1)},
        batch_limit=500,
        requires_timestamp=True,
        options={
            "product_id_types": {"isbn13": "15", "doi": "06"},
            "digital_forms": DIGITAL_FORMS,
            "sender_name": "Colophon",
            **form_options,
            **options,
        },
    )


def register_builtin_formats(registry: FormatRegistry) -> None:
    """Register every bundled format, in the order `colophon formats` lists them."""
    registry.register(
        _catalogue_spec(
            "catalogue-record", "text/plain", "mrk", "MARC 21 bibliographic record, tagged text"
        ),
        MarcMarkupEncoder(),
    )
    registry.register(
        _catalogue_spec(
            "marc21record", "application/marc", "mrc", "MARC 21 exchange record (ISO 2709)"
        ),
        MarcRecordEncoder(),
    )
    registry.register(
        _catalogue_spec(
            "marc21xml", "application/marcxml+xml", "xml", "MARC 21 records as MARCXML"
        ),
        MarcXmlEncoder(),
    )
    registry.register(
        _onix_spec("onix", "3.0", "ONIX for Books 3.0 product records"), OnixEncoder()
    )
    registry.register(
        _onix_spec("onix", "2.1", "ONIX for Books 2.1 product records"), Onix21Encoder()
    )
    registry.register(
        _onix_spec(
            "onix-project-muse",
            "3.0",
            "ONIX 3.0 for Project MUSE open access books",
            required=frozenset({"license", "landing_page", "identifiers.isbn13"}),
            product_forms=("pdf", "epub"),
        ),
        OnixEncoder(),
    )
    registry.register(
        _onix_spec(
            "onix-oapen",
            "3.0",
            "ONIX 3.0 for the OAPEN Library, unpriced open access only",
            required=frozenset({"license", "landing_page"}),
            product_forms=tuple(sorted(DIGITAL_FORMS)),
            include_prices=False,
        ),
        OnixEncoder(),
    )
    registry.register(
        _onix_spec(
            "onix-jstor",
            "3.0",
            "ONIX 3.0 for JSTOR, PDF editions only",
            required=frozenset({"identifiers.isbn13", "landing_page"}),
            product_forms=("pdf",),
        ),
        OnixEncoder(),
    )
    registry.register(
        _onix_spec(
            "onix-google-books",
            "3.0",
            "ONIX 3.0 for Google Books",
            required=frozenset({"identifiers.isbn13", "languages"}),
            product_forms=("pdf", "epub"),
        ),
        OnixEncoder(),
    )
    registry.register(
        _onix_spec(
            "onix-overdrive",
            "3.0",
            "ONIX 3.0 for OverDrive, priced e-books",
            required=frozenset({"identifiers.isbn13", "prices"}),
            product_forms=("epub", "pdf"),
        ),
        OnixEncoder(),
    )
    registry.register(
        _onix_spec(
            "onix-ebsco-host",
            "2.1",
            "ONIX 2.1 for EBSCOhost, priced e-books",
            required=frozenset({"identifiers.isbn13", "prices"}),
            product_forms=("pdf", "epub"),
        ),
        Onix21Encoder(),
    )
    registry.register(
        _onix_spec(
            "onix-proquest-ebrary",
            "2.1",
            "ONIX 2.1 for ProQuest Ebook Central (ebrary), priced e-books",
            required=frozenset({"identifiers.isbn13", "prices"}),
            product_forms=("pdf", "epub"),
        ),
        Onix21Encoder(),
    )
    registry.register(
        FormatSpecification(
            name="kbart",
            version="2",
            content_type="text/tab-separated-values",
            file_extension="txt",
            description="KBART phase II holdings, one row per work",
            required=frozenset({"title", "landing_page", "imprint.publisher.name"}),
            accepted_identifier_schemes=frozenset({"isbn13", "doi"}),
            vocabularies={
                "work_type": {
                    "monograph": "monograph",
                    "edited_book": "monograph",
                    "textbook": "monograph",
                    "book_set": "monograph",
                    "journal_issue": "serial",
                },
            },
            options={
                "columns": KBART_COLUMNS,
                "delimiter": "\t",
                "quoting": "none",
                "row_per": "work",
                "digital_forms": DIGITAL_FORMS,
            },
        ),
        TabularEncoder(),
    )
    registry.register(
        FormatSpecification(
            name="csv",
            version="1",
            content_type="text/csv",
            file_extension="csv",
            description="Comma-separated catalogue, one row per identifier",
            required=frozenset({"title"}),
            accepted_identifier_schemes=ALL_IDENTIFIER_SCHEMES,
            options={
                "columns": CSV_COLUMNS,
                "delimiter": ",",
                "quoting": "minimal",
                "row_per": "identifier",
                "join_delimiter": "; ",
            },
        ),
        TabularEncoder(),
    )
    registry.register(
        FormatSpecification(
            name="doideposit",
            version="crossref-5.3.1",
            content_type="application/xml",
            file_extension="xml",
            description="Crossref DOI deposit for books",
            required=frozenset(
                {
                    "title",
                    "landing_page",
                    "contributors",
                    "identifiers.doi",
                    "imprint.publisher.name",
                    "publication_date",
                }
            ),
            accepted_identifier_schemes=frozenset({"doi"}),
            vocabularies={
                "work_type": {
                    "monograph": "monograph",
                    "edited_book": "edited_book",
                    "textbook": "monograph",
                    "book_set": "other",
                },
                "contributors.role": {
                    "author": "author",
                    "editor": "editor",
                    "translator": "translator",
                },
                "languages": LANGUAGE_ALPHA2,
            },
            cardinality={"identifiers.doi": (1, 1)},
            batch_limit=1,
            requires_timestamp=True,
            options={
                "digital_forms": DIGITAL_FORMS,
                "depositor_name": "Colophon",
                "depositor_email": "metadata@example.org",
                "registrant": "Colophon",
            },
        ),
        CrossrefDepositEncoder(),
    )
    registry.register(
        FormatSpecification(
            name="bibtex",
            version="1",
            content_type="application/x-bibtex",
            file_extension="bib",
            description="BibTeX citation entries",
            required=frozenset({"title"}),
            accepted_identifier_schemes=ALL_IDENTIFIER_SCHEMES,
            vocabularies={
                "work_type": {
                    "monograph": "book",
                    "edited_book": "book",
                    "textbook": "book",
                    "book_set": "book",
                    "journal_issue": "periodical",
                    "book_chapter": "inbook",
                },
            },
        ),
        BibtexEncoder(),
    )
    registry.register(
        FormatSpecification(
            name="json",
            version="1",
            content_type="application/json",
            file_extension="json",
            description="Canonical work documents as a JSON array",
            required=frozenset({"title"}),
            accepted_identifier_schemes=ALL_IDENTIFIER_SCHEMES,
        ),
        JsonEncoder(),
    )
