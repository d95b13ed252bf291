# ABOUTME: Crossref metadata deposit (schema 5.3.1) for registering book DOIs.
# ABOUTME: One <book> per payload; the batch head carries depositor and export timestamp.

import hashlib
from collections.abc import Sequence
from datetime import datetime

from colophon.formats.base import (
    XmlBuilder,
    as_utc,
    require_timestamp,
    serialize_fragment,
    xml_envelope,
)
from colophon.formats.spec import FormatSpecification
from colophon.metadata.types import Work

CROSSREF_NAMESPACE = "http://www.crossref.org/schema/5.3.1"
XSI_NAMESPACE = "http://www.w3.org/2001/XMLSchema-instance"
SCHEMA_LOCATION = (
    "http://www.crossref.org/schema/5.3.1 "
    "https://www.crossref.org/schemas/crossref5.3.1.xsd"
)

# Reasons Crossref accepts on <noisbn>.
_NOISBN_REASONS = frozenset({"monograph", "edited_book", "archive_volume"})


class CrossrefDepositEncoder:
    """Encodes a work as a Crossref <book> deposit.

    Book type, contributor roles and the language attribute are translated
    through the format's vocabularies.
    """

    def encode(self, work: Work, spec: FormatSpecification) -> bytes:
        xml = XmlBuilder(spec, work.work_id)
        book_type = spec.vocabulary_map("work_type").translate(work.work_type, work.work_id)
        book = xml.element("book", book_type=book_type)

        languages = spec.vocabulary_map("languages")
        if work.languages:
            metadata = xml.sub(
                book,
                "book_metadata",
                language=languages.translate(work.languages[0], work.work_id),
            )
        else:
            metadata = xml.sub(book, "book_metadata")

        ordered = work.ordered_contributors()
        if ordered:
            roles = spec.vocabulary_map("contributors.role")
            contributors = xml.sub(metadata, "contributors")
            for index, contributor in enumerate(ordered):
                sequence = "first" if index == 0 else "additional"
                role = roles.translate(contributor.role, work.work_id)
                if contributor.is_organization:
                    xml.sub(
                        contributors,
                        "organization",
                        contributor.full_name,
                        sequence=sequence,
                        contributor_role=role,
                    )
                    continue
                person = xml.sub(
                    contributors, "person_name", sequence=sequence, contributor_role=role
                )
                if contributor.first_name:
                    xml.sub(person, "given_name", contributor.first_name)
                xml.sub(person, "surname", contributor.key_name)
                if contributor.orcid:
                    xml.sub(person, "ORCID", f"https://orcid.org/{contributor.orcid}")

        titles = xml.sub(metadata, "titles")
        xml.sub(titles, "title", work.title)
        if work.subtitle:
            xml.sub(titles, "subtitle", work.subtitle)

        if work.edition:
            xml.sub(metadata, "edition_number", str(work.edition))
        if work.publication_date:
            published = xml.sub(metadata, "publication_date", media_type="online")
            xml.sub(published, "month", f"{work.publication_date.month:02d}")
            xml.sub(published, "day", f"{work.publication_date.day:02d}")
            xml.sub(published, "year", str(work.publication_date.year))

        isbns = work.identifiers_of("isbn13")
        digital = work.product_form in spec.option("digital_forms", frozenset())
        for isbn in isbns:
            xml.sub(metadata, "isbn", isbn, media_type="electronic" if digital else "print")
        if not isbns:
            reason = book_type if book_type in _NOISBN_REASONS else "monograph"
            xml.sub(metadata, "noisbn", reason=reason)

        publisher = xml.sub(metadata, "publisher")
        xml.sub(publisher, "publisher_name", work.publisher.name)
        if work.place:
            xml.sub(publisher, "publisher_place", work.place)

        doi_data = xml.sub(metadata, "doi_data")
        xml.sub(doi_data, "doi", work.doi)
        xml.sub(doi_data, "resource", work.landing_page)
        return serialize_fragment(book)

    def assemble(
        self,
        fragments: Sequence[bytes],
        spec: FormatSpecification,
        *,
        timestamp: datetime | None = None,
    ) -> bytes:
        stamp = as_utc(require_timestamp(spec, timestamp)).strftime("%Y%m%d%H%M%S")
        # Batch ids must be unique per submission yet reproducible for the same input.
        digest = hashlib.sha1(b"".join(fragments)).hexdigest()[:12]

        xml = XmlBuilder(spec)
        head = xml.element("head")
        xml.sub(head, "doi_batch_id", f"{digest}_{stamp}")
        xml.sub(head, "timestamp", stamp)
        depositor = xml.sub(head, "depositor")
        xml.sub(depositor, "depositor_name", spec.option("depositor_name", "Colophon"))
        xml.sub(depositor, "email_address", spec.option("depositor_email", "metadata@example.org"))
        xml.sub(head, "registrant", spec.option("registrant", "Colophon"))

        return xml_envelope(
            "doi_batch",
            [
                ("xmlns", CROSSREF_NAMESPACE),
                ("xmlns:xsi", XSI_NAMESPACE),
                ("xsi:schemaLocation", SCHEMA_LOCATION),
                ("version", "5.3.1"),
            ],
            fragments,
            head=[serialize_fragment(head), b"<body>\n"],
            tail=[b"</body>\n"],
        )
