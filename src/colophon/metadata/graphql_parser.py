# ABOUTME: Parsing functions for GraphQL metadata API responses.
# ABOUTME: Converts camelCase work payloads with upper-case enums into Work instances.

from datetime import date
from decimal import Decimal, InvalidOperation
from typing import Any

from colophon.metadata.types import (
    Contributor,
    Identifier,
    Imprint,
    Price,
    Publisher,
    Subject,
    Work,
)

_DOI_URL_PREFIXES = ("https://doi.org/", "http://doi.org/", "https://dx.doi.org/", "doi:")


def _code(value: str | None) -> str | None:
    """Normalize an API enum value ("EDITED_BOOK") into an internal code."""
    return value.strip().lower() if value else None


def parse_doi(value: str | None) -> str | None:
    """Strip resolver prefixes so DOIs are stored bare ("10.11647/obp.0001")."""
    if not value:
        return None
    doi = value.strip()
    for prefix in _DOI_URL_PREFIXES:
        if doi.lower().startswith(prefix):
            return doi[len(prefix):]
    return doi


def _parse_date(value: str | None) -> date | None:
    if not value:
        return None
    try:
        return date.fromisoformat(value[:10])
    except ValueError:
        return None


def _parse_contributions(entries: list[dict[str, Any]]) -> tuple[Contributor, ...]:
    contributors = []
    for entry in entries:
        contributor = entry.get("contributor") or {}
        contributors.append(
            Contributor(
                full_name=entry.get("fullName") or "",
                role=_code(entry.get("contributionType")) or "author",
                rank=int(entry.get("contributionOrdinal") or 1),
                first_name=entry.get("firstName"),
                last_name=entry.get("lastName"),
                orcid=contributor.get("orcid"),
            )
        )
    return tuple(contributors)


def _parse_publications(
    entries: list[dict[str, Any]],
) -> tuple[str | None, list[Identifier], list[Price]]:
    """Flatten publications into the work's product form, ISBNs and prices.

    The first publication decides the product form. ISBNs are stored
    without hyphens.
    """
    product_form = _code(entries[0].get("publicationType")) if entries else None
    identifiers: list[Identifier] = []
    prices: list[Price] = []
    for publication in entries:
        isbn = publication.get("isbn")
        if isbn:
            identifiers.append(Identifier("isbn13", isbn.replace("-", "").strip()))
        for price in publication.get("prices") or []:
            try:
                amount = Decimal(str(price.get("unitPrice")))
            except InvalidOperation:
                continue
            # The API prices publications worldwide; it has no per-territory prices.
            prices.append(Price((price.get("currencyCode") or "").upper(), amount))
    return product_form, identifiers, prices


def parse_work(data: dict[str, Any]) -> Work:
    """Parse a single `work` object from the metadata API into a Work.

    Enum-valued fields (workType, contributionType, publicationType,
    subjectType, languageCode) are lower-cased into internal codes; the
    export specifications decide how those codes map onto each format.
    """
    imprint_data = data.get("imprint") or {}
    publisher_data = imprint_data.get("publisher") or {}
    imprint = Imprint(
        imprint_id=imprint_data.get("imprintId") or "",
        name=imprint_data.get("imprintName") or "",
        publisher=Publisher(
            publisher_id=publisher_data.get("publisherId") or "",
            name=publisher_data.get("publisherName") or "",
        ),
    )

    product_form, identifiers, prices = _parse_publications(data.get("publications") or [])
    doi = parse_doi(data.get("doi"))
    if doi:
        identifiers.insert(0, Identifier("doi", doi))

    languages = tuple(
        _code(lang.get("languageCode"))
        for lang in sorted(
            data.get("languages") or [], key=lambda lang: not lang.get("mainLanguage")
        )
        if lang.get("languageCode")
    )

    subjects = tuple(
        Subject(
            scheme=_code(entry.get("subjectType")) or "custom",
            code=entry.get("subjectCode") or "",
            rank=int(entry.get("subjectOrdinal") or 1),
        )
        for entry in data.get("subjects") or []
    )

    page_count = data.get("pageCount")
    edition = data.get("edition")

    return Work(
        work_id=data["workId"],
        title=data.get("title") or "",
        imprint=imprint,
        work_type=_code(data.get("workType")) or "monograph",
        subtitle=data.get("subtitle") or None,
        edition=int(edition) if edition else None,
        publication_date=_parse_date(data.get("publicationDate")),
        place=data.get("place") or None,
        page_count=int(page_count) if page_count else None,
        languages=languages,
        abstract=data.get("longAbstract") or data.get("shortAbstract") or None,
        license=data.get("license") or None,
        landing_page=data.get("landingPage") or None,
        product_form=product_form,
        identifiers=tuple(identifiers),
        contributors=_parse_contributions(data.get("contributions") or []),
        prices=tuple(prices),
        subjects=subjects,
    )
