# ABOUTME: Converts between Work dataclasses and JSON-compatible dictionaries.
# ABOUTME: Shared by the SQLite catalog, snapshot loading, and the JSON export format.

from datetime import date
from decimal import Decimal
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


def work_to_dict(work: Work) -> dict[str, Any]:
    """Convert a Work into plain JSON types.

    Dates become ISO strings and price amounts become strings so that
    serialization never loses precision. Collections keep snapshot order.
    """
    return {
        "work_id": work.work_id,
        "work_type": work.work_type,
        "title": work.title,
        "subtitle": work.subtitle,
        "edition": work.edition,
        "publication_date": (
            work.publication_date.isoformat() if work.publication_date else None
        ),
        "place": work.place,
        "page_count": work.page_count,
        "languages": list(work.languages),
        "abstract": work.abstract,
        "license": work.license,
        "landing_page": work.landing_page,
        "product_form": work.product_form,
        "imprint": {
            "imprint_id": work.imprint.imprint_id,
            "name": work.imprint.name,
            "publisher": {
                "publisher_id": work.publisher.publisher_id,
                "name": work.publisher.name,
            },
        },
        "identifiers": [{"scheme": i.scheme, "value": i.value} for i in work.identifiers],
        "contributors": [
            {
                "full_name": c.full_name,
                "role": c.role,
                "rank": c.rank,
                "first_name": c.first_name,
                "last_name": c.last_name,
                "orcid": c.orcid,
                "is_organization": c.is_organization,
            }
            for c in work.contributors
        ],
        "prices": [
            {"currency": p.currency, "amount": str(p.amount), "territory": p.territory}
            for p in work.prices
        ],
        "subjects": [{"scheme": s.scheme, "code": s.code, "rank": s.rank} for s in work.subjects],
    }


def dict_to_work(data: dict[str, Any]) -> Work:
    """Convert a dictionary produced by work_to_dict() back into a Work.

    Raises:
        KeyError: If work_id, title, or imprint is missing.
    """
    imprint = data["imprint"]
    publisher = imprint.get("publisher") or {}
    published = data.get("publication_date")
    return Work(
        work_id=data["work_id"],
        title=data["title"],
        imprint=Imprint(
            imprint_id=imprint.get("imprint_id", ""),
            name=imprint.get("name", ""),
            publisher=Publisher(
                publisher_id=publisher.get("publisher_id", ""),
                name=publisher.get("name", ""),
            ),
        ),
        work_type=data.get("work_type") or "monograph",
        subtitle=data.get("subtitle"),
        edition=data.get("edition"),
        publication_date=date.fromisoformat(published) if published else None,
        place=data.get("place"),
        page_count=data.get("page_count"),
        languages=tuple(data.get("languages") or ()),
        abstract=data.get("abstract"),
        license=data.get("license"),
        landing_page=data.get("landing_page"),
        product_form=data.get("product_form"),
        identifiers=tuple(
            Identifier(scheme=i["scheme"], value=i["value"])
            for i in data.get("identifiers") or ()
        ),
        contributors=tuple(
            Contributor(
                full_name=c["full_name"],
                role=c["role"],
                rank=c.get("rank", 1),
                first_name=c.get("first_name"),
                last_name=c.get("last_name"),
                orcid=c.get("orcid"),
                is_organization=c.get("is_organization", False),
            )
            for c in data.get("contributors") or ()
        ),
        prices=tuple(
            Price(
                currency=p["currency"],
                amount=Decimal(str(p["amount"])),
                territory=p.get("territory", "WORLD"),
            )
            for p in data.get("prices") or ()
        ),
        subjects=tuple(
            Subject(scheme=s["scheme"], code=s["code"], rank=s.get("rank", 1))
            for s in data.get("subjects") or ()
        ),
    )
