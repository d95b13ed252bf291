# ABOUTME: Canonical bibliographic data structures read by the export engine.
# ABOUTME: Work is the record graph that flows through fetch, validation, and encoding.

from dataclasses import dataclass
from datetime import date
from decimal import Decimal

# Internal controlled vocabularies. Format specifications map these codes to
# their own external code lists.
WORK_TYPES = frozenset(
    {"monograph", "edited_book", "textbook", "journal_issue", "book_set", "book_chapter"}
)

CONTRIBUTOR_ROLES = (
    "author",
    "editor",
    "translator",
    "photographer",
    "illustrator",
    "music_editor",
    "foreword_by",
    "introduction_by",
    "afterword_by",
    "preface_by",
)

PRODUCT_FORMS = frozenset({"paperback", "hardback", "pdf", "epub", "html", "xml", "mobi"})

IDENTIFIER_SCHEMES = frozenset({"isbn13", "doi", "issn", "uuid"})

SUBJECT_SCHEMES = frozenset({"bic", "bisac", "thema", "lcc", "keyword", "custom"})

_ROLE_PRECEDENCE = {role: index for index, role in enumerate(CONTRIBUTOR_ROLES)}


@dataclass(frozen=True)
class Identifier:
    """A typed external reference to a work, e.g. ("isbn13", "9781800640009")."""

    scheme: str
    value: str


@dataclass(frozen=True)
class Contributor:
    """A person or organization credited on a work.

    rank orders contributors that share a role (1 = first).
    """

    full_name: str
    role: str
    rank: int
    first_name: str | None = None
    last_name: str | None = None
    orcid: str | None = None
    is_organization: bool = False

    @property
    def inverted_name(self) -> str:
        """Name in "Last, First" order, as catalogues file it."""
        if self.is_organization or not self.last_name:
            return self.full_name
        if self.first_name:
            return f"{self.last_name}, {self.first_name}"
        return self.last_name

    @property
    def key_name(self) -> str:
        """Surname (or the full name when no surname is recorded)."""
        return self.last_name or self.full_name


@dataclass(frozen=True)
class Publisher:
    publisher_id: str
    name: str


@dataclass(frozen=True)
class Imprint:
    imprint_id: str
    name: str
    publisher: Publisher


@dataclass(frozen=True)
class Price:
    """A sales price in one territory. territory is ISO 3166-1 alpha-2 or WORLD."""

    currency: str
    amount: Decimal
    territory: str = "WORLD"


@dataclass(frozen=True)
class Subject:
    scheme: str
    code: str
    rank: int = 1


@dataclass(frozen=True)
class Work:
    """A publishable metadata record: book, chapter, or related asset.

    Instances are read-only snapshots fetched from the metadata repository.
    Collections are tuples so a snapshot can be shared across worker threads.
    """

    work_id: str
    title: str
    imprint: Imprint
    work_type: str = "monograph"
    subtitle: str | None = None
    edition: int | None = None
    publication_date: date | None = None
    place: str | None = None
    page_count: int | None = None
    languages: tuple[str, ...] = ()
    abstract: str | None = None
    license: str | None = None
    landing_page: str | None = None
    product_form: str | None = None
    identifiers: tuple[Identifier, ...] = ()
    contributors: tuple[Contributor, ...] = ()
    prices: tuple[Price, ...] = ()
    subjects: tuple[Subject, ...] = ()

    @property
    def full_title(self) -> str:
        """Title and subtitle joined the way title pages print them."""
        if self.subtitle:
            return f"{self.title}: {self.subtitle}"
        return self.title

    @property
    def publisher(self) -> Publisher:
        return self.imprint.publisher

    @property
    def doi(self) -> str | None:
        return self.identifier("doi")

    @property
    def isbn(self) -> str | None:
        return self.identifier("isbn13")

    def identifier(self, scheme: str) -> str | None:
        """First identifier value of a scheme, or None."""
        values = self.identifiers_of(scheme)
        return values[0] if values else None

    def identifiers_of(self, scheme: str) -> list[str]:
        return [i.value for i in self.identifiers if i.scheme == scheme]

    def contributors_with_role(self, role: str) -> list[Contributor]:
        """Contributors of one role, ordered by rank."""
        return sorted(
            (c for c in self.contributors if c.role == role), key=lambda c: c.rank
        )

    def ordered_contributors(self) -> list[Contributor]:
        """All contributors: authors first, then editors, etc., each by rank.

        Roles outside the known list sort last, alphabetically, so ordering
        stays stable whatever the repository returns.
        """
        return sorted(
            self.contributors,
            key=lambda c: (
                _ROLE_PRECEDENCE.get(c.role, len(_ROLE_PRECEDENCE)),
                c.role,
                c.rank,
                c.full_name,
            ),
        )

    def ordered_subjects(self) -> list[Subject]:
        return sorted(self.subjects, key=lambda s: (s.scheme, s.rank, s.code))

    @property
    def publication_year(self) -> str | None:
        return str(self.publication_date.year) if self.publication_date else None
