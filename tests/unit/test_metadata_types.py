# ABOUTME: Unit tests for the canonical Work model and its helpers.
# ABOUTME: Covers name inversion, contributor ordering, identifier lookup, and immutability.

import dataclasses

import pytest

from colophon.metadata.types import Contributor, Identifier, Work
from tests.fixtures.works import AUTHOR, EDITOR, SECOND_AUTHOR, VALID_DOI, VALID_ISBN, make_work


class TestContributor:
    """Tests for Contributor name helpers."""

    def test_inverted_name_person(self) -> None:
        """People are filed surname first."""
        assert AUTHOR.inverted_name == "Lovelace, Ada"

    def test_inverted_name_without_surname(self) -> None:
        """Without a recorded surname the full name is used as is."""
        person = Contributor(full_name="Plato", role="author", rank=1)
        assert person.inverted_name == "Plato"
        assert person.key_name == "Plato"

    def test_inverted_name_organization(self) -> None:
        """Organizations are never inverted."""
        org = Contributor(
            full_name="Royal Society", role="author", rank=1, last_name="Society",
            is_organization=True,
        )
        assert org.inverted_name == "Royal Society"


class TestWork:
    """Tests for Work convenience accessors."""

    def test_full_title_joins_subtitle(self) -> None:
        work = make_work()
        assert work.full_title == "Notes on the Analytical Engine: A Reader"

    def test_full_title_without_subtitle(self) -> None:
        work = make_work(subtitle=None)
        assert work.full_title == "Notes on the Analytical Engine"

    def test_identifier_lookup(self) -> None:
        work = make_work()
        assert work.doi == VALID_DOI
        assert work.isbn == VALID_ISBN
        assert work.identifier("issn") is None

    def test_identifiers_of_keeps_order(self) -> None:
        work = make_work(
            identifiers=(
                Identifier("isbn13", "b"),
                Identifier("doi", "x"),
                Identifier("isbn13", "a"),
            )
        )
        assert work.identifiers_of("isbn13") == ["b", "a"]

    def test_ordered_contributors_role_then_rank(self) -> None:
        """Authors come before editors, and each role is ordered by rank."""
        work = make_work(contributors=(EDITOR, SECOND_AUTHOR, AUTHOR))
        assert work.ordered_contributors() == [AUTHOR, SECOND_AUTHOR, EDITOR]

    def test_unknown_roles_sort_last(self) -> None:
        stranger = Contributor(full_name="X", role="zz_unknown", rank=1)
        work = make_work(contributors=(stranger, EDITOR))
        assert work.ordered_contributors() == [EDITOR, stranger]

    def test_contributors_with_role(self) -> None:
        work = make_work(contributors=(SECOND_AUTHOR, EDITOR, AUTHOR))
        assert work.contributors_with_role("author") == [AUTHOR, SECOND_AUTHOR]

    def test_publication_year(self) -> None:
        assert make_work().publication_year == "2020"
        assert make_work(publication_date=None).publication_year is None

    def test_work_is_frozen(self) -> None:
        """Snapshots cannot be modified once fetched."""
        work = make_work()
        with pytest.raises(dataclasses.FrozenInstanceError):
            work.title = "Changed"  # type: ignore[misc]

    def test_publisher_shortcut(self) -> None:
        work: Work = make_work()
        assert work.publisher.name == "Open Book Publishers"
