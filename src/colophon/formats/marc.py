# ABOUTME: MARC 21 bibliographic records: one field builder, three serializations.
# ABOUTME: Tagged-text markup, ISO 2709 fixed-width exchange records, and MARCXML.

import re
from collections.abc import Sequence
from dataclasses import dataclass
from datetime import datetime

from colophon.errors import EncodingError
from colophon.formats.base import XmlBuilder, check_text, serialize_fragment, xml_envelope
from colophon.formats.spec import FormatSpecification
from colophon.metadata.types import Contributor, Work

MARCXML_NAMESPACE = "http://www.loc.gov/MARC21/slim"

SUBFIELD_DELIMITER = "\x1f"
FIELD_TERMINATOR = "\x1e"
RECORD_TERMINATOR = "\x1d"

_MAX_FIELD_LENGTH = 9999
_MAX_RECORD_LENGTH = 99999

_CONTROL_CHARS_RE = re.compile(r"[\x00-\x08\x0b\x0c\x0e-\x1f]")

# Leading articles and the number of characters a filing index skips (245 ind2).
_NONFILING_ARTICLES = ("the ", "an ", "a ")

_ORDINAL_SUFFIXES = {1: "st", 2: "nd", 3: "rd"}


@dataclass(frozen=True)
class MarcField:
    """One variable field. Control fields (00X) carry data, others subfields."""

    tag: str
    indicators: str = "  "
    subfields: tuple[tuple[str, str], ...] = ()
    data: str | None = None

    @property
    def is_control(self) -> bool:
        return self.tag < "010"


class _FieldBuilder:
    """Collects the MARC fields of one work under one specification."""

    def __init__(self, work: Work, spec: FormatSpecification) -> None:
        self.work = work
        self.spec = spec
        self.fields: list[MarcField] = []

    def clean(self, value: str, field: str, *, collapse: bool = True) -> str:
        """Reject delimiter/control characters, then collapse whitespace.

        Control fields are positional, so their spacing is kept as given.
        """
        match = _CONTROL_CHARS_RE.search(value)
        if match:
            raise EncodingError(
                f"Control character U+{ord(match.group()):04X} cannot appear in MARC data",
                field=field,
                value=value,
                work_id=self.work.work_id,
            )
        if collapse:
            value = " ".join(value.split())
        return check_text(value, self.spec, field=field, work_id=self.work.work_id)

    def control(self, tag: str, data: str) -> None:
        self.fields.append(MarcField(tag=tag, data=self.clean(data, tag, collapse=False)))

    def data(self, tag: str, indicators: str, *subfields: tuple[str, str | None]) -> None:
        present = tuple(
            (code, self.clean(value, f"{tag}${code}"))
            for code, value in subfields
            if value
        )
        if present:
            self.fields.append(MarcField(tag=tag, indicators=indicators, subfields=present))

    def finish(self) -> list[MarcField]:
        """Sort fields by tag (stable) and enforce the format's repeatability rules."""
        ordered = sorted(self.fields, key=lambda f: f.tag)
        non_repeatable = self.spec.option("non_repeatable_tags", frozenset())
        seen: set[str] = set()
        for marc_field in ordered:
            if marc_field.tag in seen and marc_field.tag in non_repeatable:
                raise EncodingError(
                    f"Tag {marc_field.tag} is not repeatable in {self.spec.label}",
                    field=marc_field.tag,
                    work_id=self.work.work_id,
                )
            seen.add(marc_field.tag)
        return ordered


def _ordinal(number: int) -> str:
    suffix = "th" if 10 <= number % 100 <= 20 else _ORDINAL_SUFFIXES.get(number % 10, "th")
    return f"{number}{suffix}"


def _nonfiling_count(title: str) -> str:
    lowered = title.lower()
    for article in _NONFILING_ARTICLES:
        if lowered.startswith(article):
            return str(len(article))
    return "0"


def _responsibility(work: Work) -> str | None:
    """Statement of responsibility (245 $c): "Ann Author ; edited by Ed Itor"."""
    phrases = []
    for role, lead in (("author", ""), ("editor", "edited by "), ("translator", "translated by ")):
        names = [c.full_name for c in work.contributors_with_role(role)]
        if names:
            phrases.append(lead + ", ".join(names))
    return " ; ".join(phrases) or None


def _fixed_length_data(work: Work, spec: FormatSpecification, language: str) -> str:
    """Build the 40-character 008 field for books."""
    published = work.publication_date
    entered = published.strftime("%y%m%d") if published else "000000"
    date_type, year = ("s", str(published.year).zfill(4)) if published else ("n", "uuuu")
    digital = work.product_form in spec.option("digital_forms", frozenset())
    value = (
        entered            # 00-05 date entered on file
        + date_type        # 06 type of date
        + year             # 07-10 date 1
        + "    "           # 11-14 date 2
        + "xx "            # 15-17 place of publication
        + "    "           # 18-21 illustrations
        + " "              # 22 target audience
        + ("o" if digital else " ")  # 23 form of item
        + "    "           # 24-27 nature of contents
        + " "              # 28 government publication
        + "0"              # 29 conference publication
        + "0"              # 30 festschrift
        + "0"              # 31 index
        + " "              # 32 undefined
        + "0"              # 33 literary form
        + " "              # 34 biography
        + language         # 35-37 language
        + " "              # 38 modified record
        + "d"              # 39 cataloging source
    )
    return value


def _name_entry(
    contributor: Contributor, relator_code: str, terms: dict[str, str]
) -> tuple[tuple[str, str | None], ...]:
    term = terms.get(relator_code)
    name = contributor.inverted_name + ("," if term else "")
    orcid = f"https://orcid.org/{contributor.orcid}" if contributor.orcid else None
    return (("a", name), ("e", f"{term}." if term else None), ("4", relator_code), ("1", orcid))


def build_marc_fields(work: Work, spec: FormatSpecification) -> list[MarcField]:
    """Map a work onto MARC 21 bibliographic fields, ordered by tag.

    Relator codes, language codes and subject sources come from the
    specification's vocabularies; an unmapped code raises UnmappedVocabulary.

    Raises:
        EncodingError: For control characters in data, text outside the
            charset, or a non-repeatable tag emitted twice.
        UnmappedVocabulary: For codes without a MARC equivalent.
    """
    builder = _FieldBuilder(work, spec)
    roles = spec.vocabulary_map("contributors.role")
    languages = spec.vocabulary_map("languages")
    sources = spec.vocabulary_map("subjects.scheme")
    terms = dict(spec.option("relator_terms", {}))
    digital = work.product_form in spec.option("digital_forms", frozenset())

    marc_languages = [languages.translate(code, work.work_id) for code in work.languages]

    builder.control("001", work.work_id)
    if spec.option("control_number_identifier"):
        builder.control("003", spec.option("control_number_identifier"))
    if digital:
        builder.control("007", "cr|||||||||||")
    builder.control(
        "008", _fixed_length_data(work, spec, marc_languages[0] if marc_languages else "und")
    )

    for isbn in work.identifiers_of("isbn13"):
        builder.data("020", "  ", ("a", isbn))
    for doi in work.identifiers_of("doi"):
        builder.data("024", "7 ", ("a", doi), ("2", "doi"))

    agency = spec.option("cataloging_agency", "Colophon")
    builder.data("040", "  ", ("a", agency), ("b", "eng"), ("e", "rda"), ("c", agency))
    if len(marc_languages) > 1:
        builder.data("041", "0 ", *(("a", code) for code in marc_languages))

    for subject in work.ordered_subjects():
        source = sources.translate(subject.scheme, work.work_id)
        if source == "keyword":
            builder.data("653", "  ", ("a", subject.code))
        elif source == "lcc":
            builder.data("050", " 4", ("a", subject.code))
        elif source == "local":
            builder.data("690", "  ", ("a", subject.code))
        else:
            builder.data("072", " 7", ("a", subject.code), ("2", source))

    main_roles = spec.option("main_entry_roles", frozenset({"author"}))
    ordered = work.ordered_contributors()
    main_entry = ordered[0] if ordered and ordered[0].role in main_roles else None
    for contributor in ordered:
        code = roles.translate(contributor.role, work.work_id)
        subfields = _name_entry(contributor, code, terms)
        if contributor is main_entry:
            tag, ind = ("110", "2 ") if contributor.is_organization else ("100", "1 ")
        else:
            tag, ind = ("710", "2 ") if contributor.is_organization else ("700", "1 ")
        builder.data(tag, ind, *subfields)

    responsibility = _responsibility(work)
    title_end = " :" if work.subtitle else (" /" if responsibility else ".")
    builder.data(
        "245",
        ("1" if main_entry else "0") + _nonfiling_count(work.title),
        ("a", work.title + title_end),
        ("b", (work.subtitle + (" /" if responsibility else ".")) if work.subtitle else None),
        ("c", f"{responsibility}." if responsibility else None),
    )

    if work.edition:
        builder.data("250", "  ", ("a", f"{_ordinal(work.edition)} edition."))

    if work.place or work.publisher.name or work.publication_year:
        builder.data(
            "264",
            " 1",
            ("a", (work.place or "[Place of publication not identified]") + " :"),
            ("b", f"{work.publisher.name}," if work.publisher.name else None),
            ("c", f"{work.publication_year}." if work.publication_year else None),
        )

    if work.page_count:
        extent = f"{work.page_count} pages"
        builder.data("300", "  ", ("a", f"1 online resource ({extent})" if digital else extent))
    elif digital:
        builder.data("300", "  ", ("a", "1 online resource"))

    builder.data("336", "  ", ("a", "text"), ("b", "txt"), ("2", "rdacontent"))
    if digital:
        builder.data("337", "  ", ("a", "computer"), ("b", "c"), ("2", "rdamedia"))
        builder.data("338", "  ", ("a", "online resource"), ("b", "cr"), ("2", "rdacarrier"))
    else:
        builder.data("337", "  ", ("a", "unmediated"), ("b", "n"), ("2", "rdamedia"))
        builder.data("338", "  ", ("a", "volume"), ("b", "nc"), ("2", "rdacarrier"))

    if work.license:
        builder.data(
            "506", "0 ", ("a", "Open access."), ("f", "Unrestricted online access"), ("2", "star")
        )
    if work.abstract:
        builder.data("520", "  ", ("a", work.abstract))
    if work.license:
        builder.data("540", "  ", ("a", "License:"), ("u", work.license))

    if work.landing_page:
        builder.data("856", "40", ("u", work.landing_page), ("z", "Connect to e-book"))
    for doi in work.identifiers_of("doi"):
        builder.data("856", "40", ("u", f"https://doi.org/{doi}"))

    return builder.finish()


def _layout(fields: Sequence[MarcField], work: Work) -> tuple[str, bytes, bytes]:
    """Compute the leader, directory and body of an ISO 2709 record.

    Lengths and offsets are in bytes of the UTF-8 encoded data.
    """
    directory = b""
    body = b""
    for marc_field in fields:
        if marc_field.is_control:
            chunk = (marc_field.data or "") + FIELD_TERMINATOR
        else:
            chunk = marc_field.indicators + "".join(
                SUBFIELD_DELIMITER + code + value for code, value in marc_field.subfields
            ) + FIELD_TERMINATOR
        encoded = chunk.encode("utf-8")
        if len(encoded) > _MAX_FIELD_LENGTH:
            raise EncodingError(
                f"Field {marc_field.tag} is {len(encoded)} bytes, limit is {_MAX_FIELD_LENGTH}",
                field=marc_field.tag,
                work_id=work.work_id,
            )
        directory += f"{marc_field.tag}{len(encoded):04d}{len(body):05d}".encode("ascii")
        body += encoded

    base_address = 24 + len(directory) + 1
    record_length = base_address + len(body) + 1
    if record_length > _MAX_RECORD_LENGTH:
        raise EncodingError(
            f"Record is {record_length} bytes, limit is {_MAX_RECORD_LENGTH}",
            work_id=work.work_id,
        )
    level = "a" if work.work_type == "book_chapter" else "m"
    leader = f"{record_length:05d}na{level} a22{base_address:05d} i 4500"
    return leader, directory + FIELD_TERMINATOR.encode("ascii"), body


class MarcMarkupEncoder:
    """MARC 21 in mnemonic tagged-text form (one "=TAG  value" line per field)."""

    def encode(self, work: Work, spec: FormatSpecification) -> bytes:
        fields = build_marc_fields(work, spec)
        leader, _, _ = _layout(fields, work)
        lines = [f"=LDR  {leader.replace(' ', chr(92))}"]
        for marc_field in fields:
            if marc_field.is_control:
                value = (marc_field.data or "").replace(" ", "\\")
            else:
                value = marc_field.indicators.replace(" ", "\\") + "".join(
                    f"${code}{text.replace('$', '{dollar}')}"
                    for code, text in marc_field.subfields
                )
            lines.append(f"={marc_field.tag}  {value}")
        return ("\n".join(lines) + "\n").encode(spec.charset)

    def assemble(
        self,
        fragments: Sequence[bytes],
        spec: FormatSpecification,
        *,
        timestamp: datetime | None = None,
    ) -> bytes:
        return b"\n".join(fragments)


class MarcRecordEncoder:
    """MARC 21 exchange format (ISO 2709): fixed-width leader and directory."""

    def encode(self, work: Work, spec: FormatSpecification) -> bytes:
        fields = build_marc_fields(work, spec)
        leader, directory, body = _layout(fields, work)
        return leader.encode("ascii") + directory + body + RECORD_TERMINATOR.encode("ascii")

    def assemble(
        self,
        fragments: Sequence[bytes],
        spec: FormatSpecification,
        *,
        timestamp: datetime | None = None,
    ) -> bytes:
        return b"".join(fragments)


class MarcXmlEncoder:
    """MARC 21 records in the MARCXML slim schema, wrapped in a <collection>."""

    def encode(self, work: Work, spec: FormatSpecification) -> bytes:
        fields = build_marc_fields(work, spec)
        leader, _, _ = _layout(fields, work)
        xml = XmlBuilder(spec, work.work_id)
        record = xml.element("record")
        xml.sub(record, "leader", leader)
        for marc_field in fields:
            if marc_field.is_control:
                xml.sub(record, "controlfield", marc_field.data or "", tag=marc_field.tag)
                continue
            datafield = xml.sub(
                record,
                "datafield",
                tag=marc_field.tag,
                ind1=marc_field.indicators[0],
                ind2=marc_field.indicators[1],
            )
            for code, text in marc_field.subfields:
                xml.sub(datafield, "subfield", text, code=code)
        return serialize_fragment(record)

    def assemble(
        self,
        fragments: Sequence[bytes],
        spec: FormatSpecification,
        *,
        timestamp: datetime | None = None,
    ) -> bytes:
        return xml_envelope("collection", [("xmlns", MARCXML_NAMESPACE)], fragments)
