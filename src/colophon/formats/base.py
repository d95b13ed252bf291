# ABOUTME: Encoder protocol shared by every export format, plus text and XML helpers.
# ABOUTME: Encoders turn one Work into a fragment; assemble() wraps fragments in the envelope.

import re
from collections.abc import Sequence
from datetime import datetime, timezone
from typing import TYPE_CHECKING, Protocol, runtime_checkable

from lxml import etree

from colophon.errors import EncodingError
from colophon.metadata.types import Work

if TYPE_CHECKING:
    from colophon.formats.spec import FormatSpecification

# Characters XML 1.0 cannot carry, even escaped.
_XML_ILLEGAL_RE = re.compile("[\x00-\x08\x0b\x0c\x0e-\x1f\ufffe\uffff]")


@runtime_checkable
class Encoder(Protocol):
    """Strategy that serializes works into one external format.

    Both methods must be pure: the same inputs always give byte-identical
    output. Anything time-dependent arrives through the timestamp argument.
    """

    def encode(self, work: Work, spec: "FormatSpecification") -> bytes: ...

    def assemble(
        self,
        fragments: Sequence[bytes],
        spec: "FormatSpecification",
        *,
        timestamp: datetime | None = None,
    ) -> bytes: ...


def encode_works(
    encoder: Encoder,
    works: Sequence[Work],
    spec: "FormatSpecification",
    *,
    timestamp: datetime | None = None,
) -> bytes:
    """Encode and assemble a list of already-validated works in one call.

    Raises on the first record that cannot be encoded; use the export
    pipeline for per-record error isolation.
    """
    fragments = [encoder.encode(work, spec) for work in works]
    return encoder.assemble(fragments, spec, timestamp=timestamp)


def require_timestamp(spec: "FormatSpecification", timestamp: datetime | None) -> datetime:
    """Return the export timestamp, failing if the format needs one and none was given."""
    if timestamp is None:
        raise EncodingError(f"{spec.label} requires an explicit export timestamp")
    return timestamp


def as_utc(timestamp: datetime) -> datetime:
    """Normalize a timestamp to UTC. Naive timestamps are taken to be UTC already."""
    if timestamp.tzinfo is None:
        return timestamp.replace(tzinfo=timezone.utc)
    return timestamp.astimezone(timezone.utc)


def check_text(
    text: str, spec: "FormatSpecification", *, field: str, work_id: str | None = None
) -> str:
    """Ensure text is representable in the format's declared charset.

    Raises:
        EncodingError: Naming the field and the first offending character.
    """
    try:
        text.encode(spec.charset)
    except UnicodeEncodeError as exc:
        bad = text[exc.start:exc.end]
        raise EncodingError(
            f"Character {bad!r} not representable in {spec.charset}",
            field=field,
            value=text,
            work_id=work_id,
        ) from exc
    return text


def check_xml_text(text: str, *, field: str, work_id: str | None = None) -> str:
    """Ensure text contains only characters XML 1.0 allows."""
    match = _XML_ILLEGAL_RE.search(text)
    if match:
        raise EncodingError(
            f"Character U+{ord(match.group()):04X} is not allowed in XML",
            field=field,
            value=text,
            work_id=work_id,
        )
    return text


class XmlBuilder:
    """Small lxml wrapper that validates text as elements are added.

    Every text node is checked so an encoder fails with a field-level
    EncodingError rather than a bare lxml ValueError.
    """

    def __init__(self, spec: "FormatSpecification", work_id: str | None = None) -> None:
        self._spec = spec
        self._work_id = work_id

    def element(self, tag: str, text: str | None = None, **attrs: str) -> etree._Element:
        el = etree.Element(tag, **attrs)
        if text is not None:
            el.text = self._checked(text, tag)
        return el

    def sub(
        self, parent: etree._Element, tag: str, text: str | None = None, **attrs: str
    ) -> etree._Element:
        el = etree.SubElement(parent, tag, **attrs)
        if text is not None:
            el.text = self._checked(text, tag)
        return el

    def _checked(self, text: str, field: str) -> str:
        check_xml_text(text, field=field, work_id=self._work_id)
        return check_text(text, self._spec, field=field, work_id=self._work_id)


def serialize_fragment(element: etree._Element) -> bytes:
    """Serialize an element without XML declaration, pretty-printed."""
    return etree.tostring(element, encoding="utf-8", xml_declaration=False, pretty_print=True)


def xml_envelope(
    root_tag: str,
    attributes: Sequence[tuple[str, str]],
    fragments: Sequence[bytes],
    *,
    head: Sequence[bytes] = (),
    tail: Sequence[bytes] = (),
) -> bytes:
    """Wrap serialized fragments in a root element with a fixed attribute order.

    attributes may hold "xmlns" and "xmlns:<prefix>" declarations as well as
    "<prefix>:<name>" attributes. Fragments are written in no namespace so
    that they inherit the root's default namespace declared here.
    """
    parts = [
        b'<?xml version="1.0" encoding="UTF-8"?>\n',
        _start_tag(root_tag, attributes),
        *head,
        *fragments,
        *tail,
        f"</{root_tag}>\n".encode(),
    ]
    return b"".join(parts)


def _start_tag(root_tag: str, attributes: Sequence[tuple[str, str]]) -> bytes:
    nsmap: dict[str | None, str] = {}
    plain: list[tuple[str, str]] = []
    for name, value in attributes:
        check_xml_text(value, field=name)
        if name == "xmlns":
            nsmap[None] = value
        elif name.startswith("xmlns:"):
            nsmap[name.removeprefix("xmlns:")] = value
        else:
            plain.append((name, value))

    default = nsmap.get(None)
    root = etree.Element(f"{{{default}}}{root_tag}" if default else root_tag, nsmap=nsmap)
    for name, value in plain:
        prefix, _, local = name.rpartition(":")
        if prefix:
            if prefix not in nsmap:
                raise EncodingError(f"Undeclared namespace prefix {prefix!r}", field=name)
            name = f"{{{nsmap[prefix]}}}{local}"
        root.set(name, value)
    # lxml writes an empty root as "<tag .../>"; reopen it.
    empty = etree.tostring(root, encoding="utf-8", xml_declaration=False)
    return empty[: -len(b"/>")] + b">\n"
