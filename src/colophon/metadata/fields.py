# ABOUTME: Resolves specification field paths ("imprint.publisher.name", "identifiers.doi")
# ABOUTME: against a Work for presence checks, cardinality counts, and vocabulary codes.

from typing import Any

from colophon.metadata.types import Work

# Collections addressed by "<collection>.<qualifier>" presence paths.
_QUALIFIED_COLLECTIONS = {
    "identifiers": "scheme",
    "contributors": "role",
}


def _is_empty(value: Any) -> bool:
    if value is None:
        return True
    if isinstance(value, str):
        return not value.strip()
    if isinstance(value, (tuple, list)):
        return len(value) == 0
    return False


def _resolve(obj: Any, parts: list[str]) -> Any:
    for part in parts:
        if obj is None:
            return None
        obj = getattr(obj, part, None)
    return obj


def field_count(work: Work, path: str) -> int:
    """Number of values present at a field path.

    "identifiers.doi" counts DOIs, "contributors.editor" counts editors, a
    collection counts its members, and a scalar counts 1 when non-empty.

    Raises:
        AttributeError: If the path does not name a Work attribute.
    """
    head, _, rest = path.partition(".")
    if head in _QUALIFIED_COLLECTIONS and rest:
        attr = _QUALIFIED_COLLECTIONS[head]
        return sum(1 for item in getattr(work, head) if getattr(item, attr) == rest)
    if not hasattr(work, head):
        raise AttributeError(f"Unknown field path: {path}")
    value = _resolve(work, path.split("."))
    if isinstance(value, (tuple, list)):
        return sum(1 for item in value if not _is_empty(item))
    return 0 if _is_empty(value) else 1


def field_present(work: Work, path: str) -> bool:
    return field_count(work, path) > 0


def field_value(work: Work, path: str) -> Any:
    """Raw value at a plain attribute path, for violation context."""
    head, _, rest = path.partition(".")
    if head in _QUALIFIED_COLLECTIONS and rest:
        attr = _QUALIFIED_COLLECTIONS[head]
        return [item for item in getattr(work, head) if getattr(item, attr) == rest]
    return _resolve(work, path.split("."))


def codes_for(work: Work, path: str) -> list[str]:
    """Distinct internal codes found at a vocabulary path, in record order.

    "work_type" yields one code, "languages" each language, and
    "contributors.role" the role of each contributor.
    """
    head, _, rest = path.partition(".")
    value = getattr(work, head, None)
    if isinstance(value, (tuple, list)):
        raw = [_resolve(item, rest.split(".")) if rest else item for item in value]
    else:
        raw = [_resolve(value, rest.split(".")) if rest else value]

    codes: list[str] = []
    for code in raw:
        if code is None or code == "" or code in codes:
            continue
        codes.append(code)
    return codes
