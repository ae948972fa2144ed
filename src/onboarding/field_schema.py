"""
Field Schema & Defaults.

A step schema is a nested dict whose leaves are FieldSpec instances. The
schema yields the zero-value document for a step and coerces any stored
JSON back into a complete document: unknown keys are dropped, missing
leaves receive their defaults, optional values are None (never absent).

Path helpers perform copy-on-write updates so a document handed to the
engine is never mutated.
"""

from __future__ import annotations

import copy
from typing import Any, Callable, Dict, Iterable, List, Optional, Sequence, Tuple, Union

from validation.field_rules import (
    create_boolean_map,
    normalize_amount,
    normalize_country_codes,
    normalize_nullable_string,
    normalize_required_string,
    parse_integer,
    parse_optional_amount,
)


Path = Tuple[str, ...]


class FieldSpec:
    """Base schema leaf."""

    def default(self) -> Any:
        return None

    def normalize(self, raw: Any) -> Any:
        return raw


class Text(FieldSpec):
    """Required string: trimmed, defaults to an empty string."""

    def default(self) -> str:
        return ""

    def normalize(self, raw: Any) -> str:
        return normalize_required_string(raw)


class NullableText(FieldSpec):
    """Optional string: trimmed, empty becomes None."""

    def __init__(self, upper: bool = False):
        self.upper = upper

    def normalize(self, raw: Any) -> Optional[str]:
        value = normalize_nullable_string(raw)
        if value is not None and self.upper:
            return value.upper()
        return value


class Options(FieldSpec):
    """Boolean option map over a fixed key set."""

    def __init__(self, keys: Iterable[str]):
        self.keys = tuple(keys)

    def default(self) -> Dict[str, bool]:
        return {key: False for key in self.keys}

    def normalize(self, raw: Any) -> Dict[str, bool]:
        return create_boolean_map(self.keys, raw)


YES_NO = ("yes", "no")


class Flag(FieldSpec):

    def default(self) -> bool:
        return False

    def normalize(self, raw: Any) -> bool:
        return raw is True


class NullableFlag(FieldSpec):

    def normalize(self, raw: Any) -> Optional[bool]:
        return raw if isinstance(raw, bool) else None


class Amount(FieldSpec):
    """Non-negative amount defaulting to 0."""

    def default(self) -> float:
        return 0.0

    def normalize(self, raw: Any) -> float:
        return normalize_amount(raw)


class OptionalAmount(FieldSpec):

    def normalize(self, raw: Any) -> Optional[float]:
        return parse_optional_amount(raw)


class Integer(FieldSpec):

    def __init__(self, minimum: Optional[int] = None):
        self.minimum = minimum

    def normalize(self, raw: Any) -> Optional[int]:
        value = parse_integer(raw)
        if value is None:
            return None
        if self.minimum is not None and value < self.minimum:
            return None
        return value


class CountryCodes(FieldSpec):

    def default(self) -> List[str]:
        return []

    def normalize(self, raw: Any) -> List[str]:
        return normalize_country_codes(raw)


class Choice(FieldSpec):
    """Single key from a closed set, or None."""

    def __init__(self, keys: Iterable[str]):
        self.keys = tuple(keys)

    def normalize(self, raw: Any) -> Optional[str]:
        return raw if raw in self.keys else None


class ListOf(FieldSpec):
    """List of normalized sub-documents, filtered by an optional keep predicate."""

    def __init__(self, item: "Schema", keep: Optional[Callable[[Any], bool]] = None):
        self.item = item
        self.keep = keep

    def default(self) -> List[Any]:
        return []

    def normalize(self, raw: Any) -> List[Any]:
        if not isinstance(raw, list):
            return []
        items = [normalize_fields(self.item, entry) for entry in raw]
        if self.keep is not None:
            items = [entry for entry in items if self.keep(entry)]
        return items


Schema = Union[Dict[str, Any], FieldSpec]


def default_fields(schema: Schema) -> Any:
    """Build the zero-value instance for a schema."""
    if isinstance(schema, FieldSpec):
        return schema.default()
    return {key: default_fields(child) for key, child in schema.items()}


def normalize_fields(schema: Schema, raw: Any) -> Any:
    """Coerce stored JSON into a complete instance of the schema."""
    if isinstance(schema, FieldSpec):
        return schema.normalize(raw)
    source = raw if isinstance(raw, dict) else {}
    result = {}
    for key, child in schema.items():
        if key in source:
            result[key] = normalize_fields(child, source[key])
        else:
            result[key] = default_fields(child)
    return result


# =============================================================================
# PATH ADDRESSING
# =============================================================================

def split_path(path: Union[str, Sequence[str]]) -> Path:
    if isinstance(path, str):
        return tuple(segment for segment in path.split(".") if segment)
    return tuple(path)


def get_path(document: Any, path: Union[str, Sequence[str]], default: Any = None) -> Any:
    current = document
    for segment in split_path(path):
        if not isinstance(current, dict) or segment not in current:
            return default
        current = current[segment]
    return current


def assign_path(document: Dict[str, Any], path: Union[str, Sequence[str]], value: Any) -> Dict[str, Any]:
    """Return a new document with value written at path.

    Only the dicts along the path are copied; siblings are shared with the
    input, and the written value is deep-copied so callers cannot alias it.
    """
    segments = split_path(path)
    if not segments:
        return copy.deepcopy(value)

    head, rest = segments[0], segments[1:]
    source = document if isinstance(document, dict) else {}
    updated = dict(source)
    updated[head] = assign_path(source.get(head, {}), rest, value)
    return updated


def merge_path(document: Dict[str, Any], path: Union[str, Sequence[str]], values: Dict[str, Any]) -> Dict[str, Any]:
    """Write several keys under one parent path in a single copy-on-write pass."""
    segments = split_path(path)
    parent = get_path(document, segments, {})
    merged = dict(parent) if isinstance(parent, dict) else {}
    for key, value in values.items():
        merged[key] = copy.deepcopy(value)
    if not segments:
        return merged
    return assign_path(document, segments, merged)
