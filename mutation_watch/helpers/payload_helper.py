"""
Readers for loosely-shaped game payloads.

Every reader takes an arbitrary value and returns the thing it was
looking for, or None. Readers are composed left-to-right with `first_of`, so a new
vendor shape is supported by adding one reader rather than another branch.
"""
import math
from typing import Any, Callable, Iterable, List, Mapping, Optional, Sequence, TypeVar

T = TypeVar("T")
Reader = Callable[[Any], Optional[T]]


def first_of(*readers: Reader) -> Reader:
    """Composes readers: the first non-None result wins."""

    def composed(value: Any) -> Optional[T]:
        for reader in readers:
            result = reader(value)
            if result is not None:
                return result
        return None

    return composed


def path(*keys: str) -> Reader:
    """Reader that walks nested mappings by key."""

    def reader(value: Any) -> Any:
        current = value
        for key in keys:
            if not isinstance(current, Mapping):
                return None
            current = current.get(key)
            if current is None:
                return None
        return current

    return reader


def non_empty_list(reader: Reader) -> Reader:
    """Restricts a reader to non-empty list results."""

    def wrapped(value: Any) -> Optional[List[Any]]:
        result = reader(value)
        if isinstance(result, (list, tuple)) and len(result) > 0:
            return list(result)
        return None

    return wrapped


def coerce_string(value: Any) -> Optional[str]:
    if isinstance(value, bool):
        return None
    if isinstance(value, str):
        trimmed = value.strip()
        return trimmed or None
    if isinstance(value, (int, float)) and math.isfinite(value):
        return str(int(value)) if float(value).is_integer() else str(value)
    return None


def coerce_int(value: Any) -> Optional[int]:
    if isinstance(value, bool):
        return None
    if isinstance(value, int):
        return value
    if isinstance(value, float):
        return int(value) if math.isfinite(value) else None
    if isinstance(value, str):
        digits = value.strip()
        sign = ""
        if digits[:1] in ("-", "+"):
            sign, digits = digits[0], digits[1:]
        leading = ""
        for char in digits:
            if not char.isdigit():
                break
            leading += char
        return int(sign + leading) if leading else None
    return None


def string_field(*keys: str) -> Reader:
    """Reader returning the first key whose value coerces to a non-empty string."""

    def reader(value: Any) -> Optional[str]:
        if not isinstance(value, Mapping):
            return None
        for key in keys:
            text = coerce_string(value.get(key))
            if text:
                return text
        return None

    return reader


def as_item_list(value: Any) -> Optional[List[Any]]:
    """Accepts either a list of items or a mapping carrying an `items` list."""
    if isinstance(value, (list, tuple)):
        return list(value)
    if isinstance(value, Mapping) and isinstance(value.get("items"), (list, tuple)):
        return list(value["items"])
    return None


def iter_collection(collection: Any) -> Iterable[Any]:
    if isinstance(collection, (list, tuple)):
        return collection
    if isinstance(collection, Mapping):
        return collection.values()
    return ()


def read_attribute(attributes: Mapping[str, Any], names: Sequence[str]) -> Optional[str]:
    """Reads the first present attribute, matching names case-insensitively as a second pass."""
    for name in names:
        if name in attributes and attributes[name] is not None:
            return str(attributes[name])

    lowered = {name.lower() for name in names}
    for key, value in attributes.items():
        if key.lower() in lowered and value is not None:
            return str(value)

    return None
