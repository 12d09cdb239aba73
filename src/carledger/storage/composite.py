"""Composite key encoding.

A composite key is an index name followed by an ordered list of string
parts, each terminated by a NUL separator and the whole key prefixed by one::

    \\x00color~owner~ID\\x00blue\\x00person1\\x00car1\\x00

Because every part is terminated, the key for the first N parts is a strict
prefix of every full key that shares them, so a scan over
``[prefix, prefix + MAX_UNICODE_RUNE)`` returns exactly the entries matching
those parts, in key order.
"""

from typing import List, Sequence, Tuple

from ..errors import EncodingError, MalformedKeyError

COMPOSITE_KEY_NAMESPACE = "\x00"
SEPARATOR = "\x00"
MAX_UNICODE_RUNE = "\U0010ffff"


def validate_part(part: str, what: str = "key part") -> None:
    """Raise EncodingError if ``part`` cannot appear inside a composite key."""
    if not isinstance(part, str):
        raise EncodingError(
            f"{what} must be a string, got {type(part).__name__}", part=repr(part)
        )
    if SEPARATOR in part:
        raise EncodingError(f"{what} {part!r} contains the key separator", part=part)
    if MAX_UNICODE_RUNE in part:
        raise EncodingError(
            f"{what} {part!r} contains the reserved range terminator", part=part
        )
    try:
        part.encode("utf-8")
    except UnicodeEncodeError as e:
        raise EncodingError(
            f"{what} {part!r} is not valid UTF-8", part=repr(part), cause=e
        ) from None


def validate_simple_key(key: str) -> None:
    """Check a primary record key.

    Primary keys share the store with composite keys, so they must be
    non-empty and must not start with the composite namespace.
    """
    if not isinstance(key, str) or not key:
        raise EncodingError("record key must be a non-empty string", part=repr(key))
    if key.startswith(COMPOSITE_KEY_NAMESPACE):
        raise EncodingError(
            f"record key {key!r} collides with the composite key namespace", part=key
        )
    validate_part(key, "record key")


def create_composite_key(index_name: str, parts: Sequence[str]) -> str:
    """Encode ``index_name`` and ``parts`` into a composite key."""
    validate_part(index_name, "index name")
    if not index_name:
        raise EncodingError("index name must not be empty", part=index_name)

    key = COMPOSITE_KEY_NAMESPACE + index_name + SEPARATOR
    for part in parts:
        validate_part(part)
        key += part + SEPARATOR
    return key


def split_composite_key(key: str) -> Tuple[str, List[str]]:
    """Decode a composite key into its index name and parts.

    Raises:
        MalformedKeyError: if ``key`` is not a composite key.
    """
    if not isinstance(key, str) or not key.startswith(COMPOSITE_KEY_NAMESPACE):
        raise MalformedKeyError(f"{key!r} is not a composite key", key=repr(key))

    components = key[len(COMPOSITE_KEY_NAMESPACE) :].split(SEPARATOR)
    # A well-formed key ends with a separator, which leaves an empty tail.
    if len(components) < 2 or components[-1] != "" or not components[0]:
        raise MalformedKeyError(f"{key!r} is not a composite key", key=repr(key))

    return components[0], components[1:-1]


def is_composite_key(key: str) -> bool:
    """Return True if ``key`` lives in the composite key namespace."""
    return key.startswith(COMPOSITE_KEY_NAMESPACE)


def partial_key_range(index_name: str, parts: Sequence[str]) -> Tuple[str, str]:
    """Return the half-open key range covering every key with these leading parts."""
    start = create_composite_key(index_name, parts)
    return start, start + MAX_UNICODE_RUNE
