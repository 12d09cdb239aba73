"""State accessor.

Byte-oriented access to a StateStore on behalf of the contract: point reads
that distinguish a missing key from an empty one, writes whose backend
failures surface as WriteFailureError, typed record helpers, and prefix
scans over composite keys.
"""

from typing import Iterator, Optional, Sequence, Tuple, Type, TypeVar

from ..errors import StoreError, WriteFailureError, create_not_found_error
from ..logging import get_logger
from .composite import COMPOSITE_KEY_NAMESPACE, partial_key_range
from .state import StateStore

logger = get_logger(__name__)

R = TypeVar("R")

# First key that cannot be a composite key; every primary record sorts at or
# after it.
_FIRST_SIMPLE_KEY = chr(ord(COMPOSITE_KEY_NAMESPACE) + 1)


class StateAccessor:
    """Raw key-value access for one transaction."""

    def __init__(self, store: StateStore):
        self.store = store

    def get(self, key: str, asset_type: str = "state") -> bytes:
        """Return the bytes stored at ``key``.

        Raises:
            NotFoundError: if nothing is stored at ``key``.
        """
        value = self.store.get(key)
        if value is None:
            raise create_not_found_error(asset_type, key)
        return value

    def get_optional(self, key: str) -> Optional[bytes]:
        """Return the bytes stored at ``key``, or None."""
        return self.store.get(key)

    def exists(self, key: str) -> bool:
        return self.store.get(key) is not None

    def put(self, key: str, value: bytes) -> None:
        """Write ``value`` at ``key``.

        Raises:
            WriteFailureError: if the backend rejects the write.
        """
        if not isinstance(value, (bytes, bytearray)):
            raise TypeError(f"state values must be bytes, got {type(value).__name__}")
        try:
            self.store.put(key, bytes(value))
        except StoreError as e:
            logger.error(f"Write to {key!r} failed: {e.message}")
            raise WriteFailureError(
                f"failed to put {key!r} to world state: {e.message}",
                key=key,
                operation="put",
                cause=e,
            )

    def delete(self, key: str) -> None:
        """Remove ``key``.

        Raises:
            WriteFailureError: if the backend rejects the delete.
        """
        try:
            self.store.delete(key)
        except StoreError as e:
            logger.error(f"Delete of {key!r} failed: {e.message}")
            raise WriteFailureError(
                f"failed to delete {key!r} from world state: {e.message}",
                key=key,
                operation="delete",
                cause=e,
            )

    def get_record(self, key: str, record_type: Type[R]) -> R:
        """Read and decode a record.

        ``record_type`` provides an ``ASSET_TYPE`` name and a
        ``from_bytes(data, key=...)`` constructor.
        """
        data = self.get(key, asset_type=record_type.ASSET_TYPE)
        return record_type.from_bytes(data, key=key)

    def put_record(self, record) -> None:
        """Encode ``record`` and write it under its own key."""
        self.put(record.key, record.to_bytes())

    def range_scan(
        self, index_name: str, prefix_parts: Sequence[str]
    ) -> Iterator[Tuple[str, bytes]]:
        """Iterate composite entries of ``index_name`` whose leading parts match."""
        start, end = partial_key_range(index_name, prefix_parts)
        return self.store.range_scan(start, end)

    def scan_records(self) -> Iterator[Tuple[str, bytes]]:
        """Iterate every primary (non-composite) entry in key order."""
        return self.store.range_scan(_FIRST_SIMPLE_KEY, None)
