"""
State root computation.

Produces a SHA-256 digest over every entry in a state store so that two
ledgers, or one ledger before and after an operation, can be compared with a
single value.
"""

from dataclasses import dataclass

from cryptography.hazmat.primitives import hashes

from .state import StateStore


@dataclass(frozen=True)
class StateRoot:
    """Digest of a store's full contents."""

    value: bytes
    entry_count: int

    def __post_init__(self) -> None:
        if len(self.value) != 32:
            raise ValueError("State root must be exactly 32 bytes")

    def to_hex(self) -> str:
        return self.value.hex()

    def __str__(self) -> str:
        return self.value.hex()


def compute_state_root(store: StateStore) -> StateRoot:
    """
    Hash every (key, value) pair of ``store`` in key order.

    Each key and value is length-prefixed so that no two different stores
    produce the same byte stream.

    Args:
        store: Store to digest

    Returns:
        StateRoot over the store's contents
    """
    digest = hashes.Hash(hashes.SHA256())
    count = 0

    for key, value in store.range_scan("", None):
        encoded_key = key.encode("utf-8")
        digest.update(len(encoded_key).to_bytes(4, byteorder="big"))
        digest.update(encoded_key)
        digest.update(len(value).to_bytes(4, byteorder="big"))
        digest.update(value)
        count += 1

    return StateRoot(value=digest.finalize(), entry_count=count)
