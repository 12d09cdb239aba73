"""carledger storage.

This package provides the world state stores, the state accessor used by the
contract, composite key encoding and the composite secondary indexes.
"""

from .accessor import StateAccessor
from .composite import (
    MAX_UNICODE_RUNE,
    create_composite_key,
    partial_key_range,
    split_composite_key,
    validate_simple_key,
)
from .digest import StateRoot, compute_state_root
from .indexing import (
    COLOR_OWNER_DEFINITION,
    COLOR_OWNER_INDEX,
    INDEX_SENTINEL,
    IndexAudit,
    IndexDefinition,
    IndexManager,
    IndexStats,
)
from .state import (
    InMemoryStateStore,
    SQLiteStateStore,
    StateStore,
    StoreConfig,
    StoreStats,
)

__all__ = [
    # Stores
    "StateStore",
    "InMemoryStateStore",
    "SQLiteStateStore",
    "StoreConfig",
    "StoreStats",
    # Access
    "StateAccessor",
    # Composite keys
    "MAX_UNICODE_RUNE",
    "create_composite_key",
    "split_composite_key",
    "partial_key_range",
    "validate_simple_key",
    # Indexing
    "IndexManager",
    "IndexDefinition",
    "IndexAudit",
    "IndexStats",
    "COLOR_OWNER_INDEX",
    "COLOR_OWNER_DEFINITION",
    "INDEX_SENTINEL",
    # Digest
    "StateRoot",
    "compute_state_root",
]
