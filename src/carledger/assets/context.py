"""Transaction context passed to every contract operation."""

import uuid
from dataclasses import dataclass, field
from typing import Optional

from ..logging import LogContext
from ..storage import IndexManager, StateAccessor, StateStore


@dataclass
class TransactionContext:
    """The store handle and helpers one operation works against.

    A context is created by the caller for each invocation. Operations never
    reach for ledger state outside the context they are given.
    """

    accessor: StateAccessor
    index: IndexManager
    transaction_id: str = field(default_factory=lambda: uuid.uuid4().hex)

    @classmethod
    def for_store(
        cls, store: StateStore, transaction_id: Optional[str] = None
    ) -> "TransactionContext":
        accessor = StateAccessor(store)
        context = cls(accessor=accessor, index=IndexManager(accessor))
        if transaction_id is not None:
            context.transaction_id = transaction_id
        return context

    @property
    def store(self) -> StateStore:
        return self.accessor.store

    def log_context(self, operation: str, asset_id: Optional[str] = None) -> LogContext:
        return LogContext(
            component="contract",
            operation=operation,
            transaction_id=self.transaction_id,
            asset_id=asset_id,
        )
