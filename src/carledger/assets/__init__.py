"""carledger assets.

The cars-and-persons contract, its record types, policy configuration and
the transaction context every operation runs against.
"""

from .config import DeindexMode, LedgerConfig, UnderfundedTransferPolicy
from .context import TransactionContext
from .contract import CarLedgerContract
from .fixtures import initial_cars, initial_persons
from .models import CarAsset, CarMalfunction, PersonAsset

__all__ = [
    "CarLedgerContract",
    "TransactionContext",
    # Records
    "CarAsset",
    "CarMalfunction",
    "PersonAsset",
    # Configuration
    "LedgerConfig",
    "DeindexMode",
    "UnderfundedTransferPolicy",
    # Seed data
    "initial_cars",
    "initial_persons",
]
