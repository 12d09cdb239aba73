"""Contract policy configuration."""

from dataclasses import dataclass
from enum import Enum
from typing import Any, Dict

from ..errors import ConfigurationError


class DeindexMode(Enum):
    """Which index entry a transfer removes for the previous owner."""

    # (old color, old owner, id): the entry the car actually had.
    CORRECTED = "corrected"
    # (old owner, old owner, id): the key the first contract revision removed.
    # It never matches a real entry, so the stale one is left behind.
    LEGACY = "legacy"


class UnderfundedTransferPolicy(Enum):
    """What a transfer does when the buyer cannot pay the effective price."""

    SKIP_PAYMENT = "skip_payment"
    REJECT = "reject"


@dataclass
class LedgerConfig:
    """Contract configuration."""

    transfer_deindex_mode: DeindexMode = DeindexMode.CORRECTED
    underfunded_transfer_policy: UnderfundedTransferPolicy = (
        UnderfundedTransferPolicy.SKIP_PAYMENT
    )

    @classmethod
    def from_dict(cls, data: Dict[str, Any]) -> "LedgerConfig":
        """Build a config from plain values, e.g. parsed from a settings file."""
        config = cls()
        for name, value in data.items():
            if name == "transfer_deindex_mode":
                config.transfer_deindex_mode = _parse_enum(DeindexMode, name, value)
            elif name == "underfunded_transfer_policy":
                config.underfunded_transfer_policy = _parse_enum(
                    UnderfundedTransferPolicy, name, value
                )
            else:
                raise ConfigurationError(
                    f"Unknown ledger setting {name!r}",
                    config_key=name,
                    config_value=value,
                )
        return config

    def to_dict(self) -> Dict[str, str]:
        return {
            "transfer_deindex_mode": self.transfer_deindex_mode.value,
            "underfunded_transfer_policy": self.underfunded_transfer_policy.value,
        }


def _parse_enum(enum_type, name: str, value: Any):
    if isinstance(value, enum_type):
        return value
    try:
        return enum_type(str(value).lower())
    except ValueError:
        allowed = ", ".join(member.value for member in enum_type)
        raise ConfigurationError(
            f"Invalid value {value!r} for {name}; expected one of: {allowed}",
            config_key=name,
            config_value=value,
        ) from None
