"""
Ledger record types.

Cars and persons are stored as JSON objects using the field names of the
Go chaincode clients, plus a ``DocType`` tag that identifies the record kind.
Decoding validates the tag, the presence of every field and each field's
type, and reports any mismatch as DeserializationError.
"""

import json
import sys
from dataclasses import dataclass, field
from typing import Any, Dict, List, Optional

from ..errors import DeserializationError

CAR_DOC_TYPE = "car"
PERSON_DOC_TYPE = "person"


def _is_number(value: Any) -> bool:
    return (
        isinstance(value, (int, float))
        and not isinstance(value, bool)
        and -sys.float_info.max <= value <= sys.float_info.max
    )


def _require(
    data: Dict[str, Any], name: str, kind: str, key: Optional[str], asset_type: str
) -> Any:
    if name not in data:
        raise DeserializationError(
            f"{asset_type} record {key} is missing field {name}",
            key=key,
            asset_type=asset_type,
        )
    value = data[name]
    if kind == "str" and isinstance(value, str):
        return value
    if kind == "int" and isinstance(value, int) and not isinstance(value, bool):
        return value
    if kind == "number" and _is_number(value):
        return float(value)
    raise DeserializationError(
        f"{asset_type} record {key} field {name} must be {kind}, "
        f"got {type(value).__name__}",
        key=key,
        asset_type=asset_type,
    )


def _load_object(data: bytes, key: Optional[str], asset_type: str) -> Dict[str, Any]:
    try:
        decoded = json.loads(data)
    except (UnicodeDecodeError, ValueError) as e:
        raise DeserializationError(
            f"{asset_type} record {key} is not valid JSON: {e}",
            key=key,
            asset_type=asset_type,
            cause=e,
        )
    if not isinstance(decoded, dict):
        raise DeserializationError(
            f"{asset_type} record {key} is not a JSON object",
            key=key,
            asset_type=asset_type,
        )
    return decoded


def _check_doc_type(
    data: Dict[str, Any], expected: str, key: Optional[str]
) -> None:
    doc_type = data.get("DocType")
    if doc_type != expected:
        raise DeserializationError(
            f"record {key} has DocType {doc_type!r}, expected {expected!r}",
            key=key,
            asset_type=expected,
        )


def peek_doc_type(data: bytes, key: Optional[str] = None) -> Optional[str]:
    """Return the ``DocType`` tag of an encoded record, or None if it has none."""
    doc_type = _load_object(data, key, "record").get("DocType")
    return doc_type if isinstance(doc_type, str) else None


@dataclass
class CarMalfunction:
    """One outstanding defect on a car."""

    description: str
    repair_price: float

    def to_dict(self) -> Dict[str, Any]:
        return {"Description": self.description, "RepairPrice": self.repair_price}

    @classmethod
    def from_dict(cls, data: Any, key: Optional[str] = None) -> "CarMalfunction":
        if not isinstance(data, dict):
            raise DeserializationError(
                f"car record {key} has a malfunction that is not an object",
                key=key,
                asset_type=CAR_DOC_TYPE,
            )
        return cls(
            description=_require(data, "Description", "str", key, CAR_DOC_TYPE),
            repair_price=_require(data, "RepairPrice", "number", key, CAR_DOC_TYPE),
        )


@dataclass
class CarAsset:
    """A vehicle on the ledger."""

    ASSET_TYPE = CAR_DOC_TYPE

    id: str
    brand: str
    model: str
    year: int
    color: str
    owner_id: str
    price: float
    malfunctions: List[CarMalfunction] = field(default_factory=list)

    @property
    def key(self) -> str:
        return self.id

    def total_repair_cost(self) -> float:
        """Sum of the repair prices of every outstanding malfunction."""
        return sum(malfunction.repair_price for malfunction in self.malfunctions)

    def to_dict(self) -> Dict[str, Any]:
        return {
            "DocType": CAR_DOC_TYPE,
            "ID": self.id,
            "Brand": self.brand,
            "Model": self.model,
            "Year": self.year,
            "Color": self.color,
            "OwnerID": self.owner_id,
            "Price": self.price,
            "MalfunctionList": [m.to_dict() for m in self.malfunctions],
        }

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_dict(cls, data: Dict[str, Any], key: Optional[str] = None) -> "CarAsset":
        _check_doc_type(data, CAR_DOC_TYPE, key)

        malfunctions = data.get("MalfunctionList")
        if malfunctions is None:
            # Records written by Go clients encode an empty list as null.
            malfunctions = []
        if not isinstance(malfunctions, list):
            raise DeserializationError(
                f"car record {key} field MalfunctionList must be a list",
                key=key,
                asset_type=CAR_DOC_TYPE,
            )

        return cls(
            id=_require(data, "ID", "str", key, CAR_DOC_TYPE),
            brand=_require(data, "Brand", "str", key, CAR_DOC_TYPE),
            model=_require(data, "Model", "str", key, CAR_DOC_TYPE),
            year=_require(data, "Year", "int", key, CAR_DOC_TYPE),
            color=_require(data, "Color", "str", key, CAR_DOC_TYPE),
            owner_id=_require(data, "OwnerID", "str", key, CAR_DOC_TYPE),
            price=_require(data, "Price", "number", key, CAR_DOC_TYPE),
            malfunctions=[CarMalfunction.from_dict(m, key) for m in malfunctions],
        )

    @classmethod
    def from_bytes(cls, data: bytes, key: Optional[str] = None) -> "CarAsset":
        return cls.from_dict(_load_object(data, key, CAR_DOC_TYPE), key)


@dataclass
class PersonAsset:
    """A person who can own cars and hold money."""

    ASSET_TYPE = PERSON_DOC_TYPE

    id: str
    first_name: str
    last_name: str
    email: str
    amount_of_money_owned: float

    @property
    def key(self) -> str:
        return self.id

    def to_dict(self) -> Dict[str, Any]:
        return {
            "DocType": PERSON_DOC_TYPE,
            "ID": self.id,
            "FirstName": self.first_name,
            "LastName": self.last_name,
            "EmailAddress": self.email,
            "AmountOfMoneyOwned": self.amount_of_money_owned,
        }

    def to_bytes(self) -> bytes:
        return json.dumps(self.to_dict(), separators=(",", ":")).encode("utf-8")

    @classmethod
    def from_dict(
        cls, data: Dict[str, Any], key: Optional[str] = None
    ) -> "PersonAsset":
        _check_doc_type(data, PERSON_DOC_TYPE, key)
        return cls(
            id=_require(data, "ID", "str", key, PERSON_DOC_TYPE),
            first_name=_require(data, "FirstName", "str", key, PERSON_DOC_TYPE),
            last_name=_require(data, "LastName", "str", key, PERSON_DOC_TYPE),
            email=_require(data, "EmailAddress", "str", key, PERSON_DOC_TYPE),
            amount_of_money_owned=_require(
                data, "AmountOfMoneyOwned", "number", key, PERSON_DOC_TYPE
            ),
        )

    @classmethod
    def from_bytes(cls, data: bytes, key: Optional[str] = None) -> "PersonAsset":
        return cls.from_dict(_load_object(data, key, PERSON_DOC_TYPE), key)
