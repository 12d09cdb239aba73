"""
Composite secondary indexes for carledger

Index entries live in the same store as the records they point at. Each
entry is a composite key built from the indexed field values followed by the
record id, mapped to a one-byte sentinel. Lookups are prefix range scans.

The manager provides:
- key encoding and decoding against registered index layouts
- entry insertion and removal
- prefix scans returning record ids
- audits that compare stored entries with those derived from records
"""

from dataclasses import dataclass, field
from typing import Dict, Iterable, List, Optional, Sequence, Set, Tuple

from ..errors import ConfigurationError, EncodingError, MalformedKeyError
from ..logging import get_logger
from .accessor import StateAccessor
from .composite import create_composite_key, split_composite_key

logger = get_logger(__name__)

INDEX_SENTINEL = b"\x00"

COLOR_OWNER_INDEX = "color~owner~ID"


@dataclass(frozen=True)
class IndexDefinition:
    """Index layout: the ordered fields that make up each entry key."""

    name: str
    fields: Tuple[str, ...]

    @property
    def part_count(self) -> int:
        return len(self.fields)


COLOR_OWNER_DEFINITION = IndexDefinition(COLOR_OWNER_INDEX, ("color", "owner", "id"))


@dataclass
class IndexStats:
    """Index maintenance counters."""

    entries_added: int = 0
    entries_removed: int = 0
    scans: int = 0


@dataclass
class IndexAudit:
    """Difference between stored index entries and those derived from records."""

    index_name: str
    expected: Set[Tuple[str, ...]] = field(default_factory=set)
    actual: Set[Tuple[str, ...]] = field(default_factory=set)

    @property
    def missing(self) -> Set[Tuple[str, ...]]:
        """Entries implied by a record but absent from the store."""
        return self.expected - self.actual

    @property
    def orphaned(self) -> Set[Tuple[str, ...]]:
        """Stored entries that no record implies."""
        return self.actual - self.expected

    @property
    def is_consistent(self) -> bool:
        return not self.missing and not self.orphaned

    def to_dict(self) -> Dict[str, object]:
        return {
            "index_name": self.index_name,
            "consistent": self.is_consistent,
            "missing": sorted(list(entry) for entry in self.missing),
            "orphaned": sorted(list(entry) for entry in self.orphaned),
        }


class IndexManager:
    """Maintains composite index entries through a StateAccessor."""

    def __init__(
        self,
        accessor: StateAccessor,
        definitions: Optional[Iterable[IndexDefinition]] = None,
    ):
        self.accessor = accessor
        self.definitions: Dict[str, IndexDefinition] = {}
        self.stats = IndexStats()

        for definition in definitions or (COLOR_OWNER_DEFINITION,):
            self.register(definition)

    def register(self, definition: IndexDefinition) -> None:
        """Register an index layout."""
        if not definition.fields:
            raise ConfigurationError(
                f"Index {definition.name} must have at least one field",
                config_key="index",
                config_value=definition.name,
            )
        self.definitions[definition.name] = definition

    def get_definition(self, index_name: str) -> IndexDefinition:
        try:
            return self.definitions[index_name]
        except KeyError:
            raise ConfigurationError(
                f"Index {index_name} is not registered",
                config_key="index",
                config_value=index_name,
            ) from None

    def build_key(self, index_name: str, parts: Sequence[str]) -> str:
        """Encode a full entry key.

        The encoding is deterministic and order-preserving: equal part
        sequences give equal keys and reordering the parts changes the key.
        For a registered index the number of parts must match its layout.
        """
        definition = self.definitions.get(index_name)
        if definition is not None and len(parts) != definition.part_count:
            raise EncodingError(
                f"Index {index_name} expects {definition.part_count} parts, "
                f"got {len(parts)}",
                part=repr(list(parts)),
            )
        return create_composite_key(index_name, parts)

    def split_key(self, composite_key: str) -> Tuple[str, List[str]]:
        """Decode an entry key into ``(index_name, parts)``.

        Raises:
            MalformedKeyError: if the key is not a composite key, or its part
                count does not match the registered layout for its index.
        """
        index_name, parts = split_composite_key(composite_key)
        definition = self.definitions.get(index_name)
        if definition is not None and len(parts) != definition.part_count:
            raise MalformedKeyError(
                f"Key for index {index_name} has {len(parts)} parts, "
                f"expected {definition.part_count}",
                key=repr(composite_key),
            )
        return index_name, parts

    def add_entry(self, index_name: str, parts: Sequence[str]) -> None:
        key = self.build_key(index_name, parts)
        self.accessor.put(key, INDEX_SENTINEL)
        self.stats.entries_added += 1
        logger.debug(f"Indexed {index_name} {list(parts)}")

    def remove_entry(self, index_name: str, parts: Sequence[str]) -> None:
        key = self.build_key(index_name, parts)
        self.accessor.delete(key)
        self.stats.entries_removed += 1
        logger.debug(f"Deindexed {index_name} {list(parts)}")

    def scan(self, index_name: str, prefix_parts: Sequence[str] = ()) -> List[List[str]]:
        """Return the decoded parts of every entry matching ``prefix_parts``.

        The result is materialised from a single snapshot scan; it does not
        follow writes made after the call.
        """
        definition = self.definitions.get(index_name)
        if definition is not None and len(prefix_parts) > definition.part_count:
            raise EncodingError(
                f"Index {index_name} has only {definition.part_count} fields",
                part=repr(list(prefix_parts)),
            )

        self.stats.scans += 1
        return [
            self.split_key(key)[1]
            for key, _ in self.accessor.range_scan(index_name, prefix_parts)
        ]

    # color~owner~ID

    def color_owner_key(self, color: str, owner_id: str, asset_id: str) -> str:
        return self.build_key(COLOR_OWNER_INDEX, (color, owner_id, asset_id))

    def index_color_owner(self, color: str, owner_id: str, asset_id: str) -> None:
        self.add_entry(COLOR_OWNER_INDEX, (color, owner_id, asset_id))

    def deindex_color_owner(self, color: str, owner_id: str, asset_id: str) -> None:
        self.remove_entry(COLOR_OWNER_INDEX, (color, owner_id, asset_id))

    def scan_by_color(self, color: str) -> List[str]:
        """Asset ids with ``color``, ordered by owner id then asset id."""
        return [parts[2] for parts in self.scan(COLOR_OWNER_INDEX, (color,))]

    def scan_by_color_and_owner(self, color: str, owner_id: str) -> List[str]:
        """Asset ids with ``color`` owned by ``owner_id``, ordered by asset id."""
        return [parts[2] for parts in self.scan(COLOR_OWNER_INDEX, (color, owner_id))]

    def audit_color_owner(self, cars: Iterable) -> IndexAudit:
        """Compare stored color~owner~ID entries with those ``cars`` imply.

        ``cars`` is any iterable of objects with ``color``, ``owner_id`` and
        ``id`` attributes.
        """
        audit = IndexAudit(index_name=COLOR_OWNER_INDEX)
        audit.expected = {(car.color, car.owner_id, car.id) for car in cars}
        audit.actual = {tuple(parts) for parts in self.scan(COLOR_OWNER_INDEX)}
        return audit

    def repair_color_owner(self, cars: Iterable) -> IndexAudit:
        """Bring the color~owner~ID entries in line with ``cars``.

        Missing entries are written, then orphaned ones removed. Returns the
        audit taken before any change.
        """
        audit = self.audit_color_owner(cars)
        for entry in sorted(audit.missing):
            self.index_color_owner(*entry)
        for entry in sorted(audit.orphaned):
            self.deindex_color_owner(*entry)

        if not audit.is_consistent:
            logger.warning(
                f"Repaired {COLOR_OWNER_INDEX}: {len(audit.missing)} added, "
                f"{len(audit.orphaned)} removed"
            )
        return audit
