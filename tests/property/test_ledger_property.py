"""
Property-based tests for the car ledger.

These tests use Hypothesis to drive the contract through random operation
sequences and check that the color~owner~ID index always agrees with the
stored cars.
"""

from hypothesis import given, settings, strategies as st
from hypothesis.stateful import RuleBasedStateMachine, invariant, rule

from carledger.assets import CarLedgerContract, TransactionContext
from carledger.errors import (
    InsufficientFundsError,
    NotFoundError,
    RejectedTransferError,
)
from carledger.storage import (
    InMemoryStateStore,
    compute_state_root,
    create_composite_key,
    split_composite_key,
)

CAR_IDS = [f"car{i}" for i in range(1, 7)]
PERSON_IDS = ["person1", "person2", "person3"]
COLORS = ["blue", "red", "green", "yellow", "black", "white", "bluegreen"]

key_parts = st.text(
    alphabet=st.characters(
        exclude_characters="\x00\U0010ffff", exclude_categories=("Cs",)
    ),
    max_size=12,
)


class TestCompositeKeyProperties:
    """Properties of composite key encoding."""

    @given(
        index_name=key_parts.filter(bool),
        parts=st.lists(key_parts, max_size=5),
    )
    @settings(max_examples=100)
    def test_split_inverts_create(self, index_name, parts):
        """Test that decoding an encoded key returns its inputs."""
        key = create_composite_key(index_name, parts)

        assert split_composite_key(key) == (index_name, parts)

    @given(
        first=st.lists(key_parts, min_size=1, max_size=4),
        second=st.lists(key_parts, min_size=1, max_size=4),
    )
    @settings(max_examples=100)
    def test_distinct_parts_distinct_keys(self, first, second):
        """Test that different part lists never share a key."""
        if first != second:
            assert create_composite_key("idx", first) != create_composite_key(
                "idx", second
            )


class TestContractProperties:
    """Properties of individual contract operations."""

    @given(car_id=st.sampled_from(CAR_IDS), color=key_parts)
    @settings(max_examples=30, deadline=None)
    def test_repaint_and_back_restores_state(self, car_id, color):
        """Test that repainting a car and repainting it back is invisible."""
        contract = CarLedgerContract()
        ctx = TransactionContext.for_store(InMemoryStateStore())
        contract.init_ledger(ctx)
        before = compute_state_root(ctx.store)

        original = contract.change_color(ctx, car_id, color)
        contract.change_color(ctx, car_id, original)

        assert compute_state_root(ctx.store) == before


class LedgerStateMachine(RuleBasedStateMachine):
    """Random sequences of contract operations over the seeded ledger."""

    def __init__(self):
        super().__init__()
        self.contract = CarLedgerContract()
        self.ctx = TransactionContext.for_store(InMemoryStateStore())
        self.contract.init_ledger(self.ctx)

    @rule(
        car_id=st.sampled_from(CAR_IDS),
        owner_id=st.sampled_from(PERSON_IDS),
        accept=st.booleans(),
    )
    def transfer(self, car_id, owner_id, accept):
        try:
            self.contract.transfer_car(self.ctx, car_id, owner_id, accept)
        except NotFoundError:
            assert not self.contract.car_exists(self.ctx, car_id)
        except RejectedTransferError:
            assert not accept
        else:
            assert self.contract.read_car(self.ctx, car_id).owner_id == owner_id

    @rule(car_id=st.sampled_from(CAR_IDS), color=st.sampled_from(COLORS))
    def change_color(self, car_id, color):
        try:
            self.contract.change_color(self.ctx, car_id, color)
        except NotFoundError:
            assert not self.contract.car_exists(self.ctx, car_id)
        else:
            assert self.contract.read_car(self.ctx, car_id).color == color

    @rule(
        car_id=st.sampled_from(CAR_IDS),
        price=st.floats(min_value=0, max_value=3000, allow_nan=False),
    )
    def add_malfunction(self, car_id, price):
        try:
            kept = self.contract.add_malfunction(self.ctx, car_id, "wear", price)
        except NotFoundError:
            assert not self.contract.car_exists(self.ctx, car_id)
        else:
            assert kept == self.contract.car_exists(self.ctx, car_id)

    @rule(car_id=st.sampled_from(CAR_IDS))
    def repair(self, car_id):
        try:
            self.contract.repair_car(self.ctx, car_id)
        except NotFoundError:
            assert not self.contract.car_exists(self.ctx, car_id)
        except InsufficientFundsError:
            assert self.contract.read_car(self.ctx, car_id).malfunctions
        else:
            assert self.contract.read_car(self.ctx, car_id).malfunctions == []

    @invariant()
    def index_matches_records(self):
        assert self.contract.audit_index(self.ctx).is_consistent

    @invariant()
    def every_car_found_once_by_color(self):
        for car in self.contract.get_all_cars(self.ctx):
            found = self.contract.get_cars_by_color_and_owner(
                self.ctx, car.color, car.owner_id
            )
            assert [c.id for c in found].count(car.id) == 1

    @invariant()
    def persons_are_never_removed(self):
        assert [p.id for p in self.contract.get_all_persons(self.ctx)] == PERSON_IDS


LedgerStateMachine.TestCase.settings = settings(
    max_examples=25, stateful_step_count=20, deadline=None
)
TestLedgerStateMachine = LedgerStateMachine.TestCase
