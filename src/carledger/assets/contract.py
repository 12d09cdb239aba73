"""
Cars-and-persons contract.

Every operation takes a TransactionContext and runs as one sequence of
single-key reads and writes against it. The store offers no multi-key
atomicity and nothing here rolls back: if a write fails, the writes before
it stay in place and the error goes to the caller.

Write order for operations that move an index entry is fixed: primary
records first, then the new index entry, then removal of the stale one. An
interruption between the last two leaves both entries present until the
index is repaired.
"""

import sys
from typing import List

from ..errors import (
    BusinessRuleError,
    NotFoundError,
    RejectedTransferError,
    create_insufficient_funds_error,
)
from ..logging import get_logger
from ..storage import IndexAudit, validate_simple_key
from .config import DeindexMode, LedgerConfig, UnderfundedTransferPolicy
from .context import TransactionContext
from .fixtures import initial_cars, initial_persons
from .models import (
    CAR_DOC_TYPE,
    PERSON_DOC_TYPE,
    CarAsset,
    CarMalfunction,
    PersonAsset,
    peek_doc_type,
)

logger = get_logger(__name__)


class CarLedgerContract:
    """Operations on the shared ledger of cars and persons."""

    def __init__(self, config: LedgerConfig = None):
        self.config = config or LedgerConfig()

    def init_ledger(self, ctx: TransactionContext) -> None:
        """Write the initial persons and cars, indexing every car."""
        for person in initial_persons():
            ctx.accessor.put_record(person)

        for car in initial_cars():
            ctx.accessor.put_record(car)
            ctx.index.index_color_owner(car.color, car.owner_id, car.id)

        logger.info("Ledger initialised", context=ctx.log_context("init_ledger"))

    # Reads

    def read_person(self, ctx: TransactionContext, person_id: str) -> PersonAsset:
        """Fetch a person.

        Raises:
            NotFoundError: if no record is stored under ``person_id``.
            DeserializationError: if the stored record is not a person.
        """
        validate_simple_key(person_id)
        return ctx.accessor.get_record(person_id, PersonAsset)

    def read_car(self, ctx: TransactionContext, car_id: str) -> CarAsset:
        """Fetch a car.

        Raises:
            NotFoundError: if no record is stored under ``car_id``.
            DeserializationError: if the stored record is not a car.
        """
        validate_simple_key(car_id)
        return ctx.accessor.get_record(car_id, CarAsset)

    def person_exists(self, ctx: TransactionContext, person_id: str) -> bool:
        validate_simple_key(person_id)
        return ctx.accessor.exists(person_id)

    def car_exists(self, ctx: TransactionContext, car_id: str) -> bool:
        validate_simple_key(car_id)
        return ctx.accessor.exists(car_id)

    def get_cars_by_color(self, ctx: TransactionContext, color: str) -> List[CarAsset]:
        """Cars of ``color``, ordered by owner id then car id."""
        car_ids = ctx.index.scan_by_color(color)
        logger.debug(
            f"Found {len(car_ids)} cars with color {color}",
            context=ctx.log_context("get_cars_by_color"),
        )
        return [self.read_car(ctx, car_id) for car_id in car_ids]

    def get_cars_by_color_and_owner(
        self, ctx: TransactionContext, color: str, owner_id: str
    ) -> List[CarAsset]:
        """Cars of ``color`` owned by ``owner_id``, ordered by car id.

        Raises:
            NotFoundError: if ``owner_id`` is not a person on the ledger. The
                check runs before the scan so an unknown owner is reported as
                such rather than as an empty result.
        """
        if not self.person_exists(ctx, owner_id):
            raise NotFoundError(
                f"the person {owner_id} does not exist",
                key=owner_id,
                asset_type=PERSON_DOC_TYPE,
            )

        car_ids = ctx.index.scan_by_color_and_owner(color, owner_id)
        return [self.read_car(ctx, car_id) for car_id in car_ids]

    def get_all_cars(self, ctx: TransactionContext) -> List[CarAsset]:
        """Every car on the ledger, in key order."""
        return [
            CarAsset.from_bytes(value, key=key)
            for key, value in ctx.accessor.scan_records()
            if peek_doc_type(value, key) == CAR_DOC_TYPE
        ]

    def get_all_persons(self, ctx: TransactionContext) -> List[PersonAsset]:
        """Every person on the ledger, in key order."""
        return [
            PersonAsset.from_bytes(value, key=key)
            for key, value in ctx.accessor.scan_records()
            if peek_doc_type(value, key) == PERSON_DOC_TYPE
        ]

    # Mutations

    def transfer_car(
        self,
        ctx: TransactionContext,
        car_id: str,
        new_owner_id: str,
        accept_malfunction: bool,
    ) -> bool:
        """Move a car to a new owner, settling the price between the two.

        The effective price is the listed price, or, for a car with
        outstanding malfunctions that the buyer accepts, the listed price
        minus their total repair cost. That difference is not clamped and
        can be negative, in which case the seller pays the buyer.

        If the buyer cannot cover the effective price, the configured
        UnderfundedTransferPolicy applies: SKIP_PAYMENT hands the car over
        without moving money, REJECT raises before anything is written.

        Raises:
            NotFoundError: if the car, the buyer or the seller is missing.
            RejectedTransferError: if the car has malfunctions and the buyer
                does not accept them.
            InsufficientFundsError: if the buyer is underfunded and the
                policy is REJECT.
            WriteFailureError: if a write fails; earlier writes remain.
        """
        log_context = ctx.log_context("transfer_car", asset_id=car_id)

        car = self.read_car(ctx, car_id)
        buyer = self.read_person(ctx, new_owner_id)
        seller = self.read_person(ctx, car.owner_id)
        old_owner_id = car.owner_id

        if car.malfunctions and not accept_malfunction:
            raise RejectedTransferError(
                "buyer will not accept a malfunctioned car",
                asset_id=car_id,
                new_owner_id=new_owner_id,
            )

        if new_owner_id == old_owner_id:
            logger.info(
                f"Car {car_id} already belongs to {new_owner_id}", context=log_context
            )
            return True

        price = car.price - car.total_repair_cost()

        if buyer.amount_of_money_owned >= price:
            buyer.amount_of_money_owned -= price
            seller.amount_of_money_owned += price
        elif (
            self.config.underfunded_transfer_policy
            == UnderfundedTransferPolicy.REJECT
        ):
            raise create_insufficient_funds_error(
                buyer.id, price, buyer.amount_of_money_owned
            )
        else:
            logger.warning(
                f"Buyer {buyer.id} cannot pay {price:.2f} for car {car_id}; "
                f"transferring ownership without payment",
                context=log_context,
            )

        car.owner_id = new_owner_id

        ctx.accessor.put_record(car)
        ctx.accessor.put_record(buyer)
        ctx.accessor.put_record(seller)

        ctx.index.index_color_owner(car.color, new_owner_id, car_id)
        if self.config.transfer_deindex_mode == DeindexMode.LEGACY:
            ctx.index.deindex_color_owner(old_owner_id, old_owner_id, car_id)
        else:
            ctx.index.deindex_color_owner(car.color, old_owner_id, car_id)

        logger.info(
            f"Transferred car {car_id} from {old_owner_id} to {new_owner_id} "
            f"for {price:.2f}",
            context=log_context,
        )
        return True

    def add_malfunction(
        self,
        ctx: TransactionContext,
        car_id: str,
        description: str,
        repair_price: float,
    ) -> bool:
        """Record a new malfunction on a car.

        If the total repair cost then exceeds the car's price, the car is
        removed from the ledger together with its index entry and False is
        returned. Otherwise the malfunction is stored and True is returned.

        Raises:
            BusinessRuleError: if ``repair_price`` is not a finite, non-negative
                number. Nothing is read or written in that case.
        """
        log_context = ctx.log_context("add_malfunction", asset_id=car_id)

        if (
            isinstance(repair_price, bool)
            or not isinstance(repair_price, (int, float))
            or not 0 <= repair_price <= sys.float_info.max
        ):
            raise BusinessRuleError(
                f"repair price must be a finite non-negative number, got {repair_price!r}",
                error_code="INVALID_REPAIR_PRICE",
                metadata={"asset_id": car_id},
            )

        car = self.read_car(ctx, car_id)
        car.malfunctions.append(CarMalfunction(description, float(repair_price)))

        total = car.total_repair_cost()
        if total > car.price:
            ctx.accessor.delete(car_id)
            ctx.index.deindex_color_owner(car.color, car.owner_id, car_id)
            logger.warning(
                f"Car {car_id} removed: repair cost {total:.2f} exceeds "
                f"price {car.price:.2f}",
                context=log_context,
            )
            return False

        ctx.accessor.put_record(car)
        logger.info(
            f"Added malfunction to car {car_id}: {description}", context=log_context
        )
        return True

    def change_color(self, ctx: TransactionContext, car_id: str, new_color: str) -> str:
        """Repaint a car and move its index entry. Returns the previous color."""
        car = self.read_car(ctx, car_id)
        old_color = car.color
        if new_color == old_color:
            return old_color

        # Encode the new entry key before writing anything so that an
        # unencodable color fails without touching the store.
        ctx.index.color_owner_key(new_color, car.owner_id, car_id)

        car.color = new_color
        ctx.accessor.put_record(car)
        ctx.index.index_color_owner(new_color, car.owner_id, car_id)
        ctx.index.deindex_color_owner(old_color, car.owner_id, car_id)

        logger.info(
            f"Changed color of car {car_id} from {old_color} to {new_color}",
            context=ctx.log_context("change_color", asset_id=car_id),
        )
        return old_color

    def repair_car(self, ctx: TransactionContext, car_id: str) -> float:
        """Fix every malfunction on a car, charging its owner.

        The charge is checked item by item: the call fails on the first
        malfunction at which the running total exceeds the owner's balance.
        Returns the amount charged.

        Raises:
            InsufficientFundsError: carrying the position of the malfunction
                at which the running total overran the balance.
        """
        car = self.read_car(ctx, car_id)
        owner = self.read_person(ctx, car.owner_id)

        total = 0.0
        for position, malfunction in enumerate(car.malfunctions):
            total += malfunction.repair_price
            if total > owner.amount_of_money_owned:
                raise create_insufficient_funds_error(
                    owner.id,
                    total,
                    owner.amount_of_money_owned,
                    malfunction_index=position,
                    message="the owner of the car cannot afford to pay the car repair price",
                )

        car.malfunctions = []
        owner.amount_of_money_owned -= total

        ctx.accessor.put_record(car)
        ctx.accessor.put_record(owner)

        logger.info(
            f"Repaired car {car_id}; charged {owner.id} {total:.2f}",
            context=ctx.log_context("repair_car", asset_id=car_id),
        )
        return total

    # Index maintenance

    def audit_index(self, ctx: TransactionContext) -> IndexAudit:
        """Compare the color~owner~ID index with the stored cars."""
        return ctx.index.audit_color_owner(self.get_all_cars(ctx))

    def repair_index(self, ctx: TransactionContext) -> IndexAudit:
        """Rewrite the color~owner~ID index to match the stored cars."""
        return ctx.index.repair_color_owner(self.get_all_cars(ctx))

