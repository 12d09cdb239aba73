#!/usr/bin/env python3
"""
Car Ledger Demo

Walks through the contract operations against a SQLite world state:
- seeding the ledger
- color queries through the color~owner~ID index
- transfers, repaints, malfunctions and repairs
- auditing the index and computing the state root

Run with an optional database path; an in-memory database is used otherwise.
"""

import sys

from carledger.assets import CarLedgerContract, LedgerConfig, TransactionContext
from carledger.errors import LedgerError
from carledger.logging import LogConfig, LogLevel, setup_logging
from carledger.storage import SQLiteStateStore, StoreConfig, compute_state_root


class CarLedgerDemo:
    """Runs a short scripted session against one ledger."""

    def __init__(self, database_path: str = ":memory:"):
        self.store = SQLiteStateStore(StoreConfig(database_path=database_path))
        self.contract = CarLedgerContract(LedgerConfig())

    def context(self) -> TransactionContext:
        return TransactionContext.for_store(self.store)

    def show_cars(self, color: str) -> None:
        cars = self.contract.get_cars_by_color(self.context(), color)
        print(f"  {color}: {[f'{car.id} ({car.owner_id})' for car in cars]}")

    def show_person(self, person_id: str) -> None:
        person = self.contract.read_person(self.context(), person_id)
        print(
            f"  {person.id} {person.first_name} {person.last_name}: "
            f"{person.amount_of_money_owned:.2f}"
        )

    def run(self) -> None:
        print("🚗 Seeding ledger")
        self.contract.init_ledger(self.context())
        for color in ("blue", "red", "black"):
            self.show_cars(color)

        print("\n💸 Transferring car5 to person2")
        self.contract.transfer_car(self.context(), "car5", "person2", False)
        self.show_person("person2")
        self.show_person("person3")
        self.show_cars("black")

        print("\n🎨 Repainting car1 red")
        old = self.contract.change_color(self.context(), "car1", "red")
        print(f"  car1 was {old}")
        self.show_cars("blue")
        self.show_cars("red")

        print("\n🔧 Repairing car1")
        try:
            charged = self.contract.repair_car(self.context(), "car1")
            print(f"  charged {charged:.2f}")
        except LedgerError as e:
            print(f"  repair failed: {e}")
        self.show_person("person1")

        print("\n💥 Overloading car4 with malfunctions")
        kept = self.contract.add_malfunction(self.context(), "car4", "Seized engine", 500.0)
        print(f"  car4 kept: {kept}")
        self.show_cars("yellow")

        audit = self.contract.audit_index(self.context())
        print(f"\n📋 Index consistent: {audit.is_consistent}")
        print(f"🔒 State root: {compute_state_root(self.store).to_hex()}")


def main() -> None:
    setup_logging(LogConfig(level=LogLevel.WARNING, format_type="text"))
    database_path = sys.argv[1] if len(sys.argv) > 1 else ":memory:"

    demo = CarLedgerDemo(database_path)
    try:
        demo.run()
    finally:
        demo.store.close()


if __name__ == "__main__":
    main()
