"""
Example 02: Repository Pattern

This example wraps entity queries and writes in repositories, including a
soft-deleting repository whose deleted rows never show up in queries.
"""

from __future__ import annotations

import sqlite3
import tempfile
from dataclasses import dataclass

from entity_query import (
    BaseEntity,
    ConnectionConfig,
    DeletableEntity,
    DeletableRepository,
    Engine,
    Repository,
    col,
    foreign_key,
)


@dataclass
class Customer(BaseEntity, table="customers"):
    name: str | None = None


@dataclass
class Order(DeletableEntity, table="orders"):
    total: float | None = None
    customer_id: int | None = None
    customer: Customer | None = foreign_key("customer_id")


class OrderRepository(DeletableRepository[Order]):
    """Repository for Order entities"""

    def __init__(self, engine: Engine):
        super().__init__(engine, Order)

    def for_customer(self, name: str) -> list[Order]:
        return self.get_multiple(col("customer.name") == name).order_by("id").to_list()


def main():
    db_file = tempfile.NamedTemporaryFile(delete=False, suffix=".db")
    db_path = db_file.name
    db_file.close()

    conn = sqlite3.connect(db_path)
    conn.executescript("""
        CREATE TABLE customers (id INTEGER PRIMARY KEY, name TEXT NOT NULL);
        CREATE TABLE orders (
            id INTEGER PRIMARY KEY,
            is_deleted INTEGER NOT NULL DEFAULT 0,
            total REAL,
            customer_id INTEGER NOT NULL
        );
    """)
    conn.commit()
    conn.close()

    engine = Engine.from_config(ConnectionConfig(driver="sqlite", database=db_path))
    customers = Repository(engine, Customer)
    orders = OrderRepository(engine)

    print("=== Repository Pattern ===\n")

    alice = Customer(name="Alice")
    customers.create(alice)
    print(f"Created customer with id {alice.id}")

    first = Order(total=10.5, customer=alice)
    orders.create(first)
    orders.create(Order(total=99.0, customer=alice))
    print(f"Alice has {len(orders.for_customer('Alice'))} orders")

    orders.delete(first)
    print(f"After soft delete: {[o.total for o in orders.for_customer('Alice')]}")
    print(f"Rows still in table: {engine.fetch_scalar('SELECT COUNT(*) FROM orders')}")

    for number, page in enumerate(orders.paginate(per_page=1), start=1):
        print(f"Page {number}: {[o.id for o in page.to_list()]}")

    engine.connection_manager.close_pool()


if __name__ == "__main__":
    main()
