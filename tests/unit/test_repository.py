"""Unit tests for Repository and DeletableRepository statement building."""

from __future__ import annotations

from dataclasses import dataclass
from unittest.mock import MagicMock

import pytest

from entity_query.core.exceptions import UnknownColumnError
from entity_query.metadata.entity import (
    BaseEntity,
    DefaultIfNull,
    DeletableEntity,
    IdentifiableEnum,
    column,
    foreign_key,
)
from entity_query.query.predicate import col
from entity_query.repository.base import DeletableRepository, Repository


class Status(IdentifiableEnum):
    OPEN = 1
    CLOSED = 2


@dataclass
class Owner(BaseEntity, table="owners"):
    name: str | None = None


@dataclass
class Ticket(BaseEntity, table="tickets"):
    title: str | None = column("ticket_title")
    owner_id: int | None = None
    owner: Owner | None = foreign_key("owner_id")
    status_id: int | None = None
    status: Status | None = foreign_key("status_id")


@dataclass
class Memo(DeletableEntity, table="memos"):
    body: str | None = None


@dataclass
class Item(BaseEntity, table="items"):
    label: str | None = None
    stock: int | None = column(default_if_null="create")
    rank: int | None = column("position", default_if_null="update")
    state: str | None = column(default_if_null=DefaultIfNull.BOTH)


@dataclass
class Counter(BaseEntity):
    hits: int | None = column(default_if_null="both")


@pytest.fixture
def engine() -> MagicMock:
    return MagicMock()


class TestRepositoryWrites:
    def test_create(self, engine: MagicMock) -> None:
        engine.insert.return_value = 11
        ticket = Ticket(title="Broken", owner=Owner(id=3, name="Ann"), status=Status.CLOSED)

        assert Repository(engine, Ticket).create(ticket) == 11

        sql, params = engine.insert.call_args.args
        assert sql == (
            "INSERT INTO `tickets` (`ticket_title`, `owner_id`, `status_id`) VALUES (:p0, :p1, :p2)"
        )
        assert params == {"p0": "Broken", "p1": 3, "p2": 2}
        assert ticket.id == 11
        assert ticket.owner_id == 3
        assert ticket.status_id == 2

    def test_explicit_id_field_wins(self, engine: MagicMock) -> None:
        ticket = Ticket(id=5, title="t", owner_id=9, owner=Owner(id=3))
        Repository(engine, Ticket).create(ticket)
        sql, params = engine.insert.call_args.args
        assert sql.startswith("INSERT INTO `tickets` (`id`, `ticket_title`, `owner_id`, `status_id`)")
        assert params["p2"] == 9
        assert ticket.id == 5

    def test_create_many(self, engine: MagicMock) -> None:
        engine.execute.return_value = 2
        count = Repository(engine, Owner).create_many([Owner(name="A"), Owner(name="B")])
        assert count == 2
        sql, params = engine.execute.call_args.args
        assert sql == "INSERT INTO `owners` (`name`) VALUES (:p0), (:p1)"
        assert params == {"p0": "A", "p1": "B"}

    def test_create_many_empty(self, engine: MagicMock) -> None:
        assert Repository(engine, Owner).create_many([]) == 0
        engine.execute.assert_not_called()

    def test_update(self, engine: MagicMock) -> None:
        Repository(engine, Owner).update(Owner(id=4, name="Zed"))
        sql, params = engine.execute.call_args.args
        assert sql == "UPDATE `owners` SET `name` = :p0 WHERE `owners`.`id` = :p1"
        assert params == {"p0": "Zed", "p1": 4}

    def test_update_requires_id(self, engine: MagicMock) -> None:
        with pytest.raises(ValueError, match="without an id"):
            Repository(engine, Owner).update(Owner(name="Zed"))

    def test_update_column(self, engine: MagicMock) -> None:
        Repository(engine, Ticket).update_column(col("owner") == 3, "title", "x")
        sql, params = engine.execute.call_args.args
        assert sql == "UPDATE `tickets` SET `ticket_title` = :p0 WHERE `tickets`.`owner_id` = :p1"
        assert params == {"p0": "x", "p1": 3}

    def test_update_unknown_column(self, engine: MagicMock) -> None:
        with pytest.raises(UnknownColumnError):
            Repository(engine, Ticket).update_column(col("id") == 1, "owner", None)

    def test_delete_by_entity_or_id(self, engine: MagicMock) -> None:
        repo = Repository(engine, Owner)
        repo.delete(Owner(id=2))
        repo.delete(3)
        assert [c.args for c in engine.execute.call_args_list] == [
            ("DELETE FROM `owners` WHERE `owners`.`id` = :p0", {"p0": 2}),
            ("DELETE FROM `owners` WHERE `owners`.`id` = :p0", {"p0": 3}),
        ]

    def test_truncate(self, engine: MagicMock) -> None:
        Repository(engine, Memo).truncate()
        engine.execute.assert_called_once_with("DELETE FROM `memos`")


class TestDefaultIfNull:
    def test_invalid_marker(self) -> None:
        with pytest.raises(ValueError):
            column(default_if_null="never")

    def test_create_leaves_null_columns_to_the_database(self, engine: MagicMock) -> None:
        Repository(engine, Item).create(Item(label="bolt"))
        sql, params = engine.insert.call_args.args
        assert sql == "INSERT INTO `items` (`label`, `position`) VALUES (:p0, :p1)"
        assert params == {"p0": "bolt", "p1": None}

    def test_create_writes_set_values(self, engine: MagicMock) -> None:
        Repository(engine, Item).create(Item(label="bolt", stock=0, state="new"))
        sql, params = engine.insert.call_args.args
        assert sql == (
            "INSERT INTO `items` (`label`, `stock`, `position`, `state`) VALUES (:p0, :p1, :p2, :p3)"
        )
        assert params == {"p0": "bolt", "p1": 0, "p2": None, "p3": "new"}

    def test_update_keeps_stored_values(self, engine: MagicMock) -> None:
        Repository(engine, Item).update(Item(id=6, label="nut"))
        sql, params = engine.execute.call_args.args
        assert sql == "UPDATE `items` SET `label` = :p0, `stock` = :p1 WHERE `items`.`id` = :p2"
        assert params == {"p0": "nut", "p1": None, "p2": 6}

    def test_update_with_nothing_to_write(self, engine: MagicMock) -> None:
        assert Repository(engine, Counter).update(Counter(id=1)) == 0
        engine.execute.assert_not_called()

    def test_create_many_groups_by_written_columns(self, engine: MagicMock) -> None:
        engine.execute.side_effect = [2, 1]
        count = Repository(engine, Item).create_many([Item(label="a"), Item(label="b", stock=2), Item(label="c")])
        assert count == 3
        assert [c.args for c in engine.execute.call_args_list] == [
            (
                "INSERT INTO `items` (`label`, `position`) VALUES (:p0, :p1), (:p2, :p3)",
                {"p0": "a", "p1": None, "p2": "c", "p3": None},
            ),
            (
                "INSERT INTO `items` (`label`, `stock`, `position`) VALUES (:p0, :p1, :p2)",
                {"p0": "b", "p1": 2, "p2": None},
            ),
        ]

    def test_all_columns_defaulted(self, engine: MagicMock) -> None:
        engine.execute.return_value = 2
        repo = Repository(engine, Counter)
        repo.create(Counter())
        assert engine.insert.call_args.args == ("INSERT INTO `counter` (`id`) VALUES (:p0)", {"p0": None})
        assert repo.create_many([Counter(), Counter()]) == 2
        engine.execute.assert_called_once_with(
            "INSERT INTO `counter` (`id`) VALUES (:p0), (:p1)", {"p0": None, "p1": None}
        )


class TestDeletableRepository:
    def test_delete_sets_flag(self, engine: MagicMock) -> None:
        DeletableRepository(engine, Memo).delete(Memo(id=8))
        sql, params = engine.execute.call_args.args
        assert sql == "UPDATE `memos` SET `is_deleted` = :p0 WHERE `memos`.`id` = :p1"
        assert params == {"p0": 1, "p1": 8}


class TestRepositoryReads:
    def test_query_delegates_to_engine(self, engine: MagicMock) -> None:
        repo = Repository(engine, Owner)
        assert repo.query() is engine.query.return_value
        engine.query.assert_called_once_with(Owner)

    def test_table_name(self, engine: MagicMock) -> None:
        assert Repository(engine, Ticket).table_name == "tickets"

    def test_paginate_rejects_non_positive(self, engine: MagicMock) -> None:
        with pytest.raises(ValueError, match="per_page"):
            Repository(engine, Owner).paginate(0)

    def test_has_duplicates(self, engine: MagicMock) -> None:
        engine.fetch_scalar.return_value = 2
        assert Repository(engine, Ticket).has_duplicates("title") is True
        sql, params = engine.fetch_scalar.call_args.args
        assert sql == (
            "SELECT COUNT(`ticket_title`) FROM `tickets` WHERE 1 = 1 "
            "GROUP BY `ticket_title` HAVING COUNT(`ticket_title`) > 1 LIMIT 1"
        )
        assert params == {}

    def test_has_duplicates_on_reference(self, engine: MagicMock) -> None:
        engine.fetch_scalar.return_value = None
        assert Repository(engine, Ticket).has_duplicates("owner", col("status") == Status.OPEN) is False
        sql, params = engine.fetch_scalar.call_args.args
        assert sql == (
            "SELECT COUNT(`owner_id`) FROM `tickets` WHERE `tickets`.`status_id` = :p0 "
            "GROUP BY `owner_id` HAVING COUNT(`owner_id`) > 1 LIMIT 1"
        )
        assert params == {"p0": 1}

    def test_has_duplicates_unknown_field(self, engine: MagicMock) -> None:
        with pytest.raises(UnknownColumnError):
            Repository(engine, Ticket).has_duplicates("missing")
