"""Unit tests for JoinGraphBuilder."""

from __future__ import annotations

from dataclasses import dataclass

import pytest

from entity_query.core.exceptions import JoinDepthError, ReferenceCycleError
from entity_query.metadata.entity import BaseEntity, IdentifiableEnum, foreign_key
from entity_query.query.join_graph import JoinGraphBuilder
from entity_query.query.references import JoinKind

# --- Test entities ---


class Genre(IdentifiableEnum):
    FICTION = 1
    SCIENCE = 2
    HISTORY = 3


@dataclass
class Country(BaseEntity):
    name: str | None = None


@dataclass
class Author(BaseEntity, table="authors"):
    name: str | None = None
    country_id: int | None = None
    country: Country | None = foreign_key("country_id")


@dataclass
class Book(BaseEntity, table="books"):
    title: str | None = None
    author_id: int | None = None
    author: Author | None = foreign_key("author_id")
    genre_id: int | None = None
    genre: Genre | None = foreign_key("genre_id")
    editor_id: int | None = None
    editor: Author | None = foreign_key("editor_id", nullable=True)


@dataclass
class Person(BaseEntity):
    name: str | None = None


@dataclass
class Party(BaseEntity):
    owner_id: int | None = None
    owner: Person | None = foreign_key("owner_id")


@dataclass
class Contract(BaseEntity):
    buyer_id: int | None = None
    buyer: Party | None = foreign_key("buyer_id")
    seller_id: int | None = None
    seller: Party | None = foreign_key("seller_id")


@dataclass
class Employee(BaseEntity):
    name: str | None = None
    manager_id: int | None = None
    manager: Employee | None = foreign_key("manager_id", nullable=True)


@dataclass
class Department(BaseEntity):
    head_id: int | None = None
    head: Manager | None = foreign_key("head_id")


@dataclass
class Manager(BaseEntity):
    department_id: int | None = None
    department: Department | None = foreign_key("department_id")


@dataclass
class Profile(BaseEntity):
    name: str | None = None


@dataclass
class User(BaseEntity, table="user"):
    profile_name: str | None = None
    user_profile_id: int | None = None
    user_profile: Profile | None = foreign_key("user_profile_id")


@dataclass
class Member(BaseEntity, table="user"):
    user_profile_id: int | None = None
    user_profile: Profile | None = foreign_key("user_profile_id")
    profile_name: str | None = None


class TestAcyclicGraphs:
    def test_root_only(self) -> None:
        graph = JoinGraphBuilder().build(Country)
        assert graph.table_name == "country"
        assert graph.aliases == ["country"]
        assert graph.joins == []
        assert [c.alias_notation for c in graph.columns] == ["country_id", "country_name"]

    def test_nested_joins_depth_first(self) -> None:
        graph = JoinGraphBuilder().build(Book)
        assert graph.aliases == ["books", "author", "country", "editor", "country2"]
        assert [j.to_sql() for j in graph.joins] == [
            "INNER JOIN `authors` AS `author` ON `books`.`author_id` = `author`.`id`",
            "INNER JOIN `country` AS `country` ON `author`.`country_id` = `country`.`id`",
            "LEFT JOIN `authors` AS `editor` ON `books`.`editor_id` = `editor`.`id`",
            "LEFT JOIN `country` AS `country2` ON `editor`.`country_id` = `country2`.`id`",
        ]

    def test_columns_follow_join_order(self) -> None:
        graph = JoinGraphBuilder().build(Book)
        assert [c.alias_notation for c in graph.columns] == [
            "books_id",
            "books_title",
            "books_author_id",
            "author_id",
            "author_name",
            "author_country_id",
            "country_id",
            "country_name",
            "books_genre_id",
            "books_editor_id",
            "editor_id",
            "editor_name",
            "editor_country_id",
            "country2_id",
            "country2_name",
        ]

    def test_enumeration_is_not_joined(self) -> None:
        graph = JoinGraphBuilder().build(Book)
        assert "genre" not in graph.aliases
        assert "genre" not in graph.root.children

    def test_sibling_fields_with_same_name(self) -> None:
        graph = JoinGraphBuilder().build(Contract)
        assert graph.aliases == ["contract", "buyer", "owner", "seller", "owner2"]
        assert all(j.kind is JoinKind.INNER for j in graph.joins)

    @pytest.mark.parametrize(("entity", "expected_joins"), [(Country, 0), (Author, 1), (Book, 4), (Contract, 4)])
    def test_unique_aliases_and_join_count(self, entity: type, expected_joins: int) -> None:
        graph = JoinGraphBuilder().build(entity)
        assert len(set(graph.aliases)) == len(graph.aliases)
        assert len(graph.joins) == expected_joins
        assert len(graph.aliases) == expected_joins + 1

    def test_root_alias_override(self) -> None:
        graph = JoinGraphBuilder().build(Author, "a")
        assert graph.root.alias == "a"
        assert graph.joins[0].parent_alias == "a"
        assert graph.columns[0].sql_notation == "`a`.`id`"

    def test_root_alias_is_reserved(self) -> None:
        graph = JoinGraphBuilder().build(Author, "country")
        assert graph.aliases == ["country", "country2"]

    def test_without_foreign_keys(self) -> None:
        graph = JoinGraphBuilder().build(Book, follow_foreign_keys=False)
        assert graph.aliases == ["books"]
        assert graph.joins == []

    def test_each_build_starts_fresh(self) -> None:
        builder = JoinGraphBuilder()
        first = builder.build(Book)
        second = builder.build(Book)
        assert first.aliases == second.aliases


class TestLabels:
    @pytest.mark.parametrize("entity", [User, Member])
    def test_alias_skips_clashing_labels(self, entity: type) -> None:
        graph = JoinGraphBuilder().build(entity)
        assert graph.aliases == ["user", "user_profile2"]
        labels = [c.alias_notation for c in graph.columns]
        assert "user_profile_name" in labels
        assert "user_profile2_name" in labels
        assert len(set(labels)) == len(labels)

    def test_alias_without_clash_is_kept(self) -> None:
        graph = JoinGraphBuilder().build(User, "u")
        assert graph.aliases == ["u", "user_profile"]


class TestCycles:
    def test_self_reference_joins_once(self) -> None:
        graph = JoinGraphBuilder().build(Employee)
        assert graph.aliases == ["employee", "manager"]
        assert [j.to_sql() for j in graph.joins] == [
            "LEFT JOIN `employee` AS `manager` ON `employee`.`manager_id` = `manager`.`id`",
        ]
        manager = graph.root.children["manager"]
        assert manager.children == {}
        assert manager.reference_for("manager_id").alias_notation == "manager_manager_id"

    def test_mutual_reference(self) -> None:
        graph = JoinGraphBuilder().build(Department)
        assert graph.aliases == ["department", "head", "department2"]

    def test_strict_mode_raises(self) -> None:
        with pytest.raises(ReferenceCycleError, match=r"Employee\.manager") as exc_info:
            JoinGraphBuilder(strict=True).build(Employee)
        assert exc_info.value.path == ["Employee.manager", "Employee.manager"]

    def test_depth_guard(self) -> None:
        with pytest.raises(JoinDepthError, match="maximum join depth of 1"):
            JoinGraphBuilder(max_depth=1).build(Book)

    def test_depth_at_limit(self) -> None:
        graph = JoinGraphBuilder(max_depth=2).build(Book)
        assert max(node.depth for node in graph.root.walk()) == 2
