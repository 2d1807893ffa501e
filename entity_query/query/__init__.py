"""Query construction - join graphs, predicates and SELECT assembly."""

from __future__ import annotations

from entity_query.query.alias import AliasAllocator
from entity_query.query.assembler import CompiledQuery, assemble
from entity_query.query.constraints import constraints_for, register_constraint
from entity_query.query.join_graph import JoinGraph, JoinGraphBuilder
from entity_query.query.predicate import (
    TRUE,
    Column,
    OrderDirection,
    OrderTerm,
    ParamBinder,
    Predicate,
    col,
    to_sql,
)
from entity_query.query.references import ColumnReference, JoinClause, JoinKind, JoinNode

__all__ = [
    "AliasAllocator",
    "JoinGraph",
    "JoinGraphBuilder",
    "JoinNode",
    "JoinClause",
    "JoinKind",
    "ColumnReference",
    "CompiledQuery",
    "assemble",
    "register_constraint",
    "constraints_for",
    "Predicate",
    "Column",
    "OrderTerm",
    "OrderDirection",
    "ParamBinder",
    "TRUE",
    "col",
    "to_sql",
]
