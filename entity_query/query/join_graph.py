"""Foreign-key join graph construction.

Walks an entity's fields depth-first in declaration order, producing the
projected columns, the JOIN clauses and the join tree the result mapper
follows. Every traversal gets its own AliasAllocator.
"""

from __future__ import annotations

import logging
from collections.abc import Callable
from dataclasses import dataclass, field

from entity_query.core.exceptions import JoinDepthError, ReferenceCycleError
from entity_query.metadata.descriptor import (
    ColumnDescriptor,
    EntityDescriptor,
    ForeignKeyDescriptor,
    ForeignKeyKind,
    resolve_entity,
)
from entity_query.query.alias import AliasAllocator
from entity_query.query.references import ColumnReference, JoinClause, JoinKind, JoinNode, label

logger = logging.getLogger(__name__)

DEFAULT_MAX_DEPTH = 16


def _labels_free(labels: set[str], descriptor: EntityDescriptor) -> Callable[[str], bool]:
    """Accepts an alias only if none of the entity's labels under it are taken."""

    def accept(alias: str) -> bool:
        return all(label(alias, c.column_name) not in labels for c in descriptor.columns)

    return accept


@dataclass
class JoinGraph:
    """Projected columns and joins of one query, plus the tree they came from."""

    root: JoinNode
    columns: list[ColumnReference] = field(default_factory=list)
    joins: list[JoinClause] = field(default_factory=list)

    @property
    def table_name(self) -> str:
        return self.root.descriptor.table_name

    @property
    def aliases(self) -> list[str]:
        return [node.alias for node in self.root.walk()]


class JoinGraphBuilder:
    """Builds a JoinGraph for an entity type.

    A (declaring type, field) pair already on the current path is not joined
    again, so self-references resolve one level deep. In strict mode that
    situation raises ReferenceCycleError instead.

    Child aliases also skip candidates whose ``<alias>_<column>`` labels are
    already taken: a ``user_profile`` reference on the ``user`` table becomes
    ``user_profile2`` when ``user`` itself has a ``profile_name`` column.

    Args:
        max_depth: Maximum number of nested joins along one path.
        strict: Raise on reference cycles instead of truncating them.
    """

    def __init__(self, max_depth: int = DEFAULT_MAX_DEPTH, strict: bool = False) -> None:
        self._max_depth = max_depth
        self._strict = strict

    def build(
        self,
        entity_type: type,
        root_alias: str | None = None,
        *,
        follow_foreign_keys: bool = True,
    ) -> JoinGraph:
        descriptor = resolve_entity(entity_type)
        alias = root_alias or descriptor.table_name
        allocator = AliasAllocator(reserved=[alias])
        labels: set[str] = set()
        columns: list[ColumnReference] = []
        joins: list[JoinClause] = []
        root = self._visit(
            descriptor,
            alias,
            depth=0,
            path=(),
            allocator=allocator,
            labels=labels,
            columns=columns,
            joins=joins,
            follow=follow_foreign_keys,
        )
        return JoinGraph(root=root, columns=columns, joins=joins)

    def _visit(
        self,
        descriptor: EntityDescriptor,
        alias: str,
        *,
        depth: int,
        path: tuple[tuple[type, str], ...],
        allocator: AliasAllocator,
        labels: set[str],
        columns: list[ColumnReference],
        joins: list[JoinClause],
        follow: bool,
        optional: bool = False,
        via: ForeignKeyDescriptor | None = None,
    ) -> JoinNode:
        node = JoinNode(descriptor=descriptor, alias=alias, depth=depth, via=via)
        # Claimed up front: columns declared after a reference count as well.
        labels.update(label(alias, c.column_name) for c in descriptor.columns)

        for member in descriptor.members:
            if isinstance(member, ColumnDescriptor):
                reference = ColumnReference(member, descriptor.table_name, alias)
                node.columns.append(reference)
                columns.append(reference)
                continue

            # Enumerations resolve from the id column, which is projected as a scalar.
            if member.kind is ForeignKeyKind.ENUMERATION or not follow:
                continue

            step = (descriptor.entity_type, member.field_name)
            if step in path:
                trail = [f"{t.__name__}.{f}" for t, f in path] + [f"{descriptor.name}.{member.field_name}"]
                if self._strict:
                    raise ReferenceCycleError(descriptor.name, member.field_name, trail)
                logger.debug("Not following reference cycle %s", " -> ".join(trail))
                continue

            if depth + 1 > self._max_depth:
                raise JoinDepthError(descriptor.name, member.field_name, self._max_depth)

            target = resolve_entity(member.target)
            # Below an outer join every join must stay outer or it would drop rows.
            outer = optional or member.nullable
            child_alias = allocator.allocate(member.field_name, _labels_free(labels, target))
            joins.append(
                JoinClause(
                    table_name=target.table_name,
                    alias=child_alias,
                    parent_alias=alias,
                    foreign_key_column=member.column_name,
                    kind=JoinKind.LEFT if outer else JoinKind.INNER,
                )
            )
            node.children[member.field_name] = self._visit(
                target,
                child_alias,
                depth=depth + 1,
                path=path + (step,),
                allocator=allocator,
                labels=labels,
                columns=columns,
                joins=joins,
                follow=follow,
                optional=outer,
                via=member,
            )

        return node
