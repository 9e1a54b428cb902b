"""Flat storage for inferred types and their nesting."""
from __future__ import annotations

from dataclasses import dataclass, field
from typing import Any, Iterator


@dataclass(frozen=True)
class TypeDefinition:
    """A named structural type inferred from a JSON column default.

    Nested types do not own each other: ``parent_id`` and
    ``nested_type_ids`` refer to other entries of the same ``TypeArena``.
    """
    table: str
    column: str
    name: str
    type_definition: str
    comment: str | None = None
    example: Any = field(default=None, compare=False, repr=False)
    id: int = 0
    parent_id: int | None = None
    nested_type_ids: tuple[int, ...] = ()


class TypeArena:
    """Insertion-ordered table of TypeDefinitions keyed by allocated ids.

    Ids are allocated before a type is stored, so a parent can hand its id to
    children built during its own inference and be stored after them.
    """

    def __init__(self) -> None:
        self._types: dict[int, TypeDefinition] = {}
        self._next_id = 1

    def allocate(self) -> int:
        type_id = self._next_id
        self._next_id += 1
        return type_id

    def add(self, definition: TypeDefinition) -> TypeDefinition:
        if definition.id in self._types:
            raise ValueError(f"Type id {definition.id} is already stored")
        if definition.id <= 0 or definition.id >= self._next_id:
            raise ValueError(f"Type id {definition.id} was not allocated by this arena")
        self._types[definition.id] = definition
        return definition

    def get(self, type_id: int) -> TypeDefinition:
        return self._types[type_id]

    def children(self, type_id: int) -> list[TypeDefinition]:
        return [self._types[child] for child in self._types[type_id].nested_type_ids]

    def roots(self) -> list[TypeDefinition]:
        """Types inferred directly from a column, in allocation order."""
        return [t for t in self if t.parent_id is None]

    def flatten(self) -> list[TypeDefinition]:
        """All types, depth first, every nested type before the type using it."""
        result = []
        for root in self.roots():
            self._collect(root, result)
        return result

    def _collect(self, definition: TypeDefinition, result: list[TypeDefinition]) -> None:
        for child in self.children(definition.id):
            self._collect(child, result)
        result.append(definition)

    def __iter__(self) -> Iterator[TypeDefinition]:
        for type_id in sorted(self._types):
            yield self._types[type_id]

    def __len__(self) -> int:
        return len(self._types)
