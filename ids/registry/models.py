"""Registry data models — entities, entity kinds, justification records, snapshot."""

from __future__ import annotations

from collections import deque
from dataclasses import dataclass, field
from datetime import date
from types import MappingProxyType
from typing import Any, Iterable, Mapping

from ids.models.decision import AdaptationImpact, Justification


class MalformedEntityError(ValueError):
    """An entity's fields cannot be turned into searchable text."""


@dataclass(frozen=True)
class EntityKind:
    """Descriptor for one recognized entity type.

    Types are data: adding a kind means adding a descriptor to the
    configuration, not a branch in the matcher.
    """

    name: str
    text_fields: tuple[str, ...] = ("id", "path", "description", "keywords")

    def searchable_text(self, entity: Entity) -> str:
        """Join the entity's searchable fields, one field per line.

        Line breaks mark phrase boundaries for the scorer.
        """
        if not isinstance(entity.id, str) or not entity.id:
            raise MalformedEntityError("entity has no id")
        if not isinstance(entity.path, str) or not entity.path:
            raise MalformedEntityError(f"{entity.id}: entity has no path")

        lines = []
        for name in self.text_fields:
            value = getattr(entity, name, None)
            if value is None or value == "":
                continue
            if isinstance(value, str):
                lines.append(value)
            elif isinstance(value, (list, tuple)) and all(isinstance(v, str) for v in value):
                lines.extend(value)
            else:
                raise MalformedEntityError(
                    f"{entity.id}: field '{name}' must be text, got {type(value).__name__}"
                )
        return "\n".join(lines)


DEFAULT_ENTITY_KINDS = (
    "task",
    "script",
    "agent",
    "template",
    "checklist",
    "workflow",
    "data",
    "module",
)


def default_entity_kinds() -> dict[str, EntityKind]:
    return {name: EntityKind(name=name) for name in DEFAULT_ENTITY_KINDS}


@dataclass(frozen=True)
class Entity:
    """A cataloged reusable artifact."""

    id: str
    path: str
    type: str
    category: str = ""
    description: str = ""
    keywords: tuple[str, ...] = ()
    consumers: tuple[str, ...] = ()  # Direct consumers (ids of entities that use this one)
    dependencies: tuple[str, ...] = ()
    adaptability: float = 0.5  # 0.0 - 1.0
    create_justification: JustificationRecord | None = None


@dataclass(frozen=True)
class JustificationRecord:
    """A stored CREATE justification and the reuse observed since."""

    entity_id: str
    justification: Justification
    intent: str = ""
    decided_at: str = ""  # ISO 8601
    reusage_count: int = 0

    @property
    def review_scheduled(self) -> date | None:
        return self.justification.review_scheduled

    def to_journal_dict(self) -> dict[str, Any]:
        j = self.justification
        return {
            "entity_id": self.entity_id,
            "intent": self.intent,
            "decided_at": self.decided_at,
            "evaluated_patterns": list(j.evaluated_patterns),
            "rejection_reasons": dict(j.rejection_reasons),
            "new_capability": j.new_capability,
            "review_scheduled": j.review_scheduled.isoformat() if j.review_scheduled else None,
            "reusage_count": self.reusage_count,
        }


@dataclass(frozen=True)
class Registry:
    """Immutable, indexed snapshot of the catalog.

    Built once by the loader (or directly from in-memory fixtures) and
    passed explicitly to every engine call. Nothing mutates it afterwards,
    so one instance can serve concurrent readers.
    """

    entities: tuple[Entity, ...] = ()
    justifications: tuple[JustificationRecord, ...] = ()
    kinds: Mapping[str, EntityKind] = field(default_factory=default_entity_kinds)
    version: str = ""

    def __post_init__(self):
        by_id: dict[str, Entity] = {}
        by_type: dict[str, list[Entity]] = {}
        by_category: dict[str, list[Entity]] = {}
        for entity in sorted(self.entities, key=lambda e: str(e.id)):
            if entity.id in by_id:
                raise ValueError(f"Duplicate entity id: {entity.id}")
            by_id[entity.id] = entity
            by_type.setdefault(entity.type, []).append(entity)
            by_category.setdefault(entity.category, []).append(entity)

        object.__setattr__(self, "entities", tuple(by_id.values()))
        object.__setattr__(self, "kinds", MappingProxyType(dict(self.kinds)))
        object.__setattr__(self, "_by_id", MappingProxyType(by_id))
        object.__setattr__(
            self, "_by_type", MappingProxyType({k: tuple(v) for k, v in by_type.items()})
        )
        object.__setattr__(
            self, "_by_category", MappingProxyType({k: tuple(v) for k, v in by_category.items()})
        )

    @classmethod
    def build(
        cls,
        entities: Iterable[Entity],
        justifications: Iterable[JustificationRecord] = (),
        kinds: Mapping[str, EntityKind] | None = None,
    ) -> Registry:
        """Build a snapshot from in-memory entities (used heavily by tests)."""
        return cls(
            entities=tuple(entities),
            justifications=tuple(sorted(justifications, key=lambda r: r.entity_id)),
            kinds=kinds if kinds is not None else default_entity_kinds(),
        )

    def __len__(self) -> int:
        return len(self.entities)

    @property
    def is_empty(self) -> bool:
        return not self.entities

    def get(self, entity_id: str) -> Entity | None:
        return self._by_id.get(entity_id)

    def by_type(self, type_name: str) -> tuple[Entity, ...]:
        return self._by_type.get(type_name, ())

    def by_category(self, category: str) -> tuple[Entity, ...]:
        return self._by_category.get(category, ())

    def filter(self, type_name: str | None = None, category: str | None = None) -> list[Entity]:
        """Entities matching the given filters, in id order."""
        if type_name:
            candidates = self.by_type(type_name)
        else:
            candidates = self.entities
        if category:
            candidates = tuple(e for e in candidates if e.category == category)
        return list(candidates)

    def kind_for(self, entity: Entity) -> EntityKind:
        kind = self.kinds.get(entity.type)
        if kind is None:
            raise MalformedEntityError(f"{entity.id}: unrecognized entity type '{entity.type}'")
        return kind

    def searchable_text(self, entity: Entity) -> str:
        return self.kind_for(entity).searchable_text(entity)

    def direct_consumers(self, entity_id: str) -> tuple[str, ...]:
        entity = self._by_id.get(entity_id)
        if entity is None:
            return ()
        return tuple(entity.consumers)

    def consumer_impact(self, entity_id: str) -> AdaptationImpact:
        """Count direct and transitively reachable indirect consumers.

        Breadth-first over the consumer graph with a visited set, so cycles
        terminate. The entity itself is never counted as its own consumer.
        """
        direct = {c for c in self.direct_consumers(entity_id) if c != entity_id}
        seen = {entity_id} | direct
        indirect: set[str] = set()
        queue = deque(sorted(direct))

        while queue:
            current = queue.popleft()
            for consumer in self.direct_consumers(current):
                if consumer in seen:
                    continue
                seen.add(consumer)
                indirect.add(consumer)
                queue.append(consumer)

        return AdaptationImpact(direct_count=len(direct), indirect_count=len(indirect))
