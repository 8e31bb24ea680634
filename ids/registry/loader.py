"""Registry loader — turn the stored catalog into an immutable Registry snapshot.

Loading is all-or-nothing: any read, parse, or validation problem raises
RegistryLoadError and no partial registry is ever returned.
"""

from __future__ import annotations

import logging
from datetime import date, datetime
from pathlib import Path
from typing import Any, Mapping

import yaml

from ids.models.decision import Justification
from ids.registry.models import (
    Entity,
    EntityKind,
    JustificationRecord,
    Registry,
    default_entity_kinds,
)
from ids.registry.store import LocalRegistryStore
from ids.registry.validator import iter_raw_entities, validate_justification, validate_registry

logger = logging.getLogger(__name__)


class RegistryLoadError(Exception):
    """The registry store is missing, unreadable, or fails validation."""

    def __init__(self, message: str, issues: list[str] | None = None):
        super().__init__(message)
        self.issues = issues or []


class RegistryLoader:
    """Loads Registry snapshots from a LocalRegistryStore.

    Also the write path for CREATE justifications: the decision engine
    hands new records to ``record_justification`` and the store appends
    them to its journal.
    """

    def __init__(
        self,
        store: LocalRegistryStore | str | Path | None = None,
        kinds: Mapping[str, EntityKind] | None = None,
    ):
        if not isinstance(store, LocalRegistryStore):
            store = LocalRegistryStore(store)
        self.store = store
        self.kinds = dict(kinds) if kinds is not None else default_entity_kinds()

    def load(self) -> Registry:
        """Read, validate, and index the whole catalog."""
        try:
            data = self.store.read_registry()
        except FileNotFoundError as e:
            raise RegistryLoadError(f"Registry not found: {self.store.registry_path}") from e
        except yaml.YAMLError as e:
            raise RegistryLoadError(f"Registry is not valid YAML: {e}") from e
        except OSError as e:
            raise RegistryLoadError(f"Cannot read registry {self.store.registry_path}: {e}") from e

        try:
            journal = self.store.read_journal()
        except (OSError, ValueError) as e:
            raise RegistryLoadError(f"Cannot read justification journal: {e}") from e

        registry = parse_registry(data, journal, self.kinds)
        logger.debug(
            "Loaded registry from %s: %d entities, %d justifications",
            self.store.store_dir,
            len(registry),
            len(registry.justifications),
        )
        return registry

    def record_justification(self, record: JustificationRecord) -> None:
        """Append a CREATE justification to the store's journal."""
        self.store.append_justification(record.to_journal_dict())


def parse_registry(
    data: Any,
    journal: list[dict[str, Any]] | None = None,
    kinds: Mapping[str, EntityKind] | None = None,
) -> Registry:
    """Build a Registry from a parsed catalog document and journal records."""
    kinds = dict(kinds) if kinds is not None else default_entity_kinds()

    issues = validate_registry(data, set(kinds))
    for i, record in enumerate(journal or []):
        entity_id = record.get("entity_id")
        if not entity_id or not isinstance(entity_id, str):
            issues.append(f"journal record #{i + 1} missing entity_id")
        issues.extend(f"journal record #{i + 1}: {issue}" for issue in validate_justification(record))
    if issues:
        raise RegistryLoadError(
            f"Registry failed validation ({len(issues)} issues): {issues[0]}", issues=issues
        )

    try:
        entities = [_parse_entity(category, raw) for category, raw in iter_raw_entities(data)]
        justifications: dict[str, JustificationRecord] = {}
        # Later journal lines supersede earlier ones for the same entity
        for record in journal or []:
            parsed = parse_justification_record(record["entity_id"], record)
            justifications[parsed.entity_id] = parsed
    except (ValueError, TypeError) as e:
        raise RegistryLoadError(f"Registry failed validation: {e}", issues=[str(e)]) from e

    # A registered entity's own record wins over the journal
    for entity in entities:
        if entity.create_justification is not None:
            justifications[entity.id] = entity.create_justification

    metadata = data.get("metadata") or {}
    return Registry(
        entities=tuple(entities),
        justifications=tuple(justifications[k] for k in sorted(justifications)),
        kinds=kinds,
        version=str(metadata.get("version", "")) if isinstance(metadata, dict) else "",
    )


def parse_justification_record(entity_id: str, data: dict[str, Any]) -> JustificationRecord:
    return JustificationRecord(
        entity_id=entity_id,
        justification=Justification(
            evaluated_patterns=[str(p) for p in data.get("evaluated_patterns") or []],
            rejection_reasons={
                str(k): str(v) for k, v in (data.get("rejection_reasons") or {}).items()
            },
            new_capability=str(data.get("new_capability") or ""),
            review_scheduled=_parse_date(data["review_scheduled"]),
        ),
        intent=str(data.get("intent") or ""),
        decided_at=str(data.get("decided_at") or ""),
        reusage_count=data.get("reusage_count", 0),
    )


def _parse_entity(category: str, raw: dict[str, Any]) -> Entity:
    entity_id = raw["id"]
    consumers = raw.get("usedBy") or raw.get("used_by") or raw.get("consumers") or []
    keywords = raw.get("keywords") or ()
    justification = raw.get("create_justification")

    return Entity(
        id=entity_id,
        path=raw["path"],
        type=raw["type"],
        category=category,
        # Left unconverted; malformed text is reported when the entity is scored
        description=raw.get("description", raw.get("purpose", "")),
        keywords=tuple(keywords) if isinstance(keywords, list) else keywords,
        consumers=tuple(dict.fromkeys(consumers)),
        dependencies=tuple(raw.get("dependencies") or ()),
        adaptability=float(raw.get("adaptability", 0.5)),
        create_justification=(
            parse_justification_record(entity_id, justification) if justification else None
        ),
    )


def _parse_date(value: Any) -> date:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    try:
        return date.fromisoformat(str(value)[:10])
    except ValueError as e:
        raise ValueError(f"invalid review_scheduled date: {value!r}") from e
