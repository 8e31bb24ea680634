"""Validator — structural checks on a raw registry document before it is indexed.

Returns a list of issues; an empty list means the document can be loaded.
"""

from __future__ import annotations

from collections.abc import Iterator
from typing import Any

REQUIRED_ENTITY_FIELDS = ("type", "path")


def iter_raw_entities(data: dict[str, Any]) -> Iterator[tuple[str, dict[str, Any]]]:
    """Yield ``(category, raw_entity)`` pairs with ``id`` filled in.

    ``entities`` is either grouped by category (``{category: {id: {...}}}``)
    or a flat list of mappings that carry their own ``id`` and ``category``.
    """
    entities = data.get("entities") or {}

    if isinstance(entities, list):
        for raw in entities:
            if isinstance(raw, dict):
                yield str(raw.get("category") or ""), raw
            else:
                yield "", {"__invalid__": raw}
        return

    for category, group in entities.items():
        if not isinstance(group, dict):
            yield str(category), {"__invalid__": group}
            continue
        for entity_id, raw in group.items():
            if isinstance(raw, dict):
                yield str(category), {"id": entity_id, **raw}
            else:
                yield str(category), {"id": entity_id, "__invalid__": raw}


def validate_registry(data: Any, type_names: set[str]) -> list[str]:
    """Validate a parsed registry document."""
    if not isinstance(data, dict):
        return ["Registry document must be a mapping with an 'entities' key"]

    if "entities" not in data:
        return ["Missing top-level 'entities' key"]

    if not isinstance(data["entities"], (dict, list, type(None))):
        return ["'entities' must be a mapping of categories or a list"]

    issues: list[str] = []
    seen: set[str] = set()

    for i, (category, raw) in enumerate(iter_raw_entities(data)):
        label = raw.get("id") or f"entity #{i + 1}"

        if "__invalid__" in raw:
            issues.append(f"{label} in '{category}' is not a mapping")
            continue

        entity_id = raw.get("id")
        if not entity_id or not isinstance(entity_id, str):
            issues.append(f"{label} missing required field: id")
        elif entity_id in seen:
            issues.append(f"Duplicate entity id: {entity_id}")
        else:
            seen.add(entity_id)

        for field_name in REQUIRED_ENTITY_FIELDS:
            if not raw.get(field_name):
                issues.append(f"{label} missing required field: {field_name}")

        entity_type = raw.get("type")
        if entity_type and not isinstance(entity_type, str):
            issues.append(f"{label} field 'type' must be a string")
        elif entity_type and entity_type not in type_names:
            issues.append(
                f"{label} has unrecognized type '{entity_type}'. "
                f"Must be one of: {', '.join(sorted(type_names))}"
            )

        for list_field in ("usedBy", "used_by", "consumers", "dependencies"):
            value = raw.get(list_field)
            if value is not None and not (
                isinstance(value, list) and all(isinstance(v, str) for v in value)
            ):
                issues.append(f"{label} field '{list_field}' must be a list of entity ids")

        adaptability = raw.get("adaptability")
        if "adaptability" in raw and (
            not isinstance(adaptability, (int, float))
            or isinstance(adaptability, bool)
            or not 0.0 <= adaptability <= 1.0
        ):
            issues.append(f"{label} adaptability must be a number within [0, 1]")

        justification = raw.get("create_justification")
        if justification is not None:
            issues.extend(f"{label}: {issue}" for issue in validate_justification(justification))

    return issues


def validate_justification(data: Any) -> list[str]:
    """Validate one stored CREATE justification (registry-attached or journal)."""
    if not isinstance(data, dict):
        return ["create justification must be a mapping"]

    issues = []
    if not data.get("review_scheduled"):
        issues.append("create justification missing review_scheduled")

    count = data.get("reusage_count", 0)
    if not isinstance(count, int) or isinstance(count, bool) or count < 0:
        issues.append(f"reusage_count must be a non-negative integer, got {count!r}")

    patterns = data.get("evaluated_patterns", [])
    if not isinstance(patterns, list):
        issues.append("evaluated_patterns must be a list")

    reasons = data.get("rejection_reasons", {})
    if not isinstance(reasons, dict):
        issues.append("rejection_reasons must be a mapping")

    return issues
