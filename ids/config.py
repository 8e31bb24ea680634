"""Configuration — decision thresholds, review policy, and recognized entity types.

Every policy constant the engine uses lives here so that deployments (and
tests) can tune them without touching code. A YAML file can override any
subset of the defaults::

    thresholds:
      min_relevance: 0.4
      adapt_threshold: 0.6
      reuse_threshold: 0.9
    review:
      promotion_threshold: 3
      horizon_days: 30
    entity_types:
      - task
      - name: prompt
        text_fields: [id, path, description]
"""

from __future__ import annotations

import logging
from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from ids.registry.models import EntityKind, default_entity_kinds

logger = logging.getLogger(__name__)


class ConfigError(ValueError):
    """The configuration file is unreadable or holds invalid values."""


_THRESHOLD_KEYS = {
    "min_relevance",
    "adapt_threshold",
    "adapt_medium_confidence",
    "reuse_threshold",
    "reuse_high_confidence",
    "phrase_weight",
    "high_impact_ratio",
}
_LIMIT_KEYS = {"max_recommendations"}
_REVIEW_KEYS = {"promotion_threshold": "promotion_threshold", "horizon_days": "review_horizon_days"}


@dataclass
class IdsConfig:
    """Policy constants for matching, deciding, and reviewing."""

    # Matching
    min_relevance: float = 0.40  # Relevance floor; below this a candidate is not a match
    phrase_weight: float = 0.30  # Share of the score given to adjacent-term overlap

    # Decision bands
    adapt_threshold: float = 0.60
    adapt_medium_confidence: float = 0.75
    reuse_threshold: float = 0.90
    reuse_high_confidence: float = 0.95
    high_impact_ratio: float = 0.30  # Share of the registry an adaptation may touch
    max_recommendations: int = 5

    # CREATE review
    promotion_threshold: int = 3
    review_horizon_days: int = 30

    entity_kinds: dict[str, EntityKind] = field(default_factory=default_entity_kinds)

    def __post_init__(self):
        self.validate()

    def validate(self) -> None:
        for name in _THRESHOLD_KEYS:
            value = getattr(self, name)
            if not isinstance(value, (int, float)) or isinstance(value, bool):
                raise ConfigError(f"{name} must be a number, got {value!r}")
            if not 0.0 <= value <= 1.0:
                raise ConfigError(f"{name} must be within [0, 1], got {value}")

        if not self.min_relevance <= self.adapt_threshold <= self.reuse_threshold:
            raise ConfigError(
                "Thresholds must satisfy min_relevance <= adapt_threshold <= reuse_threshold "
                f"(got {self.min_relevance}, {self.adapt_threshold}, {self.reuse_threshold})"
            )
        if not self.reuse_threshold <= self.reuse_high_confidence:
            raise ConfigError("reuse_high_confidence must not be below reuse_threshold")
        if not self.adapt_threshold <= self.adapt_medium_confidence <= self.reuse_threshold:
            raise ConfigError(
                "adapt_medium_confidence must lie between adapt_threshold and reuse_threshold"
            )

        for name in ("max_recommendations", "promotion_threshold", "review_horizon_days"):
            value = getattr(self, name)
            if not isinstance(value, int) or isinstance(value, bool) or value < 1:
                raise ConfigError(f"{name} must be a positive integer, got {value!r}")

        if not self.entity_kinds:
            raise ConfigError("At least one entity type must be recognized")

    @property
    def type_names(self) -> list[str]:
        return sorted(self.entity_kinds)


def load_config(path: str | Path) -> IdsConfig:
    """Load an IdsConfig from a YAML file."""
    try:
        with open(path) as f:
            data = yaml.safe_load(f) or {}
    except (OSError, yaml.YAMLError) as e:
        raise ConfigError(f"Cannot read config {path}: {e}") from e

    if not isinstance(data, dict):
        raise ConfigError(f"Config {path} must be a mapping at the top level")

    logger.debug("Loaded config from %s", path)
    return config_from_dict(data)


def config_from_dict(data: dict[str, Any]) -> IdsConfig:
    unknown = set(data) - {"thresholds", "limits", "review", "entity_types"}
    if unknown:
        raise ConfigError(f"Unknown config sections: {', '.join(sorted(unknown))}")

    kwargs: dict[str, Any] = {}
    kwargs.update(_section(data, "thresholds", {k: k for k in _THRESHOLD_KEYS}))
    kwargs.update(_section(data, "limits", {k: k for k in _LIMIT_KEYS}))
    kwargs.update(_section(data, "review", _REVIEW_KEYS))

    if "entity_types" in data:
        kwargs["entity_kinds"] = _parse_entity_types(data["entity_types"])

    return IdsConfig(**kwargs)


def _section(data: dict[str, Any], name: str, keys: dict[str, str]) -> dict[str, Any]:
    section = data.get(name) or {}
    if not isinstance(section, dict):
        raise ConfigError(f"Config section '{name}' must be a mapping")
    unknown = set(section) - set(keys)
    if unknown:
        raise ConfigError(f"Unknown keys in '{name}': {', '.join(sorted(unknown))}")
    return {keys[k]: v for k, v in section.items()}


def _parse_entity_types(raw: Any) -> dict[str, EntityKind]:
    if not isinstance(raw, list):
        raise ConfigError("entity_types must be a list")

    kinds: dict[str, EntityKind] = {}
    for item in raw:
        if isinstance(item, str):
            kind = EntityKind(name=item)
        elif isinstance(item, dict) and isinstance(item.get("name"), str):
            text_fields = item.get("text_fields")
            if text_fields is None:
                kind = EntityKind(name=item["name"])
            elif isinstance(text_fields, list) and all(isinstance(f, str) for f in text_fields):
                kind = EntityKind(name=item["name"], text_fields=tuple(text_fields))
            else:
                raise ConfigError(f"entity type '{item['name']}': text_fields must be a list of names")
        else:
            raise ConfigError(f"Invalid entity type entry: {item!r}")

        if kind.name in kinds:
            raise ConfigError(f"Duplicate entity type: {kind.name}")
        kinds[kind.name] = kind
    return kinds
