"""Tests for policy configuration loading and validation."""

import tempfile
from pathlib import Path

import pytest
import yaml

from ids.config import ConfigError, IdsConfig, config_from_dict, load_config


def _write_config(tmpdir: str, data) -> Path:
    path = Path(tmpdir) / "config.yaml"
    with open(path, "w") as f:
        yaml.dump(data, f)
    return path


def test_defaults():
    config = IdsConfig()
    assert config.min_relevance <= config.adapt_threshold <= config.reuse_threshold
    assert config.promotion_threshold == 3
    assert config.review_horizon_days == 30
    assert {"task", "script", "agent", "template"} <= set(config.type_names)


def test_load_overrides():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = _write_config(
            tmpdir,
            {
                "thresholds": {"adapt_threshold": 0.5, "adapt_medium_confidence": 0.6},
                "limits": {"max_recommendations": 3},
                "review": {"promotion_threshold": 5, "horizon_days": 14},
            },
        )
        config = load_config(path)

    assert config.adapt_threshold == 0.5
    assert config.adapt_medium_confidence == 0.6
    assert config.reuse_threshold == 0.90
    assert config.max_recommendations == 3
    assert config.promotion_threshold == 5
    assert config.review_horizon_days == 14


def test_entity_types_replace_defaults():
    config = config_from_dict(
        {"entity_types": ["task", {"name": "prompt", "text_fields": ["id", "description"]}]}
    )
    assert config.type_names == ["prompt", "task"]
    assert config.entity_kinds["prompt"].text_fields == ("id", "description")


def test_empty_file_gives_defaults():
    with tempfile.TemporaryDirectory() as tmpdir:
        path = Path(tmpdir) / "config.yaml"
        path.write_text("")
        assert load_config(path) == IdsConfig()


@pytest.mark.parametrize(
    "data, message",
    [
        ({"thresholds": {"reuse_threshold": 1.5}}, "within"),
        ({"thresholds": {"adapt_threshold": 0.95}}, "min_relevance <= adapt_threshold"),
        ({"thresholds": {"min_relevance": "high"}}, "must be a number"),
        ({"review": {"promotion_threshold": 0}}, "positive integer"),
        ({"review": {"cadence": 7}}, "Unknown keys"),
        ({"scoring": {}}, "Unknown config sections"),
        ({"entity_types": []}, "At least one entity type"),
        ({"entity_types": ["task", "task"]}, "Duplicate entity type"),
        ({"entity_types": [{"name": "x", "text_fields": "id"}]}, "text_fields"),
    ],
)
def test_invalid_config(data, message):
    with pytest.raises(ConfigError, match=message):
        config_from_dict(data)


def test_unreadable_config():
    with tempfile.TemporaryDirectory() as tmpdir:
        with pytest.raises(ConfigError, match="Cannot read config"):
            load_config(Path(tmpdir) / "missing.yaml")
