"""Tests for the ids command-line entry point."""

import json
import tempfile
from pathlib import Path

import yaml
from click.testing import CliRunner

from ids.cli import main


def _write_store(tmpdir: str) -> str:
    store_dir = Path(tmpdir) / ".ids"
    store_dir.mkdir()
    with open(store_dir / "entity-registry.yaml", "w") as f:
        yaml.dump(
            {
                "entities": {
                    "scripts": {
                        "script-validate-01": {
                            "type": "script",
                            "path": "scripts/validate-story.js",
                            "description": "validates story draft markdown against schema",
                        }
                    }
                }
            },
            f,
        )
    return str(store_dir)


def test_query_json():
    with tempfile.TemporaryDirectory() as tmpdir:
        store_dir = _write_store(tmpdir)
        result = CliRunner().invoke(
            main, ["query", "validate", "story", "drafts", "--json", "-r", store_dir]
        )

    assert result.exit_code == 0, result.output
    data = json.loads(result.output)
    assert data["summary"]["decision"] == "REUSE"
    assert data["recommendations"][0]["entityId"] == "script-validate-01"


def test_query_human_output():
    with tempfile.TemporaryDirectory() as tmpdir:
        store_dir = _write_store(tmpdir)
        result = CliRunner().invoke(main, ["query", "validate story drafts", "-r", store_dir])

    assert result.exit_code == 0, result.output
    assert "REUSE" in result.output
    assert "script-validate-01" in result.output


def test_query_create_records_justification():
    with tempfile.TemporaryDirectory() as tmpdir:
        store_dir = _write_store(tmpdir)
        runner = CliRunner()
        result = runner.invoke(main, ["query", "deploy kubernetes cluster", "-r", store_dir])
        assert result.exit_code == 0, result.output
        assert "CREATE Justification" in result.output

        review = runner.invoke(main, ["create-review", "--json", "-r", store_dir])
        assert review.exit_code == 0, review.output
        data = json.loads(review.output)

    assert data["totalReviewed"] == 1
    assert data["pendingReview"][0]["entityId"] == "deploy-kubernetes-cluster"


def test_query_requires_intent():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = CliRunner().invoke(main, ["query", "-r", _write_store(tmpdir)])
    assert result.exit_code == 1


def test_query_missing_registry_fails():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = CliRunner().invoke(main, ["query", "anything", "-r", str(Path(tmpdir) / "nope")])
    assert result.exit_code == 1
    assert "Failed to load registry" in result.output


def test_query_unknown_type_fails():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = CliRunner().invoke(
            main, ["query", "anything", "--type", "spaceship", "-r", _write_store(tmpdir)]
        )
    assert result.exit_code == 1


def test_create_review_empty():
    with tempfile.TemporaryDirectory() as tmpdir:
        result = CliRunner().invoke(main, ["create-review", "-r", _write_store(tmpdir)])
    assert result.exit_code == 0
    assert "No CREATE justifications found" in result.output


def test_config_from_store_dir_is_used():
    with tempfile.TemporaryDirectory() as tmpdir:
        store_dir = _write_store(tmpdir)
        with open(Path(store_dir) / "config.yaml", "w") as f:
            yaml.dump({"thresholds": {"reuse_threshold": 1.0, "reuse_high_confidence": 1.0}}, f)
        result = CliRunner().invoke(
            main, ["query", "story draft validation", "--json", "-r", store_dir]
        )

    assert result.exit_code == 0, result.output
    assert json.loads(result.output)["summary"]["decision"] == "ADAPT"
