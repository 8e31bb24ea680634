"""Local file-based registry store.

Storage layout (default directory ``.ids``, or ``$IDS_REGISTRY_DIR``)::

    .ids/entity-registry.yaml     entity catalog (authored elsewhere, read-only here)
    .ids/justifications.jsonl     append-only CREATE justification journal
    .ids/config.yaml              optional policy configuration
"""

from __future__ import annotations

import json
import logging
import os
from pathlib import Path
from typing import Any

import yaml

logger = logging.getLogger(__name__)

DEFAULT_STORE_DIR = ".ids"


class LocalRegistryStore:
    """Reads the entity catalog and appends to the justification journal."""

    REGISTRY_FILE = "entity-registry.yaml"
    JOURNAL_FILE = "justifications.jsonl"
    CONFIG_FILE = "config.yaml"

    def __init__(self, store_dir: str | Path | None = None):
        if store_dir is None:
            store_dir = os.environ.get("IDS_REGISTRY_DIR", DEFAULT_STORE_DIR)
        self.store_dir = Path(store_dir)
        self.registry_path = self.store_dir / self.REGISTRY_FILE
        self.journal_path = self.store_dir / self.JOURNAL_FILE
        self.config_path = self.store_dir / self.CONFIG_FILE

    def read_registry(self) -> Any:
        """Parse the catalog file.

        Raises FileNotFoundError, OSError or yaml.YAMLError; the loader
        turns those into a RegistryLoadError.
        """
        with open(self.registry_path) as f:
            return yaml.safe_load(f)

    def read_journal(self) -> list[dict[str, Any]]:
        """Read every journal record, oldest first. A missing journal is empty."""
        if not self.journal_path.exists():
            return []

        records = []
        with open(self.journal_path) as f:
            for lineno, line in enumerate(f, start=1):
                line = line.strip()
                if not line:
                    continue
                try:
                    data = json.loads(line)
                except json.JSONDecodeError as e:
                    raise ValueError(f"{self.journal_path}:{lineno}: invalid JSON ({e.msg})") from e
                if not isinstance(data, dict):
                    raise ValueError(f"{self.journal_path}:{lineno}: record must be an object")
                records.append(data)
        return records

    def append_justification(self, record: dict[str, Any]) -> None:
        """Append one justification record to the journal.

        One line per record, written with a single call on an append-mode
        handle and flushed to disk, so concurrent readers see either the
        whole record or none of it.
        """
        self.store_dir.mkdir(parents=True, exist_ok=True)
        line = json.dumps(record, sort_keys=True) + "\n"
        with open(self.journal_path, "a") as f:
            f.write(line)
            f.flush()
            os.fsync(f.fileno())
        logger.info("Recorded CREATE justification for %s", record.get("entity_id"))
