"""
Deployment manifest files.

Each pipeline stage writes what it created (code ids, contract addresses)
to a JSON object that later stages read back. Writes merge into whatever
is already on disk, so later stages add keys without dropping earlier ones.
"""

from __future__ import annotations

import json
import logging
from pathlib import Path

logger = logging.getLogger(__name__)

CODE_IDS_FILE = "code_ids.json"
CONTRACT_ADDRESSES_FILE = "contract_addresses.json"


class Manifest:
    """A directory of JSON manifest files produced by the pipeline."""

    def __init__(self, directory: str | Path = "files"):
        self.directory = Path(directory)

    def path(self, name: str) -> Path:
        return self.directory / name

    def read(self, name: str) -> dict[str, str]:
        with open(self.path(name), "r") as f:
            data = json.load(f)
        if not isinstance(data, dict):
            raise ValueError(f"{self.path(name)} must contain a JSON object")
        return data

    def update(self, name: str, entries: dict[str, str]) -> dict[str, str]:
        """Merge ``entries`` into manifest ``name`` and write it back."""
        path = self.path(name)
        current = self.read(name) if path.exists() else {}
        current.update(entries)
        self.directory.mkdir(parents=True, exist_ok=True)
        with open(path, "w") as f:
            json.dump(current, f, indent=2)
        logger.info("Wrote %s (%s)", path, ", ".join(sorted(entries)))
        return current

    def code_ids(self) -> dict[str, str]:
        return self.read(CODE_IDS_FILE)

    def contract_addresses(self) -> dict[str, str]:
        return self.read(CONTRACT_ADDRESSES_FILE)
