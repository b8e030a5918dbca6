"""JSON file adapter for GridStateStore.

Keeps string values under string keys in a single JSON object on disk,
the desktop counterpart of a browser key-value store. Values are opaque.
"""

from __future__ import annotations

import json
import logging
import os
import tempfile
from pathlib import Path

logger = logging.getLogger(__name__)


class JsonFileStateStore:
    """Key-value store backed by a JSON object file.

    A missing file reads as an empty store. Writes replace the file
    atomically so a crash never leaves a half-written document.
    """

    def __init__(self, file_path: Path | str) -> None:
        self.path = Path(file_path)

    def get(self, key: str) -> str | None:
        return self._read().get(key)

    def set(self, key: str, value: str) -> None:
        document = self._read()
        document[key] = value
        self._write(document)

    def _read(self) -> dict[str, str]:
        if not self.path.exists():
            return {}
        try:
            document = json.loads(self.path.read_text(encoding="utf-8"))
        except json.JSONDecodeError as e:
            raise ValueError(f"State file {self.path.name} is not valid JSON") from e
        if not isinstance(document, dict) or not all(
            isinstance(k, str) and isinstance(v, str) for k, v in document.items()
        ):
            raise ValueError(
                f"State file {self.path.name} must hold a JSON object of strings"
            )
        return document

    def _write(self, document: dict[str, str]) -> None:
        self.path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self.path.parent, prefix=f".{self.path.name}.", suffix=".tmp"
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as f:
                json.dump(document, f, indent=2, sort_keys=True)
            os.replace(tmp_name, self.path)
        except BaseException:
            Path(tmp_name).unlink(missing_ok=True)
            raise
        logger.debug("State %s: wrote %d keys", self.path.name, len(document))
