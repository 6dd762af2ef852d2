"""State management for the saved queue and remembered script inputs.

This module provides the StateManager class for persisting the queue
between runs and the values a user entered for script variables, both
as JSON files in the state directory.
"""

import json
import logging
import os
from pathlib import Path
from tempfile import NamedTemporaryFile
from typing import Any

from pakky.core.paths import get_state_dir
from pakky.models.package import PackageStatus, QueueItem

logger = logging.getLogger(__name__)

# Saved inputs may contain personal data (emails, names)
INPUTS_FILE_MODE = 0o600


class StateManager:
    """Manages queue and input state in JSON files.

    Storage location: ~/.local/state/pakky/

    Corrupt entries are logged and skipped rather than failing the
    whole load, so one bad record never loses the rest of the queue.

    Attributes:
        state_dir: Directory containing the state files.
    """

    QUEUE_FILENAME = "queue.json"
    INPUTS_FILENAME = "inputs.json"

    def __init__(self, state_dir: Path | None = None) -> None:
        """Initialize StateManager.

        Args:
            state_dir: Optional override for state directory.
                      Default: ~/.local/state/pakky
        """
        self._state_dir = state_dir if state_dir is not None else get_state_dir()

    @property
    def queue_path(self) -> Path:
        """Path to queue.json."""
        return self._state_dir / self.QUEUE_FILENAME

    @property
    def inputs_path(self) -> Path:
        """Path to inputs.json."""
        return self._state_dir / self.INPUTS_FILENAME

    # -- Queue -------------------------------------------------------------------

    def save_queue(self, items: tuple[QueueItem, ...]) -> None:
        """Write the queue snapshot.

        Items that are mid-install are saved as pending so an
        interrupted session resumes cleanly on the next run.

        Raises:
            OSError: If the file cannot be written.
        """
        records = [self._persistable(item).to_dict() for item in items]
        self._write_json(self.queue_path, {"items": records})

    def load_queue(self) -> list[QueueItem]:
        """Read the saved queue.

        Returns:
            Saved items in order; empty if no queue was saved.
        """
        data = self._read_json(self.queue_path)
        if data is None:
            return []

        records = data.get("items", []) if isinstance(data, dict) else []
        if not isinstance(records, list):
            logger.warning("Ignoring malformed queue file %s", self.queue_path)
            return []

        items: list[QueueItem] = []
        for index, record in enumerate(records):
            if not isinstance(record, dict):
                logger.warning("Skipping corrupt queue entry %d: not a record", index)
                continue
            try:
                items.append(QueueItem.from_dict(record))
            except (KeyError, TypeError, ValueError) as e:
                logger.warning("Skipping corrupt queue entry %d: %s", index, str(e))
        return items

    # -- Inputs ------------------------------------------------------------------

    def save_inputs(self, values: dict[str, str]) -> None:
        """Write remembered script input values (owner-only permissions).

        Raises:
            OSError: If the file cannot be written.
        """
        self._write_json(self.inputs_path, {"values": values}, mode=INPUTS_FILE_MODE)

    def load_inputs(self) -> dict[str, str]:
        """Read remembered script input values.

        Returns:
            Mapping of variable name to value; non-string values are dropped.
        """
        data = self._read_json(self.inputs_path)
        if not isinstance(data, dict):
            return {}
        values = data.get("values", {})
        if not isinstance(values, dict):
            return {}
        return {str(k): v for k, v in values.items() if isinstance(v, str)}

    # -- Internals ---------------------------------------------------------------

    @staticmethod
    def _persistable(item: QueueItem) -> QueueItem:
        if item.status == PackageStatus.INSTALLING:
            return QueueItem(
                name=item.name,
                type=item.type,
                description=item.description,
                action=item.action,
            )
        return item

    def _read_json(self, path: Path) -> Any:
        if not path.exists():
            return None
        try:
            with path.open(encoding="utf-8") as f:
                return json.load(f)
        except (json.JSONDecodeError, OSError) as e:
            logger.warning("Failed to read state file %s: %s", path, e)
            return None

    def _write_json(self, path: Path, data: Any, mode: int | None = None) -> None:
        """Write JSON atomically via a temporary file and os.replace()."""
        self._state_dir.mkdir(parents=True, exist_ok=True)

        tmp_path: Path | None = None
        try:
            with NamedTemporaryFile(
                mode="w",
                encoding="utf-8",
                dir=self._state_dir,
                delete=False,
                suffix=".tmp",
            ) as f:
                tmp_path = Path(f.name)
                json.dump(data, f, indent=2)
            if mode is not None:
                os.chmod(tmp_path, mode)
            os.replace(str(tmp_path), str(path))
        except OSError:
            if tmp_path is not None and tmp_path.exists():
                tmp_path.unlink()
            raise
