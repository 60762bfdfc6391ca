"""
JSON File Storage

The default backend: the whole engine state as one JSON document on
local disk, so the app keeps working with no connectivity at all.

CRITICAL: Writes go to a temp file in the same directory and are then
renamed over the target. A crash mid-write leaves the previous state
intact rather than a truncated file.
"""

import os
import tempfile
from pathlib import Path
from typing import Optional, Union

from pydantic import ValidationError
from tenacity import retry, retry_if_exception_type, stop_after_attempt, wait_exponential

from src.models.state import EngineState
from src.services.storage.interface import (
    CorruptStateError,
    StateStorageInterface,
    StorageError,
)


class JsonFileStateStorage(StateStorageInterface):
    """Engine state stored as a single JSON file."""

    def __init__(self, path: Union[str, Path]):
        self._path = Path(path)

    @property
    def path(self) -> Path:
        return self._path

    def load(self) -> Optional[EngineState]:
        """Read the state file. A missing file means nothing was saved yet."""
        try:
            payload = self._path.read_text(encoding="utf-8")
        except FileNotFoundError:
            return None
        except OSError as e:
            raise StorageError(f"Failed to read state file {self._path}: {e}")

        if not payload.strip():
            return None

        try:
            return EngineState.from_json(payload)
        except ValidationError as e:
            raise CorruptStateError(f"State file {self._path} is not valid engine state: {e}")

    @retry(
        retry=retry_if_exception_type(OSError),
        stop=stop_after_attempt(3),
        wait=wait_exponential(multiplier=1, min=2, max=10),
        reraise=True,
    )
    def _write(self, payload: str) -> None:
        self._path.parent.mkdir(parents=True, exist_ok=True)
        fd, tmp_name = tempfile.mkstemp(
            dir=self._path.parent,
            prefix=f".{self._path.name}.",
            suffix=".tmp",
        )
        try:
            with os.fdopen(fd, "w", encoding="utf-8") as handle:
                handle.write(payload)
                handle.flush()
                os.fsync(handle.fileno())
            os.replace(tmp_name, self._path)
        except OSError:
            Path(tmp_name).unlink(missing_ok=True)
            raise

    def save(self, state: EngineState) -> None:
        try:
            self._write(state.to_json())
        except OSError as e:
            raise StorageError(f"Failed to write state file {self._path}: {e}")

    def clear(self) -> None:
        try:
            self._path.unlink(missing_ok=True)
        except OSError as e:
            raise StorageError(f"Failed to remove state file {self._path}: {e}")
