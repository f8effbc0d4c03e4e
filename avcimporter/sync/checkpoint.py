"""
Durable sync watermark.

The checkpoint is a single JSON record ``{"lastControlNumber": "..."}``
stored at a fixed file name inside the storage directory. Writes go
through a temp file and a rename, so a crash mid-write leaves the
previous checkpoint intact.
"""

import json
from pathlib import Path
from typing import Union

from pydantic import ValidationError

from avcimporter.models import CheckpointRecord
from avcimporter.utils.errors import CheckpointIOError, CorruptCheckpointError
from avcimporter.utils.fileutils import atomic_write_bytes
from avcimporter.utils.logging import get_logger

logger = get_logger(__name__)

CHECKPOINT_FILENAME = "checkpoint.json"


class Checkpoint:
    """Load and save the highest processed order identifier."""

    def __init__(self, directory: Union[str, Path], filename: str = CHECKPOINT_FILENAME) -> None:
        """
        Args:
            directory: Storage directory holding the checkpoint file
            filename: Checkpoint file name
        """
        self.directory = Path(directory)
        self.path = self.directory / filename

    def load(self) -> str:
        """
        Read the watermark, creating an empty checkpoint if none exists.

        Returns:
            The stored watermark ("" for a fresh checkpoint)

        Raises:
            CheckpointIOError: If the file cannot be read or created
            CorruptCheckpointError: If the file exists but cannot be parsed
        """
        if not self.path.exists():
            logger.info(f"No checkpoint at {self.path}, creating default")
            self.save("")
            return ""

        try:
            raw = self.path.read_text(encoding="utf-8")
        except (OSError, UnicodeDecodeError) as e:
            raise CheckpointIOError(str(self.path), str(e))

        try:
            record = CheckpointRecord.model_validate(json.loads(raw))
        except (json.JSONDecodeError, ValidationError) as e:
            raise CorruptCheckpointError(str(self.path), str(e))

        logger.debug(f"Loaded checkpoint {record.last_control_number!r} from {self.path}")
        return record.last_control_number

    def save(self, watermark: str) -> None:
        """
        Overwrite the checkpoint with the given watermark.

        Raises:
            CheckpointIOError: If the directory or file cannot be written
        """
        record = CheckpointRecord(last_control_number=watermark)
        data = json.dumps(record.model_dump(by_alias=True), indent=2) + "\n"

        try:
            self.directory.mkdir(parents=True, exist_ok=True)
            atomic_write_bytes(self.path, data.encode("utf-8"))
        except OSError as e:
            raise CheckpointIOError(str(self.path), str(e))

        logger.debug(f"Saved checkpoint {watermark!r} to {self.path}")


def load_checkpoint(directory: Union[str, Path]) -> str:
    """Shortcut for ``Checkpoint(directory).load()``."""
    return Checkpoint(directory).load()


def save_checkpoint(directory: Union[str, Path], watermark: str) -> None:
    """Shortcut for ``Checkpoint(directory).save(watermark)``."""
    Checkpoint(directory).save(watermark)
