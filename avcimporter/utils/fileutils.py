"""
Local file helpers shared by the checkpoint, the orchestrator and the CLI.
"""

import json
import os
import tempfile
from pathlib import Path
from typing import Any, Union

from avcimporter.utils.errors import StorageError
from avcimporter.utils.logging import get_logger

logger = get_logger(__name__)


def ensure_directory(path: Union[str, Path]) -> Path:
    """
    Create a directory (and parents) if it does not exist.

    Raises:
        StorageError: If the directory cannot be created
    """
    path = Path(path)
    try:
        path.mkdir(parents=True, exist_ok=True)
    except OSError as e:
        raise StorageError(f"Failed to create directory {path}: {e}", {"path": str(path)})
    return path


def atomic_write_bytes(path: Union[str, Path], data: bytes) -> None:
    """
    Write bytes to path via a temp file in the same directory and a rename.

    Readers see either the previous content or the new content, never a
    partial write. Raises OSError on failure; the temp file is removed.
    """
    path = Path(path)
    fd, tmp_name = tempfile.mkstemp(prefix=f".{path.name}.", suffix=".tmp", dir=path.parent)
    try:
        with os.fdopen(fd, "wb") as tmp:
            tmp.write(data)
            tmp.flush()
            os.fsync(tmp.fileno())
        os.replace(tmp_name, path)
    except BaseException:
        try:
            os.unlink(tmp_name)
        except FileNotFoundError:
            pass
        raise


def serialize(data: Any) -> bytes:
    """Convert str/bytes verbatim, anything else to indented JSON."""
    if isinstance(data, bytes):
        return data
    if isinstance(data, str):
        return data.encode("utf-8")
    try:
        return (json.dumps(data, indent=2, default=str) + "\n").encode("utf-8")
    except (TypeError, ValueError) as e:
        raise StorageError(f"Failed to marshal data: {e}")


def save_to_file(directory: Union[str, Path], filename: str, data: Any) -> Path:
    """
    Write data to directory/filename, creating the directory first.

    Args:
        directory: Target directory
        filename: File name inside the directory
        data: str, bytes, or a JSON-serializable object

    Returns:
        Path of the written file

    Raises:
        StorageError: If the write fails
    """
    full_path = ensure_directory(directory) / filename
    output = serialize(data)

    try:
        atomic_write_bytes(full_path, output)
    except OSError as e:
        raise StorageError(f"Failed to write to file {full_path}: {e}", {"path": str(full_path)})

    logger.debug(f"Wrote {len(output)} bytes to {full_path}")
    return full_path


def load_from_file(path: Union[str, Path]) -> bytes:
    """
    Read a file's content.

    Raises:
        StorageError: If the file is missing or unreadable
    """
    path = Path(path)
    if not path.exists():
        raise StorageError(f"File {path} does not exist", {"path": str(path)})

    try:
        return path.read_bytes()
    except OSError as e:
        raise StorageError(f"Failed to read file {path}: {e}", {"path": str(path)})

