"""Manages persisted chunk files on disk: storage/<groupId>/<groupId>@<sequence>."""

from pathlib import Path
from typing import Union

from common.constants import SEQUENCE_DELIMITER
from collector.exceptions import StorageError


def _check_component(value: str, what: str) -> str:
    if not value or value in ('.', '..') or '/' in value or '\\' in value or '\x00' in value:
        raise StorageError(f"Invalid {what} for a storage path: {value!r}")
    return value


class ChunkStore:
    """
    Filesystem layout for received chunks.

    A duplicate (group id, sequence) pair overwrites the earlier file.
    """

    def __init__(self, root: Union[str, Path]):
        """
        Initialize store.

        Args:
            root: Storage root directory (created on first write)
        """
        self.root = Path(root)

    def transfer_dir(self, group_id: str) -> Path:
        """
        Get directory holding every chunk of one transfer.

        Raises:
            StorageError: If group_id is not a single path component
        """
        return self.root / _check_component(group_id, "group id")

    def get_chunk_path(self, group_id: str, sequence_token: str) -> Path:
        """
        Get file path for a chunk.

        Args:
            group_id: Logical transfer identifier from the envelope
            sequence_token: CURRENT_FILE_COUNTER header value

        Returns:
            Path object for chunk file

        Raises:
            StorageError: If either value is not a single path component
        """
        name = f"{group_id}{SEQUENCE_DELIMITER}{_check_component(sequence_token, 'sequence token')}"
        return self.transfer_dir(group_id) / name

    def write_chunk(self, group_id: str, sequence_token: str, data: bytes) -> Path:
        """
        Write chunk data to disk, creating the transfer directory if absent.

        Args:
            group_id: Logical transfer identifier
            sequence_token: Chunk sequence token
            data: Decompressed chunk body

        Returns:
            Path of the written file

        Raises:
            StorageError: If the path is invalid or the directory/file cannot be written
        """
        filepath = self.get_chunk_path(group_id, sequence_token)
        try:
            filepath.parent.mkdir(parents=True, exist_ok=True)
            filepath.write_bytes(data)
        except OSError as e:
            raise StorageError(str(e)) from e
        return filepath

