"""Builds the chunk list from a source directory."""

from pathlib import Path
from typing import List, Union

from common.constants import SEQUENCE_DELIMITER
from common.logging_config import get_logger
from producer.exceptions import MalformedNameError
from producer.models import Chunk

logger = get_logger(__name__)


def parse_sequence_token(name: str) -> str:
    """
    Extract the sequence token from a source filename.

    Args:
        name: Filename of the form <anything>@<sequenceToken>

    Returns:
        The sequence token

    Raises:
        MalformedNameError: If the name does not split into exactly two parts
            or the token is empty
    """
    parts = name.split(SEQUENCE_DELIMITER)
    if len(parts) != 2 or not parts[1]:
        raise MalformedNameError(
            f"File name '{name}' must contain exactly one '{SEQUENCE_DELIMITER}' "
            f"followed by a sequence token"
        )
    return parts[1]


def load_directory(dirname: Union[str, Path]) -> List[Chunk]:
    """
    Load every entry of a directory as a chunk.

    One bad entry aborts the whole batch.

    Args:
        dirname: Source directory

    Returns:
        Chunks ordered by file name

    Raises:
        OSError: If the directory or any entry cannot be read
        MalformedNameError: If any file name is malformed
    """
    directory = Path(dirname)
    entries = sorted(directory.iterdir(), key=lambda entry: entry.name)

    chunks = []
    for entry in entries:
        sequence_token = parse_sequence_token(entry.name)
        payload = entry.read_bytes()
        chunks.append(Chunk(payload=payload, sequence_token=sequence_token))
        logger.debug(f"Loaded chunk {entry.name} size={len(payload)}")

    logger.info(f"Loaded {len(chunks)} chunks from {directory}")
    return chunks
