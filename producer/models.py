"""In-memory models for chunks and upload outcomes."""

from dataclasses import dataclass, field
from typing import List, Optional

from common.checksum import compute_fingerprint
from producer.exceptions import MalformedNameError


@dataclass(frozen=True)
class Chunk:
    """
    One file to upload.

    The fingerprint is always derived from the payload on construction.
    """
    payload: bytes
    sequence_token: str
    fingerprint: str = field(init=False, repr=False)

    def __post_init__(self):
        if not self.sequence_token:
            raise MalformedNameError("Chunk requires a non-empty sequence token")
        object.__setattr__(self, 'fingerprint', compute_fingerprint(self.payload))

    @property
    def size(self) -> int:
        return len(self.payload)


@dataclass
class ChunkResult:
    """
    Outcome of one dispatch, reported to the aggregator exactly once.
    """
    sequence_token: str
    acknowledged_bytes: int = 0
    status_code: Optional[int] = None
    error: Optional[str] = None
    http_version: Optional[str] = None

    @property
    def ok(self) -> bool:
        return (
            self.error is None
            and self.status_code is not None
            and 200 <= self.status_code < 300
        )


@dataclass
class TransferReport:
    """
    Final outcome of one upload invocation.
    """
    total_bytes: int
    results: List[ChunkResult]

    @property
    def failed(self) -> List[ChunkResult]:
        return [result for result in self.results if not result.ok]
