"""Optional streaming gzip encoding of chunk payloads."""

import asyncio
import zlib
from dataclasses import dataclass, field
from typing import AsyncIterator, Dict, Optional, Union

from common.constants import (
    CONTENT_ENCODING_HEADER,
    GZIP_ENCODING,
    GZIP_WBITS,
    PIPE_BUFFER_PIECES,
    STREAM_PIECE_SIZE_BYTES,
)


class _Closed:
    """End-of-stream marker, optionally carrying the producer's error."""

    def __init__(self, error: Optional[BaseException] = None):
        self.error = error


class BytePipe:
    """
    Bounded in-process pipe between one writer coroutine and one reader.

    Writers block while ``maxsize`` pieces are waiting to be read, so a large
    payload is never fully buffered.
    """

    def __init__(self, maxsize: int = PIPE_BUFFER_PIECES):
        self._queue: asyncio.Queue = asyncio.Queue(maxsize)
        self._closed = False

    @property
    def closed(self) -> bool:
        return self._closed

    async def write(self, data: bytes) -> None:
        """
        Write a piece into the pipe.

        Raises:
            BrokenPipeError: If the write end is already closed
        """
        if self._closed:
            raise BrokenPipeError("write to closed pipe")
        if data:
            await self._queue.put(bytes(data))

    async def close(self, error: Optional[BaseException] = None) -> None:
        """
        Close the write end. The reader sees end-of-stream, or ``error``.
        """
        if self._closed:
            return
        self._closed = True
        await self._queue.put(_Closed(error))

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._read()

    async def _read(self) -> AsyncIterator[bytes]:
        while True:
            piece = await self._queue.get()
            if isinstance(piece, _Closed):
                if piece.error is not None:
                    raise piece.error
                return
            yield piece


class GzipStream:
    """
    Async byte stream that gzip-compresses a payload while it is being read.

    Each iteration starts a producer task writing compressed pieces into a
    BytePipe; the consumer (the HTTP client) reads the other end.
    """

    def __init__(
        self,
        payload: bytes,
        piece_size: int = STREAM_PIECE_SIZE_BYTES,
        level: int = zlib.Z_DEFAULT_COMPRESSION
    ):
        self.payload = payload
        self.piece_size = piece_size
        self.level = level

    def __aiter__(self) -> AsyncIterator[bytes]:
        return self._stream()

    async def _produce(self, pipe: BytePipe) -> None:
        try:
            compressor = zlib.compressobj(self.level, zlib.DEFLATED, GZIP_WBITS)
            view = memoryview(self.payload)
            for offset in range(0, len(view), self.piece_size):
                await pipe.write(compressor.compress(view[offset:offset + self.piece_size]))
            await pipe.write(compressor.flush())
        except Exception as e:
            await pipe.close(e)
        else:
            await pipe.close()

    async def _stream(self) -> AsyncIterator[bytes]:
        pipe = BytePipe()
        producer = asyncio.create_task(self._produce(pipe))
        try:
            async for piece in pipe:
                yield piece
        finally:
            # reader gone early: nobody drains the pipe any more
            if not producer.done():
                producer.cancel()


@dataclass
class EncodedPayload:
    """
    Request body plus the transport headers it requires.
    """
    content: Union[bytes, GzipStream]
    headers: Dict[str, str] = field(default_factory=dict)


def encode_payload(payload: bytes, compress: bool) -> EncodedPayload:
    """
    Prepare a chunk payload for sending.

    Args:
        payload: Raw chunk bytes
        compress: Whether to gzip the payload on the fly

    Returns:
        EncodedPayload; compressed payloads carry a Content-Encoding header
    """
    if not compress:
        return EncodedPayload(content=payload)

    return EncodedPayload(
        content=GzipStream(payload),
        headers={CONTENT_ENCODING_HEADER: GZIP_ENCODING},
    )
