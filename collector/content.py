"""Reads and decodes upload request bodies.

A request body is a network stream and can be consumed only once. The first
caller of ``verified_content`` reads it, verifies the checksum header and
caches the verified buffer on ``request.state``.
"""

import zlib
from typing import AsyncIterator

from starlette.requests import Request

from common.checksum import verify_fingerprint
from common.constants import CHECKSUM_HEADER, CONTENT_ENCODING_HEADER, GZIP_ENCODING, GZIP_WBITS
from collector.exceptions import ChecksumFailError, DecodeError


async def _inflate(pieces: AsyncIterator[bytes]) -> bytes:
    buffer = bytearray()
    decompressor = None
    members = 0

    async for piece in pieces:
        while piece:
            if decompressor is None:
                decompressor = zlib.decompressobj(GZIP_WBITS)
            try:
                buffer += decompressor.decompress(piece)
            except zlib.error as e:
                raise DecodeError(f"Malformed gzip stream: {e}") from e

            if decompressor.eof:
                # concatenated gzip members
                piece = decompressor.unused_data
                decompressor = None
                members += 1
            else:
                piece = b""

    if decompressor is not None or members == 0:
        raise DecodeError("Truncated gzip stream")
    return bytes(buffer)


async def _read_all(pieces: AsyncIterator[bytes]) -> bytes:
    buffer = bytearray()
    async for piece in pieces:
        buffer += piece
    return bytes(buffer)


async def read_content(request: Request) -> bytes:
    """
    Materialize the request body, decompressing it when gzip-encoded.

    Args:
        request: Incoming upload request

    Returns:
        The decoded body

    Raises:
        DecodeError: If the body is truncated, malformed or uses an unsupported encoding
    """
    encoding = request.headers.get(CONTENT_ENCODING_HEADER, "").strip().lower()

    if encoding == GZIP_ENCODING:
        return await _inflate(request.stream())
    if encoding in ("", "identity"):
        return await _read_all(request.stream())
    raise DecodeError(f"Unsupported Content-Encoding '{encoding}'")


async def verified_content(request: Request) -> bytes:
    """
    Return the decoded body after checking it against the checksum header.

    Args:
        request: Incoming upload request

    Returns:
        The verified decoded body

    Raises:
        DecodeError: If the body cannot be decoded
        ChecksumFailError: If the fingerprint does not match
    """
    content = getattr(request.state, 'content', None)
    if content is not None:
        return content

    content = await read_content(request)
    expected = request.headers.get(CHECKSUM_HEADER, "")
    if not verify_fingerprint(content, expected):
        raise ChecksumFailError(f"Body fingerprint does not match checksum header '{expected}'")

    request.state.content = content
    return content
