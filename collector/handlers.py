"""Terminal upload handler: envelope decoding and persistence."""

import logging

from fastapi import status
from starlette.concurrency import run_in_threadpool
from starlette.requests import Request
from starlette.responses import Response

from common.constants import CURRENT_FILE_COUNTER_HEADER
from common.envelope import EnvelopeDecodeError, decode_envelope
from collector.content import verified_content
from collector.exceptions import ParseError
from collector.guards import Handler
from collector.storage import ChunkStore


def upload_handler(store: ChunkStore, logger: logging.Logger) -> Handler:
    """
    Build the handler that persists one verified chunk.

    The raw decoded body, not the parsed envelope, is what gets written to
    ``<root>/<groupId>/<groupId>@<sequence>``.

    Args:
        store: Chunk storage layout
        logger: Request logger

    Returns:
        Handler answering 204 No Content on success
    """
    async def handler(request: Request) -> Response:
        sequence_token = request.headers.get(CURRENT_FILE_COUNTER_HEADER, "")
        content = await verified_content(request)

        try:
            envelope = decode_envelope(content)
        except EnvelopeDecodeError as e:
            logger.warning(f"Cannot parse envelope of chunk {sequence_token}: {e}")
            raise ParseError(str(e)) from e

        filepath = await run_in_threadpool(
            store.write_chunk, envelope.group_id, sequence_token, content
        )
        logger.info(
            f"Stored chunk {sequence_token} of transfer {envelope.group_id} "
            f"size={len(content)} path={filepath}"
        )
        return Response(status_code=status.HTTP_204_NO_CONTENT)

    return handler
