"""HTTP/2 client dispatching one request per chunk to the collector."""

import asyncio
from typing import List, Optional

import httpx

from common.constants import (
    CHECKSUM_HEADER,
    CURRENT_FILE_COUNTER_HEADER,
    TOTAL_FILE_COUNT_HEADER,
)
from common.logging_config import get_logger
from producer.aggregator import Aggregator
from producer.config import ProducerConfig
from producer.encoder import encode_payload
from producer.exceptions import TransportError
from producer.models import Chunk, ChunkResult, TransferReport

logger = get_logger(__name__)

# Errors that make every request of the batch unbuildable
FATAL_REQUEST_ERRORS = (httpx.InvalidURL, httpx.UnsupportedProtocol)


def parse_acknowledged_bytes(body: str) -> int:
    """
    Parse the collector's acknowledged byte count.

    Args:
        body: Response body text

    Returns:
        The decimal integer in the body, or 0 when it is not one
    """
    try:
        return int(body.strip())
    except ValueError:
        return 0


def describe_error(response: httpx.Response) -> str:
    """
    Summarize a non-2xx collector response.

    Args:
        response: Collector response

    Returns:
        "<message_code>: <message_text>" for structured errors, else the status line
    """
    try:
        payload = response.json()
        code = payload['message_code']
        text = payload.get('message_text')
    except (ValueError, KeyError, TypeError):
        return f"HTTP {response.status_code}"
    return f"{code}: {text}" if text else str(code)


class ChunkUploader:
    """
    Dispatches chunks concurrently over one shared HTTP/2 client.

    One asyncio task is spawned per chunk; dispatches are spaced by
    ``budget / len(chunks)`` seconds but never wait for earlier responses.
    """

    def __init__(self, config: ProducerConfig, client: Optional[httpx.AsyncClient] = None):
        """
        Initialize uploader.

        Args:
            config: Producer configuration
            client: Optional pre-built client (owned by the caller)
        """
        self.config = config
        self._client = client

    def _create_client(self) -> httpx.AsyncClient:
        logger.info(
            f"Opening client [url={self.config.url}, http2={self.config.http2}, "
            f"verify_tls={self.config.verify_tls}]"
        )
        return httpx.AsyncClient(
            http2=self.config.http2,
            verify=self.config.verify_tls,
            timeout=self.config.timeout,
        )

    async def upload(
        self,
        chunks: List[Chunk],
        budget: float = 0.0,
        compress: bool = False,
        cancel: Optional[asyncio.Event] = None
    ) -> TransferReport:
        """
        Upload every chunk and wait until each one has been accounted for.

        Args:
            chunks: Chunks to send, in dispatch order
            budget: Total time budget in seconds spread over the dispatches
            compress: Whether to gzip payloads on the fly
            cancel: Shared cancellation signal; once set, unissued chunks are skipped

        Returns:
            TransferReport with the summed acknowledged bytes
        """
        cancel = cancel if cancel is not None else asyncio.Event()
        count = len(chunks)
        delay = budget / count if budget > 0 and count else 0.0

        owns_client = self._client is None
        client = self._client if self._client is not None else self._create_client()
        aggregator = Aggregator(expected=count)
        tasks = []
        try:
            aggregator.start()
            for index, chunk in enumerate(chunks):
                if index and delay:
                    await asyncio.sleep(delay)
                if cancel.is_set():
                    await aggregator.submit(
                        ChunkResult(sequence_token=chunk.sequence_token, error="cancelled")
                    )
                    continue
                tasks.append(asyncio.create_task(
                    self._dispatch(client, chunk, count, compress, aggregator, cancel)
                ))

            report = await aggregator.wait()
        finally:
            # unwind every dispatch before the client goes away
            for task in tasks:
                if not task.done():
                    task.cancel()
            await asyncio.gather(*tasks, return_exceptions=True)
            await aggregator.close()
            if owns_client:
                await client.aclose()

        logger.info(
            f"Upload finished: {count - len(report.failed)}/{count} chunks ok, "
            f"acknowledged={report.total_bytes} bytes"
        )
        return report

    async def _dispatch(
        self,
        client: httpx.AsyncClient,
        chunk: Chunk,
        total: int,
        compress: bool,
        aggregator: Aggregator,
        cancel: asyncio.Event
    ) -> None:
        result = ChunkResult(sequence_token=chunk.sequence_token)
        try:
            result = await self._send(client, chunk, total, compress)
        except FATAL_REQUEST_ERRORS as e:
            result.error = f"Request construction failed: {e}"
            logger.error(
                f"Cannot build request for chunk {chunk.sequence_token}: {e}; "
                f"cancelling remaining dispatches"
            )
            cancel.set()
        except TransportError as e:
            result.error = str(e)
            logger.warning(f"Chunk {chunk.sequence_token} failed: {e}")
        except Exception as e:
            result.error = f"{type(e).__name__}: {e}"
            logger.error(f"Unexpected error uploading chunk {chunk.sequence_token}: {e}", exc_info=True)
        finally:
            await aggregator.submit(result)

    async def _send(
        self,
        client: httpx.AsyncClient,
        chunk: Chunk,
        total: int,
        compress: bool
    ) -> ChunkResult:
        """
        Send one chunk and interpret the collector's answer.

        Raises:
            TransportError: On connection, TLS, timeout or protocol failures
        """
        encoded = encode_payload(chunk.payload, compress)
        headers = {
            TOTAL_FILE_COUNT_HEADER: str(total),
            CURRENT_FILE_COUNTER_HEADER: chunk.sequence_token,
            CHECKSUM_HEADER: chunk.fingerprint,
            "Content-Type": "application/octet-stream",
            **encoded.headers,
        }

        try:
            response = await client.post(self.config.url, content=encoded.content, headers=headers)
        except FATAL_REQUEST_ERRORS:
            raise
        except httpx.HTTPError as e:
            raise TransportError(f"{type(e).__name__}: {e}") from e

        result = ChunkResult(
            sequence_token=chunk.sequence_token,
            acknowledged_bytes=parse_acknowledged_bytes(response.text),
            status_code=response.status_code,
            http_version=response.http_version,
        )
        if response.is_success:
            logger.debug(
                f"Chunk {chunk.sequence_token} uploaded status={response.status_code} "
                f"acknowledged={result.acknowledged_bytes} [http_version={response.http_version}]"
            )
        else:
            result.error = describe_error(response)
            logger.warning(
                f"Collector rejected chunk {chunk.sequence_token}: "
                f"status={response.status_code} {result.error}"
            )
        return result
