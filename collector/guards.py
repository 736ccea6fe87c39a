"""Composable request guards wrapping the upload handler.

A guard takes a handler and returns a handler. It either forwards the request
unchanged to the handler it wraps or short-circuits by raising a
CollectorError, which the application renders as a JSON error response.
"""

import logging
import time
from typing import Awaitable, Callable

from starlette.requests import Request
from starlette.responses import Response

from common.constants import (
    CHECKSUM_HEADER,
    CURRENT_FILE_COUNTER_HEADER,
    TOTAL_FILE_COUNT_HEADER,
)
from collector.content import verified_content
from collector.exceptions import (
    ChecksumFailError,
    CollectorError,
    CountingError,
    MethodNotAllowedError,
    MissingHeaderError,
)

Handler = Callable[[Request], Awaitable[Response]]
Guard = Callable[[Handler], Handler]


def chain(handler: Handler, *guards: Guard) -> Handler:
    """
    Wrap a handler in guards.

    Args:
        handler: Terminal handler
        *guards: Guards listed outermost first

    Returns:
        Handler running every guard in the listed order before ``handler``
    """
    for guard in reversed(guards):
        handler = guard(handler)
    return handler


def require_method(method: str) -> Guard:
    """Reject requests whose HTTP method is not ``method``."""
    def guard(next_handler: Handler) -> Handler:
        async def handler(request: Request) -> Response:
            if request.method != method:
                raise MethodNotAllowedError(f"Method {request.method} not allowed, use {method}")
            return await next_handler(request)
        return handler
    return guard


def access_log(logger: logging.Logger) -> Guard:
    """Log method, path, status and elapsed time once the request completes."""
    def guard(next_handler: Handler) -> Handler:
        async def handler(request: Request) -> Response:
            start_time = time.perf_counter()
            status_code = 500
            try:
                response = await next_handler(request)
                status_code = response.status_code
                return response
            except CollectorError as e:
                status_code = e.status_code
                raise
            finally:
                duration = time.perf_counter() - start_time
                logger.info(
                    f"Request completed: {request.method} {request.url.path} "
                    f"status={status_code} duration={duration:.3f}s"
                )
        return handler
    return guard


def require_header(header: str, message_code: str, logger: logging.Logger) -> Guard:
    """
    Reject requests where ``header`` is absent or blank.

    Args:
        header: Header name (case-insensitive)
        message_code: Code reported when the header is missing
        logger: Logger for rejections
    """
    def guard(next_handler: Handler) -> Handler:
        async def handler(request: Request) -> Response:
            if not request.headers.get(header, "").strip():
                logger.warning(f"Header {header} does not exist")
                raise MissingHeaderError(header, message_code)
            return await next_handler(request)
        return handler
    return guard


def counting_check(logger: logging.Logger) -> Guard:
    """
    Reject requests whose sequence number exceeds the announced total.

    Non-numeric sequence tokens are opaque and pass unchecked; the total must
    always be an integer.
    """
    def guard(next_handler: Handler) -> Handler:
        async def handler(request: Request) -> Response:
            total_raw = request.headers.get(TOTAL_FILE_COUNT_HEADER, "")
            current_raw = request.headers.get(CURRENT_FILE_COUNTER_HEADER, "")

            try:
                total = int(total_raw)
            except ValueError:
                logger.warning(f"Counting error: total '{total_raw}' is not an integer")
                raise CountingError(f"{TOTAL_FILE_COUNT_HEADER} '{total_raw}' is not an integer")

            try:
                current = int(current_raw)
            except ValueError:
                return await next_handler(request)

            if current > total:
                logger.warning(f"Counting error: current={current} total={total}")
                raise CountingError(
                    f"{CURRENT_FILE_COUNTER_HEADER} greater than {TOTAL_FILE_COUNT_HEADER}"
                )
            return await next_handler(request)
        return handler
    return guard


def verify_checksum(logger: logging.Logger) -> Guard:
    """
    Read and decode the body, and check it against the checksum header.

    The verified buffer is kept on the request, so the body is read once.
    """
    def guard(next_handler: Handler) -> Handler:
        async def handler(request: Request) -> Response:
            try:
                await verified_content(request)
            except ChecksumFailError:
                logger.warning(
                    f"Checksum error for chunk {request.headers.get(CURRENT_FILE_COUNTER_HEADER)}"
                )
                raise
            return await next_handler(request)
        return handler
    return guard


def upload_pipeline(handler: Handler, logger: logging.Logger) -> Handler:
    """
    Assemble the guard chain of the upload endpoint, cheapest check first.

    Args:
        handler: Terminal upload handler
        logger: Logger injected into every guard

    Returns:
        Guarded handler
    """
    return chain(
        handler,
        require_method("POST"),
        access_log(logger),
        require_header(TOTAL_FILE_COUNT_HEADER, "MissingHeaderTotalFileCount", logger),
        require_header(CURRENT_FILE_COUNTER_HEADER, "MissingHeaderCurrentFileCounter", logger),
        require_header(CHECKSUM_HEADER, "MissingHeaderCRC", logger),
        counting_check(logger),
        verify_checksum(logger),
    )
