"""Entry point for the Collector service.
Builds the FastAPI app and serves it with hypercorn until interrupted.
"""

import argparse
import asyncio
import logging
import sys
from typing import List, Optional

import pydantic
from fastapi import FastAPI, Request, status
from fastapi.exception_handlers import http_exception_handler
from fastapi.responses import JSONResponse
from starlette.exceptions import HTTPException as StarletteHTTPException

from common.logging_config import setup_logging
from collector.config import CollectorConfig
from collector.exceptions import CollectorError, MethodNotAllowedError
from collector.guards import upload_pipeline
from collector.handlers import upload_handler
from collector.schemas import ErrorResponse, HealthResponse
from collector.server import serve_collector
from collector.shutdown import ShutdownController
from collector.storage import ChunkStore

UPLOAD_METHODS = ["GET", "HEAD", "POST", "PUT", "PATCH", "DELETE", "OPTIONS"]


def create_app(
    config: Optional[CollectorConfig] = None,
    logger: Optional[logging.Logger] = None,
    store: Optional[ChunkStore] = None
) -> FastAPI:
    """
    Build the collector application.

    Args:
        config: Server configuration (defaults to CollectorConfig())
        logger: Logger injected into guards and handlers
        store: Chunk store (defaults to one rooted at ``config.storage_path``)

    Returns:
        FastAPI application serving the upload endpoint
    """
    config = config or CollectorConfig()
    logger = logger or logging.getLogger('collector')

    app = FastAPI(
        title="chunkup Collector",
        description="Receives fingerprinted chunks and persists them per transfer",
        version="1.0.0"
    )
    app.state.config = config
    app.state.store = store or ChunkStore(config.storage_path)

    pipeline = upload_pipeline(upload_handler(app.state.store, logger), logger)

    @app.exception_handler(CollectorError)
    async def collector_error_handler(request: Request, exc: CollectorError):
        log = logger.error if exc.status_code >= 500 else logger.warning
        log(
            f"{exc.message_code}: {exc.message_text or '-'} "
            f"method={request.method} path={request.url.path}"
        )
        body = ErrorResponse(message_code=exc.message_code, message_text=exc.message_text)
        return JSONResponse(status_code=exc.status_code, content=body.model_dump())

    @app.exception_handler(StarletteHTTPException)
    async def routing_error_handler(request: Request, exc: StarletteHTTPException):
        # methods no route accepts get the collector error body too
        if exc.status_code == status.HTTP_405_METHOD_NOT_ALLOWED:
            return await collector_error_handler(
                request, MethodNotAllowedError(f"Method {request.method} not allowed")
            )
        return await http_exception_handler(request, exc)

    # every method is routed so the pipeline's method guard answers
    @app.api_route(config.upload_path, methods=UPLOAD_METHODS, include_in_schema=False)
    async def upload(request: Request):
        return await pipeline(request)

    @app.get("/health", response_model=HealthResponse)
    async def health_check():
        """
        Health check endpoint.
        Returns 200 if service is alive.
        """
        return HealthResponse(status="healthy", service="collector")

    return app


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(prog='chunkup-collector', description='Run the chunk collector server.')
    parser.add_argument('--host', help='bind address (overrides CHUNKUP_HOST)')
    parser.add_argument('--port', type=int, help='listen port (overrides CHUNKUP_PORT)')
    parser.add_argument('--storage', help='storage root (overrides CHUNKUP_STORAGE_PATH)')
    parser.add_argument('--debug', action='store_true', help='enable debug logging')
    return parser


def load_config(argv: Optional[List[str]] = None) -> CollectorConfig:
    """
    Merge environment configuration with command-line overrides.

    Raises:
        pydantic.ValidationError: If the merged configuration is invalid
    """
    args = build_parser().parse_args(argv)
    overrides = {
        'host': args.host,
        'port': args.port,
        'storage_path': args.storage,
        'debug': True if args.debug else None,
    }
    config = CollectorConfig.from_env()
    data = config.model_dump()
    data.update({key: value for key, value in overrides.items() if value is not None})
    return CollectorConfig(**data)


def main(argv: Optional[List[str]] = None) -> None:
    """Start the collector with hypercorn and graceful shutdown."""
    try:
        config = load_config(argv)
    except pydantic.ValidationError as e:
        print(f"Invalid configuration:\n{e}", file=sys.stderr)
        sys.exit(1)

    logger = setup_logging('collector', debug=config.debug)
    if config.debug:
        logger.info("Running in debug mode")
    if not config.tls_enabled:
        logger.warning("TLS disabled: serving plaintext HTTP, producers negotiate HTTP/2 only over TLS")
    logger.info("Server is starting...")

    app = create_app(config, logger)
    controller = ShutdownController(logger, grace_period=config.grace_period)
    try:
        asyncio.run(serve_collector(app, config, controller, logger))
    except KeyboardInterrupt:
        logger.info("Received keyboard interrupt")


if __name__ == "__main__":
    main()
