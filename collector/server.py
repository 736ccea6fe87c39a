"""Serves the collector app over TLS with HTTP/2 via hypercorn."""

import logging

from fastapi import FastAPI
from hypercorn.asyncio import serve
from hypercorn.config import Config as HypercornConfig

from collector.config import CollectorConfig
from collector.shutdown import ShutdownController

# Offered during the TLS handshake, preferred first
ALPN_PROTOCOLS = ["h2", "http/1.1"]


def build_server_config(config: CollectorConfig, logger: logging.Logger) -> HypercornConfig:
    """
    Translate collector settings into a hypercorn configuration.

    Args:
        config: Collector configuration
        logger: Logger receiving hypercorn's error log

    Returns:
        hypercorn Config binding ``host:port``, with TLS and h2 when a
        certificate and key are configured
    """
    server_config = HypercornConfig()
    server_config.bind = [f"{config.host}:{config.port}"]
    server_config.graceful_timeout = config.grace_period
    server_config.loglevel = 'DEBUG' if config.debug else 'INFO'
    server_config.errorlog = logger
    server_config.accesslog = None

    if config.tls_enabled:
        server_config.certfile = config.ssl_certfile
        server_config.keyfile = config.ssl_keyfile
        server_config.alpn_protocols = list(ALPN_PROTOCOLS)
    return server_config


async def serve_collector(
    app: FastAPI,
    config: CollectorConfig,
    controller: ShutdownController,
    logger: logging.Logger,
    install_signals: bool = True
) -> None:
    """
    Serve ``app`` until the controller triggers shutdown.

    Args:
        app: Collector application
        config: Collector configuration
        controller: Shutdown controller; its ``wait`` is the server's shutdown trigger
        logger: Server logger
        install_signals: Route SIGINT/SIGTERM to the controller
    """
    server_config = build_server_config(config, logger)
    if config.tls_enabled:
        scheme, alpn = 'https', ','.join(server_config.alpn_protocols)
    else:
        scheme, alpn = 'http', '-'
    logger.info(
        f"Server is ready to handle requests at {scheme}://{config.host}:{config.port}"
        f"{config.upload_path} [alpn={alpn}]"
    )

    if install_signals:
        controller.install_signal_handlers()
    try:
        await serve(app, server_config, shutdown_trigger=controller.wait)
    finally:
        if install_signals:
            controller.remove_signal_handlers()
    logger.info("Server stopped")
