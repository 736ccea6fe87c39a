"""Entry point for the Producer CLI.
Loads a chunk directory and uploads it to the collector.
"""

import argparse
import asyncio
import signal
import sys
from typing import List, Optional

import httpx
import pydantic

from common.logging_config import setup_logging
from producer.config import ProducerConfig
from producer.exceptions import ConfigurationError
from producer.loader import load_directory
from producer.uploader import ChunkUploader

EXIT_OK = 0
EXIT_CHUNKS_FAILED = 1
EXIT_CONFIGURATION_ERROR = 2

STOP_SIGNALS = (signal.SIGTERM, signal.SIGINT)

logger = setup_logging('producer')


def build_parser() -> argparse.ArgumentParser:
    parser = argparse.ArgumentParser(
        prog='chunkup-producer',
        description='Upload a directory of <name>@<sequence> chunks to a collector.'
    )
    parser.add_argument('directory', help='directory holding the chunk files')
    parser.add_argument('--compress', action='store_true', help='gzip each chunk on the fly')
    parser.add_argument(
        '--budget', type=float, default=0.0,
        help='total seconds to spread the dispatches over (default: no throttling)'
    )
    parser.add_argument('--url', help='collector upload URL (overrides CHUNKUP_URL)')
    parser.add_argument('--debug', action='store_true', help='enable debug logging')
    return parser


async def run(
    config: ProducerConfig,
    directory: str,
    budget: float = 0.0,
    compress: bool = False,
    client: Optional[httpx.AsyncClient] = None
) -> int:
    """
    Load and upload one directory.

    SIGINT and SIGTERM stop further dispatches; requests already sent
    still complete and are counted.

    Args:
        config: Producer configuration
        directory: Source directory
        budget: Total dispatch time budget in seconds
        compress: Whether to gzip payloads
        client: Optional pre-built HTTP client

    Returns:
        Process exit code
    """
    try:
        chunks = load_directory(directory)
    except ConfigurationError as e:
        logger.error(f"Invalid chunk directory: {e}")
        return EXIT_CONFIGURATION_ERROR
    except OSError as e:
        logger.error(f"Cannot read chunk directory: {e}")
        return EXIT_CONFIGURATION_ERROR

    cancel = asyncio.Event()
    loop = asyncio.get_running_loop()
    handle_signals = sys.platform != 'win32'
    if handle_signals:
        for sig in STOP_SIGNALS:
            loop.add_signal_handler(sig, cancel.set)

    try:
        uploader = ChunkUploader(config, client=client)
        report = await uploader.upload(chunks, budget=budget, compress=compress, cancel=cancel)
    finally:
        if handle_signals:
            for sig in STOP_SIGNALS:
                loop.remove_signal_handler(sig)

    for result in report.failed:
        logger.warning(f"Chunk {result.sequence_token} not stored: {result.error}")
    print(report.total_bytes)

    return EXIT_CHUNKS_FAILED if report.failed else EXIT_OK


def main(argv: Optional[List[str]] = None) -> int:
    """Bootstrap the producer CLI."""
    args = build_parser().parse_args(argv)
    setup_logging('producer', debug=args.debug)

    try:
        config = ProducerConfig.from_env()
        if args.url:
            config = ProducerConfig(**{**config.model_dump(), 'url': args.url})
    except pydantic.ValidationError as e:
        logger.error(f"Invalid configuration: {e}")
        return EXIT_CONFIGURATION_ERROR

    return asyncio.run(run(config, args.directory, args.budget, args.compress))


if __name__ == "__main__":
    sys.exit(main())
