"""Shared pytest fixtures for all tests."""

import logging

import pytest
from fastapi.testclient import TestClient

from common.checksum import compute_fingerprint
from common.envelope import encode_envelope
from collector.config import CollectorConfig
from collector.main import create_app


@pytest.fixture
def storage_root(tmp_path):
    """
    Create a storage root for the collector.

    Args:
        tmp_path: pytest tmp_path fixture

    Returns:
        Path to the (not yet created) storage directory
    """
    return tmp_path / 'storage'


@pytest.fixture
def collector_logger():
    """Logger that propagates to pytest's caplog."""
    return logging.getLogger('tests.collector')


@pytest.fixture
def app(storage_root, collector_logger):
    """Collector application writing into a temporary storage root."""
    config = CollectorConfig(storage_path=storage_root, ssl_certfile=None, ssl_keyfile=None)
    return create_app(config, collector_logger)


@pytest.fixture
def client(app):
    """Create FastAPI test client."""
    return TestClient(app)


@pytest.fixture
def make_body():
    """Factory for serialized envelopes of a transfer."""
    def _make(group_id='abc', session_id=None):
        return encode_envelope(group_id, session_id)
    return _make


@pytest.fixture
def upload_headers():
    """Factory for valid protocol headers matching a body."""
    def _headers(body, current='1', total='2', **extra):
        headers = {
            'TOTAL_FILE_COUNT': total,
            'CURRENT_FILE_COUNTER': current,
            'checksum': compute_fingerprint(body),
        }
        headers.update(extra)
        return headers
    return _headers


@pytest.fixture
def chunk_dir(tmp_path):
    """
    Create a source directory with two chunks of transfer 'abc'.

    Returns:
        Path to directory holding abc@1 and abc@2
    """
    directory = tmp_path / 'chunks'
    directory.mkdir()
    (directory / 'abc@1').write_bytes(encode_envelope('abc', 'session-1'))
    (directory / 'abc@2').write_bytes(encode_envelope('abc', 'session-2'))
    return directory
