"""Tests for producer models."""

import dataclasses

import pytest

from common.checksum import compute_fingerprint
from producer.exceptions import MalformedNameError
from producer.models import Chunk, ChunkResult, TransferReport


def test_chunk_computes_fingerprint_from_payload():
    chunk = Chunk(payload=b'payload', sequence_token='3')

    assert chunk.fingerprint == compute_fingerprint(b'payload')
    assert chunk.size == 7


def test_chunk_fingerprint_is_not_a_constructor_argument():
    with pytest.raises(TypeError):
        Chunk(payload=b'payload', sequence_token='3', fingerprint='deadbeef')


def test_chunk_is_immutable():
    chunk = Chunk(payload=b'payload', sequence_token='3')

    with pytest.raises(dataclasses.FrozenInstanceError):
        chunk.payload = b'other'


def test_chunk_requires_sequence_token():
    with pytest.raises(MalformedNameError):
        Chunk(payload=b'payload', sequence_token='')


def test_chunk_result_ok():
    assert ChunkResult('1', 10, status_code=200).ok
    assert ChunkResult('1', 0, status_code=204).ok
    assert not ChunkResult('1', 0, status_code=500, error='ChecksumFail').ok
    assert not ChunkResult('1', 0, error='ConnectError').ok


def test_transfer_report_failed():
    report = TransferReport(
        total_bytes=10,
        results=[ChunkResult('1', 10, 200), ChunkResult('2', 0, error='cancelled')],
    )

    assert [result.sequence_token for result in report.failed] == ['2']
