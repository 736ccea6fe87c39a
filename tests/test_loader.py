"""Tests for the directory loader."""

import pytest

from common.checksum import compute_fingerprint
from producer.exceptions import ConfigurationError, MalformedNameError
from producer.loader import load_directory, parse_sequence_token


@pytest.mark.parametrize('name, token', [
    ('abc@1', '1'),
    ('detection-42.bin@0007', '0007'),
    ('@5', '5'),
])
def test_parse_sequence_token(name, token):
    assert parse_sequence_token(name) == token


@pytest.mark.parametrize('name', ['nodelimiter.bin', 'a@b@c', 'abc@', ''])
def test_parse_sequence_token_rejects_malformed(name):
    with pytest.raises(MalformedNameError):
        parse_sequence_token(name)


def test_malformed_name_is_configuration_error():
    assert issubclass(MalformedNameError, ConfigurationError)


def test_load_directory(chunk_dir):
    chunks = load_directory(chunk_dir)

    assert [chunk.sequence_token for chunk in chunks] == ['1', '2']
    for chunk in chunks:
        payload = (chunk_dir / f'abc@{chunk.sequence_token}').read_bytes()
        assert chunk.payload == payload
        assert chunk.fingerprint == compute_fingerprint(payload)


def test_load_empty_directory(tmp_path):
    assert load_directory(tmp_path) == []


def test_one_malformed_name_fails_whole_batch(chunk_dir):
    (chunk_dir / 'nodelimiter.bin').write_bytes(b'data')

    with pytest.raises(MalformedNameError):
        load_directory(chunk_dir)


def test_missing_directory_raises_oserror(tmp_path):
    with pytest.raises(OSError):
        load_directory(tmp_path / 'missing')


def test_unreadable_entry_fails_whole_batch(chunk_dir):
    (chunk_dir / 'nested@3').mkdir()

    with pytest.raises(OSError):
        load_directory(chunk_dir)
