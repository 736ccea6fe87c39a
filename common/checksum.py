"""Provides chunk fingerprint calculation and verification helpers."""

import hashlib


def compute_fingerprint(data: bytes) -> str:
    """
    Compute the MD5 fingerprint for given data.

    Args:
        data: Bytes to fingerprint

    Returns:
        32-character lowercase hexadecimal digest
    """
    return hashlib.md5(data).hexdigest()


def verify_fingerprint(data: bytes, expected: str) -> bool:
    """
    Verify that data matches an expected fingerprint.

    Args:
        data: Bytes to verify
        expected: Expected fingerprint (hex string, case-insensitive)

    Returns:
        True if fingerprint matches, False otherwise
    """
    return compute_fingerprint(data) == expected.strip().lower()
