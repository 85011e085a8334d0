"""Content identifiers: SHA-256 digests of an object's plaintext bytes."""

import hashlib
import re

IDENTIFIER_PATTERN = re.compile(r'^[0-9a-f]{64}$')


def identify(data: bytes) -> str:
    """
    Compute the content identifier for given data.

    Args:
        data: Plaintext bytes of the object

    Returns:
        Hexadecimal SHA-256 digest (64 lowercase characters)
    """
    return hashlib.sha256(data).hexdigest()


def verify_identifier(data: bytes, expected: str) -> bool:
    """
    Verify that data matches an expected identifier.

    Args:
        data: Bytes to verify
        expected: Expected identifier (hex string)

    Returns:
        True if the identifier matches, False otherwise
    """
    return identify(data) == expected


def is_identifier(value: str) -> bool:
    """Check that value is a well-formed content identifier."""
    return bool(value) and IDENTIFIER_PATTERN.match(value) is not None


class IncrementalIdentifier:
    """
    Compute a content identifier incrementally for streamed data.

    Usage:
        ident = IncrementalIdentifier()
        ident.update(piece1)
        ident.update(piece2)
        identifier = ident.finalize()
    """

    def __init__(self):
        self._hasher = hashlib.sha256()
        self._size = 0
        self._finalized = False

    @property
    def size(self) -> int:
        """Number of bytes seen so far."""
        return self._size

    def update(self, data: bytes) -> None:
        if self._finalized:
            raise ValueError("Cannot update after finalization")
        self._hasher.update(data)
        self._size += len(data)

    def finalize(self) -> str:
        self._finalized = True
        return self._hasher.hexdigest()

    def reset(self) -> None:
        self._hasher = hashlib.sha256()
        self._size = 0
        self._finalized = False
