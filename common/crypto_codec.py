"""
Passphrase-based symmetric encryption of raw bytes.

Envelope layout before Base64 encoding:

    [4 bytes MAGIC] [4 bytes KDF iterations (big endian)] [16 bytes salt]
    [12 bytes nonce] [AES-256-GCM ciphertext || 16 byte tag]

The key is PBKDF2-HMAC-SHA256(passphrase, salt, iterations). Salt and nonce
are fresh for every call, so encrypting the same bytes twice never yields the
same text. The Base64 output is plain ASCII and safe to ship as a text part.
"""

import base64
import binascii
import os
import struct
from typing import Union

from cryptography.exceptions import InvalidTag
from cryptography.hazmat.primitives import hashes
from cryptography.hazmat.primitives.ciphers.aead import AESGCM
from cryptography.hazmat.primitives.kdf.pbkdf2 import PBKDF2HMAC

from common.exceptions import DecryptionError

MAGIC = b"SNV1"
SALT_SIZE = 16
NONCE_SIZE = 12
TAG_SIZE = 16
KEY_SIZE = 32
KDF_ITERATIONS = 390_000
MAX_KDF_ITERATIONS = 10_000_000

_HEADER = struct.Struct(f">4sI{SALT_SIZE}s{NONCE_SIZE}s")


def derive_key(passphrase: str, salt: bytes, iterations: int) -> bytes:
    """Derive a 256-bit AES key from a passphrase."""
    kdf = PBKDF2HMAC(
        algorithm=hashes.SHA256(),
        length=KEY_SIZE,
        salt=salt,
        iterations=iterations,
    )
    return kdf.derive(passphrase.encode("utf-8"))


def encrypt(plaintext: bytes, passphrase: str) -> str:
    """
    Encrypt bytes under a passphrase.

    Args:
        plaintext: Raw bytes to protect (may be empty)
        passphrase: Human-supplied secret, never stored

    Returns:
        ASCII Base64 text of the envelope

    Raises:
        ValueError: If the passphrase is empty
    """
    if not passphrase:
        raise ValueError("Passphrase must not be empty")

    iterations = KDF_ITERATIONS
    salt = os.urandom(SALT_SIZE)
    nonce = os.urandom(NONCE_SIZE)
    key = derive_key(passphrase, salt, iterations)

    header = _HEADER.pack(MAGIC, iterations, salt, nonce)
    # The header is bound as associated data so the iteration count and
    # salt cannot be swapped without failing authentication.
    ciphertext = AESGCM(key).encrypt(nonce, plaintext, header)
    return base64.b64encode(header + ciphertext).decode("ascii")


def decrypt(ciphertext: Union[str, bytes], passphrase: str) -> bytes:
    """
    Decrypt text produced by encrypt().

    Args:
        ciphertext: Base64 envelope as returned by encrypt()
        passphrase: Passphrase used at encryption time

    Returns:
        The original plaintext bytes

    Raises:
        DecryptionError: If the passphrase is wrong or the text is malformed,
            truncated or tampered with
    """
    if not passphrase:
        raise DecryptionError("Passphrase must not be empty")

    if isinstance(ciphertext, bytes):
        try:
            ciphertext = ciphertext.decode("ascii")
        except UnicodeDecodeError:
            raise DecryptionError("Ciphertext is not ASCII text") from None

    try:
        envelope = base64.b64decode(ciphertext.strip(), validate=True)
    except (binascii.Error, ValueError):
        raise DecryptionError("Ciphertext is not valid Base64") from None

    if len(envelope) < _HEADER.size + TAG_SIZE:
        raise DecryptionError("Ciphertext is truncated")

    header = envelope[:_HEADER.size]
    magic, iterations, salt, nonce = _HEADER.unpack(header)
    if magic != MAGIC:
        raise DecryptionError("Unsupported ciphertext format")
    if not 0 < iterations <= MAX_KDF_ITERATIONS:
        raise DecryptionError("Invalid key derivation parameters")

    key = derive_key(passphrase, salt, iterations)
    try:
        return AESGCM(key).decrypt(nonce, envelope[_HEADER.size:], header)
    except InvalidTag:
        raise DecryptionError("Wrong passphrase or corrupted ciphertext") from None
