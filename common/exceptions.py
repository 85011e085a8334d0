"""Error taxonomy shared by the storage node and the client."""


class StashError(Exception):
    """
    Base exception class for all stashnode errors.
    """
    pass


class ValidationError(StashError):
    """
    Raised when an upload is missing its file part, is empty, or carries
    an identifier that does not match its content.
    """
    pass


class NotFoundError(StashError):
    """
    Raised when no catalog entry matches the requested identifier.
    """
    pass


class BlobNotFoundError(NotFoundError):
    """
    Raised by the blob store when a storage key has no bytes on disk.
    """
    pass


class StorageCorruptedError(StashError):
    """
    Raised when a catalog entry references a blob that no longer exists,
    or when downloaded content does not match its identifier.
    """
    pass


class ConflictError(StashError):
    """
    Raised when an upload reuses an identifier that is already stored with
    different bytes or a different encryption flag.
    """
    pass


class PayloadTooLargeError(StashError):
    """
    Raised when an upload exceeds the node's configured size limit.
    """
    pass


class CatalogError(StashError):
    """
    Raised when the catalog snapshot cannot be written.
    """
    pass


class DecryptionError(StashError):
    """
    Raised when ciphertext cannot be authenticated under the given passphrase.
    """
    pass


class InvalidKeyError(DecryptionError):
    """
    Raised by the client when a downloaded file fails to decrypt.
    """
    pass
