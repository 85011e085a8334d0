"""Utility helper functions for the storage node."""

from urllib.parse import quote


def parse_flag(value: str) -> bool:
    """
    Parse a multipart boolean field.

    Args:
        value: Field value ("true"/"false", any case)

    Returns:
        True only for "true"
    """
    return (value or '').strip().lower() == 'true'


def content_disposition(filename: str) -> str:
    """
    Build an attachment Content-Disposition header for a filename.

    Names that are not plain ASCII use the RFC 6266 filename* form so the
    header stays latin-1 encodable.
    """
    quoted = quote(filename)
    if quoted != filename:
        return f"attachment; filename*=utf-8''{quoted}"
    return f'attachment; filename="{filename}"'
