"""Utility functions for CLI output."""

from cli.constants import GREEN, RESET, YELLOW
from cli.models import RemoteFile


def format_file_size(size_bytes: int) -> str:
    """
    Format file size in bytes to human-readable format with appropriate unit.

    Uses binary units (1024-based) and automatically selects the most
    appropriate unit (B, KiB, MiB, GiB, TiB).

    Args:
        size_bytes: File size in bytes

    Returns:
        Formatted string with size and unit (e.g., "1.50 MiB", "512 B")
    """
    if size_bytes < 1024:
        return f"{size_bytes} B"

    units = ['KiB', 'MiB', 'GiB', 'TiB']
    size = size_bytes / 1024.0

    for unit in units:
        if size < 1024.0:
            return f"{size:.2f} {unit}"
        size /= 1024.0

    return f"{size:.2f} PiB"


def format_remote_file(remote: RemoteFile) -> str:
    """One listing line: short hash, lock marker, name, size and upload time."""
    marker = f"{YELLOW}[encrypted]{RESET} " if remote.is_encrypted else ""
    uploaded = remote.uploaded_at.strftime('%Y-%m-%d %H:%M')
    return (
        f"{GREEN}{remote.hash[:12]}{RESET}  {marker}{remote.name} "
        f"({format_file_size(remote.size)}, {uploaded})"
    )
