"""Command parser for CLI input."""

import shlex

from cli.models import (
    CommandRequest,
    DeleteCommand,
    DownloadCommand,
    ListCommand,
    QuotaCommand,
    SearchCommand,
    UploadCommand,
)


class ParseError(Exception):
    """Raised when command parsing fails."""

    pass


def parse_command(input_line: str) -> CommandRequest:
    """Parse user input into a CommandRequest object.

    Args:
        input_line: Raw user input from REPL

    Returns:
        CommandRequest object

    Raises:
        ParseError: If command syntax is invalid
    """
    if not input_line.strip():
        raise ParseError("Empty command")

    try:
        tokens = shlex.split(input_line)
    except ValueError as e:
        raise ParseError(f"Invalid syntax: {e}")

    if not tokens:
        raise ParseError("Empty command")

    command_name = tokens[0]

    if command_name == "upload":
        return _parse_upload(tokens[1:])
    elif command_name == "list":
        return _parse_list(tokens[1:])
    elif command_name == "search":
        return _parse_search(tokens[1:])
    elif command_name == "download":
        return _parse_download(tokens[1:])
    elif command_name == "delete":
        return _parse_delete(tokens[1:])
    elif command_name == "quota":
        return QuotaCommand()
    else:
        raise ParseError(f"Unknown command: {command_name}")


def _split_flag(args: list[str], flag: str) -> tuple[list[str], bool]:
    """Remove every occurrence of flag from args, report whether it was present."""
    remaining = [arg for arg in args if arg != flag]
    return remaining, len(remaining) != len(args)


def _parse_upload(args: list[str]) -> UploadCommand:
    """Parse 'upload <path> [--encrypt]' command."""
    args, encrypt = _split_flag(args, "--encrypt")
    if len(args) != 1:
        raise ParseError("upload requires exactly one file path")

    return UploadCommand(file_path=args[0], encrypt=encrypt)


def _parse_list(args: list[str]) -> ListCommand:
    """Parse 'list' command."""
    if args:
        raise ParseError("list takes no arguments (use search <query>)")
    return ListCommand()


def _parse_search(args: list[str]) -> SearchCommand:
    """Parse 'search <query>' command. Words are joined with single spaces."""
    return SearchCommand(query=" ".join(args))


def _parse_download(args: list[str]) -> DownloadCommand:
    """Parse 'download <hash> [output_path] [--decrypt]' command."""
    args, decrypt = _split_flag(args, "--decrypt")
    if not 1 <= len(args) <= 2:
        raise ParseError("download requires <hash> and optionally [output_path]")

    identifier = args[0]
    output_path = args[1] if len(args) > 1 else None

    return DownloadCommand(identifier=identifier, output_path=output_path, decrypt=decrypt)


def _parse_delete(args: list[str]) -> DeleteCommand:
    """Parse 'delete <hash>' command."""
    if len(args) != 1:
        raise ParseError("delete requires exactly one hash")

    return DeleteCommand(identifier=args[0])
