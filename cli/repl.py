"""REPL with prompt_toolkit for user interaction."""

import os
import sys
from prompt_toolkit import PromptSession, prompt
from prompt_toolkit.history import InMemoryHistory

from cli.commands import (
    handle_delete,
    handle_download,
    handle_list,
    handle_quota,
    handle_search,
    handle_upload,
)
from cli.completer import StashCompleter
from cli.constants import (
    HELP_TEXT,
    PASSPHRASE_PROMPT,
    PROMPT_TEXT,
    STYLE,
    WELCOME_HELP,
    WELCOME_TITLE,
)
from cli.models import (
    DeleteCommand,
    DownloadCommand,
    ListCommand,
    QuotaCommand,
    SearchCommand,
    UploadCommand,
)
from cli.parser import ParseError, parse_command


def clear_screen() -> None:
    """Clear the terminal screen (cross-platform)."""
    if sys.platform == "win32":
        os.system("cls")
    else:
        os.system("clear")


def show_welcome() -> None:
    print(WELCOME_TITLE)
    print(WELCOME_HELP)


def ask_passphrase() -> str:
    """Read a passphrase without echoing it. The value lives only for one command."""
    return prompt(PASSPHRASE_PROMPT, is_password=True)


def dispatch_command(cmd_obj) -> str:
    """Dispatch parsed command to appropriate handler."""
    if isinstance(cmd_obj, UploadCommand):
        passphrase = ask_passphrase() if cmd_obj.encrypt else None
        return handle_upload(cmd_obj, passphrase=passphrase)
    elif isinstance(cmd_obj, ListCommand):
        return handle_list(cmd_obj)
    elif isinstance(cmd_obj, SearchCommand):
        return handle_search(cmd_obj)
    elif isinstance(cmd_obj, DownloadCommand):
        passphrase = ask_passphrase() if cmd_obj.decrypt else None
        return handle_download(cmd_obj, passphrase=passphrase)
    elif isinstance(cmd_obj, DeleteCommand):
        return handle_delete(cmd_obj)
    elif isinstance(cmd_obj, QuotaCommand):
        return handle_quota(cmd_obj)
    else:
        return f"Unknown command type: {type(cmd_obj)}"


def repl_loop() -> None:
    """Start interactive REPL with prompt_toolkit."""
    completer = StashCompleter()
    history = InMemoryHistory()
    session: PromptSession = PromptSession(
        completer=completer, history=history, style=STYLE
    )

    clear_screen()
    show_welcome()

    while True:
        try:
            user_input = session.prompt([("class:prompt", PROMPT_TEXT)])

            if not user_input.strip():
                continue

            if user_input.strip() == "exit":
                print("Goodbye!")
                break

            if user_input.strip() == "help":
                print(HELP_TEXT)
                continue

            if user_input.strip() == "clear":
                clear_screen()
                show_welcome()
                continue

            cmd_obj = parse_command(user_input)
            result = dispatch_command(cmd_obj)
            print(result)

        except ParseError as e:
            print(f"Error: {e}")
        except KeyboardInterrupt:
            continue
        except EOFError:
            print("\nGoodbye!")
            break
