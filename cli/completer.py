"""Custom completer for the stash CLI with local path completion."""

from pathlib import Path
from typing import Iterable

from prompt_toolkit.completion import Completer, Completion
from prompt_toolkit.document import Document

from cli.constants import COMMAND_FLAGS, COMMANDS


class StashCompleter(Completer):
    """
    Custom completer that provides:
    - Command name completion for the first token
    - Flag completion (--encrypt, --decrypt) for the commands that take one
    - Local file path completion for 'upload' arguments
    """

    def get_completions(
        self, document: Document, complete_event
    ) -> Iterable[Completion]:
        text = document.text_before_cursor
        tokens = text.split()

        is_typing_new_token = text.endswith(" ") or not tokens

        if not tokens or (len(tokens) == 1 and not is_typing_new_token):
            yield from self._complete_commands(tokens[0] if tokens else "")
            return

        command = tokens[0].lower()
        current_word = "" if is_typing_new_token else tokens[-1]

        flag = COMMAND_FLAGS.get(command)
        if flag and flag not in tokens[1:] and flag.startswith(current_word):
            yield Completion(flag, start_position=-len(current_word))
            if current_word.startswith("-"):
                return

        if command == "upload":
            yield from self._complete_paths(current_word)

    def _complete_commands(self, partial: str) -> Iterable[Completion]:
        """Complete command names matching the partial input."""
        partial_lower = partial.lower()
        for cmd in COMMANDS:
            if cmd.startswith(partial_lower):
                yield Completion(cmd, start_position=-len(partial))

    def _complete_paths(self, partial: str) -> Iterable[Completion]:
        """
        Complete entries of the directory named by partial, relative to cwd.

        Directories complete with a trailing slash so completion can continue
        into them. Hidden entries are only offered once a dot is typed.
        """
        if partial.startswith("-"):
            return

        head, _, prefix = partial.rpartition("/")
        base = Path(head or ".").expanduser()
        if head == "" and partial.startswith("/"):
            base = Path("/")
        if not base.is_dir():
            return

        entries = []
        try:
            for item in base.iterdir():
                if not item.name.startswith(prefix):
                    continue
                if item.name.startswith(".") and not prefix.startswith("."):
                    continue
                entries.append(item)
        except OSError:
            return

        for item in sorted(entries, key=lambda p: p.name):
            completed = f"{head}/{item.name}" if head or partial.startswith("/") else item.name
            if item.is_dir():
                completed += "/"
            yield Completion(completed, start_position=-len(partial), display=item.name + ("/" if item.is_dir() else ""))
