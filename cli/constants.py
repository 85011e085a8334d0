"""CLI constants and configuration."""

from prompt_toolkit.styles import Style

COMMANDS = ["upload", "list", "search", "download", "delete", "quota", "clear", "exit", "help"]

COMMAND_FLAGS = {
    "upload": "--encrypt",
    "download": "--decrypt",
}

STYLE = Style.from_dict(
    {
        "prompt": "#2E9E6B bold",
        "command": "#0088ff bold",
    }
)

GREEN = "\033[32m"
YELLOW = "\033[33m"
RESET = "\033[0m"

WELCOME_TITLE = "Stashnode CLI - Encrypted File Storage"
WELCOME_HELP = "Type 'help' for commands or 'exit' to quit.\n"

PROMPT_TEXT = "stash> "
PASSPHRASE_PROMPT = "Passphrase: "

DEFAULT_DOWNLOAD_DIR = "downloads"

HELP_TEXT = """Available commands:
  upload <path> [--encrypt]                   Upload a file (--encrypt asks for a passphrase)
  list                                        List stored files
  search <query>                              Find files by name or hash substring
  download <hash> [output_path] [--decrypt]   Download a file (--decrypt asks for a passphrase)
  delete <hash>                               Delete a stored file
  quota                                       Show storage usage
  clear                                       Clear screen and redisplay welcome message
  help                                        Show this help
  exit                                        Exit REPL

Passphrases are asked for on every encrypted upload or download and never stored.
Examples:
  upload notes.txt
  upload secret.pdf --encrypt
  search secret
  download 3f7a9c secret.pdf --decrypt"""
