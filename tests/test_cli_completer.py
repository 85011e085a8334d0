"""Tests for StashCompleter."""

import pytest

from prompt_toolkit.document import Document

from cli.completer import StashCompleter
from cli.constants import COMMANDS


@pytest.fixture
def completer():
    """Create a StashCompleter instance."""
    return StashCompleter()


@pytest.fixture
def workdir(tmp_path, monkeypatch):
    """
    Switch into a temporary directory holding a few files.

    Returns:
        Path to the temporary working directory
    """
    (tmp_path / "notes.txt").write_text("content")
    (tmp_path / "numbers.csv").write_text("content")
    (tmp_path / ".hidden").write_text("content")
    docs = tmp_path / "docs"
    docs.mkdir()
    (docs / "report.pdf").write_text("content")
    monkeypatch.chdir(tmp_path)
    return tmp_path


def get_completions_list(completer, text):
    """Helper to get list of completion texts from completer."""
    doc = Document(text, len(text))
    return [c.text for c in completer.get_completions(doc, None)]


class TestCommandCompletion:

    def test_empty_input_offers_all_commands(self, completer):
        assert get_completions_list(completer, "") == COMMANDS

    def test_partial_command(self, completer):
        assert get_completions_list(completer, "d") == ["download", "delete"]

    def test_partial_is_case_insensitive(self, completer):
        assert get_completions_list(completer, "UP") == ["upload"]

    def test_unknown_prefix(self, completer):
        assert get_completions_list(completer, "xyz") == []


class TestFlagCompletion:

    def test_download_flag(self, completer):
        assert get_completions_list(completer, "download abc --d") == ["--decrypt"]

    def test_flag_not_repeated(self, completer, workdir):
        assert "--encrypt" not in get_completions_list(completer, "upload --encrypt ")

    def test_commands_without_flags(self, completer):
        assert get_completions_list(completer, "delete --") == []
        assert get_completions_list(completer, "list ") == []


class TestPathCompletion:

    def test_upload_lists_visible_entries(self, completer, workdir):
        completions = get_completions_list(completer, "upload ")

        assert completions == ["--encrypt", "docs/", "notes.txt", "numbers.csv"]

    def test_upload_prefix(self, completer, workdir):
        assert get_completions_list(completer, "upload nu") == ["numbers.csv"]

    def test_upload_into_subdirectory(self, completer, workdir):
        assert get_completions_list(completer, "upload docs/") == ["docs/report.pdf"]

    def test_hidden_files_need_a_dot(self, completer, workdir):
        assert get_completions_list(completer, "upload .h") == [".hidden"]

    def test_missing_directory(self, completer, workdir):
        assert get_completions_list(completer, "upload nowhere/x") == []

    def test_download_does_not_complete_paths(self, completer, workdir):
        assert get_completions_list(completer, "download no") == []
