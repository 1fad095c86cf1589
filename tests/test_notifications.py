# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for the console notifier."""

import io

from rich.console import Console

from codeshell.lsp.config import LSPConnectionOptions
from codeshell.lsp.errors import LSPConnectionError
from codeshell.lsp.notifications import ConsoleNotifier


def _notifier():
    buffer = io.StringIO()
    console = Console(file=buffer, force_terminal=False, color_system=None, width=200)
    return ConsoleNotifier("python", console=console), buffer


class TestConsoleNotifier:
    def test_lifecycle_messages(self):
        notifier, buffer = _notifier()
        notifier.on_connected()
        notifier.on_disconnected()
        notifier.on_error(LSPConnectionError("socket [closed]"))

        output = buffer.getvalue()
        assert "LSP connected: python" in output
        assert "LSP disconnected: python" in output
        assert "socket [closed]" in output

    def test_server_message_is_not_markup(self):
        notifier, buffer = _notifier()
        notifier.on_server_message("bad [bold]value[/bold]", "error", "python")

        output = buffer.getvalue()
        assert "[python] error:" in output
        assert "bad [bold]value[/bold]" in output

    def test_bind_sets_callbacks(self):
        notifier, _ = _notifier()
        options = LSPConnectionOptions(language_id="python", ws_url="ws://h/lsp?languageId=python")

        bound = notifier.bind(options)

        assert bound.on_connected == notifier.on_connected
        assert bound.on_server_message == notifier.on_server_message
        assert options.on_connected is None
        assert bound.ws_url == options.ws_url
