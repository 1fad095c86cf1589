# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for the connection lifecycle: sync, diagnostics and reconnect."""

import asyncio
import re
from unittest.mock import MagicMock

import pytest

from codeshell.editor import types as host
from codeshell.lsp.config import LSPConnectionOptions
from codeshell.lsp.connection import ConnectionState, LSPConnection, connect_language_server
from codeshell.lsp.errors import LSPConnectionError, LSPDisposedError

from conftest import settle

WS_URL = "ws://localhost:3000/lsp?languageId=python"
DOC_URI = "file:///project/app.py"


def _options(**kwargs) -> LSPConnectionOptions:
    settings = {"language_id": "python", "ws_url": WS_URL, "document_uri": DOC_URI, "reconnect_delay": 0}
    settings.update(kwargs)
    return LSPConnectionOptions(**settings)


def _diagnostic(line: int, message: str, severity: int = 1) -> dict:
    return {
        "range": {"start": {"line": line, "character": 0}, "end": {"line": line, "character": 2}},
        "message": message,
        "severity": severity,
    }


async def _connect(server, editor, registry, markers, **kwargs) -> LSPConnection:
    return await connect_language_server(
        _options(**kwargs), editor=editor, languages=registry, markers=markers, connector=server.connector
    )


class TestConnect:
    """First connection and document open."""

    @pytest.mark.asyncio
    async def test_connect_registers_and_opens(self, server, editor, registry, markers):
        on_connected = MagicMock()
        conn = await _connect(server, editor, registry, markers, on_connected=on_connected)
        await settle()

        assert conn.state == ConnectionState.CONNECTED
        assert conn.is_connected()
        assert conn.client is not None and conn.client.is_connected
        assert registry.count("python") == 8
        assert len(conn.providers.providers) == 8
        on_connected.assert_called_once()

        opened = server.last("textDocument/didOpen")["params"]["textDocument"]
        assert opened == {"uri": DOC_URI, "languageId": "python", "version": 1, "text": "import os\nos.pa"}
        await conn.dispose()

    @pytest.mark.asyncio
    async def test_first_failure_propagates_without_retry(self, server, editor, registry, markers):
        server.fail_connect = True
        on_error = MagicMock()

        with pytest.raises(LSPConnectionError):
            await _connect(server, editor, registry, markers, on_error=on_error)
        await settle()

        assert server.connect_calls == 1
        on_error.assert_called_once()
        assert registry.count("python") == 0

    @pytest.mark.asyncio
    async def test_connect_twice_keeps_one_registration(self, server, editor, registry, markers):
        conn = await _connect(server, editor, registry, markers)
        first_socket = server.socket

        await conn.connect()
        await settle()

        assert server.connect_calls == 2
        assert first_socket.closed
        assert registry.count("python") == 8
        assert conn.state == ConnectionState.CONNECTED
        await conn.dispose()

    def test_default_document_uri(self):
        options = LSPConnectionOptions(language_id="rust", ws_url="ws://localhost:3000/lsp?languageId=rust")
        conn = LSPConnection(options)

        assert re.fullmatch(r"file:///untitled-\d+\.rust", conn.document_uri)
        assert conn.owner == "lsp-rust"
        assert conn.state == ConnectionState.DISCONNECTED

    @pytest.mark.asyncio
    async def test_works_without_editor(self, server):
        conn = await connect_language_server(_options(), connector=server.connector)
        await settle()

        assert conn.is_connected()
        assert server.last("textDocument/didOpen")["params"]["textDocument"]["text"] == ""
        await conn.dispose()


class TestDocumentSync:
    @pytest.mark.asyncio
    async def test_versions_increase_with_each_edit(self, server, editor, registry, markers, model):
        conn = await _connect(server, editor, registry, markers)
        for i in range(5):
            model.set_value(f"import os\nos.path{i}")
        await settle(50)

        changes = server.messages("textDocument/didChange")
        versions = [m["params"]["textDocument"]["version"] for m in changes]
        assert versions == [2, 3, 4, 5, 6]
        assert changes[-1]["params"]["contentChanges"] == [{"text": "import os\nos.path4"}]
        assert conn.version == 6
        await conn.dispose()

    @pytest.mark.asyncio
    async def test_edits_while_disconnected_not_sent(self, server, editor, registry, markers, model):
        conn = await _connect(server, editor, registry, markers, auto_reconnect=False)
        server.socket.server_close()
        await settle()

        model.set_value("changed")
        await settle()

        assert server.messages("textDocument/didChange") == []
        assert conn.state == ConnectionState.DISCONNECTED
        await conn.dispose()


class TestDiagnostics:
    """publishDiagnostics -> marker sink."""

    @pytest.mark.asyncio
    async def test_markers_replaced_wholesale(self, server, editor, registry, markers):
        conn = await _connect(server, editor, registry, markers)

        server.notify(
            "textDocument/publishDiagnostics",
            {"uri": DOC_URI, "diagnostics": [_diagnostic(0, "unused import", 2), _diagnostic(1, "no attribute")]},
        )
        await settle()
        current = markers.get_model_markers(uri=DOC_URI, owner="lsp-python")
        assert [m.message for m in current] == ["unused import", "no attribute"]
        assert current[0].severity == host.MarkerSeverity.WARNING
        assert current[1].range == host.IRange(2, 1, 2, 3)

        server.notify("textDocument/publishDiagnostics", {"uri": DOC_URI, "diagnostics": []})
        await settle()
        assert markers.get_model_markers(uri=DOC_URI, owner="lsp-python") == []
        assert conn.diagnostics() == []
        await conn.dispose()

    @pytest.mark.asyncio
    async def test_other_uri_recorded_not_applied(self, server, editor, registry, markers):
        conn = await _connect(server, editor, registry, markers)
        other = "file:///project/other.py"

        server.notify("textDocument/publishDiagnostics", {"uri": other, "diagnostics": [_diagnostic(0, "x")]})
        await settle()

        assert markers.get_model_markers() == []
        assert [d.message for d in conn.diagnostics(other)] == ["x"]
        await conn.dispose()


class TestServerMessages:
    @pytest.mark.asyncio
    async def test_show_message_always_forwarded(self, server, editor, registry, markers):
        on_server_message = MagicMock()
        conn = await _connect(server, editor, registry, markers, on_server_message=on_server_message)

        server.notify("window/showMessage", {"type": 3, "message": "Indexing done"})
        await settle()

        on_server_message.assert_called_once_with("Indexing done", "info", "python")
        await conn.dispose()

    @pytest.mark.asyncio
    async def test_log_message_only_errors_and_warnings(self, server, editor, registry, markers):
        on_server_message = MagicMock()
        conn = await _connect(server, editor, registry, markers, on_server_message=on_server_message)

        server.notify("window/logMessage", {"type": 4, "message": "verbose"})
        server.notify("window/logMessage", {"type": 3, "message": "info"})
        server.notify("window/logMessage", {"type": 2, "message": "deprecated setting"})
        server.notify("window/logMessage", {"type": 1, "message": "crashed"})
        await settle()

        assert [c.args for c in on_server_message.call_args_list] == [
            ("deprecated setting", "warning", "python"),
            ("crashed", "error", "python"),
        ]
        await conn.dispose()


class TestReconnect:
    """Bounded reconnect after the socket drops."""

    @pytest.mark.asyncio
    async def test_reconnects_and_reopens_document(self, server, editor, registry, markers, model):
        on_connected = MagicMock()
        on_disconnected = MagicMock()
        conn = await _connect(
            server, editor, registry, markers, on_connected=on_connected, on_disconnected=on_disconnected
        )
        model.set_value("v2")
        await settle()

        server.socket.server_close()
        await settle(100)

        assert conn.state == ConnectionState.CONNECTED
        assert server.connect_calls == 2
        assert conn.reconnect_attempts == 0
        assert registry.count("python") == 8
        on_disconnected.assert_called_once()
        assert on_connected.call_count == 2

        reopened = server.last("textDocument/didOpen")["params"]["textDocument"]
        assert reopened["version"] == 2
        assert reopened["text"] == "v2"

        model.set_value("v3")
        await settle()
        assert server.last("textDocument/didChange")["params"]["textDocument"]["version"] == 3
        await conn.dispose()

    @pytest.mark.asyncio
    async def test_gives_up_after_max_attempts(self, server, editor, registry, markers):
        on_error = MagicMock()
        conn = await _connect(server, editor, registry, markers, max_reconnect_attempts=3, on_error=on_error)

        server.fail_connect = True
        server.socket.server_close()
        await settle(200)

        assert server.connect_calls == 1 + 3
        assert conn.reconnect_attempts == 3
        assert conn.state == ConnectionState.DISCONNECTED
        assert registry.count("python") == 0
        assert on_error.call_count == 3
        await conn.dispose()

    @pytest.mark.asyncio
    async def test_no_reconnect_when_disabled(self, server, editor, registry, markers):
        on_disconnected = MagicMock()
        conn = await _connect(
            server, editor, registry, markers, auto_reconnect=False, on_disconnected=on_disconnected
        )

        server.socket.server_close()
        await settle(50)

        on_disconnected.assert_called_once()
        assert server.connect_calls == 1
        assert conn.state == ConnectionState.DISCONNECTED
        assert registry.count("python") == 0
        await conn.dispose()

    @pytest.mark.asyncio
    async def test_dispose_cancels_pending_reconnect(self, server, editor, registry, markers):
        conn = await _connect(server, editor, registry, markers, reconnect_delay=60000)

        server.socket.server_close()
        await settle()
        assert conn.state == ConnectionState.RECONNECTING

        await conn.dispose()
        await settle()

        assert conn.state == ConnectionState.DISPOSED
        assert server.connect_calls == 1


class TestDispose:
    @pytest.mark.asyncio
    async def test_dispose_releases_everything(self, server, editor, registry, markers, model):
        on_disconnected = MagicMock()
        conn = await _connect(server, editor, registry, markers, on_disconnected=on_disconnected)
        socket = server.socket

        await conn.dispose()
        await conn.dispose()
        model.set_value("after dispose")
        await settle()

        assert conn.state == ConnectionState.DISPOSED
        assert conn.client is None
        assert conn.providers is None
        assert registry.count("python") == 0
        assert socket.closed
        assert len(server.messages("exit")) == 1
        assert server.last("textDocument/didClose")["params"]["textDocument"]["uri"] == DOC_URI
        assert server.messages("textDocument/didChange") == []
        on_disconnected.assert_not_called()

        with pytest.raises(LSPDisposedError):
            await conn.connect()

    @pytest.mark.asyncio
    async def test_async_context_manager(self, server, editor, registry, markers):
        conn = LSPConnection(_options(), editor=editor, languages=registry, markers=markers, connector=server.connector)

        async with conn as connected:
            assert connected.is_connected()
            assert registry.count("python") == 8

        assert conn.state == ConnectionState.DISPOSED
        assert registry.count("python") == 0

    @pytest.mark.asyncio
    async def test_async_callbacks_logged_and_cancelled(self, server, editor, registry, markers, caplog):
        cancelled = asyncio.Event()

        async def on_connected():
            raise RuntimeError("status bar unavailable")

        async def on_server_message(message, severity, language_id):
            try:
                await asyncio.Event().wait()
            except asyncio.CancelledError:
                cancelled.set()
                raise

        conn = await _connect(
            server, editor, registry, markers, on_connected=on_connected, on_server_message=on_server_message
        )
        server.notify("window/showMessage", {"type": 3, "message": "indexing"})
        await settle()

        assert "status bar unavailable" in caplog.text
        assert conn.is_connected()

        await conn.dispose()
        await settle()
        assert cancelled.is_set()
