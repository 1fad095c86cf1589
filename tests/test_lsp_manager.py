# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for LanguageServerManager."""

import pytest

from codeshell.editor import CodeEditor, TextModel
from codeshell.lsp.connection import ConnectionState
from codeshell.lsp.manager import LanguageServerManager

from conftest import settle

BASE_URL = "http://localhost:3000"


def _manager(server, registry, markers) -> LanguageServerManager:
    return LanguageServerManager(
        BASE_URL, languages=registry, markers=markers, connector=server.connector, reconnect_delay=0
    )


class TestLanguageServerManager:
    """One connection per (language, document)."""

    @pytest.mark.asyncio
    async def test_unsupported_language_makes_no_network_call(self, server, registry, markers, editor):
        manager = _manager(server, registry, markers)

        assert await manager.connect("cobol", editor=editor) is None
        assert server.connect_calls == 0
        assert not manager.supports("cobol")

    @pytest.mark.asyncio
    async def test_connect_uses_language_endpoint(self, server, registry, markers, editor):
        manager = _manager(server, registry, markers)

        conn = await manager.connect("python", editor=editor)

        assert server.urls == ["ws://localhost:3000/lsp?languageId=python"]
        assert conn.document_uri == "file:///project/app.py"
        assert manager.get("python", "file:///project/app.py") is conn
        assert conn.options.reconnect_delay == 0
        await manager.dispose_all()

    @pytest.mark.asyncio
    async def test_reconnecting_same_document_replaces(self, server, registry, markers, editor):
        manager = _manager(server, registry, markers)

        first = await manager.connect("python", editor=editor)
        second = await manager.connect("python", editor=editor)
        await settle()

        assert first.state == ConnectionState.DISPOSED
        assert second.is_connected()
        assert registry.count("python") == 8
        await manager.dispose_all()

    @pytest.mark.asyncio
    async def test_several_documents(self, server, registry, markers):
        manager = _manager(server, registry, markers)
        py = CodeEditor(TextModel("x = 1", uri="file:///a.py", language_id="python"))
        ts = CodeEditor(TextModel("let x = 1", uri="file:///b.ts", language_id="typescript"))

        await manager.connect("python", editor=py)
        await manager.connect("typescript", editor=ts)

        status = manager.get_status()
        assert set(status) == {("python", "file:///a.py"), ("typescript", "file:///b.ts")}
        python_status = status[("python", "file:///a.py")]
        assert python_status.state == ConnectionState.CONNECTED
        assert python_status.server_name == "Pylsp"
        assert python_status.version == 1
        assert python_status.capabilities == ["completion", "hover", "definition"]

        servers = {s["language"]: s for s in manager.get_available_servers()}
        assert servers["python"]["connected"] is True
        assert servers["go"]["connected"] is False
        assert servers["go"]["url"] == "ws://localhost:3000/lsp?languageId=go"

        await manager.dispose_all()
        assert manager.get_status() == {}

    @pytest.mark.asyncio
    async def test_close(self, server, registry, markers, editor):
        manager = _manager(server, registry, markers)
        conn = await manager.connect("python", editor=editor)

        await manager.close("python", conn.document_uri)

        assert conn.state == ConnectionState.DISPOSED
        assert manager.get("python", conn.document_uri) is None
        assert registry.count("python") == 0

    @pytest.mark.asyncio
    async def test_context_manager_disposes_all(self, server, registry, markers, editor):
        async with _manager(server, registry, markers) as manager:
            conn = await manager.connect("python", editor=editor)
            assert conn.is_connected()

        assert conn.state == ConnectionState.DISPOSED
