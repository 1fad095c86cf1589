# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Shared fixtures: an in-memory WebSocket and a scripted language server."""

import asyncio
import json
from typing import Any, Dict, List, Optional, Set, Tuple

import pytest
from websockets.exceptions import ConnectionClosedError, ConnectionClosedOK

from codeshell.editor import CodeEditor, LanguageFeatureRegistry, MarkerService, TextModel

_CLOSED = object()
_ABORTED = object()


async def settle(rounds: int = 20) -> None:
    """Let queued tasks (writer, reader, callbacks) run."""
    for _ in range(rounds):
        await asyncio.sleep(0)


class FakeWebSocket:
    """In-memory stand-in for a websockets client connection."""

    def __init__(self, server: "FakeLanguageServer", url: str):
        self.server = server
        self.url = url
        self.closed = False
        self._incoming: asyncio.Queue = asyncio.Queue()

    async def send(self, data: str) -> None:
        if self.closed:
            raise ConnectionClosedOK(None, None)
        await self.server.handle(self, json.loads(data))

    async def close(self) -> None:
        if not self.closed:
            self.closed = True
            self._incoming.put_nowait(_CLOSED)

    def push(self, message: Any) -> None:
        """Deliver a frame to the client (dicts are JSON-encoded)."""
        self._incoming.put_nowait(message if isinstance(message, str) else json.dumps(message))

    def server_close(self, abnormal: bool = False) -> None:
        """Close the socket from the server side."""
        if not self.closed:
            self.closed = True
            self._incoming.put_nowait(_ABORTED if abnormal else _CLOSED)

    def __aiter__(self) -> "FakeWebSocket":
        return self

    async def __anext__(self) -> str:
        item = await self._incoming.get()
        if item is _CLOSED:
            raise StopAsyncIteration
        if item is _ABORTED:
            raise ConnectionClosedError(None, None)
        return item


class FakeLanguageServer:
    """Answers client requests from canned results.

    Attributes:
        results: method -> result returned for requests
        errors: method -> (code, message) JSON-RPC error answers
        hang: methods that never get an answer
        fail_connect: make the connector raise
        close_on_initialize: drop the socket instead of answering initialize
    """

    def __init__(self) -> None:
        self.results: Dict[str, Any] = {}
        self.errors: Dict[str, Tuple[int, str]] = {}
        self.hang: Set[str] = set()
        self.received: List[Dict[str, Any]] = []
        self.sockets: List[FakeWebSocket] = []
        self.urls: List[str] = []
        self.connect_calls = 0
        self.fail_connect = False
        self.close_on_initialize = False
        self.capabilities: Dict[str, Any] = {
            "completionProvider": {"triggerCharacters": ["."]},
            "hoverProvider": True,
            "definitionProvider": True,
        }

    async def connector(self, url: str) -> FakeWebSocket:
        self.connect_calls += 1
        self.urls.append(url)
        if self.fail_connect:
            raise OSError("Connection refused")
        ws = FakeWebSocket(self, url)
        self.sockets.append(ws)
        return ws

    @property
    def socket(self) -> FakeWebSocket:
        return self.sockets[-1]

    async def handle(self, ws: FakeWebSocket, message: Dict[str, Any]) -> None:
        self.received.append(message)
        method = message.get("method")
        if method is None or "id" not in message:
            return

        request_id = message["id"]
        if method in self.hang:
            return
        if method in self.errors:
            code, text = self.errors[method]
            ws.push({"jsonrpc": "2.0", "id": request_id, "error": {"code": code, "message": text}})
            return
        if method == "initialize":
            if self.close_on_initialize:
                ws.server_close()
                return
            ws.push({"jsonrpc": "2.0", "id": request_id, "result": {"capabilities": self.capabilities}})
            return
        ws.push({"jsonrpc": "2.0", "id": request_id, "result": self.results.get(method)})

    def notify(self, method: str, params: Any) -> None:
        self.socket.push({"jsonrpc": "2.0", "method": method, "params": params})

    def request(self, request_id: Any, method: str, params: Any) -> None:
        self.socket.push({"jsonrpc": "2.0", "id": request_id, "method": method, "params": params})

    def messages(self, method: str) -> List[Dict[str, Any]]:
        return [m for m in self.received if m.get("method") == method]

    def responses(self) -> List[Dict[str, Any]]:
        """Answers the client sent to server requests."""
        return [m for m in self.received if "method" not in m]

    def last(self, method: str) -> Optional[Dict[str, Any]]:
        found = self.messages(method)
        return found[-1] if found else None


@pytest.fixture
def server() -> FakeLanguageServer:
    return FakeLanguageServer()


@pytest.fixture
def model() -> TextModel:
    return TextModel("import os\nos.pa", uri="file:///project/app.py", language_id="python")


@pytest.fixture
def editor(model: TextModel) -> CodeEditor:
    return CodeEditor(model)


@pytest.fixture
def registry() -> LanguageFeatureRegistry:
    return LanguageFeatureRegistry()


@pytest.fixture
def markers() -> MarkerService:
    return MarkerService()
