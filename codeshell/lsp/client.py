# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.
# You may obtain a copy of the License at
#
#     http://www.apache.org/licenses/LICENSE-2.0
#
# Unless required by applicable law or agreed to in writing, software
# distributed under the License is distributed on an "AS IS" BASIS,
# WITHOUT WARRANTIES OR CONDITIONS OF ANY KIND, either express or implied.
# See the License for the specific language governing permissions and
# limitations under the License.

"""LSP client implementation over a WebSocket JSON-RPC channel.

One client owns one socket. Every JSON-RPC message travels as a single
WebSocket text frame (no Content-Length framing). The client performs the
initialize/initialized handshake, keeps a table of pending requests keyed
by id, and raises server notifications to callbacks.

Sequence: socket open -> initialize -> initialized -> connected.
"""

import asyncio
import json
import logging
import os
from typing import Any, Awaitable, Callable, Dict, List, Optional, Set

import websockets
from websockets.exceptions import ConnectionClosed, ConnectionClosedError

from codeshell.lsp.errors import (
    LSPConnectionError,
    LSPDisposedError,
    LSPError,
    LSPRequestError,
)
from codeshell.lsp.types import Diagnostic, FormattingOptions, Position, as_list, coerce_int

logger = logging.getLogger(__name__)

# Opens a socket for a URL; the result must support send(), close() and async iteration
Connector = Callable[[str], Awaitable[Any]]

METHOD_NOT_FOUND = -32601

CLIENT_CAPABILITIES: Dict[str, Any] = {
    "textDocument": {
        "synchronization": {
            "dynamicRegistration": False,
            "willSave": False,
            "willSaveWaitUntil": False,
            "didSave": True,
        },
        "completion": {
            "dynamicRegistration": False,
            "completionItem": {
                "snippetSupport": True,
                "documentationFormat": ["markdown", "plaintext"],
                "resolveSupport": {"properties": ["documentation", "detail"]},
            },
            "contextSupport": True,
        },
        "hover": {
            "dynamicRegistration": False,
            "contentFormat": ["markdown", "plaintext"],
        },
        "signatureHelp": {
            "dynamicRegistration": False,
            "signatureInformation": {
                "documentationFormat": ["markdown", "plaintext"],
                "parameterInformation": {"labelOffsetSupport": True},
            },
        },
        "definition": {"dynamicRegistration": False},
        "references": {"dynamicRegistration": False},
        "documentSymbol": {
            "dynamicRegistration": False,
            "hierarchicalDocumentSymbolSupport": True,
        },
        "formatting": {"dynamicRegistration": False},
        "rename": {"dynamicRegistration": False, "prepareSupport": True},
        "publishDiagnostics": {
            "relatedInformation": True,
            "tagSupport": {"valueSet": [1, 2]},
        },
        "codeAction": {
            "dynamicRegistration": False,
            "codeActionLiteralSupport": {
                "codeActionKind": {"valueSet": ["quickfix", "refactor", "source"]},
            },
        },
    },
    "workspace": {
        "workspaceFolders": False,
        "configuration": False,
    },
}


async def _websocket_connector(url: str) -> Any:
    return await websockets.connect(url, max_size=None, ping_interval=20, ping_timeout=20)


class LSPClient:
    """Client for a language server reached over a WebSocket."""

    def __init__(
        self,
        ws_url: str,
        language_id: str,
        document_uri: str,
        root_uri: Optional[str] = None,
        *,
        on_diagnostics: Optional[Callable[[str, List[Diagnostic]], Any]] = None,
        on_show_message: Optional[Callable[[Dict[str, Any]], Any]] = None,
        on_log_message: Optional[Callable[[Dict[str, Any]], Any]] = None,
        on_open: Optional[Callable[[], Any]] = None,
        on_connected: Optional[Callable[[], Any]] = None,
        on_disconnected: Optional[Callable[[], Any]] = None,
        on_error: Optional[Callable[[Exception], Any]] = None,
        request_timeout: Optional[float] = None,
        connector: Optional[Connector] = None,
    ):
        """Initialize the LSP client.

        Args:
            ws_url: WebSocket URL of the server
            language_id: LSP language identifier
            document_uri: URI of the document this client synchronizes
            root_uri: Root URI of the workspace
            on_diagnostics: Called with (uri, diagnostics) on publishDiagnostics
            on_show_message: Called with window/showMessage(Request) params
            on_log_message: Called with window/logMessage params
            on_open: Called when the socket is open and the handshake starts
            on_connected: Called once the handshake completed
            on_disconnected: Called when an established connection closes
            on_error: Called on transport errors
            request_timeout: Optional per-request timeout in seconds
            connector: Socket factory (defaults to websockets.connect)
        """
        self.ws_url = ws_url
        self.language_id = language_id
        self.document_uri = document_uri
        self.root_uri = root_uri
        self._on_diagnostics = on_diagnostics
        self._on_show_message = on_show_message
        self._on_log_message = on_log_message
        self._on_open = on_open
        self._on_connected = on_connected
        self._on_disconnected = on_disconnected
        self._on_error = on_error
        self._request_timeout = request_timeout
        self._connector = connector or _websocket_connector

        self._ws: Any = None
        self._request_id = 0
        self._pending_requests: Dict[int, asyncio.Future] = {}
        self._outgoing: Optional[asyncio.Queue] = None
        self._reader_task: Optional[asyncio.Task] = None
        self._writer_task: Optional[asyncio.Task] = None
        self._callback_tasks: Set[asyncio.Task] = set()
        self._connected = False
        self._closed = False
        self._disposed = False
        self._capabilities: Dict[str, Any] = {}
        self._diagnostics: Dict[str, List[Diagnostic]] = {}
        self._notification_handlers: Dict[str, List[Callable[[Dict[str, Any]], Any]]] = {}
        self._builtin_handlers: Dict[str, Callable[[Dict[str, Any]], None]] = {
            "textDocument/publishDiagnostics": self._handle_publish_diagnostics,
            "window/showMessage": self._handle_show_message,
            "window/logMessage": self._handle_log_message,
        }

    @property
    def is_connected(self) -> bool:
        """True once the handshake completed and until close or dispose."""
        return self._connected and not self._disposed

    @property
    def is_disposed(self) -> bool:
        return self._disposed

    @property
    def capabilities(self) -> Dict[str, Any]:
        """Server capabilities from the initialize response."""
        return self._capabilities

    @property
    def pending_request_count(self) -> int:
        return len(self._pending_requests)

    async def start(self) -> None:
        """Open the socket and perform the LSP handshake.

        Raises:
            LSPConnectionError: If the socket cannot be opened, or closes or
                the initialize request fails before the handshake completes
            LSPDisposedError: If the client was already disposed
        """
        if self._disposed:
            raise LSPDisposedError("Client has been disposed")
        if self._ws is not None:
            raise LSPError("Client already started")

        logger.info(f"Connecting to {self.language_id} language server at {self.ws_url}")
        try:
            self._ws = await self._connector(self.ws_url)
        except Exception as e:
            self._closed = True
            error = LSPConnectionError(f"WebSocket connection failed for {self.language_id}: {e}")
            self._emit(self._on_error, error)
            raise error from e

        self._outgoing = asyncio.Queue()
        self._reader_task = asyncio.create_task(self._read_messages())
        self._writer_task = asyncio.create_task(self._write_messages())
        self._emit(self._on_open)

        try:
            await self._initialize()
        except (LSPError, TimeoutError, asyncio.TimeoutError) as e:
            await self._shutdown(send_exit=False)
            raise LSPConnectionError(f"LSP initialize failed for {self.language_id}: {e}") from e

        self._connected = True
        logger.info(f"LSP server for {self.language_id} initialized")
        self._emit(self._on_connected)

    async def _initialize(self) -> None:
        """Send initialize, store the capabilities, then send initialized."""
        params = {
            "processId": os.getpid(),
            "clientInfo": {"name": "codeshell"},
            "rootUri": self.root_uri,
            "capabilities": CLIENT_CAPABILITIES,
        }

        result = await self._send_request("initialize", params, timeout=self._request_timeout)
        if isinstance(result, dict) and isinstance(result.get("capabilities"), dict):
            self._capabilities = result["capabilities"]

        self._send_notification("initialized", {})

    async def dispose(self) -> None:
        """Send exit, close the socket and fail every pending request.

        Safe to call more than once; no callback fires afterwards.
        """
        if self._disposed:
            return
        self._disposed = True
        self._connected = False
        self._fail_pending(LSPDisposedError(f"{self.language_id} client disposed"))
        await self._shutdown(send_exit=self._ws is not None and not self._closed)
        current = asyncio.current_task()
        for task in list(self._callback_tasks):
            if task is not current and not task.done():
                task.cancel()
        logger.info(f"LSP client for {self.language_id} disposed")

    async def _shutdown(self, send_exit: bool) -> None:
        self._closed = True
        self._connected = False

        current = asyncio.current_task()
        for task in (self._writer_task, self._reader_task):
            if task is None or task is current or task.done():
                continue
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        self._fail_pending(LSPConnectionError(f"Connection to {self.language_id} server closed"))

        if self._ws is None:
            return
        if send_exit:
            # Flush what the writer had not sent yet, then exit
            pending: List[Dict[str, Any]] = []
            while self._outgoing is not None and not self._outgoing.empty():
                pending.append(self._outgoing.get_nowait())
            pending.append({"jsonrpc": "2.0", "method": "exit"})
            try:
                for message in pending:
                    await self._ws.send(json.dumps(message))
            except Exception as e:
                logger.debug(f"Failed to send exit: {e}")
        await self._close_socket()

    async def _close_socket(self) -> None:
        try:
            await self._ws.close()
        except Exception as e:
            logger.debug(f"Error closing socket: {e}")

    # JSON-RPC plumbing

    def _get_next_id(self) -> int:
        """Get next request ID."""
        self._request_id += 1
        return self._request_id

    async def _send_request(self, method: str, params: Any, timeout: Optional[float] = None) -> Any:
        """Send a request to the server and wait for the response.

        Args:
            method: LSP method name
            params: Request parameters
            timeout: Timeout in seconds (None waits until the connection closes)

        Returns:
            Response result
        """
        if self._closed or self._ws is None:
            raise LSPConnectionError(f"Cannot send {method}: not connected")

        request_id = self._get_next_id()
        future: asyncio.Future = asyncio.get_running_loop().create_future()
        self._pending_requests[request_id] = future

        self._write_message({"jsonrpc": "2.0", "id": request_id, "method": method, "params": params})

        try:
            if timeout is None:
                return await future
            return await asyncio.wait_for(future, timeout=timeout)
        except asyncio.TimeoutError:
            raise TimeoutError(f"Request {method} timed out")
        finally:
            self._pending_requests.pop(request_id, None)

    def _send_notification(self, method: str, params: Any = None) -> None:
        """Send a notification to the server (no response expected)."""
        message: Dict[str, Any] = {"jsonrpc": "2.0", "method": method}
        if params is not None:
            message["params"] = params
        self._write_message(message)

    def _send_response(self, request_id: Any, result: Any = None, error: Optional[Dict[str, Any]] = None) -> None:
        message: Dict[str, Any] = {"jsonrpc": "2.0", "id": request_id}
        if error is not None:
            message["error"] = error
        else:
            message["result"] = result
        self._write_message(message)

    def _write_message(self, message: Dict[str, Any]) -> None:
        """Queue a message; the writer task sends them in order."""
        if self._outgoing is None or self._closed:
            return
        self._outgoing.put_nowait(message)

    async def _write_messages(self) -> None:
        assert self._outgoing is not None
        while True:
            message = await self._outgoing.get()
            try:
                await self._ws.send(json.dumps(message))
            except ConnectionClosed:
                logger.debug("Socket closed while writing")
                return
            except Exception as e:
                logger.error(f"Failed to write to server: {e}")
                # Outgoing channel is gone
                self._on_transport_closed(e)
                await self._close_socket()
                return
            logger.debug(f"LSP -> {message.get('method', message.get('id'))}")

    async def _read_messages(self) -> None:
        """Read messages until the socket closes."""
        error: Optional[Exception] = None
        try:
            async for raw in self._ws:
                self._handle_raw(raw)
        except ConnectionClosedError as e:
            error = e
        except ConnectionClosed:
            pass
        except Exception as e:
            logger.error(f"Error reading from server: {e}")
            error = e
        self._on_transport_closed(error)
        if error is not None and not isinstance(error, ConnectionClosed):
            await self._close_socket()

    def _handle_raw(self, raw: Any) -> None:
        if isinstance(raw, bytes):
            raw = raw.decode("utf-8", errors="replace")
        try:
            message = json.loads(raw)
        except (TypeError, json.JSONDecodeError):
            logger.error(f"Failed to parse message: {str(raw)[:100]}")
            return
        if not isinstance(message, dict):
            logger.warning("Ignoring JSON-RPC message that is not an object")
            return
        try:
            self._handle_message(message)
        except Exception:
            # Drop the frame, keep the session
            logger.exception(f"Failed to handle message: {str(message)[:100]}")

    def _handle_message(self, message: Dict[str, Any]) -> None:
        """Route a message from the server."""
        if self._disposed:
            return
        method = message.get("method")
        if "id" in message and method is None:
            self._handle_response(message)
        elif isinstance(method, str) and "id" in message:
            self._handle_request(message["id"], method, message.get("params"))
        elif isinstance(method, str):
            params = message.get("params")
            self._handle_notification(method, params if isinstance(params, dict) else {})
        else:
            logger.debug(f"Dropping unrecognized message: {str(message)[:100]}")

    def _handle_response(self, message: Dict[str, Any]) -> None:
        request_id = message.get("id")
        future = self._pending_requests.pop(request_id, None) if isinstance(request_id, (int, str)) else None
        if future is None:
            logger.debug(f"Response for unknown request id {request_id!r}")
            return
        if future.done():
            return

        error = message.get("error")
        if error is not None:
            error = error if isinstance(error, dict) else {}
            future.set_exception(
                LSPRequestError(
                    coerce_int(error.get("code"), minimum=-(2**31), default=0),
                    str(error.get("message", "Unknown error")),
                    error.get("data"),
                )
            )
        else:
            future.set_result(message.get("result"))

    def _handle_request(self, request_id: Any, method: str, params: Any) -> None:
        """Answer a server -> client request."""
        if method == "window/showMessageRequest":
            # No interactive prompts: surface the message, select no action
            self._emit(self._on_show_message, params if isinstance(params, dict) else {})
            self._send_response(request_id, None)
            return

        logger.debug(f"Unsupported server request {method}")
        self._send_response(
            request_id,
            error={"code": METHOD_NOT_FOUND, "message": f"Unhandled method {method}"},
        )

    def _handle_notification(self, method: str, params: Dict[str, Any]) -> None:
        builtin = self._builtin_handlers.get(method)
        if builtin is not None:
            builtin(params)

        handlers = self._notification_handlers.get(method, [])
        for handler in handlers:
            try:
                handler(params)
            except Exception as e:
                logger.error(f"Notification handler error: {e}")

        if builtin is None and not handlers:
            logger.debug(f"Unhandled notification {method}")

    def _handle_publish_diagnostics(self, params: Dict[str, Any]) -> None:
        uri = params.get("uri")
        if not isinstance(uri, str):
            logger.warning("publishDiagnostics without a uri")
            return
        diagnostics = [
            Diagnostic.from_dict(d) for d in as_list(params.get("diagnostics")) if isinstance(d, dict)
        ]
        # Each notification is the full current set for the uri
        self._diagnostics[uri] = diagnostics
        logger.debug(f"Received {len(diagnostics)} diagnostics for {uri}")
        self._emit(self._on_diagnostics, uri, diagnostics)

    def _handle_show_message(self, params: Dict[str, Any]) -> None:
        self._emit(self._on_show_message, params)

    def _handle_log_message(self, params: Dict[str, Any]) -> None:
        self._emit(self._on_log_message, params)

    def _on_transport_closed(self, error: Optional[Exception]) -> None:
        if self._closed:
            return
        self._closed = True
        was_connected = self._connected
        self._connected = False
        self._fail_pending(LSPConnectionError(f"Connection to {self.language_id} server closed"))
        writer = self._writer_task
        if writer is not None and writer is not asyncio.current_task() and not writer.done():
            writer.cancel()

        if self._disposed or not was_connected:
            return
        if error is not None:
            self._emit(self._on_error, LSPConnectionError(f"Connection to {self.language_id} server lost: {error}"))
        logger.info(f"LSP connection for {self.language_id} closed")
        self._emit(self._on_disconnected)

    def _fail_pending(self, error: Exception) -> None:
        pending, self._pending_requests = self._pending_requests, {}
        for future in pending.values():
            if not future.done():
                future.set_exception(error)

    def _emit(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        """Invoke a callback unless disposed; failures are logged, never raised."""
        if callback is None or self._disposed:
            return
        try:
            result = callback(*args)
            if asyncio.iscoroutine(result):
                task = asyncio.ensure_future(result)
                self._callback_tasks.add(task)
                task.add_done_callback(self._on_callback_done)
        except Exception:
            logger.exception(f"LSP callback {getattr(callback, '__name__', callback)!r} failed")

    def _on_callback_done(self, task: asyncio.Task) -> None:
        self._callback_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"LSP async callback failed: {error}", exc_info=error)

    # Document synchronization

    def did_open(self, uri: str, language_id: str, version: int, text: str) -> None:
        if not self._connected:
            return
        self._send_notification(
            "textDocument/didOpen",
            {"textDocument": {"uri": uri, "languageId": language_id, "version": version, "text": text}},
        )

    def did_change(self, uri: str, version: int, text: str) -> None:
        """Send the full document text (no incremental diffs)."""
        if not self._connected:
            return
        self._send_notification(
            "textDocument/didChange",
            {"textDocument": {"uri": uri, "version": version}, "contentChanges": [{"text": text}]},
        )

    def did_close(self, uri: str) -> None:
        if not self._connected:
            return
        self._diagnostics.pop(uri, None)
        self._send_notification("textDocument/didClose", {"textDocument": {"uri": uri}})

    # Language features; each resolves to None on any failure

    async def _request_or_none(self, method: str, params: Dict[str, Any]) -> Any:
        try:
            return await self._send_request(method, params, timeout=self._request_timeout)
        except Exception as e:
            logger.warning(f"{method} failed: {e}")
            return None

    async def completion(self, uri: str, position: Position) -> Any:
        return await self._request_or_none(
            "textDocument/completion",
            {"textDocument": {"uri": uri}, "position": position.to_dict()},
        )

    async def hover(self, uri: str, position: Position) -> Any:
        return await self._request_or_none(
            "textDocument/hover",
            {"textDocument": {"uri": uri}, "position": position.to_dict()},
        )

    async def signature_help(self, uri: str, position: Position) -> Any:
        return await self._request_or_none(
            "textDocument/signatureHelp",
            {
                "textDocument": {"uri": uri},
                "position": position.to_dict(),
                "context": {"triggerKind": 1, "isRetrigger": False},
            },
        )

    async def definition(self, uri: str, position: Position) -> Any:
        return await self._request_or_none(
            "textDocument/definition",
            {"textDocument": {"uri": uri}, "position": position.to_dict()},
        )

    async def references(self, uri: str, position: Position, include_declaration: bool = True) -> Any:
        return await self._request_or_none(
            "textDocument/references",
            {
                "textDocument": {"uri": uri},
                "position": position.to_dict(),
                "context": {"includeDeclaration": include_declaration},
            },
        )

    async def document_symbol(self, uri: str) -> Any:
        return await self._request_or_none(
            "textDocument/documentSymbol",
            {"textDocument": {"uri": uri}},
        )

    async def formatting(self, uri: str, options: FormattingOptions) -> Any:
        return await self._request_or_none(
            "textDocument/formatting",
            {"textDocument": {"uri": uri}, "options": options.to_dict()},
        )

    async def rename(self, uri: str, position: Position, new_name: str) -> Any:
        return await self._request_or_none(
            "textDocument/rename",
            {"textDocument": {"uri": uri}, "position": position.to_dict(), "newName": new_name},
        )

    def get_diagnostics(self, uri: str) -> List[Diagnostic]:
        """Get the last diagnostics published for a document."""
        return self._diagnostics.get(uri, [])

    def register_notification_handler(self, method: str, handler: Callable[[Dict[str, Any]], Any]) -> None:
        """Register an extra handler for server notifications.

        Args:
            method: Notification method
            handler: Handler function
        """
        if method not in self._notification_handlers:
            self._notification_handlers[method] = []
        self._notification_handlers[method].append(handler)


async def create_lsp_client(
    ws_url: str,
    language_id: str,
    document_uri: str,
    root_uri: Optional[str] = None,
    **kwargs: Any,
) -> LSPClient:
    """Create an LSP client and wait for the handshake to complete.

    Keyword arguments are passed to LSPClient (callbacks, connector,
    request_timeout).
    """
    client = LSPClient(ws_url, language_id, document_uri, root_uri, **kwargs)
    await client.start()
    return client
