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

"""Connection lifecycle for one (language, document) pair.

Ties an LSP client to the editor: registers providers once the handshake
completes, keeps the server's copy of the document in sync, routes
diagnostics to the marker sink and reconnects after the socket drops.

Usage:
    options = LSPConnectionOptions.for_language("http://localhost:3000", "python")
    async with await connect_language_server(options, editor=editor, languages=registry) as conn:
        ...
"""

import asyncio
import logging
import time
from enum import Enum
from typing import Any, Callable, Dict, List, Optional, Set

from codeshell.editor.protocols import EditorLike, LanguagesLike, MarkerSink, TextModelLike
from codeshell.lsp import converters
from codeshell.lsp.client import Connector, LSPClient
from codeshell.lsp.config import LSPConnectionOptions
from codeshell.lsp.errors import LSPDisposedError, LSPError
from codeshell.lsp.providers import LSPProviderRegistration, register_lsp_providers
from codeshell.lsp.types import Diagnostic, MessageType

logger = logging.getLogger(__name__)


class ConnectionState(str, Enum):
    DISCONNECTED = "disconnected"
    CONNECTING = "connecting"
    INITIALIZING = "initializing"
    CONNECTED = "connected"
    RECONNECTING = "reconnecting"
    DISPOSED = "disposed"


class LSPConnection:
    """A language server connection bound to one editor document."""

    def __init__(
        self,
        options: LSPConnectionOptions,
        editor: Optional[EditorLike] = None,
        languages: Optional[LanguagesLike] = None,
        markers: Optional[MarkerSink] = None,
        connector: Optional[Connector] = None,
    ):
        """Initialize the connection (nothing is opened until connect()).

        Args:
            options: Connection options
            editor: Editor whose model is synchronized with the server
            languages: Registration API for language feature providers
            markers: Sink receiving diagnostics as markers
            connector: Socket factory passed to the client
        """
        self.options = options
        self._editor = editor
        self._languages = languages
        self._markers = markers
        self._connector = connector

        language_id = options.language_id
        self._document_uri = (
            options.document_uri or f"file:///untitled-{int(time.time() * 1000)}.{language_id}"
        )
        self._state = ConnectionState.DISCONNECTED
        self._client: Optional[LSPClient] = None
        self._registration: Optional[LSPProviderRegistration] = None
        self._reconnect_task: Optional[asyncio.Task] = None
        self._callback_tasks: Set[asyncio.Task] = set()
        self._reconnect_attempts = 0
        self._version = 1
        self._diagnostics: Dict[str, List[Diagnostic]] = {}
        self._disposed = False

    async def __aenter__(self) -> "LSPConnection":
        if self._state == ConnectionState.DISCONNECTED and self._client is None:
            await self.connect()
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.dispose()

    @property
    def language_id(self) -> str:
        return self.options.language_id

    @property
    def owner(self) -> str:
        """Marker owner tag for this connection."""
        return f"lsp-{self.options.language_id}"

    @property
    def state(self) -> ConnectionState:
        return self._state

    @property
    def client(self) -> Optional[LSPClient]:
        return self._client

    @property
    def providers(self) -> Optional[LSPProviderRegistration]:
        """The live provider registration, if connected."""
        return self._registration

    @property
    def version(self) -> int:
        """Document version last sent to the server."""
        return self._version

    @property
    def document_uri(self) -> str:
        return self._document_uri

    @property
    def reconnect_attempts(self) -> int:
        return self._reconnect_attempts

    def is_connected(self) -> bool:
        return self._state == ConnectionState.CONNECTED

    def diagnostics(self, uri: Optional[str] = None) -> List[Diagnostic]:
        """Last diagnostics published for a URI (the connection's document by default)."""
        return list(self._diagnostics.get(uri or self._document_uri, []))

    async def connect(self) -> None:
        """Open the socket and complete the handshake.

        Raises:
            LSPConnectionError: If the server cannot be reached or the
                handshake fails
            LSPDisposedError: If the connection was disposed
        """
        if self._disposed:
            raise LSPDisposedError(f"{self.owner} connection has been disposed")
        await self._connect_once()

    async def _connect_once(self) -> None:
        await self._release_client()
        self._set_state(ConnectionState.CONNECTING)

        client = self._create_client()
        self._client = client
        try:
            await client.start()
        except LSPError as e:
            if self._client is client:
                self._client = None
            if self._disposed:
                raise LSPDisposedError(f"{self.owner} connection disposed while connecting") from e
            self._set_state(ConnectionState.DISCONNECTED)
            raise

        if self._disposed or self._client is not client:
            await client.dispose()
            raise LSPDisposedError(f"{self.owner} connection disposed while connecting")

        self._on_handshake_complete(client)

    def _create_client(self) -> LSPClient:
        client: LSPClient

        def _bind(handler: Callable[..., None]) -> Callable[..., None]:
            return lambda *args: handler(client, *args)

        client = LSPClient(
            self.options.ws_url,
            self.options.language_id,
            self._document_uri,
            self.options.root_uri,
            on_diagnostics=_bind(self._handle_diagnostics),
            on_show_message=_bind(self._handle_show_message),
            on_log_message=_bind(self._handle_log_message),
            on_open=_bind(self._handle_open),
            on_disconnected=_bind(self._handle_disconnected),
            on_error=_bind(self._handle_error),
            request_timeout=self.options.request_timeout,
            connector=self._connector,
        )
        return client

    def _on_handshake_complete(self, client: LSPClient) -> None:
        self._dispose_registration()

        language_id = self.options.language_id
        if self._languages is not None:
            registration = register_lsp_providers(self._languages, language_id, client, self._document_uri)
        else:
            registration = LSPProviderRegistration(language_id, self._document_uri)

        model = self._get_model()
        client.did_open(self._document_uri, language_id, self._version, model.get_value() if model else "")
        if model is not None:
            registration.add(model.on_did_change_content(lambda event: self._handle_content_changed(client)))

        self._registration = registration
        self._reconnect_attempts = 0
        self._set_state(ConnectionState.CONNECTED)
        logger.info(f"Connected to {language_id} language server for {self._document_uri}")
        self._notify(self.options.on_connected)

    def _get_model(self) -> Optional[TextModelLike]:
        if self._editor is None:
            return None
        return self._editor.get_model()

    # Client events

    def _handle_open(self, client: LSPClient) -> None:
        if client is self._client and not self._disposed:
            self._set_state(ConnectionState.INITIALIZING)

    def _handle_content_changed(self, client: LSPClient) -> None:
        if self._disposed or client is not self._client or not client.is_connected:
            return
        model = self._get_model()
        if model is None:
            return
        self._version += 1
        client.did_change(self._document_uri, self._version, model.get_value())

    def _handle_diagnostics(self, client: LSPClient, uri: str, diagnostics: List[Diagnostic]) -> None:
        if self._disposed or client is not self._client:
            return
        self._diagnostics[uri] = list(diagnostics)
        if self._markers is None:
            return

        model = self._get_model()
        if model is None or uri not in (model.uri, self._document_uri):
            logger.debug(f"Diagnostics for {uri} do not match the open model")
            return
        self._markers.set_model_markers(model.uri, self.owner, converters.to_host_markers(diagnostics))

    def _handle_show_message(self, client: LSPClient, params: Dict[str, Any]) -> None:
        if self._disposed or client is not self._client:
            return
        message = str(params.get("message", ""))
        severity = converters.message_type_to_severity(params.get("type"))
        logger.info(f"[{self.owner}] {severity}: {message}")
        self._notify(self.options.on_server_message, message, severity, self.options.language_id)

    def _handle_log_message(self, client: LSPClient, params: Dict[str, Any]) -> None:
        if self._disposed or client is not self._client:
            return
        message = str(params.get("message", ""))
        message_type = params.get("type")
        logger.debug(f"[{self.owner}] {message}")
        if message_type in (MessageType.ERROR, MessageType.WARNING) and not isinstance(message_type, bool):
            severity = converters.message_type_to_severity(message_type)
            self._notify(self.options.on_server_message, message, severity, self.options.language_id)

    def _handle_error(self, client: LSPClient, error: Exception) -> None:
        if self._disposed or client is not self._client:
            return
        logger.error(f"{self.owner} error: {error}")
        self._notify(self.options.on_error, error)

    def _handle_disconnected(self, client: LSPClient) -> None:
        if self._disposed or client is not self._client:
            return
        self._dispose_registration()
        self._set_state(ConnectionState.DISCONNECTED)
        logger.info(f"Disconnected from {self.options.language_id} language server")
        self._notify(self.options.on_disconnected)
        self._schedule_reconnect()

    # Reconnect

    def _schedule_reconnect(self) -> None:
        if self._disposed or not self.options.auto_reconnect:
            return
        if self._reconnect_attempts >= self.options.max_reconnect_attempts:
            logger.warning(f"{self.owner}: reconnect attempts exhausted")
            return
        if self._reconnect_task is not None and not self._reconnect_task.done():
            return
        self._reconnect_task = asyncio.create_task(self._reconnect())

    async def _reconnect(self) -> None:
        max_attempts = self.options.max_reconnect_attempts
        while not self._disposed and self._reconnect_attempts < max_attempts:
            self._reconnect_attempts += 1
            self._set_state(ConnectionState.RECONNECTING)
            delay = self.options.reconnect_delay_seconds
            logger.info(
                f"Reconnecting to {self.options.language_id} server in {delay:.1f}s "
                f"(attempt {self._reconnect_attempts}/{max_attempts})"
            )
            await asyncio.sleep(delay)
            if self._disposed:
                return
            try:
                await self._connect_once()
                return
            except LSPDisposedError:
                return
            except LSPError as e:
                logger.warning(f"Reconnect attempt {self._reconnect_attempts} failed: {e}")

        if not self._disposed:
            self._set_state(ConnectionState.DISCONNECTED)
            logger.warning(f"Giving up on {self.options.language_id} server after {max_attempts} attempts")

    # Teardown

    def _dispose_registration(self) -> None:
        registration, self._registration = self._registration, None
        if registration is not None:
            registration.dispose()

    async def _release_client(self) -> None:
        self._dispose_registration()
        client, self._client = self._client, None
        if client is not None:
            await client.dispose()

    async def dispose(self) -> None:
        """Tear the connection down for good. Safe to call more than once."""
        if self._disposed:
            return
        self._disposed = True

        task = self._reconnect_task
        if task is not None and task is not asyncio.current_task() and not task.done():
            task.cancel()
            try:
                await task
            except asyncio.CancelledError:
                pass

        if self._client is not None and self._client.is_connected:
            self._client.did_close(self._document_uri)
        await self._release_client()
        self._state = ConnectionState.DISPOSED
        current = asyncio.current_task()
        for pending in list(self._callback_tasks):
            if pending is not current and not pending.done():
                pending.cancel()
        logger.info(f"{self.owner} connection disposed")

    def _set_state(self, state: ConnectionState) -> None:
        if self._state == ConnectionState.DISPOSED or self._state == state:
            return
        logger.debug(f"{self.owner}: {self._state.value} -> {state.value}")
        self._state = state

    def _notify(self, callback: Optional[Callable[..., Any]], *args: Any) -> None:
        if callback is None or self._disposed:
            return
        try:
            result = callback(*args)
            if asyncio.iscoroutine(result):
                task = asyncio.ensure_future(result)
                self._callback_tasks.add(task)
                task.add_done_callback(self._on_callback_done)
        except Exception:
            logger.exception(f"{self.owner} callback failed")

    def _on_callback_done(self, task: asyncio.Task) -> None:
        self._callback_tasks.discard(task)
        if task.cancelled():
            return
        error = task.exception()
        if error is not None:
            logger.error(f"{self.owner} async callback failed: {error}", exc_info=error)


async def connect_language_server(
    options: LSPConnectionOptions,
    editor: Optional[EditorLike] = None,
    languages: Optional[LanguagesLike] = None,
    markers: Optional[MarkerSink] = None,
    connector: Optional[Connector] = None,
) -> LSPConnection:
    """Connect an editor document to a language server.

    The first attempt is not retried: its failure propagates to the caller.

    Args:
        options: Connection options
        editor: Editor whose model is synchronized
        languages: Registration API for providers
        markers: Diagnostic marker sink
        connector: Socket factory (defaults to websockets.connect)

    Returns:
        The connected LSPConnection
    """
    connection = LSPConnection(options, editor=editor, languages=languages, markers=markers, connector=connector)
    try:
        await connection.connect()
    except Exception:
        await connection.dispose()
        raise
    return connection
