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

"""Manager for language server connections across documents."""

import logging
from dataclasses import dataclass
from typing import Any, Dict, List, Optional, Tuple

from codeshell.editor.protocols import EditorLike, LanguagesLike, MarkerSink
from codeshell.lsp.client import Connector
from codeshell.lsp.config import (
    LSP_LANGUAGES,
    LSPConnectionOptions,
    build_lsp_websocket_url,
    has_lsp_support,
)
from codeshell.lsp.connection import ConnectionState, LSPConnection, connect_language_server

logger = logging.getLogger(__name__)

ConnectionKey = Tuple[str, str]


@dataclass
class ConnectionStatus:
    """Status of a language server connection."""

    language_id: str
    document_uri: str
    server_name: str
    state: ConnectionState
    version: int
    reconnect_attempts: int
    capabilities: List[str]


class LanguageServerManager:
    """Keeps at most one connection per (language, document).

    Usage:
        async with LanguageServerManager("http://localhost:3000", languages=registry) as manager:
            conn = await manager.connect("python", editor=editor)
        # All connections disposed on exit
    """

    def __init__(
        self,
        base_url: str,
        languages: Optional[LanguagesLike] = None,
        markers: Optional[MarkerSink] = None,
        connector: Optional[Connector] = None,
        **option_defaults: Any,
    ):
        """Initialize the manager.

        Args:
            base_url: Backend base URL (http, https, ws or wss)
            languages: Registration API shared by every connection
            markers: Marker sink shared by every connection
            connector: Socket factory passed to every client
            **option_defaults: Defaults for LSPConnectionOptions fields
        """
        self.base_url = base_url
        self._languages = languages
        self._markers = markers
        self._connector = connector
        self._option_defaults = option_defaults
        self._connections: Dict[ConnectionKey, LSPConnection] = {}

    async def __aenter__(self) -> "LanguageServerManager":
        return self

    async def __aexit__(self, exc_type, exc_val, exc_tb) -> None:
        await self.dispose_all()

    @staticmethod
    def supports(language_id: str) -> bool:
        return has_lsp_support(language_id)

    async def connect(
        self,
        language_id: str,
        editor: Optional[EditorLike] = None,
        document_uri: Optional[str] = None,
        **options: Any,
    ) -> Optional[LSPConnection]:
        """Connect a document to its language server.

        An existing connection for the same document is disposed first.

        Args:
            language_id: Editor language id
            editor: Editor whose model is synchronized
            document_uri: Document URI (the editor model's URI if omitted)
            **options: Overrides for LSPConnectionOptions fields

        Returns:
            The connection, or None when the language has no server
        """
        ws_url = build_lsp_websocket_url(self.base_url, language_id)
        if ws_url is None:
            logger.debug(f"No language server for {language_id}")
            return None

        if document_uri is None and editor is not None:
            model = editor.get_model()
            document_uri = model.uri if model is not None else None

        settings = {**self._option_defaults, **options}
        connection_options = LSPConnectionOptions(
            language_id=language_id, ws_url=ws_url, document_uri=document_uri, **settings
        )

        if document_uri is not None:
            await self.close(language_id, document_uri)

        connection = await connect_language_server(
            connection_options,
            editor=editor,
            languages=self._languages,
            markers=self._markers,
            connector=self._connector,
        )
        self._connections[(language_id, connection.document_uri)] = connection
        logger.info(f"Connected {connection.document_uri} to {LSP_LANGUAGES[language_id].name}")
        return connection

    def get(self, language_id: str, document_uri: str) -> Optional[LSPConnection]:
        return self._connections.get((language_id, document_uri))

    async def close(self, language_id: str, document_uri: str) -> None:
        """Dispose the connection for a document, if any."""
        connection = self._connections.pop((language_id, document_uri), None)
        if connection is not None:
            await connection.dispose()
            logger.info(f"Closed {language_id} connection for {document_uri}")

    async def dispose_all(self) -> None:
        """Dispose every connection."""
        for language_id, document_uri in list(self._connections.keys()):
            await self.close(language_id, document_uri)

    def get_status(self) -> Dict[ConnectionKey, ConnectionStatus]:
        """Get status of all connections.

        Returns:
            Dict of (language_id, document_uri) -> status
        """
        status = {}
        for key, connection in self._connections.items():
            caps = []
            client = connection.client
            capabilities = client.capabilities if client is not None else {}
            if capabilities.get("completionProvider"):
                caps.append("completion")
            if capabilities.get("hoverProvider"):
                caps.append("hover")
            if capabilities.get("definitionProvider"):
                caps.append("definition")
            if capabilities.get("referencesProvider"):
                caps.append("references")
            if capabilities.get("documentFormattingProvider"):
                caps.append("formatting")
            if capabilities.get("renameProvider"):
                caps.append("rename")

            status[key] = ConnectionStatus(
                language_id=key[0],
                document_uri=key[1],
                server_name=LSP_LANGUAGES[key[0]].name,
                state=connection.state,
                version=connection.version,
                reconnect_attempts=connection.reconnect_attempts,
                capabilities=caps,
            )

        return status

    def get_available_servers(self) -> List[Dict[str, Any]]:
        """Get list of known language servers.

        Returns:
            List of server info dicts
        """
        connected = {language_id for language_id, _ in self._connections}
        servers = []
        for language_id, info in LSP_LANGUAGES.items():
            servers.append(
                {
                    "language": language_id,
                    "name": info.name,
                    "url": build_lsp_websocket_url(self.base_url, language_id),
                    "connected": language_id in connected,
                }
            )
        return servers
