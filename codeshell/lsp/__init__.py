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

"""Language Server Protocol bridge for the editor.

This module connects an editor document to a language server reached over
a WebSocket: the JSON-RPC client, the provider adapters, the connection
lifecycle with reconnect, and the LSP <-> editor converters.
"""

from codeshell.lsp.client import LSPClient, create_lsp_client
from codeshell.lsp.config import (
    LSP_LANGUAGES,
    LSPConnectionOptions,
    LSPServerInfo,
    build_lsp_websocket_url,
    get_server_info,
    has_lsp_support,
)
from codeshell.lsp.connection import ConnectionState, LSPConnection, connect_language_server
from codeshell.lsp.errors import (
    LSPConnectionError,
    LSPDisposedError,
    LSPError,
    LSPRequestError,
    UnsupportedLanguageError,
)
from codeshell.lsp.manager import ConnectionStatus, LanguageServerManager
from codeshell.lsp.notifications import ConsoleNotifier
from codeshell.lsp.providers import LSPProviderRegistration, register_lsp_providers

# Re-export core LSP types for convenience
from codeshell.lsp.types import (
    # Enumerations
    CompletionItemKind,
    DiagnosticSeverity,
    DiagnosticTag,
    MessageType,
    SymbolKind,
    # Position and Range
    Position,
    Range,
    Location,
    LocationLink,
    # Diagnostics
    Diagnostic,
    DiagnosticRelatedInformation,
    # Edits
    TextEdit,
    FormattingOptions,
)

__all__ = [
    # Client
    "LSPClient",
    "create_lsp_client",
    # Connection
    "ConnectionState",
    "LSPConnection",
    "connect_language_server",
    "LanguageServerManager",
    "ConnectionStatus",
    "LSPProviderRegistration",
    "register_lsp_providers",
    "ConsoleNotifier",
    # Configuration
    "LSP_LANGUAGES",
    "LSPConnectionOptions",
    "LSPServerInfo",
    "build_lsp_websocket_url",
    "get_server_info",
    "has_lsp_support",
    # Errors
    "LSPError",
    "LSPConnectionError",
    "LSPDisposedError",
    "LSPRequestError",
    "UnsupportedLanguageError",
    # Core LSP types
    "CompletionItemKind",
    "DiagnosticSeverity",
    "DiagnosticTag",
    "MessageType",
    "SymbolKind",
    "Position",
    "Range",
    "Location",
    "LocationLink",
    "Diagnostic",
    "DiagnosticRelatedInformation",
    "TextEdit",
    "FormattingOptions",
]
