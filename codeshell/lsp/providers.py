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

"""Editor language-feature providers backed by an LSP client.

Each provider converts editor coordinates to LSP, awaits the client and
converts the answer back. A provider never raises into the editor: a
missing or failed answer becomes the feature's empty result.
"""

import logging
from abc import ABC
from typing import Any, Dict, List, Optional

from codeshell.editor import types as host
from codeshell.editor.disposable import DisposableLike, DisposableStore
from codeshell.editor.protocols import LanguagesLike, TextModelLike
from codeshell.lsp import converters
from codeshell.lsp.client import LSPClient

logger = logging.getLogger(__name__)

COMPLETION_TRIGGER_CHARACTERS = [".", "/", "@", "<", '"', "'", "`", " "]
SIGNATURE_HELP_TRIGGER_CHARACTERS = ["(", ","]
SIGNATURE_HELP_RETRIGGER_CHARACTERS = [","]


class BaseLSPProvider(ABC):
    """Shared state for providers answering from one document's server."""

    def __init__(self, client: LSPClient, document_uri: str):
        self.client = client
        self.document_uri = document_uri

    @property
    def name(self) -> str:
        return f"lsp-{self.client.language_id}"

    def __repr__(self) -> str:
        return f"{type(self).__name__}({self.document_uri!r})"


class LSPCompletionProvider(BaseLSPProvider):
    """Completion provider using Language Server Protocol."""

    trigger_characters = COMPLETION_TRIGGER_CHARACTERS

    async def provide_completion_items(
        self, model: TextModelLike, position: host.IPosition, context: Any = None
    ) -> host.CompletionList:
        """Get completions from the LSP server.

        Args:
            model: Text model the request comes from
            position: Cursor position (1-based)
            context: Editor completion context (unused)

        Returns:
            CompletionList, empty when the server has nothing to offer
        """
        try:
            word = model.get_word_until_position(position)
            default_range = host.IRange(
                position.line_number, word.start_column, position.line_number, word.end_column
            )
            result = await self.client.completion(
                self.document_uri, converters.from_host_position(position)
            )
            if result is None:
                return host.CompletionList()
            return converters.to_host_completion_list(result, default_range)
        except Exception as e:
            logger.warning(f"LSP completion failed: {e}")
            return host.CompletionList()


class LSPHoverProvider(BaseLSPProvider):
    async def provide_hover(self, model: TextModelLike, position: host.IPosition) -> Optional[host.Hover]:
        try:
            result = await self.client.hover(self.document_uri, converters.from_host_position(position))
            return converters.to_host_hover(result)
        except Exception as e:
            logger.warning(f"LSP hover failed: {e}")
            return None


class LSPSignatureHelpProvider(BaseLSPProvider):
    signature_help_trigger_characters = SIGNATURE_HELP_TRIGGER_CHARACTERS
    signature_help_retrigger_characters = SIGNATURE_HELP_RETRIGGER_CHARACTERS

    async def provide_signature_help(
        self, model: TextModelLike, position: host.IPosition, context: Any = None
    ) -> Optional[host.SignatureHelp]:
        try:
            result = await self.client.signature_help(
                self.document_uri, converters.from_host_position(position)
            )
            return converters.to_host_signature_help(result)
        except Exception as e:
            logger.warning(f"LSP signature help failed: {e}")
            return None


class LSPDefinitionProvider(BaseLSPProvider):
    async def provide_definition(
        self, model: TextModelLike, position: host.IPosition
    ) -> Optional[List[host.LocationLink]]:
        try:
            result = await self.client.definition(
                self.document_uri, converters.from_host_position(position)
            )
            return converters.to_host_definition(result)
        except Exception as e:
            logger.warning(f"LSP definition failed: {e}")
            return None


class LSPReferenceProvider(BaseLSPProvider):
    async def provide_references(
        self, model: TextModelLike, position: host.IPosition, context: Any = None
    ) -> List[host.Location]:
        try:
            result = await self.client.references(
                self.document_uri, converters.from_host_position(position)
            )
            return converters.to_host_locations(result)
        except Exception as e:
            logger.warning(f"LSP references failed: {e}")
            return []


class LSPDocumentSymbolProvider(BaseLSPProvider):
    async def provide_document_symbols(self, model: TextModelLike) -> List[host.DocumentSymbol]:
        try:
            result = await self.client.document_symbol(self.document_uri)
            return converters.to_host_document_symbols(result)
        except Exception as e:
            logger.warning(f"LSP document symbols failed: {e}")
            return []


class LSPDocumentFormattingProvider(BaseLSPProvider):
    async def provide_document_formatting_edits(
        self, model: TextModelLike, options: Optional[host.FormattingOptions] = None
    ) -> List[host.TextEdit]:
        """Format the whole document.

        Tab size and insert-spaces come from ``options`` when given, else
        from the model's own options.
        """
        try:
            if options is None:
                options = model.get_options()
            result = await self.client.formatting(
                self.document_uri, converters.from_host_formatting_options(options)
            )
            return converters.to_host_text_edits(result)
        except Exception as e:
            logger.warning(f"LSP formatting failed: {e}")
            return []


class LSPRenameProvider(BaseLSPProvider):
    async def provide_rename_edits(
        self, model: TextModelLike, position: host.IPosition, new_name: str
    ) -> host.WorkspaceEdit:
        try:
            result = await self.client.rename(
                self.document_uri, converters.from_host_position(position), new_name
            )
            return converters.to_host_workspace_edit(result)
        except Exception as e:
            logger.warning(f"LSP rename failed: {e}")
            return host.WorkspaceEdit(edits=[])


class LSPProviderRegistration(DisposableStore):
    """Disposable set of provider registrations for one connection.

    ``providers`` maps a short feature name to the registered adapter.
    """

    def __init__(self, language_id: str, document_uri: str):
        super().__init__()
        self.language_id = language_id
        self.document_uri = document_uri
        self.providers: Dict[str, BaseLSPProvider] = {}

    def dispose(self) -> None:
        if not self.is_disposed:
            logger.debug(f"Disposing LSP providers for {self.language_id}")
        super().dispose()


def register_lsp_providers(
    languages: LanguagesLike,
    language_id: str,
    client: LSPClient,
    document_uri: str,
) -> LSPProviderRegistration:
    """Register every LSP-backed provider for a language.

    Args:
        languages: Editor registration API
        language_id: Language to register for
        client: Connected LSP client
        document_uri: URI of the document synchronized with the server

    Returns:
        Registration whose dispose() unregisters every provider
    """
    registration = LSPProviderRegistration(language_id, document_uri)
    features = [
        ("completion", LSPCompletionProvider, languages.register_completion_item_provider),
        ("hover", LSPHoverProvider, languages.register_hover_provider),
        ("signature_help", LSPSignatureHelpProvider, languages.register_signature_help_provider),
        ("definition", LSPDefinitionProvider, languages.register_definition_provider),
        ("references", LSPReferenceProvider, languages.register_reference_provider),
        ("document_symbol", LSPDocumentSymbolProvider, languages.register_document_symbol_provider),
        ("formatting", LSPDocumentFormattingProvider, languages.register_document_formatting_edit_provider),
        ("rename", LSPRenameProvider, languages.register_rename_provider),
    ]

    try:
        for name, provider_cls, register in features:
            provider = provider_cls(client, document_uri)
            handle: DisposableLike = register(language_id, provider)
            registration.add(handle)
            registration.providers[name] = provider
    except Exception:
        registration.dispose()
        raise

    logger.debug(f"Registered {len(registration.providers)} LSP providers for {language_id}")
    return registration
