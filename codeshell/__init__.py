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

"""Editor language intelligence over remote language servers.

Package Structure:
    editor/   - Editor-side types, contracts and an in-memory editor
    lsp/      - WebSocket LSP client, providers, connection lifecycle

Usage:
    from codeshell.editor import CodeEditor, LanguageFeatureRegistry, MarkerService, TextModel
    from codeshell.lsp import LSPConnectionOptions, connect_language_server

    options = LSPConnectionOptions.for_language("http://localhost:3000", "python")
    conn = await connect_language_server(options, editor=editor, languages=registry, markers=markers)
"""

__version__ = "0.1.0"
