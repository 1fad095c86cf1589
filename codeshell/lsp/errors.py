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

"""Exceptions raised by the LSP bridge."""

from typing import Any, Optional


class LSPError(RuntimeError):
    """Base class for LSP bridge errors."""


class LSPConnectionError(LSPError):
    """The socket could not be opened, closed, or the handshake failed."""


class LSPDisposedError(LSPError):
    """The client or connection was used after dispose()."""


class LSPRequestError(LSPError):
    """The server answered a request with a JSON-RPC error."""

    def __init__(self, code: int, message: str, data: Optional[Any] = None):
        super().__init__(f"[{code}] {message}")
        self.code = code
        self.data = data


class UnsupportedLanguageError(LSPError, ValueError):
    """No language server endpoint is known for a language id."""

    def __init__(self, language_id: str):
        super().__init__(f"No language server configured for {language_id!r}")
        self.language_id = language_id
