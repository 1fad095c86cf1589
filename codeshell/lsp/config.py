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

"""LSP endpoint configuration and connection options.

The backend exposes one WebSocket endpoint per language server, e.g.
``ws://localhost:3000/lsp?languageId=typescript``. Several editor language
ids can share one server (javascript and typescript both talk to the
TypeScript server).
"""

import re
from dataclasses import dataclass
from typing import Any, Callable, Dict, Optional
from urllib.parse import quote

from pydantic import BaseModel, ConfigDict, Field, field_validator

from codeshell.lsp.errors import UnsupportedLanguageError


@dataclass(frozen=True)
class LSPServerInfo:
    """A language server reachable through the backend."""

    name: str  # Human-readable server name
    ws_path: str  # Value of the languageId query parameter


_TS = LSPServerInfo("TypeScript Language Server", "typescript")
_BASH = "bash-language-server"
_CSS = "vscode-css-languageservice"
_JSON = LSPServerInfo("vscode-json-languageservice", "json")
_YAML = LSPServerInfo("yaml-language-server", "yaml")
_TEXLAB = LSPServerInfo("texlab", "latex")
_SQL = "sql-language-server"

# Editor language id -> server
LSP_LANGUAGES: Dict[str, LSPServerInfo] = {
    # JavaScript / TypeScript family
    "typescript": _TS,
    "javascript": _TS,
    "typescriptreact": _TS,
    "javascriptreact": _TS,
    # Systems languages
    "go": LSPServerInfo("gopls", "go"),
    "rust": LSPServerInfo("rust-analyzer", "rust"),
    "c": LSPServerInfo("clangd", "c"),
    "cpp": LSPServerInfo("clangd", "cpp"),
    "objective_c": LSPServerInfo("clangd", "objective-c"),
    # JVM languages
    "java": LSPServerInfo("Eclipse JDT.LS", "java"),
    "kotlin": LSPServerInfo("kotlin-language-server", "kotlin"),
    "scala": LSPServerInfo("Metals", "scala"),
    "groovy": LSPServerInfo("groovy-language-server", "groovy"),
    # .NET / Microsoft
    "csharp": LSPServerInfo("OmniSharp", "csharp"),
    "fsharp": LSPServerInfo("FsAutoComplete", "fsharp"),
    "vb": LSPServerInfo("VB Language Server", "vb"),
    "powershell": LSPServerInfo("PowerShell Editor Services", "powershell"),
    # Scripting languages
    "python": LSPServerInfo("Pylsp", "python"),
    "ruby": LSPServerInfo("Solargraph", "ruby"),
    "php": LSPServerInfo("phpactor", "php"),
    "perl": LSPServerInfo("Perl Navigator", "perl"),
    "lua": LSPServerInfo("lua-language-server", "lua"),
    "r": LSPServerInfo("languageserver", "r"),
    "julia": LSPServerInfo("LanguageServer.jl", "julia"),
    "elixir": LSPServerInfo("ElixirLS", "elixir"),
    "erlang": LSPServerInfo("erlang_ls", "erlang"),
    "dart": LSPServerInfo("Dart Analysis Server", "dart"),
    # Shell
    "shellscript": LSPServerInfo(_BASH, "shellscript"),
    "shell": LSPServerInfo(_BASH, "shellscript"),
    "bash": LSPServerInfo(_BASH, "shellscript"),
    "sh": LSPServerInfo(_BASH, "shellscript"),
    "zsh": LSPServerInfo(_BASH, "shellscript"),
    "fish": LSPServerInfo(_BASH, "shellscript"),
    "bat": LSPServerInfo(_BASH, "bat"),
    # Web / markup / style
    "html": LSPServerInfo("vscode-html-languageservice", "html"),
    "css": LSPServerInfo(_CSS, "css"),
    "scss": LSPServerInfo(_CSS, "scss"),
    "less": LSPServerInfo(_CSS, "less"),
    "vue": LSPServerInfo("Volar", "vue"),
    "svelte": LSPServerInfo("svelte-language-server", "svelte"),
    "astro": LSPServerInfo("astro-ls", "astro"),
    # Data / config formats
    "json": _JSON,
    "jsonc": _JSON,
    "yaml": _YAML,
    "yml": _YAML,
    "toml": LSPServerInfo("taplo", "toml"),
    "xml": LSPServerInfo("lemminx", "xml"),
    # Infrastructure
    "dockerfile": LSPServerInfo("dockerfile-language-server", "dockerfile"),
    "docker": LSPServerInfo("dockerfile-language-server", "dockerfile"),
    "dockercompose": LSPServerInfo("docker-compose-language-service", "dockercompose"),
    "terraform": LSPServerInfo("terraform-ls", "terraform"),
    "hcl": LSPServerInfo("terraform-ls", "hcl"),
    "bicep": LSPServerInfo("Bicep Language Server", "bicep"),
    "ansible": LSPServerInfo("ansible-language-server", "ansible"),
    "puppet": LSPServerInfo("puppet-languageserver", "puppet"),
    "nix": LSPServerInfo("nil", "nix"),
    # Database / query
    "sql": LSPServerInfo(_SQL, "sql"),
    "mysql": LSPServerInfo(_SQL, "mysql"),
    "pgsql": LSPServerInfo(_SQL, "pgsql"),
    "graphql": LSPServerInfo("graphql-language-service", "graphql"),
    "prisma": LSPServerInfo("prisma-language-server", "prisma"),
    # Functional languages
    "haskell": LSPServerInfo("haskell-language-server", "haskell"),
    "ocaml": LSPServerInfo("ocamllsp", "ocaml"),
    "clojure": LSPServerInfo("clojure-lsp", "clojure"),
    # Compiled / modern languages
    "swift": LSPServerInfo("sourcekit-lsp", "swift"),
    "zig": LSPServerInfo("zls", "zig"),
    "nim": LSPServerInfo("nimlsp", "nim"),
    "v": LSPServerInfo("v-analyzer", "v"),
    # Documentation
    "markdown": LSPServerInfo("marksman", "markdown"),
    "latex": _TEXLAB,
    "tex": _TEXLAB,
    "restructuredtext": LSPServerInfo("esbonio", "restructuredtext"),
    # Other
    "proto3": LSPServerInfo("pbls", "proto3"),
    "protobuf": LSPServerInfo("pbls", "protobuf"),
    "cmake": LSPServerInfo("cmake-language-server", "cmake"),
    "makefile": LSPServerInfo("make-lsp", "makefile"),
    "ini": LSPServerInfo("ini-language-server", "ini"),
    "nginx": LSPServerInfo("nginx-language-server", "nginx"),
    "solidity": LSPServerInfo("solidity-language-server", "solidity"),
    "wgsl": LSPServerInfo("wgsl-analyzer", "wgsl"),
    "glsl": LSPServerInfo("glsl-lsp", "glsl"),
}


def has_lsp_support(language_id: str) -> bool:
    """Check if a language has a known server."""
    return language_id in LSP_LANGUAGES


def get_server_info(language_id: str) -> Optional[LSPServerInfo]:
    return LSP_LANGUAGES.get(language_id)


def build_lsp_websocket_url(base_url: str, language_id: str) -> Optional[str]:
    """Build the WebSocket URL for a language server.

    Args:
        base_url: Backend base URL (http, https, ws or wss)
        language_id: Editor language id

    Returns:
        URL such as ``ws://localhost:3000/lsp?languageId=typescript``, or
        None when the language has no server.
    """
    info = LSP_LANGUAGES.get(language_id)
    if info is None:
        return None
    ws_base = re.sub(r"^http", "ws", base_url.strip()).rstrip("/")
    return f"{ws_base}/lsp?languageId={quote(info.ws_path, safe='')}"


class LSPConnectionOptions(BaseModel):
    """Configuration for one language server connection."""

    model_config = ConfigDict(arbitrary_types_allowed=True)

    language_id: str = Field(description="Editor language id")
    ws_url: str = Field(description="WebSocket URL of the language server")
    document_uri: Optional[str] = Field(
        default=None, description="URI of the synchronized document (generated if absent)"
    )
    root_uri: Optional[str] = Field(default=None, description="Workspace root URI")
    auto_reconnect: bool = Field(default=True, description="Reconnect after the socket drops")
    max_reconnect_attempts: int = Field(default=5, ge=0, description="Reconnect attempts before giving up")
    reconnect_delay: int = Field(default=3000, ge=0, description="Delay between reconnects in milliseconds")
    request_timeout: Optional[float] = Field(
        default=None, gt=0, description="Per-request timeout in seconds (None waits forever)"
    )
    on_connected: Optional[Callable[[], Any]] = Field(default=None, description="Called after the handshake")
    on_disconnected: Optional[Callable[[], Any]] = Field(default=None, description="Called when the socket closes")
    on_error: Optional[Callable[[Exception], Any]] = Field(default=None, description="Called on transport errors")
    on_server_message: Optional[Callable[[str, str, str], Any]] = Field(
        default=None, description="Called with (message, severity, language_id) for server messages"
    )

    @field_validator("ws_url")
    @classmethod
    def _check_ws_url(cls, value: str) -> str:
        if not value.startswith(("ws://", "wss://")):
            raise ValueError(f"Expected a ws:// or wss:// URL, got {value!r}")
        return value

    @property
    def reconnect_delay_seconds(self) -> float:
        return self.reconnect_delay / 1000.0

    @classmethod
    def for_language(cls, base_url: str, language_id: str, **kwargs: Any) -> "LSPConnectionOptions":
        """Build options for a language, resolving its endpoint.

        Raises:
            UnsupportedLanguageError: If the language has no server
        """
        ws_url = build_lsp_websocket_url(base_url, language_id)
        if ws_url is None:
            raise UnsupportedLanguageError(language_id)
        return cls(language_id=language_id, ws_url=ws_url, **kwargs)
