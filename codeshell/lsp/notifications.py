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

"""Console rendering of connection events."""

from typing import Optional

from rich.console import Console

from codeshell.lsp.config import LSPConnectionOptions

SEVERITY_STYLES = {
    "error": "bold red",
    "warning": "yellow",
    "info": "cyan",
    "log": "dim",
    "debug": "dim",
}


class ConsoleNotifier:
    """Prints connect/disconnect/error/server-message events.

    Args:
        language_id: Language shown in connection messages
        console: Rich console to print to (a new one if not provided)
    """

    def __init__(self, language_id: str, console: Optional[Console] = None):
        self.language_id = language_id
        self.console = console or Console()

    def on_connected(self) -> None:
        self.console.print(f"[green]✓ LSP connected:[/] {self.language_id}")

    def on_disconnected(self) -> None:
        self.console.print(f"[yellow]⚠ LSP disconnected:[/] {self.language_id}")

    def on_error(self, error: Exception) -> None:
        self.console.print(f"[bold red]✗ LSP error ({self.language_id}):[/] ", end="")
        self.console.print(str(error), markup=False, highlight=False)

    def on_server_message(self, message: str, severity: str, language_id: str) -> None:
        style = SEVERITY_STYLES.get(severity, "cyan")
        self.console.print(f"[{style}]\\[{language_id}] {severity}:[/] ", end="")
        self.console.print(message, markup=False, highlight=False)

    def bind(self, options: LSPConnectionOptions) -> LSPConnectionOptions:
        """Return a copy of ``options`` whose callbacks print to the console."""
        return options.model_copy(
            update={
                "on_connected": self.on_connected,
                "on_disconnected": self.on_disconnected,
                "on_error": self.on_error,
                "on_server_message": self.on_server_message,
            }
        )
