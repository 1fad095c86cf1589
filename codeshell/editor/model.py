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

"""In-memory text model and editor.

A minimal host surface: a text buffer with change events, word lookup
and edit application, and an editor that holds one model at a time.
"""

import logging
import re
import time
from dataclasses import dataclass
from typing import Callable, List, Optional, Sequence

from codeshell.editor.disposable import Disposable
from codeshell.editor.types import FormattingOptions, IPosition, TextEdit, WordAtPosition

logger = logging.getLogger(__name__)

_WORD_CHAR = re.compile(r"[\w$]")


@dataclass
class ContentChangedEvent:
    """Fired after every mutation of a TextModel."""

    version_id: int
    is_flush: bool  # True when the whole buffer was replaced


class TextModel:
    """A text buffer identified by a URI."""

    def __init__(
        self,
        value: str = "",
        uri: Optional[str] = None,
        language_id: str = "plaintext",
        options: Optional[FormattingOptions] = None,
    ):
        """Initialize the model.

        Args:
            value: Initial text
            uri: Document URI (generated if not provided)
            language_id: Editor language identifier
            options: Indentation options used when formatting
        """
        self._value = value
        self._uri = uri or f"inmemory://model/{int(time.time() * 1000)}"
        self.language_id = language_id
        self._options = options or FormattingOptions()
        self._version_id = 1
        self._listeners: List[Callable[[ContentChangedEvent], None]] = []
        self._disposed = False

    @property
    def uri(self) -> str:
        return self._uri

    @property
    def version_id(self) -> int:
        return self._version_id

    def get_value(self) -> str:
        return self._value

    def set_value(self, value: str) -> None:
        self._mutate(value, is_flush=True)

    def get_options(self) -> FormattingOptions:
        return self._options

    def update_options(self, tab_size: Optional[int] = None, insert_spaces: Optional[bool] = None) -> None:
        if tab_size is not None:
            self._options.tab_size = tab_size
        if insert_spaces is not None:
            self._options.insert_spaces = insert_spaces

    # Line access

    def get_lines(self) -> List[str]:
        return [line.rstrip("\r") for line in self._value.split("\n")]

    def get_line_count(self) -> int:
        return self._value.count("\n") + 1

    def get_line_content(self, line_number: int) -> str:
        lines = self.get_lines()
        if line_number < 1 or line_number > len(lines):
            return ""
        return lines[line_number - 1]

    def get_offset_at(self, position: IPosition) -> int:
        """Convert a 1-based position to a string offset, clamping to the buffer."""
        raw_lines = self._value.split("\n")
        line_number = min(max(position.line_number, 1), len(raw_lines))
        line = raw_lines[line_number - 1]
        column = min(max(position.column, 1), len(line) + 1)
        offset = sum(len(raw) + 1 for raw in raw_lines[: line_number - 1])
        return offset + column - 1

    def get_position_at(self, offset: int) -> IPosition:
        offset = min(max(offset, 0), len(self._value))
        before = self._value[:offset]
        line_number = before.count("\n") + 1
        column = offset - (before.rfind("\n") + 1) + 1
        return IPosition(line_number, column)

    def get_word_until_position(self, position: IPosition) -> WordAtPosition:
        """Return the word that ends at the given position.

        When the cursor is not preceded by a word character the result is an
        empty word with start and end at the cursor column.
        """
        line = self.get_line_content(position.line_number)
        end = min(max(position.column, 1), len(line) + 1)
        start = end
        while start > 1 and _WORD_CHAR.match(line[start - 2]):
            start -= 1
        return WordAtPosition(word=line[start - 1 : end - 1], start_column=start, end_column=end)

    # Mutation

    def apply_edits(self, edits: Sequence[TextEdit]) -> None:
        """Apply non-overlapping edits as one change."""
        if not edits:
            return
        spans = sorted(
            (
                (self.get_offset_at(edit.range.start), self.get_offset_at(edit.range.end), edit.text)
                for edit in edits
            ),
            key=lambda span: span[0],
            reverse=True,
        )
        value = self._value
        for start, end, text in spans:
            value = value[:start] + text + value[end:]
        self._mutate(value, is_flush=False)

    def on_did_change_content(self, listener: Callable[[ContentChangedEvent], None]) -> Disposable:
        self._listeners.append(listener)

        def _remove() -> None:
            if listener in self._listeners:
                self._listeners.remove(listener)

        return Disposable(_remove)

    def dispose(self) -> None:
        self._disposed = True
        self._listeners.clear()

    def _mutate(self, value: str, is_flush: bool) -> None:
        if self._disposed:
            raise RuntimeError(f"Model {self._uri} is disposed")
        self._value = value
        self._version_id += 1
        event = ContentChangedEvent(version_id=self._version_id, is_flush=is_flush)
        for listener in list(self._listeners):
            try:
                listener(event)
            except Exception as e:
                logger.error(f"Content change listener error: {e}")


class CodeEditor:
    """Holds the model currently shown to the user."""

    def __init__(self, model: Optional[TextModel] = None):
        self._model = model

    def get_model(self) -> Optional[TextModel]:
        return self._model

    def set_model(self, model: Optional[TextModel]) -> None:
        self._model = model

    def get_value(self) -> str:
        return self._model.get_value() if self._model else ""

    def set_value(self, value: str) -> None:
        if self._model is None:
            raise RuntimeError("Editor has no model")
        self._model.set_value(value)
