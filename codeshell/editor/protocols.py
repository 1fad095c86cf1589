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

"""Contracts the LSP bridge needs from the host editor.

The reference implementations live in codeshell.editor, but any object
with these methods can be passed in instead.
"""

from typing import Any, Callable, List, Optional, Protocol, Sequence, runtime_checkable

from codeshell.editor.disposable import DisposableLike
from codeshell.editor.types import FormattingOptions, IPosition, MarkerData, WordAtPosition


@runtime_checkable
class TextModelLike(Protocol):
    """A live text buffer."""

    @property
    def uri(self) -> str: ...

    def get_value(self) -> str: ...

    def set_value(self, value: str) -> None: ...

    def get_options(self) -> FormattingOptions: ...

    def get_word_until_position(self, position: IPosition) -> WordAtPosition: ...

    def on_did_change_content(self, listener: Callable[[Any], None]) -> DisposableLike: ...


@runtime_checkable
class EditorLike(Protocol):
    def get_model(self) -> Optional[TextModelLike]: ...


@runtime_checkable
class MarkerSink(Protocol):
    """Receives the full current marker set for one (uri, owner) pair."""

    def set_model_markers(self, uri: str, owner: str, markers: Sequence[MarkerData]) -> None: ...


@runtime_checkable
class LanguagesLike(Protocol):
    """Per-feature provider registration, one handle per registration."""

    def register_completion_item_provider(self, language_id: str, provider: Any) -> DisposableLike: ...

    def register_hover_provider(self, language_id: str, provider: Any) -> DisposableLike: ...

    def register_signature_help_provider(self, language_id: str, provider: Any) -> DisposableLike: ...

    def register_definition_provider(self, language_id: str, provider: Any) -> DisposableLike: ...

    def register_reference_provider(self, language_id: str, provider: Any) -> DisposableLike: ...

    def register_document_symbol_provider(self, language_id: str, provider: Any) -> DisposableLike: ...

    def register_document_formatting_edit_provider(
        self, language_id: str, provider: Any
    ) -> DisposableLike: ...

    def register_rename_provider(self, language_id: str, provider: Any) -> DisposableLike: ...


__all__: List[str] = [
    "TextModelLike",
    "EditorLike",
    "MarkerSink",
    "LanguagesLike",
]
