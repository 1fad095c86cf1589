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

"""Host editor surface: value types, contracts and an in-memory implementation."""

from codeshell.editor.disposable import Disposable, DisposableLike, DisposableStore
from codeshell.editor.languages import LanguageFeature, LanguageFeatureRegistry
from codeshell.editor.markers import MarkerService
from codeshell.editor.model import CodeEditor, ContentChangedEvent, TextModel
from codeshell.editor.protocols import EditorLike, LanguagesLike, MarkerSink, TextModelLike

__all__ = [
    "Disposable",
    "DisposableLike",
    "DisposableStore",
    "LanguageFeature",
    "LanguageFeatureRegistry",
    "MarkerService",
    "CodeEditor",
    "ContentChangedEvent",
    "TextModel",
    "EditorLike",
    "LanguagesLike",
    "MarkerSink",
    "TextModelLike",
]
