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

"""Editor-facing value types.

Lines and columns are 1-based, as the editor UI shows them. Enum values
follow the editor widget's own numbering, which differs from LSP's.
"""

from dataclasses import dataclass, field
from enum import IntEnum, IntFlag
from typing import List, Optional, Tuple, Union


class MarkerSeverity(IntEnum):
    """Severity of an editor marker."""

    HINT = 1
    INFO = 2
    WARNING = 4
    ERROR = 8


class MarkerTag(IntEnum):
    UNNECESSARY = 1
    DEPRECATED = 2


class CompletionItemKind(IntEnum):
    """Kind of a completion suggestion (editor numbering)."""

    METHOD = 0
    FUNCTION = 1
    CONSTRUCTOR = 2
    FIELD = 3
    VARIABLE = 4
    CLASS = 5
    STRUCT = 6
    INTERFACE = 7
    MODULE = 8
    PROPERTY = 9
    EVENT = 10
    OPERATOR = 11
    UNIT = 12
    VALUE = 13
    CONSTANT = 14
    ENUM = 15
    ENUM_MEMBER = 16
    KEYWORD = 17
    TEXT = 18
    COLOR = 19
    FILE = 20
    REFERENCE = 21
    CUSTOMCOLOR = 22
    FOLDER = 23
    TYPE_PARAMETER = 24
    USER = 25
    ISSUE = 26
    SNIPPET = 27


class CompletionItemInsertTextRule(IntFlag):
    """How the editor inserts a suggestion's text."""

    NONE = 0
    KEEP_WHITESPACE = 1
    INSERT_AS_SNIPPET = 4


class SymbolKind(IntEnum):
    """Kind of a document symbol (editor numbering, 0-based)."""

    FILE = 0
    MODULE = 1
    NAMESPACE = 2
    PACKAGE = 3
    CLASS = 4
    METHOD = 5
    PROPERTY = 6
    FIELD = 7
    CONSTRUCTOR = 8
    ENUM = 9
    INTERFACE = 10
    FUNCTION = 11
    VARIABLE = 12
    CONSTANT = 13
    STRING = 14
    NUMBER = 15
    BOOLEAN = 16
    ARRAY = 17
    OBJECT = 18
    KEY = 19
    NULL = 20
    ENUM_MEMBER = 21
    STRUCT = 22
    EVENT = 23
    OPERATOR = 24
    TYPE_PARAMETER = 25


@dataclass(frozen=True)
class IPosition:
    """A cursor position (1-based line and column)."""

    line_number: int
    column: int


@dataclass(frozen=True)
class IRange:
    """A text range (1-based, end exclusive on the column axis)."""

    start_line_number: int
    start_column: int
    end_line_number: int
    end_column: int

    @property
    def start(self) -> IPosition:
        return IPosition(self.start_line_number, self.start_column)

    @property
    def end(self) -> IPosition:
        return IPosition(self.end_line_number, self.end_column)

    def is_empty(self) -> bool:
        return (
            self.start_line_number == self.end_line_number
            and self.start_column == self.end_column
        )


@dataclass
class MarkdownString:
    value: str


Documentation = Union[str, MarkdownString]


@dataclass
class WordAtPosition:
    """The word under (and left of) a cursor position."""

    word: str
    start_column: int
    end_column: int


@dataclass
class FormattingOptions:
    tab_size: int = 4
    insert_spaces: bool = True


@dataclass
class CompletionItem:
    label: str
    kind: CompletionItemKind
    insert_text: str
    range: IRange
    detail: Optional[str] = None
    documentation: Optional[Documentation] = None
    insert_text_rules: Optional[CompletionItemInsertTextRule] = None
    sort_text: Optional[str] = None
    filter_text: Optional[str] = None
    preselect: Optional[bool] = None
    commit_characters: Optional[List[str]] = None
    tags: List[int] = field(default_factory=list)

    @property
    def is_snippet(self) -> bool:
        return bool(
            self.insert_text_rules is not None
            and self.insert_text_rules & CompletionItemInsertTextRule.INSERT_AS_SNIPPET
        )


@dataclass
class CompletionList:
    suggestions: List[CompletionItem] = field(default_factory=list)
    incomplete: bool = False


@dataclass
class Hover:
    contents: List[MarkdownString]
    range: Optional[IRange] = None


@dataclass
class ParameterInformation:
    # Either the parameter text or [start, end) offsets into the signature label
    label: Union[str, Tuple[int, int]]
    documentation: Optional[Documentation] = None


@dataclass
class SignatureInformation:
    label: str
    documentation: Optional[Documentation] = None
    parameters: List[ParameterInformation] = field(default_factory=list)
    active_parameter: Optional[int] = None


@dataclass
class SignatureHelp:
    signatures: List[SignatureInformation]
    active_signature: int = 0
    active_parameter: int = 0


@dataclass
class Location:
    uri: str
    range: IRange


@dataclass
class LocationLink:
    """Target of a go-to-definition; plain locations are links without origin."""

    uri: str
    range: IRange
    origin_selection_range: Optional[IRange] = None
    target_selection_range: Optional[IRange] = None


@dataclass
class DocumentSymbol:
    name: str
    detail: str
    kind: SymbolKind
    range: IRange
    selection_range: IRange
    tags: List[int] = field(default_factory=list)
    container_name: Optional[str] = None
    children: Optional[List["DocumentSymbol"]] = None


@dataclass
class RelatedInformation:
    resource: str
    message: str
    start_line_number: int
    start_column: int
    end_line_number: int
    end_column: int


@dataclass
class MarkerData:
    """A diagnostic as the editor's marker service stores it."""

    severity: MarkerSeverity
    message: str
    start_line_number: int
    start_column: int
    end_line_number: int
    end_column: int
    source: Optional[str] = None
    code: Optional[str] = None
    tags: List[MarkerTag] = field(default_factory=list)
    related_information: List[RelatedInformation] = field(default_factory=list)

    @property
    def range(self) -> IRange:
        return IRange(
            self.start_line_number,
            self.start_column,
            self.end_line_number,
            self.end_column,
        )


@dataclass
class TextEdit:
    range: IRange
    text: str


@dataclass
class WorkspaceTextEdit:
    resource: str
    text_edit: TextEdit
    version_id: Optional[int] = None


@dataclass
class WorkspaceEdit:
    edits: List[WorkspaceTextEdit] = field(default_factory=list)

    def resources(self) -> List[str]:
        """Affected URIs in first-seen order."""
        seen: List[str] = []
        for edit in self.edits:
            if edit.resource not in seen:
                seen.append(edit.resource)
        return seen
