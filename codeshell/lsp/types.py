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

"""LSP wire types.

Positions are 0-based; ``character`` counts UTF-16 code units. Parsing is
lenient: malformed or missing fields fall back to defaults instead of
raising, because a single bad payload must not break an editing session.
"""

import math
from dataclasses import dataclass, field
from enum import IntEnum
from typing import Any, Dict, List, Mapping, Optional, Union


class DiagnosticSeverity(IntEnum):
    ERROR = 1
    WARNING = 2
    INFORMATION = 3
    HINT = 4


class DiagnosticTag(IntEnum):
    UNNECESSARY = 1
    DEPRECATED = 2


class MessageType(IntEnum):
    """Type of a window/showMessage or window/logMessage notification."""

    ERROR = 1
    WARNING = 2
    INFO = 3
    LOG = 4
    DEBUG = 5


class InsertTextFormat(IntEnum):
    PLAIN_TEXT = 1
    SNIPPET = 2


class CompletionItemKind(IntEnum):
    TEXT = 1
    METHOD = 2
    FUNCTION = 3
    CONSTRUCTOR = 4
    FIELD = 5
    VARIABLE = 6
    CLASS = 7
    INTERFACE = 8
    MODULE = 9
    PROPERTY = 10
    UNIT = 11
    VALUE = 12
    ENUM = 13
    KEYWORD = 14
    SNIPPET = 15
    COLOR = 16
    FILE = 17
    REFERENCE = 18
    FOLDER = 19
    ENUM_MEMBER = 20
    CONSTANT = 21
    STRUCT = 22
    EVENT = 23
    OPERATOR = 24
    TYPE_PARAMETER = 25


class SymbolKind(IntEnum):
    FILE = 1
    MODULE = 2
    NAMESPACE = 3
    PACKAGE = 4
    CLASS = 5
    METHOD = 6
    PROPERTY = 7
    FIELD = 8
    CONSTRUCTOR = 9
    ENUM = 10
    INTERFACE = 11
    FUNCTION = 12
    VARIABLE = 13
    CONSTANT = 14
    STRING = 15
    NUMBER = 16
    BOOLEAN = 17
    ARRAY = 18
    OBJECT = 19
    KEY = 20
    NULL = 21
    ENUM_MEMBER = 22
    STRUCT = 23
    EVENT = 24
    OPERATOR = 25
    TYPE_PARAMETER = 26


def coerce_int(value: Any, minimum: int = 0, default: int = 0) -> int:
    """Read an integer field, clamping to ``minimum``.

    Booleans, strings, NaN and other junk yield ``default``.
    """
    if isinstance(value, bool):
        return default
    if isinstance(value, int):
        return max(value, minimum)
    if isinstance(value, float) and math.isfinite(value):
        return max(int(value), minimum)
    return default


def _as_mapping(value: Any) -> Mapping[str, Any]:
    return value if isinstance(value, Mapping) else {}


def as_list(value: Any) -> List[Any]:
    """Return ``value`` if it is a JSON array, otherwise an empty list."""
    return value if isinstance(value, list) else []


@dataclass(frozen=True)
class Position:
    line: int
    character: int

    @classmethod
    def from_dict(cls, data: Any) -> "Position":
        data = _as_mapping(data)
        return cls(
            line=coerce_int(data.get("line")),
            character=coerce_int(data.get("character")),
        )

    def to_dict(self) -> Dict[str, int]:
        return {"line": self.line, "character": self.character}


@dataclass(frozen=True)
class Range:
    start: Position
    end: Position

    @classmethod
    def from_dict(cls, data: Any) -> "Range":
        data = _as_mapping(data)
        return cls(
            start=Position.from_dict(data.get("start")),
            end=Position.from_dict(data.get("end")),
        )

    def to_dict(self) -> Dict[str, Dict[str, int]]:
        return {"start": self.start.to_dict(), "end": self.end.to_dict()}


@dataclass(frozen=True)
class Location:
    uri: str
    range: Range

    @classmethod
    def from_dict(cls, data: Any) -> "Location":
        data = _as_mapping(data)
        return cls(uri=str(data.get("uri", "")), range=Range.from_dict(data.get("range")))


@dataclass(frozen=True)
class LocationLink:
    target_uri: str
    target_range: Range
    target_selection_range: Optional[Range] = None
    origin_selection_range: Optional[Range] = None

    @classmethod
    def from_dict(cls, data: Any) -> "LocationLink":
        data = _as_mapping(data)
        selection = data.get("targetSelectionRange")
        origin = data.get("originSelectionRange")
        return cls(
            target_uri=str(data.get("targetUri", "")),
            target_range=Range.from_dict(data.get("targetRange")),
            target_selection_range=Range.from_dict(selection) if selection else None,
            origin_selection_range=Range.from_dict(origin) if origin else None,
        )

    @staticmethod
    def is_link(data: Any) -> bool:
        """Tell a LocationLink payload apart from a Location payload."""
        return isinstance(data, Mapping) and "targetUri" in data


@dataclass(frozen=True)
class DiagnosticRelatedInformation:
    location: Location
    message: str

    @classmethod
    def from_dict(cls, data: Any) -> "DiagnosticRelatedInformation":
        data = _as_mapping(data)
        return cls(
            location=Location.from_dict(data.get("location")),
            message=str(data.get("message", "")),
        )


@dataclass
class Diagnostic:
    range: Range
    message: str
    severity: Optional[int] = None
    code: Optional[Union[int, str]] = None
    source: Optional[str] = None
    tags: List[int] = field(default_factory=list)
    related_information: List[DiagnosticRelatedInformation] = field(default_factory=list)

    @classmethod
    def from_dict(cls, data: Any) -> "Diagnostic":
        data = _as_mapping(data)
        code = data.get("code")
        if isinstance(code, bool) or not isinstance(code, (int, str)):
            code = None
        severity = data.get("severity")
        source = data.get("source")
        return cls(
            range=Range.from_dict(data.get("range")),
            message=str(data.get("message", "")),
            severity=severity if isinstance(severity, int) and not isinstance(severity, bool) else None,
            code=code,
            source=source if isinstance(source, str) else None,
            tags=[t for t in as_list(data.get("tags")) if isinstance(t, int) and not isinstance(t, bool)],
            related_information=[
                DiagnosticRelatedInformation.from_dict(info)
                for info in as_list(data.get("relatedInformation"))
            ],
        )


@dataclass(frozen=True)
class TextEdit:
    range: Range
    new_text: str

    @classmethod
    def from_dict(cls, data: Any) -> "TextEdit":
        data = _as_mapping(data)
        return cls(range=Range.from_dict(data.get("range")), new_text=str(data.get("newText", "")))


@dataclass(frozen=True)
class FormattingOptions:
    tab_size: int = 4
    insert_spaces: bool = True

    def to_dict(self) -> Dict[str, Any]:
        return {"tabSize": self.tab_size, "insertSpaces": self.insert_spaces}
