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

"""Converters between LSP wire payloads and editor types.

LSP positions are 0-based, editor positions 1-based; every conversion
clamps instead of raising so that host lines/columns never drop below 1
and LSP lines/characters never drop below 0.

Union-typed LSP results (Location vs LocationLink, DocumentSymbol vs
SymbolInformation, the several hover content shapes) are told apart here
and nowhere else.
"""

from typing import Any, Dict, Iterable, List, Mapping, Optional, Union

from codeshell.editor import types as host
from codeshell.lsp.types import (
    CompletionItemKind,
    Diagnostic,
    DiagnosticSeverity,
    FormattingOptions,
    InsertTextFormat,
    Location,
    LocationLink,
    MessageType,
    Position,
    Range,
    SymbolKind,
    TextEdit,
    as_list,
    coerce_int,
)

PositionLike = Union[Position, Mapping[str, Any]]
RangeLike = Union[Range, Mapping[str, Any]]

# LSP CompletionItemKind to editor CompletionItemKind mapping
COMPLETION_KIND_MAP: Dict[int, host.CompletionItemKind] = {
    CompletionItemKind.TEXT: host.CompletionItemKind.TEXT,
    CompletionItemKind.METHOD: host.CompletionItemKind.METHOD,
    CompletionItemKind.FUNCTION: host.CompletionItemKind.FUNCTION,
    CompletionItemKind.CONSTRUCTOR: host.CompletionItemKind.CONSTRUCTOR,
    CompletionItemKind.FIELD: host.CompletionItemKind.FIELD,
    CompletionItemKind.VARIABLE: host.CompletionItemKind.VARIABLE,
    CompletionItemKind.CLASS: host.CompletionItemKind.CLASS,
    CompletionItemKind.INTERFACE: host.CompletionItemKind.INTERFACE,
    CompletionItemKind.MODULE: host.CompletionItemKind.MODULE,
    CompletionItemKind.PROPERTY: host.CompletionItemKind.PROPERTY,
    CompletionItemKind.UNIT: host.CompletionItemKind.UNIT,
    CompletionItemKind.VALUE: host.CompletionItemKind.VALUE,
    CompletionItemKind.ENUM: host.CompletionItemKind.ENUM,
    CompletionItemKind.KEYWORD: host.CompletionItemKind.KEYWORD,
    CompletionItemKind.SNIPPET: host.CompletionItemKind.SNIPPET,
    CompletionItemKind.COLOR: host.CompletionItemKind.COLOR,
    CompletionItemKind.FILE: host.CompletionItemKind.FILE,
    CompletionItemKind.REFERENCE: host.CompletionItemKind.REFERENCE,
    CompletionItemKind.FOLDER: host.CompletionItemKind.FOLDER,
    CompletionItemKind.ENUM_MEMBER: host.CompletionItemKind.ENUM_MEMBER,
    CompletionItemKind.CONSTANT: host.CompletionItemKind.CONSTANT,
    CompletionItemKind.STRUCT: host.CompletionItemKind.STRUCT,
    CompletionItemKind.EVENT: host.CompletionItemKind.EVENT,
    CompletionItemKind.OPERATOR: host.CompletionItemKind.OPERATOR,
    CompletionItemKind.TYPE_PARAMETER: host.CompletionItemKind.TYPE_PARAMETER,
}

# LSP symbol kinds are 1-based, the editor's are 0-based in the same order
SYMBOL_KIND_MAP: Dict[int, host.SymbolKind] = {
    lsp_kind.value: host.SymbolKind(lsp_kind.value - 1) for lsp_kind in SymbolKind
}

SEVERITY_MAP: Dict[int, host.MarkerSeverity] = {
    DiagnosticSeverity.ERROR: host.MarkerSeverity.ERROR,
    DiagnosticSeverity.WARNING: host.MarkerSeverity.WARNING,
    DiagnosticSeverity.INFORMATION: host.MarkerSeverity.INFO,
    DiagnosticSeverity.HINT: host.MarkerSeverity.HINT,
}

MESSAGE_SEVERITY_NAMES: Dict[int, str] = {
    MessageType.ERROR: "error",
    MessageType.WARNING: "warning",
    MessageType.INFO: "info",
    MessageType.LOG: "log",
    MessageType.DEBUG: "debug",
}


def _is_int(value: Any) -> bool:
    return isinstance(value, int) and not isinstance(value, bool)


def _optional_str(value: Any) -> Optional[str]:
    return value if isinstance(value, str) else None


# Position / Range


def to_host_position(position: PositionLike) -> host.IPosition:
    """LSP Position (0-based) -> editor position (1-based)."""
    if not isinstance(position, Position):
        position = Position.from_dict(position)
    return host.IPosition(
        line_number=max(position.line, 0) + 1,
        column=max(position.character, 0) + 1,
    )


def from_host_position(position: host.IPosition) -> Position:
    """Editor position (1-based) -> LSP Position (0-based)."""
    return Position(
        line=coerce_int(position.line_number, minimum=1, default=1) - 1,
        character=coerce_int(position.column, minimum=1, default=1) - 1,
    )


def to_host_range(range_: RangeLike) -> host.IRange:
    if not isinstance(range_, Range):
        range_ = Range.from_dict(range_)
    start = to_host_position(range_.start)
    end = to_host_position(range_.end)
    return host.IRange(start.line_number, start.column, end.line_number, end.column)


def from_host_range(range_: host.IRange) -> Range:
    return Range(
        start=from_host_position(range_.start),
        end=from_host_position(range_.end),
    )


def from_host_formatting_options(options: host.FormattingOptions) -> FormattingOptions:
    return FormattingOptions(
        tab_size=coerce_int(options.tab_size, minimum=1, default=4),
        insert_spaces=bool(options.insert_spaces),
    )


# Documentation / markup


def _to_documentation(doc: Any) -> Optional[host.Documentation]:
    if isinstance(doc, str):
        return doc
    if isinstance(doc, Mapping) and isinstance(doc.get("value"), str):
        return host.MarkdownString(doc["value"])
    return None


def _marked_to_markdown(content: Any) -> Optional[host.MarkdownString]:
    if isinstance(content, str):
        return host.MarkdownString(content)
    if not isinstance(content, Mapping):
        return None
    value = content.get("value")
    if not isinstance(value, str):
        return None
    if "kind" in content:
        # MarkupContent
        return host.MarkdownString(value)
    # MarkedString {language, value}
    language = content.get("language") or ""
    return host.MarkdownString(f"```{language}\n{value}\n```")


# Completion


def to_host_completion_item(
    item: Mapping[str, Any], default_range: host.IRange
) -> Optional[host.CompletionItem]:
    """Convert a single LSP completion item.

    Args:
        item: LSP CompletionItem payload
        default_range: Replacement range used when the item has no text edit

    Returns:
        Editor completion item, or None when the payload has no label
    """
    raw_label = item.get("label")
    if isinstance(raw_label, Mapping):
        raw_label = raw_label.get("label")
    if raw_label is None:
        return None
    label = str(raw_label)

    insert_text = item.get("insertText")
    if not isinstance(insert_text, str):
        insert_text = label
    replace_range = default_range

    text_edit = item.get("textEdit")
    if isinstance(text_edit, Mapping) and isinstance(text_edit.get("newText"), str):
        insert_text = text_edit["newText"]
        # InsertReplaceEdit carries both ranges; the editor takes one
        edit_range = text_edit.get("range") or text_edit.get("replace")
        if isinstance(edit_range, Mapping):
            replace_range = to_host_range(edit_range)

    kind = item.get("kind")
    is_snippet = item.get("insertTextFormat") == InsertTextFormat.SNIPPET
    preselect = item.get("preselect")
    commit_characters = item.get("commitCharacters")

    return host.CompletionItem(
        label=label,
        kind=COMPLETION_KIND_MAP.get(kind, host.CompletionItemKind.TEXT)
        if _is_int(kind)
        else host.CompletionItemKind.TEXT,
        insert_text=insert_text,
        range=replace_range,
        detail=_optional_str(item.get("detail")),
        documentation=_to_documentation(item.get("documentation")),
        insert_text_rules=host.CompletionItemInsertTextRule.INSERT_AS_SNIPPET if is_snippet else None,
        sort_text=_optional_str(item.get("sortText")),
        filter_text=_optional_str(item.get("filterText")),
        preselect=preselect if isinstance(preselect, bool) else None,
        commit_characters=[c for c in commit_characters if isinstance(c, str)]
        if isinstance(commit_characters, list)
        else None,
        tags=[t for t in as_list(item.get("tags")) if _is_int(t)],
    )


def to_host_completion_list(result: Any, default_range: host.IRange) -> host.CompletionList:
    """Convert a CompletionList or a bare CompletionItem[] response."""
    if isinstance(result, list):
        items, incomplete = result, False
    elif isinstance(result, Mapping):
        items = as_list(result.get("items"))
        incomplete = bool(result.get("isIncomplete", False))
    else:
        return host.CompletionList()

    suggestions = []
    for raw in items:
        if not isinstance(raw, Mapping):
            continue
        item = to_host_completion_item(raw, default_range)
        if item:
            suggestions.append(item)
    return host.CompletionList(suggestions=suggestions, incomplete=incomplete)


# Hover


def to_host_hover(hover: Any) -> Optional[host.Hover]:
    if not isinstance(hover, Mapping):
        return None
    contents = hover.get("contents")
    raw_contents = contents if isinstance(contents, list) else [contents]
    markdown = [m for m in (_marked_to_markdown(c) for c in raw_contents) if m is not None]
    if not markdown:
        return None
    range_ = hover.get("range")
    return host.Hover(
        contents=markdown,
        range=to_host_range(range_) if isinstance(range_, Mapping) else None,
    )


# Signature help


def _to_parameter(param: Mapping[str, Any]) -> host.ParameterInformation:
    label = param.get("label")
    if isinstance(label, list) and len(label) == 2 and all(_is_int(x) for x in label):
        parsed_label: Union[str, tuple] = (max(label[0], 0), max(label[1], 0))
    else:
        parsed_label = "" if label is None else str(label)
    return host.ParameterInformation(
        label=parsed_label,
        documentation=_to_documentation(param.get("documentation")),
    )


def to_host_signature_help(help_: Any) -> Optional[host.SignatureHelp]:
    if not isinstance(help_, Mapping):
        return None
    signatures = []
    for sig in as_list(help_.get("signatures")):
        if not isinstance(sig, Mapping):
            continue
        active = sig.get("activeParameter")
        signatures.append(
            host.SignatureInformation(
                label=str(sig.get("label", "")),
                documentation=_to_documentation(sig.get("documentation")),
                parameters=[_to_parameter(p) for p in as_list(sig.get("parameters")) if isinstance(p, Mapping)],
                active_parameter=active if _is_int(active) else None,
            )
        )
    if not signatures:
        return None
    return host.SignatureHelp(
        signatures=signatures,
        active_signature=coerce_int(help_.get("activeSignature")),
        active_parameter=coerce_int(help_.get("activeParameter")),
    )


# Definition / references


def _to_host_location_link(item: Mapping[str, Any]) -> host.LocationLink:
    if LocationLink.is_link(item):
        link = LocationLink.from_dict(item)
        return host.LocationLink(
            uri=link.target_uri,
            range=to_host_range(link.target_range),
            origin_selection_range=to_host_range(link.origin_selection_range)
            if link.origin_selection_range
            else None,
            target_selection_range=to_host_range(link.target_selection_range)
            if link.target_selection_range
            else None,
        )
    location = Location.from_dict(item)
    return host.LocationLink(uri=location.uri, range=to_host_range(location.range))


def to_host_definition(result: Any) -> Optional[List[host.LocationLink]]:
    """Normalize Location | Location[] | LocationLink[] | null.

    Returns:
        None for "no definition", otherwise a list of location links
    """
    if result is None:
        return None
    if isinstance(result, Mapping):
        return [_to_host_location_link(result)]
    if isinstance(result, list):
        return [_to_host_location_link(item) for item in result if isinstance(item, Mapping)]
    return None


def to_host_locations(result: Any) -> List[host.Location]:
    if not isinstance(result, list):
        return []
    locations = []
    for item in result:
        if not isinstance(item, Mapping):
            continue
        location = Location.from_dict(item)
        locations.append(host.Location(uri=location.uri, range=to_host_range(location.range)))
    return locations


# Document symbols


def _symbol_kind(kind: Any) -> host.SymbolKind:
    if _is_int(kind):
        return SYMBOL_KIND_MAP.get(kind, host.SymbolKind.VARIABLE)
    return host.SymbolKind.VARIABLE


def _is_document_symbol(item: Mapping[str, Any]) -> bool:
    return "range" in item and "selectionRange" in item


def _to_host_document_symbol(symbol: Mapping[str, Any]) -> host.DocumentSymbol:
    children = symbol.get("children")
    return host.DocumentSymbol(
        name=str(symbol.get("name", "")),
        detail=_optional_str(symbol.get("detail")) or "",
        kind=_symbol_kind(symbol.get("kind")),
        tags=[t for t in as_list(symbol.get("tags")) if _is_int(t)],
        range=to_host_range(symbol.get("range")),
        selection_range=to_host_range(symbol.get("selectionRange")),
        children=[_to_host_document_symbol(c) for c in children if isinstance(c, Mapping)]
        if isinstance(children, list)
        else None,
    )


def _symbol_information_to_host(info: Mapping[str, Any]) -> host.DocumentSymbol:
    location = Location.from_dict(info.get("location"))
    range_ = to_host_range(location.range)
    return host.DocumentSymbol(
        name=str(info.get("name", "")),
        detail="",
        kind=_symbol_kind(info.get("kind")),
        tags=[t for t in as_list(info.get("tags")) if _is_int(t)],
        range=range_,
        selection_range=range_,
        container_name=_optional_str(info.get("containerName")),
    )


def to_host_document_symbols(result: Any) -> List[host.DocumentSymbol]:
    """Convert DocumentSymbol[] (hierarchical) or SymbolInformation[] (flat)."""
    if not isinstance(result, list):
        return []
    items = [item for item in result if isinstance(item, Mapping)]
    if not items:
        return []
    if _is_document_symbol(items[0]):
        return [_to_host_document_symbol(item) for item in items]
    return [_symbol_information_to_host(item) for item in items]


# Diagnostics


def to_host_severity(severity: Any) -> host.MarkerSeverity:
    """LSP DiagnosticSeverity -> editor MarkerSeverity (unknown maps to Info)."""
    if _is_int(severity):
        return SEVERITY_MAP.get(severity, host.MarkerSeverity.INFO)
    return host.MarkerSeverity.INFO


def to_host_marker(diagnostic: Union[Diagnostic, Mapping[str, Any]]) -> host.MarkerData:
    if not isinstance(diagnostic, Diagnostic):
        diagnostic = Diagnostic.from_dict(diagnostic)
    range_ = to_host_range(diagnostic.range)
    related = []
    for info in diagnostic.related_information:
        info_range = to_host_range(info.location.range)
        related.append(
            host.RelatedInformation(
                resource=info.location.uri,
                message=info.message,
                start_line_number=info_range.start_line_number,
                start_column=info_range.start_column,
                end_line_number=info_range.end_line_number,
                end_column=info_range.end_column,
            )
        )
    return host.MarkerData(
        severity=to_host_severity(diagnostic.severity),
        message=diagnostic.message,
        start_line_number=range_.start_line_number,
        start_column=range_.start_column,
        end_line_number=range_.end_line_number,
        end_column=range_.end_column,
        source=diagnostic.source,
        code=str(diagnostic.code) if diagnostic.code is not None else None,
        tags=[host.MarkerTag(t) for t in diagnostic.tags if t in (1, 2)],
        related_information=related,
    )


def to_host_markers(
    diagnostics: Iterable[Union[Diagnostic, Mapping[str, Any]]],
) -> List[host.MarkerData]:
    return [to_host_marker(d) for d in diagnostics]


# Edits


def to_host_text_edit(edit: Union[TextEdit, Mapping[str, Any]]) -> host.TextEdit:
    if not isinstance(edit, TextEdit):
        edit = TextEdit.from_dict(edit)
    return host.TextEdit(range=to_host_range(edit.range), text=edit.new_text)


def to_host_text_edits(edits: Any) -> List[host.TextEdit]:
    if not isinstance(edits, list):
        return []
    return [to_host_text_edit(edit) for edit in edits if isinstance(edit, Mapping)]


def to_host_workspace_edit(edit: Any) -> host.WorkspaceEdit:
    """Flatten an LSP WorkspaceEdit into one entry per text edit per URI.

    Versioned ``documentChanges`` win over ``changes`` when both are present.
    File create/rename/delete operations are skipped.
    """
    if not isinstance(edit, Mapping):
        return host.WorkspaceEdit()

    edits: List[host.WorkspaceTextEdit] = []
    document_changes = edit.get("documentChanges")
    if isinstance(document_changes, list):
        for change in document_changes:
            if not isinstance(change, Mapping) or not isinstance(change.get("textDocument"), Mapping):
                continue
            document = change["textDocument"]
            version = document.get("version")
            for text_edit in as_list(change.get("edits")):
                if not isinstance(text_edit, Mapping):
                    continue
                edits.append(
                    host.WorkspaceTextEdit(
                        resource=str(document.get("uri", "")),
                        text_edit=to_host_text_edit(text_edit),
                        version_id=version if _is_int(version) else None,
                    )
                )
        return host.WorkspaceEdit(edits=edits)

    changes = edit.get("changes")
    if isinstance(changes, Mapping):
        for uri, text_edits in changes.items():
            for text_edit in as_list(text_edits):
                if not isinstance(text_edit, Mapping):
                    continue
                edits.append(
                    host.WorkspaceTextEdit(resource=str(uri), text_edit=to_host_text_edit(text_edit))
                )
    return host.WorkspaceEdit(edits=edits)


# Server messages


def message_type_to_severity(message_type: Any) -> str:
    """window/showMessage type -> severity name (unknown maps to "info")."""
    if _is_int(message_type):
        return MESSAGE_SEVERITY_NAMES.get(message_type, "info")
    return "info"
