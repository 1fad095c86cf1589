# Copyright 2025 Vijaykumar Singh <singhvjd@gmail.com>
#
# Licensed under the Apache License, Version 2.0 (the "License");
# you may not use this file except in compliance with the License.

"""Tests for the in-memory editor host."""

from unittest.mock import MagicMock

import pytest

from codeshell.editor import (
    CodeEditor,
    Disposable,
    DisposableStore,
    EditorLike,
    LanguageFeature,
    LanguageFeatureRegistry,
    LanguagesLike,
    MarkerService,
    MarkerSink,
    TextModel,
    TextModelLike,
)
from codeshell.editor import types as host


def _marker(message: str, severity=host.MarkerSeverity.ERROR) -> host.MarkerData:
    return host.MarkerData(severity, message, 1, 1, 1, 2)


class TestDisposables:
    def test_disposable_runs_once(self):
        callback = MagicMock()
        handle = Disposable(callback)
        handle.dispose()
        handle.dispose()
        callback.assert_called_once()
        assert handle.is_disposed

    def test_store_isolates_failures(self):
        failing = MagicMock()
        failing.dispose.side_effect = RuntimeError("boom")
        ok = MagicMock()
        store = DisposableStore()
        store.add(failing)
        store.add(ok)

        store.dispose()

        ok.dispose.assert_called_once()
        assert len(store) == 0

    def test_add_after_dispose_releases_immediately(self):
        store = DisposableStore()
        store.dispose()
        late = MagicMock()
        store.add(late)
        late.dispose.assert_called_once()


class TestTextModel:
    def test_versions_and_listeners(self):
        model = TextModel("a", uri="file:///a.txt")
        events = []
        subscription = model.on_did_change_content(events.append)

        model.set_value("b")
        subscription.dispose()
        model.set_value("c")

        assert model.version_id == 3
        assert [e.version_id for e in events] == [2]
        assert events[0].is_flush

    def test_word_until_position(self):
        model = TextModel("foo.bar_baz(")
        word = model.get_word_until_position(host.IPosition(1, 12))
        assert word == host.WordAtPosition("bar_baz", 5, 12)

        empty = model.get_word_until_position(host.IPosition(1, 13))
        assert empty.word == ""
        assert empty.start_column == empty.end_column == 13

    def test_offsets(self):
        model = TextModel("ab\ncd")
        assert model.get_offset_at(host.IPosition(2, 2)) == 4
        assert model.get_position_at(4) == host.IPosition(2, 2)
        assert model.get_offset_at(host.IPosition(9, 9)) == 5

    def test_apply_edits(self):
        model = TextModel("import os\nos.pa")
        model.apply_edits(
            [
                host.TextEdit(host.IRange(1, 8, 1, 10), "sys"),
                host.TextEdit(host.IRange(2, 1, 2, 3), "sys"),
            ]
        )
        assert model.get_value() == "import sys\nsys.pa"
        assert model.version_id == 2

    def test_listener_failure_is_isolated(self):
        model = TextModel("a")
        model.on_did_change_content(MagicMock(side_effect=ValueError("bad")))
        good = MagicMock()
        model.on_did_change_content(good)
        model.set_value("b")
        good.assert_called_once()

    def test_protocol_conformance(self):
        model = TextModel()
        assert isinstance(model, TextModelLike)
        assert isinstance(CodeEditor(model), EditorLike)
        assert isinstance(MarkerService(), MarkerSink)
        assert isinstance(LanguageFeatureRegistry(), LanguagesLike)


class TestMarkerService:
    def test_owners_are_namespaced(self):
        service = MarkerService()
        service.set_model_markers("file:///a", "lsp-python", [_marker("one")])
        service.set_model_markers("file:///a", "lint", [_marker("two", host.MarkerSeverity.WARNING)])

        assert [m.message for m in service.get_model_markers(uri="file:///a", owner="lsp-python")] == ["one"]
        assert len(service.get_model_markers(uri="file:///a")) == 2
        counts = service.count_by_severity("file:///a")
        assert counts[host.MarkerSeverity.ERROR] == 1
        assert counts[host.MarkerSeverity.WARNING] == 1

    def test_set_replaces_and_empty_clears(self):
        service = MarkerService()
        changed = MagicMock()
        service.on_did_change_markers(changed)

        service.set_model_markers("file:///a", "lsp-python", [_marker("one"), _marker("two")])
        service.set_model_markers("file:///a", "lsp-python", [])

        assert service.get_model_markers() == []
        assert changed.call_count == 2

    def test_remove_owner(self):
        service = MarkerService()
        service.set_model_markers("file:///a", "lsp-python", [_marker("one")])
        service.set_model_markers("file:///b", "lsp-python", [_marker("two")])
        service.remove_owner("lsp-python")
        assert service.get_model_markers() == []


class _HoverProvider:
    def __init__(self, result):
        self.result = result

    async def provide_hover(self, model, position):
        if isinstance(self.result, Exception):
            raise self.result
        return self.result


class TestLanguageFeatureRegistry:
    def test_rejects_provider_without_method(self):
        registry = LanguageFeatureRegistry()
        with pytest.raises(TypeError):
            registry.register_hover_provider("python", object())

    def test_latest_first_and_unregister(self):
        registry = LanguageFeatureRegistry()
        first, second = _HoverProvider("a"), _HoverProvider("b")
        registry.register_hover_provider("python", first)
        handle = registry.register_hover_provider("python", second)

        assert registry.get_providers(LanguageFeature.HOVER, "python") == [second, first]
        handle.dispose()
        assert registry.get_providers(LanguageFeature.HOVER, "python") == [first]
        assert registry.count("typescript") == 0

    @pytest.mark.asyncio
    async def test_invoke_skips_failures_and_none(self):
        registry = LanguageFeatureRegistry()
        registry.register_hover_provider("python", _HoverProvider("ok"))
        registry.register_hover_provider("python", _HoverProvider(RuntimeError("down")))
        registry.register_hover_provider("python", _HoverProvider(None))

        results = await registry.invoke(LanguageFeature.HOVER, "python", TextModel(), host.IPosition(1, 1))
        assert results == ["ok"]
