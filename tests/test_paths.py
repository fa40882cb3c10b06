"""Tests for path resolution against the workflow data context."""

from __future__ import annotations

from datetime import datetime, timezone

import pytest

from litestar_taskflow.core.types import UNDEFINED
from litestar_taskflow.expressions.paths import assign, lookup, remove, render_template, resolve, to_text


@pytest.fixture
def context() -> dict:
    return {
        "document": {
            "id": "doc_1",
            "pages": [{"text": "intro"}, {"text": "body"}],
            "reviewed": None,
        },
        "user": {"name": "Ada", "age": 36},
    }


@pytest.mark.unit
class TestResolve:
    """Tests for literal, reference and template resolution."""

    def test_literals_pass_through(self, context: dict) -> None:
        """Test non-reference values are returned unchanged."""
        assert resolve(42, context) == 42
        assert resolve("plain text", context) == "plain text"
        assert resolve(None, context) is None
        assert resolve({"a": 1}, context) == {"a": 1}

    def test_reference_walks_mappings_and_lists(self, context: dict) -> None:
        """Test a dotted reference walks keys and integer indexes."""
        assert resolve("$user.name", context) == "Ada"
        assert resolve("$document.pages.1.text", context) == "body"

    def test_missing_segment_is_undefined(self, context: dict) -> None:
        """Test a missing key, a bad index and a scalar hop all yield UNDEFINED."""
        assert resolve("$user.email", context) is UNDEFINED
        assert resolve("$document.pages.7.text", context) is UNDEFINED
        assert resolve("$document.pages.first", context) is UNDEFINED
        assert resolve("$user.name.first", context) is UNDEFINED

    def test_null_is_not_undefined(self, context: dict) -> None:
        """Test a JSON null is a defined value."""
        assert resolve("$document.reviewed", context) is None

    def test_strings_are_not_indexed(self) -> None:
        """Test traversal does not index into strings."""
        assert resolve("$name.0", {"name": "Ada"}) is UNDEFINED

    def test_bare_sigil_is_whole_context(self, context: dict) -> None:
        """Test ``$`` resolves to the context itself."""
        assert resolve("$", context) is context

    def test_template(self, context: dict) -> None:
        """Test ``${path}`` placeholders are interpolated."""
        assert resolve("Hello ${user.name}, page ${document.pages.0.text}", context) == "Hello Ada, page intro"

    def test_unresolved_placeholder_left_verbatim(self, context: dict) -> None:
        """Test unresolvable placeholders stay in the output."""
        assert render_template("Hi ${user.nickname}!", context) == "Hi ${user.nickname}!"

    def test_resolution_does_not_mutate(self, context: dict) -> None:
        """Test lookups leave the context untouched."""
        before = repr(context)
        resolve("$document.pages.5", context)
        render_template("${missing.path}", context)
        assert repr(context) == before


@pytest.mark.unit
class TestToText:
    """Tests for the shared text coercion."""

    @pytest.mark.parametrize(
        ("value", "expected"),
        [
            ("text", "text"),
            (None, "null"),
            (True, "true"),
            (False, "false"),
            (3, "3"),
            (2.5, "2.5"),
            ([1, 2], "[1, 2]"),
            ({"a": 1}, '{"a": 1}'),
            (UNDEFINED, "undefined"),
        ],
    )
    def test_to_text(self, value: object, expected: str) -> None:
        assert to_text(value) == expected

    def test_datetime_is_iso(self) -> None:
        moment = datetime(2024, 1, 2, 3, 4, 5, tzinfo=timezone.utc)
        assert to_text(moment) == "2024-01-02T03:04:05+00:00"


@pytest.mark.unit
class TestAssign:
    """Tests for writing values at dotted paths."""

    def test_creates_intermediate_dicts(self) -> None:
        """Test missing intermediates are created."""
        context: dict = {}
        assign("review.score.total", 7, context)
        assert context == {"review": {"score": {"total": 7}}}

    def test_replaces_scalar_intermediate(self) -> None:
        """Test a scalar in the way is replaced by a dict."""
        context: dict = {"review": "pending"}
        assign("review.score", 3, context)
        assert context == {"review": {"score": 3}}

    def test_assigned_value_resolves(self) -> None:
        """Test a value written at a path is found at the same path."""
        context: dict = {"a": {"keep": True}}
        assign("a.b.c", [1, 2], context)
        assert lookup("a.b.c", context) == [1, 2]
        assert context["a"]["keep"] is True

    def test_empty_path_rejected(self) -> None:
        with pytest.raises(ValueError, match="empty path"):
            assign("", 1, {})

    def test_remove(self) -> None:
        """Test removing a path makes it undefined and ignores missing paths."""
        context: dict = {"a": {"b": 1, "c": 2}}
        remove("a.b", context)
        remove("x.y", context)
        assert lookup("a.b", context) is UNDEFINED
        assert context == {"a": {"c": 2}}
