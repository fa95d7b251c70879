"""Tests for the no-op endpoint marker decorators."""

from __future__ import annotations

from apspec.markers import (
    accepts,
    allow_anonymous,
    endpoint_description,
    endpoint_name,
    endpoint_summary,
    produces,
    produces_problem,
    tags,
)


class TestMarkers:
    def test_decorated_class_is_unchanged(self) -> None:
        @allow_anonymous
        @endpoint_name("CreateItem")
        @endpoint_summary("Create an item")
        @endpoint_description("Creates one item.")
        @tags("Items", "Write")
        @accepts("application/x-www-form-urlencoded")
        @produces[dict](404)
        @produces_problem(422)
        class CreateItemCommand:
            name: str

        assert CreateItemCommand.__name__ == "CreateItemCommand"
        assert CreateItemCommand.__annotations__ == {"name": "str"}

    def test_repr(self) -> None:
        assert repr(produces) == "<marker produces>"
