"""Tests for EndpointScanner call-site discovery."""

from __future__ import annotations

import logging
from typing import Callable

import pytest

from apspec.scanner.forest import SourceForest
from apspec.scanner.scanner import EndpointScanner
from apspec.scanner.types import DeclaredResponse, HttpVerb


def _scan(build_forest: Callable[..., SourceForest], source: str):
    return EndpointScanner(build_forest(source)).scan()


class TestDiscovery:
    def test_items_sample(self, items_forest: SourceForest) -> None:
        records = EndpointScanner(items_forest).scan()
        assert [(r.verb, r.path) for r in records] == [
            (HttpVerb.GET, "/v1/items/{id}"),
            (HttpVerb.POST, "/v1/items"),
            (HttpVerb.DELETE, "/v1/items/{id}"),
        ]
        get = records[0]
        assert get.request_type_name == "GetItemCommand"
        assert get.response_type_name == "GetItemResponse"
        assert get.source_file == "app/routes.py"
        assert get.line > 0
        assert get.path_parameters == ["id"]

    @pytest.mark.parametrize(
        ("method", "verb"),
        [
            ("map_get", HttpVerb.GET),
            ("map_post", HttpVerb.POST),
            ("map_put", HttpVerb.PUT),
            ("map_delete", HttpVerb.DELETE),
            ("map_patch", HttpVerb.PATCH),
        ],
    )
    def test_verb_vocabulary(self, build_forest: Callable[..., SourceForest], method: str, verb: HttpVerb) -> None:
        records = _scan(
            build_forest,
            f"""
            def configure(routes: RouteBuilder) -> None:
                routes.{method}[Req, Resp]("/v1/things", handler)
            """,
        )
        assert [r.verb for r in records] == [verb]

    def test_open_map_form(self, build_forest: Callable[..., SourceForest]) -> None:
        records = _scan(
            build_forest,
            """
            def configure(routes: RouteBuilder) -> None:
                routes.map["PatchThingCommand", "PatchThingResponse"]("PATCH", "/v1/things", handler)
                routes.map[Req, Resp](HttpMethod.PUT, "/v1/other", handler)
                routes.map[Req, Resp]("TRACE", "/v1/ignored", handler)
            """,
        )
        assert [(r.verb, r.path, r.request_type_name) for r in records] == [
            (HttpVerb.PATCH, "/v1/things", "PatchThingCommand"),
            (HttpVerb.PUT, "/v1/other", "Req"),
        ]

    def test_one_record_per_call_site(self, build_forest: Callable[..., SourceForest]) -> None:
        records = _scan(
            build_forest,
            """
            def configure(routes: RouteBuilder) -> None:
                routes.map_get[Req, Resp]("/v1/a", handler).with_name("A").with_summary("S")
            """,
        )
        assert len(records) == 1


class TestFallbackAndSkips:
    def test_unknown_receiver_uses_syntactic_type_names(self, build_forest: Callable[..., SourceForest]) -> None:
        records = _scan(
            build_forest,
            """
            def configure() -> None:
                app.routes.map_get[models.ListItems, models.ItemList]("/v1/items", handler)
            """,
        )
        assert [(r.request_type_name, r.response_type_name) for r in records] == [("ListItems", "ItemList")]

    def test_known_non_builder_receiver_is_rejected(self, build_forest: Callable[..., SourceForest]) -> None:
        records = _scan(
            build_forest,
            """
            def configure(cache: Cache) -> None:
                cache.map_get[Req, Resp]("/v1/items", handler)
            """,
        )
        assert records == []

    @pytest.mark.parametrize(
        "call",
        [
            'routes.map_get[Req, Resp](build_path(), handler)',
            'routes.map_get[Req](  "/v1/a", handler)',
            'routes.map_get("/v1/a", handler)',
            'routes.map_get[Req, Resp]()',
            'routes.map[Req, Resp](verb_of(), "/v1/a", handler)',
        ],
    )
    def test_unresolvable_call_sites_are_skipped(self, build_forest: Callable[..., SourceForest], call: str) -> None:
        records = _scan(
            build_forest,
            f"""
            def configure(routes: RouteBuilder) -> None:
                {call}
            """,
        )
        assert records == []

    def test_empty_scan_warns(self, build_forest: Callable[..., SourceForest], caplog: pytest.LogCaptureFixture) -> None:
        with caplog.at_level(logging.WARNING, logger="apspec.scanner.scanner"):
            records = _scan(build_forest, "x = 1\n")
        assert records == []
        assert "No endpoint registrations found" in caplog.text


class TestMetadataOnRecords:
    def test_chain_and_decorators(self, items_forest: SourceForest) -> None:
        post = next(r for r in EndpointScanner(items_forest).scan() if r.verb is HttpVerb.POST)
        assert post.operation_id == "CreateItem"
        assert post.summary == "Create a new item"
        assert post.tags == ("Inventory",)
        assert post.requires_auth is True
        declared = [
            (d.status, d.response_type.name if d.response_type else None, d.content_type)
            for d in post.declared_responses
        ]
        assert declared == [
            (404, "NotFoundError", "application/json"),
            (422, None, "application/problem+json"),
        ]

    def test_allow_anonymous_clears_auth(self, items_forest: SourceForest) -> None:
        delete = next(r for r in EndpointScanner(items_forest).scan() if r.verb is HttpVerb.DELETE)
        assert delete.requires_auth is False

    def test_defaults_without_metadata(self, items_forest: SourceForest) -> None:
        get = EndpointScanner(items_forest).scan()[0]
        assert get.operation_id is None
        assert get.summary is None
        assert get.tags == ()
        assert get.accepts_content_type == "application/json"
        assert get.produces_content_type == "application/json"
        assert get.declared_responses == ()

    def test_declared_response_type(self) -> None:
        response = DeclaredResponse(status=204)
        assert response.response_type is None
        assert response.content_type == "application/json"
