"""
Tests for the middleware and service stores
Collection state, failure isolation and error lifecycle
"""

import asyncio

import httpx

from middleware_console.errors import HTTPFailure, NetworkFailure, ValidationFailure

MIDDLEWARES = [
    {"id": "m1", "name": "auth", "type": "basicAuth", "config": {"users": ["admin:hash"]}},
    {"id": "m2", "name": "secure", "type": "chain", "config": '{"middlewares": ["m1", "m9"]}'},
]


def test_fetch_all_replaces_collection(backend, console):
    backend.on("GET", "/api/middlewares", json_body=MIDDLEWARES)

    items = asyncio.run(console.middlewares.fetch_all())

    assert [m.id for m in items] == ["m1", "m2"]
    assert console.middlewares.collection == items
    assert console.middlewares.get("m2").chain_members == ["m1", "m9"]
    assert not console.middlewares.busy


def test_fetch_all_deduplicates_by_id(backend, console):
    backend.on("GET", "/api/middlewares", json_body=[
        {"id": "m1", "name": "old", "type": "headers", "config": {}},
        {"id": "m1", "name": "new", "type": "headers", "config": {}},
    ])

    items = asyncio.run(console.middlewares.fetch_all())

    assert len(items) == 1
    assert items[0].name == "new"


def test_null_list_is_empty(backend, console):
    backend.on("GET", "/api/services", handler=lambda r: httpx.Response(
        200, content=b"null", headers={"content-type": "application/json"}
    ))

    assert asyncio.run(console.services.fetch_all()) == []


def test_unexpected_list_shape_is_validation_failure(backend, console):
    backend.on("GET", "/api/middlewares", json_body={"items": []})

    assert asyncio.run(console.middlewares.fetch_all()) is None
    assert isinstance(console.middlewares.last_error, ValidationFailure)


def test_failed_create_leaves_collection_untouched(backend, console):
    backend.on("GET", "/api/middlewares", json_body=MIDDLEWARES)
    backend.on("POST", "/api/middlewares", status=400, json_body={"message": "Invalid middleware type"})

    async def scenario():
        await console.middlewares.fetch_all()
        before = list(console.middlewares.collection)
        created = await console.middlewares.create({"name": "x", "type": "bogus", "config": {}})
        return before, created

    before, created = asyncio.run(scenario())

    assert created is None
    assert console.middlewares.collection == before
    assert isinstance(console.middlewares.last_error, HTTPFailure)
    assert console.middlewares.last_error.message == "Invalid middleware type"
    assert not console.middlewares.busy


def test_next_successful_fetch_clears_error(backend, console):
    backend.on("GET", "/api/middlewares", status=500, json_body={"message": "database locked"})
    backend.on("GET", "/api/middlewares", json_body=MIDDLEWARES)

    async def scenario():
        assert await console.middlewares.fetch_all() is None
        assert console.middlewares.last_error is not None
        return await console.middlewares.fetch_all()

    items = asyncio.run(scenario())

    assert len(items) == 2
    assert console.middlewares.last_error is None


def test_create_appends_backend_entity(backend, console):
    backend.on("POST", "/api/middlewares", status=201, json_body={
        "id": "m3", "name": "limit", "type": "rateLimit", "config": {"average": 100, "burst": 50}
    })

    created = asyncio.run(console.middlewares.create({"name": "limit", "type": "rateLimit", "config": {}}))

    assert created.id == "m3"
    assert console.middlewares.collection == [created]


def test_update_replaces_in_place_and_selected(backend, console):
    backend.on("GET", "/api/services", json_body=[
        {"id": "s1", "name": "a", "type": "loadBalancer", "config": {}},
        {"id": "s2", "name": "b", "type": "loadBalancer", "config": {}},
    ])
    backend.on("PUT", "/api/services/s1", json_body={
        "id": "s1", "name": "a2", "type": "loadBalancer", "config": {"servers": []}
    })

    async def scenario():
        await console.services.fetch_all()
        console.services.select(console.services.get("s1"))
        return await console.services.update("s1", {"name": "a2", "type": "loadBalancer", "config": {}})

    updated = asyncio.run(scenario())

    assert [s.name for s in console.services.collection] == ["a2", "b"]
    assert console.services.selected == updated


def test_update_without_body_refetches_entity(backend, console):
    backend.on("PUT", "/api/middlewares/m1", status=204)
    backend.on("GET", "/api/middlewares/m1", json_body={"id": "m1", "name": "auth2", "type": "basicAuth"})

    updated = asyncio.run(console.middlewares.update("m1", {"name": "auth2"}))

    assert updated.name == "auth2"
    assert len(backend.calls("GET", "/api/middlewares/m1")) == 1


def test_fetch_one_only_sets_selected(backend, console):
    backend.on("GET", "/api/middlewares/m1", json_body=MIDDLEWARES[0])

    entity = asyncio.run(console.middlewares.fetch_one("m1"))

    assert console.middlewares.selected == entity
    assert console.middlewares.collection == []


def test_failed_delete_is_remembered_until_dismissed(backend, console):
    backend.on("GET", "/api/middlewares", json_body=MIDDLEWARES)
    backend.on("DELETE", "/api/middlewares/m1", status=409, json_body={"message": "Middleware is in use"})

    async def scenario():
        await console.middlewares.fetch_all()
        deleted = await console.middlewares.delete("m1")
        await console.middlewares.fetch_all()
        return deleted

    deleted = asyncio.run(scenario())

    assert deleted is False
    assert console.middlewares.get("m1") is not None
    assert console.middlewares.last_error is None
    assert console.middlewares.delete_errors["m1"].status_code == 409

    console.middlewares.clear_error()
    assert console.middlewares.delete_errors == {}


def test_successful_delete_removes_entity_and_selection(backend, console):
    backend.on("GET", "/api/middlewares", json_body=MIDDLEWARES)
    backend.on("DELETE", "/api/middlewares/m1", json_body={"message": "Middleware deleted successfully"})

    async def scenario():
        await console.middlewares.fetch_all()
        console.middlewares.select(console.middlewares.get("m1"))
        return await console.middlewares.delete("m1")

    assert asyncio.run(scenario()) is True
    assert [m.id for m in console.middlewares.collection] == ["m2"]
    assert console.middlewares.selected is None


def test_network_failure_is_recorded(console):
    def refuse(request):
        raise httpx.ConnectError("connection refused", request=request)

    console.transport.client = httpx.AsyncClient(transport=httpx.MockTransport(refuse))

    assert asyncio.run(console.services.fetch_all()) is None
    assert isinstance(console.services.last_error, NetworkFailure)
    assert console.services.snapshot()["error"]["kind"] == "network"


def test_chain_lookups(backend, console):
    backend.on("GET", "/api/middlewares", json_body=MIDDLEWARES)
    asyncio.run(console.middlewares.fetch_all())

    references = console.middlewares.resolve_chain("m2")

    assert [ref.resolved for ref in references] == [True, False]
    assert [m.id for m in console.middlewares.chains_using("m1")] == ["m2"]
    assert [m.id for m in console.middlewares.chain_candidates(exclude_id="m2")] == ["m1"]
    assert console.middlewares.resolve_chain("unknown") == []


def test_service_dangling_references(backend, console):
    backend.on("GET", "/api/services", json_body=[
        {"id": "s1", "name": "main", "type": "loadBalancer", "config": {}},
        {"id": "s2", "name": "fo", "type": "failover", "config": {"service": "main@file", "fallback": "gone"}},
    ])
    asyncio.run(console.services.fetch_all())

    dangling = console.services.dangling_references()

    assert [ref.key for ref in dangling] == ["gone"]
    assert console.services.find_by_name("main").id == "s1"


def test_service_store_protocol_templates(console):
    assert '"address"' in console.services.template_for("loadBalancer", "tcp")
    assert '"url"' in console.services.template_for("loadBalancer", "http")
    assert console.services.template_for("failover", "tcp") == console.template_for("service", "failover")


def test_dangling_references_tolerate_malformed_config(backend, console):
    backend.on("GET", "/api/services", json_body=[
        {"id": "w1", "name": "split", "type": "weighted", "config": {"services": 3}},
        {"id": "m1", "name": "shadow", "type": "mirroring", "config": {"service": "gone", "mirrors": "x"}},
    ])
    asyncio.run(console.services.fetch_all())

    assert [ref.key for ref in console.services.dangling_references()] == ["gone"]
    assert console.services.references(console.services.get("w1")) == []


def test_update_keeps_server_type(backend, console):
    backend.on("GET", "/api/middlewares", json_body=MIDDLEWARES)
    backend.on("PUT", "/api/middlewares/m1", json_body={
        "id": "m1", "name": "auth", "type": "basicAuth", "config": {"users": ["admin:hash"]}
    })

    async def scenario():
        await console.middlewares.fetch_all()
        return await console.middlewares.update("m1", {
            "name": "auth", "type": "digestAuth", "config": {"users": ["admin:hash"]}
        })

    updated = asyncio.run(scenario())

    assert backend.bodies("PUT", "/api/middlewares/m1")[0]["type"] == "digestAuth"
    assert updated.type == "basicAuth"
    assert console.middlewares.get("m1").type == "basicAuth"


def test_create_without_body_refreshes_collection(backend, console):
    backend.on("POST", "/api/middlewares", status=201)
    backend.on("GET", "/api/middlewares", json_body=MIDDLEWARES)

    created = asyncio.run(console.middlewares.create({"name": "auth", "type": "basicAuth", "config": {}}))

    assert created is None
    assert [m.id for m in console.middlewares.collection] == ["m1", "m2"]
    assert console.middlewares.last_error is None
    assert len(backend.calls("GET", "/api/middlewares")) == 1
