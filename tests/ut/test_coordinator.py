import json

import pytest

from tally.core.context import AggregatorContext
from tally.core.coordinator import Coordinator
from tally.core.model.message import Request
from tally.core.store import now_millis
from tally.infra.snapshot_store import FileSnapshotStore


def put(body: bytes | str, clock: int | str | None = 0, length: int | str | None = None) -> Request:
    if isinstance(body, str):
        body = body.encode()
    headers = {"content-type": "application/json"}
    if clock is not None:
        headers["lamport-clock"] = str(clock)
    headers["content-length"] = str(len(body) if length is None else length)
    return Request(method="PUT", target="/weather.json", headers=headers, body=body)


def get() -> Request:
    return Request(method="GET", target="/weather.json")


@pytest.fixture
def context(tmp_path):
    ctx = AggregatorContext.create(FileSnapshotStore(tmp_path / "server_data.json"))
    yield ctx
    ctx.close()


@pytest.fixture
def coordinator(context):
    return Coordinator(context)


S1 = json.dumps({"id": "S1", "temp": "25"})


@pytest.mark.ut
@pytest.mark.asyncio
async def test_publish_created_then_replaced(coordinator):
    first = await coordinator.handle(put(S1, clock=0))
    assert first.status == 201
    assert first.clock >= 1

    second = await coordinator.handle(put(S1, clock=first.clock))
    assert second.status == 200
    assert second.clock > first.clock


@pytest.mark.ut
@pytest.mark.asyncio
async def test_publish_status_ignores_clock_values(coordinator):
    assert (await coordinator.handle(put(S1, clock=100))).status == 201
    assert (await coordinator.handle(put(S1, clock=0))).status == 200


@pytest.mark.ut
@pytest.mark.asyncio
async def test_publish_merges_sender_clock(coordinator, context):
    response = await coordinator.handle(put(S1, clock=41))
    assert response.clock == 42
    assert context.clock.current() == 42
    assert context.store.get("S1").clock == 42


@pytest.mark.ut
@pytest.mark.asyncio
async def test_publish_without_clock_header_counts_as_zero(coordinator):
    response = await coordinator.handle(put(S1, clock=None))
    assert response.status == 201
    assert response.clock == 1


@pytest.mark.ut
@pytest.mark.asyncio
async def test_publish_persists_before_answering(coordinator, context):
    await coordinator.handle(put(S1))
    assert context.snapshots.load() == [{"id": "S1", "temp": "25"}]


@pytest.mark.ut
@pytest.mark.asyncio
@pytest.mark.parametrize("request_", [
    put(S1, length=0),
    put(S1, length=-4),
    put(S1, length="abc"),
    put(S1, clock="soon"),
    put(S1, clock=-1),
    Request(method="PUT", headers={"lamport-clock": "1"}, body=S1.encode()),
])
async def test_malformed_publish_is_400_without_state_change(coordinator, context, request_):
    response = await coordinator.handle(request_)
    assert response.status == 400
    assert context.clock.current() == 0
    assert context.store.is_empty()


@pytest.mark.ut
@pytest.mark.asyncio
@pytest.mark.parametrize("body", [
    "not json at all",
    json.dumps({"temp": "25"}),
    json.dumps({"id": "", "temp": "25"}),
    json.dumps({"id": "S1", "wind": {"dir": "NW"}}),
])
async def test_undecodable_publish_is_500_without_state_change(coordinator, context, body):
    response = await coordinator.handle(put(body, clock=7))
    assert response.status == 500
    assert context.clock.current() == 0
    assert context.store.is_empty()


@pytest.mark.ut
@pytest.mark.asyncio
async def test_unknown_method_is_400(coordinator, context):
    response = await coordinator.handle(Request(method="DELETE"))
    assert response.status == 400
    assert context.clock.current() == 0


@pytest.mark.ut
@pytest.mark.asyncio
async def test_fetch_empty_store_is_404(coordinator, context):
    response = await coordinator.handle(get())
    assert response.status == 404
    assert response.clock == 1
    assert context.clock.current() == 1


@pytest.mark.ut
@pytest.mark.asyncio
async def test_fetch_returns_readings(coordinator):
    await coordinator.handle(put(S1))
    response = await coordinator.handle(get())

    assert response.status == 200
    assert response.content_type == "application/json"
    assert b'"S1"' in response.body
    assert json.loads(response.body) == [{"id": "S1", "temp": "25"}]


@pytest.mark.ut
@pytest.mark.asyncio
async def test_fetch_advances_clock(coordinator):
    published = await coordinator.handle(put(S1, clock=10))
    fetched = await coordinator.handle(get())
    assert fetched.clock == published.clock + 1


@pytest.mark.ut
@pytest.mark.asyncio
async def test_fetch_expires_inline_before_sweeper_tick(coordinator, context):
    await coordinator.handle(put(S1))
    context.store.upsert("S1", {"id": "S1", "temp": "25"}, clock=1, now_ms=now_millis() - 31_000)

    response = await coordinator.handle(get())
    assert response.status == 404
    assert context.snapshots.load() == []


@pytest.mark.ut
@pytest.mark.asyncio
async def test_expired_reading_absent_after_eviction_pass(coordinator, context):
    await coordinator.handle(put(S1))
    await coordinator.handle(put(json.dumps({"id": "S2", "temp": "19"})))
    context.store.upsert("S1", {"id": "S1"}, clock=1, now_ms=now_millis() - 60_000)

    assert await context.sweeper.sweep() is True

    response = await coordinator.handle(get())
    assert response.status == 200
    assert json.loads(response.body) == [{"id": "S2", "temp": "19"}]


@pytest.mark.ut
@pytest.mark.asyncio
async def test_store_reloads_from_snapshot(coordinator, context):
    await coordinator.handle(put(S1))
    context.store.clear()
    assert context.store.is_empty()

    assert context.restore() == 1
    assert context.store.get("S1").reading == {"id": "S1", "temp": "25"}


@pytest.mark.ut
@pytest.mark.asyncio
async def test_gateway_loop_sends_one_response_per_request(coordinator):
    requests = [put(S1), get(), None]
    sent = []

    async def receive():
        return requests.pop(0)

    async def send(response):
        sent.append(response.status)

    await coordinator(receive, send)
    assert sent == [201, 200]


@pytest.mark.ut
@pytest.mark.asyncio
async def test_unexpected_handler_error_is_500(coordinator, context, monkeypatch):
    def explode(*args, **kwargs):
        raise RuntimeError("boom")

    monkeypatch.setattr(context.store, "upsert", explode)
    response = await coordinator.handle(put(S1))
    assert response.status == 500
