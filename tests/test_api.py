# tests/test_api.py

from decimal import Decimal

import pytest
from fastapi.testclient import TestClient

from api.main import create_app
from netflow.database import ReadCache, ReadThroughCache
from netflow.types import Direction

from conftest import EXCHANGE, TOKEN, make_event


@pytest.fixture
def client(store):
    with TestClient(create_app(ReadThroughCache(store))) as test_client:
        yield test_client


def test_root(client):
    response = client.get("/")
    assert response.status_code == 200
    assert response.json() == {"service": "netflow-indexer", "status": "running"}


def test_netflow_for_unindexed_token_is_zero(client):
    response = client.get("/netflow", params={"token": TOKEN})
    assert response.status_code == 200
    body = response.json()
    assert body["token_address"] == TOKEN
    assert body["cumulative_net"] == "0"
    assert body["inflow_total"] == "0"
    assert body["outflow_total"] == "0"
    assert body["last_block"] == 0
    assert body["updated_at"] is None


def test_netflow_after_indexing(client, store):
    store.upsert_transfers_and_aggregate(
        [make_event("100.5", Direction.IN), make_event("0.5", Direction.OUT)], to_block=321)

    body = client.get("/netflow", params={"token": TOKEN.upper().replace("0X", "0x")}).json()

    assert body["cumulative_net"] == "100"
    assert body["inflow_total"] == "100.5"
    assert body["outflow_total"] == "0.5"
    assert body["last_block"] == 321
    assert body["updated_at"].startswith("2024-01-01T12:00:00")


def test_transfers_newest_first_with_default_limit(client, store):
    events = [make_event(str(i), Direction.IN, block_number=100 + i) for i in range(1, 13)]
    store.upsert_transfers_and_aggregate(events, to_block=112)

    body = client.get("/transfers", params={"token": TOKEN}).json()

    assert body["token"] == TOKEN
    assert body["limit"] == 10
    assert body["count"] == 10
    assert [t["block_number"] for t in body["transfers"]] == list(range(112, 102, -1))
    first = body["transfers"][0]
    assert first["amount"] == "12"
    assert first["direction"] == "IN"
    assert first["to_address"] == EXCHANGE
    assert set(first) == {"tx_hash", "log_index", "block_number", "from_address",
                          "to_address", "amount", "direction", "timestamp"}


def test_transfers_limit_and_offset(client, store):
    events = [make_event("1", block_number=100 + i) for i in range(5)]
    store.upsert_transfers_and_aggregate(events, to_block=105)

    body = client.get("/transfers", params={"token": TOKEN, "limit": 2, "offset": 1}).json()

    assert [t["block_number"] for t in body["transfers"]] == [103, 102]


@pytest.mark.parametrize("path", ["/netflow", "/transfers"])
@pytest.mark.parametrize("token", ["0x1234", "hello", ""])
def test_invalid_token_is_422(client, path, token):
    assert client.get(path, params={"token": token}).status_code == 422


def test_missing_token_is_422(client):
    assert client.get("/netflow").status_code == 422


@pytest.mark.parametrize("limit", [0, 1001, -5])
def test_limit_out_of_range_is_422(client, limit):
    assert client.get("/transfers", params={"token": TOKEN, "limit": limit}).status_code == 422


class BrokenCache(ReadCache):
    def get_netflow(self, token_address):
        raise RuntimeError("database is locked")

    def list_transfers(self, token_address, limit, offset=0):
        raise RuntimeError("database is locked")


def test_storage_failure_is_500():
    with TestClient(create_app(BrokenCache())) as test_client:
        assert test_client.get("/netflow", params={"token": TOKEN}).status_code == 500
        assert test_client.get("/transfers", params={"token": TOKEN}).status_code == 500
        assert test_client.get("/").status_code == 200


def test_amounts_are_exact_strings(client, store):
    store.upsert_transfers_and_aggregate([make_event("0.000000000000000001")], to_block=1)
    body = client.get("/netflow", params={"token": TOKEN}).json()
    assert body["inflow_total"] == "0.000000000000000001"
    assert Decimal(body["cumulative_net"]) == Decimal("1E-18")
