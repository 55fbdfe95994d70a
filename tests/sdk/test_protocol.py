"""Tests for RPC messages and query responses."""

import json
from datetime import datetime, timezone
from decimal import Decimal

import pytest

from surreal_undo.sdk import QueryError, QueryResponse, QueryResult, RecordId, ResponseStatus
from surreal_undo.sdk import cbor
from surreal_undo.sdk.rpc import RPCRequest, RPCResponse


class TestRPCRequest:
    def test_to_dict(self) -> None:
        request = RPCRequest(method="query", params=["SELECT 1;"], id=3)
        assert request.to_dict() == {"id": 3, "method": "query", "params": ["SELECT 1;"]}

    def test_dict_params_are_wrapped(self) -> None:
        request = RPCRequest(method="signin", params={"user": "root"})
        assert request.to_dict()["params"] == [{"user": "root"}]

    def test_query_factory(self) -> None:
        request = RPCRequest.query("SELECT * FROM z;", request_id=7)
        assert request.to_dict() == {"id": 7, "method": "query", "params": ["SELECT * FROM z;", {}]}

    def test_to_json_serializes_surreal_types(self) -> None:
        request = RPCRequest.query(
            "UPDATE $id CONTENT $doc;",
            {
                "id": RecordId("z", "a"),
                "doc": {"at": datetime(2026, 1, 1, tzinfo=timezone.utc), "price": Decimal("1.5"), "gone": None},
            },
        )
        params = json.loads(request.to_json())["params"]

        assert params[1]["id"] == "z:a"
        assert params[1]["doc"] == {"at": "2026-01-01T00:00:00+00:00", "price": 1.5}

    def test_to_cbor(self) -> None:
        request = RPCRequest.query("SELECT 1;", {"id": RecordId("z", 1)})
        decoded = cbor.decode(request.to_cbor())
        assert decoded["params"][1]["id"] == RecordId("z", 1)


class TestRPCResponse:
    def test_result(self) -> None:
        response = RPCResponse.from_json('{"id": 1, "result": [1, 2]}')
        assert not response.is_error
        assert response.result == [1, 2]

    def test_error(self) -> None:
        response = RPCResponse.from_dict({"id": 2, "error": {"code": -32000, "message": "boom"}})
        assert response.is_error
        assert response.error.code == -32000
        assert response.error.message == "boom"

    def test_from_cbor(self) -> None:
        response = RPCResponse.from_cbor(cbor.encode({"id": 4, "result": {"id": RecordId("z", "a")}}))
        assert response.result == {"id": RecordId("z", "a")}


class TestQueryResponse:
    def test_statement_results(self) -> None:
        response = QueryResponse.from_rpc_result(
            [
                {"status": "OK", "result": [{"id": "z:a"}], "time": "1ms"},
                {"status": "OK", "result": {"id": "z:b"}, "time": "1ms"},
                {"status": "OK", "result": 3},
            ]
        )

        assert response.is_ok
        assert response.first_result.records == [{"id": "z:a"}]
        assert response.results[1].records == [{"id": "z:b"}]
        assert response.results[2].records == []
        assert response.all_records == [{"id": "z:a"}, {"id": "z:b"}]

    def test_bare_result(self) -> None:
        response = QueryResponse.from_rpc_result([[{"id": "z:a"}]])
        assert response.first_result.status == ResponseStatus.OK
        assert response.all_records == [{"id": "z:a"}]

    def test_empty(self) -> None:
        response = QueryResponse.from_rpc_result(None)
        assert response.first_result is None
        assert response.all_records == []

    def test_raise_for_status(self) -> None:
        response = QueryResponse(results=[QueryResult(status=ResponseStatus.ERR, result="Parse error")])

        assert not response.is_ok
        with pytest.raises(QueryError, match="Parse error") as exc_info:
            response.raise_for_status("SELEC 1;")
        assert exc_info.value.query == "SELEC 1;"

    def test_raise_for_status_ok(self) -> None:
        response = QueryResponse.from_rpc_result([{"status": "OK", "result": []}])
        assert response.raise_for_status() is response
