"""Tests for the Starknet JSON-RPC client."""

from unittest.mock import AsyncMock

import aiohttp
import pytest

from vesu_liquidator.api.rpc import StarknetRpcClient
from vesu_liquidator.errors import RpcError
from vesu_liquidator.models.starknet import get_selector_from_name


class FakeResponse:
    def __init__(self, status=200, body=None):
        self.status = status
        self._body = body or {}

    async def json(self):
        return self._body

    async def text(self):
        return str(self._body)

    async def __aenter__(self):
        return self

    async def __aexit__(self, *exc):
        return False


class FakeSession:
    """Replays queued responses (or raises queued exceptions) in order."""

    def __init__(self, *responses):
        self.responses = list(responses)
        self.payloads = []

    def post(self, url, json=None, headers=None):
        self.payloads.append(json)
        response = self.responses.pop(0)
        if isinstance(response, Exception):
            raise response
        return response

    async def close(self):
        pass


def make_client(*responses):
    client = StarknetRpcClient(url="http://rpc.test", max_retries=2, backoff_sec=0)
    client._session = FakeSession(*responses)
    return client


class TestRequest:
    async def test_returns_result(self):
        client = make_client(FakeResponse(body={"jsonrpc": "2.0", "id": 1, "result": "0x10"}))
        assert await client.block_number() == 16

        payload = client._session.payloads[0]
        assert payload["method"] == "starknet_blockNumber"
        assert payload["jsonrpc"] == "2.0"

    async def test_error_member_raises_with_code(self):
        client = make_client(FakeResponse(body={
            "error": {"code": 29, "message": "Transaction hash not found"},
        }))
        with pytest.raises(RpcError) as exc_info:
            await client.get_transaction_status(0xABC)
        assert exc_info.value.code == 29

    async def test_retries_transport_errors(self):
        client = make_client(
            aiohttp.ClientConnectionError("reset"),
            FakeResponse(body={"result": 5}),
        )
        assert await client.block_number() == 5
        assert len(client._session.payloads) == 2

    async def test_rate_limit_backs_off_then_succeeds(self):
        client = make_client(FakeResponse(status=429), FakeResponse(body={"result": 7}))
        assert await client.block_number() == 7

    async def test_gives_up_after_retries(self):
        client = make_client(*[aiohttp.ClientConnectionError("down")] * 3)
        with pytest.raises(RpcError):
            await client.block_number()

    async def test_http_error_is_not_retried(self):
        client = make_client(FakeResponse(status=500, body={"oops": True}))
        with pytest.raises(RpcError):
            await client.block_number()
        assert len(client._session.payloads) == 1


class TestMethods:
    async def test_call_encodes_selector_and_calldata(self):
        client = make_client()
        client._request = AsyncMock(return_value=["0x1", "0x2"])

        result = await client.call(0x22, "position_unsafe", [1, 255])

        assert result == [1, 2]
        method, params = client._request.await_args.args
        assert method == "starknet_call"
        request = params["request"]
        assert request["contract_address"] == "0x22"
        assert request["entry_point_selector"] == hex(get_selector_from_name("position_unsafe"))
        assert request["calldata"] == ["0x1", "0xff"]
        assert params["block_id"] == "latest"

    async def test_receipt_is_parsed(self):
        client = make_client()
        client._request = AsyncMock(return_value={
            "transaction_hash": "0x5",
            "execution_status": "SUCCEEDED",
            "finality_status": "ACCEPTED_ON_L2",
            "events": [{"from_address": "0x1", "keys": ["0x2"], "data": ["0x3", "4"]}],
        })

        receipt = await client.get_transaction_receipt(5)

        assert receipt.transaction_hash == 5
        assert receipt.succeeded
        assert receipt.events[0].data == [3, 4]

    async def test_context_manager_closes_session(self):
        async with StarknetRpcClient(url="http://rpc.test") as client:
            assert client._session is not None
        assert client._session is None
