"""Tests for the HTTP calldata service client."""

import asyncio
import json

import httpx
import pytest

from lpflow.chain.http_builder import HttpTransactionBuilder
from lpflow.constants import PERMIT2_ADDRESS
from lpflow.interfaces import ExecuteCall
from lpflow.permissions.permit2 import build_permit_batch
from lpflow.steps.types import ExecuteKind
from tests.helpers import DAI, NOW, USDC, make_request

TARGET = "0x" + "cd" * 20


def make_builder(handler) -> HttpTransactionBuilder:
    client = httpx.AsyncClient(transport=httpx.MockTransport(handler))
    return HttpTransactionBuilder("https://calldata.example/", client=client)


class TestBuildExecute:
    def test_posts_call_and_parses_transaction(self, config):
        seen = []

        def handler(request: httpx.Request) -> httpx.Response:
            seen.append(request)
            return httpx.Response(200, json={"to": TARGET, "data": "0xdeadbeef", "value": "7"})

        batch = build_permit_batch([(DAI, 0), (USDC, 0)], now=NOW, config=config)
        call = ExecuteCall(
            kind=ExecuteKind.CREATE_POSITION,
            deposit=make_request(),
            permit_batch=batch,
            signature="0x" + "11" * 65,
        )

        tx = asyncio.run(make_builder(handler).build_execute(call))

        assert (tx.to, tx.data, tx.value) == (TARGET, "0xdeadbeef", 7)
        request = seen[0]
        assert request.method == "POST"
        assert str(request.url) == "https://calldata.example/execute/create_position"
        body = json.loads(request.content)
        assert body["kind"] == "create_position"
        assert body["deposit"]["amount0"] == 10**21
        assert body["permit_batch"]["sigDeadline"] == batch.sig_deadline
        assert body["signature"] == call.signature

    def test_value_defaults_to_zero(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(200, json={"to": TARGET, "data": "0x"})

        call = ExecuteCall(kind=ExecuteKind.INCREASE_POSITION, deposit=make_request(token_id=9))
        tx = asyncio.run(make_builder(handler).build_execute(call))
        assert tx.value == 0

    def test_error_status_raises(self):
        def handler(request: httpx.Request) -> httpx.Response:
            return httpx.Response(500, text="upstream down")

        call = ExecuteCall(kind=ExecuteKind.ZAP_DEPOSIT, deposit=make_request())
        with pytest.raises(httpx.HTTPStatusError):
            asyncio.run(make_builder(handler).build_execute(call))


class TestBuildApprove:
    def test_encoded_locally(self):
        def handler(request: httpx.Request) -> httpx.Response:
            raise AssertionError("approvals must not hit the service")

        tx = asyncio.run(make_builder(handler).build_approve(DAI, PERMIT2_ADDRESS, 1))
        assert tx.to == DAI
        assert tx.data.startswith("0x095ea7b3")
