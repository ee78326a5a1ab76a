from __future__ import annotations

import json
from unittest.mock import AsyncMock, MagicMock

import pytest
import requests

from clo_exchange.clients.aptos import AptosClient
from clo_exchange.errors import ChainClientError

NODE = "https://node.example/v1"
INDEXER = "https://indexer.example/graphql"


def _response(status: int = 200, body=None) -> requests.Response:
    response = requests.Response()
    response.status_code = status
    response.url = NODE
    response._content = json.dumps(body).encode() if body is not None else b""
    return response


def _client(session, **kwargs) -> AptosClient:
    kwargs.setdefault("max_tries", 1)
    return AptosClient(NODE, INDEXER, poll_interval=0.001, session=session, **kwargs)


@pytest.fixture
def session():
    return MagicMock(spec=requests.Session)


@pytest.mark.asyncio
async def test_view_posts_payload(session):
    session.request.return_value = _response(body=["3000"])
    client = _client(session)

    result = await client.view("0x1::m::exchange_price", ["0xabc"])

    assert result == ["3000"]
    method, url = session.request.call_args.args
    assert (method, url) == ("POST", f"{NODE}/view")
    assert session.request.call_args.kwargs["json"] == {
        "function": "0x1::m::exchange_price",
        "type_arguments": [],
        "arguments": ["0xabc"],
    }


@pytest.mark.asyncio
async def test_view_integer(session):
    session.request.return_value = _response(body=["123456789012345678901234567890"])
    value = await _client(session).view_integer("0x1::m::f", [])
    assert value == 123456789012345678901234567890


@pytest.mark.asyncio
@pytest.mark.parametrize("body", [[], ["not-a-number"], {"unexpected": True}])
async def test_view_integer_rejects_bad_responses(session, body):
    session.request.return_value = _response(body=body)
    with pytest.raises(ChainClientError):
        await _client(session).view_integer("0x1::m::f", [])


@pytest.mark.asyncio
async def test_http_error_message_includes_vm_error_code(session):
    session.request.return_value = _response(
        400, {"message": "Move abort", "error_code": "invalid_input", "vm_error_code": 4}
    )
    with pytest.raises(ChainClientError, match=r"Move abort \(vm_error_code 4\)"):
        await _client(session).view("0x1::m::f", [])


@pytest.mark.asyncio
async def test_transient_errors_are_retried(session, monkeypatch):
    monkeypatch.setattr("asyncio.sleep", AsyncMock())
    session.request.side_effect = [
        _response(503, {"message": "busy"}),
        _response(429, {"message": "slow down"}),
        _response(body=["1"]),
    ]

    assert await _client(session, max_tries=3).view("0x1::m::f", []) == ["1"]
    assert session.request.call_count == 3


@pytest.mark.asyncio
async def test_client_errors_are_not_retried(session):
    session.request.return_value = _response(400, {"message": "bad request"})
    with pytest.raises(ChainClientError):
        await _client(session, max_tries=5).view("0x1::m::f", [])
    assert session.request.call_count == 1


@pytest.mark.asyncio
async def test_connection_errors_are_wrapped(session):
    session.request.side_effect = requests.exceptions.ConnectionError("refused")
    with pytest.raises(ChainClientError, match="failed"):
        await _client(session).view("0x1::m::f", [])


@pytest.mark.asyncio
async def test_get_account_resource_quotes_type(session):
    session.request.return_value = _response(
        body={"type": "0x1::coin::CoinStore", "data": {"coin": {"value": "42"}}}
    )
    data = await _client(session).get_account_resource(
        "0xabc", "0x1::coin::CoinStore<0x1::aptos_coin::AptosCoin>"
    )

    assert data == {"coin": {"value": "42"}}
    url = session.request.call_args.args[1]
    assert url.startswith(f"{NODE}/accounts/0xabc/resource/0x1%3A%3Acoin")
    assert "<" not in url


@pytest.mark.asyncio
async def test_fungible_asset_balance(session):
    session.request.return_value = _response(
        body={
            "data": {
                "current_fungible_asset_balances": [
                    {"amount": "2500000", "asset_type": "0xusdc"}
                ]
            }
        }
    )
    client = _client(session)

    assert await client.get_fungible_asset_balance("0xowner", "0xusdc") == 2500000
    assert session.request.call_args.args[1] == INDEXER
    variables = session.request.call_args.kwargs["json"]["variables"]
    assert variables == {"owner": "0xowner", "asset": "0xusdc"}


@pytest.mark.asyncio
async def test_fungible_asset_balance_without_store(session):
    session.request.return_value = _response(
        body={"data": {"current_fungible_asset_balances": []}}
    )
    assert await _client(session).get_fungible_asset_balance("0xo", "0xa") is None


@pytest.mark.asyncio
async def test_fungible_asset_metadata(session):
    session.request.return_value = _response(
        body={"data": {"fungible_asset_metadata": [{"asset_type": "0xa", "decimals": 6}]}}
    )
    metadata = await _client(session).get_fungible_asset_metadata("0xa")
    assert metadata == {"asset_type": "0xa", "decimals": 6}


@pytest.mark.asyncio
async def test_graphql_errors_raise(session):
    session.request.return_value = _response(
        body={"errors": [{"message": "field not found"}]}
    )
    with pytest.raises(ChainClientError, match="field not found"):
        await _client(session).get_fungible_asset_metadata("0xa")


@pytest.mark.asyncio
async def test_wait_for_transaction_polls_until_committed(session):
    session.request.side_effect = [
        _response(404, {"message": "Transaction not found"}),
        _response(body={"type": "pending_transaction", "hash": "0xh"}),
        _response(
            body={
                "type": "user_transaction",
                "hash": "0xh",
                "success": True,
                "version": "77",
            }
        ),
    ]

    transaction = await _client(session).wait_for_transaction("0xh")

    assert transaction["version"] == "77"
    assert session.request.call_count == 3
    assert session.request.call_args.args[1] == f"{NODE}/transactions/by_hash/0xh"


@pytest.mark.asyncio
async def test_wait_for_transaction_raises_on_failed_execution(session):
    session.request.return_value = _response(
        body={
            "type": "user_transaction",
            "success": False,
            "vm_status": "Move abort in 0x1::fungible_asset: EINSUFFICIENT_BALANCE",
        }
    )
    with pytest.raises(ChainClientError, match="Transaction 0xh failed: Move abort"):
        await _client(session).wait_for_transaction("0xh")


@pytest.mark.asyncio
async def test_wait_for_transaction_propagates_server_errors(session):
    session.request.return_value = _response(500, {"message": "internal"})
    with pytest.raises(ChainClientError, match="internal"):
        await _client(session).wait_for_transaction("0xh")


def test_from_settings_uses_resolved_urls(settings):
    client = AptosClient.from_settings(settings)
    assert client._node_url == "https://node.example/v1"
    assert client._indexer_url == "https://indexer.example/graphql"
    assert client._max_tries == settings.http_max_tries


@pytest.mark.asyncio
@pytest.mark.parametrize(
    "row",
    [{"asset_type": "0xa"}, {"asset_type": "0xa", "amount": None}, {"amount": "x"}],
)
async def test_malformed_balance_row_raises_client_error(session, row):
    session.request.return_value = _response(
        body={"data": {"current_fungible_asset_balances": [row]}}
    )
    with pytest.raises(ChainClientError, match="Malformed balance row"):
        await _client(session).get_fungible_asset_balance("0xo", "0xa")


@pytest.mark.asyncio
@pytest.mark.parametrize("decimals", ["six", -1, 6.5])
async def test_malformed_metadata_row_raises_client_error(session, decimals):
    row = {"asset_type": "0xa", "decimals": decimals}
    session.request.return_value = _response(
        body={"data": {"fungible_asset_metadata": [row]}}
    )
    with pytest.raises(ChainClientError, match="Malformed metadata row"):
        await _client(session).get_fungible_asset_metadata("0xa")
