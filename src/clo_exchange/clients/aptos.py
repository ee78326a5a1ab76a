"""Aptos full-node REST and indexer GraphQL client.

Only the handful of read calls the exchange needs are implemented:
view functions, account resources, fungible-asset balances and metadata,
and waiting for a submitted transaction to be committed.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any, Awaitable, Callable, TypedDict, TypeVar
from urllib.parse import quote

import backoff
import requests

from ..constants import RETRYABLE_HTTP_STATUSES
from ..errors import ChainClientError
from ..settings import ExchangeSettings

logger = logging.getLogger(__name__)

T = TypeVar("T")

BALANCE_QUERY = """
query FungibleAssetBalance($owner: String, $asset: String) {
  current_fungible_asset_balances(
    where: {owner_address: {_eq: $owner}, asset_type: {_eq: $asset}}
  ) {
    amount
    asset_type
  }
}
"""

METADATA_QUERY = """
query FungibleAssetMetadata($asset: String) {
  fungible_asset_metadata(where: {asset_type: {_eq: $asset}}) {
    asset_type
    decimals
  }
}
"""


class FungibleAssetMetadata(TypedDict, total=False):
    asset_type: str
    decimals: int | None


def _is_permanent_http_error(e: Exception) -> bool:
    return (
        isinstance(e, requests.exceptions.HTTPError)
        and e.response is not None
        and e.response.status_code not in RETRYABLE_HTTP_STATUSES
    )


def _error_message(response: requests.Response) -> str:
    try:
        body = response.json()
    except ValueError:
        return response.text or response.reason or str(response.status_code)
    if isinstance(body, dict):
        message = body.get("message") or body.get("error_code")
        vm_error = body.get("vm_error_code")
        if message and vm_error is not None:
            return f"{message} (vm_error_code {vm_error})"
        if message:
            return str(message)
    return str(body)


def _is_pending(transaction: dict[str, Any] | None) -> bool:
    return transaction is None or transaction.get("type") == "pending_transaction"


class AptosClient:
    """Client for the Aptos node and indexer APIs.

    Requests are synchronous ``requests`` calls moved off the event loop with
    ``asyncio.to_thread`` and retried with exponential backoff on transient
    failures (connection errors, 429 and 5xx responses).
    """

    def __init__(
        self,
        node_url: str,
        indexer_url: str,
        *,
        request_timeout: float = 10.0,
        max_tries: int = 5,
        poll_interval: float = 1.0,
        poll_max_interval: float = 5.0,
        session: requests.Session | None = None,
    ):
        self._node_url = node_url.rstrip("/")
        self._indexer_url = indexer_url
        self._request_timeout = request_timeout
        self._max_tries = max_tries
        self._poll_interval = poll_interval
        self._poll_max_interval = poll_max_interval
        self._session = session or requests.Session()

    @classmethod
    def from_settings(cls, settings: ExchangeSettings) -> "AptosClient":
        return cls(
            settings.resolved_node_url,
            settings.resolved_indexer_url,
            request_timeout=settings.http_timeout,
            max_tries=settings.http_max_tries,
            poll_max_interval=settings.confirmation_poll_max_interval,
        )

    def _with_retry(
        self, func: Callable[..., Awaitable[T]]
    ) -> Callable[..., Awaitable[T]]:
        return backoff.on_exception(
            backoff.expo,
            requests.exceptions.RequestException,
            max_tries=self._max_tries,
            giveup=_is_permanent_http_error,
            jitter=backoff.full_jitter,
        )(func)

    async def _send(
        self, method: str, url: str, **kwargs: Any
    ) -> requests.Response:
        logger.debug("%s %s", method, url)
        response = await asyncio.to_thread(
            self._session.request,
            method,
            url,
            timeout=self._request_timeout,
            **kwargs,
        )
        response.raise_for_status()
        return response

    async def _request(self, method: str, url: str, **kwargs: Any) -> Any:
        try:
            response = await self._with_retry(self._send)(method, url, **kwargs)
        except requests.exceptions.HTTPError as e:
            if e.response is None:
                raise ChainClientError(str(e)) from e
            raise ChainClientError(_error_message(e.response)) from e
        except requests.exceptions.RequestException as e:
            raise ChainClientError(f"Request to {url} failed: {e}") from e
        try:
            return response.json()
        except ValueError as e:
            raise ChainClientError(f"Invalid JSON from {url}") from e

    async def _graphql(self, query: str, variables: dict[str, Any]) -> dict[str, Any]:
        body = await self._request(
            "POST",
            self._indexer_url,
            json={"query": query, "variables": variables},
        )
        if not isinstance(body, dict):
            raise ChainClientError(f"Invalid indexer response: {body}")
        if body.get("errors"):
            messages = "; ".join(
                str(err.get("message", err)) for err in body["errors"]
            )
            raise ChainClientError(f"Indexer query failed: {messages}")
        data = body.get("data")
        if not isinstance(data, dict):
            raise ChainClientError(f"Invalid indexer response: {body}")
        return data

    async def view(
        self,
        function_id: str,
        arguments: list[Any],
        type_arguments: list[str] | None = None,
    ) -> list[Any]:
        """Execute a view function and return its result values."""
        result = await self._request(
            "POST",
            f"{self._node_url}/view",
            json={
                "function": function_id,
                "type_arguments": type_arguments or [],
                "arguments": arguments,
            },
        )
        if not isinstance(result, list):
            raise ChainClientError(f"Invalid view response: {result}")
        return result

    async def view_integer(self, function_id: str, arguments: list[Any]) -> int:
        """Execute a view function returning a single integer."""
        result = await self.view(function_id, arguments)
        if not result:
            raise ChainClientError(f"Empty view response from {function_id}")
        try:
            return int(result[0])
        except (TypeError, ValueError) as e:
            raise ChainClientError(
                f"Non-integer view response from {function_id}: {result[0]!r}"
            ) from e

    async def get_account_resource(
        self, address: str, resource_type: str
    ) -> dict[str, Any]:
        url = (
            f"{self._node_url}/accounts/{address}/resource/"
            f"{quote(resource_type, safe='')}"
        )
        resource = await self._request("GET", url)
        if not isinstance(resource, dict) or "data" not in resource:
            raise ChainClientError(f"Invalid resource response: {resource}")
        return resource["data"]

    async def get_fungible_asset_balance(self, owner: str, asset: str) -> int | None:
        """Raw balance of ``asset`` held by ``owner``; None when no store exists."""
        data = await self._graphql(BALANCE_QUERY, {"owner": owner, "asset": asset})
        rows = data.get("current_fungible_asset_balances") or []
        if not rows:
            return None
        try:
            return int(rows[0]["amount"])
        except (KeyError, TypeError, ValueError) as e:
            raise ChainClientError(f"Malformed balance row: {rows[0]!r}") from e

    async def get_fungible_asset_metadata(
        self, asset: str
    ) -> FungibleAssetMetadata | None:
        data = await self._graphql(METADATA_QUERY, {"asset": asset})
        rows = data.get("fungible_asset_metadata") or []
        if not rows:
            return None
        row = rows[0]
        if not isinstance(row, dict):
            raise ChainClientError(f"Malformed metadata row: {row!r}")
        decimals = row.get("decimals")
        if decimals is not None and (not isinstance(decimals, int) or decimals < 0):
            raise ChainClientError(f"Malformed metadata row: {row!r}")
        return row

    async def _fetch_transaction(self, tx_hash: str) -> dict[str, Any] | None:
        try:
            return await self._request(
                "GET", f"{self._node_url}/transactions/by_hash/{tx_hash}"
            )
        except ChainClientError as e:
            cause = e.__cause__
            if (
                isinstance(cause, requests.exceptions.HTTPError)
                and cause.response is not None
                and cause.response.status_code == 404
            ):
                return None
            raise

    async def wait_for_transaction(self, tx_hash: str) -> dict[str, Any]:
        """Poll until ``tx_hash`` is committed.

        There is no overall timeout; the polling interval grows up to the
        configured maximum.

        Raises:
            ChainClientError: If the committed transaction did not succeed
        """
        poll = backoff.on_predicate(
            backoff.expo,
            _is_pending,
            factor=self._poll_interval,
            max_value=self._poll_max_interval,
            jitter=None,
        )(self._fetch_transaction)
        transaction = await poll(tx_hash)

        if not transaction.get("success", False):
            vm_status = transaction.get("vm_status", "unknown failure")
            raise ChainClientError(f"Transaction {tx_hash} failed: {vm_status}")
        logger.debug(
            "Transaction %s committed (version %s)",
            tx_hash,
            transaction.get("version"),
        )
        return transaction
