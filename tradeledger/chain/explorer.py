"""Async Blockscout explorer client (v2 REST + Etherscan-compatible v1) using httpx.

Every call maps HTTP failures onto the upstream error taxonomy and decodes
the body into a pydantic boundary model, so nothing downstream sees raw JSON.
"""

from __future__ import annotations

import asyncio
import logging
from typing import Any

import httpx
from pydantic import BaseModel, ValidationError

from tradeledger.config import Settings, get_settings
from tradeledger.errors import (
    MalformedResponse,
    UpstreamRateLimited,
    UpstreamServerError,
    UpstreamTimeout,
    UpstreamUnavailable,
)
from tradeledger.models.schema import (
    AccountTransaction,
    TokenTransferItem,
    TokenTransferPage,
    TransactionDetail,
    TransferPage,
)

logger = logging.getLogger(__name__)


class ExplorerClient:
    """Thin async wrapper over the explorer endpoints the pipeline needs."""

    def __init__(
        self,
        settings: Settings | None = None,
        transport: httpx.AsyncBaseTransport | None = None,
    ):
        self.settings = settings or get_settings()
        self._client = httpx.AsyncClient(
            timeout=self.settings.request_timeout,
            transport=transport,
        )

    async def __aenter__(self) -> ExplorerClient:
        return self

    async def __aexit__(self, *exc_info) -> None:
        await self.aclose()

    async def aclose(self) -> None:
        await self._client.aclose()

    async def _get_json(self, url: str, params: dict[str, Any] | None = None) -> Any:
        try:
            resp = await self._client.get(url, params=params)
        except httpx.TimeoutException as e:
            raise UpstreamTimeout(f"Timeout fetching {url}") from e
        except httpx.HTTPError as e:
            raise UpstreamUnavailable(f"Network error fetching {url}: {e}") from e

        status = resp.status_code
        if status == 429:
            raise UpstreamRateLimited(f"Rate limited (429) fetching {url}", status_code=status)
        if status >= 500:
            raise UpstreamServerError(f"Server error ({status}) fetching {url}", status_code=status)
        if status >= 400:
            raise UpstreamUnavailable(f"HTTP {status} fetching {url}", status_code=status)

        try:
            return resp.json()
        except ValueError as e:
            raise MalformedResponse(f"Non-JSON body from {url}", status_code=status) from e

    @staticmethod
    def _decode(model: type[BaseModel], data: Any, url: str):
        try:
            return model.model_validate(data)
        except ValidationError as e:
            raise MalformedResponse(f"Unexpected response shape from {url}: {e}") from e

    async def fetch_transfer_page(
        self,
        token_address: str,
        page_size: int = 50,
        cursor: dict[str, Any] | None = None,
    ) -> TransferPage:
        """One page of token transfers; ``cursor`` is the previous page's next_page_params."""
        url = f"{self.settings.api_v2_url}/tokens/{token_address}/transfers"
        params: dict[str, Any] = {"items_count": page_size}
        if cursor:
            params.update(cursor)
        data = await self._get_json(url, params=params)
        return self._decode(TransferPage, data, url)

    async def fetch_transaction(self, tx_hash: str) -> TransactionDetail:
        if self.settings.request_spacing > 0:
            await asyncio.sleep(self.settings.request_spacing)
        url = f"{self.settings.api_v2_url}/transactions/{tx_hash}"
        data = await self._get_json(url)
        return self._decode(TransactionDetail, data, url)

    async def fetch_transaction_transfers(self, tx_hash: str) -> list[TokenTransferItem]:
        """All token transfers of a transaction via the dedicated paginated endpoint."""
        url = f"{self.settings.api_v2_url}/transactions/{tx_hash}/token-transfers"
        items: list[TokenTransferItem] = []
        cursor: dict[str, Any] | None = None
        while True:
            data = await self._get_json(url, params=cursor)
            page = self._decode(TokenTransferPage, data, url)
            items.extend(page.items)
            if not page.next_page_params or not page.items:
                return items
            cursor = page.next_page_params

    async def fetch_transaction_with_transfers(
        self, tx_hash: str
    ) -> tuple[TransactionDetail, list[TokenTransferItem]]:
        """Detail plus its transfers: one call when inline, two otherwise."""
        detail = await self.fetch_transaction(tx_hash)
        if self.settings.inline_transfers and detail.token_transfers is not None:
            return detail, detail.token_transfers
        return detail, await self.fetch_transaction_transfers(tx_hash)

    async def fetch_last_transactions(self, address: str, limit: int = 10) -> list[AccountTransaction]:
        """Latest transactions touching ``address`` via the v1 txlist action."""
        url = self.settings.api_v1_url
        params = {
            "module": "account",
            "action": "txlist",
            "address": address,
            "page": 1,
            "offset": limit,
            "sort": "desc",
        }
        data = await self._get_json(url, params=params)
        if not isinstance(data, dict):
            raise MalformedResponse(f"Unexpected response shape from {url}")
        if data.get("status") != "1":
            logger.warning(f"txlist returned no results: {data.get('message')}")
            return []
        try:
            return [AccountTransaction.model_validate(tx) for tx in data.get("result") or []]
        except ValidationError as e:
            raise MalformedResponse(f"Unexpected txlist entry from {url}: {e}") from e
