"""Block explorer client (RouteScan REST API)."""

from __future__ import annotations

from typing import Any

import httpx

from chain_status.logging import get_logger
from chain_status.monitor.classifier import Block, parse_sample

logger = get_logger(__name__)


class BlockSourceError(Exception):
    """Raised when blocks or balances cannot be fetched (network, HTTP, or bad payload)."""

    pass


class ExplorerClient:
    """Client for the explorer endpoints the monitor needs."""

    def __init__(
        self,
        base_url: str,
        timeout: float = 10.0,
        transport: httpx.BaseTransport | None = None,
    ):
        self.base_url = base_url.rstrip("/")
        self._client = httpx.Client(base_url=self.base_url, timeout=timeout, transport=transport)

    def _get(self, path: str, params: dict[str, Any] | None = None) -> Any:
        try:
            response = self._client.get(path, params=params)
            response.raise_for_status()
            return response.json()
        except httpx.HTTPStatusError as e:
            raise BlockSourceError(
                f"Explorer returned {e.response.status_code} for {path}"
            ) from e
        except httpx.RequestError as e:
            raise BlockSourceError(f"Explorer request failed: {e}") from e
        except ValueError as e:
            raise BlockSourceError(f"Explorer returned invalid JSON for {path}") from e

    def fetch_recent(self, limit: int) -> list[Block]:
        """Fetch the most recent blocks, newest first.

        Args:
            limit: Maximum number of blocks to return

        Returns:
            Up to `limit` blocks; fewer if the explorer returned fewer

        Raises:
            BlockSourceError: If the request fails or the payload has no items
            ClassificationInputInvalid: If a block is malformed
        """
        logger.debug("Fetching blocks", limit=limit)
        params = {"count": "false", "sort": "desc", "limit": str(limit)}
        data = self._get("/blocks", params=params)

        items = data.get("items") if isinstance(data, dict) else None
        if not isinstance(items, list):
            raise BlockSourceError("Explorer response has no block items")

        blocks = parse_sample(items[:limit])
        logger.debug("Blocks fetched", count=len(blocks))
        return blocks

    def fetch_gas_balance(self, address: str) -> int:
        """Fetch the gas balance of an address in wei.

        Raises:
            BlockSourceError: If the request fails or no balance is present
        """
        data = self._get(f"/address/{address}/gas-balance")
        logger.debug("Balance response", address=address, response=data)

        try:
            return int(data["items"][0]["balance"])
        except (KeyError, IndexError, TypeError, ValueError) as e:
            raise BlockSourceError("Invalid balance response: missing balance value") from e

    def close(self) -> None:
        self._client.close()
