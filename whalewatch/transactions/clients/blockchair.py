"""
Blockchair on-chain client.

Reads recent confirmed transactions from the per-chain dashboard
endpoint. Anonymous access is heavily rate limited; a rate-limited
response is reported as "no data" rather than as an error.
"""

from typing import Any, Dict, List, Optional

import structlog

from whalewatch.normalization.models import Transaction
from whalewatch.normalization.normalizer import process_chain_transactions
from whalewatch.transactions.clients.base import APIError, APIValidationError, BaseExchangeClient

logger = structlog.get_logger()

CHAINS = {
    "btc": "bitcoin",
    "eth": "ethereum",
    "sol": "solana",
}

RATE_LIMIT_CODES = (429, 430)

# Blockchair caps dashboard page size at 100
DASHBOARD_PAGE_LIMIT = 100


class BlockchairClient(BaseExchangeClient):
    """Large-transaction source backed by Blockchair's chain dashboards."""

    def get_source_name(self) -> str:
        """Return source identifier."""
        return "blockchair"

    def explorer_url_template(self, asset: str) -> str:
        return f"https://blockchair.com/{CHAINS[asset]}/transaction/{{hash}}"

    async def _call(
        self, asset: str, endpoint: str, params: Optional[Dict[str, Any]] = None
    ) -> Dict[str, Any]:
        url = f"{self.config.base_url.rstrip('/')}/{CHAINS[asset]}/{endpoint}"
        query = dict(params or {})
        if self.config.api_key:
            query["key"] = self.config.api_key

        response = await self.http.fetch_with_retry(url, params=query)
        if not isinstance(response, dict):
            raise APIValidationError(f"Unexpected Blockchair payload for {asset}")

        context = response.get("context") or {}
        if context.get("code") in RATE_LIMIT_CODES:
            logger.warning(
                "blockchair.rate_limited",
                asset=asset,
                code=context.get("code"),
                error=context.get("error"),
            )
            return {"data": {"transactions": {}, "blocks": {}}, "context": context}
        if context.get("error"):
            raise APIError(str(context["error"]))

        return response

    async def fetch_large_transactions(self, asset: str) -> List[Transaction]:
        response = await self._call(
            asset,
            "dashboard",
            {
                "transaction_state": "r",
                "limit": min(self.config.trades_fetch_limit, DASHBOARD_PAGE_LIMIT),
                "offset": 0,
            },
        )

        data = response.get("data") or {}
        transactions = data.get("transactions") or {}
        if isinstance(transactions, list):
            transactions = {
                tx.get("hash", str(idx)): tx for idx, tx in enumerate(transactions)
            }

        return process_chain_transactions(
            asset,
            transactions,
            self.config.threshold_usd,
            self.explorer_url_template(asset),
        )

    async def fetch_price(self, asset: str) -> float:
        response = await self._call(asset, "stats")
        data = response.get("data") or {}
        price = data.get("market_price_usd")
        if price is None:
            raise APIValidationError(f"No market price in Blockchair stats for {asset}")
        return float(price)
