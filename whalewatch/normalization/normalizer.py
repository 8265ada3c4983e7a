"""Core normalization functions: raw upstream records to canonical transactions."""

from __future__ import annotations

import logging
from datetime import datetime, timezone
from typing import Any, Iterable, Mapping

from pydantic import ValidationError

from whalewatch.normalization.models import RawChainTransaction, RawTrade, Transaction

logger = logging.getLogger(__name__)


# ============================================================================
# Asset Mappings
# ============================================================================

NETWORK_NAMES = {
    "btc": "Bitcoin",
    "eth": "Ethereum",
    "sol": "Solana",
}

# Smallest on-chain unit per asset: satoshi, wei, lamport
BASE_UNITS = {
    "btc": 1e8,
    "eth": 1e18,
    "sol": 1e9,
}

EXCHANGE_BUYER = "Binance Buyer"
EXCHANGE_SELLER = "Binance Seller"
UNKNOWN_ADDRESS = "Unknown"


class TradeParseError(ValueError):
    """Raised when a single upstream record cannot be decoded."""

    pass


# ============================================================================
# Shared helpers
# ============================================================================


def is_large(value_usd: float | None, threshold: float) -> bool:
    """A trade is large when its USD value meets or exceeds the threshold."""
    return value_usd is not None and value_usd >= threshold


def rank_transactions(transactions: Iterable[Transaction], limit: int) -> list[Transaction]:
    """Sort by USD value, largest first, and keep at most `limit` records.

    The sort is stable, so equal values keep their upstream order.
    """
    if limit < 0:
        raise ValueError("limit must be non-negative")
    ranked = sorted(transactions, key=lambda tx: tx.amount_usd, reverse=True)
    return ranked[:limit]


def epoch_ms_to_datetime(value: int | float) -> datetime:
    return datetime.fromtimestamp(value / 1000.0, tz=timezone.utc)


def to_native_units(asset: str, value: float | None) -> float:
    """Convert an on-chain base-unit amount (satoshi, wei, lamport) to whole coins."""
    if not value:
        return 0.0
    return float(value) / BASE_UNITS.get(asset, 1.0)


# ============================================================================
# Exchange fills
# ============================================================================


def decode_trade(record: Any) -> RawTrade:
    """Validate one raw trade record, raising TradeParseError on bad input."""
    try:
        return RawTrade.model_validate(record)
    except ValidationError as e:
        raise TradeParseError(f"Invalid trade record: {e.error_count()} error(s)") from e


def normalize_trade(asset: str, trade: RawTrade, symbol: str) -> Transaction:
    """
    Reshape an exchange fill into a Transaction.

    Exchange fills carry no on-chain hash and no fee in this feed, so the
    id is synthesized from the asset and trade id and the fees are zero.
    """
    trade_id = f"binance_{asset}_{trade.id}"

    # The maker side rests on the book; when the buyer is the maker the
    # aggressor sold into the bid.
    if trade.is_buyer_maker:
        from_address, to_address = EXCHANGE_SELLER, EXCHANGE_BUYER
    else:
        from_address, to_address = EXCHANGE_BUYER, EXCHANGE_SELLER

    return Transaction(
        id=trade_id,
        hash=trade_id,
        asset=asset,
        network=NETWORK_NAMES.get(asset, asset.upper()),
        amount_native=trade.qty,
        amount_usd=trade.quote_value,
        from_address=from_address,
        to_address=to_address,
        fee_native=0.0,
        fee_usd=0.0,
        timestamp=epoch_ms_to_datetime(trade.time),
        explorer_url=f"https://www.binance.com/en/trade/{symbol}",
        is_exchange_trade=True,
        price=trade.price,
    )


def process_trades(
    asset: str, records: Iterable[Any], symbol: str, threshold: float
) -> list[Transaction]:
    """
    Decode, filter and reshape raw trades.

    Records that fail to decode are logged and skipped. Records below the
    threshold are dropped before a Transaction is built.
    """
    processed: list[Transaction] = []

    for idx, record in enumerate(records):
        try:
            trade = decode_trade(record)
        except TradeParseError as e:
            logger.warning(f"Skipping {asset} trade #{idx}: {e}")
            continue

        if not is_large(trade.quote_value, threshold):
            continue

        processed.append(normalize_trade(asset, trade, symbol))

    return processed


# ============================================================================
# On-chain transfers
# ============================================================================


def extract_addresses(raw: RawChainTransaction) -> tuple[str, str]:
    """Pick sender and receiver, falling back to the first input/output."""
    if raw.sending_address and raw.receiving_address:
        return raw.sending_address, raw.receiving_address

    if raw.inputs:
        sender = raw.inputs[0].get("sending_address") or UNKNOWN_ADDRESS
        receiver = UNKNOWN_ADDRESS
        if raw.outputs:
            receiver = raw.outputs[0].get("receiving_address") or UNKNOWN_ADDRESS
        return sender, receiver

    return UNKNOWN_ADDRESS, UNKNOWN_ADDRESS


def normalize_chain_transaction(
    asset: str, raw: RawChainTransaction, explorer_url: str
) -> Transaction:
    """Reshape an on-chain transfer into a Transaction."""
    from_address, to_address = extract_addresses(raw)
    timestamp = (
        datetime.fromtimestamp(raw.time, tz=timezone.utc)
        if raw.time is not None
        else datetime.now(timezone.utc)
    )

    return Transaction(
        id=raw.hash,
        hash=raw.hash,
        asset=asset,
        network=NETWORK_NAMES.get(asset, asset.upper()),
        amount_native=to_native_units(asset, raw.output_total),
        amount_usd=raw.usd_value or 0.0,
        from_address=from_address,
        to_address=to_address,
        fee_native=to_native_units(asset, raw.fee),
        fee_usd=raw.fee_usd or 0.0,
        timestamp=timestamp,
        block_height=raw.block_id or 0,
        block_hash=raw.block_hash or "",
        explorer_url=explorer_url,
        is_exchange_trade=False,
    )


def process_chain_transactions(
    asset: str,
    transactions: Mapping[str, Any],
    threshold: float,
    explorer_url_template: str,
) -> list[Transaction]:
    """
    Decode, filter and reshape on-chain transactions keyed by hash.

    Transactions without a USD value are treated as below threshold.
    """
    processed: list[Transaction] = []

    for tx_hash, record in transactions.items():
        try:
            payload = dict(record or {})
            payload.setdefault("hash", tx_hash)
            raw = RawChainTransaction.model_validate(payload)
        except (TypeError, ValueError) as e:
            logger.warning(f"Skipping {asset} transaction {tx_hash}: {e}")
            continue

        if not is_large(raw.usd_value, threshold):
            continue

        explorer_url = explorer_url_template.format(hash=raw.hash)
        processed.append(normalize_chain_transaction(asset, raw, explorer_url))

    return processed
