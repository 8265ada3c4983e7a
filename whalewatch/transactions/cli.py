"""
Dashboard CLI commands.

Provides a command-line front end: one-off fetches, prices, 24h stats,
and a foreground loop that keeps refreshing.
"""

import asyncio
import sys
from typing import List, Optional
import structlog

from whalewatch.core.config import get_settings
from whalewatch.core.logging import configure_logging
from whalewatch.normalization.formatting import (
    format_amount,
    format_time_ago,
    format_usd,
    shorten_address,
)
from whalewatch.normalization.models import Transaction
from whalewatch.transactions.controller import ALL_ASSETS, build_dashboard

logger = structlog.get_logger()


def print_transactions(transactions: List[Transaction]):
    """Pretty print a transaction list as one line per card."""
    if not transactions:
        print("No large transactions found.")
        return

    for tx in transactions:
        print(
            f"{format_usd(tx.amount_usd):>10}  "
            f"{format_amount(tx.amount_native, 4):>14} {tx.asset.upper():<4} "
            f"{tx.network:<9} "
            f"{shorten_address(tx.from_address)} -> {shorten_address(tx.to_address)}  "
            f"{format_time_ago(tx.timestamp)}"
        )


def print_status(status: dict):
    """Pretty print dashboard status."""
    print("\n=== Dashboard Status ===\n")
    print(f"State: {status['state']}")
    print(f"View: {status['view']}")
    print(f"{status['last_update_text']}")
    print(f"Transactions: {status['transaction_count']}")
    if status["error"]:
        print(f"Error: {status['error']}")

    cache = status["cache"]
    print(f"\n--- Cache ---")
    print(f"Entries: {cache['total']} ({cache['valid']} valid, {cache['expired']} expired)")

    if status["last_run"]:
        run = status["last_run"]
        print(f"\n--- Last Run ---")
        print(f"Run ID: {run['run_id']}")
        print(f"Status: {run['status']}")
        print(f"Duration: {run['duration_seconds']:.2f}s")
        for asset, count in run["transactions_per_asset"].items():
            print(f"  {asset}: {count}")
        if run["failed_assets"]:
            print(f"Failed: {', '.join(run['failed_assets'])}")

    config = status["config"]
    print(f"\n--- Configuration ---")
    print(f"Source: {config['source']}")
    print(f"Threshold: {format_usd(config['threshold_usd'])}")
    print(f"Per asset: {config['transactions_per_asset']}")
    print()


async def fetch_command(asset: str = ALL_ASSETS, sort: str = "amount"):
    """Load once and print the visible list."""
    dashboard = build_dashboard()
    result = await dashboard.load_data()

    if result["status"] == "error":
        print(f"Load failed: {result['error']}")
        return 1

    print_transactions(dashboard.visible_transactions(asset=asset, sort=sort))
    print_status(dashboard.get_status())
    return 0


async def prices_command():
    """Show current prices, marking fallbacks."""
    dashboard = build_dashboard()
    for asset, service in dashboard.services.items():
        quote = await service.get_price()
        marker = "  (fallback)" if quote.is_fallback else ""
        print(f"{asset.upper():<4} ${format_amount(quote.price, 2)}{marker}")
    return 0


async def stats_command(asset: Optional[str] = None):
    """Show 24h statistics."""
    dashboard = build_dashboard()
    assets = [asset] if asset else list(dashboard.services)
    for name in assets:
        service = dashboard.services.get(name)
        if service is None:
            print(f"Unsupported asset: {name}")
            return 1
        stats = await service.get_24h_stats()
        if stats is None:
            print(f"{name.upper():<4} unavailable")
            continue
        print(
            f"{name.upper():<4} change {stats.price_change_percent:+.2f}%  "
            f"high ${format_amount(stats.high)}  low ${format_amount(stats.low)}  "
            f"volume {format_usd(stats.quote_volume)}"
        )
    return 0


async def run_command():
    """Run the dashboard continuously, printing after each refresh."""
    dashboard = build_dashboard()
    print(f"Refresh interval: {dashboard.config.refresh_interval_minutes} minutes")
    print(f"Press Ctrl+C to stop\n")

    try:
        await dashboard.start()
        last_seen = None
        while True:
            last_run = dashboard.metrics.get_last_run()
            if last_run and last_run.run_id != last_seen:
                last_seen = last_run.run_id
                print_transactions(dashboard.visible_transactions())
                print(dashboard.last_update_text)
            await asyncio.sleep(1)
    except KeyboardInterrupt:
        print("\nShutting down...")
        return 0
    finally:
        await dashboard.stop()


def main():
    """Main CLI entry point."""
    if len(sys.argv) < 2:
        print("Usage: python -m whalewatch.transactions.cli <command> [options]")
        print("\nCommands:")
        print("  fetch [asset] [amount|time]   Load once and print large transactions")
        print("  prices                        Show current prices")
        print("  stats [asset]                 Show 24h statistics")
        print("  run                           Run with auto-refresh")
        print("\nExamples:")
        print("  python -m whalewatch.transactions.cli fetch")
        print("  python -m whalewatch.transactions.cli fetch eth time")
        print("  python -m whalewatch.transactions.cli stats btc")
        return 1

    settings = get_settings()
    configure_logging(settings.ENV, settings.LOG_LEVEL)
    command = sys.argv[1]

    try:
        if command == "fetch":
            asset = sys.argv[2] if len(sys.argv) > 2 else ALL_ASSETS
            sort = sys.argv[3] if len(sys.argv) > 3 else "amount"
            return asyncio.run(fetch_command(asset, sort))
        elif command == "prices":
            return asyncio.run(prices_command())
        elif command == "stats":
            asset = sys.argv[2] if len(sys.argv) > 2 else None
            return asyncio.run(stats_command(asset))
        elif command == "run":
            return asyncio.run(run_command())
        else:
            print(f"Unknown command: {command}")
            return 1
    except KeyboardInterrupt:
        print("\nInterrupted.")
        return 130
    except Exception as e:
        print(f"Error: {str(e)}")
        logger.exception("cli_error", command=command)
        return 1


if __name__ == "__main__":
    sys.exit(main())
