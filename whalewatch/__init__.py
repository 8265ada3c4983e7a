"""WhaleWatch: large-trade tracker for BTC, ETH and SOL."""

__version__ = "0.1.0"
