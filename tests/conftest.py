import sys
from pathlib import Path
import pytest

# Ensure project root is on sys.path so `import whalewatch` works when running pytest from root.
ROOT = Path(__file__).resolve().parents[1]
if str(ROOT) not in sys.path:
    sys.path.insert(0, str(ROOT))

from whalewatch.core.cache import TTLCache  # noqa: E402
from whalewatch.transactions.clients.http import HttpClient  # noqa: E402
from whalewatch.transactions.config import ExchangeConfig, RetryConfig  # noqa: E402
from tests.fixtures.sample_trades import BinanceStub, FakeClock  # noqa: E402


@pytest.fixture
def clock():
    """Manually advanced clock for TTL tests."""
    return FakeClock()


@pytest.fixture
def cache(clock):
    """Cache driven by the fake clock."""
    return TTLCache(clock=clock)


@pytest.fixture
def fast_retry():
    """Retry policy with the standard attempt count but no delay."""
    return RetryConfig(max_attempts=3, delay=0)


@pytest.fixture
def exchange_config():
    return ExchangeConfig(base_url="https://api.binance.test")


@pytest.fixture
def binance_stub():
    """Recording stand-in for the Binance REST API."""
    return BinanceStub()


@pytest.fixture
def binance_http(binance_stub, fast_retry):
    """HTTP client wired to the Binance stub."""
    return HttpClient(retry=fast_retry, transport=binance_stub.transport())
