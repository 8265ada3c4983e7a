"""
Dashboard load metrics.

Tracks each load cycle: which assets answered, how many large
transactions each contributed, and how long the cycle took.
"""

from typing import Dict, Any, Optional, List
from datetime import datetime, timedelta, timezone
from dataclasses import dataclass, field, asdict
from enum import Enum


class LoadStatus(str, Enum):
    """Outcome of a load cycle."""

    LOADED = "loaded"
    PARTIAL = "partial"  # Loaded, but at least one asset fetch failed
    ERROR = "error"
    SKIPPED = "skipped"  # Rejected because another load was in flight


@dataclass
class LoadRun:
    """Metrics for a single load cycle."""

    run_id: str
    started_at: datetime
    forced: bool = False
    ended_at: Optional[datetime] = None
    status: LoadStatus = LoadStatus.LOADED

    transactions_per_asset: Dict[str, int] = field(default_factory=dict)
    failed_assets: List[str] = field(default_factory=list)
    total_transactions: int = 0

    duration_seconds: float = 0.0

    errors: List[str] = field(default_factory=list)
    error_count: int = 0

    def to_dict(self) -> Dict[str, Any]:
        """Convert to a JSON-friendly dictionary."""
        data = asdict(self)
        data["started_at"] = self.started_at.isoformat()
        data["ended_at"] = self.ended_at.isoformat() if self.ended_at else None
        data["status"] = self.status.value
        return data


@dataclass
class AggregateMetrics:
    """Aggregated metrics across multiple load cycles."""

    total_runs: int = 0
    loaded_runs: int = 0
    partial_runs: int = 0
    error_runs: int = 0
    skipped_runs: int = 0

    total_transactions: int = 0
    total_errors: int = 0

    avg_duration_seconds: float = 0.0
    avg_transactions_per_run: float = 0.0

    last_run: Optional[datetime] = None
    last_success: Optional[datetime] = None
    last_failure: Optional[datetime] = None

    def to_dict(self) -> Dict[str, Any]:
        """Convert to dictionary."""
        data = asdict(self)
        for key in ["last_run", "last_success", "last_failure"]:
            if data[key]:
                data[key] = data[key].isoformat()
        return data


class LoadMetrics:
    """
    In-memory metrics tracker for dashboard loads.

    Keeps the current cycle and a bounded history of finished ones.
    """

    def __init__(self, history_size: int = 100):
        """
        Initialize metrics tracker.

        Args:
            history_size: Number of recent runs to keep in memory
        """
        self.history_size = history_size
        self._current_run: Optional[LoadRun] = None
        self._history: List[LoadRun] = []
        self._run_counter = 0

    def start_run(self, forced: bool = False) -> str:
        """
        Start tracking a new load cycle.

        Returns:
            Run ID for this cycle
        """
        self._run_counter += 1
        run_id = f"load-{datetime.now(timezone.utc).strftime('%Y%m%d-%H%M%S')}-{self._run_counter}"

        self._current_run = LoadRun(
            run_id=run_id,
            started_at=datetime.now(timezone.utc),
            forced=forced,
        )
        return run_id

    def record_asset(self, asset: str, count: int):
        """Record how many transactions an asset contributed."""
        if self._current_run:
            self._current_run.transactions_per_asset[asset] = count
            self._current_run.total_transactions += count

    def record_failure(self, asset: str, error: str):
        """Record a failed asset fetch."""
        if self._current_run:
            self._current_run.failed_assets.append(asset)
            self._current_run.errors.append(f"{asset}: {error}")
            self._current_run.error_count += 1

    def end_run(self, status: LoadStatus = LoadStatus.LOADED):
        """End the current cycle and move it into history."""
        if not self._current_run:
            return

        self._current_run.ended_at = datetime.now(timezone.utc)
        self._current_run.status = status
        self._current_run.duration_seconds = (
            self._current_run.ended_at - self._current_run.started_at
        ).total_seconds()

        self._append(self._current_run)
        self._current_run = None

    def record_skipped(self, forced: bool = False):
        """Record a load rejected by the reentrancy guard."""
        self._run_counter += 1
        now = datetime.now(timezone.utc)
        self._append(
            LoadRun(
                run_id=f"load-{now.strftime('%Y%m%d-%H%M%S')}-{self._run_counter}",
                started_at=now,
                ended_at=now,
                forced=forced,
                status=LoadStatus.SKIPPED,
            )
        )

    def _append(self, run: LoadRun):
        self._history.append(run)
        if len(self._history) > self.history_size:
            self._history = self._history[-self.history_size :]

    def get_current_run(self) -> Optional[LoadRun]:
        return self._current_run

    def get_last_run(self) -> Optional[LoadRun]:
        return self._history[-1] if self._history else None

    def get_history(self, limit: Optional[int] = None) -> List[LoadRun]:
        """
        Get recent run history.

        Args:
            limit: Maximum number of runs to return (defaults to all)

        Returns:
            List of load runs, newest first
        """
        history = list(reversed(self._history))
        if limit:
            history = history[:limit]
        return history

    def get_aggregate_metrics(self, hours: Optional[int] = None) -> AggregateMetrics:
        """
        Get aggregated metrics across recent runs.

        Args:
            hours: Only include runs from the last N hours (None = all history)
        """
        runs = self._history

        if hours:
            cutoff = datetime.now(timezone.utc) - timedelta(hours=hours)
            runs = [r for r in runs if r.started_at >= cutoff]

        if not runs:
            return AggregateMetrics()

        metrics = AggregateMetrics()
        metrics.total_runs = len(runs)

        for run in runs:
            if run.status == LoadStatus.LOADED:
                metrics.loaded_runs += 1
            elif run.status == LoadStatus.PARTIAL:
                metrics.partial_runs += 1
            elif run.status == LoadStatus.ERROR:
                metrics.error_runs += 1
            elif run.status == LoadStatus.SKIPPED:
                metrics.skipped_runs += 1

        completed = [r for r in runs if r.status != LoadStatus.SKIPPED]
        metrics.total_transactions = sum(r.total_transactions for r in runs)
        metrics.total_errors = sum(r.error_count for r in runs)

        if completed:
            metrics.avg_duration_seconds = sum(r.duration_seconds for r in completed) / len(completed)
            metrics.avg_transactions_per_run = metrics.total_transactions / len(completed)

        metrics.last_run = runs[-1].started_at

        for run in reversed(runs):
            if run.status in (LoadStatus.LOADED, LoadStatus.PARTIAL) and not metrics.last_success:
                metrics.last_success = run.started_at
            if run.status == LoadStatus.ERROR and not metrics.last_failure:
                metrics.last_failure = run.started_at
            if metrics.last_success and metrics.last_failure:
                break

        return metrics

    def get_success_rate(self, hours: Optional[int] = None) -> float:
        """Share of completed cycles that ended loaded or partial (0.0 to 1.0)."""
        agg = self.get_aggregate_metrics(hours)
        completed = agg.total_runs - agg.skipped_runs
        if completed == 0:
            return 0.0
        return (agg.loaded_runs + agg.partial_runs) / completed

    def clear_history(self):
        """Clear all metrics history."""
        self._history.clear()
        self._current_run = None
