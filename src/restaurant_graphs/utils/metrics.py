"""
Metrics module for the restaurant workflows.

Tracks per-run outcomes so the service can report success rates and
latency per workflow.
"""

import threading
import time
from collections import defaultdict
from dataclasses import dataclass
from datetime import datetime
from typing import Any, Dict, List, Optional


@dataclass
class RunMetrics:
    """Metrics for a single workflow run."""

    run_id: str
    workflow: str
    query: str
    start_time: datetime
    end_time: Optional[datetime] = None

    success: bool = False
    attempts: int = 0
    quality_score: Optional[float] = None
    tool_calls: int = 0
    error_message: Optional[str] = None

    def total_latency(self) -> float:
        """Run duration in seconds."""
        if self.end_time:
            return (self.end_time - self.start_time).total_seconds()
        return 0.0


class MetricsCollector:
    """
    Thread-safe metrics collector.

    One instance per process; concurrent runs record into it.
    """

    _instance = None
    _lock = threading.Lock()

    def __new__(cls):
        """Singleton pattern for global metrics access."""
        if cls._instance is None:
            with cls._lock:
                if cls._instance is None:
                    cls._instance = super().__new__(cls)
                    cls._instance._initialized = False
        return cls._instance

    def __init__(self):
        if self._initialized:
            return

        self._initialized = True
        self._runs: List[RunMetrics] = []
        self._workflow_stats: Dict[str, Dict[str, float]] = defaultdict(
            lambda: {"count": 0, "successful": 0, "failed": 0, "total_time": 0.0, "avg_time": 0.0}
        )
        self._step_stats: Dict[str, Dict[str, float]] = defaultdict(
            lambda: {"count": 0, "total_time": 0.0, "avg_time": 0.0}
        )
        self._lock = threading.Lock()

    def start_run(self, run_id: str, workflow: str, query: str) -> RunMetrics:
        """Start tracking a workflow run."""
        return RunMetrics(
            run_id=run_id,
            workflow=workflow,
            query=query,
            start_time=datetime.now()
        )

    def complete_run(self, metrics: RunMetrics, success: bool = True) -> None:
        """Complete run tracking and store metrics."""
        metrics.end_time = datetime.now()
        metrics.success = success

        with self._lock:
            self._runs.append(metrics)
            stats = self._workflow_stats[metrics.workflow]
            stats["count"] += 1
            if success:
                stats["successful"] += 1
            else:
                stats["failed"] += 1
            stats["total_time"] += metrics.total_latency()
            stats["avg_time"] = stats["total_time"] / stats["count"]

    def record_step_timing(self, step_name: str, execution_time: float) -> None:
        """
        Record execution time for a workflow step.

        Args:
            step_name: Qualified step name (``workflow.step``).
            execution_time: Execution time in seconds.
        """
        with self._lock:
            stats = self._step_stats[step_name]
            stats["count"] += 1
            stats["total_time"] += execution_time
            stats["avg_time"] = stats["total_time"] / stats["count"]

    def get_workflow_stats(self) -> Dict[str, Dict[str, float]]:
        with self._lock:
            return {name: dict(stats) for name, stats in self._workflow_stats.items()}

    def get_step_stats(self) -> Dict[str, Dict[str, float]]:
        with self._lock:
            return {name: dict(stats) for name, stats in self._step_stats.items()}

    def get_recent_runs(self, limit: int = 10) -> List[RunMetrics]:
        with self._lock:
            return list(self._runs[-limit:])

    def get_system_stats(self) -> Dict[str, Any]:
        """Aggregate statistics across all workflows."""
        with self._lock:
            total = len(self._runs)
            successful = sum(1 for r in self._runs if r.success)
            scores = [r.quality_score for r in self._runs if r.quality_score is not None]
            return {
                "total_runs": total,
                "successful_runs": successful,
                "failed_runs": total - successful,
                "avg_run_latency": (
                    sum(r.total_latency() for r in self._runs) / total if total else 0.0
                ),
                "avg_quality_score": sum(scores) / len(scores) if scores else 0.0,
            }

    def reset(self) -> None:
        with self._lock:
            self._runs.clear()
            self._workflow_stats.clear()
            self._step_stats.clear()


class Timer:
    """
    Context manager for timing code blocks.

    Usage:
        with Timer() as timer:
            # code to time
        print(f"Took {timer.elapsed} seconds")
    """

    def __init__(self):
        self.start_time: Optional[float] = None
        self.end_time: Optional[float] = None
        self.elapsed: float = 0.0

    def __enter__(self) -> "Timer":
        self.start_time = time.perf_counter()
        return self

    def __exit__(self, *args) -> None:
        self.end_time = time.perf_counter()
        self.elapsed = self.end_time - self.start_time

    def elapsed_ms(self) -> float:
        """Get elapsed time in milliseconds."""
        return self.elapsed * 1000


# Global metrics collector instance
metrics_collector = MetricsCollector()
