"""Metrics collection for transformation runs."""

import threading
import time
from dataclasses import dataclass, field
from typing import Any, Optional


@dataclass
class MetricsCollector:
    """Collects metrics during a job run.

    Partition records may arrive from several worker threads at once.
    """

    job_name: str
    start_time: float = field(default_factory=time.time)
    end_time: Optional[float] = None

    partitions_fitted: int = 0
    partitions_applied: int = 0
    rows_fitted: int = 0
    rows_applied: int = 0
    errors: int = 0
    execution_time: float = 0.0

    phase_times: dict[str, float] = field(default_factory=dict)
    error_details: list[dict[str, Any]] = field(default_factory=list)
    _lock: threading.Lock = field(default_factory=threading.Lock, repr=False)

    def record_phase(self, phase: str, seconds: float) -> None:
        """Record the wall time of one pipeline phase."""
        self.phase_times[phase] = self.phase_times.get(phase, 0.0) + seconds

    def record_fit(self, row_count: int) -> None:
        with self._lock:
            self.partitions_fitted += 1
            self.rows_fitted += row_count

    def record_apply(self, row_count: int) -> None:
        with self._lock:
            self.partitions_applied += 1
            self.rows_applied += row_count

    def record_error(self, error: Exception, context: dict[str, Any] | None = None) -> None:
        """Record an error.

        Args:
            error: The exception that occurred
            context: Additional context about the error
        """
        with self._lock:
            self.errors += 1
            error_detail = {
                "error_type": type(error).__name__,
                "error_message": str(error),
            }
            if context:
                error_detail["context"] = context
            self.error_details.append(error_detail)

    def finish(self) -> None:
        """Mark execution as finished and calculate final metrics."""
        self.end_time = time.time()
        self.execution_time = self.end_time - self.start_time

    def to_dict(self) -> dict[str, Any]:
        """Export metrics as dictionary."""
        rows_per_second = (
            self.rows_applied / self.execution_time if self.execution_time > 0 else 0.0
        )
        return {
            "job_name": self.job_name,
            "execution_time": self.execution_time,
            "partitions_fitted": self.partitions_fitted,
            "partitions_applied": self.partitions_applied,
            "rows_fitted": self.rows_fitted,
            "rows_applied": self.rows_applied,
            "errors": self.errors,
            "rows_per_second": rows_per_second,
            "phase_times": dict(self.phase_times),
            "error_details": list(self.error_details),
        }

    def get_summary(self) -> str:
        """Get human-readable summary of metrics."""
        if not self.end_time:
            self.finish()

        metrics = self.to_dict()
        summary_parts = [
            f"Job: {metrics['job_name']}",
            f"Partitions: {metrics['partitions_applied']}",
            f"Rows: {metrics['rows_applied']}",
            f"Time: {metrics['execution_time']:.2f}s",
            f"Rate: {metrics['rows_per_second']:.0f} rows/s",
        ]

        if metrics["errors"] > 0:
            summary_parts.append(f"Errors: {metrics['errors']}")

        return " | ".join(summary_parts)
