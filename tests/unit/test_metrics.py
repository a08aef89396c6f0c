"""Unit tests for metrics collection."""

import threading
import time

from datatransform.core.metrics import MetricsCollector


def test_metrics_collector_basic():
    """Test basic metrics collection."""
    metrics = MetricsCollector("test_job")

    metrics.record_fit(100)
    metrics.record_fit(50)
    metrics.record_apply(100)
    metrics.record_apply(50)

    # Add a small sleep to ensure measurable execution time
    time.sleep(0.01)

    metrics.finish()

    assert metrics.partitions_fitted == 2
    assert metrics.partitions_applied == 2
    assert metrics.rows_fitted == 150
    assert metrics.rows_applied == 150
    assert metrics.errors == 0
    assert metrics.execution_time > 0


def test_metrics_collector_errors():
    """Test error recording."""
    metrics = MetricsCollector("test_job")

    metrics.record_apply(100)
    metrics.record_error(ValueError("Test error"), {"partition": 1})
    metrics.finish()

    assert metrics.errors == 1
    assert len(metrics.error_details) == 1
    assert metrics.error_details[0]["error_type"] == "ValueError"
    assert metrics.error_details[0]["context"] == {"partition": 1}


def test_phase_times_accumulate():
    metrics = MetricsCollector("test_job")
    metrics.record_phase("fit", 0.5)
    metrics.record_phase("apply", 0.25)
    metrics.record_phase("fit", 0.5)
    assert metrics.phase_times == {"fit": 1.0, "apply": 0.25}


def test_metrics_collector_to_dict():
    """Test metrics export to dictionary."""
    metrics = MetricsCollector("test_job")

    metrics.record_fit(300)
    metrics.record_apply(300)
    metrics.record_phase("fit", 0.1)
    metrics.finish()

    metrics_dict = metrics.to_dict()

    assert metrics_dict["job_name"] == "test_job"
    assert metrics_dict["partitions_applied"] == 1
    assert metrics_dict["rows_applied"] == 300
    assert metrics_dict["errors"] == 0
    assert metrics_dict["phase_times"] == {"fit": 0.1}
    assert "execution_time" in metrics_dict
    assert "rows_per_second" in metrics_dict


def test_concurrent_records():
    """Partition records from several threads are all counted."""
    metrics = MetricsCollector("test_job")

    def work():
        for _ in range(100):
            metrics.record_apply(1)

    threads = [threading.Thread(target=work) for _ in range(8)]
    for thread in threads:
        thread.start()
    for thread in threads:
        thread.join()

    assert metrics.partitions_applied == 800
    assert metrics.rows_applied == 800


def test_metrics_summary():
    """Test human-readable summary."""
    metrics = MetricsCollector("test_job")
    metrics.record_apply(100)
    metrics.record_error(RuntimeError("boom"))

    summary = metrics.get_summary()

    assert "Job: test_job" in summary
    assert "Rows: 100" in summary
    assert "Errors: 1" in summary
    assert metrics.end_time is not None
