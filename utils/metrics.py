"""
Metrics tracking for observability.

Simple in-memory counters for requests, CSV loads and storage access.
"""
import logging

log = logging.getLogger("RatedCapacity")


class Metrics:
    """Simple metrics tracker for observability."""

    def __init__(self):
        self.request_count = 0
        self.error_count = 0
        self.total_request_time = 0.0
        self.csv_load_count = 0
        self.csv_failure_count = 0
        self.storage_read_count = 0
        self.storage_write_count = 0
        self.storage_error_count = 0

    def log_request(self, duration: float):
        """Log a request with its duration."""
        self.request_count += 1
        self.total_request_time += duration
        avg_time = self.total_request_time / self.request_count
        log.info(f"📊 Metrics: requests={self.request_count}, avg_time={avg_time:.3f}s")

    def log_csv_load(self, ok: bool):
        """Log a CSV load attempt and whether it produced usable data."""
        self.csv_load_count += 1
        if not ok:
            self.csv_failure_count += 1

    def log_storage_read(self):
        """Log a storage read."""
        self.storage_read_count += 1

    def log_storage_write(self):
        """Log a successful storage write."""
        self.storage_write_count += 1

    def log_storage_error(self):
        """Log a storage read or write failure."""
        self.storage_error_count += 1

    def log_error(self):
        """Log an error occurrence."""
        self.error_count += 1

    def get_stats(self) -> dict:
        """
        Get current metrics statistics.

        Returns:
            Dictionary with all metrics
        """
        return {
            "requests": self.request_count,
            "errors": self.error_count,
            "avg_request_time": self.total_request_time / max(1, self.request_count),
            "csv_loads": self.csv_load_count,
            "csv_failures": self.csv_failure_count,
            "storage_reads": self.storage_read_count,
            "storage_writes": self.storage_write_count,
            "storage_errors": self.storage_error_count,
        }


# Global metrics instance
metrics = Metrics()
