"""
Response metrics: counters keyed by status code and duration bucket
"""
import threading
from collections import Counter
from typing import Dict

DURATION_BUCKET_MS = 100


class MetricsService:
    """Thread-safe counters for responses, errors and durations"""

    def __init__(self):
        self._lock = threading.Lock()
        self._responses: Counter = Counter()
        self._errors: Counter = Counter()
        self._duration: Counter = Counter()

    def record_status(self, status: int) -> None:
        """
        Count a response status code

        Args:
            status: HTTP status code written to the client
        """
        key = str(status)
        with self._lock:
            self._responses[key] += 1
            self._responses["total"] += 1
            if status >= 400:
                self._errors[key] += 1
                self._errors["total"] += 1

    def record_duration(self, seconds: float) -> None:
        """
        Count a request duration, truncated to a 100ms bucket

        Args:
            seconds: Time taken to process the request
        """
        millis = int(seconds * 1000)
        bucket = str(millis - millis % DURATION_BUCKET_MS)
        with self._lock:
            self._duration[bucket] += 1

    def snapshot(self) -> Dict[str, Dict[str, int]]:
        """Get a copy of all counters"""
        with self._lock:
            return {
                'responses': dict(self._responses),
                'errors': dict(self._errors),
                'duration': dict(self._duration),
            }

    def reset(self) -> None:
        """Clear all counters"""
        with self._lock:
            self._responses.clear()
            self._errors.clear()
            self._duration.clear()


# Global metrics instance
metrics = MetricsService()
