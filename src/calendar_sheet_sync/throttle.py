"""
Pacing for mutating calls against the event store.
"""

import logging
import time

_logger = logging.getLogger(__name__)


class ThrottledWriter:
    """Forward create/update/delete calls, pausing once a burst is used up.

    Calendar backends reject bursts of writes in a short interval. The first
    ``burst`` calls of a pass go straight through; each later call is followed
    by a ``delay`` second pause. This is best-effort backpressure, not a
    strict rate limiter.
    """

    def __init__(self, store, burst: int = 10, delay: float = 0.075, sleep=time.sleep):
        self.store = store
        self.burst = burst
        self.delay = delay
        self._sleep = sleep
        self.calls = 0

    @property
    def supports_update(self) -> bool:
        return bool(getattr(self.store, "supports_update", False))

    def _paced(self, result):
        self.calls += 1
        if self.calls == self.burst + 1:
            _logger.debug("Write burst of %d used up, pacing at %.3fs per call", self.burst, self.delay)
        if self.calls > self.burst and self.delay > 0:
            self._sleep(self.delay)
        return result

    def create_event(self, title, start, end, **opts):
        return self._paced(self.store.create_event(title, start, end, **opts))

    def create_all_day_event(self, title, day, **opts):
        return self._paced(self.store.create_all_day_event(title, day, **opts))

    def update_event(self, event_id, record, **opts):
        return self._paced(self.store.update_event(event_id, record, **opts))

    def delete_event(self, event_id):
        return self._paced(self.store.delete_event(event_id))
