import threading


class RecordLocks:
    """In-process set of tratativa ids with a run in flight."""

    def __init__(self) -> None:
        self._guard = threading.Lock()
        self._in_flight: set[int] = set()

    def acquire(self, tratativa_id: int) -> bool:
        """Claim ``tratativa_id``; False if it is already claimed."""
        with self._guard:
            if tratativa_id in self._in_flight:
                return False
            self._in_flight.add(tratativa_id)
            return True

    def release(self, tratativa_id: int) -> None:
        with self._guard:
            self._in_flight.discard(tratativa_id)
