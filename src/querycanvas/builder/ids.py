import itertools
import threading
import uuid


class IdGenerator:
    """Collision-free ids of the form ``<prefix>-<seq>-<uuid hex>``.

    The sequence keeps ids created in the same millisecond ordered, the
    uuid keeps them unique across builder sessions.
    """

    def __init__(self):
        self._seq = itertools.count(1)
        self._lock = threading.Lock()

    def next(self, prefix: str) -> str:
        with self._lock:
            n = next(self._seq)
        return f"{prefix}-{n}-{uuid.uuid4().hex[:12]}"
