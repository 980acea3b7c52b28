"""Cooperative wall-clock bound for one pipeline run."""

import time
from ..errors import AnalysisTimeout


class Deadline:
    """Checked by long-running stages; raises ``AnalysisTimeout`` once expired."""

    def __init__(self, seconds: float | None = None):
        self.seconds = seconds
        self._expires_at = None if seconds is None else time.monotonic() + seconds

    @property
    def expired(self) -> bool:
        return self._expires_at is not None and time.monotonic() > self._expires_at

    def check(self) -> None:
        if self.expired:
            raise AnalysisTimeout(self.seconds or 0.0)
