"""
Per-connection sliding-window rate limiting for Socket.IO actions.

Advisory protection only: game correctness never depends on it.
"""

import logging
import threading
import time
from collections import defaultdict
from typing import Dict, List, Optional, Tuple

from config import RATE_LIMIT_WINDOW_SECONDS

logger = logging.getLogger(__name__)


class RateLimiter:
    """Counts actions per (sid, action) and prunes old entries on every check."""

    def __init__(self, window_seconds: float = RATE_LIMIT_WINDOW_SECONDS) -> None:
        self.window_seconds = window_seconds
        self._actions: Dict[Tuple[str, str], List[float]] = defaultdict(list)
        self._lock = threading.Lock()

    def is_limited(self, sid: str, action: str, max_actions: int, now: Optional[float] = None) -> bool:
        """Record one action and report whether the connection is over its limit."""
        now = time.time() if now is None else now
        cutoff = now - self.window_seconds
        with self._lock:
            key = (sid, action)
            recent = [ts for ts in self._actions[key] if ts > cutoff]
            recent.append(now)
            self._actions[key] = recent
            limited = len(recent) > max_actions
        if limited:
            logger.warning(f"Rate limit hit: sid={sid} action={action} count={len(recent)}")
        return limited

    def forget(self, sid: str) -> None:
        """Drop all counters for a disconnected connection."""
        with self._lock:
            for key in [k for k in self._actions if k[0] == sid]:
                del self._actions[key]
