from dataclasses import dataclass
import threading
import time


@dataclass
class RateLimitDecision:
    allowed: bool
    limit: int
    remaining: int
    retry_after_seconds: int
    reset_after_seconds: int


class RateLimitService:
    """Fixed-window counters kept in process memory, one bucket per key and window."""

    def __init__(self, clock=time.time) -> None:
        self._clock = clock
        self._counters: dict[str, tuple[int, float]] = {}
        self._lock = threading.Lock()

    def check(self, key: str, *, limit: int, window_seconds: int) -> RateLimitDecision:
        safe_limit = max(1, int(limit))
        safe_window = max(1, int(window_seconds))
        now_epoch = self._clock()
        with self._lock:
            self._drop_expired(now_epoch)

            bucket = int(now_epoch // safe_window)
            bucket_key = f"{key}:{bucket}"
            current_count, reset_epoch = self._counters.get(
                bucket_key,
                (0, float((bucket + 1) * safe_window)),
            )
            next_count = current_count + 1
            self._counters[bucket_key] = (next_count, reset_epoch)

        allowed = next_count <= safe_limit
        reset_seconds = max(1, int(reset_epoch - now_epoch))
        return RateLimitDecision(
            allowed=allowed,
            limit=safe_limit,
            remaining=max(0, safe_limit - next_count),
            retry_after_seconds=reset_seconds if not allowed else 0,
            reset_after_seconds=reset_seconds,
        )

    def reset(self) -> None:
        with self._lock:
            self._counters.clear()

    def _drop_expired(self, now_epoch: float) -> None:
        stale_keys = [
            bucket_key
            for bucket_key, (_, reset_epoch) in self._counters.items()
            if now_epoch > reset_epoch + 1
        ]
        for stale_key in stale_keys:
            self._counters.pop(stale_key, None)
