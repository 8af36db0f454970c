from __future__ import annotations

import threading
import time


_last_log_times: dict[str, float] = {}
_lock = threading.Lock()


def log_throttled(
    logger,
    key: str,
    *,
    interval_s: float,
    level: int,
    msg: str,
    exc: BaseException | None = None,
) -> bool:
    """Log at most once per *interval_s* for a given *key*.

    Periodic work (sensor polling) can fail on every tick; this keeps the log
    readable. Returns True if the message was logged.
    """

    now = time.monotonic()
    with _lock:
        last = _last_log_times.get(key)
        if last is not None and (now - last) < interval_s:
            return False
        _last_log_times[key] = now

    if exc is not None:
        logger.log(level, msg, exc_info=exc)
        return True

    logger.log(level, msg)
    return True


def reset_throttle(key: str | None = None) -> None:
    """Forget throttle state (all keys, or one)."""

    with _lock:
        if key is None:
            _last_log_times.clear()
        else:
            _last_log_times.pop(key, None)
