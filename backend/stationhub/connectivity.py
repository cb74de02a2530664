from datetime import datetime

from .models import DEFAULT_INTERVAL_MS, as_utc

ONLINE = "online"
DELAYED = "delayed"
OFFLINE = "offline"


def classify(last_seen: datetime | None, interval_ms: int | None, now: datetime) -> str:
    """Connection status from last contact vs. the configured send interval.

    online   elapsed < 2 intervals
    delayed  2 intervals <= elapsed < 5 intervals
    offline  elapsed >= 5 intervals, or the station never reported
    """
    if last_seen is None:
        return OFFLINE
    interval = interval_ms or DEFAULT_INTERVAL_MS
    elapsed_ms = (as_utc(now) - as_utc(last_seen)).total_seconds() * 1000

    if elapsed_ms < 2 * interval:
        return ONLINE
    if elapsed_ms < 5 * interval:
        return DELAYED
    return OFFLINE
