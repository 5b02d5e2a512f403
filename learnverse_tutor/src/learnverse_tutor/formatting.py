"""Display helpers for video metadata."""

import math
import re
from datetime import datetime, timezone
from typing import Optional

_DURATION_RE = re.compile(r"PT(\d+H)?(\d+M)?(\d+S)?")


def format_duration(duration: str) -> str:
    """
    Decode an ISO-8601 duration (PT#H#M#S) into H:MM:SS or M:SS.

    >>> format_duration("PT1H2M3S")
    '1:02:03'
    >>> format_duration("PT5M9S")
    '5:09'
    """
    match = _DURATION_RE.search(duration or "")
    if not match:
        return "0:00"

    hours = int(match.group(1)[:-1]) if match.group(1) else 0
    minutes = int(match.group(2)[:-1]) if match.group(2) else 0
    seconds = int(match.group(3)[:-1]) if match.group(3) else 0

    if hours > 0:
        return f"{hours}:{minutes:02d}:{seconds:02d}"
    return f"{minutes}:{seconds:02d}"


def format_view_count(count: str) -> str:
    try:
        num = int(count)
    except (TypeError, ValueError):
        return str(count)
    if num >= 1_000_000:
        return f"{num / 1_000_000:.1f}M"
    if num >= 1_000:
        return f"{num / 1_000:.1f}K"
    return str(count)


def format_time_ago(published_at: str, now: Optional[datetime] = None) -> str:
    """Relative age of an ISO timestamp ("3 days ago", "2 months ago", ...)."""
    published = datetime.fromisoformat(published_at.replace("Z", "+00:00"))
    if published.tzinfo is None:
        published = published.replace(tzinfo=timezone.utc)
    now = now or datetime.now(timezone.utc)
    if now.tzinfo is None:
        now = now.replace(tzinfo=timezone.utc)

    diff_days = math.ceil(abs((now - published).total_seconds()) / 86400)
    if diff_days == 1:
        return "1 day ago"
    if diff_days < 30:
        return f"{diff_days} days ago"
    if diff_days < 365:
        return f"{diff_days // 30} months ago"
    return f"{diff_days // 365} years ago"
