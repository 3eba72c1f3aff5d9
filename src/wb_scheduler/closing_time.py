"""Parse "21h30"-style closing times typed by market creators."""

import re
from datetime import datetime, time, timedelta
from zoneinfo import ZoneInfo

from src.wb_common.errors import InvalidClosingTimeError

_TOKEN_RE = re.compile(r"^(\d{1,2})h(\d{2})?$", re.IGNORECASE)


def parse_closing_time(token: str, now: datetime, tz: ZoneInfo) -> datetime:
    """Next occurrence of HHhMM in `tz`, strictly after `now`.

    "21h" means 21:00. A time-of-day that has already passed today (or is
    exactly now) rolls to the same time tomorrow.
    """
    match = _TOKEN_RE.match(token.strip())
    if match is None:
        raise InvalidClosingTimeError(token)
    hour = int(match.group(1))
    minute = int(match.group(2) or 0)
    if hour > 23 or minute > 59:
        raise InvalidClosingTimeError(token)

    local_now = now.astimezone(tz)
    target = datetime.combine(local_now.date(), time(hour, minute), tzinfo=tz)
    if target <= local_now:
        target = datetime.combine(
            local_now.date() + timedelta(days=1), time(hour, minute), tzinfo=tz
        )
    return target
