"""Timeclock entries: check-ins paired with check-outs.

Line formats (leading whitespace ignored, other lines skipped)::

    i YYYY/MM/DD HH:MM:SS ACCOUNT[  PAYEE]
    o YYYY/MM/DD HH:MM:SS
    O YYYY/MM/DD HH:MM:SS

A check-out closes every open check-in at once; ``O`` marks the closed
entries as cleared. Durations are clamped at zero. Check-ins still open at the
end of input are dropped and reported as warnings on the
``ledgerkit.timeclock`` logger. Malformed lines are ignored.
"""

from __future__ import annotations

import datetime as dt
import re
from collections.abc import Iterable
from dataclasses import dataclass

from .errors import LedgerParseError
from .lexer import parse_date
from .logging_setup import get_logger
from .models import TimeEntry

_logger = get_logger("ledgerkit.timeclock")

_DATE = r"\d{4}[/-]\d{1,2}[/-]\d{1,2}"
_TIME = r"\d{2}:\d{2}:\d{2}"
_CHECKIN_RE = re.compile(rf"i\s+(?P<date>{_DATE})\s+(?P<time>{_TIME})\s+(?P<rest>.+)")
_CHECKOUT_RE = re.compile(rf"(?P<marker>[oO])\s+(?P<date>{_DATE})\s+(?P<time>{_TIME})")
_PAYEE_SPLIT_RE = re.compile(r"\s{2,}")


@dataclass(frozen=True, slots=True)
class _CheckIn:
    account: str
    start: dt.datetime
    payee: str | None


def _timestamp(date_text: str, time_text: str) -> dt.datetime | None:
    try:
        date = parse_date(date_text)
        time = dt.time.fromisoformat(time_text)
    except (LedgerParseError, ValueError):
        return None
    return dt.datetime.combine(date, time)


def _check_in(line: str) -> _CheckIn | None:
    m = _CHECKIN_RE.fullmatch(line)
    if m is None:
        return None
    start = _timestamp(m.group("date"), m.group("time"))
    if start is None:
        return None
    # Two or more spaces separate the account from the payee.
    parts = _PAYEE_SPLIT_RE.split(m.group("rest").strip(), maxsplit=1)
    payee = parts[1].strip() if len(parts) > 1 else ""
    return _CheckIn(account=parts[0], start=start, payee=payee or None)


def parse_timeclock_entries(text: str) -> list[TimeEntry]:
    """Pair check-ins with check-outs and return completed entries in order."""

    entries: list[TimeEntry] = []
    open_: list[_CheckIn] = []

    for raw in text.splitlines():
        line = raw.strip()
        if line.startswith("i "):
            checkin = _check_in(line)
            if checkin is not None:
                open_.append(checkin)
            continue
        if not line.startswith(("o ", "O ")):
            continue

        m = _CHECKOUT_RE.fullmatch(line)
        if m is None:
            continue
        stop = _timestamp(m.group("date"), m.group("time"))
        if stop is None:
            continue

        cleared = m.group("marker") == "O"
        for checkin in open_:
            entries.append(
                TimeEntry(
                    account=checkin.account,
                    start=checkin.start,
                    stop=stop,
                    payee=checkin.payee,
                    cleared=cleared,
                    duration_seconds=max(int((stop - checkin.start).total_seconds()), 0),
                )
            )
        open_ = []

    if open_:
        _logger.warning("timeclock: %d unclosed timeclock check-in(s)", len(open_))
        for checkin in open_:
            _logger.warning(
                "timeclock:unclosed account=%s checked in at %s",
                checkin.account,
                checkin.start.isoformat(sep=" "),
            )

    return entries


def timeclock_report(entries: Iterable[TimeEntry]) -> dict[str, float]:
    """Total hours per account."""

    seconds: dict[str, int] = {}
    for entry in entries:
        seconds[entry.account] = seconds.get(entry.account, 0) + entry.duration_seconds
    return {account: total / 3600 for account, total in seconds.items()}


def format_timeclock_report(report: dict[str, float]) -> str:
    lines = [f"{hours:>8.2f}  {account}" for account, hours in sorted(report.items())]
    return "\n".join(lines) + "\n"


__all__ = ["format_timeclock_report", "parse_timeclock_entries", "timeclock_report"]
