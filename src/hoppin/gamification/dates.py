"""UTC calendar-day helpers shared by visit dedupe and streaks."""

from __future__ import annotations

from datetime import date, datetime, timedelta, timezone


def utc_now() -> datetime:
    return datetime.now(timezone.utc)


def utc_today(now: datetime | None = None) -> date:
    """Calendar date in UTC. Naive datetimes are taken to be UTC already."""
    if now is None:
        now = utc_now()
    if now.tzinfo is not None:
        now = now.astimezone(timezone.utc)
    return now.date()


def date_key(d: date) -> str:
    """ISO calendar date, e.g. '2026-03-01'."""
    return d.isoformat()


def today_key(now: datetime | None = None) -> str:
    return date_key(utc_today(now))


def today_and_yesterday_keys(now: datetime | None = None) -> tuple[str, str]:
    today = utc_today(now)
    return date_key(today), date_key(today - timedelta(days=1))
