"""
Dashboard figures for the admin area: totals, announcements overdue for cleanup, daily views.

An announcement is overdue when its application end date (or, without one, its creation time)
lies more than OVERDUE_YEARS before now. Times are naive UTC, as stored.
"""
from dataclasses import dataclass, field
from datetime import date, datetime, time

from sqlalchemy.orm import Session

from bulletin.repositories import announcement_repository as repo

OVERDUE_YEARS = 2


@dataclass
class AnnouncementStats:
    total_announcements: int = 0
    total_views: int = 0
    overdue_ids: list[str] = field(default_factory=list)
    daily_views: list[tuple[str, int]] = field(default_factory=list)

    @property
    def overdue_count(self) -> int:
        return len(self.overdue_ids)


def overdue_cutoff(now: datetime) -> datetime:
    try:
        return now.replace(year=now.year - OVERDUE_YEARS)
    except ValueError:
        # 29 February
        return now.replace(year=now.year - OVERDUE_YEARS, day=28)


def is_overdue(end_date: date | None, created_at: datetime | None, cutoff: datetime) -> bool:
    if end_date is not None:
        return datetime.combine(end_date, time.min) < cutoff
    return created_at is not None and created_at < cutoff


def collect_stats(db: Session, now: datetime | None = None) -> AnnouncementStats:
    cutoff = overdue_cutoff(now or datetime.utcnow())
    rows = repo.list_announcement_dates(db)
    return AnnouncementStats(
        total_announcements=len(rows),
        total_views=repo.count_all_views(db),
        overdue_ids=[i for i, end_date, created_at in rows if is_overdue(end_date, created_at, cutoff)],
        daily_views=repo.count_views_by_day(db),
    )
