from datetime import date, datetime

from bulletin.models import AnnouncementView
from bulletin.services.announcement_stats import collect_stats, overdue_cutoff

NOW = datetime(2026, 10, 19, 12, 0)


def _view(db, announcement, viewed_at):
    db.add(AnnouncementView(announcement_id=announcement.id, viewed_at=viewed_at))
    db.commit()


def test_overdue_uses_end_date_then_created_at(db, make_announcement):
    expired = make_announcement(title="Expired", application_end_date=date(2024, 10, 1))
    recent_end = make_announcement(title="Recent", application_end_date=date(2024, 11, 1), created_at=datetime(2020, 1, 1))
    old_undated = make_announcement(title="Old", application_end_date=None, created_at=datetime(2023, 5, 1))
    new_undated = make_announcement(title="New", application_end_date=None, created_at=datetime(2025, 1, 1))

    stats = collect_stats(db, now=NOW)

    assert stats.total_announcements == 4
    assert sorted(stats.overdue_ids) == sorted([expired.id, old_undated.id])
    assert stats.overdue_count == 2
    assert recent_end.id not in stats.overdue_ids
    assert new_undated.id not in stats.overdue_ids


def test_inactive_announcements_are_counted(db, make_announcement):
    make_announcement(is_active=False, application_end_date=date(2020, 1, 1))

    stats = collect_stats(db, now=NOW)

    assert stats.total_announcements == 1
    assert stats.overdue_count == 1


def test_views_bucketed_per_day(db, make_announcement):
    first = make_announcement(title="First")
    second = make_announcement(title="Second")
    _view(db, first, datetime(2026, 10, 18, 23, 59))
    _view(db, second, datetime(2026, 10, 18, 0, 1))
    _view(db, first, datetime(2026, 10, 19, 8, 30))
    _view(db, first, datetime(2026, 10, 2, 14, 0))

    stats = collect_stats(db, now=NOW)

    assert stats.total_views == 4
    assert stats.daily_views == [("2026-10-02", 1), ("2026-10-18", 2), ("2026-10-19", 1)]


def test_empty_database(db):
    stats = collect_stats(db, now=NOW)

    assert stats.total_announcements == 0
    assert stats.total_views == 0
    assert stats.overdue_ids == []
    assert stats.daily_views == []


def test_cutoff_on_leap_day():
    assert overdue_cutoff(datetime(2028, 2, 29, 9, 0)) == datetime(2026, 2, 28, 9, 0)
