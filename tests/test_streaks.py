from datetime import date

from mathturo import db
from mathturo.services.streaks import record_activity, get_streak


def test_first_activity_starts_streak(student):
    streak = record_activity(student.id, date(2024, 5, 1))
    db.session.commit()

    assert streak.current_streak == 1
    assert streak.longest_streak == 1
    assert streak.last_activity_date == date(2024, 5, 1)


def test_consecutive_days_extend_streak(student):
    for day in (1, 2, 3):
        record_activity(student.id, date(2024, 5, day))
        db.session.commit()

    streak = get_streak(student.id)
    assert streak.current_streak == 3
    assert streak.longest_streak == 3


def test_same_day_activity_is_counted_once(student):
    record_activity(student.id, date(2024, 5, 1))
    db.session.commit()
    record_activity(student.id, date(2024, 5, 1))
    db.session.commit()

    assert get_streak(student.id).current_streak == 1


def test_gap_resets_current_but_keeps_longest(student):
    for day in (1, 2, 3, 7):
        record_activity(student.id, date(2024, 5, day))
        db.session.commit()

    streak = get_streak(student.id)
    assert streak.current_streak == 1
    assert streak.longest_streak == 3
    assert streak.last_activity_date == date(2024, 5, 7)
