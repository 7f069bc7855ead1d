from datetime import timedelta

import pytest

from availability import ExamStatus, can_enter, ensure_can_enter, exam_status, status_snapshot, status_ticker
from errors import EntryRejected

from conftest import ts

START = ts(2026, 5, 1, 9, 0, 0)
END = ts(2026, 5, 1, 11, 0, 0)


@pytest.fixture
def windowed(make_exam):
    return make_exam(valid_from=START, valid_until=END)


def test_window_progression_without_submission(windowed):
    assert exam_status(windowed, None, START - timedelta(seconds=1)) is ExamStatus.UPCOMING
    assert exam_status(windowed, None, START + timedelta(minutes=30)) is ExamStatus.ACTIVE
    assert exam_status(windowed, None, END + timedelta(seconds=1)) is ExamStatus.EXPIRED


def test_bounds_themselves_are_open(windowed):
    assert exam_status(windowed, None, START) is ExamStatus.ACTIVE
    assert exam_status(windowed, None, END) is ExamStatus.ACTIVE


def test_unbounded_exam_is_always_active(make_exam):
    exam = make_exam()
    assert exam_status(exam, None, ts(1999, 1, 1)) is ExamStatus.ACTIVE
    assert exam_status(exam, None, ts(2099, 1, 1)) is ExamStatus.ACTIVE


def test_only_one_bound(make_exam):
    opens = make_exam(valid_from=START)
    closes = make_exam(valid_until=END)
    assert exam_status(opens, None, START - timedelta(days=1)) is ExamStatus.UPCOMING
    assert exam_status(opens, None, END + timedelta(days=100)) is ExamStatus.ACTIVE
    assert exam_status(closes, None, START - timedelta(days=100)) is ExamStatus.ACTIVE
    assert exam_status(closes, None, END + timedelta(days=1)) is ExamStatus.EXPIRED


@pytest.mark.parametrize("now", [START - timedelta(hours=1), START + timedelta(minutes=1), END + timedelta(hours=1)])
def test_prior_submission_wins_over_time_window(windowed, now):
    assert exam_status(windowed, object(), now) is ExamStatus.SUBMITTED
    assert not can_enter(windowed, object(), now)


def test_entry_is_rechecked_at_click_time(make_exam):
    exam = make_exam(valid_until=END)
    shown_at = END - timedelta(seconds=1)
    assert can_enter(exam, None, shown_at)
    with pytest.raises(EntryRejected) as excinfo:
        ensure_can_enter(exam, None, END + timedelta(seconds=1))
    assert excinfo.value.code == "exam_expired"
    assert excinfo.value.details["status"] == "expired"


def test_ensure_can_enter_passes_for_active_exam(windowed):
    ensure_can_enter(windowed, None, START + timedelta(minutes=5))


def test_status_snapshot(make_exam):
    a = make_exam(id="a", valid_from=START)
    b = make_exam(id="b")
    snap = status_snapshot([(a, None), (b, object())], START - timedelta(minutes=1))
    assert snap == [{"exam_id": "a", "status": "upcoming"}, {"exam_id": "b", "status": "submitted"}]


def test_status_ticker_reevaluates_each_tick(make_exam):
    exam = make_exam(valid_until=END)
    clock_values = iter([END - timedelta(seconds=1), END + timedelta(seconds=1)])
    sleeps = []
    ticker = status_ticker(lambda: [(exam, None)], interval=1.0, clock=lambda: next(clock_values),
                           sleep=sleeps.append, limit=2)
    snapshots = list(ticker)
    assert [s[0]["status"] for s in snapshots] == ["active", "expired"]
    assert sleeps == [1.0]
