"""
Tests for the task snapshot and per-member report stats.

Reference instant: 2024-06-10 12:00 UTC.
"""
from datetime import date, datetime, timezone
from types import SimpleNamespace

from flowtrack.application.task_snapshot import (
    build_snapshot, member_stats, is_overdue, is_due_soon, is_due_today,
)
from flowtrack.domain.statuses import TaskStatus


NOW = datetime(2024, 6, 10, 12, 0, tzinfo=timezone.utc)


def _task(task_id, due, status=TaskStatus.TODO, updated_at=None):
    return SimpleNamespace(
        id=task_id,
        title=f"Task {task_id}",
        due_date=due,
        status=status,
        updated_at=updated_at or datetime(2024, 6, 1, tzinfo=timezone.utc),
    )


class TestClassification:
    def test_yesterday_is_overdue(self):
        t = _task(1, date(2024, 6, 9))
        assert is_overdue(t, NOW)
        assert not is_due_soon(t, NOW)

    def test_today_is_due_today_and_due_soon(self):
        t = _task(1, date(2024, 6, 10))
        assert is_due_today(t, NOW)
        assert is_due_soon(t, NOW)
        assert not is_overdue(t, NOW)

    def test_tomorrow_is_due_soon(self):
        assert is_due_soon(_task(1, date(2024, 6, 11)), NOW)

    def test_day_after_tomorrow_is_not_due_soon(self):
        assert not is_due_soon(_task(1, date(2024, 6, 12)), NOW)

    def test_done_is_never_overdue(self):
        assert not is_overdue(_task(1, date(2024, 6, 1), TaskStatus.DONE), NOW)

    def test_end_of_day_cutoff(self):
        t = _task(1, date(2024, 6, 10))
        assert not is_overdue(t, datetime(2024, 6, 10, 23, 59, 59, tzinfo=timezone.utc))
        assert is_overdue(t, datetime(2024, 6, 11, 0, 0, 0, tzinfo=timezone.utc))


class TestBuildSnapshot:
    def test_counts(self):
        tasks = [
            _task(1, date(2024, 6, 9)),                      # overdue
            _task(2, date(2024, 6, 10)),                     # due today + due soon
            _task(3, date(2024, 6, 11)),                     # due soon
            _task(4, date(2024, 6, 12)),                     # open only
            _task(5, date(2024, 6, 8), TaskStatus.DONE),     # done
            _task(6, date(2024, 6, 10), TaskStatus.IN_PROGRESS),  # due today + due soon
        ]
        snap = build_snapshot(tasks, NOW)
        c = snap.counts
        assert (c.overdue, c.dueToday, c.dueSoon, c.open, c.done) == (1, 2, 3, 5, 1)

    def test_empty(self):
        payload = build_snapshot([], NOW).to_payload()
        assert payload["counts"] == {"overdue": 0, "dueToday": 0, "dueSoon": 0, "open": 0, "done": 0}
        assert payload["sample"] == {"overdue": [], "dueToday": [], "dueSoon": []}

    def test_samples_capped_and_ordered(self):
        tasks = [
            _task(10, date(2024, 6, 5)),
            _task(11, date(2024, 6, 1)),
            _task(12, date(2024, 6, 3)),
            _task(13, date(2024, 6, 1)),
            _task(14, date(2024, 6, 9)),
        ]
        snap = build_snapshot(tasks, NOW)
        assert snap.counts.overdue == 5
        assert [s["id"] for s in snap.overdue] == [11, 13, 12]
        assert snap.overdue[0] == {"id": 11, "title": "Task 11", "due": "2024-06-01"}

    def test_due_today_sample_has_no_due_field(self):
        snap = build_snapshot([_task(1, date(2024, 6, 10))], NOW)
        assert snap.due_today == [{"id": 1, "title": "Task 1"}]
        assert snap.due_soon == [{"id": 1, "title": "Task 1", "due": "2024-06-10"}]

    def test_payload_shape(self):
        payload = build_snapshot([_task(1, date(2024, 6, 9))], NOW).to_payload()
        assert set(payload) == {"counts", "sample"}
        assert set(payload["sample"]) == {"overdue", "dueToday", "dueSoon"}


class TestMemberStats:
    def test_rollup(self):
        tasks = [
            _task(1, date(2024, 6, 9)),                                        # overdue
            _task(2, date(2024, 6, 11)),                                       # due soon
            _task(3, date(2024, 6, 20)),                                       # open
            _task(4, date(2024, 6, 12), TaskStatus.DONE, updated_at=NOW),      # completed today
            _task(5, date(2024, 6, 1), TaskStatus.DONE),                       # done earlier
        ]
        stats = member_stats("Ada", tasks, NOW)
        assert stats.to_dict() == {
            "name": "Ada", "completedToday": 1, "open": 3, "overdue": 1, "dueSoon": 1,
        }

    def test_overdue_not_double_counted_as_due_soon(self):
        stats = member_stats("Bo", [_task(1, date(2024, 6, 9))], NOW)
        assert stats.overdue == 1
        assert stats.dueSoon == 0

    def test_naive_updated_at_treated_as_utc(self):
        t = _task(1, date(2024, 6, 1), TaskStatus.DONE, updated_at=datetime(2024, 6, 10, 8, 0))
        assert member_stats("Cy", [t], NOW).completedToday == 1
