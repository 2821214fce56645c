"""
Task Snapshot Builder: overdue / due-today / due-soon / open / done counts
for one user's task list, plus the per-member stats used by team reports.

Due dates are calendar dates with an implicit 23:59:59 UTC cutoff; the task's
own time zone is deliberately not considered.
"""
from dataclasses import dataclass, field, asdict
from datetime import date, datetime, time, timezone
from typing import Iterable, Protocol

from flowtrack.domain.statuses import TaskStatus
from flowtrack.domain.time_resolver import as_utc

SAMPLE_SIZE = 3
DUE_SOON_DAYS = 1
END_OF_DAY = time(23, 59, 59)


class TaskLike(Protocol):
    id: int
    title: str
    due_date: date
    status: TaskStatus
    updated_at: datetime


def utc_today(now: datetime) -> date:
    return as_utc(now).date()


def due_end_of_day(due: date) -> datetime:
    return datetime.combine(due, END_OF_DAY, tzinfo=timezone.utc)


def is_done(task: TaskLike) -> bool:
    return TaskStatus(task.status) == TaskStatus.DONE


def is_overdue(task: TaskLike, now: datetime) -> bool:
    if is_done(task) or task.due_date is None:
        return False
    return due_end_of_day(task.due_date) < as_utc(now)


def is_due_today(task: TaskLike, now: datetime) -> bool:
    if is_done(task) or task.due_date is None:
        return False
    return task.due_date == utc_today(now)


def is_due_soon(task: TaskLike, now: datetime) -> bool:
    """Due today or tomorrow, still open, not already overdue."""
    if is_done(task) or task.due_date is None or is_overdue(task, now):
        return False
    days_left = (task.due_date - utc_today(now)).days
    return 0 <= days_left <= DUE_SOON_DAYS


def is_completed_today(task: TaskLike, now: datetime) -> bool:
    if not is_done(task) or task.updated_at is None:
        return False
    return as_utc(task.updated_at).date() == utc_today(now)


@dataclass
class SnapshotCounts:
    overdue: int = 0
    dueToday: int = 0
    dueSoon: int = 0
    open: int = 0
    done: int = 0


@dataclass
class TaskSnapshot:
    counts: SnapshotCounts
    overdue: list[dict] = field(default_factory=list)
    due_today: list[dict] = field(default_factory=list)
    due_soon: list[dict] = field(default_factory=list)

    def to_payload(self) -> dict:
        """JSON shape stored on the nudge once it is sent."""
        return {
            "counts": asdict(self.counts),
            "sample": {
                "overdue": self.overdue,
                "dueToday": self.due_today,
                "dueSoon": self.due_soon,
            },
        }


def _sample(tasks: list[TaskLike], with_due: bool = True) -> list[dict]:
    ordered = sorted(tasks, key=lambda t: (t.due_date, t.id))[:SAMPLE_SIZE]
    if with_due:
        return [{"id": t.id, "title": t.title, "due": t.due_date.isoformat()} for t in ordered]
    return [{"id": t.id, "title": t.title} for t in ordered]


def build_snapshot(tasks: Iterable[TaskLike], now: datetime) -> TaskSnapshot:
    tasks = list(tasks)
    overdue = [t for t in tasks if is_overdue(t, now)]
    due_today = [t for t in tasks if is_due_today(t, now)]
    due_soon = [t for t in tasks if is_due_soon(t, now)]
    done_count = sum(1 for t in tasks if is_done(t))

    counts = SnapshotCounts(
        overdue=len(overdue),
        dueToday=len(due_today),
        dueSoon=len(due_soon),
        open=len(tasks) - done_count,
        done=done_count,
    )
    return TaskSnapshot(
        counts=counts,
        overdue=_sample(overdue),
        due_today=_sample(due_today, with_due=False),
        due_soon=_sample(due_soon),
    )


@dataclass
class MemberStats:
    name: str
    completedToday: int = 0
    open: int = 0
    overdue: int = 0
    dueSoon: int = 0

    def to_dict(self) -> dict:
        return asdict(self)


def member_stats(name: str, tasks: Iterable[TaskLike], now: datetime) -> MemberStats:
    """One row of the manager report, from the same primitives as the snapshot."""
    stats = MemberStats(name=name)
    for t in tasks:
        if is_completed_today(t, now):
            stats.completedToday += 1
        if is_done(t):
            continue
        stats.open += 1
        if is_overdue(t, now):
            stats.overdue += 1
        elif is_due_soon(t, now):
            stats.dueSoon += 1
    return stats
