"""Per-assignee resource loading over the scheduled timeline.

A ResourceLoad groups the scheduled tasks of one person, totals their hours
against the plan capacity and cuts the plan window into segments at every
task, night and break boundary so double allocation can be spotted.
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import datetime, timedelta
from typing import TYPE_CHECKING, Literal

from maintplan.models import Plan

from .scheduler.calendar import WorkCalendar

if TYPE_CHECKING:
    from .scheduler.core import ScheduledTask

# Magic resource name for tasks with no assignee
UNASSIGNED_RESOURCE = "unassigned"

SegmentKind = Literal["work", "break"]


def tasks_by_assignee(
    scheduled: list[ScheduledTask], include_unassigned: bool = False
) -> dict[str, list[ScheduledTask]]:
    """Group scheduled tasks by assignee uid, each task once per uid.

    Groups keep the order in which uids and tasks are first seen.
    """
    groups: dict[str, list[ScheduledTask]] = {}
    for st in scheduled:
        uids = list(dict.fromkeys(a.uid for a in st.assigned_to))
        if not uids and include_unassigned:
            uids = [UNASSIGNED_RESOURCE]
        for uid in uids:
            groups.setdefault(uid, []).append(st)
    return groups


@dataclass
class Segment:
    """A slice of the timeline of one resource."""

    start: datetime
    end: datetime
    kind: SegmentKind
    count: int = 0
    critical: bool = False
    task_ids: list[str] = field(default_factory=list)


@dataclass
class ResourceLoad:
    """Assigned work of one resource over the plan window."""

    uid: str
    name: str
    tasks: list[ScheduledTask]
    assigned_hours: float
    capacity_hours: float
    segments: list[Segment]

    @property
    def utilisation(self) -> float:
        if self.capacity_hours <= 0:
            return 0.0
        return self.assigned_hours / self.capacity_hours

    @property
    def double_allocated(self) -> bool:
        return any(seg.kind == "work" and seg.count > 1 for seg in self.segments)


def build_segments(
    tasks: list[ScheduledTask],
    plan_start: datetime,
    plan_end: datetime,
    non_working: list[tuple[datetime, datetime]],
    critical_ids: set[str],
) -> list[Segment]:
    """Cut [plan_start, plan_end] into segments for one resource.

    Boundaries are the plan bounds, every task bound and every non-working
    interval bound that falls inside the window. A slice whose midpoint is in
    non-working time becomes a ``break`` segment; a working slice with at
    least one active task becomes a ``work`` segment. Idle working slices are
    omitted.
    """
    points = {plan_start, plan_end}
    for st in tasks:
        points.add(st.gantt_start)
        points.add(st.gantt_end)
    for nw_start, nw_end in non_working:
        for bound in (nw_start, nw_end):
            if plan_start <= bound <= plan_end:
                points.add(bound)

    ordered = sorted(points)
    segments: list[Segment] = []
    for start, end in zip(ordered, ordered[1:]):
        mid = start + (end - start) / 2
        if any(nw_start <= mid < nw_end for nw_start, nw_end in non_working):
            segments.append(Segment(start=start, end=end, kind="break"))
            continue

        active = [st for st in tasks if st.gantt_start <= mid < st.gantt_end]
        if not active:
            continue
        segments.append(
            Segment(
                start=start,
                end=end,
                kind="work",
                count=len(active),
                critical=any(st.id in critical_ids or st.task.is_critical for st in active),
                task_ids=[st.id for st in active],
            )
        )
    return segments


def build_resource_loading(
    scheduled: list[ScheduledTask],
    plan: Plan,
    critical_ids: set[str] | None = None,
    calendar: WorkCalendar | None = None,
) -> list[ResourceLoad]:
    """Build one ResourceLoad per assignee plus an ``unassigned`` bucket."""
    calendar = calendar or WorkCalendar.from_plan(plan)
    critical_ids = critical_ids or set()
    plan_start = plan.plan_start
    plan_end = plan.plan_end
    capacity = calendar.capacity_hours(plan_start, plan_end)
    non_working = calendar.non_working_intervals(
        plan_start.date(), plan_end.date() + timedelta(days=1)
    )

    names: dict[str, str] = {UNASSIGNED_RESOURCE: "Unassigned"}
    for st in scheduled:
        for assignee in st.assigned_to:
            names.setdefault(assignee.uid, assignee.name)

    loads: list[ResourceLoad] = []
    for uid, tasks in tasks_by_assignee(scheduled, include_unassigned=True).items():
        loads.append(
            ResourceLoad(
                uid=uid,
                name=names[uid],
                tasks=tasks,
                assigned_hours=sum(st.task.estimated_duration_hours for st in tasks),
                capacity_hours=capacity,
                segments=build_segments(tasks, plan_start, plan_end, non_working, critical_ids),
            )
        )
    return loads
