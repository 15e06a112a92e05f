"""Scheduler package - placement of maintenance tasks on a work calendar.

This package provides:
- WorkCalendar: advances instants by work hours, skipping nights and breaks
- expand_tasks: turns pre-task safety controls into a chain of sub-tasks
- PlanScheduler: fixed-point wavefront placement inside the plan window
- find_critical_path: latest finishers and their predecessor ancestry

The full recompute pipeline (normalise, expand, schedule, validate) lives in
:mod:`maintplan.scheduler.service`.
"""

from .calendar import BreakWindow, WorkCalendar
from .core import ScheduledTask, ScheduleResult
from .critical_path import find_critical_path
from .engine import PlanScheduler, schedule_tasks
from .expander import SAFETY_NAME_PREFIX, expand_tasks, pre_task_controls

__all__ = [
    "SAFETY_NAME_PREFIX",
    "BreakWindow",
    "PlanScheduler",
    "ScheduleResult",
    "ScheduledTask",
    "WorkCalendar",
    "expand_tasks",
    "find_critical_path",
    "pre_task_controls",
    "schedule_tasks",
]
