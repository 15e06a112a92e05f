"""Core dataclasses for the scheduling pipeline."""

from dataclasses import dataclass, field
from datetime import datetime

from maintplan.models import Assignee, Task


def _default_str_list() -> list[str]:
    return []


@dataclass
class ScheduledTask:
    """An expanded task placed on the timeline.

    Placements are derived data: they are recomputed from the tasks and the
    plan every time either changes.
    """

    task: Task
    gantt_start: datetime
    gantt_end: datetime

    @property
    def id(self) -> str:
        return self.task.id

    @property
    def preceding_task_id(self) -> str | None:
        return self.task.preceding_task_id

    @property
    def assigned_to(self) -> list[Assignee]:
        return self.task.assigned_to


@dataclass
class ScheduleResult:
    """Output of the scheduler, ordered by start."""

    scheduled_tasks: list[ScheduledTask]
    # Tasks placed by the fallback pass (cycle or self-reference)
    fallback_task_ids: list[str] = field(default_factory=_default_str_list)
    # Tasks whose end was cut at the plan end
    clamped_task_ids: list[str] = field(default_factory=_default_str_list)
    # Tasks naming a predecessor that does not exist
    dangling_task_ids: list[str] = field(default_factory=_default_str_list)
