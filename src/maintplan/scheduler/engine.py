"""Fixed-point wavefront scheduler over the task precedence graph."""

from __future__ import annotations

from datetime import datetime

from maintplan.config import SchedulerConfig
from maintplan.logger import debug_enabled, get_logger
from maintplan.models import Plan, Task

from .calendar import WorkCalendar
from .core import ScheduledTask, ScheduleResult

logger = get_logger()


class PlanScheduler:
    """Places every task of a plan inside the plan window.

    A task is schedulable once its predecessor is placed (or it has none, or
    the predecessor does not exist). Pending tasks are scanned repeatedly;
    when a full pass places nothing, whatever is left is stuck in a cycle and
    is force-placed at the plan start. Malformed precedence therefore never
    raises.
    """

    def __init__(
        self,
        tasks: list[Task],
        plan: Plan,
        config: SchedulerConfig | None = None,
        calendar: WorkCalendar | None = None,
    ) -> None:
        self.tasks = tasks
        self.plan = plan
        self.config = config or SchedulerConfig()
        self.calendar = calendar or WorkCalendar.from_plan(
            plan, max_iterations=self.config.max_clock_iterations
        )
        self.plan_start = plan.plan_start
        # An inverted window collapses to its start so placements stay ordered
        self.plan_end = max(plan.plan_end, self.plan_start)

    def _resolve_start(self, task: Task, placements: dict[str, ScheduledTask]) -> datetime:
        pred = task.preceding_task_id
        if pred and pred in placements:
            start = placements[pred].gantt_end
        else:
            anchor = task.start_anchor
            if anchor is not None and self.plan_start <= anchor <= self.plan_end:
                start = anchor
            else:
                start = self.plan_start
        return max(start, self.plan_start)

    def _place(
        self, task: Task, placements: dict[str, ScheduledTask], clamped: list[str]
    ) -> ScheduledTask:
        start = self._resolve_start(task, placements)
        duration = max(task.estimated_duration_hours, self.config.min_task_hours)
        end = self.calendar.advance(start, duration)
        if debug_enabled():
            logger.debug(
                f"      {task.id}: {duration:g}h of work from {start:%Y-%m-%d %H:%M} "
                f"ends {end:%Y-%m-%d %H:%M}"
            )

        if end > self.plan_end:
            end = self.plan_end
            start = min(start, self.plan_end)
            clamped.append(task.id)
            logger.checks(f"    Task {task.id} overflows the plan window, clamped to {end}")

        return ScheduledTask(task=task, gantt_start=start, gantt_end=end)

    def _fallback(self, task: Task) -> ScheduledTask:
        end = min(
            self.calendar.advance(self.plan_start, self.config.fallback_task_hours),
            self.plan_end,
        )
        return ScheduledTask(task=task, gantt_start=self.plan_start, gantt_end=end)

    def schedule(self) -> ScheduleResult:
        """Run the scheduler.

        Returns:
            ScheduleResult with one placement per input task, ordered by start
        """
        task_map: dict[str, Task] = {}
        for task in self.tasks:
            task_map.setdefault(task.id, task)

        dangling = [
            t.id
            for t in task_map.values()
            if t.preceding_task_id and t.preceding_task_id not in task_map
        ]

        placements: dict[str, ScheduledTask] = {}
        clamped: list[str] = []
        fallback: list[str] = []
        pending = list(task_map)
        passes_left = self.config.pass_multiplier * len(pending)

        while pending and passes_left > 0:
            placed_in_pass = False
            still_pending: list[str] = []

            for task_id in pending:
                task = task_map[task_id]
                pred = task.preceding_task_id
                if pred and pred not in placements and pred in task_map:
                    logger.checks(f"    Deferring {task_id}: waiting for {pred}")
                    still_pending.append(task_id)
                    continue

                placement = self._place(task, placements, clamped)
                placements[task_id] = placement
                placed_in_pass = True
                logger.changes(
                    f"  Scheduled task {task_id} "
                    f"from {placement.gantt_start:%Y-%m-%d %H:%M} "
                    f"to {placement.gantt_end:%Y-%m-%d %H:%M}"
                )

            pending = still_pending
            passes_left -= 1
            if not placed_in_pass:
                break

        # Whatever is left waits on itself through a cycle
        for task_id in pending:
            placements[task_id] = self._fallback(task_map[task_id])
            fallback.append(task_id)
            logger.changes(f"  Force-placed task {task_id} at plan start (cycle)")

        order = {task_id: index for index, task_id in enumerate(task_map)}
        scheduled = sorted(placements.values(), key=lambda st: (st.gantt_start, order[st.id]))

        return ScheduleResult(
            scheduled_tasks=scheduled,
            fallback_task_ids=fallback,
            clamped_task_ids=clamped,
            dangling_task_ids=dangling,
        )


def schedule_tasks(
    tasks: list[Task], plan: Plan, config: SchedulerConfig | None = None
) -> list[ScheduledTask]:
    """Schedule expanded tasks and return the placements ordered by start."""
    return PlanScheduler(tasks, plan, config).schedule().scheduled_tasks
