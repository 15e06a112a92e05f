"""High-level planning service: the full recompute pipeline for one plan."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date
from typing import TYPE_CHECKING

from maintplan.config import SchedulerConfig
from maintplan.logger import get_logger
from maintplan.models import Task
from maintplan.resources import ResourceLoad, build_resource_loading
from maintplan.validator import ValidationVerdict, validate_plan

from .calendar import WorkCalendar
from .core import ScheduledTask, ScheduleResult, _default_str_list
from .critical_path import find_critical_path
from .engine import PlanScheduler
from .expander import expand_tasks

if TYPE_CHECKING:
    from maintplan.loader import PlanDocument

logger = get_logger()


@dataclass
class PlanningResult:
    """Everything derived from a plan document in one pipeline run."""

    expanded_tasks: list[Task]
    schedule: ScheduleResult
    critical_path: set[str]
    verdict: ValidationVerdict
    resources: list[ResourceLoad]
    warnings: list[str] = field(default_factory=_default_str_list)

    @property
    def scheduled_tasks(self) -> list[ScheduledTask]:
        return self.schedule.scheduled_tasks


class PlanningService:
    """Runs expand, schedule, critical path, validate and resource loading.

    Nothing is cached between runs: every call to :meth:`run` recomputes the
    whole pipeline from the document, so unchanged inputs give identical
    results.
    """

    def __init__(
        self,
        document: PlanDocument,
        config: SchedulerConfig | None = None,
        today: date | None = None,
    ):
        """Initialize planning service.

        Args:
            document: Normalised plan, tasks, work orders and stock
            config: Optional scheduler configuration
            today: Reference date for spares delivery checks (defaults to today)
        """
        self.document = document
        self.config = config or SchedulerConfig()
        self.today = today or date.today()  # noqa: DTZ011

    def run(self) -> PlanningResult:
        """Run the pipeline.

        Returns:
            PlanningResult with placements, critical path, verdict, loading and warnings
        """
        plan = self.document.plan
        calendar = WorkCalendar.from_plan(plan, self.config.max_clock_iterations)

        expanded = expand_tasks(self.document.tasks)
        logger.checks(
            f"Scheduling {len(expanded)} task(s) ({len(self.document.tasks)} before expansion) "
            f"for plan {plan.plan_id}"
        )

        schedule = PlanScheduler(expanded, plan, self.config, calendar).schedule()
        critical = find_critical_path(schedule.scheduled_tasks)

        verdict = validate_plan(
            plan,
            schedule.scheduled_tasks,
            self.document.tasks,
            stock=self.document.stock,
            work_orders=self.document.work_orders,
            today=self.today,
            config=self.config,
        )
        resources = build_resource_loading(schedule.scheduled_tasks, plan, critical, calendar)

        warnings: list[str] = []
        for task_id in schedule.fallback_task_ids:
            warnings.append(f"Task {task_id} is in a precedence cycle; placed at plan start")
        for task_id in schedule.dangling_task_ids:
            warnings.append(f"Task {task_id} names a predecessor that does not exist")
        for task_id in schedule.clamped_task_ids:
            warnings.append(f"Task {task_id} does not fit the plan window; cut at plan end")

        return PlanningResult(
            expanded_tasks=expanded,
            schedule=schedule,
            critical_path=critical,
            verdict=verdict,
            resources=resources,
            warnings=warnings,
        )
