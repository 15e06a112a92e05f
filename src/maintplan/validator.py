"""Readiness validation of a maintenance plan before commit."""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, timedelta
from typing import TYPE_CHECKING

from maintplan.logger import get_logger
from maintplan.models import Plan, ServiceAvailability, SpareStock, Task, WorkOrder
from maintplan.resources import tasks_by_assignee

from .config import SchedulerConfig
from .scheduler.calendar import WorkCalendar
from .scheduler.core import _default_str_list

if TYPE_CHECKING:
    from .scheduler.core import ScheduledTask

logger = get_logger()


@dataclass
class ValidationVerdict:
    """One flag per readiness rule plus the overall commit decision.

    ``spares_stock_valid`` is a soft warning: a plan may proceed while parts
    are on order, so it does not take part in ``can_commit``. Unconfirmed
    services do block the commit.
    """

    dates_valid: bool
    has_work_orders: bool
    spares_stock_valid: bool
    spares_delay_valid: bool
    resource_overlap: bool
    resource_overloaded: bool
    services_valid: bool
    safety_valid: bool
    is_committed: bool
    overlapping_resources: list[str] = field(default_factory=_default_str_list)
    overloaded_resources: list[str] = field(default_factory=_default_str_list)
    short_materials: list[str] = field(default_factory=_default_str_list)
    late_materials: list[str] = field(default_factory=_default_str_list)
    issues: list[str] = field(default_factory=_default_str_list)

    @property
    def has_spare_conflict(self) -> bool:
        return not self.spares_delay_valid

    @property
    def can_commit(self) -> bool:
        return (
            self.dates_valid
            and not self.resource_overlap
            and not self.resource_overloaded
            and self.spares_delay_valid
            and self.services_valid
            and self.has_work_orders
            and self.safety_valid
            and not self.is_committed
        )

    def as_flags(self) -> dict[str, bool]:
        """Flat record of named booleans for an approval gate."""
        return {
            "datesValid": self.dates_valid,
            "hasWorkOrders": self.has_work_orders,
            "sparesStockValid": self.spares_stock_valid,
            "sparesDelayValid": self.spares_delay_valid,
            "hasSpareConflict": self.has_spare_conflict,
            "resourceOverlap": self.resource_overlap,
            "resourceOverloaded": self.resource_overloaded,
            "servicesValid": self.services_valid,
            "safetyValid": self.safety_valid,
            "canCommit": self.can_commit,
        }


class PlanValidator:
    """Evaluates every readiness rule independently; none short-circuits another."""

    def __init__(  # noqa: PLR0913 - every rule has its own input
        self,
        plan: Plan,
        scheduled: list[ScheduledTask],
        tasks: list[Task],
        stock: dict[str, SpareStock] | None = None,
        work_orders: list[WorkOrder] | None = None,
        today: date | None = None,
        config: SchedulerConfig | None = None,
    ) -> None:
        """Initialize validator.

        Args:
            plan: Plan with the effective window and calendar
            scheduled: Scheduler output for the expanded tasks
            tasks: Raw (unexpanded) tasks of the plan
            stock: Live stock and lead time per material id
            work_orders: Work orders linked to the plan
            today: Reference date for delivery checks (defaults to today)
            config: Policy configuration
        """
        self.plan = plan
        self.scheduled = scheduled
        self.tasks = tasks
        self.stock = stock or {}
        self.work_orders = work_orders or []
        self.today = today or date.today()  # noqa: DTZ011
        self.config = config or SchedulerConfig()
        self.calendar = WorkCalendar.from_plan(plan, self.config.max_clock_iterations)
        self._issues: list[str] = []

    def _issue(self, message: str) -> None:
        self._issues.append(message)
        logger.checks(f"  {message}")

    def check_dates(self) -> bool:
        valid = self.plan.scheduled_start_date <= self.plan.scheduled_end_date
        if not valid:
            self._issue("Plan start date is after plan end date")
        return valid

    def check_work_orders(self) -> bool:
        if not self.work_orders:
            self._issue("No work orders are linked to the plan")
            return False
        return True

    def check_spares_stock(self) -> list[str]:
        """Return materials whose available stock is below a required quantity."""
        short: list[str] = []
        for task in self.tasks:
            for spare in task.required_spares:
                entry = self.stock.get(spare.material_id)
                available = entry.available_qty if entry else 0.0
                if available < spare.quantity and spare.material_id not in short:
                    short.append(spare.material_id)
                    self._issue(
                        f"Insufficient stock for {spare.material_id}: "
                        f"{available:g} available, {spare.quantity:g} required by {task.task_id}"
                    )
        return short

    def check_spares_delay(self) -> list[str]:
        """Return materials that cannot arrive within the grace period after plan end."""
        deadline = self.plan.scheduled_end_date + timedelta(days=self.config.spares_grace_days)
        late: list[str] = []
        for task in self.tasks:
            for spare in task.required_spares:
                entry = self.stock.get(spare.material_id)
                if entry is None:
                    continue
                try:
                    arrival = self.today + timedelta(days=entry.lead_time_days)
                except (OverflowError, ValueError):
                    # Past the last representable date, so always late
                    arrival = date.max
                if arrival > deadline and spare.material_id not in late:
                    late.append(spare.material_id)
                    self._issue(
                        f"Spare {spare.material_id} arrives {arrival} after deadline {deadline}"
                    )
        return late

    def check_resource_overlap(self) -> list[str]:
        """Return assignees with two scheduled tasks overlapping in time."""
        overlapping: list[str] = []
        for uid, assigned in tasks_by_assignee(self.scheduled).items():
            ordered = sorted(assigned, key=lambda st: st.gantt_start)
            for current, following in zip(ordered, ordered[1:]):
                if current.gantt_end > following.gantt_start:
                    overlapping.append(uid)
                    self._issue(f"{uid} is double-booked on {current.id} and {following.id}")
                    break
        return overlapping

    def check_resource_overload(self) -> list[str]:
        """Return assignees whose assigned hours exceed the plan capacity."""
        capacity = self.calendar.capacity_hours(self.plan.plan_start, self.plan.plan_end)
        overloaded: list[str] = []
        for uid, assigned in tasks_by_assignee(self.scheduled).items():
            hours = sum(st.task.estimated_duration_hours for st in assigned)
            if hours > capacity:
                overloaded.append(uid)
                self._issue(f"{uid} has {hours:g}h assigned against {capacity:g}h capacity")
        return overloaded

    def check_services(self) -> bool:
        valid = True
        for task in self.tasks:
            for service in task.required_services:
                status = service.availability_status
                if status == ServiceAvailability.NOT_CONTACTED:
                    valid = False
                    self._issue(
                        f"Service '{service.service_name}' for {task.task_id} not contacted"
                    )
                elif status == ServiceAvailability.NOT_AVAILABLE and (
                    service.tentative_date is None
                    or service.tentative_date > self.plan.scheduled_start_date
                ):
                    valid = False
                    self._issue(
                        f"Service '{service.service_name}' for {task.task_id} "
                        "is not available by the plan start"
                    )
        return valid

    def check_safety(self) -> bool:
        valid = True
        has_assessment = False
        for task in self.tasks:
            for assessment in task.risk_assessments:
                has_assessment = True
                reduced = assessment.residual_score < assessment.initial_score
                if not reduced or not assessment.is_residual_tolerable:
                    valid = False
                    self._issue(
                        f"Risk '{assessment.hazard_name}' on {task.task_id} "
                        "is not reduced to a tolerable level"
                    )
        if self.tasks and not has_assessment:
            valid = False
            self._issue("No task carries a risk assessment")
        return valid

    def validate(self) -> ValidationVerdict:
        """Evaluate all rules and return the verdict."""
        self._issues = []
        logger.checks(f"Validating plan {self.plan.plan_id}")

        dates_valid = self.check_dates()
        has_work_orders = self.check_work_orders()
        short = self.check_spares_stock()
        late = self.check_spares_delay()
        overlapping = self.check_resource_overlap()
        overloaded = self.check_resource_overload()
        services_valid = self.check_services()
        safety_valid = self.check_safety()

        verdict = ValidationVerdict(
            dates_valid=dates_valid,
            has_work_orders=has_work_orders,
            spares_stock_valid=not short,
            spares_delay_valid=not late,
            resource_overlap=bool(overlapping),
            resource_overloaded=bool(overloaded),
            services_valid=services_valid,
            safety_valid=safety_valid,
            is_committed=self.plan.is_committed,
            overlapping_resources=overlapping,
            overloaded_resources=overloaded,
            short_materials=short,
            late_materials=late,
            issues=list(self._issues),
        )
        logger.checks(f"  canCommit={verdict.can_commit}")
        return verdict


def validate_plan(  # noqa: PLR0913 - mirrors PlanValidator
    plan: Plan,
    scheduled: list[ScheduledTask],
    tasks: list[Task],
    stock: dict[str, SpareStock] | None = None,
    work_orders: list[WorkOrder] | None = None,
    today: date | None = None,
    config: SchedulerConfig | None = None,
) -> ValidationVerdict:
    """Evaluate the readiness of a plan."""
    return PlanValidator(plan, scheduled, tasks, stock, work_orders, today, config).validate()
