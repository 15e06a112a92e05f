"""Closure of a scheduled plan: task completion, break-ins and work-order close-out."""

from __future__ import annotations

from collections.abc import Iterable
from dataclasses import dataclass, field, replace

from maintplan.exceptions import ClosureError, TransitionError
from maintplan.logger import get_logger
from maintplan.models import (
    Plan,
    PlanStatus,
    Reservation,
    ReservationStatus,
    Task,
    TaskStatus,
    WorkOrder,
    WorkOrderStatus,
)

logger = get_logger()


@dataclass
class BreakInTask:
    """Unplanned work added to a work order while the plan is being closed."""

    task_id: str
    work_order_id: str  # WorkOrder.id
    task_name: str
    description: str = ""
    estimated_duration_hours: float = 1.0
    status: TaskStatus = TaskStatus.COMPLETED


def new_break_in(  # noqa: PLR0913 - mirrors BreakInTask
    work_order: WorkOrder,
    existing: list[BreakInTask],
    task_name: str,
    description: str = "",
    estimated_duration_hours: float = 1.0,
    status: TaskStatus = TaskStatus.COMPLETED,
) -> BreakInTask:
    """Create the next break-in task for ``work_order``, numbered ``{woId}-BK-{n}``."""
    if status not in (TaskStatus.COMPLETED, TaskStatus.PENDING):
        raise ValueError(f"Break-in task status must be COMPLETED or PENDING, not {status}")
    number = len(existing) + 1
    return BreakInTask(
        task_id=f"{work_order.wo_id}-BK-{number}",
        work_order_id=work_order.id,
        task_name=task_name,
        description=description,
        estimated_duration_hours=estimated_duration_hours,
        status=status,
    )


def can_complete_task(task: Task, reservations: list[Reservation]) -> bool:
    """A task with spares completes only once each spare has an ISSUED reservation."""
    if not task.required_spares:
        return True
    own = [r for r in reservations if r.task_id == task.task_id]
    for spare in task.required_spares:
        match = next((r for r in own if r.material_id == spare.material_id), None)
        if match is None or match.status != ReservationStatus.ISSUED:
            return False
    return True


@dataclass
class ClosureResult:
    """Entities written by a closure round."""

    plan: Plan
    tasks: list[Task]
    work_orders: list[WorkOrder]
    break_ins: list[BreakInTask] = field(default_factory=list)

    @property
    def plan_completed(self) -> bool:
        return self.plan.status == PlanStatus.COMPLETED


def close_plan(  # noqa: PLR0913 - closure spans every plan collaborator
    plan: Plan,
    tasks: list[Task],
    work_orders: list[WorkOrder],
    reservations: list[Reservation],
    completed_task_ids: Iterable[str],
    break_ins: list[BreakInTask] | None = None,
) -> ClosureResult:
    """Mark tasks complete and close what can be closed.

    A work order closes when every planned task on it is complete and every
    break-in task on it is COMPLETED. The plan completes only when all of its
    work orders close. Tasks already COMPLETED count as done.

    Args:
        plan: Plan being closed, must be SCHEDULED
        tasks: Raw (unexpanded) planned tasks
        work_orders: Work orders linked to the plan
        reservations: Reservations created at commit
        completed_task_ids: Task ids (``Task.id``) completed in this round
        break_ins: Break-in tasks added in this round

    Raises:
        TransitionError: If the plan is not SCHEDULED
        ClosureError: If a task is completed before its spares are issued
    """
    if plan.status != PlanStatus.SCHEDULED:
        raise TransitionError(
            f"Plan {plan.plan_id} must be {PlanStatus.SCHEDULED.value} to be closed, "
            f"not {plan.status.value}"
        )

    break_ins = break_ins or []
    completing = set(completed_task_ids)
    known = {t.id for t in tasks}
    unknown = completing - known
    if unknown:
        raise ClosureError(f"Unknown task id(s): {', '.join(sorted(unknown))}")

    updated_tasks: list[Task] = []
    for task in tasks:
        if task.id in completing and task.status != TaskStatus.COMPLETED:
            if not can_complete_task(task, reservations):
                raise ClosureError(f"Task {task.task_id} cannot be completed: spares not issued")
            task = replace(task, status=TaskStatus.COMPLETED)
            logger.changes(f"  Completed task {task.task_id}")
        updated_tasks.append(task)

    updated_orders: list[WorkOrder] = []
    for wo in work_orders:
        planned_done = all(
            t.status == TaskStatus.COMPLETED for t in updated_tasks if t.work_order_id == wo.id
        )
        break_ins_done = all(
            b.status == TaskStatus.COMPLETED for b in break_ins if b.work_order_id == wo.id
        )
        if planned_done and break_ins_done and wo.status != WorkOrderStatus.COMPLETED:
            wo = replace(wo, status=WorkOrderStatus.COMPLETED)
            logger.changes(f"  Closed work order {wo.wo_id}")
        updated_orders.append(wo)

    closed_plan = plan
    if all(wo.status == WorkOrderStatus.COMPLETED for wo in updated_orders):
        closed_plan = replace(plan, status=PlanStatus.COMPLETED)
        logger.changes(
            f"Plan {plan.plan_id}: {plan.status.value} -> {PlanStatus.COMPLETED.value}"
        )

    return ClosureResult(
        plan=closed_plan,
        tasks=updated_tasks,
        work_orders=updated_orders,
        break_ins=list(break_ins),
    )
