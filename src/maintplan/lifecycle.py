"""Plan lifecycle: DRAFT -> IN_PROGRESS -> SCHEDULED -> COMPLETED.

Transitions are one-way. Every operation returns new entities instead of
mutating its inputs; persisting them is up to the caller.
"""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import dataclass, field, replace
from datetime import date, datetime
from typing import Literal

from maintplan.exceptions import (
    ApprovalRequiredError,
    CommitBlockedError,
    PlanLockedError,
    TransitionError,
)
from maintplan.logger import get_logger
from maintplan.models import (
    ApprovalStamp,
    BreakPeriod,
    Plan,
    PlanStatus,
    Reservation,
    ReservedBy,
    Task,
    WorkOrder,
    WorkOrderStatus,
)
from maintplan.reservations import build_reservations, generate_reservation_id
from maintplan.validator import ValidationVerdict

logger = get_logger()

ApprovalStage = Literal[1, 2]


def ensure_editable(plan: Plan) -> None:
    """Reject edits to tasks or the plan window of a committed plan.

    Raises:
        PlanLockedError: If the plan is IN_PROGRESS, SCHEDULED or COMPLETED
    """
    if plan.is_committed:
        raise PlanLockedError(
            f"Plan {plan.plan_id} is {plan.status.value} and can no longer be edited"
        )


def update_plan_window(  # noqa: PLR0913 - each window field is optional
    plan: Plan,
    scheduled_start_date: date | None = None,
    scheduled_end_date: date | None = None,
    work_start_time: str | None = None,
    work_end_time: str | None = None,
    breaks: list[BreakPeriod] | None = None,
) -> Plan:
    """Return ``plan`` with the given window and calendar fields replaced."""
    ensure_editable(plan)
    changes: dict[str, object] = {}
    if scheduled_start_date is not None:
        changes["scheduled_start_date"] = scheduled_start_date
    if scheduled_end_date is not None:
        changes["scheduled_end_date"] = scheduled_end_date
    if work_start_time is not None:
        changes["work_start_time"] = work_start_time
    if work_end_time is not None:
        changes["work_end_time"] = work_end_time
    if breaks is not None:
        changes["breaks"] = sorted(breaks, key=lambda b: b.start_minute)
    return replace(plan, **changes)


def approve(plan: Plan, stage: ApprovalStage, stamp: ApprovalStamp) -> Plan:
    """Record an approval stage on a draft plan.

    Raises:
        PlanLockedError: If the plan is already committed
        ApprovalRequiredError: If stage 2 is given before stage 1
        ValueError: If the stage is not 1 or 2
    """
    ensure_editable(plan)
    if stage == 1:
        approvals = replace(plan.approvals, stage1=stamp)
    elif stage == 2:
        if plan.approvals.stage1 is None:
            raise ApprovalRequiredError(
                f"Plan {plan.plan_id} needs stage 1 approval before stage 2"
            )
        approvals = replace(plan.approvals, stage2=stamp)
    else:
        raise ValueError(f"Unknown approval stage: {stage}")

    logger.changes(f"Plan {plan.plan_id}: stage {stage} approved by {stamp.name}")
    return replace(plan, approvals=approvals)


@dataclass
class CommitResult:
    """What a commit writes: the plan, its work orders and the reservations."""

    plan: Plan
    work_orders: list[WorkOrder]
    reservations: list[Reservation] = field(default_factory=list)


def commit_plan(  # noqa: PLR0913 - the commit touches every collaborator
    plan: Plan,
    verdict: ValidationVerdict,
    tasks: list[Task],
    work_orders: list[WorkOrder],
    reserved_by: ReservedBy,
    now: datetime | None = None,
    id_factory: Callable[[], str] = generate_reservation_id,
) -> CommitResult:
    """Commit a draft plan: DRAFT -> IN_PROGRESS.

    Args:
        plan: Plan to commit
        verdict: Validation verdict computed for the current plan state
        tasks: Raw (unexpanded) tasks of the plan
        work_orders: Work orders linked to the plan
        reserved_by: User performing the commit
        now: Commit instant (defaults to the current time)
        id_factory: Source of fresh reservation ids

    Raises:
        TransitionError: If the plan is already committed
        CommitBlockedError: If the verdict does not allow a commit
        ApprovalRequiredError: If stage 2 approval is missing
    """
    if plan.is_committed:
        raise TransitionError(f"Plan {plan.plan_id} is already {plan.status.value}")
    if not verdict.can_commit:
        raise CommitBlockedError(
            f"Plan {plan.plan_id} cannot be committed: " + "; ".join(verdict.issues),
            verdict,
        )
    if plan.approvals.stage2 is None:
        raise ApprovalRequiredError(
            f"Plan {plan.plan_id} must be fully approved (stage 2) before committing"
        )

    reservations = build_reservations(
        plan,
        tasks,
        work_orders,
        reserved_by,
        now or datetime.now(),  # noqa: DTZ005
        id_factory,
    )
    scheduled_orders = [replace(wo, status=WorkOrderStatus.SCHEDULED) for wo in work_orders]

    logger.changes(
        f"Plan {plan.plan_id}: {plan.status.value} -> {PlanStatus.IN_PROGRESS.value} "
        f"({len(scheduled_orders)} work order(s), {len(reservations)} reservation(s))"
    )
    return CommitResult(
        plan=replace(plan, status=PlanStatus.IN_PROGRESS),
        work_orders=scheduled_orders,
        reservations=reservations,
    )


def lock_schedule(plan: Plan, work_orders: list[WorkOrder]) -> tuple[Plan, list[WorkOrder]]:
    """Lock a committed plan: IN_PROGRESS -> SCHEDULED.

    No recomputation happens; the status is propagated to the work orders.

    Raises:
        TransitionError: If the plan is not IN_PROGRESS
    """
    if plan.status != PlanStatus.IN_PROGRESS:
        raise TransitionError(
            f"Plan {plan.plan_id} must be {PlanStatus.IN_PROGRESS.value} to be scheduled, "
            f"not {plan.status.value}"
        )

    logger.changes(f"Plan {plan.plan_id}: {plan.status.value} -> {PlanStatus.SCHEDULED.value}")
    return (
        replace(plan, status=PlanStatus.SCHEDULED),
        [replace(wo, status=WorkOrderStatus.SCHEDULED) for wo in work_orders],
    )
