"""Spares reservations: pairing tasks with inventory and status progression."""

from __future__ import annotations

import random
import string
from collections.abc import Callable
from dataclasses import replace
from datetime import datetime

from maintplan.exceptions import TransitionError
from maintplan.logger import get_logger
from maintplan.models import Plan, Reservation, ReservationStatus, ReservedBy, Task, WorkOrder

logger = get_logger()

RESERVATION_PREFIX = "RES"
_ID_ALPHABET = string.ascii_uppercase + string.digits
_ID_LENGTH = 7

# Forward-only order of reservation statuses
_STATUS_ORDER = {
    ReservationStatus.RESERVED: 0,
    ReservationStatus.ORDERED: 1,
    ReservationStatus.ISSUED: 2,
}


def generate_reservation_id(rng: random.Random | None = None) -> str:
    """Return a fresh reservation id such as ``RES7K2Q9ZD``."""
    chooser = rng or random
    suffix = "".join(chooser.choice(_ID_ALPHABET) for _ in range(_ID_LENGTH))
    return f"{RESERVATION_PREFIX}{suffix}"


def build_reservations(  # noqa: PLR0913 - one reservation field per argument
    plan: Plan,
    tasks: list[Task],
    work_orders: list[WorkOrder],
    reserved_by: ReservedBy,
    reserved_at: datetime,
    id_factory: Callable[[], str] = generate_reservation_id,
) -> list[Reservation]:
    """Create one RESERVED reservation per (task, required spare) pair.

    Tasks whose work order is not linked to the plan are skipped.
    """
    orders = {wo.id: wo for wo in work_orders}
    reservations: list[Reservation] = []

    for task in tasks:
        work_order = orders.get(task.work_order_id or "")
        if work_order is None:
            if task.required_spares:
                logger.checks(f"  No linked work order for {task.task_id}, spares not reserved")
            continue

        for spare in task.required_spares:
            reservations.append(
                Reservation(
                    reservation_id=id_factory(),
                    plan_id=plan.plan_id,
                    task_ref=task.id,
                    task_id=task.task_id,
                    material_id=spare.material_id,
                    material_name=spare.name,
                    material_code=spare.material_code,
                    quantity=spare.quantity,
                    uom=spare.uom,
                    warehouse_id=spare.warehouse_id,
                    warehouse_name=spare.warehouse_name,
                    work_order_id=work_order.wo_id,
                    reserved_by=reserved_by,
                    reserved_at=reserved_at,
                )
            )

    return reservations


def advance_reservation(reservation: Reservation, status: ReservationStatus) -> Reservation:
    """Move a reservation forward to ``status``.

    Skipping a step (RESERVED straight to ISSUED) is allowed; moving back is
    not.

    Raises:
        TransitionError: If ``status`` comes before the current status
    """
    if _STATUS_ORDER[status] < _STATUS_ORDER[reservation.status]:
        raise TransitionError(
            f"Reservation {reservation.reservation_id} cannot go from "
            f"{reservation.status.value} back to {status.value}"
        )
    if status != reservation.status:
        logger.changes(
            f"Reservation {reservation.reservation_id}: "
            f"{reservation.status.value} -> {status.value}"
        )
    return replace(reservation, status=status)
