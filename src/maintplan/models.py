"""Data models for maintenance plans and their tasks.

These are the fully populated entities the scheduling pipeline works on. Raw
records are converted into them by :mod:`maintplan.schemas`, which owns every
default, so nothing here is optional in the "maybe missing" sense unless the
domain says so (e.g. a task without a predecessor).
"""

from __future__ import annotations

from dataclasses import dataclass, field
from datetime import date, datetime, time, timedelta
from enum import Enum


class PlanStatus(str, Enum):
    """Lifecycle status of a maintenance plan."""

    DRAFT = "DRAFT"
    IN_PROGRESS = "IN_PROGRESS"
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"


# Statuses in which tasks and the plan window are read-only
COMMITTED_STATUSES = frozenset(
    {PlanStatus.IN_PROGRESS, PlanStatus.SCHEDULED, PlanStatus.COMPLETED}
)


class WorkOrderStatus(str, Enum):
    """Status of a work order linked to a plan."""

    OPEN = "OPEN"
    SCHEDULED = "SCHEDULED"
    COMPLETED = "COMPLETED"


class TaskStatus(str, Enum):
    """Completion state of a task or break-in task."""

    OPEN = "OPEN"
    PENDING = "PENDING"
    COMPLETED = "COMPLETED"


class ReservationStatus(str, Enum):
    """Progression of a spares reservation."""

    RESERVED = "RESERVED"
    ORDERED = "ORDERED"
    ISSUED = "ISSUED"


class ServiceAvailability(str, Enum):
    """Confirmation state of an external service."""

    AVAILABLE = "Available"
    NOT_AVAILABLE = "Not Available"
    NOT_CONTACTED = "Not Contacted"


def parse_hhmm(value: str) -> int:
    """Convert an ``HH:MM`` string to minutes after midnight."""
    hours, minutes = value.strip().split(":")
    return int(hours) * 60 + int(minutes)


def at_minute(day: date, minute_of_day: float) -> datetime:
    """Return the instant ``minute_of_day`` minutes after midnight of ``day``."""
    return datetime.combine(day, time()) + timedelta(minutes=minute_of_day)


@dataclass(frozen=True)
class Assignee:
    """A person assigned to a task."""

    uid: str
    name: str = "Unknown"


@dataclass
class SafetyControl:
    """A control measure from a risk assessment."""

    control_name: str
    control_description: str = ""
    is_pre_task: bool = False
    duration_minutes: float = 15.0
    assigned_to_uid: str | None = None
    assigned_to_name: str | None = None


@dataclass
class RiskAssessment:
    """A hazard entry with its scores and controls."""

    hazard_name: str = ""
    initial_score: float = 0.0
    residual_score: float = 0.0
    is_residual_tolerable: bool = False
    controls: list[SafetyControl] = field(default_factory=list)


@dataclass
class RequiredSpare:
    """A spare part a task needs from inventory."""

    material_id: str
    quantity: float = 0.0
    uom: str = "Unit"
    name: str = "Unknown"
    material_code: str = ""
    warehouse_path: str = ""
    warehouse_id: str = ""
    warehouse_name: str = ""


@dataclass
class RequiredService:
    """An external service a task depends on."""

    service_name: str = ""
    availability_status: ServiceAvailability = ServiceAvailability.NOT_CONTACTED
    tentative_date: date | None = None


@dataclass
class Task:
    """A maintenance task.

    Safety sub-tasks produced by the expander are Tasks too; they carry
    ``is_safety_task`` and the ``original_task_id`` of their parent.
    """

    id: str
    task_id: str
    task_name: str
    description: str = ""
    estimated_duration_hours: float = 0.0
    preceding_task_id: str | None = None
    scheduled_start_date: date | None = None
    scheduled_start_time: str | None = None  # HH:MM
    assigned_to: list[Assignee] = field(default_factory=list)
    risk_assessments: list[RiskAssessment] = field(default_factory=list)
    required_spares: list[RequiredSpare] = field(default_factory=list)
    required_services: list[RequiredService] = field(default_factory=list)
    is_critical: bool = False
    is_safety_task: bool = False
    original_task_id: str | None = None
    work_order_id: str | None = None
    status: TaskStatus = TaskStatus.OPEN

    @property
    def start_anchor(self) -> datetime | None:
        """Explicit start instant, only when both date and time are given."""
        if self.scheduled_start_date is None or not self.scheduled_start_time:
            return None
        return at_minute(self.scheduled_start_date, parse_hhmm(self.scheduled_start_time))


@dataclass(frozen=True)
class BreakPeriod:
    """A daily break inside the work window."""

    name: str
    start_time: str  # HH:MM
    end_time: str  # HH:MM

    @property
    def start_minute(self) -> int:
        return parse_hhmm(self.start_time)

    @property
    def end_minute(self) -> int:
        return parse_hhmm(self.end_time)


@dataclass(frozen=True)
class ApprovalStamp:
    """Who signed off an approval stage, and when."""

    uid: str
    name: str
    date: datetime


@dataclass(frozen=True)
class Approvals:
    """Two-stage sign-off of a plan."""

    stage1: ApprovalStamp | None = None
    stage2: ApprovalStamp | None = None


@dataclass
class Plan:
    """A maintenance plan: the window, the work calendar and the status."""

    id: str
    plan_id: str
    scheduled_start_date: date
    scheduled_end_date: date
    name: str = ""
    work_start_time: str = "08:00"
    work_end_time: str = "17:00"
    breaks: list[BreakPeriod] = field(default_factory=list)
    status: PlanStatus = PlanStatus.DRAFT
    approvals: Approvals = field(default_factory=Approvals)

    @property
    def plan_start(self) -> datetime:
        """First instant of the plan window (start date at work start)."""
        return at_minute(self.scheduled_start_date, parse_hhmm(self.work_start_time))

    @property
    def plan_end(self) -> datetime:
        """Last instant of the plan window (end date at work end)."""
        return at_minute(self.scheduled_end_date, parse_hhmm(self.work_end_time))

    @property
    def is_committed(self) -> bool:
        return self.status in COMMITTED_STATUSES


@dataclass
class WorkOrder:
    """A work order linked to a plan."""

    id: str
    wo_id: str
    status: WorkOrderStatus = WorkOrderStatus.OPEN


@dataclass(frozen=True)
class SpareStock:
    """Live stock and procurement data for one material."""

    material_id: str
    available_qty: float = 0.0
    lead_time_days: float = 0.0
    price: float = 0.0
    name: str = ""
    code: str = ""


@dataclass(frozen=True)
class ReservedBy:
    """The user who created a reservation."""

    uid: str
    name: str


@dataclass
class Reservation:
    """A claim against inventory for one task's required spare."""

    reservation_id: str
    plan_id: str
    task_ref: str  # Task.id
    task_id: str  # human task id
    material_id: str
    material_name: str
    material_code: str
    quantity: float
    uom: str
    warehouse_id: str
    warehouse_name: str
    work_order_id: str | None
    reserved_by: ReservedBy
    reserved_at: datetime
    status: ReservationStatus = ReservationStatus.RESERVED
