"""Pydantic schemas for raw plan records.

Records arrive from a schemaless document store (or a YAML file) with
camelCase keys, optional nesting and ad hoc types. The schemas here are the
single place where such records are checked and defaulted; the converted
:mod:`maintplan.models` entities are fully populated.
"""

from __future__ import annotations

import math
import re
from datetime import date, datetime
from typing import Any

from pydantic import AliasChoices, BaseModel, ConfigDict, Field, field_validator
from pydantic import ValidationError as PydanticValidationError
from pydantic.alias_generators import to_camel

from .config import SchedulerConfig
from .exceptions import ValidationError
from .models import (
    ApprovalStamp,
    Approvals,
    Assignee,
    BreakPeriod,
    Plan,
    PlanStatus,
    RequiredService,
    RequiredSpare,
    RiskAssessment,
    SafetyControl,
    ServiceAvailability,
    SpareStock,
    Task,
    TaskStatus,
    WorkOrder,
    WorkOrderStatus,
    parse_hhmm,
)

_HHMM = re.compile(r"^([01]?\d|2[0-3]):([0-5]\d)$")

# Lead times are capped here so delivery dates stay representable
MAX_LEAD_TIME_DAYS = 36500.0


def _to_float(value: Any, default: float = 0.0, upper: float | None = None) -> float:
    """Coerce to float; NaN falls back to ``default``.

    With ``upper`` given, larger values (infinity included) are capped to it;
    without it any non-finite value falls back to ``default``.
    """
    if value is None or isinstance(value, bool):
        return default
    try:
        result = float(value)
    except (TypeError, ValueError):
        return default
    if math.isnan(result):
        return default
    if upper is not None:
        return min(result, upper)
    if math.isinf(result):
        return default
    return result


def _to_date(value: Any) -> date | None:
    if isinstance(value, datetime):
        return value.date()
    if isinstance(value, date):
        return value
    if isinstance(value, str) and value.strip():
        try:
            return date.fromisoformat(value.strip()[:10])
        except ValueError:
            return None
    return None


def _to_hhmm(value: Any) -> str | None:
    if not isinstance(value, str):
        return None
    match = _HHMM.match(value.strip())
    if not match:
        return None
    return f"{int(match.group(1)):02d}:{match.group(2)}"


def _to_str(value: Any) -> str:
    if value is None:
        return ""
    return str(value)


def _dict_items(value: Any) -> list[dict[str, Any]]:
    if not isinstance(value, list):
        return []
    return [item for item in value if isinstance(item, dict)]  # type: ignore[misc]


class _Record(BaseModel):
    """Base for document-store records: camelCase keys, unknown keys ignored."""

    model_config = ConfigDict(
        alias_generator=to_camel, populate_by_name=True, extra="ignore"
    )


class AssigneeSchema(_Record):
    uid: str = ""
    name: str = "Unknown"

    @field_validator("uid", "name", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str:
        return _to_str(v)


class SafetyControlSchema(_Record):
    control_name: str = ""
    control_description: str = ""
    is_pre_task: bool = False
    duration_minutes: float | None = None
    assigned_to_uid: str | None = None
    assigned_to_name: str | None = None

    @field_validator("control_name", "control_description", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str:
        return _to_str(v)

    @field_validator("is_pre_task", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        return v is True

    @field_validator("duration_minutes", mode="before")
    @classmethod
    def coerce_minutes(cls, v: Any) -> float | None:
        minutes = _to_float(v, 0.0)
        return minutes if minutes > 0 else None

    def to_model(self, config: SchedulerConfig) -> SafetyControl:
        duration = self.duration_minutes
        if duration is None:
            duration = config.default_safety_control_minutes
        duration = min(duration, config.max_task_hours * 60)
        return SafetyControl(
            control_name=self.control_name,
            control_description=self.control_description,
            is_pre_task=self.is_pre_task,
            duration_minutes=duration,
            assigned_to_uid=self.assigned_to_uid or None,
            assigned_to_name=self.assigned_to_name or None,
        )


class RiskAssessmentSchema(_Record):
    hazard_name: str = Field(
        default="", validation_alias=AliasChoices("hazardName", "hazard_name", "hazard")
    )
    initial_score: float = 0.0
    residual_score: float = 0.0
    is_residual_tolerable: bool = False
    controls: list[SafetyControlSchema] = Field(default_factory=list)

    @field_validator("hazard_name", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str:
        return _to_str(v)

    @field_validator("initial_score", "residual_score", mode="before")
    @classmethod
    def coerce_score(cls, v: Any) -> float:
        return _to_float(v)

    @field_validator("is_residual_tolerable", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        return v is True

    @field_validator("controls", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[dict[str, Any]]:
        return _dict_items(v)

    def to_model(self, config: SchedulerConfig) -> RiskAssessment:
        return RiskAssessment(
            hazard_name=self.hazard_name,
            initial_score=self.initial_score,
            residual_score=self.residual_score,
            is_residual_tolerable=self.is_residual_tolerable,
            controls=[c.to_model(config) for c in self.controls],
        )


class RequiredSpareSchema(_Record):
    material_id: str = ""
    quantity: float = 0.0
    uom: str = "Unit"
    name: str = "Unknown"
    material_code: str = ""
    warehouse_path: str = ""
    warehouse_id: str = ""
    warehouse_name: str = ""

    @field_validator(
        "material_id",
        "material_code",
        "warehouse_path",
        "warehouse_id",
        "warehouse_name",
        mode="before",
    )
    @classmethod
    def coerce_str(cls, v: Any) -> str:
        return _to_str(v)

    @field_validator("uom", mode="before")
    @classmethod
    def coerce_uom(cls, v: Any) -> str:
        return _to_str(v) or "Unit"

    @field_validator("name", mode="before")
    @classmethod
    def coerce_name(cls, v: Any) -> str:
        return _to_str(v) or "Unknown"

    @field_validator("quantity", mode="before")
    @classmethod
    def coerce_quantity(cls, v: Any) -> float:
        return max(_to_float(v), 0.0)

    def to_model(self) -> RequiredSpare:
        return RequiredSpare(
            material_id=self.material_id,
            quantity=self.quantity,
            uom=self.uom or "Unit",
            name=self.name or "Unknown",
            material_code=self.material_code,
            warehouse_path=self.warehouse_path,
            warehouse_id=self.warehouse_id,
            warehouse_name=self.warehouse_name,
        )


class RequiredServiceSchema(_Record):
    service_name: str = Field(
        default="", validation_alias=AliasChoices("serviceName", "service_name", "name")
    )
    availability_status: ServiceAvailability = ServiceAvailability.NOT_CONTACTED
    tentative_date: date | None = None

    @field_validator("service_name", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str:
        return _to_str(v)

    @field_validator("availability_status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> ServiceAvailability:
        try:
            return ServiceAvailability(v)
        except ValueError:
            return ServiceAvailability.NOT_CONTACTED

    @field_validator("tentative_date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> date | None:
        return _to_date(v)

    def to_model(self) -> RequiredService:
        return RequiredService(
            service_name=self.service_name,
            availability_status=self.availability_status,
            tentative_date=self.tentative_date,
        )


class TaskSchema(_Record):
    id: str
    task_id: str = ""
    task_name: str = ""
    description: str = ""
    estimated_duration_hours: float = 0.0
    preceding_task_id: str | None = None
    scheduled_start_date: date | None = None
    scheduled_start_time: str | None = None
    assigned_to: list[AssigneeSchema] = Field(default_factory=list)
    risk_assessments: list[RiskAssessmentSchema] = Field(default_factory=list)
    required_spares: list[RequiredSpareSchema] = Field(default_factory=list)
    required_services: list[RequiredServiceSchema] = Field(default_factory=list)
    is_critical: bool = False
    work_order_id: str | None = None
    status: TaskStatus = TaskStatus.OPEN

    @field_validator("id", mode="before")
    @classmethod
    def require_id(cls, v: Any) -> str:
        if v is None or str(v).strip() == "":
            raise ValueError("task record has no id")
        return str(v)

    @field_validator("task_id", "task_name", "description", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str:
        return _to_str(v)

    @field_validator("preceding_task_id", "work_order_id", mode="before")
    @classmethod
    def coerce_ref(cls, v: Any) -> str | None:
        text = _to_str(v).strip()
        return text or None

    @field_validator("estimated_duration_hours", mode="before")
    @classmethod
    def coerce_duration(cls, v: Any) -> float:
        return max(_to_float(v), 0.0)

    @field_validator("scheduled_start_date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> date | None:
        return _to_date(v)

    @field_validator("scheduled_start_time", mode="before")
    @classmethod
    def coerce_time(cls, v: Any) -> str | None:
        return _to_hhmm(v)

    @field_validator(
        "assigned_to", "risk_assessments", "required_spares", "required_services", mode="before"
    )
    @classmethod
    def ensure_list(cls, v: Any) -> list[dict[str, Any]]:
        return _dict_items(v)

    @field_validator("is_critical", mode="before")
    @classmethod
    def coerce_flag(cls, v: Any) -> bool:
        return v is True

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> TaskStatus:
        try:
            return TaskStatus(v)
        except ValueError:
            return TaskStatus.OPEN

    def to_model(self, config: SchedulerConfig) -> Task:
        duration = min(self.estimated_duration_hours, config.max_task_hours)
        return Task(
            id=self.id,
            task_id=self.task_id or self.id,
            task_name=self.task_name,
            description=self.description,
            estimated_duration_hours=duration,
            preceding_task_id=self.preceding_task_id,
            scheduled_start_date=self.scheduled_start_date,
            scheduled_start_time=self.scheduled_start_time,
            assigned_to=[
                Assignee(uid=a.uid, name=a.name or "Unknown") for a in self.assigned_to if a.uid
            ],
            risk_assessments=[ra.to_model(config) for ra in self.risk_assessments],
            required_spares=[s.to_model() for s in self.required_spares if s.material_id],
            required_services=[s.to_model() for s in self.required_services],
            is_critical=self.is_critical,
            work_order_id=self.work_order_id,
            status=self.status,
        )


class BreakSchema(_Record):
    name: str = ""
    start_time: str | None = None
    end_time: str | None = None

    @field_validator("name", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str:
        return _to_str(v)

    @field_validator("start_time", "end_time", mode="before")
    @classmethod
    def coerce_time(cls, v: Any) -> str | None:
        return _to_hhmm(v)

    def to_model(self) -> BreakPeriod | None:
        """Return the break, or None when its times are unusable."""
        if self.start_time is None or self.end_time is None:
            return None
        if parse_hhmm(self.end_time) <= parse_hhmm(self.start_time):
            return None
        return BreakPeriod(name=self.name, start_time=self.start_time, end_time=self.end_time)


class ApprovalStampSchema(_Record):
    uid: str
    name: str = ""
    date: datetime


class ApprovalsSchema(_Record):
    stage1: ApprovalStampSchema | None = None
    stage2: ApprovalStampSchema | None = None


class PlanSchema(_Record):
    id: str = ""
    plan_id: str = ""
    name: str = ""
    scheduled_start_date: date | None = Field(
        default=None,
        validation_alias=AliasChoices("scheduledStartDate", "scheduled_start_date", "startDate"),
    )
    scheduled_end_date: date | None = Field(
        default=None,
        validation_alias=AliasChoices("scheduledEndDate", "scheduled_end_date", "endDate"),
    )
    work_start_time: str | None = None
    work_end_time: str | None = None
    breaks: list[BreakSchema] = Field(default_factory=list)
    status: PlanStatus = PlanStatus.DRAFT
    approvals: ApprovalsSchema = Field(default_factory=ApprovalsSchema)

    @field_validator("id", "plan_id", "name", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str:
        return _to_str(v)

    @field_validator("scheduled_start_date", "scheduled_end_date", mode="before")
    @classmethod
    def coerce_date(cls, v: Any) -> date | None:
        return _to_date(v)

    @field_validator("work_start_time", "work_end_time", mode="before")
    @classmethod
    def coerce_time(cls, v: Any) -> str | None:
        return _to_hhmm(v)

    @field_validator("breaks", mode="before")
    @classmethod
    def ensure_list(cls, v: Any) -> list[dict[str, Any]]:
        return _dict_items(v)

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> PlanStatus:
        # Absence of a committed status means the plan is still a draft
        try:
            return PlanStatus(v)
        except ValueError:
            return PlanStatus.DRAFT

    @field_validator("approvals", mode="before")
    @classmethod
    def coerce_approvals(cls, v: Any) -> Any:
        return v if isinstance(v, dict) else {}

    def to_model(self, config: SchedulerConfig) -> Plan:
        if self.scheduled_start_date is None or self.scheduled_end_date is None:
            raise ValidationError(
                f"Plan '{self.plan_id or self.id}' is missing its scheduled start or end date"
            )

        breaks = [b for b in (raw.to_model() for raw in self.breaks) if b is not None]
        breaks = sorted(breaks, key=lambda b: b.start_minute)[: config.max_breaks]

        return Plan(
            id=self.id or self.plan_id,
            plan_id=self.plan_id or self.id,
            name=self.name,
            scheduled_start_date=self.scheduled_start_date,
            scheduled_end_date=self.scheduled_end_date,
            work_start_time=self.work_start_time or config.default_work_start,
            work_end_time=self.work_end_time or config.default_work_end,
            breaks=breaks,
            status=self.status,
            approvals=Approvals(
                stage1=_stamp(self.approvals.stage1),
                stage2=_stamp(self.approvals.stage2),
            ),
        )


def _stamp(schema: ApprovalStampSchema | None) -> ApprovalStamp | None:
    if schema is None:
        return None
    return ApprovalStamp(uid=schema.uid, name=schema.name, date=schema.date)


class WorkOrderSchema(_Record):
    id: str
    wo_id: str = ""
    status: WorkOrderStatus = WorkOrderStatus.OPEN

    @field_validator("id", "wo_id", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str:
        return _to_str(v)

    @field_validator("status", mode="before")
    @classmethod
    def coerce_status(cls, v: Any) -> WorkOrderStatus:
        try:
            return WorkOrderStatus(v)
        except ValueError:
            return WorkOrderStatus.OPEN

    def to_model(self) -> WorkOrder:
        return WorkOrder(id=self.id, wo_id=self.wo_id or self.id, status=self.status)


class SpareStockSchema(_Record):
    available_qty: float = 0.0
    lead_time_days: float = 0.0
    price: float = 0.0
    name: str = ""
    code: str = ""

    @field_validator("available_qty", "price", mode="before")
    @classmethod
    def coerce_number(cls, v: Any) -> float:
        return max(_to_float(v), 0.0)

    @field_validator("lead_time_days", mode="before")
    @classmethod
    def coerce_lead_time(cls, v: Any) -> float:
        # An endless lead time is still a lead time, not zero
        return max(_to_float(v, upper=MAX_LEAD_TIME_DAYS), 0.0)

    @field_validator("name", "code", mode="before")
    @classmethod
    def coerce_str(cls, v: Any) -> str:
        return _to_str(v)

    def to_model(self, material_id: str) -> SpareStock:
        return SpareStock(
            material_id=material_id,
            available_qty=self.available_qty,
            lead_time_days=self.lead_time_days,
            price=self.price,
            name=self.name,
            code=self.code,
        )


def _wrap(kind: str, exc: PydanticValidationError) -> ValidationError:
    return ValidationError(f"Invalid {kind} record: {exc}")


def parse_task(record: dict[str, Any], config: SchedulerConfig | None = None) -> Task:
    """Convert a raw task record into a Task."""
    config = config or SchedulerConfig()
    try:
        return TaskSchema.model_validate(record).to_model(config)
    except PydanticValidationError as e:
        raise _wrap("task", e) from e


def parse_tasks(
    records: list[dict[str, Any]], config: SchedulerConfig | None = None
) -> list[Task]:
    """Convert raw task records, keeping the first record for a duplicated id."""
    tasks: list[Task] = []
    seen: set[str] = set()
    for record in records:
        task = parse_task(record, config)
        if task.id in seen:
            continue
        seen.add(task.id)
        tasks.append(task)
    return tasks


def parse_plan(record: dict[str, Any], config: SchedulerConfig | None = None) -> Plan:
    """Convert a raw plan record into a Plan."""
    config = config or SchedulerConfig()
    try:
        return PlanSchema.model_validate(record).to_model(config)
    except PydanticValidationError as e:
        raise _wrap("plan", e) from e


def parse_work_order(record: dict[str, Any]) -> WorkOrder:
    """Convert a raw work order record into a WorkOrder."""
    try:
        return WorkOrderSchema.model_validate(record).to_model()
    except PydanticValidationError as e:
        raise _wrap("work order", e) from e


def parse_stock(records: dict[str, Any]) -> dict[str, SpareStock]:
    """Convert a ``materialId -> {availableQty, leadTimeDays, ...}`` map."""
    stock: dict[str, SpareStock] = {}
    for material_id, record in records.items():
        if not isinstance(record, dict):
            continue
        try:
            stock[str(material_id)] = SpareStockSchema.model_validate(record).to_model(
                str(material_id)
            )
        except PydanticValidationError as e:
            raise _wrap("stock", e) from e
    return stock
