"""Plan document loading from YAML."""

from __future__ import annotations

from dataclasses import dataclass, field
from pathlib import Path
from typing import Any

import yaml

from .config import SchedulerConfig
from .exceptions import ParseError
from .models import Plan, SpareStock, Task, WorkOrder
from .schemas import parse_plan, parse_stock, parse_tasks, parse_work_order


@dataclass
class PlanDocument:
    """A plan with its tasks, work orders and the live stock map."""

    plan: Plan
    tasks: list[Task] = field(default_factory=list)
    work_orders: list[WorkOrder] = field(default_factory=list)
    stock: dict[str, SpareStock] = field(default_factory=dict)


def _section(data: dict[str, Any], *keys: str) -> Any:
    for key in keys:
        if key in data:
            return data[key]
    return None


def parse_plan_document(
    data: dict[str, Any], config: SchedulerConfig | None = None
) -> PlanDocument:
    """Build a PlanDocument from already-decoded YAML/JSON data."""
    config = config or SchedulerConfig()

    plan_data = data.get("plan")
    if not isinstance(plan_data, dict):
        raise ParseError("Plan document must contain a 'plan' mapping")

    task_data = data.get("tasks") or []
    if not isinstance(task_data, list):
        raise ParseError("'tasks' must be a list")

    wo_data = _section(data, "work_orders", "workOrders") or []
    if not isinstance(wo_data, list):
        raise ParseError("'work_orders' must be a list")

    stock_data = _section(data, "stock", "spares_metadata", "sparesMetadata") or {}
    if not isinstance(stock_data, dict):
        raise ParseError("'stock' must be a mapping of material id to stock data")

    return PlanDocument(
        plan=parse_plan(plan_data, config),
        tasks=parse_tasks([t for t in task_data if isinstance(t, dict)], config),
        work_orders=[parse_work_order(wo) for wo in wo_data if isinstance(wo, dict)],
        stock=parse_stock(stock_data),
    )


def load_plan_document(path: Path | str, config: SchedulerConfig | None = None) -> PlanDocument:
    """Load a plan document from a YAML file.

    Raises:
        ParseError: If the file is missing, is not valid YAML or has the wrong shape
        ValidationError: If a record cannot be converted (e.g. a plan without dates)
    """
    path = Path(path)
    if not path.exists():
        raise ParseError(f"File not found: {path}")

    try:
        with path.open(encoding="utf-8") as f:
            data: Any = yaml.safe_load(f)
    except yaml.YAMLError as e:
        raise ParseError(f"Failed to parse YAML: {e}") from e

    if not isinstance(data, dict):
        raise ParseError("YAML must contain a dictionary at the root level")

    return parse_plan_document(data, config)  # type: ignore[arg-type]
