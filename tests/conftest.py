"""Pytest configuration and fixtures for maintplan tests."""

from __future__ import annotations

from collections.abc import Callable, Iterator
from datetime import date, datetime
from typing import Any

import pytest

from maintplan.logger import reset_logger
from maintplan.models import (
    ApprovalStamp,
    Approvals,
    Assignee,
    BreakPeriod,
    Plan,
    RiskAssessment,
    Task,
    WorkOrder,
)
from maintplan.scheduler.core import ScheduledTask

PLAN_START = date(2024, 3, 4)  # a Monday


@pytest.fixture(autouse=True)
def _quiet_logger() -> Iterator[None]:
    """Keep logger configuration from leaking between tests."""
    yield
    reset_logger()


@pytest.fixture
def make_task() -> Callable[..., Task]:
    """Factory for tasks with readable defaults."""

    def _make(ident: str, hours: float = 1.0, **kwargs: Any) -> Task:
        kwargs.setdefault("task_id", ident.upper())
        kwargs.setdefault("task_name", f"Task {ident}")
        return Task(id=ident, estimated_duration_hours=hours, **kwargs)

    return _make


@pytest.fixture
def make_plan() -> Callable[..., Plan]:
    """Factory for plans; a one-day 08:00-17:00 draft without breaks by default."""

    def _make(  # noqa: PLR0913 - mirrors the plan window fields
        start: date = PLAN_START,
        end: date | None = None,
        work_start: str = "08:00",
        work_end: str = "17:00",
        breaks: list[tuple[str, str]] | None = None,
        **kwargs: Any,
    ) -> Plan:
        return Plan(
            id="plan-1",
            plan_id="MP-1",
            scheduled_start_date=start,
            scheduled_end_date=end or start,
            work_start_time=work_start,
            work_end_time=work_end,
            breaks=[
                BreakPeriod(name=f"Break {i + 1}", start_time=s, end_time=e)
                for i, (s, e) in enumerate(breaks or [])
            ],
            **kwargs,
        )

    return _make


@pytest.fixture
def placed(make_task: Callable[..., Task]) -> Callable[..., ScheduledTask]:
    """Factory for scheduled tasks with explicit bounds."""

    def _make(
        ident: str,
        start: datetime,
        end: datetime,
        assignees: list[str] | None = None,
        **kwargs: Any,
    ) -> ScheduledTask:
        hours = kwargs.pop("hours", (end - start).total_seconds() / 3600)
        task = make_task(
            ident,
            hours,
            assigned_to=[Assignee(uid=uid, name=uid.title()) for uid in assignees or []],
            **kwargs,
        )
        return ScheduledTask(task=task, gantt_start=start, gantt_end=end)

    return _make


@pytest.fixture
def tolerable_risk() -> RiskAssessment:
    """A risk assessment that passes the safety rule."""
    return RiskAssessment(
        hazard_name="Pinch point", initial_score=9, residual_score=3, is_residual_tolerable=True
    )


@pytest.fixture
def approved() -> Approvals:
    """Approvals with both stages signed."""
    return Approvals(
        stage1=ApprovalStamp(uid="u1", name="Pat Planner", date=datetime(2024, 2, 26, 9, 0)),
        stage2=ApprovalStamp(uid="u2", name="Morgan Manager", date=datetime(2024, 2, 27, 9, 0)),
    )


@pytest.fixture
def work_orders() -> list[WorkOrder]:
    return [WorkOrder(id="wo-1", wo_id="WO-1001"), WorkOrder(id="wo-2", wo_id="WO-1002")]
