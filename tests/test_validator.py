"""Tests for plan readiness validation."""

from __future__ import annotations

from collections.abc import Callable
from dataclasses import replace
from datetime import date, datetime

import pytest

from maintplan.models import (
    Plan,
    PlanStatus,
    RequiredService,
    RequiredSpare,
    RiskAssessment,
    ServiceAvailability,
    SpareStock,
    Task,
    WorkOrder,
)
from maintplan.scheduler.core import ScheduledTask
from maintplan.schemas import parse_stock
from maintplan.validator import ValidationVerdict, validate_plan

TODAY = date(2024, 3, 1)


@pytest.fixture
def ready(
    make_task: Callable[..., Task],
    make_plan: Callable[..., Plan],
    placed: Callable[..., ScheduledTask],
    tolerable_risk: RiskAssessment,
    work_orders: list[WorkOrder],
) -> dict[str, object]:
    """Inputs of a plan that passes every rule."""
    plan = make_plan(end=date(2024, 3, 5))
    task = make_task(
        "t1",
        2,
        risk_assessments=[tolerable_risk],
        required_spares=[RequiredSpare(material_id="m-1", quantity=2)],
    )
    return {
        "plan": plan,
        "scheduled": [
            placed("t1", datetime(2024, 3, 4, 8), datetime(2024, 3, 4, 10), ["alex"], hours=2)
        ],
        "tasks": [task],
        "stock": {"m-1": SpareStock(material_id="m-1", available_qty=5, lead_time_days=3)},
        "work_orders": work_orders,
        "today": TODAY,
    }


def _validate(inputs: dict[str, object], **overrides: object) -> ValidationVerdict:
    return validate_plan(**{**inputs, **overrides})  # type: ignore[arg-type]


class TestReadyPlan:
    """Test a plan with nothing to complain about."""

    def test_can_commit(self, ready: dict[str, object]) -> None:
        verdict = _validate(ready)
        assert verdict.can_commit
        assert verdict.issues == []

    def test_flags(self, ready: dict[str, object]) -> None:
        flags = _validate(ready).as_flags()
        assert flags == {
            "datesValid": True,
            "hasWorkOrders": True,
            "sparesStockValid": True,
            "sparesDelayValid": True,
            "hasSpareConflict": False,
            "resourceOverlap": False,
            "resourceOverloaded": False,
            "servicesValid": True,
            "safetyValid": True,
            "canCommit": True,
        }

    def test_committed_plan_cannot_commit_again(self, ready: dict[str, object]) -> None:
        plan = replace(ready["plan"], status=PlanStatus.IN_PROGRESS)  # type: ignore[type-var]
        verdict = _validate(ready, plan=plan)
        assert verdict.is_committed
        assert not verdict.can_commit


class TestDatesAndWorkOrders:
    def test_inverted_dates(self, ready: dict[str, object], make_plan: Callable[..., Plan]) -> None:
        plan = make_plan(start=date(2024, 3, 6), end=date(2024, 3, 4))
        verdict = _validate(ready, plan=plan)
        assert not verdict.dates_valid
        assert not verdict.can_commit

    def test_no_work_orders(self, ready: dict[str, object]) -> None:
        verdict = _validate(ready, work_orders=[])
        assert not verdict.has_work_orders
        assert not verdict.can_commit


class TestSpares:
    """Test stock and delivery rules."""

    def test_short_stock_is_only_a_warning(self, ready: dict[str, object]) -> None:
        stock = {"m-1": SpareStock(material_id="m-1", available_qty=1, lead_time_days=3)}
        verdict = _validate(ready, stock=stock)

        assert not verdict.spares_stock_valid
        assert verdict.short_materials == ["m-1"]
        assert verdict.can_commit

    def test_missing_stock_entry_counts_as_zero(self, ready: dict[str, object]) -> None:
        verdict = _validate(ready, stock={})
        assert not verdict.spares_stock_valid
        # Without a lead time there is nothing to be late
        assert verdict.spares_delay_valid

    def test_late_delivery_blocks_commit(self, ready: dict[str, object]) -> None:
        """Test a lead time landing after plan end + 7 days, with plenty of stock."""
        stock = {"m-1": SpareStock(material_id="m-1", available_qty=100, lead_time_days=30)}
        verdict = _validate(ready, stock=stock)

        assert verdict.spares_stock_valid
        assert not verdict.spares_delay_valid
        assert verdict.has_spare_conflict
        assert verdict.late_materials == ["m-1"]
        assert not verdict.can_commit

    def test_delivery_on_deadline_is_in_time(self, ready: dict[str, object]) -> None:
        # Plan ends 2024-03-05, deadline 2024-03-12, 11 days after TODAY
        stock = {"m-1": SpareStock(material_id="m-1", available_qty=5, lead_time_days=11)}
        assert _validate(ready, stock=stock).spares_delay_valid

        stock = {"m-1": SpareStock(material_id="m-1", available_qty=5, lead_time_days=12)}
        assert not _validate(ready, stock=stock).spares_delay_valid

    def test_unrepresentable_lead_time_is_late(self, ready: dict[str, object]) -> None:
        """Test that a delivery date past the calendar counts as late."""
        stock = {"m-1": SpareStock(material_id="m-1", available_qty=5, lead_time_days=1e10)}
        verdict = _validate(ready, stock=stock)

        assert not verdict.spares_delay_valid
        assert verdict.late_materials == ["m-1"]
        assert not verdict.can_commit

    def test_capped_lead_time_is_late(self, ready: dict[str, object]) -> None:
        stock = parse_stock({"m-1": {"availableQty": 5, "leadTimeDays": "inf"}})
        assert _validate(ready, stock=stock).late_materials == ["m-1"]


class TestResources:
    """Test double booking and overload."""

    def test_overlap_blocks_commit(
        self, ready: dict[str, object], placed: Callable[..., ScheduledTask]
    ) -> None:
        scheduled = [
            placed("a", datetime(2024, 3, 4, 8), datetime(2024, 3, 4, 11), ["alex"]),
            placed("b", datetime(2024, 3, 4, 10), datetime(2024, 3, 4, 12), ["alex", "jo"]),
        ]
        verdict = _validate(ready, scheduled=scheduled)

        assert verdict.resource_overlap
        assert verdict.overlapping_resources == ["alex"]
        assert not verdict.can_commit

    def test_back_to_back_is_not_overlap(
        self, ready: dict[str, object], placed: Callable[..., ScheduledTask]
    ) -> None:
        scheduled = [
            placed("a", datetime(2024, 3, 4, 8), datetime(2024, 3, 4, 10), ["alex"]),
            placed("b", datetime(2024, 3, 4, 10), datetime(2024, 3, 4, 12), ["alex"]),
        ]
        assert not _validate(ready, scheduled=scheduled).resource_overlap

    def test_overload_uses_estimated_hours(
        self, ready: dict[str, object], placed: Callable[..., ScheduledTask]
    ) -> None:
        """Test 20 estimated hours against 2 days x 9h = 18h of capacity."""
        scheduled = [
            placed("a", datetime(2024, 3, 4, 8), datetime(2024, 3, 4, 17), ["alex"], hours=20),
        ]
        verdict = _validate(ready, scheduled=scheduled)

        assert verdict.resource_overloaded
        assert verdict.overloaded_resources == ["alex"]
        assert not verdict.can_commit

    def test_unassigned_tasks_ignored(
        self, ready: dict[str, object], placed: Callable[..., ScheduledTask]
    ) -> None:
        scheduled = [
            placed("a", datetime(2024, 3, 4, 8), datetime(2024, 3, 4, 11), hours=40),
            placed("b", datetime(2024, 3, 4, 8), datetime(2024, 3, 4, 11)),
        ]
        verdict = _validate(ready, scheduled=scheduled)
        assert not verdict.resource_overlap
        assert not verdict.resource_overloaded


class TestServices:
    """Test external service confirmation."""

    @pytest.mark.parametrize(
        ("status", "tentative", "valid"),
        [
            (ServiceAvailability.AVAILABLE, None, True),
            (ServiceAvailability.NOT_CONTACTED, None, False),
            (ServiceAvailability.NOT_AVAILABLE, None, False),
            (ServiceAvailability.NOT_AVAILABLE, date(2024, 3, 4), True),
            (ServiceAvailability.NOT_AVAILABLE, date(2024, 3, 5), False),
        ],
    )
    def test_service_rule(
        self,
        ready: dict[str, object],
        status: ServiceAvailability,
        tentative: date | None,
        valid: bool,
    ) -> None:
        tasks: list[Task] = ready["tasks"]  # type: ignore[assignment]
        service = RequiredService("Crane hire", status, tentative)
        verdict = _validate(ready, tasks=[replace(tasks[0], required_services=[service])])

        assert verdict.services_valid is valid
        assert verdict.can_commit is valid


class TestSafety:
    """Test risk assessment rules."""

    def test_residual_not_reduced(self, ready: dict[str, object]) -> None:
        tasks: list[Task] = ready["tasks"]  # type: ignore[assignment]
        risk = RiskAssessment("Fall", initial_score=6, residual_score=6, is_residual_tolerable=True)
        verdict = _validate(ready, tasks=[replace(tasks[0], risk_assessments=[risk])])
        assert not verdict.safety_valid
        assert not verdict.can_commit

    def test_residual_not_tolerable(self, ready: dict[str, object]) -> None:
        tasks: list[Task] = ready["tasks"]  # type: ignore[assignment]
        risk = RiskAssessment("Fall", initial_score=6, residual_score=2)
        verdict = _validate(ready, tasks=[replace(tasks[0], risk_assessments=[risk])])
        assert not verdict.safety_valid

    def test_tasks_without_any_assessment(self, ready: dict[str, object]) -> None:
        tasks: list[Task] = ready["tasks"]  # type: ignore[assignment]
        verdict = _validate(ready, tasks=[replace(tasks[0], risk_assessments=[])])
        assert not verdict.safety_valid

    def test_one_assessed_task_is_enough(
        self, ready: dict[str, object], make_task: Callable[..., Task]
    ) -> None:
        tasks: list[Task] = ready["tasks"]  # type: ignore[assignment]
        verdict = _validate(ready, tasks=[*tasks, make_task("t2", 1)])
        assert verdict.safety_valid

    def test_empty_plan_is_not_a_safety_failure(self, ready: dict[str, object]) -> None:
        verdict = _validate(ready, tasks=[], scheduled=[])
        assert verdict.safety_valid


class TestIndependence:
    """Test that every rule is evaluated."""

    def test_all_failures_reported(
        self,
        ready: dict[str, object],
        make_plan: Callable[..., Plan],
        placed: Callable[..., ScheduledTask],
    ) -> None:
        tasks: list[Task] = ready["tasks"]  # type: ignore[assignment]
        task = replace(
            tasks[0],
            risk_assessments=[],
            required_services=[RequiredService("Scaffold", ServiceAvailability.NOT_CONTACTED)],
        )
        verdict = _validate(
            ready,
            plan=make_plan(start=date(2024, 3, 6), end=date(2024, 3, 4)),
            tasks=[task],
            work_orders=[],
            stock={"m-1": SpareStock(material_id="m-1", lead_time_days=60)},
            scheduled=[
                placed("a", datetime(2024, 3, 6, 8), datetime(2024, 3, 6, 11), ["alex"]),
                placed("b", datetime(2024, 3, 6, 9), datetime(2024, 3, 6, 12), ["alex"]),
            ],
        )

        assert not verdict.dates_valid
        assert not verdict.has_work_orders
        assert not verdict.spares_stock_valid
        assert not verdict.spares_delay_valid
        assert verdict.resource_overlap
        assert verdict.resource_overloaded
        assert not verdict.services_valid
        assert not verdict.safety_valid
        assert len(verdict.issues) >= 8
