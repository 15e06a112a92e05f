"""Tests for the planning pipeline."""

from collections.abc import Callable
from datetime import date, datetime
from pathlib import Path

import pytest

from maintplan.loader import PlanDocument, load_plan_document, parse_plan_document
from maintplan.models import Plan, RiskAssessment, SafetyControl, Task
from maintplan.scheduler.service import PlanningService

EXAMPLE_PLAN = Path(__file__).parent.parent / "examples" / "plan.yaml"
TODAY = date(2024, 3, 1)


class TestExamplePlan:
    """Run the whole pipeline on the bundled example."""

    @pytest.fixture
    def document(self) -> PlanDocument:
        return load_plan_document(EXAMPLE_PLAN)

    def test_placements(self, document: PlanDocument) -> None:
        result = PlanningService(document, today=TODAY).run()
        bounds = {st.id: (st.gantt_start, st.gantt_end) for st in result.scheduled_tasks}

        assert bounds == {
            "t-isolate_S1": (datetime(2024, 3, 4, 8), datetime(2024, 3, 4, 8, 30)),
            "t-isolate_S2": (datetime(2024, 3, 4, 8, 30), datetime(2024, 3, 4, 8, 45)),
            "t-isolate": (datetime(2024, 3, 4, 8, 45), datetime(2024, 3, 4, 10, 45)),
            # Crosses two lunches and one night
            "t-overhaul": (datetime(2024, 3, 4, 10, 45), datetime(2024, 3, 5, 13, 45)),
            "t-inspect": (datetime(2024, 3, 4, 14), datetime(2024, 3, 4, 15, 30)),
            "t-align": (datetime(2024, 3, 5, 13, 45), datetime(2024, 3, 5, 16, 45)),
        }
        assert [st.id for st in result.scheduled_tasks][-1] == "t-align"
        assert result.warnings == []

    def test_critical_path(self, document: PlanDocument) -> None:
        result = PlanningService(document, today=TODAY).run()
        assert result.critical_path == {
            "t-isolate_S1",
            "t-isolate_S2",
            "t-isolate",
            "t-overhaul",
            "t-align",
        }

    def test_verdict(self, document: PlanDocument) -> None:
        verdict = PlanningService(document, today=TODAY).run().verdict

        assert verdict.can_commit
        # Two seal kits needed, one in stock
        assert verdict.short_materials == ["m-seal"]
        assert not verdict.resource_overlap

    def test_late_reference_date_blocks_commit(self, document: PlanDocument) -> None:
        verdict = PlanningService(document, today=date(2024, 3, 10)).run().verdict
        assert verdict.late_materials == ["m-seal"]
        assert not verdict.can_commit

    def test_resources(self, document: PlanDocument) -> None:
        result = PlanningService(document, today=TODAY).run()
        loads = {load.uid: load for load in result.resources}

        assert loads["u-alex"].assigned_hours == 12
        assert loads["u-alex"].capacity_hours == 24
        assert not loads["u-alex"].double_allocated
        assert loads["u-sam"].name == "Sam Safety"

    def test_rerun_is_identical(self, document: PlanDocument) -> None:
        first = PlanningService(document, today=TODAY).run()
        second = PlanningService(document, today=TODAY).run()
        assert first.scheduled_tasks == second.scheduled_tasks
        assert first.verdict == second.verdict


class TestWarnings:
    """Test the diagnostics surfaced for malformed inputs."""

    def test_malformed_precedence(
        self, make_plan: Callable[..., Plan], make_task: Callable[..., Task]
    ) -> None:
        document = PlanDocument(
            plan=make_plan(),
            tasks=[
                make_task("a", 1, preceding_task_id="b"),
                make_task("b", 1, preceding_task_id="a"),
                make_task("c", 1, preceding_task_id="gone"),
                make_task("d", 20),
            ],
        )
        result = PlanningService(document, today=TODAY).run()

        assert result.warnings == [
            "Task a is in a precedence cycle; placed at plan start",
            "Task b is in a precedence cycle; placed at plan start",
            "Task c names a predecessor that does not exist",
            "Task d does not fit the plan window; cut at plan end",
        ]
        assert len(result.scheduled_tasks) == 4

    def test_safety_chain_anchored(
        self, make_plan: Callable[..., Plan], make_task: Callable[..., Task]
    ) -> None:
        """Test that the first safety sub-task takes the parent's anchor."""
        control = SafetyControl("Permit", is_pre_task=True, duration_minutes=30)
        task = make_task(
            "t1",
            1,
            scheduled_start_date=date(2024, 3, 4),
            scheduled_start_time="10:00",
            risk_assessments=[RiskAssessment("Heat", 6, 2, True, [control])],
        )
        result = PlanningService(PlanDocument(plan=make_plan(), tasks=[task]), today=TODAY).run()
        bounds = {st.id: (st.gantt_start, st.gantt_end) for st in result.scheduled_tasks}

        assert bounds["t1_S1"] == (datetime(2024, 3, 4, 10), datetime(2024, 3, 4, 10, 30))
        assert bounds["t1"] == (datetime(2024, 3, 4, 10, 30), datetime(2024, 3, 4, 11, 30))

    def test_unrepresentable_durations(self) -> None:
        """Test that endless and huge durations still give a bounded schedule."""
        document = parse_plan_document(
            {
                "plan": {
                    "id": "mp-1",
                    "scheduledStartDate": "2024-03-04",
                    "scheduledEndDate": "2024-03-06",
                },
                "tasks": [
                    {"id": "endless", "estimatedDurationHours": "inf"},
                    {"id": "huge", "estimatedDurationHours": "1e12"},
                    {
                        "id": "guarded",
                        "estimatedDurationHours": 1,
                        "riskAssessments": [
                            {"controls": [{"isPreTask": True, "durationMinutes": 1e12}]}
                        ],
                    },
                ],
            }
        )
        result = PlanningService(document, today=TODAY).run()
        plan_end = document.plan.plan_end

        assert "Task huge does not fit the plan window; cut at plan end" in result.warnings
        assert len(result.scheduled_tasks) == 4
        assert all(st.gantt_end <= plan_end for st in result.scheduled_tasks)
