"""Expansion of pre-task safety controls into schedulable sub-tasks."""

from dataclasses import replace

from maintplan.logger import get_logger
from maintplan.models import Assignee, SafetyControl, Task

logger = get_logger()

SAFETY_NAME_PREFIX = "[SAFETY] "


def pre_task_controls(task: Task) -> list[SafetyControl]:
    """Collect the pre-task controls of a task in assessment order."""
    return [
        control
        for assessment in task.risk_assessments
        for control in assessment.controls
        if control.is_pre_task
    ]


def _safety_task(task: Task, control: SafetyControl, index: int, previous_id: str | None) -> Task:
    """Build the index-th (0-based) safety sub-task of ``task``."""
    first = index == 0
    assigned = (
        [Assignee(uid=control.assigned_to_uid, name=control.assigned_to_name or "Unknown")]
        if control.assigned_to_uid
        else []
    )
    return replace(
        task,
        id=f"{task.id}_S{index + 1}",
        task_id=f"{task.task_id}-S{index + 1}",
        task_name=f"{SAFETY_NAME_PREFIX}{control.control_name}",
        description=control.control_description,
        estimated_duration_hours=control.duration_minutes / 60,
        assigned_to=assigned,
        # Spares, services and hazards stay with the parent
        risk_assessments=[],
        required_spares=[],
        required_services=[],
        is_safety_task=True,
        original_task_id=task.id,
        # The chain head takes over the parent's predecessor and start anchor
        preceding_task_id=task.preceding_task_id if first else previous_id,
        scheduled_start_date=task.scheduled_start_date if first else None,
        scheduled_start_time=task.scheduled_start_time if first else None,
    )


def expand_tasks(tasks: list[Task]) -> list[Task]:
    """Explode each task into its safety chain followed by the task itself.

    For a task with N pre-task controls this emits N sub-tasks
    ``{id}_S1 .. {id}_SN`` forming a single linear chain, then the task with
    its predecessor rewritten to ``{id}_SN`` and its start anchor cleared.
    Tasks without pre-task controls are emitted unchanged.
    """
    expanded: list[Task] = []

    for task in tasks:
        controls = pre_task_controls(task)
        if not controls:
            expanded.append(task)
            continue

        previous_id: str | None = None
        for index, control in enumerate(controls):
            safety = _safety_task(task, control, index, previous_id)
            expanded.append(safety)
            previous_id = safety.id

        logger.debug(f"Expanded {task.id} into {len(controls)} safety sub-task(s)")
        expanded.append(
            replace(
                task,
                preceding_task_id=previous_id,
                scheduled_start_date=None,
                scheduled_start_time=None,
            )
        )

    return expanded
