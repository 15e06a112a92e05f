"""Critical path marking: the latest finishers and their ancestry."""

from maintplan.logger import get_logger

from .core import ScheduledTask

logger = get_logger()


def find_critical_path(scheduled: list[ScheduledTask]) -> set[str]:
    """Return the ids of the tasks on the critical path.

    Every task ending at the latest end instant terminates a path; each
    path is walked backwards along ``preceding_task_id`` until a task with no
    (scheduled) predecessor or an already visited id is reached.

    This marks what the timeline highlights, not a slack-based CPM longest
    path: an independent chain that ends earlier is not marked even when it
    is long. Manual ``is_critical`` flags are not merged here.
    """
    if not scheduled:
        return set()

    by_id = {st.id: st for st in scheduled}
    latest_end = max(st.gantt_end for st in scheduled)
    terminators = [st.id for st in scheduled if st.gantt_end == latest_end]

    critical: set[str] = set()
    for terminator in terminators:
        current: str | None = terminator
        while current is not None and current in by_id and current not in critical:
            critical.add(current)
            current = by_id[current].preceding_task_id

    logger.checks(f"Critical path: {len(critical)} task(s) ending at {latest_end}")
    return critical
