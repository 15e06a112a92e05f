"""maintplan - maintenance plan scheduling and readiness validation.

Places the tasks of a maintenance plan on a daily work calendar, expands
pre-task safety controls into their own sub-tasks, marks the critical path
and checks whether the plan is ready to be committed.
"""

__version__ = "0.1.0"
