from __future__ import annotations

from typing import Sequence, Tuple


class ScheduleError(Exception):
    """Base class for errors raised by the schedule analysis engine."""


class InvalidTask(ScheduleError, ValueError):
    def __init__(self, task_id: object, reason: str):
        self.task_id = task_id
        self.reason = reason
        super().__init__(f"Task '{task_id}': {reason}")


class UnknownTaskReference(ScheduleError):
    """A dependency points at a task id that is not in the snapshot."""

    def __init__(self, task_id: str, referenced_id: str):
        self.task_id = task_id
        self.referenced_id = referenced_id
        super().__init__(
            f"Activity '{task_id}' references undefined predecessor '{referenced_id}'."
        )


class CyclicDependency(ScheduleError):
    """The dependency network contains a cycle; ``path`` ends where it starts."""

    def __init__(self, path: Sequence[str]):
        self.path: Tuple[str, ...] = tuple(path)
        super().__init__(f"Circular dependency detected: {' -> '.join(self.path)}")


class ConfigError(ScheduleError, ValueError):
    pass
