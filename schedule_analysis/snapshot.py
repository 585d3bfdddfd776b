from __future__ import annotations

import re
from dataclasses import dataclass, replace
from typing import Iterable, List, Optional, Set, Tuple

from .errors import InvalidTask
from .graph import build_dependency_graph
from .models import Dependency, DependencyType, Resource, Task


def parse_dependencies(text: str, task_id: str = "") -> Tuple[Dependency, ...]:
    """
    Parse predecessors written as ``"A:FS:0;B:SS:5;C:FF:-3"``.

    Separators may be ``;`` or ``,``. Exact duplicates are dropped.
    """
    dependencies: List[Dependency] = []
    if not text or not text.strip():
        return ()

    seen: Set[Tuple[str, DependencyType, int]] = set()
    for pred_def in re.split(r"[;,]", text):
        pred_def = pred_def.strip()
        if not pred_def or pred_def in {"-", "—"}:
            continue

        parts = [p.strip() for p in pred_def.split(":")]
        if len(parts) != 3:
            raise InvalidTask(
                task_id,
                f"Invalid predecessor format: '{pred_def}'. Use format 'ID:TYPE:LAG' (e.g., 'A:FS:0').",
            )

        pred_id, rel_raw, lag_raw = parts
        if not pred_id:
            raise InvalidTask(task_id, f"Missing predecessor ID in '{pred_def}'.")

        try:
            lag = int(lag_raw)
        except ValueError:
            raise InvalidTask(
                task_id, f"Invalid lag value in '{pred_def}'. Lag must be an integer."
            ) from None

        try:
            rel_type = DependencyType.parse(rel_raw)
        except ValueError as exc:
            raise InvalidTask(task_id, str(exc)) from None

        if pred_id == task_id:
            raise InvalidTask(task_id, "An activity cannot be its own predecessor.")

        key = (pred_id, rel_type, lag)
        if key in seen:
            continue
        seen.add(key)
        dependencies.append(Dependency(pred_id, rel_type, lag))

    return tuple(dependencies)


@dataclass(frozen=True)
class ProjectSnapshot:
    """
    Immutable task/resource state owned by the host.

    Every edit returns a new snapshot; analyses computed from an older
    snapshot remain valid for that snapshot.
    """

    tasks: Tuple[Task, ...] = ()
    resources: Tuple[Resource, ...] = ()

    def __post_init__(self) -> None:
        object.__setattr__(self, "tasks", tuple(self.tasks))
        object.__setattr__(self, "resources", tuple(self.resources))

    def task(self, task_id: str) -> Optional[Task]:
        for task in self.tasks:
            if task.id == task_id:
                return task
        return None

    def resource(self, resource_id: str) -> Optional[Resource]:
        for resource in self.resources:
            if resource.id == resource_id:
                return resource
        return None

    def children_of(self, task_id: str) -> List[Task]:
        return [task for task in self.tasks if task.parent_id == task_id]

    def descendants_of(self, task_id: str) -> List[str]:
        found: List[str] = []
        pending = [task_id]
        while pending:
            current = pending.pop()
            for child in self.children_of(current):
                if child.id not in found:
                    found.append(child.id)
                    pending.append(child.id)
        return found

    def add_task(self, task: Task) -> "ProjectSnapshot":
        if self.task(task.id) is not None:
            raise InvalidTask(task.id, f"Activity '{task.id}' already exists.")
        if task.parent_id is not None and self.task(task.parent_id) is None:
            raise InvalidTask(task.id, f"Parent task '{task.parent_id}' not found.")
        return replace(self, tasks=self.tasks + (task,))

    def update_task(self, task_id: str, **changes) -> "ProjectSnapshot":
        """
        Replace fields of one task.

        When ``start`` or ``duration`` change without an explicit ``end``,
        the end is recomputed.
        """
        current = self.task(task_id)
        if current is None:
            raise InvalidTask(task_id, f"Activity '{task_id}' not found.")
        if "id" in changes and changes["id"] != task_id:
            raise InvalidTask(task_id, "Task ID cannot be changed.")
        if ("start" in changes or "duration" in changes) and "end" not in changes:
            changes["end"] = None
        updated = replace(current, **changes)
        return replace(
            self, tasks=tuple(updated if task.id == task_id else task for task in self.tasks)
        )

    def delete_task(self, task_id: str) -> "ProjectSnapshot":
        """Remove a task and its WBS descendants."""
        if self.task(task_id) is None:
            raise InvalidTask(task_id, f"Activity '{task_id}' not found.")

        removed = {task_id, *self.descendants_of(task_id)}
        for task in self.tasks:
            if task.id in removed:
                continue
            for dep in task.dependencies:
                if dep.predecessor_id in removed:
                    raise InvalidTask(
                        dep.predecessor_id,
                        f"Cannot remove '{dep.predecessor_id}': Activity '{task.id}' depends on it.",
                    )
        return replace(self, tasks=tuple(task for task in self.tasks if task.id not in removed))

    def add_dependency(
        self,
        pred_id: str,
        succ_id: str,
        relation_type: DependencyType = DependencyType.FS,
        lag: int = 0,
    ) -> "ProjectSnapshot":
        """Add a relationship, refusing duplicates and cycles."""
        relation_type = DependencyType.parse(relation_type)
        if pred_id == succ_id:
            raise InvalidTask(succ_id, "An activity cannot be its own predecessor.")

        successor = self.task(succ_id)
        if successor is None:
            raise InvalidTask(succ_id, f"Activity '{succ_id}' not found.")
        for dep in successor.dependencies:
            if dep.predecessor_id == pred_id and dep.relation_type is relation_type:
                raise InvalidTask(
                    succ_id, f"Dependency {pred_id} ({relation_type}) -> {succ_id} already exists."
                )

        candidate = self.update_task(
            succ_id, dependencies=successor.dependencies + (Dependency(pred_id, relation_type, lag),)
        )
        # Surfaces UnknownTaskReference / CyclicDependency before the edit is accepted
        build_dependency_graph(candidate.tasks)
        return candidate

    def with_resources(self, resources: Iterable[Resource]) -> "ProjectSnapshot":
        return replace(self, resources=tuple(resources))

