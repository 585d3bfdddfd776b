from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .config import EngineConfig
from .models import ConflictSeverity, Resource, ResourceConflict, Task

logger = logging.getLogger(__name__)


def tasks_overlap(task1: Task, task2: Task) -> bool:
    return task1.start < task2.end and task2.start < task1.end


def classify_overlap(overlap_ratio: float, config: Optional[EngineConfig] = None) -> ConflictSeverity:
    config = config or EngineConfig()
    if overlap_ratio > config.severity_critical:
        return ConflictSeverity.CRITICAL
    if overlap_ratio > config.severity_high:
        return ConflictSeverity.HIGH
    if overlap_ratio > config.severity_medium:
        return ConflictSeverity.MEDIUM
    return ConflictSeverity.LOW


def _assignments_by_resource(
    tasks: List[Task], resources: Dict[str, Resource]
) -> Dict[str, List[Tuple[Task, float]]]:
    """Map resource id to (task, units) in task order; unknown resources are skipped."""
    assigned: Dict[str, List[Tuple[Task, float]]] = {resource_id: [] for resource_id in resources}
    for task in tasks:
        units: Dict[str, float] = {}
        for assignment in task.resources:
            if assignment.resource_id not in resources:
                logger.warning(
                    "Task '%s' is assigned to unknown resource '%s'; assignment skipped",
                    task.id,
                    assignment.resource_id,
                )
                continue
            units[assignment.resource_id] = units.get(assignment.resource_id, 0.0) + assignment.units
        for resource_id, total in units.items():
            assigned[resource_id].append((task, total))
    return assigned


def detect_resource_conflicts(
    tasks: Iterable[Task],
    resources: Iterable[Resource],
    config: Optional[EngineConfig] = None,
) -> List[ResourceConflict]:
    """
    Find every pair of tasks that holds the same resource at the same time.

    One conflict is reported per overlapping pair per resource; overlapping
    pairs are not merged into larger clusters.
    """
    config = config or EngineConfig()
    resources = {resource.id: resource for resource in resources}
    assigned = _assignments_by_resource(list(tasks), resources)

    conflicts: List[ResourceConflict] = []
    for resource_id, resource in resources.items():
        holders = assigned[resource_id]
        capacity = resource.max_units * resource.availability
        for i in range(len(holders)):
            task1, units1 = holders[i]
            for j in range(i + 1, len(holders)):
                task2, units2 = holders[j]
                if not tasks_overlap(task1, task2):
                    continue

                start = max(task1.start, task2.start)
                end = min(task1.end, task2.end)
                union = max(task1.end, task2.end) - min(task1.start, task2.start)
                ratio = (end - start) / union
                combined = units1 + units2
                conflicts.append(
                    ResourceConflict(
                        resource_id=resource_id,
                        resource_name=resource.name or resource_id,
                        task_ids=(task1.id, task2.id),
                        start=start,
                        end=end,
                        overlap_ratio=ratio,
                        severity=classify_overlap(ratio, config),
                        combined_units=combined,
                        over_allocated=combined > capacity + config.float_tolerance,
                    )
                )

    logger.info("Detected %d resource conflicts across %d resources", len(conflicts), len(resources))
    return conflicts


def compute_resource_utilization(
    tasks: Iterable[Task], resources: Iterable[Resource]
) -> Dict[str, float]:
    """Assigned units over max units for each resource, across all tasks."""
    resources = {resource.id: resource for resource in resources}
    assigned = _assignments_by_resource(list(tasks), resources)

    utilization: Dict[str, float] = {}
    for resource_id, resource in resources.items():
        total_units = sum(units for _, units in assigned[resource_id])
        utilization[resource_id] = total_units / resource.max_units if resource.max_units > 0 else 0.0
    return utilization
