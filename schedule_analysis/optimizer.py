"""
Heuristic schedule optimizer.

Every proposal here comes from a fixed-percentage rule of thumb: crash
critical tasks, reallocate resources on expensive tasks, delay the later of
two tasks competing for a resource. Nothing is searched or proven optimal,
and no action is applied to the caller's tasks.
"""
from __future__ import annotations

import logging
from dataclasses import replace
from typing import Dict, Iterable, List, Optional, Sequence

from .config import EngineConfig
from .conflicts import detect_resource_conflicts
from .cpm import analyze_critical_path
from .models import (
    ActionImpact,
    ActionKind,
    CostOptimizationResult,
    CriticalPathAnalysis,
    DurationOptimizationResult,
    HeuristicAction,
    LevelingAction,
    OptimizationFlags,
    Resource,
    ResourceConflict,
    ResourceLevelingResult,
    ScheduleOptimization,
    Task,
)

logger = logging.getLogger(__name__)


def total_cost(tasks: Iterable[Task]) -> float:
    return sum(task.cost for task in tasks)


def rank_actions(actions: Iterable[HeuristicAction]) -> List[HeuristicAction]:
    """Largest duration reduction first, then largest saving, then lowest risk."""
    return sorted(
        actions,
        key=lambda a: (
            a.impact.duration_delta,
            a.impact.cost_delta,
            a.impact.risk_delta,
            a.task_id,
            a.kind.value,
        ),
    )


def crash_actions(
    tasks: Sequence[Task], analysis: CriticalPathAnalysis, config: EngineConfig
) -> List[HeuristicAction]:
    actions = []
    for task in tasks:
        if not analysis.is_critical(task.id) or task.duration <= 1:
            continue
        reduction = task.duration - max(1, task.duration - config.crash_step)
        actions.append(
            HeuristicAction(
                task_id=task.id,
                kind=ActionKind.CRASH,
                impact=ActionImpact(
                    duration_delta=-reduction,
                    cost_delta=task.cost * config.crash_cost_ratio,
                    risk_delta=config.crash_risk,
                ),
                description=f'Crash task "{task.name or task.id}" to reduce duration',
            )
        )
    return actions


def reallocation_actions(tasks: Sequence[Task], config: EngineConfig) -> List[HeuristicAction]:
    actions = []
    for task in tasks:
        cost = task.cost
        if cost <= config.reallocation_cost_threshold:
            continue
        actions.append(
            HeuristicAction(
                task_id=task.id,
                kind=ActionKind.RESOURCE_REALLOCATION,
                impact=ActionImpact(
                    duration_delta=0,
                    cost_delta=-cost * config.reallocation_savings_ratio,
                    risk_delta=config.reallocation_risk,
                ),
                description=f'Reallocate resources for task "{task.name or task.id}" to reduce cost',
            )
        )
    return actions


def leveling_actions(
    conflicts: Iterable[ResourceConflict], tasks: Dict[str, Task], config: EngineConfig
) -> List[LevelingAction]:
    """One delay per conflict, on the task that starts later (the second on a tie)."""
    actions = []
    for conflict in conflicts:
        first, second = (tasks[task_id] for task_id in conflict.task_ids[:2])
        delayed, other = (first, second) if first.start > second.start else (second, first)
        actions.append(
            LevelingAction(
                task_id=delayed.id,
                kind=ActionKind.DELAY,
                duration_impact=delayed.duration * config.delay_duration_ratio,
                cost_impact=delayed.cost * config.delay_cost_ratio,
                description=(
                    f'Delay task "{delayed.name or delayed.id}" to resolve conflict on '
                    f'{conflict.resource_name} with "{other.name or other.id}"'
                ),
            )
        )
    return actions


def _estimate_crashed_duration(
    tasks: Sequence[Task], crashes: Sequence[HeuristicAction], config: EngineConfig
) -> int:
    """Re-run CPM on a copy of the tasks with every crash applied."""
    reductions = {action.task_id: -action.impact.duration_delta for action in crashes}
    what_if = [
        replace(task, duration=task.duration - reductions[task.id], end=None)
        if task.id in reductions
        else task
        for task in tasks
    ]
    return analyze_critical_path(what_if, config).project_duration


def optimize_schedule(
    tasks: Iterable[Task],
    resources: Iterable[Resource],
    flags: Optional[OptimizationFlags] = None,
    config: Optional[EngineConfig] = None,
    analysis: Optional[CriticalPathAnalysis] = None,
) -> ScheduleOptimization:
    """
    Propose ranked heuristic actions for the requested objectives.

    ``analysis`` may be passed to reuse a critical path result computed for
    the same tasks.
    """
    tasks = list(tasks)
    resources = list(resources)
    flags = flags or OptimizationFlags()
    config = config or EngineConfig()
    if analysis is None:
        analysis = analyze_critical_path(tasks, config)
    by_id = {task.id: task for task in tasks}

    conflicts = detect_resource_conflicts(tasks, resources, config)
    leveling = leveling_actions(conflicts, by_id, config)
    resource_leveling = ResourceLevelingResult(
        leveled_tasks=tuple(tasks),
        resource_conflicts=tuple(conflicts),
        leveling_actions=tuple(leveling),
    )

    original_duration = analysis.project_duration
    original_cost = total_cost(tasks)

    crashes: List[HeuristicAction] = []
    if flags.optimize_duration:
        if flags.max_duration is not None and original_duration <= flags.max_duration:
            logger.info(
                "Duration %s already within target %s; no crashing proposed",
                original_duration,
                flags.max_duration,
            )
        else:
            crashes = crash_actions(tasks, analysis, config)

    savings: List[HeuristicAction] = []
    if flags.optimize_cost:
        if flags.max_cost is not None and original_cost <= flags.max_cost:
            logger.info(
                "Cost %s already within target %s; no reallocation proposed",
                original_cost,
                flags.max_cost,
            )
        else:
            savings = reallocation_actions(tasks, config)

    delays: List[HeuristicAction] = []
    if flags.optimize_resources:
        delays = [
            HeuristicAction(
                task_id=action.task_id,
                kind=action.kind,
                impact=ActionImpact(
                    duration_delta=action.duration_impact,
                    cost_delta=action.cost_impact,
                    risk_delta=config.delay_risk,
                ),
                description=action.description,
            )
            for action in leveling
        ]

    optimized_duration = (
        _estimate_crashed_duration(tasks, crashes, config) if crashes else original_duration
    )
    optimized_cost = original_cost + sum(action.impact.cost_delta for action in savings)

    actions = rank_actions(crashes + savings + delays)
    logger.info(
        "Optimization proposed %d actions (%d crash, %d reallocation, %d delay)",
        len(actions),
        len(crashes),
        len(savings),
        len(delays),
    )

    return ScheduleOptimization(
        optimized_tasks=tuple(tasks),
        resource_leveling=resource_leveling,
        cost_optimization=CostOptimizationResult(
            original_cost=original_cost,
            optimized_cost=optimized_cost,
            savings=original_cost - optimized_cost,
            actions=tuple(rank_actions(savings)),
        ),
        duration_optimization=DurationOptimizationResult(
            original_duration=original_duration,
            optimized_duration=optimized_duration,
            reduction=original_duration - optimized_duration,
            actions=tuple(rank_actions(crashes)),
        ),
        actions=tuple(actions),
    )
