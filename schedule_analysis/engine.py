"""
Schedule analysis engine.

Entry points for the host application. Every call takes a task/resource
snapshot and returns a fresh result; the engine keeps nothing between calls.
"""
from __future__ import annotations

import logging
from dataclasses import dataclass
from typing import Dict, Iterable, List, Optional, Tuple

from . import conflicts as _conflicts
from . import cpm as _cpm
from . import metrics as _metrics
from . import optimizer as _optimizer
from .config import EngineConfig
from .graph import build_dependency_graph
from .models import (
    CriticalPathAnalysis,
    OptimizationFlags,
    PerformanceMetrics,
    Resource,
    ResourceConflict,
    ScheduleOptimization,
    Task,
)
from .snapshot import ProjectSnapshot

logger = logging.getLogger(__name__)


@dataclass(frozen=True)
class ProjectAnalysis:
    critical_path: CriticalPathAnalysis
    resource_conflicts: Tuple[ResourceConflict, ...]
    resource_utilization: Dict[str, float]
    metrics: PerformanceMetrics


class ScheduleEngine:
    """Runs the analyses with one shared configuration."""

    def __init__(self, config: Optional[EngineConfig] = None):
        self.config = config or EngineConfig()

    def analyze_critical_path(self, tasks: Iterable[Task]) -> CriticalPathAnalysis:
        return _cpm.analyze_critical_path(tasks, self.config)

    def detect_resource_conflicts(
        self, tasks: Iterable[Task], resources: Iterable[Resource]
    ) -> List[ResourceConflict]:
        return _conflicts.detect_resource_conflicts(tasks, resources, self.config)

    def optimize_schedule(
        self,
        tasks: Iterable[Task],
        resources: Iterable[Resource],
        flags: Optional[OptimizationFlags] = None,
        analysis: Optional[CriticalPathAnalysis] = None,
    ) -> ScheduleOptimization:
        return _optimizer.optimize_schedule(tasks, resources, flags, self.config, analysis)

    def compute_performance_metrics(
        self,
        tasks: Iterable[Task],
        resources: Iterable[Resource],
        analysis: Optional[CriticalPathAnalysis] = None,
    ) -> PerformanceMetrics:
        return _metrics.compute_performance_metrics(tasks, resources, analysis)

    def analyze(self, snapshot: ProjectSnapshot) -> ProjectAnalysis:
        """Run every analysis against one snapshot."""
        logger.debug(
            "Analyzing snapshot: %d tasks, %d resources", len(snapshot.tasks), len(snapshot.resources)
        )
        graph = build_dependency_graph(snapshot.tasks)
        critical_path = _cpm.analyze_critical_path(snapshot.tasks, self.config, graph)
        found = _conflicts.detect_resource_conflicts(snapshot.tasks, snapshot.resources, self.config)
        return ProjectAnalysis(
            critical_path=critical_path,
            resource_conflicts=tuple(found),
            resource_utilization=_conflicts.compute_resource_utilization(
                snapshot.tasks, snapshot.resources
            ),
            metrics=_metrics.compute_performance_metrics(
                snapshot.tasks, snapshot.resources, critical_path
            ),
        )


def analyze_critical_path(
    tasks: Iterable[Task], config: Optional[EngineConfig] = None
) -> CriticalPathAnalysis:
    return ScheduleEngine(config).analyze_critical_path(tasks)


def detect_resource_conflicts(
    tasks: Iterable[Task],
    resources: Iterable[Resource],
    config: Optional[EngineConfig] = None,
) -> List[ResourceConflict]:
    return ScheduleEngine(config).detect_resource_conflicts(tasks, resources)


def optimize_schedule(
    tasks: Iterable[Task],
    resources: Iterable[Resource],
    flags: Optional[OptimizationFlags] = None,
    config: Optional[EngineConfig] = None,
) -> ScheduleOptimization:
    return ScheduleEngine(config).optimize_schedule(tasks, resources, flags)


def compute_performance_metrics(
    tasks: Iterable[Task],
    resources: Iterable[Resource],
    analysis: Optional[CriticalPathAnalysis] = None,
) -> PerformanceMetrics:
    return ScheduleEngine().compute_performance_metrics(tasks, resources, analysis)
