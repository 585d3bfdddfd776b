from __future__ import annotations

from dataclasses import dataclass, field
from enum import Enum
from typing import Dict, FrozenSet, Optional, Tuple

from .errors import InvalidTask


class Anchor(str, Enum):
    START = "start"
    FINISH = "finish"


class DependencyType(Enum):
    """
    Precedence relationship kinds.

    Each member names the anchor on the predecessor and the anchor on the
    successor that the lag is measured between. Forward pass, backward pass
    and free float all read these anchors, so every kind is fully defined by
    its member value.
    """

    FS = ("FS", Anchor.FINISH, Anchor.START)
    SS = ("SS", Anchor.START, Anchor.START)
    FF = ("FF", Anchor.FINISH, Anchor.FINISH)
    SF = ("SF", Anchor.START, Anchor.FINISH)

    def __init__(self, code: str, predecessor_anchor: Anchor, successor_anchor: Anchor):
        self.code = code
        self.predecessor_anchor = predecessor_anchor
        self.successor_anchor = successor_anchor

    def __str__(self) -> str:
        return self.code

    @classmethod
    def parse(cls, value: object) -> "DependencyType":
        if isinstance(value, cls):
            return value
        text = str(value).strip().upper()
        for member in cls:
            if member.code == text or _LONG_NAMES[member] == text:
                return member
        raise ValueError(
            f"Invalid relationship type '{value}'. Must be one of: FS, SS, FF, SF."
        )


_LONG_NAMES = {
    DependencyType.FS: "FINISH-TO-START",
    DependencyType.SS: "START-TO-START",
    DependencyType.FF: "FINISH-TO-FINISH",
    DependencyType.SF: "START-TO-FINISH",
}


class TaskStatus(str, Enum):
    NOT_STARTED = "not-started"
    IN_PROGRESS = "in-progress"
    COMPLETED = "completed"
    ON_HOLD = "on-hold"
    CANCELLED = "cancelled"


class TaskPriority(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class Dependency:
    """Represents a precedence relationship on the successor task."""

    predecessor_id: str
    relation_type: DependencyType = DependencyType.FS
    lag: int = 0  # Can be positive or negative

    def __post_init__(self) -> None:
        object.__setattr__(self, "relation_type", DependencyType.parse(self.relation_type))

    def __str__(self) -> str:
        lag_str = f"+{self.lag}" if self.lag >= 0 else str(self.lag)
        return f"{self.predecessor_id}:{self.relation_type}:{lag_str}"


@dataclass(frozen=True)
class ResourceAssignment:
    resource_id: str
    units: float = 1.0
    cost: float = 0.0


@dataclass(frozen=True)
class Baseline:
    start: int
    end: int
    duration: int
    progress: float = 0.0


@dataclass(frozen=True)
class Actuals:
    start: Optional[int] = None
    end: Optional[int] = None
    duration: Optional[int] = None
    progress: Optional[float] = None
    cost: Optional[float] = None


@dataclass(frozen=True)
class Task:
    """
    A task as supplied by the host application.

    Times are whole project time units. ``end`` defaults to
    ``start + duration``. ``is_critical`` is whatever the host last stored;
    the engine always recomputes criticality itself.
    """

    id: str
    name: str = ""
    duration: int = 0
    start: int = 0
    end: Optional[int] = None
    progress: float = 0.0
    status: TaskStatus = TaskStatus.NOT_STARTED
    priority: TaskPriority = TaskPriority.MEDIUM
    parent_id: Optional[str] = None
    dependencies: Tuple[Dependency, ...] = ()
    resources: Tuple[ResourceAssignment, ...] = ()
    baseline: Optional[Baseline] = None
    actuals: Optional[Actuals] = None
    is_critical: bool = False

    def __post_init__(self) -> None:
        if not str(self.id).strip():
            raise InvalidTask(self.id, "Task ID cannot be empty.")
        if self.duration < 0:
            raise InvalidTask(self.id, "Duration must be non-negative.")
        if not 0 <= self.progress <= 100:
            raise InvalidTask(self.id, "Progress must be between 0 and 100.")
        if self.end is None:
            object.__setattr__(self, "end", self.start + self.duration)
        elif self.end - self.start != self.duration:
            raise InvalidTask(
                self.id,
                f"End {self.end} does not match start {self.start} + duration {self.duration}.",
            )
        object.__setattr__(self, "status", TaskStatus(self.status))
        object.__setattr__(self, "priority", TaskPriority(self.priority))
        object.__setattr__(self, "dependencies", tuple(self.dependencies))
        object.__setattr__(self, "resources", tuple(self.resources))

    @property
    def cost(self) -> float:
        return sum(assignment.cost for assignment in self.resources)


@dataclass(frozen=True)
class Resource:
    id: str
    name: str = ""
    max_units: float = 1.0
    availability: float = 1.0  # fraction of max_units actually available


# =============================================================================
# ANALYSIS RESULTS
# =============================================================================


@dataclass(frozen=True)
class ScheduledTask:
    """Forward/backward pass results for one task."""

    task_id: str
    duration: int
    early_start: int
    early_finish: int
    late_start: int
    late_finish: int
    total_float: int
    free_float: int
    is_critical: bool


@dataclass(frozen=True)
class CriticalPathAnalysis:
    schedule: Dict[str, ScheduledTask]
    critical_task_ids: FrozenSet[str]
    total_float: Dict[str, int]
    free_float: Dict[str, int]
    project_duration: int
    critical_path_duration: int
    project_finish: int = 0
    critical_paths: Tuple[Tuple[str, ...], ...] = ()
    calculation_log: Tuple[str, ...] = field(default=(), compare=False, repr=False)

    @property
    def critical_path(self) -> Tuple[str, ...]:
        return self.critical_paths[0] if self.critical_paths else ()

    def is_critical(self, task_id: str) -> bool:
        return task_id in self.critical_task_ids


class ConflictSeverity(str, Enum):
    LOW = "low"
    MEDIUM = "medium"
    HIGH = "high"
    CRITICAL = "critical"


@dataclass(frozen=True)
class ResourceConflict:
    """Two tasks holding the same resource over an overlapping interval."""

    resource_id: str
    resource_name: str
    task_ids: Tuple[str, ...]
    start: int
    end: int
    overlap_ratio: float
    severity: ConflictSeverity
    combined_units: float = 0.0
    over_allocated: bool = False


class ActionKind(str, Enum):
    CRASH = "crash"
    FAST_TRACK = "fast-track"
    RESOURCE_REALLOCATION = "resource-reallocation"
    SCOPE_REDUCTION = "scope-reduction"
    DELAY = "delay"


@dataclass(frozen=True)
class ActionImpact:
    duration_delta: float = 0.0
    cost_delta: float = 0.0
    risk_delta: float = 0.0


@dataclass(frozen=True)
class HeuristicAction:
    """
    Advisory action proposed by fixed-percentage rules of thumb.

    The estimates are not the outcome of a constrained optimisation and
    applying the action is left to the caller.
    """

    task_id: str
    kind: ActionKind
    impact: ActionImpact
    description: str = ""


@dataclass(frozen=True)
class LevelingAction:
    task_id: str
    kind: ActionKind
    duration_impact: float
    cost_impact: float
    description: str = ""


@dataclass(frozen=True)
class ResourceLevelingResult:
    leveled_tasks: Tuple[Task, ...]
    resource_conflicts: Tuple[ResourceConflict, ...]
    leveling_actions: Tuple[LevelingAction, ...]


@dataclass(frozen=True)
class CostOptimizationResult:
    original_cost: float
    optimized_cost: float
    savings: float
    actions: Tuple[HeuristicAction, ...]


@dataclass(frozen=True)
class DurationOptimizationResult:
    original_duration: int
    optimized_duration: int
    reduction: int
    actions: Tuple[HeuristicAction, ...]


@dataclass(frozen=True)
class OptimizationFlags:
    optimize_duration: bool = False
    optimize_cost: bool = False
    optimize_resources: bool = False
    max_duration: Optional[int] = None
    max_cost: Optional[float] = None


@dataclass(frozen=True)
class ScheduleOptimization:
    optimized_tasks: Tuple[Task, ...]
    resource_leveling: ResourceLevelingResult
    cost_optimization: CostOptimizationResult
    duration_optimization: DurationOptimizationResult
    actions: Tuple[HeuristicAction, ...] = ()


@dataclass(frozen=True)
class PerformanceMetrics:
    planned_value: float
    earned_value: float
    actual_cost: float
    schedule_performance_index: float
    cost_performance_index: float
    estimate_at_completion: float
    estimate_to_complete: float
    variance_at_completion: float
    resource_utilization: float
    critical_path_variance: float
    budget_at_completion: float = 0.0
    schedule_variance: float = 0.0
    cost_variance: float = 0.0
