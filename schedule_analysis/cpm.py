from __future__ import annotations

import logging
from typing import Dict, Iterable, List, Optional, Tuple

from .config import EngineConfig
from .graph import DependencyGraph, build_dependency_graph
from .models import Anchor, CriticalPathAnalysis, Dependency, ScheduledTask, Task

logger = logging.getLogger(__name__)


def _at(anchor: Anchor, start, finish):
    return start if anchor is Anchor.START else finish


class _CPMCalculation:
    """
    One Critical Path Method run over a validated task network.

    Implements the Precedence Diagramming Method with all four relationship
    types and positive/negative lags. Passes walk the Kahn topological order
    of the graph, so no recursion is involved.
    """

    def __init__(self, tasks: List[Task], graph: DependencyGraph, config: EngineConfig):
        self.tasks = {task.id: task for task in tasks}
        self.graph = graph
        self.config = config
        self.calculation_log: List[str] = []

        self.es: Dict[str, int] = {}
        self.ef: Dict[str, int] = {}
        self.ls: Dict[str, int] = {}
        self.lf: Dict[str, int] = {}
        self.total_float: Dict[str, int] = {}
        self.free_float: Dict[str, int] = {}
        self.critical: set = set()
        self.project_finish = config.project_start

    def _log(self, message: str) -> None:
        self.calculation_log.append(message)
        logger.debug(message)

    def _project_duration(self) -> int:
        # Dates are absolute; the duration is measured from the project start
        return self.project_finish - self.config.project_start

    def run(self) -> CriticalPathAnalysis:
        self._log("=" * 70)
        self._log("CPM/PDM CALCULATION")
        self._log("=" * 70)

        if not self.tasks:
            self._log("No activities defined.")
            return self._result(())

        order = self.graph.topological_order()
        self._forward_pass(order)
        self.project_finish = max(self.ef.values())
        self._backward_pass(list(reversed(order)))
        self._calculate_floats()
        self._identify_critical_tasks()
        self._normalize_schedule_if_needed()
        critical_paths = self._build_critical_paths()

        self._log("")
        self._log("=" * 70)
        self._log("CALCULATION COMPLETE")
        self._log(f"Project Finish: {self.project_finish}")
        self._log(f"Project Duration: {self._project_duration()}")
        for idx, path in enumerate(critical_paths, start=1):
            self._log(f"  {idx}. {' -> '.join(path)}")
        self._log("=" * 70)

        return self._result(critical_paths)

    def _forward_pass(self, order: List[str]) -> None:
        """Early Start (ES) and Early Finish (EF)."""
        self._log("FORWARD PASS (Calculating ES and EF)")
        self._log("-" * 50)

        for task_id in order:
            task = self.tasks[task_id]
            links = self.graph.incoming[task_id]

            if not links:
                self.es[task_id] = self.config.project_start
                self.ef[task_id] = self.es[task_id] + task.duration
                self._log(
                    f"{task_id} (no predecessors): ES = {self.es[task_id]}, EF = {self.ef[task_id]}"
                )
                continue

            start_bounds: List[int] = []
            finish_bounds: List[int] = []
            for pred_id, dep in links:
                rel = dep.relation_type
                bound = _at(rel.predecessor_anchor, self.es[pred_id], self.ef[pred_id]) + dep.lag
                if rel.successor_anchor is Anchor.START:
                    start_bounds.append(bound)
                else:
                    finish_bounds.append(bound)
                self._log(f"  From {pred_id} ({rel}, lag={dep.lag}): {rel.successor_anchor.value} >= {bound}")

            candidates = start_bounds + [bound - task.duration for bound in finish_bounds]
            self.es[task_id] = max(candidates)
            self.ef[task_id] = self.es[task_id] + task.duration
            self._log(f"{task_id}: ES = {self.es[task_id]}, EF = {self.ef[task_id]}")

    def _backward_pass(self, order: List[str]) -> None:
        """Late Start (LS) and Late Finish (LF)."""
        self._log("")
        self._log("BACKWARD PASS (Calculating LS and LF)")
        self._log("-" * 50)

        for task_id in order:
            task = self.tasks[task_id]
            links = self.graph.outgoing[task_id]

            if not links:
                self.lf[task_id] = self.project_finish
                self.ls[task_id] = self.lf[task_id] - task.duration
                self._log(
                    f"{task_id} (no successors): LF = {self.lf[task_id]}, LS = {self.ls[task_id]}"
                )
                continue

            start_bounds: List[int] = []
            finish_bounds: List[int] = [self.project_finish]
            for succ_id, dep in links:
                rel = dep.relation_type
                bound = _at(rel.successor_anchor, self.ls[succ_id], self.lf[succ_id]) - dep.lag
                if rel.predecessor_anchor is Anchor.START:
                    start_bounds.append(bound)
                else:
                    finish_bounds.append(bound)
                self._log(f"  To {succ_id} ({rel}, lag={dep.lag}): late {rel.predecessor_anchor.value} <= {bound}")

            self.ls[task_id] = min(start_bounds + [min(finish_bounds) - task.duration])
            self.lf[task_id] = self.ls[task_id] + task.duration
            self._log(f"{task_id}: LS = {self.ls[task_id]}, LF = {self.lf[task_id]}")

    def _calculate_floats(self) -> None:
        self._log("")
        self._log("FLOAT CALCULATIONS")
        self._log("-" * 50)

        for task_id in self.graph.task_ids:
            total = self.ls[task_id] - self.es[task_id]
            self.total_float[task_id] = total

            links = self.graph.outgoing[task_id]
            if not links:
                self.free_float[task_id] = total
                self._log(f"{task_id}: TF = {total}, FF = TF = {total} (no successors)")
                continue

            slacks = [self._link_slack(task_id, succ_id, dep) for succ_id, dep in links]
            # Free float never exceeds total float
            self.free_float[task_id] = min(min(slacks), total)
            self._log(f"{task_id}: TF = {total}, FF = {self.free_float[task_id]}")

    def _link_slack(self, pred_id: str, succ_id: str, dep: Dependency):
        rel = dep.relation_type
        return (
            _at(rel.successor_anchor, self.es[succ_id], self.ef[succ_id])
            - _at(rel.predecessor_anchor, self.es[pred_id], self.ef[pred_id])
            - dep.lag
        )

    def _identify_critical_tasks(self) -> None:
        self._log("")
        self._log("CRITICAL PATH IDENTIFICATION")
        self._log("-" * 50)

        for task_id in self.graph.task_ids:
            if abs(self.total_float[task_id]) <= self.config.float_tolerance:
                self.critical.add(task_id)
                self._log(f"{task_id}: TF = {self.total_float[task_id]} -> CRITICAL")
            else:
                self._log(f"{task_id}: TF = {self.total_float[task_id]} -> Not critical")

    def _build_critical_paths(self) -> Tuple[Tuple[str, ...], ...]:
        """Chains of critical tasks joined by driving relationships."""
        if not self.critical:
            return ()

        def sort_key(task_id: str):
            return (self.es[task_id], task_id)

        successors: Dict[str, List[str]] = {}
        has_incoming = set()
        for pred_id in self.critical:
            linked = {
                succ_id
                for succ_id, dep in self.graph.outgoing[pred_id]
                if succ_id in self.critical
                and abs(self._link_slack(pred_id, succ_id, dep)) <= self.config.float_tolerance
            }
            successors[pred_id] = sorted(linked, key=sort_key)
            has_incoming.update(linked)

        start_nodes = sorted(
            (task_id for task_id in self.critical if task_id not in has_incoming), key=sort_key
        )

        paths: List[Tuple[str, ...]] = []
        limit = self.config.max_critical_paths
        for start in start_nodes:
            stack = [(start, (start,))]
            while stack:
                if len(paths) >= limit:
                    logger.warning("Critical path enumeration stopped at %d paths", limit)
                    return tuple(paths)
                node, path = stack.pop()
                following = successors.get(node, [])
                if not following:
                    paths.append(path)
                    continue
                for succ_id in reversed(following):
                    stack.append((succ_id, path + (succ_id,)))
        return tuple(paths)

    def _normalize_schedule_if_needed(self) -> None:
        if not self.config.normalize_to_zero:
            return
        min_es = min(self.es.values())
        if min_es >= self.config.project_start:
            return

        offset = self.config.project_start - min_es
        for times in (self.es, self.ef, self.ls, self.lf):
            for task_id in times:
                times[task_id] += offset
        self.project_finish += offset
        self._log("")
        self._log(
            f"Schedule normalized by +{offset} to align earliest ES to Project Start ({self.config.project_start})."
        )

    def _result(self, critical_paths: Tuple[Tuple[str, ...], ...]) -> CriticalPathAnalysis:
        schedule = {
            task_id: ScheduledTask(
                task_id=task_id,
                duration=self.tasks[task_id].duration,
                early_start=self.es[task_id],
                early_finish=self.ef[task_id],
                late_start=self.ls[task_id],
                late_finish=self.lf[task_id],
                total_float=self.total_float[task_id],
                free_float=self.free_float[task_id],
                is_critical=task_id in self.critical,
            )
            for task_id in self.graph.task_ids
        }
        critical_path_duration = max(
            (self.ef[path[-1]] - self.es[path[0]] for path in critical_paths), default=0
        )
        return CriticalPathAnalysis(
            schedule=schedule,
            critical_task_ids=frozenset(self.critical),
            total_float=dict(self.total_float),
            free_float=dict(self.free_float),
            project_duration=self._project_duration(),
            critical_path_duration=critical_path_duration,
            project_finish=self.project_finish,
            critical_paths=critical_paths,
            calculation_log=tuple(self.calculation_log),
        )


def analyze_critical_path(
    tasks: Iterable[Task],
    config: Optional[EngineConfig] = None,
    graph: Optional[DependencyGraph] = None,
) -> CriticalPathAnalysis:
    """
    Compute early/late dates, floats and the critical set for ``tasks``.

    Dates are absolute, so with ``config.project_start`` of 10 a task of
    duration 10 finishes at 10 + 10 = 20. ``project_finish`` is the latest
    early finish. ``project_duration`` is that finish minus
    ``project_start``.

    Free float is the slack of the tightest outgoing relationship. It is
    measured between that relationship's own anchors, and the lag is
    subtracted, e.g. ``ES(s) - EF - lag`` for FS and ``EF(s) - EF - lag`` for
    FF. It is capped at total float. For an FS link with a positive lag this
    is smaller than the plain ``min(ES(s)) - EF``.

    Raises ``UnknownTaskReference`` or ``CyclicDependency`` before any date
    is computed when the network is invalid.
    """
    tasks = list(tasks)
    config = config or EngineConfig()
    if graph is None:
        graph = build_dependency_graph(tasks)

    analysis = _CPMCalculation(tasks, graph, config).run()
    logger.info(
        "Critical path analysis: %d tasks, duration %s, %d critical",
        len(tasks),
        analysis.project_duration,
        len(analysis.critical_task_ids),
    )
    return analysis
