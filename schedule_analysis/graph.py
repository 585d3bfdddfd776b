from __future__ import annotations

import logging
from collections import deque
from dataclasses import dataclass
from typing import Dict, Iterable, List, Tuple

import networkx as nx

from .errors import CyclicDependency, InvalidTask, UnknownTaskReference
from .models import Dependency, Task

logger = logging.getLogger(__name__)

Link = Tuple[str, Dependency]


@dataclass(frozen=True)
class DependencyGraph:
    """
    Adjacency view of a task network.

    ``predecessors``/``successors`` list neighbour ids once each;
    ``incoming``/``outgoing`` keep every typed relationship, so two tasks
    joined by both an SS and an FF link appear twice there.
    """

    task_ids: Tuple[str, ...]
    predecessors: Dict[str, List[str]]
    successors: Dict[str, List[str]]
    incoming: Dict[str, List[Link]]
    outgoing: Dict[str, List[Link]]

    def roots(self) -> List[str]:
        return [task_id for task_id in self.task_ids if not self.predecessors[task_id]]

    def sinks(self) -> List[str]:
        return [task_id for task_id in self.task_ids if not self.successors[task_id]]

    def topological_order(self) -> List[str]:
        """Get tasks in topological order (predecessors before successors)."""
        in_degree = {task_id: len(self.incoming[task_id]) for task_id in self.task_ids}

        queue = deque([task_id for task_id, degree in in_degree.items() if degree == 0])
        order: List[str] = []

        while queue:
            node = queue.popleft()
            order.append(node)
            for succ, _ in self.outgoing[node]:
                in_degree[succ] -= 1
                if in_degree[succ] == 0:
                    queue.append(succ)

        if len(order) != len(self.task_ids):
            # Only reachable when the graph was assembled by hand
            remaining = [task_id for task_id in self.task_ids if in_degree[task_id] > 0]
            raise CyclicDependency(remaining + remaining[:1])
        return order

    def to_networkx(self) -> nx.DiGraph:
        graph = nx.DiGraph()
        graph.add_nodes_from(self.task_ids)
        for pred_id in self.task_ids:
            for succ_id, dep in self.outgoing[pred_id]:
                graph.add_edge(
                    pred_id, succ_id, relation_type=dep.relation_type.code, lag=dep.lag
                )
        return graph


def build_dependency_graph(tasks: Iterable[Task]) -> DependencyGraph:
    """
    Build predecessor/successor maps for ``tasks`` and validate the network.

    Raises:
        InvalidTask: two tasks share an id
        UnknownTaskReference: a dependency names a task that is not present
        CyclicDependency: a task is reachable from itself
    """
    tasks = list(tasks)
    task_ids: List[str] = []
    seen = set()
    for task in tasks:
        if task.id in seen:
            raise InvalidTask(task.id, f"Activity '{task.id}' already exists.")
        seen.add(task.id)
        task_ids.append(task.id)

    predecessors: Dict[str, List[str]] = {task_id: [] for task_id in task_ids}
    successors: Dict[str, List[str]] = {task_id: [] for task_id in task_ids}
    incoming: Dict[str, List[Link]] = {task_id: [] for task_id in task_ids}
    outgoing: Dict[str, List[Link]] = {task_id: [] for task_id in task_ids}

    for task in tasks:
        for dep in task.dependencies:
            pred_id = dep.predecessor_id
            if pred_id not in predecessors:
                raise UnknownTaskReference(task.id, pred_id)
            incoming[task.id].append((pred_id, dep))
            outgoing[pred_id].append((task.id, dep))
            if pred_id not in predecessors[task.id]:
                predecessors[task.id].append(pred_id)
            if task.id not in successors[pred_id]:
                successors[pred_id].append(task.id)

    graph = DependencyGraph(
        task_ids=tuple(task_ids),
        predecessors=predecessors,
        successors=successors,
        incoming=incoming,
        outgoing=outgoing,
    )

    cycle = _find_cycle(graph)
    if cycle:
        logger.error("Circular dependency detected: %s", " -> ".join(cycle))
        raise CyclicDependency(cycle)

    logger.debug(
        "Built dependency graph: %d tasks, %d relationships",
        len(task_ids),
        sum(len(links) for links in incoming.values()),
    )
    return graph


def _find_cycle(graph: DependencyGraph) -> List[str]:
    """Return one cycle as a closed path of task ids, or an empty list."""
    try:
        edges = nx.find_cycle(graph.to_networkx(), orientation="original")
    except nx.NetworkXNoCycle:
        return []
    cycle = [edge[0] for edge in edges]
    cycle.append(edges[0][0])
    return cycle
