import unittest

from schedule_analysis.errors import CyclicDependency, InvalidTask, UnknownTaskReference
from schedule_analysis.graph import build_dependency_graph
from schedule_analysis.models import Dependency, DependencyType, Task


class TestDependencyGraph(unittest.TestCase):
    def setUp(self):
        self.tasks = [
            Task("A", duration=2),
            Task("B", duration=1, dependencies=[Dependency("A")]),
            Task("C", duration=3, dependencies=[Dependency("A", DependencyType.SS, 1)]),
            Task("D", duration=1, dependencies=[Dependency("B"), Dependency("C", "FF", 0)]),
        ]

    def test_adjacency_maps(self):
        graph = build_dependency_graph(self.tasks)

        self.assertEqual(graph.successors["A"], ["B", "C"])
        self.assertEqual(graph.predecessors["D"], ["B", "C"])
        self.assertEqual(graph.predecessors["A"], [])
        self.assertEqual(graph.roots(), ["A"])
        self.assertEqual(graph.sinks(), ["D"])

    def test_topological_order_respects_dependencies(self):
        order = build_dependency_graph(self.tasks).topological_order()
        position = {task_id: i for i, task_id in enumerate(order)}
        for task in self.tasks:
            for dep in task.dependencies:
                self.assertLess(position[dep.predecessor_id], position[task.id])

    def test_networkx_export_keeps_relationship(self):
        network = build_dependency_graph(self.tasks).to_networkx()
        self.assertEqual(network.edges["A", "C"]["relation_type"], "SS")
        self.assertEqual(network.edges["A", "C"]["lag"], 1)
        self.assertEqual(network.number_of_nodes(), 4)

    def test_duplicate_task_id(self):
        with self.assertRaises(InvalidTask):
            build_dependency_graph([Task("A", duration=1), Task("A", duration=2)])

    def test_unknown_reference(self):
        with self.assertRaises(UnknownTaskReference):
            build_dependency_graph([Task("A", duration=1, dependencies=[Dependency("Z")])])

    def test_self_dependency_is_a_cycle(self):
        with self.assertRaises(CyclicDependency) as ctx:
            build_dependency_graph([Task("A", duration=1, dependencies=[Dependency("A")])])
        self.assertEqual(ctx.exception.path, ("A", "A"))

    def test_cycle_message_names_chain(self):
        tasks = [
            Task("A", duration=1, dependencies=[Dependency("B")]),
            Task("B", duration=1, dependencies=[Dependency("A")]),
        ]
        with self.assertRaises(CyclicDependency) as ctx:
            build_dependency_graph(tasks)
        self.assertIn("Circular dependency detected", str(ctx.exception))
        self.assertIn(" -> ", str(ctx.exception))


if __name__ == "__main__":
    unittest.main()
